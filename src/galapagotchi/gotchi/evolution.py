from __future__ import annotations

import copy
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from galapagotchi.body.engine import Direction
from galapagotchi.body.fabric import Fabric
from galapagotchi.body.kernel import FabricKernel
from galapagotchi.genetics.genome import Genome, GenomeData, fresh_genome
from galapagotchi.gotchi.gotchi import Gotchi
from galapagotchi.island.hexalot import Hexalot
from galapagotchi.island.journey import Leg
from galapagotchi.sim.channel import StateChannel
from galapagotchi.sim.errors import ProgrammerError, SlotExhaustion
from galapagotchi.sim.rng import RNG_GENESIS_STREAM_NAME, generation_stream, stream

MAX_POPULATION = 10
GENERATION_COMPLETE_EVENT_TYPE = "generation_complete"
BEST_GENOME_SAVED_EVENT_TYPE = "best_genome_saved"
EVOLUTION_DISPOSED_EVENT_TYPE = "evolution_disposed"


@dataclass(frozen=True)
class EvolutionConfig:
    max_population: int = MAX_POPULATION
    tick_quantum: int = 10
    generation_ticks: int = 600
    survivor_fraction: float = 0.3
    mutations: int = 6
    hanging_delay: int = 30
    rest_delay: int = 30
    seed_corners: int = 5
    seed_altitude: float = 1.0
    proximity_history_max: int = 64
    max_event_trace: int = 256

    def __post_init__(self) -> None:
        for name in ("max_population", "tick_quantum", "generation_ticks", "proximity_history_max", "max_event_trace"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"evolution.{name} must be an integer > 0")
        for name in ("mutations", "hanging_delay", "rest_delay"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"evolution.{name} must be an integer >= 0")
        if not 0.0 < self.survivor_fraction <= 1.0:
            raise ValueError("evolution.survivor_fraction must be within (0, 1]")
        if self.seed_corners < 3:
            raise ValueError("evolution.seed_corners must be >= 3")


@dataclass
class Evolver:
    generation: int
    index: int
    gotchi: Gotchi
    parent_id: str | None = None
    fitness: float = 0.0
    mature_ticks: int = 0
    proximity_history: list[float] = field(default_factory=list)

    @property
    def evolver_id(self) -> str:
        return f"{self.generation}:{self.index}"

    def record_proximity(self, proximity: float, history_max: int) -> None:
        self.proximity_history.append(proximity)
        if len(self.proximity_history) > history_max:
            del self.proximity_history[: len(self.proximity_history) - history_max]


@dataclass(frozen=True)
class GenerationResult:
    generation: int
    ranking: tuple[tuple[str, float], ...]
    best_fitness: float
    improved: bool


class Evolution:
    """Races a population of gotchis along one leg and breeds from the fastest.

    Every population member owns one kernel slot; the evolution never holds
    more slots than the kernel has free when it starts, and releases all of
    them at each generation boundary and on ``dispose``.
    """

    def __init__(
        self,
        hexalot: Hexalot,
        leg: Leg,
        kernel: FabricKernel,
        save_genome: Callable[[GenomeData], None] | None = None,
        *,
        seed: int = 0,
        config: EvolutionConfig | None = None,
    ) -> None:
        if leg.hexalot is not hexalot:
            raise ValueError(f"leg starts at {leg.hexalot.id}, not at hexalot {hexalot.id}")
        self.hexalot = hexalot
        self.leg = leg
        self.kernel = kernel
        self.save_genome = save_genome
        self.seed = seed
        self.config = config or EvolutionConfig()
        seed_joints = self.config.seed_corners + 2
        if seed_joints > kernel.limits.joint_count_max:
            raise ValueError(
                f"seed of {self.config.seed_corners} corners needs {seed_joints} joints, "
                f"kernel allows {kernel.limits.joint_count_max}"
            )
        self.population_size = min(self.config.max_population, kernel.free_count)
        if self.population_size == 0:
            raise SlotExhaustion("no free simulation instances for an evolution population")
        self.target = leg.target_offset()
        self.generation = 0
        self.best_genome = hexalot.genome or fresh_genome(stream(seed, RNG_GENESIS_STREAM_NAME))
        self.best_fitness = -math.inf
        self.best_evolver_id: str | None = None
        self.event_trace: list[dict[str, Any]] = []
        self.disposed = False
        self.population: list[Evolver] = []
        self.evolvers_now: StateChannel[tuple[Evolver, ...]] = StateChannel(())
        self._spawn_population([(self.best_genome, None)])

    def __enter__(self) -> Evolution:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    def iterate(self) -> GenerationResult | None:
        """Advance every live evolver one tick quantum; returns a result at a generation boundary."""
        if self.disposed:
            raise ProgrammerError("evolution has been disposed")
        quantum = self.config.tick_quantum
        for evolver in self.population:
            gotchi = evolver.gotchi
            if gotchi.frozen:
                continue
            gotchi.iterate(quantum)
            proximity = self._proximity(gotchi)
            evolver.record_proximity(proximity, self.config.proximity_history_max)
            evolver.fitness = math.hypot(*self.target) - proximity
            if gotchi.mature:
                evolver.mature_ticks += quantum
                if evolver.mature_ticks >= self.config.generation_ticks:
                    gotchi.freeze()
        if all(evolver.gotchi.frozen for evolver in self.population):
            return self._complete_generation()
        return None

    def run_generation(self) -> GenerationResult:
        while True:
            result = self.iterate()
            if result is not None:
                return result

    def dispose(self) -> None:
        if self.disposed:
            return
        for evolver in self.population:
            evolver.gotchi.recycle()
        self.disposed = True
        self._append_event_trace_entry(
            {"event_type": EVOLUTION_DISPOSED_EVENT_TYPE, "generation": self.generation, "params": {}}
        )

    def get_event_trace(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self.event_trace)

    def _proximity(self, gotchi: Gotchi) -> float:
        midpoint = gotchi.midpoint
        target_x, target_z = self.target
        return math.hypot(target_x - float(midpoint[0]), target_z - float(midpoint[2]))

    def _spawn_population(self, parents: list[tuple[Genome, str | None]]) -> None:
        rng = generation_stream(self.seed, self.generation)
        population: list[Evolver] = []
        try:
            for index in range(self.population_size):
                if index == 0:
                    genome, parent_id = self.best_genome, self.best_evolver_id
                else:
                    parent_genome, parent_id = parents[(index - 1) % len(parents)]
                    genome = parent_genome.with_mutated_behavior(self.config.mutations, rng)
                population.append(
                    Evolver(generation=self.generation, index=index, gotchi=self._hatch(genome), parent_id=parent_id)
                )
        except Exception:
            for evolver in population:
                evolver.gotchi.recycle()
            raise
        self.population = population
        self.evolvers_now.next(tuple(population))

    def _hatch(self, genome: Genome) -> Gotchi:
        instance = self.kernel.allocate()
        try:
            fabric = Fabric(instance)
            fabric.create_seed(self.config.seed_corners, self.config.seed_altitude)
            fabric.set_next_direction(Direction.FORWARD)
            return Gotchi(fabric, genome, self.config.hanging_delay, self.config.rest_delay)
        except Exception:
            self.kernel.release(instance)
            raise

    def _complete_generation(self) -> GenerationResult:
        ranking = sorted(self.population, key=lambda evolver: (-evolver.fitness, evolver.index))
        champion = ranking[0]
        improved = champion.fitness > self.best_fitness
        if improved:
            genome = champion.gotchi.genome
            if self.save_genome is not None:
                self.save_genome(genome.to_data())
            self.best_genome = genome
            self.best_fitness = champion.fitness
            self.best_evolver_id = champion.evolver_id
            self.hexalot.genome = genome
            self._append_event_trace_entry(
                {
                    "event_type": BEST_GENOME_SAVED_EVENT_TYPE,
                    "generation": self.generation,
                    "params": {"evolver_id": champion.evolver_id, "fitness": champion.fitness},
                }
            )
        result = GenerationResult(
            generation=self.generation,
            ranking=tuple((evolver.evolver_id, evolver.fitness) for evolver in ranking),
            best_fitness=self.best_fitness,
            improved=improved,
        )
        self._append_event_trace_entry(
            {
                "event_type": GENERATION_COMPLETE_EVENT_TYPE,
                "generation": self.generation,
                "params": {
                    "champion_id": champion.evolver_id,
                    "champion_fitness": champion.fitness,
                    "best_fitness": self.best_fitness,
                    "population": len(ranking),
                },
            }
        )
        survivor_count = max(1, math.ceil(self.config.survivor_fraction * len(ranking)))
        parents: list[tuple[Genome, str | None]] = [
            (evolver.gotchi.genome, evolver.evolver_id) for evolver in ranking[:survivor_count]
        ]
        for evolver in self.population:
            evolver.gotchi.recycle()
        self.generation += 1
        self._spawn_population(parents)
        return result

    def _append_event_trace_entry(self, entry: dict[str, Any]) -> None:
        self.event_trace.append(copy.deepcopy(entry))
        if len(self.event_trace) > self.config.max_event_trace:
            overflow = len(self.event_trace) - self.config.max_event_trace
            del self.event_trace[:overflow]
