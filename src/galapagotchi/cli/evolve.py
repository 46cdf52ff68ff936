from __future__ import annotations

import argparse
import sys
from typing import Sequence

from galapagotchi.body.kernel import DEFAULT_INSTANCE_MAX, DEFAULT_JOINT_COUNT_MAX, FabricKernel, KernelLimits
from galapagotchi.content.storage import JsonStorage
from galapagotchi.gotchi.evolution import Evolution, EvolutionConfig
from galapagotchi.island.hexalot import HEXALOT_NEIGHBOR_OFFSETS, Hexalot
from galapagotchi.island.island import Island
from galapagotchi.island.island_state import IslandMode
from galapagotchi.island.journey import Journey, Leg
from galapagotchi.island.legality import LEGALITY_POLICIES, legality_policy

EVOLUTION_DEFAULTS = EvolutionConfig()


def _positive_int(value: str) -> int:
    parsed = int(value)
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be > 0")
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="galapagotchi-evolve",
        description=(
            "Headless evolution. Races a population from the home hexalot toward a neighboring "
            "hexalot and stores every improved genome."
        ),
    )
    parser.add_argument("storage_dir", help="Storage root holding islands/, genomes/ and journeys/")
    parser.add_argument("name", help="Island name")
    parser.add_argument("--home", help="Home hexalot id (default: first claimed hexalot)")
    parser.add_argument(
        "--toward",
        type=int,
        choices=range(len(HEXALOT_NEIGHBOR_OFFSETS)),
        default=0,
        help="Neighbor slot of the target hexalot when the home has no journey (default: 0)",
    )
    parser.add_argument("--generations", type=_positive_int, default=1, help="Generations to run (default: 1)")
    parser.add_argument("--seed", type=int, default=0, help="Evolution seed (default: 0)")
    parser.add_argument(
        "--legality",
        choices=sorted(LEGALITY_POLICIES),
        default="bordering",
        help="Hexalot legality policy (default: bordering)",
    )
    parser.add_argument("--population", type=_positive_int, default=EVOLUTION_DEFAULTS.max_population)
    parser.add_argument("--generation-ticks", type=_positive_int, default=EVOLUTION_DEFAULTS.generation_ticks)
    parser.add_argument("--tick-quantum", type=_positive_int, default=EVOLUTION_DEFAULTS.tick_quantum)
    parser.add_argument("--instance-max", type=_positive_int, default=DEFAULT_INSTANCE_MAX)
    parser.add_argument("--joint-count-max", type=_positive_int, default=DEFAULT_JOINT_COUNT_MAX)
    return parser


def _home_hexalot(island: Island, home_id: str | None) -> Hexalot:
    if home_id is not None:
        hexalot = island.find_hexalot(home_id)
        if hexalot is None:
            raise ValueError(f"unknown home hexalot: {home_id}")
        if not hexalot.claimed:
            raise ValueError(f"home hexalot {home_id} has no genome")
        return hexalot
    for hexalot in island.hexalots:
        if hexalot.claimed:
            return hexalot
    raise ValueError(f"island {island.name} has no claimed hexalot")


def _first_leg(island: Island, storage: JsonStorage, home: Hexalot, toward: int) -> Leg:
    if home.journey is not None and home.journey.first_leg is not None:
        return home.journey.first_leg
    target_coord = home.coord.plus(HEXALOT_NEIGHBOR_OFFSETS[toward])
    target = island.hexalot_at(target_coord)
    if target is None:
        spot = island.spot_at(target_coord)
        target = None if spot is None else island.create_hexalot(spot)
        if target is None:
            raise ValueError(f"no hexalot can be placed at {target_coord.to_dict()}")
        storage.save_island(island)
    journey = Journey([home, target])
    home.adopt_journey(journey)
    storage.save_journey(home)
    leg = journey.first_leg
    if leg is None:
        raise ValueError(f"journey from {home.id} has no leg")
    return leg


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    storage = JsonStorage(args.storage_dir)

    try:
        island = storage.load_island(args.name, legality=legality_policy(args.legality))
        home = _home_hexalot(island, args.home)
        leg = _first_leg(island, storage, home, args.toward)
        island.island_state.next(
            island.island_state.value.with_selected_spot(home.center_spot).with_home_to_selected().with_mode(
                IslandMode.EVOLVING
            )
        )

        config = EvolutionConfig(
            max_population=args.population,
            generation_ticks=args.generation_ticks,
            tick_quantum=args.tick_quantum,
        )
        kernel = FabricKernel(KernelLimits(instance_max=args.instance_max, joint_count_max=args.joint_count_max))
        print(
            "header "
            f"island={island.name} "
            f"home={home.id} "
            f"target={leg.go_to.id} "
            f"seed={args.seed} "
            f"instance_max={kernel.instance_max}"
        )
        with Evolution(
            home,
            leg,
            kernel,
            lambda genome_data: storage.set_genome(home, genome_data),
            seed=args.seed,
            config=config,
        ) as evolution:
            for _ in range(args.generations):
                result = evolution.run_generation()
                champion_id, champion_fitness = result.ranking[0]
                print(
                    f"generation={result.generation} "
                    f"population={len(result.ranking)} "
                    f"champion={champion_id} "
                    f"champion_fitness={champion_fitness:.6f} "
                    f"best_fitness={result.best_fitness:.6f} "
                    f"improved={str(result.improved).lower()}"
                )
        island.island_state.next(island.island_state.value.with_mode(IslandMode.VISITING))
        print(f"ok best_fitness={evolution.best_fitness:.6f} free_slots={kernel.free_count}")
    except Exception as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
