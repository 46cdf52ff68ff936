from __future__ import annotations

import math
from enum import Enum

import numpy as np

from galapagotchi.body.engine import Direction
from galapagotchi.body.fabric import Fabric
from galapagotchi.genetics.genome import Genome, GenomeData
from galapagotchi.sim.errors import InvariantViolation


class GotchiState(Enum):
    EMBRYO = "embryo"
    HANGING = "hanging"
    RESTING = "resting"
    MATURE = "mature"
    FROZEN = "frozen"


class Gotchi:
    """One creature: a genome driving the fabric in one kernel slot.

    The state machine only advances when ``iterate`` reports a settle, i.e. the
    fabric returned a zero residual time sweep.
    """

    def __init__(self, fabric: Fabric, genome: Genome, hanging_delay: int, rest_delay: int) -> None:
        self.fabric = fabric
        self.genome = genome
        self.hanging_delay = hanging_delay
        self.rest_delay = rest_delay
        self.embryology = genome.embryology(fabric)
        self.behavior = genome.behavior(fabric)
        self.hanging_countdown = hanging_delay
        self.rest_countdown = rest_delay
        self.state = GotchiState.EMBRYO
        self.recycled = False

    @property
    def mature(self) -> bool:
        return self.state is GotchiState.MATURE

    @property
    def frozen(self) -> bool:
        return self.state is GotchiState.FROZEN

    @property
    def growing(self) -> bool:
        return self.state is GotchiState.EMBRYO

    @property
    def age(self) -> int:
        return self.fabric.age

    @property
    def midpoint(self) -> np.ndarray:
        return self.fabric.midpoint

    @property
    def distance(self) -> float:
        if self.fabric.age == 0:
            raise InvariantViolation("distance requested for a gotchi with zero age")
        midpoint = self.fabric.midpoint
        return math.sqrt(float(midpoint[0]) ** 2 + float(midpoint[2]) ** 2)

    @property
    def genome_data(self) -> GenomeData:
        return self.genome.to_data()

    def set_next_direction(self, direction: Direction) -> None:
        self.fabric.set_next_direction(direction)

    def with_new_body(self, fabric: Fabric) -> Gotchi:
        return Gotchi(fabric, self.genome, self.hanging_delay, self.rest_delay)

    def iterate(self, ticks: int) -> int:
        if self.frozen:
            return 0
        hanging = self.state in (GotchiState.EMBRYO, GotchiState.HANGING)
        time_sweep = self.fabric.iterate(ticks, hanging)
        if time_sweep == 0:
            self._settled(ticks)
        return time_sweep

    def _settled(self, ticks: int) -> None:
        if self.state is GotchiState.MATURE:
            self.trigger_all_intervals()
        elif self.state is GotchiState.EMBRYO:
            if self.embryology is None or not self.embryology.step():
                self.embryology = None
                self.state = GotchiState.HANGING
        elif self.state is GotchiState.HANGING:
            self.hanging_countdown -= ticks
            if self.hanging_countdown <= 0:
                self.fabric.remove_hanger()
                self.state = GotchiState.RESTING
        elif self.state is GotchiState.RESTING:
            if self.rest_countdown > 0:
                self.rest_countdown -= ticks
            else:
                self.behavior.apply()
                self.trigger_all_intervals()
                self.state = GotchiState.MATURE

    def trigger_all_intervals(self) -> None:
        for interval_index in range(self.fabric.interval_count):
            self.fabric.trigger_interval(interval_index)

    def freeze(self) -> None:
        self.state = GotchiState.FROZEN

    def recycle(self) -> None:
        """Freeze and hand the kernel slot back; safe to call twice."""
        self.freeze()
        if self.recycled:
            return
        self.recycled = True
        self.fabric.instance.kernel.release(self.fabric.instance)
