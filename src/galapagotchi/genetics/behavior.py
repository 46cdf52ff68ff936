from __future__ import annotations

from typing import TYPE_CHECKING

from galapagotchi.body.engine import Direction
from galapagotchi.genetics.gene import GeneReader

if TYPE_CHECKING:
    from galapagotchi.body.fabric import Fabric
    from galapagotchi.genetics.genome import Genome


class Behavior:
    def __init__(self, fabric: Fabric, genome: Genome) -> None:
        self.fabric = fabric
        self.genome = genome
        self.applied = False

    def apply(self) -> None:
        """Set every interval's high/low actuation for every direction."""
        for direction in Direction:
            reader = GeneReader(self.genome.behavior_gene(direction))
            for interval_index in range(self.fabric.interval_count):
                self.fabric.set_interval_high_low(interval_index, direction, reader.next())
        self.applied = True
