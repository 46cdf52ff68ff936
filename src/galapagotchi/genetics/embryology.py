from __future__ import annotations

from typing import TYPE_CHECKING

from galapagotchi.genetics.gene import GeneReader

if TYPE_CHECKING:
    from galapagotchi.body.fabric import Fabric

MIN_GROWTH_STEPS = 2
GROWTH_STEP_RANGE = 6
JOINTS_PER_FACE = 3


class Embryology:
    """Grows a fabric from its seed, one gene-chosen unfold per settle."""

    def __init__(self, fabric: Fabric, reader: GeneReader) -> None:
        self.fabric = fabric
        self.reader = reader
        self.steps_remaining = MIN_GROWTH_STEPS + reader.next() % GROWTH_STEP_RANGE
        self.steps_taken = 0

    def step(self) -> bool:
        if self.steps_remaining <= 0:
            return False
        face_count = self.fabric.face_count
        if face_count == 0:
            self.steps_remaining = 0
            return False
        face_index = self.reader.next() % face_count
        joint_number = self.reader.next() % JOINTS_PER_FACE
        fresh_faces = self.fabric.unfold(face_index, joint_number)
        self.steps_taken += 1
        if not fresh_faces:
            self.steps_remaining = 0
            return False
        self.steps_remaining -= 1
        return self.steps_remaining > 0
