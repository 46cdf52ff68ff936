from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from galapagotchi.island.hexalot import Hexalot
    from galapagotchi.island.island import Island


@dataclass(frozen=True)
class Leg:
    """One hop of a journey: leaving ``hexalot`` for ``go_to``."""

    journey: Journey
    visited: int

    @property
    def hexalot(self) -> Hexalot:
        return self.journey.visits[self.visited]

    @property
    def go_to(self) -> Hexalot:
        return self.journey.visits[self.visited + 1]

    @property
    def next_leg(self) -> Leg | None:
        return self.journey.leg(self.visited + 1)

    def target_offset(self) -> tuple[float, float]:
        """Ground-plane vector from the leg's start hexalot to its goal."""
        start_x, _, start_z = self.hexalot.center
        goal_x, _, goal_z = self.go_to.center
        return (goal_x - start_x, goal_z - start_z)


class Journey:
    def __init__(self, hexalots: Sequence[Hexalot]) -> None:
        if not hexalots:
            raise ValueError("journey needs at least its home hexalot")
        self._visits: list[Hexalot] = []
        for hexalot in hexalots:
            self.visit(hexalot)

    @property
    def visits(self) -> tuple[Hexalot, ...]:
        return tuple(self._visits)

    @property
    def home(self) -> Hexalot:
        return self._visits[0]

    def visit(self, hexalot: Hexalot) -> None:
        if self._visits and self._visits[-1] is hexalot:
            raise ValueError(f"journey cannot visit hexalot {hexalot.id} twice in a row")
        self._visits.append(hexalot)

    def leg(self, visited: int) -> Leg | None:
        if visited < 0 or visited + 1 >= len(self._visits):
            return None
        return Leg(journey=self, visited=visited)

    @property
    def first_leg(self) -> Leg | None:
        return self.leg(0)

    def legs(self) -> list[Leg]:
        legs: list[Leg] = []
        leg = self.first_leg
        while leg is not None:
            legs.append(leg)
            leg = leg.next_leg
        return legs

    def to_ids(self) -> list[str]:
        return [hexalot.id for hexalot in self._visits]

    @classmethod
    def from_ids(cls, hexalot_ids: Sequence[str], island: Island) -> Journey:
        hexalots: list[Hexalot] = []
        for hexalot_id in hexalot_ids:
            hexalot = island.find_hexalot(hexalot_id)
            if hexalot is None:
                raise ValueError(f"journey references unknown hexalot: {hexalot_id}")
            hexalots.append(hexalot)
        return cls(hexalots)
