from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from galapagotchi.island.hexalot import Hexalot
    from galapagotchi.island.spot import Spot


class IslandMode(Enum):
    VISITING = "visiting"
    FIXING_ISLAND = "fixing_island"
    EVOLVING = "evolving"
    DRIVING_FREE = "driving_free"
    DRIVING_JOURNEY = "driving_journey"


@dataclass(frozen=True)
class IslandState:
    """Mode and selection of the island view. Every transition returns a copy."""

    mode: IslandMode = IslandMode.VISITING
    selected_spot: Spot | None = None
    selected_hexalot: Hexalot | None = None
    home_hexalot: Hexalot | None = None

    def with_mode(self, mode: IslandMode) -> IslandState:
        return replace(self, mode=mode)

    def with_selected_spot(self, spot: Spot | None) -> IslandState:
        hexalot = None if spot is None else spot.center_of_hexalot
        return replace(self, selected_spot=spot, selected_hexalot=hexalot)

    def with_home_to_selected(self) -> IslandState:
        return replace(self, home_hexalot=self.selected_hexalot)

    def with_home(self, hexalot: Hexalot | None) -> IslandState:
        return replace(self, home_hexalot=hexalot)

    @property
    def selected_home(self) -> Hexalot | None:
        """The selected hexalot when it is also the home hexalot."""
        if self.selected_hexalot is not None and self.selected_hexalot is self.home_hexalot:
            return self.selected_hexalot
        return None
