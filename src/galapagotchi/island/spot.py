from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from galapagotchi.island.hexalot import Hexalot

SPOT_SCALE = 1.0
WATER_DEPTH = -0.3


class Surface(Enum):
    UNKNOWN = 0
    LAND = 1
    WATER = 2


@dataclass(frozen=True, order=True)
class SpotCoord:
    """Axial hex coordinate (q, r)."""

    q: int
    r: int

    @property
    def s(self) -> int:
        return -self.q - self.r

    def plus(self, other: SpotCoord) -> SpotCoord:
        return SpotCoord(self.q + other.q, self.r + other.r)

    def minus(self, other: SpotCoord) -> SpotCoord:
        return SpotCoord(self.q - other.q, self.r - other.r)

    def scaled(self, factor: int) -> SpotCoord:
        return SpotCoord(self.q * factor, self.r * factor)

    def distance_to(self, other: SpotCoord) -> int:
        dq = self.q - other.q
        dr = self.r - other.r
        ds = self.s - other.s
        return int((abs(dq) + abs(dr) + abs(ds)) / 2)

    def to_dict(self) -> dict[str, int]:
        return {"q": self.q, "r": self.r}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SpotCoord:
        return cls(q=int(data["q"]), r=int(data["r"]))


ORIGIN = SpotCoord(0, 0)

AXIAL_DIRECTIONS: tuple[SpotCoord, ...] = (
    SpotCoord(1, 0),
    SpotCoord(1, -1),
    SpotCoord(0, -1),
    SpotCoord(-1, 0),
    SpotCoord(-1, 1),
    SpotCoord(0, 1),
)


def axial_to_world_xz(coord: SpotCoord) -> tuple[float, float]:
    """Pointy-top axial to ground-plane coordinates."""
    x = math.sqrt(3.0) * (coord.q + coord.r / 2.0) * SPOT_SCALE
    z = 1.5 * coord.r * SPOT_SCALE
    return (x, z)


class Spot:
    def __init__(self, coord: SpotCoord, surface: Surface = Surface.UNKNOWN) -> None:
        self.coord = coord
        self.surface = surface
        self.adjacent_spots: list[Spot] = []
        self.adjacent_spots_retrieved = False
        self.center_of_hexalot: Hexalot | None = None
        self.member_of_hexalot: list[Hexalot] = []
        self.available = False
        self._center = self._compute_center()

    @property
    def center(self) -> tuple[float, float, float]:
        return self._center

    @property
    def free(self) -> bool:
        return not any(hexalot.claimed for hexalot in self.member_of_hexalot)

    @property
    def land(self) -> bool:
        return self.surface is Surface.LAND

    def set_surface(self, surface: Surface) -> None:
        self.surface = surface
        self._center = self._compute_center()

    def retrieve_adjacent_spots(self, spots_by_coord: dict[SpotCoord, Spot]) -> list[Spot]:
        if not self.adjacent_spots_retrieved:
            self.adjacent_spots = [
                spots_by_coord[neighbor]
                for neighbor in (self.coord.plus(direction) for direction in AXIAL_DIRECTIONS)
                if neighbor in spots_by_coord
            ]
            self.adjacent_spots_retrieved = True
        return self.adjacent_spots

    def _compute_center(self) -> tuple[float, float, float]:
        x, z = axial_to_world_xz(self.coord)
        y = WATER_DEPTH if self.surface is Surface.WATER else 0.0
        return (x, y, z)

    def __repr__(self) -> str:
        return f"Spot(q={self.coord.q}, r={self.coord.r}, surface={self.surface.name})"
