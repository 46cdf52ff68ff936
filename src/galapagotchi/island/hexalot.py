from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from galapagotchi.island.spot import AXIAL_DIRECTIONS, Spot, SpotCoord, Surface
from galapagotchi.sim.errors import InvariantViolation

if TYPE_CHECKING:
    from galapagotchi.genetics.genome import Genome
    from galapagotchi.island.journey import Journey

HEXALOT_RADIUS = 6
HEXALOT_SPOT_COUNT = 127
FINGERPRINT_BITS_PER_CHAR = 6
FINGERPRINT_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_"
NONCE_SEPARATOR = "."
NONCE_LIMIT = 64


def _ring(radius: int) -> list[SpotCoord]:
    coord = AXIAL_DIRECTIONS[4].scaled(radius)
    ring: list[SpotCoord] = []
    for direction in AXIAL_DIRECTIONS:
        for _ in range(radius):
            ring.append(coord)
            coord = coord.plus(direction)
    return ring


def _build_shape(radius: int) -> tuple[SpotCoord, ...]:
    shape = [SpotCoord(0, 0)]
    for ring_radius in range(1, radius + 1):
        shape.extend(_ring(ring_radius))
    return tuple(shape)


HEXALOT_SHAPE: tuple[SpotCoord, ...] = _build_shape(HEXALOT_RADIUS)

# Centers of the six hexalots sharing one edge row with a hexalot at the origin.
HEXALOT_NEIGHBOR_OFFSETS: tuple[SpotCoord, ...] = (
    SpotCoord(12, -6),
    SpotCoord(6, 6),
    SpotCoord(-6, 12),
    SpotCoord(-12, 6),
    SpotCoord(-6, -6),
    SpotCoord(6, -12),
)


def hexalot_coords(center: SpotCoord) -> list[SpotCoord]:
    return [center.plus(offset) for offset in HEXALOT_SHAPE]


def fingerprint_of(surfaces: Sequence[Surface]) -> str:
    """Encode one land bit per spot, six bits per character."""
    if len(surfaces) != HEXALOT_SPOT_COUNT:
        raise ValueError(f"fingerprint needs {HEXALOT_SPOT_COUNT} surfaces, got {len(surfaces)}")
    bits = [1 if surface is Surface.LAND else 0 for surface in surfaces]
    characters: list[str] = []
    for start in range(0, len(bits), FINGERPRINT_BITS_PER_CHAR):
        group = bits[start : start + FINGERPRINT_BITS_PER_CHAR]
        group += [0] * (FINGERPRINT_BITS_PER_CHAR - len(group))
        value = 0
        for bit in group:
            value = (value << 1) | bit
        characters.append(FINGERPRINT_ALPHABET[value])
    return "".join(characters)


def with_nonce(pattern: str, nonce: int) -> str:
    if nonce == 0:
        return pattern
    return f"{pattern}{NONCE_SEPARATOR}{nonce}"


class Hexalot:
    def __init__(self, center_spot: Spot, spots: Sequence[Spot]) -> None:
        if len(spots) != HEXALOT_SPOT_COUNT:
            raise ValueError(f"hexalot requires {HEXALOT_SPOT_COUNT} spots, got {len(spots)}")
        if spots[0] is not center_spot:
            raise ValueError("hexalot spots must start with the center spot")
        self.center_spot = center_spot
        self.spots: tuple[Spot, ...] = tuple(spots)
        self.pattern = self.fingerprint_pattern()
        self.nonce = 0
        self.id = self.pattern
        self.genome: Genome | None = None
        self.journey: Journey | None = None

    @property
    def coord(self) -> SpotCoord:
        return self.center_spot.coord

    @property
    def claimed(self) -> bool:
        return self.genome is not None

    @property
    def center(self) -> tuple[float, float, float]:
        return self.center_spot.center

    def fingerprint_pattern(self) -> str:
        return fingerprint_of([spot.surface for spot in self.spots])

    @property
    def terrain_changed(self) -> bool:
        return self.fingerprint_pattern() != self.pattern

    def refresh_fingerprint(self, taken_ids: Iterable[str] = ()) -> str:
        """Recompute the id, bumping the nonce past ids already taken by other hexalots.

        A hexalot whose terrain is unchanged and whose id is still free keeps its id.
        """
        taken = set(taken_ids)
        pattern = self.fingerprint_pattern()
        if pattern == self.pattern and self.id not in taken:
            return self.id
        for nonce in range(NONCE_LIMIT + 1):
            candidate = with_nonce(pattern, nonce)
            if candidate not in taken:
                self.pattern = pattern
                self.nonce = nonce
                self.id = candidate
                return candidate
        raise InvariantViolation(f"no unique id for hexalot at {self.coord} after {NONCE_LIMIT} nonces")

    def restore_nonce(self, nonce: int) -> str:
        if nonce < 0 or nonce > NONCE_LIMIT:
            raise ValueError(f"nonce must be within [0, {NONCE_LIMIT}], got {nonce}")
        self.pattern = self.fingerprint_pattern()
        self.nonce = nonce
        self.id = with_nonce(self.pattern, nonce)
        return self.id

    def adopt_journey(self, journey: Journey | None) -> None:
        if journey is not None and journey.home is not self:
            raise ValueError(f"journey starting at {journey.home.id} cannot belong to hexalot {self.id}")
        self.journey = journey

    def attach(self) -> None:
        self.center_spot.center_of_hexalot = self
        for spot in self.spots:
            if self not in spot.member_of_hexalot:
                spot.member_of_hexalot.append(self)

    def detach(self) -> None:
        if self.center_spot.center_of_hexalot is self:
            self.center_spot.center_of_hexalot = None
        for spot in self.spots:
            if self in spot.member_of_hexalot:
                spot.member_of_hexalot.remove(self)

    def __repr__(self) -> str:
        return f"Hexalot(id={self.id!r}, q={self.coord.q}, r={self.coord.r}, claimed={self.claimed})"
