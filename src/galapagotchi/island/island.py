from __future__ import annotations

from galapagotchi.island.hexalot import Hexalot, hexalot_coords
from galapagotchi.island.island_state import IslandState
from galapagotchi.island.legality import LegalityPolicy, bordering_policy
from galapagotchi.island.spot import Spot, SpotCoord, Surface
from galapagotchi.sim.channel import StateChannel

DEFAULT_ISLAND_RADIUS = 18
SURFACE_CODES_PER_DIGIT = 2
SURFACE_CODE_BITS = 2


def generate_spot_disk(radius: int) -> dict[SpotCoord, Spot]:
    if radius < 0:
        raise ValueError("radius must be >= 0")

    spots: dict[SpotCoord, Spot] = {}
    for q in range(-radius, radius + 1):
        min_r = max(-radius, -q - radius)
        max_r = min(radius, -q + radius)
        for r in range(min_r, max_r + 1):
            coord = SpotCoord(q=q, r=r)
            spots[coord] = Spot(coord)
    return spots


class Island:
    def __init__(
        self,
        name: str,
        radius: int = DEFAULT_ISLAND_RADIUS,
        *,
        legality: LegalityPolicy = bordering_policy,
    ) -> None:
        if not isinstance(name, str) or not name:
            raise ValueError("island name must be a non-empty string")
        self.name = name
        self.radius = radius
        self.legality = legality
        self._spots_by_coord = generate_spot_disk(radius)
        self.spots: list[Spot] = [self._spots_by_coord[coord] for coord in sorted(self._spots_by_coord)]
        self.hexalots: list[Hexalot] = []
        self.island_state: StateChannel[IslandState] = StateChannel(IslandState())
        self.refresh_structure()

    def spot_at(self, coord: SpotCoord) -> Spot | None:
        return self._spots_by_coord.get(coord)

    def find_hexalot(self, hexalot_id: str) -> Hexalot | None:
        for hexalot in self.hexalots:
            if hexalot.id == hexalot_id:
                return hexalot
        return None

    def hexalot_at(self, coord: SpotCoord) -> Hexalot | None:
        spot = self.spot_at(coord)
        return None if spot is None else spot.center_of_hexalot

    def neighborhood_complete(self, spot: Spot) -> bool:
        return all(coord in self._spots_by_coord for coord in hexalot_coords(spot.coord))

    def can_be_hexalot_center(self, spot: Spot) -> bool:
        if self._spots_by_coord.get(spot.coord) is not spot:
            return False
        if spot.center_of_hexalot is not None:
            return False
        if not self.neighborhood_complete(spot):
            return False
        return self.legality(self, spot)

    def available_hexalot_centers(self) -> list[Spot]:
        return [spot for spot in self.spots if self.can_be_hexalot_center(spot)]

    def create_hexalot(self, spot: Spot) -> Hexalot | None:
        if not self.can_be_hexalot_center(spot):
            return None
        hexalot = self._place_hexalot(spot)
        self.refresh_structure()
        return hexalot

    def remove_free_hexalots(self) -> list[Hexalot]:
        removed = [hexalot for hexalot in self.hexalots if not hexalot.claimed]
        for hexalot in removed:
            hexalot.detach()
        self.hexalots = [hexalot for hexalot in self.hexalots if hexalot.claimed]
        self.refresh_structure()
        return removed

    def set_surface(self, spot: Spot, surface: Surface) -> bool:
        if self._spots_by_coord.get(spot.coord) is not spot:
            return False
        if not spot.free:
            return False
        spot.set_surface(surface)
        self.refresh_structure()
        return True

    def refresh_structure(self) -> None:
        self.refresh_fingerprints()
        for spot in self.spots:
            spot.retrieve_adjacent_spots(self._spots_by_coord)
            spot.available = False
        for spot in self.available_hexalot_centers():
            spot.available = True

    def refresh_fingerprints(self) -> None:
        # Unchanged hexalots claim their ids first so that stored genomes stay addressable.
        stable = [hexalot for hexalot in self.hexalots if not hexalot.terrain_changed]
        changed = [hexalot for hexalot in self.hexalots if hexalot.terrain_changed]
        taken: set[str] = set()
        for hexalot in stable + changed:
            taken.add(hexalot.refresh_fingerprint(taken))

    def surfaces_string(self) -> str:
        codes = [spot.surface.value for spot in self.spots]
        if len(codes) % SURFACE_CODES_PER_DIGIT:
            codes.append(Surface.UNKNOWN.value)
        digits: list[str] = []
        for index in range(0, len(codes), SURFACE_CODES_PER_DIGIT):
            value = (codes[index] << SURFACE_CODE_BITS) | codes[index + 1]
            digits.append(format(value, "x"))
        return "".join(digits)

    def apply_surfaces_string(self, surfaces: str) -> None:
        expected_length = -(-len(self.spots) // SURFACE_CODES_PER_DIGIT)
        if len(surfaces) != expected_length:
            raise ValueError(f"surfaces string must have {expected_length} digits, got {len(surfaces)}")
        codes: list[int] = []
        for digit in surfaces:
            try:
                value = int(digit, 16)
            except ValueError:
                raise ValueError(f"invalid surfaces digit: {digit!r}") from None
            codes.extend((value >> SURFACE_CODE_BITS, value & ((1 << SURFACE_CODE_BITS) - 1)))
        surface_values = {surface.value: surface for surface in Surface}
        for spot, code in zip(self.spots, codes):
            if code not in surface_values:
                raise ValueError(f"invalid surface code {code} at {spot.coord.to_dict()}")
            spot.set_surface(surface_values[code])
        self.refresh_structure()

    def restore_hexalots(self, placements: list[tuple[SpotCoord, int]]) -> list[Hexalot]:
        """Recreate saved hexalots with their saved nonces, bypassing the legality policy."""
        restored: list[Hexalot] = []
        for coord, nonce in placements:
            spot = self.spot_at(coord)
            if spot is None or not self.neighborhood_complete(spot):
                raise ValueError(f"saved hexalot center {coord.to_dict()} is outside island {self.name}")
            if spot.center_of_hexalot is not None:
                raise ValueError(f"duplicate saved hexalot center {coord.to_dict()}")
            hexalot = self._place_hexalot(spot)
            hexalot.restore_nonce(nonce)
            if any(other.id == hexalot.id for other in self.hexalots if other is not hexalot):
                raise ValueError(f"duplicate saved hexalot id {hexalot.id}")
            restored.append(hexalot)
        self.refresh_structure()
        return restored

    def hexalot_placements(self) -> list[tuple[SpotCoord, int]]:
        return [(hexalot.coord, hexalot.nonce) for hexalot in self.hexalots]

    def _place_hexalot(self, center_spot: Spot) -> Hexalot:
        spots = [self._spots_by_coord[coord] for coord in hexalot_coords(center_spot.coord)]
        hexalot = Hexalot(center_spot, spots)
        hexalot.refresh_fingerprint(existing.id for existing in self.hexalots)
        hexalot.attach()
        self.hexalots.append(hexalot)
        return hexalot
