from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from galapagotchi.island.hexalot import HEXALOT_NEIGHBOR_OFFSETS
from galapagotchi.island.spot import ORIGIN, Spot, Surface

if TYPE_CHECKING:
    from galapagotchi.island.island import Island

LegalityPolicy = Callable[["Island", Spot], bool]


def bordering_policy(island: Island, spot: Spot) -> bool:
    """Seed at the origin, then only lots sharing an edge row with an existing lot."""
    if spot.surface is Surface.WATER:
        return False
    if not island.hexalots:
        return spot.coord == ORIGIN
    for hexalot in island.hexalots:
        for offset in HEXALOT_NEIGHBOR_OFFSETS:
            if hexalot.coord.plus(offset) == spot.coord:
                return True
    return False


def free_for_all_policy(island: Island, spot: Spot) -> bool:
    return spot.surface is not Surface.WATER


LEGALITY_POLICIES: dict[str, LegalityPolicy] = {
    "bordering": bordering_policy,
    "free_for_all": free_for_all_policy,
}


def legality_policy(name: str) -> LegalityPolicy:
    try:
        return LEGALITY_POLICIES[name]
    except KeyError:
        raise ValueError(f"unknown legality policy: {name}") from None
