import math

import pytest

from galapagotchi.island.hexalot import HEXALOT_NEIGHBOR_OFFSETS
from galapagotchi.island.island import Island
from galapagotchi.island.journey import Journey
from galapagotchi.island.spot import ORIGIN, Surface


def _island_with_neighbors(count: int) -> Island:
    island = Island("journeys", 18)
    for spot in island.spots:
        spot.set_surface(Surface.LAND)
    island.refresh_structure()
    home = island.create_hexalot(island.spot_at(ORIGIN))
    for offset in HEXALOT_NEIGHBOR_OFFSETS[:count]:
        island.create_hexalot(island.spot_at(home.coord.plus(offset)))
    return island


def test_journey_legs_walk_consecutive_visits() -> None:
    island = _island_with_neighbors(2)
    home, first, second = island.hexalots
    journey = Journey([home, first, home, second])

    legs = journey.legs()

    assert journey.home is home
    assert [(leg.hexalot, leg.go_to) for leg in legs] == [(home, first), (first, home), (home, second)]
    assert legs[0].next_leg == legs[1]
    assert legs[-1].next_leg is None


def test_journey_with_only_home_has_no_legs() -> None:
    island = _island_with_neighbors(0)
    journey = Journey(island.hexalots)

    assert journey.first_leg is None
    assert journey.legs() == []


def test_journey_refuses_consecutive_duplicate_visits() -> None:
    island = _island_with_neighbors(1)
    home, neighbor = island.hexalots
    journey = Journey([home, neighbor])

    with pytest.raises(ValueError, match="twice in a row"):
        journey.visit(neighbor)
    with pytest.raises(ValueError):
        Journey([])


def test_leg_target_offset_points_at_neighbor_center() -> None:
    island = _island_with_neighbors(1)
    home, neighbor = island.hexalots
    leg = Journey([home, neighbor]).first_leg

    x, z = leg.target_offset()

    assert x == pytest.approx(math.sqrt(3.0) * 9.0)
    assert z == pytest.approx(-9.0)


def test_journey_ids_round_trip_through_island() -> None:
    island = _island_with_neighbors(3)
    journey = Journey(island.hexalots)

    restored = Journey.from_ids(journey.to_ids(), island)

    assert restored.visits == journey.visits
    with pytest.raises(ValueError, match="unknown hexalot"):
        Journey.from_ids(["not-a-hexalot"], island)


def test_hexalot_only_adopts_journeys_that_start_there() -> None:
    island = _island_with_neighbors(1)
    home, neighbor = island.hexalots
    journey = Journey([home, neighbor])

    home.adopt_journey(journey)
    assert home.journey is journey
    with pytest.raises(ValueError, match="cannot belong"):
        neighbor.adopt_journey(journey)
    home.adopt_journey(None)
    assert home.journey is None
