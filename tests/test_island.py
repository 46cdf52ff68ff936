import random

import pytest

from galapagotchi.genetics.genome import fresh_genome
from galapagotchi.island.hexalot import HEXALOT_NEIGHBOR_OFFSETS, HEXALOT_SPOT_COUNT
from galapagotchi.island.island import Island, generate_spot_disk
from galapagotchi.island.legality import free_for_all_policy, legality_policy
from galapagotchi.island.spot import ORIGIN, Surface


def _land_island(radius: int, **kwargs) -> Island:
    island = Island("test-island", radius, **kwargs)
    for spot in island.spots:
        spot.set_surface(Surface.LAND)
    island.refresh_structure()
    return island


def test_spot_disk_size_matches_hex_number() -> None:
    for radius in (0, 1, 6, 18):
        assert len(generate_spot_disk(radius)) == 3 * radius * (radius + 1) + 1


def test_island_spots_are_sorted_by_coordinate() -> None:
    island = Island("sorted", 3)
    coords = [spot.coord for spot in island.spots]
    assert coords == sorted(coords)


def test_seed_island_allows_exactly_one_origin_hexalot() -> None:
    island = _land_island(6)

    assert island.available_hexalot_centers() == [island.spot_at(ORIGIN)]

    hexalot = island.create_hexalot(island.spot_at(ORIGIN))
    assert hexalot is not None
    assert island.hexalots == [hexalot]
    assert island.create_hexalot(island.spot_at(ORIGIN)) is None
    assert island.hexalots == [hexalot]


def test_every_hexalot_has_127_spots() -> None:
    island = _land_island(18)
    home = island.create_hexalot(island.spot_at(ORIGIN))
    for offset in HEXALOT_NEIGHBOR_OFFSETS:
        island.create_hexalot(island.spot_at(home.coord.plus(offset)))

    assert len(island.hexalots) == 7
    for hexalot in island.hexalots:
        assert len(hexalot.spots) == HEXALOT_SPOT_COUNT
        assert len({spot.coord for spot in hexalot.spots}) == HEXALOT_SPOT_COUNT
        assert hexalot.center_spot.center_of_hexalot is hexalot


def test_neighboring_hexalots_share_one_edge_row() -> None:
    island = _land_island(18)
    home = island.create_hexalot(island.spot_at(ORIGIN))
    neighbor = island.create_hexalot(island.spot_at(home.coord.plus(HEXALOT_NEIGHBOR_OFFSETS[0])))

    shared = {spot.coord for spot in home.spots} & {spot.coord for spot in neighbor.spots}
    assert len(shared) == 7


def test_available_centers_never_include_existing_centers() -> None:
    island = _land_island(18)
    home = island.create_hexalot(island.spot_at(ORIGIN))
    island.create_hexalot(island.spot_at(home.coord.plus(HEXALOT_NEIGHBOR_OFFSETS[1])))

    available = island.available_hexalot_centers()
    assert available
    assert all(spot.center_of_hexalot is None for spot in available)
    assert all(spot.available for spot in available)
    assert not island.spot_at(ORIGIN).available


def test_bordering_policy_rejects_water_centers() -> None:
    island = _land_island(6)
    island.set_surface(island.spot_at(ORIGIN), Surface.WATER)

    assert island.available_hexalot_centers() == []
    assert island.create_hexalot(island.spot_at(ORIGIN)) is None


def test_free_for_all_policy_allows_any_complete_neighborhood() -> None:
    island = _land_island(7, legality=free_for_all_policy)
    assert len(island.available_hexalot_centers()) == 7


def test_unknown_legality_policy_name_raises() -> None:
    assert legality_policy("free_for_all") is free_for_all_policy
    with pytest.raises(ValueError, match="unknown legality policy"):
        legality_policy("anything_goes")


def test_remove_free_hexalots_keeps_claimed_ones() -> None:
    island = _land_island(18)
    home = island.create_hexalot(island.spot_at(ORIGIN))
    neighbor = island.create_hexalot(island.spot_at(home.coord.plus(HEXALOT_NEIGHBOR_OFFSETS[2])))
    home.genome = fresh_genome(random.Random(1))

    removed = island.remove_free_hexalots()

    assert removed == [neighbor]
    assert island.hexalots == [home]
    assert neighbor.center_spot.center_of_hexalot is None
    assert all(neighbor not in spot.member_of_hexalot for spot in neighbor.spots)


def test_claimed_hexalot_id_survives_removal_of_an_earlier_twin() -> None:
    island = _land_island(18)
    home = island.create_hexalot(island.spot_at(ORIGIN))
    twin = island.create_hexalot(island.spot_at(home.coord.plus(HEXALOT_NEIGHBOR_OFFSETS[2])))
    twin.genome = fresh_genome(random.Random(3))
    claimed_id = twin.id

    assert claimed_id == home.id + ".1"
    assert island.remove_free_hexalots() == [home]
    assert twin.id == claimed_id
    assert twin.nonce == 1
    assert island.find_hexalot(claimed_id) is twin


def test_set_surface_refuses_claimed_spots() -> None:
    island = _land_island(8)
    home = island.create_hexalot(island.spot_at(ORIGIN))
    home.genome = fresh_genome(random.Random(2))
    inside = home.spots[5]
    outside = island.spots[0]

    assert not island.set_surface(inside, Surface.WATER)
    assert inside.surface is Surface.LAND
    assert island.set_surface(outside, Surface.WATER)
    assert outside.surface is Surface.WATER
    assert outside.center[1] < 0.0


def test_set_surface_refuses_spots_of_another_island() -> None:
    island = _land_island(8)
    stranger = _land_island(8).spots[0]

    assert not island.set_surface(stranger, Surface.WATER)
    assert stranger.surface is Surface.LAND
    assert island.spots[0].surface is Surface.LAND


def test_surfaces_string_save_load_save_is_identical() -> None:
    source = Island("terrain", 6)
    for index, spot in enumerate(source.spots):
        spot.set_surface(Surface(index % 3))
    source.refresh_structure()
    saved = source.surfaces_string()

    target = Island("terrain", 6)
    target.apply_surfaces_string(saved)

    assert len(saved) == 64
    assert target.surfaces_string() == saved
    assert [spot.surface for spot in target.spots] == [spot.surface for spot in source.spots]


def test_surfaces_string_rejects_bad_input() -> None:
    island = Island("terrain", 6)
    with pytest.raises(ValueError, match="64 digits"):
        island.apply_surfaces_string("5")
    with pytest.raises(ValueError, match="invalid surfaces digit"):
        island.apply_surfaces_string("z" * 64)
    with pytest.raises(ValueError, match="invalid surface code"):
        island.apply_surfaces_string("f" * 64)


def test_restore_hexalots_rebuilds_ids_from_saved_nonces() -> None:
    source = _land_island(18)
    home = source.create_hexalot(source.spot_at(ORIGIN))
    source.create_hexalot(source.spot_at(home.coord.plus(HEXALOT_NEIGHBOR_OFFSETS[3])))

    target = Island("test-island", 18)
    target.apply_surfaces_string(source.surfaces_string())
    target.restore_hexalots(source.hexalot_placements())

    assert [hexalot.id for hexalot in target.hexalots] == [hexalot.id for hexalot in source.hexalots]
    assert target.find_hexalot(home.id).coord == ORIGIN

    clash = Island("test-island", 18)
    clash.apply_surfaces_string(source.surfaces_string())
    with pytest.raises(ValueError, match="duplicate saved hexalot id"):
        clash.restore_hexalots([(coord, 0) for coord, _ in source.hexalot_placements()])
