import json
import random
from pathlib import Path

import pytest

from galapagotchi.content.io import build_island_payload, island_from_payload, load_island_json, save_island_json
from galapagotchi.content.storage import JsonStorage
from galapagotchi.genetics.genome import Genome, fresh_genome
from galapagotchi.island.hexalot import HEXALOT_NEIGHBOR_OFFSETS
from galapagotchi.island.island import Island
from galapagotchi.island.journey import Journey
from galapagotchi.island.spot import ORIGIN, Surface


def _build_island(name: str = "atoll") -> Island:
    island = Island(name, 18)
    for spot in island.spots:
        spot.set_surface(Surface.LAND)
    island.set_surface(island.spots[0], Surface.WATER)
    home = island.create_hexalot(island.spot_at(ORIGIN))
    island.create_hexalot(island.spot_at(home.coord.plus(HEXALOT_NEIGHBOR_OFFSETS[4])))
    return island


def test_island_save_load_save_is_byte_identical(tmp_path: Path) -> None:
    first_path = tmp_path / "first.json"
    second_path = tmp_path / "second.json"
    island = _build_island()

    save_island_json(first_path, island)
    loaded = load_island_json(first_path)
    save_island_json(second_path, loaded)

    assert first_path.read_text(encoding="utf-8") == second_path.read_text(encoding="utf-8")
    assert [hexalot.id for hexalot in loaded.hexalots] == [hexalot.id for hexalot in island.hexalots]
    assert loaded.surfaces_string() == island.surfaces_string()


def test_island_payload_is_canonical_json(tmp_path: Path) -> None:
    path = tmp_path / "island.json"
    save_island_json(path, _build_island())

    text = path.read_text(encoding="utf-8")
    payload = json.loads(text)

    assert text == json.dumps(payload, indent=2, sort_keys=True, separators=(",", ": "))
    assert payload["hexalots"] == [{"q": 0, "r": 0, "nonce": 0}, {"q": -6, "r": -6, "nonce": 1}]
    assert payload["schema_version"] == 1


def test_tampered_island_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "island.json"
    save_island_json(path, _build_island())
    payload = json.loads(path.read_text(encoding="utf-8"))
    first_digit = "5" if payload["surfaces"][0] != "5" else "9"
    payload["surfaces"] = first_digit + payload["surfaces"][1:]
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ValueError, match="island_hash mismatch"):
        load_island_json(path)


def test_island_payload_shape_is_validated() -> None:
    payload = build_island_payload(_build_island())
    del payload["surfaces"]

    with pytest.raises(ValueError, match="missing fields"):
        island_from_payload(payload)

    payload = build_island_payload(_build_island())
    payload["schema_version"] = 99
    with pytest.raises(ValueError, match="unsupported schema_version"):
        island_from_payload(payload)

    payload = build_island_payload(_build_island())
    payload["hexalots"][1]["nonce"] = -1
    with pytest.raises(ValueError, match="nonce must be >= 0"):
        island_from_payload(payload)


def test_storage_round_trips_genomes_and_claims(tmp_path: Path) -> None:
    storage = JsonStorage(tmp_path)
    island = _build_island()
    home, neighbor = island.hexalots
    genome = fresh_genome(random.Random(21))

    assert storage.get_genome(home) is None
    storage.set_genome(home, genome.to_data())
    storage.save_island(island)

    assert home.genome == genome
    assert storage.genome_path(home) == tmp_path / "genomes" / f"{home.id}.json"
    loaded = storage.load_island("atoll")
    loaded_home, loaded_neighbor = loaded.hexalots
    assert loaded_home.claimed
    assert not loaded_neighbor.claimed
    assert Genome.from_data(storage.get_genome(loaded_home)) == genome
    assert loaded.remove_free_hexalots() == [loaded_neighbor]


def test_claimed_hexalot_keeps_its_id_and_genome_after_free_lots_are_removed(tmp_path: Path) -> None:
    storage = JsonStorage(tmp_path)
    island = _build_island()
    home, neighbor = island.hexalots
    genome = fresh_genome(random.Random(8))
    storage.set_genome(neighbor, genome.to_data())
    claimed_id = neighbor.id
    assert claimed_id.endswith(".1")

    assert island.remove_free_hexalots() == [home]
    assert neighbor.id == claimed_id
    storage.save_island(island)

    loaded = storage.load_island("atoll")
    (loaded_neighbor,) = loaded.hexalots
    assert loaded_neighbor.id == claimed_id
    assert loaded_neighbor.claimed
    assert Genome.from_data(storage.get_genome(loaded_neighbor)) == genome


def test_tampered_genome_is_rejected(tmp_path: Path) -> None:
    storage = JsonStorage(tmp_path)
    island = _build_island()
    home = island.hexalots[0]
    storage.set_genome(home, fresh_genome(random.Random(4)).to_data())
    path = storage.genome_path(home)
    payload = json.loads(path.read_text(encoding="utf-8"))
    payload["genome"]["embryology"][0] = (payload["genome"]["embryology"][0] + 1) % 256
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ValueError, match="genome_hash mismatch"):
        storage.get_genome(home)


def test_invalid_genome_is_not_written(tmp_path: Path) -> None:
    storage = JsonStorage(tmp_path)
    home = _build_island().hexalots[0]

    with pytest.raises(ValueError):
        storage.set_genome(home, {"embryology": [300], "behavior": {}})

    assert not storage.genome_path(home).exists()
    assert home.genome is None


def test_journey_save_load_and_delete(tmp_path: Path) -> None:
    storage = JsonStorage(tmp_path)
    island = _build_island()
    home, neighbor = island.hexalots
    home.adopt_journey(Journey([home, neighbor, home]))
    storage.save_journey(home)
    storage.save_island(island)

    loaded = storage.load_island("atoll")
    loaded_home = loaded.hexalots[0]
    assert loaded_home.journey is not None
    assert loaded_home.journey.to_ids() == [home.id, neighbor.id, home.id]
    assert loaded.hexalots[1].journey is None

    home.adopt_journey(None)
    storage.save_journey(home)
    assert not storage.journey_path(home).exists()
    assert storage.load_journey(loaded_home, loaded) is None
    assert loaded_home.journey is None


def test_loading_a_missing_island_raises(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="island does not exist"):
        JsonStorage(tmp_path).load_island("nowhere")
