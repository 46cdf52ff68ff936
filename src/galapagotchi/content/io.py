from __future__ import annotations

import json
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from galapagotchi.content.schema import validate_genome_payload, validate_island_payload, validate_journey_payload
from galapagotchi.genetics.genome import Genome, GenomeData
from galapagotchi.island.island import Island
from galapagotchi.island.legality import LegalityPolicy, bordering_policy
from galapagotchi.island.spot import SpotCoord
from galapagotchi.sim.hash import genome_hash, island_hash

SCHEMA_VERSION = 1
CANONICAL_JSON_INDENT = 2
CANONICAL_JSON_SEPARATORS = (",", ": ")


def build_island_payload(island: Island) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "name": island.name,
        "radius": island.radius,
        "surfaces": island.surfaces_string(),
        "hexalots": [{**coord.to_dict(), "nonce": nonce} for coord, nonce in island.hexalot_placements()],
    }
    payload["island_hash"] = island_hash(payload)
    return payload


def island_from_payload(payload: dict[str, Any], *, legality: LegalityPolicy = bordering_policy) -> Island:
    validate_island_payload(payload)
    expected_hash = payload["island_hash"]
    actual_hash = island_hash(payload)
    if expected_hash != actual_hash:
        raise ValueError(
            f"island_hash mismatch while loading island (stored={expected_hash}, recomputed={actual_hash})"
        )
    island = Island(payload["name"], payload["radius"], legality=legality)
    island.apply_surfaces_string(payload["surfaces"])
    island.restore_hexalots([(SpotCoord.from_dict(entry), entry["nonce"]) for entry in payload["hexalots"]])
    return island


def build_genome_payload(hexalot_id: str, genome_data: GenomeData) -> dict[str, Any]:
    normalized = Genome.from_data(genome_data).to_data()
    return {
        "schema_version": SCHEMA_VERSION,
        "hexalot_id": hexalot_id,
        "genome": normalized,
        "genome_hash": genome_hash(normalized),
    }


def genome_from_payload(payload: dict[str, Any]) -> GenomeData:
    validate_genome_payload(payload)
    expected_hash = payload["genome_hash"]
    actual_hash = genome_hash(payload["genome"])
    if expected_hash != actual_hash:
        raise ValueError(
            f"genome_hash mismatch while loading genome (stored={expected_hash}, recomputed={actual_hash})"
        )
    return Genome.from_data(payload["genome"]).to_data()


def build_journey_payload(hexalot_ids: list[str]) -> dict[str, Any]:
    payload = {"schema_version": SCHEMA_VERSION, "home": hexalot_ids[0], "visits": list(hexalot_ids)}
    validate_journey_payload(payload)
    return payload


def _canonical_json(payload: dict[str, Any]) -> str:
    return json.dumps(
        payload,
        indent=CANONICAL_JSON_INDENT,
        separators=CANONICAL_JSON_SEPARATORS,
        sort_keys=True,
    )


def write_atomic_json(path: str | Path, payload: dict[str, Any]) -> None:
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    serialized = _canonical_json(payload)

    temp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=destination.parent,
            delete=False,
            suffix=".tmp",
        ) as temp_file:
            temp_file.write(serialized)
            temp_file.flush()
            os.fsync(temp_file.fileno())
            temp_path = Path(temp_file.name)
        os.replace(temp_path, destination)
    except Exception:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        raise


def read_json(path: str | Path) -> dict[str, Any]:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"{path}: payload must be an object")
    return payload


def save_island_json(path: str | Path, island: Island) -> None:
    payload = build_island_payload(island)
    validate_island_payload(payload)
    write_atomic_json(path, payload)


def load_island_json(path: str | Path, *, legality: LegalityPolicy = bordering_policy) -> Island:
    return island_from_payload(read_json(path), legality=legality)
