from __future__ import annotations

from typing import Any

SUPPORTED_SCHEMA_VERSIONS = {1}
REQUIRED_ISLAND_FIELDS = {"schema_version", "name", "radius", "surfaces", "hexalots", "island_hash"}
REQUIRED_GENOME_FIELDS = {"schema_version", "hexalot_id", "genome", "genome_hash"}
REQUIRED_JOURNEY_FIELDS = {"schema_version", "home", "visits"}


def _validate_schema_version(payload: dict[str, Any], *, field_prefix: str) -> None:
    schema_version = payload.get("schema_version")
    if schema_version not in SUPPORTED_SCHEMA_VERSIONS:
        raise ValueError(f"{field_prefix}: unsupported schema_version: {schema_version}")


def _validate_required(payload: Any, required: set[str], *, field_prefix: str) -> None:
    if not isinstance(payload, dict):
        raise ValueError(f"{field_prefix} payload must be an object")
    missing = required - set(payload.keys())
    if missing:
        raise ValueError(f"{field_prefix} missing fields: {sorted(missing)}")


def _validate_non_empty_string(value: Any, *, field_name: str) -> None:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{field_name} must be a non-empty string")


def validate_island_payload(payload: Any) -> None:
    _validate_required(payload, REQUIRED_ISLAND_FIELDS, field_prefix="island")
    _validate_schema_version(payload, field_prefix="island")
    _validate_non_empty_string(payload["name"], field_name="island.name")
    radius = payload["radius"]
    if isinstance(radius, bool) or not isinstance(radius, int) or radius < 0:
        raise ValueError("island.radius must be an integer >= 0")
    if not isinstance(payload["surfaces"], str):
        raise ValueError("island.surfaces must be a string")
    hexalots = payload["hexalots"]
    if not isinstance(hexalots, list):
        raise ValueError("island.hexalots must be a list")
    for index, entry in enumerate(hexalots):
        if not isinstance(entry, dict) or not {"q", "r", "nonce"} <= entry.keys():
            raise ValueError(f"island.hexalots[{index}] invalid placement")
        for key in ("q", "r", "nonce"):
            if isinstance(entry[key], bool) or not isinstance(entry[key], int):
                raise ValueError(f"island.hexalots[{index}].{key} must be an integer")
        if entry["nonce"] < 0:
            raise ValueError(f"island.hexalots[{index}].nonce must be >= 0")
    _validate_non_empty_string(payload["island_hash"], field_name="island.island_hash")


def validate_genome_payload(payload: Any) -> None:
    _validate_required(payload, REQUIRED_GENOME_FIELDS, field_prefix="genome")
    _validate_schema_version(payload, field_prefix="genome")
    _validate_non_empty_string(payload["hexalot_id"], field_name="genome.hexalot_id")
    if not isinstance(payload["genome"], dict):
        raise ValueError("genome.genome must be an object")
    _validate_non_empty_string(payload["genome_hash"], field_name="genome.genome_hash")


def validate_journey_payload(payload: Any) -> None:
    _validate_required(payload, REQUIRED_JOURNEY_FIELDS, field_prefix="journey")
    _validate_schema_version(payload, field_prefix="journey")
    _validate_non_empty_string(payload["home"], field_name="journey.home")
    visits = payload["visits"]
    if not isinstance(visits, list) or not visits:
        raise ValueError("journey.visits must be a non-empty list")
    for index, visit in enumerate(visits):
        _validate_non_empty_string(visit, field_name=f"journey.visits[{index}]")
    if visits[0] != payload["home"]:
        raise ValueError("journey.visits must start at journey.home")
