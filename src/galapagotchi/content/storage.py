from __future__ import annotations

from pathlib import Path

from galapagotchi.content.io import (
    build_genome_payload,
    build_journey_payload,
    genome_from_payload,
    load_island_json,
    read_json,
    save_island_json,
    write_atomic_json,
)
from galapagotchi.content.schema import validate_journey_payload
from galapagotchi.genetics.genome import Genome, GenomeData
from galapagotchi.island.hexalot import Hexalot
from galapagotchi.island.island import Island
from galapagotchi.island.journey import Journey
from galapagotchi.island.legality import LegalityPolicy, bordering_policy

ISLANDS_DIR = "islands"
GENOMES_DIR = "genomes"
JOURNEYS_DIR = "journeys"


class JsonStorage:
    """Islands, genomes and journeys as canonical JSON files under one root directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def island_path(self, name: str) -> Path:
        return self.root / ISLANDS_DIR / f"{name}.json"

    def genome_path(self, hexalot: Hexalot) -> Path:
        return self.root / GENOMES_DIR / f"{hexalot.id}.json"

    def journey_path(self, hexalot: Hexalot) -> Path:
        return self.root / JOURNEYS_DIR / f"{hexalot.id}.json"

    def get_genome(self, hexalot: Hexalot) -> GenomeData | None:
        path = self.genome_path(hexalot)
        if not path.exists():
            return None
        payload = read_json(path)
        if payload.get("hexalot_id") != hexalot.id:
            raise ValueError(f"{path}: genome belongs to {payload.get('hexalot_id')}, not {hexalot.id}")
        return genome_from_payload(payload)

    def set_genome(self, hexalot: Hexalot, genome_data: GenomeData) -> None:
        payload = build_genome_payload(hexalot.id, genome_data)
        write_atomic_json(self.genome_path(hexalot), payload)
        hexalot.genome = Genome.from_data(payload["genome"])

    def load_journey(self, hexalot: Hexalot, island: Island) -> Journey | None:
        path = self.journey_path(hexalot)
        if not path.exists():
            hexalot.adopt_journey(None)
            return None
        payload = read_json(path)
        validate_journey_payload(payload)
        if payload["home"] != hexalot.id:
            raise ValueError(f"{path}: journey starts at {payload['home']}, not {hexalot.id}")
        journey = Journey.from_ids(payload["visits"], island)
        hexalot.adopt_journey(journey)
        return journey

    def save_journey(self, hexalot: Hexalot) -> None:
        path = self.journey_path(hexalot)
        if hexalot.journey is None:
            path.unlink(missing_ok=True)
            return
        write_atomic_json(path, build_journey_payload(hexalot.journey.to_ids()))

    def save_island(self, island: Island) -> None:
        save_island_json(self.island_path(island.name), island)

    def load_island(self, name: str, *, legality: LegalityPolicy = bordering_policy) -> Island:
        """Load the island, then attach each hexalot's stored genome and journey."""
        path = self.island_path(name)
        if not path.exists():
            raise ValueError(f"island does not exist: {path}")
        island = load_island_json(path, legality=legality)
        for hexalot in island.hexalots:
            genome_data = self.get_genome(hexalot)
            if genome_data is not None:
                hexalot.genome = Genome.from_data(genome_data)
        for hexalot in island.hexalots:
            self.load_journey(hexalot, island)
        return island
