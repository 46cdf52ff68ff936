from __future__ import annotations

import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from galapagotchi.body.engine import Direction
from galapagotchi.genetics.behavior import Behavior
from galapagotchi.genetics.embryology import Embryology
from galapagotchi.genetics.gene import GENE_MAX, GENE_MIN, Gene, GeneReader

if TYPE_CHECKING:
    from galapagotchi.body.fabric import Fabric

GenomeData = dict[str, Any]
EMBRYOLOGY_GENE_LENGTH = 64
BEHAVIOR_GENE_LENGTH = 128
MUTATION_DELTA = 24


def _validate_gene(value: Any, *, field_name: str) -> Gene:
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"{field_name} must be a list of integers")
    gene: list[int] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int):
            raise ValueError(f"{field_name} must contain only integers")
        if item < GENE_MIN or item > GENE_MAX:
            raise ValueError(f"{field_name} values must be within [{GENE_MIN}, {GENE_MAX}]")
        gene.append(item)
    return tuple(gene)


def _random_gene(rng: random.Random, length: int) -> Gene:
    return tuple(rng.randrange(GENE_MIN, GENE_MAX + 1) for _ in range(length))


@dataclass(frozen=True)
class Genome:
    embryology_gene: Gene
    behavior_genes: tuple[Gene, ...]

    def __post_init__(self) -> None:
        if len(self.behavior_genes) != len(Direction):
            raise ValueError(f"genome needs one behavior gene per direction ({len(Direction)})")

    def behavior_gene(self, direction: Direction) -> Gene:
        return self.behavior_genes[direction.value]

    @property
    def behavior_gene_count(self) -> int:
        return sum(len(gene) for gene in self.behavior_genes)

    def with_mutated_behavior(self, mutations: int, rng: random.Random) -> Genome:
        """Copy of this genome with ``mutations`` behavior positions perturbed."""
        if mutations < 0:
            raise ValueError("mutations must be >= 0")
        positions = [
            (gene_index, position)
            for gene_index, gene in enumerate(self.behavior_genes)
            for position in range(len(gene))
        ]
        chosen = rng.sample(positions, min(mutations, len(positions)))
        genes = [list(gene) for gene in self.behavior_genes]
        for gene_index, position in chosen:
            delta = rng.randint(1, MUTATION_DELTA) * rng.choice((-1, 1))
            value = genes[gene_index][position] + delta
            genes[gene_index][position] = max(GENE_MIN, min(GENE_MAX, value))
        return Genome(
            embryology_gene=self.embryology_gene,
            behavior_genes=tuple(tuple(gene) for gene in genes),
        )

    def embryology(self, fabric: Fabric) -> Embryology:
        return Embryology(fabric, GeneReader(self.embryology_gene))

    def behavior(self, fabric: Fabric) -> Behavior:
        return Behavior(fabric, self)

    def to_data(self) -> GenomeData:
        return {
            "embryology": list(self.embryology_gene),
            "behavior": {direction.name: list(self.behavior_gene(direction)) for direction in Direction},
        }

    @classmethod
    def from_data(cls, data: GenomeData) -> Genome:
        if not isinstance(data, dict):
            raise ValueError("genome data must be an object")
        behavior = data.get("behavior")
        if not isinstance(behavior, dict):
            raise ValueError("genome.behavior must be an object")
        unknown = set(behavior) - {direction.name for direction in Direction}
        if unknown:
            raise ValueError(f"genome.behavior has unknown directions: {sorted(unknown)}")
        return cls(
            embryology_gene=_validate_gene(data.get("embryology", []), field_name="genome.embryology"),
            behavior_genes=tuple(
                _validate_gene(behavior.get(direction.name, []), field_name=f"genome.behavior.{direction.name}")
                for direction in Direction
            ),
        )


def fresh_genome(rng: random.Random) -> Genome:
    return Genome(
        embryology_gene=_random_gene(rng, EMBRYOLOGY_GENE_LENGTH),
        behavior_genes=tuple(_random_gene(rng, BEHAVIOR_GENE_LENGTH) for _ in Direction),
    )
