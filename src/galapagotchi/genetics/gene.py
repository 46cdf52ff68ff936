from __future__ import annotations

Gene = tuple[int, ...]

GENE_MIN = 0
GENE_MAX = 255
GENE_DEFAULT = 0


class GeneReader:
    """Consumes a gene in order; past the end it yields the default value."""

    def __init__(self, gene: Gene, default: int = GENE_DEFAULT) -> None:
        self._gene = gene
        self._default = default
        self.cursor = 0

    @property
    def exhausted(self) -> bool:
        return self.cursor >= len(self._gene)

    def next(self) -> int:
        if self.exhausted:
            return self._default
        value = self._gene[self.cursor]
        self.cursor += 1
        return value
