"""Trigram fingerprints and cosine similarity."""

import math
from collections import Counter
from dataclasses import dataclass, field

SHINGLE_SIZE = 3


@dataclass(frozen=True)
class ShingleProfile:
    """Sparse trigram count vector of a comparison text with its cached L2 norm."""

    counts: dict[str, int]
    norm: float = field(init=False)

    def __post_init__(self) -> None:
        norm = math.sqrt(sum(count * count for count in self.counts.values()))
        object.__setattr__(self, "norm", norm)

    @classmethod
    def from_text(cls, text: str, size: int = SHINGLE_SIZE) -> "ShingleProfile":
        """
        Build the profile of a text.

        Text shorter than the shingle size is padded with trailing spaces, so
        every profile holds at least one shingle.

        Args:
            text: Normalized comparison text
            size: Shingle length

        Returns:
            Profile with one count per distinct shingle
        """
        if len(text) < size:
            text = text.ljust(size)
        counts = Counter(text[i : i + size] for i in range(len(text) - size + 1))
        return cls(counts=dict(counts))

    def __len__(self) -> int:
        return len(self.counts)

    def dot(self, other: "ShingleProfile") -> float:
        """Dot product of two profiles, iterating the smaller one."""
        small, large = (self, other) if len(self) < len(other) else (other, self)
        total = 0
        for shingle, count in small.counts.items():
            other_count = large.counts.get(shingle)
            if other_count:
                total += count * other_count
        return float(total)

    def cosine(self, other: "ShingleProfile") -> float:
        """
        Cosine similarity between two profiles.

        Returns:
            Similarity between 0.0 (no shared shingles) and 1.0 (same profile)
        """
        denominator = self.norm * other.norm
        if denominator == 0.0:
            return 0.0
        return min(self.dot(other) / denominator, 1.0)
