import math
from typing import List, Protocol, Sequence


class Embedder(Protocol):
    """
    Text -> fixed-length vector. Supplied by the caller; nothing in this
    package computes embeddings itself.
    """

    def embed(self, text: str) -> List[float]: ...

    def embed_many(self, texts: List[str]) -> List[List[float]]: ...


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; vectors of different length are unrelated (0.0)."""
    if len(a) != len(b) or not a:
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    return dot / (norm_a * norm_b + 1e-10)
