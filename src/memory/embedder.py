import math
from abc import ABC, abstractmethod


class Embedder(ABC):
    """Turns text into a fixed-size vector for vector database storage."""

    dimension: int

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        pass


def string_hash(text: str) -> int:
    """31-multiplier string hash folded to a signed 32-bit integer, then made non-negative."""
    h = 0
    for ch in text:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


class HashEmbedder(Embedder):
    """Deterministic placeholder vectors derived from a string hash.

    Similar texts do not get similar vectors. Only suitable for tests and for
    exercising a backend's wire protocol.
    """

    def __init__(self, dimension: int = 1536):
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        self.dimension = dimension

    async def embed(self, text: str) -> list[float]:
        seed = string_hash(text or "")
        return [math.sin(seed + i) * 0.1 for i in range(self.dimension)]
