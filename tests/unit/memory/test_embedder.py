import math

import pytest

from src.memory.embedder import HashEmbedder, string_hash


def test_string_hash_matches_31_multiplier_hash():
    assert string_hash("") == 0
    assert string_hash("a") == 97
    assert string_hash("ab") == 97 * 31 + 98


def test_string_hash_wraps_to_32_bits():
    value = string_hash("a long enough string to overflow thirty-two bits")
    assert 0 <= value <= 2**31


async def test_hash_embedder_is_deterministic():
    embedder = HashEmbedder(dimension=8)
    first = await embedder.embed("hello")
    assert first == await embedder.embed("hello")
    assert first != await embedder.embed("world")
    assert len(first) == 8


async def test_hash_embedder_values():
    vector = await HashEmbedder(dimension=3).embed("a")
    assert vector == pytest.approx([math.sin(97 + i) * 0.1 for i in range(3)])


def test_hash_embedder_rejects_bad_dimension():
    with pytest.raises(ValueError):
        HashEmbedder(dimension=0)
