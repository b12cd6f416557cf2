"""
Tests for vector math and the VectorRecord encoding.
"""

import math

import numpy as np
import pytest

from bookstore.ml.errors import DimensionMismatch, MalformedVectorEncoding
from bookstore.ml.vector_utils import (
    cosine_similarity,
    debug_string,
    empty_vector,
    ensure_dimension,
    euclidean_distance,
    format_vector,
    is_valid_vector,
    is_zero_vector,
    l2_norm,
    mean,
    min_max,
    normalize,
    parse_vector,
    resize,
    seeded_unit_vector,
    vectors_equal,
)


class TestEncoding:
    def test_format_has_no_whitespace(self):
        assert format_vector([0.1, -0.25, 0.5]) == "[0.1,-0.25,0.5]"

    def test_empty_vector_round_trip(self):
        assert format_vector([]) == "[]"
        assert format_vector(None) == "[]"
        assert parse_vector("[]").size == 0

    def test_parse_format_reproduces_values(self):
        vector = seeded_unit_vector("round trip", 64)
        parsed = parse_vector(format_vector(vector))
        assert parsed.shape == vector.shape
        assert np.allclose(parsed, vector, atol=1e-7)

    def test_malformed_token_becomes_zero(self):
        parsed = parse_vector("[0.1,x,0.3]")
        assert parsed.size == 3
        assert parsed[1] == 0.0
        assert parsed[0] == pytest.approx(0.1)
        assert parsed[2] == pytest.approx(0.3)

    def test_strict_parse_rejects_malformed_token(self):
        with pytest.raises(MalformedVectorEncoding):
            parse_vector("[0.1,x,0.3]", strict=True)

    def test_parse_tolerates_spaces(self):
        assert np.allclose(parse_vector("[1, 2 ,3]"), [1, 2, 3])


class TestMath:
    def test_cosine_of_vector_with_itself(self):
        vector = np.array([0.3, -1.2, 4.0], dtype=np.float32)
        assert cosine_similarity(vector, vector) == pytest.approx(1.0, abs=1e-6)

    def test_cosine_with_zero_vector(self):
        assert cosine_similarity([1.0, 2.0], [0.0, 0.0]) == 0.0

    def test_cosine_with_mismatched_lengths(self):
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0

    def test_cosine_with_missing_vector(self):
        assert cosine_similarity(None, [1.0]) == 0.0

    def test_euclidean_distance(self):
        assert euclidean_distance([0, 0], [3, 4]) == pytest.approx(5.0)
        assert math.isinf(euclidean_distance([0, 0], [1, 2, 3]))

    def test_normalize(self):
        assert l2_norm(normalize([3.0, 4.0])) == pytest.approx(1.0, abs=1e-6)
        assert is_zero_vector(normalize([0.0, 0.0]))


class TestResize:
    def test_truncates(self):
        assert resize([1, 2, 3, 4, 5], 3).tolist() == [1, 2, 3]

    def test_zero_pads(self):
        assert resize([1, 2], 4).tolist() == [1, 2, 0, 0]

    def test_ensure_dimension_corrects_silently(self):
        assert ensure_dimension([1, 2], 4).tolist() == [1, 2, 0, 0]

    def test_ensure_dimension_strict(self):
        with pytest.raises(DimensionMismatch):
            ensure_dimension([1, 2], 4, strict=True)


class TestSeededVectors:
    def test_unit_length_and_dimension(self):
        vector = seeded_unit_vector("a quiet fantasy about dragons", 1536)
        assert vector.shape == (1536,)
        assert abs(l2_norm(vector) - 1.0) < 1e-4

    def test_bit_identical_for_same_text(self):
        first = seeded_unit_vector("same text", 1536)
        second = seeded_unit_vector("same text", 1536)
        assert first.tobytes() == second.tobytes()

    def test_different_text_differs(self):
        assert not vectors_equal(seeded_unit_vector("one", 32), seeded_unit_vector("two", 32))


class TestInspection:
    def test_validity(self):
        assert is_valid_vector([0.1, 0.2], 2)
        assert not is_valid_vector([0.1, float("nan")], 2)
        assert not is_valid_vector([0.1], 2)

    def test_stats(self):
        assert mean([1.0, 2.0, 3.0]) == pytest.approx(2.0)
        assert min_max([3.0, -1.0, 2.0]) == (-1.0, 3.0)
        assert empty_vector(3).tolist() == [0.0, 0.0, 0.0]

    def test_debug_string(self):
        assert debug_string([1, 2, 3, 4], max_elements=2) == "[1.0000, 2.0000, ... (2 more)]"
        assert debug_string([]) == "[]"
