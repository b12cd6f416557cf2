"""
Vector Utilities
Vector math and the VectorRecord wire encoding used at the storage boundary.

VectorRecord is the bracketed, comma-separated decimal form accepted and
produced by pgvector, e.g. ``[0.1,-0.25,0.5]``. In memory, vectors are
1-D float32 numpy arrays.
"""

import hashlib
import logging
import math
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from .errors import DimensionMismatch, MalformedVectorEncoding

logger = logging.getLogger(__name__)

VectorLike = Union[np.ndarray, Sequence[float]]


def as_vector(values: Optional[VectorLike]) -> Optional[np.ndarray]:
    """Convert a sequence to a 1-D float32 array (None passes through)."""
    if values is None:
        return None
    return np.asarray(values, dtype=np.float32).reshape(-1)


# ========== Wire encoding ==========


def format_vector(vector: Optional[VectorLike]) -> str:
    """
    Encode a vector as a VectorRecord string.

    Components are rendered with the shortest decimal that round-trips at
    float32 precision, without whitespace.

    Args:
        vector: Vector to encode (None and empty encode to "[]")

    Returns:
        VectorRecord string
    """
    values = as_vector(vector)
    if values is None or values.size == 0:
        return "[]"

    parts = [np.format_float_positional(v, unique=True, trim="-") for v in values]
    return "[" + ",".join(parts) + "]"


def parse_vector(text: Optional[str], strict: bool = False) -> np.ndarray:
    """
    Decode a VectorRecord string.

    A component that is not a number becomes 0.0 so the component count is
    preserved.

    Args:
        text: VectorRecord string, e.g. "[0.1,0.2,0.3]"
        strict: Raise MalformedVectorEncoding instead of zero-filling

    Returns:
        Decoded float32 vector (empty for None, "" or "[]")
    """
    if not text:
        return np.zeros(0, dtype=np.float32)

    cleaned = text.strip()
    if cleaned.startswith("["):
        cleaned = cleaned[1:]
    if cleaned.endswith("]"):
        cleaned = cleaned[:-1]

    if not cleaned.strip():
        return np.zeros(0, dtype=np.float32)

    parts = cleaned.split(",")
    result = np.zeros(len(parts), dtype=np.float32)

    for i, part in enumerate(parts):
        try:
            result[i] = float(part.strip())
        except ValueError:
            if strict:
                raise MalformedVectorEncoding(
                    f"Malformed vector component at position {i}",
                    details={"position": i, "token": part},
                )
            logger.debug(f"Malformed vector component at position {i}: '{part}', using 0.0")
            result[i] = 0.0

    return result


# ========== Math ==========


def l2_norm(vector: Optional[VectorLike]) -> float:
    values = as_vector(vector)
    if values is None or values.size == 0:
        return 0.0
    return float(np.linalg.norm(values.astype(np.float64)))


def normalize(vector: Optional[VectorLike]) -> Optional[np.ndarray]:
    """
    L2 normalize a vector.

    Zero-norm and empty vectors are returned unchanged.
    """
    values = as_vector(vector)
    if values is None or values.size == 0:
        return values

    norm = l2_norm(values)
    if norm == 0.0:
        return values.copy()

    return (values.astype(np.float64) / norm).astype(np.float32)


def cosine_similarity(a: Optional[VectorLike], b: Optional[VectorLike]) -> float:
    """
    Cosine similarity between two vectors.

    Returns:
        dot(a, b) / (|a| |b|), or 0.0 if either vector is missing, the
        lengths differ, or either norm is zero
    """
    if a is None or b is None:
        return 0.0

    va = as_vector(a).astype(np.float64)
    vb = as_vector(b).astype(np.float64)

    if va.shape != vb.shape:
        return 0.0

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return float(np.dot(va, vb) / (norm_a * norm_b))


def cosine_distance(a: Optional[VectorLike], b: Optional[VectorLike]) -> float:
    """Distance used for nearest-neighbor ordering (1 - cosine similarity)."""
    return 1.0 - cosine_similarity(a, b)


def euclidean_distance(a: Optional[VectorLike], b: Optional[VectorLike]) -> float:
    """Euclidean distance, or infinity when vectors are missing or lengths differ."""
    if a is None or b is None:
        return math.inf

    va = as_vector(a).astype(np.float64)
    vb = as_vector(b).astype(np.float64)
    if va.shape != vb.shape:
        return math.inf

    return float(np.linalg.norm(va - vb))


def resize(vector: Optional[VectorLike], size: int) -> np.ndarray:
    """
    Truncate or zero-pad a vector to ``size`` components.

    The first ``min(len, size)`` components are copied into a zero buffer.
    """
    resized = np.zeros(size, dtype=np.float32)
    values = as_vector(vector)
    if values is None:
        return resized

    count = min(values.size, size)
    resized[:count] = values[:count]
    return resized


def ensure_dimension(vector: Optional[VectorLike], dimension: int, strict: bool = False) -> np.ndarray:
    """
    Return a vector of exactly ``dimension`` components.

    Args:
        vector: Input vector
        dimension: Expected dimension
        strict: Raise DimensionMismatch instead of correcting

    Returns:
        The vector itself if it already matches, otherwise a resized copy
    """
    values = as_vector(vector)
    if values is not None and values.size == dimension:
        return values

    actual = 0 if values is None else values.size
    if strict:
        raise DimensionMismatch(
            f"Expected {dimension} components, got {actual}",
            details={"expected": dimension, "actual": actual},
        )

    logger.debug(f"Correcting vector dimension {actual} -> {dimension}")
    return resize(values, dimension)


def is_zero_vector(vector: Optional[VectorLike]) -> bool:
    values = as_vector(vector)
    return values is None or values.size == 0 or not np.any(values)


def is_valid_vector(vector: Optional[VectorLike], dimension: int) -> bool:
    """Check length and that every component is finite."""
    values = as_vector(vector)
    if values is None or values.size != dimension:
        return False
    return bool(np.all(np.isfinite(values)))


def empty_vector(dimension: int) -> np.ndarray:
    return np.zeros(dimension, dtype=np.float32)


# ========== Deterministic vectors ==========


def text_seed(text: str) -> int:
    """Stable 64-bit seed derived from the SHA-256 of the UTF-8 text."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


def random_unit_vector(dimension: int, seed: int) -> np.ndarray:
    """Uniform [-1, 1] samples from a seeded generator, L2 normalized."""
    rng = np.random.default_rng(seed)
    values = rng.uniform(-1.0, 1.0, dimension)
    return normalize(values.astype(np.float32))


def seeded_unit_vector(text: str, dimension: int) -> np.ndarray:
    """
    Deterministic pseudo-embedding for a text.

    Same text always yields the bit-identical vector.
    """
    return random_unit_vector(dimension, text_seed(text))


# ========== Inspection ==========


def mean(vector: Optional[VectorLike]) -> float:
    values = as_vector(vector)
    if values is None or values.size == 0:
        return 0.0
    return float(values.astype(np.float64).mean())


def min_max(vector: Optional[VectorLike]) -> Tuple[float, float]:
    values = as_vector(vector)
    if values is None or values.size == 0:
        return 0.0, 0.0
    return float(values.min()), float(values.max())


def vectors_equal(a: Optional[VectorLike], b: Optional[VectorLike], epsilon: float = 1e-6) -> bool:
    """Component-wise equality within ``epsilon``."""
    if a is None and b is None:
        return True
    if a is None or b is None:
        return False

    va = as_vector(a)
    vb = as_vector(b)
    if va.shape != vb.shape:
        return False

    return bool(np.all(np.abs(va.astype(np.float64) - vb.astype(np.float64)) <= epsilon))


def debug_string(vector: Optional[VectorLike], max_elements: int = 5) -> str:
    """Short human-readable rendering: first components plus a remainder count."""
    values = as_vector(vector)
    if values is None:
        return "None"
    if values.size == 0:
        return "[]"

    shown = ", ".join(f"{v:.4f}" for v in values[:max_elements])
    if values.size > max_elements:
        shown += f", ... ({values.size - max_elements} more)"

    return f"[{shown}]"
