"""
ByteEncode / ByteDecode (FIPS 203 Algorithms 5 and 6).

Coefficients are packed as d-bit fields, least significant bit first, with
no padding between coefficients or between the polynomials of a vector. A
polynomial of n coefficients takes n·d/8 bytes.
"""

from typing import Optional

import numpy as np

from .errors import LengthMismatch

__all__ = [
    "encode_poly",
    "decode_poly",
    "encode_vector",
    "decode_vector",
    "is_canonical",
]


def _pack(values: np.ndarray, d: int) -> bytes:
    values = np.asarray(values, dtype=np.int64)
    if values.size and (values.min() < 0 or values.max() >= 1 << d):
        raise ValueError(f"coefficients do not fit in {d} bits")
    bits = ((values[..., np.newaxis] >> np.arange(d)) & 1).astype(np.uint8)
    return np.packbits(bits.reshape(-1), bitorder="little").tobytes()


def _unpack(data: bytes, d: int, count: int, modulus: Optional[int]) -> np.ndarray:
    bits = np.unpackbits(np.frombuffer(data, dtype=np.uint8), bitorder="little")
    weights = np.int64(1) << np.arange(d, dtype=np.int64)
    values = bits.reshape(count, d).astype(np.int64) @ weights
    if modulus is not None:
        values %= modulus
    return values


def encode_poly(f: np.ndarray, d: int) -> bytes:
    """Encode one polynomial with d bits per coefficient."""
    return _pack(f, d)


def decode_poly(data: bytes, d: int, n: int = 256,
                modulus: Optional[int] = None) -> np.ndarray:
    """
    Decode one polynomial of n coefficients.

    Args:
        data: n·d/8 bytes
        d: Bits per coefficient
        n: Polynomial degree
        modulus: If given, decoded values are reduced mod this value
    """
    expected = n * d // 8
    if len(data) != expected:
        raise LengthMismatch(f"ByteDecode_{d} input", expected, len(data))
    return _unpack(data, d, n, modulus)


def encode_vector(v: np.ndarray, d: int) -> bytes:
    """Encode a (k, n) vector as the concatenation of its encoded polynomials."""
    return _pack(v, d)


def decode_vector(data: bytes, k: int, d: int, n: int = 256,
                  modulus: Optional[int] = None) -> np.ndarray:
    """Decode k concatenated polynomials into a (k, n) array."""
    expected = k * n * d // 8
    if len(data) != expected:
        raise LengthMismatch(f"ByteDecode_{d} vector input", expected, len(data))
    return _unpack(data, d, k * n, modulus).reshape(k, n)


def is_canonical(data: bytes, k: int, d: int, modulus: int, n: int = 256) -> bool:
    """
    True if decoding (with reduction) and re-encoding reproduces data.

    Fails exactly when some d-bit field holds a value >= modulus.
    """
    return encode_vector(decode_vector(data, k, d, n, modulus), d) == bytes(data)
