"""
Compress_d / Decompress_d (FIPS 203, Section 4.2.1).

    Compress_d(x)   = round(x · 2^d / q) mod 2^d
    Decompress_d(y) = round(y · q / 2^d)

Rounding is to nearest with ties rounded up, done in exact integer
arithmetic. Decompress(Compress(x)) differs from x by at most round(q / 2^(d+1))
in the centered representative mod q.
"""

import numpy as np

__all__ = ["compress", "decompress"]


def compress(x: np.ndarray, d: int, q: int) -> np.ndarray:
    # floor(x·2^d/q + 1/2) == floor((x·2^(d+1) + q) / 2q)
    x = np.asarray(x, dtype=np.int64)
    return (((x << (d + 1)) + q) // (2 * q)) & ((1 << d) - 1)


def decompress(y: np.ndarray, d: int, q: int) -> np.ndarray:
    y = np.asarray(y, dtype=np.int64)
    return ((((y * q) << 1) + (1 << d)) >> (d + 1)) % q
