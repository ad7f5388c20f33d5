"""
Centered binomial noise sampling (FIPS 203 Algorithm 8).

Each independently sampled polynomial consumes its own PRF nonce. The nonce
is threaded explicitly: every sampler takes the next free nonce and returns
the one after the values it used, and callers pass that on to the next draw.
"""

import logging
from typing import Tuple

import numpy as np

from .errors import LengthMismatch, SamplingFailure
from .hashing import prf
from .params import ParameterSet

__all__ = ["sample_poly_cbd", "sample_error_poly", "sample_error_vector"]

logger = logging.getLogger(__name__)

# The nonce is appended to the PRF seed as a single byte.
MAX_NONCE = 255


def sample_poly_cbd(data: bytes, eta: int, n: int, q: int) -> np.ndarray:
    """
    Sample a polynomial from CBD_eta.

    Bits are read little-endian within each byte. Coefficient i takes 2·eta
    consecutive bits; the popcount of the first eta minus the popcount of
    the second eta lies in [-eta, eta] and is returned reduced mod q.
    """
    expected = 2 * eta * n // 8
    if len(data) != expected:
        raise LengthMismatch("CBD input", expected, len(data))
    bits = np.unpackbits(np.frombuffer(data, dtype=np.uint8), bitorder="little")
    bits = bits.reshape(n, 2, eta).astype(np.int64)
    x = bits[:, 0, :].sum(axis=1)
    y = bits[:, 1, :].sum(axis=1)
    return (x - y) % q


def _check_nonce(nonce: int, count: int):
    if nonce < 0 or nonce + count - 1 > MAX_NONCE:
        raise SamplingFailure(
            f"PRF nonce range {nonce}..{nonce + count - 1} does not fit in one byte"
        )


def sample_error_poly(seed: bytes, eta: int, nonce: int,
                      params: ParameterSet) -> Tuple[np.ndarray, int]:
    """
    Sample one noise polynomial from PRF_eta(seed, nonce).

    Returns:
        (poly, next_nonce)
    """
    _check_nonce(nonce, 1)
    poly = sample_poly_cbd(prf(eta, seed, nonce, params.n), eta, params.n, params.q)
    return poly, nonce + 1


def sample_error_vector(seed: bytes, eta: int, nonce: int,
                        params: ParameterSet) -> Tuple[np.ndarray, int]:
    """
    Sample k noise polynomials with nonces nonce, nonce+1, ..., nonce+k-1.

    Returns:
        (vector of shape (k, n), next_nonce)
    """
    _check_nonce(nonce, params.k)
    vector = np.empty((params.k, params.n), dtype=np.int64)
    for i in range(params.k):
        vector[i] = sample_poly_cbd(
            prf(eta, seed, nonce + i, params.n), eta, params.n, params.q
        )
    logger.debug("sampled CBD_%d vector with nonces %d..%d", eta, nonce, nonce + params.k - 1)
    return vector, nonce + params.k
