"""
Seed expansion and hash functions (FIPS 203, Section 4.1).

    G    SHA3-512, output split into two 32-byte seeds
    H    SHA3-256
    J    SHAKE-256 with 32 bytes of output (implicit rejection)
    PRF  SHAKE-256 keyed by seed || nonce (noise sampling)
    XOF  SHAKE-128 keyed by rho || column || row (matrix expansion)
"""

import hashlib
from typing import Tuple

import numpy as np

from .errors import LengthMismatch
from .params import SEED_BYTES, ParameterSet

__all__ = [
    "hash_g",
    "split_seed",
    "hash_h",
    "hash_j",
    "derive_secret",
    "prf",
    "sample_ntt",
    "expand_matrix",
]

# Initial XOF output per polynomial: 5 SHAKE-128 blocks of 168 bytes, enough
# for 256 coefficients in all but a vanishing fraction of seeds.
_XOF_INITIAL_BYTES = 840


def hash_g(data: bytes) -> Tuple[bytes, bytes]:
    """G: SHA3-512 split into two 32-byte halves."""
    digest = hashlib.sha3_512(data).digest()
    return digest[:SEED_BYTES], digest[SEED_BYTES:]


def split_seed(seed: bytes, k: int) -> Tuple[bytes, bytes]:
    """
    Derive (rho, sigma) for K-PKE key generation.

    The module rank is appended as one byte for domain separation, so the
    same seed yields unrelated keys under different parameter sets.
    """
    return hash_g(seed + bytes([k]))


def hash_h(data: bytes) -> bytes:
    """H: SHA3-256."""
    return hashlib.sha3_256(data).digest()


def hash_j(z: bytes, c: bytes) -> bytes:
    """J: SHAKE-256(z || c), 32 bytes. Pseudorandom secret for rejected ciphertexts."""
    return hashlib.shake_256(z + c).digest(SEED_BYTES)


def derive_secret(message: bytes) -> bytes:
    """Shared secret of the simplified KEM: H over the encoded message polynomial."""
    return hash_h(message)


def prf(eta: int, seed: bytes, nonce: int, n: int = 256) -> bytes:
    """
    PRF_eta(seed, nonce): SHAKE-256(seed || nonce).

    Returns the 2·eta·n/8 bytes that one CBD polynomial consumes (64·eta
    for n = 256).
    """
    return hashlib.shake_256(seed + bytes([nonce])).digest(2 * eta * n // 8)


def sample_ntt(xof_input: bytes, n: int, q: int) -> np.ndarray:
    """
    Rejection-sample a uniform NTT-domain polynomial (FIPS 203 Algorithm 7).

    Every 3 bytes of the SHAKE-128 stream give two 12-bit candidates; those
    >= q are discarded. SHAKE output is prefix-stable, so squeezing a longer
    stream when too few candidates survive yields the same coefficients.
    """
    length = _XOF_INITIAL_BYTES
    while True:
        stream = hashlib.shake_128(xof_input).digest(length)
        buf = np.frombuffer(stream, dtype=np.uint8).astype(np.int64).reshape(-1, 3)
        d1 = buf[:, 0] | ((buf[:, 1] & 0x0F) << 8)
        d2 = (buf[:, 1] >> 4) | (buf[:, 2] << 4)
        candidates = np.stack((d1, d2), axis=1).reshape(-1)
        accepted = candidates[candidates < q]
        if len(accepted) >= n:
            return accepted[:n]
        length *= 2


def expand_matrix(rho: bytes, params: ParameterSet, transpose: bool = False) -> np.ndarray:
    """
    Expand rho into the k×k matrix Â, or its transpose.

    Entry (i, j) of Â is sampled from XOF(rho || j || i). With transpose=True
    entry (i, j) is sampled from XOF(rho || i || j), which is exactly Â^T, so
    the key owner and the encryptor derive consistent matrices from the same
    public seed.

    Returns:
        Array of shape (k, k, n) with coefficients in [0, q)
    """
    if len(rho) != SEED_BYTES:
        raise LengthMismatch("rho", SEED_BYTES, len(rho))
    k = params.k
    a_hat = np.empty((k, k, params.n), dtype=np.int64)
    for i in range(k):
        for j in range(k):
            index = bytes([i, j]) if transpose else bytes([j, i])
            a_hat[i, j] = sample_ntt(rho + index, params.n, params.q)
    return a_hat
