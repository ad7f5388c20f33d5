"""
Module-Lattice Arithmetic over R_q = Z_q[x]/(x^n + 1)
=====================================================

Polynomials are numpy ``int64`` arrays whose last axis has length n; a vector
of k polynomials is a ``(k, n)`` array and a k×k matrix is ``(k, k, n)``.
Every function here broadcasts over leading axes, so whole vectors and
matrices are transformed in one call.

Number Theoretic Transform
--------------------------
ML-KEM's modulus q = 3329 has no primitive 2n-th root of unity, so the
negacyclic NTT cannot be taken all the way down to single coefficients.
The transform stops one layer early (FIPS 203, Section 4.3): the NTT domain
consists of n/2 degree-1 residues modulo (x^2 - γ_i), and products in that
domain are computed pairwise by ``multiply_ntts``.
"""

from typing import Dict, Tuple

import numpy as np

__all__ = [
    "NTT",
    "get_ntt",
    "poly_add",
    "poly_sub",
    "mat_vec_mul",
    "vec_dot",
    "negacyclic_multiply",
]


def _bit_reverse(x: int, bits: int) -> int:
    """Reverse the bits of x (using 'bits' number of bits)."""
    result = 0
    for _ in range(bits):
        result = (result << 1) | (x & 1)
        x >>= 1
    return result


class NTT:
    """
    Incomplete negacyclic NTT for R_q = Z_q[x]/(x^n + 1).

    Uses a primitive n-th root of unity ζ (ζ^(n/2) = -1). Forward transform is
    Cooley-Tukey with log2(n) - 1 layers, inverse is Gentleman-Sande followed
    by scaling with (n/2)^(-1).
    """

    def __init__(self, n: int, q: int, root: int):
        """
        Initialize NTT with precomputed twiddle factors.

        Args:
            n: Polynomial degree (must be power of 2)
            q: Prime modulus
            root: Primitive n-th root of unity mod q (17 for ML-KEM)
        """
        assert n >= 4 and (n & (n - 1)) == 0, "n must be a power of 2"
        if pow(root, n // 2, q) != q - 1:
            raise ValueError(f"{root} is not a primitive {n}-th root of unity mod {q}")

        self.n = n
        self.q = q
        self.root = root
        self.half = n // 2
        bits = self.half.bit_length() - 1

        # zetas[i] = ζ^bitrev(i), consumed in order by the butterflies
        self.zetas = np.array(
            [pow(root, _bit_reverse(i, bits), q) for i in range(self.half)],
            dtype=np.int64,
        )
        # γ_i = ζ^(2·bitrev(i) + 1), the moduli of the base-case products
        self.gammas = np.array(
            [pow(root, 2 * _bit_reverse(i, bits) + 1, q) for i in range(self.half)],
            dtype=np.int64,
        )
        self.half_inv = pow(self.half, -1, q)

    def forward(self, f: np.ndarray) -> np.ndarray:
        """
        Compute the forward NTT: f -> f̂ (FIPS 203 Algorithm 9).

        Each layer splits the coefficients into blocks of 2·length and applies
        the butterfly (a, b) -> (a + ζb, a - ζb) with one zeta per block.
        """
        a = np.array(f, dtype=np.int64) % self.q
        lead = a.shape[:-1]
        i = 1
        length = self.half
        while length >= 2:
            blocks = self.n // (2 * length)
            view = a.reshape(lead + (blocks, 2, length))
            zeta = self.zetas[i:i + blocks].reshape(blocks, 1)
            t = (zeta * view[..., 1, :]) % self.q
            lo = view[..., 0, :]
            view = np.stack(((lo + t) % self.q, (lo - t) % self.q), axis=-2)
            a = view.reshape(lead + (self.n,))
            i += blocks
            length //= 2
        return a

    def inverse(self, f_hat: np.ndarray) -> np.ndarray:
        """Compute the inverse NTT: f̂ -> f (FIPS 203 Algorithm 10)."""
        a = np.array(f_hat, dtype=np.int64) % self.q
        lead = a.shape[:-1]
        i = self.half - 1
        length = 2
        while length <= self.half:
            blocks = self.n // (2 * length)
            view = a.reshape(lead + (blocks, 2, length))
            # zetas are walked backwards, one per block
            zeta = self.zetas[i - blocks + 1:i + 1][::-1].reshape(blocks, 1)
            lo = view[..., 0, :]
            hi = view[..., 1, :]
            view = np.stack(((lo + hi) % self.q, (zeta * (hi - lo)) % self.q), axis=-2)
            a = view.reshape(lead + (self.n,))
            i -= blocks
            length *= 2
        return (a * self.half_inv) % self.q

    def multiply_ntts(self, f_hat: np.ndarray, g_hat: np.ndarray) -> np.ndarray:
        """
        Product of two NTT-domain polynomials (FIPS 203 Algorithms 11 and 12).

        Coefficient pairs (2i, 2i+1) are degree-1 polynomials multiplied
        modulo (x^2 - γ_i).
        """
        f = np.asarray(f_hat, dtype=np.int64)
        g = np.asarray(g_hat, dtype=np.int64)
        f0, f1 = f[..., 0::2], f[..., 1::2]
        g0, g1 = g[..., 0::2], g[..., 1::2]
        c0 = (f0 * g0 + ((f1 * g1) % self.q) * self.gammas) % self.q
        c1 = (f0 * g1 + f1 * g0) % self.q
        out = np.empty(np.broadcast(f, g).shape, dtype=np.int64)
        out[..., 0::2] = c0
        out[..., 1::2] = c1
        return out

    def multiply(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """
        Multiply two polynomials in R_q using the NTT.

        Computes a * b mod (x^n + 1) in O(n log n) time.
        """
        return self.inverse(self.multiply_ntts(self.forward(a), self.forward(b)))


# Global NTT cache for different (n, q, root) triples
_ntt_cache: Dict[Tuple[int, int, int], NTT] = {}


def get_ntt(n: int, q: int, root: int) -> NTT:
    """Get or create NTT instance for given parameters."""
    key = (n, q, root)
    if key not in _ntt_cache:
        _ntt_cache[key] = NTT(n, q, root)
    return _ntt_cache[key]


def poly_add(a: np.ndarray, b: np.ndarray, q: int) -> np.ndarray:
    return (np.asarray(a, dtype=np.int64) + b) % q


def poly_sub(a: np.ndarray, b: np.ndarray, q: int) -> np.ndarray:
    return (np.asarray(a, dtype=np.int64) - b) % q


def mat_vec_mul(ntt: NTT, a_hat: np.ndarray, s_hat: np.ndarray) -> np.ndarray:
    """Â ∘ ŝ for a (k, k, n) matrix and a (k, n) vector, all in the NTT domain."""
    products = ntt.multiply_ntts(a_hat, s_hat[np.newaxis, :, :])
    return products.sum(axis=1) % ntt.q


def vec_dot(ntt: NTT, a_hat: np.ndarray, b_hat: np.ndarray) -> np.ndarray:
    """Inner product â^T ∘ b̂ of two (k, n) NTT-domain vectors."""
    return ntt.multiply_ntts(a_hat, b_hat).sum(axis=0) % ntt.q


def negacyclic_multiply(a: np.ndarray, b: np.ndarray, q: int) -> np.ndarray:
    """
    Schoolbook product in Z_q[x]/(x^n + 1).

    Full convolution, then fold the upper half back in with a sign flip
    since x^n = -1.
    """
    a = np.asarray(a, dtype=np.int64) % q
    b = np.asarray(b, dtype=np.int64) % q
    n = len(a)
    # Products stay below 2^63: n * q^2 < 2^33 for n <= 256, q < 4096.
    prod = np.convolve(a, b)
    result = prod[:n].copy()
    result[:n - 1] -= prod[n:]
    return result % q
