"""
K-PKE: the IND-CPA public-key encryption scheme underneath ML-KEM
==================================================================

FIPS 203 Algorithms 13-15. All three operations are deterministic: key
generation is driven by a 32-byte seed d and encryption by 32 bytes of
randomness r, so the KEM can re-encrypt a decrypted message and compare.

    KeyGen(d):
        (ρ, σ) = G(d || k)
        Â      = ExpandMatrix(ρ)
        s, e   ← CBD_η1(σ)                    nonces 0..k-1, k..2k-1
        t̂      = Â ∘ NTT(s) + NTT(e)
        ek     = Encode_12(t̂) || ρ,  dk = Encode_12(NTT(s))

    Encrypt(ek, m, r):
        y ← CBD_η1(r), e1 ← CBD_η2(r), e2 ← CBD_η2(r)   nonces 0..2k
        u = NTT⁻¹(Â^T ∘ NTT(y)) + e1
        v = NTT⁻¹(t̂^T ∘ NTT(y)) + e2 + Decompress_1(m)
        c = Encode_du(Compress_du(u)) || Encode_dv(Compress_dv(v))

    Decrypt(dk, c):
        m = Encode_1(Compress_1(v - NTT⁻¹(ŝ^T ∘ NTT(u))))
"""

import logging
from typing import Tuple

from .codec import decode_poly, decode_vector, encode_poly, encode_vector, is_canonical
from .compress import compress, decompress
from .errors import LengthMismatch, NonCanonicalEncoding
from .hashing import expand_matrix, split_seed
from .params import SEED_BYTES, ParameterSet
from .ring import get_ntt, mat_vec_mul, poly_add, poly_sub, vec_dot
from .sampling import sample_error_poly, sample_error_vector

__all__ = ["KPKE"]

logger = logging.getLogger(__name__)

# Bits per coefficient of t̂ and ŝ in the encoded keys.
KEY_BITS = 12


class KPKE:
    """
    Deterministic K-PKE over a given parameter set.

    Parameters:
        params: The ML-KEM parameter set

    Wire formats:
        ek: Encode_12(t̂) || ρ                      (384·k + 32 bytes)
        dk: Encode_12(ŝ)                           (384·k bytes)
        c:  Encode_du(u') || Encode_dv(v')         (32·(du·k + dv) bytes)
    """

    def __init__(self, params: ParameterSet):
        self.params = params
        self.ntt = get_ntt(params.n, params.q, params.root)

    def keygen(self, d: bytes) -> Tuple[bytes, bytes]:
        """
        Key Generation.

        Args:
            d: 32-byte seed

        Returns:
            (ek, dk): Encryption and decryption key bytes
        """
        p = self.params
        if len(d) != SEED_BYTES:
            raise LengthMismatch("d", SEED_BYTES, len(d))

        rho, sigma = split_seed(d, p.k)
        a_hat = expand_matrix(rho, p, transpose=False)

        nonce = 0
        s, nonce = sample_error_vector(sigma, p.eta1, nonce, p)
        e, nonce = sample_error_vector(sigma, p.eta1, nonce, p)

        s_hat = self.ntt.forward(s)
        e_hat = self.ntt.forward(e)
        t_hat = poly_add(mat_vec_mul(self.ntt, a_hat, s_hat), e_hat, p.q)

        logger.debug("K-PKE key pair generated for %s", p.name)
        ek = encode_vector(t_hat, KEY_BITS) + rho
        dk = encode_vector(s_hat, KEY_BITS)
        return ek, dk

    def encrypt(self, ek: bytes, m: bytes, r: bytes) -> bytes:
        """
        Encryption.

        Args:
            ek: Encryption key
            m: Message of n/8 bytes (one bit per coefficient)
            r: 32 bytes of encryption randomness

        Returns:
            Ciphertext c1 || c2

        Raises:
            LengthMismatch: ek, m or r has the wrong length
            NonCanonicalEncoding: t̂ in ek holds a coefficient >= q
        """
        p = self.params
        if len(ek) != p.ek_bytes:
            raise LengthMismatch("ek", p.ek_bytes, len(ek))
        if len(m) != p.message_bytes:
            raise LengthMismatch("m", p.message_bytes, len(m))
        if len(r) != SEED_BYTES:
            raise LengthMismatch("r", SEED_BYTES, len(r))

        t_hat_bytes, rho = ek[:-SEED_BYTES], ek[-SEED_BYTES:]
        if not is_canonical(t_hat_bytes, p.k, KEY_BITS, p.q, p.n):
            raise NonCanonicalEncoding("t_hat in ek is not canonically encoded")
        t_hat = decode_vector(t_hat_bytes, p.k, KEY_BITS, p.n, modulus=p.q)

        a_hat_t = expand_matrix(rho, p, transpose=True)

        nonce = 0
        y, nonce = sample_error_vector(r, p.eta1, nonce, p)
        e1, nonce = sample_error_vector(r, p.eta2, nonce, p)
        e2, nonce = sample_error_poly(r, p.eta2, nonce, p)

        y_hat = self.ntt.forward(y)
        u = poly_add(self.ntt.inverse(mat_vec_mul(self.ntt, a_hat_t, y_hat)), e1, p.q)

        mu = decompress(decode_poly(m, 1, p.n), 1, p.q)
        v = self.ntt.inverse(vec_dot(self.ntt, t_hat, y_hat))
        v = poly_add(poly_add(v, e2, p.q), mu, p.q)

        c1 = encode_vector(compress(u, p.du, p.q), p.du)
        c2 = encode_poly(compress(v, p.dv, p.q), p.dv)
        return c1 + c2

    def decrypt(self, dk: bytes, c: bytes) -> bytes:
        """
        Decryption.

        Args:
            dk: Decryption key
            c: Ciphertext

        Returns:
            The n/8-byte message
        """
        p = self.params
        if len(dk) != p.dk_pke_bytes:
            raise LengthMismatch("dk", p.dk_pke_bytes, len(dk))
        if len(c) != p.ct_bytes:
            raise LengthMismatch("ciphertext", p.ct_bytes, len(c))

        c1, c2 = c[:p.c1_bytes], c[p.c1_bytes:]
        u = decompress(decode_vector(c1, p.k, p.du, p.n), p.du, p.q)
        v = decompress(decode_poly(c2, p.dv, p.n), p.dv, p.q)
        s_hat = decode_vector(dk, p.k, KEY_BITS, p.n, modulus=p.q)

        w = poly_sub(v, self.ntt.inverse(vec_dot(self.ntt, s_hat, self.ntt.forward(u))), p.q)
        return encode_poly(compress(w, 1, p.q), 1)

    def get_key_sizes(self) -> dict:
        """Return key and ciphertext sizes in bytes."""
        p = self.params
        return {
            "public_key_bytes": p.ek_bytes,
            "secret_key_bytes": p.dk_pke_bytes,
            "ciphertext_bytes": p.ct_bytes,
            "message_bytes": p.message_bytes,
            "n": p.n, "k": p.k, "q": p.q,
        }
