"""
Key Encapsulation Mechanism (ML-KEM) - Fujisaki-Okamoto Transform
=================================================================

``MLKEM`` wraps K-PKE into a KEM with a 32-byte shared secret. Two tagged
variants share the K-PKE key and ciphertext formats:

STANDARD (FIPS 203 ML-KEM, the default):
    KeyGen():
        d, z ← 32 random bytes each
        (ek_pke, dk_pke) = K-PKE.KeyGen(d)
        ek = ek_pke,  dk = dk_pke || ek || H(ek) || z

    Encaps(ek):
        m ← 32 random bytes
        (K, r) = G(m || H(ek))
        c = K-PKE.Encrypt(ek, m, r)
        Return (K, c)

    Decaps(dk, c):
        m' = K-PKE.Decrypt(dk_pke, c)
        (K', r') = G(m' || h)
        c' = K-PKE.Encrypt(ek, m', r')
        Return K' if c == c' else J(z || c)     # implicit rejection

SIMPLIFIED:
    The shared secret is H(m) for a message encrypted with fresh randomness
    and decapsulation returns H(Decrypt(c)) without re-encryption. This is
    only IND-CPA secure and does not interoperate with FIPS 203 peers.

Security:
    - Implicit rejection makes STANDARD IND-CCA2 secure in the ROM
    - Ciphertext comparison uses hmac.compare_digest, and the returned
      secret is selected with a byte mask rather than a branch
"""

import hmac
import logging
from enum import Enum
from typing import Optional, Tuple

from .drbg import CtrDrbg
from .errors import HashCheckFailure, LengthMismatch, SamplingFailure
from .hashing import derive_secret, hash_g, hash_h, hash_j
from .kpke import KPKE
from .params import SEED_BYTES, ParameterSet, get_parameter_set

__all__ = ["KEMVariant", "MLKEM"]

logger = logging.getLogger(__name__)


class KEMVariant(Enum):
    STANDARD = "standard"
    SIMPLIFIED = "simplified"


def _constant_time_select(condition: bool, a: bytes, b: bytes) -> bytes:
    """Return a if condition else b, reading both without branching on condition."""
    mask = -int(condition) & 0xFF
    return bytes((x & mask) | (y & ~mask & 0xFF) for x, y in zip(a, b))


class MLKEM:
    """
    ML-KEM key encapsulation over a parameter set.

    Randomness is drawn from ``params.random_bytes`` until ``set_drbg_seed``
    hands the instance its own CTR_DRBG. The DRBG belongs to this instance;
    share it across threads only through a ``RandomnessService``.
    """

    SHARED_SECRET_BYTES = SEED_BYTES

    def __init__(self, params: Optional[ParameterSet] = None,
                 variant: KEMVariant = KEMVariant.STANDARD):
        """
        Initialize KEM with the given parameter set.

        Args:
            params: Parameter set (default ML-KEM-768)
            variant: KEMVariant.STANDARD or KEMVariant.SIMPLIFIED
        """
        self.params = params if params is not None else get_parameter_set()
        self.variant = KEMVariant(variant)
        self.kpke = KPKE(self.params)
        self.drbg: Optional[CtrDrbg] = None
        self._random_bytes = self.params.random_bytes

        if self.variant is KEMVariant.SIMPLIFIED:
            logger.warning(
                "%s: simplified KEM variant is IND-CPA only and not interoperable "
                "with FIPS 203 implementations", self.params.name
            )

    @classmethod
    def from_parameter_set(cls, name: str,
                           variant: KEMVariant = KEMVariant.STANDARD) -> 'MLKEM':
        """Create KEM instance from a named parameter set."""
        return cls(get_parameter_set(name), variant)

    def set_drbg_seed(self, seed: bytes, personalization: Optional[bytes] = None):
        """
        Switch this instance to a CTR_DRBG seeded with 48 bytes of entropy.

        Used for reproducible key generation and KAT replay.
        """
        self.drbg = CtrDrbg(seed, personalization)
        self._random_bytes = self.drbg.random_bytes
        logger.debug("%s: randomness switched to CTR_DRBG", self.params.name)

    def random_bytes(self, n: int) -> bytes:
        out = self._random_bytes(n)
        if len(out) != n:
            raise SamplingFailure(f"randomness source returned {len(out)} bytes, wanted {n}")
        return bytes(out)

    # =========================================================================
    # Key generation
    # =========================================================================

    def keygen(self) -> Tuple[bytes, bytes]:
        """
        Generate a key pair.

        Returns:
            (ek, dk): Encapsulation and decapsulation keys
        """
        if self.variant is KEMVariant.SIMPLIFIED:
            return self.keygen_internal(self.random_bytes(SEED_BYTES))
        coins = self.random_bytes(2 * SEED_BYTES)
        return self.keygen_internal(coins[:SEED_BYTES], coins[SEED_BYTES:])

    def keygen_internal(self, d: bytes, z: Optional[bytes] = None) -> Tuple[bytes, bytes]:
        """
        Deterministic key generation from the seeds d and z.

        Secret key format (STANDARD): dk_pke || ek || H(ek) || z
            - dk_pke: K-PKE decryption key
            - ek: encapsulation key (for re-encryption in decaps)
            - H(ek): hash of the encapsulation key
            - z: implicit rejection seed
        The SIMPLIFIED variant ignores z and returns the bare K-PKE pair.
        """
        ek_pke, dk_pke = self.kpke.keygen(d)
        if self.variant is KEMVariant.SIMPLIFIED:
            return ek_pke, dk_pke

        if z is None or len(z) != SEED_BYTES:
            raise LengthMismatch("z", SEED_BYTES, 0 if z is None else len(z))
        dk = dk_pke + ek_pke + hash_h(ek_pke) + bytes(z)
        logger.debug("%s: key pair ek=%dB dk=%dB", self.params.name, len(ek_pke), len(dk))
        return ek_pke, dk

    # =========================================================================
    # Encapsulation
    # =========================================================================

    def encapsulate(self, ek: bytes, m: Optional[bytes] = None) -> Tuple[bytes, bytes]:
        """
        Encapsulate: Generate shared secret and ciphertext.

        Args:
            ek: Encapsulation key
            m: 32-byte message; drawn from the randomness source when omitted

        Returns:
            (shared_secret, ciphertext)

        Raises:
            LengthMismatch: ek or m has the wrong length
            NonCanonicalEncoding: ek fails the modulus check
        """
        if m is None:
            m = self.random_bytes(self.params.message_bytes)
        if len(m) != self.params.message_bytes:
            raise LengthMismatch("m", self.params.message_bytes, len(m))

        if self.variant is KEMVariant.SIMPLIFIED:
            r = self.random_bytes(SEED_BYTES)
            c = self.kpke.encrypt(ek, m, r)
            return derive_secret(m), c

        shared_secret, r = hash_g(bytes(m) + hash_h(ek))
        c = self.kpke.encrypt(ek, m, r)
        return shared_secret, c

    # =========================================================================
    # Decapsulation
    # =========================================================================

    def decapsulate(self, dk: bytes, c: bytes) -> bytes:
        """
        Decapsulate: Recover shared secret from ciphertext.

        In the STANDARD variant an invalid ciphertext yields the pseudorandom
        J(z || c) instead of an error, so the caller cannot tell the two
        cases apart.

        Args:
            dk: Decapsulation key
            c: Ciphertext

        Returns:
            shared_secret: 32-byte shared secret

        Raises:
            LengthMismatch: dk or c has the wrong length
            HashCheckFailure: dk is internally inconsistent (STANDARD only)
        """
        p = self.params
        if len(c) != p.ct_bytes:
            raise LengthMismatch("ciphertext", p.ct_bytes, len(c))

        if self.variant is KEMVariant.SIMPLIFIED:
            return derive_secret(self.kpke.decrypt(dk, c))

        if len(dk) != p.dk_bytes:
            raise LengthMismatch("dk", p.dk_bytes, len(dk))
        dk_pke, ek, h, z = self._split_dk(dk)
        if not hmac.compare_digest(hash_h(ek), h):
            raise HashCheckFailure("decapsulation key failed the H(ek) check")

        m_prime = self.kpke.decrypt(dk_pke, c)
        k_prime, r_prime = hash_g(m_prime + h)
        k_bar = hash_j(z, bytes(c))
        c_prime = self.kpke.encrypt(ek, m_prime, r_prime)

        ct_match = hmac.compare_digest(bytes(c), c_prime)
        return _constant_time_select(ct_match, k_prime, k_bar)

    def _split_dk(self, dk: bytes) -> Tuple[bytes, bytes, bytes, bytes]:
        """Split dk into (dk_pke, ek, H(ek), z)."""
        p = self.params
        offset = 0
        dk_pke = dk[offset:offset + p.dk_pke_bytes]
        offset += p.dk_pke_bytes
        ek = dk[offset:offset + p.ek_bytes]
        offset += p.ek_bytes
        h = dk[offset:offset + SEED_BYTES]
        offset += SEED_BYTES
        z = dk[offset:offset + SEED_BYTES]
        return bytes(dk_pke), bytes(ek), bytes(h), bytes(z)

    def get_sizes(self) -> dict:
        """Return key and ciphertext sizes in bytes."""
        p = self.params
        standard = self.variant is KEMVariant.STANDARD
        return {
            "public_key_bytes": p.ek_bytes,
            "secret_key_bytes": p.dk_bytes if standard else p.dk_pke_bytes,
            "ciphertext_bytes": p.ct_bytes,
            "shared_secret_bytes": self.SHARED_SECRET_BYTES,
            "n": p.n, "k": p.k, "q": p.q,
        }
