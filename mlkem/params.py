"""
ML-KEM parameter sets (FIPS 203, Table 2).

A ``ParameterSet`` is immutable and shared by reference between the K-PKE
scheme, the KEM wrapper and the helpers they call. It also carries the
randomness source that the KEM draws from unless a DRBG is seeded explicitly.
"""

import secrets
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from .errors import ParameterError

__all__ = [
    "ParameterSet",
    "PARAMETER_SETS",
    "DEFAULT_PARAMETER_SET",
    "get_parameter_set",
    "negacyclic_modulus",
]

# Length in bytes of every seed, hash digest and shared secret in the scheme.
SEED_BYTES = 32


def negacyclic_modulus(n: int) -> Tuple[int, ...]:
    """Ascending coefficients of the reduction polynomial x^n + 1."""
    return (1,) + (0,) * (n - 1) + (1,)


def _is_prime(q: int) -> bool:
    if q < 2:
        return False
    if q % 2 == 0:
        return q == 2
    d = 3
    while d * d <= q:
        if q % d == 0:
            return False
        d += 2
    return True


@dataclass(frozen=True)
class ParameterSet:
    """
    Configuration shared by all ML-KEM operations.

    Attributes:
        name: Human readable identifier, e.g. "ML-KEM-768"
        n: Polynomial degree (power of 2, at least 8)
        q: Prime modulus, below 2^12 so coefficients fit 12-bit fields
        k: Module rank
        eta1: CBD parameter for s, e and y
        eta2: CBD parameter for e1 and e2
        du: Compression width of the ciphertext vector u
        dv: Compression width of the ciphertext polynomial v
        root: Primitive n-th root of unity mod q used by the NTT
        security_category: NIST security category (1, 3, 5; 0 for custom sets)
        reduction_poly: Ascending coefficients of x^n + 1
        random_bytes: Randomness source, called as random_bytes(n) -> bytes
    """
    name: str
    n: int = 256
    q: int = 3329
    k: int = 3
    eta1: int = 2
    eta2: int = 2
    du: int = 10
    dv: int = 4
    root: int = 17
    security_category: int = 0
    reduction_poly: Optional[Tuple[int, ...]] = None
    random_bytes: Callable[[int], bytes] = field(
        default=secrets.token_bytes, compare=False, repr=False
    )

    def __post_init__(self):
        if self.reduction_poly is None:
            object.__setattr__(self, "reduction_poly", negacyclic_modulus(self.n))
        self._validate()

    def _validate(self):
        n, q = self.n, self.q
        # n/8 bytes per 1-bit message; smaller rings have no byte encoding
        if n < 8 or n & (n - 1):
            raise ParameterError(f"n = {n} must be a power of 2 (at least 8)")
        if not _is_prime(q):
            raise ParameterError(f"q = {q} must be prime")
        if q >= 1 << 12:
            raise ParameterError(f"q = {q} must fit in 12 bits")
        if self.k < 1:
            raise ParameterError(f"k = {self.k} must be at least 1")
        for label in ("eta1", "eta2", "du", "dv"):
            if getattr(self, label) <= 0:
                raise ParameterError(f"{label} must be positive")
        if self.du >= 12 or self.dv >= 12:
            raise ParameterError("du and dv must be below 12 bits")
        if tuple(self.reduction_poly) != negacyclic_modulus(n):
            raise ParameterError("reduction polynomial must be x^n + 1")
        # root must have order exactly n: root^(n/2) == -1 (mod q)
        if pow(self.root, n // 2, q) != q - 1:
            raise ParameterError(
                f"root = {self.root} is not a primitive {n}-th root of unity mod {q}"
            )

    # Byte sizes of the wire formats

    @property
    def poly_bytes(self) -> int:
        """Bytes of one polynomial encoded at 12 bits per coefficient."""
        return self.n * 12 // 8

    @property
    def message_bytes(self) -> int:
        return self.n // 8

    @property
    def ek_bytes(self) -> int:
        return self.k * self.poly_bytes + SEED_BYTES

    @property
    def dk_pke_bytes(self) -> int:
        return self.k * self.poly_bytes

    @property
    def dk_bytes(self) -> int:
        """Full KEM decapsulation key: dk_pke || ek || H(ek) || z."""
        return self.dk_pke_bytes + self.ek_bytes + 2 * SEED_BYTES

    @property
    def c1_bytes(self) -> int:
        return self.k * self.n * self.du // 8

    @property
    def c2_bytes(self) -> int:
        return self.n * self.dv // 8

    @property
    def ct_bytes(self) -> int:
        return self.c1_bytes + self.c2_bytes


PARAMETER_SETS: Dict[str, ParameterSet] = {
    "ML-KEM-512": ParameterSet(
        name="ML-KEM-512",
        k=2,
        eta1=3,
        eta2=2,
        du=10,
        dv=4,
        security_category=1,
    ),
    "ML-KEM-768": ParameterSet(
        name="ML-KEM-768",
        k=3,
        eta1=2,
        eta2=2,
        du=10,
        dv=4,
        security_category=3,
    ),
    "ML-KEM-1024": ParameterSet(
        name="ML-KEM-1024",
        k=4,
        eta1=2,
        eta2=2,
        du=11,
        dv=5,
        security_category=5,
    ),
}

DEFAULT_PARAMETER_SET = "ML-KEM-768"


def get_parameter_set(name: str = DEFAULT_PARAMETER_SET) -> ParameterSet:
    """Get a standard parameter set by name."""
    if name not in PARAMETER_SETS:
        raise ParameterError(
            f"Unknown parameter set: {name}. Choose from {list(PARAMETER_SETS.keys())}"
        )
    return PARAMETER_SETS[name]
