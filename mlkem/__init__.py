"""
ML-KEM: Module-Lattice-Based Key-Encapsulation Mechanism (FIPS 203)
===================================================================

Pure Python implementation of ML-KEM-512/768/1024 built on numpy.

    K-PKE       IND-CPA public-key encryption (keygen / encrypt / decrypt)
    MLKEM       KEM wrapper, STANDARD (FIPS 203) or SIMPLIFIED variant
    CtrDrbg     NIST AES-256 CTR_DRBG for reproducible runs and KAT replay

Example:
    >>> from mlkem import MLKEM
    >>> kem = MLKEM.from_parameter_set("ML-KEM-768")
    >>> ek, dk = kem.keygen()
    >>> secret, c = kem.encapsulate(ek)
    >>> kem.decapsulate(dk, c) == secret
    True

This code is not hardened against timing side channels beyond the
constant-time comparison and select in decapsulation.
"""

import logging

from .drbg import CtrDrbg, RandomnessService
from .errors import (
    HashCheckFailure,
    LengthMismatch,
    MLKEMError,
    NonCanonicalEncoding,
    ParameterError,
    SamplingFailure,
    SeedLengthError,
)
from .kem import MLKEM, KEMVariant
from .kpke import KPKE
from .params import (
    DEFAULT_PARAMETER_SET,
    PARAMETER_SETS,
    ParameterSet,
    get_parameter_set,
)

__version__ = "1.0.0"

__all__ = [
    "MLKEM",
    "KEMVariant",
    "KPKE",
    "CtrDrbg",
    "RandomnessService",
    "ParameterSet",
    "PARAMETER_SETS",
    "DEFAULT_PARAMETER_SET",
    "get_parameter_set",
    "MLKEMError",
    "ParameterError",
    "LengthMismatch",
    "NonCanonicalEncoding",
    "HashCheckFailure",
    "SamplingFailure",
    "SeedLengthError",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
