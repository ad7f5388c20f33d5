"""
Exception types raised by the ML-KEM package.

Every failure that a caller can provoke with bad input is reported through one
of these classes. They also derive from the closest builtin so code that only
knows about ``ValueError`` / ``RuntimeError`` keeps working.
"""


class MLKEMError(Exception):
    """Base class for all ML-KEM errors."""


class ParameterError(MLKEMError, ValueError):
    """Invalid or unknown parameter set."""


class LengthMismatch(MLKEMError, ValueError):
    """A fixed-size input (key, ciphertext, seed, message) has the wrong length."""

    def __init__(self, field: str, expected: int, received: int):
        self.field = field
        self.expected = expected
        self.received = received
        super().__init__(
            f"{field} has the wrong length, expected {expected} bytes "
            f"and received {received}"
        )


class NonCanonicalEncoding(MLKEMError, ValueError):
    """Encryption key bytes do not survive a decode/encode round trip."""


class HashCheckFailure(MLKEMError, ValueError):
    """The H(ek) stored in a decapsulation key does not match the embedded ek."""


class SamplingFailure(MLKEMError, RuntimeError):
    """The randomness source or a pseudorandom sampler could not deliver."""


class SeedLengthError(MLKEMError, ValueError):
    """DRBG entropy input or personalization string is too short."""
