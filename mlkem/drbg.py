"""
Deterministic Random Bit Generation
===================================

``CtrDrbg`` is the NIST SP 800-90A CTR_DRBG with AES-256 and no derivation
function, the generator behind ``randombytes_init`` / ``randombytes`` in
the NIST post-quantum KAT tooling. Seeding an ML-KEM instance with it makes
key generation and encapsulation reproducible.

A DRBG is stateful: each request advances its key and counter, so the order
of requests determines every later output. ``RandomnessService`` gives one
worker thread exclusive ownership of a source and serves concurrent callers
through a queue, one request at a time, in arrival order.
"""

import hashlib
import logging
import queue
import threading
from concurrent.futures import Future
from typing import Callable, Optional

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import SamplingFailure, SeedLengthError

__all__ = ["CtrDrbg", "RandomnessService"]

logger = logging.getLogger(__name__)


class CtrDrbg:
    """
    AES-256 CTR_DRBG without derivation function.

    State is a 32-byte key and a 16-byte counter block V. Every request
    encrypts successive values of V and then runs the update function so
    that earlier outputs cannot be recomputed from the new state.
    """

    KEY_BYTES = 32
    BLOCK_BYTES = 16
    SEED_BYTES = KEY_BYTES + BLOCK_BYTES     # 48
    MAX_REQUEST_BYTES = 1 << 16              # 2^19 bits per request
    RESEED_INTERVAL = 1 << 48

    def __init__(self, seed: bytes, personalization: Optional[bytes] = None):
        """
        Instantiate the DRBG.

        Args:
            seed: 48 bytes of entropy input
            personalization: At least 48 bytes; longer strings are compressed
                to 48 bytes with SHAKE-256. Defaults to 48 zero bytes.
        """
        self.init(seed, personalization)

    def init(self, seed: bytes, personalization: Optional[bytes] = None):
        """(Re-)instantiate from entropy input and a personalization string."""
        if len(seed) != self.SEED_BYTES:
            raise SeedLengthError(
                f"DRBG seed must be {self.SEED_BYTES} bytes, got {len(seed)}"
            )
        personalization = self._personalization(personalization)
        seed_material = bytes(a ^ b for a, b in zip(seed, personalization))

        self._key = bytes(self.KEY_BYTES)
        self._v = bytes(self.BLOCK_BYTES)
        self._update(seed_material)
        self._reseed_counter = 1

    def _personalization(self, personalization: Optional[bytes]) -> bytes:
        if personalization is None:
            return bytes(self.SEED_BYTES)
        if len(personalization) < self.SEED_BYTES:
            raise SeedLengthError(
                f"personalization string must be at least {self.SEED_BYTES} bytes, "
                f"got {len(personalization)}"
            )
        if len(personalization) > self.SEED_BYTES:
            return hashlib.shake_256(personalization).digest(self.SEED_BYTES)
        return bytes(personalization)

    def _increment_v(self):
        value = (int.from_bytes(self._v, "big") + 1) % (1 << (8 * self.BLOCK_BYTES))
        self._v = value.to_bytes(self.BLOCK_BYTES, "big")

    def _keystream(self, length: int) -> bytes:
        """Encrypt V+1, V+2, ... under the current key."""
        encryptor = Cipher(algorithms.AES(self._key), modes.ECB()).encryptor()
        out = bytearray()
        while len(out) < length:
            self._increment_v()
            out += encryptor.update(self._v)
        return bytes(out[:length])

    def _update(self, provided_data: Optional[bytes]):
        temp = self._keystream(self.SEED_BYTES)
        if provided_data is not None:
            temp = bytes(a ^ b for a, b in zip(temp, provided_data))
        self._key = temp[:self.KEY_BYTES]
        self._v = temp[self.KEY_BYTES:]

    def reseed(self, entropy: bytes, additional: Optional[bytes] = None):
        """Mix fresh 48-byte entropy (and optional 48-byte additional input) into the state."""
        if len(entropy) != self.SEED_BYTES:
            raise SeedLengthError(
                f"reseed entropy must be {self.SEED_BYTES} bytes, got {len(entropy)}"
            )
        if additional is not None:
            if len(additional) != self.SEED_BYTES:
                raise SeedLengthError(
                    f"additional input must be {self.SEED_BYTES} bytes, got {len(additional)}"
                )
            entropy = bytes(a ^ b for a, b in zip(entropy, additional))
        self._update(entropy)
        self._reseed_counter = 1
        logger.debug("CTR_DRBG reseeded")

    def random_bytes(self, n: int) -> bytes:
        """
        Generate n pseudorandom bytes.

        Raises:
            SamplingFailure: n is negative or above 65536, or the reseed
                interval has been exhausted
        """
        if n < 0 or n > self.MAX_REQUEST_BYTES:
            raise SamplingFailure(
                f"DRBG request of {n} bytes outside [0, {self.MAX_REQUEST_BYTES}]"
            )
        if self._reseed_counter > self.RESEED_INTERVAL:
            raise SamplingFailure("DRBG reseed interval exhausted, reseed required")
        out = self._keystream(n)
        self._update(None)
        self._reseed_counter += 1
        return out

    @property
    def reseed_counter(self) -> int:
        return self._reseed_counter


class RandomnessService:
    """
    Serialized owner of a randomness source.

    A single worker thread holds the source and answers ``random_bytes``
    requests from a FIFO queue, so callers on any thread can share one DRBG
    without interleaving its state updates.

    Usage:
        >>> with RandomnessService(CtrDrbg(bytes(48)).random_bytes) as service:
        ...     kem = MLKEM(replace(params, random_bytes=service.random_bytes))
    """

    def __init__(self, source: Callable[[int], bytes], name: str = "mlkem-randomness"):
        self._source = source
        self._requests: "queue.Queue" = queue.Queue()
        self._closed = False
        self._lock = threading.Lock()
        self._worker = threading.Thread(target=self._run, name=name, daemon=True)
        self._worker.start()

    def _run(self):
        while True:
            item = self._requests.get()
            if item is None:
                break
            n, future = item
            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(self._source(n))
            except Exception as exc:
                future.set_exception(exc)

    def submit(self, n: int) -> Future:
        """Queue a request for n bytes and return its future."""
        future: Future = Future()
        with self._lock:
            if self._closed:
                raise SamplingFailure("randomness service is closed")
            self._requests.put((n, future))
        return future

    def random_bytes(self, n: int) -> bytes:
        return self.submit(n).result()

    def close(self):
        """Stop accepting requests; pending requests are still served."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._requests.put(None)
        self._worker.join()

    def __enter__(self) -> "RandomnessService":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
