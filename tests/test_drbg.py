"""CTR_DRBG known-answer tests and the serialized randomness service."""

import dataclasses
import threading
import unittest

from mlkem.drbg import CtrDrbg, RandomnessService
from mlkem.errors import SamplingFailure, SeedLengthError
from mlkem.kem import MLKEM
from mlkem.params import get_parameter_set

# First seed of the NIST PQC KAT generator: randombytes_init(0..47), randombytes(48)
_NIST_ENTROPY = bytes(range(48))
_NIST_FIRST_SEED = bytes.fromhex(
    "061550234D158C5EC95595FE04EF7A25767F2E24CC2BC479D09D86DC9ABCFDE7"
    "056A8C266F9EF97ED08541DBD2E1FFA1"
)


class TestCtrDrbg(unittest.TestCase):

    def test_nist_first_seed(self):
        drbg = CtrDrbg(_NIST_ENTROPY)
        self.assertEqual(drbg.random_bytes(48), _NIST_FIRST_SEED)

    def test_zero_personalization_is_default(self):
        a = CtrDrbg(_NIST_ENTROPY, bytes(48))
        self.assertEqual(a.random_bytes(48), _NIST_FIRST_SEED)

    def test_long_personalization_is_compressed(self):
        a = CtrDrbg(_NIST_ENTROPY, b"p" * 100)
        b = CtrDrbg(_NIST_ENTROPY, b"p" * 100)
        self.assertEqual(a.random_bytes(32), b.random_bytes(32))
        self.assertNotEqual(CtrDrbg(_NIST_ENTROPY, b"p" * 100).random_bytes(48), _NIST_FIRST_SEED)

    def test_seed_length(self):
        with self.assertRaises(SeedLengthError):
            CtrDrbg(bytes(47))
        with self.assertRaises(SeedLengthError):
            CtrDrbg(bytes(49))
        with self.assertRaises(SeedLengthError):
            CtrDrbg(bytes(48), bytes(47))

    def test_successive_outputs_differ(self):
        drbg = CtrDrbg(bytes(48))
        self.assertNotEqual(drbg.random_bytes(32), drbg.random_bytes(32))

    def test_reinit_restarts_stream(self):
        drbg = CtrDrbg(_NIST_ENTROPY)
        drbg.random_bytes(100)
        drbg.init(_NIST_ENTROPY)
        self.assertEqual(drbg.random_bytes(48), _NIST_FIRST_SEED)

    def test_request_limits(self):
        drbg = CtrDrbg(bytes(48))
        self.assertEqual(len(drbg.random_bytes(CtrDrbg.MAX_REQUEST_BYTES)), 65536)
        with self.assertRaises(SamplingFailure):
            drbg.random_bytes(CtrDrbg.MAX_REQUEST_BYTES + 1)
        with self.assertRaises(SamplingFailure):
            drbg.random_bytes(-1)

    def test_counter_and_reseed(self):
        drbg = CtrDrbg(bytes(48))
        self.assertEqual(drbg.reseed_counter, 1)
        self.assertEqual(drbg.random_bytes(0), b"")
        self.assertEqual(drbg.reseed_counter, 2)

        other = CtrDrbg(bytes(48))
        other.random_bytes(0)
        other.reseed(b"\x01" * 48)
        self.assertEqual(other.reseed_counter, 1)
        self.assertNotEqual(other.random_bytes(32), drbg.random_bytes(32))

        with self.assertRaises(SeedLengthError):
            other.reseed(bytes(32))
        with self.assertRaises(SeedLengthError):
            other.reseed(bytes(48), bytes(16))


class TestRandomnessService(unittest.TestCase):

    def test_matches_direct_sequence(self):
        direct = CtrDrbg(_NIST_ENTROPY)
        expected = [direct.random_bytes(n) for n in (48, 16, 64)]

        with RandomnessService(CtrDrbg(_NIST_ENTROPY).random_bytes) as service:
            got = [service.random_bytes(n) for n in (48, 16, 64)]
        self.assertEqual(got, expected)
        self.assertEqual(got[0], _NIST_FIRST_SEED)

    def test_concurrent_callers(self):
        results = []
        lock = threading.Lock()

        with RandomnessService(CtrDrbg(bytes(48)).random_bytes) as service:
            def worker():
                for _ in range(10):
                    out = service.random_bytes(32)
                    with lock:
                        results.append(out)

            threads = [threading.Thread(target=worker) for _ in range(4)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        self.assertEqual(len(results), 40)
        self.assertEqual(len(set(results)), 40)

        # the served outputs are exactly the first 40 outputs of the DRBG
        direct = CtrDrbg(bytes(48))
        self.assertEqual(set(results), {direct.random_bytes(32) for _ in range(40)})

    def test_errors_propagate(self):
        with RandomnessService(CtrDrbg(bytes(48)).random_bytes) as service:
            with self.assertRaises(SamplingFailure):
                service.random_bytes(CtrDrbg.MAX_REQUEST_BYTES + 1)
            self.assertEqual(len(service.random_bytes(8)), 8)

    def test_closed_service(self):
        service = RandomnessService(CtrDrbg(bytes(48)).random_bytes)
        service.close()
        service.close()
        with self.assertRaises(SamplingFailure):
            service.submit(32)

    def test_drives_kem(self):
        params = get_parameter_set("ML-KEM-512")
        with RandomnessService(CtrDrbg(bytes(48)).random_bytes) as service:
            kem = MLKEM(dataclasses.replace(params, random_bytes=service.random_bytes))
            ek, dk = kem.keygen()
            secret, c = kem.encapsulate(ek)
            self.assertEqual(kem.decapsulate(dk, c), secret)


if __name__ == "__main__":
    unittest.main()
