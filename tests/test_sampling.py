"""Tests for the hash functions, matrix expansion and CBD noise sampling."""

import hashlib
import unittest

import numpy as np

from mlkem.errors import LengthMismatch, SamplingFailure
from mlkem.hashing import (
    derive_secret,
    expand_matrix,
    hash_g,
    hash_h,
    hash_j,
    prf,
    sample_ntt,
    split_seed,
)
from mlkem.params import get_parameter_set
from mlkem.sampling import sample_error_poly, sample_error_vector, sample_poly_cbd

Q = 3329
N = 256


def _centered(x):
    x = np.asarray(x) % Q
    return np.where(x > Q // 2, x - Q, x)


class TestHashFunctions(unittest.TestCase):

    def test_g_halves(self):
        a, b = hash_g(b"abc")
        digest = hashlib.sha3_512(b"abc").digest()
        self.assertEqual(a + b, digest)
        self.assertEqual(len(a), 32)

    def test_split_seed_domain_separation(self):
        d = bytes(32)
        self.assertEqual(split_seed(d, 3), hash_g(d + b"\x03"))
        self.assertNotEqual(split_seed(d, 2), split_seed(d, 3))

    def test_h_and_j(self):
        self.assertEqual(hash_h(b""), hashlib.sha3_256(b"").digest())
        self.assertEqual(hash_j(b"z" * 32, b"c"), hashlib.shake_256(b"z" * 32 + b"c").digest(32))
        self.assertEqual(derive_secret(bytes(32)), hashlib.sha3_256(bytes(32)).digest())

    def test_prf_length(self):
        self.assertEqual(len(prf(2, bytes(32), 0)), 128)
        self.assertEqual(len(prf(3, bytes(32), 0)), 192)
        self.assertNotEqual(prf(2, bytes(32), 0), prf(2, bytes(32), 1))


class TestMatrixExpansion(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.params = get_parameter_set("ML-KEM-768")
        cls.rho = bytes(range(32))
        cls.a_hat = expand_matrix(cls.rho, cls.params)

    def test_shape_and_range(self):
        self.assertEqual(self.a_hat.shape, (3, 3, N))
        self.assertTrue(np.all((self.a_hat >= 0) & (self.a_hat < Q)))

    def test_deterministic(self):
        np.testing.assert_array_equal(expand_matrix(self.rho, self.params), self.a_hat)

    def test_entry_uses_column_then_row(self):
        np.testing.assert_array_equal(self.a_hat[1, 2], sample_ntt(self.rho + bytes([2, 1]), N, Q))

    def test_transpose(self):
        a_t = expand_matrix(self.rho, self.params, transpose=True)
        np.testing.assert_array_equal(a_t, np.transpose(self.a_hat, (1, 0, 2)))

    def test_rho_length(self):
        with self.assertRaises(LengthMismatch):
            expand_matrix(bytes(31), self.params)

    def test_sample_ntt_first_coefficients(self):
        stream = hashlib.shake_128(b"seed").digest(3)
        d1 = stream[0] | ((stream[1] & 0x0F) << 8)
        d2 = (stream[1] >> 4) | (stream[2] << 4)
        expected = [d for d in (d1, d2) if d < Q]
        poly = sample_ntt(b"seed", N, Q)
        self.assertEqual(list(poly[:len(expected)]), expected)


class TestCBD(unittest.TestCase):

    def test_all_zero_and_all_one_bits(self):
        for eta in (2, 3):
            with self.subTest(eta=eta):
                size = 64 * eta
                self.assertTrue(np.all(sample_poly_cbd(bytes(size), eta, N, Q) == 0))
                self.assertTrue(np.all(sample_poly_cbd(b"\xff" * size, eta, N, Q) == 0))

    def test_bit_layout(self):
        # 0x03: the first eta=2 bits are set, the second eta are clear
        f = sample_poly_cbd(b"\x03" * 128, 2, N, Q)
        self.assertTrue(np.all(f[0::2] == 2))
        self.assertTrue(np.all(f[1::2] == 0))
        # 0x0c: the second half is set, giving -2
        g = sample_poly_cbd(b"\x0c" * 128, 2, N, Q)
        self.assertTrue(np.all(g[0::2] == Q - 2))

    def test_range(self):
        params = get_parameter_set("ML-KEM-512")
        for eta in (2, 3):
            f, _ = sample_error_poly(bytes(range(32)), eta, 0, params)
            self.assertLessEqual(int(np.abs(_centered(f)).max()), eta)

    def test_input_length(self):
        with self.assertRaises(LengthMismatch):
            sample_poly_cbd(bytes(127), 2, N, Q)

    def test_nonce_threading(self):
        params = get_parameter_set("ML-KEM-768")
        seed = bytes(range(32))
        s, nonce = sample_error_vector(seed, 2, 0, params)
        self.assertEqual(s.shape, (3, N))
        self.assertEqual(nonce, 3)
        e, nonce = sample_error_vector(seed, 2, nonce, params)
        self.assertEqual(nonce, 6)
        self.assertFalse(np.array_equal(s, e))
        # each polynomial uses its own nonce
        poly, next_nonce = sample_error_poly(seed, 2, 1, params)
        np.testing.assert_array_equal(poly, s[1])
        self.assertEqual(next_nonce, 2)

    def test_deterministic(self):
        params = get_parameter_set("ML-KEM-768")
        a, _ = sample_error_vector(bytes(32), 2, 0, params)
        b, _ = sample_error_vector(bytes(32), 2, 0, params)
        np.testing.assert_array_equal(a, b)

    def test_nonce_overflow(self):
        params = get_parameter_set("ML-KEM-768")
        _, nonce = sample_error_poly(bytes(32), 2, 255, params)
        self.assertEqual(nonce, 256)
        with self.assertRaises(SamplingFailure):
            sample_error_poly(bytes(32), 2, 256, params)
        with self.assertRaises(SamplingFailure):
            sample_error_vector(bytes(32), 2, 254, params)


if __name__ == "__main__":
    unittest.main()
