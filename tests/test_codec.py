"""ByteEncode/ByteDecode and Compress/Decompress tests."""

import unittest

import numpy as np

from mlkem.codec import decode_poly, decode_vector, encode_poly, encode_vector, is_canonical
from mlkem.compress import compress, decompress
from mlkem.errors import LengthMismatch

Q = 3329
N = 256


def _centered(x):
    x = np.asarray(x) % Q
    return np.where(x > Q // 2, x - Q, x)


class TestByteCodec(unittest.TestCase):

    def setUp(self):
        self.rng = np.random.default_rng(2024)

    def test_roundtrip_all_widths(self):
        for d in range(1, 13):
            with self.subTest(d=d):
                f = self.rng.integers(0, 1 << d, N)
                data = encode_poly(f, d)
                self.assertEqual(len(data), 32 * d)
                np.testing.assert_array_equal(decode_poly(data, d), f)

    def test_bit_order_is_lsb_first(self):
        f = np.zeros(N, dtype=np.int64)
        f[0] = 1
        f[9] = 1
        data = encode_poly(f, 1)
        self.assertEqual(data[0], 0x01)
        self.assertEqual(data[1], 0x02)
        self.assertEqual(sum(data), 3)

    def test_twelve_bit_layout(self):
        f = np.zeros(N, dtype=np.int64)
        f[0] = 0xABC
        f[1] = 0x123
        data = encode_poly(f, 12)
        self.assertEqual(data[:3], bytes([0xBC, 0x3A, 0x12]))

    def test_vector_is_concatenation(self):
        v = self.rng.integers(0, Q, (3, N))
        data = encode_vector(v, 12)
        self.assertEqual(data, b"".join(encode_poly(row, 12) for row in v))
        np.testing.assert_array_equal(decode_vector(data, 3, 12, modulus=Q), v)

    def test_decode_reduces_mod_q(self):
        data = b"\xff" * 384
        f = decode_poly(data, 12, modulus=Q)
        self.assertTrue(np.all(f == 4095 % Q))
        self.assertTrue(np.all(decode_poly(data, 12) == 4095))

    def test_wrong_length(self):
        with self.assertRaises(LengthMismatch) as ctx:
            decode_poly(bytes(383), 12)
        self.assertEqual(ctx.exception.expected, 384)
        self.assertEqual(ctx.exception.received, 383)
        with self.assertRaises(LengthMismatch):
            decode_vector(bytes(384 * 2), 3, 12)

    def test_encode_rejects_out_of_range(self):
        with self.assertRaises(ValueError):
            encode_poly(np.full(N, 16), 4)
        with self.assertRaises(ValueError):
            encode_poly(np.full(N, -1), 4)

    def test_canonical(self):
        v = self.rng.integers(0, Q, (2, N))
        data = encode_vector(v, 12)
        self.assertTrue(is_canonical(data, 2, 12, Q))

        bad = bytearray(data)
        bad[0] = 0xFF
        bad[1] |= 0x0F       # first coefficient becomes 4095 >= q
        self.assertFalse(is_canonical(bytes(bad), 2, 12, Q))

    def test_q_minus_one_is_canonical(self):
        data = encode_poly(np.full(N, Q - 1), 12)
        self.assertTrue(is_canonical(data, 1, 12, Q))


class TestCompression(unittest.TestCase):

    def test_range(self):
        x = np.arange(Q)
        for d in (1, 4, 5, 10, 11):
            with self.subTest(d=d):
                y = compress(x, d, Q)
                self.assertGreaterEqual(int(y.min()), 0)
                self.assertLess(int(y.max()), 1 << d)
                z = decompress(np.arange(1 << d), d, Q)
                self.assertGreaterEqual(int(z.min()), 0)
                self.assertLess(int(z.max()), Q)

    def test_error_bound(self):
        x = np.arange(Q)
        for d in (1, 4, 5, 10, 11):
            with self.subTest(d=d):
                bound = round(Q / (1 << (d + 1)))
                err = np.abs(_centered(decompress(compress(x, d, Q), d, Q) - x))
                self.assertLessEqual(int(err.max()), bound)

    def test_one_bit_message(self):
        self.assertEqual(int(decompress(np.array(1), 1, Q)), 1665)
        self.assertEqual(int(decompress(np.array(0), 1, Q)), 0)
        # values near q/2 round to 1, values near 0 or q round to 0
        np.testing.assert_array_equal(compress(np.array([0, 832, 833, 1665, 2496, 2497, 3328]), 1, Q),
                                      [0, 0, 1, 1, 1, 0, 0])

    def test_decompress_then_compress_is_identity(self):
        for d in (1, 4, 5, 10, 11):
            with self.subTest(d=d):
                y = np.arange(1 << d)
                np.testing.assert_array_equal(compress(decompress(y, d, Q), d, Q), y)


if __name__ == "__main__":
    unittest.main()
