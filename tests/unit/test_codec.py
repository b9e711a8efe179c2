"""
Unit tests for the msgpack centroid codec.
"""

import random
import struct
import unittest

import msgpack

from tiny_digest.algorithms.centroid import Centroid
from tiny_digest.algorithms.tdigest import TDigest
from tiny_digest.core.codec import decode_centroids, encode_centroids
from tiny_digest.core.config import DigestConfig
from tiny_digest.core.errors import CodecError


def _bits(value):
    return struct.pack(">d", value)


class TestCentroidCodec(unittest.TestCase):
    """Tests for encode_centroids / decode_centroids."""

    def test_round_trip(self):
        centroids = [Centroid(1, float(i)) for i in range(100)]

        data = encode_centroids(centroids)

        self.assertIsInstance(data, bytes)
        self.assertGreater(len(data), 0)
        self.assertEqual(decode_centroids(data), centroids)

    def test_round_trip_empty(self):
        self.assertEqual(decode_centroids(encode_centroids([])), [])

    def test_round_trip_is_bit_exact(self):
        means = sorted([0.1, 1.0 / 3.0, -1e-300, 1e308, -0.0, 2.0 ** -1074, 123456.789])
        centroids = [Centroid(i + 1, m) for i, m in enumerate(means)]

        decoded = decode_centroids(encode_centroids(centroids))

        self.assertEqual([c.count for c in decoded], [c.count for c in centroids])
        self.assertEqual(
            [_bits(c.mean) for c in decoded], [_bits(c.mean) for c in centroids]
        )

    def test_round_trip_large_counts(self):
        centroids = [Centroid(2 ** 40, -5.5), Centroid(7, 0.25)]
        self.assertEqual(decode_centroids(encode_centroids(centroids)), centroids)

    def test_layout(self):
        data = encode_centroids([Centroid(2, 1.5), Centroid(1, 4.0)])
        self.assertEqual(
            msgpack.unpackb(data),
            {"Centroids": [{"Size": 2, "Mean": 1.5}, {"Size": 1, "Mean": 4.0}]},
        )
        # Means are always written as float64
        self.assertIn(b"\xcb", data)

    def test_decode_nil_centroids(self):
        self.assertEqual(decode_centroids(msgpack.packb({"Centroids": None})), [])

    def test_decode_accepts_integer_means(self):
        data = msgpack.packb({"Centroids": [{"Size": 3, "Mean": 4}]})
        self.assertEqual(decode_centroids(data), [Centroid(3, 4.0)])

    def test_decode_truncated(self):
        data = encode_centroids([Centroid(1, float(i)) for i in range(10)])
        for cut in (1, 5, len(data) // 2):
            with self.subTest(cut=cut):
                with self.assertRaises(CodecError):
                    decode_centroids(data[:-cut])

    def test_decode_trailing_bytes(self):
        data = encode_centroids([Centroid(1, 1.0)])
        with self.assertRaises(CodecError):
            decode_centroids(data + b"\x00")

    def test_decode_garbage(self):
        for data in (b"", b"\xc1", b"not msgpack at all"):
            with self.subTest(data=data):
                with self.assertRaises(CodecError):
                    decode_centroids(data)

    def test_decode_wrong_layout(self):
        payloads = [
            [1, 2, 3],
            {"centroids": []},
            {"Centroids": 5},
            {"Centroids": [[1, 2.0]]},
            {"Centroids": [{"Size": 1}]},
            {"Centroids": [{"Size": 0, "Mean": 1.0}]},
            {"Centroids": [{"Size": -2, "Mean": 1.0}]},
            {"Centroids": [{"Size": 1.5, "Mean": 1.0}]},
            {"Centroids": [{"Size": True, "Mean": 1.0}]},
            {"Centroids": [{"Size": 1, "Mean": "1.0"}]},
            {"Centroids": [{"Size": 1, "Mean": float("nan")}]},
            {"Centroids": [{"Size": 1, "Mean": 2.0}, {"Size": 1, "Mean": 1.0}]},
        ]
        for payload in payloads:
            with self.subTest(payload=payload):
                with self.assertRaises(CodecError):
                    decode_centroids(msgpack.packb(payload))

    def test_decode_rejects_non_bytes(self):
        with self.assertRaises(CodecError):
            decode_centroids("Centroids")

    def test_decode_accepts_bytearray(self):
        data = bytearray(encode_centroids([Centroid(1, 2.0)]))
        self.assertEqual(decode_centroids(data), [Centroid(1, 2.0)])

    def test_codec_error_is_value_error(self):
        with self.assertRaises(ValueError):
            decode_centroids(b"\xc1")


class TestTDigestBytes(unittest.TestCase):
    """Tests for TDigest.to_bytes / from_bytes."""

    def test_round_trip(self):
        rng = random.Random(9)
        td = TDigest(delta=50.0)
        for _ in range(2000):
            td.update(rng.gauss(0, 1))

        restored = TDigest.from_bytes(td.to_bytes())

        self.assertEqual(restored.centroids, td.centroids)
        self.assertEqual(restored.count(), td.count())
        self.assertEqual(restored.quantile(0.5), td.quantile(0.5))

    def test_round_trip_empty(self):
        restored = TDigest.from_bytes(TDigest().to_bytes())
        self.assertEqual(restored.centroids, ())
        self.assertEqual(restored.count(), 0)

    def test_configuration_not_persisted(self):
        td = TDigest.from_values([1.0, 2.0, 3.0], delta=10.0, buffered=True, buffer_size=4, scale="k0")

        restored = TDigest.from_bytes(td.to_bytes())

        self.assertEqual(restored.config, DigestConfig())
        self.assertEqual(restored.centroids, td.centroids)

    def test_decode_with_configuration(self):
        td = TDigest.from_values([1.0, 2.0, 3.0])
        config = DigestConfig(delta=20.0, buffered=True, buffer_size=8)

        restored = TDigest.from_bytes(td.to_bytes(), config=config)

        self.assertEqual(restored.config, config)
        self.assertEqual(restored.items_processed, 3)

    def test_to_bytes_flushes_buffer(self):
        td = TDigest(delta=100.0, buffered=True, buffer_size=100)
        for v in (2.0, 1.0, 3.0):
            td.update(v)

        restored = TDigest.from_bytes(td.to_bytes())

        self.assertEqual([c.mean for c in restored.centroids], [1.0, 2.0, 3.0])
        self.assertEqual(td.buffered_values, ())

    def test_from_bytes_malformed(self):
        with self.assertRaises(CodecError):
            TDigest.from_bytes(b"\x81\xa9Centroids")

    def test_serialize_binary(self):
        td = TDigest.from_values([5.0, 6.0])
        data = td.serialize(format="binary")

        self.assertEqual(data, td.to_bytes())
        restored = TDigest.deserialize(data, format="binary")
        self.assertEqual(restored.centroids, td.centroids)

    def test_deserialize_binary_rejects_str(self):
        with self.assertRaises(CodecError):
            TDigest.deserialize("abc", format="binary")


if __name__ == "__main__":
    unittest.main()
