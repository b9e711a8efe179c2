"""
Unit tests for TDigest statistics, benchmarking hooks and JSON serialization.
"""

import json
import math
import random
import unittest

from tiny_digest.algorithms.tdigest import TDigest
from tiny_digest.core.base import QuantileEstimator, StreamSummary


class TestTDigestStats(unittest.TestCase):
    """Test cases for TDigest statistics."""

    def test_get_stats_empty(self):
        tdigest = TDigest(delta=100.0)

        stats = tdigest.get_stats()

        self.assertEqual(stats["type"], "TDigest")
        self.assertEqual(stats["items_processed"], 0)
        self.assertEqual(stats["delta"], 100.0)
        self.assertEqual(stats["scale"], "k1")
        self.assertEqual(stats["num_centroids"], 0)
        self.assertEqual(stats["count"], 0)
        self.assertEqual(stats["max_centroids"], 100)
        self.assertNotIn("p50", stats)
        self.assertNotIn("min_centroid_count", stats)

    def test_get_stats_with_data(self):
        tdigest = TDigest(delta=50.0, buffered=True, buffer_size=100)
        for i in range(1000):
            tdigest.update(float(i))
        # Leave some values in the buffer
        for i in range(1000, 1050):
            tdigest.update(float(i))

        stats = tdigest.get_stats()

        self.assertEqual(stats["items_processed"], 1050)
        self.assertEqual(stats["count"], 1050)
        self.assertTrue(stats["buffered"])
        self.assertEqual(stats["buffer_size"], 100)
        self.assertGreater(stats["num_centroids"], 0)
        self.assertLess(stats["num_centroids"], 50)
        self.assertGreaterEqual(stats["min_mean"], 0.0)
        self.assertLessEqual(stats["max_mean"], 1049.0)
        self.assertLess(stats["min_mean"], stats["max_mean"])
        self.assertLessEqual(stats["min_centroid_count"], stats["max_centroid_count"])
        self.assertIn("p50", stats)
        self.assertIn("p90", stats)
        self.assertIn("p99", stats)
        self.assertLess(stats["p50"], stats["p99"])
        self.assertGreater(stats["memory_bytes"], 0)

    def test_error_bounds(self):
        tdigest = TDigest(delta=25.5)
        bounds = tdigest.error_bounds()
        self.assertEqual(bounds["max_centroids"], 26)
        self.assertEqual(bounds["actual_centroids"], 0)
        self.assertNotIn("centroid_utilization", bounds)

        for i in range(500):
            tdigest.update(float(i))
        bounds = tdigest.error_bounds()
        self.assertLess(bounds["actual_centroids"], bounds["max_centroids"])
        self.assertGreater(bounds["centroid_utilization"], 0.0)
        self.assertLess(bounds["centroid_utilization"], 1.0)

    def test_error_bounds_linear_scale(self):
        tdigest = TDigest(delta=40.0, scale="k0")
        for i in range(500):
            tdigest.update(float(i))
        bounds = tdigest.error_bounds()
        self.assertEqual(bounds["max_centroids"], 40)
        self.assertLess(bounds["actual_centroids"], 40)

    def test_error_bounds_without_known_limit(self):
        # The k2 limit depends on the stream size
        tdigest = TDigest(delta=40.0, scale="k2")
        for i in range(500):
            tdigest.update(float(i))

        bounds = tdigest.error_bounds()
        self.assertEqual(bounds["actual_centroids"], len(tdigest.centroids))
        self.assertNotIn("max_centroids", bounds)
        self.assertNotIn("centroid_utilization", bounds)
        self.assertNotIn("max_centroids", tdigest.get_stats())

    def test_estimate_size_grows(self):
        tdigest = TDigest(delta=100.0)
        empty_size = tdigest.estimate_size()
        for i in range(200):
            tdigest.update(float(i))
        self.assertGreater(tdigest.estimate_size(), empty_size)

    def test_performance_tracking(self):
        tdigest = TDigest(delta=20.0)
        tdigest.enable_performance_tracking(max_history=10)

        for i in range(50):
            tdigest.update(float(i))

        stats = tdigest.get_performance_stats()
        self.assertEqual(stats["items_processed"], 50)
        self.assertIn("avg_update_time_ns", stats)
        self.assertIn("last_update_time_ns", stats)
        self.assertEqual(len(stats["recent_update_times_ns"]), 10)
        self.assertLessEqual(stats["min_update_time_ns"], stats["max_update_time_ns"])

        tdigest.disable_performance_tracking()
        tdigest.update(100.0)
        self.assertNotIn("recent_update_times_ns", tdigest.get_performance_stats())

    def test_performance_tracking_off_by_default(self):
        tdigest = TDigest()
        tdigest.update(1.0)
        self.assertNotIn("avg_update_time_ns", tdigest.get_performance_stats())

    def test_clear_resets_tracking(self):
        tdigest = TDigest()
        tdigest.enable_performance_tracking()
        tdigest.update(1.0)
        tdigest.clear()
        stats = tdigest.get_performance_stats()
        self.assertEqual(stats["items_processed"], 0)
        self.assertNotIn("avg_update_time_ns", stats)

    def test_interfaces(self):
        tdigest = TDigest()
        self.assertIsInstance(tdigest, QuantileEstimator)
        self.assertIsInstance(tdigest, StreamSummary)


class TestTDigestJsonSerialization(unittest.TestCase):
    """Test cases for dictionary and JSON serialization."""

    def _digest(self):
        rng = random.Random(21)
        tdigest = TDigest(delta=30.0, buffered=True, buffer_size=64, scale="k2")
        for _ in range(1000):
            tdigest.update(rng.expovariate(0.5))
        return tdigest

    def test_to_dict(self):
        tdigest = self._digest()
        data = tdigest.to_dict()

        self.assertEqual(data["type"], "TDigest")
        self.assertEqual(data["items_processed"], 1000)
        self.assertEqual(
            data["config"],
            {"delta": 30.0, "buffered": True, "buffer_size": 64, "scale": "k2"},
        )
        self.assertEqual(len(data["centroids"]), len(tdigest.centroids))
        # 1000 = 15 * 64 + 40 values still pending
        self.assertEqual(len(data["buffer"]), 40)

    def test_json_round_trip(self):
        tdigest = self._digest()

        serialized = tdigest.serialize(format="json")
        self.assertIsInstance(serialized, str)
        json.loads(serialized)

        restored = TDigest.deserialize(serialized, format="json")

        self.assertEqual(restored.config, tdigest.config)
        self.assertEqual(restored.centroids, tdigest.centroids)
        self.assertEqual(restored.buffered_values, tdigest.buffered_values)
        self.assertEqual(restored.items_processed, tdigest.items_processed)
        self.assertEqual(restored.quantile(0.9), tdigest.quantile(0.9))

    def test_json_bytes_input(self):
        tdigest = TDigest.from_values([1.0, 2.0])
        restored = TDigest.deserialize(tdigest.serialize().encode("utf-8"))
        self.assertEqual(restored.centroids, tdigest.centroids)

    def test_from_dict_invalid(self):
        valid = TDigest.from_values([1.0, 2.0]).to_dict()

        with self.assertRaises(ValueError):
            TDigest.from_dict({k: v for k, v in valid.items() if k != "type"})
        with self.assertRaises(ValueError):
            TDigest.from_dict(dict(valid, type="HyperLogLog"))
        with self.assertRaises(ValueError):
            TDigest.from_dict({k: v for k, v in valid.items() if k != "centroids"})
        with self.assertRaises(ValueError):
            TDigest.from_dict(dict(valid, centroids=[{"count": 0, "mean": 1.0}]))
        with self.assertRaises(ValueError):
            TDigest.from_dict(dict(valid, buffer=[1.0, math.nan]))
        with self.assertRaises(ValueError):
            TDigest.from_dict(dict(valid, config={"delta": -1.0}))

    def test_unsupported_format(self):
        tdigest = TDigest()
        with self.assertRaises(ValueError):
            tdigest.serialize(format="xml")
        with self.assertRaises(ValueError):
            TDigest.deserialize("{}", format="xml")


class TestTDigestLogging(unittest.TestCase):
    """Test cases for debug logging."""

    def test_flush_is_logged(self):
        tdigest = TDigest(delta=10.0, buffered=True, buffer_size=3)
        with self.assertLogs("tiny_digest.algorithms.tdigest", level="DEBUG") as logs:
            for v in (1.0, 2.0, 3.0):
                tdigest.update(v)
        self.assertTrue(any("Flushed 3 buffered values" in m for m in logs.output))

    def test_compression_is_logged(self):
        tdigest = TDigest(delta=10.0)
        with self.assertLogs("tiny_digest.algorithms.centroid", level="DEBUG") as logs:
            tdigest.update(1.0)
        self.assertTrue(any("Compressed 1 centroids into 1" in m for m in logs.output))

    def test_skipped_value_is_logged(self):
        tdigest = TDigest()
        with self.assertLogs("tiny_digest.algorithms.tdigest", level="DEBUG") as logs:
            tdigest.update(float("nan"))
        self.assertTrue(any("non-finite" in m for m in logs.output))


if __name__ == "__main__":
    unittest.main()
