"""
Example of estimating quantiles of a stream with tiny-digest.

This example feeds latency-like samples into buffered and unbuffered
t-digests, merges digests built on separate "nodes", and ships one digest
through the binary codec.
"""

import logging
import random
import time

from tiny_digest import DigestConfig, TDigest


def generate_latencies(n, seed):
    """Simulate request latencies in milliseconds with a long tail."""
    rng = random.Random(seed)
    for _ in range(n):
        if rng.random() < 0.02:
            yield rng.uniform(200, 1000)  # Slow requests
        else:
            yield rng.lognormvariate(3.0, 0.4)


def exact_quantile(sorted_values, q):
    index = min(int(q * len(sorted_values)), len(sorted_values) - 1)
    return sorted_values[index]


def demonstrate_basic_digest():
    """Compare digest estimates with exact quantiles."""
    print("\n=== Basic T-Digest Demo ===")

    values = list(generate_latencies(50000, seed=1))
    digest = TDigest(delta=100.0, buffered=True, buffer_size=500)

    start = time.time()
    for v in values:
        digest.update(v)
    elapsed = time.time() - start

    print(f"Processed {digest.count()} values in {elapsed:.2f}s")
    print(f"Centroids kept: {len(digest.centroids)}")

    sorted_values = sorted(values)
    print(f"\n{'Quantile':>10} {'Exact':>12} {'Estimate':>12}")
    for q in (0.5, 0.9, 0.95, 0.99, 0.999):
        print(
            f"{q:>10} {exact_quantile(sorted_values, q):>12.2f} "
            f"{digest.quantile(q):>12.2f}"
        )


def demonstrate_merging():
    """Summarize separate streams and merge the digests."""
    print("\n=== Merging Digests Demo ===")

    nodes = []
    for node_id in range(4):
        digest = TDigest(delta=100.0)
        for v in generate_latencies(5000, seed=10 + node_id):
            digest.update(v)
        nodes.append(digest)
        print(f"  Node {node_id}: {digest.count()} values, p99={digest.quantile(0.99):.2f}")

    combined = TDigest(delta=100.0)
    for digest in nodes:
        combined.merge_with(digest)

    print(f"\nCombined: {combined.count()} values in {len(combined.centroids)} centroids")
    print(f"Combined p50={combined.quantile(0.5):.2f}, p99={combined.quantile(0.99):.2f}")


def demonstrate_transport():
    """Encode a digest to bytes and decode it on the receiving side."""
    print("\n=== Binary Codec Demo ===")

    digest = TDigest(delta=50.0)
    for v in generate_latencies(10000, seed=99):
        digest.update(v)

    payload = digest.to_bytes()
    print(f"Encoded {len(digest.centroids)} centroids into {len(payload)} bytes")

    # Configuration is not on the wire, the receiver supplies its own
    received = TDigest.from_bytes(payload, config=DigestConfig(delta=50.0))
    print(f"Decoded digest count: {received.count()}")
    print(f"Same p95 after round trip: {received.quantile(0.95) == digest.quantile(0.95)}")


def demonstrate_scales():
    """Compare centroid counts and tail estimates for each scale function."""
    print("\n=== Scale Function Demo ===")

    values = list(generate_latencies(20000, seed=5))
    for scale in ("k0", "k1", "k2"):
        digest = TDigest(delta=100.0, buffered=True, buffer_size=1000, scale=scale)
        for v in values:
            digest.update(v)
        print(
            f"  {scale}: {len(digest.centroids):>3} centroids, "
            f"p99.9={digest.quantile(0.999):.2f}"
        )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    demonstrate_basic_digest()
    demonstrate_merging()
    demonstrate_transport()
    demonstrate_scales()
