"""Benchmark nearest-neighbour query latency against a brute-force scan.

Run from the repository root::

    python -m benchmarks.queries --dimension 8 --tree-points 16384 --queries 1024
"""

from __future__ import annotations

import argparse
import time
from dataclasses import asdict, dataclass
from typing import Tuple

import numpy as np
from numpy.random import default_rng

from kdtreex.algo import build_tree, nearest_neighbor
from kdtreex.core.tree import KDTree
from tests.utils.datasets import brute_force_nearest, labelled_points


@dataclass(frozen=True)
class QueryBenchmarkResult:
    tree_points: int
    dimension: int
    tree_height: int
    queries: int
    build_seconds: float
    elapsed_seconds: float
    latency_ms: float
    queries_per_second: float
    brute_force_seconds: float
    mismatches: int


def _build(
    *, dimension: int, tree_points: int, seed: int
) -> Tuple[KDTree, np.ndarray, float]:
    rng = default_rng(seed)
    points, ids = labelled_points(rng, tree_points, dimension)
    start = time.perf_counter()
    tree = build_tree(points, ids)
    build_seconds = time.perf_counter() - start
    return tree, points, build_seconds


def benchmark_nearest_latency(
    *,
    dimension: int,
    tree_points: int,
    query_count: int,
    seed: int,
    verify: bool = True,
) -> QueryBenchmarkResult:
    tree, points, build_seconds = _build(
        dimension=dimension, tree_points=tree_points, seed=seed
    )
    queries = default_rng(seed + 1).standard_normal(size=(query_count, dimension))

    start = time.perf_counter()
    hits = [nearest_neighbor(tree, query) for query in queries]
    elapsed = time.perf_counter() - start

    brute_seconds = 0.0
    mismatches = 0
    if verify:
        brute_start = time.perf_counter()
        expected = [brute_force_nearest(points, query) for query in queries]
        brute_seconds = time.perf_counter() - brute_start
        for hit, (_, distance) in zip(hits, expected):
            if not np.isclose(hit.distance_squared, distance, rtol=1e-6, atol=1e-9):
                mismatches += 1

    latency = (elapsed / query_count) * 1e3 if query_count else 0.0
    qps = query_count / elapsed if elapsed > 0 else float("inf")
    return QueryBenchmarkResult(
        tree_points=tree_points,
        dimension=dimension,
        tree_height=tree.height(),
        queries=query_count,
        build_seconds=build_seconds,
        elapsed_seconds=elapsed,
        latency_ms=latency,
        queries_per_second=qps,
        brute_force_seconds=brute_seconds,
        mismatches=mismatches,
    )


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Benchmark exact nearest-neighbour query latency for the KD-tree."
    )
    parser.add_argument("--dimension", type=int, default=8, help="Dimensionality of points.")
    parser.add_argument(
        "--tree-points",
        type=int,
        default=16_384,
        help="Number of points the tree is built from.",
    )
    parser.add_argument(
        "--queries",
        type=int,
        default=1024,
        help="Number of query points to evaluate.",
    )
    parser.add_argument("--seed", type=int, default=0, help="Random seed.")
    parser.add_argument(
        "--skip-verify",
        action="store_true",
        help="Skip the brute-force cross-check of every answer.",
    )
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    result = benchmark_nearest_latency(
        dimension=args.dimension,
        tree_points=args.tree_points,
        query_count=args.queries,
        seed=args.seed,
        verify=not args.skip_verify,
    )
    for key, value in asdict(result).items():
        print(f"{key:>20}: {value}")
    if result.mismatches:
        raise SystemExit(f"{result.mismatches} answers disagreed with the brute-force scan")


if __name__ == "__main__":
    main()
