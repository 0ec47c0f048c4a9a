"""Workload driver that builds, searches and ranks a random graph."""

from __future__ import annotations

import argparse
import random
import sys
import threading
import time
from contextlib import contextmanager
from typing import Iterator, Sequence

from .graph import IN, OUT, Edge, GraphOptions, GraphSimulator, Vertex
from .kv_engines import AbortError, NotFoundError

# Default seed of the 64-bit Mersenne Twister the workload was designed around.
_DEFAULT_SEED = 5489


def _make_vertex(vertex_id: int, length: int) -> Vertex:
    return Vertex(vertex_id, bytes([vertex_id % 26 + ord("a")]) * length)


def _make_edge(src: Vertex, dst: Vertex, direction: int, length: int) -> Edge:
    info = bytes([src.id % 26 + ord("b")]) * length
    return Edge(src=src, dst=dst, out_direction=direction, edge_info=info)


def construct_graph(
    simulator: GraphSimulator,
    vertex_count: int,
    id_range: int,
    vertex_info_len: int,
    edge_info_len: int,
    rng: random.Random,
) -> None:
    """Add random vertex pairs joined by an out-edge and an in-edge.

    Each round adds two vertices, so ``vertex_count`` is consumed two at a
    time. An ``id_range`` of zero leaves ids unbounded 64-bit values.
    """
    remaining = vertex_count
    while remaining > 0:
        first_id = rng.getrandbits(64)
        second_id = rng.getrandbits(64)
        if id_range:
            first_id %= id_range
            second_id %= id_range

        src = _make_vertex(first_id, vertex_info_len)
        dst = _make_vertex(second_id, vertex_info_len)
        simulator.add_vertex(src)
        simulator.add_vertex(dst)

        for direction in (OUT, IN):
            try:
                simulator.add_edge(_make_edge(src, dst, direction, edge_info_len))
            except AbortError:
                pass
        remaining -= 2


def search_with_degree(
    simulator: GraphSimulator,
    id_range: int,
    start_count: int,
    depth: int,
    rng: random.Random,
) -> int:
    """Run breadth-first searches from random existing vertices.

    Random ids are drawn until one names a stored vertex, for each of the
    ``start_count`` starting points. Returns how many searches succeeded.
    """
    if id_range <= 0:
        raise ValueError("id range must be positive")
    starts = []
    for _ in range(start_count):
        while True:
            try:
                starts.append(simulator.get_vertex(rng.getrandbits(64) % id_range))
            except NotFoundError:
                continue
            break

    correct = sum(simulator.bfs_search(starts, depth))
    print(f" success bfs search count : {correct}")
    return correct


def report_top_n(simulator: GraphSimulator, n: int) -> list[tuple[Vertex, int]]:
    """Print and return the ``n`` vertices with the most in-edges."""
    try:
        ranking = simulator.top_n(n)
    except AbortError:
        print("Get the GraphData TopN Failed.", end="")
        return []
    print("TopN: ")
    for vertex, in_edges in ranking:
        print(f"vertex : {vertex.id}InEdges : {in_edges}")
    return ranking


@contextmanager
def _timed(timings: dict[str, float], name: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        timings.setdefault(name, time.perf_counter() - start)


def _print_latencies(timings: dict[str, float]) -> None:
    if not timings:
        print("bench_timer is empty, please check your workload.", end="")
        return
    for name, seconds in timings.items():
        print(f"benchmark : {name}  timeval : {seconds:f} s")


def _positive(text: str) -> int:
    value = int(text)
    if value <= 0:
        raise argparse.ArgumentTypeError("must be positive")
    return value


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Graph storage workload benchmark.")
    p.add_argument("--construct", action=argparse.BooleanOptionalAction, default=True,
                   help="Construct the graph.")
    p.add_argument("--search_degree", action=argparse.BooleanOptionalAction, default=False,
                   help="Use the bfs search degree algorithm.")
    p.add_argument("--topn", action=argparse.BooleanOptionalAction, default=False,
                   help="Use the topn algorithm.")
    p.add_argument("--topn_num", type=int, default=10, help="How many vertices topn reports.")
    p.add_argument("--vertex_nums", type=int, default=10_000_000,
                   help="The number of vertices in the graph.")
    p.add_argument("--vertex_id_range", type=int, default=30_000_000,
                   help="The range of the vertex ids.")
    p.add_argument("--client_threads", type=_positive, default=32,
                   help="The number of threads running the workload.")
    p.add_argument("--engine_name", default="memory", help="The name of the engine.")
    p.add_argument("--vertex_info_len", type=int, default=64,
                   help="Length of the vertex property.")
    p.add_argument("--edge_info_len", type=int, default=128,
                   help="Length of the edge property.")
    p.add_argument("--degree_level", type=int, default=2, help="The depth of the search.")
    p.add_argument("--degree_nums", type=int, default=128,
                   help="The number of starting vertices for the degree search.")
    p.add_argument("--topn_collection", default="kvdk_collection",
                   help="Collection name used for sorted scans.")
    p.add_argument("--seed", type=int, default=_DEFAULT_SEED, help="Random seed.")
    return p


def main(argv: Sequence[str] | None = None) -> int:
    """Run the benchmark described by the command-line flags."""
    args = _parser().parse_args(argv)
    try:
        simulator = GraphSimulator(args.engine_name, GraphOptions())
    except KeyError as exc:
        print(f"cannot create engine: {exc.args[0]}", file=sys.stderr)
        return 1

    rng = random.Random(args.seed)
    timings: dict[str, float] = {}

    if args.construct:
        per_thread = args.vertex_nums // args.client_threads
        with _timed(timings, "GraphDataConstruct"):
            workers = [
                threading.Thread(
                    target=construct_graph,
                    args=(simulator, per_thread, args.vertex_id_range,
                          args.vertex_info_len, args.edge_info_len, rng),
                )
                for _ in range(args.client_threads)
            ]
            for worker in workers:
                worker.start()
            for worker in workers:
                worker.join()

    if args.search_degree:
        with _timed(timings, "GraphDataSearchWithDegree"):
            search_with_degree(simulator, args.vertex_id_range, args.degree_nums,
                               args.degree_level, rng)

    if args.topn:
        with _timed(timings, "GraphDataTopN"):
            report_top_n(simulator, args.topn_num)

    _print_latencies(timings)
    return 0


if __name__ == "__main__":
    sys.exit(main())