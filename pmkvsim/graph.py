"""A small graph store laid out on top of a key-value engine."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from .coding import encode_fixed32, encode_fixed64, take_fixed32, take_fixed64
from .kv_engines import AbortError, KVEngine, NotFoundError, create_engine
from .top_n import TopN

logger = logging.getLogger(__name__)

_VERTEX_HEADER = 4 + 8
_OUT_SUFFIX = b"_O"
_IN_SUFFIX = b"_I"
_NO_DIRECTION_SUFFIX = b"_N"

IN = 0
OUT = 1
NO_DIRECTION = 2


@dataclass
class GraphOptions:
    """Tunables for the graph simulator."""

    # Maximum number of edges kept in a single stored value.
    max_edge_nums_per_value: int = 2000


@dataclass(frozen=True, order=True)
class Vertex:
    """A vertex: a numeric id plus an opaque property blob."""

    id: int = 0
    info: bytes = b""

    @property
    def size(self) -> int:
        """Encoded size in bytes."""
        return _VERTEX_HEADER + len(self.info)

    def encode(self) -> bytes:
        """Encode as size (u32), id (u64) and the info bytes."""
        return encode_fixed32(8 + len(self.info)) + encode_fixed64(self.id) + self.info

    @classmethod
    def decode_from(cls, data: bytes) -> tuple[Vertex, bytes]:
        """Decode a leading vertex; return it with the bytes that follow."""
        if len(data) < _VERTEX_HEADER:
            raise ValueError("input too short for a vertex")
        vertex_size, rest = take_fixed32(data)
        body = rest[:vertex_size]
        vertex_id, info = take_fixed64(body)
        return cls(vertex_id, info), rest[vertex_size:]


@dataclass
class Edge:
    """A directed or undirected edge between two vertices.

    ``out_direction`` is 0 for src <-- dst, 1 for src --> dst and
    2 for an undirected edge.
    """

    src: Vertex = field(default_factory=Vertex)
    dst: Vertex = field(default_factory=Vertex)
    weight: int = 0
    out_direction: int = OUT
    edge_info: bytes = b""

    @property
    def size(self) -> int:
        """Encoded size in bytes, not counting the leading size field."""
        return self.src.size + self.dst.size + 4 + 4 + len(self.edge_info)

    def encode(self) -> bytes:
        """Encode as size, src, weight, direction, dst and edge info."""
        return b"".join(
            (
                encode_fixed32(self.size),
                self.src.encode(),
                encode_fixed32(self.weight),
                encode_fixed32(self.out_direction),
                self.dst.encode(),
                self.edge_info,
            )
        )

    @classmethod
    def decode_from(cls, data: bytes) -> tuple[Edge, bytes]:
        """Decode a leading edge; return it with the bytes that follow."""
        if len(data) <= 8:
            logger.warning("Edge decode failed: input too short")
            raise AbortError("input too short for an edge")
        try:
            edge_size, rest = take_fixed32(data)
            body = rest[:edge_size]
            src, body = Vertex.decode_from(body)
            weight, body = take_fixed32(body)
            direction, body = take_fixed32(body)
            dst, info = Vertex.decode_from(body)
        except ValueError as exc:
            raise AbortError(f"malformed edge: {exc}") from exc
        return cls(src, dst, weight, direction, info), rest[edge_size:]


@dataclass
class EdgeList:
    """The edges stored together under one key."""

    edges: list[Edge] = field(default_factory=list)

    def encode(self) -> bytes:
        """Encode as a u64 count followed by each edge."""
        if not self.edges:
            raise ValueError("cannot encode an empty edge list")
        return encode_fixed64(len(self.edges)) + b"".join(e.encode() for e in self.edges)

    @classmethod
    def decode(cls, data: bytes) -> EdgeList:
        """Decode a whole edge list; trailing bytes are an error."""
        try:
            count, rest = take_fixed64(data)
        except ValueError as exc:
            raise AbortError(f"malformed edge list: {exc}") from exc
        edges = []
        for _ in range(count):
            try:
                edge, rest = Edge.decode_from(rest)
            except AbortError:
                logger.warning("Edge list decode failed")
                raise
            edges.append(edge)
        if rest:
            logger.warning("Edge list decode failed: input is longer")
            raise AbortError("trailing bytes after edge list")
        return cls(edges)

    def __len__(self) -> int:
        return len(self.edges)


def vertex_key(vertex: Vertex) -> bytes:
    """Key under which a vertex's info is stored."""
    return str(vertex.id).encode()


def out_edge_key(vertex: Vertex) -> bytes:
    """Key of the out-edge list of ``vertex``."""
    return vertex.encode() + _OUT_SUFFIX


def in_edge_key(vertex: Vertex) -> bytes:
    """Key of the in-edge list of ``vertex``."""
    return vertex.encode() + _IN_SUFFIX


def no_direction_key(vertex: Vertex) -> bytes:
    """Key of the undirected edge list of ``vertex``."""
    return vertex.encode() + _NO_DIRECTION_SUFFIX


def edge_key_vertex(key: bytes) -> Vertex:
    """Recover the vertex that an edge-list key was built from."""
    return Vertex.decode_from(key)[0]


def is_in_edge_key(key: bytes) -> bool:
    """Whether ``key`` names an in-edge list."""
    return len(key) >= 2 and key[-2:] == _IN_SUFFIX


def is_out_edge_key(key: bytes) -> bool:
    """Whether ``key`` names an out-edge list."""
    return len(key) >= 2 and key[-2:] == _OUT_SUFFIX


def _edge_list_key(edge: Edge) -> bytes:
    if edge.out_direction == OUT:
        return out_edge_key(edge.src)
    if edge.out_direction == IN:
        return in_edge_key(edge.dst)
    if edge.out_direction == NO_DIRECTION:
        return no_direction_key(edge.src)
    raise ValueError(f"invalid edge direction {edge.out_direction}")


class GraphSimulator:
    """Graph operations stored in a named key-value engine."""

    def __init__(self, engine_name: str = "memory", options: GraphOptions | None = None) -> None:
        self.options = options or GraphOptions()
        self.engine: KVEngine = create_engine(engine_name)
        logger.info("Created engine %s", engine_name)

    def add_vertex(self, vertex: Vertex) -> None:
        """Store a vertex's info under its id."""
        self.engine.put(vertex_key(vertex), vertex.info)

    def get_vertex(self, vertex_id: int) -> Vertex:
        """Look a vertex up by id; raises :class:`NotFoundError`."""
        return Vertex(vertex_id, self.engine.get(str(vertex_id).encode()))

    def add_edge(self, edge: Edge) -> None:
        """Add an edge, or update weight and info of an existing src/dst pair."""
        key = _edge_list_key(edge)
        try:
            value = self.engine.get(key)
        except NotFoundError:
            edge_list = EdgeList([edge])
            existing = False
        else:
            existing = True
            edge_list = EdgeList.decode(value)
            for item in edge_list.edges:
                if item.src == edge.src and item.dst == edge.dst:
                    item.weight = edge.weight
                    item.edge_info = edge.edge_info
                    break
            else:
                edge_list.edges.append(edge)

        if len(edge_list) > self.options.max_edge_nums_per_value:
            logger.warning("Edge list overflow")
            raise AbortError("edge list overflow")

        encoded = edge_list.encode()
        if existing:
            self.remove_edge(edge)
        self.engine.put(key, encoded)

    def get_edge(self, src: Vertex, dst: Vertex, direction: int) -> Edge:
        """Find the edge between ``src`` and ``dst`` with the given direction.

        Only the first edge of the stored list is considered.
        """
        if direction < 0 or direction > 2:
            raise AbortError(f"invalid edge direction {direction}")
        key = out_edge_key(src) if direction == OUT else in_edge_key(dst)
        edges = EdgeList.decode(self.engine.get(key)).edges
        if edges:
            first = edges[0]
            if first.src == src and first.dst == dst and first.out_direction == direction:
                return first
        raise NotFoundError((src, dst, direction))

    def all_in_edges(self, dst: Vertex) -> EdgeList:
        """All edges stored as in-edges of ``dst``."""
        return EdgeList.decode(self.engine.get(in_edge_key(dst)))

    def all_out_edges(self, src: Vertex) -> EdgeList:
        """All edges stored as out-edges of ``src``."""
        return EdgeList.decode(self.engine.get(out_edge_key(src)))

    def remove_vertex(self, vertex: Vertex) -> None:
        """Delete a vertex's info."""
        self.engine.delete(vertex_key(vertex))

    def remove_edge(self, edge: Edge) -> None:
        """Delete the whole edge list that ``edge`` belongs to."""
        self.engine.delete(_edge_list_key(edge))

    def top_n(self, k: int) -> list[tuple[Vertex, int]]:
        """The ``k`` vertices with the most in-edges, most first."""
        best: TopN[tuple[Vertex, int]] = TopN(k, key=lambda pair: pair[1])
        for key, value in self.engine.items():
            if not is_in_edge_key(key):
                continue
            best.push((edge_key_vertex(key), len(EdgeList.decode(value))))
        if len(best) == 0:
            raise AbortError("no in-edge lists found")
        return best.extract()

    def bfs_search(self, vertices: list[Vertex], depth: int) -> list[bool]:
        """Breadth-first search from each vertex; report which succeeded."""
        results = []
        for vertex in vertices:
            try:
                self._bfs(vertex, depth)
            except (NotFoundError, AbortError):
                results.append(False)
            else:
                results.append(True)
        return results

    def _bfs(self, vertex: Vertex, depth: int) -> None:
        queue: deque[Vertex] = deque([vertex])
        visited = {vertex}
        level = 1
        while queue:
            for _ in range(len(queue)):
                current = queue.popleft()
                try:
                    edges = self.all_out_edges(current).edges
                except (NotFoundError, AbortError):
                    if level == 1:
                        raise
                    edges = []
                if level > depth:
                    continue
                for edge in edges:
                    neighbour = edge.src
                    if neighbour in visited:
                        continue
                    queue.append(neighbour)
                    visited.add(neighbour)
            level += 1