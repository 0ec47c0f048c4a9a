# pmkvsim

pmkvsim models a small graph database laid out in a key-value engine, and
the linked-list building blocks a key-value store uses, including the
recovery of lists after an interrupted write.

## Modules

- `pmkvsim.coding`: fixed-width little-endian unsigned integers.
  `encode_fixed32` / `encode_fixed64` return bytes (and raise `ValueError`
  for values that do not fit), `decode_fixed32` / `decode_fixed64` read the
  leading bytes, and `take_fixed32` / `take_fixed64` return a
  `(value, rest)` tuple.
- `pmkvsim.top_n`: `TopN(limit, key=None)`, a bounded min-heap that keeps
  the `limit` items with the largest keys. `push` offers an item,
  `extract` removes and returns the kept items largest first, `reset`
  empties it. A limit of 0 keeps every item.
- `pmkvsim.kv_engines`: the abstract `KVEngine` (`get`, `put`, `delete`,
  `items`), the in-memory `MemoryEngine` whose `items()` yields pairs in
  key order, `EngineFactory` (`register`, `create`), and
  `create_engine(name)`. A missing key raises `NotFoundError`; failed
  operations raise `AbortError`.
- `pmkvsim.graph`: `GraphOptions`, the frozen `Vertex(id, info)`,
  `Edge` (direction 0 is in, 1 is out, 2 is undirected) and `EdgeList`,
  each with a binary encoding; the key helpers `vertex_key`,
  `out_edge_key`, `in_edge_key`, `no_direction_key`, `edge_key_vertex`,
  `is_in_edge_key`, `is_out_edge_key`; and `GraphSimulator`.
- `pmkvsim.configs`: `ImmutableConfigs`, block size and segment block
  count with a validity flag, packed into a fixed 24-byte layout by
  `to_bytes` / `from_bytes`.
- `pmkvsim.generic_list`: `GenericList`, a doubly linked list whose
  `DLRecord`s live in an `Arena` and link to each other by offset, with
  `ListIterator` for walking and inserting, and the key helpers
  `encode_id`, `decode_id`, `internal_key`, `user_key`.
- `pmkvsim.list_builder`: `GenericListBuilder`, which takes the list and
  element records found in an arena, repairs half-linked elements or sets
  them aside as broken, and rebuilds the lists with `rebuild_lists()`;
  `clean_brokens(deleter)` hands the broken elements to a deleter.

## Using the graph simulator

```python
from pmkvsim.graph import Edge, GraphOptions, GraphSimulator, Vertex

graph = GraphSimulator("memory", GraphOptions())
alice, bob = Vertex(1, b"alice"), Vertex(2, b"bob")
graph.add_vertex(alice)
graph.add_vertex(bob)
graph.add_edge(Edge(src=alice, dst=bob, out_direction=1, edge_info=b"knows"))

print(graph.get_vertex(1))          # Vertex(id=1, info=b'alice')
print(len(graph.all_out_edges(alice)))
```

`add_edge` adds an edge to the list stored for its direction, or updates
weight and info of an edge with the same source and destination.
`get_edge(src, dst, direction)` looks only at the first edge of the stored
list. `remove_edge` deletes the whole edge list the edge belongs to.
`top_n(k)` returns `(vertex, in_edge_count)` pairs for the `k` vertices
with the most in-edges, and raises `AbortError` when there are none.
`bfs_search(vertices, depth)` walks outgoing edges from each start vertex
and returns one boolean per start, false where the start had no out-edges.

## Running the benchmark

```
pmkvsim-bench --help
pmkvsim-bench --vertex_nums 10000 --vertex_id_range 5000 --client_threads 4 --topn
```

The benchmark builds a random graph from `--seed`, can then run degree
searches (`--search_degree`, `--degree_level`, `--degree_nums`) and a
top-N query (`--topn`, `--topn_num`), and prints the time each stage took.

## What it does not do

The only engine registered is `"memory"`; nothing is written to disk, and
other engine names are rejected. Further engines can be added to an
`EngineFactory` by the caller. Likewise, `Arena` keeps records in memory:
it stands in for persistent space, so lists survive only as long as the
process.

## Running the tests

```
pip install .[test]
pytest
```