"""Graph storage simulation over key-value engines, and linked-list recovery primitives."""

__version__ = "0.1.0"

__all__ = [
    "coding",
    "top_n",
    "kv_engines",
    "graph",
    "configs",
    "generic_list",
    "list_builder",
    "bench",
]