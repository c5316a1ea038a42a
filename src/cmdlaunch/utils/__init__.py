"""Shared utilities: naming helpers and asyncio concurrency primitives.

Rules
-----
* No command semantics.
* No direct filesystem I/O.
* Importable by any layer.
"""
