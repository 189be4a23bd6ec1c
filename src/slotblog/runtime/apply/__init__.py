# src/slotblog/runtime/apply/__init__.py
"""Domain-specific apply modules.

Each module exposes an `apply_<domain>(state, env)` that returns a result
dict for tx types it claims and None otherwise.

NOTE: Keep this package import-safe (no imports that require domain_apply).
"""

from __future__ import annotations

__all__ = [
    "blog",
    "accounts",
]
