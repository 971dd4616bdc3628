"""State/store layer.

This package is the single source of truth for the in-memory trip tree:
the store itself, the pure transforms applied by the dispatcher, and the
ordering rules for activities and plan items.
"""
