"""
Filter Module - Black Box Interface

Purpose: Select task records from a listing
Interface: build_filters(), matches(), Predicate
Hidden: Regex compilation, state grouping, default selection

Predicates are pure functions of a TaskRecord and may be combined freely.
"""

from .filters import (
    Predicate,
    accept_all,
    build_filters,
    id_filter,
    matches,
    name_filter,
    state_filter,
)

__all__ = [
    "Predicate",
    "accept_all",
    "build_filters",
    "id_filter",
    "matches",
    "name_filter",
    "state_filter",
]
