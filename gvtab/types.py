"""Shared type definitions and utilities for gvtab."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

# Reusable decorator for immutable, slot-based dataclasses.
frozen_slots = dataclass(frozen=True, slots=True)

# Semantic alias for CLI positional path arguments.
Paths = tuple[str, ...]


class ExitCode(IntEnum):
    """Process exit status reported by the CLI."""

    OK = 0
    RESOLUTION_FAILURE = 1
    DISPATCH_FAILURE = 2
    USAGE = 64  # sysexits EX_USAGE
