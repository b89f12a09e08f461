from __future__ import annotations


class EngineError(RuntimeError):
    """Base error for the possession engine."""


class LineupInvariantError(EngineError):
    """Raised when an operation needs players the lineup cannot provide (e.g. empty on-court list)."""


class RosterError(ValueError):
    """Raised when an input roster cannot field a legal team."""


class InvalidSubstitutionError(ValueError):
    """Raised when a user-issued substitution names an illegal in/out pair."""
