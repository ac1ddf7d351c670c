"""Exception types raised by the contribution estimators."""

from __future__ import annotations


class DimensionMismatch(ValueError):
    """Gene (or sample) axes of counts and ambient profile do not align."""


class InvalidControlSet(ValueError):
    """Control genes are empty, unresolvable, or carry no ambient signal."""


class NumericalNonConvergence(RuntimeError):
    """The scaling-factor search failed to bracket or narrow a valid value."""
