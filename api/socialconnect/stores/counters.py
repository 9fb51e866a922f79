"""Helpers for denormalized counter columns."""

from __future__ import annotations

from sqlalchemy import case
from sqlalchemy.orm import InstrumentedAttribute


def clamp_count(value: int | None) -> int:
    """Counters are never negative, whatever arithmetic produced them."""
    if value is None:
        return 0
    return max(0, int(value))


def increment(column: InstrumentedAttribute, by: int = 1):
    return column + by


def decrement(column: InstrumentedAttribute, by: int = 1):
    """SQL expression lowering ``column`` by ``by`` without going below zero."""
    return case((column >= by, column - by), else_=0)
