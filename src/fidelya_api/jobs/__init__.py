"""Recurring job entrypoints for membership maintenance."""

from .membership import run_membership_standing_sweep  # noqa: F401

__all__ = ["run_membership_standing_sweep"]
