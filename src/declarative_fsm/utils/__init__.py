"""Utility helpers for declarative_fsm."""

from .merge import deep_merge

__all__ = ["deep_merge"]
