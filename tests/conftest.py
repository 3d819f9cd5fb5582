"""Pytest configuration and shared fixtures for declarative_fsm tests."""

import sys
from pathlib import Path

import pytest

# Add src to path for testing
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


def set_x(name):
    """Action returning a params fragment."""
    return {"x": 1}


@pytest.fixture
def linear_config():
    """init --go--> mid --finish--> end, with an action on mid."""
    return {
        "init": {"transitions": {"go": "mid"}},
        "mid": {"transitions": {"finish": "end"}, "action": set_x},
        "end": {},
    }


@pytest.fixture
def wizard_config():
    """A small wizard with a loop and a terminal state."""
    return {
        "init": {"transitions": {"start": "details"}},
        "details": {"transitions": {"next": "confirm", "cancel": "cancelled"}},
        "confirm": {"transitions": {"back": "details", "submit": "done"}},
        "done": {},
        "cancelled": {},
    }
