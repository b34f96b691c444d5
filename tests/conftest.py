"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import logging

import pytest
import structlog

from tagpack import BaseMessage, FixedFloat, FixedInt

# Keep scratch-region debug events out of test output
structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.INFO))


class Character(BaseMessage):
    """Game character record used across tests."""

    x: float = FixedFloat(bits=32)
    y: float = FixedFloat(bits=32)
    name: str
    id: int = FixedInt(bits=64, signed=False)


@pytest.fixture
def character() -> Character:
    """Sample record with float32, string and uint64 fields."""
    return Character(x=3.5, y=6123.25, name="Ziggy", id=2**64 - 1)


@pytest.fixture
def sample_payload() -> bytes:
    """Sample binary payload for testing."""
    return b"Hello, tagpack world!"
