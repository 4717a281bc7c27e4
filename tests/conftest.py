"""
tests.conftest

Pytest fixtures shared across the suite.
"""

from __future__ import annotations

import pytest

from tests.helpers import Harness


@pytest.fixture
def harness() -> Harness:
    return Harness()
