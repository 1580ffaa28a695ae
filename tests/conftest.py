from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the project root is on sys.path for imports in tests
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from board_config import standard_board_config  # noqa: E402
from session import Session  # noqa: E402


@pytest.fixture
def seven_players() -> Session:
    return Session(standard_board_config(7))


@pytest.fixture
def five_players() -> Session:
    return Session(standard_board_config(5))
