# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest fixtures for suite",
#   "sections": [
#     {
#       "id": "reset-process-defaults",
#       "name": "reset_process_defaults",
#       "anchor": "function-reset-process-defaults",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

Puts ``src`` on ``sys.path`` so the suite runs from a plain checkout, exposes
the HTTP mocking fixtures globally and resets the process-default client and
sender around every test.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Generator

import pytest

# --- Globals ---

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from tests.fixtures.http_mocking import (  # noqa: E402,F401
    http_mock,
    scripted_client,
)


@pytest.fixture(autouse=True)
def reset_process_defaults() -> Generator[None, None, None]:
    """Drop the lazily created default client and sender after each test."""
    from HttpRelay.Forwarding.net import reset_default_sender, reset_http_client

    yield
    reset_default_sender()
    reset_http_client()
