"""Shared fixtures for plangraph tests."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable

import pytest

from plangraph.config import reset_config

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "mysql"

ALL_FIXTURES = sorted(path.stem for path in FIXTURES_DIR.glob("*.json"))


def load_fixture(name: str) -> dict[str, Any]:
    """Load a MySQL EXPLAIN JSON fixture by name."""
    path = FIXTURES_DIR / f"{name}.json"
    return json.loads(path.read_text())


@pytest.fixture
def plan() -> Callable[[str], dict[str, Any]]:
    """Loader for EXPLAIN fixtures: ``plan("single_table")``."""
    return load_fixture


@pytest.fixture(autouse=True)
def _clean_config(monkeypatch: pytest.MonkeyPatch):
    """Isolate tests from PLANGRAPH_* variables and the cached config."""
    for key in list(os.environ):
        if key.startswith("PLANGRAPH_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()
