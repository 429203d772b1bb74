"""Shared test fixtures for specway.

Provides the raw fixture documents, ready-built API definitions and an
isolated configuration environment.  These fixtures are automatically
discovered by pytest and available to all test modules without explicit
imports.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Callable

import pytest

from specway import ApiDefinition, create

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Config isolation (autouse)
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolate_specway_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear SPECWAY_* variables so the host environment never leaks in."""
    for var in ["SPECWAY_ALLOW_REMOTE_REFS", "SPECWAY_FETCH_TIMEOUT", "SPECWAY_SAMPLE_SEED"]:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Change the working directory to tmp_path for ``./specway.json`` tests.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Raw documents
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def _petstore_document() -> dict[str, Any]:
    with open(FIXTURES_DIR / "petstore.json") as f:
        return json.load(f)


@pytest.fixture
def petstore_raw(_petstore_document: dict[str, Any]) -> dict[str, Any]:
    """A fresh copy of the petstore document, safe to modify."""
    return copy.deepcopy(_petstore_document)


@pytest.fixture
def relative_refs_path() -> Path:
    """Entry file of the petstore split across JSON and YAML files."""
    return FIXTURES_DIR / "relative-refs" / "swagger.yaml"


# ---------------------------------------------------------------------------
# API definitions
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore(petstore_raw: dict[str, Any]) -> ApiDefinition:
    """The petstore document built into an ApiDefinition."""
    return create(petstore_raw)


@pytest.fixture
def build_api() -> Callable[[dict[str, Any]], ApiDefinition]:
    """Factory building an ApiDefinition from a (modified) document."""

    def _build(document: dict[str, Any]) -> ApiDefinition:
        return create(document)

    return _build
