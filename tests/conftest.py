"""Shared fixtures for the accelerator tool tests."""

import sys
from pathlib import Path

import pytest

# Add project root to path for imports
_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import config_manager
import conflict_checker
import context_extractor

PO_HEADER = (
    'msgid ""\n'
    'msgstr ""\n'
    '"Content-Type: text/plain; charset=UTF-8\\n"\n'
    "\n"
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep a developer's config.ini and environment out of the tests."""
    monkeypatch.delenv("ACCELERATOR_TAG", raising=False)
    monkeypatch.delenv("ACCELERATOR_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)
    manager = config_manager.ConfigManager(str(tmp_path / "config.ini"))
    monkeypatch.setattr(context_extractor, "config", manager)
    monkeypatch.setattr(conflict_checker, "config", manager)
    return manager


@pytest.fixture
def write_po(tmp_path):
    """Write a PO file made of the standard header plus the given entries."""

    def _write(body: str, name: str = "fr.po") -> Path:
        path = tmp_path / name
        path.write_text(PO_HEADER + body, encoding="utf-8")
        return path

    return _write