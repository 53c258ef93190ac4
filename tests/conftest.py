"""
Shared pytest fixtures.

Key generation is the slow part of every test here, so one 2048-bit key is
generated per session and reused wherever the test does not care about
freshness.  Tests that exercise the CLI end to end pass ``--bits 2048``
explicitly to stay well under the 4096-bit default.
"""
from __future__ import annotations

from pathlib import Path

import pytest

from pki.crypto import generate_rsa_key
from pki.options import CsrOptions


@pytest.fixture(scope="session")
def rsa_key():
    return generate_rsa_key(key_size=2048)


@pytest.fixture()
def make_options(tmp_path: Path):
    """Build CsrOptions with test paths; keyword arguments override fields."""

    def _make(**overrides) -> CsrOptions:
        fields = {
            "cn": "example.com",
            "rsa_bits": 2048,
            "out_key": str(tmp_path / "key.pem"),
            "out_csr": str(tmp_path / "req.csr"),
        }
        fields.update(overrides)
        return CsrOptions(**fields)

    return _make


@pytest.fixture()
def clean_env(tmp_path: Path, monkeypatch):
    """Run from an empty directory with no NEW_CSR_* variables set."""
    import os

    for name in list(os.environ):
        if name.upper().startswith("NEW_CSR_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture(autouse=True)
def reset_logging():
    """main() points logging at the test's captured stderr; undo that afterwards."""
    import logging

    import structlog

    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
    root.setLevel(logging.WARNING)
    structlog.reset_defaults()
