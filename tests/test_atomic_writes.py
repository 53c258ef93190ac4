"""
Tests for staged, all-or-nothing PEM writes.
"""
from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from pki.errors import OutputWriteError
from storage.atomic import atomic_write_files
from storage.filesystem import write_outputs


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


class TestAtomicWriteSingleFile:
    """atomic_write_files with one (path, content, mode) entry."""

    def test_creates_file(self, tmp_path):
        path = tmp_path / "test.bin"
        atomic_write_files([(path, b"hello world", 0o644)])

        assert path.read_bytes() == b"hello world"

    def test_overwrites_existing(self, tmp_path):
        path = tmp_path / "test.bin"
        path.write_bytes(b"old content")

        atomic_write_files([(path, b"new content", 0o644)])

        assert path.read_bytes() == b"new content"

    def test_no_temp_file_left(self, tmp_path):
        path = tmp_path / "test.bin"
        atomic_write_files([(path, b"content", 0o644)])

        files = list(tmp_path.glob("*"))
        assert len(files) == 1
        assert files[0].name == "test.bin"

    @pytest.mark.parametrize("mode", [0o600, 0o644, 0o640])
    def test_sets_mode(self, tmp_path, mode):
        path = tmp_path / "test.bin"
        atomic_write_files([(path, b"content", mode)])

        assert _mode(path) == mode

    def test_missing_directory_is_an_error(self, tmp_path):
        path = tmp_path / "missing" / "test.bin"

        with pytest.raises(OutputWriteError) as exc_info:
            atomic_write_files([(path, b"content", 0o644)])

        assert exc_info.value.path == str(path)
        assert isinstance(exc_info.value.cause, FileNotFoundError)
        assert not (tmp_path / "missing").exists()


class TestAtomicWriteFiles:
    """Several files publish together or not at all."""

    def test_writes_all(self, tmp_path):
        a, b = tmp_path / "a", tmp_path / "b"
        atomic_write_files([(a, b"A", 0o600), (b, b"B", 0o644)])

        assert a.read_bytes() == b"A"
        assert b.read_bytes() == b"B"
        assert len(list(tmp_path.glob(".*.tmp"))) == 0

    def test_staging_failure_publishes_nothing(self, tmp_path):
        a = tmp_path / "a"
        b = tmp_path / "missing" / "b"

        with pytest.raises(OutputWriteError) as exc_info:
            atomic_write_files([(a, b"A", 0o600), (b, b"B", 0o644)])

        assert exc_info.value.path == str(b)
        assert not a.exists()
        assert list(tmp_path.iterdir()) == []

    def test_rename_failure_discards_remaining(self, tmp_path, monkeypatch):
        a, b = tmp_path / "a", tmp_path / "b"
        real_replace = os.replace
        calls = []

        def flaky_replace(src, dst):
            calls.append(dst)
            if len(calls) == 2:
                raise PermissionError("Simulated rename failure")
            return real_replace(src, dst)

        monkeypatch.setattr("storage.atomic.os.replace", flaky_replace)

        with pytest.raises(OutputWriteError) as exc_info:
            atomic_write_files([(a, b"A", 0o600), (b, b"B", 0o644)])

        assert exc_info.value.path == str(b)
        # First file was already published; the second temp file is gone
        assert a.read_bytes() == b"A"
        assert not b.exists()
        assert len(list(tmp_path.glob(".*.tmp"))) == 0


class TestWriteOutputs:
    """Key and request files with their permission bits."""

    def test_modes(self, tmp_path):
        key, csr = tmp_path / "key.pem", tmp_path / "req.csr"
        write_outputs(str(key), b"KEY", str(csr), b"CSR")

        assert _mode(key) == 0o600
        assert _mode(csr) == 0o644
        assert key.read_bytes() == b"KEY"
        assert csr.read_bytes() == b"CSR"

    def test_key_is_published_before_csr(self, tmp_path, monkeypatch):
        key, csr = tmp_path / "key.pem", tmp_path / "req.csr"
        real_replace = os.replace
        order = []

        def recording_replace(src, dst):
            order.append(Path(dst).name)
            return real_replace(src, dst)

        monkeypatch.setattr("storage.atomic.os.replace", recording_replace)
        write_outputs(str(key), b"KEY", str(csr), b"CSR")

        assert order == ["key.pem", "req.csr"]

    def test_no_orphaned_csr_when_key_dir_missing(self, tmp_path):
        key = tmp_path / "missing" / "key.pem"
        csr = tmp_path / "req.csr"

        with pytest.raises(OutputWriteError):
            write_outputs(str(key), b"KEY", str(csr), b"CSR")

        assert not csr.exists()

    def test_same_path_for_key_and_csr_is_refused(self, tmp_path):
        both = tmp_path / "both.pem"

        with pytest.raises(OutputWriteError) as exc_info:
            write_outputs(str(both), b"KEY", str(tmp_path / "." / "both.pem"), b"CSR")

        assert "same file as the private key" in str(exc_info.value)
        assert list(tmp_path.iterdir()) == []
