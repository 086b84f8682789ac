"""Tests for atomic stage-output writes."""

from pathlib import Path
from unittest.mock import patch

import pytest

from drug_refset.fileio import part_path, write_bytes_atomic, write_text_atomic


def test_write_creates_parent_directories(tmp_path: Path) -> None:
    target = tmp_path / "a" / "b" / "routes.json"
    write_text_atomic(target, "[]")
    assert target.read_text() == "[]"
    assert not part_path(target).exists()


def test_interrupted_write_keeps_previous_content(tmp_path: Path) -> None:
    target = tmp_path / "code-lookup.json"
    target.write_text('{"C1": {"t": "Aspirin", "e": "20200101"}}')

    with patch.object(Path, "replace", side_effect=OSError("disk full")):
        with pytest.raises(OSError, match="disk full"):
            write_bytes_atomic(target, b'{"C1": {"t": "Asp')

    assert target.read_text() == '{"C1": {"t": "Aspirin", "e": "20200101"}}'
    assert not part_path(target).exists()
