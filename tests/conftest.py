import json
from pathlib import Path

import pytest

from config.settings import Settings
from tests.rf2_builders import (
    DESCRIPTION_HEADER,
    FSN,
    REFSET_HEADER,
    FakeBrowser,
    description_row,
    refset_row,
    write_rf2,
)


@pytest.fixture
def fake_browser() -> FakeBrowser:
    return FakeBrowser()


@pytest.fixture
def no_sleep() -> list[float]:
    """Collects requested sleeps instead of sleeping."""
    return []


@pytest.fixture
def release_dir(tmp_path: Path) -> Path:
    """Extracted release with one refset of two concepts, one of them unknown."""
    root = tmp_path / "raw" / "uk_sct2dr_39.0.0_20240925000001Z" / "SnomedCT_UKDrugRF2_PRODUCTION"
    write_rf2(
        root / "Full" / "Refset" / "Content" / "der2_Refset_SimpleFull_GB1000001_20240925.txt",
        REFSET_HEADER,
        [
            refset_row("m1", "20200101", "1", "R1", "C1"),
            refset_row("m2", "20200101", "1", "R1", "C2"),
            refset_row("m2", "20210101", "0", "R1", "C2"),
            refset_row("m3", "20220101", "1", "R1", "C9"),
        ],
    )
    write_rf2(
        root / "Full" / "Terminology" / "sct2_Description_Full-en_GB1000001_20240925.txt",
        DESCRIPTION_HEADER,
        [
            description_row("D1", "20200101", "1", "C1", FSN, "Aspirin"),
            description_row("D2", "20200101", "1", "C2", FSN, "Paracetamol"),
            description_row("DR", "20200101", "1", "R1", FSN, "Analgesics simple refset"),
        ],
    )
    return tmp_path / "raw" / "uk_sct2dr_39.0.0_20240925000001Z"


@pytest.fixture
def definitions_file(tmp_path: Path) -> Path:
    """Seed SNOMED dictionary in the companion project's format."""
    path = tmp_path / "defs.json"
    path.write_text(json.dumps({
        "C1": {"D0": {"t": "Aspirin 300mg tablets", "e": "20150101", "m": 1}},
    }))
    return path


@pytest.fixture
def test_settings(tmp_path: Path, definitions_file: Path, monkeypatch) -> Settings:
    """Settings with test paths overridden and no .env leakage."""
    monkeypatch.chdir(tmp_path)
    return Settings(
        email="user@example.com",
        password="secret",
        access_key_id="key",
        secret_access_key="secret-key",
        account_id="acct",
        files_dir=tmp_path / "files",
        web_dir=tmp_path / "web",
        snomed_definitions_path=definitions_file,
        lookup_delay_min_ms=0,
        lookup_delay_max_ms=0,
    )
