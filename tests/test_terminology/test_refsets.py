"""Tests for the Simple Refset Content parser."""

from pathlib import Path

import pytest

from drug_refset.errors import DataIntegrityError
from drug_refset.terminology.refsets import (
    load_refsets,
    parse_refset_rows,
    referenced_concepts,
    summarise_refsets,
)
from tests.rf2_builders import REFSET_HEADER, refset_row, write_rf2


class TestParseRefsetRows:

    def test_latest_effective_time_wins(self) -> None:
        table = parse_refset_rows([
            refset_row("m1", "20200101", "1", "R1", "C1"),
            refset_row("m1", "20220101", "0", "R1", "C1"),
        ])
        membership = table["R1"]["m1"]
        assert membership.effective_time == "20220101"
        assert membership.active is False

    def test_older_row_never_overrides_active_flag(self) -> None:
        """Rows are not guaranteed to be in date order."""
        table = parse_refset_rows([
            refset_row("m1", "20220101", "1", "R1", "C1"),
            refset_row("m1", "20200101", "0", "R1", "C1"),
        ])
        assert table["R1"]["m1"].active is True
        assert table["R1"]["m1"].effective_time == "20220101"

    def test_concept_change_raises(self) -> None:
        with pytest.raises(DataIntegrityError, match="m1"):
            parse_refset_rows([
                refset_row("m1", "20200101", "1", "R1", "C1"),
                refset_row("m1", "20210101", "1", "R1", "C2"),
            ])

    def test_concept_change_raises_even_for_older_row(self) -> None:
        with pytest.raises(DataIntegrityError):
            parse_refset_rows([
                refset_row("m1", "20210101", "1", "R1", "C1"),
                refset_row("m1", "20200101", "1", "R1", "C2"),
            ])

    def test_header_and_empty_component_skipped(self) -> None:
        table = parse_refset_rows([
            REFSET_HEADER.split("\t"),
            refset_row("m1", "20200101", "1", "R1", ""),
            refset_row("m2", "20200101", "1", "R1", "C2"),
        ])
        assert list(table["R1"]) == ["m2"]

    def test_load_from_file(self, tmp_path: Path) -> None:
        p = write_rf2(tmp_path / "refset.txt", REFSET_HEADER, [
            refset_row("m1", "20200101", "1", "R1", "C1"),
            refset_row("m2", "20200101", "1", "R2", "C1"),
        ])
        table = load_refsets(p)
        assert set(table) == {"R1", "R2"}


class TestSummariseRefsets:

    def test_partitions_by_final_active_flag(self) -> None:
        table = parse_refset_rows([
            refset_row("m1", "20200101", "1", "R1", "C1"),
            refset_row("m2", "20200101", "1", "R1", "C2"),
            refset_row("m2", "20210101", "0", "R1", "C2"),
        ])
        summary = summarise_refsets(table)["R1"]
        assert summary.active == ["C1"]
        assert summary.inactive == ["C2"]

    def test_duplicate_concepts_deduplicated(self) -> None:
        table = parse_refset_rows([
            refset_row("m1", "20200101", "1", "R1", "C1"),
            refset_row("m2", "20200101", "1", "R1", "C1"),
        ])
        summary = summarise_refsets(table)["R1"]
        assert summary.active == ["C1"]
        assert summary.inactive == []

    def test_active_and_inactive_are_disjoint(self) -> None:
        """A concept re-added under a new membership id is active only."""
        table = parse_refset_rows([
            refset_row("m1", "20200101", "1", "R1", "C1"),
            refset_row("m1", "20210101", "0", "R1", "C1"),
            refset_row("m2", "20220101", "1", "R1", "C1"),
            refset_row("m3", "20200101", "1", "R1", "C3"),
            refset_row("m4", "20200101", "0", "R1", "C3"),
        ])
        summary = summarise_refsets(table)["R1"]
        assert set(summary.active).isdisjoint(summary.inactive)
        assert set(summary.active) == {"C1", "C3"}
        assert summary.inactive == []

    def test_union_equals_attached_concepts(self) -> None:
        rows = [
            refset_row("m1", "20200101", "1", "R1", "C1"),
            refset_row("m2", "20200101", "0", "R1", "C2"),
            refset_row("m3", "20200101", "1", "R1", "C3"),
            refset_row("m3", "20230101", "0", "R1", "C3"),
            refset_row("m4", "20200101", "1", "R2", "C4"),
        ]
        summaries = summarise_refsets(parse_refset_rows(rows))
        assert set(summaries["R1"].concept_ids()) == {"C1", "C2", "C3"}
        assert set(summaries["R2"].concept_ids()) == {"C4"}

    def test_to_json_shape(self) -> None:
        table = parse_refset_rows([refset_row("m1", "20200101", "1", "R1", "C1")])
        assert summarise_refsets(table)["R1"].to_json() == {"active": ["C1"], "inactive": []}


def test_referenced_concepts_includes_refset_ids() -> None:
    table = parse_refset_rows([
        refset_row("m1", "20200101", "1", "R1", "C1"),
        refset_row("m2", "20200101", "1", "R2", "C1"),
        refset_row("m3", "20200101", "0", "R2", "C2"),
    ])
    assert referenced_concepts(table) == ["R1", "C1", "R2", "C2"]
