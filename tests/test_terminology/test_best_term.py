"""Tests for the best-term priority cascade."""

import pytest

from drug_refset.terminology.best_term import SimpleDefinition, pick_description, select_best_terms
from drug_refset.terminology.descriptions import ConceptDescriptionSet, DescriptionRecord


def record(desc_id: str, effective_time: str, active: bool, is_main: bool, term: str = "") -> DescriptionRecord:
    return DescriptionRecord(
        id=desc_id,
        concept_id="C1",
        effective_time=effective_time,
        active=active,
        is_main=is_main,
        term=term or desc_id,
    )


class TestPickDescription:

    def test_active_main_beats_newer_synonym(self) -> None:
        best = pick_description([
            record("fsn", "20100101", True, True),
            record("syn", "20230101", True, False),
            record("old", "20240101", False, True),
        ])
        assert best.id == "fsn"

    def test_most_recent_active_main_wins(self) -> None:
        best = pick_description([
            record("a", "20100101", True, True),
            record("b", "20200101", True, True),
            record("c", "20150101", True, True),
        ])
        assert best.id == "b"

    @pytest.mark.parametrize(
        "available, expected",
        [
            ([("syn", True, False), ("ifsn", False, True), ("isyn", False, False)], "syn"),
            ([("ifsn", False, True), ("isyn", False, False)], "ifsn"),
            ([("isyn", False, False)], "isyn"),
        ],
    )
    def test_falls_through_tiers_in_order(self, available, expected) -> None:
        records = [record(desc_id, "20200101", active, is_main) for desc_id, active, is_main in available]
        assert pick_description(records).id == expected

    def test_tie_broken_by_description_id(self) -> None:
        records = [record("100", "20200101", True, True), record("200", "20200101", True, True)]
        assert pick_description(records).id == "200"
        assert pick_description(list(reversed(records))).id == "200"

    def test_no_records(self) -> None:
        assert pick_description([]) is None


class TestSelectBestTerms:

    def test_reports_missing_refsets_and_members_separately(self) -> None:
        descriptions = ConceptDescriptionSet()
        descriptions.merge(DescriptionRecord("D1", "C1", "20200101", True, True, "Aspirin"))
        definitions, missing = select_best_terms(["R1", "C1", "C2"], descriptions, refset_ids=["R1"])
        assert definitions == {
            "C1": SimpleDefinition(term="Aspirin", effective_time="20200101", is_main=True, is_active=True)
        }
        assert {(m.concept_id, m.kind) for m in missing} == {("R1", "refset"), ("C2", "member")}

    def test_definition_json_omits_false_flags(self) -> None:
        definition = SimpleDefinition(term="ASA", effective_time="20200101")
        assert definition.to_json() == {"t": "ASA", "e": "20200101"}
