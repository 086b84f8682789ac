"""Cross-release SNOMED description dictionary.

The dictionary is seeded from a JSON file produced by a companion project
(the full SNOMED International + UK Clinical release) and the Drug
Extension's own Description file is merged on top of it, so that every
concept referenced by a drug refset has a chance of being named.

On-disk layout::

    {conceptId: {descriptionId: {"t": term, "e": effectiveTime, "a": 1, "m": 1}}}

``a`` (active) and ``m`` (fully specified name) are present only when true.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from drug_refset.terminology.rf2 import (
    FSN_TYPE_ID,
    HEADER_ID,
    keep_latest,
    read_rf2_rows,
)

logger = logging.getLogger(__name__)

DESCRIPTION_COLUMNS = (
    "id",
    "effectiveTime",
    "active",
    "moduleId",
    "conceptId",
    "languageCode",
    "typeId",
    "term",
    "caseSignificanceId",
)


@dataclass(frozen=True)
class DescriptionRecord:
    """Latest known state of one SNOMED description."""

    id: str
    concept_id: str
    effective_time: str
    active: bool
    is_main: bool
    term: str

    @classmethod
    def from_json(cls, concept_id: str, description_id: str, data: dict) -> "DescriptionRecord":
        return cls(
            id=description_id,
            concept_id=concept_id,
            effective_time=str(data.get("e", "")),
            active=bool(data.get("a")),
            is_main=bool(data.get("m")),
            term=data.get("t", ""),
        )


@dataclass
class MergeStats:
    inserted: int = 0
    replaced: int = 0
    ignored: int = 0


class ConceptDescriptionSet:
    """Mapping of concept id to its descriptions, keyed by description id."""

    def __init__(self, concepts: dict[str, dict[str, DescriptionRecord]] | None = None) -> None:
        self._concepts: dict[str, dict[str, DescriptionRecord]] = concepts or {}

    @classmethod
    def load(cls, path: Path) -> "ConceptDescriptionSet":
        """Load the persisted dictionary written by the companion project."""
        logger.info("Loading SNOMED dictionary from %s ...", path)
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
        concepts = {
            concept_id: {
                description_id: DescriptionRecord.from_json(concept_id, description_id, data)
                for description_id, data in descriptions.items()
            }
            for concept_id, descriptions in raw.items()
        }
        logger.info("  Loaded descriptions for %d concepts", len(concepts))
        return cls(concepts)

    def __len__(self) -> int:
        return len(self._concepts)

    def __contains__(self, concept_id: object) -> bool:
        return concept_id in self._concepts

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConceptDescriptionSet):
            return NotImplemented
        return self._concepts == other._concepts

    def descriptions_for(self, concept_id: str) -> list[DescriptionRecord]:
        return list(self._concepts.get(concept_id, {}).values())

    def merge(self, record: DescriptionRecord) -> bool:
        """Merge one record; an existing id is replaced only by a newer row."""
        return keep_latest(
            self._concepts.setdefault(record.concept_id, {}),
            record.id,
            record,
            effective_time=lambda r: r.effective_time,
        )

    def merge_rows(self, rows: Iterable[Sequence[str]]) -> MergeStats:
        """Merge raw Description rows into the dictionary."""
        stats = MergeStats()
        for row in rows:
            (
                description_id,
                effective_time,
                active,
                _module_id,
                concept_id,
                _language_code,
                type_id,
                term,
                _case_significance_id,
            ) = row[:9]
            if description_id == HEADER_ID or not concept_id:
                continue
            record = DescriptionRecord(
                id=description_id,
                concept_id=concept_id,
                effective_time=effective_time,
                active=active == "1",
                is_main=type_id == FSN_TYPE_ID,
                term=term,
            )
            existed = description_id in self._concepts.get(concept_id, {})
            if self.merge(record):
                if existed:
                    stats.replaced += 1
                else:
                    stats.inserted += 1
            else:
                stats.ignored += 1
        return stats

    def merge_file(self, path: Path) -> MergeStats:
        """Merge an RF2 Description file from disk."""
        before = len(self)
        logger.info("Merging descriptions from %s ...", path.name)
        stats = self.merge_rows(read_rf2_rows(path, len(DESCRIPTION_COLUMNS)))
        logger.info(
            "  %d inserted, %d replaced, %d ignored. Dictionary grew from %d to %d concepts",
            stats.inserted,
            stats.replaced,
            stats.ignored,
            before,
            len(self),
        )
        return stats
