"""Simple Refset Content parser.

Reads the RF2 ``der2_Refset_Simple`` Full file and reduces it to the latest
known membership per membership id, then collapses each refset into an
active/inactive concept list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Sequence

from drug_refset.errors import DataIntegrityError
from drug_refset.terminology.rf2 import HEADER_ID, keep_latest, read_rf2_rows

logger = logging.getLogger(__name__)

REFSET_COLUMNS = (
    "id",
    "effectiveTime",
    "active",
    "moduleId",
    "refsetId",
    "referencedComponentId",
)

# refsetId -> membership id -> membership
RefsetTable = dict[str, dict[str, "RefsetMembership"]]


@dataclass(frozen=True)
class RefsetMembership:
    """One row of the Simple Refset Content file."""

    id: str
    refset_id: str
    concept_id: str
    effective_time: str
    active: bool


@dataclass
class RefsetSummary:
    """Concept ids of a refset split by their current membership status."""

    active: list[str] = field(default_factory=list)
    inactive: list[str] = field(default_factory=list)

    def concept_ids(self) -> list[str]:
        return self.active + self.inactive

    def to_json(self) -> dict[str, list[str]]:
        return {"active": list(self.active), "inactive": list(self.inactive)}


def _same_concept(current: RefsetMembership, incoming: RefsetMembership) -> None:
    if current.concept_id != incoming.concept_id:
        raise DataIntegrityError(
            f"Refset membership {incoming.id} in refset {incoming.refset_id} "
            f"changed concept from {current.concept_id} to {incoming.concept_id}. "
            "Membership ids are assumed to always reference the same concept."
        )


def parse_refset_rows(rows: Iterable[Sequence[str]]) -> RefsetTable:
    """Build the latest-known membership table from raw refset rows.

    Raises:
        DataIntegrityError: if a membership id is seen with two different
            referenced concepts.
    """
    table: RefsetTable = {}
    for row in rows:
        member_id, effective_time, active, _module_id, refset_id, concept_id = row[:6]
        if member_id == HEADER_ID or not concept_id:
            continue
        membership = RefsetMembership(
            id=member_id,
            refset_id=refset_id,
            concept_id=concept_id,
            effective_time=effective_time,
            active=active == "1",
        )
        keep_latest(
            table.setdefault(refset_id, {}),
            member_id,
            membership,
            effective_time=lambda m: m.effective_time,
            check=_same_concept,
        )
    return table


def load_refsets(path: Path) -> RefsetTable:
    """Parse a Simple Refset Content file from disk."""
    logger.info("Loading refset memberships from %s ...", path.name)
    table = parse_refset_rows(read_rf2_rows(path, len(REFSET_COLUMNS)))
    n_members = sum(len(members) for members in table.values())
    logger.info("  Loaded %d refsets with %d memberships", len(table), n_members)
    return table


def summarise_refsets(table: RefsetTable) -> dict[str, RefsetSummary]:
    """Collapse each refset's memberships into disjoint active/inactive lists.

    A concept referenced by more than one membership takes the status of
    its most recent membership; on equal effective times active wins.
    """
    summaries: dict[str, RefsetSummary] = {}
    for refset_id, members in table.items():
        status: dict[str, tuple[str, bool]] = {}
        for membership in members.values():
            candidate = (membership.effective_time, membership.active)
            previous = status.get(membership.concept_id)
            if previous is None or candidate > previous:
                status[membership.concept_id] = candidate
        summary = RefsetSummary()
        for concept_id, (_, active) in status.items():
            (summary.active if active else summary.inactive).append(concept_id)
        summaries[refset_id] = summary
    return summaries


def referenced_concepts(table: RefsetTable) -> list[str]:
    """Every refset id and member concept id, deduplicated in first-seen order."""
    seen: dict[str, None] = {}
    for refset_id, members in table.items():
        seen.setdefault(refset_id, None)
        for membership in members.values():
            seen.setdefault(membership.concept_id, None)
    return list(seen)
