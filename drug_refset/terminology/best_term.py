"""Pick a single display term per concept.

Selection is a strict priority cascade over the concept's descriptions:

1. active fully specified name
2. active synonym
3. inactive fully specified name
4. inactive synonym

The most recent description of the first non-empty tier wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Literal

from drug_refset.terminology.descriptions import ConceptDescriptionSet, DescriptionRecord

logger = logging.getLogger(__name__)

# (active, is_main) in priority order
TIERS: tuple[tuple[bool, bool], ...] = (
    (True, True),
    (True, False),
    (False, True),
    (False, False),
)


@dataclass(frozen=True)
class SimpleDefinition:
    """The chosen description for a concept, as published in ``pcd-defs.json``."""

    term: str
    effective_time: str
    is_main: bool = False
    is_active: bool = False

    def to_json(self) -> dict:
        data: dict = {"t": self.term, "e": self.effective_time}
        if self.is_active:
            data["a"] = 1
        if self.is_main:
            data["m"] = 1
        return data

    @classmethod
    def from_json(cls, data: dict) -> "SimpleDefinition":
        return cls(
            term=data.get("t", ""),
            effective_time=str(data.get("e", "")),
            is_main=bool(data.get("m")),
            is_active=bool(data.get("a")),
        )

    @classmethod
    def from_record(cls, record: DescriptionRecord) -> "SimpleDefinition":
        return cls(
            term=record.term,
            effective_time=record.effective_time,
            is_main=record.is_main,
            is_active=record.active,
        )


@dataclass(frozen=True)
class MissingDefinition:
    """A concept for which no description could be selected."""

    concept_id: str
    kind: Literal["refset", "member"]


def pick_description(records: Iterable[DescriptionRecord]) -> DescriptionRecord | None:
    """Apply the priority cascade; ``None`` when there is nothing to pick."""
    records = list(records)
    for active, is_main in TIERS:
        tier = [r for r in records if r.active == active and r.is_main == is_main]
        if tier:
            return max(tier, key=lambda r: (r.effective_time, r.id))
    return None


def select_best_terms(
    concept_ids: Iterable[str],
    descriptions: ConceptDescriptionSet,
    refset_ids: Iterable[str] = (),
) -> tuple[dict[str, SimpleDefinition], list[MissingDefinition]]:
    """Choose a SimpleDefinition for every concept id.

    Args:
        concept_ids: Concepts to define, in output order.
        descriptions: The merged description dictionary.
        refset_ids: Which of ``concept_ids`` are refsets, so that missing
            refset names can be reported separately from missing members.

    Returns:
        The selected definitions and the concepts that had none.
    """
    refset_ids = set(refset_ids)
    definitions: dict[str, SimpleDefinition] = {}
    missing: list[MissingDefinition] = []
    for concept_id in concept_ids:
        best = pick_description(descriptions.descriptions_for(concept_id))
        if best is None:
            kind = "refset" if concept_id in refset_ids else "member"
            missing.append(MissingDefinition(concept_id=concept_id, kind=kind))
            logger.debug("No description found for %s %s", kind, concept_id)
            continue
        definitions[concept_id] = SimpleDefinition.from_record(best)

    n_members = sum(1 for m in missing if m.kind == "member")
    if n_members:
        logger.warning(
            "%d member concepts have no local description; they will be looked up",
            n_members,
        )
    return definitions, missing
