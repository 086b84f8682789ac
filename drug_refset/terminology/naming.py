"""Attach display names to refsets.

Each refset is itself a concept, so its published name is the term chosen
for its own concept id. Names must be unique in ``pcd-refSets.json``; when
two refsets end up with the same term the later one wins and the clash is
reported.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from drug_refset.terminology.best_term import MissingDefinition, SimpleDefinition
from drug_refset.terminology.refsets import RefsetSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamingCollision:
    name: str
    previous_refset_id: str
    refset_id: str


@dataclass
class NamedRefsets:
    refsets: dict[str, RefsetSummary] = field(default_factory=dict)
    refset_ids: dict[str, str] = field(default_factory=dict)  # name -> refset id
    collisions: list[NamingCollision] = field(default_factory=list)
    missing: list[MissingDefinition] = field(default_factory=list)

    def to_json(self) -> dict[str, dict[str, list[str]]]:
        return {name: summary.to_json() for name, summary in self.refsets.items()}


def name_refsets(
    summaries: dict[str, RefsetSummary],
    definitions: dict[str, SimpleDefinition],
) -> NamedRefsets:
    """Key each refset summary by its own preferred term.

    Refsets are processed in ``summaries`` order. A refset without a
    definition is dropped.
    """
    named = NamedRefsets()
    for refset_id, summary in summaries.items():
        definition = definitions.get(refset_id)
        if definition is None:
            logger.warning("No description for refset with id: %s", refset_id)
            named.missing.append(MissingDefinition(concept_id=refset_id, kind="refset"))
            continue
        name = definition.term
        previous = named.refset_ids.get(name)
        if previous is not None:
            logger.warning(
                "There is already an entry for: %s (refset %s replaced by refset %s)",
                name,
                previous,
                refset_id,
            )
            named.collisions.append(
                NamingCollision(name=name, previous_refset_id=previous, refset_id=refset_id)
            )
        named.refsets[name] = summary
        named.refset_ids[name] = refset_id
    return named
