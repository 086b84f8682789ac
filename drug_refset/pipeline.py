"""Normalization stage: RF2 extracts -> ``pcd-defs.json`` + ``pcd-refSets.json``.

Steps:
1. Parse the Simple refset file into per-refset active/inactive lists
2. Merge the release's descriptions into the SNOMED dictionary
3. Pick a display term for every refset and member concept
4. Name each refset after its own term
5. Look up members the dictionary could not name (cache, then browser)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from drug_refset.fileio import write_text_atomic
from drug_refset.terminology.best_term import (
    MissingDefinition,
    SimpleDefinition,
    select_best_terms,
)
from drug_refset.terminology.descriptions import ConceptDescriptionSet
from drug_refset.terminology.naming import NamingCollision, name_refsets
from drug_refset.terminology.refsets import (
    load_refsets,
    referenced_concepts,
    summarise_refsets,
)
from drug_refset.terminology.unknown_concepts import (
    UnknownConceptResolver,
    unresolved_members,
)

logger = logging.getLogger(__name__)

DEFINITIONS_FILE = "pcd-defs.json"
REFSETS_FILE = "pcd-refSets.json"


@dataclass(frozen=True)
class ReleaseArtifacts:
    """Output file locations for one processed release."""

    directory: Path

    @property
    def version(self) -> str:
        return self.directory.name

    @property
    def definitions(self) -> Path:
        return self.directory / DEFINITIONS_FILE

    @property
    def refsets(self) -> Path:
        return self.directory / REFSETS_FILE

    @property
    def definitions_br(self) -> Path:
        return self.directory / f"{DEFINITIONS_FILE}.br"

    @property
    def refsets_br(self) -> Path:
        return self.directory / f"{REFSETS_FILE}.br"

    def json_exists(self) -> bool:
        return self.definitions.exists() and self.refsets.exists()

    def brotli_pairs(self) -> list[tuple[Path, Path]]:
        return [(self.refsets, self.refsets_br), (self.definitions, self.definitions_br)]


@dataclass
class PipelineReport:
    """Non-fatal content issues and counts gathered during a run."""

    version: str = ""
    n_refsets: int = 0
    n_named_refsets: int = 0
    n_definitions: int = 0
    n_resolved_remotely: int = 0
    skipped: bool = False
    missing: list[MissingDefinition] = field(default_factory=list)
    collisions: list[NamingCollision] = field(default_factory=list)


@dataclass
class CodeLists:
    definitions: dict[str, SimpleDefinition]
    refsets: dict[str, dict[str, list[str]]]


def build_code_lists(
    refset_file: Path,
    description_file: Path,
    descriptions: ConceptDescriptionSet,
    resolver: UnknownConceptResolver | None,
    report: PipelineReport,
) -> CodeLists:
    """Run the normalization steps and return the publishable structures.

    ``descriptions`` is extended in place with the release's Description
    file. With ``resolver=None`` unknown members are left undefined.

    Raises:
        DataIntegrityError: from the refset parser.
        ExternalLookupFailure: from the resolver.
    """
    table = load_refsets(refset_file)
    summaries = summarise_refsets(table)
    report.n_refsets = len(summaries)

    descriptions.merge_file(description_file)

    definitions, missing = select_best_terms(
        referenced_concepts(table), descriptions, refset_ids=summaries.keys()
    )
    report.missing.extend(m for m in missing if m.kind == "member")

    named = name_refsets(summaries, definitions)
    report.missing.extend(named.missing)
    report.collisions.extend(named.collisions)
    report.n_named_refsets = len(named.refsets)

    unknown = unresolved_members(
        (cid for summary in summaries.values() for cid in summary.concept_ids()),
        definitions,
    )
    if unknown and resolver is not None:
        added = resolver.resolve(unknown, definitions)
        report.n_resolved_remotely = len(added)
        report.missing = [
            m for m in report.missing if m.kind == "refset" or m.concept_id not in definitions
        ]
    elif unknown:
        logger.warning("%d member concepts left without a definition", len(unknown))

    report.n_definitions = len(definitions)
    return CodeLists(definitions=definitions, refsets=named.to_json())


def write_json(path: Path, data: dict) -> None:
    write_text_atomic(path, json.dumps(data, indent=2, ensure_ascii=False))


def process_release(
    refset_file: Path,
    description_file: Path,
    artifacts: ReleaseArtifacts,
    descriptions: ConceptDescriptionSet,
    resolver: UnknownConceptResolver | None = None,
) -> PipelineReport:
    """Produce the two JSON artifacts for a release unless they already exist."""
    report = PipelineReport(version=artifacts.version)
    if artifacts.json_exists():
        logger.info("The json files already exist so I'll move on...")
        report.skipped = True
        return report

    code_lists = build_code_lists(refset_file, description_file, descriptions, resolver, report)

    write_json(
        artifacts.definitions,
        {cid: definition.to_json() for cid, definition in code_lists.definitions.items()},
    )
    write_json(artifacts.refsets, code_lists.refsets)
    logger.info(
        "Wrote %d definitions and %d refsets to %s",
        len(code_lists.definitions),
        len(code_lists.refsets),
        artifacts.directory,
    )
    return report
