"""RF2 row builders and fakes shared across test modules."""

from pathlib import Path

from drug_refset.terminology.best_term import SimpleDefinition

FSN = "900000000000003001"
SYNONYM = "900000000000013009"

REFSET_HEADER = "id\teffectiveTime\tactive\tmoduleId\trefsetId\treferencedComponentId"
DESCRIPTION_HEADER = (
    "id\teffectiveTime\tactive\tmoduleId\tconceptId\tlanguageCode\ttypeId\tterm\tcaseSignificanceId"
)
MODULE = "999000011000001104"
CASE = "900000000000448009"


def refset_row(member_id, effective_time, active, refset_id, concept_id) -> list[str]:
    return [member_id, effective_time, active, MODULE, refset_id, concept_id]


def description_row(desc_id, effective_time, active, concept_id, type_id, term) -> list[str]:
    return [desc_id, effective_time, active, MODULE, concept_id, "en", type_id, term, CASE]


def write_rf2(path: Path, header: str, rows: list[list[str]]) -> Path:
    """Write an RF2 file with CRLF line endings, as TRUD ships them."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [header] + ["\t".join(row) for row in rows]
    path.write_bytes(("\r\n".join(lines) + "\r\n").encode("utf-8"))
    return path


class FakeBrowser:
    """Stand-in for TermBrowserClient that records lookups."""

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.calls: list[str] = []
        self.fail_on = fail_on or set()

    def lookup(self, concept_id: str) -> SimpleDefinition:
        self.calls.append(concept_id)
        if concept_id in self.fail_on:
            raise ConnectionError(f"browser down for {concept_id}")
        return SimpleDefinition(
            term=f"Concept {concept_id} (product)",
            effective_time="20230927",
            is_main=True,
            is_active=True,
        )
