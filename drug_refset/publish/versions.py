"""Index of processed releases consumed by the web UI."""

import json
import logging
from pathlib import Path

from drug_refset.fileio import write_text_atomic

logger = logging.getLogger(__name__)


def list_versions(processed_dir: Path) -> list[str]:
    if not processed_dir.exists():
        return []
    return sorted(
        p.name for p in processed_dir.iterdir() if p.is_dir() and not p.name.startswith(".")
    )


def write_version_index(processed_dir: Path, routes_path: Path) -> list[str]:
    """Rewrite ``routes_path`` with every processed version directory."""
    versions = list_versions(processed_dir)
    write_text_atomic(routes_path, json.dumps(versions, indent=2))
    logger.info("Wrote %d versions to %s", len(versions), routes_path)
    return versions
