"""Selective extraction of an RF2 release zip.

Only the Full Simple Refset Content and Full Description files are needed,
so everything else in the (large) archive is skipped.
"""

import logging
import re
import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path

from drug_refset.errors import ReleaseFileMissingError

logger = logging.getLogger(__name__)

WANTED_ENTRIES = (
    re.compile(r"full.*content.*refset_simple"),
    re.compile(r"full.*sct2_description"),
)


@dataclass(frozen=True)
class ReleaseFiles:
    refset: Path
    description: Path


def is_wanted(entry_path: str) -> bool:
    lowered = entry_path.lower()
    return any(pattern.search(lowered) for pattern in WANTED_ENTRIES)


def extract_release(zip_path: Path, raw_dir: Path) -> Path:
    """Extract the wanted entries of ``zip_path`` into ``raw_dir/<version>``.

    The version directory is named after the zip file. If it already exists
    extraction is skipped. Entries are written to a ``.part`` sibling that is
    renamed into place only once every entry is extracted.
    """
    out_dir = raw_dir / zip_path.stem
    if out_dir.exists():
        logger.info("The directory %s already exists, so I'm not unzipping.", out_dir)
        return out_dir

    logger.info("The directory %s does not yet exist. Creating...", out_dir)
    partial = out_dir.with_name(out_dir.name + ".part")
    if partial.exists():
        logger.info("Removing leftover partial extraction %s", partial)
        shutil.rmtree(partial)
    partial.mkdir(parents=True)
    extracted = 0
    with zipfile.ZipFile(zip_path) as zf:
        for info in zf.infolist():
            if info.is_dir() or not is_wanted(info.filename):
                continue
            target = (partial / info.filename).resolve()
            if not target.is_relative_to(partial.resolve()):
                logger.warning("Skipping entry outside the output directory: %s", info.filename)
                continue
            logger.info("Extracting %s...", info.filename)
            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
            extracted += 1
    partial.rename(out_dir)
    logger.info("%d files extracted.", extracted)
    return out_dir


def _find_one(root: Path, pattern: str, label: str) -> Path:
    matches = sorted(p for p in root.rglob(pattern) if p.is_file())
    if not matches:
        raise ReleaseFileMissingError(f"No {label} file matching {pattern} under {root}")
    if len(matches) > 1:
        logger.warning("Several %s files found, using %s", label, matches[0].name)
    return matches[0]


def locate_release_files(release_dir: Path) -> ReleaseFiles:
    """Find the Full Simple refset and Description files of an extracted release."""
    return ReleaseFiles(
        refset=_find_one(release_dir, "Full/Refset/Content/*Simple*", "Simple refset"),
        description=_find_one(release_dir, "Full/Terminology/*_Description_*", "Description"),
    )
