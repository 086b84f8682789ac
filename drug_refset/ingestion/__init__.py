"""Fetching and unpacking the UK Drug Extension release from TRUD."""

from drug_refset.ingestion.archive import ReleaseFiles, extract_release, locate_release_files
from drug_refset.ingestion.trud import TrudClient

__all__ = [
    "ReleaseFiles",
    "TrudClient",
    "extract_release",
    "locate_release_files",
]
