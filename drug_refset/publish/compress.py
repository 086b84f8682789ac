"""Brotli compression of the published JSON artifacts."""

import logging
from pathlib import Path

import brotli

from drug_refset.fileio import write_bytes_atomic

logger = logging.getLogger(__name__)

# Maximum quality
BROTLI_QUALITY = 11


def brotli_compress_file(source: Path, target: Path) -> Path:
    logger.info("Compressing %s...", source)
    compressed = brotli.compress(
        source.read_bytes(),
        mode=brotli.MODE_TEXT,
        quality=BROTLI_QUALITY,
    )
    logger.info(
        "Compressed %d -> %d bytes. Writing to %s...",
        source.stat().st_size,
        len(compressed),
        target,
    )
    write_bytes_atomic(target, compressed)
    return target


def compress_artifacts(pairs: list[tuple[Path, Path]]) -> bool:
    """Compress each ``(json, br)`` pair; skipped when every ``.br`` exists.

    Returns True when compression ran.
    """
    if all(target.exists() for _, target in pairs):
        logger.info("The brotli files already exist so I'll move on...")
        return False
    logger.info("Starting compression...")
    for source, target in pairs:
        brotli_compress_file(source, target)
    logger.info("All compressed.")
    return True
