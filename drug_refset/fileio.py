"""Atomic file writes for stage outputs.

Every file a later run treats as "already done" is written to a ``.part``
sibling first and moved into place with ``Path.replace``, so an
interrupted write never leaves a truncated file under the final name.
"""

from pathlib import Path


def part_path(path: Path) -> Path:
    return path.with_name(path.name + ".part")


def write_bytes_atomic(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    partial = part_path(path)
    try:
        partial.write_bytes(data)
        partial.replace(path)
    except BaseException:
        partial.unlink(missing_ok=True)
        raise


def write_text_atomic(path: Path, text: str, encoding: str = "utf-8") -> None:
    write_bytes_atomic(path, text.encode(encoding))
