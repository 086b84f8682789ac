"""Low-level helpers shared by the RF2 table parsers.

RF2 is an append-only change log: the same component id can appear on many
rows, one per release in which it changed. Both the refset and description
parsers keep only the row with the greatest ``effectiveTime`` per id, which
``keep_latest`` implements once for both.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Callable, Iterable, Iterator, TypeVar

from drug_refset.errors import DataIntegrityError

K = TypeVar("K")
R = TypeVar("R")

# Description typeId for the Fully Specified Name
FSN_TYPE_ID = "900000000000003001"

HEADER_ID = "id"


def read_rf2_rows(path: Path, width: int) -> Iterator[list[str]]:
    """Yield tab-split rows from an RF2 file, padded to ``width`` columns.

    RF2 terms may legitimately contain double quotes, so no CSV quoting is
    applied. Blank lines are skipped.

    Raises:
        DataIntegrityError: if the file is not valid UTF-8.
    """
    with open(path, encoding="utf-8", newline="") as f:
        try:
            yield from split_rf2_lines(f, width)
        except UnicodeDecodeError as e:
            raise DataIntegrityError(f"{path} is not valid UTF-8 RF2 ({e})") from e


def split_rf2_lines(lines: Iterable[str], width: int) -> Iterator[list[str]]:
    reader = csv.reader(
        (line.replace("\r", "") for line in lines),
        delimiter="\t",
        quoting=csv.QUOTE_NONE,
    )
    for row in reader:
        if not row or row == [""]:
            continue
        if len(row) < width:
            row = row + [""] * (width - len(row))
        yield row


def keep_latest(
    table: dict[K, R],
    key: K,
    incoming: R,
    *,
    effective_time: Callable[[R], str],
    check: Callable[[R, R], None] | None = None,
) -> bool:
    """Store ``incoming`` under ``key`` unless a newer record is already there.

    An unseen key is inserted. For a seen key, ``check(current, incoming)``
    runs first and may raise; the stored record is then replaced only when
    the incoming effective time is strictly greater. Replacement swaps the
    whole record, so no field of the stale record survives.

    Returns True when ``incoming`` was stored.
    """
    current = table.get(key)
    if current is None:
        table[key] = incoming
        return True
    if check is not None:
        check(current, incoming)
    if effective_time(incoming) > effective_time(current):
        table[key] = incoming
        return True
    return False
