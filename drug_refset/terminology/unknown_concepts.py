"""Resolve refset members that the local dictionary cannot name.

Some concepts referenced by the drug refsets are absent from the local
SNOMED dictionary. They are looked up in the NHS terminology browser, in
fixed-size concurrent rounds with a randomised pause between rounds, and
every answer is kept in a disk cache so that repeat runs make zero API
calls for already-resolved codes.

A failed lookup aborts the whole resolution. There is no per-code retry;
completed rounds are already in the cache when the run is repeated.
"""

from __future__ import annotations

import enum
import json
import logging
import random
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable, Iterable, Protocol

import requests

from drug_refset.errors import DataIntegrityError, ExternalLookupFailure
from drug_refset.fileio import write_text_atomic
from drug_refset.terminology.best_term import SimpleDefinition

logger = logging.getLogger(__name__)

BATCH_SIZE = 40
DELAY_RANGE_MS = (2000, 7000)


# ── Remote lookup ────────────────────────────────────────────────────────────


class ConceptLookup(Protocol):
    def lookup(self, concept_id: str) -> SimpleDefinition:
        """Return the concept's definition or raise."""
        ...


class TermBrowserClient:
    """Minimal client for the NHS SNOMED CT browser concept endpoint."""

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float = 30,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout

    def lookup(self, concept_id: str) -> SimpleDefinition:
        resp = self._session.get(f"{self._base_url}/{concept_id}", timeout=self._timeout)
        resp.raise_for_status()
        body = resp.json()
        if not body.get("conceptId") or not body.get("fsn"):
            raise ValueError(f"Unexpected browser response for {concept_id}: {body!r}")
        # The browser only returns the FSN, so the definition is always "main"
        return SimpleDefinition(
            term=body["fsn"],
            effective_time=str(body.get("effectiveTime", "")),
            is_main=True,
            is_active=bool(body.get("active")),
        )


# ── Cache ────────────────────────────────────────────────────────────────────


class UnknownCodeCache:
    """Persistent ``conceptId -> {t, e, a?, m?}`` lookup of resolved codes."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._entries: dict[str, dict] | None = None

    def _ensure_loaded(self) -> dict[str, dict]:
        if self._entries is None:
            if self._path.exists():
                try:
                    with open(self._path, encoding="utf-8") as f:
                        self._entries = json.load(f)
                except ValueError as e:
                    raise DataIntegrityError(
                        f"Code lookup cache {self._path} is not valid JSON ({e}). "
                        "Delete it to rebuild it from the NHS SNOMED browser."
                    ) from e
                logger.info(
                    "Loaded %d entries from code lookup cache %s",
                    len(self._entries),
                    self._path.name,
                )
            else:
                self._entries = {}
        return self._entries

    def get(self, concept_id: str) -> SimpleDefinition | None:
        entry = self._ensure_loaded().get(concept_id)
        return SimpleDefinition.from_json(entry) if entry else None

    def put(self, concept_id: str, definition: SimpleDefinition) -> None:
        self._ensure_loaded()[concept_id] = definition.to_json()

    def save(self) -> None:
        write_text_atomic(self._path, json.dumps(self._ensure_loaded(), indent=2))

    def __len__(self) -> int:
        return len(self._ensure_loaded())

    def __contains__(self, concept_id: object) -> bool:
        return concept_id in self._ensure_loaded()


# ── Resolver ─────────────────────────────────────────────────────────────────


class ResolverState(enum.Enum):
    IDLE = "idle"
    BATCH_IN_FLIGHT = "batch_in_flight"
    COOLDOWN = "cooldown"
    DONE = "done"
    FAILED = "failed"


def unresolved_members(
    member_ids: Iterable[str],
    definitions: dict[str, SimpleDefinition],
) -> list[str]:
    """Member ids with no definition, deduplicated in first-seen order."""
    seen: dict[str, None] = {}
    for concept_id in member_ids:
        if concept_id not in definitions:
            seen.setdefault(concept_id, None)
    return list(seen)


class UnknownConceptResolver:
    """Sequential queue of concurrent lookup rounds.

    Args:
        client: Anything with ``lookup(concept_id) -> SimpleDefinition``.
        cache: Persistent cache consulted first and saved after each round.
        batch_size: Lookups issued concurrently per round.
        delay_range_ms: Bounds of the random pause between rounds.
        sleep: Injected for tests; receives seconds.
    """

    def __init__(
        self,
        client: ConceptLookup,
        cache: UnknownCodeCache,
        batch_size: int = BATCH_SIZE,
        delay_range_ms: tuple[int, int] = DELAY_RANGE_MS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._cache = cache
        self._batch_size = batch_size
        self._delay_range_ms = delay_range_ms
        self._sleep = sleep
        self.state = ResolverState.IDLE
        self.rounds_completed = 0

    def resolve(
        self,
        concept_ids: Iterable[str],
        definitions: dict[str, SimpleDefinition],
    ) -> dict[str, SimpleDefinition]:
        """Fill ``definitions`` in place for every id in ``concept_ids``.

        Returns the definitions that were added.

        Raises:
            ExternalLookupFailure: if any lookup of a round fails.
        """
        resolved: dict[str, SimpleDefinition] = {}
        pending: list[str] = []
        for concept_id in concept_ids:
            cached = self._cache.get(concept_id)
            if cached is not None:
                definitions[concept_id] = cached
                resolved[concept_id] = cached
            else:
                pending.append(concept_id)

        if resolved:
            logger.info("Resolved %d unknown codes from the lookup cache", len(resolved))
        if not pending:
            self.state = ResolverState.DONE
            return resolved

        logger.info("There are %d codes without a definition term", len(pending))
        logger.info("Attempting to look them up in the NHS SNOMED browser...")

        while pending:
            batch, pending = pending[: self._batch_size], pending[self._batch_size :]
            logger.info(
                "Looking up next %d (out of %d)", len(batch), len(batch) + len(pending)
            )
            results = self._run_round(batch)
            for concept_id, definition in results.items():
                definitions[concept_id] = definition
                resolved[concept_id] = definition
                self._cache.put(concept_id, definition)
            self._cache.save()
            self.rounds_completed += 1

            if pending:
                self.state = ResolverState.COOLDOWN
                delay_ms = random.uniform(*self._delay_range_ms)
                logger.info("Waiting %.0f milliseconds before next batch...", delay_ms)
                self._sleep(delay_ms / 1000)

        self.state = ResolverState.DONE
        return resolved

    def _run_round(self, batch: list[str]) -> dict[str, SimpleDefinition]:
        self.state = ResolverState.BATCH_IN_FLIGHT
        results: dict[str, SimpleDefinition] = {}
        with ThreadPoolExecutor(max_workers=len(batch)) as executor:
            futures = {executor.submit(self._client.lookup, code): code for code in batch}
            done, not_done = wait(futures, return_when=FIRST_EXCEPTION)
            for future in done:
                error = future.exception()
                if error is not None:
                    for other in not_done:
                        other.cancel()
                    self.state = ResolverState.FAILED
                    raise ExternalLookupFailure(
                        f"Error retrieving {futures[future]} from the NHS SNOMED browser "
                        f"({error}). Rerunning will probably be fine."
                    ) from error
                results[futures[future]] = future.result()
        return results
