"""Main pipeline orchestrator for the UK Drug Extension refset browser data.

Stages, each skipped when its output already exists:
1. Download: latest Drug Extension release zip from TRUD
2. Extract: Full Simple refset + Description files
3. Normalize: build pcd-defs.json and pcd-refSets.json
4. Compress: brotli variants of both JSON files
5. Upload: write-once copies in the R2 bucket
6. Index: rewrite web/routes.json with every processed version

Usage:
    python -m drug_refset.main [--files-dir PATH] [--definitions PATH] [--skip-upload] [-v]
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from config.settings import Settings
from drug_refset.errors import PipelineError, PreconditionError

logger = logging.getLogger(__name__)


def check_preconditions(settings: Settings, upload: bool = True) -> None:
    """Fail before any network or file activity if something required is absent."""
    missing = [name for name in ("email", "password") if not getattr(settings, name)]
    if upload:
        missing += [
            name
            for name in ("access_key_id", "secret_access_key", "account_id")
            if not getattr(settings, name)
        ]
    if missing:
        raise PreconditionError(
            "Missing settings: "
            + ", ".join(f"{name}=xxx" for name in missing)
            + ". Put them in the .env file."
        )
    if not settings.snomed_definitions_path.exists():
        raise PreconditionError(
            f"SNOMED definitions file not found at {settings.snomed_definitions_path}. "
            "This project relies on the nhs-snomed project "
            "(https://github.com/rw251/nhs-snomed) having been run to create it."
        )


def run_pipeline(settings: Settings, upload: bool = True) -> dict[str, Any]:
    """Orchestrate the complete download → publish pipeline.

    Args:
        settings: Pipeline configuration settings
        upload: If False, stop after compression (no R2 credentials needed)

    Returns:
        Dictionary containing:
            - version: release directory name
            - report: PipelineReport of the normalization stage
            - uploaded: keys written to R2 in this run
            - versions: contents of the rewritten version index

    Raises:
        PipelineError: on any fatal condition; nothing is uploaded.
    """
    check_preconditions(settings, upload=upload)

    from drug_refset.ingestion.archive import extract_release, locate_release_files
    from drug_refset.ingestion.trud import TrudClient
    from drug_refset.pipeline import PipelineReport, ReleaseArtifacts, process_release
    from drug_refset.publish.compress import compress_artifacts
    from drug_refset.publish.versions import write_version_index
    from drug_refset.terminology.descriptions import ConceptDescriptionSet
    from drug_refset.terminology.unknown_concepts import (
        TermBrowserClient,
        UnknownCodeCache,
        UnknownConceptResolver,
    )

    result: dict[str, Any] = {"version": None, "report": None, "uploaded": [], "versions": []}

    # Stage 1: Download
    logger.info("Stage 1: Fetching latest release from TRUD...")
    trud = TrudClient(
        email=settings.email,
        password=settings.password,
        base_url=settings.trud_base_url,
        item_path=settings.trud_item_path,
    )
    zip_path = trud.download_if_not_exists(trud.latest_release_url(), settings.zip_dir)

    # Stage 2: Extract
    logger.info("Stage 2: Extracting RF2 files...")
    release_dir = extract_release(zip_path, settings.raw_dir)
    version = release_dir.name
    result["version"] = version
    artifacts = ReleaseArtifacts(settings.processed_dir / version)

    # Stage 3: Normalize
    logger.info("Stage 3: Building definitions and refsets...")
    if artifacts.json_exists():
        logger.info("The json files already exist so I'll move on...")
        report = PipelineReport(version=version, skipped=True)
    else:
        files = locate_release_files(release_dir)
        resolver = UnknownConceptResolver(
            client=TermBrowserClient(settings.browser_api_url),
            cache=UnknownCodeCache(settings.code_lookup_path),
            batch_size=settings.lookup_batch_size,
            delay_range_ms=(settings.lookup_delay_min_ms, settings.lookup_delay_max_ms),
        )
        report = process_release(
            files.refset,
            files.description,
            artifacts,
            ConceptDescriptionSet.load(settings.snomed_definitions_path),
            resolver,
        )
    result["report"] = report
    _log_report(report)

    # Stage 4: Compress
    logger.info("Stage 4: Compressing...")
    compress_artifacts(artifacts.brotli_pairs())

    # Stage 5: Upload
    if upload:
        logger.info("Stage 5: Uploading to R2...")
        from drug_refset.publish.storage import make_r2_client, object_key, upload_if_missing

        client = make_r2_client(
            settings.access_key_id, settings.secret_access_key, settings.r2_endpoint
        )
        for json_file, brotli_file in (
            (artifacts.definitions, artifacts.definitions_br),
            (artifacts.refsets, artifacts.refsets_br),
        ):
            key = object_key(settings.s3_key_prefix, version, json_file.name)
            if upload_if_missing(client, settings.bucket, key, brotli_file):
                result["uploaded"].append(key)
    else:
        logger.info("Stage 5: Skipping upload")

    # Stage 6: Version index
    logger.info("Stage 6: Writing version index...")
    result["versions"] = write_version_index(settings.processed_dir, settings.routes_path)

    return result


def _log_report(report) -> None:
    if report.skipped:
        return
    logger.info(
        "  %d refsets, %d named, %d definitions (%d from the NHS browser)",
        report.n_refsets,
        report.n_named_refsets,
        report.n_definitions,
        report.n_resolved_remotely,
    )
    for collision in report.collisions:
        logger.warning(
            "  Name collision '%s': refset %s replaced refset %s",
            collision.name,
            collision.refset_id,
            collision.previous_refset_id,
        )
    n_refsets = sum(1 for m in report.missing if m.kind == "refset")
    n_members = len(report.missing) - n_refsets
    if report.missing:
        logger.warning(
            "  %d refsets dropped and %d members left without a term",
            n_refsets,
            n_members,
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build and publish UK Drug Extension refset code lists",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--files-dir",
        type=Path,
        help="Working directory for zips, raw and processed files (default: from settings)",
    )
    parser.add_argument(
        "--definitions",
        type=Path,
        help="Path to the SNOMED definitions JSON (default: from settings)",
    )
    parser.add_argument(
        "--skip-upload",
        action="store_true",
        help="Do not upload to R2 (R2 credentials not required)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    updates = {}
    if args.files_dir:
        updates["files_dir"] = args.files_dir
    if args.definitions:
        updates["snomed_definitions_path"] = args.definitions

    try:
        settings = Settings()
    except ValidationError as e:
        logger.error(f"Invalid settings: {e}")
        return 1
    if updates:
        settings = settings.model_copy(update=updates)

    try:
        result = run_pipeline(settings, upload=not args.skip_upload)
    except PipelineError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    print(f"\nRelease {result['version']} processed:")
    print(f"  Uploaded: {len(result['uploaded'])} objects")
    print(f"  Versions indexed: {len(result['versions'])}")
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
