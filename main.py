"""CLI entrypoint for the journal affiliation pipeline."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

import csv_sink
from authority import load_authority_csv
from errors import AffiliationPipelineError
from filters import filter_works
from openalex_feed import fetch_works_payload, load_works_json, parse_works_payload, save_works_json
from pipeline import run_pipeline
from report import figure_path, generate_figure_table


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    data_dir = os.getenv("DATA_DIR", "data")
    parser = argparse.ArgumentParser(description="Resolve author affiliations for one journal's OpenAlex works")
    sub = parser.add_subparsers(dest="command", required=True)

    fetch = sub.add_parser("fetch", help="Download works from OpenAlex and apply the work filter")
    fetch.add_argument("--source-id", default=None, help="OpenAlex source id (default: OPENALEX_SOURCE_ID)")
    fetch.add_argument("--raw", default=str(Path(data_dir) / "works_raw.json"), help="Raw works JSON path")
    fetch.add_argument("--clean", default=str(Path(data_dir) / "works_clean.json"), help="Filtered works JSON path")

    analyze = sub.add_parser("analyze", help="Resolve affiliations and write yearly statistics")
    analyze.add_argument("--works", default=str(Path(data_dir) / "works_clean.json"), help="Filtered works JSON path")
    analyze.add_argument(
        "--authority",
        default=str(Path(data_dir) / "affiliations_press.csv"),
        help="University-press authority CSV (columns: name, university press, url)",
    )
    analyze.add_argument("--output-dir", default=csv_sink.output_dir(), help="Directory for output CSVs")
    analyze.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Minimum dominant-affiliation share for imputation (default: STABLE_SHARE_THRESHOLD or 0.9)",
    )
    analyze.add_argument(
        "--on-duplicate",
        choices=["error", "first"],
        default=None,
        help="Duplicate authority entries: fail the run, or keep the first seen",
    )
    return parser.parse_args(argv)


def run_fetch(source_id: str | None, raw_path: str, clean_path: str) -> None:
    """Download, save the raw dump, filter, and save the clean dump."""
    payload = fetch_works_payload(source_id)
    save_works_json(payload, raw_path)

    works = parse_works_payload(payload)
    kept_ids = {w.work_id for w in filter_works(works)}
    clean = [item for item in payload if (item.get("id") or "").strip() in kept_ids]
    save_works_json(clean, clean_path)


def run_analyze(
    works_path: str,
    authority_path: str,
    output_dir: str,
    threshold: float | None = None,
    on_duplicate: str | None = None,
) -> None:
    """Run one resolution pass and write every output table."""
    works = parse_works_payload(load_works_json(works_path))
    authority = load_authority_csv(authority_path)

    result = run_pipeline(works, authority, threshold=threshold, on_duplicate=on_duplicate)

    out = Path(output_dir)
    csv_sink.write_unresolved(result.unresolved, csv_sink.output_path(out, "UNRESOLVED_CSV_NAME"))
    csv_sink.write_final_affiliations(result.final, csv_sink.output_path(out, "FINAL_CSV_NAME"))
    csv_sink.write_yearly_counts(result.work_counts, csv_sink.output_path(out, "WORK_COUNTS_CSV_NAME"))
    csv_sink.write_yearly_counts(result.author_counts, csv_sink.output_path(out, "AUTHOR_COUNTS_CSV_NAME"))
    generate_figure_table(figure_path(out), result.work_counts, result.author_counts)

    logging.info(
        "Run complete. works=%s rows=%s unresolved=%s authors_resolved=%s",
        len(works),
        len(result.final),
        len(result.unresolved),
        len(result.dominant),
    )


def main(argv: list[str] | None = None) -> None:
    """Initialize config and execute the requested command."""
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = parse_args(argv)

    try:
        if args.command == "fetch":
            run_fetch(args.source_id, args.raw, args.clean)
        else:
            run_analyze(
                args.works,
                args.authority,
                args.output_dir,
                threshold=args.threshold,
                on_duplicate=args.on_duplicate,
            )
    except AffiliationPipelineError as exc:
        logging.error("Run aborted: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
