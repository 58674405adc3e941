"""Command line interface for cleaning and importing customer files."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import ImportSettings, load_configuration
from .duplicates import detect_duplicates
from .factory import build_repository
from .ingestion import ParseError, export_cleaned_rows, parse_path
from .mapping import detect_file_mappings, detect_format, missing_required_fields
from .orchestrator import ImportCommitter
from .validation import accepted_rows, clean_parsed_file


def build_parser(prog: str | None = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Clean a customer spreadsheet and optionally import it into the shop CRM",
    )
    parser.add_argument("input", help="Path to the customer file (CSV, TSV, XLSX or XLS)")
    parser.add_argument("output", help="Path where the cleaned rows should be written (CSV or XLSX)")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the import configuration file (YAML or JSON)",
    )
    parser.add_argument(
        "--tenant",
        default="default",
        help="Tenant identifier the customers belong to",
    )
    parser.add_argument(
        "--commit",
        action="store_true",
        help="Commit accepted rows to the configured repository after cleaning",
    )
    parser.add_argument(
        "--sms-consent",
        action="store_true",
        help="Record SMS consent for every imported customer",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    config = load_configuration(args.config) if args.config else {}
    settings = ImportSettings.from_config(config)

    try:
        parsed = parse_path(args.input)
    except (ParseError, FileNotFoundError) as exc:
        logging.error("Could not read %s: %s", args.input, exc)
        return 1

    mappings = detect_file_mappings(parsed)
    for mapping in mappings:
        logging.info("Column %r -> %s (%s%%)", mapping.source_header, mapping.target_field.value, mapping.confidence)
    missing = missing_required_fields(mappings)
    if missing:
        logging.warning("Required columns were not detected: %s", ", ".join(missing))

    rows, summary = clean_parsed_file(parsed, mappings)
    export_cleaned_rows(rows, args.output)
    logging.info(
        "%s rows: %s clean, %s warnings, %s errors, %s cells fixed",
        summary.total_rows,
        summary.clean_rows,
        summary.warning_rows,
        summary.error_rows,
        summary.fixed_cells,
    )
    logging.info("Cleaned rows written to %s", Path(args.output).resolve())

    repository = build_repository(config)
    report = detect_duplicates(rows, lambda phones: repository.find_existing_phones(args.tenant, phones))
    for info in report.all:
        logging.warning("Row %s: %s duplicate phone %s (%s)", info.row_index + 1, info.type.value, info.phone, info.name)

    if not args.commit:
        return 0

    result = ImportCommitter(repository, settings).commit(
        accepted_rows(rows),
        args.tenant,
        args.sms_consent,
        import_format=detect_format(mappings),
    )
    logging.info(result.message)
    for detail in result.details:
        logging.warning(detail)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
