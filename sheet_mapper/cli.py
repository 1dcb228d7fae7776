from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from sheet_mapper import __version__ as TOOL_VERSION
from sheet_mapper.config import DEFAULT_MAX_PREVIEW_ROWS, DEFAULT_MAX_ROWS, DEFAULT_MIN_CONFIDENCE, ParseOptions
from sheet_mapper.contracts import build_envelope
from sheet_mapper.matcher import suggest_template
from sheet_mapper.models import ParseOutcome
from sheet_mapper.parser import parse_path
from sheet_mapper.templates import ImportTemplate, check_template_match

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_NO_SUGGESTION = 3

DELIMITER_ALIASES = {"\\t": "\t", "tab": "\t", "comma": ",", "semicolon": ";", "pipe": "|"}
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class SheetMapperArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def configure_logging(args: argparse.Namespace) -> None:
    if getattr(args, "verbose", False):
        level = logging.DEBUG
    elif getattr(args, "quiet", False):
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def resolve_delimiter(value: str | None) -> str | None:
    if value is None:
        return None
    return DELIMITER_ALIASES.get(value.lower(), value)


def build_options(args: argparse.Namespace) -> ParseOptions:
    try:
        return ParseOptions(
            max_rows=args.max_rows,
            max_preview_rows=args.max_preview_rows,
            delimiter=resolve_delimiter(args.delimiter),
            encoding=args.encoding,
            has_header=args.has_header,
        )
    except ValueError as exc:
        raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc


def read_outcome(args: argparse.Namespace) -> tuple[Path, ParseOutcome]:
    input_path = Path(args.input)
    options = build_options(args)
    try:
        return input_path, parse_path(input_path, options)
    except FileNotFoundError as exc:
        raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc


def load_templates(path: Path) -> list[ImportTemplate]:
    if not path.exists():
        raise CliError(f"Templates file not found: {path}", EXIT_COMMAND_ERROR)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CliError(f"Could not read templates file {path}: {exc}", EXIT_COMMAND_ERROR) from exc
    if isinstance(payload, dict):
        payload = payload.get("templates", [])
    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise CliError("Templates file must contain a list of template objects.", EXIT_COMMAND_ERROR)
    return [ImportTemplate.from_dict(item) for item in payload]


def outcome_metrics(outcome: ParseOutcome) -> dict[str, Any]:
    return {
        "row_count": outcome.row_count,
        "field_count": len(outcome.fields),
        "preview_rows": len(outcome.preview_rows),
    }


def render_parse_text(input_path: Path, outcome: ParseOutcome) -> str:
    lines = [
        "sheet-mapper parse",
        f"File: {input_path.name}",
        f"Encoding: {outcome.detected_encoding or '[unknown]'}{' (BOM)' if outcome.has_bom else ''}",
    ]
    if not outcome.success:
        lines.append(f"Error: {outcome.error}")
        return "\n".join(lines) + "\n"
    if outcome.detected_delimiter is not None:
        lines.append(f"Delimiter: {outcome.detected_delimiter!r}")
    if outcome.has_header is not None:
        lines.append(f"Header row: {'yes' if outcome.has_header else 'no'}")
    lines.append(f"Rows: {outcome.row_count}")
    lines.append("Fields:")
    for detected in outcome.fields:
        lines.append(
            f"  - {detected.name}: {detected.data_type.value} "
            f"({detected.confidence:.0%}) e.g. {detected.sample_value or '[empty]'}"
        )
    if outcome.warnings:
        lines.append("Warnings:")
        lines.extend(f"  - {warning}" for warning in outcome.warnings)
    return "\n".join(lines) + "\n"


def build_parser() -> argparse.ArgumentParser:
    parser = SheetMapperArgumentParser(prog="sheet-mapper", description="Inspect data files and map their columns onto import templates.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_parse_arguments(command: argparse.ArgumentParser) -> None:
        command.add_argument("input", help="Input file path (.csv, .txt or .json)")
        command.add_argument("--delimiter", help="Force the delimiter (single character, or tab/comma/semicolon/pipe)")
        command.add_argument("--encoding", help="Force the text encoding")
        header = command.add_mutually_exclusive_group()
        header.add_argument("--header", dest="has_header", action="store_const", const=True, help="First row is a header")
        header.add_argument("--no-header", dest="has_header", action="store_const", const=False, help="First row is data")
        command.add_argument("--max-rows", type=int, default=DEFAULT_MAX_ROWS, help="Rows sampled for type inference")
        command.add_argument("--max-preview-rows", type=int, default=DEFAULT_MAX_PREVIEW_ROWS, help="Rows kept for preview")
        command.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
        command.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
        command.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    parse = subparsers.add_parser("parse", help="Detect the dialect and column types of a file.")
    add_parse_arguments(parse)

    suggest = subparsers.add_parser("suggest", help="Suggest the template that best fits a file.")
    add_parse_arguments(suggest)
    suggest.add_argument("--templates", required=True, help="JSON file with a list of templates")
    suggest.add_argument("--min-confidence", type=float, default=DEFAULT_MIN_CONFIDENCE, help="Minimum score (0-1) to suggest a template")

    subparsers.add_parser("version", help="Print version")
    return parser


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def run_parse(args: argparse.Namespace) -> int:
    input_path, outcome = read_outcome(args)
    status = "ok" if outcome.success else "failed"
    if args.json:
        payload = build_envelope(
            "parse",
            input_path,
            status=status,
            metrics=outcome_metrics(outcome),
            warnings=list(outcome.warnings),
            result=outcome.to_dict(),
        )
        maybe_emit_json_stdout(payload, True)
    else:
        emit_human(render_parse_text(input_path, outcome).rstrip(), quiet=args.quiet and outcome.success)
    return EXIT_SUCCESS if outcome.success else EXIT_PARSE_FAILED


def run_suggest(args: argparse.Namespace) -> int:
    templates = load_templates(Path(args.templates))
    if not 0.0 <= args.min_confidence <= 1.0:
        raise CliError("--min-confidence must be between 0 and 1.", EXIT_COMMAND_ERROR)
    input_path, outcome = read_outcome(args)
    if not outcome.success:
        eprint(f"Parse failed: {outcome.error}")
        return EXIT_PARSE_FAILED

    suggestion = suggest_template(outcome.columns, templates, args.min_confidence)
    match = None
    if suggestion is not None:
        chosen = next(template for template in templates if template.id == suggestion.template_id)
        match = check_template_match(chosen, outcome.columns)

    if args.json:
        payload = build_envelope(
            "suggest",
            input_path,
            status="ok" if suggestion else "no_match",
            metrics={"templates_considered": len(templates), **outcome_metrics(outcome)},
            warnings=list(outcome.warnings),
            columns=outcome.columns,
            suggestion=suggestion.to_dict() if suggestion else None,
            missing_columns=list(match.missing_columns) if match else [],
        )
        maybe_emit_json_stdout(payload, True)
    elif suggestion is None:
        emit_human(f"No template reached {args.min_confidence:.0%} for {input_path.name}", quiet=args.quiet)
    else:
        lines = [f"Suggested template: {suggestion.template_id} ({suggestion.confidence}%)"]
        if match and match.missing_columns:
            lines.append(f"Missing columns: {', '.join(match.missing_columns)}")
        emit_human("\n".join(lines), quiet=args.quiet)
    return EXIT_SUCCESS if suggestion else EXIT_NO_SUGGESTION


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        configure_logging(args)
        if args.command == "parse":
            return run_parse(args)
        if args.command == "suggest":
            return run_suggest(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
