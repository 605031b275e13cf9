"""Command-line entry point: corpus validation and the API server."""

import argparse
import sys

from profile_bot.lib.logger import setup_logging
from profile_bot.storage.knowledge_validator import ValidationReport, validate_knowledge_file


def print_report(report: ValidationReport, stats_only: bool = False) -> None:
    """Print issues and the summary block for a validation report."""
    if not stats_only:
        for issue in report.issues:
            stream = sys.stderr if issue.level == "ERROR" else sys.stdout
            print(issue, file=stream)

    total = report.total_lines or 1

    print("")
    print("=== Knowledge Base Summary ===")
    print(f"File: {report.path.name}")
    print(f"Total entries: {report.total_lines}")
    print(f"Unique IDs: {report.unique_ids}")
    print("")

    print("By type:")
    for entry_type, count in report.type_counts.most_common():
        print(f"  {entry_type}: {count} ({count * 100 / total:.0f}%)")
    print("")

    print("By topic:")
    for topic, count in report.topic_counts.most_common():
        print(f"  {topic}: {count}")
    print("")

    print("By confidence:")
    for confidence, count in report.confidence_counts.most_common():
        print(f"  {confidence}: {count} ({count * 100 / total:.0f}%)")
    print("")

    print(f"Coverage: {report.coverage_note}")
    print(f"Errors: {report.error_count}  Warnings: {report.warning_count}")
    print("PASSED" if report.is_valid else "FAILED")


def run_validate(args: argparse.Namespace) -> int:
    try:
        report = validate_knowledge_file(args.path, strict=args.strict)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print_report(report, stats_only=args.stats)
    return 0 if report.is_valid else 1


def run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="profile-bot",
        description="Profile Bot - grounded Q&A over a curated knowledge base",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Examples:
  profile-bot validate data/knowledge.jsonl
  profile-bot validate data/knowledge.jsonl --strict
  profile-bot serve --port 8787
        """,
    )
    parser.add_argument("--debug", action="store_true", help="Enable verbose logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Validate a JSONL knowledge file")
    validate.add_argument("path", help="Path to knowledge.jsonl")
    validate.add_argument("--strict", action="store_true", help="Treat warnings as errors")
    validate.add_argument(
        "--stats", action="store_true", help="Show only statistics, no individual issues"
    )
    validate.set_defaults(func=run_validate)

    serve = subparsers.add_parser("serve", help="Run the chat API server")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8787)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=run_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(log_level="DEBUG" if args.debug else "INFO", quiet=not args.debug)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
