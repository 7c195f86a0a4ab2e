"""CLI entry point for the claim adjudicator.

A thin transport over the decision pipeline:
- decide: run the pipeline on a query and local files, print the Decision
- parse: show what text the parser extracts from local files
"""

import json
import logging
import os
import sys
from pathlib import Path

# Ensure src is on path when run as script
if __name__ == "__main__" and str(Path(__file__).resolve().parent.parent) not in sys.path:
    sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def _setup_logging() -> None:
    """Configure logging for CLI usage."""
    from claim_adjudicator.observability import get_logger

    get_logger("claim_adjudicator")
    logging.getLogger("claim_adjudicator").setLevel(
        logging.DEBUG if os.environ.get("CLAIM_ADJUDICATOR_LOG_LEVEL") == "DEBUG" else logging.INFO
    )


def _usage() -> str:
    return """Usage:
  claim-adjudicator decide "<query>" <file>...   Decide a claim against policy documents
  claim-adjudicator parse <file>...              Show text extracted from documents

Supported document formats: .pdf, .docx, .eml (other files are ignored)

Options:
  --debug                                        Enable debug logging
  --json                                         Use JSON log format
"""


def _read_files(paths: list[str]) -> list[tuple[str, bytes]]:
    """Read local files as (name, bytes) pairs; exits if any path is missing."""
    files = []
    for raw in paths:
        path = Path(raw)
        if not path.is_file():
            print(f"Error: File not found: {path}", file=sys.stderr)
            sys.exit(1)
        files.append((path.name, path.read_bytes()))
    return files


def cmd_decide(query: str, paths: list[str]) -> None:
    """Run the pipeline and print the decision JSON."""
    from claim_adjudicator.exceptions import PipelineError
    from claim_adjudicator.pipeline import run_pipeline

    files = _read_files(paths)
    try:
        decision = run_pipeline(query, files)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except PipelineError as e:
        print(json.dumps(e.to_dict(), indent=2), file=sys.stderr)
        sys.exit(1)
    print(json.dumps(decision.to_payload(), indent=2))


def cmd_parse(paths: list[str]) -> None:
    """Print the name and extracted character count of each parsed document."""
    from claim_adjudicator.ingestion import DocumentParser

    parser = DocumentParser()
    documents = parser.parse(_read_files(paths))
    if not documents:
        print(
            f"No supported documents. Supported formats: {', '.join(parser.supported_suffixes())}",
            file=sys.stderr,
        )
        sys.exit(1)
    print(
        json.dumps(
            [{"name": d.name, "characters": len(d.text), "empty": d.is_empty} for d in documents],
            indent=2,
        )
    )


def main() -> None:
    """Run the claim adjudicator: decide or parse."""
    argv = [arg for arg in sys.argv[1:] if not arg.startswith("--")]
    options = [arg for arg in sys.argv[1:] if arg.startswith("--")]

    if "--json" in options:
        os.environ["CLAIM_ADJUDICATOR_LOG_FORMAT"] = "json"
    if "--debug" in options:
        os.environ["CLAIM_ADJUDICATOR_LOG_LEVEL"] = "DEBUG"

    _setup_logging()

    if not argv:
        print(_usage(), file=sys.stderr)
        sys.exit(1)

    command = argv[0].lower()

    if command == "decide":
        if len(argv) < 3:
            print('Error: decide requires "<query>" and at least one <file>', file=sys.stderr)
            print(_usage(), file=sys.stderr)
            sys.exit(1)
        cmd_decide(argv[1], argv[2:])
        return

    if command == "parse":
        if len(argv) < 2:
            print("Error: parse requires at least one <file>", file=sys.stderr)
            print(_usage(), file=sys.stderr)
            sys.exit(1)
        cmd_parse(argv[1:])
        return

    print(f"Error: Unknown command: {command}", file=sys.stderr)
    print(_usage(), file=sys.stderr)
    sys.exit(1)


if __name__ == "__main__":
    main()
