"""
CLI main entry point.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import yaml

from ..config import Config, ConfigValidationError, create_default_config, load_config
from ..extractors import (
    PdfTextExtractionError,
    StatementRouter,
    UnknownFormatError,
    parse_manual_input,
)
from ..schemas.transaction import ParsedStatement, StagedTransaction, TransactionSource
from ..services.deduplication import DeduplicationEngine, DeduplicationResult, as_staged_transactions

logger = logging.getLogger(__name__)

UNKNOWN_FORMAT_MESSAGE = "Unknown statement format: please upload a supported statement format"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="statement-ingest",
        description="Parse bank statements and deduplicate them against manually captured transactions",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # parse command
    parse_parser = subparsers.add_parser("parse", help="Parse a statement (text or PDF)")
    parse_parser.add_argument("file", type=Path, help="Statement file (.pdf or extracted text)")
    parse_parser.add_argument("-o", "--output", type=Path, help="Write JSON here instead of stdout")

    # parse-manual command
    manual_parser = subparsers.add_parser(
        "parse-manual", help="Parse pasted or typed transactions"
    )
    manual_parser.add_argument("file", type=Path, help="Text file with pasted transactions")
    manual_parser.add_argument("-o", "--output", type=Path, help="Write JSON here instead of stdout")

    # dedupe command
    dedupe_parser = subparsers.add_parser(
        "dedupe", help="Deduplicate two JSON transaction sets"
    )
    dedupe_parser.add_argument(
        "set_a", type=Path, help="Statement-side JSON (parse output or transaction list)"
    )
    dedupe_parser.add_argument(
        "set_b", type=Path, help="Manual-side JSON (parse-manual output or transaction list)"
    )
    dedupe_parser.add_argument(
        "--strategy",
        choices=["greedy", "optimal"],
        help="Matching strategy (default: from config)",
    )
    dedupe_parser.add_argument("-o", "--output", type=Path, help="Write JSON here instead of stdout")

    # reconcile command
    reconcile_parser = subparsers.add_parser(
        "reconcile",
        help="Parse a statement and pasted transactions, then deduplicate them",
    )
    reconcile_parser.add_argument("statement", type=Path, help="Statement file (.pdf or text)")
    reconcile_parser.add_argument("manual", type=Path, help="Text file with pasted transactions")
    reconcile_parser.add_argument(
        "--strategy",
        choices=["greedy", "optimal"],
        help="Matching strategy (default: from config)",
    )
    reconcile_parser.add_argument("-o", "--output", type=Path, help="Write JSON result here")

    # init-config command
    init_parser = subparsers.add_parser("init-config", help="Write a default config file")
    init_parser.add_argument("path", type=Path, help="Where to write the config file")
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing file",
    )

    return parser


def _write_json(data, output: Optional[Path]) -> None:
    text = json.dumps(data, indent=2)
    if output is None:
        print(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    print(f"✓ Wrote {output}")


def _parse_statement_file(config: Config, path: Path) -> ParsedStatement:
    router = StatementRouter(config.parser)
    if path.suffix.lower() == ".pdf":
        return router.parse_pdf(path)
    return router.parse_text(path.read_text(encoding="utf-8"))


def _load_transactions(path: Path, default_source: TransactionSource) -> list[StagedTransaction]:
    """Load staged transactions from JSON.

    Accepts a plain list of transaction objects, or a parsed statement
    object (with a "transactions" key) as written by the parse command.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("transactions", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of transactions")
    if not all(isinstance(item, dict) for item in data):
        raise ValueError(f"{path}: expected transaction objects")
    return as_staged_transactions(data, default_source)


def _print_summary(result: DeduplicationResult) -> None:
    print()
    print("📊 Deduplication Results")
    print("=" * 40)
    print(f"  Statement transactions: {result.total_pdf}")
    print(f"  Manual transactions:    {result.total_manual}")
    print(f"  Auto-merged:            {len(result.auto_merged)}")
    print(f"  Needs review:           {len(result.needs_review)}")
    print(f"  Statement only:         {len(result.pdf_only)}")
    print(f"  Manual only:            {len(result.manual_only)}")
    print()

    for pair in result.needs_review:
        print(f"  ⚠ [{pair.score}] {pair.pdf.date} {pair.pdf.amount} {pair.pdf.description}")
        print(f"        ↔ {pair.manual.date} {pair.manual.amount} {pair.manual.description}")
        if pair.reasons:
            print(f"        {', '.join(pair.reasons)}")


def cmd_parse(config: Config, path: Path, output: Optional[Path]) -> int:
    """Parse one statement into JSON."""
    print(f"📄 Parsing {path}...", file=sys.stderr)
    try:
        statement = _parse_statement_file(config, path)
    except UnknownFormatError as e:
        logger.info("Statement rejected: %s", e)
        print(f"❌ {UNKNOWN_FORMAT_MESSAGE}")
        return 1
    except (PdfTextExtractionError, OSError) as e:
        print(f"❌ Could not read statement: {e}")
        return 1

    print(
        f"✓ {statement.statement_type.value} statement "
        f"{statement.period_start} to {statement.period_end}: "
        f"{len(statement.transactions)} transaction(s)",
        file=sys.stderr,
    )
    _write_json(statement.to_dict(), output)
    return 0


def cmd_parse_manual(config: Config, path: Path, output: Optional[Path]) -> int:
    """Parse pasted text into staged transactions JSON."""
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"❌ Could not read {path}: {e}")
        return 1

    transactions = parse_manual_input(raw_text, config.parser)
    print(f"✓ Parsed {len(transactions)} transaction(s)", file=sys.stderr)
    _write_json([t.to_dict() for t in transactions], output)
    return 0


def cmd_dedupe(
    config: Config,
    set_a: Path,
    set_b: Path,
    strategy: Optional[str],
    output: Optional[Path],
) -> int:
    """Deduplicate two JSON transaction sets."""
    try:
        pdf_side = _load_transactions(set_a, TransactionSource.PDF)
        manual_side = _load_transactions(set_b, TransactionSource.MANUAL)
    except (OSError, ValueError, KeyError) as e:
        print(f"❌ Could not load transactions: {e}")
        return 1

    engine = DeduplicationEngine.from_config(config, strategy)
    result = engine.deduplicate(pdf_side, manual_side)
    _print_summary(result)
    _write_json(result.to_dict(), output)
    return 0


def cmd_reconcile(
    config: Config,
    statement_path: Path,
    manual_path: Path,
    strategy: Optional[str],
    output: Optional[Path],
) -> int:
    """Parse a statement and pasted text, then deduplicate them."""
    print("🔄 Reconciling statement against manual entries...")
    try:
        statement = _parse_statement_file(config, statement_path)
    except UnknownFormatError as e:
        logger.info("Statement rejected: %s", e)
        print(f"❌ {UNKNOWN_FORMAT_MESSAGE}")
        return 1
    except (PdfTextExtractionError, OSError) as e:
        print(f"❌ Could not read statement: {e}")
        return 1

    try:
        manual = parse_manual_input(manual_path.read_text(encoding="utf-8"), config.parser)
    except OSError as e:
        print(f"❌ Could not read {manual_path}: {e}")
        return 1

    pdf_side = [
        StagedTransaction.from_raw(t, TransactionSource.PDF, config.confidence.pdf)
        for t in statement.transactions
    ]
    print(f"  → Statement: {len(pdf_side)} transaction(s)")
    print(f"  → Manual:    {len(manual)} transaction(s)")

    engine = DeduplicationEngine.from_config(config, strategy)
    result = engine.deduplicate(pdf_side, manual)
    _print_summary(result)

    if output is not None:
        _write_json(result.to_dict(), output)
    return 0


def cmd_init_config(path: Path, force: bool = False) -> int:
    """Write the default configuration file."""
    if path.exists() and not force:
        print(f"❌ {path} already exists (use --force to overwrite)")
        return 1
    create_default_config(path)
    print(f"✓ Wrote default config to {path}")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        return cmd_init_config(parsed.path, parsed.force)

    # Load config
    try:
        config = load_config(parsed.config)
    except (ConfigValidationError, OSError, yaml.YAMLError) as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    # Route to command
    if parsed.command == "parse":
        return cmd_parse(config, parsed.file, parsed.output)
    elif parsed.command == "parse-manual":
        return cmd_parse_manual(config, parsed.file, parsed.output)
    elif parsed.command == "dedupe":
        return cmd_dedupe(config, parsed.set_a, parsed.set_b, parsed.strategy, parsed.output)
    elif parsed.command == "reconcile":
        return cmd_reconcile(
            config,
            parsed.statement,
            parsed.manual,
            parsed.strategy,
            parsed.output,
        )
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
