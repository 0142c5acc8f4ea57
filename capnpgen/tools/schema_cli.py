"""
Schema CLI tool for capnpgen.

This tool turns schema documents into Cap'n Proto files:
- generate: Print or write the schema text of a document
- compile: Write the schema and run `capnp compile` on it
- check: Verify compatibility of a document with a baseline
- id: Print a fresh file id

Usage:
    capnpgen generate schema.yaml -o demo.capnp
    capnpgen compile schema.yaml --lang c++ --output-dir gen/
    capnpgen check --baseline schema.v1.yaml schema.v2.yaml
    capnpgen id

Invariants:
    - Validation and breaking changes cause exit code 1
    - Generated text is deterministic for a given document
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from ..build import compile_schema, write_schema
from ..config import Settings, get_settings
from ..errors import CapnpGenError
from ..schema import check_compatibility, generate_file_id, generate_fingerprint
from ..schema_format import compile_document, load_schema

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for CLI use."""
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers = [handler]


class SchemaCLI:
    """CLI commands for schema documents.

    Example:
        >>> cli = SchemaCLI()
        >>> text = cli.generate("schema.yaml")
        >>> ok, issues = cli.check("schema.v1.yaml", "schema.v2.yaml")
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()

    def generate(self, schema_path: str) -> str:
        """Emit schema text for a document."""
        return compile_document(load_schema(schema_path))

    def compile(self, schema_path: str) -> Path:
        """Write a document's schema under output_dir and compile it."""
        doc = load_schema(schema_path)
        text = compile_document(doc)
        path = write_schema(Path(self.settings.output_dir) / doc.file, text)
        compile_schema(path, self.settings)
        return path

    def check(self, baseline_path: str, schema_path: str) -> tuple[bool, list[str]]:
        """Check compatibility with baseline.

        Returns:
            Tuple of (is_compatible, list_of_issues)
        """
        old = load_schema(baseline_path)
        new = load_schema(schema_path)
        changes = check_compatibility(old.types, new.types)
        for change in changes:
            logger.info(str(change))
        issues = [str(c) for c in changes if c.is_breaking]
        return len(issues) == 0, issues


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="capnpgen", description="Code-first Cap'n Proto schema generator"
    )
    parser.add_argument("--log-level", help="Logging level (default: CAPNPGEN_LOG_LEVEL or INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser("generate", help="Emit schema text")
    generate_parser.add_argument("schema", help="Schema document (.yaml/.yml/.json)")
    generate_parser.add_argument("--output", "-o", help="Output file (default: stdout)")
    generate_parser.add_argument(
        "--fingerprint", action="store_true", help="Print the text fingerprint to stderr"
    )

    compile_parser = subparsers.add_parser("compile", help="Write and compile with capnp")
    compile_parser.add_argument("schema", help="Schema document (.yaml/.yml/.json)")
    compile_parser.add_argument(
        "--lang", action="append", dest="languages", help="capnp output plugin (repeatable)"
    )
    compile_parser.add_argument("--output-dir", help="Directory for the .capnp and generated code")
    compile_parser.add_argument("--capnp", dest="capnp_bin", help="Path to the capnp binary")

    check_parser = subparsers.add_parser("check", help="Check compatibility with baseline")
    check_parser.add_argument(
        "--baseline", "-b", required=True, help="Baseline schema document"
    )
    check_parser.add_argument("schema", help="New schema document")

    subparsers.add_parser("id", help="Print a new random file id")
    return parser


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {}
    for key in ("languages", "output_dir", "capnp_bin"):
        value = getattr(args, key, None)
        if value:
            overrides[key] = value
    base = get_settings()
    return base.model_copy(update=overrides) if overrides else base


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = _settings_from_args(args)
    setup_logging(args.log_level or settings.log_level)
    cli = SchemaCLI(settings)

    try:
        if args.command == "generate":
            text = cli.generate(args.schema)
            if args.output:
                write_schema(args.output, text)
                print(f"Schema written to {args.output}", file=sys.stderr)
            else:
                sys.stdout.write(text)
            if args.fingerprint:
                print(generate_fingerprint(text), file=sys.stderr)

        elif args.command == "compile":
            path = cli.compile(args.schema)
            print(f"Schema compiled: {path}")

        elif args.command == "check":
            is_compatible, issues = cli.check(args.baseline, args.schema)
            if is_compatible:
                print("Schema is compatible with baseline")
            else:
                print(f"Schema compatibility check FAILED with {len(issues)} breaking change(s):")
                for issue in issues:
                    print(f"  - {issue}")
                sys.exit(1)

        elif args.command == "id":
            print(f"@0x{generate_file_id():x};")

    except CapnpGenError as e:
        print(f"error: {e.message}", file=sys.stderr)
        sys.exit(1)
    except (OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
