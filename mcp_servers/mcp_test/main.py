"""``mcp-test``: run, validate or format test DSL scripts against an MCP server."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from mcp_servers.browser_bridge.cancel import CancelScope
from mcp_servers.browser_bridge.logging_setup import configure_logging

from .dsl import Interpreter, format_script, validate_file
from .durations import parse_duration
from .errors import DSLError, MCPClientError

logger = logging.getLogger("mcp.test")

EPILOG = """\
Examples:
  %(prog)s test.dsl                  # Run a DSL script
  %(prog)s -validate test.dsl        # Validate script syntax
  %(prog)s -format test.dsl          # Format script
  %(prog)s -format -o out.dsl in.dsl # Format and save to file
"""


def _duration(text: str) -> float:
    try:
        return parse_duration(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="mcp-test",
        description="MCP Test DSL Runner - Execute DSL scripts to test MCP servers",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("-validate", "--validate", action="store_true", help="Validate script syntax without executing")
    p.add_argument("-format", "--format", action="store_true", help="Format the script")
    p.add_argument("-o", dest="output", default="", help="Output file for formatted script")
    p.add_argument(
        "-timeout",
        "--timeout",
        type=_duration,
        default=0.0,
        help="Execution timeout, e.g. 30s or 1m30s (0 for no timeout)",
    )
    p.add_argument("-log-level", "--log-level", default="warning", help="Log level for runner diagnostics")
    p.add_argument("script", nargs="?", help="Path to the .dsl script")
    return p


def _format(script: str, output: str) -> int:
    try:
        source = Path(script).read_text(encoding="utf-8")
    except OSError as exc:
        print(f"Failed to read file: {exc}", file=sys.stderr)
        return 1
    try:
        formatted = format_script(source)
    except DSLError as exc:
        print(f"Failed to format script: {exc}", file=sys.stderr)
        return 1

    if output:
        try:
            Path(output).write_text(formatted, encoding="utf-8")
        except OSError as exc:
            print(f"Failed to write output file: {exc}", file=sys.stderr)
            return 1
        print(f"Formatted script written to {output}")
    else:
        sys.stdout.write(formatted)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.script:
        parser.print_help(sys.stderr)
        return 1

    configure_logging(args.log_level, "text")

    if args.validate:
        try:
            validate_file(args.script)
        except DSLError as exc:
            print(f"Validation failed: {exc}", file=sys.stderr)
            return 1
        print("Script is valid")
        return 0

    if args.format:
        return _format(args.script, args.output)

    interpreter = Interpreter()
    scope = CancelScope(timeout=args.timeout if args.timeout > 0 else None, name="mcp-test")
    try:
        interpreter.execute_file(args.script, scope)
    except DSLError as exc:
        print(f"Execution failed: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Execution failed: interrupted", file=sys.stderr)
        return 1
    finally:
        scope.close()
        try:
            interpreter.close()
        except MCPClientError as exc:
            print(f"Warning: failed to close client: {exc}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
