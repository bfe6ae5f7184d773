"""
toylang.cli - Toy language Command Line Interface

This module provides the main CLI entry point with subcommand support:

- toylang lsp                 Start the language server on stdio
- toylang format <file>       Print the file reindented by brace depth
- toylang check <file>        Report TODO items found in the file
"""

import argparse
import sys
import traceback
from typing import Optional


def _read_source(path: str) -> Optional[str]:
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        print(f"Error: cannot read {path}: {e}", file=sys.stderr)
        return None


def cmd_lsp(args: argparse.Namespace) -> int:
    """Start the Language Server Protocol server."""
    from toylang.lsp.config import ServerConfig
    from toylang.lsp.server import start_server

    log_path = getattr(args, "log", None)

    try:
        return start_server(ServerConfig.from_args(log_path=log_path))
    except Exception as e:
        print(f"Error starting LSP server: {e}", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        return 1


def cmd_format(args: argparse.Namespace) -> int:
    """Reindent a file and print the result."""
    from toylang.lsp.documents import split_lines
    from toylang.lsp.formatting import indent_document

    source = _read_source(args.file)
    if source is None:
        return 1

    formatted = indent_document(source)
    if args.check:
        # Line endings and the final newline are not formatting differences
        if formatted != "\n".join(split_lines(source)):
            print(f"{args.file} would be reformatted", file=sys.stderr)
            return 1
        return 0

    print(formatted)
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Print diagnostics for a file, one per line."""
    from toylang.lsp.features import generate_diagnostics

    source = _read_source(args.file)
    if source is None:
        return 1

    diagnostics = generate_diagnostics(source)
    for diagnostic in diagnostics:
        start = diagnostic["range"]["start"]
        # Editors count from 1
        print(
            f"{args.file}:{start['line'] + 1}:{start['character'] + 1}: "
            f"warning: {diagnostic['message']}"
        )
    return 1 if diagnostics else 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="toylang",
        description="toylang - A micro language server for a toy language",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  toylang lsp                   Start the language server on stdio
  toylang lsp --log lsp.log     Also write debug logging to lsp.log
  toylang format main.toy       Print main.toy reindented
  toylang format --check a.toy  Exit 1 if a.toy is not formatted
  toylang check main.toy        List TODO items in main.toy
        """,
    )

    subparsers = parser.add_subparsers(dest="subcommand", metavar="<command>")

    # lsp subcommand
    lsp_parser = subparsers.add_parser(
        "lsp", help="Start the Language Server Protocol server"
    )
    lsp_parser.add_argument(
        "--log",
        metavar="FILE",
        help="Log file for debugging LSP communication",
    )

    # format subcommand
    format_parser = subparsers.add_parser(
        "format", help="Reindent a source file by brace depth"
    )
    format_parser.add_argument("file", help="Source file to format")
    format_parser.add_argument(
        "--check",
        action="store_true",
        help="Don't print, exit with 1 if the file would change",
    )

    # check subcommand
    check_parser = subparsers.add_parser("check", help="Report TODO items in a file")
    check_parser.add_argument("file", help="Source file to check")

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the toylang CLI. Calls sys.exit with return code."""
    sys.exit(_main(argv))


def _main(argv: Optional[list[str]] = None) -> int:
    """Internal main that returns exit code."""
    if argv is None:
        argv = sys.argv[1:]

    parser = create_parser()
    args = parser.parse_args(argv)

    if args.subcommand == "lsp":
        return cmd_lsp(args)
    elif args.subcommand == "format":
        return cmd_format(args)
    elif args.subcommand == "check":
        return cmd_check(args)

    parser.print_help()
    return 2


if __name__ == "__main__":
    main()
