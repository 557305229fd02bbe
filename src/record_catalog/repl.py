"""Interactive REPL for querying a record catalog."""

from __future__ import annotations

import argparse
import readline  # noqa: F401 - enables line editing in input()
import sys
from pathlib import Path
from typing import Any

from record_catalog.catalog import Catalog
from record_catalog.config import settings
from record_catalog.executor import CommandExecutor, CommandResult, DotResult
from record_catalog.json_import import load_catalog
from record_catalog.logging import setup_logging
from record_catalog.parsing.command_parser import CommandParser
from record_catalog.record import Record


def _split_statements(content: str) -> list[str]:
    """Split content into commands on semicolons outside string literals and regexes.

    ``--`` starts a comment that runs to the end of the line.
    """
    statements = []
    current = []
    in_string = False
    in_regex = False
    in_comment = False
    escape_next = False

    for i, ch in enumerate(content):
        if in_comment:
            if ch == "\n":
                in_comment = False
                current.append(ch)
            continue

        if escape_next:
            current.append(ch)
            escape_next = False
            continue

        if ch == "\\" and (in_string or in_regex):
            current.append(ch)
            escape_next = True
            continue

        if ch == "-" and content[i + 1 : i + 2] == "-" and not in_string and not in_regex:
            in_comment = True
            continue

        if ch == '"' and not in_regex:
            in_string = not in_string
        elif ch == "/" and not in_string:
            # A regex literal only opens right after the matches keyword
            if in_regex:
                in_regex = False
            elif "".join(current).rstrip().lower().endswith("matches"):
                in_regex = True
        elif ch == ";" and not in_string and not in_regex:
            stmt = "".join(current).strip()
            if stmt:
                statements.append(stmt)
            current = []
            continue

        current.append(ch)

    stmt = "".join(current).strip()
    if stmt:
        statements.append(stmt)

    return statements


def format_value(value: Any, max_items: int = 10, max_width: int = 40) -> str:
    """Format a value for display.

    Args:
        value: The value to format
        max_items: Maximum number of list items to show before eliding
        max_width: Maximum character width before truncating
    """
    if value is None:
        return "NULL"
    elif isinstance(value, bool):
        return "true" if value else "false"
    elif isinstance(value, int):
        return str(value)
    elif isinstance(value, float):
        return f"{value:.6g}"
    elif isinstance(value, Record):
        return f"-> {value.key}"
    elif isinstance(value, str):
        if len(value) > max_width:
            return value[:max_width - 3] + "..."
        return value
    elif isinstance(value, (list, tuple)):
        formatted = []
        for i, v in enumerate(value):
            if i >= max_items:
                remaining = len(value) - max_items
                formatted.append(f"...+{remaining} more")
                break
            formatted.append(format_value(v, max_items, max_width))

        result = "[" + ", ".join(formatted) + "]"
        if len(result) > max_width:
            return result[:max_width - 4] + "...]"
        return result
    else:
        s = str(value)
        if len(s) > max_width:
            return s[:max_width - 3] + "..."
        return s


def print_result(result: CommandResult) -> None:
    """Print a command result as a formatted table."""
    if isinstance(result, DotResult) and result.dot:
        print(result.dot)
        return

    if result.message:
        print(result.message)
        if not result.rows:
            return

    if not result.rows:
        print("(no results)")
        return

    # Calculate column widths
    col_widths = {}
    for col in result.columns:
        col_widths[col] = len(col)

    for row in result.rows:
        for col in result.columns:
            val = format_value(row.get(col))
            col_widths[col] = max(col_widths[col], len(val))

    # Cap column widths
    max_col_width = 40
    for col in col_widths:
        col_widths[col] = min(col_widths[col], max_col_width)

    header = " | ".join(col.ljust(col_widths[col])[:col_widths[col]] for col in result.columns)
    print(header)
    print("-" * len(header))

    for row in result.rows:
        values = []
        for col in result.columns:
            val = format_value(row.get(col))
            if len(val) > col_widths[col]:
                val = val[: col_widths[col] - 3] + "..."
            values.append(val.ljust(col_widths[col]))
        print(" | ".join(values))

    print(f"\n({len(result.rows)} row{'s' if len(result.rows) != 1 else ''})")


def open_catalog(path: Path) -> Catalog:
    """Load a catalog document and scan it."""
    imported = load_catalog(path)
    catalog = Catalog(imported.source, registry=imported.registry)
    catalog.scan()
    return catalog


def run_command(executor: CommandExecutor, parser: CommandParser, text: str) -> CommandResult:
    """Parse and execute one command."""
    command = parser.parse(text)
    return executor.execute(command)


def print_help() -> None:
    """Print help information."""
    print("""
rcq - record catalog queries

SEARCH:
  find                                 List every record
  find <Type>                          Records of a type and its subtypes
  find [<Type>] where <filter>         Records matching a filter

FILTERS:
  field = value, field == value        Equality
  field != value                       Inequality
  field < value, <=, >, >=             Ordering
  field contains "text"                Case-insensitive substring
  field not contains "text"            Substring absent (null never matches)
  field starts with "text"             Case-insensitive prefix
  field ends with "text"               Case-insensitive suffix
  field matches /regex/                Regular expression on string fields
  field is null, field is not null     Null tests
  cond and cond and ...                All conditions hold
  cond or cond or ...                  Any condition holds
                                       (and/or cannot be mixed)
  Values: 10, 2.5, "text", true, false, null, EnumMember
  Fields may be dotted: weapon.damage

DEPENDENCIES:
  orphans                              Unreferenced records (container types skipped)
  orphans all                          Unreferenced records of every type
  orphans excluding T1, T2             Skip the given types
  top [N]                              Most referenced records
  top dependencies [N]                 Records with the most references
  path "a" to "b"                      Shortest reference chain
  references "key"                     Records referencing a record
  dependencies "key"                   Records a record references
  stats                                Graph statistics
  stats "key"                          Statistics for one record
  graph                                Print the graph as DOT
  graph to "file.dot"                  Write the graph as DOT
  rebuild                              Rescan and rebuild the graph

SCHEMA:
  show types                           List record types
  show categories                      Category tree
  describe <Type>                      Queryable fields of a type

OTHER:
  help                                 Show this help
  exit, quit                           Exit the REPL

Commands may end with a semicolon.
""")


def run_repl(catalog_path: Path) -> int:
    """Run the interactive REPL."""
    print("rcq - record catalog queries")
    try:
        catalog = open_catalog(catalog_path)
    except Exception as e:
        print(f"Error loading catalog: {e}", file=sys.stderr)
        return 1

    scan = catalog.last_scan
    print(f"Catalog: {catalog_path} ({scan.total_record_count} records, {scan.total_type_count} types)")
    print("Type 'help' for commands, 'exit' to quit.\n")

    executor = CommandExecutor(catalog)
    parser = CommandParser()

    history_file = Path.home() / ".rcq_history"
    try:
        readline.read_history_file(history_file)
    except (FileNotFoundError, OSError):
        pass

    try:
        while True:
            try:
                line = input("rcq> ").strip()
            except EOFError:
                print()
                break

            if not line:
                continue

            lower = line.lower().rstrip(";")
            if lower in ("exit", "quit"):
                break
            elif lower == "help":
                print_help()
                continue

            for statement in _split_statements(line):
                try:
                    print_result(run_command(executor, parser, statement))
                except SyntaxError as e:
                    print(f"Syntax error: {e}")
                except Exception as e:
                    print(f"Error: {e}")

            print()

    finally:
        try:
            readline.set_history_length(1000)
            readline.write_history_file(history_file)
        except OSError:
            pass

    return 0


def run_file(file_path: Path, catalog_path: Path, verbose: bool = False) -> int:
    """Execute commands from a file.

    Args:
        file_path: Path to the file containing commands
        catalog_path: Catalog document to query
        verbose: If True, print each command before executing

    Returns:
        0 on success, 1 on error
    """
    try:
        content = file_path.read_text()
    except OSError as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        return 1

    commands = _split_statements(content)
    if not commands:
        print("No commands found in file", file=sys.stderr)
        return 1

    try:
        catalog = open_catalog(catalog_path)
    except Exception as e:
        print(f"Error loading catalog: {e}", file=sys.stderr)
        return 1

    executor = CommandExecutor(catalog)
    parser = CommandParser()

    for text in commands:
        if verbose:
            for i, line in enumerate(text.split("\n")):
                prefix = ">>> " if i == 0 else "... "
                print(f"{prefix}{line}")

        try:
            print_result(run_command(executor, parser, text))
        except SyntaxError as e:
            print(f"Syntax error: {e}", file=sys.stderr)
            return 1
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    arg_parser = argparse.ArgumentParser(
        description="Query a record catalog: predicate search and dependency analysis"
    )
    arg_parser.add_argument(
        "catalog",
        type=Path,
        help="Path to the catalog JSON document",
    )
    arg_parser.add_argument(
        "-c", "--command",
        type=str,
        help="Execute a single command and exit",
    )
    arg_parser.add_argument(
        "-f", "--file",
        type=Path,
        help="Execute commands from a file and exit",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print each command before executing (for -f/--file)",
    )
    arg_parser.add_argument(
        "--log-level",
        default=None,
        help=f"Log level (default: {settings.log_level})",
    )

    args = arg_parser.parse_args(argv)
    setup_logging(args.log_level)

    if not args.catalog.exists():
        print(f"Error: Catalog not found: {args.catalog}", file=sys.stderr)
        return 1

    if args.file:
        if not args.file.exists():
            print(f"Error: File not found: {args.file}", file=sys.stderr)
            return 1
        return run_file(args.file, args.catalog, args.verbose)

    if args.command:
        try:
            catalog = open_catalog(args.catalog)
            executor = CommandExecutor(catalog)
            parser = CommandParser()
            for statement in _split_statements(args.command):
                if args.verbose:
                    print(f">>> {statement}")
                print_result(run_command(executor, parser, statement))
            return 0
        except SyntaxError as e:
            print(f"Syntax error: {e}", file=sys.stderr)
            return 1
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    return run_repl(args.catalog)


if __name__ == "__main__":
    sys.exit(main())
