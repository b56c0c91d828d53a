"""
REPL (Read-Eval-Print Loop) for interactive SQL queries.

Provides command-line interface to the database.
"""

import argparse
import logging
import select
import sys
from typing import List, Optional

from .config import Settings, configure_logging
from .executor.executor import QueryExecutor
from .formatter import format_result, format_schema
from .storage.table_manager import TableManager

logger = logging.getLogger(__name__)


def has_pending_input():
    """Check if there's input waiting in stdin (indicates paste)."""
    if not sys.stdin.isatty():
        return True
    try:
        r, _, _ = select.select([sys.stdin], [], [], 0)
        return bool(r)
    except (ValueError, OSError, TypeError):
        return False


def read_line_raw(prompt, suppress_if_pending=False):
    """
    Read a line using raw stdin to avoid readline interference.

    This prevents issues with paste operations where prompts
    can get mixed into the input buffer.
    """
    if suppress_if_pending and has_pending_input():
        prompt = ""
    sys.stdout.write(prompt)
    sys.stdout.flush()
    line = sys.stdin.readline()
    if not line:  # EOF
        raise EOFError()
    return line.rstrip('\n\r')


def print_banner():
    """Print welcome banner."""
    print("=" * 60)
    print("  SimpleRDBMS - Interactive SQL Shell")
    print("=" * 60)
    print("Type SQL commands or special commands:")
    print("  Multi-line input supported - end with semicolon (;)")
    print("  .help     - Show help")
    print("  .tables   - List all tables")
    print("  .schema TABLE - Show table schema")
    print("  .exit or .quit - Exit REPL")
    print("=" * 60)
    print()


def print_help():
    """Print help message."""
    print("\n--- Help ---")
    print("SQL Commands:")
    print("  CREATE TABLE [IF NOT EXISTS] name (col TYPE constraints, ...)")
    print("  DROP TABLE [IF EXISTS] name")
    print("  CREATE [UNIQUE] INDEX name ON table (columns)")
    print("  INSERT INTO table [(cols...)] VALUES (vals...), ...")
    print("  SELECT cols FROM table [WHERE condition] [ORDER BY col [DESC]] [LIMIT n]")
    print("  UPDATE table SET col = expr, ... [WHERE condition]")
    print("  DELETE FROM table [WHERE condition]")
    print("  BEGIN / COMMIT")
    print("\nSpecial Commands:")
    print("  .help     - Show this help")
    print("  .tables   - List all tables")
    print("  .schema TABLE - Show schema for TABLE")
    print("  .stats    - Show database statistics")
    print("  .exit / .quit - Exit REPL")
    print()


def handle_special_command(command: str, table_manager: TableManager) -> bool:
    """
    Handle special REPL commands (starting with .).

    Args:
        command: Command string
        table_manager: Table manager to inspect

    Returns:
        True if should continue REPL, False to exit
    """
    parts = command.strip().rstrip(';').split()
    name = parts[0].lower()

    if name in ['.exit', '.quit']:
        print("Goodbye!")
        return False

    elif name == '.help':
        print_help()

    elif name == '.tables':
        tables = table_manager.list_tables()
        if tables:
            print("\nTables:")
            for table in tables:
                print(f"  - {table} ({table_manager.row_count(table)} rows)")
        else:
            print("\nNo tables.")
        print()

    elif name == '.schema':
        if len(parts) < 2:
            print("Usage: .schema TABLE_NAME")
        else:
            schema = table_manager.get_table(parts[1])
            if schema is None:
                print(f"Error: Table '{parts[1]}' does not exist\n")
            else:
                print()
                print(format_schema(schema))
                print()

    elif name == '.stats':
        stats = table_manager.get_stats()
        print("\nDatabase Statistics:")
        for key, value in stats.items():
            print(f"  {key}: {value} rows")
        print()

    else:
        print(f"Unknown command: {name}")
        print("Type .help for available commands\n")

    return True


def run_statement(executor: QueryExecutor, sql: str) -> bool:
    """
    Execute one statement and print its result.

    Returns:
        True if the statement succeeded
    """
    result = executor.execute_sql(sql)
    words = sql.split(None, 1)
    operation = words[0].upper() if words else ""
    print(format_result(result, operation))
    return result.success


def repl(executor: QueryExecutor):
    """
    Run the interactive REPL.

    Reads SQL commands, executes them, and displays results.
    Supports multi-line input - continues reading until semicolon is found.
    """
    print_banner()

    while True:
        try:
            sql_lines = []
            is_continuation = False

            while True:
                try:
                    if is_continuation:
                        line = read_line_raw("    -> ", suppress_if_pending=True).strip()
                    else:
                        line = read_line_raw("sql> ").strip()
                except EOFError:
                    print("\nGoodbye!")
                    return

                if line:
                    sql_lines.append(line)

                    # Special commands are single-line
                    if line.startswith('.') and not is_continuation:
                        break

                    if line.endswith(';'):
                        break

                    is_continuation = True
                else:
                    if not sql_lines:
                        break
                    is_continuation = True

            sql = ' '.join(sql_lines)

            if not sql:
                continue

            if sql.startswith('.'):
                if not handle_special_command(sql, executor.table_manager):
                    break
                continue

            run_statement(executor, sql)
            print()

        except KeyboardInterrupt:
            print("\n\nInterrupted. Type .exit to quit.\n")
            continue


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    settings = Settings.from_env()

    arg_parser = argparse.ArgumentParser(
        description="Interactive SQL shell for SimpleRDBMS"
    )
    arg_parser.add_argument(
        "data_dir",
        nargs="?",
        default=None,
        help=f"Directory holding table files (default: {settings.data_dir})",
    )
    arg_parser.add_argument(
        "--data-dir",
        dest="data_dir_option",
        help="Same as the positional data_dir",
    )
    arg_parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help=f"Logging level (default: {settings.log_level})",
    )
    arg_parser.add_argument(
        "--log-file",
        help="Log file path; pass an empty string to disable",
    )
    arg_parser.add_argument(
        "-c", "--command",
        type=str,
        help="Execute a single statement and exit",
    )

    args = arg_parser.parse_args(argv)

    data_dir = args.data_dir_option or args.data_dir
    if data_dir:
        settings.data_dir = data_dir
    if args.log_level:
        settings.log_level = args.log_level
    if args.log_file is not None:
        settings.log_file = args.log_file or None

    try:
        configure_logging(settings)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logger.info("Opening data directory %s", settings.data_dir)
    executor = QueryExecutor(TableManager(settings.data_dir))

    if args.command:
        return 0 if run_statement(executor, args.command) else 1

    repl(executor)
    return 0


if __name__ == "__main__":
    sys.exit(main())
