"""Command line interface printing the canonical AST of SQL queries.

Based on :class:`sqlpipe.sql.Parser` and :func:`sqlpipe.sql.to_canonical`,
the result is printed as JSON.
"""

import argparse
import json

from sqlpipe.sql import Parser, SQLParseError, SQLTokenizeException, to_canonical


def main(argv: list[str] | None = None) -> None:
    """Parse the command line arguments and print the AST of the SQL query."""
    parser = argparse.ArgumentParser(description="Print the canonical AST of SQL queries.")
    parser.add_argument("--pretty", action="store_true", help="Indent the JSON output.")
    parser.add_argument("query", type=str, help="The SQL query to parse.")
    args = parser.parse_args(argv)

    try:
        statement = Parser(args.query).parse()
    except (SQLTokenizeException, SQLParseError) as e:
        print(f"Invalid SQL, {e}")
        raise SystemExit(1)

    print(json.dumps(to_canonical(statement), indent=2 if args.pretty else None))


if __name__ == "__main__":
    main()
