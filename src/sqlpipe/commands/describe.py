"""Command line interface describing the pipeline generated for SQL queries.

This module provides a command line interface for building pipeline
descriptors based on :class:`sqlpipe.sql.Parser` and
:class:`sqlpipe.codegen.PipelineDescriptorBuilder`.

The conditions of the pipeline are printed in a tabular format
using the :mod:`sqlpipe.utils.tabulate` module.
"""

import argparse
import json
import logging
from typing import Any

from sqlpipe.codegen import DescriptorError, build_pipeline
from sqlpipe.sql import Parser, SQLParseError, SQLTokenizeException
from sqlpipe.utils.tabulate import records_to_batch, tabulate

logger = logging.getLogger(__name__)

CONDITION_COLUMNS = ["column", "operator", "value"]


def main(argv: list[str] | None = None) -> None:
    """Parse the command line arguments and describe the pipelines."""
    parser = argparse.ArgumentParser(
        description="Describe the data pipeline for a SQL query."
    )
    parser.add_argument("query", type=str, nargs="?", help="The SQL query.")
    parser.add_argument("--ast", help="JSON file with the canonical AST of the query.")
    parser.add_argument("--config", help="JSON file with the pipeline configuration.")
    parser.add_argument("--batch", help="JSON file with multiple pipelines to describe.")
    parser.add_argument("--source-type", help="Type of the source, like cassandra or csv.")
    parser.add_argument("--sink-type", help="Type of the sink, like druid or postgres.")
    parser.add_argument("-n", "--name", help="Name of the pipeline project.")
    parser.add_argument("--json", action="store_true", help="Print the descriptor as JSON.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_json(parser, args.config) if args.config else {}
    if not isinstance(config, dict):
        parser.error(f"{args.config} must contain a JSON object")
    if args.source_type:
        config["source_type"] = args.source_type
    if args.sink_type:
        config["sink"] = {**(config.get("sink") or {}), "type": args.sink_type}
    if args.name:
        config["project_name"] = args.name

    if args.batch:
        batch = load_json(parser, args.batch)
        entries = batch.get("pipelines") if isinstance(batch, dict) else None
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            parser.error(f"{args.batch} must contain a list of pipelines")
    elif args.ast:
        entries = [{"ast": load_json(parser, args.ast)}]
    elif args.query:
        entries = [{"sql": args.query}]
    else:
        parser.error("a query, --ast or --batch is required")

    descriptors = []
    for index, entry in enumerate(entries, start=1):
        if not isinstance(entry.get("config") or {}, dict):
            parser.error(f"the config of pipeline {index} must be a JSON object")
        entry_config = dict(config)
        if entry.get("name"):
            entry_config["project_name"] = entry["name"]
        entry_config.update(entry.get("config") or {})
        logger.debug("Describing pipeline %d of %d", index, len(entries))
        try:
            query = entry["ast"] if "ast" in entry else Parser(entry.get("sql") or "").parse()
            descriptors.append(build_pipeline(query, entry_config))
        except (SQLTokenizeException, SQLParseError) as e:
            print(f"Invalid SQL, {e}")
            raise SystemExit(1)
        except DescriptorError as e:
            print(f"Invalid pipeline, {e}")
            raise SystemExit(1)

    if args.json:
        output = descriptors if args.batch else descriptors[0]
        print(json.dumps(output, indent=2, default=sorted))
    else:
        print("\n\n".join(describe(d) for d in descriptors))


def load_json(parser: argparse.ArgumentParser, filename: str) -> Any:
    """Load a JSON file, terminating the command if it can't be read."""
    try:
        with open(filename) as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        parser.error(f"unable to load {filename}: {e}")


def describe(descriptor: dict) -> str:
    """Human readable summary of a pipeline descriptor."""
    source = descriptor["source"]
    sink = descriptor["sink"]
    table = f"{source['schema']}.{source['table']}" if source["schema"] else source["table"]
    lines = [
        f"Pipeline: {descriptor['config']['project_name']}",
        f"Source: {source['type']} ({source['category']}) {table}",
        f"Sink: {sink['type']} {sink['table']} at {sink['default_url']}",
        f"Columns: {', '.join(descriptor['columns'])}",
        f"Watermark: {source['watermark']['strategy']}",
        f"Timestamp column: {descriptor['timestamp_column']}",
        f"Id column: {descriptor['id_column']}",
    ]
    if descriptor["conditions"]:
        rows = [condition_row(c) for c in descriptor["conditions"]]
        lines.append("Conditions:")
        lines.append(tabulate(records_to_batch(rows, columns=CONDITION_COLUMNS)))
    else:
        lines.append("Conditions: none")
    return "\n".join(lines)


def condition_row(condition: dict) -> dict:
    """Convert a condition of the descriptor to a row of the conditions table."""
    if condition["type"] == "in_expression":
        operator = "NOT IN" if condition["negated"] else "IN"
        return {"column": condition["column"], "operator": operator, "value": condition["values"]}
    elif condition["type"] in ("or", "and"):
        return {
            "column": None,
            "operator": condition["type"].upper(),
            "value": condition_text(condition),
        }
    return {
        "column": condition["column"],
        "operator": condition["operator"],
        "value": "NULL" if condition["value"] is None else condition["value"],
    }


def condition_text(condition: dict) -> str:
    """Single line text of a condition, like ``(age < 18 OR age > 65)``."""
    if condition["type"] in ("or", "and"):
        joiner = f" {condition['type'].upper()} "
        return "(" + joiner.join(condition_text(c) for c in condition["conditions"]) + ")"
    row = condition_row(condition)
    value = row["value"]
    if isinstance(value, list):
        value = "(" + ", ".join(str(v) for v in value) + ")"
    return f"{row['column']} {row['operator']} {value}"


if __name__ == "__main__":
    main()
