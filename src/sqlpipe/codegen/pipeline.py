"""Build the pipeline descriptor from a canonical SELECT.

The pipeline descriptor is the complete description of a data movement
pipeline: where to read from, where to write to, which columns to move,
which filters to apply and which columns act as the incremental watermark.
It's what the template renderer consumes to generate the pipeline code.

Example:

    >>> from sqlpipe.sql import Parser
    >>> query = Parser("SELECT id, kind FROM events WHERE updated_at > 10 AND kind = 'click'").parse()
    >>> descriptor = PipelineDescriptorBuilder(query, {"source_type": "postgres"}).build()
    >>> descriptor["columns"]
    ['id', 'kind']
    >>> descriptor["conditions"]
    [{'type': 'comparison', 'column': 'updated_at', 'operator': '>', 'value': 10}, {'type': 'comparison', 'column': 'kind', 'operator': '=', 'value': '"click"'}]
    >>> descriptor["timestamp_column"], descriptor["id_column"]
    ('updated_at', 'id')

The builder works on the canonical map of the query (see :mod:`sqlpipe.sql.serializer`),
an AST is converted before being used, so both can be provided.

Conditions of the WHERE clause are flattened when they are joined by ``AND``,
producing one entry for each of them. Conditions joined by ``OR`` are kept
together in a single ``{"type": "or", "conditions": [...]}`` entry,
it's up to the sink side to decide how to apply them.

Values are formatted to be embedded in the generated source code:
strings are quoted (``'"click"'``) while numbers are left as they are (``10``).
"""

import copy
import json
import logging
from typing import Any

from ..sql.ast import Node
from ..sql.serializer import to_canonical
from . import sources

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "project_name": "generated-pipeline",
    "namespace": "pipeline",
    "batch_size": 5000,
    "watermark_enabled": True,
    "incremental": True,
}

DEFAULT_SOURCE_TYPE = "cassandra"
DEFAULT_SINK_TYPE = "druid"
DEFAULT_TIMESTAMP_COLUMN = "created_at"
DEFAULT_ID_COLUMN = "id"

WILDCARD = "*"

# Substrings that hint that a column contains a timestamp.
TIMESTAMP_KEYWORDS = ("time", "date", "created", "updated", "timestamp", "ts")

COMPARISON_OPERATORS = frozenset(("=", "!=", "<>", "<", "<=", ">", ">=", "LIKE"))

# How to flip a comparison when the column is on the right side: 10 < age -> age > 10
MIRRORED_OPERATORS = {"<": ">", ">": "<", "<=": ">=", ">=": "<="}


class PipelineDescriptorBuilder:
    """Create a pipeline descriptor from a SELECT query and a configuration.

    The recognized configuration options are:

    - ``project_name``, ``namespace``, ``batch_size``, ``watermark_enabled``,
      ``incremental``: passed through to the templates, with defaults
      from :data:`DEFAULT_CONFIG`.
    - ``source_type``: the type of the source, ``cassandra`` by default.
    - ``sink``: a dictionary with the ``type`` (``druid`` by default),
      ``table`` (the source table by default) and ``default_url`` of the sink.
    - ``timestamp_column``: forces the timestamp column, otherwise it's
      detected from the WHERE clause.
    - ``id_column``: the column identifying rows, ``id`` by default.

    Any other option is preserved as is in the ``config`` of the descriptor.
    """

    def __init__(self, query: Any, config: dict | None = None) -> None:
        """
        :param query: The parsed SELECT statement, or its canonical map.
        :param config: The configuration of the pipeline.
        """
        if isinstance(query, list):
            if len(query) != 1:
                raise DescriptorError(
                    "query", f"Expected a single statement, got {len(query)}"
                )
            query = query[0]
        if isinstance(query, Node):
            query = to_canonical(query)
        if not isinstance(query, dict):
            raise DescriptorError(
                "query", f"Expected a statement, got {type(query).__name__}"
            )
        self.query = query
        self.config = self._merge_config(config)

    def build(self) -> dict:
        """Generate the pipeline descriptor."""
        from_clause = self.query.get("from")
        if not isinstance(from_clause, dict) or not from_clause.get("table"):
            raise DescriptorError(
                "from", f"A {self.query.get('type', 'query')} without FROM can't be a pipeline source"
            )
        if not isinstance(from_clause["table"], str):
            raise DescriptorError("from", f"Invalid table name: {from_clause['table']!r}")

        source = self._resolve_source(from_clause)
        descriptor = {
            "source": source,
            "sink": self._resolve_sink(source),
            "columns": self._extract_columns(source["reserved_columns"]),
            "conditions": self._extract_conditions(self.query.get("where")),
            "timestamp_column": self._resolve_timestamp_column(),
            "id_column": self.config.get("id_column") or DEFAULT_ID_COLUMN,
            "config": self.config,
        }
        logger.debug(
            "Pipeline %s: %s.%s -> %s.%s",
            self.config["project_name"],
            source["type"],
            source["table"],
            descriptor["sink"]["type"],
            descriptor["sink"]["table"],
        )
        return descriptor

    def _merge_config(self, config: dict | None) -> dict:
        """Apply the defaults to a copy of the configuration.

        The configuration is copied deeply, so that changes the caller
        makes to its own configuration don't affect the descriptor.
        """
        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise DescriptorError("config", "Configuration must be a mapping")

        sink = config.get("sink")
        if sink is not None and not isinstance(sink, dict):
            raise DescriptorError("sink", "Sink configuration must be a mapping")

        batch_size = config.get("batch_size")
        if batch_size is not None and (
            isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size <= 0
        ):
            raise DescriptorError("batch_size", f"Must be a positive integer, got {batch_size!r}")

        return {**DEFAULT_CONFIG, **copy.deepcopy(config)}

    def _resolve_source(self, from_clause: dict) -> dict:
        source_type = self.config.get("source_type") or DEFAULT_SOURCE_TYPE
        return sources.classify(
            source_type, table=from_clause["table"], schema=from_clause.get("schema")
        )

    def _resolve_sink(self, source: dict) -> dict:
        sink_config = self.config.get("sink") or {}
        sink_type = sources.normalize_type(sink_config.get("type") or DEFAULT_SINK_TYPE)
        return {
            "type": sink_type,
            "table": sink_config.get("table") or source["table"],
            "default_url": sink_config.get("default_url") or sources.default_url(sink_type),
            "category": sources.categorize(sink_type),
        }

    def _extract_columns(self, reserved_columns: frozenset) -> list[str]:
        """Names of the selected columns, or the wildcard.

        Columns used for the pipeline bookkeeping are never
        considered as selected data, and duplicates are removed.
        """
        columns = self.query.get("columns") or []
        if not isinstance(columns, list):
            raise DescriptorError("columns", f"Expected a list of columns, got {columns!r}")

        names = []
        for column in columns:
            name = self._column_name(column)
            if name in reserved_columns or name in names:
                continue
            names.append(name)
        return names or [WILDCARD]

    def _column_name(self, column: Any) -> str:
        if column == WILDCARD:
            return WILDCARD
        kind = column.get("type") if isinstance(column, dict) else None
        if kind == "all":
            return WILDCARD
        elif kind == "column":
            return _required_name(column, "columns")
        elif kind == "function":
            alias = column.get("alias")
            if alias:
                if not isinstance(alias, str):
                    raise DescriptorError("columns", f"Invalid alias: {alias!r}")
                return alias
            return _required_name(column, "columns")
        raise DescriptorError(
            "columns", f"Computed column of type {kind!r} can't be moved by a pipeline"
        )

    def _extract_conditions(self, where: dict | None) -> list[dict]:
        """Decompose the WHERE clause into a flat list of conditions."""
        if where is None:
            return []
        if _is_logical(where, "AND"):
            return [self._condition(c) for c in _flatten(where, "AND")]
        return [self._condition(where)]

    def _condition(self, node: Any) -> dict:
        if _is_logical(node, "OR"):
            return {
                "type": "or",
                "conditions": [self._condition(c) for c in _flatten(node, "OR")],
            }
        elif _is_logical(node, "AND"):
            return {
                "type": "and",
                "conditions": [self._condition(c) for c in _flatten(node, "AND")],
            }

        kind = node.get("type") if isinstance(node, dict) else None
        if kind == "in_expression":
            column = node.get("expression")
            if not _is_column(column):
                raise DescriptorError("where", "IN requires a column on its left side")
            values = node.get("values")
            if not isinstance(values, list):
                raise DescriptorError("where", f"IN requires a list of values, got {values!r}")
            return {
                "type": "in_expression",
                "column": _required_name(column, "where"),
                "values": [self._format_value(v) for v in values],
                "negated": bool(node.get("negated")),
            }
        elif kind == "binary_op" and node.get("operator") in COMPARISON_OPERATORS:
            column, operator, value = _comparison_operands(node)
            return {
                "type": "comparison",
                "column": _required_name(column, "where"),
                "operator": operator,
                "value": self._format_value(value),
            }
        raise DescriptorError("where", f"Unsupported condition: {node!r}")

    def _format_value(self, node: Any) -> Any:
        """Format a value so that it can be embedded in the generated code.

        Strings are quoted, numbers are not: ``'"click"'`` vs ``25``.
        Columns compared to other columns are referenced by name.
        """
        if isinstance(node, bool) or node is None:
            return node
        elif isinstance(node, (int, float)):
            return node
        elif isinstance(node, str):
            return json.dumps(node, ensure_ascii=False)

        kind = node.get("type") if isinstance(node, dict) else None
        if kind == "string" and isinstance(node.get("value"), str):
            return json.dumps(node["value"], ensure_ascii=False)
        elif kind == "number" and _is_number(node.get("value")):
            return node["value"]
        elif kind == "null":
            return None
        elif kind == "column":
            return _required_name(node, "where")
        elif kind == "unary_op" and node.get("operator") == "-":
            value = self._format_value(node.get("operand"))
            if _is_number(value):
                return -value
        raise DescriptorError("where", f"Unsupported value in condition: {node!r}")

    def _resolve_timestamp_column(self) -> str:
        configured = self.config.get("timestamp_column")
        if configured:
            logger.debug("Using configured timestamp column %r", configured)
            return configured

        detected = find_timestamp_column(self.query.get("where"))
        if detected is not None:
            logger.debug("Detected timestamp column %r", detected)
            return detected

        logger.debug("No timestamp column detected, using %r", DEFAULT_TIMESTAMP_COLUMN)
        return DEFAULT_TIMESTAMP_COLUMN


def find_timestamp_column(where: Any, keywords: tuple[str, ...] = TIMESTAMP_KEYWORDS) -> str | None:
    """Find the first condition whose column looks like a timestamp.

    Conditions are visited depth first, left to right, through
    ``AND`` and ``OR``. Only the column a condition applies to is
    considered, never the columns used as values, and the first one
    whose name contains one of the ``keywords`` (case insensitive)
    is returned.
    """
    for name in _iter_condition_columns(where):
        lowered = name.lower()
        if any(keyword in lowered for keyword in keywords):
            return name
    return None


def _iter_condition_columns(node: Any):
    if _is_logical(node, "AND") or _is_logical(node, "OR"):
        yield from _iter_condition_columns(node.get("left"))
        yield from _iter_condition_columns(node.get("right"))
        return

    kind = node.get("type") if isinstance(node, dict) else None
    column = None
    if kind == "in_expression":
        column = node.get("expression")
    elif kind == "binary_op" and node.get("operator") in COMPARISON_OPERATORS:
        left, right = node.get("left"), node.get("right")
        column = left if _is_column(left) else right
    if _is_column(column) and isinstance(column.get("name"), str):
        yield column["name"]


def _comparison_operands(node: dict) -> tuple[dict, str, Any]:
    """Return the column, operator and value of a comparison.

    When the column is on the right side the comparison is mirrored.
    """
    left, operator, right = node.get("left"), node["operator"], node.get("right")
    if left is None or right is None:
        raise DescriptorError("where", f"Comparison {operator!r} requires two operands")
    if not _is_column(left):
        if not _is_column(right):
            raise DescriptorError("where", f"Comparison {operator!r} doesn't involve any column")
        left, right = right, left
        operator = MIRRORED_OPERATORS.get(operator, operator)
    return left, operator, right


def _required_name(node: dict, field: str) -> str:
    name = node.get("name")
    if not isinstance(name, str) or not name:
        raise DescriptorError(field, f"Missing name in {node!r}")
    return name


def _is_logical(node: Any, operator: str) -> bool:
    return (
        isinstance(node, dict)
        and node.get("type") == "binary_op"
        and str(node.get("operator")).upper() == operator
    )


def _is_column(node: Any) -> bool:
    return isinstance(node, dict) and node.get("type") == "column"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _flatten(node: dict, operator: str) -> list:
    """Collect the operands of nested AND (or OR) operators, left to right."""
    if not _is_logical(node, operator):
        return [node]
    left, right = node.get("left"), node.get("right")
    if left is None or right is None:
        raise DescriptorError("where", f"{operator} requires two operands")
    return _flatten(left, operator) + _flatten(right, operator)


def build_pipeline(query: Any, config: dict | None = None) -> dict:
    """Shortcut for ``PipelineDescriptorBuilder(query, config).build()``."""
    return PipelineDescriptorBuilder(query, config).build()


class DescriptorError(Exception):
    """Raised when a pipeline descriptor can't be built from a query.

    :param field: The part of the query or configuration that is invalid.
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
