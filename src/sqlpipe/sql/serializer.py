"""Convert an AST into its canonical map representation.

The canonical map is a plain structure of dictionaries, lists, strings,
numbers, booleans and ``None``, which can be stored as JSON and reloaded.
It is the only contract the :mod:`sqlpipe.codegen` package depends on,
so that pipelines can be described from a freshly parsed AST or from
a map that was previously persisted.

The query ``"SELECT id, name FROM events.clicks WHERE kind IN ('a', 'b')"``
would be represented as::

    {
        "type": "select",
        "columns": [
            {"type": "column", "name": "id"},
            {"type": "column", "name": "name"},
        ],
        "from": {"schema": "events", "table": "clicks"},
        "where": {
            "type": "in_expression",
            "expression": {"type": "column", "name": "kind"},
            "values": [
                {"type": "string", "value": "a"},
                {"type": "string", "value": "b"},
            ],
            "negated": False,
        },
        "joins": [],
        "order_by": [],
    }

A few rules apply while converting:

- optional fields that are absent are omitted, instead of being ``None``.
- wildcards (``*``) always become ``{"type": "all"}``.
- numbers are truncated to integers, ``25.5`` becomes ``25``.
  When a number had a fractional part the original text is
  preserved in ``raw``.
- anything that isn't a known node becomes
  ``{"type": "unknown", "original_kind": ..., "value": ...}``,
  converting never fails.

Converting an already canonical map returns it unchanged.
"""

from typing import Any

from . import ast


class CanonicalSerializer:
    """Convert AST nodes into canonical maps.

    Each node class has a dedicated method, registered in ``SERIALIZERS``.
    All the classes in :data:`sqlpipe.sql.ast.NODE_TYPES` are expected to be
    registered there.
    """

    SERIALIZERS = {
        ast.Select: "_select",
        ast.Insert: "_insert",
        ast.Update: "_update",
        ast.Delete: "_delete",
        ast.ColumnRef: "_column",
        ast.Literal: "_literal",
        ast.BinaryOp: "_binary_op",
        ast.UnaryOp: "_unary_op",
        ast.FunctionCall: "_function",
        ast.InExpression: "_in_expression",
        ast.CaseExpression: "_case",
        ast.WhenClause: "_when",
        ast.TableRef: "_table",
        ast.Join: "_join",
        ast.OrderBySpec: "_order_by",
        ast.GroupBySpec: "_group_by",
        ast.Assignment: "_assignment",
    }

    def serialize(self, node: Any) -> Any:
        """Convert a node, a list of nodes, or a value into its canonical form."""
        if node is None or isinstance(node, (bool, int, float, dict)):
            return node
        elif isinstance(node, str):
            return {"type": "all"} if node == "*" else node
        elif isinstance(node, (list, tuple)):
            return [self.serialize(item) for item in node]

        method = self.SERIALIZERS.get(type(node))
        if method is None:
            return {
                "type": "unknown",
                "original_kind": node.__class__.__name__,
                "value": str(node),
            }
        return getattr(self, method)(node)

    def _select(self, node: ast.Select) -> dict:
        result = {
            "type": "select",
            "columns": self.serialize(node.columns),
            "from": self.serialize(node.from_),
            "where": self.serialize(node.where),
            "joins": self.serialize(node.joins),
            "group_by": self.serialize(node.group_by),
            "having": self.serialize(node.having),
            "order_by": self.serialize(node.order_by or []),
            "limit": node.limit,
            "offset": node.offset,
        }
        if node.distinct:
            result["distinct"] = True
        return _compact(result)

    def _insert(self, node: ast.Insert) -> dict:
        return {
            "type": "insert",
            "table": self.serialize(node.table),
            "columns": list(node.columns),
            "values": self.serialize(node.values),
        }

    def _update(self, node: ast.Update) -> dict:
        return _compact(
            {
                "type": "update",
                "table": self.serialize(node.table),
                "assignments": self.serialize(node.assignments),
                "where": self.serialize(node.where),
            }
        )

    def _delete(self, node: ast.Delete) -> dict:
        return _compact(
            {
                "type": "delete",
                "table": self.serialize(node.table),
                "where": self.serialize(node.where),
            }
        )

    def _column(self, node: ast.ColumnRef) -> dict:
        if node.is_wildcard:
            result = {"type": "all"}
        else:
            result = {"type": "column", "name": node.name}
        result["table"] = node.table
        result["alias"] = node.alias
        return _compact(result)

    def _literal(self, node: ast.Literal) -> dict:
        if node.kind == "NUMBER":
            result = {"type": "number", "value": int(node.value.split(".")[0])}
            if "." in node.value:
                result["raw"] = node.value
            return result
        elif node.kind == "STRING":
            return {"type": "string", "value": node.value}
        return {"type": "null", "value": None}

    def _binary_op(self, node: ast.BinaryOp) -> dict:
        return {
            "type": "binary_op",
            "operator": node.operator,
            "left": self.serialize(node.left),
            "right": self.serialize(node.right),
        }

    def _unary_op(self, node: ast.UnaryOp) -> dict:
        return {
            "type": "unary_op",
            "operator": node.operator,
            "operand": self.serialize(node.operand),
        }

    def _function(self, node: ast.FunctionCall) -> dict:
        result = {
            "type": "function",
            "name": node.name,
            "arguments": self.serialize(node.arguments),
            "distinct": node.distinct,
        }
        if node.alias:
            result["alias"] = node.alias
        return result

    def _in_expression(self, node: ast.InExpression) -> dict:
        return {
            "type": "in_expression",
            "expression": self.serialize(node.expression),
            "values": self.serialize(node.values),
            "negated": node.negated,
        }

    def _case(self, node: ast.CaseExpression) -> dict:
        return _compact(
            {
                "type": "case",
                "operand": self.serialize(node.operand),
                "whens": self.serialize(node.whens),
                "else": self.serialize(node.else_result),
            }
        )

    def _when(self, node: ast.WhenClause) -> dict:
        return {
            "type": "when",
            "condition": self.serialize(node.condition),
            "result": self.serialize(node.result),
        }

    def _table(self, node: ast.TableRef) -> dict:
        # Table references are the only nodes without a type tag,
        # they are always found in known positions.
        return _compact({"schema": node.schema, "table": node.name, "alias": node.alias})

    def _join(self, node: ast.Join) -> dict:
        return _compact(
            {
                "type": "join",
                "kind": node.kind.lower(),
                "table": self.serialize(node.table),
                "condition": self.serialize(node.condition),
            }
        )

    def _order_by(self, node: ast.OrderBySpec) -> dict:
        return {
            "type": "order_by",
            "expression": self.serialize(node.expression),
            "direction": node.direction,
        }

    def _group_by(self, node: ast.GroupBySpec) -> dict:
        return {"type": "group_by", "expressions": self.serialize(node.expressions)}

    def _assignment(self, node: ast.Assignment) -> dict:
        return {
            "type": "assignment",
            "column": node.column.name,
            "value": self.serialize(node.value),
        }


def _compact(mapping: dict) -> dict:
    """Drop the keys whose value is None."""
    return {k: v for k, v in mapping.items() if v is not None}


def to_canonical(node: Any) -> Any:
    """Convert an AST (or a list of statements) into its canonical map.

    >>> from sqlpipe.sql import Parser
    >>> to_canonical(Parser("SELECT id FROM users").parse())
    {'type': 'select', 'columns': [{'type': 'column', 'name': 'id'}], 'from': {'table': 'users'}, 'joins': [], 'order_by': []}
    """
    return CanonicalSerializer().serialize(node)
