import json

from sqlpipe.sql.ast import NODE_TYPES, ColumnRef, Literal
from sqlpipe.sql.parser import Parser
from sqlpipe.sql.serializer import CanonicalSerializer, to_canonical


def canonical(query):
    return to_canonical(Parser(query).parse())


def test_every_node_type_is_serializable():
    missing = [cls.__name__ for cls in NODE_TYPES if cls not in CanonicalSerializer.SERIALIZERS]
    assert missing == []


def test_simple_select():
    result = canonical("SELECT id, name FROM users")
    assert result["type"] == "select"
    assert result["from"] == {"table": "users"}
    assert result["columns"] == [
        {"type": "column", "name": "id"},
        {"type": "column", "name": "name"},
    ]
    assert result["joins"] == []
    assert result["order_by"] == []
    assert "where" not in result
    assert "distinct" not in result


def test_wildcard_is_all():
    result = canonical("SELECT * FROM users")
    assert result["columns"] == [{"type": "all"}]
    assert to_canonical("*") == {"type": "all"}
    assert to_canonical(ColumnRef("*", table="u")) == {"type": "all", "table": "u"}


def test_schema_is_preserved():
    result = canonical("SELECT * FROM events.tracking_events e")
    assert result["from"] == {"schema": "events", "table": "tracking_events", "alias": "e"}


def test_numbers_are_truncated():
    result = canonical("SELECT * FROM users WHERE age = 25.5")
    assert result["where"]["right"] == {"type": "number", "value": 25, "raw": "25.5"}

    result = canonical("SELECT * FROM users WHERE age = 25")
    assert result["where"]["right"] == {"type": "number", "value": 25}


def test_string_and_null_literals():
    assert to_canonical(Literal("x", "STRING")) == {"type": "string", "value": "x"}
    assert to_canonical(Literal(None, "NULL")) == {"type": "null", "value": None}


def test_in_expressions():
    result = canonical("SELECT * FROM events WHERE event_type IN ('click', 'view')")
    assert result["where"] == {
        "type": "in_expression",
        "expression": {"type": "column", "name": "event_type"},
        "values": [
            {"type": "string", "value": "click"},
            {"type": "string", "value": "view"},
        ],
        "negated": False,
    }

    result = canonical("SELECT * FROM events WHERE event_type NOT IN ('ping')")
    assert result["where"]["negated"] is True


def test_full_select():
    result = canonical(
        "SELECT DISTINCT u.country, COUNT(*) AS n FROM users u "
        "LEFT OUTER JOIN orders o ON u.id = o.user_id "
        "GROUP BY u.country HAVING COUNT(*) > 1 ORDER BY n DESC LIMIT 5 OFFSET 1"
    )
    assert result["distinct"] is True
    assert result["columns"][0] == {"type": "column", "name": "country", "table": "u"}
    assert result["columns"][1] == {
        "type": "function",
        "name": "COUNT",
        "arguments": [{"type": "all"}],
        "distinct": False,
        "alias": "n",
    }
    assert result["joins"][0]["type"] == "join"
    assert result["joins"][0]["kind"] == "left"
    assert result["joins"][0]["table"] == {"table": "orders", "alias": "o"}
    assert result["group_by"] == {
        "type": "group_by",
        "expressions": [{"type": "column", "name": "country", "table": "u"}],
    }
    assert result["having"]["operator"] == ">"
    assert result["order_by"] == [
        {
            "type": "order_by",
            "expression": {"type": "column", "name": "n"},
            "direction": "DESC",
        }
    ]
    assert (result["limit"], result["offset"]) == (5, 1)


def test_case_expression():
    result = canonical("SELECT CASE WHEN a > 1 THEN 'x' END FROM t")
    case = result["columns"][0]
    assert case["type"] == "case"
    assert "operand" not in case
    assert "else" not in case
    assert case["whens"][0]["type"] == "when"
    assert case["whens"][0]["result"] == {"type": "string", "value": "x"}


def test_insert_update_delete():
    result = canonical("INSERT INTO users (name, age) VALUES ('John', 30), ('Jane', 25)")
    assert result == {
        "type": "insert",
        "table": {"table": "users"},
        "columns": ["name", "age"],
        "values": [
            [{"type": "string", "value": "John"}, {"type": "number", "value": 30}],
            [{"type": "string", "value": "Jane"}, {"type": "number", "value": 25}],
        ],
    }

    result = canonical("UPDATE users SET age = 31 WHERE id = 1")
    assert result["type"] == "update"
    assert result["assignments"] == [
        {"type": "assignment", "column": "age", "value": {"type": "number", "value": 31}}
    ]
    assert result["where"]["type"] == "binary_op"

    result = canonical("DELETE FROM users")
    assert result == {"type": "delete", "table": {"table": "users"}}


def test_multiple_statements():
    result = to_canonical(Parser("SELECT a FROM t; DELETE FROM t").parse())
    assert [r["type"] for r in result] == ["select", "delete"]


def test_unknown_nodes():
    class Weird:
        def __str__(self):
            return "weird"

    assert to_canonical(Weird()) == {
        "type": "unknown",
        "original_kind": "Weird",
        "value": "weird",
    }


def test_serialization_is_idempotent():
    result = canonical("SELECT a, b FROM s.t WHERE a IN (1, 2) AND b LIKE 'x%'")
    assert to_canonical(result) == result
    assert to_canonical([result]) == [result]


def test_canonical_map_is_json():
    result = canonical(
        "SELECT id FROM events WHERE created_at > 10 AND kind NOT IN ('a') OR -x < 2.5"
    )
    assert json.loads(json.dumps(result)) == result
