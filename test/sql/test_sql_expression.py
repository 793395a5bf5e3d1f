import pytest

from sqlpipe.sql.ast import (
    BinaryOp,
    CaseExpression,
    ColumnRef,
    FunctionCall,
    InExpression,
    Literal,
    UnaryOp,
    WhenClause,
)
from sqlpipe.sql.errors import SQLExpressionError, SQLParseError
from sqlpipe.sql.expressions import ExpressionParser
from sqlpipe.sql.tokenize import Tokenizer


def parse_expression(text):
    tokens = Tokenizer(text).tokenize()
    pos, ast = ExpressionParser(tokens).parse()
    # Everything but the EOF must have been consumed.
    assert pos == len(tokens) - 1
    return ast


def test_literal_expression():
    assert parse_expression("42") == Literal("42", "NUMBER")
    assert parse_expression("'abc'") == Literal("abc", "STRING")
    assert parse_expression("NULL") == Literal(None, "NULL")


def test_column_expression():
    assert parse_expression("age") == ColumnRef("age")


def test_qualified_column_expression():
    assert parse_expression("u.age") == ColumnRef("age", table="u")
    assert parse_expression("u.*") == ColumnRef("*", table="u")


def test_unary_negation_expression():
    assert parse_expression("-42") == UnaryOp("-", Literal("42", "NUMBER"))


def test_binary_addition_expression():
    assert parse_expression("1 + 2") == BinaryOp(
        Literal("1", "NUMBER"), "+", Literal("2", "NUMBER")
    )


def test_multiplication_precedence():
    ast = parse_expression("a + b * c")
    assert ast == BinaryOp(
        ColumnRef("a"), "+", BinaryOp(ColumnRef("b"), "*", ColumnRef("c"))
    )


def test_modulo_expression():
    assert parse_expression("a % 2") == BinaryOp(
        ColumnRef("a"), "%", Literal("2", "NUMBER")
    )


def test_left_associativity():
    ast = parse_expression("a - b - c")
    assert ast == BinaryOp(
        BinaryOp(ColumnRef("a"), "-", ColumnRef("b")), "-", ColumnRef("c")
    )


def test_parenthesis_expression():
    ast = parse_expression("(a + b) * c")
    assert ast == BinaryOp(
        BinaryOp(ColumnRef("a"), "+", ColumnRef("b")), "*", ColumnRef("c")
    )


def test_comparison_expression():
    assert parse_expression("age >= 18") == BinaryOp(
        ColumnRef("age"), ">=", Literal("18", "NUMBER")
    )


def test_not_equals_are_normalized():
    assert parse_expression("a <> 1").operator == "!="
    assert parse_expression("a != 1").operator == "!="


def test_like_expression():
    assert parse_expression("name LIKE 'J%'") == BinaryOp(
        ColumnRef("name"), "LIKE", Literal("J%", "STRING")
    )


def test_and_binds_tighter_than_or():
    ast = parse_expression("a = 1 OR b = 2 AND c = 3")
    assert ast.operator == "OR"
    assert ast.left == BinaryOp(ColumnRef("a"), "=", Literal("1", "NUMBER"))
    assert ast.right.operator == "AND"


def test_comparison_binds_tighter_than_and():
    ast = parse_expression("a > 1 AND b < 2")
    assert ast == BinaryOp(
        BinaryOp(ColumnRef("a"), ">", Literal("1", "NUMBER")),
        "AND",
        BinaryOp(ColumnRef("b"), "<", Literal("2", "NUMBER")),
    )


def test_not_expression():
    assert parse_expression("NOT deleted") == UnaryOp("NOT", ColumnRef("deleted"))


def test_not_is_unary_with_highest_precedence():
    ast = parse_expression("NOT a = 1")
    assert ast == BinaryOp(UnaryOp("NOT", ColumnRef("a")), "=", Literal("1", "NUMBER"))


def test_in_expression():
    ast = parse_expression("status IN ('active', 'pending')")
    assert ast == InExpression(
        ColumnRef("status"),
        [Literal("active", "STRING"), Literal("pending", "STRING")],
        negated=False,
    )


def test_not_in_expression():
    ast = parse_expression("status NOT IN ('deleted', 'banned')")
    assert isinstance(ast, InExpression)
    assert ast.negated is True
    assert len(ast.values) == 2


def test_in_expression_inside_and():
    ast = parse_expression("id IN (1, 2, 3) AND kind NOT IN ('x')")
    assert ast.operator == "AND"
    assert ast.left.negated is False
    assert len(ast.left.values) == 3
    assert ast.right.negated is True


def test_function_call_expression():
    ast = parse_expression("ROUND(SUM(salary), 2)")
    assert ast == FunctionCall(
        "ROUND", [FunctionCall("SUM", [ColumnRef("salary")]), Literal("2", "NUMBER")]
    )


def test_function_call_without_arguments():
    assert parse_expression("NOW()") == FunctionCall("NOW", [])


def test_count_star():
    assert parse_expression("COUNT(*)") == FunctionCall("COUNT", [ColumnRef("*")])


def test_count_distinct():
    ast = parse_expression("COUNT(DISTINCT user_id)")
    assert ast == FunctionCall("COUNT", [ColumnRef("user_id")], distinct=True)
    assert len(ast.arguments) == 1


def test_searched_case_expression():
    ast = parse_expression("CASE WHEN age < 18 THEN 'minor' ELSE 'adult' END")
    assert ast == CaseExpression(
        [
            WhenClause(
                BinaryOp(ColumnRef("age"), "<", Literal("18", "NUMBER")),
                Literal("minor", "STRING"),
            )
        ],
        else_result=Literal("adult", "STRING"),
    )


def test_simple_case_expression():
    ast = parse_expression("CASE kind WHEN 1 THEN 'a' WHEN 2 THEN 'b' END")
    assert ast.operand == ColumnRef("kind")
    assert len(ast.whens) == 2
    assert ast.else_result is None


def test_case_requires_when():
    with pytest.raises(SQLExpressionError):
        parse_expression("CASE kind END")


def test_expression_stops_at_unknown_token():
    tokens = Tokenizer("a + 1 FROM users").tokenize()
    pos, ast = ExpressionParser(tokens).parse()
    assert pos == 3
    assert tokens[pos].kind == "FROM"


def test_missing_closing_parenthesis():
    with pytest.raises(SQLExpressionError) as excinfo:
        parse_expression("(a + b")
    assert excinfo.value.expected == "RPAREN"


def test_unexpected_token():
    tokens = Tokenizer("= 3").tokenize()
    with pytest.raises(SQLParseError) as excinfo:
        ExpressionParser(tokens).parse()
    assert excinfo.value.position == 0
