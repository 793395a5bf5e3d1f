"""Implement a parser for SQL expressions.

An SQL expression is a combination of literals, column references, operators,
function calls and ``CASE`` constructs that evaluates to a value.
The parser supports:

- Arithmetic operators: ``+, -, *, /, %``
- Comparison operators: ``=, <, >, <=, >=, <>, !=, LIKE``
- Membership tests: ``IN (...)`` and ``NOT IN (...)``
- Logical operators: ``AND, OR, NOT``
- Parentheses for grouping
- Function calls, with an optional ``DISTINCT`` before the arguments
- ``CASE ... WHEN ... THEN ... ELSE ... END``
- Column references, optionally qualified by table (``t.col``, ``t.*``)

The parser is a recursive descent parser where each method handles one
precedence level, from the lowest binding to the highest one::

    OR < AND < comparison < additive < multiplicative < unary < primary

In case of an expression like ``a + b * c != 3 AND status NOT IN ('x')`` the
workflow proceeds as follows::

    - parse_or_expression                         # OR binds less than anything else
        - parse_and_expression                    # Splits on AND
            - parse_comparison (``a + b * c != 3``)
                - parse_additive (``a + b * c``)
                    - parse_multiplicative (``a``)
                    - parse_multiplicative (``b * c``)
                - parse_additive (``3``)
            - parse_comparison (``status NOT IN ('x')``)
                - parse_additive (``status``)
                - parse_in_list (``('x')``)

The result is a tree of :mod:`sqlpipe.sql.ast` nodes::

    BinaryOp(
        left=BinaryOp(
            left=BinaryOp(left=ColumnRef(name='a'), operator='+', right=BinaryOp(...)),
            operator='!=',
            right=Literal(value='3', kind='NUMBER'),
        ),
        operator='AND',
        right=InExpression(
            expression=ColumnRef(name='status'),
            values=(Literal(value='x', kind='STRING'),),
            negated=True,
        ),
    )

Note that ``NOT`` is a unary operator with the highest precedence,
so ``NOT a = 1`` means ``(NOT a) = 1``. Only when ``NOT`` is immediately
followed by ``IN`` after an operand it becomes part of a ``NOT IN`` test.
"""

from .ast import (
    BinaryOp,
    CaseExpression,
    ColumnRef,
    Expression,
    FunctionCall,
    InExpression,
    Literal,
    UnaryOp,
    WhenClause,
)
from .errors import SQLExpressionError
from .tokenize import Token

OPERATOR_SYMBOLS = {
    "EQUALS": "=",
    "NOT_EQUALS": "!=",
    "LESS_THAN": "<",
    "LESS_THAN_OR_EQUAL": "<=",
    "GREATER_THAN": ">",
    "GREATER_THAN_OR_EQUAL": ">=",
    "LIKE": "LIKE",
    "PLUS": "+",
    "MINUS": "-",
    "ASTERISK": "*",
    "DIVIDE": "/",
    "MODULO": "%",
    "AND": "AND",
    "OR": "OR",
    "NOT": "NOT",
}

COMPARISON_OPERATORS = (
    "EQUALS",
    "NOT_EQUALS",
    "LESS_THAN",
    "LESS_THAN_OR_EQUAL",
    "GREATER_THAN",
    "GREATER_THAN_OR_EQUAL",
    "LIKE",
)

# Keywords that can be used as function names.
FUNCTION_KEYWORDS = ("COUNT", "SUM", "AVG", "MAX", "MIN")


class ExpressionParser:
    """A parser for SQL expressions.

    Handles parsing of SQL expressions like "a + b", "x > 5 AND y < 7",
    "SUM(x) * 2" or "kind IN ('a', 'b')" into a tree of AST nodes.

    It is used by :class:`sqlpipe.sql.parser.Parser` for WHERE and HAVING
    conditions, select lists, JOIN conditions and VALUES rows.
    The parser stops at the first token that can't continue the expression,
    leaving it to the caller.
    """

    def __init__(self, tokens: list[Token]) -> None:
        """
        :param tokens: The tokens starting with the expression,
                       must be terminated by an EOF token.
        """
        if not tokens:
            raise ValueError("ExpressionParser requires at least the EOF token")
        self.tokens = tokens
        self.pos = 0
        self.current_token = tokens[0]

    def parse(self) -> tuple[int, Expression]:
        """Parse a whole expression.

        Returns how many tokens were consumed and the parsed expression,
        the amount of tokens allows the caller to continue parsing
        right after the expression.
        """
        ast = self.parse_expression()
        return self.pos, ast

    def advance(self) -> Token:
        """Consume the current token and return it.

        The EOF token is never advanced past.
        """
        token = self.current_token
        if token.kind != "EOF":
            self.pos += 1
            self.current_token = self.tokens[self.pos]
        return token

    def peek(self, offset: int = 1) -> Token:
        """Look at a subsequent token without consuming it."""
        pos = self.pos + offset
        if pos < len(self.tokens):
            return self.tokens[pos]
        return self.tokens[-1]

    def match(self, *kinds: str) -> bool:
        """Check if the current token is of one of the given kinds."""
        return self.current_token.kind in kinds

    def consume(self, kind: str) -> Token:
        """Consume a token of the given kind, or fail."""
        if self.current_token.kind != kind:
            raise SQLExpressionError(self.current_token, expected=kind)
        return self.advance()

    def parse_expression(self) -> Expression:
        return self.parse_or_expression()

    def parse_or_expression(self) -> Expression:
        left = self.parse_and_expression()
        while self.match("OR"):
            self.advance()
            right = self.parse_and_expression()
            left = BinaryOp(left, "OR", right)
        return left

    def parse_and_expression(self) -> Expression:
        left = self.parse_comparison()
        while self.match("AND"):
            self.advance()
            right = self.parse_comparison()
            left = BinaryOp(left, "AND", right)
        return left

    def parse_comparison(self) -> Expression:
        """Parse comparisons and membership tests.

        ``NOT IN`` has to be checked before ``IN`` and both before the
        plain comparison operators, otherwise the ``NOT`` would never
        be recognized as part of the membership test.
        """
        left = self.parse_additive()

        if self.match("NOT") and self.peek().kind == "IN":
            self.advance()  # Consume NOT
            self.advance()  # Consume IN
            return InExpression(left, self.parse_in_list(), negated=True)

        if self.match("IN"):
            self.advance()
            return InExpression(left, self.parse_in_list(), negated=False)

        while self.match(*COMPARISON_OPERATORS):
            op = OPERATOR_SYMBOLS[self.advance().kind]
            right = self.parse_additive()
            left = BinaryOp(left, op, right)
        return left

    def parse_in_list(self) -> list[Expression]:
        """Parse the parenthesized list of values of an IN test."""
        self.consume("LPAREN")
        values = self.parse_expression_list()
        self.consume("RPAREN")
        return values

    def parse_additive(self) -> Expression:
        left = self.parse_multiplicative()
        while self.match("PLUS", "MINUS"):
            op = OPERATOR_SYMBOLS[self.advance().kind]
            right = self.parse_multiplicative()
            left = BinaryOp(left, op, right)
        return left

    def parse_multiplicative(self) -> Expression:
        left = self.parse_unary()
        while self.match("ASTERISK", "DIVIDE", "MODULO"):
            op = OPERATOR_SYMBOLS[self.advance().kind]
            right = self.parse_unary()
            left = BinaryOp(left, op, right)
        return left

    def parse_unary(self) -> Expression:
        """Parse ``NOT x`` and ``-x``, which can be nested like ``NOT NOT x``."""
        if self.match("NOT", "MINUS"):
            op = OPERATOR_SYMBOLS[self.advance().kind]
            return UnaryOp(op, self.parse_unary())
        return self.parse_primary()

    def parse_primary(self) -> Expression:
        """Parse literals, column references, function calls and parenthesis.

        Primary expressions are the highest precedence part of the grammar,
        they have to be fully parsed before any operator can be applied to them.
        """
        token = self.current_token
        if token.kind == "NUMBER":
            self.advance()
            return Literal(token.value, "NUMBER")
        elif token.kind == "STRING":
            self.advance()
            return Literal(token.value, "STRING")
        elif token.kind == "NULL":
            self.advance()
            return Literal(None, "NULL")
        elif token.kind == "ASTERISK":
            # COUNT(*) and similar
            self.advance()
            return ColumnRef("*")
        elif token.kind == "CASE":
            return self.parse_case()
        elif token.kind in ("IDENTIFIER",) + FUNCTION_KEYWORDS:
            name = self.advance().value
            if self.match("LPAREN"):
                return self.parse_function_call(name)
            elif self.match("DOT"):
                self.advance()
                if self.match("ASTERISK"):
                    self.advance()
                    return ColumnRef("*", table=name)
                return ColumnRef(self.consume("IDENTIFIER").value, table=name)
            return ColumnRef(name)
        elif token.kind == "LPAREN":
            self.advance()
            expr = self.parse_expression()
            self.consume("RPAREN")
            return expr
        raise SQLExpressionError(token)

    def parse_function_call(self, name: str) -> FunctionCall:
        """Parse the arguments of a function call.

        The parser is expected to be on the opening parenthesis.
        ``DISTINCT`` only flags the call, it is not an argument.
        """
        self.consume("LPAREN")
        distinct = False
        if self.match("DISTINCT"):
            self.advance()
            distinct = True
        args = []
        if not self.match("RPAREN"):
            args = self.parse_expression_list()
        self.consume("RPAREN")
        return FunctionCall(name, args, distinct=distinct)

    def parse_case(self) -> CaseExpression:
        """Parse both the simple ``CASE x WHEN 1 THEN ...`` and searched
        ``CASE WHEN x = 1 THEN ...`` forms.
        """
        self.consume("CASE")
        operand = None
        if not self.match("WHEN"):
            operand = self.parse_expression()

        whens = []
        while self.match("WHEN"):
            self.advance()
            condition = self.parse_expression()
            self.consume("THEN")
            whens.append(WhenClause(condition, self.parse_expression()))
        if not whens:
            raise SQLExpressionError(self.current_token, expected="WHEN")

        else_result = None
        if self.match("ELSE"):
            self.advance()
            else_result = self.parse_expression()
        self.consume("END")
        return CaseExpression(whens, operand=operand, else_result=else_result)

    def parse_expression_list(self) -> list[Expression]:
        """Parse comma separated expressions."""
        items = [self.parse_expression()]
        while self.match("COMMA"):
            self.advance()
            items.append(self.parse_expression())
        return items
