"""A SQL Parser for parsing SQL statements into Abstract Syntax Trees (AST).

Given a SQL Query like ``"SELECT id, name FROM users u JOIN orders o ON u.id = o.user_id"``,
the parser will produce an AST like::

    Select(
        columns=(ColumnRef(name='id'), ColumnRef(name='name')),
        from_=TableRef(name='users', alias='u'),
        joins=(
            Join(
                kind='INNER',
                table=TableRef(name='orders', alias='o'),
                condition=BinaryOp(
                    left=ColumnRef(name='id', table='u'),
                    operator='=',
                    right=ColumnRef(name='user_id', table='o'),
                ),
            ),
        ),
    )

``SELECT``, ``INSERT``, ``UPDATE`` and ``DELETE`` statements are supported,
multiple statements can be provided separated by ``;``.

The parser is based on a recursive descent approach, where each SQL clause
is parsed by a dedicated method. There is a single cursor moving forward on
the tokens, the parser never backtracks: each grammar rule either consumes
tokens or fails with a :class:`sqlpipe.sql.errors.SQLParseError`.
When parsing fails no partial AST is returned.

Expressions (in WHERE, HAVING, select lists, etc.) are delegated to
:class:`sqlpipe.sql.expressions.ExpressionParser`.

The parser is not a full SQL parser: subqueries, CTEs, window functions and
set operations like UNION are not supported.
"""

import abc
import logging

from .ast import (
    Assignment,
    ColumnRef,
    Delete,
    Expression,
    FunctionCall,
    GroupBySpec,
    Insert,
    Join,
    OrderBySpec,
    Select,
    Statement,
    TableRef,
    Update,
)
from .errors import (
    SQLParseError,
    UnexpectedStatementStartError,
    UnexpectedTokenError,
)
from .expressions import ExpressionParser
from .tokenize import Token, Tokenizer

logger = logging.getLogger(__name__)

# Tokens that can follow a column in a select list,
# when one of them follows an identifier that identifier is not an alias.
ALIAS_TERMINATORS = frozenset(
    ("EOF", "COMMA", "FROM", "WHERE", "GROUP", "HAVING", "ORDER", "LIMIT", "SEMICOLON")
)

JOIN_STARTS = ("JOIN", "LEFT", "RIGHT", "INNER", "OUTER")


class Parser:
    """A SQL Parser for parsing SQL text into Abstract Syntax Trees (AST).

    The Parser class identifies what type of statement is being parsed and delegates
    the parsing to the appropriate parser for that statement type:
    :class:`SelectStatementParser`, :class:`InsertStatementParser`,
    :class:`UpdateStatementParser` or :class:`DeleteStatementParser`.

    The parser relies on :class:`sqlpipe.sql.tokenize.Tokenizer` to tokenize the input
    text, already tokenized input can be provided too.
    """

    def __init__(self, text: str | list[Token]) -> None:
        """
        :param text: The SQL text to parse, or the tokens produced by the Tokenizer.
        """
        if isinstance(text, str):
            self.tokens = Tokenizer(text).tokenize()
        else:
            self.tokens = list(text)
        if not self.tokens or self.tokens[-1].kind != "EOF":
            raise ValueError("The tokens must be terminated by an EOF token")

    def parse(self) -> Statement | list[Statement]:
        """Parse the statements and return their Abstract Syntax Tree.

        When the text contains a single statement, the statement itself is
        returned. When it contains more than one, they are returned as a list
        in the same order they appear in the text.
        """
        statements = []
        pos = 0
        while self.tokens[pos].kind != "EOF":
            token = self.tokens[pos]
            parser_class = STATEMENT_PARSERS.get(token.kind)
            if parser_class is None:
                raise UnexpectedStatementStartError(token)

            parser = parser_class(self.tokens, pos)
            statements.append(parser.parse())
            pos = parser.pos

            terminator = self.tokens[pos]
            if terminator.kind == "SEMICOLON":
                pos += 1
            elif terminator.kind != "EOF":
                raise UnexpectedTokenError(terminator, expected="SEMICOLON")

        if not statements:
            raise SQLParseError("Empty query.")
        if len(statements) == 1:
            return statements[0]
        return statements


class StatementParser(abc.ABC):
    """Base class for the parsers of a single statement.

    Provides the facilities to move through the tokens and
    parse the parts that are shared by multiple statements,
    like table references and expressions.
    """

    def __init__(self, tokens: list[Token], pos: int = 0) -> None:
        """
        :param tokens: All the tokens of the SQL text.
        :param pos: The position of the first token of the statement.
        """
        self.tokens = tokens
        self.pos = pos
        self.current_token = tokens[pos]

    @abc.abstractmethod
    def parse(self) -> Statement:
        """Parse the statement and return its AST."""

    def advance(self, count: int = 1) -> Token:
        """Advance the parser by ``count`` tokens and return the last consumed one.

        By default it will move to the next token, but when invoking
        :class:`sqlpipe.sql.expressions.ExpressionParser` it will be necessary to
        advance by as many tokens as the expression parser consumed.
        The parser never moves past the EOF token.
        """
        consumed = self.current_token
        for _ in range(count):
            consumed = self.current_token
            if consumed.kind == "EOF":
                break
            self.pos += 1
            self.current_token = self.tokens[self.pos]
        return consumed

    def peek(self) -> Token:
        """Take a look at the next token, without advancing the parser."""
        next_pos = self.pos + 1
        if next_pos < len(self.tokens):
            return self.tokens[next_pos]
        return self.tokens[-1]

    def match(self, *kinds: str) -> bool:
        return self.current_token.kind in kinds

    def consume(self, kind: str) -> Token:
        """Consume the current token, which is required to be of the given kind."""
        if self.current_token.kind != kind:
            raise UnexpectedTokenError(self.current_token, expected=kind)
        return self.advance()

    def parse_expression(self) -> Expression:
        """Parse an expression starting at the current token.

        For the actual parsing it relies on :class:`sqlpipe.sql.expressions.ExpressionParser`,
        after which it advances the parser by the number of tokens it consumed.
        """
        offset, ast = ExpressionParser(self.tokens[self.pos :]).parse()
        self.advance(offset)
        return ast

    def parse_expression_list(self) -> list[Expression]:
        items = [self.parse_expression()]
        while self.match("COMMA"):
            self.advance()
            items.append(self.parse_expression())
        return items

    def parse_table_reference(self) -> TableRef:
        """Parse a table name, like ``users``, ``events.tracking`` or ``users AS u``.

        A ``.`` after the first identifier means it was a schema
        and the table name follows. An identifier right after the
        table name is an alias, ``AS`` is optional.
        """
        name = self.consume("IDENTIFIER").value
        schema = None
        if self.match("DOT"):
            self.advance()
            schema = name
            name = self.consume("IDENTIFIER").value

        alias = None
        if self.match("AS"):
            self.advance()
            alias = self.consume("IDENTIFIER").value
        elif self.match("IDENTIFIER"):
            alias = self.advance().value
        return TableRef(name, schema=schema, alias=alias)

    def parse_where_clause(self) -> Expression | None:
        """Parse the optional WHERE clause.

        The condition is not required to be a boolean expression,
        it's up to the consumers of the AST to interpret it.
        """
        if not self.match("WHERE"):
            return None
        self.advance()
        return self.parse_expression()


class SelectStatementParser(StatementParser):
    """A parser for SELECT statements.

    The clauses are expected in the standard order::

        SELECT [DISTINCT] columns
        [FROM table] [joins]
        [WHERE condition]
        [GROUP BY expressions] [HAVING condition]
        [ORDER BY expressions [ASC|DESC]]
        [LIMIT n] [OFFSET n]
    """

    def parse(self) -> Select:
        self.consume("SELECT")

        distinct = False
        if self.match("DISTINCT"):
            self.advance()
            distinct = True

        columns = self.parse_select_list()

        from_clause = None
        if self.match("FROM"):
            self.advance()
            from_clause = self.parse_table_reference()

        joins = []
        while self.match(*JOIN_STARTS):
            joins.append(self.parse_join_clause())

        where_clause = self.parse_where_clause()

        group_by_clause = None
        if self.match("GROUP"):
            self.advance()
            self.consume("BY")
            group_by_clause = GroupBySpec(self.parse_expression_list())

        having_clause = None
        if self.match("HAVING"):
            self.advance()
            having_clause = self.parse_expression()

        order_by_clause = None
        if self.match("ORDER"):
            self.advance()
            self.consume("BY")
            order_by_clause = self.parse_order_by_clause()

        limit_clause = None
        if self.match("LIMIT"):
            self.advance()
            limit_clause = self.parse_limit_or_offset_clause()

        offset_clause = None
        if self.match("OFFSET"):
            self.advance()
            offset_clause = self.parse_limit_or_offset_clause()

        return Select(
            columns=columns,
            from_=from_clause,
            where=where_clause,
            joins=joins,
            group_by=group_by_clause,
            having=having_clause,
            order_by=order_by_clause,
            limit=limit_clause,
            offset=offset_clause,
            distinct=distinct,
        )

    def parse_select_list(self) -> list[Expression]:
        """Parse the columns of the SELECT.

        Columns can be expressions too, like ``SUM(salary)`` or ``a + b``,
        and can have an alias introduced by ``AS``.

        An identifier following a column without ``AS`` is taken as an alias
        only when the token after it can't follow a column (like ``FROM``
        or ``,``), which requires looking one token past the alias itself.
        """
        columns = []
        while True:
            if self.match("ASTERISK"):
                self.advance()
                columns.append(ColumnRef("*"))
            else:
                expr = self.parse_expression()
                alias = None
                if self.match("AS"):
                    self.advance()
                    alias = self.consume("IDENTIFIER").value
                elif (
                    self.match("IDENTIFIER")
                    and self.peek().kind not in ALIAS_TERMINATORS
                ):
                    alias = self.advance().value
                columns.append(self._with_alias(expr, alias))
            if not self.match("COMMA"):
                break
            self.advance()
        return columns

    def _with_alias(self, expr: Expression, alias: str | None) -> Expression:
        if alias is None:
            return expr
        if isinstance(expr, ColumnRef):
            return ColumnRef(expr.name, table=expr.table, alias=alias)
        elif isinstance(expr, FunctionCall):
            return FunctionCall(
                expr.name, expr.arguments, distinct=expr.distinct, alias=alias
            )
        logger.debug("Alias %r ignored for %s", alias, expr.__class__.__name__)
        return expr

    def parse_join_clause(self) -> Join:
        """Parse a JOIN clause.

        A JOIN clause starts with the optional join kind: INNER, LEFT, RIGHT or OUTER,
        if missing INNER is assumed. ``LEFT OUTER`` and ``RIGHT OUTER``
        are the same as ``LEFT`` and ``RIGHT``.

        The JOIN keyword is followed by the table to join with, and optionally
        the ON keyword followed by the join condition.
        """
        kind = "INNER"
        if self.match("LEFT", "RIGHT", "OUTER"):
            kind = self.advance().kind
            if kind != "OUTER" and self.match("OUTER"):
                self.advance()
        elif self.match("INNER"):
            self.advance()

        self.consume("JOIN")
        table = self.parse_table_reference()

        condition = None
        if self.match("ON"):
            self.advance()
            condition = self.parse_expression()
        return Join(kind, table, condition)

    def parse_order_by_clause(self) -> list[OrderBySpec]:
        """Parse the expressions to sort by, each with its optional ASC or DESC."""
        order_by = []
        while True:
            expression = self.parse_expression()
            direction = "ASC"
            if self.match("ASC", "DESC"):
                direction = self.advance().kind
            order_by.append(OrderBySpec(expression, direction))
            if not self.match("COMMA"):
                break
            self.advance()
        return order_by

    def parse_limit_or_offset_clause(self) -> int:
        token = self.current_token
        if token.kind != "NUMBER" or "." in token.value:
            raise UnexpectedTokenError(token, expected="integer")
        self.advance()
        return int(token.value)


class InsertStatementParser(StatementParser):
    """A parser for ``INSERT INTO table [(columns)] VALUES (...)[, (...)]``.

    The number of values in each row is not checked against
    the number of columns, the AST reports what the query contains.
    """

    def parse(self) -> Insert:
        self.consume("INSERT")
        self.consume("INTO")
        table = self.parse_table_reference()

        columns = []
        if self.match("LPAREN"):
            self.advance()
            columns.append(self.consume("IDENTIFIER").value)
            while self.match("COMMA"):
                self.advance()
                columns.append(self.consume("IDENTIFIER").value)
            self.consume("RPAREN")

        self.consume("VALUES")
        rows = []
        while True:
            self.consume("LPAREN")
            rows.append(self.parse_expression_list())
            self.consume("RPAREN")
            if not self.match("COMMA"):
                break
            self.advance()
        return Insert(table, columns, rows)


class UpdateStatementParser(StatementParser):
    """A parser for ``UPDATE table SET column = value, ... [WHERE condition]``."""

    def parse(self) -> Update:
        self.consume("UPDATE")
        table = self.parse_table_reference()
        self.consume("SET")

        assignments = []
        while True:
            column = ColumnRef(self.consume("IDENTIFIER").value)
            self.consume("EQUALS")
            assignments.append(Assignment(column, self.parse_expression()))
            if not self.match("COMMA"):
                break
            self.advance()

        return Update(table, assignments, where=self.parse_where_clause())


class DeleteStatementParser(StatementParser):
    """A parser for ``DELETE FROM table [WHERE condition]``."""

    def parse(self) -> Delete:
        self.consume("DELETE")
        self.consume("FROM")
        table = self.parse_table_reference()
        return Delete(table, where=self.parse_where_clause())


STATEMENT_PARSERS = {
    "SELECT": SelectStatementParser,
    "INSERT": InsertStatementParser,
    "UPDATE": UpdateStatementParser,
    "DELETE": DeleteStatementParser,
}
