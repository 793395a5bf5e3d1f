"""Compile SQL text into an Abstract Syntax Tree and its canonical form.

The supported SQL is a restricted dialect meant to describe data movement:
``SELECT``, ``INSERT``, ``UPDATE`` and ``DELETE`` statements with joins,
filters, grouping, sorting and pagination. Subqueries, CTEs, window
functions and set operations are not supported.

The SQL support is constituted by four major components:

1. Tokenizer
2. Parser (and ExpressionParser)
3. AST nodes
4. Canonical serializer

To compile a SQL query, you would typically combine them as following::

    sql = "SELECT id, name FROM users WHERE age >= 18"
    statement = Parser(sql).parse()
    canonical = to_canonical(statement)

The **Tokenizer** (:class:`sqlpipe.sql.tokenize.Tokenizer`) converts the input
text into a sequence of tokens. Given a query like
``"SELECT * FROM events WHERE kind = 'click'"``, the tokenizer will produce
a sequence of tokens like::

    [SELECT, *, FROM, events, WHERE, kind, =, 'click', EOF]

The **Parser** (:class:`sqlpipe.sql.parser.Parser`) consumes the tokens and
produces one AST per statement, delegating expressions to the
:class:`sqlpipe.sql.expressions.ExpressionParser`.

The **AST** (:mod:`sqlpipe.sql.ast`) is a tree of immutable nodes, one class
for each construct of the grammar.

The **canonical serializer** (:func:`sqlpipe.sql.serializer.to_canonical`)
converts the AST into plain dictionaries and lists that don't depend on the
node classes, so that they can be stored as JSON and consumed by
:mod:`sqlpipe.codegen`.
"""

from .errors import (
    SerializationError,
    SQLExpressionError,
    SQLParseError,
    SQLTokenizeException,
    UnexpectedCharacterError,
    UnexpectedStatementStartError,
    UnexpectedTokenError,
    UnknownOperatorError,
    UnterminatedLiteralError,
)
from .parser import Parser
from .serializer import to_canonical
from .tokenize import Tokenizer

__all__ = (
    "Parser",
    "Tokenizer",
    "to_canonical",
    "SQLTokenizeException",
    "UnexpectedCharacterError",
    "UnterminatedLiteralError",
    "UnknownOperatorError",
    "SQLParseError",
    "SQLExpressionError",
    "UnexpectedTokenError",
    "UnexpectedStatementStartError",
    "SerializationError",
)
