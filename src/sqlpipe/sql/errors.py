"""Errors raised while compiling SQL text.

All the errors are raised synchronously at the point where the problem
is detected, and no partial result is ever returned: a failed tokenization
yields no tokens, a failed parse yields no AST.

Each error carries the offending character or token and its position
in the input text, so that callers can produce an actionable message.
"""


class SQLTokenizeException(Exception):
    """An exception raised when the SQL text can't be split into tokens."""

    def __init__(self, message: str, position: int) -> None:
        super().__init__(message)
        self.position = position


class UnexpectedCharacterError(SQLTokenizeException):
    """A character that can't start any token was found."""

    def __init__(self, char: str, position: int) -> None:
        super().__init__(
            f"Unexpected character {char!r} at position {position}", position
        )
        self.char = char


class UnterminatedLiteralError(SQLTokenizeException):
    """A string literal or quoted identifier was never closed."""

    def __init__(self, quote: str, position: int) -> None:
        kind = "string" if quote == "'" else "quoted identifier"
        super().__init__(f"Unterminated {kind} at position {position}", position)
        self.quote = quote


class UnknownOperatorError(SQLTokenizeException):
    """Operator characters that don't form any known operator."""

    def __init__(self, operator: str, position: int) -> None:
        super().__init__(f"Unknown operator {operator!r} at position {position}", position)
        self.operator = operator


class SQLParseError(Exception):
    """An exception raised when an error occurs during SQL parsing."""

    pass


class UnexpectedTokenError(SQLParseError):
    """The parser found a token different from the one the grammar requires.

    :param actual: The token that was found.
    :param expected: What the grammar expected, if known.
    """

    def __init__(self, actual, expected: str | None = None) -> None:
        self.actual = actual
        self.expected = expected
        self.position = actual.position
        if expected is not None:
            message = f"Expected {expected} but got {actual} at position {actual.position}"
        else:
            message = f"Unexpected token: {actual} at position {actual.position}"
        super().__init__(message)


class UnexpectedStatementStartError(SQLParseError):
    """A statement doesn't start with SELECT, INSERT, UPDATE or DELETE."""

    def __init__(self, token) -> None:
        self.token = token
        self.position = token.position
        super().__init__(
            f"Unexpected statement starting with {token} at position {token.position}"
        )


class SQLExpressionError(UnexpectedTokenError):
    """Exception raised for errors in SQL expression parsing."""

    pass


class SerializationError(Exception):
    """Reserved for AST shapes that can't be represented at all.

    The serializer prefers emitting an ``unknown`` canonical entry,
    so this is not raised for any node produced by the parser.
    """

    pass
