"""Split SQL text into a flat sequence of tokens.

Given a query like ``"SELECT id FROM users WHERE age >= 18"`` the
:class:`Tokenizer` produces::

    [KeywordToken('SELECT'), IdentifierToken('id'), KeywordToken('FROM'),
     IdentifierToken('users'), KeywordToken('WHERE'), IdentifierToken('age'),
     OperatorToken('>='), NumberToken('18'), EOFToken(None)]

The tokenizer is a single left to right scan over the text that looks
at most one character ahead, which is needed to recognize two characters
operators like ``<=`` or ``<>``.

Every token knows its ``kind``, which is what the parser dispatches on.
Keywords have their own upper case word as the kind (``SELECT``, ``FROM``, ...),
operators and punctuation have a symbolic name (``GREATER_THAN_OR_EQUAL``,
``COMMA``, ...) and everything else is one of ``IDENTIFIER``, ``NUMBER``,
``STRING`` or ``EOF``.

The sequence produced by the tokenizer always terminates with exactly one
:class:`EOFToken`, even for an empty text.
"""

import string

from .errors import (
    UnexpectedCharacterError,
    UnknownOperatorError,
    UnterminatedLiteralError,
)

KEYWORDS = frozenset(
    """
    SELECT FROM WHERE AND OR NOT IN BETWEEN LIKE IS NULL
    INSERT INTO VALUES UPDATE SET DELETE DROP CREATE TABLE
    ALTER ADD COLUMN PRIMARY KEY FOREIGN REFERENCES
    JOIN LEFT RIGHT INNER OUTER ON AS ORDER BY GROUP HAVING
    LIMIT OFFSET DISTINCT ALL ASC DESC COUNT SUM AVG MAX MIN
    CASE WHEN THEN ELSE END
    """.split()
)

OPERATORS = {
    "=": "EQUALS",
    "!=": "NOT_EQUALS",
    "<>": "NOT_EQUALS",
    "<": "LESS_THAN",
    "<=": "LESS_THAN_OR_EQUAL",
    ">": "GREATER_THAN",
    ">=": "GREATER_THAN_OR_EQUAL",
    "+": "PLUS",
    "-": "MINUS",
    "*": "ASTERISK",
    "/": "DIVIDE",
    "%": "MODULO",
}

OPERATOR_CHARS = frozenset("=!<>+-*/%")
WORD_START = frozenset(string.ascii_letters + "_")
WORD_CHARS = WORD_START | frozenset(string.digits)

PUNCTUATION = {
    "(": "LPAREN",
    ")": "RPAREN",
    ",": "COMMA",
    ";": "SEMICOLON",
    ".": "DOT",
}


class Token:
    """A token of the SQL text.

    Two tokens are equal when they are of the same class and have the
    same value, the position is only informative and is used to
    report errors.
    """

    kind = "TOKEN"

    def __init__(self, value: str | None, position: int = 0) -> None:
        """
        :param value: The text of the token as it appeared in the query.
        :param position: Offset of the first character of the token.
        """
        self.value = value
        self.position = position

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.value!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Token):
            return NotImplemented
        return self.__class__ is other.__class__ and self.value == other.value

    def __hash__(self) -> int:
        return hash((self.__class__, self.value))


class KeywordToken(Token):
    """A reserved SQL word, like SELECT or WHERE. Matched case insensitively."""

    @property
    def kind(self) -> str:
        return self.value.upper()


class IdentifierToken(Token):
    """Name of a table, column, alias or function.

    Double quoted identifiers are stored without the quotes.
    """

    kind = "IDENTIFIER"


class NumberToken(Token):
    kind = "NUMBER"


class StringToken(Token):
    """A single quoted string literal, stored unquoted and unescaped."""

    kind = "STRING"


class PunctuationToken(Token):
    @property
    def kind(self) -> str:
        return PUNCTUATION[self.value]


class OperatorToken(Token):
    @property
    def kind(self) -> str:
        return OPERATORS[self.value]


class EOFToken(Token):
    """Marks the end of the token sequence."""

    kind = "EOF"

    def __init__(self, position: int = 0) -> None:
        super().__init__(None, position)


class Tokenizer:
    """Convert a SQL text into a list of :class:`Token`.

    The scan rules are applied in priority order:

    - whitespaces are skipped
    - a letter or underscore starts a keyword or identifier
    - a digit starts a number, at most one decimal point is consumed
    - ``'`` starts a string literal, ``\\`` escapes the next character
    - ``"`` starts a quoted identifier, with no escaping
    - ``( ) , ; .`` are punctuation
    - ``= ! < > + - * / %`` are operators, two characters ones are preferred

    Any other character is an error.
    """

    def __init__(self, text: str) -> None:
        """
        :param text: The SQL text to tokenize.
        """
        self.text = text
        self.pos = 0

    def tokenize(self) -> list[Token]:
        """Scan the whole text and return the tokens it contains."""
        tokens = []
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char.isspace():
                self.pos += 1
            elif char in WORD_START:
                tokens.append(self.read_word())
            elif char in string.digits:
                tokens.append(self.read_number())
            elif char == "'":
                tokens.append(self.read_string())
            elif char == '"':
                tokens.append(self.read_quoted_identifier())
            elif char in PUNCTUATION:
                tokens.append(PunctuationToken(char, self.pos))
                self.pos += 1
            elif char in OPERATOR_CHARS:
                tokens.append(self.read_operator())
            else:
                raise UnexpectedCharacterError(char, self.pos)
        tokens.append(EOFToken(self.pos))
        return tokens

    def peek_char(self, offset: int = 1) -> str | None:
        """Look at a character ahead of the current one, without consuming it."""
        pos = self.pos + offset
        if pos < len(self.text):
            return self.text[pos]
        return None

    def read_word(self) -> Token:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] in WORD_CHARS:
            self.pos += 1
        word = self.text[start : self.pos]
        if word.upper() in KEYWORDS:
            return KeywordToken(word, start)
        return IdentifierToken(word, start)

    def read_number(self) -> NumberToken:
        """Read a number, like ``42`` or ``3.14``.

        A second decimal point terminates the number and is left
        for the next token, so ``1.2.3`` produces ``1.2`` followed by
        a ``.`` punctuation.
        """
        start = self.pos
        has_decimal = False
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == ".":
                if has_decimal:
                    break
                has_decimal = True
            elif char not in string.digits:
                break
            self.pos += 1
        return NumberToken(self.text[start : self.pos], start)

    def read_string(self) -> StringToken:
        start = self.pos
        self.pos += 1  # Opening quote
        chars = []
        while self.pos < len(self.text) and self.text[self.pos] != "'":
            if self.text[self.pos] == "\\":
                self.pos += 1
                if self.pos >= len(self.text):
                    break
            chars.append(self.text[self.pos])
            self.pos += 1
        if self.pos >= len(self.text):
            raise UnterminatedLiteralError("'", start)
        self.pos += 1  # Closing quote
        return StringToken("".join(chars), start)

    def read_quoted_identifier(self) -> IdentifierToken:
        start = self.pos
        end = self.text.find('"', start + 1)
        if end == -1:
            raise UnterminatedLiteralError('"', start)
        self.pos = end + 1
        return IdentifierToken(self.text[start + 1 : end], start)

    def read_operator(self) -> OperatorToken:
        start = self.pos
        next_char = self.peek_char()
        if next_char is not None and self.text[start] + next_char in OPERATORS:
            self.pos += 2
        else:
            self.pos += 1
        operator = self.text[start : self.pos]
        if operator not in OPERATORS:
            raise UnknownOperatorError(operator, start)
        return OperatorToken(operator, start)
