import pytest

from sqlpipe.sql.errors import (
    SQLTokenizeException,
    UnexpectedCharacterError,
    UnknownOperatorError,
    UnterminatedLiteralError,
)
from sqlpipe.sql.tokenize import (
    EOFToken,
    IdentifierToken,
    KeywordToken,
    NumberToken,
    OperatorToken,
    PunctuationToken,
    StringToken,
    Tokenizer,
)


def test_tokenizer_select_query():
    query = "SELECT id FROM users WHERE age >= 18"
    tokens = Tokenizer(query).tokenize()

    expected_tokens = [
        KeywordToken("SELECT"),
        IdentifierToken("id"),
        KeywordToken("FROM"),
        IdentifierToken("users"),
        KeywordToken("WHERE"),
        IdentifierToken("age"),
        OperatorToken(">="),
        NumberToken("18"),
        EOFToken(),
    ]

    assert tokens == expected_tokens


def test_tokenizer_kinds():
    tokens = Tokenizer("SELECT id, name FROM users").tokenize()
    assert [t.kind for t in tokens] == [
        "SELECT",
        "IDENTIFIER",
        "COMMA",
        "IDENTIFIER",
        "FROM",
        "IDENTIFIER",
        "EOF",
    ]


def test_tokenizer_keywords_are_case_insensitive():
    tokens = Tokenizer("select Id from Users").tokenize()
    assert [t.kind for t in tokens] == ["SELECT", "IDENTIFIER", "FROM", "IDENTIFIER", "EOF"]
    assert tokens[0].value == "select"
    assert tokens[1].value == "Id"


def test_tokenizer_insert_query():
    query = "INSERT INTO users (id, name) VALUES (1, 'John')"
    tokens = Tokenizer(query).tokenize()

    expected_tokens = [
        KeywordToken("INSERT"),
        KeywordToken("INTO"),
        IdentifierToken("users"),
        PunctuationToken("("),
        IdentifierToken("id"),
        PunctuationToken(","),
        IdentifierToken("name"),
        PunctuationToken(")"),
        KeywordToken("VALUES"),
        PunctuationToken("("),
        NumberToken("1"),
        PunctuationToken(","),
        StringToken("John"),
        PunctuationToken(")"),
        EOFToken(),
    ]

    assert tokens == expected_tokens


def test_tokenizer_two_characters_operators():
    tokens = Tokenizer("a != b <> c <= d >= e < f > g = h").tokenize()
    operators = [t for t in tokens if isinstance(t, OperatorToken)]
    assert [op.value for op in operators] == ["!=", "<>", "<=", ">=", "<", ">", "="]
    assert [op.kind for op in operators] == [
        "NOT_EQUALS",
        "NOT_EQUALS",
        "LESS_THAN_OR_EQUAL",
        "GREATER_THAN_OR_EQUAL",
        "LESS_THAN",
        "GREATER_THAN",
        "EQUALS",
    ]


def test_tokenizer_arithmetic_operators():
    tokens = Tokenizer("a+b-c*d/e%f").tokenize()
    assert [t.kind for t in tokens if isinstance(t, OperatorToken)] == [
        "PLUS",
        "MINUS",
        "ASTERISK",
        "DIVIDE",
        "MODULO",
    ]


def test_tokenizer_decimal_number():
    tokens = Tokenizer("25.5").tokenize()
    assert tokens == [NumberToken("25.5"), EOFToken()]


def test_tokenizer_number_stops_at_second_decimal_point():
    tokens = Tokenizer("1.2.3").tokenize()
    assert tokens == [NumberToken("1.2"), PunctuationToken("."), NumberToken("3"), EOFToken()]


def test_tokenizer_string_with_escapes():
    tokens = Tokenizer(r"'it\'s'").tokenize()
    assert tokens == [StringToken("it's"), EOFToken()]


def test_tokenizer_quoted_identifier():
    tokens = Tokenizer('SELECT "user name" FROM t').tokenize()
    assert tokens[1] == IdentifierToken("user name")
    assert tokens[1].kind == "IDENTIFIER"


def test_tokenizer_schema_qualified_table():
    tokens = Tokenizer("events.tracking_events").tokenize()
    assert tokens == [
        IdentifierToken("events"),
        PunctuationToken("."),
        IdentifierToken("tracking_events"),
        EOFToken(),
    ]


def test_tokenizer_positions():
    tokens = Tokenizer("SELECT  id").tokenize()
    assert [t.position for t in tokens] == [0, 8, 10]


def test_tokenizer_unexpected_character():
    with pytest.raises(UnexpectedCharacterError) as excinfo:
        Tokenizer("SELECT id FROM table WHERE age >= 18 @").tokenize()
    assert "Unexpected character '@'" in str(excinfo.value)
    assert excinfo.value.char == "@"
    assert excinfo.value.position == 37


def test_tokenizer_unterminated_string():
    with pytest.raises(UnterminatedLiteralError) as excinfo:
        Tokenizer("SELECT 'abc").tokenize()
    assert excinfo.value.position == 7


def test_tokenizer_unterminated_quoted_identifier():
    with pytest.raises(UnterminatedLiteralError):
        Tokenizer('SELECT "abc').tokenize()


def test_tokenizer_unknown_operator():
    with pytest.raises(UnknownOperatorError) as excinfo:
        Tokenizer("a ! b").tokenize()
    assert excinfo.value.operator == "!"


def test_tokenizer_errors_share_base_class():
    for query in ("@", "'abc", "!"):
        with pytest.raises(SQLTokenizeException):
            Tokenizer(query).tokenize()


def test_tokenizer_empty_query():
    tokens = Tokenizer("").tokenize()
    assert tokens == [EOFToken()]


def test_tokenizer_whitespace_query():
    tokens = Tokenizer("   ").tokenize()
    assert tokens == [EOFToken()]
    assert tokens[0].position == 3


def test_tokenizer_single_eof():
    tokens = Tokenizer("SELECT * FROM users;").tokenize()
    assert [t.kind for t in tokens].count("EOF") == 1
    assert tokens[-1].kind == "EOF"


def test_token_str_repr():
    tokens = [
        KeywordToken("SELECT"),
        IdentifierToken("id"),
        OperatorToken(">="),
        NumberToken("18"),
        StringToken("x"),
    ]

    for token in tokens:
        assert repr(token) == f"{token.__class__.__name__}({token.value!r})"


def test_token_equality():
    token1 = KeywordToken("SELECT", 0)
    token2 = KeywordToken("SELECT", 10)
    token3 = KeywordToken("FROM")
    non_token = "SOME TEXT"

    assert token1 == token2
    assert token1 != token3
    assert token1 != non_token
    assert IdentifierToken("a") != StringToken("a")
