"""Tests for the HCL tokenizer."""

import pytest

from hcl2json.errors import ErrorKind, LexError
from hcl2json.lexer import HCLLexer
from hcl2json.tokentypes import TokenType


def types(source):
    return [t.type for t in HCLLexer(source).tokenize()]


def test_attribute_tokens_and_positions():
    tokens = HCLLexer('a = "b"\nc = 10\n').tokens()

    assert [t.type for t in tokens] == [
        TokenType.IDENTIFIER, TokenType.EQUALS, TokenType.STRING, TokenType.NEWLINE,
        TokenType.IDENTIFIER, TokenType.EQUALS, TokenType.NUMBER, TokenType.NEWLINE,
        TokenType.EOF,
    ]
    a, eq, b = tokens[:3]
    assert (a.line, a.column, a.offset) == (1, 1, 0)
    assert (eq.line, eq.column) == (1, 3)
    assert (b.value, b.line, b.column) == ("b", 1, 5)
    assert (b.end_line, b.end_column, b.end_offset) == (1, 8, 7)

    c, _, ten = tokens[4:7]
    assert (c.line, c.column) == (2, 1)
    assert (ten.value, ten.line, ten.column) == ("10", 2, 5)


def test_tokenize_is_lazy():
    stream = HCLLexer('a = "never closed').tokenize()

    first = next(stream)
    assert first.type == TokenType.IDENTIFIER
    assert first.value == "a"
    with pytest.raises(LexError):
        list(stream)


def test_tokenize_restarts_on_reinvocation():
    lexer = HCLLexer('block "x" {\n  y = 1\n}\n')
    assert [(t.type, t.value) for t in lexer.tokenize()] == [(t.type, t.value) for t in lexer.tokenize()]


def test_keywords_and_identifiers_with_dashes():
    tokens = HCLLexer("for_each = true\nname-with-dash = null").tokens()
    assert tokens[0].type == TokenType.IDENTIFIER
    assert tokens[0].value == "for_each"
    assert tokens[2].type == TokenType.TRUE
    assert tokens[4].value == "name-with-dash"
    assert tokens[6].type == TokenType.NULL


def test_multi_character_operators():
    assert types("a == b && c >= d || e != f <= g => h ...") == [
        TokenType.IDENTIFIER, TokenType.EQUAL_EQUAL, TokenType.IDENTIFIER, TokenType.AND,
        TokenType.IDENTIFIER, TokenType.GREATER_EQUAL, TokenType.IDENTIFIER, TokenType.OR,
        TokenType.IDENTIFIER, TokenType.NOT_EQUAL, TokenType.IDENTIFIER, TokenType.LESS_EQUAL,
        TokenType.IDENTIFIER, TokenType.FAT_ARROW, TokenType.IDENTIFIER, TokenType.ELLIPSIS,
        TokenType.EOF,
    ]


def test_numbers():
    tokens = HCLLexer("1 2.5 1e3 4.0E-2").tokens()
    assert [t.value for t in tokens if t.type == TokenType.NUMBER] == ["1", "2.5", "1e3", "4.0E-2"]


def test_legacy_index_traversal_is_not_a_float():
    assert types("foo.0.bar") == [
        TokenType.IDENTIFIER, TokenType.DOT, TokenType.NUMBER, TokenType.DOT,
        TokenType.IDENTIFIER, TokenType.EOF,
    ]


@pytest.mark.parametrize("source", ["x = 12abc", "x = 1e", "x = 1e+", "x = 1\u00b2"])
def test_invalid_numbers(source):
    with pytest.raises(LexError) as excinfo:
        HCLLexer(source).tokens()
    assert excinfo.value.kind == ErrorKind.INVALID_NUMBER
    assert (excinfo.value.line, excinfo.value.column) == (1, 5)


def test_string_escapes():
    token = HCLLexer(r'"tab\there \"quoted\" é \\"').tokens()[0]
    assert token.value == 'tab\there "quoted" é \\'
    assert token.template is False


def test_invalid_escape_reports_backslash_position():
    with pytest.raises(LexError) as excinfo:
        HCLLexer('x = "a\\qb"').tokens()
    assert excinfo.value.kind == ErrorKind.INVALID_ESCAPE
    assert (excinfo.value.line, excinfo.value.column) == (1, 7)


@pytest.mark.parametrize("source", ['x = "abc', 'x = "abc\ny = 1', 'x = "${var.a"'])
def test_unterminated_string(source):
    with pytest.raises(LexError) as excinfo:
        HCLLexer(source).tokens()
    assert excinfo.value.kind == ErrorKind.UNTERMINATED_STRING
    assert (excinfo.value.line, excinfo.value.column) == (1, 5)


def test_interpolation_with_nested_string_is_one_token():
    tokens = HCLLexer('"${lookup(var.m, "k")}-x"').tokens()
    assert tokens[0].type == TokenType.STRING
    assert tokens[0].value == '${lookup(var.m, "k")}-x'
    assert tokens[0].template is True
    assert tokens[1].type == TokenType.EOF


def test_escaped_interpolation_is_literal():
    token = HCLLexer('"$${not_a_template} %%{nor_this}"').tokens()[0]
    assert token.value == "${not_a_template} %{nor_this}"
    assert token.template is False


def test_heredoc():
    source = 'x = <<EOT\nhello\n  world\nEOT\ny = 1\n'
    tokens = HCLLexer(source).tokens()
    heredoc = tokens[2]
    assert heredoc.type == TokenType.HEREDOC
    assert heredoc.value == "hello\n  world\n"
    assert (heredoc.line, heredoc.end_line) == (1, 4)
    # the line after the closing marker keeps its own number
    y = [t for t in tokens if t.value == "y"][0]
    assert y.line == 5


def test_indented_heredoc_is_dedented():
    source = 'x = <<-EOT\n    one\n      two\n    EOT\n'
    heredoc = HCLLexer(source).tokens()[2]
    assert heredoc.value == "one\n  two\n"


def test_unterminated_heredoc():
    with pytest.raises(LexError) as excinfo:
        HCLLexer("x = <<EOT\nnever closed\n").tokens()
    assert excinfo.value.kind == ErrorKind.UNTERMINATED_HEREDOC


def test_comments_are_tokens():
    tokens = HCLLexer("# one\n// two\n/* three\nlines */ a = 1").tokens()
    comments = [t for t in tokens if t.type == TokenType.COMMENT]
    assert [c.value for c in comments] == ["# one", "// two", "/* three\nlines */"]
    a = [t for t in tokens if t.value == "a"][0]
    assert (a.line, a.column) == (4, 10)


def test_unterminated_block_comment():
    with pytest.raises(LexError) as excinfo:
        HCLLexer("/* open").tokens()
    assert excinfo.value.kind == ErrorKind.UNTERMINATED_COMMENT


def test_unexpected_character():
    with pytest.raises(LexError) as excinfo:
        HCLLexer("a = 1\nb = @").tokens()
    assert excinfo.value.kind == ErrorKind.UNEXPECTED_CHARACTER
    assert (excinfo.value.line, excinfo.value.column) == (2, 5)


def test_non_ascii_digits_do_not_start_numbers():
    with pytest.raises(LexError) as excinfo:
        HCLLexer("x = ²").tokens()
    assert excinfo.value.kind == ErrorKind.UNEXPECTED_CHARACTER
    assert (excinfo.value.line, excinfo.value.column) == (1, 5)
