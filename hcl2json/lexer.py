import re
from typing import Iterator, List, Optional, Tuple

from .errors import ErrorKind, LexError
from .tokentypes import Token, TokenType


DIGITS = '0123456789'

HEREDOC_START = re.compile(r'<<(-?)([A-Za-z_][A-Za-z0-9_-]*)[ \t]*\r?\n')

SIMPLE_ESCAPES = {
    'n': '\n',
    'r': '\r',
    't': '\t',
    '"': '"',
    '\\': '\\',
}


class HCLLexer:
    """Turns HCL native syntax into a lazy stream of tokens.

    Every token records where it starts and ends (line, column and character
    offset) so the parser can attach a source range to each tree node.
    """

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.column = 1

        self.keywords = {
            'for': TokenType.FOR,
            'in': TokenType.IN,
            'if': TokenType.IF,
            'null': TokenType.NULL,
            'true': TokenType.TRUE,
            'false': TokenType.FALSE,
        }

        self.operators = {
            '...': TokenType.ELLIPSIS,
            '==': TokenType.EQUAL_EQUAL,
            '!=': TokenType.NOT_EQUAL,
            '&&': TokenType.AND,
            '||': TokenType.OR,
            '>=': TokenType.GREATER_EQUAL,
            '<=': TokenType.LESS_EQUAL,
            '=>': TokenType.FAT_ARROW,
            '>': TokenType.GREATER_THAN,
            '<': TokenType.LESS_THAN,
            '=': TokenType.EQUALS,
            '+': TokenType.PLUS,
            '-': TokenType.MINUS,
            '*': TokenType.MULTIPLY,
            '/': TokenType.DIVIDE,
            '%': TokenType.MODULO,
            '!': TokenType.NOT,
            '?': TokenType.QUESTION,
            ':': TokenType.COLON,
            ',': TokenType.COMMA,
            '.': TokenType.DOT,
            '(': TokenType.LPAREN,
            ')': TokenType.RPAREN,
            '{': TokenType.LBRACE,
            '}': TokenType.RBRACE,
            '[': TokenType.LBRACKET,
            ']': TokenType.RBRACKET,
        }
        # Match multi-character operators first
        self._operator_order = sorted(self.operators.keys(), key=lambda x: -len(x))

    def tokenize(self) -> Iterator[Token]:
        """Yield tokens one at a time, ending with a single EOF token.

        Calling ``tokenize()`` again starts over from the top of the source.
        """
        self.pos = 0
        self.line = 1
        self.column = 1

        while self.pos < len(self.source):
            char = self.source[self.pos]

            if char == '\n':
                yield self._handle_newline()
                continue

            if char in ' \t\r':
                self._handle_whitespace()
                continue

            if char == '#' or self.source.startswith('//', self.pos):
                yield self._handle_line_comment()
                continue

            if self.source.startswith('/*', self.pos):
                yield self._handle_block_comment()
                continue

            if self.source.startswith('<<', self.pos):
                heredoc = HEREDOC_START.match(self.source, self.pos)
                if heredoc:
                    yield self._handle_heredoc(heredoc)
                    continue

            if char.isalpha() or char == '_':
                yield self._handle_identifier()
                continue

            if _is_digit(char):
                yield self._handle_number()
                continue

            if char == '"':
                yield self._handle_string()
                continue

            operator = self._match_operator()
            if operator:
                yield self._handle_operator(operator)
                continue

            raise LexError(f"Unexpected character '{char}'", ErrorKind.UNEXPECTED_CHARACTER,
                           self.line, self.column)

        yield Token(TokenType.EOF, '', self.line, self.column, self.pos,
                    self.line, self.column, self.pos)

    def tokens(self) -> List[Token]:
        return list(self.tokenize())

    def peek(self, offset=1) -> Optional[str]:
        if self.pos + offset < len(self.source):
            return self.source[self.pos + offset]
        return None

    def _mark(self) -> Tuple[int, int, int]:
        return self.line, self.column, self.pos

    def _token(self, token_type: TokenType, value: str, start: Tuple[int, int, int],
               template: bool = False) -> Token:
        line, column, offset = start
        return Token(token_type, value, line, column, offset,
                     self.line, self.column, self.pos, template)

    def _advance(self, count: int = 1):
        for _ in range(count):
            if self.pos >= len(self.source):
                return
            if self.source[self.pos] == '\n':
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def _handle_newline(self) -> Token:
        start = self._mark()
        self._advance()
        return self._token(TokenType.NEWLINE, '\n', start)

    def _handle_whitespace(self):
        while self.pos < len(self.source) and self.source[self.pos] in ' \t\r':
            self._advance()

    def _handle_line_comment(self) -> Token:
        start = self._mark()
        end = self.source.find('\n', self.pos)
        if end == -1:
            end = len(self.source)
        text = self.source[self.pos:end]
        self._advance(end - self.pos)
        return self._token(TokenType.COMMENT, text, start)

    def _handle_block_comment(self) -> Token:
        start = self._mark()
        end = self.source.find('*/', self.pos + 2)
        if end == -1:
            raise LexError("Unterminated comment", ErrorKind.UNTERMINATED_COMMENT,
                           start[0], start[1])
        text = self.source[self.pos:end + 2]
        self._advance(len(text))
        return self._token(TokenType.COMMENT, text, start)

    def _handle_identifier(self) -> Token:
        start = self._mark()
        identifier = ''
        while (self.pos < len(self.source) and
               (self.source[self.pos].isalnum() or self.source[self.pos] in ['_', '-'])):
            identifier += self.source[self.pos]
            self._advance()

        token_type = self.keywords.get(identifier, TokenType.IDENTIFIER)
        return self._token(token_type, identifier, start)

    def _handle_number(self) -> Token:
        start = self._mark()

        def digits():
            while self.pos < len(self.source) and _is_digit(self.source[self.pos]):
                self._advance()

        digits()
        # A dot only belongs to the number when a digit follows (foo.0.bar stays a traversal)
        if self.source.startswith('.', self.pos) and _is_digit(self.peek()):
            self._advance()
            digits()
        if self.pos < len(self.source) and self.source[self.pos] in 'eE':
            self._advance()
            if self.pos < len(self.source) and self.source[self.pos] in '+-':
                self._advance()
            if not (self.pos < len(self.source) and _is_digit(self.source[self.pos])):
                raise LexError("Invalid number literal: exponent has no digits",
                               ErrorKind.INVALID_NUMBER, start[0], start[1])
            digits()
        if self.pos < len(self.source) and (self.source[self.pos].isalnum() or self.source[self.pos] == '_'):
            raise LexError(f"Invalid number literal '{self.source[start[2]:self.pos + 1]}'",
                           ErrorKind.INVALID_NUMBER, start[0], start[1])

        return self._token(TokenType.NUMBER, self.source[start[2]:self.pos], start)

    def _handle_string(self) -> Token:
        start = self._mark()
        self._advance()  # opening quote
        string_value = ''
        template = False

        while True:
            if self.pos >= len(self.source) or self.source[self.pos] == '\n':
                raise LexError("Unterminated string", ErrorKind.UNTERMINATED_STRING,
                               start[0], start[1])
            char = self.source[self.pos]
            if char == '"':
                self._advance()
                break
            if char == '\\':
                string_value += self._decode_escape()
            elif self.source.startswith('$${', self.pos) or self.source.startswith('%%{', self.pos):
                string_value += char + '{'
                self._advance(3)
            elif self.source.startswith('${', self.pos) or self.source.startswith('%{', self.pos):
                template = True
                string_value += self._scan_interpolation(start)
            else:
                string_value += char
                self._advance()

        return self._token(TokenType.STRING, string_value, start, template)

    def _decode_escape(self) -> str:
        line, column = self.line, self.column
        escape_char = self.peek()
        if escape_char in SIMPLE_ESCAPES:
            self._advance(2)
            return SIMPLE_ESCAPES[escape_char]
        if escape_char in ('u', 'U'):
            width = 4 if escape_char == 'u' else 8
            digits = self.source[self.pos + 2:self.pos + 2 + width]
            if len(digits) == width and all(c in '0123456789abcdefABCDEF' for c in digits):
                try:
                    decoded = chr(int(digits, 16))
                except (ValueError, OverflowError):
                    decoded = None
                if decoded is not None:
                    self._advance(2 + width)
                    return decoded
        shown = escape_char if escape_char and escape_char != '\n' else ''
        raise LexError(f"Invalid escape sequence '\\{shown}'", ErrorKind.INVALID_ESCAPE, line, column)

    def _scan_interpolation(self, string_start: Tuple[int, int, int]) -> str:
        """Consume a ``${ ... }`` or ``%{ ... }`` sequence and return it verbatim."""
        begin = self.pos
        self._advance(2)
        depth = 1
        while depth:
            if self.pos >= len(self.source):
                raise LexError("Unterminated string", ErrorKind.UNTERMINATED_STRING,
                               string_start[0], string_start[1])
            char = self.source[self.pos]
            if char == '"':
                self._skip_quoted(string_start)
                continue
            if char == '{':
                depth += 1
            elif char == '}':
                depth -= 1
            self._advance()
        return self.source[begin:self.pos]

    def _skip_quoted(self, string_start: Tuple[int, int, int]):
        self._advance()
        while True:
            if self.pos >= len(self.source) or self.source[self.pos] == '\n':
                raise LexError("Unterminated string", ErrorKind.UNTERMINATED_STRING,
                               string_start[0], string_start[1])
            char = self.source[self.pos]
            if char == '"':
                self._advance()
                return
            if char == '\\':
                self._advance(2)
            elif self.source.startswith('${', self.pos) or self.source.startswith('%{', self.pos):
                self._scan_interpolation(string_start)
            else:
                self._advance()

    def _handle_heredoc(self, match) -> Token:
        start = self._mark()
        strip_indent = match.group(1) == '-'
        marker = match.group(2)
        self._advance(match.end() - self.pos)

        lines = []
        while True:
            if self.pos >= len(self.source):
                raise LexError(f"Unterminated heredoc, expected closing marker '{marker}'",
                               ErrorKind.UNTERMINATED_HEREDOC, start[0], start[1])
            end = self.source.find('\n', self.pos)
            if end == -1:
                end = len(self.source)
            text = self.source[self.pos:end]
            if text.strip() == marker:
                # The closing marker belongs to the token, its newline does not
                self._advance(len(text))
                break
            lines.append(text.rstrip('\r'))
            self._advance(end - self.pos + 1)

        if strip_indent:
            lines = _dedent(lines)
        value = ''.join(line + '\n' for line in lines)
        template = bool(re.search(r'(?<![$%])[$%]\{', value))
        value = value.replace('$${', '${').replace('%%{', '%{')
        return self._token(TokenType.HEREDOC, value, start, template)

    def _match_operator(self) -> Optional[str]:
        for op in self._operator_order:
            if self.source.startswith(op, self.pos):
                return op
        return None

    def _handle_operator(self, op: str) -> Token:
        start = self._mark()
        self._advance(len(op))
        return self._token(self.operators[op], op, start)


def _dedent(lines: List[str]) -> List[str]:
    indents = [len(line) - len(line.lstrip(' \t')) for line in lines if line.strip()]
    if not indents:
        return lines
    width = min(indents)
    return [line[width:] for line in lines]


def _is_digit(char: Optional[str]) -> bool:
    # str.isdigit() also accepts superscripts and other Unicode digits
    return char is not None and len(char) == 1 and char in DIGITS
