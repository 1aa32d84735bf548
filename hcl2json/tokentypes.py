from dataclasses import dataclass
from enum import Enum

# ------------------------------
# Token Definitions
# ------------------------------

class TokenType(Enum):
    # Basic tokens
    IDENTIFIER = 'IDENTIFIER'
    NUMBER = 'NUMBER'
    STRING = 'STRING'
    HEREDOC = 'HEREDOC'

    # Keywords
    FOR = 'for'
    IN = 'in'
    IF = 'if'
    NULL = 'null'
    TRUE = 'true'
    FALSE = 'false'

    # Operators
    EQUALS = '='
    PLUS = '+'
    MINUS = '-'
    MULTIPLY = '*'
    DIVIDE = '/'
    MODULO = '%'
    AND = '&&'
    OR = '||'
    NOT = '!'
    QUESTION = '?'
    COLON = ':'
    COMMA = ','
    DOT = '.'
    ELLIPSIS = '...'
    FAT_ARROW = '=>'
    EQUAL_EQUAL = '=='
    NOT_EQUAL = '!='
    GREATER_EQUAL = '>='
    LESS_EQUAL = '<='
    GREATER_THAN = '>'
    LESS_THAN = '<'

    # Delimiters
    LPAREN = '('
    RPAREN = ')'
    LBRACE = '{'
    RBRACE = '}'
    LBRACKET = '['
    RBRACKET = ']'

    # Special
    COMMENT = 'COMMENT'
    NEWLINE = 'NEWLINE'
    EOF = 'EOF'


@dataclass(frozen=True)
class SourcePos:
    line: int
    column: int
    offset: int


@dataclass(frozen=True)
class SourceRange:
    start: SourcePos
    end: SourcePos

    @property
    def line(self) -> int:
        return self.start.line

    def to(self, other: 'SourceRange') -> 'SourceRange':
        return SourceRange(self.start, other.end)


@dataclass
class Token:
    type: TokenType
    value: str
    line: int
    column: int
    offset: int = 0
    end_line: int = 0
    end_column: int = 0
    end_offset: int = 0
    template: bool = False  # quoted string or heredoc with ${ } / %{ } parts

    @property
    def range(self) -> SourceRange:
        return SourceRange(
            SourcePos(self.line, self.column, self.offset),
            SourcePos(self.end_line, self.end_column, self.end_offset),
        )
