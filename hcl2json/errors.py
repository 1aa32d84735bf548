from enum import Enum
from typing import List, Optional


class ErrorKind(Enum):
    # Lexer
    UNTERMINATED_STRING = 'unterminated-string'
    INVALID_ESCAPE = 'invalid-escape'
    INVALID_NUMBER = 'invalid-number'
    UNTERMINATED_HEREDOC = 'unterminated-heredoc'
    UNTERMINATED_COMMENT = 'unterminated-comment'
    UNEXPECTED_CHARACTER = 'unexpected-character'
    INVALID_ENCODING = 'invalid-encoding'

    # Parser
    UNEXPECTED_TOKEN = 'unexpected-token'
    UNTERMINATED_BLOCK = 'unterminated-block'
    DUPLICATE_ATTRIBUTE = 'duplicate-attribute'

    # Projection
    CONFLICTING_ATTRIBUTE = 'conflicting-attribute'

    # Resolver
    SEGMENT_NOT_FOUND = 'segment-not-found'
    MALFORMED_PATH = 'malformed-path'

    # Document loaders
    INVALID_JSON = 'invalid-json'
    INVALID_YAML = 'invalid-yaml'


class HCL2JSONError(Exception):
    """Base class for every failure raised by the parser engine."""

    def __init__(self, message: str, kind: ErrorKind, line: Optional[int] = None,
                 column: Optional[int] = None, user_error: bool = True,
                 errors: Optional[List[Exception]] = None):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.line = line
        self.column = column
        self.user_error = user_error
        self.errors = errors or []

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} at line {self.line} column {self.column}"

    def describe(self, filename: str = "") -> str:
        """Render the error as ``file:line,column: message``."""
        if self.line is None:
            location = filename
        else:
            location = f"{filename}:{self.line},{self.column}" if filename else f"{self.line},{self.column}"
        return f"{location}: {self.message}" if location else self.message

    def debug_details(self) -> str:
        debugging = ""
        for error in self.errors:
            debugging = f"{debugging}\n{error}"
        return debugging


class LexError(HCL2JSONError):
    """Malformed token in the source document."""


class ParseError(HCL2JSONError):
    """Token sequence violates the block-and-attribute grammar."""

    def __init__(self, message: str, kind: ErrorKind, line: Optional[int] = None,
                 column: Optional[int] = None, expected: Optional[str] = None):
        super().__init__(message, kind, line, column)
        self.expected = expected


class ProjectionError(HCL2JSONError):
    """Structural tree cannot be mapped onto a JSON value."""

    def __init__(self, message: str, key: str, line: Optional[int] = None,
                 column: Optional[int] = None):
        super().__init__(message, ErrorKind.CONFLICTING_ATTRIBUTE, line, column)
        self.key = key


class PathNotFoundError(HCL2JSONError):
    """Query path does not resolve against the document."""

    def __init__(self, message: str, segment: str, matched: str = "",
                 kind: ErrorKind = ErrorKind.SEGMENT_NOT_FOUND):
        super().__init__(message, kind)
        self.segment = segment
        self.matched = matched


class DocumentError(HCL2JSONError):
    """JSON or YAML document could not be loaded."""

    def __init__(self, message: str, kind: ErrorKind, errors: Optional[List[Exception]] = None):
        super().__init__(message, kind, errors=errors)


def is_user_error(error: Exception) -> bool:
    if isinstance(error, HCL2JSONError):
        return error.user_error
    return False
