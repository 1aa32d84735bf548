from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .ast_nodes import *
from .errors import ErrorKind, ParseError
from .lexer import HCLLexer
from .tokentypes import SourcePos, SourceRange, Token, TokenType


class HCLParser:
    """Recursive descent parser for the HCL native syntax.

    Produces a ``Body`` of attributes and (possibly labelled) blocks. Tokens
    are pulled lazily from the lexer, so a ``LexError`` surfaces at the point
    the parser reaches the broken token.
    """

    PRECEDENCE = {
        TokenType.OR: 1,
        TokenType.AND: 2,
        TokenType.EQUAL_EQUAL: 3,
        TokenType.NOT_EQUAL: 3,
        TokenType.GREATER_THAN: 4,
        TokenType.GREATER_EQUAL: 4,
        TokenType.LESS_THAN: 4,
        TokenType.LESS_EQUAL: 4,
        TokenType.PLUS: 5,
        TokenType.MINUS: 5,
        TokenType.MULTIPLY: 6,
        TokenType.DIVIDE: 6,
        TokenType.MODULO: 6,
    }

    # Keywords are still valid attribute, block and label names
    NAME_TOKENS = {
        TokenType.IDENTIFIER,
        TokenType.FOR,
        TokenType.IN,
        TokenType.IF,
        TokenType.NULL,
        TokenType.TRUE,
        TokenType.FALSE,
    }

    def __init__(self, tokens: Iterable[Token]):
        self._tokens: Iterator[Token] = iter(tokens)
        self._buffer: List[Token] = []
        self._eof: Optional[Token] = None
        self._last: Optional[Token] = None
        # Top of the stack tells whether newlines are significant right now
        self._newline_modes: List[bool] = [True]

    # ------------------------------
    # Token stream
    # ------------------------------

    def _fill(self, count: int):
        while len(self._buffer) < count:
            if self._eof is not None:
                self._buffer.append(self._eof)
                continue
            token = next(self._tokens)
            if token.type == TokenType.COMMENT:
                continue
            if token.type == TokenType.EOF:
                self._eof = token
            self._buffer.append(token)

    def peek(self, offset: int = 0) -> Token:
        significant = self._newline_modes[-1]
        index = 0
        seen = 0
        while True:
            self._fill(index + 1)
            token = self._buffer[index]
            index += 1
            if token.type == TokenType.NEWLINE and not significant:
                continue
            if seen == offset:
                return token
            seen += 1

    @property
    def current_token(self) -> Token:
        return self.peek()

    def advance(self) -> Token:
        significant = self._newline_modes[-1]
        while True:
            self._fill(1)
            token = self._buffer.pop(0)
            if token.type == TokenType.NEWLINE and not significant:
                continue
            self._last = token
            return token

    def match(self, *token_types: TokenType) -> bool:
        return self.current_token.type in token_types

    def consume(self, token_type: TokenType, expected: Optional[str] = None) -> Token:
        if self.match(token_type):
            return self.advance()
        raise self._unexpected(self.current_token, expected or f"'{token_type.value}'")

    def _unexpected(self, token: Token, expected: str) -> ParseError:
        return ParseError(f"Expected {expected}, got {_describe(token)}",
                          ErrorKind.UNEXPECTED_TOKEN, token.line, token.column, expected)

    def _push_newlines(self, significant: bool):
        self._newline_modes.append(significant)

    def _pop_newlines(self):
        self._newline_modes.pop()

    def _skip_newlines(self):
        while self.match(TokenType.NEWLINE):
            self.advance()

    # ------------------------------
    # Structure
    # ------------------------------

    def parse(self) -> Body:
        start = self.current_token
        body = self.parse_body(None)
        eof = self.consume(TokenType.EOF, "end of file")
        body.range = SourceRange(SourcePos(1, 1, 0), eof.range.end)
        if body.items:
            body.range = SourceRange(start.range.start, eof.range.end)
        return body

    def parse_body(self, block_token: Optional[Token]) -> Body:
        items: List[Union[Attribute, Block]] = []
        seen: Dict[str, Attribute] = {}
        start = self.current_token

        while True:
            token = self.current_token
            if token.type == TokenType.NEWLINE:
                self.advance()
                continue
            if token.type == TokenType.EOF:
                if block_token is not None:
                    raise ParseError(f"Unterminated block '{block_token.value}', expected '}}'",
                                     ErrorKind.UNTERMINATED_BLOCK, block_token.line,
                                     block_token.column, "'}'")
                break
            if token.type == TokenType.RBRACE:
                if block_token is None:
                    raise self._unexpected(token, "attribute or block definition")
                break
            if token.type not in self.NAME_TOKENS:
                raise self._unexpected(token, "attribute or block definition")

            item = self.parse_body_item()
            if isinstance(item, Attribute):
                if item.name in seen:
                    first = seen[item.name]
                    raise ParseError(
                        f"Attribute '{item.name}' redefined, first defined at line {first.line}",
                        ErrorKind.DUPLICATE_ATTRIBUTE, item.name_range.start.line,
                        item.name_range.start.column, "a unique attribute name")
                seen[item.name] = item
            items.append(item)

        end = self._last.range.end if self._last is not None else start.range.start
        return Body(items, SourceRange(start.range.start, end))

    def parse_body_item(self) -> Union[Attribute, Block]:
        name_token = self.advance()
        if self.match(TokenType.EQUALS):
            return self.parse_attribute(name_token)
        if self.match(TokenType.STRING, TokenType.IDENTIFIER, TokenType.LBRACE):
            return self.parse_block(name_token)
        raise self._unexpected(self.current_token,
                               f"'=' or a block definition after '{name_token.value}'")

    def parse_attribute(self, name_token: Token) -> Attribute:
        self.consume(TokenType.EQUALS)
        expr = self.parse_expression()
        self._expect_terminator("attribute definition")
        return Attribute(
            name=name_token.value,
            expr=expr,
            range=name_token.range.to(expr.range),
            name_range=name_token.range,
        )

    def parse_block(self, type_token: Token) -> Block:
        labels = []
        label_ranges = []
        while self.match(TokenType.STRING, TokenType.IDENTIFIER):
            label_token = self.advance()
            if label_token.template:
                raise ParseError("Template interpolation is not allowed in block labels",
                                 ErrorKind.UNEXPECTED_TOKEN, label_token.line,
                                 label_token.column, "a literal block label")
            labels.append(label_token.value)
            label_ranges.append(label_token.range)

        open_brace = self.consume(TokenType.LBRACE, "'{' to open the block")
        body = self.parse_body(type_token)
        close_brace = self.consume(TokenType.RBRACE, "'}' to close the block")
        body.range = open_brace.range.to(close_brace.range)
        self._expect_terminator("block definition")

        return Block(
            type=type_token.value,
            labels=labels,
            body=body,
            range=type_token.range.to(close_brace.range),
            type_range=type_token.range,
            label_ranges=label_ranges,
            open_brace_range=open_brace.range,
        )

    def _expect_terminator(self, what: str):
        token = self.current_token
        if token.type == TokenType.NEWLINE:
            self.advance()
        elif token.type not in (TokenType.EOF, TokenType.RBRACE):
            raise self._unexpected(token, f"newline after {what}")

    # ------------------------------
    # Expressions
    # ------------------------------

    def parse_expression(self) -> Expression:
        condition = self.parse_binary(1)
        if not self.match(TokenType.QUESTION):
            return condition
        self.advance()
        true_expr = self.parse_expression()
        self.consume(TokenType.COLON, "':' in conditional expression")
        false_expr = self.parse_expression()
        return ConditionalNode(condition, true_expr, false_expr,
                               condition.range.to(false_expr.range))

    def parse_binary(self, min_precedence: int) -> Expression:
        left = self.parse_unary()
        while True:
            operator = self.current_token
            precedence = self.PRECEDENCE.get(operator.type, -1)
            if precedence < min_precedence:
                break
            self.advance()
            right = self.parse_binary(precedence + 1)
            left = BinaryNode(left, operator, right, left.range.to(right.range))
        return left

    def parse_unary(self) -> Expression:
        if self.match(TokenType.MINUS, TokenType.NOT):
            operator = self.advance()
            operand = self.parse_unary()
            return UnaryNode(operator, operand, operator.range.to(operand.range))
        return self.parse_postfix()

    def parse_postfix(self) -> Expression:
        expr = self.parse_primary()
        steps = []
        end = expr.range
        while True:
            if self.match(TokenType.DOT):
                self.advance()
                token = self.current_token
                if token.type in self.NAME_TOKENS:
                    steps.append(('attr', self.advance().value))
                elif token.type == TokenType.NUMBER:
                    steps.extend(self._legacy_index_steps(self.advance()))
                elif token.type == TokenType.MULTIPLY:
                    self.advance()
                    steps.append(('splat', '.*'))
                else:
                    raise self._unexpected(token, "attribute name after '.'")
                end = self._last.range
            elif self.match(TokenType.LBRACKET):
                self.advance()
                self._push_newlines(False)
                if self.match(TokenType.MULTIPLY):
                    self.advance()
                    steps.append(('splat', '[*]'))
                else:
                    steps.append(('index', self.parse_expression()))
                close = self.consume(TokenType.RBRACKET, "']' to close the index")
                self._pop_newlines()
                end = close.range
            else:
                break
        if steps:
            return TraversalNode(expr, steps, expr.range.to(end))
        return expr

    def _legacy_index_steps(self, token: Token) -> List[Tuple[str, LiteralNode]]:
        """Split ``foo.0.1`` style indexes; the lexer reads ``0.1`` as one number."""
        parts = token.value.split('.')
        if not all(part.isdigit() for part in parts):
            raise ParseError(f"Invalid index '{token.value}' after '.', expected an integer",
                             ErrorKind.UNEXPECTED_TOKEN, token.line, token.column, "integer index")
        steps = []
        offset = token.offset
        for part in parts:
            start = SourcePos(token.line, token.column + offset - token.offset, offset)
            end = SourcePos(token.line, start.column + len(part), offset + len(part))
            steps.append(('index', LiteralNode(int(part), SourceRange(start, end))))
            offset += len(part) + 1
        return steps

    def parse_primary(self) -> Expression:
        token = self.current_token
        if token.type == TokenType.NUMBER:
            self.advance()
            if token.value.isdigit():
                return LiteralNode(int(token.value), token.range)
            return LiteralNode(float(token.value), token.range)
        elif token.type == TokenType.TRUE:
            self.advance()
            return LiteralNode(True, token.range)
        elif token.type == TokenType.FALSE:
            self.advance()
            return LiteralNode(False, token.range)
        elif token.type == TokenType.NULL:
            self.advance()
            return LiteralNode(None, token.range)
        elif token.type == TokenType.STRING:
            self.advance()
            return TemplateNode(token.value, token.template, token.range)
        elif token.type == TokenType.HEREDOC:
            self.advance()
            return TemplateNode(token.value, token.template, token.range, heredoc=True)
        elif token.type == TokenType.IDENTIFIER:
            if self.peek(1).type == TokenType.LPAREN:
                return self.parse_function_call()
            self.advance()
            return VariableNode(token.value, token.range)
        elif token.type == TokenType.LPAREN:
            self.advance()
            self._push_newlines(False)
            expr = self.parse_expression()
            close = self.consume(TokenType.RPAREN, "')'")
            self._pop_newlines()
            return ParenthesesNode(expr, token.range.to(close.range))
        elif token.type == TokenType.LBRACKET:
            return self.parse_tuple()
        elif token.type == TokenType.LBRACE:
            return self.parse_object()
        raise self._unexpected(token, "expression")

    def parse_function_call(self) -> FunctionCallNode:
        name_token = self.advance()
        self.consume(TokenType.LPAREN)
        self._push_newlines(False)
        arguments = []
        expand_final = False
        while not self.match(TokenType.RPAREN):
            arguments.append(self.parse_expression())
            if self.match(TokenType.ELLIPSIS):
                self.advance()
                expand_final = True
                break
            if self.match(TokenType.COMMA):
                self.advance()
            else:
                break
        close = self.consume(TokenType.RPAREN, f"')' to close the call to '{name_token.value}'")
        self._pop_newlines()
        return FunctionCallNode(name_token.value, arguments,
                                name_token.range.to(close.range), expand_final)

    def parse_tuple(self) -> Expression:
        open_bracket = self.advance()
        self._push_newlines(False)
        if self.match(TokenType.FOR):
            expr = self.parse_for(open_bracket, TokenType.RBRACKET)
            self._pop_newlines()
            return expr

        elements = []
        while not self.match(TokenType.RBRACKET):
            elements.append(self.parse_expression())
            if self.match(TokenType.COMMA):
                self.advance()
            elif not self.match(TokenType.RBRACKET):
                raise self._unexpected(self.current_token, "',' or ']'")
        close = self.consume(TokenType.RBRACKET)
        self._pop_newlines()
        return TupleNode(elements, open_bracket.range.to(close.range))

    def parse_object(self) -> Expression:
        open_brace = self.advance()
        self._push_newlines(True)
        self._skip_newlines()
        if self.match(TokenType.FOR):
            self._push_newlines(False)
            expr = self.parse_for(open_brace, TokenType.RBRACE)
            self._pop_newlines()
            self._pop_newlines()
            return expr

        items = []
        while True:
            self._skip_newlines()
            if self.match(TokenType.RBRACE):
                break
            key = self.parse_expression()
            if self.match(TokenType.EQUALS, TokenType.COLON):
                self.advance()
            else:
                raise self._unexpected(self.current_token, "'=' or ':' after object key")
            value = self.parse_expression()
            items.append(ObjectItemNode(key, value, key.range.to(value.range)))
            if self.match(TokenType.COMMA, TokenType.NEWLINE):
                self.advance()
            elif not self.match(TokenType.RBRACE):
                raise self._unexpected(self.current_token, "',', newline or '}' in object")
        close = self.consume(TokenType.RBRACE, "'}' to close the object")
        self._pop_newlines()
        return ObjectNode(items, open_brace.range.to(close.range))

    def parse_for(self, open_token: Token, closing: TokenType) -> ForNode:
        self.consume(TokenType.FOR)
        first = self.consume(TokenType.IDENTIFIER, "iterator name after 'for'").value
        key_var = None
        value_var = first
        if self.match(TokenType.COMMA):
            self.advance()
            key_var = first
            value_var = self.consume(TokenType.IDENTIFIER, "value iterator name").value
        self.consume(TokenType.IN, "'in' after iterator")
        collection = self.parse_expression()
        self.consume(TokenType.COLON, "':' after for collection")

        key_expr = None
        grouped = False
        if closing == TokenType.RBRACE:
            key_expr = self.parse_expression()
            self.consume(TokenType.FAT_ARROW, "'=>' in object for expression")
        value_expr = self.parse_expression()
        if closing == TokenType.RBRACE and self.match(TokenType.ELLIPSIS):
            self.advance()
            grouped = True

        condition = None
        if self.match(TokenType.IF):
            self.advance()
            condition = self.parse_expression()
        close = self.consume(closing, f"'{closing.value}' to close the for expression")
        return ForNode(key_var, value_var, collection, key_expr, value_expr, condition,
                       open_token.range.to(close.range), grouped)


def _describe(token: Token) -> str:
    if token.type == TokenType.EOF:
        return "end of file"
    if token.type == TokenType.NEWLINE:
        return "newline"
    if token.type in (TokenType.STRING, TokenType.HEREDOC):
        return "string literal"
    return f"'{token.value}'"


def parse_source(source: str) -> Body:
    return HCLParser(HCLLexer(source).tokenize()).parse()
