from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple, Union

from .tokentypes import SourceRange, Token


class ASTNode(ABC):
    range: SourceRange

    @abstractmethod
    def accept(self, visitor: 'ASTVisitor') -> Any:
        pass

    @property
    def line(self) -> int:
        return self.range.start.line

    @property
    def offset(self) -> int:
        return self.range.start.offset

# ------------------------------
# Structure
# ------------------------------

@dataclass
class Attribute(ASTNode):
    name: str
    expr: 'Expression'
    range: SourceRange
    name_range: SourceRange

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_attribute(self)


@dataclass
class Block(ASTNode):
    type: str
    labels: List[str]
    body: 'Body'
    range: SourceRange
    type_range: SourceRange
    label_ranges: List[SourceRange] = field(default_factory=list)
    open_brace_range: Optional[SourceRange] = None

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_block(self)


@dataclass
class Body(ASTNode):
    items: List[Union[Attribute, Block]]
    range: SourceRange

    @property
    def attributes(self) -> List[Attribute]:
        return [item for item in self.items if isinstance(item, Attribute)]

    @property
    def blocks(self) -> List[Block]:
        return [item for item in self.items if isinstance(item, Block)]

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_body(self)

# ------------------------------
# Expressions
# ------------------------------

class Expression(ASTNode):
    pass


@dataclass
class LiteralNode(Expression):
    value: Any
    range: SourceRange

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_literal(self)


@dataclass
class TemplateNode(Expression):
    """Quoted string or heredoc. ``value`` keeps interpolations verbatim."""
    value: str
    has_interpolation: bool
    range: SourceRange
    heredoc: bool = False

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_template(self)


@dataclass
class TupleNode(Expression):
    elements: List[Expression]
    range: SourceRange

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_tuple(self)


@dataclass
class ObjectItemNode:
    key: Expression
    value: Expression
    range: SourceRange

    @property
    def line(self) -> int:
        return self.range.start.line

    @property
    def offset(self) -> int:
        return self.range.start.offset


@dataclass
class ObjectNode(Expression):
    items: List[ObjectItemNode]
    range: SourceRange

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_object(self)


@dataclass
class VariableNode(Expression):
    name: str
    range: SourceRange

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_variable(self)


@dataclass
class TraversalNode(Expression):
    """Attribute access, indexing and splats applied to ``source``.

    Each step is ``('attr', name)``, ``('index', Expression)`` or ``('splat', '.*' | '[*]')``.
    """
    source: Expression
    steps: List[Tuple[str, Any]]
    range: SourceRange

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_traversal(self)


@dataclass
class FunctionCallNode(Expression):
    name: str
    arguments: List[Expression]
    range: SourceRange
    expand_final: bool = False

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_function_call(self)


@dataclass
class UnaryNode(Expression):
    operator: Token
    operand: Expression
    range: SourceRange

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_unary(self)


@dataclass
class BinaryNode(Expression):
    left: Expression
    operator: Token
    right: Expression
    range: SourceRange

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_binary(self)


@dataclass
class ConditionalNode(Expression):
    condition: Expression
    true_expr: Expression
    false_expr: Expression
    range: SourceRange

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_conditional(self)


@dataclass
class ParenthesesNode(Expression):
    expr: Expression
    range: SourceRange

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_parentheses(self)


@dataclass
class ForNode(Expression):
    key_var: Optional[str]
    value_var: str
    collection: Expression
    key_expr: Optional[Expression]
    value_expr: Expression
    condition: Optional[Expression]
    range: SourceRange
    grouped: bool = False

    @property
    def is_object(self) -> bool:
        return self.key_expr is not None

    def accept(self, visitor: 'ASTVisitor') -> Any:
        return visitor.visit_for(self)

# ------------------------------
# AST Visitor Interface
# ------------------------------

class ASTVisitor(ABC):
    @abstractmethod
    def visit_body(self, node: Body) -> Any:
        pass

    @abstractmethod
    def visit_attribute(self, node: Attribute) -> Any:
        pass

    @abstractmethod
    def visit_block(self, node: Block) -> Any:
        pass

    @abstractmethod
    def visit_literal(self, node: LiteralNode) -> Any:
        pass

    @abstractmethod
    def visit_template(self, node: TemplateNode) -> Any:
        pass

    @abstractmethod
    def visit_tuple(self, node: TupleNode) -> Any:
        pass

    @abstractmethod
    def visit_object(self, node: ObjectNode) -> Any:
        pass

    @abstractmethod
    def visit_variable(self, node: VariableNode) -> Any:
        pass

    @abstractmethod
    def visit_traversal(self, node: TraversalNode) -> Any:
        pass

    @abstractmethod
    def visit_function_call(self, node: FunctionCallNode) -> Any:
        pass

    @abstractmethod
    def visit_unary(self, node: UnaryNode) -> Any:
        pass

    @abstractmethod
    def visit_binary(self, node: BinaryNode) -> Any:
        pass

    @abstractmethod
    def visit_conditional(self, node: ConditionalNode) -> Any:
        pass

    @abstractmethod
    def visit_parentheses(self, node: ParenthesesNode) -> Any:
        pass

    @abstractmethod
    def visit_for(self, node: ForNode) -> Any:
        pass
