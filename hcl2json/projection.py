from typing import Any, Dict, List, Optional, Tuple

from .ast_nodes import *
from .errors import ProjectionError
from .tokentypes import TokenType

ATTRIBUTE = 'attribute'
BLOCK = 'block'
LABELS = 'labels'

_DESCRIPTIONS = {
    ATTRIBUTE: "an attribute value",
    BLOCK: "the body of another block",
    LABELS: "the labels of other blocks",
    None: "a value",
}


class JSONProjector(ASTVisitor):
    """Maps a parsed ``Body`` onto plain JSON-compatible Python values.

    Blocks nest under their type and then each label; repeated blocks with
    the same type and labels collect into a list. Literal expressions become
    their JSON value and every other expression becomes ``"${<source>}"``.
    """

    def __init__(self, source: str):
        self.source = source
        # (id(container), key) -> what placed the value there
        self._origins: Dict[Tuple[int, str], str] = {}

    def project(self, body: Body) -> Dict[str, Any]:
        self._origins = {}
        return body.accept(self)

    def raw(self, node: ASTNode) -> str:
        return self.source[node.range.start.offset:node.range.end.offset]

    def wrap(self, node: ASTNode) -> str:
        return "${" + self.raw(node) + "}"

    # ------------------------------
    # Structure
    # ------------------------------

    def visit_body(self, node: Body, out: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if out is None:
            out = {}
        for item in node.items:
            if isinstance(item, Attribute):
                self._place_attribute(item, out)
            else:
                self._place_block(item, out)
        return out

    def visit_attribute(self, node: Attribute) -> Any:
        return node.expr.accept(self)

    def visit_block(self, node: Block) -> Dict[str, Any]:
        return self.visit_body(node.body)

    def _place_attribute(self, attribute: Attribute, out: Dict[str, Any]):
        if attribute.name in out:
            raise ProjectionError(
                f"Attribute '{attribute.name}' conflicts with a block of the same name",
                attribute.name, attribute.line, attribute.range.start.column)
        out[attribute.name] = attribute.accept(self)
        self._origins[(id(out), attribute.name)] = ATTRIBUTE

    def _place_block(self, block: Block, out: Dict[str, Any]):
        """Nest the block body under its type and labels.

        A key holds exactly one kind of value: an attribute, the body of
        blocks ending there, or the mapping of labels for blocks passing
        through. Mixing them, e.g. ``a { }`` next to ``a "k" { }``, is an
        error in either order.
        """
        value = block.accept(self)
        path = ".".join([block.type] + block.labels)
        key = block.type

        for label in block.labels:
            if key in out:
                origin = self._origins.get((id(out), key))
                if origin != LABELS:
                    raise ProjectionError(f"Unable to convert block '{path}' to JSON: "
                                          f"'{key}' already holds {_DESCRIPTIONS[origin]}",
                                          key, block.line, block.range.start.column)
                out = out[key]
            else:
                obj: Dict[str, Any] = {}
                out[key] = obj
                self._origins[(id(out), key)] = LABELS
                out = obj
            key = label

        if key not in out:
            out[key] = value
            self._origins[(id(out), key)] = BLOCK
            return
        origin = self._origins.get((id(out), key))
        if origin != BLOCK:
            raise ProjectionError(f"Block '{path}' conflicts with {_DESCRIPTIONS[origin]} "
                                  f"at '{key}'", key, block.line, block.range.start.column)
        current = out[key]
        if isinstance(current, list):
            current.append(value)
        else:
            out[key] = [current, value]

    # ------------------------------
    # Expressions
    # ------------------------------

    def visit_literal(self, node: LiteralNode) -> Any:
        return node.value

    def visit_template(self, node: TemplateNode) -> str:
        return node.value

    def visit_tuple(self, node: TupleNode) -> List[Any]:
        return [element.accept(self) for element in node.elements]

    def visit_object(self, node: ObjectNode) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for item in node.items:
            key = self.object_key(item.key)
            value = item.value.accept(self)
            if key in result and result[key] != value:
                raise ProjectionError(f"Object key '{key}' is assigned two different values",
                                      key, item.line, item.range.start.column)
            result[key] = value
        return result

    def object_key(self, node: Expression) -> str:
        if isinstance(node, (VariableNode, TraversalNode)):
            return self.raw(node)
        if isinstance(node, TemplateNode) and not node.has_interpolation:
            return node.value
        if isinstance(node, LiteralNode):
            if isinstance(node.value, bool):
                return "true" if node.value else "false"
            return self.raw(node)
        return self.wrap(node)

    def visit_variable(self, node: VariableNode) -> str:
        return self.wrap(node)

    def visit_traversal(self, node: TraversalNode) -> str:
        return self.wrap(node)

    def visit_function_call(self, node: FunctionCallNode) -> str:
        return self.wrap(node)

    def visit_unary(self, node: UnaryNode) -> Any:
        # Only fold operators applied directly to a literal
        if isinstance(node.operand, LiteralNode):
            value = node.operand.value
            if node.operator.type == TokenType.MINUS and isinstance(value, (int, float)) \
                    and not isinstance(value, bool):
                return -value
            if node.operator.type == TokenType.NOT and isinstance(value, bool):
                return not value
        return self.wrap(node)

    def visit_binary(self, node: BinaryNode) -> str:
        return self.wrap(node)

    def visit_conditional(self, node: ConditionalNode) -> str:
        return self.wrap(node)

    def visit_parentheses(self, node: ParenthesesNode) -> str:
        return self.wrap(node)

    def visit_for(self, node: ForNode) -> str:
        return self.wrap(node)


def project(body: Body, source: str) -> Dict[str, Any]:
    return JSONProjector(source).project(body)
