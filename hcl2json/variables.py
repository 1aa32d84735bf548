"""Terraform input variable extraction.

Values come from ``default`` attributes of ``variable`` blocks in ``.tf``
files and from the top-level attributes of ``.tfvars`` files. Only constant
values are collected: anything that would need evaluation (references,
function calls, templates with interpolation) is skipped, as are nulls.
"""
from pathlib import PurePosixPath
from typing import Any, Dict, List

from .ast_nodes import *
from .errors import ErrorKind, ParseError
from .lexer import HCLLexer
from .main import Document, decode_document
from .parser import HCLParser
from .projection import JSONProjector
from .tokentypes import TokenType

TF = '.tf'
TFVARS = '.tfvars'
AUTO_TFVARS = '.auto.tfvars'
DEFAULT_TFVARS = 'terraform.tfvars'

VariableMap = Dict[str, Any]


def extract_variables(document: Document, filename: str) -> Dict[str, VariableMap]:
    """Return ``{"var": {...}}`` for one ``.tf`` or ``.tfvars`` document.

    Files of any other type yield an empty ``var`` mapping.
    """
    source = decode_document(document)
    body = HCLParser(HCLLexer(source).tokenize()).parse()
    projector = JSONProjector(source)

    if filename.endswith(TF):
        variables = _from_tf_file(body, projector)
    elif filename.endswith(TFVARS):
        variables = _from_tfvars_file(body, projector)
    else:
        variables = {}
    return {'var': variables}


def _from_tf_file(body: Body, projector: JSONProjector) -> VariableMap:
    variables: VariableMap = {}
    for block in body.blocks:
        if block.type != 'variable':
            continue
        if len(block.labels) != 1:
            raise ParseError(f"Variable block needs exactly one label 'name', got {len(block.labels)}",
                             ErrorKind.UNEXPECTED_TOKEN, block.line, block.range.start.column,
                             "one block label")

        default = next((a for a in block.body.attributes if a.name == 'default'), None)
        if default is None or not is_constant(default.expr):
            continue
        value = default.expr.accept(projector)
        if value is not None:
            variables[block.labels[0]] = value
    return variables


def _from_tfvars_file(body: Body, projector: JSONProjector) -> VariableMap:
    if body.blocks:
        block = body.blocks[0]
        raise ParseError(f"Unexpected '{block.type}' block, variable definitions files hold attributes only",
                         ErrorKind.UNEXPECTED_TOKEN, block.line, block.range.start.column,
                         "attribute definition")

    return {attribute.name: attribute.expr.accept(projector)
            for attribute in body.attributes if is_constant(attribute.expr)}


def is_constant(expr: Expression) -> bool:
    """True when the expression's value is known without evaluating anything."""
    if isinstance(expr, LiteralNode):
        return True
    if isinstance(expr, TemplateNode):
        return not expr.has_interpolation
    if isinstance(expr, TupleNode):
        return all(is_constant(element) for element in expr.elements)
    if isinstance(expr, ObjectNode):
        return all(_is_constant_key(item.key) and is_constant(item.value) for item in expr.items)
    if isinstance(expr, UnaryNode) and isinstance(expr.operand, LiteralNode):
        value = expr.operand.value
        if expr.operator.type == TokenType.NOT:
            return isinstance(value, bool)
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    return False


def _is_constant_key(key: Expression) -> bool:
    # A bare identifier key is the literal name, not a reference
    return isinstance(key, VariableNode) or is_constant(key)

# ------------------------------
# Merging
# ------------------------------

def file_priority(filename: str) -> int:
    """Terraform's precedence: .tf defaults, then terraform.tfvars, then *.auto.tfvars."""
    if filename.endswith(TF):
        return 1
    if is_default_tfvars(filename):
        return 2
    if filename.endswith(AUTO_TFVARS):
        return 3
    return 0


def is_default_tfvars(filename: str) -> bool:
    # The name is exact: "prod-terraform.tfvars" does not count
    return PurePosixPath(filename.replace('\\', '/')).name == DEFAULT_TFVARS


def is_variable_file(filename: str) -> bool:
    return is_default_tfvars(filename) or filename.endswith(TF) or filename.endswith(AUTO_TFVARS)


def order_by_priority(filenames: List[str]) -> List[str]:
    """Lowest priority first. ``.auto.tfvars`` files sort by name, the rest keep their order."""
    return sorted(filenames, key=lambda name: (file_priority(name),
                                               name if name.endswith(AUTO_TFVARS) else ''))


def merge_variables(variable_maps: Dict[str, Dict[str, VariableMap]]) -> Dict[str, VariableMap]:
    """Merge per-file results of ``extract_variables``; higher priority files win."""
    combined: VariableMap = {}
    for filename in order_by_priority(list(variable_maps)):
        combined.update(variable_maps[filename].get('var', {}))
    return {'var': combined}
