"""Tests for the structural parser."""

import pytest

from hcl2json.ast_nodes import (
    Attribute,
    BinaryNode,
    Block,
    ConditionalNode,
    ForNode,
    FunctionCallNode,
    LiteralNode,
    ObjectNode,
    TemplateNode,
    TraversalNode,
    TupleNode,
    UnaryNode,
    VariableNode,
)
from hcl2json.errors import ErrorKind, LexError, ParseError
from hcl2json.parser import parse_source

from conftest import SCENARIO


def attribute(body, name):
    return next(a for a in body.attributes if a.name == name)


def test_single_line_nested_blocks():
    body = parse_source(SCENARIO)

    assert len(body.blocks) == 1
    resource = body.blocks[0]
    assert resource.type == "resource"
    assert resource.labels == ["aws_redshift_cluster", "denied"]
    logging_block = resource.body.blocks[0]
    assert logging_block.type == "logging"
    assert logging_block.labels == []
    enable = logging_block.body.attributes[0]
    assert enable.name == "enable"
    assert isinstance(enable.expr, LiteralNode)
    assert enable.expr.value is True


def test_node_ranges_track_source_positions(redshift_tf):
    body = parse_source(redshift_tf.decode())

    denied = body.blocks[1]
    assert denied.labels[1] == "denied"
    assert denied.range.start.line == 10
    assert denied.range.end.line == 17
    assert denied.label_ranges[1].start.column == 33
    assert denied.open_brace_range.start.line == 10

    logging_block = denied.body.blocks[0]
    assert logging_block.line == 14
    assert logging_block.body.range.start.line == 14
    assert logging_block.body.range.end.line == 16

    encrypted = attribute(denied.body, "encrypted")
    assert encrypted.line == 12
    assert encrypted.name_range.start.column == 3


def test_items_keep_document_order():
    body = parse_source('a = 1\nb {}\nc = 2\n')
    assert [type(item) for item in body.items] == [Attribute, Block, Attribute]


def test_expression_shapes():
    source = '\n'.join([
        'a = var.x.y[0]',
        'b = upper("x")',
        'c = 1 + 2 * 3',
        'd = x ? 1 : 2',
        'e = [for s in var.l : upper(s) if s != ""]',
        'f = {for k, v in var.m : k => v...}',
        'g = -1',
        'h = "${var.name}-suffix"',
        'i = concat(var.a, var.b...)',
        'j = aws_instance.web[*].id',
    ])
    body = parse_source(source)

    a = attribute(body, "a").expr
    assert isinstance(a, TraversalNode)
    assert isinstance(a.source, VariableNode) and a.source.name == "var"
    assert a.steps[:2] == [("attr", "x"), ("attr", "y")]
    assert a.steps[2][0] == "index"

    b = attribute(body, "b").expr
    assert isinstance(b, FunctionCallNode)
    assert b.name == "upper"
    assert isinstance(b.arguments[0], TemplateNode)

    c = attribute(body, "c").expr
    assert isinstance(c, BinaryNode)
    assert c.operator.value == "+"
    assert isinstance(c.right, BinaryNode) and c.right.operator.value == "*"

    assert isinstance(attribute(body, "d").expr, ConditionalNode)

    e = attribute(body, "e").expr
    assert isinstance(e, ForNode)
    assert not e.is_object
    assert e.value_var == "s"
    assert e.condition is not None

    f = attribute(body, "f").expr
    assert isinstance(f, ForNode)
    assert f.is_object and f.grouped
    assert (f.key_var, f.value_var) == ("k", "v")

    g = attribute(body, "g").expr
    assert isinstance(g, UnaryNode)

    h = attribute(body, "h").expr
    assert isinstance(h, TemplateNode) and h.has_interpolation

    i = attribute(body, "i").expr
    assert isinstance(i, FunctionCallNode) and i.expand_final

    j = attribute(body, "j").expr
    assert isinstance(j, TraversalNode)
    assert ("splat", "[*]") in j.steps


def test_multiline_collections():
    source = '''
tags = {
  Name = "x"
  "Env" = "prod",
  nested = {
    deep = [1,
      2]
  }
}
ports = [
  80,
  443,
]
'''
    body = parse_source(source)

    tags = attribute(body, "tags").expr
    assert isinstance(tags, ObjectNode)
    assert len(tags.items) == 3
    assert [item.line for item in tags.items] == [3, 4, 5]

    ports = attribute(body, "ports").expr
    assert isinstance(ports, TupleNode)
    assert [element.value for element in ports.elements] == [80, 443]
    assert ports.elements[1].line == 12


def test_comments_are_ignored():
    body = parse_source('# leading\nblock "x" { // trailing\n  a = 1 /* inline */\n}\n')
    assert body.blocks[0].body.attributes[0].name == "a"


def test_empty_document():
    body = parse_source("")
    assert body.items == []
    assert parse_source("\n\n# only a comment\n").items == []


def test_malformed_document_is_unexpected_token():
    with pytest.raises(ParseError) as excinfo:
        parse_source('resource "x" "y" { logging { enable = }')
    error = excinfo.value
    assert error.kind == ErrorKind.UNEXPECTED_TOKEN
    assert (error.line, error.column) == (1, 39)
    assert error.expected == "expression"


def test_unterminated_block():
    with pytest.raises(ParseError) as excinfo:
        parse_source('resource "x" "y" {\n  a = 1\n\n  nested {\n')
    assert excinfo.value.kind == ErrorKind.UNTERMINATED_BLOCK
    assert excinfo.value.line == 4


def test_duplicate_attribute():
    with pytest.raises(ParseError) as excinfo:
        parse_source('block {\n  a = 1\n  a = 2\n}\n')
    assert excinfo.value.kind == ErrorKind.DUPLICATE_ATTRIBUTE
    assert (excinfo.value.line, excinfo.value.column) == (3, 3)


def test_same_attribute_in_sibling_blocks_is_fine():
    body = parse_source('a {\n  x = 1\n}\nb {\n  x = 2\n}\n')
    assert len(body.blocks) == 2


@pytest.mark.parametrize("source", [
    "}",
    "a = 1 b = 2",
    'block "${var.x}" {}',
    "a = [1 2]",
    "a",
    "= 1",
])
def test_grammar_violations(source):
    with pytest.raises(ParseError) as excinfo:
        parse_source(source)
    assert excinfo.value.kind == ErrorKind.UNEXPECTED_TOKEN


def test_lex_errors_surface_through_the_parser():
    with pytest.raises(LexError):
        parse_source('a = 1\nb = "open')


def test_legacy_index_after_index_splits_into_steps():
    expr = attribute(parse_source("a = x.0.1\n"), "a").expr

    assert isinstance(expr, TraversalNode)
    assert [kind for kind, _ in expr.steps] == ["index", "index"]
    assert [step.value for _, step in expr.steps] == [0, 1]
    assert [step.range.start.column for _, step in expr.steps] == [7, 9]


@pytest.mark.parametrize("source", ["a = x.1e3\n", "a = x.1.5e2\n"])
def test_legacy_index_must_be_an_integer(source):
    with pytest.raises(ParseError) as excinfo:
        parse_source(source)
    assert excinfo.value.kind == ErrorKind.UNEXPECTED_TOKEN
    assert excinfo.value.expected == "integer index"
