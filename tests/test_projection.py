"""Tests for the structural tree to JSON projection."""

import json

import pytest

from hcl2json.errors import ErrorKind, LexError, ProjectionError
from hcl2json.main import hcl2json
from hcl2json.parser import parse_source
from hcl2json.projection import project

from conftest import SCENARIO


def test_scenario_projection():
    assert hcl2json(SCENARIO) == {
        "resource": {"aws_redshift_cluster": {"denied": {"logging": {"enable": True}}}}
    }


def test_labelled_blocks_merge_under_shared_keys(redshift_tf):
    assert hcl2json(redshift_tf) == {
        "resource": {
            "aws_redshift_cluster": {
                "allowed": {
                    "cluster_identifier": "allowed",
                    "encrypted": True,
                    "logging": {"enable": True},
                },
                "denied": {
                    "cluster_identifier": "denied",
                    "encrypted": True,
                    "logging": {"enable": False},
                },
                "denied_2": {"encrypted": True},
            }
        }
    }


def test_nested_block_inside_labelled_block():
    source = 'block "label_one" "label_two" {\n\tnested_block { }\n}\n'
    assert hcl2json(source) == {"block": {"label_one": {"label_two": {"nested_block": {}}}}}


@pytest.mark.parametrize("source, expected", [
    ('block "label_one" {\n}\nblock "label_one" {\n}\n', {"block": {"label_one": [{}, {}]}}),
    ('a {\n  x = 1\n}\na {\n  x = 2\n}\na {\n  x = 3\n}\n', {"a": [{"x": 1}, {"x": 2}, {"x": 3}]}),
    ('resource "test1" "test2" {\n}\n\nresource "test1" "test3" {\n}\n',
     {"resource": {"test1": {"test2": {}, "test3": {}}}}),
])
def test_repeated_blocks(source, expected):
    assert hcl2json(source) == expected


def test_literal_values():
    source = '\n'.join([
        'int = 10',
        'float = 2.5',
        'exp = 1e3',
        'negative = -1',
        'negated = !true',
        'yes = true',
        'nothing = null',
        'text = "line\\nbreak"',
        'doc = <<EOT',
        'hello',
        'EOT',
    ])
    result = hcl2json(source)

    assert result["int"] == 10 and isinstance(result["int"], int)
    assert result["float"] == 2.5
    assert result["exp"] == 1000.0
    assert result["negative"] == -1
    assert result["negated"] is False
    assert result["yes"] is True
    assert result["nothing"] is None
    assert result["text"] == "line\nbreak"
    assert result["doc"] == "hello\n"


def test_non_literal_expressions_keep_their_source():
    source = '\n'.join([
        'ref = var.x',
        'call = upper("x")',
        'sum = 1 + 2',
        'cond = var.on ? "a" : "b"',
        'neg = -var.n',
        'tmpl = "${var.x}-a"',
        'loop = [for s in var.l : s]',
        'splat = aws_instance.web[*].id',
    ])
    assert hcl2json(source) == {
        "ref": "${var.x}",
        "call": '${upper("x")}',
        "sum": "${1 + 2}",
        "cond": '${var.on ? "a" : "b"}',
        "neg": "${-var.n}",
        "tmpl": "${var.x}-a",
        "loop": "${[for s in var.l : s]}",
        "splat": "${aws_instance.web[*].id}",
    }


def test_collections(s3_tf):
    bucket = hcl2json(s3_tf)["resource"]["aws_s3_bucket"]["logs"]

    assert bucket["bucket"] == "logs-${var.environment}"
    assert bucket["tags"] == {"Name": "logs", "Environment": "${var.environment}"}
    assert bucket["lifecycle_rule"] == [
        {"id": "expire", "enabled": True},
        {"id": "archive", "enabled": False},
    ]
    assert bucket["cors_origins"] == ["https://example.com", "https://example.org"]


def test_object_key_forms():
    source = 'm = {\n  plain = 1\n  "quoted key" = 2\n  (var.k) = 3\n  a.b = 4\n}\n'
    assert hcl2json(source) == {"m": {"plain": 1, "quoted key": 2, "${(var.k)}": 3, "a.b": 4}}


def test_empty_document_is_empty_mapping():
    assert hcl2json("") == {}
    assert hcl2json(b"# nothing here\n") == {}


def test_literal_round_trip():
    source = 'name = "x"\ncount = 3\nratio = 0.5\nflags = [true, false, null]\nmeta = { a = "b" }\n'
    result = hcl2json(source)
    assert json.loads(json.dumps(result)) == {
        "name": "x", "count": 3, "ratio": 0.5, "flags": [True, False, None], "meta": {"a": "b"},
    }


@pytest.mark.parametrize("source, line", [
    ('logging = true\nlogging {\n  enable = true\n}\n', 2),
    ('logging {\n  enable = true\n}\nlogging = true\n', 4),
    ('resource = {}\nresource "x" {\n}\n', 2),
    ('m = { a = 1, a = 2 }\n', 1),
])
def test_conflicting_attribute(source, line):
    with pytest.raises(ProjectionError) as excinfo:
        hcl2json(source)
    assert excinfo.value.kind == ErrorKind.CONFLICTING_ATTRIBUTE
    assert excinfo.value.line == line


def test_identical_duplicate_object_keys_are_tolerated():
    assert hcl2json('m = { a = 1, a = 1 }\n') == {"m": {"a": 1}}


def test_projection_is_deterministic(s3_tf):
    first = hcl2json(s3_tf)
    assert all(hcl2json(s3_tf) == first for _ in range(3))


def test_project_helper_on_parsed_tree():
    source = 'a = [1, var.b]\n'
    assert project(parse_source(source), source) == {"a": [1, "${var.b}"]}


def test_legacy_index_keeps_its_source():
    assert hcl2json('a = x.0.1\n') == {"a": "${x.0.1}"}


@pytest.mark.parametrize("source, line", [
    ('a {\n  x = 1\n}\na "k" {\n}\n', 4),
    ('a "k" {\n}\na {\n  x = 1\n}\n', 3),
    ('a "k" "j" {\n}\na "k" {\n}\n', 3),
    ('a "k" {\n}\na "k" "j" {\n}\n', 3),
])
def test_labelled_and_unlabelled_blocks_do_not_mix(source, line):
    with pytest.raises(ProjectionError) as excinfo:
        hcl2json(source)
    assert excinfo.value.kind == ErrorKind.CONFLICTING_ATTRIBUTE
    assert excinfo.value.line == line


def test_non_ascii_digit_is_rejected():
    with pytest.raises(LexError):
        hcl2json('a = ²\n')
