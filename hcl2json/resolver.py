import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from .ast_nodes import *
from .errors import ErrorKind, PathNotFoundError


NAME_PATTERN = re.compile(r'[A-Za-z0-9_\-*]+')

Step = Union[str, int]


@dataclass
class PathSegment:
    """One dotted part of a query path, e.g. ``aws_redshift_cluster[denied]``."""
    text: str
    name: str
    selectors: List[Step] = field(default_factory=list)

    @property
    def steps(self) -> List[Step]:
        return [self.name] + self.selectors


@dataclass
class QueryPath:
    text: str
    segments: List[PathSegment]

    @classmethod
    def parse(cls, text: str) -> 'QueryPath':
        """Split ``block.label[index].attribute`` style paths into segments.

        Selectors may be bare (``[denied]``), numeric (``[0]``) or quoted
        (``["with.dots"]``). Numeric selectors become ``int`` steps.
        """
        segments = []
        pos = 0
        if not text:
            raise PathNotFoundError("Query path is empty", segment="", kind=ErrorKind.MALFORMED_PATH)

        while True:
            start = pos
            name_match = NAME_PATTERN.match(text, pos)
            if not name_match:
                raise _malformed(text, pos, segments)
            pos = name_match.end()
            selectors: List[Step] = []
            while pos < len(text) and text[pos] == '[':
                selector, pos = _read_selector(text, pos, segments)
                selectors.append(selector)
            segments.append(PathSegment(text[start:pos], name_match.group(0), selectors))

            if pos == len(text):
                break
            if text[pos] != '.':
                raise _malformed(text, pos, segments)
            pos += 1

        return cls(text, segments)

    def prefix(self, count: int) -> str:
        return ".".join(segment.text for segment in self.segments[:count])


def _read_selector(text: str, pos: int, segments: List[PathSegment]):
    pos += 1  # '['
    if pos < len(text) and text[pos] in '"\'':
        quote = text[pos]
        end = text.find(quote, pos + 1)
        if end == -1 or end + 1 >= len(text) or text[end + 1] != ']':
            raise _malformed(text, pos, segments)
        return text[pos + 1:end], end + 2

    end = text.find(']', pos)
    if end == -1 or end == pos:
        raise _malformed(text, pos, segments)
    value = text[pos:end].strip()
    if value.isdigit():
        return int(value), end + 1
    return value, end + 1


def _malformed(text: str, pos: int, segments: List[PathSegment]) -> PathNotFoundError:
    matched = ".".join(segment.text for segment in segments)
    return PathNotFoundError(f"Malformed query path '{text}' at character {pos + 1}",
                             segment=text[pos:].split('.')[0], matched=matched,
                             kind=ErrorKind.MALFORMED_PATH)

# ------------------------------
# Candidates
# ------------------------------

class Candidate(ABC):
    """A tree position a query path can currently point at."""

    line: int
    offset: int

    @abstractmethod
    def match(self, step: Step) -> List['Candidate']:
        pass


@dataclass
class BodyCandidate(Candidate):
    body: Body

    @property
    def line(self) -> int:
        return self.body.line

    @property
    def offset(self) -> int:
        return self.body.offset

    def match(self, step: Step) -> List[Candidate]:
        if not isinstance(step, str):
            return []
        matches: List[Candidate] = []
        for item in self.body.items:
            if isinstance(item, Block) and item.type == step:
                matches.append(BlockCandidate(item, 0))
            elif isinstance(item, Attribute) and item.name == step:
                matches.append(ExpressionCandidate(item.expr, item.line, item.offset))
        return matches


@dataclass
class BlockCandidate(Candidate):
    block: Block
    label_index: int

    @property
    def line(self) -> int:
        return self.block.line

    @property
    def offset(self) -> int:
        return self.block.offset

    @property
    def labels_consumed(self) -> bool:
        return self.label_index >= len(self.block.labels)

    def match(self, step: Step) -> List[Candidate]:
        if not self.labels_consumed:
            if self.block.labels[self.label_index] == str(step):
                return [BlockCandidate(self.block, self.label_index + 1)]
            return []
        return BodyCandidate(self.block.body).match(step)


@dataclass
class ExpressionCandidate(Candidate):
    expr: Expression
    line: int
    offset: int

    def match(self, step: Step) -> List[Candidate]:
        expr = self.expr
        while isinstance(expr, ParenthesesNode):
            expr = expr.expr
        if isinstance(expr, TupleNode) and isinstance(step, int):
            if step < len(expr.elements):
                element = expr.elements[step]
                return [ExpressionCandidate(element, element.line, element.offset)]
            return []
        if isinstance(expr, ObjectNode):
            for item in expr.items:
                if _object_key_name(item.key) == str(step):
                    return [ExpressionCandidate(item.value, item.line, item.offset)]
        return []


def _object_key_name(key: Expression) -> Optional[str]:
    if isinstance(key, VariableNode):
        return key.name
    if isinstance(key, TemplateNode) and not key.has_interpolation:
        return key.value
    if isinstance(key, LiteralNode) and not isinstance(key.value, bool) and key.value is not None:
        return str(key.value)
    return None

# ------------------------------
# Resolver
# ------------------------------

class ResolverState(Enum):
    START = 'start'
    MATCHING = 'matching'
    FOUND = 'found'
    NOT_FOUND = 'not-found'


class PathResolver:
    """Walks a query path through the structural tree and reports a line.

    Every step is applied to all live candidates at once, in document order,
    so sibling blocks sharing a type are all considered without backtracking.
    The earliest surviving candidate wins.
    """

    def __init__(self, body: Body):
        self.body = body
        self.state = ResolverState.START
        self.segment_index = 0

    def resolve(self, path: Union[str, QueryPath]) -> int:
        self.state = ResolverState.START
        self.segment_index = 0
        try:
            query = path if isinstance(path, QueryPath) else QueryPath.parse(path)
        except PathNotFoundError:
            self.state = ResolverState.NOT_FOUND
            raise

        candidates: List[Candidate] = [BodyCandidate(self.body)]
        for index, segment in enumerate(query.segments):
            self.state = ResolverState.MATCHING
            self.segment_index = index
            for step in segment.steps:
                candidates = self._apply(candidates, step)
                if not candidates:
                    self.state = ResolverState.NOT_FOUND
                    raise PathNotFoundError(
                        f"Path segment '{segment.text}' not found in '{query.text}'",
                        segment=segment.text, matched=query.prefix(index))

        self.state = ResolverState.FOUND
        return min(candidates, key=lambda candidate: candidate.offset).line

    def _apply(self, candidates: List[Candidate], step: Step) -> List[Candidate]:
        matches: List[Candidate] = []
        for candidate in candidates:
            matches.extend(candidate.match(step))
        if matches or not isinstance(step, int):
            return matches

        # Index into repeated blocks, e.g. rule[1] for the second "rule" block
        blocks = [c for c in candidates if isinstance(c, BlockCandidate) and c.labels_consumed]
        blocks.sort(key=lambda candidate: candidate.offset)
        if step < len(blocks):
            return [blocks[step]]
        return []


def resolve_line(body: Body, path: str) -> int:
    return PathResolver(body).resolve(path)
