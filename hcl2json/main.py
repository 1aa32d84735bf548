import asyncio
import json
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from typing import Any, Callable, Dict, Optional, Union

from .ast_nodes import Body
from .errors import ErrorKind, HCL2JSONError, LexError
from .lexer import HCLLexer
from .parser import HCLParser
from .projection import JSONProjector
from .resolver import PathResolver

Document = Union[bytes, str]

# ------------------------------
# Engines
# ------------------------------

class ParserEngine(ABC):
    """Synchronous grammar engine bound to one document and one query path.

    ``HCL2JSONParser`` only talks to this interface, so another grammar
    implementation can be plugged in through ``new_parser(engine_factory=...)``.
    """

    def __init__(self, document: Document, query_path: str):
        self.document = document
        self.query_path = query_path

    @abstractmethod
    def parse(self) -> Dict[str, Any]:
        pass

    @abstractmethod
    def line_number(self) -> int:
        pass


class NativeHCLEngine(ParserEngine):
    """Engine backed by this package's lexer, parser, projector and resolver."""

    def __init__(self, document: Document, query_path: str):
        super().__init__(document, query_path)
        self._lock = threading.Lock()
        self._source: Optional[str] = None
        self._tree: Optional[Body] = None
        self._failure: Optional[HCL2JSONError] = None

    @property
    def source(self) -> str:
        self.tree()
        return self._source

    def tree(self) -> Body:
        """Build the structural tree once and share it between operations."""
        if self._tree is None and self._failure is None:
            with self._lock:
                if self._tree is None and self._failure is None:
                    try:
                        self._source = decode_document(self.document)
                        self._tree = HCLParser(HCLLexer(self._source).tokenize()).parse()
                    except HCL2JSONError as e:
                        self._failure = e
        if self._failure is not None:
            # Drop frames left over from earlier raises of the memoized error
            raise self._failure.with_traceback(None)
        return self._tree

    def parse(self) -> Dict[str, Any]:
        tree = self.tree()
        return JSONProjector(self._source).project(tree)

    def line_number(self) -> int:
        return PathResolver(self.tree()).resolve(self.query_path)


def decode_document(document: Document) -> str:
    if isinstance(document, str):
        return document[1:] if document.startswith('\ufeff') else document
    try:
        return bytes(document).decode('utf-8-sig')
    except UnicodeDecodeError as e:
        head = bytes(document)[:e.start]
        line = head.count(b'\n') + 1
        column = e.start - (head.rfind(b'\n') + 1) + 1
        raise LexError("Document is not valid UTF-8", ErrorKind.INVALID_ENCODING, line, column,
                       errors=[e])

# ------------------------------
# Asynchronous parser instance
# ------------------------------

class HCL2JSONParser:
    """Asynchronous front of one ``ParserEngine``.

    ``parse()`` and ``line_number()`` are independent: either can be awaited
    first, repeatedly, or both at the same time. The work itself runs on an
    executor thread so the event loop is never blocked by a large document.
    """

    def __init__(self, engine: ParserEngine, executor: Optional[Executor] = None):
        self.engine = engine
        self.executor = executor

    @property
    def document(self) -> Document:
        return self.engine.document

    @property
    def query_path(self) -> str:
        return self.engine.query_path

    async def parse(self) -> Dict[str, Any]:
        return await self._run(self.engine.parse)

    async def line_number(self) -> int:
        return await self._run(self.engine.line_number)

    async def _run(self, operation: Callable[[], Any]) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, operation)


def new_parser(document: Document, query_path: str,
               engine_factory: Callable[[Document, str], ParserEngine] = NativeHCLEngine,
               executor: Optional[Executor] = None) -> HCL2JSONParser:
    """Bind a document and a query path. Nothing is read or parsed yet."""
    return HCL2JSONParser(engine_factory(document, query_path), executor)

# ------------------------------
# Synchronous helpers
# ------------------------------

def hcl2json(document: Document) -> Dict[str, Any]:
    return NativeHCLEngine(document, "").parse()


def line_number(document: Document, path: str) -> int:
    return NativeHCLEngine(document, path).line_number()


def to_json(value: Any, indent: Optional[int] = 2) -> str:
    return json.dumps(value, indent=indent)
