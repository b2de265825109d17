import asyncio
import logging
from collections.abc import Callable, Iterable
from contextlib import AbstractAsyncContextManager
from typing import BinaryIO, Protocol

from tree_sitter import Language, Node, Parser, Tree
from tree_sitter_languages import get_language, get_parser

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024

# Opens a path for binary reading; the stream is closed when the context exits.
FileOpener = Callable[[str], AbstractAsyncContextManager[BinaryIO]]


class NameExtractor(Protocol):
    async def extract(self, file_path: str, open_file: FileOpener) -> list[str]:
        """Return the top-level names in file_path that could be tests."""
        ...


class ElmParseError(Exception):
    def __init__(self, file_path: str, line: int):
        super().__init__(f"{file_path}:{line}: could not parse the module declaration")
        self.file_path = file_path
        self.line = line


class LanguageParser:
    def __init__(self, language_name: str):
        self.language: Language = get_language(language_name)
        self.parser: Parser = get_parser(language_name)

    def parse(self, source_code: bytes) -> Tree:
        return self.parser.parse(source_code)

    def _get_text(self, node: Node | None) -> str:
        """Extract text from a tree-sitter node."""
        if node is None:
            return ""
        return node.text.decode("utf-8")

    async def _read(self, file_path: str, open_file: FileOpener) -> bytes:
        chunks = []
        async with open_file(file_path) as stream:
            while True:
                chunk = await asyncio.to_thread(stream.read, READ_CHUNK_SIZE)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


class ElmParser(LanguageParser):
    """
    Finds the exposed top-level values of an Elm module.

    Which of them really are tests is only known after compilation, so this
    is deliberately generous: anything exposed that takes no arguments.
    """

    def __init__(self):
        super().__init__("elm")

    async def extract(self, file_path: str, open_file: FileOpener) -> list[str]:
        source_code = await self._read(file_path, open_file)
        names = self.possibly_tests(source_code, file_path)
        logger.debug("%s: %d possible tests", file_path, len(names))
        return names

    def possibly_tests(self, source_code: bytes, file_path: str = "<source>") -> list[str]:
        tree = self.parse(source_code)
        root = tree.root_node

        module_decl = next((c for c in root.children if c.type == "module_declaration"), None)
        if module_decl is None:
            # No header means `module Main exposing (..)`, unless the header is what broke
            if root.has_error:
                raise ElmParseError(file_path, 1)
            return self._top_level_values(root)

        if module_decl.has_error:
            raise ElmParseError(file_path, module_decl.start_point[0] + 1)

        exposing = next((c for c in module_decl.children if c.type == "exposing_list"), None)
        if exposing is None or any(c.type == "double_dot" for c in exposing.children):
            return self._top_level_values(root)

        return _unique(self._get_text(c) for c in exposing.children if c.type == "exposed_value")

    def _top_level_values(self, root: Node) -> list[str]:
        names = []
        for child in root.children:
            if child.type != "value_declaration":
                continue
            left = next((c for c in child.children if c.type == "function_declaration_left"), None)
            # Functions with arguments and destructuring patterns can't be tests
            if left is None or len(left.named_children) != 1:
                continue
            names.append(self._get_text(left.named_children[0]))
        return _unique(names)


def _unique(names: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for name in names:
        if name and name not in seen:
            seen.add(name)
            result.append(name)
    return result
