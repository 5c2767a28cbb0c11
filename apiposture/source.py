"""
Go source loading.

Turns Go source text into a tree-sitter syntax tree plus the file's import
table (import path -> effective local alias).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

import tree_sitter_go
from tree_sitter import Language, Node, Parser, Tree

from .astutil import line_of, string_value, walk
from .errors import SourceError

logger = logging.getLogger("apiposture.source")

GO_LANGUAGE = Language(tree_sitter_go.language())

_VERSION_SUFFIX = re.compile(r"^v\d+$")


@dataclass
class SyntaxSource:
    """One parsed Go file."""
    file_path: str
    tree: Tree
    content: bytes
    imports: Dict[str, str] = field(default_factory=dict)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def has_import(self, import_path: str) -> bool:
        return import_path in self.imports

    def has_import_prefix(self, prefix: str) -> bool:
        """True if any import is ``prefix`` itself or a package below it."""
        prefix = prefix.rstrip("/")
        return any(p == prefix or p.startswith(prefix + "/") for p in self.imports)


def default_alias(import_path: str) -> str:
    """Conventional package name: the last path segment, skipping a /vN suffix."""
    parts = [p for p in import_path.split("/") if p]
    if not parts:
        return ""
    if len(parts) > 1 and _VERSION_SUFFIX.match(parts[-1]):
        return parts[-2]
    return parts[-1]


def extract_imports(root: Node) -> Dict[str, str]:
    imports: Dict[str, str] = {}
    for node in walk(root):
        if node.type != "import_spec":
            continue
        path_node = node.child_by_field_name("path")
        if path_node is None:
            continue
        import_path = string_value(path_node)
        if import_path is None:
            continue
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            imports[import_path] = name_node.text.decode("utf-8", errors="replace")
        else:
            imports[import_path] = default_alias(import_path)
    return imports


def _first_error_line(root: Node) -> int:
    for node in walk(root):
        if node.is_error or node.is_missing:
            return line_of(node)
    return line_of(root)


class SourceLoader:
    """Parses Go files into SyntaxSource values."""

    def __init__(self, max_file_size_mb: Optional[float] = None):
        self.max_file_size_mb = max_file_size_mb

    def parse_content(self, file_path: str, content) -> SyntaxSource:
        """
        Parse in-memory Go source.

        Raises SourceError when the text does not parse cleanly.
        """
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        # Parser instances are not shared between threads
        parser = Parser(GO_LANGUAGE)
        tree = parser.parse(data)
        if tree.root_node.has_error:
            raise SourceError(file_path, f"syntax error near line {_first_error_line(tree.root_node)}")
        return SyntaxSource(
            file_path=file_path,
            tree=tree,
            content=data,
            imports=extract_imports(tree.root_node),
        )

    def parse_file(self, file_path: str) -> SyntaxSource:
        path = Path(file_path)
        try:
            if self.max_file_size_mb is not None:
                size_mb = path.stat().st_size / (1024 * 1024)
                if size_mb > self.max_file_size_mb:
                    raise SourceError(
                        file_path,
                        f"file too large ({size_mb:.1f}MB > {self.max_file_size_mb}MB)",
                    )
            data = path.read_bytes()
        except OSError as e:
            if isinstance(e, SourceError):
                raise
            raise SourceError(file_path, f"cannot read file: {e}") from e
        return self.parse_content(file_path, data)

    def try_parse_file(self, file_path: str) -> Tuple[Optional[SyntaxSource], Optional[str]]:
        """Parse a file, returning ``(source, None)`` or ``(None, error message)``."""
        try:
            return self.parse_file(file_path), None
        except SourceError as e:
            logger.debug(f"Parse failure {file_path}: {e.reason}")
            return None, e.reason
