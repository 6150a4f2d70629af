"""Hierarchical file model and the editor view state layered on top of it."""

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Set

from app.schemas.workspace import FileNode, WorkspaceViewState

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "/"

# Files opened automatically on first load, in priority order
AUTO_OPEN_PRIORITY = ("App.tsx", "main.tsx", "index.tsx")

_LANGUAGE_BY_EXTENSION = {
    "tsx": "typescript",
    "ts": "typescript",
    "jsx": "javascript",
    "js": "javascript",
    "css": "css",
    "html": "html",
    "json": "json",
    "md": "markdown",
    "py": "python",
    "sql": "sql",
}


def language_for_path(path: str) -> str:
    """Editor language for a file path, derived from its extension."""
    name = path.rsplit(PATH_SEPARATOR, 1)[-1]
    if "." not in name:
        return "plaintext"
    ext = name.rsplit(".", 1)[-1].lower()
    return _LANGUAGE_BY_EXTENSION.get(ext, "plaintext")


def language_for_tag(tag: str, path: str) -> str:
    """Editor language for a code fence tag; untagged blocks fall back to the path."""
    tag = tag.strip().lower()
    if not tag or tag == "txt":
        return language_for_path(path)
    return _LANGUAGE_BY_EXTENSION.get(tag, tag)


def _split(path: str) -> List[str]:
    parts = [p for p in path.strip().split(PATH_SEPARATOR) if p]
    if not parts:
        raise ValueError(f"Invalid file path: {path!r}")
    return parts


class WorkspaceTree:
    """Authoritative file nodes. The only writer of file content."""

    def __init__(self, nodes: Optional[Iterable[FileNode]] = None):
        self.roots: List[FileNode] = [n.model_copy(deep=True) for n in (nodes or [])]
        self._index: Dict[str, FileNode] = {}
        self._reindex()

    def _reindex(self) -> None:
        self._index.clear()
        stack = list(self.roots)
        while stack:
            node = stack.pop()
            if node.path in self._index:
                raise ValueError(f"Duplicate path in tree: {node.path}")
            self._index[node.path] = node
            if node.type == "directory":
                stack.extend(node.children or [])

    def find(self, path: str) -> Optional[FileNode]:
        return self._index.get(PATH_SEPARATOR.join(_split(path)))

    def upsert_file(self, path: str, content: str, language: Optional[str] = None) -> FileNode:
        """
        Create or replace the file at ``path``, creating missing directories.

        Raises:
            ValueError: if a segment of the path is already a file, or the
                terminal path is already a directory
        """
        parts = _split(path)
        siblings = self.roots
        prefix: List[str] = []

        for segment in parts[:-1]:
            prefix.append(segment)
            dir_path = PATH_SEPARATOR.join(prefix)
            node = self._index.get(dir_path)
            if node is None:
                node = FileNode(name=segment, path=dir_path, type="directory", children=[])
                siblings.append(node)
                self._index[dir_path] = node
            elif node.type != "directory":
                raise ValueError(f"Cannot create {path}: {dir_path} is a file")
            siblings = node.children

        file_path = PATH_SEPARATOR.join(parts)
        language = language or language_for_path(file_path)
        existing = self._index.get(file_path)
        if existing is not None:
            if existing.type != "file":
                raise ValueError(f"Cannot write {file_path}: it is a directory")
            existing.content = content
            existing.language = language
            return existing

        node = FileNode(name=parts[-1], path=file_path, type="file", content=content, language=language)
        siblings.append(node)
        self._index[file_path] = node
        return node

    def iter_files(self) -> Iterator[FileNode]:
        """Depth-first walk over file nodes in tree order."""
        stack = list(reversed(self.roots))
        while stack:
            node = stack.pop()
            if node.type == "file":
                yield node
            else:
                stack.extend(reversed(node.children or []))

    def snapshot(self) -> List[FileNode]:
        return [n.model_copy(deep=True) for n in self.roots]


class WorkspaceView:
    """Open tabs, expanded directories and unsaved editor buffers for one mount."""

    def __init__(self, tree: WorkspaceTree, expanded: Optional[Iterable[str]] = None):
        self.tree = tree
        self.open_tabs: List[str] = []
        self.active_path: Optional[str] = None
        self.expanded_directories: Set[str] = set(expanded or [])
        self.buffered_content: Dict[str, str] = {}
        self._auto_opened = False

    def toggle_directory(self, path: str) -> None:
        if path in self.expanded_directories:
            self.expanded_directories.discard(path)
        else:
            self.expanded_directories.add(path)

    def open_tab(self, path: str) -> None:
        node = self.tree.find(path)
        if node is None:
            raise KeyError(path)
        if node.type == "directory":
            self.toggle_directory(node.path)
            return

        if node.path not in self.open_tabs:
            self.open_tabs.append(node.path)
        self.active_path = node.path
        if node.content is not None and node.path not in self.buffered_content:
            self.buffered_content[node.path] = node.content

    def activate_tab(self, path: str) -> None:
        if path not in self.open_tabs:
            raise KeyError(path)
        self.active_path = path

    def close_tab(self, path: str) -> None:
        """Close a tab; the most recently opened remaining tab takes over if it was active."""
        if path not in self.open_tabs:
            return
        self.open_tabs.remove(path)
        if self.active_path == path:
            self.active_path = self.open_tabs[-1] if self.open_tabs else None

    def edit(self, path: str, content: str) -> None:
        # Buffer only; the tree keeps the saved content
        self.buffered_content[path] = content

    def save(self, path: str) -> FileNode:
        """Write the buffered content of ``path`` back to the tree."""
        if path not in self.buffered_content:
            raise KeyError(path)
        node = self.tree.find(path)
        language = node.language if node is not None else None
        return self.tree.upsert_file(path, self.buffered_content[path], language)

    def dirty_paths(self) -> List[str]:
        dirty = []
        for path, text in self.buffered_content.items():
            node = self.tree.find(path)
            if node is None or node.content != text:
                dirty.append(path)
        return dirty

    def auto_open(self) -> Optional[str]:
        """Open the main entry file once per view, if nothing is open yet."""
        if self._auto_opened:
            return None
        self._auto_opened = True
        if self.open_tabs:
            return None

        files = list(self.tree.iter_files())
        for wanted in AUTO_OPEN_PRIORITY:
            match = next((f for f in files if f.name == wanted), None)
            if match is not None:
                self.open_tab(match.path)
                logger.info("Auto-opened %s", match.path)
                return match.path
        return None

    def sync_written_file(self, path: str, previous_content: Optional[str]) -> None:
        """Let a clean buffer follow a file the tree just rewrote."""
        if path not in self.buffered_content:
            return
        if self.buffered_content[path] != previous_content:
            return
        node = self.tree.find(path)
        if node is not None and node.content is not None:
            self.buffered_content[path] = node.content

    def state(self) -> WorkspaceViewState:
        return WorkspaceViewState(
            open_tabs=list(self.open_tabs),
            active_path=self.active_path,
            expanded_directories=sorted(self.expanded_directories),
            buffered_content=dict(self.buffered_content),
            dirty_paths=self.dirty_paths(),
        )
