import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)

MARKDOWN_EXT = ".md"


@dataclass(frozen=True)
class FileNode:
    name: str
    path: str
    type: str = field(default="file", init=False)

    def to_dict(self) -> dict:
        return {"name": self.name, "type": self.type, "path": self.path}


@dataclass(frozen=True)
class DirectoryNode:
    name: str
    path: str
    children: tuple = ()
    type: str = field(default="directory", init=False)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type,
            "path": self.path,
            "children": [child.to_dict() for child in self.children],
        }


TreeNode = DirectoryNode | FileNode


def sort_key(node: TreeNode) -> tuple:
    # directories first, then case-insensitive name, exact name breaks ties
    return (not isinstance(node, DirectoryNode), node.name.lower(), node.name)


def build_tree(root: Path, excluded_dirs=(), rel: PurePosixPath | None = None, _seen: frozenset | None = None) -> list:
    """Walk ``root`` and return the sorted markdown tree below it.

    Raises ``OSError`` when ``root`` itself cannot be listed. Subdirectories
    that cannot be listed are logged and come back with no children.
    """
    root = Path(root)
    if rel is None:
        rel = PurePosixPath()
    resolved_root = root.resolve()
    current = root.joinpath(*rel.parts)
    if _seen is None:
        _seen = frozenset()
    _seen = _seen | {current.resolve()}

    try:
        entries = list(os.scandir(current))
    except OSError:
        if not rel.parts:
            raise
        logger.warning("Skipping unreadable directory %s", current, exc_info=True)
        return []

    items = []
    for entry in entries:
        relative = rel / entry.name
        try:
            is_dir = entry.is_dir()
            is_file = not is_dir and entry.is_file()
            if entry.is_symlink():
                target = Path(entry.path).resolve()
                if not target.is_relative_to(resolved_root):
                    logger.debug("Skipping symlink %s pointing outside the root", entry.path)
                    continue
                if is_dir and target in _seen:
                    logger.debug("Skipping symlink loop at %s", entry.path)
                    continue
        except OSError:
            logger.warning("Could not stat %s", entry.path, exc_info=True)
            continue

        if is_dir:
            if entry.name in excluded_dirs:
                continue
            children = build_tree(root, excluded_dirs, relative, _seen)
            items.append(DirectoryNode(entry.name, relative.as_posix(), tuple(children)))
        elif is_file and entry.name.endswith(MARKDOWN_EXT):
            items.append(FileNode(entry.name, relative.as_posix()))

    return sorted(items, key=sort_key)


def tree_to_json(nodes) -> list:
    return [node.to_dict() for node in nodes]


def tree_from_json(items) -> list:
    """Rebuild typed nodes from the ``/api/docs`` JSON shape."""
    nodes = []
    for item in items:
        if item.get("type") == "directory":
            children = tree_from_json(item.get("children") or [])
            nodes.append(DirectoryNode(item["name"], item["path"], tuple(children)))
        elif item.get("type") == "file":
            nodes.append(FileNode(item["name"], item["path"]))
        else:
            raise ValueError(f"Unknown tree node type: {item.get('type')!r}")
    return nodes


def count_files(nodes) -> int:
    n = 0
    for node in nodes:
        if isinstance(node, DirectoryNode):
            n += count_files(node.children)
        else:
            n += 1
    return n


def iter_files(nodes):
    for node in nodes:
        if isinstance(node, DirectoryNode):
            yield from iter_files(node.children)
        else:
            yield node
