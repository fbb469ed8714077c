import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import markdown
from werkzeug.security import safe_join

from doc_tree import MARKDOWN_EXT

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "toc", "sane_lists", "nl2br"]


class DocumentError(Exception):
    status = 500
    message = "Failed to read document"

    def __init__(self, path: str, detail: str | None = None):
        super().__init__(detail or self.message)
        self.path = path
        self.detail = detail

    def to_dict(self) -> dict:
        return {"error": self.message}


class InvalidDocumentPath(DocumentError):
    status = 400
    message = "Only markdown files are supported"


class AccessDenied(DocumentError):
    status = 403
    message = "Access denied"


class DocumentNotFound(DocumentError):
    status = 404
    message = "Document not found"


class DocumentReadError(DocumentError):
    pass


@dataclass(frozen=True)
class Document:
    path: str
    content: str
    html: str
    last_modified: datetime

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "content": self.content,
            "html": self.html,
            "lastModified": format_timestamp(self.last_modified),
        }


def format_timestamp(value: datetime) -> str:
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


_VERBATIM_RE = re.compile(
    r"(```.*?```|~~~.*?~~~|`[^`\n]*`"
    r"|^ {0,3}\[[^\]\n]+\]:[^\n]*"
    r"|^(?: {4}|\t)[^\n]*"
    r"|<[^>\n]+>)",
    re.S | re.M,
)


def auto_link_urls(text: str) -> str:
    # code, link reference definitions and HTML tags are left verbatim
    parts = _VERBATIM_RE.split(text)
    for i in range(0, len(parts), 2):
        parts[i] = re.sub(
            r'(?<!\]\()(?<!\()(?<!<)(https?://[^\s<>\)\]]+)',
            lambda m: f'[{m.group(1)}]({m.group(1)})',
            parts[i],
        )
    return "".join(parts)


def render_markdown(text: str) -> str:
    text = auto_link_urls(text)
    html = markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)
    html = re.sub(
        r'<a href="(https?://[^"]+)"',
        r'<a href="\1" target="_blank" rel="noopener noreferrer"',
        html,
    )
    return html


def resolve_document_path(root: Path, raw_path: str, excluded_dirs=()) -> Path:
    """Map a request path onto a markdown file below ``root``.

    Every lexical check runs before the filesystem is consulted. The final
    containment check resolves symlinks, so a link that leaves the root is
    refused even when the request path itself looks harmless.
    """
    if not raw_path or "\x00" in raw_path:
        raise InvalidDocumentPath(raw_path, "empty or malformed path")
    normalized = raw_path.replace("\\", "/")
    joined = safe_join(str(root), normalized)
    if joined is None:
        raise AccessDenied(raw_path, "path escapes the documents root")
    if not normalized.endswith(MARKDOWN_EXT):
        raise InvalidDocumentPath(raw_path)

    root_resolved = Path(root).resolve()
    candidate = Path(joined).resolve()
    try:
        rel = candidate.relative_to(root_resolved)
    except ValueError:
        raise AccessDenied(raw_path, "resolved path escapes the documents root") from None
    if any(part in excluded_dirs for part in rel.parts):
        raise DocumentNotFound(raw_path)
    return candidate


def read_document(root: Path, raw_path: str, excluded_dirs=()) -> Document:
    fpath = resolve_document_path(root, raw_path, excluded_dirs)
    try:
        raw = fpath.read_bytes()
        mtime = fpath.stat().st_mtime
    except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
        raise DocumentNotFound(raw_path) from None
    except OSError as exc:
        logger.error("Error reading document %s", fpath, exc_info=True)
        raise DocumentReadError(raw_path, str(exc)) from exc

    content = raw.decode("utf-8", errors="replace")
    return Document(
        path=raw_path,
        content=content,
        html=render_markdown(content),
        last_modified=datetime.fromtimestamp(mtime, tz=timezone.utc),
    )
