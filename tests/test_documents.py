import os
from pathlib import Path

import pytest

import documents
from conftest import write
from documents import (
    AccessDenied,
    DocumentNotFound,
    DocumentReadError,
    InvalidDocumentPath,
    format_timestamp,
    read_document,
    render_markdown,
    resolve_document_path,
)


@pytest.mark.parametrize("raw", [
    "../../etc/passwd",
    "../secret.md",
    "a/../../secret.md",
    "/etc/passwd.md",
    "..\\..\\secret.md",
    "..",
])
def test_traversal_is_denied(docs_root, raw):
    with pytest.raises(AccessDenied):
        resolve_document_path(docs_root, raw)


def test_traversal_never_returns_contents(tmp_path):
    root = tmp_path / "docs"
    root.mkdir()
    write(tmp_path / "secret.md", "top secret")

    with pytest.raises(AccessDenied):
        read_document(root, "../secret.md")


@pytest.mark.parametrize("raw", ["a/x.txt", "a/x.md.bak", "a/x", "a/X.MD.txt"])
def test_non_markdown_rejected_without_touching_filesystem(docs_root, monkeypatch, raw):
    def boom(*args, **kwargs):
        raise AssertionError("filesystem touched")

    monkeypatch.setattr(Path, "resolve", boom)
    monkeypatch.setattr(Path, "read_bytes", boom)
    monkeypatch.setattr(Path, "stat", boom)

    with pytest.raises(InvalidDocumentPath):
        read_document(docs_root, raw)


@pytest.mark.parametrize("raw", ["", "a/\x00x.md"])
def test_empty_or_nul_path_is_invalid(docs_root, raw):
    with pytest.raises(InvalidDocumentPath):
        resolve_document_path(docs_root, raw)


def test_dotdot_that_stays_inside_is_allowed(docs_root):
    assert resolve_document_path(docs_root, "b/../a/x.md") == (docs_root / "a" / "x.md").resolve()


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_symlink_escape_is_denied(tmp_path, docs_root):
    write(tmp_path / "outside" / "secret.md", "secret")
    (docs_root / "link").symlink_to(tmp_path / "outside", target_is_directory=True)

    with pytest.raises(AccessDenied):
        read_document(docs_root, "link/secret.md")


def test_excluded_directory_reads_as_not_found(docs_root):
    write(docs_root / ".git" / "notes.md", "internal")

    with pytest.raises(DocumentNotFound):
        read_document(docs_root, ".git/notes.md", excluded_dirs={".git"})


def test_missing_file_and_directory_named_md_are_not_found(docs_root):
    (docs_root / "folder.md").mkdir()

    with pytest.raises(DocumentNotFound):
        read_document(docs_root, "a/nonexistent.md")
    with pytest.raises(DocumentNotFound):
        read_document(docs_root, "folder.md")


def test_other_io_errors_become_read_errors(docs_root, monkeypatch):
    def denied(self):
        raise PermissionError("denied")

    monkeypatch.setattr(Path, "read_bytes", denied)

    with pytest.raises(DocumentReadError) as info:
        read_document(docs_root, "a/x.md")
    assert info.value.status == 500
    assert info.value.to_dict() == {"error": "Failed to read document"}


def test_round_trip_content_and_html(docs_root):
    text = "# Heading\r\n\r\nSome *prose* here.\r\nNext line\n"
    (docs_root / "a" / "round.md").write_bytes(text.encode("utf-8"))

    doc = read_document(docs_root, "a/round.md")

    assert doc.path == "a/round.md"
    assert doc.content == text
    assert '<h1 id="heading">Heading</h1>' in doc.html
    assert "<em>prose</em>" in doc.html


def test_invalid_utf8_is_replaced(docs_root):
    (docs_root / "a" / "bin.md").write_bytes(b"ok \xff\xfe end")

    assert read_document(docs_root, "a/bin.md").content == "ok �� end"


def test_payload_serialization(docs_root):
    payload = read_document(docs_root, "a/x.md").to_dict()

    assert set(payload) == {"path", "content", "html", "lastModified"}
    assert payload["lastModified"].endswith("Z")
    assert len(payload["lastModified"]) == len("2024-01-01T00:00:00.000Z")


def test_line_breaks_preserved():
    html = render_markdown("first\nsecond")

    assert "first<br />\nsecond" in html


def test_fenced_code_keeps_language_class():
    html = render_markdown("```mermaid\ngraph TD\n  A-->B\n```\n")

    assert '<pre><code class="language-mermaid">graph TD\n  A--&gt;B\n</code></pre>' in html


def test_tables_render():
    html = render_markdown("| a | b |\n|---|---|\n| 1 | 2 |\n")

    assert "<table>" in html
    assert "<td>1</td>" in html


def test_bare_urls_are_linked_outside_code():
    html = render_markdown("See https://example.com now.\n\n`https://in.code`\n")

    assert '<a href="https://example.com" target="_blank" rel="noopener noreferrer">https://example.com</a>' in html
    assert "<code>https://in.code</code>" in html


def test_reference_link_definitions_are_not_rewritten():
    html = render_markdown("See [the docs][1].\n\n[1]: https://example.com/guide\n")

    assert '<a href="https://example.com/guide" target="_blank" rel="noopener noreferrer">the docs</a>' in html
    assert "[https://" not in html


def test_indented_code_urls_stay_literal():
    html = render_markdown("Example:\n\n    curl https://api.example.com/v1\n")

    assert "<pre><code>curl https://api.example.com/v1\n</code></pre>" in html


def test_html_attribute_urls_are_not_rewritten():
    html = render_markdown('<p><a href="https://example.com/x">site</a> and <img src="https://example.com/i.png"></p>\n')

    assert 'href="https://example.com/x"' in html
    assert 'src="https://example.com/i.png"' in html
    assert "[https://" not in html


def test_error_without_detail_uses_public_message():
    err = DocumentNotFound("a/missing.md")

    assert err.detail is None
    assert str(err) == "Document not found"
    assert err.to_dict() == {"error": "Document not found"}


def test_format_timestamp_is_utc_millis():
    from datetime import datetime, timezone

    ts = datetime(2024, 3, 5, 7, 8, 9, 123456, tzinfo=timezone.utc)

    assert format_timestamp(ts) == "2024-03-05T07:08:09.123Z"


def test_error_statuses():
    assert InvalidDocumentPath("x").status == 400
    assert AccessDenied("x").status == 403
    assert DocumentNotFound("x").status == 404
    assert DocumentReadError("x").status == 500
    assert issubclass(DocumentReadError, documents.DocumentError)
