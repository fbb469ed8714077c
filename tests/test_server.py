import json
import os

import pytest

import server
from conftest import write
from server import _load_config, create_app


def test_tree_scenario(client):
    res = client.get("/api/docs")

    assert res.status_code == 200
    assert res.get_json() == [
        {"name": "a", "type": "directory", "path": "a",
         "children": [{"name": "x.md", "type": "file", "path": "a/x.md"}]},
        {"name": "b", "type": "directory", "path": "b",
         "children": [{"name": "y.md", "type": "file", "path": "b/y.md"}]},
    ]


def test_tree_is_rebuilt_per_request(client, docs_root):
    client.get("/api/docs")
    write(docs_root / "new.md", "fresh")

    names = [item["name"] for item in client.get("/api/docs").get_json()]

    assert "new.md" in names


def test_tree_root_failure_is_500(tmp_path):
    app = create_app(docs_dir=tmp_path / "missing", config={})

    res = app.test_client().get("/api/docs")

    assert res.status_code == 500
    assert res.get_json() == {"error": "Failed to load document tree"}


def test_get_document(client, docs_root):
    res = client.get("/api/docs/a/x.md")

    assert res.status_code == 200
    data = res.get_json()
    assert data["path"] == "a/x.md"
    assert data["content"] == (docs_root / "a" / "x.md").read_text(encoding="utf-8")
    assert "<h1" in data["html"] and "X</h1>" in data["html"]
    assert "First line<br />" in data["html"]
    assert data["lastModified"].endswith("Z")


def test_document_reread_after_change(client, docs_root):
    client.get("/api/docs/a/x.md")
    (docs_root / "a" / "x.md").write_text("# Changed\n", encoding="utf-8")

    assert client.get("/api/docs/a/x.md").get_json()["content"] == "# Changed\n"


def test_document_with_spaces_in_name(client, docs_root):
    write(docs_root / "guides" / "Alpha Guide.md", "alpha")

    res = client.get("/api/docs/guides/Alpha%20Guide.md")

    assert res.status_code == 200
    assert res.get_json()["content"] == "alpha"


def test_missing_document_is_404(client):
    res = client.get("/api/docs/a/nonexistent.md")

    assert res.status_code == 404
    assert res.get_json() == {"error": "Document not found"}


def test_non_markdown_is_400(client):
    res = client.get("/api/docs/a/x.txt")

    assert res.status_code == 400
    assert res.get_json() == {"error": "Only markdown files are supported"}


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_symlink_escape_is_403(client, docs_root, tmp_path):
    write(tmp_path / "outside" / "secret.md", "secret")
    (docs_root / "a" / "leak.md").symlink_to(tmp_path / "outside" / "secret.md")

    res = client.get("/api/docs/a/leak.md")

    assert res.status_code == 403
    assert res.get_json() == {"error": "Access denied"}
    assert b"secret" not in res.data


def test_encoded_traversal_is_403(client, tmp_path):
    write(tmp_path / "secret.md", "secret")

    res = client.get("/api/docs/..%2Fsecret.md")

    assert res.status_code == 403
    assert res.get_json() == {"error": "Access denied"}


def test_io_failure_is_500(client, monkeypatch):
    from pathlib import Path

    def denied(self):
        raise PermissionError("denied")

    monkeypatch.setattr(Path, "read_bytes", denied)

    res = client.get("/api/docs/a/x.md")

    assert res.status_code == 500
    assert res.get_json() == {"error": "Failed to read document"}


def test_health(client):
    res = client.get("/health")

    assert res.status_code == 200
    data = res.get_json()
    assert data["status"] == "OK"
    assert data["timestamp"].endswith("Z")


def test_index_serves_client_shell(client):
    res = client.get("/")

    assert res.status_code == 200
    assert b"Document Store" in res.data
    assert b'"treeUrl": "/api/docs"' in res.data or b'"treeUrl":"/api/docs"' in res.data


def test_deep_link_serves_shell(client):
    res = client.get("/a/x.md")

    assert res.status_code == 200
    assert b"<!DOCTYPE html>" in res.data


def test_unknown_api_route_answers_json(client):
    res = client.get("/api/nothing-here")

    assert res.status_code == 404
    assert "error" in res.get_json()


def test_api_config(client):
    assert client.get("/api/config").get_json() == {
        "site_name": "Document Store",
        "markdown_extension": ".md",
    }


def test_load_config_merges_file_and_environment(tmp_path, capsys):
    path = tmp_path / "docstore.config.json"
    path.write_text(json.dumps({"port": 9000, "site_name": "Handbook", "docs_dir": "content"}))

    cfg = _load_config(path, environ={})
    assert cfg["port"] == 9000
    assert cfg["site_name"] == "Handbook"
    assert cfg["docs_dir"] == tmp_path / "content"
    assert cfg["excluded_dirs"] == [".git", "node_modules"]

    cfg = _load_config(path, environ={"PORT": "8123", "DOCS_DIR": "/srv/docs"})
    assert cfg["port"] == 8123
    assert str(cfg["docs_dir"]) == "/srv/docs"


def test_load_config_warns_on_malformed_file(tmp_path, capsys):
    path = tmp_path / "docstore.config.json"
    path.write_text("{not json")

    cfg = _load_config(path, environ={})

    assert cfg["port"] == server._DEFAULTS["port"]
    assert "Warning: could not load" in capsys.readouterr().out
