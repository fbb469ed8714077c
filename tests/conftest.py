import pytest

from server import create_app


def write(path, text=""):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def docs_root(tmp_path):
    root = tmp_path / "docs"
    write(root / "a" / "x.md", "# X\n\nFirst line\nsecond line\n")
    write(root / "b" / "y.md", "# Y\n")
    return root


@pytest.fixture
def app(docs_root):
    app = create_app(docs_dir=docs_root, config={"excluded_dirs": [".git"]})
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
