"""Export the document tree as a static, read-only site.

The output directory holds the client shell plus the same JSON payloads the
API would serve, so it can be published on any static file host.
"""

import argparse
import json
import logging
import shutil
from pathlib import Path

from flask import render_template_string

from doc_tree import build_tree, count_files, iter_files, tree_to_json
from documents import DocumentError, read_document
from server import BASE_DIR, MAIN_TEMPLATE, _load_config, create_app

logger = logging.getLogger(__name__)

OUTPUT = BASE_DIR / "_site"

STATIC_CLIENT_CONFIG = {
    "treeUrl": "data/tree.json",
    "docUrl": "data/docs/",
    "docSuffix": ".json",
    "historyMode": "query",
    "readOnlySnapshot": True,
}


def generate_document_json(docs_dir: Path, rel: str, excluded_dirs=()) -> dict:
    return read_document(docs_dir, rel, excluded_dirs).to_dict()


def patch_template(html: str) -> str:

    html = html.replace(
        '<span id="fileCount"',
        '<span style="font-weight:400;opacity:.6;font-size:10px">SNAPSHOT</span>\n      <span id="fileCount"',
        1,
    )
    html = html.replace(
        "<span class=\"kbd\">Esc</span> clear / close</div></div>';",
        "<span class=\"kbd\">Esc</span> clear / close<br>Read-only snapshot</div></div>';",
        1,
    )
    return html


def render_shell(app) -> str:
    client_config = dict(STATIC_CLIENT_CONFIG, siteName=app.config["SITE_NAME"])
    with app.test_request_context("/"):
        html = render_template_string(MAIN_TEMPLATE, site_name=app.config["SITE_NAME"],
                                      client_config=client_config)
    return patch_template(html)


def clean_output(output: Path):
    if not output.exists():
        return
    for item in output.iterdir():
        if item.name == ".git":
            continue
        if item.is_dir():
            shutil.rmtree(item)
        else:
            item.unlink()


def build(docs_dir: Path | None = None, output: Path | None = None, config: dict | None = None) -> dict:
    """Write the snapshot and return a summary of what was written."""
    cfg = dict(config) if config is not None else _load_config()
    if docs_dir is not None:
        cfg["docs_dir"] = Path(docs_dir)
    output = Path(output) if output is not None else OUTPUT
    app = create_app(config=cfg)
    docs_dir = app.config["DOCS_DIR"]
    excluded_dirs = app.config["EXCLUDED_DIRS"]

    print(f"Building static site from {docs_dir} ...")
    clean_output(output)
    data = output / "data"
    docs_out = data / "docs"
    docs_out.mkdir(parents=True, exist_ok=True)

    tree = build_tree(docs_dir, excluded_dirs)
    (data / "tree.json").write_text(json.dumps(tree_to_json(tree)), encoding="utf-8")
    print(f"  tree.json ({count_files(tree)} documents)")

    written = 0
    skipped = []
    for node in iter_files(tree):
        try:
            payload = generate_document_json(docs_dir, node.path, excluded_dirs)
        except DocumentError as err:
            logger.warning("Skipping %s: %s", node.path, err)
            skipped.append(node.path)
            continue
        out_path = docs_out / (node.path + ".json")
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(json.dumps(payload), encoding="utf-8")
        written += 1
    print(f"  {written} documents rendered" + (f", {len(skipped)} skipped" if skipped else ""))

    (output / "index.html").write_text(render_shell(app), encoding="utf-8")
    print("  index.html generated")

    (output / ".nojekyll").write_text("", encoding="utf-8")

    print(f"\nDone! Static site is in: {output}")
    print(f"To test locally:  cd {output} && python3 -m http.server 8080")
    return {"documents": written, "skipped": skipped, "output": output}


def main(argv=None):
    parser = argparse.ArgumentParser(description="Export the documents as a static site")
    parser.add_argument("--docs-dir", type=Path, default=None)
    parser.add_argument("--output", type=Path, default=OUTPUT)
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    build(args.docs_dir, args.output)


if __name__ == "__main__":
    main()
