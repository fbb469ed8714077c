"""Terminal client for a running Document Store server.

    python browse.py tree --search alpha
    python browse.py show guides/setup.md
"""

import argparse
import logging
import sys
from urllib.parse import quote

import requests

from doc_tree import count_files, tree_from_json
from tree_view import render_text
from viewer import AppState, DocumentViewer, FetchError

DEFAULT_URL = "http://localhost:12000"
REQUEST_TIMEOUT_SECONDS = 10


def encode_path(path: str) -> str:
    return "/".join(quote(part, safe="") for part in path.split("/"))


class HttpFetcher:

    def __init__(self, base_url: str = DEFAULT_URL, session=None, timeout: float = REQUEST_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _get(self, url: str):
        try:
            res = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise FetchError(str(exc)) from exc
        if not res.ok:
            try:
                message = res.json().get("error") or res.reason
            except ValueError:
                message = res.reason
            raise FetchError(f"HTTP error! status: {res.status_code} ({message})", res.status_code)
        try:
            return res.json()
        except ValueError as exc:
            raise FetchError(f"Invalid JSON response from {url}", res.status_code) from exc

    def tree(self) -> list:
        data = self._get(f"{self.base_url}/api/docs")
        try:
            return tree_from_json(data)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise FetchError(f"Malformed document tree: {exc}") from exc

    def document(self, path: str) -> dict:
        data = self._get(f"{self.base_url}/api/docs/{encode_path(path)}")
        if not isinstance(data, dict) or not {"path", "content", "html", "lastModified"} <= data.keys():
            raise FetchError(f"Malformed document payload for {path}")
        return data

    __call__ = document


def cmd_tree(fetcher: HttpFetcher, args) -> int:
    state = AppState()
    state.load_tree(fetcher.tree())
    state.set_query(args.search or "")
    if not state.filtered:
        if state.query:
            print(f'No documents found for "{state.query}"')
        else:
            print("No documents found")
        return 0
    if args.expand_all and not state.query:
        state.view.expanded = {item.path for item in _all_dirs(state.filtered)}
    print(render_text(state.rows(), state.query))
    print(f"\n{count_files(state.tree)} documents")
    return 0


def _all_dirs(filtered):
    for item in filtered:
        if item.is_dir:
            yield item
            yield from _all_dirs(item.children)


def cmd_show(fetcher: HttpFetcher, args) -> int:
    state = AppState()
    viewer = DocumentViewer(fetcher, state)
    viewer.open(args.path)
    if state.error:
        print(state.error, file=sys.stderr)
        return 1
    doc = state.document
    print(f"{doc['path']}  (last modified {doc['lastModified']})")
    print("-" * 60)
    print(doc["html"] if args.html else doc["content"])
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Browse a Document Store server from the terminal")
    parser.add_argument("--url", default=DEFAULT_URL, help=f"Server base URL (default: {DEFAULT_URL})")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    tree = sub.add_parser("tree", help="Print the document tree")
    tree.add_argument("--search", default="", help="Only show names containing this text")
    tree.add_argument("--expand-all", action="store_true", help="Expand every directory")
    tree.set_defaults(func=cmd_tree)

    show = sub.add_parser("show", help="Print one document")
    show.add_argument("path")
    show.add_argument("--html", action="store_true", help="Print rendered HTML instead of markdown")
    show.set_defaults(func=cmd_show)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(asctime)s %(levelname)s %(message)s")
    fetcher = HttpFetcher(args.url)
    try:
        return args.func(fetcher, args)
    except FetchError as exc:
        print(f"Failed to load documents: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
