import argparse
import json as _json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from flask import Blueprint, Flask, current_app, jsonify, render_template_string, request
from werkzeug.exceptions import HTTPException

from doc_tree import MARKDOWN_EXT, build_tree, tree_to_json
from documents import DocumentError, format_timestamp, read_document

BASE_DIR = Path(__file__).resolve().parent

_CONFIG_PATH = Path(os.environ.get("DOCSTORE_CONFIG", BASE_DIR / "docstore.config.json"))
_DEFAULTS = {
    "port": 12000,
    "host": "0.0.0.0",
    "docs_dir": "docs",
    "excluded_dirs": [".git", "node_modules"],
    "site_name": "Document Store",
    "log_level": "INFO",
}


def _load_config(path: Path | None = None, environ=None) -> dict:
    path = Path(path) if path is not None else _CONFIG_PATH
    environ = os.environ if environ is None else environ
    cfg = dict(_DEFAULTS)
    if path.is_file():
        try:
            with open(path, encoding="utf-8") as f:
                user = _json.load(f)
            if not isinstance(user, dict):
                raise ValueError("top level must be an object")
            cfg.update(user)
        except (OSError, ValueError) as e:
            print(f"Warning: could not load {path.name}: {e}")
    if environ.get("PORT"):
        cfg["port"] = environ["PORT"]
    if environ.get("DOCS_DIR"):
        cfg["docs_dir"] = environ["DOCS_DIR"]

    try:
        cfg["port"] = int(cfg["port"])
    except (TypeError, ValueError):
        print(f"Warning: invalid port {cfg['port']!r}, using {_DEFAULTS['port']}")
        cfg["port"] = _DEFAULTS["port"]
    docs_dir = Path(cfg["docs_dir"]).expanduser()
    cfg["docs_dir"] = docs_dir if docs_dir.is_absolute() else path.parent / docs_dir
    return cfg


bp = Blueprint("docstore", __name__)


def _docs_dir() -> Path:
    return current_app.config["DOCS_DIR"]


def _excluded_dirs() -> set:
    return current_app.config["EXCLUDED_DIRS"]


def _client_config() -> dict:
    return {
        "siteName": current_app.config["SITE_NAME"],
        "treeUrl": "/api/docs",
        "docUrl": "/api/docs/",
        "docSuffix": "",
        "historyMode": "path",
        "readOnlySnapshot": False,
    }


@bp.route("/")
def index():
    return render_template_string(MAIN_TEMPLATE, site_name=current_app.config["SITE_NAME"],
                                  client_config=_client_config())


@bp.route("/<path:doc_path>")
def deep_link(doc_path):
    # pushed history URLs point here; the client picks the path up on load
    if not doc_path.endswith(MARKDOWN_EXT) or doc_path.startswith("api/"):
        return jsonify({"error": "Not found"}), 404
    return index()


@bp.route("/api/config")
def api_config():
    return jsonify({
        "site_name": current_app.config["SITE_NAME"],
        "markdown_extension": MARKDOWN_EXT,
    })


@bp.route("/api/docs")
def api_tree():
    try:
        tree = build_tree(_docs_dir(), _excluded_dirs())
    except OSError:
        current_app.logger.error("Error building file tree for %s", _docs_dir(), exc_info=True)
        return jsonify({"error": "Failed to load document tree"}), 500
    return jsonify(tree_to_json(tree))


@bp.route("/api/docs/<path:doc_path>")
def api_document(doc_path):
    document = read_document(_docs_dir(), doc_path, _excluded_dirs())
    return jsonify(document.to_dict())


@bp.route("/health")
def health():
    return jsonify({"status": "OK", "timestamp": format_timestamp(datetime.now(timezone.utc))})


@bp.app_errorhandler(DocumentError)
def handle_document_error(err):
    if err.status >= 500:
        current_app.logger.error("Error reading document %s: %s", err.path, err.detail)
    else:
        current_app.logger.info("Rejected document request %r: %s", err.path, err.detail or err.message)
    return jsonify(err.to_dict()), err.status


@bp.app_errorhandler(HTTPException)
def handle_http_error(err):
    if request.path.startswith("/api/"):
        return jsonify({"error": err.name}), err.code
    return err


def create_app(docs_dir=None, config: dict | None = None) -> Flask:
    cfg = dict(config) if config is not None else _load_config()
    for key, value in _DEFAULTS.items():
        cfg.setdefault(key, value)
    if docs_dir is not None:
        cfg["docs_dir"] = docs_dir

    app = Flask(__name__)
    app.config.update(
        DOCS_DIR=Path(cfg["docs_dir"]),
        EXCLUDED_DIRS=set(cfg["excluded_dirs"]),
        SITE_NAME=cfg["site_name"],
    )
    app.register_blueprint(bp)
    return app


MAIN_TEMPLATE = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{{ site_name }}</title>
<link rel="stylesheet" href="https://cdnjs.cloudflare.com/ajax/libs/prism/1.29.0/themes/prism-tomorrow.min.css">
<script src="https://cdnjs.cloudflare.com/ajax/libs/prism/1.29.0/prism.min.js"></script>
<script src="https://cdnjs.cloudflare.com/ajax/libs/prism/1.29.0/plugins/autoloader/prism-autoloader.min.js"></script>
<script src="https://cdn.jsdelivr.net/npm/mermaid@10/dist/mermaid.min.js"></script>
<style>
*, *::before, *::after { box-sizing: border-box; margin: 0; padding: 0; }

:root {
  --bg-primary: #1b1d24;
  --bg-secondary: #15171d;
  --bg-tertiary: #22252e;
  --bg-hover: rgba(102,153,255,.08);
  --bg-active: rgba(102,153,255,.16);
  --text: #e4e6eb;
  --text-muted: #9aa1ad;
  --text-faint: #6b7280;
  --accent: #6699ff;
  --accent-hover: #8cb2ff;
  --accent-dim: rgba(102,153,255,.35);
  --danger: #f07178;
  --border: rgba(255,255,255,.06);
  --border-strong: rgba(255,255,255,.1);
  --sidebar-width: 290px;
  --topbar-height: 38px;
  --font: -apple-system, BlinkMacSystemFont, 'Segoe UI', 'Inter', Roboto, sans-serif;
  --font-mono: 'Fira Code', 'JetBrains Mono', 'Consolas', monospace;
  --radius: 4px;
}

html, body { height: 100%; background: var(--bg-primary); color: var(--text); font-family: var(--font); font-size: 16px; line-height: 1.6; }
::selection { background: var(--accent-dim); }

.app { display: flex; height: 100vh; overflow: hidden; }

.sidebar { width: var(--sidebar-width); min-width: 200px; background: var(--bg-secondary); display: flex; flex-direction: column; overflow: hidden; }
.sidebar-header {
  padding: 10px 14px; font-size: 12px; font-weight: 700; color: var(--text-faint);
  text-transform: uppercase; letter-spacing: .08em; border-bottom: 1px solid var(--border);
  display: flex; align-items: center; gap: 8px;
}
.sidebar-header-actions { margin-left: auto; display: flex; gap: 2px; }
.sidebar-btn {
  background: none; border: none; color: var(--text-faint); cursor: pointer; padding: 4px;
  border-radius: var(--radius); display: flex; align-items: center; transition: background .15s, color .15s;
}
.sidebar-btn:hover { background: var(--bg-hover); color: var(--text); }

.search-box { position: relative; padding: 8px 10px; border-bottom: 1px solid var(--border); }
.search-box input {
  width: 100%; background: var(--bg-tertiary); border: 1px solid var(--border-strong); border-radius: var(--radius);
  color: var(--text); font-family: var(--font); font-size: 13px; padding: 5px 28px 5px 8px; outline: none;
}
.search-box input:focus { border-color: var(--accent-dim); }
.search-clear {
  display: none; position: absolute; right: 16px; top: 50%; transform: translateY(-50%);
  background: none; border: none; color: var(--text-faint); cursor: pointer; font-size: 14px;
}
.search-clear:hover { color: var(--text); }

.file-tree { flex: 1; overflow-y: auto; padding: 4px 0; }
.file-tree::-webkit-scrollbar { width: 5px; }
.file-tree::-webkit-scrollbar-thumb { background: rgba(255,255,255,.08); border-radius: 10px; }

.tree-item {
  display: flex; align-items: center; padding: 2px 10px 2px calc(var(--depth, 0) * 16px + 10px);
  cursor: pointer; font-size: 13px; color: var(--text-muted); border-radius: var(--radius); margin: 1px 6px;
  white-space: nowrap; text-overflow: ellipsis; overflow: hidden; user-select: none;
  transition: background .12s, color .12s;
}
.tree-item:hover { background: var(--bg-hover); color: var(--text); }
.tree-item.active { background: var(--bg-active); color: var(--accent-hover); }
.tree-item.search-match { color: var(--text); }
.tree-icon { width: 15px; height: 15px; margin-right: 6px; flex-shrink: 0; opacity: .55; }
.tree-chevron { width: 14px; height: 14px; margin-right: 2px; flex-shrink: 0; opacity: .35; transition: transform .15s; }
.tree-chevron.open { transform: rotate(90deg); opacity: .6; }
.tree-spacer { width: 16px; flex-shrink: 0; }
.tree-children { display: none; }
.tree-children.open { display: block; }
.search-highlight { background: rgba(255,204,102,.25); color: #ffd580; border-radius: 2px; }
.tree-message { padding: 14px; font-size: 13px; color: var(--text-faint); }
.tree-message.error { color: var(--danger); }

.main { flex: 1; display: flex; flex-direction: column; min-width: 0; }
.topbar {
  height: var(--topbar-height); min-height: var(--topbar-height); background: var(--bg-secondary);
  border-bottom: 1px solid var(--border); display: flex; align-items: center; padding: 0 12px; gap: 10px;
}
.breadcrumb { font-size: 12px; color: var(--text-faint); display: flex; align-items: center; gap: 4px; overflow: hidden; }
.breadcrumb .crumb-active { color: var(--text-muted); font-weight: 500; }
.topbar-actions { margin-left: auto; display: flex; gap: 6px; align-items: center; }
.topbar-meta { font-size: 11px; color: var(--text-faint); }
.topbar-btn {
  background: none; border: 1px solid var(--border-strong); border-radius: var(--radius); color: var(--text-muted);
  cursor: pointer; font-size: 12px; font-family: var(--font); padding: 3px 10px;
}
.topbar-btn:hover { background: var(--bg-hover); color: var(--text); border-color: var(--accent-dim); }

.content-area { flex: 1; overflow-y: auto; padding: 48px 56px; }
.welcome { display: flex; flex-direction: column; align-items: center; justify-content: center; height: 100%; gap: 16px; color: var(--text-faint); }
.welcome p { font-size: 14px; }
.kbd { background: var(--bg-tertiary); padding: 2px 8px; border-radius: 3px; margin: 0 2px; font-size: 12px; }
.load-error { color: var(--danger); font-size: 14px; text-align: center; padding: 40px 0; }

.markdown-body { max-width: 780px; margin: 0 auto; }
.markdown-body h1 { font-size: 1.9em; font-weight: 700; margin: 0 0 20px; padding-bottom: 10px; border-bottom: 1px solid var(--border); }
.markdown-body h2 { font-size: 1.45em; font-weight: 600; margin: 32px 0 12px; }
.markdown-body h3 { font-size: 1.2em; font-weight: 600; margin: 24px 0 8px; }
.markdown-body h4, .markdown-body h5, .markdown-body h6 { font-size: 1.05em; font-weight: 600; margin: 20px 0 8px; }
.markdown-body p { margin: 0 0 16px; line-height: 1.7; }
.markdown-body a { color: var(--accent); text-decoration: none; }
.markdown-body a:hover { color: var(--accent-hover); text-decoration: underline; }
.markdown-body ul, .markdown-body ol { margin: 0 0 16px; padding-left: 2em; }
.markdown-body li { margin-bottom: 4px; }
.markdown-body blockquote { border-left: 2px solid var(--accent-dim); padding: 4px 16px; margin: 0 0 16px; color: var(--text-muted); }
.markdown-body code { font-family: var(--font-mono); background: var(--bg-tertiary); padding: 2px 6px; border-radius: var(--radius); font-size: .85em; }
.markdown-body pre { background: var(--bg-tertiary); border: 1px solid var(--border); border-radius: 6px; padding: 16px; overflow-x: auto; margin: 0 0 16px; }
.markdown-body pre code { background: none; padding: 0; }
.markdown-body table { border-collapse: collapse; width: 100%; margin: 0 0 16px; }
.markdown-body th, .markdown-body td { border: 1px solid var(--border-strong); padding: 8px 12px; text-align: left; font-size: .95em; }
.markdown-body th { background: var(--bg-tertiary); color: var(--text-muted); }
.markdown-body img { max-width: 100%; border-radius: 6px; }
.markdown-body hr { border: none; border-top: 1px solid var(--border); margin: 28px 0; }

.mermaid-diagram { text-align: center; margin: 20px 0; }
.mermaid-error {
  border: 1px solid var(--danger); border-radius: var(--radius); padding: 10px; margin: 10px 0 16px;
  background: rgba(240,113,120,.08); font-size: 14px;
}
.mermaid-error details { margin-top: 10px; }
.mermaid-error summary { cursor: pointer; color: var(--text-muted); }

@media (max-width: 768px) {
  .sidebar { width: 240px; min-width: 240px; }
  .content-area { padding: 20px 16px; }
}
</style>
</head>
<body>
<div class="app">
  <nav class="sidebar" id="sidebar">
    <div class="sidebar-header">
      <span id="siteName">{{ site_name }}</span>
      <span id="fileCount" style="font-size:10px;font-weight:400;opacity:.5"></span>
      <div class="sidebar-header-actions">
        <button class="sidebar-btn" id="refreshBtn" title="Reload document tree">
          <svg width="15" height="15" viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2"><polyline points="23 4 23 10 17 10"/><path d="M20.49 15a9 9 0 11-2.12-9.36L23 10"/></svg>
        </button>
      </div>
    </div>
    <div class="search-box">
      <input type="text" id="searchInput" placeholder="Search documents..." autocomplete="off">
      <button class="search-clear" id="clearSearch" title="Clear search">&times;</button>
    </div>
    <div class="file-tree" id="fileTree"></div>
  </nav>

  <div class="main">
    <div class="topbar">
      <div class="breadcrumb" id="breadcrumb"><span>Select a document from the sidebar</span></div>
      <div class="topbar-actions" id="topbarActions"></div>
    </div>
    <div class="content-area" id="contentArea"></div>
  </div>
</div>

<script>
const CONFIG = {{ client_config|tojson }};
const $ = s => document.querySelector(s);
const fileTree = $('#fileTree');
const contentArea = $('#contentArea');
const breadcrumb = $('#breadcrumb');
const topbarActions = $('#topbarActions');
const searchInput = $('#searchInput');
const clearSearchBtn = $('#clearSearch');
const MD_EXT = '.md';

// Single owner of everything the page displays.
const state = {
  tree: null,
  filtered: [],
  query: '',
  currentDocument: null,
  expanded: new Set(),
  activePath: null,
  lastRequestId: 0,
};

if (window.mermaid) {
  mermaid.initialize({ startOnLoad: false, theme: 'dark', securityLevel: 'strict', fontFamily: 'inherit' });
}

function esc(s) {
  const d = document.createElement('div');
  d.textContent = s;
  return d.innerHTML;
}

function encodeURIPath(p) {
  return p.split('/').map(encodeURIComponent).join('/');
}

function displayName(name) {
  return name.endsWith(MD_EXT) ? name.slice(0, -MD_EXT.length) : name;
}

function docUrl(path) {
  return CONFIG.docUrl + encodeURIPath(path) + CONFIG.docSuffix;
}

function historyUrl(path) {
  if (CONFIG.historyMode === 'query') return '?doc=' + encodeURIComponent(path);
  return '/' + encodeURIPath(path);
}

function pathFromLocation() {
  if (CONFIG.historyMode === 'query') {
    return new URLSearchParams(location.search).get('doc') || '';
  }
  const raw = location.pathname.replace(/^\/+/, '');
  try {
    return raw.split('/').map(decodeURIComponent).join('/');
  } catch (e) {
    return raw;
  }
}

// ---- search filter ----

function normalizeQuery(q) {
  return (q || '').trim().toLowerCase();
}

function unfiltered(items) {
  return items.map(item => item.type === 'directory'
    ? { ...item, searchMatch: false, children: unfiltered(item.children || []) }
    : { ...item, searchMatch: false });
}

function filterTree(items, query) {
  const out = [];
  for (const item of items) {
    const matches = displayName(item.name).toLowerCase().includes(query);
    if (item.type === 'directory') {
      const children = filterTree(item.children || [], query);
      if (matches || children.length) out.push({ ...item, children, searchMatch: matches });
    } else if (matches) {
      out.push({ ...item, searchMatch: true });
    }
  }
  return out;
}

function matchingDirectories(items, out = new Set()) {
  for (const item of items) {
    if (item.type === 'directory' && (item.searchMatch || item.children.length)) {
      out.add(item.path);
      matchingDirectories(item.children, out);
    }
  }
  return out;
}

function highlightHtml(text, query) {
  if (!query) return esc(text);
  const lower = text.toLowerCase();
  let out = '';
  let pos = 0;
  let idx;
  while ((idx = lower.indexOf(query, pos)) !== -1) {
    out += esc(text.slice(pos, idx)) + '<span class="search-highlight">' + esc(text.slice(idx, idx + query.length)) + '</span>';
    pos = idx + query.length;
  }
  return out + esc(text.slice(pos));
}

function setQuery(raw) {
  state.query = normalizeQuery(raw);
  clearSearchBtn.style.display = state.query ? 'block' : 'none';
  if (!state.tree) return;
  if (state.query) {
    state.filtered = filterTree(state.tree, state.query);
    state.expanded = matchingDirectories(state.filtered);
  } else {
    state.filtered = unfiltered(state.tree);
    state.expanded = new Set();
  }
  renderSidebar();
}

function clearSearch() {
  searchInput.value = '';
  setQuery('');
}

// ---- tree renderer ----

function folderIcon() {
  return '<svg class="tree-icon" viewBox="0 0 24 24" fill="none" stroke="#e5b567" stroke-width="2"><path d="M22 19a2 2 0 01-2 2H4a2 2 0 01-2-2V5a2 2 0 012-2h5l2 3h9a2 2 0 012 2z"/></svg>';
}

function fileIcon() {
  return '<svg class="tree-icon" viewBox="0 0 24 24" fill="none" stroke="#6699ff" stroke-width="2"><path d="M14 2H6a2 2 0 00-2 2v16a2 2 0 002 2h12a2 2 0 002-2V8z"/><polyline points="14 2 14 8 20 8"/></svg>';
}

function chevronSvg(open) {
  return '<svg class="tree-chevron' + (open ? ' open' : '') + '" viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2"><polyline points="9 18 15 12 9 6"/></svg>';
}

function renderTree(items, container, depth = 0) {
  items.forEach(item => {
    const row = document.createElement('div');
    row.className = 'tree-item' + (item.searchMatch ? ' search-match' : '');
    row.style.setProperty('--depth', depth);
    const label = `<span>${highlightHtml(displayName(item.name), state.query)}</span>`;

    if (item.type === 'directory') {
      const open = state.expanded.has(item.path);
      const hasChildren = item.children && item.children.length > 0;
      row.dataset.dir = item.path;
      row.innerHTML = (hasChildren ? chevronSvg(open) : '<span class="tree-spacer"></span>') + folderIcon() + label;

      const children = document.createElement('div');
      children.className = 'tree-children' + (open ? ' open' : '');

      row.addEventListener('click', () => {
        const nowOpen = !state.expanded.has(item.path);
        if (nowOpen) state.expanded.add(item.path); else state.expanded.delete(item.path);
        children.classList.toggle('open', nowOpen);
        const chev = row.querySelector('.tree-chevron');
        if (chev) chev.classList.toggle('open', nowOpen);
      });

      container.appendChild(row);
      container.appendChild(children);
      if (hasChildren) renderTree(item.children, children, depth + 1);
    } else {
      row.dataset.path = item.path;
      if (item.path === state.activePath) row.classList.add('active');
      row.innerHTML = '<span class="tree-spacer"></span>' + fileIcon() + label;
      row.addEventListener('click', () => openDocument(item.path));
      container.appendChild(row);
    }
  });
}

function renderSidebar() {
  fileTree.innerHTML = '';
  if (!state.filtered.length) {
    fileTree.innerHTML = state.query
      ? `<div class="tree-message">No documents found for "${esc(state.query)}"</div>`
      : '<div class="tree-message">No documents found</div>';
    return;
  }
  renderTree(state.filtered, fileTree);
}

function setActive(path) {
  state.activePath = path;
  fileTree.querySelectorAll('.tree-item[data-path]').forEach(el => {
    el.classList.toggle('active', el.dataset.path === path);
  });
}

function revealPath(path) {
  const parts = path.split('/');
  let changed = false;
  for (let i = 1; i < parts.length; i++) {
    const dir = parts.slice(0, i).join('/');
    if (!state.expanded.has(dir)) { state.expanded.add(dir); changed = true; }
  }
  if (changed && state.tree) renderSidebar();
}

function countFiles(items) {
  let n = 0;
  items.forEach(item => {
    if (item.type === 'file') n++;
    else if (item.children) n += countFiles(item.children);
  });
  return n;
}

async function loadTree() {
  fileTree.innerHTML = '<div class="tree-message">Loading documents...</div>';
  try {
    const res = await fetch(CONFIG.treeUrl);
    if (!res.ok) throw new Error(`HTTP error! status: ${res.status}`);
    state.tree = await res.json();
  } catch (e) {
    console.error('Error loading document tree:', e);
    fileTree.innerHTML = '<div class="tree-message error">Failed to load documents</div>';
    return;
  }
  $('#fileCount').textContent = countFiles(state.tree);
  setQuery(searchInput.value);
}

// ---- document viewer ----

function showWelcome() {
  breadcrumb.innerHTML = '<span>Select a document from the sidebar</span>';
  topbarActions.innerHTML = '';
  contentArea.innerHTML =
    '<div class="welcome"><p>Select a document from the sidebar</p>' +
    '<div style="font-size:12px"><span class="kbd">Ctrl+F</span> search &nbsp;&middot;&nbsp; <span class="kbd">Esc</span> clear / close</div></div>';
}

function setBreadcrumb(path) {
  const parts = path.split('/');
  breadcrumb.innerHTML = parts.map((p, i) =>
    i === parts.length - 1
      ? `<span class="crumb-active">${esc(displayName(p))}</span>`
      : `<span>${esc(p)}</span><span>/</span>`
  ).join('');
}

function updateTopbar(doc) {
  const modified = doc.lastModified ? new Date(doc.lastModified).toLocaleString() : '';
  topbarActions.innerHTML =
    (modified ? `<span class="topbar-meta">Last modified ${esc(modified)}</span>` : '') +
    '<button class="topbar-btn" id="closeDocBtn">Close</button>';
  $('#closeDocBtn').addEventListener('click', () => closeDocument());
}

function diagramErrorElement(err, source) {
  const box = document.createElement('div');
  box.className = 'mermaid-error';
  box.innerHTML =
    '<strong>Mermaid Diagram Error:</strong><br>' +
    `<code>${esc(err && err.message ? err.message : String(err))}</code>` +
    '<details><summary>Show diagram code</summary>' +
    `<pre><code>${esc(source)}</code></pre></details>`;
  return box;
}

async function renderDiagrams(container, requestId) {
  if (!window.mermaid) return;
  const blocks = Array.from(container.querySelectorAll('pre > code.language-mermaid'));
  for (let i = 0; i < blocks.length; i++) {
    const pre = blocks[i].parentElement;
    const source = blocks[i].textContent.trim();
    const id = `mermaid-${requestId}-${i}`;
    let replacement;
    try {
      const { svg } = await mermaid.render(id, source);
      replacement = document.createElement('div');
      replacement.className = 'mermaid-diagram';
      replacement.innerHTML = svg;
    } catch (err) {
      console.error('Error rendering Mermaid diagram:', err);
      const leftover = document.getElementById('d' + id);
      if (leftover) leftover.remove();
      replacement = diagramErrorElement(err, source);
    }
    if (requestId !== state.lastRequestId) return;
    pre.replaceWith(replacement);
  }
}

async function openDocument(path, { pushHistory = true } = {}) {
  const requestId = ++state.lastRequestId;
  setActive(path);
  setBreadcrumb(path);
  topbarActions.innerHTML = '';
  contentArea.innerHTML = '<div class="welcome"><p>Loading document...</p></div>';

  let data;
  try {
    const res = await fetch(docUrl(path));
    if (!res.ok) {
      let message = '';
      try { message = (await res.json()).error || ''; } catch (e) {}
      throw new Error(`HTTP error! status: ${res.status}` + (message ? ` (${message})` : ''));
    }
    data = await res.json();
  } catch (e) {
    if (requestId !== state.lastRequestId) return;
    console.error('Error loading document:', e);
    state.currentDocument = null;
    contentArea.innerHTML = `<div class="load-error">Failed to load document: ${esc(e.message)}</div>`;
    return;
  }
  // a newer selection owns the pane now
  if (requestId !== state.lastRequestId) return;

  state.currentDocument = data;
  contentArea.innerHTML = '<div class="markdown-body">' + data.html + '</div>';
  const body = contentArea.querySelector('.markdown-body');
  if (window.Prism) Prism.highlightAllUnder(body);
  await renderDiagrams(body, requestId);
  if (requestId !== state.lastRequestId) return;
  contentArea.scrollTop = 0;
  updateTopbar(data);
  revealPath(data.path);
  if (pushHistory) history.pushState({ path: data.path }, '', historyUrl(data.path));
}

function closeDocument({ pushHistory = true } = {}) {
  state.lastRequestId++;
  state.currentDocument = null;
  setActive(null);
  showWelcome();
  if (pushHistory) history.pushState({}, '', CONFIG.historyMode === 'query' ? location.pathname : '/');
}

// ---- wiring ----

$('#refreshBtn').addEventListener('click', () => loadTree());
searchInput.addEventListener('input', e => setQuery(e.target.value));
clearSearchBtn.addEventListener('click', () => { clearSearch(); searchInput.focus(); });

document.addEventListener('keydown', e => {
  if (e.key === 'Escape') {
    if (state.query) clearSearch();
    else if (state.currentDocument) closeDocument();
  }
  if ((e.ctrlKey || e.metaKey) && e.key === 'f') {
    e.preventDefault();
    searchInput.focus();
  }
});

window.addEventListener('popstate', () => {
  const path = pathFromLocation();
  if (path) openDocument(path, { pushHistory: false });
  else closeDocument({ pushHistory: false });
});

(async () => {
  showWelcome();
  await loadTree();
  const path = pathFromLocation();
  if (path && path.endsWith(MD_EXT)) openDocument(path, { pushHistory: false });
})();
</script>
</body>
</html>
"""


app = create_app()


def main(argv=None):
    cfg = _load_config()
    parser = argparse.ArgumentParser(description="Serve a directory of markdown documents")
    parser.add_argument("--port", type=int, default=cfg["port"])
    parser.add_argument("--host", default=cfg["host"])
    parser.add_argument("--docs-dir", type=Path, default=cfg["docs_dir"])
    args = parser.parse_args(argv)

    logging.basicConfig(level=str(cfg["log_level"]).upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    cfg["docs_dir"] = args.docs_dir.resolve()
    if not cfg["docs_dir"].is_dir():
        print(f"Warning: documents directory {cfg['docs_dir']} does not exist")

    import socket
    hostname = socket.gethostname()
    try:
        local_ip = socket.gethostbyname(hostname)
    except OSError:
        local_ip = "127.0.0.1"
    print(f"Serving documents: {cfg['docs_dir']}")
    print(f"Open http://localhost:{args.port}    (this machine)")
    print(f"     http://{local_ip}:{args.port}  (other devices on network)")
    create_app(config=cfg).run(host=args.host, port=args.port)


if __name__ == "__main__":
    main()
