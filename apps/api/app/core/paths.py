"""URL prefix the application is mounted under, and asset URLs built on it.

The prefix is computed once per process: first from where the application
directory sits inside the document root, then from the requested script path.
A call that has neither to go on answers "" without memoizing it, so the first
request that does carry a script path still decides the prefix.
"""

from __future__ import annotations

import os
import posixpath

from app.core.config import settings

_cached: str | None = None


def _normalize(path: str) -> str:
    return path.replace("\\", "/").rstrip("/")


def _from_document_root(document_root: str | None, app_dir: str | None) -> str | None:
    if not (document_root and app_dir):
        return None
    doc = _normalize(os.path.realpath(document_root))
    here = _normalize(os.path.realpath(app_dir))
    if not doc or not here.startswith(doc):
        return None
    rel = here[len(doc):].rstrip("/")
    if rel in ("", "."):
        return ""
    return rel if rel.startswith("/") else "/" + rel


def _from_script_name(script_name: str) -> str:
    base = _normalize(posixpath.dirname(script_name.replace("\\", "/")))
    if base in ("/", "."):
        base = ""
    return base


def resolve_base_path(document_root: str | None, app_dir: str | None, script_name: str = "") -> str:
    """Return the URL prefix ("" at the domain root, "/subdir" otherwise)."""
    found = _from_document_root(document_root, app_dir)
    if found is not None:
        return found
    return _from_script_name(script_name)


def base_path(script_name: str = "") -> str:
    global _cached
    if _cached is not None:
        return _cached
    found = _from_document_root(settings.document_root, settings.app_dir)
    if found is None:
        if not script_name:
            return ""
        found = _from_script_name(script_name)
    _cached = found
    return _cached


def reset_base_path() -> None:
    global _cached
    _cached = None


def asset(path: str, script_name: str = "") -> str:
    return base_path(script_name) + path
