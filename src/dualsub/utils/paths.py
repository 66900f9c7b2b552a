"""Path helpers for the durable cache and work identities."""

from __future__ import annotations

import re
from pathlib import Path
from urllib.parse import urlparse


def slugify(text: str) -> str:
    """Convert text to a filesystem-safe slug."""
    text = text.lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s_]+", "-", text)
    text = re.sub(r"-+", "-", text)
    return text[:80].strip("-")


def media_origin(source: str) -> str:
    """Origin a media source belongs to: the URL host, or ``local`` for files."""
    parsed = urlparse(source)
    if parsed.scheme in ("http", "https") and parsed.hostname:
        return parsed.hostname
    return "local"


def work_identity(source: str) -> str:
    """Stable identity of one work (episode, film) for cache scoping.

    URLs keep their path so two episodes on one host stay distinct.
    Local files are identified by their stem.
    """
    parsed = urlparse(source)
    if parsed.scheme in ("http", "https"):
        path = parsed.path.replace("/", " ")
        return slugify(f"{parsed.hostname or ''} {path}") or "untitled"
    return slugify(Path(source).stem) or "untitled"


def cache_db_path(cache_dir: Path, origin: str) -> Path:
    """One SQLite database file per origin: ``<cache_dir>/<slug>.db``."""
    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir / f"{slugify(origin) or 'local'}.db"
