"""Filename derivation for downloaded resources."""

from __future__ import annotations

import mimetypes
import re
import time
from typing import Optional
from urllib.parse import unquote, urlparse

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_DISPOSITION_EXT = re.compile(r"filename\*\s*=\s*(?:[\w-]+)?'[^']*'([^;]+)", re.IGNORECASE)
_DISPOSITION = re.compile(r'filename\s*=\s*"?([^";]+)"?', re.IGNORECASE)
_MIN_NAME_LENGTH = 3


def sanitize_filename(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9._-]`` with ``_``."""
    return _UNSAFE_CHARS.sub("_", name.strip())


def synthesized_filename(now: Optional[float] = None) -> str:
    stamp = int((now if now is not None else time.time()) * 1000)
    return f"download_{stamp}"


def filename_from_url(url: str, now: Optional[float] = None) -> str:
    """Return a safe filename for *url*.

    The last path segment is used when it is at least three characters
    long; otherwise a ``download_<millis>`` name is synthesised.
    """
    path = urlparse(url).path
    name = unquote(path.rsplit("/", 1)[-1]) if path else ""
    if len(name.strip()) < _MIN_NAME_LENGTH:
        return synthesized_filename(now)
    return sanitize_filename(name)


def filename_from_content_disposition(header: Optional[str]) -> Optional[str]:
    """Extract and sanitise the filename from a ``Content-Disposition`` header."""
    if not header:
        return None
    match = _DISPOSITION_EXT.search(header) or _DISPOSITION.search(header)
    if not match:
        return None
    name = unquote(match.group(1)).strip().strip('"')
    name = name.replace("\\", "/").rsplit("/", 1)[-1]
    if len(name) < _MIN_NAME_LENGTH:
        return None
    return sanitize_filename(name)


def extension_for_content_type(content_type: Optional[str]) -> Optional[str]:
    """Return a dotted extension for a MIME type, e.g. ``".pdf"``."""
    if not content_type:
        return None
    mime = content_type.split(";", 1)[0].strip().lower()
    if not mime or mime == "application/octet-stream":
        return None
    return mimetypes.guess_extension(mime)
