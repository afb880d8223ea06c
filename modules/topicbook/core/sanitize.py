"""Path sanitizer: human-readable titles to filesystem-safe slugs.

    >>> sanitize_title("Performance Optimization")
    'Performance-Optimization'
    >>> sanitize_title("Cross-Site Scripting (XSS)")
    'Cross-Site-Scripting-XSS'
"""

from __future__ import annotations

import re
import unicodedata

from topicbook.core.errors import InvalidTitleError

# Kept verbatim besides alphanumerics.
_KEEP_PUNCT = frozenset("_.")
# Whitespace and hyphens collapse into a single separator.
_SEPARATORS = frozenset("-\u2010\u2011\u2012\u2013\u2014")
_EDGE_CHARS = "-_."
# Leaves room for ".md.tmp" under the common 255-byte file name limit.
_MAX_SLUG_BYTES = 200

_WINDOWS_RESERVED = frozenset(
    {"CON", "PRN", "AUX", "NUL"}
    | {f"COM{i}" for i in range(1, 10)}
    | {f"LPT{i}" for i in range(1, 10)}
)

_DESLUG_RE = re.compile(r"[-_\s]+")


def sanitize_title(title: str) -> str:
    """Return the stable, filesystem-safe slug for ``title``.

    Pure function: the same title always yields the same slug, and
    ``sanitize_title(slug) == slug`` for any slug it returns.

    Raises:
        InvalidTitleError: title is empty after trimming, reduces to an
            empty slug, encodes to more than 200 UTF-8 bytes, or names a
            Windows device. Device names match case-insensitively
            ("Con", "aux.txt"), as on Windows.
    """
    if title is None:
        raise InvalidTitleError("", "title is missing")
    raw = str(title)
    text = unicodedata.normalize("NFC", raw).strip()
    if not text:
        raise InvalidTitleError(raw)

    out = []
    pending_sep = False
    for ch in text:
        if ch.isspace() or ch in _SEPARATORS:
            pending_sep = True
            continue
        if unicodedata.category(ch).startswith("C"):
            continue
        if ch.isalnum() or ch in _KEEP_PUNCT:
            if pending_sep and out:
                out.append("-")
            pending_sep = False
            out.append(ch)
        # everything else (path-illegal characters, brackets, symbols) is dropped

    slug = "".join(out).strip(_EDGE_CHARS)
    if not slug:
        raise InvalidTitleError(raw, "no filesystem-safe characters remain")
    if len(slug.encode("utf-8")) > _MAX_SLUG_BYTES:
        raise InvalidTitleError(raw, f"slug is longer than {_MAX_SLUG_BYTES} bytes")
    if slug.split(".", 1)[0].upper() in _WINDOWS_RESERVED:
        raise InvalidTitleError(raw, f"{slug!r} is a reserved device name")
    return slug


def deslug(slug: str) -> str:
    """Best-effort display title for a slug ("Frontend-Security" -> "Frontend Security")."""
    return _DESLUG_RE.sub(" ", str(slug)).strip()


def is_slug(name: str) -> bool:
    """True when ``name`` is already in sanitized form."""
    try:
        return sanitize_title(name) == name
    except InvalidTitleError:
        return False


__all__ = ["sanitize_title", "deslug", "is_slug"]
