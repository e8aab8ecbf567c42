"""Slug, sanitization and teaser helpers for letter text."""

import re
import secrets

import bleach
from slugify import slugify as _slugify

# Block, inline and table markup a letter may carry
ALLOWED_TAGS = frozenset(bleach.sanitizer.ALLOWED_TAGS) | {
    "address",
    "article",
    "aside",
    "footer",
    "header",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "main",
    "nav",
    "section",
    "dd",
    "div",
    "dl",
    "dt",
    "figcaption",
    "figure",
    "hr",
    "p",
    "pre",
    "br",
    "cite",
    "del",
    "mark",
    "q",
    "s",
    "small",
    "span",
    "sub",
    "sup",
    "time",
    "u",
    "caption",
    "col",
    "colgroup",
    "table",
    "tbody",
    "td",
    "tfoot",
    "th",
    "thead",
    "tr",
    "img",
}
ALLOWED_ATTRIBUTES = {
    **bleach.sanitizer.ALLOWED_ATTRIBUTES,
    "a": ["href", "name", "target", "title"],
    "img": ["src", "alt", "title", "width", "height"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan", "scope"],
}
ALLOWED_PROTOCOLS = frozenset({"http", "https", "mailto"})

_SLUG_REMOVE = re.compile(r"[*+~.()'\"!:@#,]")

TEASER_NEWLINE_OFFSET = 100
TEASER_MAX_LENGTH = 500
TEASER_PERIOD_OFFSET = 300


def slugify(value: str) -> str:
    """Lowercase ASCII slug with punctuation stripped and words joined by ``-``."""
    return _slugify(_SLUG_REMOVE.sub("", value or ""))


def generate_slug(title: str) -> str:
    """Slug shared by every locale of a new letter, e.g. ``stop-x-1a2b3c4d``."""
    return f"{slugify(title) or 'letter'}-{secrets.token_hex(4)}"


def sanitize_letter_html(text: str | None) -> str:
    """Strip everything but the allowed tags and attributes.

    Returns an empty string when nothing but whitespace survives.
    """
    cleaned = bleach.clean(
        text or "",
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )
    return cleaned if cleaned.strip() else ""


def make_teaser(text: str | None) -> str:
    """Cut a letter's text down to a listing preview.

    The preview ends right before the first newline found at or after
    offset 100. If that is still longer than 500 characters, it ends on
    (and includes) the first period found at or after offset 300.
    A missing newline yields ``find() == -1``, so the cut lands at offset 99;
    a missing period cuts at offset 300.
    """
    text = text or ""
    teaser = text[: text[TEASER_NEWLINE_OFFSET:].find("\n") + TEASER_NEWLINE_OFFSET]
    if len(teaser) > TEASER_MAX_LENGTH:
        teaser = teaser[: teaser[TEASER_PERIOD_OFFSET:].find(".") + TEASER_PERIOD_OFFSET + 1]
    return teaser


def text_to_html(text: str | None) -> str:
    """Render stored newlines as line breaks."""
    return (text or "").replace("\n", "<br />\n")
