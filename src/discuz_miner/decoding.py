"""
Byte decoding for forum responses.

The forum serves GBK by default, but individual pages, proxies and the render
fallback may hand back UTF-8 or UTF-16. ``decode`` settles on a charset using
the following order (first match wins):

1. Byte-order mark
2. ``charset=`` parameter of the Content-Type header
3. ``<meta charset>`` / ``<meta http-equiv content="...charset=...">``
4. The configured default legacy encoding

Decoding never raises; undecodable byte sequences are replaced.
"""

import codecs
import logging
import re
from typing import Optional, Tuple

from .config import DEFAULT_CHARSET

logger = logging.getLogger(__name__)

# Longest BOM first so UTF-8's three bytes are not mistaken for anything else
BOMS = (
    (codecs.BOM_UTF8, "UTF-8"),
    (codecs.BOM_UTF16_BE, "UTF-16BE"),
    (codecs.BOM_UTF16_LE, "UTF-16LE"),
)

# Only the head of the document is scanned for <meta> declarations
META_SCAN_BYTES = 8192

HEADER_CHARSET_RE = re.compile(r"charset\s*=\s*[\"']?\s*([\w.:-]+)", re.IGNORECASE)
META_CHARSET_RE = re.compile(
    r"<meta[^>]+charset\s*=\s*[\"']?\s*([\w.:-]+)",
    re.IGNORECASE,
)

# Lowercased label -> canonical name. Labels not listed are upper-cased as-is.
CHARSET_ALIASES = {
    "utf8": "UTF-8",
    "utf-8": "UTF-8",
    "gbk": "GBK",
    "x-gbk": "GBK",
    "cp936": "GBK",
    "gb18030": "GB18030",
    "big5": "BIG5",
    "latin1": "ISO-8859-1",
    "latin-1": "ISO-8859-1",
    "iso-8859-1": "ISO-8859-1",
}


def is_supported(charset: str) -> bool:
    """True if Python ships a codec for ``charset``."""
    try:
        codecs.lookup(charset)
    except LookupError:
        return False
    return True


def normalize_charset(label: Optional[str]) -> Optional[str]:
    """
    Fold a charset label to a canonical, decodable name.

    Returns None when the label is empty or no codec exists for it, so the
    caller can fall through to the next strategy.

    Example:
        normalize_charset("utf8")    # "UTF-8"
        normalize_charset("gb2312")  # "GB2312"
        normalize_charset("klingon") # None
    """
    if not label:
        return None
    key = label.strip().strip("\"'").lower()
    if not key:
        return None

    if key == "gb2312":
        canonical = "GB2312" if is_supported("gb2312") else "GBK"
    else:
        canonical = CHARSET_ALIASES.get(key, key.upper())

    return canonical if is_supported(canonical) else None


def sniff_bom(body: bytes) -> Optional[Tuple[str, int]]:
    """Return (charset, bom_length) when ``body`` starts with a known BOM."""
    for bom, charset in BOMS:
        if body.startswith(bom):
            return charset, len(bom)
    return None


def charset_from_header(content_type: Optional[str]) -> Optional[str]:
    """Extract and normalise the charset parameter of a Content-Type value."""
    if not content_type:
        return None
    match = HEADER_CHARSET_RE.search(content_type)
    return normalize_charset(match.group(1)) if match else None


def charset_from_meta(body: bytes, scan_bytes: int = META_SCAN_BYTES) -> Optional[str]:
    """
    Find a charset declared in a <meta> tag.

    The head of the body is read as Latin-1: every byte maps to one
    character and the patterns are pure ASCII, so any ASCII-compatible
    encoding is scanned correctly without knowing it yet.
    """
    head = body[:scan_bytes].decode("latin-1")
    for match in META_CHARSET_RE.finditer(head):
        charset = normalize_charset(match.group(1))
        if charset:
            return charset
    return None


def decode(body: bytes, content_type: Optional[str] = None,
           default_encoding: str = DEFAULT_CHARSET) -> Tuple[str, str]:
    """
    Decode a response body.

    Args:
        body: Raw response bytes
        content_type: Value of the Content-Type response header, if any
        default_encoding: Charset used when nothing else declares one

    Returns:
        (text, charset_used)

    Example:
        text, charset = decode(response.content, response.headers.get("Content-Type"))
    """
    if not body:
        return "", normalize_charset(default_encoding) or "UTF-8"

    bom = sniff_bom(body)
    if bom:
        charset, offset = bom
        return body[offset:].decode(charset, errors="replace"), charset

    charset = charset_from_header(content_type) or charset_from_meta(body)
    if charset is None:
        charset = normalize_charset(default_encoding)
        if charset is None:
            logger.warning("Default charset %r is not supported, using UTF-8", default_encoding)
            charset = "UTF-8"

    return body.decode(charset, errors="replace"), charset
