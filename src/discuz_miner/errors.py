"""
Error taxonomy for the Discuz Forums Miner.

- TransientNetworkError: retried by the fetcher, raised once retries run out
- ObstacleError: a classified obstacle page; never retried here
- StructuralParseError: the page has a shape the engine does not understand
- FieldExtractionError: one row/post field failed; handled inside the engine
"""

from typing import Optional

from .config import EXCERPT_LENGTH
from .models import ObstacleKind


def excerpt(text: Optional[str], limit: int = EXCERPT_LENGTH) -> str:
    """Return at most ``limit`` leading characters of a document."""
    if not text:
        return ""
    return text[:limit]


class MinerError(Exception):
    """Base class for every error this package raises."""


class TransientNetworkError(MinerError):
    """The page could not be retrieved (after retries, where applicable)."""

    def __init__(self, message: str, url: str = "", status_code: Optional[int] = None,
                 excerpt_text: str = ""):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.excerpt = excerpt(excerpt_text)

    def __str__(self) -> str:
        return f"{self.args[0]} [{self.url}]" if self.url else self.args[0]


class ObstacleError(MinerError):
    """The forum answered with an obstacle page (challenge, login wall, ...)."""

    def __init__(self, kind: ObstacleKind, url: str = "", status_code: Optional[int] = None):
        super().__init__(f"{kind.value} at {url}" if url else kind.value)
        self.kind = kind
        self.url = url
        self.status_code = status_code


class StructuralParseError(MinerError):
    """
    A whole page could not be parsed.

    Carries a bounded excerpt of the offending document rather than the
    document itself, so errors can be logged without dumping page bodies.
    """

    def __init__(self, message: str, document: str = "", url: str = ""):
        super().__init__(message)
        self.excerpt = excerpt(document)
        self.url = url

    def with_url(self, url: str) -> "StructuralParseError":
        self.url = url
        return self


class FieldExtractionError(MinerError):
    """One field of one row/post could not be read."""

    def __init__(self, field: str, item_id: str = "", cause: Optional[BaseException] = None):
        super().__init__(f"field {field!r} of item {item_id or '?'}: {cause}")
        self.field = field
        self.item_id = item_id
        self.cause = cause
