"""
Discuz Forums Miner - resilient retrieval and extraction for Discuz! forums.

Fetches forum listing and thread pages over HTTP (with a headless browser
fallback for anti-bot challenges), decodes legacy encodings, recognises
login walls and challenge pages, and parses the HTML into typed records.
"""

__version__ = "1.0.0"

from .cache import CacheEntry, PageCaches, StalenessCache
from .classifier import ContentClassifier, classify
from .config import Settings
from .decoding import decode
from .errors import (
    FieldExtractionError,
    MinerError,
    ObstacleError,
    StructuralParseError,
    TransientNetworkError,
)
from .extractor import ExtractionEngine
from .fetcher import ResilientFetcher
from .models import (
    ExtractMode,
    FetchSuccess,
    ListingPage,
    ObstacleDetected,
    ObstacleKind,
    PostRecord,
    RenderResult,
    ThreadPage,
    ThreadSummary,
    TransientError,
)
from .render import PlaywrightRenderFetcher, RenderFetcher
from .service import ForumService
from .session import EnvSessionStore, SessionStore, StaticSessionStore

__all__ = [
    "CacheEntry",
    "ContentClassifier",
    "EnvSessionStore",
    "ExtractMode",
    "ExtractionEngine",
    "FetchSuccess",
    "FieldExtractionError",
    "ForumService",
    "ListingPage",
    "MinerError",
    "ObstacleDetected",
    "ObstacleError",
    "ObstacleKind",
    "PageCaches",
    "PlaywrightRenderFetcher",
    "PostRecord",
    "RenderFetcher",
    "RenderResult",
    "ResilientFetcher",
    "SessionStore",
    "StalenessCache",
    "Settings",
    "StaticSessionStore",
    "StructuralParseError",
    "ThreadPage",
    "ThreadSummary",
    "TransientError",
    "TransientNetworkError",
    "classify",
    "decode",
]
