"""
Session store collaborators.

The miner never logs in and never parses cookies. It only needs read access
to the current ``Cookie`` header value, which whoever owns the session
(a login script, a browser export, an environment variable) keeps up to date.
"""

import os
from typing import Optional, Protocol


COOKIE_ENV_VAR = "DISCUZ_COOKIE"


class SessionStore(Protocol):
    """Read-only view of the current session cookie."""

    def cookie_header(self) -> Optional[str]:
        ...


class StaticSessionStore:
    """A cookie header fixed at construction time (or none at all)."""

    def __init__(self, cookie: Optional[str] = None):
        self._cookie = cookie

    def cookie_header(self) -> Optional[str]:
        return self._cookie or None


class EnvSessionStore:
    """Reads the cookie header from an environment variable on every request."""

    def __init__(self, var_name: str = COOKIE_ENV_VAR):
        self.var_name = var_name

    def cookie_header(self) -> Optional[str]:
        value = os.getenv(self.var_name, "").strip()
        return value or None
