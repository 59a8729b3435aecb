"""
Content classification for decoded forum pages.

Runs on every response before any parsing, so it only looks at text: an
ordered list of signature rules is checked and the first match wins. Order
matters because signatures overlap (a challenge page may also carry the
forum's login prompt).
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .models import ObstacleKind


@dataclass(frozen=True)
class SignatureRule:
    """
    One obstacle signature.

    A rule matches when ANY of ``any_of`` occurs in the text (skipped when
    empty) and ALL of ``all_of`` occur (skipped when empty).

    Example:
        SignatureRule(
            ObstacleKind.HUMAN_VERIFICATION_REQUIRED,
            all_of=("seccode", "验证码"),
        )
    """
    kind: ObstacleKind
    any_of: Tuple[str, ...] = ()
    all_of: Tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        if not self.any_of and not self.all_of:
            return False
        if self.any_of and not any(marker in text for marker in self.any_of):
            return False
        return all(marker in text for marker in self.all_of)


DEFAULT_RULES: Tuple[SignatureRule, ...] = (
    # Challenge script paths and interstitial boilerplate
    SignatureRule(
        ObstacleKind.ANTI_BOT_CHALLENGE,
        any_of=("/cdn-cgi/challenge-platform", "__CF$cv_params", "Checking your browser", "cf-chl-"),
    ),
    # Exact prompt sentences only; every page has a "登录" link in its navigation
    SignatureRule(
        ObstacleKind.AUTHENTICATION_REQUIRED,
        any_of=("您需要先登录", "您还未登录", "对不起，您无权访问该版块", "无权访问该版块"),
    ),
    # The field name alone shows up on ordinary pages, so the prompt is required too
    SignatureRule(
        ObstacleKind.HUMAN_VERIFICATION_REQUIRED,
        all_of=("seccode", "验证码"),
    ),
    SignatureRule(
        ObstacleKind.PERMISSION_DENIED,
        any_of=("您无权进行当前操作",),
    ),
)


class ContentClassifier:
    """
    Ordered obstacle detector.

    Usage:
        classifier = ContentClassifier()
        kind = classifier.classify(html)
        if kind is None:
            ...  # safe to parse
    """

    def __init__(self, rules: Tuple[SignatureRule, ...] = DEFAULT_RULES):
        self.rules = tuple(rules)

    def classify(self, text: str) -> Optional[ObstacleKind]:
        """Return the first matching obstacle kind, or None for a parseable page."""
        if not text:
            return None
        for rule in self.rules:
            if rule.matches(text):
                return rule.kind
        return None


_default_classifier = ContentClassifier()


def classify(text: str) -> Optional[ObstacleKind]:
    """Classify ``text`` with the default rule set."""
    return _default_classifier.classify(text)
