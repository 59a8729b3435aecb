"""Tests for selector chains, field rules and URL helpers."""

from bs4 import BeautifulSoup

from discuz_miner.parser import (
    FieldRule,
    SelectorChain,
    extract_last_int,
    extract_query_param,
    find_post_root,
    leading_digits,
    with_query_param,
)
from discuz_miner.telemetry import ExtractionStats


class TestHelpers:
    def test_extract_last_int(self):
        assert extract_last_int("... 57") == 57
        assert extract_last_int("第 2 页 / 共 13 页") == 13
        assert extract_last_int("下一页") is None
        assert extract_last_int(None) is None

    def test_leading_digits(self):
        assert leading_digits("1001") == "1001"
        assert leading_digits("1001_new") == "1001"
        assert leading_digits("abc") == ""

    def test_extract_query_param(self):
        href = "viewthread.php?tid=1001&extra=page%3D1&page=3"
        assert extract_query_param(href, "tid") == "1001"
        assert extract_query_param(href, "page") == "3"
        assert extract_query_param(href, "fid") is None
        assert extract_query_param("viewthread.php", "tid") is None
        assert extract_query_param(None, "tid") is None

    def test_with_query_param(self):
        assert with_query_param("forumdisplay.php?fid=2&page=5", "page", "2") == "forumdisplay.php?fid=2&page=2"
        assert with_query_param("forumdisplay.php?fid=2", "page", "2") == "forumdisplay.php?fid=2&page=2"


class TestSelectorChain:
    HTML = '<div><p class="new">new</p><p class="old">old</p></div>'

    def test_primary_selector_wins(self):
        soup = BeautifulSoup(self.HTML, "lxml")
        chain = SelectorChain(["p.new", "p.old"], name="test")
        assert chain.select_one(soup).get_text() == "new"

    def test_fallback_selector(self):
        soup = BeautifulSoup(self.HTML, "lxml")
        chain = SelectorChain(["p.missing", "p.old"], name="test")
        assert chain.select_one(soup).get_text() == "old"
        assert [p.get_text() for p in chain.select(soup)] == ["old"]

    def test_primary_is_retried_after_fallback(self):
        chain = SelectorChain(["p.new", "p"], name="test")
        fallback_soup = BeautifulSoup('<p class="old">old</p>', "lxml")
        assert [p.get_text() for p in chain.select(fallback_soup)] == ["old"]

        soup = BeautifulSoup(self.HTML, "lxml")
        assert [p.get_text() for p in chain.select(soup)] == ["new"]

    def test_nothing_matches(self):
        soup = BeautifulSoup(self.HTML, "lxml")
        chain = SelectorChain(["span"], name="test")
        assert chain.select_one(soup) is None
        assert chain.select(soup) == []


class TestFieldRule:
    def test_missing_value_uses_default(self):
        soup = BeautifulSoup("<div></div>", "lxml")
        rule = FieldRule("title", lambda node: None, "untitled")
        assert rule.apply(soup) == "untitled"

    def test_failure_uses_default_and_is_counted(self):
        soup = BeautifulSoup("<div><strong>n/a</strong></div>", "lxml")
        stats = ExtractionStats()
        rule = FieldRule("reply_count", lambda node: int(node.select_one("strong").get_text()), 0)

        assert rule.apply(soup, "1001", stats) == 0
        assert stats.field_failures == {"reply_count": 1}


class TestFindPostRoot:
    def test_pid_ancestor(self):
        soup = BeautifulSoup(
            '<div id="post_1"><table id="pid1"><tr><td id="postmessage_1">x</td></tr></table></div>', "lxml")
        body = soup.select_one("#postmessage_1")
        assert find_post_root(body)["id"] == "pid1"

    def test_post_ancestor(self):
        soup = BeautifulSoup('<div id="post_7"><div id="postmessage_7">x</div></div>', "lxml")
        body = soup.select_one("#postmessage_7")
        assert find_post_root(body)["id"] == "post_7"

    def test_parent_fallback(self):
        soup = BeautifulSoup('<section class="wrap"><div id="postmessage_7">x</div></section>', "lxml")
        body = soup.select_one("#postmessage_7")
        assert find_post_root(body).name == "section"
