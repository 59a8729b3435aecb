"""Tests for post image handling."""

from bs4 import BeautifulSoup

from discuz_miner.images import (
    absolutize_image_url,
    is_decorative_attachment_icon,
    is_placeholder_image,
    sanitize_images,
    strip_img_tags,
    strip_script_blocks,
)


def sanitized(fragment: str) -> str:
    soup = BeautifulSoup(f'<div id="postmessage_1">{fragment}</div>', "lxml")
    node = soup.select_one("div")
    sanitize_images(node)
    return node.decode_contents()


class TestAbsolutize:
    def test_absolute_urls_are_untouched(self):
        assert absolutize_image_url("http://a.example.com/x.jpg") == "http://a.example.com/x.jpg"
        assert absolutize_image_url("HTTPS://a.example.com/x.jpg") == "HTTPS://a.example.com/x.jpg"
        assert absolutize_image_url("data:image/png;base64,AAAA") == "data:image/png;base64,AAAA"

    def test_protocol_relative(self):
        assert absolutize_image_url("//img.example.com/a.png") == "https://img.example.com/a.png"

    def test_relative_to_forum(self):
        assert absolutize_image_url("attachments/a.jpg") == "https://www.4d4y.com/forum/attachments/a.jpg"
        assert absolutize_image_url("/images/smilies/1.gif") == "https://www.4d4y.com/images/smilies/1.gif"

    def test_custom_base(self):
        assert absolutize_image_url("a.jpg", "https://bbs.example.com/") == "https://bbs.example.com/a.jpg"

    def test_blank(self):
        assert absolutize_image_url("  ") == ""


class TestPredicates:
    def test_placeholder(self):
        assert is_placeholder_image("images/common/NONE.GIF")
        assert not is_placeholder_image("attachments/a.gif")

    def test_decorative_icons(self):
        assert is_decorative_attachment_icon("images/default/attachimg.gif")
        assert is_decorative_attachment_icon("images/attachicons/rar.gif")
        assert not is_decorative_attachment_icon("attachments/photo.jpg")


class TestSanitize:
    def test_lazy_attribute_priority(self):
        html = sanitized('<img src="none.gif" data-src="c.jpg" file="b.jpg" zoomfile="a.jpg">')
        assert 'src="https://www.4d4y.com/forum/a.jpg"' in html
        assert "data-src" not in html
        assert "file=" not in html

    def test_blank_lazy_attribute_is_skipped(self):
        html = sanitized('<img src="none.gif" zoomfile="  " data-original="d.jpg">')
        assert 'src="https://www.4d4y.com/forum/d.jpg"' in html

    def test_placeholder_and_icons_are_removed(self):
        html = sanitized('text<img src="images/common/none.gif"><img src="images/attachicons/zip.gif"><img>')
        assert "<img" not in html
        assert html == "text"

    def test_script_and_style_are_removed(self):
        html = sanitized("<script>x()</script><style>p{}</style>body")
        assert "<script" not in html
        assert "<style" not in html
        assert "body" in html


class TestStrip:
    def test_both_tag_forms(self):
        assert strip_img_tags('a<img src="x.jpg">b<IMG SRC="y.jpg" />c') == "abc"

    def test_script_and_style_blocks(self):
        html = 'a<script type="text/javascript">attachimg(1)</script>b<STYLE>p{}</STYLE >c'
        assert strip_script_blocks(html) == "abc"

    def test_script_blocks_across_lines(self):
        assert strip_script_blocks("x<script>\nvar a = '<b>';\n</script>y") == "xy"
