"""Tests for pre-parse trimming of thread documents."""

from discuz_miner.trimming import trim_thread_document

from conftest import PAGE_PADDING, THREAD_HTML, padded_thread_html


def thread_with_table_in_last_post() -> str:
    table = 'before <table class="t_table"><tr><td>cell</td></tr></table> AFTER_TABLE_TEXT'
    return padded_thread_html().replace("第四楼内容", table)


class TestTrimThreadDocument:
    def test_short_documents_are_unchanged(self):
        assert len(THREAD_HTML) < 5000
        assert trim_thread_document(THREAD_HTML) == THREAD_HTML

    def test_keeps_pagination_form_and_posts(self):
        html = padded_thread_html()
        trimmed = trim_thread_document(html)

        assert len(trimmed) < len(html)
        assert trimmed.startswith("<html><body>")
        assert trimmed.endswith("</body></html>")
        assert '<div class="pages">' in trimmed
        assert 'id="postform"' in trimmed
        assert "postmessage_100" in trimmed
        assert "postmessage_103" in trimmed
        assert PAGE_PADDING not in trimmed

    def test_falls_back_to_first_post_table(self):
        html = padded_thread_html().replace('id="postlist"', 'id="content"')
        trimmed = trim_thread_document(html)

        assert PAGE_PADDING not in trimmed
        assert "postmessage_100" in trimmed
        assert "postmessage_103" in trimmed

    def test_uppercase_markup(self):
        html = padded_thread_html().replace("<table", "<TABLE").replace("</table>", "</TABLE>")
        trimmed = trim_thread_document(html)

        assert PAGE_PADDING not in trimmed
        assert "postmessage_103" in trimmed

    def test_no_anchor_returns_full_document(self):
        html = "<html><body>" + PAGE_PADDING + "</body></html>"
        assert trim_thread_document(html) == html

    def test_custom_threshold(self):
        assert trim_thread_document(padded_thread_html(), threshold=10 ** 6) == padded_thread_html()

    def test_table_inside_last_post_is_kept_whole(self):
        trimmed = trim_thread_document(thread_with_table_in_last_post())

        assert PAGE_PADDING not in trimmed
        assert 'class="t_table"' in trimmed
        assert "AFTER_TABLE_TEXT" in trimmed
        assert trimmed.count("<table") == trimmed.count("</table>")

    def test_unclosed_last_post_returns_full_document(self):
        html = padded_thread_html()
        html = html[:html.index("第四楼内容")]
        assert trim_thread_document(html) == html
