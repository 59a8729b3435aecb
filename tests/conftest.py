"""Configure test paths and shared forum page fixtures."""
import sys
from pathlib import Path

import pytest

# Add src/ to path so tests can import the package
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


LISTING_HTML = """
<html>
<head>
<meta http-equiv="Content-Type" content="text/html; charset=gbk" />
<title>Discovery - 4D4Y</title>
</head>
<body>
<div class="pages_btns">
<div class="pages"><em>&nbsp;1234&nbsp;</em><strong>1</strong><a href="forumdisplay.php?fid=2&amp;page=2">2</a><a href="forumdisplay.php?fid=2&amp;page=3">3</a><a href="forumdisplay.php?fid=2&amp;page=50" class="last">... 50</a><a href="forumdisplay.php?fid=2&amp;page=2" class="next">下一页</a></div>
</div>
<table id="forum_2" summary="forum_2" cellspacing="0" cellpadding="0">
<tbody id="stickthread_900"><tr>
<th class="subject"><span id="thread_900"><a href="viewthread.php?tid=900&amp;extra=page%3D1">置顶公告</a></span></th>
<td class="author"><cite><a href="space.php?uid=1">版主</a></cite><em>2020-1-1</em></td>
</tr></tbody>
<tbody id="normalthread_1001"><tr>
<th class="subject new">
<span id="thread_1001"><a href="viewthread.php?tid=1001&amp;extra=page%3D1">测试帖子标题一</a></span>
<span class="threadpages"><a href="viewthread.php?tid=1001&amp;extra=page%3D1&amp;page=2">2</a><a href="viewthread.php?tid=1001&amp;extra=page%3D1&amp;page=3">3</a><a href="viewthread.php?tid=1001&amp;extra=page%3D1&amp;page=5">5</a></span>
</th>
<td class="author"><cite><a href="space.php?uid=501">作者甲</a></cite><em>2024-1-15</em></td>
<td class="nums"><strong>42</strong> / <em>1234</em></td>
<td class="lastpost"><cite><a href="space.php?username=%BB%D8">回复者乙</a></cite><em><a href="redirect.php?tid=1001&amp;goto=lastpost#lastpost">2024-1-16 10:30</a></em></td>
</tr></tbody>
<tbody id="normalthread_1002"><tr>
<th class="subject"><span id="thread_1002"><a href="viewthread.php?tid=1002&amp;extra=page%3D1">匿名发帖</a></span></th>
<td class="author"><cite>匿名</cite><em>2024-1-14</em></td>
<td class="nums"><strong>n/a</strong> / <em>88</em></td>
<td class="lastpost"><cite><a href="space.php?username=%BC%D7">作者丙</a></cite><em><a href="redirect.php?tid=1002&amp;goto=lastpost#lastpost">2024-1-15 09:00</a></em></td>
</tr></tbody>
<tbody id="normalthread_1003"><tr>
<th class="subject"><span id="thread_1003"><a href="viewthread.php?tid=1003&amp;extra=page%3D1">第三个帖子</a></span></th>
<td class="author"><cite><a href="space.php?uid=503">作者丙</a></cite><em>2024-1-13</em></td>
<td class="nums"><strong>0</strong> / <em>7</em></td>
<td class="lastpost"><cite><a href="space.php?username=%BC%D7">作者丙</a></cite><em><a href="redirect.php?tid=1003&amp;goto=lastpost#lastpost">2024-1-13 20:00</a></em></td>
</tr></tbody>
<tbody id="normalthread_1004"><tr><th class="subject">已删除</th></tr></tbody>
</table>
</body>
</html>
"""

THREAD_HTML = """
<html>
<head><title>测试帖子 - Discovery - 4D4Y</title></head>
<body>
<div class="pages"><strong>1</strong><a href="viewthread.php?tid=999&amp;page=2">2</a><a href="viewthread.php?tid=999&amp;page=3" class="last">... 3</a><a href="viewthread.php?tid=999&amp;page=2" class="next">下一页</a></div>
<div id="postlist" class="mainbox viewthread">
<div id="post_100">
<table id="pid100" summary="pid100" cellspacing="0" cellpadding="0"><tr>
<td class="postauthor"><div class="postinfo"><a href="space.php?uid=501" target="_blank">楼主网名</a></div></td>
<td class="postcontent">
<div class="postinfo"><strong>1#</strong> <em>发表于 2024-1-15 10:00</em></div>
<div class="defaultpost"><div class="t_msgfontfix"><table cellspacing="0" cellpadding="0"><tr><td class="t_msgfont" id="postmessage_100">第一楼内容<br />
<img src="images/common/none.gif" zoomfile="attachments/day_240115/pic_001_large.jpg" file="attachments/day_240115/pic_001.jpg" onload="attachimg(this)" alt="" />
<script type="text/javascript">attachimg(1)</script></td></tr></table></div></div>
</td></tr></table>
</div>
<div id="post_101">
<table id="pid101" summary="pid101" cellspacing="0" cellpadding="0"><tr>
<td class="postauthor"><div class="postinfo"><a href="space.php?uid=502" target="_blank">回复者乙</a></div></td>
<td class="postcontent">
<div class="postinfo"><strong>2#</strong> <em>发表于 2024-1-15 11:00</em></div>
<div class="defaultpost"><div class="t_msgfontfix"><table cellspacing="0" cellpadding="0"><tr><td class="t_msgfont" id="postmessage_101">第二楼内容
<img src="attachments/day_240115/pic_002.jpg" alt="" />
<img src="images/attachicons/image.gif" alt="" />
<img src="images/default/attachimg.gif" alt="" />
<img src="//img.example.com/a.png" alt="" />
</td></tr></table></div></div>
</td></tr></table>
</div>
<div id="post_102">
<table id="pid102" summary="pid102" cellspacing="0" cellpadding="0"><tr>
<td class="postauthor"><div class="postinfo"><a href="space.php?uid=503" target="_blank">作者丙</a></div></td>
<td class="postcontent">
<div class="postinfo"><strong>3#</strong> <em>发表于 2024-1-15 12:00</em></div>
<div class="defaultpost"><div class="t_msgfontfix"><table cellspacing="0" cellpadding="0"><tr><td class="t_msgfont" id="postmessage_102">第三楼内容 <img src="images/common/none.gif" alt="" /></td></tr></table></div></div>
</td></tr></table>
</div>
<div id="post_103">
<table id="pid103" summary="pid103" cellspacing="0" cellpadding="0"><tr>
<td class="postauthor"><div class="postinfo"><a href="space.php?uid=504" target="_blank">作者丁</a></div></td>
<td class="postcontent">
<div class="postinfo"><strong>4#</strong> <em>发表于 2024-1-15 13:00</em></div>
<div class="defaultpost"><div class="t_msgfontfix"><table cellspacing="0" cellpadding="0"><tr><td class="t_msgfont" id="postmessage_103">第四楼内容</td></tr></table></div></div>
</td></tr></table>
</div>
</div>
<form method="post" id="postform" action="post.php?action=reply&amp;fid=2&amp;tid=999&amp;extra=page%3D1&amp;replysubmit=yes">
<textarea name="message"></textarea>
</form>
</body>
</html>
"""

# Navigation and scripts in front of the post list, as on real pages
PAGE_PADDING = '<div id="nav">' + "<a href=\"index.php\">首页</a>" * 400 + "</div>"

LOGIN_HTML = """
<html><body>
<div class="box message"><h1>Discovery 提示信息</h1>
<p>对不起，您还未登录，无法进行此操作。您需要先登录才能继续本操作</p>
<a href="logging.php?action=login">登录</a>
</div>
</body></html>
"""

CHALLENGE_HTML = """
<html><head><title>Just a moment...</title></head>
<body>
<h1>Checking your browser before accessing www.4d4y.com.</h1>
<script src="/cdn-cgi/challenge-platform/h/b/orchestrate/jsch/v1"></script>
</body></html>
"""

EMPTY_LISTING_HTML = """
<html><body>
<div class="pages"><strong>1</strong></div>
<table id="forum_2"></table>
</body></html>
"""


def padded_thread_html() -> str:
    """Thread page well above the trimming threshold."""
    return THREAD_HTML.replace("<body>", "<body>" + PAGE_PADDING, 1)


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


async def no_sleep(delay: float):
    return None


@pytest.fixture
def listing_html():
    return LISTING_HTML


@pytest.fixture
def thread_html():
    return THREAD_HTML


@pytest.fixture
def clock():
    return FakeClock()
