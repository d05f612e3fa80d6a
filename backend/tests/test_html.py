from minara_cms.text.html import (
    ELLIPSIS,
    clamp,
    decode_entities,
    escape_html,
    plain_text,
    sanitize_for_render,
    strip_html,
)


def test_strip_html():
    assert strip_html("<p>Hello <b>World</b></p>") == "Hello World"
    assert strip_html("  <div>\n a \n\n b </div> ") == "a b"
    assert strip_html(None) == ""


def test_decode_entities():
    assert decode_entities("AT&amp;T &lt;b&gt; &quot;x&quot; it&#39;s") == 'AT&T <b> "x" it\'s'
    assert decode_entities("100&nbsp;km") == "100\u00a0km"


def test_decode_entities_single_pass():
    """Double-escaped input decodes exactly once."""
    assert decode_entities("&amp;lt;") == "&lt;"


def test_unknown_entities_untouched():
    assert decode_entities("&copy; &hellip;") == "&copy; &hellip;"


def test_plain_text():
    assert plain_text("<p>Fasting&nbsp;in   <em>Ramadan</em></p>") == "Fasting in Ramadan"
    assert plain_text("") == ""


def test_sanitize_removes_script_blocks():
    html = '<p>ok</p><script type="text/javascript">alert("x")</script><style>p{}</style>'
    result = sanitize_for_render(html)
    assert "<script" not in result.lower()
    assert "<style" not in result.lower()
    assert "<p>ok</p>" in result


def test_sanitize_removes_unclosed_script():
    assert "<script" not in sanitize_for_render("<p>a</p><SCRIPT>alert(1)").lower()


def test_sanitize_removes_event_handlers():
    for html in (
        '<a href="#" onclick="steal()">x</a>',
        "<a href='#' onclick='steal()'>x</a>",
        "<img src=a.png onerror=steal()>",
        '<div ONMOUSEOVER = "steal()">x</div>',
    ):
        result = sanitize_for_render(html).lower()
        assert "onclick" not in result
        assert "onerror" not in result
        assert "onmouseover" not in result


def test_sanitize_removes_javascript_uri():
    result = sanitize_for_render('<a href="javascript:alert(1)">x</a><a href="java script:x">y</a>')
    assert "javascript:" not in result.lower()
    assert "java script:" not in result.lower()


def test_sanitize_keeps_plain_markup():
    html = '<h2>Title</h2><p class="lead">Body <a href="/books/1">link</a></p>'
    assert sanitize_for_render(html) == html


def test_clamp_short_text_untouched():
    assert clamp("short", 160) == "short"
    assert clamp("", 160) == ""


def test_clamp_truncates_with_ellipsis():
    text = "word " * 100
    result = clamp(text, 160)
    assert len(result) <= 161
    assert result.endswith(ELLIPSIS)


def test_clamp_exact_length():
    text = "a" * 160
    assert clamp(text, 160) == text


def test_escape_html():
    assert escape_html('Tom & "Jerry" <3>') == "Tom &amp; &quot;Jerry&quot; &lt;3&gt;"
    assert escape_html(None) == ""


def test_plain_text_drops_script_bodies():
    assert plain_text("<p>Intro</p><script>alert(1)</script><p>Body</p>") == "Intro Body"


def test_sanitize_keeps_body_text_that_looks_like_attributes():
    assert sanitize_for_render("<p>Stay online = always connected</p>") == "<p>Stay online = always connected</p>"
    assert sanitize_for_render("<p>Learn JavaScript: the basics</p>") == "<p>Learn JavaScript: the basics</p>"


def test_sanitize_removes_slash_separated_handler():
    result = sanitize_for_render("<svg/onload=alert(1)><p>x</p>")
    assert "onload" not in result.lower()
    assert "<p>x</p>" in result


def test_sanitize_handler_after_quoted_angle_bracket():
    result = sanitize_for_render('<a title=">" onclick="steal()">x</a>')
    assert "onclick" not in result
    assert result == '<a title=">">x</a>'
