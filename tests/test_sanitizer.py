from app.services.sanitizer import sanitize_text


def test_plain_text_unchanged():
    assert sanitize_text("Hello, what do you build?") == "Hello, what do you build?"


def test_tags_removed_text_kept():
    assert sanitize_text("<b>Hi</b> <a href='x'>there</a>") == "Hi there"


def test_script_and_style_content_dropped():
    raw = "before<script>alert('x')</script><style>p{}</style>after"
    assert sanitize_text(raw) == "beforeafter"


def test_comments_dropped():
    assert sanitize_text("a<!-- <b>hidden</b> -->b") == "ab"


def test_entities_decoded():
    assert sanitize_text("1 &lt; 2 &amp;&amp; <i>ok</i>") == "1 < 2 && ok"


def test_empty_and_none():
    assert sanitize_text("") == ""
    assert sanitize_text(None) == ""
    assert sanitize_text("   <br/>  ") == ""


def test_comparison_operators_survive():
    assert sanitize_text("x < 3 and y > 2") == "x < 3 and y > 2"


def test_nested_tags_do_not_rebuild_markup():
    assert sanitize_text("<<b>script>alert(1)<</b>/script>") == ""


def test_gt_inside_quoted_attribute():
    assert sanitize_text('<img src=x alt="a>b">hi') == "hi"


def test_escaped_markup_is_stripped_too():
    assert sanitize_text("&lt;b&gt;bold&lt;/b&gt; text") == "bold text"