"""Tests for sharebook.rendering: the chapter markdown chain, plain-text
flattening for PDF export, and video embed URLs."""
from sharebook.rendering import (
    IMG_CLASS,
    escape_html,
    render_markdown,
    strip_markdown,
    video_embed_url,
)


# ---------------------------------------------------------------------------
# code
# ---------------------------------------------------------------------------

def test_fenced_code_block_gets_language_class():
    out = render_markdown("```js\nconsole.log(1)\n```")
    assert out.startswith("<pre ")
    assert '<code class="language-js">console.log(1)</code>' in out
    assert out.endswith("</pre>")


def test_fenced_code_without_language_is_plaintext():
    out = render_markdown("```\nx = 1\n```")
    assert '<code class="language-plaintext">x = 1</code>' in out


def test_code_interior_is_escaped():
    out = render_markdown("```html\n<script>alert('x')</script>\n```")
    interior = out.split('<code class="language-html">', 1)[1].split("</code>", 1)[0]
    assert "<" not in interior and ">" not in interior
    assert "&lt;script&gt;alert(&#039;x&#039;)&lt;/script&gt;" == interior


def test_markdown_inside_code_is_left_alone():
    out = render_markdown("```\n**not bold**\n# not a heading\n```")
    assert "<strong>" not in out
    assert "<h1" not in out
    assert "**not bold**" in out


def test_inline_code():
    out = render_markdown("run `a < b` now")
    assert '<code class="bg-muted px-1 py-0.5 rounded text-sm">a &lt; b</code>' in out
    assert out.startswith("run ") and out.endswith(" now")


# ---------------------------------------------------------------------------
# images
# ---------------------------------------------------------------------------

def test_image_is_emitted_verbatim():
    out = render_markdown("![a](http://x/y.png)")
    assert out == f'<img src="http://x/y.png" alt="a" class="{IMG_CLASS}" />'


def test_image_attributes_are_not_escaped_by_default():
    # attribute breakout survives: owner-authored content is trusted
    out = render_markdown('![x](http://a/b.png" onerror="steal)')
    assert '<img src="http://a/b.png" onerror="steal" alt="x"' in out


def test_hardened_render_escapes_and_drops_unsafe_sources():
    out = render_markdown('![x](http://a/b.png" onerror="steal)', harden=True)
    assert 'onerror="steal"' not in out
    assert "&quot; onerror=&quot;steal" in out

    out = render_markdown("![x](javascript:alert(1))", harden=True)
    assert "<img" not in out

    out = render_markdown("<script>bad()</script> and ![ok](https://cdn/ok.png)", harden=True)
    assert "<script>" not in out
    assert "&lt;script&gt;" in out
    assert f'<img src="https://cdn/ok.png" alt="ok" class="{IMG_CLASS}" />' in out


def test_hardened_render_keeps_formatting():
    out = render_markdown("# Title\n\n**bold** and *it*", harden=True)
    assert '<h1 class="text-2xl font-bold my-4">Title</h1>' in out
    assert "<strong>bold</strong>" in out
    assert "<em>it</em>" in out


# ---------------------------------------------------------------------------
# text formatting
# ---------------------------------------------------------------------------

def test_headings_bold_italic_lists_and_breaks():
    src = "# One\n## Two\n### Three\n\n**b** *i*\n\n- apple\n2. pear"
    out = render_markdown(src)
    assert '<h1 class="text-2xl font-bold my-4">One</h1>' in out
    assert '<h2 class="text-xl font-bold my-3">Two</h2>' in out
    assert '<h3 class="text-lg font-bold my-2">Three</h3>' in out
    assert "<strong>b</strong> <em>i</em>" in out
    assert "<li>apple</li>" in out
    assert "<li>pear</li>" in out
    assert out.count("<br/><br/>") == 2
    # no wrapping list element
    assert "<ul>" not in out and "<ol>" not in out


def test_empty_content_renders_empty():
    assert render_markdown("") == ""
    assert render_markdown(None) == ""


def test_escape_html_covers_quotes():
    assert escape_html("<a href='x'>&</a>\"") == "&lt;a href=&#039;x&#039;&gt;&amp;&lt;/a&gt;&quot;"


# ---------------------------------------------------------------------------
# strip_markdown
# ---------------------------------------------------------------------------

def test_strip_markdown_flattens_to_plain_text():
    src = "# Heading\n\n**Bold** and *it* with `code`, ![pic](u.png) and [link](http://x)\n```\nskipped\n```"
    out = strip_markdown(src)
    assert "Heading" in out and "#" not in out
    assert "Bold and it with code, pic and link" in out
    assert "skipped" not in out


def test_strip_markdown_removes_html_tags():
    assert strip_markdown("<p>Hello &amp; bye</p>") == "Hello & bye"


# ---------------------------------------------------------------------------
# video embeds
# ---------------------------------------------------------------------------

def test_youtube_and_vimeo_embed_urls():
    assert video_embed_url("https://www.youtube.com/watch?v=dQw4w9WgXcQ") == \
        "https://www.youtube.com/embed/dQw4w9WgXcQ"
    assert video_embed_url("https://youtu.be/dQw4w9WgXcQ") == "https://www.youtube.com/embed/dQw4w9WgXcQ"
    assert video_embed_url("https://vimeo.com/76979871") == "https://player.vimeo.com/video/76979871"


def test_unknown_video_host_has_no_embed():
    assert video_embed_url("https://example.com/video.mp4") is None
    assert video_embed_url(None) is None


def test_rendering_its_own_output_changes_it():
    once = render_markdown("**a* b*")
    assert once == "*<em>a</em> b*"
    assert render_markdown(once) == "<em><em>a</em> b</em>"
