"""Chapter content rendering.

`render_markdown` turns the markdown subset used by the chapter editor into
HTML with a fixed chain of regex substitutions. Each stage consumes the
previous stage's output:

  1. fenced code blocks  -> <pre><code class="language-x">
  2. inline code         -> <code>
  3. images ![alt](src)  -> <img>
  4. bold, italic, #/##/### headings, "- " and "N. " list items
  5. blank lines         -> <br/><br/>

Only code interiors are escaped. Everything else, image `src` and `alt`
included, is passed through as-is, so content must come from the project
owner. `harden=True` escapes all non-code text and only keeps image sources
with an http(s) or data:image scheme.

List items are emitted as bare <li> with no surrounding <ul>/<ol>, and
running the chain on its own output is not a no-op.
"""
from __future__ import annotations

import html
import re
from typing import Optional

CODE_BLOCK_RE = re.compile(r"```(\w+)?\n([\s\S]*?)\n```")
INLINE_CODE_RE = re.compile(r"`([^`]+)`")
IMAGE_RE = re.compile(r"!\[(.*?)\]\((.*?)\)")
BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")
ITALIC_RE = re.compile(r"\*([^*]+)\*")
H1_RE = re.compile(r"^# (.*)$", re.MULTILINE)
H2_RE = re.compile(r"^## (.*)$", re.MULTILINE)
H3_RE = re.compile(r"^### (.*)$", re.MULTILINE)
BULLET_RE = re.compile(r"^- (.*)$", re.MULTILINE)
NUMBERED_RE = re.compile(r"^(\d+)\. (.*)$", re.MULTILINE)

_PLACEHOLDER_RE = re.compile(r"\x00(\d+)\x00")
_SAFE_SRC_RE = re.compile(r"^(https?://|data:image/)", re.IGNORECASE)

PRE_CLASS = "bg-muted p-4 rounded-md overflow-x-auto my-4"
INLINE_CODE_CLASS = "bg-muted px-1 py-0.5 rounded text-sm"
IMG_CLASS = "max-w-full h-auto rounded-md my-4"


def escape_html(unsafe: str) -> str:
    return (
        unsafe.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#039;")
    )


class _Stash:
    """Holds finished code fragments out of reach of the later stages."""

    def __init__(self):
        self.parts: list[str] = []

    def put(self, fragment: str) -> str:
        self.parts.append(fragment)
        return f"\x00{len(self.parts) - 1}\x00"

    def restore(self, text: str) -> str:
        return _PLACEHOLDER_RE.sub(lambda m: self.parts[int(m.group(1))], text)


def _image_tag(alt: str, src: str, harden: bool) -> str:
    if harden:
        # text was escaped already; check the scheme on the original value
        if not _SAFE_SRC_RE.match(html.unescape(src).strip()):
            return alt
    return f'<img src="{src}" alt="{alt or ""}" class="{IMG_CLASS}" />'


def render_markdown(content: Optional[str], harden: bool = False) -> str:
    if not content:
        return ""

    text = content.replace("\x00", "")
    stash = _Stash()

    text = CODE_BLOCK_RE.sub(
        lambda m: stash.put(
            f'<pre class="{PRE_CLASS}"><code class="language-{m.group(1) or "plaintext"}">'
            f"{escape_html(m.group(2))}</code></pre>"
        ),
        text,
    )
    text = INLINE_CODE_RE.sub(
        lambda m: stash.put(f'<code class="{INLINE_CODE_CLASS}">{escape_html(m.group(1))}</code>'),
        text,
    )

    if harden:
        text = escape_html(text)

    text = IMAGE_RE.sub(lambda m: _image_tag(m.group(1), m.group(2), harden), text)

    text = BOLD_RE.sub(r"<strong>\1</strong>", text)
    text = ITALIC_RE.sub(r"<em>\1</em>", text)
    text = H1_RE.sub(r'<h1 class="text-2xl font-bold my-4">\1</h1>', text)
    text = H2_RE.sub(r'<h2 class="text-xl font-bold my-3">\1</h2>', text)
    text = H3_RE.sub(r'<h3 class="text-lg font-bold my-2">\1</h3>', text)
    text = BULLET_RE.sub(r"<li>\1</li>", text)
    text = NUMBERED_RE.sub(r"<li>\2</li>", text)
    text = text.replace("\n\n", "<br/><br/>")

    return stash.restore(text)


# ---------- plain text (PDF export) ----------

_TAG_RE = re.compile(r"<[^>]+>")
_STRIP_STEPS = (
    (re.compile(r"```[\s\S]*?```"), ""),            # code blocks
    (re.compile(r"#{1,6}\s+"), ""),                 # headings
    (re.compile(r"\*\*(.*?)\*\*"), r"\1"),          # bold
    (re.compile(r"\*(.*?)\*"), r"\1"),              # italic
    (re.compile(r"!\[(.*?)\]\((.*?)\)"), r"\1"),    # images -> alt text
    (re.compile(r"\[(.*?)\]\((.*?)\)"), r"\1"),     # links -> text
    (re.compile(r"`(.*?)`"), r"\1"),                # inline code
)


def strip_markdown(content: Optional[str]) -> str:
    if not content:
        return ""
    text = html.unescape(_TAG_RE.sub("", content))
    for pattern, repl in _STRIP_STEPS:
        text = pattern.sub(repl, text)
    return text


# ---------- video embeds ----------

YOUTUBE_RE = re.compile(
    r"(?:youtube\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?)/|.*[?&]v=)|youtu\.be/)([^\"&?/\s]{11})",
    re.IGNORECASE,
)
VIMEO_RE = re.compile(
    r"vimeo\.com/(?:channels/(?:\w+/)?|groups/[^/]*/videos/|album/\d+/video/|)(\d+)(?:$|/|\?)",
    re.IGNORECASE,
)


def video_embed_url(url: Optional[str]) -> Optional[str]:
    """Embeddable player URL for a YouTube or Vimeo link, else None."""
    if not url:
        return None
    m = YOUTUBE_RE.search(url)
    if m:
        return f"https://www.youtube.com/embed/{m.group(1)}"
    m = VIMEO_RE.search(url)
    if m:
        return f"https://player.vimeo.com/video/{m.group(1)}"
    return None
