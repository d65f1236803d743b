"""HTML clean-up and HTML -> Markdown conversion for answer bodies."""

import re

from markdownify import markdownify

# Literal wrappers unwrapped before conversion. Authors pasted a lot of
# preformatted code inside a 1x1 full-width table, which markdownify would
# turn into a one-cell table instead of a code block.
UNWRAP = (
    ('<table style="width: 100%;"><tbody><tr><td style="width: 100%;"><pre>', "<pre>"),
    ("</pre></td></tr></tbody></table>", "</pre>"),
)


def sanitize_html(html):
    for old, new in UNWRAP:
        html = html.replace(old, new)
    return html


def to_md(html, heading_style="ATX"):
    """Convert an answer body to Markdown. Unknown tags keep their text content."""
    if not html:
        return ""
    result = markdownify(html, heading_style=heading_style, bullets="-",
                         strip=["script", "style"], newline_style="backslash")
    # markdownify can leave runs of 3+ blank lines around block elements; collapse them
    return re.sub(r"\n{3,}", "\n\n", result).strip()
