from __future__ import annotations

import re

from bs4 import BeautifulSoup, Comment

DROP_TAGS = ["script", "style", "noscript", "nav", "header", "footer"]
BLOCK_TAGS = ["p", "div", "li", "tr", "h1", "h2", "h3", "h4", "h5", "h6", "section", "article"]
INLINE_WHITESPACE_PATTERN = re.compile(r"[ \t\f\v]+")

FRACTIONS = {
    "½": "1/2",
    "¼": "1/4",
    "¾": "3/4",
    "⅓": "1/3",
    "⅔": "2/3",
    "⅛": "1/8",
}


def _replace_fractions(text: str) -> str:
    for glyph, replacement in FRACTIONS.items():
        text = text.replace(glyph, replacement)
    return text


def strip_html_to_text(markup: str) -> str:
    """Readable text from an HTML page, one block element per line."""
    soup = BeautifulSoup(markup, "html.parser")

    for tag in soup(DROP_TAGS):
        if not tag.decomposed:
            tag.decompose()
    for comment in soup.find_all(string=lambda node: isinstance(node, Comment)):
        comment.extract()

    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(BLOCK_TAGS):
        block.append("\n")

    # entities are already decoded by the parser, so &frac12; arrives as ½
    text = _replace_fractions(soup.get_text()).replace("\xa0", " ")
    text = INLINE_WHITESPACE_PATTERN.sub(" ", text)

    lines = (line.strip() for line in text.splitlines())
    return "\n".join(line for line in lines if line)
