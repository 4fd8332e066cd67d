"""
HTML helpers shared by the fetcher, the indexer and the search snippets.

Only the human readable part of a page is indexed, so scripts, styles and
other non-textual tags are dropped before the text is extracted.
"""
import re

from bs4 import BeautifulSoup, Comment

# Tags carrying no readable text
JUNK_TAGS = ["style", "script", "svg", "path", "noscript", "iframe", "canvas", "template"]


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def page_title(html: str) -> str:
    """Text of the <title> element, or an empty string."""
    soup = _soup(html)
    if soup.title is None or soup.title.string is None:
        return ""
    return soup.title.get_text(strip=True)


def visible_text(html: str) -> str:
    """
    Strip non-semantic tags and comments and return the page text.

    Args:
        html: raw HTML content

    Returns:
        Text of the page with whitespace collapsed to single spaces
    """
    soup = _soup(html)

    # 1. drop whole junk tags
    for tag_name in JUNK_TAGS:
        for tag in soup.find_all(tag_name):
            tag.decompose()

    # 2. drop HTML comments
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    # 3. head holds only metadata besides the title
    if soup.head is not None:
        soup.head.decompose()

    text = soup.get_text(separator=" ")
    return re.sub(r"\s+", " ", text).strip()


def extract_links(html: str) -> list[str]:
    """Raw href values of every anchor, in document order."""
    soup = _soup(html)
    return [a["href"] for a in soup.find_all("a", href=True)]
