"""HTML helpers for Confluence responses.

Pulls summaries out of page storage HTML and describes the login pages
that SSO gateways return in place of JSON.
"""

import re

from bs4 import BeautifulSoup, NavigableString, Tag

from .config import MAX_SUMMARY_CHARS

# Tags with no readable content
TAGS_TO_REMOVE = frozenset([
    "style",
    "script",
    "noscript",
    "svg",
    "iframe",
    "object",
    "embed",
    "template",
])

SUMMARY_HEADING = re.compile(r"^\s*summary:?\s*$", re.IGNORECASE)
SECTION_BREAK_TAGS = ("h1", "h2", "h3")


class StorageParser:
    """Parser for Confluence storage-format and login-page HTML."""

    def __init__(self, max_summary_chars: int = MAX_SUMMARY_CHARS) -> None:
        """Initialize the parser with the fallback summary length."""
        self.max_summary_chars = max_summary_chars

    def extract_summary(self, html: str | None) -> str | None:
        """Extract a summary from page body HTML.

        Tries, in order:
        - content under an h2/h3 "Summary" heading
        - a paragraph starting with <strong>Summary:</strong>
        - the first non-empty paragraph
        - the first `max_summary_chars` characters of the page text
        """
        if not html or not html.strip():
            return None

        soup = BeautifulSoup(html, "lxml")
        self._clean_html(soup)

        summary = self._summary_section(soup)
        if summary:
            return summary

        summary = self._summary_paragraph(soup)
        if summary:
            return summary

        for p in soup.find_all("p"):
            text = self._normalize(p.get_text(" "))
            if text:
                return text

        text = self._normalize(soup.get_text(" "))
        return text[: self.max_summary_chars] or None

    def describe_login_page(self, html: str) -> str:
        """Return a short description of an HTML page served instead of JSON."""
        soup = BeautifulSoup(html, "lxml")
        title_tag = soup.find("title")
        if title_tag:
            title = self._normalize(title_tag.get_text())
            if title:
                return f"HTML page '{title}'"
        if soup.find("form"):
            return "HTML form (likely an SSO login page)"
        return "HTML page"

    def _summary_section(self, soup: BeautifulSoup) -> str | None:
        """Collect text following a Summary heading up to the next section."""
        for heading in soup.find_all(["h2", "h3"]):
            if not SUMMARY_HEADING.match(heading.get_text(strip=True)):
                continue
            parts = []
            for sibling in heading.next_siblings:
                if isinstance(sibling, Tag):
                    if sibling.name in SECTION_BREAK_TAGS:
                        break
                    parts.append(sibling.get_text(" "))
                elif isinstance(sibling, NavigableString):
                    parts.append(str(sibling))
            text = self._normalize(" ".join(parts))
            if text:
                return text
        return None

    def _summary_paragraph(self, soup: BeautifulSoup) -> str | None:
        """Find <p><strong>Summary:</strong> ...</p> and return the rest."""
        for p in soup.find_all("p"):
            strong = p.find("strong")
            if not strong or not SUMMARY_HEADING.match(strong.get_text(strip=True)):
                continue
            parts = []
            for sibling in strong.next_siblings:
                if isinstance(sibling, NavigableString):
                    parts.append(str(sibling))
                elif isinstance(sibling, Tag):
                    parts.append(sibling.get_text(" "))
            text = self._normalize(" ".join(parts))
            text = re.sub(r"^[:\s\-]+", "", text)
            if text:
                return text
        return None

    def _clean_html(self, soup: BeautifulSoup) -> None:
        for tag in soup.find_all(TAGS_TO_REMOVE):
            tag.decompose()

    @staticmethod
    def _normalize(text: str) -> str:
        return re.sub(r"\s+", " ", text).strip()
