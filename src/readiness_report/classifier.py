"""Readiness classification of wiki links.

Substring heuristics over the page title and URL decide whether a link
is a CG readiness page, a PG readiness page, both or neither. Each
category is evaluated independently: title first, then URL.
"""

from collections.abc import Iterable
import re

from .config import (
    CATEGORY_TITLE_PHRASES,
    CATEGORY_URL_PATTERNS,
    LABEL_QUALIFIERS,
    PLACEHOLDER_TITLES,
)
from .models import Category, ClassifiedLink, RemoteLink, ResolvedPage

LABEL_SEPARATORS = re.compile(r"[-_\s]+")


def meaningful_title(title: str | None) -> str | None:
    """Return the title, or None if it is blank or a placeholder like 'Page'."""
    if not title:
        return None
    stripped = title.strip()
    if not stripped or stripped.lower() in PLACEHOLDER_TITLES:
        return None
    return stripped


class LinkClassifier:
    """Tags wiki links with readiness categories.

    Args:
        use_labels: Also accept page labels as evidence (the word `cg` or
            `pg` alongside readiness, checklist or completion).
    """

    def __init__(self, use_labels: bool = False) -> None:
        self.use_labels = use_labels

    def classify(
        self,
        resolved_title: str | None,
        resolved_labels: Iterable[str] | None,
        raw_title: str | None,
        url: str | None,
    ) -> frozenset[Category]:
        """Return the categories a link belongs to."""
        title = meaningful_title(resolved_title) or meaningful_title(raw_title)
        corpus = (title or "").lower()
        lowered_url = (url or "").lower()
        labels = [label.lower().strip() for label in resolved_labels or () if label]

        matches = set()
        for category in Category:
            if CATEGORY_TITLE_PHRASES[category.value] in corpus:
                matches.add(category)
            elif any(p in lowered_url for p in CATEGORY_URL_PATTERNS[category.value]):
                matches.add(category)
            elif self.use_labels and self._labels_match(category, labels):
                matches.add(category)
        return frozenset(matches)

    def classify_link(self, link: RemoteLink, page: ResolvedPage) -> ClassifiedLink:
        """Classify a remote link using its resolved page."""
        categories = self.classify(page.title, page.labels, link.title, link.url)
        return ClassifiedLink(link=link, page=page, categories=categories)

    @staticmethod
    def _labels_match(category: Category, labels: list[str]) -> bool:
        """Category and qualifier words in one label, or as two whole labels.

        `cg-readiness` matches, as do the labels `cg` and `checklist` side
        by side. `upgrade-checklist` does not: `pg` is not a word in it.
        """
        qualifiers = set(LABEL_QUALIFIERS)
        for label in labels:
            words = set(LABEL_SEPARATORS.split(label))
            if category.value in words and words & qualifiers:
                return True
        whole = set(labels)
        return category.value in whole and bool(whole & qualifiers)
