"""Keyword heuristics for author affiliations and collaboration type."""

import re
from typing import Iterable, Optional

from .models import (
    AffiliationBreakdown,
    AffiliationCategory,
    AuthorAffiliation,
    CollaborationType,
)

ACADEMIA_KEYWORDS = ('univ', 'institute', 'college', 'school', 'laborator', 'centre', 'center')
# Acronyms are matched as whole words so "Smith" does not hit "mit"
ACADEMIA_ACRONYMS = ('mit', 'eth', 'epfl', 'ucla', 'caltech', 'cmu', 'kaist')
INDUSTRY_KEYWORDS = (
    'inc', 'corp', 'labs', 'technolog', 'systems', 'company', 'ltd', 'llc',
    'google', 'microsoft', 'meta', 'ibm', 'amazon', 'nvidia', 'openai', 'deepmind',
)

_ACRONYM_PATTERN = re.compile(r'\b(?:' + '|'.join(ACADEMIA_ACRONYMS) + r')\b')


def classify_affiliation(affiliation: Optional[str]) -> AffiliationCategory:
    """
    Map a free-text affiliation to Academia, Industry or Other.

    Academia keywords win over Industry keywords, so "Google Research
    Center" is Academia.
    """
    if not affiliation:
        return "Other"
    text = affiliation.lower()
    if any(keyword in text for keyword in ACADEMIA_KEYWORDS) or _ACRONYM_PATTERN.search(text):
        return "Academia"
    if any(keyword in text for keyword in INDUSTRY_KEYWORDS):
        return "Industry"
    return "Other"


def infer_collaboration_type(authors: Iterable[AuthorAffiliation]) -> CollaborationType:
    """Derive the collaboration type from classified authors."""
    categories = {author.category for author in authors}
    if not categories:
        return "Unknown"
    has_academia = "Academia" in categories
    has_industry = "Industry" in categories
    if has_academia and has_industry:
        return "Academia-Industry"
    if has_academia:
        return "Academia-only"
    if has_industry:
        return "Industry-only"
    return "Unknown"


def count_affiliations(authors: Iterable[AuthorAffiliation]) -> AffiliationBreakdown:
    counts = {"Academia": 0, "Industry": 0, "Other": 0}
    for author in authors:
        counts[author.category] += 1
    return AffiliationBreakdown(**counts)
