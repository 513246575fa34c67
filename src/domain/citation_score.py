"""
Composite citation authority score.

Combines four independently capped components into a 0-100 score for the
citations of one (domain, month):

- Volume:            min(count / 10, 40)
- Link ratio:        links / count * 20
- Positive ratio:    positive / count * 20
- Source diversity:  min(unique source domains / 5, 20)
"""

import math
from typing import Iterable, Set

from db.models import CitationType, Sentiment
from extractors.citations import extract_domain

VOLUME_CAP = 40
LINK_RATIO_WEIGHT = 20
POSITIVE_RATIO_WEIGHT = 20
DIVERSITY_CAP = 20


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (round() rounds half to even)."""
    return int(math.floor(value + 0.5))


def field_value(field):
    """Enum members and plain strings compare the same way."""
    return getattr(field, 'value', field)


def source_domain_of(citation) -> str:
    """Stored source domain, falling back to the source URL's host."""
    domain = getattr(citation, 'source_domain', None)
    if domain:
        return domain
    return extract_domain(getattr(citation, 'source_url', '') or '')


def unique_source_domains(citations: Iterable) -> Set[str]:
    """Distinct referring domains of a citation set."""
    return {source_domain_of(c) for c in citations}


def calculate_citation_score(citations) -> int:
    """
    Calculate the composite score of a citation set.

    Args:
        citations: Citation-like objects with citation_type, sentiment and
            source_domain (or source_url) attributes

    Returns:
        Integer score in [0, 100]; 0 for an empty set
    """
    citations = list(citations)
    total = len(citations)
    if total == 0:
        return 0

    link_count = sum(1 for c in citations if field_value(c.citation_type) == CitationType.LINK.value)
    positive_count = sum(1 for c in citations if field_value(c.sentiment) == Sentiment.POSITIVE.value)

    score = 0.0
    score += min(total / 10, VOLUME_CAP)
    score += (link_count / total) * LINK_RATIO_WEIGHT
    score += (positive_count / total) * POSITIVE_RATIO_WEIGHT
    score += min(len(unique_source_domains(citations)) / 5, DIVERSITY_CAP)

    return max(0, min(round_half_up(score), 100))
