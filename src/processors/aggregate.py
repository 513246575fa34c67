"""
Monthly rollups of a domain's citations.

Rows are derived entirely from the citation set and upserted by
(user_id, domain, month), so recomputing a month overwrites it and a month
that lost all its citations loses its rows.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from archive import month_window
from db import Database, CitationType, Sentiment
from domain.citation_score import calculate_citation_score, field_value, unique_source_domains


@dataclass
class MonthStats:
    """Counts and score of one month's citations."""
    total_citations: int = 0
    link_count: int = 0
    mention_count: int = 0
    unique_domains: int = 0
    sentiment_positive: int = 0
    sentiment_neutral: int = 0
    sentiment_negative: int = 0
    citation_score: int = 0
    top_topics: List[str] = field(default_factory=list)


def summarize_month(citations, topics: Optional[List[str]] = None) -> MonthStats:
    """Compute MonthStats for a set of citations."""
    citations = list(citations)

    def count(attr, value):
        return sum(1 for c in citations if field_value(getattr(c, attr)) == value.value)

    return MonthStats(
        total_citations=len(citations),
        link_count=count('citation_type', CitationType.LINK),
        mention_count=count('citation_type', CitationType.MENTION),
        unique_domains=len(unique_source_domains(citations)),
        sentiment_positive=count('sentiment', Sentiment.POSITIVE),
        sentiment_neutral=count('sentiment', Sentiment.NEUTRAL),
        sentiment_negative=count('sentiment', Sentiment.NEGATIVE),
        citation_score=calculate_citation_score(citations),
        top_topics=list(topics or [])
    )


def citations_in_month(citations, month: str) -> list:
    """Citations whose crawl date falls inside the month."""
    start, end = month_window(month)
    return [c for c in citations if c.crawl_date and start <= c.crawl_date < end]


def aggregate_months(
    session: Session,
    db: Database,
    user_id: str,
    domain: str,
    months: List[str],
    citations,
    topics: Optional[List[str]] = None
) -> Dict[str, MonthStats]:
    """
    Upsert CitationScore and MonthlyCitationSummary rows for each month.

    A month without citations has its earlier rows deleted.

    Returns:
        Dict of month -> MonthStats for the months that were written
    """
    citations = list(citations)
    written = {}

    for month in months:
        month_citations = citations_in_month(citations, month)
        if not month_citations:
            db.delete_monthly_rollups(session, user_id, domain, month)
            continue

        stats = summarize_month(month_citations, topics)
        key = {'user_id': user_id, 'domain': domain, 'month': month}

        db.upsert_citation_score(session, {
            **key,
            'total_citations': stats.total_citations,
            'link_count': stats.link_count,
            'mention_count': stats.mention_count,
            'unique_domains': stats.unique_domains,
            'sentiment_positive': stats.sentiment_positive,
            'sentiment_neutral': stats.sentiment_neutral,
            'sentiment_negative': stats.sentiment_negative,
            'top_topics': stats.top_topics,
            'citation_score': stats.citation_score,
        })
        db.upsert_monthly_summary(session, {
            **key,
            'citation_count': stats.total_citations,
            'link_count': stats.link_count,
            'mention_count': stats.mention_count,
        })
        written[month] = stats

    session.commit()
    return written
