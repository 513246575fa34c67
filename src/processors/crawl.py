"""
Month-level crawl with a scan cache.

A (domain, month) pair is scanned against the archive once. Later requests
re-read the citations already stored for that month instead of crawling.
"""

import sys
import time
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from archive import ArchiveIndexClient, ContentFetcher, month_window, representative_date
from db import Database, Citation, Sentiment
from extractors import extract_citations, extract_domain, matches_filters
from settings import MAX_RECORDS_PER_MONTH, RECORD_FETCH_DELAY


def _cached_citations(session: Session, db: Database, user_id: str, domain: str, month: str) -> List[Citation]:
    start, end = month_window(month)
    return db.get_citations(session, domain, user_id=user_id, start=start, end=end)


def _dedupe(citations: List[Citation]) -> List[Citation]:
    seen = set()
    unique = []
    for citation in citations:
        if citation.id in seen:
            continue
        seen.add(citation.id)
        unique.append(citation)
    return unique


def crawl_month(
    session: Session,
    db: Database,
    user_id: str,
    domain: str,
    month: str,
    index_client: ArchiveIndexClient,
    fetcher: ContentFetcher,
    filters: Optional[Dict] = None,
    max_records: int = MAX_RECORDS_PER_MONTH,
    record_delay: float = RECORD_FETCH_DELAY,
    sleep: Callable[[float], None] = time.sleep
) -> List[Citation]:
    """
    Collect the citations of a domain for one month.

    Args:
        session: Database session
        db: Database
        user_id: Owner of the analysis
        domain: Target domain
        month: 'YYYY-MM'
        index_client: Archive index client
        fetcher: Archive content fetcher
        filters: Optional {'query_include': str, 'query_exclude': str}
        max_records: Index records fetched on a cache miss
        record_delay: Seconds between record fetches

    Returns:
        Citation objects stored for the month

    Raises:
        ValueError: If month is not a valid 'YYYY-MM' string
    """
    month_window(month)

    if db.get_crawl_cache(session, domain, month):
        print(f"  {month}: cached, re-reading stored citations")
        return _cached_citations(session, db, user_id, domain, month)

    filters = filters or {}
    index_id = index_client.resolve(month)
    records = index_client.search(domain, month)
    limited = records[:max_records]
    crawl_date = representative_date(month)
    print(f"  {month}: {len(records)} index records ({index_id}), fetching {len(limited)}")

    citations = []
    for i, record in enumerate(limited):
        if i > 0 and record_delay:
            sleep(record_delay)

        try:
            html = fetcher.fetch(record)
            if not html:
                continue

            found = []
            for draft in extract_citations(html, domain, record.url):
                if not matches_filters(draft, filters.get('query_include'), filters.get('query_exclude')):
                    continue

                data = {
                    'user_id': user_id,
                    'domain': domain,
                    'source_url': draft.source_url,
                    'source_domain': extract_domain(draft.source_url),
                    'citation_type': draft.citation_type,
                    'citation_text': draft.citation_text,
                    'anchor_text': draft.anchor_text,
                    'target_url': draft.target_url,
                    'context_before': draft.context_before,
                    'context_after': draft.context_after,
                    'is_dofollow': draft.is_dofollow,
                    'crawl_date': crawl_date,
                    'sentiment': Sentiment.NEUTRAL,
                }
                found.append(db.upsert_citation(session, data))

            session.commit()
            citations.extend(found)
        except Exception as e:
            session.rollback()
            print(f"Warning: Skipping archive record {record.url}: {e}", file=sys.stderr)
            continue

    db.save_crawl_cache(session, domain, month, records_considered=len(limited), index_id=index_id)
    session.commit()

    return _dedupe(citations)
