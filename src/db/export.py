"""
Plain-dict export of stored rows for API results and JSON output.
"""

from datetime import date, datetime
from typing import Dict, Optional

from db.models import Job, Citation, CitationScore, MonthlyCitationSummary


def _iso(value) -> Optional[str]:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _enum(value):
    return getattr(value, 'value', value)


def job_to_dict(job: Job) -> Dict:
    """Status view of a job."""
    return {
        'id': job.id,
        'user_id': job.user_id,
        'domain': job.domain,
        'job_type': _enum(job.job_type),
        'status': _enum(job.status),
        'progress': job.progress,
        'total_citations': job.total_citations,
        'error_message': job.error_message,
        'crawl_months': list(job.crawl_months or []),
        'filters': job.filters,
        'competitor_domains': job.competitor_domains,
        'started_at': _iso(job.started_at),
        'completed_at': _iso(job.completed_at),
        'created_at': _iso(job.created_at),
    }


def citation_to_dict(citation: Citation) -> Dict:
    return {
        'id': citation.id,
        'user_id': citation.user_id,
        'domain': citation.domain,
        'source_url': citation.source_url,
        'source_domain': citation.source_domain,
        'citation_type': _enum(citation.citation_type),
        'citation_text': citation.citation_text,
        'anchor_text': citation.anchor_text,
        'target_url': citation.target_url,
        'context_before': citation.context_before,
        'context_after': citation.context_after,
        'is_dofollow': citation.is_dofollow,
        'crawl_date': _iso(citation.crawl_date),
        'sentiment': _enum(citation.sentiment),
        'topics': list(citation.topics or []),
    }


def score_to_dict(score: CitationScore) -> Dict:
    return {
        'user_id': score.user_id,
        'domain': score.domain,
        'month': score.month,
        'total_citations': score.total_citations,
        'link_count': score.link_count,
        'mention_count': score.mention_count,
        'unique_domains': score.unique_domains,
        'sentiment_positive': score.sentiment_positive,
        'sentiment_neutral': score.sentiment_neutral,
        'sentiment_negative': score.sentiment_negative,
        'top_topics': list(score.top_topics or []),
        'citation_score': score.citation_score,
    }


def summary_to_dict(summary: MonthlyCitationSummary) -> Dict:
    return {
        'user_id': summary.user_id,
        'domain': summary.domain,
        'month': summary.month,
        'citation_count': summary.citation_count,
        'link_count': summary.link_count,
        'mention_count': summary.mention_count,
    }
