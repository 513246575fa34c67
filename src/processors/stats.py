"""
Citation statistics for one analyzed domain.
"""

import sys
from collections import Counter
from typing import Dict, List, Optional

from db import Database, CitationType, Sentiment
from db.export import score_to_dict, summary_to_dict
from domain.citation_score import field_value, source_domain_of, unique_source_domains
from llm.classifier import TextClassifier
from processors.jobs import normalize_domain

TOP_LIMIT = 10
RECENT_LIMIT = 10
SUMMARY_SAMPLE_LIMIT = 10
SUMMARY_FALLBACK = "Citation summary could not be generated."


def bracketed_context(citation) -> str:
    """Context with the citation text marked: 'before [text] after'."""
    return f"{citation.context_before or ''} [{citation.citation_text}] {citation.context_after or ''}"


def citation_totals(citations) -> Dict:
    """Headline counts shared by stats and competitor comparisons."""
    citations = list(citations)
    return {
        'total_citations': len(citations),
        'total_links': sum(1 for c in citations if field_value(c.citation_type) == CitationType.LINK.value),
        'total_mentions': sum(1 for c in citations if field_value(c.citation_type) == CitationType.MENTION.value),
        'positive_sentiment': sum(1 for c in citations if field_value(c.sentiment) == Sentiment.POSITIVE.value),
        'unique_domains': len(unique_source_domains(citations)),
    }


def sentiment_counts(citations) -> Dict[str, int]:
    counts = Counter(field_value(c.sentiment) for c in citations)
    return {s.value: counts.get(s.value, 0) for s in Sentiment}


def top_source_domains(citations, limit: int = TOP_LIMIT) -> List[Dict]:
    """Most frequent referring domains as [{'domain', 'count'}]."""
    counts = Counter(d for d in (source_domain_of(c) for c in citations) if d)
    return [{'domain': domain, 'count': count} for domain, count in counts.most_common(limit)]


def top_topics(citations, limit: int = TOP_LIMIT) -> List[Dict]:
    """Most frequent topic labels as [{'topic', 'count'}]."""
    counts = Counter(topic for c in citations for topic in (c.topics or []))
    return [{'topic': topic, 'count': count} for topic, count in counts.most_common(limit)]


def generate_summary(classifier: TextClassifier, domain: str, citations) -> str:
    """
    Narrative summary of a domain's citations.

    Returns:
        The summary, or SUMMARY_FALLBACK if the classifier fails
    """
    citations = list(citations)
    totals = citation_totals(citations)
    data = {
        'domain': domain,
        'stats': {
            'total': totals['total_citations'],
            'links': totals['total_links'],
            'mentions': totals['total_mentions'],
            'sentiment': sentiment_counts(citations),
        },
        'top_domains': top_source_domains(citations),
        'samples': [
            {
                'citation_type': field_value(c.citation_type),
                'source_url': c.source_url,
                'context': bracketed_context(c),
            }
            for c in citations[:SUMMARY_SAMPLE_LIMIT]
        ],
    }
    try:
        return classifier.summarize('citation_summary', data)
    except Exception as e:
        print(f"Warning: Citation summary failed for {domain}: {e}", file=sys.stderr)
        return SUMMARY_FALLBACK


def get_citation_stats(db: Database, user_id: str, domain: str, with_summary: bool = False,
                       classifier: Optional[TextClassifier] = None) -> Dict:
    """
    Aggregate statistics of every citation stored for (user_id, domain).

    Args:
        with_summary: Also produce a narrative summary with the classifier
        classifier: Text classifier (defaults to OpenAIClassifier)

    Returns:
        Dict with 'domain', 'stats' and 'ai_summary' (None unless requested)

    Raises:
        ValueError: If user_id or domain is empty
        LookupError: If no citations are stored for the domain
    """
    if not user_id or not domain:
        raise ValueError("user_id and domain are required")
    domain = normalize_domain(domain)

    session = db.get_session()
    try:
        citations = db.get_citations(session, domain, user_id=user_id, newest_first=True)
        if not citations:
            raise LookupError(f"No citations found for {domain}")

        scores = db.get_citation_scores(session, domain, user_id=user_id)
        monthly = db.get_monthly_summaries(session, domain, user_id=user_id)
        totals = citation_totals(citations)

        stats = {
            'total_citations': totals['total_citations'],
            'total_links': totals['total_links'],
            'total_mentions': totals['total_mentions'],
            'sentiment': sentiment_counts(citations),
            'unique_source_domains': totals['unique_domains'],
            'dofollow_links': sum(1 for c in citations if c.is_dofollow is True),
            'nofollow_links': sum(1 for c in citations if c.is_dofollow is False),
            'top_source_domains': top_source_domains(citations),
            'top_topics': top_topics(citations),
            'monthly_trend': [summary_to_dict(m) for m in monthly],
            'score_trend': [score_to_dict(s) for s in scores],
            'latest_score': scores[-1].citation_score if scores else 0,
            'recent_citations': [
                {
                    'source_url': c.source_url,
                    'source_domain': c.source_domain,
                    'citation_type': field_value(c.citation_type),
                    'sentiment': field_value(c.sentiment),
                    'anchor_text': c.anchor_text,
                    'context': bracketed_context(c),
                    'crawl_date': c.crawl_date.isoformat() if c.crawl_date else None,
                }
                for c in citations[:RECENT_LIMIT]
            ],
        }

        ai_summary = None
        if with_summary:
            if classifier is None:
                from llm.classifier import OpenAIClassifier
                classifier = OpenAIClassifier(context_data={'domain': domain, 'user_id': user_id})
            ai_summary = generate_summary(classifier, domain, citations)

        return {'domain': domain, 'stats': stats, 'ai_summary': ai_summary}
    finally:
        session.close()
