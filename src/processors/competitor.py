"""
Citation comparison between a domain and its competitors.

Competitors without stored citations get a competitor job instead of data;
their results appear in a later comparison once that job completes.
"""

import sys
from typing import Dict, List, Optional

from archive import INDEX_MAP
from db import Database
from db.export import score_to_dict
from llm.classifier import TextClassifier
from processors.jobs import JobRunner, create_competitor_job, normalize_domain
from processors.stats import citation_totals

DEFAULT_MONTH_COUNT = 2
REPORT_FALLBACK = "Competitor report could not be generated."


def default_months(index_map: Optional[Dict[str, str]] = None, count: int = DEFAULT_MONTH_COUNT) -> List[str]:
    """The most recent months known to the month -> index table, oldest first."""
    return sorted(index_map or INDEX_MAP)[-count:]


def _domain_entry(domain: str, citations, scores) -> Dict:
    entry = {'domain': domain, **citation_totals(citations)}
    entry['recent_score'] = scores[-1].citation_score if scores else 0
    entry['scores'] = [score_to_dict(s) for s in scores]
    return entry


def generate_report(classifier: TextClassifier, mine: Dict, competitors: List[Dict]) -> str:
    """
    Narrative comparison of a domain with competitors that have data.

    Returns:
        The report, or REPORT_FALLBACK if the classifier fails
    """
    try:
        return classifier.summarize('competitor_report', {'mine': mine, 'competitors': competitors})
    except Exception as e:
        print(f"Warning: Competitor report failed for {mine['domain']}: {e}", file=sys.stderr)
        return REPORT_FALLBACK


def compare_competitors(
    db: Database,
    user_id: str,
    my_domain: str,
    competitor_domains: List[str],
    months: Optional[List[str]] = None,
    classifier: Optional[TextClassifier] = None,
    runner: Optional[JobRunner] = None
) -> Dict:
    """
    Compare stored citation data of a domain against competitors.

    Args:
        db: Database
        user_id: Owner of the analyses
        my_domain: Domain being compared
        competitor_domains: Domains to compare against
        months: Months analyzed for competitors lacking data (defaults to the
            two most recent months of the index table)
        classifier: Text classifier for the report (defaults to OpenAIClassifier)
        runner: Job runner that executes new competitor jobs; without it they
            stay pending

    Returns:
        Dict with 'comparison' ({'my_domain', 'competitors'}), 'ai_report'
        (None unless a competitor has data) and 'pending_jobs'

    Raises:
        ValueError: If user_id or my_domain is empty, or competitor_domains is
            not a list
    """
    if not user_id or not my_domain:
        raise ValueError("user_id and my_domain are required")
    if not isinstance(competitor_domains, (list, tuple)):
        raise ValueError("competitor_domains must be a list")

    my_domain = normalize_domain(my_domain)
    months = list(months) if months else default_months()

    session = db.get_session()
    try:
        mine = _domain_entry(
            my_domain,
            db.get_citations(session, my_domain, user_id=user_id),
            db.get_citation_scores(session, my_domain, user_id=user_id)
        )

        competitors = []
        pending_jobs = []
        for raw_domain in competitor_domains:
            domain = normalize_domain(raw_domain)
            citations = db.get_citations(session, domain, user_id=user_id)

            if citations:
                entry = _domain_entry(domain, citations, db.get_citation_scores(session, domain, user_id=user_id))
                entry['status'] = None
                entry['job_id'] = None
            else:
                job_id = create_competitor_job(db, user_id, domain, months, requested_by=my_domain, runner=runner)
                entry = _domain_entry(domain, [], [])
                entry['status'] = 'pending'
                entry['job_id'] = job_id
                pending_jobs.append(job_id)
            competitors.append(entry)
    finally:
        session.close()

    with_data = [c for c in competitors if c['total_citations'] > 0]
    ai_report = None
    if with_data:
        if classifier is None:
            from llm.classifier import OpenAIClassifier
            classifier = OpenAIClassifier(context_data={'domain': my_domain, 'user_id': user_id})
        ai_report = generate_report(classifier, mine, with_data)

    return {
        'comparison': {'my_domain': mine, 'competitors': competitors},
        'ai_report': ai_report,
        'pending_jobs': pending_jobs,
    }
