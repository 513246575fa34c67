"""
Tests for monthly rollups.
"""

from datetime import date
from types import SimpleNamespace

from db import CitationScore, CitationType, MonthlyCitationSummary, Sentiment
from processors.aggregate import aggregate_months, citations_in_month, summarize_month


def citation(day, citation_type=CitationType.LINK, sentiment=Sentiment.NEUTRAL, source='a.com'):
    return SimpleNamespace(crawl_date=day, citation_type=citation_type, sentiment=sentiment,
                           source_domain=source, source_url=f"https://{source}/")


EXAMPLE = [
    citation(date(2024, 1, 15), CitationType.LINK, Sentiment.POSITIVE, 'sitea.com'),
    citation(date(2024, 1, 15), CitationType.LINK, Sentiment.POSITIVE, 'siteb.com'),
    citation(date(2024, 1, 15), CitationType.MENTION, Sentiment.NEUTRAL, 'sitea.com'),
    citation(date(2024, 2, 15), CitationType.MENTION, Sentiment.NEGATIVE, 'sitec.com'),
]


class TestSummarizeMonth:

    def test_counts_and_score(self):
        stats = summarize_month(EXAMPLE[:3], topics=['software'])

        assert stats.total_citations == 3
        assert stats.link_count == 2
        assert stats.mention_count == 1
        assert stats.unique_domains == 2
        assert (stats.sentiment_positive, stats.sentiment_neutral, stats.sentiment_negative) == (2, 1, 0)
        assert stats.citation_score == 27
        assert stats.top_topics == ['software']


class TestCitationsInMonth:

    def test_window_bounds(self):
        citations = [citation(date(2024, 1, 1)), citation(date(2024, 1, 31)), citation(date(2024, 2, 1))]
        assert len(citations_in_month(citations, '2024-01')) == 2

    def test_december_rolls_into_next_year(self):
        citations = [citation(date(2024, 12, 15)), citation(date(2025, 1, 1))]
        assert len(citations_in_month(citations, '2024-12')) == 1


class TestAggregateMonths:

    def test_upserts_rows_per_month(self, db, session):
        written = aggregate_months(session, db, 'user-1', 'example.com', ['2024-01', '2024-02', '2024-03'],
                                   EXAMPLE, topics=['software'])

        assert sorted(written) == ['2024-01', '2024-02']
        scores = db.get_citation_scores(session, 'example.com', user_id='user-1')
        assert [s.month for s in scores] == ['2024-01', '2024-02']
        assert scores[0].citation_score == 27
        assert scores[0].top_topics == ['software']
        assert scores[1].sentiment_negative == 1

        summaries = db.get_monthly_summaries(session, 'example.com', user_id='user-1')
        assert [(s.month, s.citation_count, s.link_count, s.mention_count) for s in summaries] == [
            ('2024-01', 3, 2, 1), ('2024-02', 1, 0, 1)
        ]

    def test_recomputation_is_idempotent(self, db, session):
        months = ['2024-01', '2024-02']
        aggregate_months(session, db, 'user-1', 'example.com', months, EXAMPLE)
        aggregate_months(session, db, 'user-1', 'example.com', months, EXAMPLE)

        assert session.query(CitationScore).count() == 2
        assert session.query(MonthlyCitationSummary).count() == 2

    def test_emptied_month_rows_are_deleted(self, db, session):
        aggregate_months(session, db, 'user-1', 'example.com', ['2024-01', '2024-02'], EXAMPLE)
        aggregate_months(session, db, 'user-1', 'example.com', ['2024-01'], EXAMPLE[3:])

        assert [s.month for s in db.get_citation_scores(session, 'example.com', user_id='user-1')] == ['2024-02']
        assert [s.month for s in db.get_monthly_summaries(session, 'example.com', user_id='user-1')] == ['2024-02']

    def test_recomputation_overwrites(self, db, session):
        aggregate_months(session, db, 'user-1', 'example.com', ['2024-01'], EXAMPLE)
        aggregate_months(session, db, 'user-1', 'example.com', ['2024-01'], EXAMPLE[:1])

        session.expire_all()
        [score] = db.get_citation_scores(session, 'example.com', user_id='user-1')
        assert score.total_citations == 1
        assert score.link_count == 1
