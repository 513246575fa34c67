"""
Tests for citation statistics.
"""

import pytest

from conftest import FakeClassifier
from processors.jobs import start_analysis
from processors.stats import SUMMARY_FALLBACK, get_citation_stats


@pytest.fixture
def analyzed(db, inline_runner):
    start_analysis(db, inline_runner, 'user-1', 'example.com', ['2024-01'])
    return db


class TestGetCitationStats:

    def test_totals(self, analyzed):
        result = get_citation_stats(analyzed, 'user-1', 'example.com')
        stats = result['stats']

        assert result['domain'] == 'example.com'
        assert result['ai_summary'] is None
        assert stats['total_citations'] == 3
        assert stats['total_links'] == 2
        assert stats['total_mentions'] == 1
        assert stats['sentiment'] == {'positive': 2, 'neutral': 1, 'negative': 0}
        assert stats['unique_source_domains'] == 2
        assert stats['dofollow_links'] == 1
        assert stats['nofollow_links'] == 1
        assert stats['latest_score'] == 27

    def test_top_lists(self, analyzed):
        stats = get_citation_stats(analyzed, 'user-1', 'example.com')['stats']

        assert stats['top_source_domains'][0] == {'domain': 'sitea.com', 'count': 2}
        assert {t['topic'] for t in stats['top_topics']} == {'software', 'support'}
        assert all(t['count'] == 3 for t in stats['top_topics'])

    def test_trends_and_recent(self, analyzed):
        stats = get_citation_stats(analyzed, 'user-1', 'www.Example.com')['stats']

        assert [m['month'] for m in stats['monthly_trend']] == ['2024-01']
        assert [s['month'] for s in stats['score_trend']] == ['2024-01']
        assert len(stats['recent_citations']) == 3
        mention = next(c for c in stats['recent_citations'] if c['citation_type'] == 'mention')
        assert '[example.com]' in mention['context']
        assert mention['crawl_date'] == '2024-01-15'

    def test_summary(self, analyzed):
        classifier = FakeClassifier()

        result = get_citation_stats(analyzed, 'user-1', 'example.com', with_summary=True, classifier=classifier)

        assert result['ai_summary'] == 'citation_summary narrative'
        task, data = classifier.summary_calls[0]
        assert data['stats']['total'] == 3
        assert len(data['samples']) == 3

    def test_summary_failure_uses_fallback(self, analyzed):
        result = get_citation_stats(analyzed, 'user-1', 'example.com', with_summary=True,
                                    classifier=FakeClassifier(fail_summary=True))
        assert result['ai_summary'] == SUMMARY_FALLBACK

    def test_no_citations(self, db):
        with pytest.raises(LookupError):
            get_citation_stats(db, 'user-1', 'example.com')

    def test_other_users_data_is_invisible(self, analyzed):
        with pytest.raises(LookupError):
            get_citation_stats(analyzed, 'user-2', 'example.com')
