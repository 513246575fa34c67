"""
Shared fixtures: a throwaway database and in-memory stand-ins for the archive
and the classifier.
"""

import pytest

from archive import IndexRecord
from db import Database
from llm.classifier import TextClassifier
from processors.jobs import InlineExecutor, JobRunner
from processors.orchestrator import CitationPipeline


LINK_PAGE_A = (
    '<html><body>'
    '<p>Great tool, <a href="https://example.com/">Example</a> really helps.</p>'
    '</body></html>'
)
LINK_PAGE_B = (
    '<html><body>'
    '<p>Great support from <a href="https://www.example.com/help" rel="nofollow">their team</a> today.</p>'
    '</body></html>'
)
MENTION_PAGE = (
    '<html><body>'
    '<p>I read about example.com yesterday and it was fine.</p>'
    '</body></html>'
)


def make_record(url, filename='crawl-data/segment/warc/file.warc.gz', offset=0, length=100):
    return IndexRecord(filename=filename, offset=offset, length=length, url=url)


class FakeIndexClient:
    """Index client returning canned records per month."""

    def __init__(self, records_by_month=None, failing_months=()):
        self.records_by_month = records_by_month or {}
        self.failing_months = set(failing_months)
        self.searches = []

    def resolve(self, year_month):
        return f"CC-TEST-{year_month}"

    def search(self, domain, year_month):
        self.searches.append((domain, year_month))
        if year_month in self.failing_months:
            raise RuntimeError(f"index unavailable for {year_month}")
        return list(self.records_by_month.get(year_month, []))


class FakeFetcher:
    """Content fetcher serving pages by URL."""

    def __init__(self, pages=None, failing_urls=()):
        self.pages = pages or {}
        self.failing_urls = set(failing_urls)
        self.fetched = []

    def fetch(self, record):
        self.fetched.append(record.url)
        if record.url in self.failing_urls:
            raise RuntimeError(f"broken record {record.url}")
        return self.pages.get(record.url)


class FakeClassifier(TextClassifier):
    """Keyword classifier: 'great' is positive, 'awful' is negative."""

    def __init__(self, topics=None, fail_sentiment=False, fail_topics=False, fail_summary=False,
                 sentiment_label=None):
        self.topics = ['software', 'support'] if topics is None else topics
        self.fail_sentiment = fail_sentiment
        self.fail_topics = fail_topics
        self.fail_summary = fail_summary
        self.sentiment_label = sentiment_label
        self.sentiment_calls = []
        self.topic_calls = []
        self.summary_calls = []

    def classify_sentiment(self, context):
        self.sentiment_calls.append(context)
        if self.fail_sentiment:
            raise RuntimeError("classifier down")
        if self.sentiment_label is not None:
            return self.sentiment_label
        text = context.lower()
        if 'great' in text:
            return 'positive'
        if 'awful' in text:
            return 'negative'
        return 'neutral'

    def extract_topics(self, contexts):
        self.topic_calls.append(list(contexts))
        if self.fail_topics:
            raise RuntimeError("classifier down")
        return self.topics

    def summarize(self, task_name, data):
        self.summary_calls.append((task_name, data))
        if self.fail_summary:
            raise RuntimeError("classifier down")
        return f"{task_name} narrative"


@pytest.fixture
def db(tmp_path):
    return Database(str(tmp_path / 'citations.db'))


@pytest.fixture
def session(db):
    session = db.get_session()
    yield session
    session.close()


@pytest.fixture
def sleeps():
    """Recorded pacing delays."""
    return []


@pytest.fixture
def example_archive():
    """Index and fetcher for the three-citation example.com scenario in 2024-01."""
    index_client = FakeIndexClient({
        '2024-01': [
            make_record('https://siteA.com/post'),
            make_record('https://siteB.com/review'),
            make_record('https://siteA.com/news'),
        ],
    })
    fetcher = FakeFetcher({
        'https://siteA.com/post': LINK_PAGE_A,
        'https://siteB.com/review': LINK_PAGE_B,
        'https://siteA.com/news': MENTION_PAGE,
    })
    return index_client, fetcher


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture
def make_pipeline(db, sleeps, classifier):
    def factory(index_client, fetcher, classifier=classifier, **options):
        return CitationPipeline(
            db, index_client=index_client, fetcher=fetcher, classifier=classifier,
            sleep=sleeps.append, **options
        )
    return factory


@pytest.fixture
def inline_runner(make_pipeline, example_archive):
    """Runner executing jobs synchronously against the example archive."""
    index_client, fetcher = example_archive
    return JobRunner(lambda: make_pipeline(index_client, fetcher), executor=InlineExecutor())
