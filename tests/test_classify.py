"""
Tests for the topic and sentiment passes.
"""

from types import SimpleNamespace

from conftest import FakeClassifier
from db import Sentiment
from processors.classify import citation_context, classify_sentiments, extract_topics


def citation(text='great product', n=0):
    return SimpleNamespace(context_before=f"before {n}", citation_text=text, context_after='after',
                           source_url=f"https://s{n}.com/")


class TestCitationContext:

    def test_joins_parts(self):
        assert citation_context(citation('x')) == "before 0 x after"

    def test_skips_empty_parts(self):
        c = SimpleNamespace(context_before=None, citation_text='example.com', context_after='')
        assert citation_context(c) == "example.com"


class TestExtractTopics:

    def test_sends_at_most_twenty_contexts(self):
        classifier = FakeClassifier()
        extract_topics([citation(n=i) for i in range(25)], classifier)
        assert len(classifier.topic_calls[0]) == 20

    def test_trims_and_caps_labels(self):
        labels = [f" topic {i} " for i in range(12)] + ['  ']
        topics = extract_topics([citation()], FakeClassifier(topics=labels))
        assert topics == [f"topic {i}" for i in range(10)]

    def test_failure_returns_empty(self):
        assert extract_topics([citation()], FakeClassifier(fail_topics=True)) == []

    def test_malformed_response_returns_empty(self):
        assert extract_topics([citation()], FakeClassifier(topics='not a list')) == []
        assert extract_topics([citation()], FakeClassifier(topics=[1, 2])) == []

    def test_no_citations_skips_classifier(self):
        classifier = FakeClassifier()
        assert extract_topics([], classifier) == []
        assert classifier.topic_calls == []


class TestClassifySentiments:

    def test_classifies_each_citation(self):
        citations = [citation('great'), citation('awful'), citation('meh')]
        result = classify_sentiments(citations, FakeClassifier(), sleep=lambda s: None)
        assert result == [Sentiment.POSITIVE, Sentiment.NEGATIVE, Sentiment.NEUTRAL]

    def test_only_first_thirty_reach_classifier(self):
        classifier = FakeClassifier()
        citations = [citation('great', i) for i in range(35)]

        result = classify_sentiments(citations, classifier, sleep=lambda s: None)

        assert len(classifier.sentiment_calls) == 30
        assert result[:30] == [Sentiment.POSITIVE] * 30
        assert result[30:] == [Sentiment.NEUTRAL] * 5

    def test_failures_default_to_neutral(self):
        result = classify_sentiments([citation(), citation()], FakeClassifier(fail_sentiment=True),
                                     sleep=lambda s: None)
        assert result == [Sentiment.NEUTRAL, Sentiment.NEUTRAL]

    def test_unknown_label_defaults_to_neutral(self):
        result = classify_sentiments([citation()], FakeClassifier(sentiment_label='ecstatic'),
                                     sleep=lambda s: None)
        assert result == [Sentiment.NEUTRAL]

    def test_label_case_is_normalized(self):
        result = classify_sentiments([citation()], FakeClassifier(sentiment_label=' Positive '),
                                     sleep=lambda s: None)
        assert result == [Sentiment.POSITIVE]

    def test_reports_progress_and_paces_calls(self):
        progress = []
        sleeps = []
        classify_sentiments([citation(n=i) for i in range(3)], FakeClassifier(),
                            progress_callback=progress.append, delay=0.5, sleep=sleeps.append)

        assert progress == [33, 67, 100]
        assert sleeps == [0.5, 0.5]

    def test_empty_input(self):
        progress = []
        assert classify_sentiments([], FakeClassifier(), progress_callback=progress.append) == []
        assert progress == []
