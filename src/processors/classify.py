"""
Topic and sentiment passes over a job's citations.

Classifier failures never abort a batch: topics fall back to an empty list
and sentiment to neutral.
"""

import sys
import time
from typing import Callable, List, Optional

from db.models import Sentiment
from domain.citation_score import round_half_up
from llm.classifier import TextClassifier
from settings import TOPIC_SAMPLE_LIMIT, SENTIMENT_SAMPLE_LIMIT, CLASSIFIER_DELAY

MAX_TOPICS = 10


def citation_context(citation) -> str:
    """Text a classifier sees for one citation."""
    return ' '.join(
        part for part in (citation.context_before, citation.citation_text, citation.context_after) if part
    )


def extract_topics(citations, classifier: TextClassifier, limit: int = TOPIC_SAMPLE_LIMIT) -> List[str]:
    """
    Extract shared topic labels from a sample of citation contexts.

    Args:
        citations: Citation objects
        classifier: Text classifier
        limit: Maximum number of contexts sent to the classifier

    Returns:
        Up to 10 trimmed labels, or [] when there is nothing to classify or the
        classifier fails
    """
    contexts = [citation_context(c) for c in list(citations)[:limit]]
    if not contexts:
        return []

    try:
        topics = classifier.extract_topics(contexts)
    except Exception as e:
        print(f"Warning: Topic extraction failed: {e}", file=sys.stderr)
        return []

    if not isinstance(topics, (list, tuple)) or not all(isinstance(t, str) for t in topics):
        print(f"Warning: Ignoring malformed topic list: {topics!r}", file=sys.stderr)
        return []

    return [t.strip() for t in topics if t.strip()][:MAX_TOPICS]


def _parse_sentiment(label) -> Sentiment:
    """Map a classifier label to Sentiment; anything unexpected is neutral."""
    if isinstance(label, Sentiment):
        return label
    try:
        return Sentiment(str(label).strip().lower())
    except ValueError:
        print(f"Warning: Unknown sentiment label {label!r}, using neutral", file=sys.stderr)
        return Sentiment.NEUTRAL


def classify_sentiments(
    citations,
    classifier: TextClassifier,
    progress_callback: Optional[Callable[[int], None]] = None,
    limit: int = SENTIMENT_SAMPLE_LIMIT,
    delay: float = CLASSIFIER_DELAY,
    sleep: Callable[[float], None] = time.sleep
) -> List[Sentiment]:
    """
    Classify the sentiment of each citation, in order.

    Only the first `limit` citations reach the classifier; the rest are
    neutral. The callback receives the rounded percentage of classified
    citations after each call.

    Returns:
        One Sentiment per citation
    """
    citations = list(citations)
    sampled = citations[:limit]
    results = []

    for i, citation in enumerate(sampled, 1):
        try:
            sentiment = _parse_sentiment(classifier.classify_sentiment(citation_context(citation)))
        except Exception as e:
            print(f"Warning: Sentiment classification failed for {citation.source_url}: {e}", file=sys.stderr)
            sentiment = Sentiment.NEUTRAL
        results.append(sentiment)

        if progress_callback:
            progress_callback(round_half_up(i / len(sampled) * 100))

        if i < len(sampled) and delay:
            sleep(delay)

    results.extend(Sentiment.NEUTRAL for _ in citations[len(sampled):])
    return results
