"""
Text classification capability used by the citation pipeline.

The pipeline only depends on TextClassifier; OpenAIClassifier backs it with
structured outputs. Any exception raised by an implementation is treated by
callers as a classifier failure and replaced with a safe default.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class TextClassifier(ABC):
    """Sentiment, topic and narrative capabilities over citation contexts."""

    @abstractmethod
    def classify_sentiment(self, context: str) -> str:
        """
        Classify the sentiment of one citation context.

        Returns:
            'positive', 'neutral' or 'negative'
        """

    @abstractmethod
    def extract_topics(self, contexts: List[str]) -> List[str]:
        """
        Extract short topic labels from sample citation contexts.

        Returns:
            List of 5-10 topic labels
        """

    @abstractmethod
    def summarize(self, task_name: str, data: Dict[str, Any]) -> str:
        """
        Produce narrative text from aggregate statistics.

        Args:
            task_name: 'citation_summary' or 'competitor_report'
            data: Template variables for the task
        """


class OpenAIClassifier(TextClassifier):
    """TextClassifier backed by OpenAI structured outputs."""

    # Field of each narrative task's StructuredOutput holding the text
    NARRATIVE_FIELDS = {
        'citation_summary': 'summary',
        'competitor_report': 'report',
    }

    def __init__(self, model: str = None, context_data: Optional[Dict[str, Any]] = None):
        """
        Args:
            model: OpenAI model (defaults to OPENAI_MODEL)
            context_data: Metadata attached to every call log (job_id, domain, ...)
        """
        self.model = model
        self.context_data = context_data or {}

    def _call(self, task_name: str, data: Dict[str, Any]):
        from llm.openai_client import openai_structured_output
        return openai_structured_output(task_name, data, model=self.model, context_data=self.context_data)

    def classify_sentiment(self, context: str) -> str:
        return self._call('sentiment_classification', {'context': context}).sentiment

    def extract_topics(self, contexts: List[str]) -> List[str]:
        return self._call('topic_extraction', {'contexts': contexts}).topics

    def summarize(self, task_name: str, data: Dict[str, Any]) -> str:
        if task_name not in self.NARRATIVE_FIELDS:
            raise ValueError(f"Unknown narrative task: {task_name}")
        result = self._call(task_name, data)
        return getattr(result, self.NARRATIVE_FIELDS[task_name])
