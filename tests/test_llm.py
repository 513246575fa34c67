"""
Tests for the OpenAI-backed classifier, prompt rendering and the call log.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

import settings
from db import Database, LLMApiCall
from llm import openai_client
from llm.classifier import OpenAIClassifier
from llm.openai_client import _load_pydantic_schema, _render_prompts


def completion_for(parsed):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(parsed=parsed))],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=2, total_tokens=12),
        model_dump=lambda mode=None: {'id': 'resp-1'}
    )


@pytest.fixture
def log_db(tmp_path, monkeypatch):
    path = str(tmp_path / 'llm.db')
    monkeypatch.setattr(settings, 'DATABASE_PATH', path)
    return Database(path)


@pytest.fixture
def fake_openai(monkeypatch):
    client = MagicMock()
    monkeypatch.setattr(openai_client, 'get_client', lambda: client)
    return client.beta.chat.completions.parse


class TestPrompts:

    def test_sentiment_prompt_includes_context(self):
        system_prompt, user_prompt = _render_prompts('sentiment_classification', {'context': 'loved example.com'})
        assert system_prompt
        assert 'loved example.com' in user_prompt

    def test_topic_prompt_lists_contexts(self):
        _, user_prompt = _render_prompts('topic_extraction', {'contexts': ['first text', 'second text']})
        assert 'first text' in user_prompt
        assert 'second text' in user_prompt

    def test_competitor_prompt(self):
        mine = {'domain': 'example.com', 'total_citations': 3, 'total_links': 2, 'positive_sentiment': 1}
        rival = {'domain': 'rival.com', 'total_citations': 5, 'total_links': 1, 'positive_sentiment': 4}
        _, user_prompt = _render_prompts('competitor_report', {'mine': mine, 'competitors': [rival]})
        assert 'example.com' in user_prompt
        assert 'rival.com' in user_prompt

    def test_missing_task(self):
        with pytest.raises(FileNotFoundError):
            _load_pydantic_schema('no_such_task')


class TestSchemas:

    def test_sentiment_rejects_unknown_label(self):
        schema = _load_pydantic_schema('sentiment_classification')
        with pytest.raises(ValidationError):
            schema(sentiment='ecstatic')

    def test_topics_are_cleaned(self):
        schema = _load_pydantic_schema('topic_extraction')
        assert schema(topics=[' pricing ', '', 'support']).topics == ['pricing', 'support']

    def test_topics_limit(self):
        schema = _load_pydantic_schema('topic_extraction')
        with pytest.raises(ValidationError):
            schema(topics=[f"t{i}" for i in range(11)])


class TestOpenAIClassifier:

    def test_classify_sentiment_logs_call(self, log_db, fake_openai):
        schema = _load_pydantic_schema('sentiment_classification')
        fake_openai.return_value = completion_for(schema(sentiment='positive'))

        classifier = OpenAIClassifier(model='test-model', context_data={'job_id': 7, 'domain': 'example.com'})
        assert classifier.classify_sentiment('great example.com') == 'positive'

        session = log_db.get_session()
        [call] = session.query(LLMApiCall).all()
        assert call.task_name == 'sentiment_classification'
        assert call.model == 'test-model'
        assert call.success == 1
        assert call.total_tokens == 12
        assert call.duration_ms is not None
        assert call.context_data['job_id'] == 7
        assert call.parsed_output == {'sentiment': 'positive'}
        session.close()

    def test_extract_topics(self, log_db, fake_openai):
        schema = _load_pydantic_schema('topic_extraction')
        fake_openai.return_value = completion_for(schema(topics=['pricing', 'support']))

        assert OpenAIClassifier().extract_topics(['a', 'b']) == ['pricing', 'support']

    def test_summarize(self, log_db, fake_openai):
        schema = _load_pydantic_schema('competitor_report')
        fake_openai.return_value = completion_for(schema(report='We lead on links.'))

        report = OpenAIClassifier().summarize('competitor_report', {'mine': {'domain': 'a.com'}, 'competitors': []})
        assert report == 'We lead on links.'

    def test_summarize_unknown_task(self):
        with pytest.raises(ValueError):
            OpenAIClassifier().summarize('headline_rewrite', {})

    def test_api_error_is_logged_and_raised(self, log_db, fake_openai):
        fake_openai.side_effect = RuntimeError("rate limited")

        with pytest.raises(RuntimeError):
            OpenAIClassifier().classify_sentiment('text')

        session = log_db.get_session()
        [call] = session.query(LLMApiCall).all()
        assert call.success == 0
        assert call.error_message == "rate limited"
        session.close()

    def test_empty_parse_is_an_error(self, log_db, fake_openai):
        fake_openai.return_value = completion_for(None)
        with pytest.raises(ValueError):
            OpenAIClassifier().classify_sentiment('text')
