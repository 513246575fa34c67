"""
Persistent log of classifier calls.

Every structured-output request made while analyzing citations is written to
the llm_api_calls table with its prompts, token usage, latency and the job it
was made for, so cost and failures can be inspected per job.
"""

import sys
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Optional

LOCK_RETRIES = 3
LOCK_BACKOFF = 0.1


class LLMApiCallLogger:
    """Collects one call's details while it runs, then saves them as an LLMApiCall row."""

    def __init__(self, call_type: str, model: str, task_name: Optional[str] = None,
                 context_data: Optional[Dict[str, Any]] = None, db=None):
        """
        Args:
            call_type: Kind of request ('structured_output')
            model: Model the request was sent to
            task_name: Prompt task ('sentiment_classification', 'topic_extraction', ...)
            context_data: Job metadata stored with the row (job_id, domain, user_id)
            db: Database to write to (defaults to Database())
        """
        self.call_type = call_type
        self.model = model
        self.task_name = task_name
        self.context_data = dict(context_data or {})
        self.db = db

        self.started_at = datetime.utcnow()
        self.completed_at: Optional[datetime] = None
        self.duration_ms: Optional[int] = None

        self.system_prompt: Optional[str] = None
        self.user_prompt: Optional[str] = None
        self.response_raw: Optional[Dict] = None
        self.parsed_output: Optional[Dict] = None

        self.input_tokens: Optional[int] = None
        self.output_tokens: Optional[int] = None
        self.total_tokens: Optional[int] = None

        self.success = True
        self.error_message: Optional[str] = None

    def set_prompts(self, system_prompt: str, user_prompt: str):
        self.system_prompt = system_prompt
        self.user_prompt = user_prompt

    def set_response(self, response):
        """Keep the raw completion and its token usage."""
        if hasattr(response, 'model_dump'):
            self.response_raw = response.model_dump(mode='json')
        usage = getattr(response, 'usage', None)
        if usage:
            self.input_tokens = usage.prompt_tokens
            self.output_tokens = usage.completion_tokens
            self.total_tokens = usage.total_tokens

    def set_parsed_output(self, parsed_output: Dict):
        self.parsed_output = parsed_output

    def finish(self, error: Optional[BaseException] = None):
        """Stop the clock; an error marks the call failed."""
        self.completed_at = datetime.utcnow()
        self.duration_ms = int((self.completed_at - self.started_at).total_seconds() * 1000)
        self.success = error is None
        self.error_message = str(error) if error is not None else None

    def to_row(self):
        from db.models import LLMApiCall
        return LLMApiCall(
            call_type=self.call_type,
            task_name=self.task_name,
            model=self.model,
            started_at=self.started_at,
            completed_at=self.completed_at,
            duration_ms=self.duration_ms,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            total_tokens=self.total_tokens,
            system_prompt=self.system_prompt,
            user_prompt=self.user_prompt,
            response_raw=self.response_raw,
            parsed_output=self.parsed_output,
            success=1 if self.success else 0,
            error_message=self.error_message,
            context_data=self.context_data or None
        )

    def save(self):
        """
        Write the row in a session of its own.

        Job threads write citations concurrently, so a locked database is
        retried with backoff. A log that can't be written only produces a
        warning; it never fails the classification it describes.
        """
        from sqlalchemy.exc import OperationalError
        from db import Database

        db = self.db or Database()
        delay = LOCK_BACKOFF

        for attempt in range(1, LOCK_RETRIES + 1):
            session = db.get_session()
            try:
                session.add(self.to_row())
                session.commit()
                return
            except OperationalError as e:
                session.rollback()
                if attempt == LOCK_RETRIES:
                    print(f"Warning: Could not log {self.task_name} call after {LOCK_RETRIES} attempts: {e}",
                          file=sys.stderr)
                    return
                time.sleep(delay)
                delay *= 2
            except Exception as e:
                session.rollback()
                print(f"Warning: Could not log {self.task_name} call: {e}", file=sys.stderr)
                return
            finally:
                session.close()


@contextmanager
def log_llm_api_call(call_type: str, model: str, task_name: Optional[str] = None,
                     context_data: Optional[Dict[str, Any]] = None, db=None):
    """
    Log the request made inside the block, whether it succeeds or raises.

    Example:
        >>> with log_llm_api_call('structured_output', 'gpt-5-nano', 'topic_extraction', {'job_id': 3}) as call:
        ...     call.set_prompts(system_prompt, user_prompt)
        ...     completion = client.beta.chat.completions.parse(...)
        ...     call.set_response(completion)
    """
    call = LLMApiCallLogger(call_type, model, task_name, context_data, db=db)
    try:
        yield call
    except Exception as e:
        call.finish(e)
        raise
    else:
        call.finish()
    finally:
        call.save()
