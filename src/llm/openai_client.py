"""
Structured-output calls to OpenAI for citation analysis tasks.

A task named X is made of three files under prompts/:
    X.py                         - pydantic model `StructuredOutput` the reply must match
    X_system_prompt.md.jinja     - system message
    X_user_prompt.md.jinja       - user message, rendered with the task's data
"""

import importlib
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type

from jinja2 import Environment, FileSystemLoader, TemplateNotFound
from openai import OpenAI
from pydantic import BaseModel

from settings import OPENAI_API_KEY, OPENAI_MAX_RETRIES, OPENAI_MODEL, OPENAI_TIMEOUT

PROMPTS_DIR = Path(__file__).parent / 'prompts'

templates = Environment(
    loader=FileSystemLoader(PROMPTS_DIR),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True
)

_client: Optional[OpenAI] = None


def get_client() -> OpenAI:
    """Shared client, built lazily so the package imports without OPENAI_API_KEY."""
    global _client
    if _client is None:
        _client = OpenAI(api_key=OPENAI_API_KEY, max_retries=OPENAI_MAX_RETRIES, timeout=OPENAI_TIMEOUT)
    return _client


def _load_pydantic_schema(task_name: str) -> Type[BaseModel]:
    """Return the StructuredOutput model declared in prompts/<task_name>.py."""
    if not (PROMPTS_DIR / f"{task_name}.py").exists():
        raise FileNotFoundError(f"No schema for task '{task_name}' in {PROMPTS_DIR}")

    module = importlib.import_module(f"llm.prompts.{task_name}")
    schema = getattr(module, 'StructuredOutput', None)

    if not (isinstance(schema, type) and issubclass(schema, BaseModel)):
        raise TypeError(f"prompts/{task_name}.py must define StructuredOutput as a pydantic model")
    return schema


def _render_prompts(task_name: str, data: Dict[str, Any]) -> Tuple[str, str]:
    """Render the (system, user) messages of a task."""
    rendered = []
    for role in ('system', 'user'):
        name = f"{task_name}_{role}_prompt.md.jinja"
        try:
            rendered.append(templates.get_template(name).render(**data))
        except TemplateNotFound:
            raise FileNotFoundError(f"Missing {role} prompt for task '{task_name}': {PROMPTS_DIR / name}")
    return rendered[0], rendered[1]


def openai_structured_output(task_name: str, data: Dict[str, Any], model: str = None,
                             context_data: Dict[str, Any] = None) -> BaseModel:
    """
    Run a prompt task and return its reply as the task's StructuredOutput.

    The call is recorded in llm_api_calls together with context_data, which
    the pipeline fills with the job id, analyzed domain and user.

    Raises:
        FileNotFoundError: The task has no schema or prompt templates
        ValueError: The API returned no parsed output (e.g. a refusal)
        pydantic.ValidationError: The reply fails the schema's validators
    """
    from llm.logging import log_llm_api_call

    schema = _load_pydantic_schema(task_name)
    system_prompt, user_prompt = _render_prompts(task_name, data)
    model = model or OPENAI_MODEL

    context = dict(context_data or {})
    context.setdefault('data_keys', sorted(data))

    with log_llm_api_call('structured_output', model, task_name, context) as call:
        call.set_prompts(system_prompt, user_prompt)

        completion = get_client().beta.chat.completions.parse(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format=schema
        )
        call.set_response(completion)

        reply = completion.choices[0].message.parsed
        if reply is None:
            raise ValueError(f"No structured output returned for task '{task_name}'")

        # field validators (label cleanup, limits) run on the final object
        result = schema.model_validate(reply.model_dump())
        call.set_parsed_output(result.model_dump(mode='json'))
        return result
