"""
LLM call log commands.
"""

import json
from datetime import datetime, timedelta

import click
from sqlalchemy import func, desc
from tabulate import tabulate

from db import Database
from db.models import LLMApiCall


def _scoped(query, days=None, job_id=None, task=None):
    """Apply the common filters of the log commands."""
    if days:
        query = query.filter(LLMApiCall.started_at >= datetime.utcnow() - timedelta(days=days))
    if job_id is not None:
        query = query.filter(func.json_extract(LLMApiCall.context_data, '$.job_id') == job_id)
    if task:
        query = query.filter(LLMApiCall.task_name == task)
    return query


@click.group()
def llm():
    """Inspect logged LLM calls (classification, topics, reports)."""
    pass


@llm.command()
@click.option('--days', default=7, help='Number of days to include (default: 7)')
@click.option('--job', 'job_id', type=int, default=None, help='Only calls made for this analysis job')
def stats(days, job_id):
    """
    Show call counts, tokens and latency per task.

    Example:
        citations llm stats
        citations llm stats --job 12
    """
    db = Database()
    session = db.get_session()

    try:
        rows = _scoped(session.query(
            LLMApiCall.task_name,
            func.count(LLMApiCall.id).label('calls'),
            func.sum(LLMApiCall.success).label('successes'),
            func.sum(LLMApiCall.input_tokens).label('input_tokens'),
            func.sum(LLMApiCall.output_tokens).label('output_tokens'),
            func.avg(LLMApiCall.duration_ms).label('avg_duration')
        ), days=days, job_id=job_id).group_by(LLMApiCall.task_name).order_by(desc('calls')).all()

        scope = f"job {job_id}" if job_id is not None else f"last {days} days"
        click.echo(click.style(f"\nLLM usage ({scope})", fg='cyan', bold=True))

        if not rows:
            click.echo(click.style("No API calls found.", fg='yellow'))
            return

        table = []
        for task, calls, successes, input_tokens, output_tokens, avg_duration in rows:
            table.append([
                task or '(none)',
                calls,
                click.style(str(calls - (successes or 0)), fg='red') if calls != successes else 0,
                f"{input_tokens or 0:,}",
                f"{output_tokens or 0:,}",
                f"{int(avg_duration) if avg_duration else 0}ms"
            ])

        click.echo(tabulate(
            table,
            headers=['Task', 'Calls', 'Failed', 'Input tokens', 'Output tokens', 'Avg duration'],
            tablefmt='simple'
        ))
        click.echo()

    finally:
        session.close()


@llm.command(name='list')
@click.option('--limit', default=20, help='Number of recent calls to show (default: 20)')
@click.option('--task', help='Filter by task name')
@click.option('--job', 'job_id', type=int, default=None, help='Only calls made for this analysis job')
@click.option('--errors', is_flag=True, help='Only failed calls')
def list_command(limit, task, job_id, errors):
    """List recent LLM calls."""
    db = Database()
    session = db.get_session()

    try:
        query = _scoped(session.query(LLMApiCall), job_id=job_id, task=task)
        if errors:
            query = query.filter(LLMApiCall.success == 0)
        calls = query.order_by(desc(LLMApiCall.started_at)).limit(limit).all()

        if not calls:
            click.echo(click.style("No API calls found.", fg='yellow'))
            return

        table = []
        for call in calls:
            context = call.context_data or {}
            table.append([
                call.id,
                click.style('✓', fg='green') if call.success else click.style('✗', fg='red'),
                call.task_name or '(none)',
                context.get('job_id', ''),
                context.get('domain', ''),
                call.total_tokens or 'N/A',
                f"{call.duration_ms}ms" if call.duration_ms else 'N/A',
                call.started_at.strftime('%Y-%m-%d %H:%M:%S')
            ])

        click.echo(tabulate(
            table,
            headers=['ID', '✓', 'Task', 'Job', 'Domain', 'Tokens', 'Duration', 'Started'],
            tablefmt='simple'
        ))

    finally:
        session.close()


@llm.command()
@click.argument('call_id', type=int)
@click.option('--show-prompts', is_flag=True, help='Show the rendered prompts')
@click.option('--show-output', is_flag=True, help='Show the parsed output')
def show(call_id, show_prompts, show_output):
    """Show one logged call."""
    db = Database()
    session = db.get_session()

    try:
        call = session.query(LLMApiCall).filter(LLMApiCall.id == call_id).first()
        if not call:
            click.echo(click.style(f"API call #{call_id} not found.", fg='red'))
            return

        status = click.style('SUCCESS', fg='green') if call.success else click.style('ERROR', fg='red')
        click.echo(click.style(f"\nLLM API Call #{call.id} - {status}", fg='cyan', bold=True))
        click.echo(tabulate([
            ['Task', call.task_name or '(none)'],
            ['Model', call.model],
            ['Started', call.started_at.strftime('%Y-%m-%d %H:%M:%S UTC')],
            ['Duration', f"{call.duration_ms}ms" if call.duration_ms else 'N/A'],
            ['Tokens', f"{call.input_tokens or 0} in / {call.output_tokens or 0} out"],
            ['Context', json.dumps(call.context_data or {})],
        ], tablefmt='plain'))

        if call.error_message:
            click.echo(click.style("\nError:", fg='red', bold=True))
            click.echo(call.error_message)

        if show_prompts:
            click.echo(click.style("\nSystem prompt:", fg='yellow', bold=True))
            click.echo(call.system_prompt or '')
            click.echo(click.style("\nUser prompt:", fg='yellow', bold=True))
            click.echo(call.user_prompt or '')

        if show_output and call.parsed_output:
            click.echo(click.style("\nParsed output:", fg='yellow', bold=True))
            click.echo(json.dumps(call.parsed_output, indent=2, ensure_ascii=False))
        click.echo()

    finally:
        session.close()
