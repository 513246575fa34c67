"""
Citation analysis job commands.
"""

import json
import time

import click
from tabulate import tabulate

from db import Database, JobStatus
from processors.jobs import (
    InlineExecutor, create_runner, start_analysis, get_status, get_results, list_jobs
)

TERMINAL_STATUSES = (JobStatus.COMPLETED.value, JobStatus.FAILED.value)
STATUS_COLORS = {'pending': 'yellow', 'processing': 'blue', 'completed': 'green', 'failed': 'red'}


def _status_style(status: str) -> str:
    return click.style(status, fg=STATUS_COLORS.get(status, 'white'))


def _echo_status(status: dict):
    rows = [
        ['Job', status['id']],
        ['Domain', status['domain']],
        ['Type', status['job_type']],
        ['Status', _status_style(status['status'])],
        ['Progress', f"{status['progress']}%"],
        ['Citations', status['total_citations']],
        ['Months', ', '.join(status['crawl_months'])],
        ['Started', status['started_at'] or 'N/A'],
        ['Completed', status['completed_at'] or 'N/A'],
    ]
    if status['error_message']:
        rows.append(['Error', click.style(status['error_message'], fg='red')])
    click.echo(tabulate(rows, tablefmt='plain'))


def _wait_for(db: Database, job_id: int, poll: float):
    """Print progress until the job reaches a terminal state."""
    last = None
    while True:
        status = get_status(db, job_id)
        current = (status['status'], status['progress'])
        if current != last:
            click.echo(f"  {_status_style(status['status'])} {status['progress']:3d}%  "
                       f"({status['total_citations']} citations)")
            last = current
        if status['status'] in TERMINAL_STATUSES:
            return status
        time.sleep(poll)


@click.group()
def analysis():
    """Run and inspect citation analysis jobs."""
    pass


@analysis.command()
@click.argument('domain')
@click.option('--month', '-m', 'months', multiple=True, required=True, help='Month to analyze (YYYY-MM), repeatable')
@click.option('--user', '-u', 'user_id', default='cli', help='Owner of the analysis (default: cli)')
@click.option('--include', 'query_include', default=None, help='Keep only citations whose context contains this keyword')
@click.option('--exclude', 'query_exclude', default=None, help='Comma-separated keywords that drop a citation')
@click.option('--wait/--no-wait', default=True,
              help='Print progress while the job runs; with --no-wait only the final status is printed')
@click.option('--poll', type=float, default=2.0, help='Seconds between status checks (default: 2)')
def start(domain, months, user_id, query_include, query_exclude, wait, poll):
    """
    Run an analysis job on background workers until it finishes.

    The command returns once the job is completed or failed. Another shell can
    follow it meanwhile with `citations analysis status`.

    Example:
        citations analysis start example.com -m 2024-12 -m 2025-01
        citations analysis start example.com -m 2025-01 --include review --exclude spam,ads
    """
    db = Database()
    runner = create_runner(db)
    filters = {'query_include': query_include, 'query_exclude': query_exclude}

    try:
        job_id = start_analysis(db, runner, user_id, domain, list(months), filters)
    except ValueError as e:
        runner.shutdown(wait=False)
        raise click.BadParameter(str(e))

    click.echo(f"Started job {click.style(str(job_id), bold=True)} for {click.style(domain, fg='cyan')}")

    if wait:
        _wait_for(db, job_id, poll)
    else:
        click.echo(f"Running; check progress from another shell with: citations analysis status {job_id}")

    runner.shutdown(wait=True)
    click.echo()
    _echo_status(get_status(db, job_id))


@analysis.command()
@click.argument('job_id', type=int)
def run(job_id):
    """
    Run an existing job in the foreground (e.g. a pending competitor job).

    Example:
        citations analysis run 12
    """
    db = Database()
    runner = create_runner(db, executor=InlineExecutor())

    try:
        get_status(db, job_id)
    except LookupError as e:
        click.echo(click.style(f"✗ {e}", fg='red'))
        return

    runner.submit(job_id)
    _echo_status(get_status(db, job_id))


@analysis.command()
@click.argument('job_id', type=int)
@click.option('--user', '-u', 'user_id', default=None, help='Only show the job if it belongs to this user')
def status(job_id, user_id):
    """Show status and progress of a job."""
    try:
        _echo_status(get_status(Database(), job_id, user_id=user_id))
    except LookupError as e:
        click.echo(click.style(f"✗ {e}", fg='red'))


@analysis.command()
@click.argument('job_id', type=int)
@click.option('--user', '-u', 'user_id', default=None, help='Only show the job if it belongs to this user')
@click.option('--limit', '-l', type=int, default=20, help='Citations to show (default: 20)')
@click.option('--json', 'as_json', is_flag=True, help='Print the full result as JSON')
def results(job_id, user_id, limit, as_json):
    """
    Show citations, monthly scores and summaries of a completed job.

    Example:
        citations analysis results 12
        citations analysis results 12 --json > results.json
    """
    try:
        result = get_results(Database(), job_id, user_id=user_id)
    except LookupError as e:
        click.echo(click.style(f"✗ {e}", fg='red'))
        return

    if as_json:
        click.echo(json.dumps(result, indent=2, ensure_ascii=False))
        return

    if result['citations'] is None:
        click.echo(click.style(f"Job {job_id} is {result['job']['status']}, no results yet", fg='yellow'))
        return

    click.echo(click.style(f"\nMonthly scores for {result['job']['domain']}", fg='cyan', bold=True))
    score_rows = [
        [s['month'], s['total_citations'], s['link_count'], s['mention_count'], s['unique_domains'],
         f"{s['sentiment_positive']}/{s['sentiment_neutral']}/{s['sentiment_negative']}", s['citation_score']]
        for s in result['scores']
    ]
    click.echo(tabulate(
        score_rows,
        headers=['Month', 'Total', 'Links', 'Mentions', 'Sources', '+/=/-', 'Score'],
        tablefmt='simple'
    ))

    citations = result['citations'][:limit]
    click.echo(click.style(f"\nCitations ({len(citations)} of {len(result['citations'])})", fg='cyan', bold=True))
    citation_rows = [
        [c['crawl_date'], c['citation_type'], c['sentiment'], c['source_domain'], (c['anchor_text'] or '')[:40]]
        for c in citations
    ]
    click.echo(tabulate(citation_rows, headers=['Date', 'Type', 'Sentiment', 'Source', 'Anchor'], tablefmt='simple'))
    click.echo()


@analysis.command(name='list')
@click.option('--user', '-u', 'user_id', default=None, help='Filter by user')
@click.option('--domain', '-d', default=None, help='Filter by domain')
@click.option('--status', '-s', type=click.Choice([s.value for s in JobStatus]), default=None, help='Filter by status')
@click.option('--limit', '-l', type=int, default=20, help='Number of jobs to show (default: 20)')
def list_command(user_id, domain, status, limit):
    """List recent jobs."""
    jobs = list_jobs(Database(), user_id=user_id, domain=domain,
                     status=JobStatus(status) if status else None, limit=limit)
    if not jobs:
        click.echo(click.style("No jobs found", fg='yellow'))
        return

    rows = [
        [j['id'], j['user_id'], j['domain'], j['job_type'], _status_style(j['status']),
         f"{j['progress']}%", j['total_citations'], ', '.join(j['crawl_months']), j['created_at']]
        for j in jobs
    ]
    click.echo(tabulate(
        rows,
        headers=['ID', 'User', 'Domain', 'Type', 'Status', 'Progress', 'Citations', 'Months', 'Created'],
        tablefmt='simple'
    ))
