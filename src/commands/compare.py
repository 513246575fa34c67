"""
Competitor comparison command.
"""

import json

import click
from tabulate import tabulate

from db import Database
from processors.competitor import compare_competitors
from processors.jobs import InlineExecutor, create_runner, get_status

STATUS_COLORS = {'pending': 'yellow', 'processing': 'blue', 'completed': 'green', 'failed': 'red'}


@click.command()
@click.argument('my_domain')
@click.argument('competitors', nargs=-1, required=True)
@click.option('--user', '-u', 'user_id', default='cli', help='Owner of the analyses (default: cli)')
@click.option('--month', '-m', 'months', multiple=True, help='Months for competitors without data (YYYY-MM), repeatable')
@click.option('--run-pending', is_flag=True, help='Analyze competitors without data now; otherwise their jobs are only created')
@click.option('--json', 'as_json', is_flag=True, help='Print the comparison as JSON')
def compare(my_domain, competitors, user_id, months, run_pending, as_json):
    """
    Compare citations of a domain against competitors.

    Example:
        citations compare example.com rival.com other.com
        citations compare example.com rival.com -m 2025-01 --run-pending
    """
    db = Database()
    runner = create_runner(db, executor=InlineExecutor()) if run_pending else None

    try:
        result = compare_competitors(db, user_id, my_domain, list(competitors),
                                     months=list(months) or None, runner=runner)
    except ValueError as e:
        raise click.BadParameter(str(e))
    finally:
        if runner:
            runner.shutdown(wait=True)

    # jobs run by the inline runner have finished by now
    if run_pending:
        for entry in result['comparison']['competitors']:
            if entry['job_id'] is not None:
                entry['status'] = get_status(db, entry['job_id'])['status']

    if as_json:
        click.echo(json.dumps(result, indent=2, ensure_ascii=False))
        return

    mine = result['comparison']['my_domain']
    rows = []
    for entry in [mine] + result['comparison']['competitors']:
        name = entry['domain'] if entry is not mine else click.style(entry['domain'], bold=True)
        status = entry.get('status') or ''
        if entry.get('job_id') is not None:
            status = click.style(f"{status} (job {entry['job_id']})", fg=STATUS_COLORS.get(status, 'white'))
        rows.append([name, entry['total_citations'], entry['total_links'], entry['total_mentions'],
                     entry['positive_sentiment'], entry['unique_domains'], entry['recent_score'], status])

    click.echo()
    click.echo(tabulate(
        rows,
        headers=['Domain', 'Citations', 'Links', 'Mentions', 'Positive', 'Sources', 'Score', 'Status'],
        tablefmt='simple'
    ))

    if result['ai_report']:
        click.echo(click.style("\nComparison report:", fg='yellow', bold=True))
        click.echo(result['ai_report'])

    jobs = ', '.join(map(str, result['pending_jobs']))
    if result['pending_jobs'] and run_pending:
        click.echo(click.style(f"\nRan jobs {jobs}; compare again to include their citations.", fg='yellow'))
    elif result['pending_jobs']:
        click.echo(click.style(f"\nCreated pending jobs {jobs}; run each with: citations analysis run <job_id>",
                               fg='yellow'))
    click.echo()
