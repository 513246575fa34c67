"""
Citation statistics command.
"""

import json

import click
from tabulate import tabulate

from db import Database
from processors.stats import get_citation_stats


@click.command()
@click.argument('domain')
@click.option('--user', '-u', 'user_id', default='cli', help='Owner of the analyses (default: cli)')
@click.option('--summary', is_flag=True, help='Also generate an AI narrative summary')
@click.option('--json', 'as_json', is_flag=True, help='Print the statistics as JSON')
def stats(domain, user_id, summary, as_json):
    """
    Show citation statistics of an analyzed domain.

    Example:
        citations stats example.com
        citations stats example.com --summary
    """
    try:
        result = get_citation_stats(Database(), user_id, domain, with_summary=summary)
    except LookupError as e:
        click.echo(click.style(f"✗ {e}", fg='red'))
        return

    if as_json:
        click.echo(json.dumps(result, indent=2, ensure_ascii=False))
        return

    data = result['stats']
    click.echo(click.style(f"\nCitation statistics for {result['domain']}", fg='cyan', bold=True))
    click.echo(click.style("=" * 50, fg='cyan'))
    overview = [
        ['Total citations', click.style(str(data['total_citations']), fg='green')],
        ['Links', data['total_links']],
        ['Mentions', data['total_mentions']],
        ['Dofollow / nofollow', f"{data['dofollow_links']} / {data['nofollow_links']}"],
        ['Referring domains', data['unique_source_domains']],
        ['Positive / neutral / negative',
         f"{data['sentiment']['positive']} / {data['sentiment']['neutral']} / {data['sentiment']['negative']}"],
        ['Latest score', click.style(str(data['latest_score']), fg='green', bold=True)],
    ]
    click.echo(tabulate(overview, tablefmt='plain'))

    if data['top_source_domains']:
        click.echo(click.style("\nTop referring domains:", fg='yellow', bold=True))
        click.echo(tabulate([[d['domain'], d['count']] for d in data['top_source_domains']],
                            headers=['Domain', 'Citations'], tablefmt='simple'))

    if data['top_topics']:
        click.echo(click.style("\nTop topics:", fg='yellow', bold=True))
        click.echo(tabulate([[t['topic'], t['count']] for t in data['top_topics']],
                            headers=['Topic', 'Citations'], tablefmt='simple'))

    if data['score_trend']:
        click.echo(click.style("\nMonthly trend:", fg='yellow', bold=True))
        click.echo(tabulate(
            [[s['month'], s['total_citations'], s['link_count'], s['mention_count'], s['citation_score']]
             for s in data['score_trend']],
            headers=['Month', 'Citations', 'Links', 'Mentions', 'Score'],
            tablefmt='simple'
        ))

    click.echo(click.style("\nRecent citations:", fg='yellow', bold=True))
    for c in data['recent_citations']:
        click.echo(f"  {click.style(c['citation_type'], fg='cyan')} {c['crawl_date']} {c['source_url']}")
        click.echo(f"    {c['context'][:160]}")

    if result['ai_summary']:
        click.echo(click.style("\nSummary:", fg='yellow', bold=True))
        click.echo(result['ai_summary'])
    click.echo()
