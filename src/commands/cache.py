"""
Crawl cache commands.
"""

import click
from tabulate import tabulate

from archive import validate_month
from db import Database
from processors.jobs import normalize_domain


@click.group()
def cache():
    """Manage the (domain, month) crawl cache."""
    pass


@cache.command()
def stats():
    """
    Show crawl cache statistics.

    Example:
        citations cache stats
    """
    db = Database()
    session = db.get_session()
    try:
        entries = db.list_crawl_cache(session, limit=None)
    finally:
        session.close()

    if not entries:
        click.echo(click.style("No entries in cache", fg="yellow"))
        return

    domains = {e.domain for e in entries}
    click.echo(f"Cached months: {click.style(str(len(entries)), fg='green')}")
    click.echo(f"Domains: {click.style(str(len(domains)), fg='green')}")
    click.echo(f"Records considered: {sum(e.records_considered for e in entries)}")
    click.echo(f"Oldest entry: {min(e.created_at for e in entries).strftime('%Y-%m-%d %H:%M')}")
    click.echo(f"Newest entry: {max(e.created_at for e in entries).strftime('%Y-%m-%d %H:%M')}")


@cache.command(name='list')
@click.option('--domain', '-d', default=None, help='Filter by domain')
@click.option('--limit', '-l', type=int, default=20, help='Number of entries to show (default: 20)')
def list_command(domain, limit):
    """
    List scanned (domain, month) pairs.

    Example:
        citations cache list
        citations cache list --domain example.com
    """
    db = Database()
    session = db.get_session()
    try:
        entries = db.list_crawl_cache(session, domain=normalize_domain(domain) if domain else None, limit=limit)
        rows = [
            [e.domain, e.crawl_month, e.index_id or 'N/A', e.records_considered, e.created_at.strftime('%Y-%m-%d %H:%M')]
            for e in entries
        ]
    finally:
        session.close()

    if not rows:
        click.echo(click.style("No entries in cache", fg="yellow"))
        return

    click.echo(tabulate(rows, headers=['Domain', 'Month', 'Index', 'Records', 'Cached'], tablefmt='simple'))


@cache.command()
@click.option('--domain', '-d', default=None, help='Only clear entries of this domain')
@click.option('--month', '-m', default=None, help='Only clear entries of this month (YYYY-MM)')
@click.option('--yes', '-y', is_flag=True, help='Skip confirmation')
def clear(domain, month, yes):
    """
    Clear cache entries so the next analysis re-scans the archive.

    Stored citations are kept.

    Example:
        citations cache clear --domain example.com
        citations cache clear --domain example.com --month 2025-01
        citations cache clear --yes
    """
    if month:
        try:
            validate_month(month)
        except ValueError as e:
            raise click.BadParameter(str(e))

    scope = ' '.join(filter(None, [normalize_domain(domain) if domain else None, month])) or 'all domains'
    if not yes and not click.confirm(f"Clear crawl cache for {scope}?"):
        click.echo("Cancelled")
        return

    db = Database()
    session = db.get_session()
    try:
        count = db.clear_crawl_cache(session, domain=normalize_domain(domain) if domain else None, month=month)
    finally:
        session.close()

    click.echo(click.style(f"✓ Cleared {count} cache entr{'y' if count == 1 else 'ies'}", fg='green'))
