"""
Archive index commands.
"""

import click
from tabulate import tabulate

from archive import ArchiveIndexClient, load_index_map


@click.group()
def index():
    """Inspect the month -> archive index mapping."""
    pass


@index.command()
@click.argument('months', nargs=-1, required=True)
def resolve(months):
    """
    Show which archive index each month is read from.

    Example:
        citations index resolve 2024-12 2025-01 2023-06
    """
    index_map = load_index_map()
    client = ArchiveIndexClient(index_map=index_map)
    rows = []
    for month in months:
        try:
            index_id = client.resolve(month)
        except ValueError as e:
            raise click.BadParameter(str(e))
        note = '' if month in index_map else click.style('default', fg='yellow')
        rows.append([month, index_id, note])
    click.echo(tabulate(rows, headers=['Month', 'Index', ''], tablefmt='simple'))


@index.command(name='list')
@click.option('--remote', is_flag=True, help='List indexes published by the archive instead of the local table')
def list_command(remote):
    """
    List known archive indexes.

    Example:
        citations index list
        citations index list --remote
    """
    if remote:
        ids = ArchiveIndexClient(index_map={}).list_available_indexes()
        if not ids:
            click.echo(click.style("Could not fetch the archive index list", fg='red'))
            return
        for index_id in ids:
            click.echo(index_id)
        return

    index_map = load_index_map()
    click.echo(tabulate(sorted(index_map.items()), headers=['Month', 'Index'], tablefmt='simple'))
