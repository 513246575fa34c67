#!/usr/bin/env python3
"""
CLI for web citation analysis.
"""

import click
from importlib.metadata import version
from commands import analysis, cache, compare, index, llm, stats


@click.group()
@click.version_option(version=version("citations"))
def cli():
    """Citation Analyzer CLI - Find, classify and score links to and mentions of a domain."""
    pass


# Register command groups
cli.add_command(analysis.analysis)
cli.add_command(compare.compare)
cli.add_command(stats.stats)
cli.add_command(cache.cache)
cli.add_command(index.index)
cli.add_command(llm.llm)


if __name__ == "__main__":
    cli()
