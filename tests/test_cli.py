"""
Tests for the command line interface.
"""

import pytest
from click.testing import CliRunner

import settings
from cli import cli
from conftest import FakeClassifier
from db import Database
from processors.jobs import InlineExecutor, JobRunner, get_status
from processors.orchestrator import CitationPipeline


@pytest.fixture
def cli_db(tmp_path, monkeypatch):
    path = str(tmp_path / 'cli.db')
    monkeypatch.setattr(settings, 'DATABASE_PATH', path)
    return Database(path)


@pytest.fixture
def runner():
    return CliRunner()


class TestIndexCommands:

    def test_resolve(self, runner):
        result = runner.invoke(cli, ['index', 'resolve', '2024-06', '2019-01'])
        assert result.exit_code == 0
        assert 'CC-MAIN-2024-26' in result.output
        assert 'default' in result.output

    def test_resolve_invalid_month(self, runner):
        result = runner.invoke(cli, ['index', 'resolve', '2024-13'])
        assert result.exit_code != 0

    def test_list(self, runner):
        result = runner.invoke(cli, ['index', 'list'])
        assert result.exit_code == 0
        assert '2025-02' in result.output


class TestCacheCommands:

    def test_list_and_clear(self, runner, cli_db):
        session = cli_db.get_session()
        cli_db.save_crawl_cache(session, 'example.com', '2024-01', records_considered=4, index_id='CC-MAIN-2024-10')
        session.commit()
        session.close()

        listed = runner.invoke(cli, ['cache', 'list'])
        assert listed.exit_code == 0
        assert 'example.com' in listed.output

        cleared = runner.invoke(cli, ['cache', 'clear', '--domain', 'example.com', '--yes'])
        assert cleared.exit_code == 0
        assert 'Cleared 1 cache entry' in cleared.output

    def test_empty_stats(self, runner, cli_db):
        result = runner.invoke(cli, ['cache', 'stats'])
        assert 'No entries in cache' in result.output


class TestAnalysisCommands:

    def test_status_unknown_job(self, runner, cli_db):
        result = runner.invoke(cli, ['analysis', 'status', '99'])
        assert result.exit_code == 0
        assert 'Job 99 not found' in result.output

    def test_start_rejects_bad_month(self, runner, cli_db):
        result = runner.invoke(cli, ['analysis', 'start', 'example.com', '-m', '2024-1'])
        assert result.exit_code != 0
        assert 'Invalid month' in result.output

    def test_list_empty(self, runner, cli_db):
        result = runner.invoke(cli, ['analysis', 'list'])
        assert 'No jobs found' in result.output


class TestStatsCommand:

    def test_no_citations(self, runner, cli_db):
        result = runner.invoke(cli, ['stats', 'example.com'])
        assert 'No citations found for example.com' in result.output


@pytest.fixture
def inline_runner_factory(cli_db, example_archive):
    """Stand-in for create_runner that runs jobs inline against the example archive."""
    index_client, fetcher = example_archive

    def factory(db, executor=None, **options):
        return JobRunner(
            lambda: CitationPipeline(cli_db, index_client=index_client, fetcher=fetcher,
                                     classifier=FakeClassifier(), sleep=lambda seconds: None),
            executor=InlineExecutor()
        )
    return factory


class TestStartCommand:

    def test_no_wait_reports_final_status(self, runner, cli_db, inline_runner_factory, monkeypatch):
        monkeypatch.setattr('commands.analysis.create_runner', inline_runner_factory)

        result = runner.invoke(cli, ['analysis', 'start', 'example.com', '-m', '2024-01', '--no-wait'])

        assert result.exit_code == 0
        assert 'check progress from another shell' in result.output
        assert 'completed' in result.output
        assert get_status(cli_db, 1)['status'] == 'completed'


class TestCompareCommand:

    def test_without_run_pending_jobs_are_only_created(self, runner, cli_db):
        result = runner.invoke(cli, ['compare', 'example.com', 'newcomer.com', '-m', '2024-01'])

        assert result.exit_code == 0
        assert 'pending (job 1)' in result.output
        assert 'citations analysis run' in result.output
        assert get_status(cli_db, 1)['status'] == 'pending'

    def test_run_pending_shows_current_status(self, runner, cli_db, inline_runner_factory, monkeypatch):
        monkeypatch.setattr('commands.compare.create_runner', inline_runner_factory)

        result = runner.invoke(cli, ['compare', 'example.com', 'newcomer.com', '-m', '2024-01', '--run-pending'])

        assert result.exit_code == 0
        assert 'completed (job 1)' in result.output
        assert 'pending (job' not in result.output
        assert 'Ran jobs 1' in result.output
