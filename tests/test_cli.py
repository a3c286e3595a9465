"""
Unit tests for the command line entry point
"""

import logging
import pytest
from datetime import timedelta
from unittest.mock import patch

from git_loc import cli
from git_loc.ledger import Ledger
from git_loc.models import ReconciledStats


@pytest.fixture
def ledger_dir(tmp_path):
    ledger = Ledger()
    ledger.fold('2024-01-10T00:00:00Z', ReconciledStats(10, 2, 1, 'x#1'))
    ledger.fold('2024-06-01T00:00:00Z', ReconciledStats(5, 1, 1, 'x#2'))
    ledger.fold('2024-06-02T00:00:00Z', ReconciledStats(30, 3, 2, 'y#9'), reviewed=True)
    ledger.save(str(tmp_path / 'cache.json'))
    return tmp_path


class TestCalculateCommand:
    """Test cases for the calculate command."""

    def test_prints_range_totals(self, ledger_dir, capsys):
        exit_code = cli.main(['calculate', '2024-05-01', '2024-07-01',
                              '--cache-dir', str(ledger_dir), '--no-color'])

        output = capsys.readouterr().out
        assert exit_code == 0
        assert 'Added Lines   : 5' in output
        assert 'Removed Lines : 1' in output
        assert 'PRs           : 1 - x#2' in output
        assert 'Added Lines   : 30' in output
        assert 'y#9' in output
        assert 'x#1' not in output

    def test_count_alias(self, ledger_dir, capsys):
        assert cli.main(['count', '2024-01-01', '2024-12-31', '--cache-dir', str(ledger_dir)]) == 0

    def test_missing_ledger(self, tmp_path, caplog):
        assert cli.main(['calculate', '--cache-dir', str(tmp_path)]) == 1
        assert 'please run the get-github-data command first' in caplog.text

    def test_bad_date(self, ledger_dir):
        assert cli.main(['calculate', 'whenever', '--cache-dir', str(ledger_dir)]) == 1


class TestGetGithubDataCommand:
    """Test cases for the get-github-data command."""

    def test_builds_config_and_runs(self, tmp_path):
        with patch.object(cli, 'ContributionAggregator') as aggregator_cls:
            aggregator_cls.return_value.run.return_value = Ledger()

            exit_code = cli.main([
                'get-prs', 'me', 'pipelines', 'o/r',
                '--default-owner', 'kubeflow',
                '--files-to-ignore', 'vendor/', 'r///\\.pb\\.go$/',
                '--casual-commit-threshold', '800',
                '--cache-dir', str(tmp_path),
                '--cache-freshness-hours', '6',
                '--force-refresh',
            ])

        assert exit_code == 0
        config = aggregator_cls.call_args[0][0]
        assert config.user == 'me'
        assert config.repos == ['kubeflow/pipelines', 'o/r']
        assert config.casual_commit_threshold == 800
        assert config.freshness == timedelta(hours=6)
        assert config.force_refresh is True
        assert config.file_filter.is_ignored('api/x.pb.go')
        assert not config.file_filter.is_ignored('package-lock.json')

    def test_missing_token_file_exits_non_zero(self, tmp_path, caplog):
        exit_code = cli.main(['get-github-data', 'me', 'o/r',
                              '--github-api-token-file', str(tmp_path / 'missing'),
                              '--cache-dir', str(tmp_path)])

        assert exit_code == 1
        assert 'Failed to read github token file' in caplog.text

    def test_malformed_repo_exits_non_zero(self, tmp_path):
        assert cli.main(['get-github-data', 'me', 'not/a/repo', '--cache-dir', str(tmp_path)]) == 1

    def test_unexpected_error_exits_non_zero(self, tmp_path):
        with patch.object(cli, 'ContributionAggregator') as aggregator_cls:
            aggregator_cls.return_value.run.side_effect = RuntimeError("boom")

            assert cli.main(['get-github-data', 'me', 'o/r', '--cache-dir', str(tmp_path)]) == 1

    def test_unexpected_error_is_one_line(self, tmp_path, caplog):
        caplog.set_level(logging.INFO)
        with patch.object(cli, 'ContributionAggregator') as aggregator_cls:
            aggregator_cls.return_value.run.side_effect = RuntimeError("boom")

            cli.main(['get-github-data', 'me', 'o/r', '--cache-dir', str(tmp_path)])

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert [r.getMessage() for r in errors] == ["Error occurred: RuntimeError('boom')"]
        assert errors[0].exc_info is None
        assert 'Traceback' not in caplog.text

    def test_traceback_logged_at_debug_level(self, tmp_path, caplog):
        caplog.set_level(logging.DEBUG)
        with patch.object(cli, 'ContributionAggregator') as aggregator_cls:
            aggregator_cls.return_value.run.side_effect = RuntimeError("boom")

            cli.main(['get-github-data', 'me', 'o/r', '--cache-dir', str(tmp_path)])

        debug_tracebacks = [r for r in caplog.records if r.levelno == logging.DEBUG and r.exc_info]
        assert len(debug_tracebacks) == 1
