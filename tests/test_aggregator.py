"""
Unit tests for contribution aggregation
"""

import json
import pytest
from unittest.mock import Mock

from git_loc.aggregator import ContributionAggregator
from git_loc.api_client import GitHubAPIClient
from git_loc.cache import RepoCache
from git_loc.config import build_fetch_config
from git_loc.exceptions import AccountingError, ConfigError, FetchExhausted
from git_loc.ledger import Ledger
from git_loc.models import Tally


def file_diff(path, additions, deletions=0):
    lines = [f"diff --git a/{path} b/{path}", f"--- a/{path}", f"+++ b/{path}",
             f"@@ -{1 if deletions else 0},{deletions} +1,{additions} @@"]
    lines += ['-x'] * deletions + ['+y'] * additions
    return '\n'.join(lines) + '\n'


def make_pr(number, author='someone', head_owner=None, reviewers=(), assignees=(), repo='o/r'):
    return {
        'number': number,
        'url': f"https://api.github.com/repos/{repo}/pulls/{number}",
        'user': {'login': author},
        'head': {'user': {'login': head_owner or author}},
        'requested_reviewers': [{'login': r} for r in reviewers],
        'assignees': [{'login': a} for a in assignees],
        'created_at': '2024-01-01T00:00:00Z',
    }


class FakeGitHub:
    """Serves PR details and patches by URL."""

    def __init__(self):
        self.details = {}
        self.patches = {}

    def add(self, repo, number, patch, additions, deletions, commits=1,
            merged_at='2024-06-01T10:00:00Z', created_at='2024-05-30T10:00:00Z'):
        url = f"https://api.github.com/repos/{repo}/pulls/{number}"
        patch_url = f"https://github.com/{repo}/pull/{number}.patch"
        self.details[url] = {
            'number': number,
            'patch_url': patch_url,
            'additions': additions,
            'deletions': deletions,
            'commits': commits,
            'merged_at': merged_at,
            'created_at': created_at,
        }
        self.patches[patch_url] = patch

    def fetch(self, url, params=None, fmt='json'):
        if fmt == 'text':
            return self.patches[url]
        return self.details[url]


@pytest.fixture
def github():
    return FakeGitHub()


@pytest.fixture
def config(tmp_path):
    return build_fetch_config('me', ['o/r'], files_to_ignore=['generated/'], cache_dir=str(tmp_path))


@pytest.fixture
def repo_cache():
    cache = Mock(spec=RepoCache)
    cache.get_repo_pull_requests.return_value = []
    return cache


@pytest.fixture
def aggregator(config, github, repo_cache):
    api_client = Mock(spec=GitHubAPIClient)
    api_client.fetch.side_effect = github.fetch
    return ContributionAggregator(config, api_client=api_client, repo_cache=repo_cache)


class TestClassify:
    """Test cases for splitting PRs into authored and reviewed."""

    def test_author(self, aggregator):
        authored, reviewed = aggregator.classify([make_pr(1, author='me')])
        assert [pr['number'] for pr in authored] == [1]
        assert reviewed == []

    def test_source_branch_owner(self, aggregator):
        authored, _ = aggregator.classify([make_pr(1, author='bot', head_owner='me')])
        assert [pr['number'] for pr in authored] == [1]

    def test_requested_reviewer(self, aggregator):
        authored, reviewed = aggregator.classify([make_pr(1, author='other', reviewers=['me'])])
        assert authored == []
        assert [pr['number'] for pr in reviewed] == [1]

    def test_assignee(self, aggregator):
        _, reviewed = aggregator.classify([make_pr(1, author='other', assignees=['me'])])
        assert [pr['number'] for pr in reviewed] == [1]

    def test_author_assigned_to_own_pr_is_only_authored(self, aggregator):
        authored, reviewed = aggregator.classify([make_pr(1, author='me', assignees=['me'])])
        assert len(authored) == 1
        assert reviewed == []

    def test_unrelated(self, aggregator):
        assert aggregator.classify([make_pr(1, author='other', reviewers=['third'])]) == ([], [])

    def test_deleted_fork_owner(self, aggregator):
        pr = make_pr(1, author='me')
        pr['head']['user'] = None
        authored, _ = aggregator.classify([pr])
        assert len(authored) == 1

    def test_missing_author_field_raises(self, aggregator):
        pr = make_pr(1)
        del pr['user']
        with pytest.raises(KeyError):
            aggregator.classify([pr])


class TestAccountPullRequest:
    """Test cases for a single PR."""

    def test_reconciles_patch(self, aggregator, github):
        patch = file_diff('a.txt', 50, 5) + file_diff('generated/x.pb.go', 900)
        github.add('o/r', 3, patch, additions=950, deletions=5, commits=4)

        date_key, stats = aggregator.account_pull_request('o/r', make_pr(3, author='me'))

        assert date_key == '2024-06-01T10:00:00Z'
        assert (stats.additions, stats.deletions, stats.commits) == (50, 5, 4)
        assert stats.pr_ref == 'o/r#3'

    def test_unmerged_pr_uses_creation_date(self, aggregator, github):
        github.add('o/r', 4, file_diff('a.txt', 1), 1, 0, merged_at=None)

        date_key, _ = aggregator.account_pull_request('o/r', make_pr(4, author='me'))

        assert date_key == '2024-05-30T10:00:00Z'


class TestAnalyzeRepository:
    """Test cases for accounting a repository."""

    def test_authored_and_reviewed_share_date_bucket(self, aggregator, github, repo_cache):
        repo_cache.get_repo_pull_requests.return_value = [
            make_pr(2, author='other', reviewers=['me']),
            make_pr(1, author='me'),
            make_pr(0, author='other'),
        ]
        github.add('o/r', 1, file_diff('a.txt', 10, 2), 10, 2, commits=3)
        github.add('o/r', 2, file_diff('b.txt', 7), 7, 0, commits=1)
        ledger = Ledger()

        count = aggregator.analyze_repository('o/r', ledger)

        assert count == 2
        entry = ledger['2024-06-01T10:00:00Z']
        assert (entry.additions, entry.deletions, entry.commits, entry.prs) == (10, 2, 3, ['o/r#1'])
        assert entry.reviewed == Tally(7, 0, 1, ['o/r#2'])

    def test_no_history_is_skipped(self, aggregator, repo_cache, caplog):
        repo_cache.get_repo_pull_requests.return_value = [make_pr(1, author='other')]
        ledger = Ledger()

        assert aggregator.analyze_repository('o/r', ledger) == 0
        assert len(ledger) == 0
        assert 'me has no history in o/r' in caplog.text

    def test_fetch_failure_propagates(self, aggregator, repo_cache):
        repo_cache.get_repo_pull_requests.return_value = [make_pr(1, author='me')]
        aggregator.api_client.fetch.side_effect = FetchExhausted('https://api.github.com/repos/o/r/pulls/1')

        with pytest.raises(FetchExhausted):
            aggregator.analyze_repository('o/r', Ledger())

    def test_unexpected_failure_becomes_accounting_error(self, aggregator, github, repo_cache):
        repo_cache.get_repo_pull_requests.return_value = [make_pr(1, author='me')]
        github.add('o/r', 1, file_diff('a.txt', 1), 1, 0)
        del github.details['https://api.github.com/repos/o/r/pulls/1']['patch_url']

        with pytest.raises(AccountingError, match='PR #1'):
            aggregator.analyze_repository('o/r', Ledger())

    def test_malformed_listing_names_suspects(self, aggregator, repo_cache):
        broken = make_pr(7, author='me')
        del broken['head']
        repo_cache.get_repo_pull_requests.return_value = [make_pr(8, author='other'), broken]

        with pytest.raises(AccountingError) as exc_info:
            aggregator.analyze_repository('o/r', Ledger())

        assert exc_info.value.suspects == [7]
        assert '#7' in str(exc_info.value)


class TestRun:
    """Test cases for a full run."""

    def test_ledger_saved_after_each_repository(self, config, github, repo_cache, tmp_path):
        config.repos = ['o/r', 'o/broken']
        api_client = Mock(spec=GitHubAPIClient)
        api_client.fetch.side_effect = github.fetch
        github.add('o/r', 1, file_diff('a.txt', 10), 10, 0)

        def listing(repo):
            if repo == 'o/broken':
                raise FetchExhausted('https://api.github.com/repos/o/broken/pulls')
            return [make_pr(1, author='me')]

        repo_cache.get_repo_pull_requests.side_effect = listing
        aggregator = ContributionAggregator(config, api_client=api_client, repo_cache=repo_cache)

        with pytest.raises(FetchExhausted):
            aggregator.run()

        with open(config.ledger_path) as f:
            saved = json.load(f)
        assert saved == {
            '2024-06-01T10:00:00Z': {'a': 10, 'd': 0, 'c': 1, 'pr': ['o/r#1'],
                                     'reviewed': {'a': 0, 'd': 0, 'c': 0, 'pr': []}},
        }

    def test_run_returns_fresh_ledger(self, aggregator, github, repo_cache, config):
        repo_cache.get_repo_pull_requests.return_value = [make_pr(1, author='me')]
        github.add('o/r', 1, file_diff('a.txt', 10), 10, 0)

        first = aggregator.run()
        second = aggregator.run()

        assert first.to_dict() == second.to_dict()
        assert Ledger.load(config.ledger_path).to_dict() == second.to_dict()

    def test_missing_token_file(self, tmp_path):
        config = build_fetch_config('me', ['o/r'], token_file=str(tmp_path / 'no_token'))

        with pytest.raises(ConfigError):
            ContributionAggregator(config)
