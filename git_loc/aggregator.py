"""Contribution aggregation across repositories."""

import logging
from typing import Dict, List, Optional, Tuple
from concurrent.futures import ThreadPoolExecutor, as_completed

from .api_client import GitHubAPIClient
from .cache import RepoCache
from .config import FetchConfig, read_token
from .diff_accounting import reconcile
from .exceptions import AccountingError, FetchExhausted
from .ledger import Ledger
from .models import ReconciledStats

MAX_WORKERS = 10


def _login(account: Optional[Dict]) -> Optional[str]:
    return account['login'] if account else None


def _suspect_prs(prs: List[Dict]) -> List[int]:
    """Numbers of pull requests lacking the author or head fields classification relies on."""
    return [
        pr.get('number') for pr in prs
        if not isinstance(pr, dict) or not pr.get('user') or not isinstance(pr.get('head'), dict)
    ]


class ContributionAggregator:
    """Accounts a user's authored and reviewed pull requests into a date-keyed ledger."""

    def __init__(self, config: FetchConfig, api_client: GitHubAPIClient = None,
                 repo_cache: RepoCache = None):
        """Initialize the aggregator.

        Args:
            config: Run configuration
            api_client: Client to use (built from the configured token file if None)
            repo_cache: Repository cache to use (built from the configuration if None)
        """
        self.config = config
        self.username = config.user
        self.api_client = api_client or GitHubAPIClient(read_token(config.token_file))
        self.repo_cache = repo_cache or RepoCache(
            self.api_client,
            cache_dir=config.cache_dir,
            freshness=config.freshness,
            force_refresh=config.force_refresh
        )

        logging.info(f"Initialized aggregator for user '{self.username}'")

    def run(self, repos: List[str] = None) -> Ledger:
        """Account every configured repository, saving the ledger after each one.

        Args:
            repos: Repositories to scan (defaults to the configured ones)

        Returns:
            The ledger built during this run
        """
        repos = repos or self.config.repos
        ledger = Ledger()

        for index, repo in enumerate(repos, start=1):
            logging.info(f"Scanning {self.username}@ -> {repo} (Repos Covered: {index}/{len(repos)})")
            self.analyze_repository(repo, ledger)
            ledger.save(self.config.ledger_path)

        logging.info(f"Completed analysis of {len(repos)} repository/repositories")
        return ledger

    def classify(self, prs: List[Dict]) -> Tuple[List[Dict], List[Dict]]:
        """Split pull requests into those the user authored and those the user reviewed.

        A pull request is authored when the user opened it or owns its source
        branch, and reviewed when the user is a requested reviewer or an
        assignee without being the author.

        Returns:
            Tuple of (authored, reviewed)
        """
        authored = []
        reviewed = []

        for pr in prs:
            author = _login(pr['user'])
            head_owner = _login(pr['head'].get('user'))
            if self.username in (author, head_owner):
                authored.append(pr)
                continue

            reviewers = {_login(r) for r in pr.get('requested_reviewers') or []}
            reviewers |= {_login(a) for a in pr.get('assignees') or []}
            if self.username in reviewers:
                reviewed.append(pr)

        return authored, reviewed

    def analyze_repository(self, repo: str, ledger: Ledger) -> int:
        """Account one repository's pull requests into the ledger.

        Args:
            repo: Repository in 'owner/name' form
            ledger: Ledger to fold the results into

        Returns:
            Number of pull requests accounted

        Raises:
            FetchExhausted: If a request could not be completed
            AccountingError: On any other failure while accounting the repository
        """
        prs = self.repo_cache.get_repo_pull_requests(repo)

        try:
            authored, reviewed = self.classify(prs)
        except (KeyError, TypeError, AttributeError) as e:
            raise AccountingError(repo, f"could not classify PRs ({e!r})", _suspect_prs(prs)) from e

        if not authored and not reviewed:
            logging.warning(f"{self.username} has no history in {repo}")
            return 0

        logging.info(f"Looking at {len(authored)} authored and {len(reviewed)} reviewed "
                     f"of {len(prs)} PRs in {repo}")

        jobs = [(pr, False) for pr in authored] + [(pr, True) for pr in reviewed]
        self._process_prs_parallel(repo, jobs, ledger)

        logging.info(f"Completed analysis of repository: {repo}")
        return len(jobs)

    def _process_prs_parallel(self, repo: str, jobs: List[Tuple[Dict, bool]], ledger: Ledger):
        completed = 0
        max_workers = min(MAX_WORKERS, len(jobs))

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_job = {
                executor.submit(self.account_pull_request, repo, pr): (pr, is_reviewed)
                for pr, is_reviewed in jobs
            }

            for future in as_completed(future_to_job):
                pr, is_reviewed = future_to_job[future]
                try:
                    date_key, stats = future.result()
                    ledger.fold(date_key, stats, reviewed=is_reviewed)
                except FetchExhausted:
                    executor.shutdown(wait=False, cancel_futures=True)
                    raise
                except Exception as e:
                    executor.shutdown(wait=False, cancel_futures=True)
                    raise AccountingError(
                        repo, f"PR #{pr.get('number')} failed ({e!r})", _suspect_prs([pr])
                    ) from e

                completed += 1
                if completed % 10 == 0 or completed == len(jobs):
                    logging.info(f"  Progress: {completed}/{len(jobs)} PRs accounted")

    def account_pull_request(self, repo: str, pr: Dict) -> Tuple[str, ReconciledStats]:
        """Fetch a pull request's details and patch and reconcile its line counts.

        Args:
            repo: Repository in 'owner/name' form
            pr: Pull request entry from the repository listing

        Returns:
            Tuple of (ledger date key, reconciled stats)
        """
        details = self.api_client.fetch(pr['url'])
        patch_text = self.api_client.fetch(details['patch_url'], fmt='text')

        number = details['number']
        pr_ref = f"{repo}#{number}"
        result = reconcile(
            patch_text,
            self.config.file_filter,
            details.get('additions', 0),
            details.get('deletions', 0),
            warn_threshold=self.config.casual_commit_threshold,
            pr_ref=pr_ref
        )
        commits = details.get('commits', 0)

        message = f"    Calc PR: #{number} | +{result.additions} -{result.deletions} c{commits}"
        if result.ignored_files:
            message += (f" (Ignored {result.ignored_files} files: "
                        f"+{result.ignored_additions} -{result.ignored_deletions})")
        logging.info(message)

        date_key = details.get('merged_at') or details['created_at']
        return date_key, ReconciledStats(
            additions=result.additions,
            deletions=result.deletions,
            commits=commits,
            pr_ref=pr_ref
        )
