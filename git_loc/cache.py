"""Differential on-disk cache of per-repository pull request listings."""

import os
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List

from .api_client import GitHubAPIClient
from .pagination import StopAtPullRequest, is_newest_first

COLD_PAGE_BATCH = 10
WARM_PAGE_BATCH = 2  # an incremental fetch rarely needs more than a page or two


def _parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, '%Y-%m-%dT%H:%M:%SZ').replace(tzinfo=timezone.utc)


class RepoCache:
    """Keeps one JSON array of closed pull requests per repository, newest first.

    On refresh only the pull requests newer than the newest cached one are
    fetched, then prepended to the cached list.
    """

    def __init__(self, api_client: GitHubAPIClient, cache_dir: str = 'cache',
                 freshness: timedelta = timedelta(days=1), force_refresh: bool = False):
        """Initialize the repository cache.

        Args:
            api_client: Client used for incremental fetches
            cache_dir: Folder holding the per-repository cache files
            freshness: How recent the newest cached pull request must be to skip fetching
            force_refresh: Ignore existing cache contents and fetch the full history
        """
        self.api_client = api_client
        self.cache_dir = cache_dir
        self.freshness = freshness
        self.force_refresh = force_refresh

    def cache_path(self, repo: str) -> str:
        """Path of the cache file for an 'owner/name' repository."""
        safe_name = repo.replace('/', '__').replace(os.sep, '__')
        return os.path.join(self.cache_dir, f"{safe_name}.prs.json")

    def load(self, repo: str) -> List[Dict]:
        """Load a repository's cached pull requests ([] if none or unreadable)."""
        path = self.cache_path(repo)
        if not os.path.exists(path):
            return []

        try:
            with open(path, 'r') as f:
                prs = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logging.warning(f"Failed to load PR cache {path}: {e}")
            return []

        if not isinstance(prs, list):
            logging.warning(f"Ignoring PR cache {path}: expected a JSON array")
            return []

        logging.debug(f"Loaded {len(prs)} cached PRs from {path}")
        return prs

    def save(self, repo: str, prs: List[Dict]):
        """Rewrite a repository's cache file in full."""
        os.makedirs(self.cache_dir, exist_ok=True)
        path = self.cache_path(repo)
        with open(path, 'w') as f:
            json.dump(prs, f)
        logging.info(f"Saved {len(prs)} PRs to {path}")

    def is_fresh(self, cached: List[Dict], now: datetime = None) -> bool:
        """Check whether the newest cached pull request was created within the freshness window."""
        if not cached:
            return False
        now = now or datetime.now(timezone.utc)
        try:
            newest = _parse_timestamp(cached[0]['created_at'])
        except (KeyError, TypeError, ValueError):
            return False
        return newest > now - self.freshness

    def get_repo_pull_requests(self, repo: str) -> List[Dict]:
        """Get all closed pull requests of a repository, newest first.

        Args:
            repo: Repository in 'owner/name' form

        Returns:
            Cached pull requests, extended with any newer ones from the API
        """
        cached = [] if self.force_refresh else self.load(repo)

        if self.is_fresh(cached):
            logging.info(f"    Using cached results for {repo} ({len(cached)} PRs)")
            return cached

        if cached:
            stop_condition = StopAtPullRequest(cached[0]['number'])
            batch_size = WARM_PAGE_BATCH
            logging.info(f"    Fetching PRs newer than #{cached[0]['number']} for {repo}")
        else:
            stop_condition = None
            batch_size = COLD_PAGE_BATCH
            logging.info(f"    Fetching full PR history for {repo}")

        url = f"https://api.github.com/repos/{repo}/pulls"
        fresh = self.api_client.get_paginated(url, {
            'state': 'closed',
            'sort': 'created',
            'direction': 'desc'
        }, batch_size=batch_size, stop_condition=stop_condition)

        merged = self._merge(repo, fresh, cached)
        self.save(repo, merged)
        return merged

    def _merge(self, repo: str, fresh: List[Dict], cached: List[Dict]) -> List[Dict]:
        if not is_newest_first(fresh):
            logging.warning(f"PR listing for {repo} is not sorted newest first; "
                            f"the cache may miss or repeat entries")

        known = {pr.get('number') for pr in cached}
        new_prs = [pr for pr in fresh if pr.get('number') not in known]
        if len(new_prs) != len(fresh):
            logging.warning(f"Dropped {len(fresh) - len(new_prs)} already cached PR(s) for {repo}; "
                            f"the cached boundary was not where expected")

        logging.info(f"    Found {len(new_prs)} new PRs for {repo} ({len(cached)} cached)")
        return new_prs + cached
