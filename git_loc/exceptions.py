"""Exceptions raised while fetching and accounting contributions."""

from typing import List


class GitLocError(Exception):
    """Base class for errors that abort a git-loc run."""


class ConfigError(GitLocError):
    """Invalid or missing configuration (token file, repository reference, ignore rule)."""


class FetchExhausted(GitLocError):
    """Every retry attempt for a single URL failed."""

    def __init__(self, url: str, last_error: Exception = None):
        self.url = url
        self.last_error = last_error
        message = f"Failed to fetch {url} after exhausting all retries"
        if last_error is not None:
            message += f" (last error: {last_error})"
        super().__init__(message)


class AccountingError(GitLocError):
    """Unexpected failure while classifying or folding a repository's pull requests.

    suspects lists the pull request numbers that lack the author or
    reviewer fields the aggregator relies on.
    """

    def __init__(self, repo: str, message: str, suspects: List[int] = None):
        self.repo = repo
        self.suspects = suspects or []
        text = f"Something broke while accounting {repo}: {message}"
        if self.suspects:
            text += f" (PRs missing author/reviewer fields: {', '.join(f'#{n}' for n in self.suspects)})"
        super().__init__(text)
