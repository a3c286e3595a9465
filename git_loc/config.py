"""Run configuration, credential loading and repository reference handling."""

import os
import re
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from .diff_accounting import CASUAL_COMMIT_THRESHOLD
from .exceptions import ConfigError
from .file_filters import FileFilter

DEFAULT_TOKEN_FILE = os.path.join(os.path.expanduser('~'), '.github_api_token')
DEFAULT_CACHE_DIR = 'cache'
DEFAULT_FRESHNESS = timedelta(days=1)
LEDGER_FILE_NAME = 'cache.json'

REPO_NAME = r'[A-Za-z0-9_.-]+'
FULL_REPO_REF = re.compile(rf'^{REPO_NAME}/{REPO_NAME}$')
BARE_REPO_REF = re.compile(rf'^{REPO_NAME}$')


@dataclass
class FetchConfig:
    """Settings for a get-github-data run, built once at startup."""
    user: str
    repos: List[str]
    file_filter: FileFilter = field(default_factory=FileFilter.from_strings)
    casual_commit_threshold: int = CASUAL_COMMIT_THRESHOLD
    token_file: str = DEFAULT_TOKEN_FILE
    cache_dir: str = DEFAULT_CACHE_DIR
    freshness: timedelta = DEFAULT_FRESHNESS
    force_refresh: bool = False
    default_owner: Optional[str] = None

    @property
    def ledger_path(self) -> str:
        return os.path.join(self.cache_dir, LEDGER_FILE_NAME)


@dataclass
class ReportConfig:
    """Settings for a calculate run."""
    from_time: datetime
    to_time: datetime
    cache_dir: str = DEFAULT_CACHE_DIR

    @property
    def ledger_path(self) -> str:
        return os.path.join(self.cache_dir, LEDGER_FILE_NAME)


def read_token(path: str) -> str:
    """Read a GitHub token from a file, ignoring whitespace and line endings.

    Raises:
        ConfigError: If the file is missing, unreadable or empty
    """
    path = os.path.expanduser(path)
    try:
        with open(path, 'r') as f:
            token = re.sub(r'\s', '', f.read())
    except OSError as e:
        raise ConfigError(
            f"Failed to read github token file {path}: {e.strerror}. "
            f"Create a personal access token at https://github.com/settings/tokens and save it there, "
            f"because github has a very strict limit on anonymous API usage"
        ) from e

    if not token:
        raise ConfigError(f"Github token file {path} is empty")
    return token


def normalize_repo(ref: str, default_owner: str = None) -> str:
    """Return 'owner/name' for a repository reference.

    Args:
        ref: 'owner/name', or a bare 'name' when default_owner is set
        default_owner: Owner used for bare names

    Raises:
        ConfigError: If the reference is malformed
    """
    ref = ref.strip().strip('/')
    if FULL_REPO_REF.match(ref):
        return ref
    if BARE_REPO_REF.match(ref):
        if default_owner:
            return f"{default_owner}/{ref}"
        raise ConfigError(f"Repository '{ref}' has no owner. Use the owner/name form or set a default owner")
    raise ConfigError(f"Malformed repository reference '{ref}', expected owner/name")


def split_list(value: Optional[str]) -> Optional[List[str]]:
    """Parse a comma-separated environment value (None when unset)."""
    if not value:
        return None
    return [item.strip() for item in value.split(',') if item.strip()]


def build_fetch_config(user: str, repos: Iterable[str], files_to_ignore: Iterable[str] = None,
                       casual_commit_threshold: int = CASUAL_COMMIT_THRESHOLD,
                       token_file: str = DEFAULT_TOKEN_FILE, cache_dir: str = DEFAULT_CACHE_DIR,
                       freshness: timedelta = DEFAULT_FRESHNESS, force_refresh: bool = False,
                       default_owner: str = None) -> FetchConfig:
    """Validate raw settings and resolve them into a FetchConfig.

    Raises:
        ConfigError: If the user is missing, a repository reference is malformed
            or an ignore rule does not compile
    """
    if not user:
        raise ConfigError("A GitHub username is required (argument or GITHUB_USERNAME)")

    normalized = []
    for repo in repos or []:
        full_name = normalize_repo(repo, default_owner)
        if full_name not in normalized:
            normalized.append(full_name)
    if not normalized:
        raise ConfigError("At least one repository is required (arguments or GITHUB_REPOS)")

    if casual_commit_threshold < 0:
        raise ConfigError(f"Casual commit threshold must not be negative, got {casual_commit_threshold}")

    config = FetchConfig(
        user=user,
        repos=normalized,
        file_filter=FileFilter.from_strings(files_to_ignore),
        casual_commit_threshold=casual_commit_threshold,
        token_file=token_file,
        cache_dir=cache_dir,
        freshness=freshness,
        force_refresh=force_refresh,
        default_owner=default_owner
    )
    logging.debug(f"Fetch configuration: {config}")
    return config
