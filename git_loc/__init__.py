"""git-loc - GitHub contribution accounting for a single user."""

from .models import Tally, WeekEntry, FileChange, ReconcileResult, ReconciledStats, Summary
from .exceptions import GitLocError, ConfigError, FetchExhausted, AccountingError
from .api_client import GitHubAPIClient
from .pagination import StopCondition, StopAtPullRequest
from .cache import RepoCache
from .file_filters import FileFilter, LiteralRule, PatternRule, parse_ignore_rule, DEFAULT_IGNORED_FILES
from .diff_accounting import parse_patch, reconcile
from .ledger import Ledger
from .aggregator import ContributionAggregator
from .summarizer import summarize
from .output import OutputFormatter

__all__ = [
    'Tally',
    'WeekEntry',
    'FileChange',
    'ReconcileResult',
    'ReconciledStats',
    'Summary',
    'GitLocError',
    'ConfigError',
    'FetchExhausted',
    'AccountingError',
    'GitHubAPIClient',
    'StopCondition',
    'StopAtPullRequest',
    'RepoCache',
    'FileFilter',
    'LiteralRule',
    'PatternRule',
    'parse_ignore_rule',
    'DEFAULT_IGNORED_FILES',
    'parse_patch',
    'reconcile',
    'Ledger',
    'ContributionAggregator',
    'summarize',
    'OutputFormatter',
]
