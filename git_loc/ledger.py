"""Date-keyed contribution ledger and its JSON persistence."""

import os
import json
import logging
from typing import Dict, Iterator, Tuple

from .exceptions import ConfigError
from .models import ReconciledStats, WeekEntry


class Ledger:
    """Mapping of date key (merge date, or creation date if unmerged) to WeekEntry.

    Keys keep insertion order, but consumers should filter on the parsed
    date rather than rely on it.
    """

    def __init__(self, entries: Dict[str, WeekEntry] = None):
        self.entries: Dict[str, WeekEntry] = entries if entries is not None else {}

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: str) -> bool:
        return key in self.entries

    def __getitem__(self, key: str) -> WeekEntry:
        return self.entries[key]

    def items(self) -> Iterator[Tuple[str, WeekEntry]]:
        return iter(self.entries.items())

    def fold(self, date_key: str, stats: ReconciledStats, reviewed: bool = False) -> WeekEntry:
        """Add one pull request's stats to the bucket for date_key.

        Args:
            date_key: Bucket key
            stats: Reconciled stats of the pull request
            reviewed: Fold into the nested reviewed tally instead of the authored one

        Returns:
            The updated entry
        """
        entry = self.entries.get(date_key)
        if entry is None:
            entry = self.entries[date_key] = WeekEntry()

        tally = entry.reviewed if reviewed else entry
        tally.additions += stats.additions
        tally.deletions += stats.deletions
        tally.commits += stats.commits
        if stats.pr_ref in tally.prs:
            logging.warning(f"{stats.pr_ref} was already counted under {date_key}, not listing it twice")
        else:
            tally.prs.append(stats.pr_ref)
        return entry

    def to_dict(self) -> Dict:
        return {key: entry.to_dict() for key, entry in self.entries.items()}

    @classmethod
    def from_dict(cls, data: Dict) -> 'Ledger':
        return cls({key: WeekEntry.from_dict(value) for key, value in data.items()})

    def save(self, path: str):
        """Write the whole ledger to path, replacing any previous contents."""
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
        logging.info(f"Saved ledger to {path} with {len(self.entries)} entries")

    @classmethod
    def load(cls, path: str) -> 'Ledger':
        """Read a ledger written by save().

        Raises:
            ConfigError: If the file is missing or is not a JSON object
        """
        if not os.path.exists(path):
            raise ConfigError(f"Missing file: {path}, please run the get-github-data command first!")

        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Ledger file {path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Ledger file {path} should contain a JSON object")

        ledger = cls.from_dict(data)
        logging.info(f"Read {len(ledger)} week entries from {path}")
        return ledger
