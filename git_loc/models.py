"""Data models for contribution accounting."""

from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class Tally:
    """Accumulated contribution volume."""
    additions: int = 0
    deletions: int = 0
    commits: int = 0
    prs: List[str] = field(default_factory=list)  # 'owner/repo#number' references

    def add(self, other: 'Tally'):
        """Accumulate another tally into this one."""
        self.additions += other.additions
        self.deletions += other.deletions
        self.commits += other.commits
        self.prs.extend(other.prs)

    def to_dict(self) -> Dict:
        return {'a': self.additions, 'd': self.deletions, 'c': self.commits, 'pr': list(self.prs)}

    @classmethod
    def from_dict(cls, data: Dict) -> 'Tally':
        return cls(
            additions=data.get('a', 0),
            deletions=data.get('d', 0),
            commits=data.get('c', 0),
            prs=list(data.get('pr') or [])
        )


@dataclass
class WeekEntry(Tally):
    """Ledger bucket: authored totals plus the nested reviewed totals for the same date."""
    reviewed: Tally = field(default_factory=Tally)

    def to_dict(self) -> Dict:
        data = super().to_dict()
        data['reviewed'] = self.reviewed.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'WeekEntry':
        authored = Tally.from_dict(data)
        return cls(
            additions=authored.additions,
            deletions=authored.deletions,
            commits=authored.commits,
            prs=authored.prs,
            reviewed=Tally.from_dict(data.get('reviewed') or {})
        )


@dataclass
class FileChange:
    """One file's entry in a pull request patch."""
    path: str
    additions: int = 0
    deletions: int = 0


@dataclass
class ReconcileResult:
    """Line counts for one patch after ignore filtering and reconciliation."""
    additions: int = 0
    deletions: int = 0
    ignored_files: int = 0
    ignored_additions: int = 0
    ignored_deletions: int = 0


@dataclass
class ReconciledStats:
    """Contribution of a single pull request, ready to be folded into the ledger."""
    additions: int
    deletions: int
    commits: int
    pr_ref: str


@dataclass
class Summary:
    """Totals for a time range."""
    authored: Tally = field(default_factory=Tally)
    reviewed: Tally = field(default_factory=Tally)
