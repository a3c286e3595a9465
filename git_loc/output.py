"""Console output for contribution reports."""

from datetime import datetime

from .models import Summary, Tally


# ANSI color codes
GREEN = '\033[92m'
YELLOW = '\033[93m'
RED = '\033[91m'
CYAN = '\033[96m'
BOLD = '\033[1m'
RESET = '\033[0m'

MAX_LISTED_PRS = 5


class OutputFormatter:
    """Formats and prints contribution summaries."""

    def __init__(self, use_color: bool = True):
        self.use_color = use_color

    def _c(self, value, color: str = CYAN) -> str:
        if not self.use_color:
            return f"{value}"
        return f"{color}{value}{RESET}"

    def format_tally(self, tally: Tally) -> list:
        """Render the lines describing one tally."""
        lines = [
            f"Added Lines   : {self._c(f'{tally.additions:,}', GREEN)}",
            f"Removed Lines : {self._c(f'{tally.deletions:,}', RED)}",
            f"Commits       : {self._c(tally.commits)}",
        ]
        prs_line = f"PRs           : {self._c(len(tally.prs))}"
        if 0 < len(tally.prs) < MAX_LISTED_PRS:
            prs_line += ' - ' + ', '.join(self._c(pr, YELLOW) for pr in tally.prs)
        lines.append(prs_line)
        return lines

    def print_summary(self, summary: Summary, from_time: datetime, to_time: datetime):
        """Print authored and reviewed totals for a range."""
        print("\n" + "="*80)
        print(f"Stats for {self._c(from_time.isoformat())} -> {self._c(to_time.isoformat())}")
        print("="*80)

        print(f"\n{self._c('Authored', BOLD)}")
        for line in self.format_tally(summary.authored):
            print(line)

        print(f"\n{self._c('Reviewed', BOLD)}")
        for line in self.format_tally(summary.reviewed):
            print(line)
