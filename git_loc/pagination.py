"""Stop conditions for paginated pull request listings."""

from typing import Dict, List, Optional

Page = List[Dict]


class StopCondition:
    """Predicate evaluated against each fetched page, in page order.

    Returning None lets pagination continue with the whole page. Returning
    a list (possibly truncated, possibly empty) keeps only that list and
    stops pagination.
    """

    def __call__(self, page: Page) -> Optional[Page]:
        return None


class StopAtPullRequest(StopCondition):
    """Stop once the listing reaches an already known pull request."""

    def __init__(self, number: int):
        self.number = number

    def __call__(self, page: Page) -> Optional[Page]:
        for index, pr in enumerate(page):
            if pr.get('number') == self.number:
                return page[:index]
        return None

    def __repr__(self) -> str:
        return f"StopAtPullRequest(#{self.number})"


def is_newest_first(page: Page) -> bool:
    """Check that a page is sorted by descending creation time."""
    created = [pr.get('created_at') or '' for pr in page]
    return all(a >= b for a, b in zip(created, created[1:]))
