"""Line accounting for pull request patches."""

import re
import logging
from typing import List

from .file_filters import FileFilter
from .models import FileChange, ReconcileResult

CASUAL_COMMIT_THRESHOLD = 500  # lines

HUNK_HEADER = re.compile(r'^@@ -\d+(?:,(\d+))? \+\d+(?:,(\d+))? @@')


def _clean_path(path: str) -> str:
    path = path.split('\t')[0].strip().strip('"')
    if path.startswith(('a/', 'b/')):
        return path[2:]
    return path


def _path_from_git_header(line: str) -> str:
    # diff --git a/<old> b/<new>
    header = line[len('diff --git '):].replace('"', '')
    return header.rsplit(' b/', 1)[-1].strip()


def _is_header_pair(lines: List[str], index: int) -> bool:
    """A '--- ' line followed by '+++ ' and a hunk header (commit messages can hold the first two)."""
    following = lines[index + 1:index + 3]
    return (lines[index].startswith('--- ') and len(following) == 2
            and following[0].startswith('+++ ') and following[1].startswith('@@'))


def parse_patch(text: str) -> List[FileChange]:
    """Split a unified diff or git format-patch series into per-file changes.

    Every 'diff --git' block (or ---/+++ header pair when there is none) is
    one FileChange, so a file touched by several commits of a series shows
    up several times. Hunk bodies are consumed using the line counts from
    their @@ headers, so commit messages and signature lines in between
    are never counted.

    Args:
        text: Patch text as returned by a pull request's patch_url

    Returns:
        File changes in patch order
    """
    files = []
    current = None
    has_hunks = False
    old_left = new_left = 0
    # Only '\n' ends a line: source lines may hold form feeds or U+2028
    lines = [line[:-1] if line.endswith('\r') else line for line in text.split('\n')]

    for index, line in enumerate(lines):
        if old_left > 0 or new_left > 0:
            if line.startswith('+'):
                current.additions += 1
                new_left -= 1
            elif line.startswith('-'):
                current.deletions += 1
                old_left -= 1
            elif line.startswith('\\'):
                pass  # \ No newline at end of file
            else:
                old_left -= 1
                new_left -= 1
            continue

        if line.startswith('diff --git '):
            current = FileChange(path=_path_from_git_header(line))
            files.append(current)
            has_hunks = False
        elif _is_header_pair(lines, index):
            if current is None or has_hunks:
                current = FileChange(path=_clean_path(line[4:]))
                files.append(current)
                has_hunks = False
        elif line.startswith('+++ ') and current is not None and not has_hunks:
            current.path = _clean_path(line[4:])
        elif line.startswith('@@') and current is not None:
            match = HUNK_HEADER.match(line)
            if not match:
                logging.debug(f"Skipping malformed hunk header: {line}")
                continue
            old_left = int(match.group(1)) if match.group(1) is not None else 1
            new_left = int(match.group(2)) if match.group(2) is not None else 1
            has_hunks = True

    return files


def reconcile(patch_text: str, file_filter: FileFilter, reported_additions: int,
              reported_deletions: int, warn_threshold: int = CASUAL_COMMIT_THRESHOLD,
              pr_ref: str = None) -> ReconcileResult:
    """Compute a pull request's line counts with ignored files left out.

    Ignored files are subtracted from the reported totals as well. The final
    count for each direction is the larger of the diff-derived count and the
    adjusted reported count, since the reported totals can include changes
    the patch text does not show (binary files, truncated patches).

    Args:
        patch_text: The pull request's patch
        file_filter: Rules deciding which files are ignored
        reported_additions: Additions reported by the API for the pull request
        reported_deletions: Deletions reported by the API for the pull request
        warn_threshold: Warn about counted files with more changed lines than this
        pr_ref: Pull request reference used in log messages

    Returns:
        ReconcileResult with the final and the ignored counts
    """
    label = pr_ref or 'PR'
    result = ReconcileResult()
    calculated_additions = 0
    calculated_deletions = 0

    for change in parse_patch(patch_text):
        if file_filter.is_ignored(change.path):
            result.ignored_files += 1
            result.ignored_additions += change.additions
            result.ignored_deletions += change.deletions
            reported_additions -= change.additions
            reported_deletions -= change.deletions
            logging.debug(f"Ignoring file: {change.path} (+{change.additions}/-{change.deletions})")
            continue

        calculated_additions += change.additions
        calculated_deletions += change.deletions
        if max(change.additions, change.deletions) > warn_threshold:
            logging.warning(f"{label} has a file {change.path} which seems to exceed a casual file size "
                            f"of {warn_threshold}. Make sure you didn't mean to ignore this")

    result.additions = max(reported_additions, calculated_additions)
    result.deletions = max(reported_deletions, calculated_deletions)
    return result
