#!/usr/bin/env python3
"""
git-loc
Counts GitHub contributions (lines added/removed, commits, PRs) authored and
reviewed by a user across repositories.
"""

import sys

from git_loc.cli import main


if __name__ == "__main__":
    sys.exit(main())
