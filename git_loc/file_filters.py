"""Ignore rules for excluding generated files from line counts."""

import re
import logging
from typing import Iterable, List, Pattern

from .exceptions import ConfigError


# Generated and vendored paths common in Kubeflow repositories
DEFAULT_IGNORED_FILES = [
    'package-lock.json',
    'license_info.csv',
    'license.txt',
    'generated/src/apis',
    'sdk/python/docs/_build',
    'generated/ml_metadata/proto',
    '/__snapshots__/',
    'site-packages/',
    'dev/null',
    'components/centraldashboard/app/clients',
    r'r///(\.(proto|pb\.go|libsonnet)|swagger\.json)$/',
    r'r///^bootstrap\//',
    'releasing/bootstrapper/',
]

REGEX_RULE = re.compile(r'^r///(?P<expr>.*)/(?P<flags>[a-zA-Z]*)$', re.DOTALL)
REGEX_FLAGS = {
    'i': re.IGNORECASE,
    'm': re.MULTILINE,
    's': re.DOTALL,
    'x': re.VERBOSE,
}


class IgnoreRule:
    """A rule deciding whether a file path should be left out of the line counts."""

    def matches(self, path: str) -> bool:
        raise NotImplementedError


class LiteralRule(IgnoreRule):
    """Matches paths containing the text anywhere."""

    def __init__(self, text: str):
        self.text = text

    def matches(self, path: str) -> bool:
        return self.text in path

    def __eq__(self, other):
        return isinstance(other, LiteralRule) and other.text == self.text

    def __repr__(self) -> str:
        return f"LiteralRule({self.text!r})"


class PatternRule(IgnoreRule):
    """Matches paths the regular expression finds a match in."""

    def __init__(self, regex: Pattern):
        self.regex = regex

    def matches(self, path: str) -> bool:
        return self.regex.search(path) is not None

    def __eq__(self, other):
        return isinstance(other, PatternRule) and other.regex == self.regex

    def __repr__(self) -> str:
        return f"PatternRule({self.regex.pattern!r})"


def parse_ignore_rule(raw: str) -> IgnoreRule:
    """Turn a configured string into an ignore rule.

    Strings written as r///<regex>/<flags> (e.g. r///\\.pb\\.go$/i) become
    regular expressions, anything else is matched literally.

    Raises:
        ConfigError: If the regular expression does not compile
    """
    match = REGEX_RULE.match(raw)
    if not match:
        return LiteralRule(raw)

    flags = 0
    for flag in match.group('flags'):
        if flag.lower() not in REGEX_FLAGS:
            raise ConfigError(f"Unsupported regex flag '{flag}' in ignore rule {raw!r}")
        flags |= REGEX_FLAGS[flag.lower()]

    try:
        return PatternRule(re.compile(match.group('expr'), flags))
    except re.error as e:
        raise ConfigError(f"Invalid regex in ignore rule {raw!r}: {e}") from e


class FileFilter:
    """Handles filtering of generated files from PR line counts."""

    def __init__(self, rules: Iterable[IgnoreRule] = ()):
        self.rules: List[IgnoreRule] = list(rules)

    @classmethod
    def from_strings(cls, raw_rules: Iterable[str] = None) -> 'FileFilter':
        """Build a filter from configured strings (uses the defaults if None)."""
        if raw_rules is None:
            raw_rules = DEFAULT_IGNORED_FILES
        rules = [parse_ignore_rule(raw) for raw in raw_rules]
        logging.debug(f"Ignoring files matching: {rules}")
        return cls(rules)

    def is_ignored(self, path: str) -> bool:
        """Check if a file should be left out of the line counts."""
        return any(rule.matches(path) for rule in self.rules)
