"""
Arbiter rules: human decisions that override automatic version selection.

A rule is written as a single line of whitespace separated key=value pairs:

    groupId=org.green artifactId=.*-transport pinnedVersion=1.5.0
        any org.green artifact ending in -transport always uses 1.5.0

    groupId=org.red winningVersion=.*-patched
        for org.red artifacts, prefer a version ending in -patched if one is available

Every rule needs a groupId. Rules are evaluated in the order they were added.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from .dependency import Dependency
from .error_handling import InvalidRuleDefinition, log_rule_error
from .structured_logging import ArbitrationObserver

MATCH_ALL = ".*"

RULE_KEYS = ("groupId", "artifactId", "pinnedVersion", "winningVersion")


def _widen_wildcard(pattern: str) -> str:
    return MATCH_ALL if pattern == "*" else pattern


def _compile(pattern: str, key: str) -> re.Pattern:
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidRuleDefinition(
            f"Invalid regular expression for {key}: {pattern!r} ({e})"
        )


@dataclass(frozen=True)
class ArbiterRule:
    """A single override directive, validated when it is built."""

    group_pattern: str
    artifact_pattern: str = MATCH_ALL
    pinned_version: Optional[str] = None
    winning_version: Optional[str] = None
    _group_regex: re.Pattern = field(init=False, repr=False, compare=False)
    _artifact_regex: re.Pattern = field(init=False, repr=False, compare=False)
    _winning_regex: Optional[re.Pattern] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self):
        if not self.group_pattern:
            raise InvalidRuleDefinition("Invalid rule, must always have a groupId")
        if self.pinned_version is not None and not self.pinned_version.strip():
            raise InvalidRuleDefinition("pinnedVersion must not be empty")

        group_pattern = _widen_wildcard(self.group_pattern)
        artifact_pattern = _widen_wildcard(self.artifact_pattern or MATCH_ALL)
        object.__setattr__(self, "group_pattern", group_pattern)
        object.__setattr__(self, "artifact_pattern", artifact_pattern)
        object.__setattr__(
            self, "_group_regex", _compile(group_pattern, "groupId")
        )
        object.__setattr__(
            self, "_artifact_regex", _compile(artifact_pattern, "artifactId")
        )
        object.__setattr__(
            self,
            "_winning_regex",
            (
                _compile(self.winning_version, "winningVersion")
                if self.winning_version is not None
                else None
            ),
        )

    @property
    def is_pin(self) -> bool:
        return self.pinned_version is not None

    @property
    def is_tie_break(self) -> bool:
        return self.winning_version is not None

    def matches(self, dep: Dependency) -> bool:
        """True if both the groupId and the artifactId fully match."""
        return bool(
            self._group_regex.fullmatch(dep.group_id)
            and self._artifact_regex.fullmatch(dep.artifact_id)
        )

    def preprocess(
        self, dep: Dependency, observer: Optional[ArbitrationObserver] = None
    ) -> Optional[Dependency]:
        """
        Apply the pinned version to a matching dependency.

        Returns:
            A copy of ``dep`` carrying the pinned version, or None if the
            rule has no pin or does not match
        """
        if self.pinned_version is None or not self.matches(dep):
            return None

        pinned = dep.with_version(self.pinned_version)
        if observer is not None:
            observer.rule_pinned(self, pinned)
        return pinned

    def prefer(
        self,
        first: Dependency,
        second: Dependency,
        observer: Optional[ArbitrationObserver] = None,
    ) -> Optional[Dependency]:
        """
        Pick whichever dependency has a version label matching winningVersion.

        Both dependencies must share the same logical identity, so matching
        ``first`` is enough. Returns None when both or neither label match.
        """
        if self._winning_regex is None or not self.matches(first):
            return None

        first_wins = bool(self._winning_regex.fullmatch(first.version.label))
        second_wins = bool(self._winning_regex.fullmatch(second.version.label))
        if first_wins and not second_wins:
            chosen = first
        elif second_wins and not first_wins:
            chosen = second
        else:
            if observer is not None:
                observer.rule_no_preference(self, first, second)
            return None

        if observer is not None:
            observer.rule_preferred(self, chosen)
        return chosen

    def to_line(self) -> str:
        """Render the rule back into its textual form."""
        parts = [f"groupId={self.group_pattern}", f"artifactId={self.artifact_pattern}"]
        if self.pinned_version is not None:
            parts.append(f"pinnedVersion={self.pinned_version}")
        if self.winning_version is not None:
            parts.append(f"winningVersion={self.winning_version}")
        return " ".join(parts)

    def __str__(self) -> str:
        return (
            f"Rule groupId={self.group_pattern} artifactId={self.artifact_pattern} "
            f"pinnedVersion={self.pinned_version} winningVersion={self.winning_version}"
        )


def parse_rule_line(rule_line: str) -> ArbiterRule:
    """
    Parse a textual rule definition.

    Args:
        rule_line: e.g. "groupId=com.green winningVersion=.*patched"

    Returns:
        ArbiterRule: the validated rule

    Raises:
        InvalidRuleDefinition: if the line is empty, has a token without '=',
            uses an unknown or repeated key, has no groupId, or a pattern
            is not a valid regular expression
    """
    if rule_line is None or not rule_line.strip():
        raise InvalidRuleDefinition("Invalid empty rule line.", rule_line)

    values: Dict[str, str] = {}
    for token in rule_line.split():
        key, separator, value = token.partition("=")
        if not separator or not key:
            raise InvalidRuleDefinition(
                f"Unparseable rule token {token!r}, expected key=value: {rule_line}",
                rule_line,
            )
        if key not in RULE_KEYS:
            raise InvalidRuleDefinition(
                f"Unknown rule key {key!r}, expected one of {', '.join(RULE_KEYS)}: {rule_line}",
                rule_line,
            )
        if key in values:
            raise InvalidRuleDefinition(
                f"Rule key {key!r} given more than once: {rule_line}", rule_line
            )
        values[key] = value

    if not values.get("groupId"):
        raise InvalidRuleDefinition(
            f"Invalid rule, must always have a groupId: {rule_line.strip()}", rule_line
        )

    try:
        return ArbiterRule(
            group_pattern=values["groupId"],
            artifact_pattern=values.get("artifactId", MATCH_ALL),
            pinned_version=values.get("pinnedVersion"),
            winning_version=values.get("winningVersion"),
        )
    except InvalidRuleDefinition as e:
        raise InvalidRuleDefinition(f"{e}: {rule_line.strip()}", rule_line)


def parse_rule_lines(lines: List[str]) -> List[ArbiterRule]:
    """Parse several rule lines, skipping blanks and '#' comments."""
    rules = []
    for line_number, line in enumerate(lines, 1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        try:
            rules.append(parse_rule_line(stripped))
        except InvalidRuleDefinition as e:
            log_rule_error(
                str(e),
                "parse_rule_lines",
                rule_line=stripped,
                line_number=line_number,
                exception=e,
            )
            raise InvalidRuleDefinition(f"Line {line_number}: {e}", stripped)
    return rules


def load_rules_file(path: Union[str, Path]) -> List[ArbiterRule]:
    """
    Load rules from a text file, one rule per line.

    Raises:
        InvalidRuleDefinition: on the first invalid rule, with its line number
        ValueError: if the file cannot be read
    """
    rules_path = Path(path)
    try:
        content = rules_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ValueError(f"Cannot read rules file {rules_path}: {e}")
    return parse_rule_lines(content.splitlines())
