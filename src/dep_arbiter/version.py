"""
Version parsing and comparison for Maven dependency versions.

A version label is split on dots into at most four numeric fields
(major.minor.patch.hotfix). Labels that do not fit this shape are kept
verbatim but flagged as not comparable, so a human has to decide between
them (usually by adding an arbiter rule).
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .error_handling import UnresolvableVersionConflict

MAX_VERSION_FIELDS = 4

_NUMERIC_TOKEN = re.compile(r"[0-9]+")


@dataclass(frozen=True, order=True)
class Version:
    """
    A parsed dependency version.

    Examples of labels: "1.3.0", "1.2.3.4", "4.1.8.Final", "1.2.3-SNAPSHOT".
    Only the first two are comparable.
    """

    major: int = 0
    minor: int = 0
    patch: int = 0
    hotfix: int = 0
    label: str = ""
    comparable: bool = field(default=True, compare=False)
    source: Optional[str] = field(default=None, compare=False)

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.major, self.minor, self.patch, self.hotfix)

    def __str__(self) -> str:
        return self.label


def parse_version(label: str, source: Optional[str] = None) -> Version:
    """
    Parse a version label.

    Args:
        label: Version string such as "1.3.0", "1.2.3.4-SNAPSHOT", "my-weird-version"
        source: Identifier of the owning dependency, used only in diagnostics

    Returns:
        Version with ``comparable`` cleared when a token is not numeric or
        the label has more than four tokens
    """
    if label is None:
        raise ValueError("Version label is required")

    tokens = label.split(".")
    # "1.2." reads as "1.2", empty tokens in the middle still count
    while len(tokens) > 1 and not tokens[-1]:
        tokens.pop()
    comparable = True
    fields = []
    for index in range(MAX_VERSION_FIELDS):
        if index >= len(tokens):
            # "1.2" is fine, missing fields are right padded with zeros
            fields.append(0)
            continue
        token = tokens[index]
        if _NUMERIC_TOKEN.fullmatch(token):
            fields.append(int(token))
        else:
            comparable = False
            fields.append(0)

    if len(tokens) > MAX_VERSION_FIELDS:
        # even numeric extra tokens need a human to look at them
        comparable = False

    major, minor, patch, hotfix = fields
    return Version(
        major=major,
        minor=minor,
        patch=patch,
        hotfix=hotfix,
        label=label,
        comparable=comparable,
        source=source,
    )


def compare_versions(first: Version, second: Version) -> int:
    """
    Compare two versions field by field.

    Returns:
        1 if ``first`` is newer, -1 if ``second`` is newer, 0 if identical

    Raises:
        UnresolvableVersionConflict: if either version is not comparable, or the
            numeric fields tie but the labels differ (e.g. "1.2.3" vs "1.2.3.0")
    """
    identity = first.source or second.source
    if not first.comparable or not second.comparable:
        raise UnresolvableVersionConflict(
            identity,
            (first.label, second.label),
            "At least one of them is not a numeric major.minor.patch.hotfix version.",
        )

    first_fields = first.as_tuple()
    second_fields = second.as_tuple()
    if first_fields > second_fields:
        return 1
    if first_fields < second_fields:
        return -1

    if first.label != second.label:
        raise UnresolvableVersionConflict(
            identity,
            (first.label, second.label),
            "They are numerically equal but written differently.",
        )
    return 0
