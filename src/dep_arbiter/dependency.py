from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from .version import Version, parse_version


class Scope(Enum):
    """Maven dependency scopes."""

    COMPILE = "compile"
    RUNTIME = "runtime"
    PROVIDED = "provided"
    TEST = "test"

    @classmethod
    def parse(cls, value: Union[str, "Scope"]) -> "Scope":
        if isinstance(value, Scope):
            return value
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown dependency scope: {value!r}")


@dataclass(frozen=True)
class Dependency:
    """One occurrence of a Maven dependency, as read from a manifest."""

    group_id: str
    artifact_id: str
    scope: Scope
    version: Version
    classifier: Optional[str] = None
    source_line: str = ""

    @classmethod
    def create(
        cls,
        group_id: str,
        artifact_id: str,
        scope: Union[str, Scope],
        version: str,
        classifier: Optional[str] = None,
        source_line: str = "",
    ) -> "Dependency":
        """Build a dependency from plain strings, parsing scope and version."""
        return cls(
            group_id=group_id,
            artifact_id=artifact_id,
            scope=Scope.parse(scope),
            version=parse_version(version, f"{group_id}:{artifact_id}"),
            classifier=classifier or None,
            source_line=source_line,
        )

    @property
    def logical_identity(self) -> str:
        """
        Name of the dependency regardless of version.

        group:artifact, or group:artifact:classifier when a classifier is set.
        """
        if self.classifier is None:
            return f"{self.group_id}:{self.artifact_id}"
        return f"{self.group_id}:{self.artifact_id}:{self.classifier}"

    def with_version(self, label: str) -> "Dependency":
        """Return a copy of this dependency pointing at another version."""
        return replace(
            self,
            version=parse_version(label, f"{self.group_id}:{self.artifact_id}"),
        )

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version.label}"
