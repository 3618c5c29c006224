"""
Deduplication of a raw dependency list into one entry per logical dependency.
"""

from types import MappingProxyType
from typing import Dict, Mapping, Optional, Sequence

from .arbiter import DependencyArbiter
from .dependency import Dependency, Scope
from .structured_logging import ArbitrationObserver


class DependencyAnalyzer:
    """
    Walks a duplicate-laden dependency list once, in order, and keeps the
    preferred occurrence of each logical dependency.

    Pinned versions are applied to every occurrence independently of what was
    seen before, so a pin always has the last word.
    """

    def __init__(
        self,
        arbiter: Optional[DependencyArbiter] = None,
        observer: Optional[ArbitrationObserver] = None,
    ):
        self.arbiter = arbiter or DependencyArbiter(observer=observer)
        self.observer = observer or self.arbiter.observer

    def resolve(
        self, dependencies: Sequence[Dependency], drop_test_scope: bool = False
    ) -> Mapping[str, Dependency]:
        """
        Build the canonical mapping.

        Args:
            dependencies: raw dependency records, in input order
            drop_test_scope: skip TEST scoped records entirely

        Returns:
            Read-only mapping from logical identity to the chosen dependency,
            iterated in sorted identity order

        Raises:
            UnresolvableVersionConflict: if two versions cannot be arbitrated
        """
        resolved: Dict[str, Dependency] = {}

        for candidate in dependencies:
            if drop_test_scope and candidate.scope == Scope.TEST:
                self.observer.dependency_ignored(candidate)
                continue
            self.observer.dependency_analyzed(candidate)

            key = candidate.logical_identity
            pinned = self.arbiter.preprocess_dependency(candidate)
            if pinned is not None:
                resolved[key] = pinned
                continue

            existing = resolved.get(key)
            if existing is None:
                resolved[key] = candidate
                self.observer.dependency_added(candidate)
            elif existing.version.label != candidate.version.label:
                chosen = self.arbiter.choose_preferred(existing, candidate)
                resolved[key] = chosen
                self.observer.dependency_selected(chosen, existing, candidate)

        return MappingProxyType(dict(sorted(resolved.items())))


def resolve_dependencies(
    dependencies: Sequence[Dependency],
    arbiter: Optional[DependencyArbiter] = None,
    drop_test_scope: bool = False,
) -> Mapping[str, Dependency]:
    """
    Convenience function to deduplicate a dependency list.

    Args:
        dependencies: raw dependency records
        arbiter: arbiter carrying the rules, a rule-less one by default
        drop_test_scope: whether TEST scoped records are ignored

    Returns:
        The canonical mapping
    """
    return DependencyAnalyzer(arbiter).resolve(dependencies, drop_test_scope)
