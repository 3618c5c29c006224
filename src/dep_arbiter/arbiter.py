"""
Version arbitration between duplicate occurrences of one dependency.

When merging several sources of dependencies (for example an existing
WORKSPACE and a migrating Maven project) the same artifact often shows up
with different versions. The arbiter first asks its rules for an opinion and
otherwise picks the numerically newer major.minor.patch.hotfix version.

Versions that are not purely numeric (e.g. "1.2.bigshow.3") cannot be ordered
automatically; in that case the arbiter stops with an error that tells the
operator to add a rule or edit the input.
"""

from typing import Iterable, List, Optional, Union

from .dependency import Dependency
from .error_handling import (
    IdentityMismatch,
    UnresolvableVersionConflict,
    log_identity_mismatch,
    log_version_conflict,
)
from .rules import ArbiterRule, parse_rule_line
from .structured_logging import ArbitrationObserver
from .version import compare_versions


class DependencyArbiter:
    """Holds the ordered rule list and decides between two versions."""

    def __init__(
        self,
        rules: Optional[Iterable[ArbiterRule]] = None,
        observer: Optional[ArbitrationObserver] = None,
    ):
        self._rules: List[ArbiterRule] = list(rules or [])
        self.observer = observer or ArbitrationObserver()

    @property
    def rules(self) -> List[ArbiterRule]:
        return list(self._rules)

    def add_rule(self, rule: Union[ArbiterRule, str]) -> ArbiterRule:
        """
        Append a rule. A string is parsed with the rule mini-language first.

        Raises:
            InvalidRuleDefinition: if a rule line is malformed
        """
        if isinstance(rule, str):
            rule = parse_rule_line(rule)
        self._rules.append(rule)
        return rule

    def preprocess_dependency(self, dep: Dependency) -> Optional[Dependency]:
        """
        Apply unary rules (pinned versions).

        Returns:
            The replacement produced by the first rule that fires, or None
        """
        for rule in self._rules:
            processed = rule.preprocess(dep, self.observer)
            if processed is not None:
                return processed
        return None

    def choose_preferred(self, first: Dependency, second: Dependency) -> Dependency:
        """
        Pick the better of two versions of the same logical dependency.

        Rules get the first say, in order. Without a rule decision the newer
        numeric version wins, and ``first`` wins a tie.

        Raises:
            IdentityMismatch: if the two dependencies are not the same artifact
            UnresolvableVersionConflict: if no rule decides and the versions
                cannot be compared
        """
        if first.logical_identity != second.logical_identity:
            mismatch = IdentityMismatch(first.logical_identity, second.logical_identity)
            log_identity_mismatch(mismatch, "choose_preferred")
            raise mismatch

        for rule in self._rules:
            preferred = rule.prefer(first, second, self.observer)
            if preferred is not None:
                return preferred

        try:
            if compare_versions(first.version, second.version) >= 0:
                return first
            return second
        except UnresolvableVersionConflict as e:
            conflict = UnresolvableVersionConflict(
                first.logical_identity, e.labels, e.reason
            )
            log_version_conflict(conflict, "choose_preferred")
            raise conflict from e
