"""
Naming transforms from a resolved dependency to Bazel and Maven identifiers.

These live apart from Dependency so the record stays a plain value.
"""

import re

from .dependency import Dependency

_BAZEL_UNSAFE = re.compile(r"[-.:]")


def bazel_name(dep: Dependency) -> str:
    """
    External repository name for a dependency.

    org.sample:foo-bar becomes org_sample_foo_bar.
    """
    return _BAZEL_UNSAFE.sub("_", dep.logical_identity)


def maven_coordinate(dep: Dependency) -> str:
    """group:artifact:version, or group:artifact:jar:classifier:version."""
    if dep.classifier is None:
        return f"{dep.group_id}:{dep.artifact_id}:{dep.version.label}"
    return f"{dep.group_id}:{dep.artifact_id}:jar:{dep.classifier}:{dep.version.label}"


def identity_sort_key(dep: Dependency) -> str:
    return dep.logical_identity


def bazel_name_sort_key(dep: Dependency) -> str:
    return bazel_name(dep)
