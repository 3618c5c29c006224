"""
Writers that turn a canonical dependency mapping into Bazel configuration.

The BUILD output is not a usable BUILD file on its own: it is the ``deps``
list to paste into a hand-migrated java target. Dependencies that are also
moving into the workspace have to be edited by hand afterwards, e.g.
``@com_sample_foo//jar`` becomes ``//libs/foo``.
"""

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Union

from .dependency import Dependency
from .error_handling import ErrorCategory, get_error_handler
from .naming import bazel_name, maven_coordinate
from .structured_logging import get_emitter_logger

BUILD_HEADER = (
    "# this is a list of dependencies to copy into your deps attribute "
    "in your Java target's BUILD file\n\n"
)

WORKSPACE_HEADER = (
    "# external Maven dependencies, load or copy these into your WORKSPACE file\n\n"
)


def render_build_deps(dependencies: Mapping[str, Dependency]) -> str:
    """
    Render the deps list, one line per dependency:

        "@com_fasterxml_jackson_core_jackson_core//jar",
    """
    lines = [BUILD_HEADER]
    for dep in dependencies.values():
        lines.append(f'  "@{bazel_name(dep)}//jar",\n')
    return "".join(lines)


def render_workspace(dependencies: Mapping[str, Dependency]) -> str:
    """Render one maven_jar rule per dependency."""
    blocks = [WORKSPACE_HEADER]
    for dep in dependencies.values():
        blocks.append(
            "maven_jar(\n"
            f'    name = "{bazel_name(dep)}",\n'
            f'    artifact = "{maven_coordinate(dep)}",\n'
            ")\n\n"
        )
    return "".join(blocks)


def dependency_to_dict(dep: Dependency) -> Dict[str, Any]:
    return {
        "identity": dep.logical_identity,
        "group_id": dep.group_id,
        "artifact_id": dep.artifact_id,
        "classifier": dep.classifier,
        "version": dep.version.label,
        "scope": dep.scope.value,
        "bazel_name": bazel_name(dep),
        "artifact": maven_coordinate(dep),
    }


def render_json(dependencies: Mapping[str, Dependency]) -> str:
    """Machine readable list of the resolved dependencies."""
    results: Dict[str, Any] = {
        "total_dependencies": len(dependencies),
        "dependencies": [dependency_to_dict(dep) for dep in dependencies.values()],
    }
    return json.dumps(results, indent=2, ensure_ascii=False)


def _write_output(content: str, output_file: Union[str, Path], kind: str) -> Path:
    path = Path(output_file)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        get_error_handler().error(
            ErrorCategory.FILESYSTEM,
            f"Could not write {kind} file: {e}",
            "emitters",
            f"write_{kind}_file",
            exception=e,
            details={"output_file": str(path)},
        )
        raise ValueError(f"Could not write {kind} file {path}: {e}")

    get_emitter_logger().info(
        "file_written", kind=kind, output_file=str(path.resolve())
    )
    return path


def write_build_file(
    dependencies: Mapping[str, Dependency], output_file: Union[str, Path]
) -> Path:
    """
    Write the BUILD deps list.

    Raises:
        ValueError: if the file cannot be written
    """
    return _write_output(render_build_deps(dependencies), output_file, "build")


def write_workspace_file(
    dependencies: Mapping[str, Dependency], output_file: Union[str, Path]
) -> Path:
    """
    Write the maven_jar rules.

    Raises:
        ValueError: if the file cannot be written
    """
    return _write_output(render_workspace(dependencies), output_file, "workspace")

