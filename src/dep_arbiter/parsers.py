import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Callable, List, Optional, Union

from .cli_config import get_config
from .dependency import Dependency, Scope
from .error_handling import (
    ErrorCallback,
    ErrorCategory,
    get_error_handler,
    log_parsing_error,
)
from .structured_logging import get_parser_logger

POM_NAMESPACE = "http://maven.apache.org/POM/4.0.0"

_INFO_PREFIX = re.compile(r"^\[[A-Z]+\]\s*")

_GRADLE_DECLARATION = re.compile(
    r"^(?P<configuration>[A-Za-z]+)\s*\(?\s*['\"](?P<notation>[^'\"]+)['\"]"
)
_GRADLE_DEPENDENCIES_BLOCK = re.compile(r"^dependencies\s*\{")

_GRADLE_CONFIGURATIONS = {
    "api",
    "implementation",
    "compile",
    "compileOnly",
    "runtime",
    "runtimeOnly",
    "testImplementation",
    "testCompile",
    "testCompileOnly",
    "testRuntime",
    "testRuntimeOnly",
}


def _validate_file_path(file_path: Union[str, Path]) -> Path:
    """
    Validate a manifest path before it is read.

    Args:
        file_path: The file path to validate

    Returns:
        Path: Validated and resolved path object

    Raises:
        ValueError: If path is missing, not a file, of an unsupported type or too large
    """
    if not file_path:
        raise ValueError("File path must be a non-empty string")

    try:
        path = Path(file_path).resolve()
    except (OSError, ValueError) as e:
        raise ValueError(f"Invalid file path: {e}")

    if not path.exists():
        raise ValueError(f"File does not exist: {path}")

    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")

    config = get_config()
    allowed_extensions = set(config.input.allowed_file_extensions)
    if path.suffix.lower() not in allowed_extensions:
        raise ValueError(f"File type not allowed: {path.suffix}")

    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise ValueError(f"Cannot access file: {e}")

    max_file_size = config.input.max_file_size_bytes
    if file_size > max_file_size:
        raise ValueError(f"File too large: {file_size} bytes (max: {max_file_size})")

    return path


def _safe_read_file(path: Path) -> str:
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            return f.read()
    except PermissionError:
        raise ValueError("Permission denied reading file")
    except OSError as e:
        raise ValueError(f"Error reading file: {e}")


def _process_file_line_by_line(
    path: Path,
    line_processor: Callable[[str, int], Optional[Dependency]],
    max_lines: Optional[int] = None,
) -> List[Dependency]:
    """
    Process a file line by line without loading entire content into memory.

    Lines the processor rejects with ValueError are logged and skipped.
    """
    if max_lines is None:
        max_lines = get_config().input.max_lines_per_file

    results = []

    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            for line_num, line in enumerate(f, 1):
                if line_num > max_lines:
                    get_error_handler().warning(
                        ErrorCategory.PARSING,
                        f"File has too many lines, stopping at {max_lines}",
                        "parsers",
                        "_process_file_line_by_line",
                        details={
                            "file_path": path.name,
                            "lines_processed": line_num - 1,
                        },
                    )
                    break

                try:
                    dependency = line_processor(line, line_num)
                except ValueError as e:
                    log_parsing_error(
                        f"Could not process line: {line.strip()[:100]}",
                        module="parsers",
                        function="_process_file_line_by_line",
                        line_number=line_num,
                        file_path=str(path),
                        exception=e,
                    )
                    continue

                if dependency is not None:
                    results.append(dependency)

        return results

    except PermissionError:
        raise ValueError("Permission denied reading file")
    except OSError as e:
        raise ValueError(f"Error reading file: {e}")


def parse_dependency_list_line(line: str) -> Optional[Dependency]:
    """
    Parse one line of ``mvn dependency:list`` output.

    Accepted coordinates, optionally prefixed with ``[INFO]``:

        group:artifact:type:version:scope
        group:artifact:type:classifier:version:scope

    Trailing annotations such as ``-- module foo`` or ``(optional)`` are ignored.

    Returns:
        The dependency, or None for lines that are not coordinates

    Raises:
        ValueError: if a coordinate line carries an unknown scope
    """
    if not line:
        return None

    text = _INFO_PREFIX.sub("", line.strip())
    if not text:
        return None

    coordinate = text.split()[0]
    parts = coordinate.split(":")
    if len(parts) == 5:
        group_id, artifact_id, _, version, scope = parts
        classifier = None
    elif len(parts) == 6:
        group_id, artifact_id, _, classifier, version, scope = parts
    else:
        return None

    if not all([group_id, artifact_id, version, scope]):
        return None

    return Dependency.create(
        group_id,
        artifact_id,
        scope,
        version,
        classifier=classifier,
        source_line=line.strip(),
    )


def parse_dependency_list(
    file_path: Union[str, Path], error_callback: Optional[ErrorCallback] = None
) -> List[Dependency]:
    """
    Parse a file holding the output of ``mvn dependency:list``.

    Args:
        file_path: Path to the listing
        error_callback: Optional callback for handling parsing errors

    Returns:
        List[Dependency]: dependencies in file order

    Raises:
        ValueError: If file cannot be read or is invalid
    """
    error_handler = get_error_handler()
    if error_callback:
        error_handler.register_callback(error_callback, ErrorCategory.PARSING)

    try:
        validated_path = _validate_file_path(file_path)

        def process_listing_line(line: str, line_num: int) -> Optional[Dependency]:
            return parse_dependency_list_line(line)

        dependencies = _process_file_line_by_line(validated_path, process_listing_line)
    finally:
        if error_callback:
            error_handler.unregister_callback(error_callback)

    get_parser_logger().info(
        "file_parsed",
        file_type="dependency_list",
        file_path=str(validated_path),
        dependency_count=len(dependencies),
    )
    return dependencies


def _child_text(element: ET.Element, tag: str) -> Optional[str]:
    for child in element:
        tag_name = child.tag.split("}")[-1] if "}" in child.tag else child.tag
        if tag_name == tag:
            return child.text.strip() if child.text else None
    return None


def parse_pom_xml(
    file_path: Union[str, Path], error_callback: Optional[ErrorCallback] = None
) -> List[Dependency]:
    """
    Parses a Maven pom.xml file and returns its declared dependencies.

    Entries without an explicit version, or whose version is a ${property}
    reference, are skipped with a warning. Missing scope means compile.

    Args:
        file_path: Path to the pom.xml file
        error_callback: Optional callback for handling parsing errors

    Returns:
        List[Dependency]: dependencies in document order

    Raises:
        ValueError: If file cannot be read or contains invalid XML
    """
    error_handler = get_error_handler()
    if error_callback:
        error_handler.register_callback(error_callback, ErrorCategory.PARSING)

    try:
        validated_path = _validate_file_path(file_path)

        if not validated_path.name.endswith("pom.xml"):
            raise ValueError("File must be a pom.xml file (ending with 'pom.xml')")

        dependencies = []
        content = _safe_read_file(validated_path)
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            error_handler.error(
                ErrorCategory.PARSING,
                f"Invalid XML format in pom.xml: {e}",
                "parsers",
                "parse_pom_xml",
                exception=e,
                details={"file_path": validated_path.name},
            )
            raise ValueError(f"Invalid XML format: {e}")

        # Only project/dependencies; dependencyManagement and plugin
        # dependencies are not part of the project's classpath.
        dep_elements = root.findall(
            f"./{{{POM_NAMESPACE}}}dependencies/{{{POM_NAMESPACE}}}dependency"
        )
        if not dep_elements:
            dep_elements = root.findall("./dependencies/dependency")

        for element in dep_elements:
            group_id = _child_text(element, "groupId")
            artifact_id = _child_text(element, "artifactId")
            version = _child_text(element, "version")
            scope = _child_text(element, "scope") or Scope.COMPILE.value
            classifier = _child_text(element, "classifier")

            if not group_id or not artifact_id:
                continue

            identity = f"{group_id}:{artifact_id}"
            if not version or "${" in version:
                error_handler.warning(
                    ErrorCategory.PARSING,
                    f"Skipping {identity}: no literal version in pom.xml",
                    "parsers",
                    "parse_pom_xml",
                    details={"file_path": validated_path.name, "version": version},
                    suggestions=[
                        "Use 'mvn dependency:list' output to get resolved versions"
                    ],
                )
                continue

            try:
                dependencies.append(
                    Dependency.create(
                        group_id,
                        artifact_id,
                        scope,
                        version,
                        classifier=classifier,
                        source_line=f"{validated_path.name}: {identity}:{version}",
                    )
                )
            except ValueError as e:
                log_parsing_error(
                    f"Skipping {identity}: {e}",
                    module="parsers",
                    function="parse_pom_xml",
                    file_path=str(validated_path),
                    exception=e,
                )
    finally:
        if error_callback:
            error_handler.unregister_callback(error_callback)

    get_parser_logger().info(
        "file_parsed",
        file_type="pom_xml",
        file_path=str(validated_path),
        dependency_count=len(dependencies),
    )
    return dependencies


def _gradle_scope(configuration: str) -> Scope:
    if configuration.startswith("test"):
        return Scope.TEST
    if configuration == "compileOnly":
        return Scope.PROVIDED
    if configuration in ("runtime", "runtimeOnly"):
        return Scope.RUNTIME
    return Scope.COMPILE


def parse_gradle_build(
    file_path: Union[str, Path], error_callback: Optional[ErrorCallback] = None
) -> List[Dependency]:
    """
    Parses a Gradle build.gradle or build.gradle.kts file.

    Note: only string notation declarations ('group:name:version[:classifier]')
    inside dependencies blocks are understood. Gradle files can be very
    complex with programmatic dependency resolution.

    Args:
        file_path: Path to the build.gradle or build.gradle.kts file
        error_callback: Optional callback for handling parsing errors

    Returns:
        List[Dependency]: dependencies in file order

    Raises:
        ValueError: If file cannot be read
    """
    error_handler = get_error_handler()
    if error_callback:
        error_handler.register_callback(error_callback, ErrorCategory.PARSING)

    try:
        validated_path = _validate_file_path(file_path)

        name = validated_path.name.lower()
        if not (
            (name.endswith(".gradle") or name.endswith(".gradle.kts"))
            and "build" in name
        ):
            raise ValueError(
                "File must be a Gradle build file (containing 'build' and ending with '.gradle' or '.gradle.kts')"
            )

        dependencies = []
        content = _safe_read_file(validated_path)

        depth = 0
        dependencies_depth = None

        for line_num, raw_line in enumerate(content.splitlines(), 1):
            line = raw_line.strip()

            if not line or line.startswith("//") or line.startswith("/*"):
                continue

            block_start = _GRADLE_DEPENDENCIES_BLOCK.match(line)
            if dependencies_depth is None and block_start:
                dependencies_depth = depth
                # dependencies { implementation 'g:a:v' }
                inline = line[block_start.end():].rstrip().rstrip("}")
                declarations = inline.split(";")
            elif dependencies_depth is not None and depth == dependencies_depth + 1:
                declarations = [line]
            else:
                declarations = []

            for declaration in declarations:
                dependency = _parse_gradle_declaration(
                    declaration.strip(), line, line_num, validated_path
                )
                if dependency is not None:
                    dependencies.append(dependency)

            depth += line.count("{") - line.count("}")
            if dependencies_depth is not None and depth <= dependencies_depth:
                dependencies_depth = None
    finally:
        if error_callback:
            error_handler.unregister_callback(error_callback)

    get_parser_logger().info(
        "file_parsed",
        file_type="gradle_build",
        file_path=str(validated_path),
        dependency_count=len(dependencies),
    )
    return dependencies


def _parse_gradle_declaration(
    declaration: str, line: str, line_num: int, path: Path
) -> Optional[Dependency]:
    match = _GRADLE_DECLARATION.match(declaration)
    if not match or match.group("configuration") not in _GRADLE_CONFIGURATIONS:
        return None
    return _parse_gradle_notation(
        match.group("notation"),
        _gradle_scope(match.group("configuration")),
        line,
        line_num,
        path,
    )


def _parse_gradle_notation(
    notation: str, scope: Scope, line: str, line_num: int, path: Path
) -> Optional[Dependency]:
    # "group:name:version:classifier@extension"
    parts = notation.split("@")[0].split(":")
    if len(parts) < 3 or not parts[2]:
        get_error_handler().warning(
            ErrorCategory.PARSING,
            f"Skipping {notation}: no version in Gradle declaration",
            "parsers",
            "parse_gradle_build",
            details={"file_path": path.name, "line_number": line_num},
        )
        return None

    group_id, artifact_id, version = parts[0], parts[1], parts[2]
    classifier = parts[3] if len(parts) > 3 and parts[3] else None
    try:
        return Dependency.create(
            group_id,
            artifact_id,
            scope,
            version,
            classifier=classifier,
            source_line=line,
        )
    except ValueError as e:
        log_parsing_error(
            f"Could not process declaration: {line[:100]}",
            module="parsers",
            function="parse_gradle_build",
            line_number=line_num,
            file_path=str(path),
            exception=e,
        )
        return None


def get_supported_file_types() -> List[str]:
    """
    Get list of supported dependency file types.

    Returns:
        List[str]: List of supported file names and patterns
    """
    return [
        "*.txt / *.list (mvn dependency:list output)",
        "pom.xml",
        "build.gradle",
        "build.gradle.kts",
    ]


def detect_file_type(file_path: Union[str, Path]) -> str:
    """
    Detect the dependency file type based on filename.

    Args:
        file_path: Path to the file

    Returns:
        str: File type identifier

    Raises:
        ValueError: If file type is not supported
    """
    filename = Path(file_path).name.lower()

    if filename.endswith("pom.xml"):
        return "pom_xml"
    if filename.endswith(".gradle") or filename.endswith(".gradle.kts"):
        return "gradle_build"
    if filename.endswith(".txt") or filename.endswith(".list"):
        return "dependency_list"

    raise ValueError(f"Unsupported file type: {filename}")


def parse_dependency_file(
    file_path: Union[str, Path], error_callback: Optional[ErrorCallback] = None
) -> List[Dependency]:
    """
    Parse any supported dependency file type.

    Args:
        file_path: Path to the dependency file
        error_callback: Optional callback for handling parsing errors

    Returns:
        List[Dependency]: dependencies in file order

    Raises:
        ValueError: If file type is not supported or parsing fails
    """
    file_type = detect_file_type(file_path)

    parser_map = {
        "dependency_list": parse_dependency_list,
        "pom_xml": parse_pom_xml,
        "gradle_build": parse_gradle_build,
    }

    parser = parser_map.get(file_type)
    if not parser:
        raise ValueError(f"No parser available for file type: {file_type}")

    return parser(file_path, error_callback)


def parse_input_directory(
    directory: Union[str, Path], error_callback: Optional[ErrorCallback] = None
) -> List[Dependency]:
    """
    Parse every supported file in a directory, in sorted filename order.

    Unsupported files are skipped.

    Raises:
        ValueError: If the directory does not exist or a supported file fails to parse
    """
    path = Path(directory)
    if not path.is_dir():
        raise ValueError(f"Input directory does not exist: {path}")

    dependencies: List[Dependency] = []
    for candidate in sorted(path.iterdir(), key=lambda p: p.name):
        if not candidate.is_file():
            continue
        try:
            detect_file_type(candidate)
        except ValueError:
            get_parser_logger().debug("file_skipped", file_path=str(candidate))
            continue
        dependencies.extend(parse_dependency_file(candidate, error_callback))

    return dependencies
