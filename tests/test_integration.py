"""
Integration tests for dep-arbiter.
Tests complete workflows and component interactions.
"""

import io
import json
import logging

import pytest
from click.testing import CliRunner
from rich.console import Console

from dep_arbiter.analyzer import DependencyAnalyzer
from dep_arbiter.arbiter import DependencyArbiter
from dep_arbiter.cli_config import (
    create_sample_config,
    get_config,
    load_config,
    validate_config_values,
)
from dep_arbiter.emitters import (
    render_build_deps,
    render_json,
    render_workspace,
    write_build_file,
)
from dep_arbiter.error_handling import (
    ErrorCategory,
    ErrorHandler,
    UnresolvableVersionConflict,
    get_error_handler,
)
from dep_arbiter.main import cli
from dep_arbiter.parsers import parse_dependency_file, parse_input_directory
from dep_arbiter.reporting import ResolutionReporter
from dep_arbiter.rules import load_rules_file
from dep_arbiter.structured_logging import (
    ComponentLogger,
    LoggingArbitrationObserver,
    RecordingArbitrationObserver,
    StructuredFormatter,
)


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestEndToEndResolution:
    """Test complete workflows: parse -> resolve -> emit."""

    def test_directory_of_manifests(
        self, temp_dir, sample_dependency_list, sample_pom_xml, sample_build_gradle
    ):
        """Test resolving a directory of mixed manifests."""
        raw = parse_input_directory(temp_dir)
        resolved = DependencyAnalyzer(DependencyArbiter()).resolve(raw)

        # bar 4.6.0 from gradle beats 4.5.6, foo 2.0.0 from the pom beats 1.3.0
        assert resolved["com.sample:bar"].version.label == "4.6.0"
        assert resolved["com.sample:foo"].version.label == "2.0.0"
        assert resolved["org.projectlombok:lombok"].version.label == "1.18.2"
        assert list(resolved) == sorted(resolved)

    def test_rules_file_drives_resolution(self, temp_dir, sample_rules_file):
        """Test resolution driven by a rules file."""
        listing = temp_dir / "deps.txt"
        listing.write_text(
            "com.green:baz:jar:7.8.9:compile\n"
            "com.red:qux:jar:2.0.0:compile\n"
            "com.red:qux:jar:2.0.0-patched:compile\n"
            "com.green:baz:jar:6.0.0-weird:compile\n"
        )
        raw = parse_dependency_file(listing)
        arbiter = DependencyArbiter(load_rules_file(sample_rules_file))
        resolved = DependencyAnalyzer(arbiter).resolve(raw)

        assert resolved["com.green:baz"].version.label == "100.50.25"
        assert resolved["com.red:qux"].version.label == "2.0.0-patched"

    def test_emitters_follow_mapping_order(self, make_dep):
        """Test that emitters follow the mapping order."""
        arbiter = DependencyArbiter()
        resolved = DependencyAnalyzer(arbiter).resolve(
            [
                make_dep("org.zeta", "z-lib", "1.0"),
                make_dep("io.netty", "netty-transport-native-epoll", "4.1.8.Final", classifier="linux-x86_64"),
            ]
        )

        build = render_build_deps(resolved)
        workspace = render_workspace(resolved)

        assert build.startswith("# this is a list of dependencies")
        assert build.index("@io_netty_netty_transport_native_epoll_linux_x86_64//jar") < build.index(
            "@org_zeta_z_lib//jar"
        )
        assert 'name = "org_zeta_z_lib"' in workspace
        assert (
            'artifact = "io.netty:netty-transport-native-epoll:jar:linux-x86_64:4.1.8.Final"'
            in workspace
        )

        data = json.loads(render_json(resolved))
        assert data["total_dependencies"] == 2
        assert data["dependencies"][1]["bazel_name"] == "org_zeta_z_lib"

    def test_write_build_file_creates_directories(self, temp_dir, make_dep):
        """Test that writing the BUILD file creates directories."""
        resolved = DependencyAnalyzer().resolve([make_dep("com.sample", "foo", "1.0")])
        path = write_build_file(resolved, temp_dir / "nested" / "BUILD.out")

        assert path.read_text().endswith('  "@com_sample_foo//jar",\n')

    def test_write_build_file_failure(self, temp_dir, make_dep):
        """Test handling of an unwritable BUILD path."""
        blocker = temp_dir / "blocker"
        blocker.write_text("a file, not a directory")
        resolved = DependencyAnalyzer().resolve([make_dep("com.sample", "foo", "1.0")])

        with pytest.raises(ValueError, match="Could not write build file"):
            write_build_file(resolved, blocker / "BUILD.out")


class TestConfiguration:
    """Test configuration loading from files and environment."""

    def test_defaults_are_valid(self):
        """Test that the default config is valid."""
        assert validate_config_values(get_config()) == []

    def test_sample_config_is_valid_json(self):
        """Test that the sample config is valid JSON."""
        sample = json.loads(create_sample_config())
        assert sample["output"]["build_file_name"] == "BUILD.out"

    def test_project_yaml_config(self, tmp_path):
        """Test loading a project YAML config."""
        (tmp_path / ".dep-arbiter.yaml").write_text(
            "arbitration:\n"
            "  ignore_test_deps: true\n"
            "  rules:\n"
            "    - groupId=com.green pinnedVersion=1.0.0\n"
            "output:\n"
            "  output_format: json\n"
        )
        config = get_config()

        assert config.arbitration.ignore_test_deps is True
        assert config.arbitration.rules == ["groupId=com.green pinnedVersion=1.0.0"]
        assert config.output.output_format == "json"

    def test_user_toml_config(self, tmp_path):
        """Test loading a user TOML config."""
        user_dir = tmp_path / "home" / ".config" / "dep-arbiter"
        user_dir.mkdir(parents=True)
        (user_dir / "config.toml").write_text('[input]\nmax_file_size_mb = 3\n')

        assert load_config().input.max_file_size_mb == 3

    def test_environment_overrides(self, monkeypatch):
        """Test environment variable overrides."""
        monkeypatch.setenv("DEP_ARBITER_OUTPUT_FORMAT", "JSON")
        monkeypatch.setenv("DEP_ARBITER_IGNORE_TEST_DEPS", "yes")
        monkeypatch.setenv("DEP_ARBITER_MAX_FILE_SIZE_MB", "not-a-number")

        config = load_config()

        assert config.output.output_format == "json"
        assert config.arbitration.ignore_test_deps is True
        assert config.input.max_file_size_mb == 10

    def test_invalid_values_reported(self):
        """Test that invalid values are reported."""
        config = load_config()
        config.input.max_file_size_mb = 0
        config.output.output_format = "xml"

        errors = validate_config_values(config)
        assert "input.max_file_size_mb must be positive" in errors
        assert any("output.output_format" in error for error in errors)

    def test_mistyped_values_reported(self):
        """Test that values of the wrong type are reported instead of raising."""
        config = load_config()
        config.input.max_file_size_mb = "ten"
        config.input.max_lines_per_file = True
        config.arbitration.ignore_test_deps = "yes"
        config.output.build_file_name = 42

        errors = validate_config_values(config)

        assert "input.max_file_size_mb must be an integer, got 'ten'" in errors
        assert "input.max_lines_per_file must be an integer, got True" in errors
        assert any(error.startswith("arbitration.ignore_test_deps") for error in errors)
        assert any(error.startswith("output.build_file_name") for error in errors)

    def test_config_rules_apply_to_resolve(self, tmp_path, temp_dir):
        """Test that config rules apply to resolve."""
        (tmp_path / ".dep-arbiter.json").write_text(
            json.dumps({"arbitration": {"rules": ["groupId=com.green pinnedVersion=1.0.0"]}})
        )
        listing = temp_dir / "deps.txt"
        listing.write_text("com.green:baz:jar:7.8.9:compile\n")

        runner = CliRunner()
        result = runner.invoke(cli, ["resolve", str(listing), "--output-format", "json"])

        assert result.exit_code == 0
        assert json.loads(result.output)["dependencies"][0]["version"] == "1.0.0"


class TestStructuredLogging:
    """Test JSON logging and the logging observer."""

    def test_formatter_renders_extra_fields(self):
        """Test JSON rendering of extra log fields."""
        record = logging.makeLogRecord(
            {
                "name": "dep_arbiter.analyzer",
                "levelname": "INFO",
                "msg": "dependency_added",
                "identity": "com.sample:foo",
            }
        )
        entry = json.loads(StructuredFormatter().format(record))

        assert entry["component"] == "dep_arbiter.analyzer"
        assert entry["message"] == "dependency_added"
        assert entry["identity"] == "com.sample:foo"
        assert "timestamp" in entry

    def test_logging_observer_emits_events(self, make_dep):
        """Test that the logging observer emits events."""
        logger = ComponentLogger("dep_arbiter.test_observer")
        handler = ListHandler()
        logger.logger.addHandler(handler)
        logger.logger.setLevel(logging.INFO)
        logger.set_run_context(run_id="abc123", input_count=1)

        try:
            arbiter = DependencyArbiter(observer=LoggingArbitrationObserver(logger))
            arbiter.add_rule("groupId=com.green pinnedVersion=2.0.0")
            DependencyAnalyzer(arbiter).resolve(
                [make_dep("com.sample", "foo", "1.0"), make_dep("com.green", "baz", "1.0")]
            )
        finally:
            logger.logger.removeHandler(handler)

        event_types = [record.event_type for record in handler.records]
        assert event_types == ["dependency_added", "rule_pinned"]
        assert handler.records[1].version == "2.0.0"
        assert handler.records[0].run_id == "abc123"

    def test_recording_observer_keeps_order(self, make_dep):
        """Test that the recording observer keeps event order."""
        observer = RecordingArbitrationObserver()
        arbiter = DependencyArbiter(observer=observer)
        arbiter.add_rule("groupId=com.green winningVersion=.*-patched")

        DependencyAnalyzer(arbiter).resolve(
            [
                make_dep("com.green", "baz", "1.0"),
                make_dep("com.green", "baz", "1.0-patched"),
                make_dep("junit", "junit", "4.12", scope="test"),
            ],
            drop_test_scope=True,
        )

        assert observer.event_types() == [
            "dependency_analyzed",
            "dependency_added",
            "dependency_analyzed",
            "rule_preferred",
            "dependency_selected",
            "dependency_ignored",
        ]


class TestErrorHandling:
    """Test the error handler behind parsing, rule and arbitration failures."""

    def test_stats_and_callbacks(self):
        """Test error statistics and callbacks."""
        handler = ErrorHandler("dep_arbiter.test_errors")
        seen = []
        everything = []
        handler.register_callback(seen.append, ErrorCategory.RULES)
        handler.register_callback(everything.append)

        handler.error(ErrorCategory.RULES, "bad rule", "rules", "parse_rule_line")
        handler.warning(ErrorCategory.PARSING, "bad line", "parsers", "parse")

        assert handler.get_error_stats() == {"RULES_ERROR": 1, "PARSING_WARNING": 1}
        assert [context.message for context in seen] == ["bad rule"]
        assert len(everything) == 2

        handler.unregister_callback(seen.append)
        handler.error(ErrorCategory.RULES, "another", "rules", "parse_rule_line")
        assert len(seen) == 1

    def test_failing_callback_does_not_break_handling(self):
        """Test that a failing callback does not break handling."""
        handler = ErrorHandler("dep_arbiter.test_errors")

        def explode(context):
            raise RuntimeError("callback failure")

        handler.register_callback(explode)
        context = handler.critical(ErrorCategory.FILESYSTEM, "disk", "emitters", "write")

        assert context.to_dict()["level"] == "CRITICAL"

    def test_conflict_is_recorded_before_raising(self, make_dep):
        """Test that a conflict is recorded before raising."""
        handler = get_error_handler()
        handler.reset_stats()
        arbiter = DependencyArbiter()

        with pytest.raises(UnresolvableVersionConflict) as excinfo:
            arbiter.choose_preferred(
                make_dep("com.green", "baz", "7.8.9"),
                make_dep("com.green", "baz", "7.8.9-patched"),
            )

        assert excinfo.value.identity == "com.green:baz"
        assert handler.get_error_stats().get("ARBITRATION_ERROR") == 1


class TestReporting:
    """Test the rich console report."""

    def test_markup_in_labels_is_printed_literally(self, make_dep):
        """Test that bracketed identities and labels are not eaten as markup."""
        output = io.StringIO()
        reporter = ResolutionReporter(Console(file=output, width=200, color_system=None))
        observer = RecordingArbitrationObserver()
        arbiter = DependencyArbiter(observer=observer)
        arbiter.add_rule("groupId=com.odd pinnedVersion=[bold]2.0")
        raw = [make_dep("com.odd", "lib", "1.0"), make_dep("com.sample", "foo", "1.0")]

        resolved = DependencyAnalyzer(arbiter).resolve(raw)
        reporter.print_resolution(["deps[1].txt"], len(raw), resolved, observer, verbose=True)

        text = output.getvalue()
        assert "[bold]2.0" in text
        assert "deps[1].txt" in text
