import sys
import uuid
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from . import __version__
from .analyzer import DependencyAnalyzer
from .arbiter import DependencyArbiter
from .cli_config import (
    ComprehensiveConfig,
    apply_config_data,
    create_sample_config,
    get_config,
    load_config_file,
    validate_config_values,
)
from .dependency import Dependency
from .emitters import render_json, write_build_file, write_workspace_file
from .error_handling import ArbiterError
from .parsers import (
    get_supported_file_types,
    parse_dependency_file,
    parse_input_directory,
)
from .reporting import ResolutionReporter
from .rules import ArbiterRule, load_rules_file, parse_rule_lines
from .structured_logging import (
    CompositeArbitrationObserver,
    LoggingArbitrationObserver,
    RecordingArbitrationObserver,
    clear_run_context,
    configure_logging,
    set_run_context,
)

console = Console()
err_console = Console(stderr=True)


def _fail(message: str) -> None:
    err_console.print(f"❌ Error: {escape(message)}", style="red", soft_wrap=True)
    sys.exit(1)


def collect_rules(
    config: ComprehensiveConfig,
    rules_files: Tuple[str, ...] = (),
    rule_lines: Tuple[str, ...] = (),
) -> List[ArbiterRule]:
    """
    Gather rules in evaluation order: config rules, config rules file,
    --rules files, then --rule lines.
    """
    rules = parse_rule_lines(list(config.arbitration.rules))
    if config.arbitration.rules_file:
        rules += load_rules_file(config.arbitration.rules_file)
    for rules_file in rules_files:
        rules += load_rules_file(rules_file)
    rules += parse_rule_lines(list(rule_lines))
    return rules


def load_inputs(inputs: Tuple[str, ...]) -> List[Dependency]:
    """Parse every input file or directory, in the order given."""
    dependencies: List[Dependency] = []
    for input_path in inputs:
        path = Path(input_path)
        if path.is_dir():
            dependencies.extend(parse_input_directory(path))
        else:
            dependencies.extend(parse_dependency_file(path))
    return dependencies


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.pass_context
def cli(ctx, version):
    """
    ⚖️  Dep-Arbiter: Maven dependency version arbitration for Bazel migrations

    Merges dependency lists from several manifests, picks one version per
    dependency and writes Bazel BUILD and WORKSPACE snippets.
    """
    if version:
        console.print(f"Dep-Arbiter version {__version__}", style="bold blue")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@cli.command()
@click.argument(
    "inputs", nargs=-1, required=True, type=click.Path(exists=True, readable=True)
)
@click.option(
    "--rules",
    "rules_files",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False),
    help="File with arbiter rules, one per line (repeatable)",
)
@click.option(
    "--rule",
    "rule_lines",
    multiple=True,
    help="Arbiter rule line, e.g. 'groupId=org.red winningVersion=.*-patched' (repeatable)",
)
@click.option(
    "--ignore-test-deps",
    "--ignoretestdeps",
    "ignore_test_deps",
    is_flag=True,
    help="Drop test scoped dependencies",
)
@click.option("--build", "generate_build", is_flag=True, help="Write a BUILD deps list")
@click.option(
    "--workspace",
    "generate_workspace",
    is_flag=True,
    help="Write maven_jar rules for the WORKSPACE",
)
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False),
    help="Directory for generated files (default from config or current directory)",
)
@click.option(
    "--output-format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default=None,
    help="Output format for results (default from config or console)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-critical output")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show every arbitration decision and log at INFO level",
)
def resolve(
    inputs: Tuple[str, ...],
    rules_files: Tuple[str, ...],
    rule_lines: Tuple[str, ...],
    ignore_test_deps: bool,
    generate_build: bool,
    generate_workspace: bool,
    output_dir: Optional[str],
    output_format: Optional[str],
    quiet: bool,
    verbose: bool,
) -> None:
    """
    Resolve one version per dependency from manifest files or directories.

    Examples:

      dep-arbiter resolve deps.txt

      dep-arbiter resolve inputs/ --rules rules.txt --build --workspace

      dep-arbiter resolve pom.xml deps.txt --rule "groupId=org.red winningVersion=.*-patched"

      dep-arbiter resolve inputs/ --ignore-test-deps --output-format json
    """
    config = get_config()
    config_errors = validate_config_values(config)
    if config_errors:
        _fail("Invalid configuration: " + "; ".join(config_errors))

    final_output_format = (output_format or config.output.output_format).lower()
    final_output_dir = Path(output_dir or config.output.output_dir or ".")
    drop_test_scope = ignore_test_deps or config.arbitration.ignore_test_deps
    quiet = quiet or config.output.quiet
    verbose = verbose or config.output.verbose

    configure_logging(
        "INFO" if verbose else config.logging.log_level, config.logging.enable_json
    )
    set_run_context(run_id=uuid.uuid4().hex[:12], input_count=len(inputs))

    try:
        arbiter_rules = collect_rules(config, rules_files, rule_lines)
        raw_dependencies = load_inputs(inputs)

        recorder = RecordingArbitrationObserver()
        observer = CompositeArbitrationObserver(recorder, LoggingArbitrationObserver())
        arbiter = DependencyArbiter(arbiter_rules, observer=observer)
        resolved = DependencyAnalyzer(arbiter).resolve(
            raw_dependencies, drop_test_scope=drop_test_scope
        )

        written = []
        if generate_build:
            written.append(
                write_build_file(
                    resolved, final_output_dir / config.output.build_file_name
                )
            )
        if generate_workspace:
            written.append(
                write_workspace_file(
                    resolved, final_output_dir / config.output.workspace_file_name
                )
            )
    except (ArbiterError, ValueError) as e:
        _fail(str(e))
    finally:
        clear_run_context()

    if final_output_format == "json":
        click.echo(render_json(resolved))
    elif not quiet:
        ResolutionReporter(console).print_resolution(
            list(inputs), len(raw_dependencies), resolved, recorder, verbose
        )

    if not quiet:
        for path in written:
            err_console.print(f"✅ Wrote {path}", style="green", soft_wrap=True)


@cli.group()
def rules():
    """Arbiter rule commands."""
    pass


@rules.command("check")
@click.argument("rules_file", type=click.Path(exists=True, dir_okay=False))
def rules_check(rules_file: str):
    """Load a rules file and list its rules, failing on the first invalid one."""
    try:
        loaded = load_rules_file(rules_file)
    except ValueError as e:
        _fail(str(e))

    ResolutionReporter(console).print_rules(loaded, rules_file)
    console.print(f"✅ {len(loaded)} valid rule(s) in {rules_file}", style="green", soft_wrap=True)


@cli.command()
def info():
    """Show information about supported inputs and the rule syntax."""
    file_types = "\n".join(
        f"• [green]{escape(file_type)}[/green]" for file_type in get_supported_file_types()
    )
    info_text = f"""
[bold blue]📋 Supported Inputs:[/bold blue]

{file_types}

[bold blue]⚖️  Version Selection:[/bold blue]

• Versions are compared as major.minor.patch.hotfix, the newer one wins
• Non numeric versions (e.g. 4.1.8.Final) need an arbiter rule
• Rules are evaluated in order, the first rule that decides wins

[bold blue]📜 Rule Syntax:[/bold blue]

• [cyan]groupId=org.green artifactId=.*-transport pinnedVersion=1.5.0[/cyan]
  always use 1.5.0 for matching artifacts
• [cyan]groupId=org.red winningVersion=.*-patched[/cyan]
  prefer the version matching the pattern when exactly one does
• groupId is required, patterns are full-match regular expressions, * means any

[bold blue]🌍 Environment Variables:[/bold blue]

• [cyan]DEP_ARBITER_RULES_FILE[/cyan] - Default rules file
• [cyan]DEP_ARBITER_IGNORE_TEST_DEPS[/cyan] - Drop test scoped dependencies
• [cyan]DEP_ARBITER_OUTPUT_FORMAT[/cyan] - console or json
• [cyan]DEP_ARBITER_OUTPUT_DIR[/cyan] - Directory for generated files
• [cyan]DEP_ARBITER_LOG_LEVEL[/cyan] - Log level for structured logs

[bold blue]📄 Configuration Files:[/bold blue]

• [green].dep-arbiter.json / .yaml / .toml[/green] - Project-level config
• [green]~/.config/dep-arbiter/config.json[/green] - User-level config

[bold blue]💡 Usage Examples:[/bold blue]

  dep-arbiter resolve inputs/ --build --workspace
  dep-arbiter resolve deps.txt --rules rules.txt --ignore-test-deps
  dep-arbiter rules check rules.txt
  dep-arbiter config init
"""
    console.print(
        Panel(
            info_text,
            title="[bold]Dep-Arbiter Information[/bold]",
            border_style="blue",
        )
    )


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("init")
@click.option(
    "--path",
    type=click.Path(),
    default=".dep-arbiter.json",
    help="Path where to create the config file",
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(path: str, force: bool):
    """Create a sample configuration file."""
    config_path = Path(path)

    if config_path.exists() and not force:
        console.print(f"⚠️  Config file already exists at {config_path}", style="yellow")
        console.print("Use --force to overwrite", style="dim")
        return

    try:
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_sample_config())
    except OSError as e:
        _fail(f"Failed to create config file: {e}")

    console.print(f"✅ Created configuration file at {config_path}", style="green")
    console.print("Edit this file to customize your settings", style="dim")


@config.command("show")
def config_show():
    """Show current configuration settings."""
    current_config = get_config()

    console.print(
        Panel("[bold blue]🔧 Configuration[/bold blue]", border_style="blue")
    )

    console.print("\n[bold cyan]⚖️  Arbitration Settings:[/bold cyan]")
    console.print(f"  Rules: {len(current_config.arbitration.rules)}")
    for rule_line in current_config.arbitration.rules:
        console.print(f"    {escape(rule_line)}", soft_wrap=True)
    console.print(f"  Rules File: {current_config.arbitration.rules_file or '-'}")
    console.print(f"  Ignore Test Deps: {current_config.arbitration.ignore_test_deps}")

    console.print("\n[bold cyan]📥 Input Settings:[/bold cyan]")
    console.print(f"  Max File Size: {current_config.input.max_file_size_mb} MB")
    console.print(f"  Max Lines Per File: {current_config.input.max_lines_per_file}")
    console.print(
        f"  Allowed Extensions: {', '.join(current_config.input.allowed_file_extensions)}"
    )

    console.print("\n[bold cyan]📤 Output Settings:[/bold cyan]")
    console.print(f"  Output Format: {current_config.output.output_format}")
    console.print(f"  Output Dir: {current_config.output.output_dir or '.'}")
    console.print(f"  BUILD File: {current_config.output.build_file_name}")
    console.print(f"  WORKSPACE File: {current_config.output.workspace_file_name}")

    console.print("\n[bold cyan]📝 Logging Settings:[/bold cyan]")
    console.print(f"  Log Level: {current_config.logging.log_level}")
    console.print(f"  JSON Logs: {current_config.logging.enable_json}")


@config.command("validate")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
def config_validate(config_file: str):
    """Validate a configuration file, including its rule lines."""
    config_data = load_config_file(Path(config_file))

    if not isinstance(config_data, dict):
        _fail(f"Could not load config from {config_file}")

    candidate = ComprehensiveConfig()
    apply_config_data(candidate, config_data)
    errors = validate_config_values(candidate)

    if not errors:
        try:
            parse_rule_lines(list(candidate.arbitration.rules))
        except ValueError as e:
            errors.append(f"arbitration.rules: {e}")

    if errors:
        for error in errors:
            err_console.print(f"  • {escape(error)}", style="red", soft_wrap=True)
        _fail(f"Configuration validation failed for {config_file}")

    console.print(
        f"✅ Configuration file {config_file} is valid", style="green", soft_wrap=True
    )


if __name__ == "__main__":
    cli()
