# pathsift/cli/interface.py
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Dict, Optional

import click
from click_option_group import optgroup
import structlog

from pathsift import __version__ as app_version
from pathsift.config.loader import extract_filter_options, load_and_merge_configs, save_config_to_profile
from pathsift.config.settings import RULE_ATTRS, FilterConfig, MatchMode
from pathsift.core.discovery.walker import TreeWalker, WalkResult
from pathsift.core.output import format_walk_result, print_decision_log, write_to_stdout
from pathsift.exceptions import ConfigError, PathSiftError
from pathsift.logging_setup import configure_logging

log = structlog.get_logger(__name__)

EXIT_REJECTED = 2
EXIT_ABORTED = 130

def _build_filter_config(ctx: click.Context, cli_params: Dict[str, Any]) -> FilterConfig:
    # layers toml files, then the selected profile, then command-line options.
    raw_configs_from_toml_files = load_and_merge_configs()
    effective_options = extract_filter_options(raw_configs_from_toml_files, cli_params.get("active_config_profile_name"))

    for attr in RULE_ATTRS:
        if cli_params.get(attr):
            effective_options[attr] = list(cli_params[attr])

    for attr in ("ignore_files_by_default", "ignore_paths_by_default", "follow_symlinks"):
        if ctx.get_parameter_source(attr) == click.core.ParameterSource.COMMANDLINE:
            effective_options[attr] = cli_params[attr]

    if cli_params.get("full_match"):
        effective_options["match_mode"] = MatchMode.FULL
    if cli_params.get("max_concurrency") is not None:
        effective_options["max_concurrency"] = cli_params["max_concurrency"]

    log.debug("effective_filter_options", options=effective_options)
    return FilterConfig(**effective_options)

def _parse_with_interrupt(walker: TreeWalker, root: Path) -> WalkResult:
    # ctrl-c requests cancellation instead of killing the walk; partial results survive.
    cancel = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        return walker.parse(root, cancel)
    previous = signal.signal(signal.SIGINT, lambda signum, frame: cancel.set())
    try:
        return walker.parse(root, cancel)
    finally:
        signal.signal(signal.SIGINT, previous)

def _run_check(walker: TreeWalker, check_path: Path, explain: bool) -> int:
    accepted = walker.freeform_check_file(check_path)
    log.info("single_path_checked", path=str(check_path), accepted=accepted)
    click.echo(f"{'accepted' if accepted else 'rejected'}: {check_path}")
    if explain:
        print_decision_log(walker.log)
    return 0 if accepted else EXIT_REJECTED

def _run_walk(walker: TreeWalker, root: Path, cli_params: Dict[str, Any]) -> int:
    result = _parse_with_interrupt(walker, root)
    write_to_stdout(
        format_walk_result(
            result,
            str(root),
            json_output=cli_params.get("json_output", False),
            nul_separated=cli_params.get("nul_separated", False),
        )
    )
    if cli_params.get("explain"):
        print_decision_log(walker.log)
    if result.aborted:
        click.secho(f"Warning: traversal aborted, {len(result)} file(s) collected before cancellation.", fg="yellow", err=True)
        return EXIT_ABORTED
    return 0


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.argument("root", required=False, default=".", type=click.Path(path_type=Path))
@optgroup.group("Filtering Rules", help="Literal, case-insensitive prefix rules. Repeat an option to add fragments.")
@optgroup.option("--allow-path", "allow_paths", multiple=True, help="Directories whose root-relative path starts with this are always processed.")
@optgroup.option("--ignore-path", "ignore_paths", multiple=True, help="Directories whose root-relative path starts with this are skipped unless allowed.")
@optgroup.option("--ignore-dir", "ignore_dirs", multiple=True, help="Directory names starting with this are skipped.")
@optgroup.option("--only-file", "only_files", multiple=True, help="If set, only file names starting with this are processed.")
@optgroup.option("--allow-file", "allow_files", multiple=True, help="File names starting with this are always processed.")
@optgroup.option("--ignore-file", "ignore_files", multiple=True, help="File names starting with this are skipped unless allowed.")
@optgroup.option("--ignore-file-first", "ignore_files_first", multiple=True, help="File names starting with this are skipped before any allow check.")
@optgroup.option("--ignore-ext", "ignore_exts", multiple=True, help="File extensions to skip (leading dot optional).")
@optgroup.option("--ignore-files-by-default", "ignore_files_by_default", is_flag=True, default=False, help="Skip files no rule matched.")
@optgroup.option("--ignore-paths-by-default", "ignore_paths_by_default", is_flag=True, default=False, help="Skip directories no rule matched.")
@optgroup.option("--full-match", "full_match", is_flag=True, default=False, help="Require rules to match the whole name/path instead of a prefix.")
@optgroup.group("Traversal", help="How the directory tree is walked.")
@optgroup.option("--base-dir", "base_dir", type=click.Path(path_type=Path, file_okay=False), default=None, help="Directory that path rules are relative to. Default: ROOT.")
@optgroup.option("-L", "--follow-symlinks", "follow_symlinks", is_flag=True, default=False, help="Descend into symlinked directories.")
@optgroup.option("--max-concurrency", "max_concurrency", type=click.IntRange(min=1), default=None, help="Maximum simultaneous filesystem calls.")
@optgroup.group("Output", help="What is printed.")
@optgroup.option("-0", "--null", "nul_separated", is_flag=True, default=False, help="Separate output paths with NUL (for xargs -0).")
@optgroup.option("--json", "json_output", is_flag=True, default=False, help="Print a JSON document instead of a path list.")
@optgroup.option("--explain", "explain", is_flag=True, default=False, help="Print every filter decision to stderr.")
@optgroup.option("--check", "check_path", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Check a single file against the rules instead of walking ROOT. Exit code 2 if rejected.")
@optgroup.group("Application Behavior", help="Configuration profiles, saving, and logging.")
@optgroup.option("--config-profile", "active_config_profile_name", default=None, help="Load a profile from config file(s).")
@optgroup.option("--save", "save_profile_name", type=str, metavar="PROFILE_NAME", default=None, help="Save options to a profile in project's .pathsift.toml. Exits after saving.")
@optgroup.option("--verbose", "-v", "verbosity_level", count=True, help="Verbosity: -v info, -vv debug, -vvv debug plus one event per filter decision.")
@optgroup.option("--force-json-logs", "force_json_logs_cli", is_flag=True, default=False, help="Force JSON logs.")
@click.version_option(version=app_version, package_name="pathsift", prog_name="pathsift", help="Show version and exit.")
@click.pass_context
def main_cli(ctx: click.Context, root: Path, **cli_params: Any):
    """pathsift: list the files under ROOT that pass layered
    include/exclude rules on paths, file names and extensions."""

    log_level = "warning"
    if cli_params.get("verbosity_level", 0) == 1: log_level = "info"
    elif cli_params.get("verbosity_level", 0) >= 2: log_level = "debug"
    configure_logging(
        log_level_str=log_level,
        force_json_logs=cli_params.get("force_json_logs_cli", False),
        trace_decisions=cli_params.get("verbosity_level", 0) >= 3,
    )

    log.debug("cli_command_invoked", root=str(root), params={k: v for k, v in cli_params.items() if v})

    try:
        config = _build_filter_config(ctx, cli_params)

        if cli_params.get("save_profile_name"):
            profile_name = cli_params["save_profile_name"]
            if save_config_to_profile(config, profile_name):
                click.echo(f"Info: Profile '{profile_name}' saved.", err=True)
            else:
                click.echo(f"Info: No non-default options to save for profile '{profile_name}'.", err=True)
            ctx.exit(0)

        base_dir: Optional[Path] = cli_params.get("base_dir") or root
        walker = TreeWalker(config, base_dir=base_dir)

        if cli_params.get("check_path") is not None:
            ctx.exit(_run_check(walker, cli_params["check_path"], cli_params.get("explain", False)))

        ctx.exit(_run_walk(walker, root, cli_params))

    except click.exceptions.Exit as e: raise e
    except (ConfigError, PathSiftError) as e:
        log.error("handled_application_error_in_cli", error_type=type(e).__name__, message=str(e))
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)
    except click.ClickException as e:
        log.error("click_exception_in_cli", error_type=type(e).__name__, message=str(e))
        e.show(); sys.exit(e.exit_code)
    except Exception as e:
        log.critical("unexpected_critical_error_in_cli", message=str(e), exc_info=True)
        click.secho(f"Unexpected critical error: {e}. Please report this.", fg="red", err=True)
        sys.exit(1)
