# cli.py
from __future__ import annotations

import json
import subprocess
import sys
from dataclasses import replace

import click

from nebulaci.config import CheckoutOptions, discover_config
from nebulaci.errors import EXIT_CONFIGURATION, EXIT_INTERRUPTED, ConfigurationError
from nebulaci.git_facts.git import current_branch, repo_name
from nebulaci.model import PlatformTarget
from nebulaci.planner import resolve_matrix, resolve_plan
from nebulaci.runner import run as run_pipeline
from nebulaci.triggers import PULL_REQUEST, PUSH, TriggerRules
from nebulaci.ui.console import Console, get_console, set_console


def _load_config(ctx, config_path, *, strict=None, diagnostics=None, submodules=None, lfs=None):
    """Config file + env, then CLI flags on top. Exits 2 on a bad config."""
    console = get_console()
    try:
        cfg = discover_config(config_path)
    except (ConfigurationError, FileNotFoundError) as e:
        console.print_error("Invalid configuration", str(e))
        sys.exit(EXIT_CONFIGURATION)

    changes = {}
    if strict is not None:
        changes["strict_lint"] = strict
    if diagnostics is not None:
        changes["include_diagnostics"] = diagnostics
    if submodules is not None or lfs is not None:
        changes["checkout"] = CheckoutOptions(
            submodules=cfg.checkout.submodules if submodules is None else submodules,
            lfs=cfg.checkout.lfs if lfs is None else lfs,
        )
    return replace(cfg, **changes) if changes else cfg


def _default_platform(platform: str | None) -> str:
    if platform:
        return platform
    try:
        return PlatformTarget.current().value
    except ConfigurationError as e:
        get_console().print_error(
            "Unsupported host platform",
            str(e),
            suggestion="Pass the target explicitly:\n  nebulaci run --platform linux",
        )
        sys.exit(EXIT_CONFIGURATION)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and full command output)",
)
@click.pass_context
def cli(ctx, debug):
    """nebulaci: resolve and run the Nebula lint/test pipeline per platform."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.option("--platform", default=None, help="linux, macos or windows (defaults to this machine)")
@click.option("--features", default=None, help='Requested feature flags, e.g. "base,extended-build"')
@click.option("--strict/--no-strict", default=None, help="Treat lint warnings as errors")
@click.option("--diagnostics/--no-diagnostics", default=None, help="Include environment introspection steps")
@click.option("--config", "config_path", default=None, help="Config file (defaults to nebulaci_config.py if present)")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the plan as JSON")
@click.pass_context
def plan(ctx, platform, features, strict, diagnostics, config_path, as_json):
    """Print the resolved plan for one platform without running it."""
    console = get_console()
    cfg = _load_config(ctx, config_path, strict=strict, diagnostics=diagnostics)
    try:
        resolved = resolve_plan(_default_platform(platform), features, config=cfg)
    except ConfigurationError as e:
        console.print_error("Invalid configuration", str(e))
        sys.exit(EXIT_CONFIGURATION)

    if as_json:
        click.echo(json.dumps(resolved.to_dict(), indent=2))
    else:
        console.print_plan(resolved)


@cli.command()
@click.option("--features", default=None, help='Requested feature flags, e.g. "base"')
@click.option("--strict/--no-strict", default=None, help="Treat lint warnings as errors")
@click.option("--diagnostics/--no-diagnostics", default=None, help="Include environment introspection steps")
@click.option("--config", "config_path", default=None, help="Config file (defaults to nebulaci_config.py if present)")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the plans as JSON")
@click.pass_context
def matrix(ctx, features, strict, diagnostics, config_path, as_json):
    """Print one plan per platform (linux, macos, windows)."""
    console = get_console()
    cfg = _load_config(ctx, config_path, strict=strict, diagnostics=diagnostics)
    try:
        plans = resolve_matrix(features, config=cfg)
    except ConfigurationError as e:
        console.print_error("Invalid configuration", str(e))
        sys.exit(EXIT_CONFIGURATION)

    if as_json:
        click.echo(json.dumps({p.value: pl.to_dict() for p, pl in plans.items()}, indent=2))
        return
    for resolved in plans.values():
        console.print_plan(resolved)


@cli.command()
@click.option("--platform", default=None, help="linux, macos or windows (defaults to this machine)")
@click.option("--features", default=None, help='Requested feature flags, e.g. "base"')
@click.option("--strict/--no-strict", default=None, help="Treat lint warnings as errors (default: on)")
@click.option("--diagnostics/--no-diagnostics", default=None, help="Include environment introspection steps")
@click.option("--submodules/--no-submodules", default=None, help="Update git submodules before building")
@click.option("--lfs/--no-lfs", default=None, help="Fetch and pull Git LFS objects before building")
@click.option("--config", "config_path", default=None, help="Config file (defaults to nebulaci_config.py if present)")
@click.option("--repo-root", default=".", show_default=True, help="Directory the commands run in")
@click.pass_context
def run(ctx, platform, features, strict, diagnostics, submodules, lfs, config_path, repo_root):
    """Resolve and execute the pipeline for one platform."""
    console = get_console()
    cfg = _load_config(
        ctx,
        config_path,
        strict=strict,
        diagnostics=diagnostics,
        submodules=submodules,
        lfs=lfs,
    )
    if console.debug:
        console.print_debug(f"Repository: {repo_name(repo_root)}")

    try:
        code = run_pipeline(
            _default_platform(platform),
            features=features,
            config=cfg,
            repo_root=repo_root,
            console=console,
        )
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)

    sys.exit(code)


@cli.command()
@click.option("--event", required=True, type=click.Choice([PUSH, PULL_REQUEST]), help="Repository event kind")
@click.option("--branch", default=None, help="Pushed branch, or the pull request's target branch (defaults to the current branch)")
@click.option("--config", "config_path", default=None, help="Config file (defaults to nebulaci_config.py if present)")
@click.pass_context
def trigger(ctx, event, branch, config_path):
    """Exit 0 if EVENT on BRANCH runs the pipeline, 1 otherwise."""
    console = get_console()
    cfg = _load_config(ctx, config_path)

    if not branch:
        try:
            branch = current_branch()
        except (subprocess.CalledProcessError, FileNotFoundError):
            console.print_error(
                "Could not determine branch",
                "No --branch specified and git could not report the current branch.",
                suggestion="Specify it explicitly:\n  nebulaci trigger --event push --branch main",
            )
            sys.exit(EXIT_CONFIGURATION)

    rules = TriggerRules.from_config(cfg)
    if rules.should_run(event, branch):
        console.print_info(f"{event} on {branch}: pipeline runs")
        sys.exit(0)
    console.print_info(f"{event} on {branch}: pipeline skipped")
    sys.exit(1)


if __name__ == "__main__":
    cli()
