"""
CLI interface for tsorchestra.

Provides commands: build, sources, config.

Handlers are read from the deployment file (serverless.yml) in the
working directory; compiler options from tsconfig.json next to it, or the
built-in defaults.
"""

import json
import logging
import time
from pathlib import Path

import click

from tsorchestra import __version__
from tsorchestra.compiler import get_source_files, run
from tsorchestra.config import DEFAULT_TSCONFIG_FILE, get_typescript_config
from tsorchestra.deployment import (
    DEFAULT_DEPLOYMENT_FILE,
    get_provider,
    load_deployment_config,
    parse_functions,
)
from tsorchestra.engine import TscEngine
from tsorchestra.engine.tsc import TSC_ENV_VAR
from tsorchestra.entrypoints import extract_file_names
from tsorchestra.errors import TsorchestraError
from tsorchestra.utils import (
    LoggingAdapter,
    format_duration,
    print_banner,
    print_error,
    print_info,
    print_success,
    setup_logging,
)

logger = logging.getLogger("tsorchestra.cli")


def _project_options(func):
    """Options shared by every command that works on a project directory."""
    func = click.option(
        "--verbose",
        is_flag=True,
        help="Enable debug logging",
    )(func)
    func = click.option(
        "--tsconfig",
        default=DEFAULT_TSCONFIG_FILE,
        show_default=True,
        help="Config file name, relative to --cwd",
    )(func)
    func = click.option(
        "--cwd",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        default=".",
        help="Project directory (default: current directory)",
    )(func)
    return func


def _engine_options(func):
    func = click.option(
        "--provider",
        help="Deployment provider (default: from the deployment file, else aws)",
    )(func)
    func = click.option(
        "--serverless",
        default=DEFAULT_DEPLOYMENT_FILE,
        show_default=True,
        help="Deployment file holding the functions mapping, relative to --cwd",
    )(func)
    func = click.option(
        "--tsc",
        "tsc_path",
        envvar=TSC_ENV_VAR,
        help=f"tsc executable (default: ${TSC_ENV_VAR}, node_modules/.bin/tsc, PATH)",
    )(func)
    return func


def _resolve_entry_points(cwd: Path, serverless: str, provider):
    """Entry points for the project, from the deployment file's functions."""
    deployment_path = cwd / serverless
    functions = {}
    if deployment_path.exists():
        deployment = load_deployment_config(deployment_path)
        functions = parse_functions(deployment, deployment_path)
        provider = provider or get_provider(deployment)
    provider = provider or "aws"
    logger.debug(f"Resolving entry points for provider={provider}, functions={list(functions)}")
    return extract_file_names(cwd, provider, functions)


@click.group()
@click.version_option(version=__version__, prog_name="tsorchestra")
def main():
    """
    tsorchestra - TypeScript compilation for serverless handlers.

    Resolves handler entry points, compiles them in one tsc pass and
    reports the emitted files.
    """
    pass


@main.command()
@_project_options
@_engine_options
def build(cwd, tsconfig, verbose, tsc_path, serverless, provider):
    """
    Compile the project's handlers.

    Examples:

      # Build the project in the current directory
      tsorchestra build

      # Use another config and an explicit compiler
      tsorchestra build --tsconfig tsconfig.build.json --tsc ./node_modules/.bin/tsc
    """
    setup_logging("DEBUG" if verbose else "INFO")
    cwd = cwd.resolve()
    print_banner("tsorchestra build")
    started = time.monotonic()

    try:
        options = get_typescript_config(cwd, tsconfig, LoggingAdapter(logger))
        file_names = _resolve_entry_points(cwd, serverless, provider)
        print_info(f"Compiling {len(file_names)} entry point(s)")
        emitted = run(file_names, options, engine=TscEngine(tsc_path=tsc_path, cwd=cwd))
    except TsorchestraError as e:
        print_error(f"Build failed: {e}")
        raise SystemExit(1)

    for file_name in emitted:
        click.echo(file_name)
    print_success(
        f"Emitted {len(emitted)} file(s) in {format_duration(time.monotonic() - started)}"
    )


@main.command()
@_project_options
@_engine_options
def sources(cwd, tsconfig, verbose, tsc_path, serverless, provider):
    """
    List every source file the handlers depend on.

    Useful for driving a file watcher.
    """
    setup_logging("DEBUG" if verbose else "INFO")
    cwd = cwd.resolve()

    try:
        options = get_typescript_config(cwd, tsconfig)
        file_names = _resolve_entry_points(cwd, serverless, provider)
        files = get_source_files(file_names, options, engine=TscEngine(tsc_path=tsc_path, cwd=cwd))
    except TsorchestraError as e:
        print_error(f"Cannot list sources: {e}")
        raise SystemExit(1)

    for file_name in files:
        click.echo(file_name)


@main.command()
@_project_options
def config(cwd, tsconfig, verbose):
    """
    Show the resolved compiler options as JSON.
    """
    setup_logging("DEBUG" if verbose else "INFO")
    cwd = cwd.resolve()

    try:
        options = get_typescript_config(cwd, tsconfig, LoggingAdapter(logger))
    except TsorchestraError as e:
        print_error(f"Invalid config: {e}")
        raise SystemExit(1)

    click.echo(json.dumps(options, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
