import logging
import os
import sys
from typing import Any, Dict, Tuple

import click
import yaml

from jobplan import __version__
from jobplan.config.loader import ConfigParseError, apply_overrides, load_config
from jobplan.config.validator import validate_config
from jobplan.core.agent import AgentSetupError, ConfiguredAgent
from jobplan.core.job import Job, ValidationError
from jobplan.utils.logging import setup_logging


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="jobplan")
@click.option("--verbose", "-v", is_flag=True, help="Increase log output to DEBUG level.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress all output except errors and results.")
@click.pass_context
def main(ctx, verbose, quiet):
    """
    jobplan

    Derive execution plans for scraping jobs from an agent's task topology.
    """
    if verbose and quiet:
        click.echo("Error: --verbose and --quiet are mutually exclusive", err=True)
        sys.exit(2)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    log_level = "DEBUG" if verbose else "ERROR" if quiet else "WARNING"
    setup_logging(level=log_level)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(dir_okay=False))
def validate(files):
    """
    Validate job file(s) against the schema.
    """
    valid_count = 0

    for file_path in files:
        try:
            config = load_config(file_path)
        except (ConfigParseError, FileNotFoundError) as e:
            click.echo(click.style(f"✗ {file_path}", fg="red"))
            click.echo(f"  - Parse Error: {e}")
            continue

        result = validate_config(config, config_file=os.path.basename(file_path))
        uid = config.get("uid", "unknown")
        if result.is_valid:
            valid_count += 1
            click.echo(click.style(f"✓ {uid} ({file_path})", fg="green"))
        else:
            click.echo(click.style(f"✗ {uid} ({file_path})", fg="red"))
            for error in result.errors:
                click.echo(f"  - Error: {error.field_path}: {error.message}")
        for warning in result.warnings:
            click.echo(f"  - Warning: {warning.field_path}: {warning.message}")

    if len(files) > 1:
        click.echo(f"\nSummary: {valid_count} of {len(files)} job files valid")

    sys.exit(0 if valid_count == len(files) else 1)


def _parse_param(value: str) -> Tuple[str, Any]:
    key, sep, raw = value.partition("=")
    if not sep or not key:
        raise click.BadParameter(f"'{value}' is not in KEY=VALUE form", param_hint="--param")
    # "3" -> 3, "true" -> True, anything unparseable stays a string
    try:
        parsed = yaml.safe_load(raw) if raw else ""
    except yaml.YAMLError:
        parsed = raw
    return key, parsed


@main.command()
@click.argument("file", type=click.Path(dir_okay=False))
@click.option("--task", "extra_tasks", multiple=True, help="Enqueue an extra task after those in the file.")
@click.option("--param", "raw_params", multiple=True, help="Set a job parameter as KEY=VALUE.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "yaml"]),
    default="text",
    show_default=True,
    help="Output format for the derived plan.",
)
def plan(file, extra_tasks, raw_params, output_format):
    """
    Run a job file and print the execution plan it derives.
    """
    param_overrides: Dict[str, Any] = dict(_parse_param(p) for p in raw_params)

    try:
        config = load_config(file)
    except (ConfigParseError, FileNotFoundError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    config = apply_overrides(config, extra_tasks=list(extra_tasks), param_overrides=param_overrides)

    result = validate_config(config, config_file=os.path.basename(file))
    if not result.is_valid:
        click.echo(f"Error: {file} is not a valid job file", err=True)
        for error in result.errors:
            click.echo(f"  - {error.field_path}: {error.message}", err=True)
        sys.exit(1)
    for warning in result.warnings:
        click.echo(f"Warning: {warning.message}", err=True)

    agent = ConfiguredAgent.from_config(config["agent"])
    try:
        job = Job(config["uid"], agent, config.get("scraper"))
        job.params(config["params"])
        for task_id in config["tasks"]:
            job.enqueue(task_id)
        job.run()
    except (AgentSetupError, ValidationError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if output_format == "yaml":
        click.echo(yaml.safe_dump(job.to_dict(), sort_keys=False), nl=False)
        sys.exit(0)

    click.echo(f"Job {click.style(job.uid, bold=True)} (agent: {agent.name})")
    if not job.execution_plan:
        click.echo("  No enqueued task matches the agent plan.")
    for index, group in enumerate(job.execution_plan, start=1):
        click.echo(f"  Group {index}: {', '.join(d.task_id for d in group)}")

    sys.exit(0)


def entry_point():
    """Entry point for the CLI that handles top-level exceptions and Ctrl+C."""
    try:
        main(standalone_mode=False)
    except click.UsageError as e:
        e.show()
        sys.exit(2)
    except click.ClickException as e:
        e.show()
        sys.exit(1)
    except click.Abort:
        click.echo("\nAborted.", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted.", err=True)
        sys.exit(1)
    except Exception as e:
        logging.getLogger("jobplan").debug("Unexpected exception", exc_info=True)
        click.echo(f"Error: An unexpected error occurred: {e}", err=True)
        click.echo("Suggestion: Re-run with --verbose for more details.", err=True)
        sys.exit(1)


if __name__ == "__main__":
    entry_point()
