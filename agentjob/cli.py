"""
CLI interface for agentjob.

Provides commands to discover, validate and dry-run job definitions.

Job definitions are YAML or JSON files in the definitions directory
(`definitions_dir` in config.yaml, default <home>/jobs). `plan` applies a
definition to an in-memory job store and prints the store calls an apply
would issue against a real server.
"""

import json
import logging
from pathlib import Path

import click
import yaml

from agentjob import __version__

logger = logging.getLogger(__name__)


DEFAULT_SERVER_VERSION = 16


def _require_config(ctx):
    if "config" not in ctx.obj:
        click.echo(f"✗ Config not loaded: {ctx.obj.get('config_error', 'Unknown error')}", err=True)
        click.echo("Run 'agentjob init' to create a configuration file.", err=True)
        raise SystemExit(1)
    return ctx.obj["config"]


def _load_definition(ctx, name: str):
    from agentjob.registry import JobDefinitionError, JobDefinitionNotFoundError, JobDefinitionRegistry

    config = _require_config(ctx)
    registry = JobDefinitionRegistry(config.get_definitions_dir())
    try:
        return registry, registry.load(name)
    except JobDefinitionNotFoundError:
        click.echo(f"✗ Unknown job: {name}", err=True)
        available = registry.list_jobs()
        if available:
            click.echo("\nAvailable jobs:", err=True)
            for job_name in available:
                click.echo(f"  {job_name}", err=True)
        raise SystemExit(1)
    except JobDefinitionError as e:
        click.echo(f"✗ Invalid job definition {name}: {e}", err=True)
        raise SystemExit(1)


@click.group()
@click.version_option(version=__version__, prog_name="agentjob")
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Path to config.yaml")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, config_path, verbose):
    """
    agentjob - Edit and apply scheduled agent jobs.

    Validate job definitions and preview the store calls they produce.
    """
    from agentjob.config import ConfigError, load_config

    ctx.ensure_object(dict)
    level = "INFO"
    try:
        ctx.obj["config"] = load_config(config_path)
        level = ctx.obj["config"].log_level
    except ConfigError as e:
        # init can still run; other commands report the error
        ctx.obj["config_error"] = str(e)

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool):
    """Initialize agentjob configuration."""
    from agentjob.config import AgentJobConfig, get_agentjob_home

    home = get_agentjob_home()
    if not home.exists():
        home.mkdir(parents=True)

    cfg_path = home / "config.yaml"
    if cfg_path.exists() and not force:
        click.echo(f"Config already exists at {cfg_path}. Use --force to overwrite.", err=True)
        raise SystemExit(1)

    default_cfg = AgentJobConfig(definitions_dir=str(home / "jobs")).to_dict()
    cfg_path.write_text(yaml.safe_dump(default_cfg, sort_keys=False))

    jobs_dir = home / "jobs"
    if not jobs_dir.exists():
        jobs_dir.mkdir()

    click.echo(f"Initialized agentjob config at {cfg_path}")


@main.group("jobs")
def jobs_group():
    """Inspect job definitions."""
    pass


@jobs_group.command("list")
@click.pass_context
def list_jobs(ctx):
    """List available job definitions."""
    from agentjob.registry import JobDefinitionRegistry

    config = _require_config(ctx)
    names = JobDefinitionRegistry(config.get_definitions_dir()).list_jobs()
    if not names:
        click.echo("No job definitions found.")
        return
    for name in names:
        click.echo(name)


@jobs_group.command("show")
@click.argument("job")
@click.option("--json", "as_json", is_flag=True, help="Print the definition as JSON")
@click.pass_context
def show_job(ctx, job: str, as_json: bool):
    """Show job definition details."""
    registry, definition = _load_definition(ctx, job)
    data = definition.to_dict()

    click.echo(f"Job: {definition.name}")
    click.echo(f"Steps: {len(definition.steps)}  Schedules: {len(definition.schedules)}  Alerts: {len(definition.alerts)}")
    click.echo(f"Hash: {registry.compute_hash(definition)}")
    click.echo()
    if as_json:
        click.echo(json.dumps(data, indent=2))
    else:
        click.echo(yaml.safe_dump(data, sort_keys=False).rstrip())


def _build_assembly(ctx, job: str, server_version: int):
    from agentjob.schemas import Alert, JobContext
    from agentjob.store import InMemoryJobStore

    config = _require_config(ctx)
    _, definition = _load_definition(ctx, job)

    store = InMemoryJobStore(major_version=server_version)
    # alerts are server objects; assume the referenced ones exist
    for name in definition.alerts:
        store.add_alert(Alert(name=name))

    context = JobContext(targets_local_server=config.targets_local_server)
    return store, definition.to_assembly(store, context, config)


@main.command("validate")
@click.argument("job")
@click.option("--yes", "assume_yes", is_flag=True, help="Accept step warnings")
@click.pass_context
def validate(ctx, job: str, assume_yes: bool):
    """Check a job definition's step graph.

    Reports steps that cannot be reached from the start of the job. Exits
    with status 1 on warnings unless --yes is given.

    Example:

        agentjob validate nightly_etl
    """
    from agentjob.errors import AgentJobError

    try:
        _, assembly = _build_assembly(ctx, job, DEFAULT_SERVER_VERSION)
    except AgentJobError as e:
        click.echo(f"✗ {job}: {e}", err=True)
        raise SystemExit(1)

    report = assembly.validate()
    if not report.has_warnings:
        click.echo(f"✓ {job}: {len(assembly.steps)} steps, all reachable")
        return

    click.echo(report.message())
    if assume_yes:
        assembly.validator.confirm(report)
        click.echo(f"✓ {job}: warnings accepted")
        return
    raise SystemExit(1)


@main.command("plan")
@click.argument("job")
@click.option("--server-version", type=int, default=DEFAULT_SERVER_VERSION, show_default=True,
              help="Job server major version to plan against")
@click.pass_context
def plan(ctx, job: str, server_version: int):
    """Show the store calls applying a job definition would issue.

    Example:

        agentjob plan nightly_etl --server-version 8
    """
    from agentjob.errors import AgentJobError

    try:
        store, assembly = _build_assembly(ctx, job, server_version)
        report = assembly.validate()
        if report.has_warnings:
            click.echo(report.message(), err=True)
            click.echo()
        result = assembly.apply_changes()
    except AgentJobError as e:
        logger.error(f"Planning {job} failed", exc_info=True)
        click.echo(f"✗ {job}: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"Plan for {job} (server version {server_version}):")
    for operation, *args in store.calls:
        click.echo(f"  {operation}({', '.join(repr(a) for a in args)})")
    click.echo()
    click.echo(
        f"job={result.job_changed} steps={result.steps_changed} "
        f"schedules={result.schedules_changed} alerts={result.alerts_changed}"
    )


if __name__ == "__main__":
    main()
