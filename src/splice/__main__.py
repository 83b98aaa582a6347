"""CLI entry point for Splice."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from splice import __version__
from splice.assistant import Completed, Failed, PartialResult, RefactorAssistant, RunAnalysis
from splice.buffer import FileBuffer
from splice.config import Config, ConfigError, SettingsStore, load_config
from splice.merge.orchestrator import Merger, MergeThresholds


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@click.group()
@click.version_option(version=__version__, prog_name="splice")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to splice.toml configuration file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """Splice: merge model rewrites into your files."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.echo(f"Config error: {e}", err=True)
        sys.exit(1)

    _configure_logging("DEBUG" if verbose else config.logging.level)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("candidate", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--write", "-w", is_flag=True, help="Write the merged text back into SOURCE.")
@click.option("--show-strategy", is_flag=True, help="Report the chosen strategy on stderr.")
@click.pass_context
def merge(
    ctx: click.Context,
    source: Path,
    candidate: Path,
    write: bool,
    show_strategy: bool,
) -> None:
    """Merge CANDIDATE into SOURCE and print the result."""
    config: Config = ctx.obj["config"]
    merger = Merger(MergeThresholds.from_merge_config(config.merge))

    buffer = FileBuffer(source)
    decision = merger.decide(
        buffer.read_current_text(),
        candidate.read_text(encoding="utf-8"),
    )

    if show_strategy:
        click.echo(
            f"strategy: {decision.strategy.value} (overlap {decision.overlap:.2f})",
            err=True,
        )
    if write:
        buffer.write_text(decision.text)
        click.echo(f"Merged into {source}", err=True)
    else:
        click.echo(decision.text, nl=False)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--apply/--no-apply",
    default=False,
    help="Merge the finished rewrite into FILE instead of printing it.",
)
@click.pass_context
def refactor(ctx: click.Context, file: Path, apply: bool) -> None:
    """Ask the model to rewrite FILE, streaming progress."""
    config: Config = ctx.obj["config"]
    ok = asyncio.run(_run_refactor(config, file, apply))
    if not ok:
        sys.exit(1)


async def _run_refactor(config: Config, file: Path, apply: bool) -> bool:
    buffer = FileBuffer(file)
    assistant = RefactorAssistant(SettingsStore(config))
    command = RunAnalysis(file_path=str(file), content=buffer.read_current_text())

    completed: Completed | None = None
    async for event in assistant.run_analysis(command):
        if isinstance(event, PartialResult):
            lines = event.text.count("\n") + 1
            click.echo(f"... received {lines} line(s)", err=True)
        elif isinstance(event, Completed):
            completed = event
        elif isinstance(event, Failed):
            click.echo(f"Error: {event.message}", err=True)
            return False

    if completed is None:
        return False

    if apply:
        decision = assistant.apply(buffer, completed.text)
        click.echo(
            f"Applied to {file} using {decision.strategy.value} merge.",
            err=True,
        )
    else:
        click.echo(completed.text)
    return True


@cli.command(name="config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Show the effective configuration."""
    config: Config = ctx.obj["config"]
    token = config.assistant.api_token
    click.echo("[assistant]")
    click.echo(f"  enabled = {str(config.assistant.enabled).lower()}")
    click.echo(f"  api_token = {'***' + token[-4:] if token else '(unset)'}")
    click.echo(f"  analyze_on_save = {str(config.assistant.analyze_on_save).lower()}")
    click.echo("[job]")
    click.echo(f"  base_url = {config.job.base_url}")
    click.echo(f"  model_version = {config.job.model_version}")
    click.echo(f"  max_tokens = {config.job.max_tokens}")
    click.echo(f"  poll_interval_seconds = {config.job.poll_interval_seconds}")
    click.echo(f"  max_poll_attempts = {config.job.max_poll_attempts}")
    click.echo("[merge]")
    click.echo(f"  wholesale_length_ratio = {config.merge.wholesale_length_ratio}")
    click.echo(f"  wholesale_overlap = {config.merge.wholesale_overlap}")
    click.echo(f"  line_overlap_floor = {config.merge.line_overlap_floor}")
    click.echo("[logging]")
    click.echo(f"  level = {config.logging.level}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
