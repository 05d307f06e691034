"""Command line interface for docwrangler."""

from __future__ import annotations

import asyncio
import difflib
from collections import defaultdict
from pathlib import Path
from typing import Any, Optional

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from docwrangler.classification import Classifier, DSPyClassifier, DSPyPlanner, Planner
from docwrangler.config import ConfigError, ConfigManager, WranglerConfig, resolve_with_precedence
from docwrangler.config.resolver import assign_path
from docwrangler.errors import LLMError, MetadataPersistError
from docwrangler.extraction import TextAcquisition
from docwrangler.ingestion import IngestionPipeline, IngestionResult, managed_root_for
from docwrangler.log import configure_logging
from docwrangler.maintenance import (
    cleanup_empty_directories,
    cleanup_stale_metadata,
    metadata_stats,
)
from docwrangler.organization import OrganizationPipeline, OrganizationResult
from docwrangler.state import MetadataStore

console = Console()


def _load_config() -> WranglerConfig:
    """Load the effective configuration and configure logging from it.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    try:
        config = ConfigManager().load()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    configure_logging(config.logging)
    return config


def _store_for(root: Path, config: WranglerConfig) -> MetadataStore:
    return MetadataStore.for_root(
        root,
        config.store.metadata_filename,
        persist_attempts=config.store.persist_attempts,
        retry_delay=config.store.persist_retry_delay_seconds,
    )


def _build_classifier(config: WranglerConfig) -> Optional[Classifier]:
    try:
        return DSPyClassifier(config.llm)
    except LLMError as exc:
        console.print(f"[yellow]{exc}[/yellow]")
        return None


def _build_planner(config: WranglerConfig) -> Optional[Planner]:
    try:
        return DSPyPlanner(config.llm)
    except LLMError as exc:
        console.print(f"[yellow]{exc}[/yellow]")
        return None


def _config_lines(manager: ConfigManager) -> list[str]:
    return [
        line for line in manager.read_text().splitlines() if not line.startswith("# Last updated:")
    ]


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _ingestion_payload(result: IngestionResult) -> dict[str, Any]:
    return {
        "source": str(result.source_path),
        "stage": result.stage.value,
        "failedStage": result.failed_stage.value if result.failed_stage else None,
        "textSource": result.text_source,
        "finalPath": str(result.final_path) if result.final_path else None,
        "error": str(result.error) if result.error else None,
    }


def _organization_payload(result: OrganizationResult) -> dict[str, Any]:
    return {
        "root": str(result.root),
        "candidates": result.candidates,
        "moved": result.moved,
        "moves": [
            {"source": str(item.move.source), "destination": str(item.destination)}
            for item in result.applied
        ],
        "error": result.error,
    }


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="docwrangler")
def cli() -> None:
    """docwrangler names, files, and indexes your scanned PDF documents."""


@cli.command()
@click.argument(
    "files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing each result.")
def ingest(files: tuple[Path, ...], json_output: bool) -> None:
    """Name and file each FILE into the inbox of its folder's managed root."""
    config = _load_config()
    classifier = _build_classifier(config)

    groups: dict[Path, list[Path]] = defaultdict(list)
    for path in files:
        groups[managed_root_for(path.parent, config.ingestion)].append(path)

    async def run_all() -> list[IngestionResult]:
        batches = []
        for root, paths in groups.items():
            pipeline = IngestionPipeline(
                _store_for(root, config),
                TextAcquisition(config.extraction),
                classifier,
                settings=config.ingestion,
                extraction=config.extraction,
            )
            batches.append(pipeline.run_many(paths))
        return [result for batch in await asyncio.gather(*batches) for result in batch]

    results = asyncio.run(run_all())

    if json_output:
        console.print_json(data={"results": [_ingestion_payload(result) for result in results]})
        return

    table = Table(title="Ingestion results")
    table.add_column("File", overflow="fold")
    table.add_column("Status")
    table.add_column("Details", overflow="fold")
    for result in results:
        if result.ok:
            table.add_row(result.source_path.name, "[green]done[/green]", str(result.final_path))
        else:
            stage = result.failed_stage.value if result.failed_stage else "error"
            table.add_row(result.source_path.name, f"[red]{stage}[/red]", str(result.error))
    console.print(table)


@cli.command()
@click.argument("folder", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--all", "reorganize", is_flag=True, help="Reorganize every filed document.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the run.")
def organize(folder: Path, reorganize: bool, json_output: bool) -> None:
    """Move documents in FOLDER's managed root into category folders."""
    config = _load_config()
    root = managed_root_for(folder, config.ingestion)
    pipeline = OrganizationPipeline.create(
        _store_for(root, config),
        _build_planner(config),
        reorganize=reorganize,
        settings=config.organization,
        ingestion=config.ingestion,
        store_settings=config.store,
    )
    result = asyncio.run(pipeline.run())

    if json_output:
        console.print_json(data=_organization_payload(result))
        return

    for item in result.applied:
        source = item.move.source.relative_to(root)
        console.print(f"{source} -> {item.destination.relative_to(root)}")
    console.print(
        _format_summary_line(
            "organize", root, {"candidates": result.candidates, "moved": result.moved}
        )
    )
    if result.error:
        console.print(f"[red]{result.error}[/red]")


@cli.command()
@click.argument("folder", type=click.Path(exists=True, file_okay=False, path_type=Path))
def cleanup(folder: Path) -> None:
    """Drop stale metadata records and remove empty folders under FOLDER's managed root."""
    config = _load_config()
    root = managed_root_for(folder, config.ingestion)
    store = _store_for(root, config)
    try:
        removed = asyncio.run(cleanup_stale_metadata(store))
    except MetadataPersistError as exc:
        raise click.ClickException(str(exc)) from exc
    directories = cleanup_empty_directories(
        root,
        inbox_dirname=config.ingestion.inbox_dirname,
        metadata_filename=config.store.metadata_filename,
    )
    console.print(
        _format_summary_line(
            "cleanup", root, {"stale_records": removed, "directories": directories}
        )
    )


@cli.command()
@click.argument("folder", type=click.Path(exists=True, file_okay=False, path_type=Path))
def stats(folder: Path) -> None:
    """Summarize the metadata index of FOLDER's managed root."""
    config = _load_config()
    root = managed_root_for(folder, config.ingestion)
    summary = asyncio.run(metadata_stats(_store_for(root, config)))

    console.print(
        _format_summary_line(
            "stats", root, {"total": summary.total, "valid": summary.valid, "stale": summary.stale}
        )
    )
    if summary.by_category:
        table = Table(title="Documents by category")
        table.add_column("Category")
        table.add_column("Documents", justify="right")
        for category, count in summary.by_category.items():
            table.add_row(category, str(count))
        console.print(table)


@cli.group()
def config() -> None:
    """Manage docwrangler configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        effective = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Persist VALUE, parsed as YAML, at the dotted configuration KEY.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    before = _config_lines(manager)
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'llm.temperature'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        file_data = manager.load_file_overrides()
        assign_path(file_data, segments, parsed_value, source_name="cli")
        resolve_with_precedence(defaults=WranglerConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = _config_lines(manager)
    if after == before:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    diff = difflib.unified_diff(
        before,
        after,
        fromfile="config.yaml (before)",
        tofile="config.yaml (after)",
        lineterm="",
    )
    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
