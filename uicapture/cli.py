"""CLI entry point for the capture tool."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from uicapture.models.component import ComponentSpec, load_components, select_components
from uicapture.models.config import CaptureConfig
from uicapture.orchestrator import CaptureRun
from uicapture.reporter.diff import compare_capture, diff_image_path
from uicapture.reporter.json_report import generate_diff_report
from uicapture.storage.screenshot_store import ScreenshotStore, make_timestamp
from uicapture.utils.retry import RetryExhausted

console = Console()

STATUS_STYLES = {
    "success": "green",
    "fallback": "yellow",
    "failed": "red",
    "error": "red",
    "skipped": "yellow",
}

EXAMPLE_COMPONENTS = {
    "components": [
        {
            "name": "01-hero",
            "page": "/",
            "selector": "header.hero",
            "alternative_selectors": ["main > section:first-child"],
            "fallback_strategy": "first-heading",
            "padding": 40,
        },
        {
            "name": "02-footer",
            "page": "/",
            "selector": "footer",
            "fallback_strategy": "last-element",
            "padding": 0,
        },
    ]
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(config: str) -> CaptureConfig:
    try:
        return CaptureConfig.load(config)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {config}[/red]")
        console.print("Run 'ui-capture init' to create a default config.")
        sys.exit(1)


def _load_registry(cfg: CaptureConfig, registry: str | None) -> list[ComponentSpec]:
    path = registry or cfg.components_file
    try:
        return load_components(path)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[red]Invalid component registry {path}:[/red] {e}")
        sys.exit(1)


def _split_names(names: str | None) -> list[str]:
    return [n.strip() for n in names.split(",") if n.strip()] if names else []


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Deterministic UI component screenshots for visual regression review"""
    setup_logging(verbose)


@cli.command()
@click.option("--config", "-c", default="capture-config.json", help="Config file path")
@click.option("--registry", "-r", default=None, help="Component registry JSON (overrides config)")
@click.option("--components", default=None, help="Comma-separated component names to capture")
@click.option("--baseline", is_flag=True, help="Save as baseline (no timestamp in filenames)")
@click.option("--compare", is_flag=True, help="Compare each new capture with its baseline")
def capture(
    config: str, registry: str | None, components: str | None, baseline: bool, compare: bool,
) -> None:
    """Capture every selected component in every configured theme."""
    cfg = _load_config(config)
    selected = select_components(_load_registry(cfg, registry), _split_names(components))
    if not selected:
        console.print("[yellow]No components selected[/yellow]")
        return

    try:
        summary = CaptureRun(cfg, selected, baseline=baseline, compare=compare).run()
    except RetryExhausted as e:
        console.print(f"[red]Capture aborted:[/red] {e}")
        sys.exit(1)

    console.print("\n[bold green]Capture Complete[/bold green]")
    table = Table(title="Results Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Run ID", summary.run_id)
    table.add_row("Duration", f"{summary.duration_seconds}s")
    table.add_row("Total Captures", str(summary.total))
    table.add_row("Successful", f"[green]{summary.successful}[/green]")
    table.add_row("Failed", f"[red]{summary.failed}[/red]")
    table.add_row("Skipped", f"[yellow]{summary.skipped}[/yellow]")
    console.print(table)

    results = Table(title="Components")
    results.add_column("Component", style="bold")
    for theme in cfg.themes:
        results.add_column(theme.capitalize())
    for name, by_theme in summary.component_results.items():
        cells = []
        for theme in cfg.themes:
            status = by_theme.get(theme, "-")
            style = STATUS_STYLES.get(status, "white")
            cells.append(f"[{style}]{status}[/{style}]")
        results.add_row(name, *cells)
    console.print(results)

    failures = summary.failures()
    if failures:
        console.print("\n[bold red]Needs review:[/bold red]")
        for outcome in failures:
            console.print(f"  {outcome.component_name} ({outcome.theme}): {outcome.message}")

    compared = [o for o in summary.outcomes if o.diff_percentage is not None]
    if compared:
        console.print("\n[bold]Baseline diff:[/bold]")
        for outcome in compared:
            console.print(f"  {outcome.component_name} ({outcome.theme}): {outcome.diff_percentage:.2%}")
    console.print(f"\nScreenshots: [blue]{Path(cfg.output_dir).resolve()}[/blue]")


@cli.command()
@click.option("--config", "-c", default="capture-config.json", help="Config file path")
@click.option("--registry", "-r", default=None, help="Component registry JSON (overrides config)")
@click.option("--components", default=None, help="Comma-separated component names to compare")
def diff(config: str, registry: str | None, components: str | None) -> None:
    """Compare the latest captures against their baselines.

    Exits 1 when any capture differs by more than its threshold.
    """
    cfg = _load_config(config)
    selected = select_components(_load_registry(cfg, registry), _split_names(components))
    store = ScreenshotStore(cfg.output_dir)

    table = Table(title="Visual Diff")
    table.add_column("Component", style="bold")
    table.add_column("Theme")
    table.add_column("Diff")
    table.add_column("Result")

    results = []
    for component in selected:
        threshold = component.diff_threshold if component.diff_threshold is not None else cfg.diff_threshold
        for name in component.capture_names:
            for theme in cfg.themes:
                baseline_path = store.baseline_path(name, theme)
                current_path = store.latest_capture(name, theme)
                if baseline_path is None or current_path is None:
                    missing = "baseline" if baseline_path is None else "capture"
                    table.add_row(name, theme, "-", f"[yellow]no {missing}[/yellow]")
                    continue
                result = compare_capture(
                    name, theme, baseline_path, current_path,
                    threshold=threshold, pixel_threshold=cfg.pixel_threshold,
                    diff_path=diff_image_path(cfg.output_dir, name, theme),
                )
                results.append(result)
                verdict = "[green]unchanged[/green]" if result.passed else "[red]changed[/red]"
                table.add_row(name, theme, f"{result.diff_percentage:.2%}", verdict)

    console.print(table)

    report_path = Path(cfg.report_output_dir) / f"diff_{make_timestamp()}.json"
    generate_diff_report(results, report_path)
    console.print(f"Report: [blue]{report_path}[/blue]")

    changed = [r for r in results if not r.passed]
    if changed:
        console.print(f"[red]{len(changed)} capture(s) differ from baseline[/red]")
        for result in changed:
            if result.diff_image_path:
                console.print(f"  {result.component_name} ({result.theme}): {result.diff_image_path}")
        sys.exit(1)
    console.print("[green]No visual changes above threshold[/green]")


@cli.command()
@click.option("--target", "-t", prompt="Base URL", help="Base URL of the site to capture")
def init(target: str) -> None:
    """Create a default configuration file and an example component registry."""
    config_path = Path("capture-config.json")
    if config_path.exists():
        if not click.confirm("capture-config.json already exists. Overwrite?"):
            return

    cfg = CaptureConfig(base_url=target)
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")

    registry_path = Path(cfg.components_file)
    if not registry_path.exists():
        with open(registry_path, "w") as f:
            json.dump(EXAMPLE_COMPONENTS, f, indent=2)
        console.print(f"[green]Created {registry_path}[/green]")

    console.print("\nDescribe your components in the registry, then run:")
    console.print("  [blue]ui-capture capture --baseline[/blue]")


@cli.command("components")
@click.option("--config", "-c", default="capture-config.json", help="Config file path")
@click.option("--registry", "-r", default=None, help="Component registry JSON (overrides config)")
def list_components(config: str, registry: str | None) -> None:
    """List the components in the registry."""
    cfg = _load_config(config)
    specs = _load_registry(cfg, registry)

    table = Table(title=f"{len(specs)} Components")
    table.add_column("Name", style="bold")
    table.add_column("Page")
    table.add_column("Selector")
    table.add_column("Fallback")
    table.add_column("Tab")
    for spec in specs:
        table.add_row(
            spec.name,
            spec.page,
            spec.selector or "-",
            spec.fallback_strategy,
            spec.tab_config.verify_tab_name if spec.tab_config else "-",
        )
    console.print(table)


if __name__ == "__main__":
    cli()
