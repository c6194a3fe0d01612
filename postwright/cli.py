"""CLI entrypoints for Postwright."""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from . import __version__
from .config import CONFIG_FILENAME, Config, load_config
from .errors import BuildError
from .links import LinkReport
from .pipeline import BuildResult, build_site, check_site
from .scaffold import ScaffoldError, ScaffoldResult, scaffold_page, scaffold_post
from .site import PageKind

console = Console()
app = typer.Typer(help="Postwright static blog builder.")
new_app = typer.Typer(help="Scaffold new posts and pages.")
app.add_typer(new_app, name="new")

ConfigPathOption = Annotated[
    str,
    typer.Option("--config", "-c", help="Path to configuration file or project directory."),
]
VerboseFlag = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Show debug logging."),
]
ForceFlag = Annotated[
    bool,
    typer.Option("--force", "-f", help="Overwrite existing files if they already exist."),
]


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"postwright {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version and exit."),
    ] = None,
) -> None:
    """Postwright static blog builder."""


@app.command()
def build(
    config_path: ConfigPathOption = CONFIG_FILENAME,
    strict: Annotated[
        Optional[bool],
        typer.Option("--strict/--lenient", help="Treat broken references as fatal (defaults to config)."),
    ] = None,
    clean: Annotated[
        bool,
        typer.Option("--clean", help="Empty the output directory before writing."),
    ] = False,
    verbose: VerboseFlag = False,
) -> None:
    """Build the site into the configured output directory."""
    _configure_logging(verbose)
    config: Config = _load(config_path)

    try:
        result = build_site(config, strict=strict, clean=clean)
    except BuildError as exc:
        console.print(f"[bold red]Build failed[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    _print_build_summary(result, config)


@app.command()
def lint(
    config_path: ConfigPathOption = CONFIG_FILENAME,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Treat broken references as errors."),
    ] = False,
    verbose: VerboseFlag = False,
) -> None:
    """Run every build check without writing output."""
    _configure_logging(verbose)
    config: Config = _load(config_path)

    try:
        result = check_site(config, strict=False)
    except BuildError as exc:
        console.print(f"[bold red]ERROR[/] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    links = result.links
    if not links.broken:
        console.print(
            f"[bold green]Lint clean[/]: {len(result.registry)} document(s), "
            f"{links.checked} reference(s) checked."
        )
        raise typer.Exit()

    strict_mode = strict or config.strict
    style = "red" if strict_mode else "yellow"
    label = "ERROR" if strict_mode else "WARNING"
    for issue in links.broken:
        console.print(
            f"[bold {style}]{label}[/] {escape(issue.location)} - "
            f"{escape(issue.reference)} ({issue.reason.value})"
        )
    _print_link_summary(links, len(result.registry))
    raise typer.Exit(code=1 if strict_mode else 0)


@new_app.command("post")
def new_post(
    title: Annotated[str, typer.Argument(..., help="Post title.")],
    date: Annotated[
        Optional[datetime],
        typer.Option(
            "--date",
            "-d",
            formats=["%Y-%m-%d", "%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M:%S%z", "%Y-%m-%dT%H:%M:%S%z"],
            help="Publication date; defaults to now.",
        ),
    ] = None,
    category: Annotated[
        Optional[list[str]],
        typer.Option("--category", help="Category name (repeatable)."),
    ] = None,
    config_path: ConfigPathOption = CONFIG_FILENAME,
    force: ForceFlag = False,
) -> None:
    """Create a dated post under the posts directory."""
    config: Config = _load(config_path)
    try:
        result = scaffold_post(config, title, date=date, categories=category or (), force=force)
    except ScaffoldError as exc:
        console.print(f"[bold red]Cannot scaffold[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    _print_scaffold_summary("post", title, result)


@new_app.command("page")
def new_page(
    title: Annotated[str, typer.Argument(..., help="Page title.")],
    permalink: Annotated[
        Optional[str],
        typer.Option("--permalink", "-p", help="Explicit output path for the page."),
    ] = None,
    config_path: ConfigPathOption = CONFIG_FILENAME,
    force: ForceFlag = False,
) -> None:
    """Create a standalone page in the content directory."""
    config: Config = _load(config_path)
    try:
        result = scaffold_page(config, title, permalink=permalink, force=force)
    except ScaffoldError as exc:
        console.print(f"[bold red]Cannot scaffold[/]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    _print_scaffold_summary("page", title, result)


@app.command()
def clean(config_path: ConfigPathOption = CONFIG_FILENAME) -> None:
    """Remove the generated site directory."""
    config: Config = _load(config_path)
    target = Path(config.output_dir)
    if not target.exists():
        console.print(f"[bold yellow]Skipping[/]: site output ({_display_path(target)}) not found")
        return
    console.print(f"[bold green]Removing[/]: site output ({_display_path(target)})")
    _remove_path(target)
    console.print("[bold green]Clean complete[/]: removed 1 directory.")


def _print_build_summary(result: BuildResult, config: Config) -> None:
    plan = result.plan
    console.print(
        f"[bold green]Build complete[/]: {len(result.written)} file(s) written to "
        f"{_display_path(config.output_dir)} in {result.duration_seconds:.2f}s"
    )
    console.print(
        f"[bold blue]Pages[/]: {len(plan.of_kind(PageKind.DOCUMENT))} document(s), "
        f"{len(plan.of_kind(PageKind.INDEX))} index page(s), "
        f"{len(plan.of_kind(PageKind.CATEGORY))} category page(s), "
        f"{len(plan.of_kind(PageKind.FEED))} feed(s), "
        f"{len(plan.of_kind(PageKind.ASSET))} asset(s)"
    )
    if result.links.broken:
        _print_link_summary(result.links, len(result.registry))
    if result.report_path is not None:
        console.print(f"[bold green]Report[/]: {_display_path(result.report_path)}")


def _print_link_summary(links: LinkReport, document_count: int) -> None:
    console.print(
        f"[bold yellow]Broken references[/]: {links.missing_assets} missing asset(s), "
        f"{links.missing_documents} missing document(s) across {document_count} document(s)."
    )


def _print_scaffold_summary(kind: str, title: str, result: ScaffoldResult) -> None:
    console.print(f"[bold green]Scaffold ready[/]: {kind} '{escape(title)}'")
    for path in result.created:
        console.print(f"- {_display_path(path)} (new)")
    for path in result.updated:
        console.print(f"- {_display_path(path)} (updated)")
    for note in result.notes:
        console.print(f"[yellow]Note[/]: {escape(note)}")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )


def _display_path(path: Path) -> str:
    try:
        return path.relative_to(Path.cwd()).as_posix()
    except ValueError:
        return path.as_posix()


def _load(path: str) -> Config:
    try:
        return load_config(path)
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"Config file not found: {path}") from exc
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _remove_path(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path)
    elif path.exists():
        path.unlink()
