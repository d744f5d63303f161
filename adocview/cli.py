"""CLI entry point for adocview."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich import print as rprint
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from adocview.config import AdocviewConfig, load_config
from adocview.config.loader import DEFAULT_CONFIG_TEMPLATE
from adocview.exceptions import DocumentNotFound, ServiceFailure, TransformFailure
from adocview.files import LocalFileStore
from adocview.log import configure_logging
from adocview.pipeline import (
    ConversionFailure,
    OutputType,
    PipelineController,
    TransformStage,
)
from adocview.queue import QueueItem, QueueProcessor, QueueStatus
from adocview.service import HttpConversionService
from adocview.watch import DirectoryWatcher, WatchChannel, WatcherControl, WatchFeed

app = typer.Typer(
    name="adocview",
    help="Convert AsciiDoc through a conversion server, with XSLT and a watch queue.",
)

watch_app = typer.Typer(help="Watch daemon control and automatic conversion.")
app.add_typer(watch_app, name="watch")

config_app = typer.Typer(help="Manage adocview configuration.")
app.add_typer(config_app, name="config")

# Global state
_config: AdocviewConfig | None = None

_LEXERS = {
    OutputType.xml: "xml",
    OutputType.html5: "html",
    OutputType.xhtml: "xml",
    OutputType.xhtml5: "xml",
    OutputType.md2adoc: "asciidoc",
}

_STATUS_STYLES = {
    QueueStatus.pending: "dim",
    QueueStatus.processing: "cyan",
    QueueStatus.completed: "green",
    QueueStatus.error: "red",
}


def _get_config() -> AdocviewConfig:
    if _config is None:
        return load_config()
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to adocview.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    configure_logging(_config.log_level, _config.log_format)


def _output_type(value: str | None, default: OutputType) -> OutputType:
    if value is None:
        return default
    try:
        return OutputType.parse(value)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _service(cfg: AdocviewConfig) -> HttpConversionService:
    try:
        return HttpConversionService(cfg.service.base_url, cfg.service.timeout)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _show(text: str, lexer: str, title: str) -> None:
    rprint(Panel(Syntax(text, lexer, word_wrap=True), title=title, border_style="blue"))


def _status_cell(status: QueueStatus) -> str:
    style = _STATUS_STYLES[status]
    return f"[{style}]{status.value}[/{style}]"


def _display_queue(items: list[QueueItem]) -> None:
    table = Table(title=f"Queue ({len(items)})")
    table.add_column("File", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Detail")
    for item in items:
        table.add_row(item.path, _status_cell(item.status), item.error or item.output_path or "")
    rprint(table)


def _queue_printer():
    """Observer that prints one line per item status change."""
    seen: dict[tuple[str, object], QueueStatus] = {}

    def _observer(items: list[QueueItem]) -> None:
        for item in items:
            key = (item.path, item.created_at)
            if seen.get(key) is item.status:
                continue
            seen[key] = item.status
            line = f"{_status_cell(item.status)} {item.name}"
            if item.status is QueueStatus.error:
                line += f": {item.error}"
            elif item.output_path:
                line += f" -> {item.output_path}"
            rprint(line)

    return _observer


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


@app.command()
def convert(
    file: str = typer.Argument(..., help="AsciiDoc (or Markdown for md2adoc) source file"),
    output_type: Annotated[
        str | None, typer.Option("--type", "-t", help="xml | html5 | xhtml | xhtml5 | md2adoc")
    ] = None,
    stylesheet: Annotated[
        str | None, typer.Option("--stylesheet", "-s", help="XSLT applied to XML output")
    ] = None,
    out: Annotated[str | None, typer.Option("--out", "-o", help="Write the result here")] = None,
) -> None:
    """Convert a document through the conversion server."""
    cfg = _get_config()
    ot = _output_type(output_type, OutputType.html5)
    files = LocalFileStore()
    controller = PipelineController(
        _service(cfg),
        files=files,
        stylesheet_path=stylesheet or cfg.stylesheet.path,
    )

    async def _run():
        source = await controller.load_source(file)
        view = await controller.activate(ot)
        return view, await controller.convert(source, ot)

    try:
        view, outcome = asyncio.run(_run())
    except DocumentNotFound as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if isinstance(outcome, ConversionFailure):
        rprint(f"[red]{outcome.stage.value.capitalize()} failed:[/red] {outcome.detail}")
        if outcome.artifact is not None:
            _show(outcome.artifact.content, "xml", "XML")
        raise typer.Exit(1)

    if out:
        written = asyncio.run(files.write(out, outcome.content))
        rprint(f"[green]Wrote[/green] {written}")
        if outcome.rendered is not None:
            rendered_path = Path(out).with_suffix(".html")
            if rendered_path == Path(out):
                rendered_path = rendered_path.with_name(f"{rendered_path.stem}.rendered.html")
            rendered_path = asyncio.run(files.write(rendered_path, outcome.rendered))
            rprint(f"[green]Wrote[/green] {rendered_path}")
        return

    title = "XML" if ot is OutputType.xml else (view.final_label or ot.value)
    if ot is OutputType.md2adoc:
        title = "AsciiDoc"
    _show(outcome.content, _LEXERS[ot], title)
    if outcome.rendered is not None:
        _show(outcome.rendered, "html", view.final_label or "HTML")


@app.command()
def validate(
    file: str = typer.Argument(..., help="AsciiDoc source file"),
) -> None:
    """Ask the conversion server whether a document parses."""
    cfg = _get_config()
    try:
        content = asyncio.run(LocalFileStore().read(file))
    except DocumentNotFound as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    if not content.strip():
        rprint("[red]Error:[/red] No source content to validate")
        raise typer.Exit(1)

    try:
        result = asyncio.run(_service(cfg).validate(content))
    except ServiceFailure as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if result.valid:
        rprint(f"[green]Valid[/green] {file}")
    else:
        rprint(f"[red]Invalid[/red] {file}: {result.error or 'unknown error'}")
        raise typer.Exit(1)


@app.command()
def transform(
    xml: str = typer.Argument(..., help="XML document"),
    xslt: str = typer.Argument(..., help="XSLT stylesheet"),
    out: Annotated[str | None, typer.Option("--out", "-o", help="Write the result here")] = None,
) -> None:
    """Apply an XSLT stylesheet to an XML file locally."""
    files = LocalFileStore()
    try:
        xml_text = asyncio.run(files.read(xml))
        xslt_text = asyncio.run(files.read(xslt))
        result = TransformStage().transform(xml_text, xslt_text)
    except (DocumentNotFound, TransformFailure) as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if out:
        written = asyncio.run(files.write(out, result))
        rprint(f"[green]Wrote[/green] {written}")
    else:
        _show(result, "html", "HTML (XSLT)")


# ---------------------------------------------------------------------------
# Watch
# ---------------------------------------------------------------------------


def _build_queue(cfg: AdocviewConfig, ot: OutputType) -> QueueProcessor:
    files = LocalFileStore()
    controller = PipelineController(_service(cfg), files=files)
    return QueueProcessor(
        controller,
        files,
        output_type=ot,
        timeout=cfg.queue.timeout,
        settle_delay=cfg.queue.settle_delay,
        writer=files if cfg.queue.write_outputs else None,
        prune_completed=cfg.queue.prune_completed,
    )


@watch_app.command("listen")
def watch_listen(
    local: Annotated[
        str | None, typer.Option("--local", help="Watch this directory instead of the daemon")
    ] = None,
    output_type: Annotated[
        str | None, typer.Option("--type", "-t", help="Output type for queued files")
    ] = None,
    once: Annotated[
        bool, typer.Option("--once", help="Convert existing files under --local and exit")
    ] = False,
) -> None:
    """Queue discovered documents and convert them one at a time."""
    cfg = _get_config()
    ot = _output_type(output_type, cfg.queue.output_type)
    if once and not local:
        rprint("[red]Error:[/red] --once requires --local")
        raise typer.Exit(1)

    queue = _build_queue(cfg, ot)

    if once:
        watcher = DirectoryWatcher(local, queue.enqueue, cfg.watcher.extensions)
        if not watcher.directory.is_dir():
            rprint(f"[red]Error:[/red] Not a directory: {local}")
            raise typer.Exit(1)
        for path in watcher.scan():
            queue.enqueue(path)
        if not queue.items:
            rprint("[yellow]No documents found.[/yellow]")
            raise typer.Exit(0)
        asyncio.run(queue.drain())
        _display_queue(queue.items)
        if any(item.status is QueueStatus.error for item in queue.items):
            raise typer.Exit(1)
        return

    queue.subscribe(_queue_printer())

    async def _listen_daemon() -> None:
        feed = WatchFeed(queue, cfg.watcher.extensions)
        channel = WatchChannel(
            cfg.watcher.url,
            on_message=feed.handle,
            reconnect_delay=cfg.watcher.reconnect_delay,
            on_disconnect=feed.disconnected,
        )
        drain = asyncio.create_task(queue.run())
        try:
            await channel.listen()
        finally:
            channel.stop()
            drain.cancel()

    async def _listen_local() -> None:
        watcher = DirectoryWatcher(
            local,
            queue.enqueue,
            cfg.watcher.extensions,
            cfg.watcher.debounce_seconds,
            loop=asyncio.get_running_loop(),
        )
        watcher.start()
        try:
            await queue.run()
        finally:
            watcher.stop()

    source = local or cfg.watcher.url
    rprint(f"[bold]Listening[/bold] on {source} (output: {ot.value}). Ctrl+C to stop.")
    try:
        asyncio.run(_listen_local() if local else _listen_daemon())
    except NotADirectoryError:
        rprint(f"[red]Error:[/red] Not a directory: {local}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        rprint("[dim]Stopped.[/dim]")


def _control(action: str) -> None:
    cfg = _get_config()
    control = WatcherControl(cfg.watcher.url)
    try:
        reply = asyncio.run(getattr(control, action)())
    except ServiceFailure as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if reply.config is None:
        rprint(f"Watcher: [bold]{reply.status}[/bold]")
        return
    lines = [f"[dim]Status:[/dim] [bold]{reply.status}[/bold]"]
    lines += [f"[dim]{key}:[/dim] {value}" for key, value in sorted(reply.config.items())]
    rprint(Panel("\n".join(lines), title="Watcher", border_style="blue"))


@watch_app.command("start")
def watch_start() -> None:
    """Start the watch daemon."""
    _control("start")


@watch_app.command("stop")
def watch_stop() -> None:
    """Stop the watch daemon."""
    _control("stop")


@watch_app.command("status")
def watch_status() -> None:
    """Show the watch daemon's status and configuration."""
    _control("status")


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(mode="json"), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default adocview.yaml in current directory."""
    target = Path("adocview.yaml")
    if target.exists() and not force:
        rprint("[yellow]adocview.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")
