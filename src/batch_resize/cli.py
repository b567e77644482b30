"""Command-line client: resize local image files with a progress bar."""

from __future__ import annotations

import asyncio
import mimetypes
import sys
from pathlib import Path

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from .archive import build_archive, unique_names
from .codecs import get_available_codecs, get_codec
from .common.config import ResizerConfig, load_config
from .common.errors import (
    BatchProcessingError,
    BatchValidationError,
    CapabilityUnavailableError,
    ConfigurationError,
)
from .common.formats import FORMATS, OutputFormat
from .common.schemas import ProcessedItem, ProgressEvent, ResizeMode, ResizeOptions, SourceFile
from .orchestrator import BatchOrchestrator
from .utils.media_types import determine_mime
from .validation import issues_from_pydantic

console = Console()

app = typer.Typer(help="Resize batches of images to a target width/height")

# ResizeOptions field -> command-line flag
OPTION_FLAGS = {
    "width": "--width",
    "height": "--height",
    "mode": "--mode",
    "format": "--format",
    "quality": "--quality",
    "allow_enlarge": "--allow-enlarge",
}


def configure_logging(verbose: bool) -> None:
    logger.remove()
    _ = logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def _load_config(path: Path | None, codec: str | None, batch_size: int | None) -> ResizerConfig:
    cfg = load_config(path, ResizerConfig.client())
    updates: dict[str, object] = {}
    if codec:
        updates["codec"] = codec
    if batch_size:
        updates["batch_size"] = batch_size
    return cfg.model_copy(update=updates) if updates else cfg


def _read_sources(paths: list[Path]) -> list[SourceFile]:
    sources: list[SourceFile] = []
    for path in paths:
        if not path.is_file():
            console.print(f"[red]Not a file[/red]: {path}")
            raise typer.Exit(1)
        data = path.read_bytes()
        guessed, _ = mimetypes.guess_type(path.name)
        sources.append(SourceFile(name=path.name, mime=determine_mime(data, guessed), data=data))
    return sources


def _print_issues(error: BatchValidationError) -> None:
    console.print("[red]Validation error[/red]")
    for field, messages in error.field_errors.items():
        for message in messages:
            console.print(f"  {field}: {message}")


def _write_outputs(items: list[ProcessedItem], out_dir: Path, zip_path: Path | None) -> None:
    if zip_path is not None:
        zip_path.parent.mkdir(parents=True, exist_ok=True)
        _ = zip_path.write_bytes(build_archive(items))
        console.print(f"Output archive: {zip_path}")
        return

    out_dir.mkdir(parents=True, exist_ok=True)
    for name, item in zip(unique_names(item.filename for item in items), items):
        _ = (out_dir / name).write_bytes(item.data)
    console.print(f"Output directory: {out_dir}")


@app.command()
def resize(
    files: list[Path] = typer.Argument(..., help="Images to resize"),
    width: int = typer.Option(..., "--width", "-w", help="Target width in pixels (1-8000)"),
    height: int | None = typer.Option(None, "--height", help="Target height in pixels"),
    mode: ResizeMode = typer.Option(ResizeMode.INSIDE, "--mode", help="Resize mode"),
    output_format: OutputFormat = typer.Option(OutputFormat.KEEP, "--format", help="Output format"),
    quality: int = typer.Option(3, "--quality", "-q", help="Quality level (1-5)"),
    allow_enlarge: bool = typer.Option(False, "--allow-enlarge", help="Allow upscaling"),
    out_dir: Path = typer.Option(Path("resized"), "--out", help="Output directory"),
    zip_path: Path | None = typer.Option(None, "--zip", help="Write one ZIP archive instead"),
    codec_name: str | None = typer.Option(None, "--codec", help="Imaging backend"),
    batch_size: int | None = typer.Option(None, "--batch-size", min=1, help="Images per group"),
    config: Path | None = typer.Option(None, "--config", help="Path to batch_resize.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    configure_logging(verbose)

    try:
        options = ResizeOptions(
            width=width,
            height=height,
            mode=mode,
            format=output_format,
            quality=quality,
            allow_enlarge=allow_enlarge,
        )
        cfg = _load_config(config, codec_name, batch_size)
        codec = get_codec(cfg.codec, max_input_pixels=cfg.max_input_pixels)
    except ValidationError as exc:
        _print_issues(BatchValidationError(issues_from_pydantic(exc, OPTION_FLAGS)))
        raise typer.Exit(1) from exc
    except (ConfigurationError, CapabilityUnavailableError) as exc:
        console.print(f"[red]Error[/red]: {exc}")
        raise typer.Exit(1) from exc

    sources = _read_sources(files)
    orchestrator = BatchOrchestrator(codec, cfg)

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as bar:
        task_id = bar.add_task("Resizing", total=len(sources))

        def on_progress(event: ProgressEvent) -> None:
            description = f"Resizing {event.current_file}" if event.current_file else "Resizing"
            bar.update(task_id, completed=event.done, description=description)

        try:
            items = asyncio.run(orchestrator.process(sources, options, on_progress))
        except BatchValidationError as exc:
            _print_issues(exc)
            raise typer.Exit(1) from exc
        except BatchProcessingError as exc:
            console.print(f"[red]Resize failed[/red] at {exc.stage} of {exc.filename}: {exc.cause}")
            raise typer.Exit(1) from exc

    table = Table(title="Resized images")
    table.add_column("File")
    table.add_column("Type")
    table.add_column("Size")
    for item in items:
        table.add_row(item.filename, item.mime, item.size_info)
    console.print(table)

    _write_outputs(items, out_dir, zip_path)


@app.command()
def formats(
    codec_name: str = typer.Option("pillow", "--codec", help="Imaging backend"),
) -> None:
    """List the output formats a codec can encode."""
    try:
        codec = get_codec(codec_name)
    except CapabilityUnavailableError as exc:
        console.print(f"[red]Error[/red]: {exc}")
        console.print(f"Available codecs: {', '.join(get_available_codecs())}")
        raise typer.Exit(1) from exc

    table = Table(title=f"Output formats ({codec.name})")
    table.add_column("MIME")
    table.add_column("Extension")
    table.add_column("Alpha")
    table.add_column("Supported")
    for mime, descriptor in FORMATS.items():
        table.add_row(
            mime,
            descriptor.extension,
            "yes" if descriptor.supports_alpha else "no",
            "yes" if codec.supports(mime) else "no (falls back to PNG)",
        )
    console.print(table)


if __name__ == "__main__":
    app()
