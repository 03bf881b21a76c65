"""
Click command definitions for the imagemcp CLI.

This module contains the Click command group and all CLI commands
(serve, generate, edit, batch-edit, cleanup).
"""

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from imagemcp import __version__
from imagemcp.cli import progress
from imagemcp.cli.handlers import run_with_error_handling
from imagemcp.cli.utils import EXIT_API_OR_NETWORK, effective_verbosity
from imagemcp.core.config import Config
from imagemcp.core.image_service import ImageService
from imagemcp.core.schemas import BatchEditArgs, EditImageArgs, GenerateImageArgs, parse_args
from imagemcp.core.types import (
    AspectRatio,
    EditKind,
    ErrorHandling,
    ImageQuality,
    NamingStrategy,
    OrganizeBy,
    OutputFormat,
)
from imagemcp.files.manager import FileManager
from imagemcp.logging_config import configure_logging
from imagemcp.render import render_batch, render_edit, render_generate


def _choices(enum_cls: type) -> click.Choice:
    return click.Choice([member.value for member in enum_cls], case_sensitive=False)


def _common_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Options every command accepts: --api-key, --quiet, --verbose."""
    fn = click.option(
        "--verbose",
        "-v",
        "verbose_count",
        count=True,
        help="Increase verbosity: -v also logs prompts, -vv logs HTTP detail.",
    )(fn)
    fn = click.option(
        "--quiet",
        "-q",
        is_flag=True,
        help="Minimize progress messages; only print result paths or errors.",
    )(fn)
    fn = click.option(
        "--api-key",
        envvar="OPENAI_API_KEY",
        help="OpenAI API key (overrides OPENAI_API_KEY environment variable).",
    )(fn)
    return fn


def _file_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Options shaping where and how results are saved."""
    fn = click.option(
        "--organize-by",
        type=_choices(OrganizeBy),
        default=OrganizeBy.NONE.value,
        show_default=True,
        help="Subdirectory layout under the output directory.",
    )(fn)
    fn = click.option(
        "--naming",
        type=_choices(NamingStrategy),
        default=NamingStrategy.TIMESTAMP.value,
        show_default=True,
        help="Filename strategy.",
    )(fn)
    fn = click.option(
        "--out-dir",
        "-o",
        type=click.Path(file_okay=False, path_type=Path),
        help="Output directory (default from DEFAULT_OUTPUT_DIR).",
    )(fn)
    return fn


def _load_config(api_key: str | None, require_key: bool = True) -> Config:
    config = Config.from_env()
    if api_key is not None:
        config.set_api_key(api_key)
    if require_key:
        config.validate()
    return config


def _run(action: str, model: str, quiet: bool, fn: Callable[[], Any], detail: str | None = None):
    if quiet:
        return fn()
    with progress.operation_progress(action, model=model, detail=detail):
        return fn()


@click.group(
    help=f"""MCP server and CLI for OpenAI image generation and editing.

\b
Version: {__version__}
"""
)
@click.version_option(version=__version__, package_name="imagemcp")
@click.pass_context
def cli(ctx: click.Context) -> None:
    ctx.color = True


@cli.command()
@click.option(
    "--verbose",
    "-v",
    "verbose_count",
    count=True,
    help="Increase verbosity: -v also logs prompts, -vv logs HTTP detail.",
)
def serve(verbose_count: int) -> None:
    """Run the MCP server over stdio."""
    from imagemcp.server import SERVER_NAME, mcp

    configure_logging(verbose_level=effective_verbosity(verbose_count), stdio_transport=True)
    progress.print_info(f"Starting {SERVER_NAME} MCP server on stdio")
    mcp.run()


@cli.command()
@click.option("--prompt", "-p", required=True, help="Text description of the image (English).")
@click.option(
    "--aspect-ratio",
    "-a",
    type=_choices(AspectRatio),
    default=AspectRatio.SQUARE.value,
    show_default=True,
    help="square (1024x1024), landscape (1536x1024) or portrait (1024x1536).",
)
@click.option("--quality", type=_choices(ImageQuality), help="Rendering quality.")
@click.option(
    "--format",
    "output_format",
    type=_choices(OutputFormat),
    default=OutputFormat.PNG.value,
    show_default=True,
    help="Output image format.",
)
@click.option("--filename", help="Explicit filename (sanitized; extension added if missing).")
@click.option(
    "--include-inline",
    is_flag=True,
    help="Request inline base64 data, subject to the response size budget.",
)
@_file_options
@_common_options
def generate(
    prompt: str,
    aspect_ratio: str,
    quality: str | None,
    output_format: str,
    filename: str | None,
    include_inline: bool,
    out_dir: Path | None,
    naming: str,
    organize_by: str,
    api_key: str | None,
    quiet: bool,
    verbose_count: int,
) -> None:
    """Generate an image from a text prompt and save it."""
    configure_logging(verbose_level=effective_verbosity(verbose_count), quiet=quiet)

    def do_generate() -> None:
        config = _load_config(api_key)
        args = parse_args(
            GenerateImageArgs,
            {
                "prompt": prompt,
                "aspect_ratio": aspect_ratio,
                "quality": quality,
                "output_format": output_format,
                "include_inline_bytes": include_inline,
                "output_directory": str(out_dir) if out_dir else None,
                "filename": filename,
                "naming_strategy": naming,
                "organize_by": organize_by,
            },
        )
        service = ImageService(config=config)
        envelope = _run(
            "Generating image", config.image_model, quiet, lambda: service.generate(args)
        )

        if quiet:
            click.echo(envelope.file_path or envelope.image_url or "")
            return
        progress.print_generate_result(envelope, args.prompt, config.image_model)
        if envelope.file_path:
            click.echo(envelope.file_path)
        else:
            click.echo(
                render_generate(
                    envelope, args.prompt, args.aspect_ratio.value, config.image_model
                )
            )

    run_with_error_handling(do_generate, quiet=quiet)


@cli.command()
@click.option(
    "--image", "-i", required=True, help="Source image: URL, data URL or local file path."
)
@click.option("--prompt", "-p", required=True, help="Edit instruction (English).")
@click.option(
    "--kind",
    type=_choices(EditKind),
    default=EditKind.VARIATION.value,
    show_default=True,
    help="Kind of edit (recorded in the result).",
)
@click.option(
    "--strength",
    type=click.FloatRange(0.0, 1.0),
    default=0.8,
    show_default=True,
    help="Edit strength between 0.0 and 1.0.",
)
@click.option("--prefix", default="edited_", show_default=True, help="Filename prefix.")
@_file_options
@_common_options
def edit(
    image: str,
    prompt: str,
    kind: str,
    strength: float,
    prefix: str,
    out_dir: Path | None,
    naming: str,
    organize_by: str,
    api_key: str | None,
    quiet: bool,
    verbose_count: int,
) -> None:
    """Edit an existing image with a text instruction."""
    configure_logging(verbose_level=effective_verbosity(verbose_count), quiet=quiet)

    def do_edit() -> None:
        config = _load_config(api_key)
        args = parse_args(
            EditImageArgs,
            {
                "source_image": image,
                "edit_prompt": prompt,
                "edit_kind": kind,
                "strength": strength,
                "output_directory": str(out_dir) if out_dir else None,
                "filename_prefix": prefix,
                "naming_strategy": naming,
                "organize_by": organize_by,
            },
        )
        service = ImageService(config=config)
        result = _run("Editing image", config.image_model, quiet, lambda: service.edit(args))

        saved_path = result.saved_image.local_path if result.saved_image else None
        if quiet:
            click.echo(saved_path or result.image_url or "")
            return
        progress.print_edit_result(result)
        click.echo(saved_path or render_edit(result))

    run_with_error_handling(do_edit, quiet=quiet)


@cli.command("batch-edit")
@click.option(
    "--image",
    "-i",
    "images",
    multiple=True,
    required=True,
    help="Source image (repeatable): URL, data URL or local file path.",
)
@click.option("--prompt", "-p", required=True, help="Edit applied to every image (English).")
@click.option(
    "--kind",
    type=_choices(EditKind),
    default=EditKind.VARIATION.value,
    show_default=True,
    help="Kind of edit (recorded in the result).",
)
@click.option(
    "--max-concurrent",
    type=int,
    default=3,
    show_default=True,
    help="Images edited at once (1-10).",
)
@click.option("--sequential", is_flag=True, help="Edit one image at a time.")
@click.option(
    "--error-handling",
    type=_choices(ErrorHandling),
    default=ErrorHandling.CONTINUE_ON_ERROR.value,
    show_default=True,
    help="failFast stops after a failing chunk; retryFailed retries failures once.",
)
@click.option("--prefix", default="batch_", show_default=True, help="Filename prefix.")
@_file_options
@_common_options
def batch_edit(
    images: tuple[str, ...],
    prompt: str,
    kind: str,
    max_concurrent: int,
    sequential: bool,
    error_handling: str,
    prefix: str,
    out_dir: Path | None,
    naming: str,
    organize_by: str,
    api_key: str | None,
    quiet: bool,
    verbose_count: int,
) -> None:
    """Apply one edit to several images. Exits 1 if any image failed."""
    configure_logging(verbose_level=effective_verbosity(verbose_count), quiet=quiet)

    def do_batch() -> None:
        config = _load_config(api_key)
        args = parse_args(
            BatchEditArgs,
            {
                "images": list(images),
                "edit_prompt": prompt,
                "edit_kind": kind,
                "batch_settings": {
                    "parallel": not sequential,
                    "max_concurrent": max_concurrent,
                    "error_handling": error_handling,
                },
                "output_directory": str(out_dir) if out_dir else None,
                "filename_prefix": prefix,
                "naming_strategy": naming,
                "organize_by": organize_by,
            },
        )
        service = ImageService(config=config)
        result = _run(
            "Editing images",
            config.image_model,
            quiet,
            lambda: service.batch_edit(args),
            detail=f"{len(args.images)} images",
        )

        if not quiet:
            progress.print_batch_result(result)
        saved = [item.saved_image.local_path for item in result.items if item.saved_image]
        if saved:
            for path in saved:
                click.echo(path)
        elif not quiet:
            click.echo(render_batch(result, args.edit_prompt, args.edit_kind.value))
        if result.failed:
            sys.exit(EXIT_API_OR_NETWORK)

    run_with_error_handling(do_batch, quiet=quiet)


@cli.command()
@click.option(
    "--dir",
    "directory",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory to clean (default from DEFAULT_OUTPUT_DIR).",
)
@click.option(
    "--days",
    type=click.IntRange(min=1),
    help="Delete images older than this many days (default from KEEP_FILES_DAYS).",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Only print removed file paths.",
)
def cleanup(directory: Path | None, days: int | None, quiet: bool) -> None:
    """Delete saved images older than the retention window."""
    configure_logging(quiet=quiet)

    def do_cleanup() -> None:
        config = _load_config(None, require_key=False)
        if days is not None:
            config.keep_files_days = days
        removed = FileManager.from_config(config).cleanup_old_files(directory)
        for path in removed:
            click.echo(str(path))
        if not quiet:
            progress.print_success(
                f"Removed {len(removed)} file(s) older than {config.keep_files_days} days"
            )

    run_with_error_handling(do_cleanup, quiet=quiet)


def main() -> None:
    """Entry point for the imagemcp console script."""
    cli()


__all__ = ["cli", "main"]
