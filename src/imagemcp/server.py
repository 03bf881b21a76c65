"""
MCP server exposing the generate-image, edit-image and batch-edit tools.

Each tool validates its arguments, runs the matching ImageService pipeline in
a worker thread and returns a text report followed by the result as JSON.
Failures are raised as ToolError carrying the rendered error text.
"""

import asyncio
import json
from typing import Annotated, Any

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field

from imagemcp.core.image_service import ImageService
from imagemcp.core.schemas import BatchEditArgs, EditImageArgs, GenerateImageArgs, parse_args
from imagemcp.logging_config import configure_logging, get_logger, get_verbosity_from_env
from imagemcp.render import format_error, render_batch, render_edit, render_generate
from imagemcp.utils.exceptions import ImageMcpError

logger = get_logger(__name__)

SERVER_NAME = "imagemcp"

mcp = FastMCP(name=SERVER_NAME)

_service: ImageService | None = None


def get_service() -> ImageService:
    """Return the process-wide ImageService, creating it on first use."""
    global _service
    if _service is None:
        _service = ImageService()
    return _service


def set_service(service: ImageService | None) -> None:
    """Replace the process-wide ImageService (None resets to lazy creation)."""
    global _service
    _service = service


def _report(text: str, payload: dict[str, Any]) -> str:
    return f"{text}\n\nResult (JSON):\n{json.dumps(payload, indent=2)}"


ImageRef = str | dict[str, str]

_NAMING_HELP = "Filename strategy: timestamp, content, custom or hash"
_ORGANIZE_HELP = "Subdirectory organization: none, date, dimension-ratio or quality"
_IMAGE_HELP = (
    "Image to edit: a URL, a data URL, a local path, or {type: url|inline|local, value: ...}"
)
_EDIT_KIND_HELP = (
    "inpaint, outpaint, styleTransfer, objectRemoval, backgroundChange or variation"
)
_BATCH_HELP = (
    "{parallel: bool = true, max_concurrent: 1-10 = 3, "
    "error_handling: failFast | continueOnError | retryFailed}"
)


@mcp.tool(name="generate-image")
async def generate_image(
    prompt: Annotated[str, Field(description="Image description (English only; translate first)")],
    aspect_ratio: Annotated[
        str, Field(description="square (1024x1024), landscape (1536x1024) or portrait (1024x1536)")
    ] = "square",
    quality: Annotated[str | None, Field(description="high, medium or low")] = None,
    output_format: Annotated[str, Field(description="png, jpeg or webp")] = "png",
    include_inline_bytes: Annotated[
        bool, Field(description="Embed base64 image data when it fits the response size budget")
    ] = False,
    save: Annotated[bool, Field(description="Save the image to a local file")] = True,
    output_directory: Annotated[str | None, Field(description="Directory for saved files")] = None,
    filename: Annotated[str | None, Field(description="Explicit filename (sanitized)")] = None,
    naming_strategy: Annotated[str, Field(description=_NAMING_HELP)] = "timestamp",
    organize_by: Annotated[str, Field(description=_ORGANIZE_HELP)] = "none",
) -> str:
    """Generate an image from a text prompt and save it locally."""
    tool = "generate-image"
    try:
        args = parse_args(
            GenerateImageArgs,
            {
                "prompt": prompt,
                "aspect_ratio": aspect_ratio,
                "quality": quality,
                "output_format": output_format,
                "include_inline_bytes": include_inline_bytes,
                "save": save,
                "output_directory": output_directory,
                "filename": filename,
                "naming_strategy": naming_strategy,
                "organize_by": organize_by,
            },
        )
        service = get_service()
        envelope = await asyncio.to_thread(service.generate, args)
    except ImageMcpError as e:
        logger.error("%s failed: %s", tool, e)
        raise ToolError(format_error(e, tool=tool)) from e
    text = render_generate(
        envelope, args.prompt, args.aspect_ratio.value, service.config.image_model
    )
    return _report(text, envelope.to_dict())


@mcp.tool(name="edit-image")
async def edit_image(
    source_image: Annotated[ImageRef, Field(description=_IMAGE_HELP)],
    edit_prompt: Annotated[str, Field(description="Edit instruction (English only)")],
    edit_kind: Annotated[str, Field(description=_EDIT_KIND_HELP)] = "variation",
    strength: Annotated[float, Field(description="Edit strength between 0.0 and 1.0")] = 0.8,
    preserve_composition: Annotated[bool, Field(description="Keep the original layout")] = True,
    output_format: Annotated[str, Field(description="png, jpeg or webp")] = "png",
    save: Annotated[bool, Field(description="Save the edited image to a local file")] = True,
    output_directory: Annotated[str | None, Field(description="Directory for saved files")] = None,
    filename_prefix: Annotated[str, Field(description="Prefix for saved filenames")] = "edited_",
    naming_strategy: Annotated[str, Field(description=_NAMING_HELP)] = "timestamp",
    organize_by: Annotated[str, Field(description=_ORGANIZE_HELP)] = "none",
) -> str:
    """Edit an existing image with a text instruction."""
    tool = "edit-image"
    try:
        args = parse_args(
            EditImageArgs,
            {
                "source_image": source_image,
                "edit_prompt": edit_prompt,
                "edit_kind": edit_kind,
                "strength": strength,
                "preserve_composition": preserve_composition,
                "output_format": output_format,
                "save": save,
                "output_directory": output_directory,
                "filename_prefix": filename_prefix,
                "naming_strategy": naming_strategy,
                "organize_by": organize_by,
            },
        )
        result = await asyncio.to_thread(get_service().edit, args)
    except ImageMcpError as e:
        logger.error("%s failed: %s", tool, e)
        raise ToolError(format_error(e, tool=tool)) from e
    return _report(render_edit(result), result.to_dict())


@mcp.tool(name="batch-edit")
async def batch_edit(
    images: Annotated[list[ImageRef], Field(description="Images to edit (forms as edit-image)")],
    edit_prompt: Annotated[str, Field(description="Edit applied to every image (English only)")],
    edit_kind: Annotated[str, Field(description=_EDIT_KIND_HELP)] = "variation",
    batch_settings: Annotated[dict[str, Any] | None, Field(description=_BATCH_HELP)] = None,
    save: Annotated[bool, Field(description="Save edited images to local files")] = True,
    output_directory: Annotated[str | None, Field(description="Directory for saved files")] = None,
    filename_prefix: Annotated[
        str, Field(description="Filename prefix; each item gets {prefix}{n}_")
    ] = "batch_",
    naming_strategy: Annotated[str, Field(description=_NAMING_HELP)] = "timestamp",
    organize_by: Annotated[str, Field(description=_ORGANIZE_HELP)] = "none",
) -> str:
    """Apply one edit to several images with bounded concurrency."""
    tool = "batch-edit"
    try:
        args = parse_args(
            BatchEditArgs,
            {
                "images": images,
                "edit_prompt": edit_prompt,
                "edit_kind": edit_kind,
                "batch_settings": batch_settings,
                "save": save,
                "output_directory": output_directory,
                "filename_prefix": filename_prefix,
                "naming_strategy": naming_strategy,
                "organize_by": organize_by,
            },
        )
        result = await asyncio.to_thread(get_service().batch_edit, args)
    except ImageMcpError as e:
        logger.error("%s failed: %s", tool, e)
        raise ToolError(format_error(e, tool=tool)) from e
    text = render_batch(result, args.edit_prompt, args.edit_kind.value)
    return _report(text, result.to_dict())


def main() -> None:
    """Entry point for running the MCP server over stdio."""
    configure_logging(get_verbosity_from_env(), stdio_transport=True)
    logger.info("Starting %s MCP server", SERVER_NAME)
    mcp.run()


if __name__ == "__main__":
    main()
