"""
Generate, edit and batch-edit pipelines.

ImageService ties the pieces together: argument models in, upstream call
through an ImageProvider, persistence through the FileManager, the
ResponseSizeGovernor for inline data, and the BatchOrchestrator for batches.
"""

import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from imagemcp.core.batch import BatchOrchestrator, BatchResult, ItemOutput
from imagemcp.core.config import Config, get_config
from imagemcp.core.image_input import load_image_input
from imagemcp.core.images import prepare_for_upload
from imagemcp.core.providers.base import ImageProvider, UpstreamImage
from imagemcp.core.response import ResponseEnvelope, ResponseMetadata, ResponseSizeGovernor
from imagemcp.core.schemas import BatchEditArgs, EditImageArgs, GenerateImageArgs
from imagemcp.core.types import (
    AspectRatio,
    EditKind,
    FileOutputRequest,
    ImageInput,
    ImageQuality,
    SavedImage,
    aspect_ratio_to_size,
    size_string,
)
from imagemcp.files.manager import FileManager, ImageMetadata, OutputSource
from imagemcp.logging_config import get_logger
from imagemcp.utils.exceptions import ImageMcpError

logger = get_logger(__name__)

DEFAULT_BATCH_PREFIX = "edited_"


def aspect_ratio_for(width: int, height: int) -> AspectRatio:
    """Closest supported aspect ratio for a source image."""
    if width > height:
        return AspectRatio.LANDSCAPE
    if height > width:
        return AspectRatio.PORTRAIT
    return AspectRatio.SQUARE


def _utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _output_source(upstream: UpstreamImage, output_format: str) -> OutputSource:
    if upstream.url:
        return OutputSource.from_url(upstream.url)
    return OutputSource.from_base64(upstream.b64_json or "", mime_type=f"image/{output_format}")


@dataclass
class EditResult:
    """Outcome of one edit: where the edited image is, and how it was made."""

    original_ref: str
    original_width: int
    original_height: int
    original_prompt: str
    revised_prompt: str
    edit_kind: EditKind
    strength: float
    composition_preserved: bool
    edit_time_ms: int
    model_used: str
    image_url: str | None = None
    saved_image: SavedImage | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        edited: dict[str, Any] = {
            "revised_prompt": self.revised_prompt,
            "original_prompt": self.original_prompt,
            "edit_kind": self.edit_kind.value,
            "strength": self.strength,
        }
        if self.image_url is not None:
            edited["image_url"] = self.image_url
        if self.saved_image is not None:
            edited["saved_image"] = self.saved_image.to_dict()
        result: dict[str, Any] = {
            "original_image": {
                "ref": self.original_ref,
                "dimensions": {"width": self.original_width, "height": self.original_height},
            },
            "edited_image": edited,
            "metadata": {
                "edit_time_ms": self.edit_time_ms,
                "model_used": self.model_used,
                "composition_preserved": self.composition_preserved,
            },
        }
        if self.warnings:
            result["warnings"] = list(self.warnings)
        return result


class ImageService:
    """Runs the tool operations against an upstream provider."""

    def __init__(
        self,
        config: Config | None = None,
        provider: ImageProvider | None = None,
        file_manager: FileManager | None = None,
        governor: ResponseSizeGovernor | None = None,
    ) -> None:
        self.config = config or get_config()
        if provider is None:
            from imagemcp.core.providers.openai import OpenAIImagesProvider

            provider = OpenAIImagesProvider()
        self.provider = provider
        self.file_manager = file_manager or FileManager.from_config(self.config)
        self.governor = governor or ResponseSizeGovernor(
            max_tokens=self.config.max_response_tokens,
            warning_tokens=self.config.response_warning_tokens,
        )

    def _ensure_config(self) -> None:
        if not self.config.is_valid():
            self.config.validate()

    def _save_quietly(
        self,
        source: OutputSource,
        request: FileOutputRequest,
        metadata: ImageMetadata,
        warnings: list[str],
    ) -> SavedImage | None:
        """Persist, downgrading failures to a warning; the image itself was produced."""
        try:
            return self.file_manager.save(source, request, metadata)
        except ImageMcpError as e:
            logger.warning("Failed to save image to file: %s", e)
            warnings.append(f"Image could not be saved to a file: {e}")
            return None

    # -------------------------------------------------------------- generate

    def generate(self, args: GenerateImageArgs) -> ResponseEnvelope:
        """
        Generate an image, persist it, and build the response envelope.

        Raises:
            ConfigurationError, APIError, NetworkError, RequestTimeoutError
        """
        self._ensure_config()
        start = time.monotonic()
        width, height = aspect_ratio_to_size(args.aspect_ratio)
        output_format = args.output_format.value
        logger.info(
            "Generate started aspect_ratio=%s quality=%s format=%s",
            args.aspect_ratio.value,
            args.quality.value if args.quality else "default",
            output_format,
        )

        upstream = self.provider.generate(
            args.prompt,
            size_string((width, height)),
            args.quality.value if args.quality else None,
            output_format,
            self.config.request_timeout,
            self.config,
        )

        warnings: list[str] = []
        saved: SavedImage | None = None
        raw_length = 0
        try:
            source = _output_source(upstream, output_format)
        except ImageMcpError as e:
            logger.warning("Upstream image data could not be decoded: %s", e)
            warnings.append(f"Image data could not be decoded: {e}")
            source = None
        if source is not None:
            raw_length = len(source.data or b"")
            saved = self._save_quietly(
                source,
                args.file_request(),
                ImageMetadata(
                    prompt=args.prompt,
                    aspect_ratio=args.aspect_ratio.value,
                    quality=(args.quality or ImageQuality.MEDIUM).value,
                    format=output_format,
                ),
                warnings,
            )

        envelope = ResponseEnvelope(
            metadata=ResponseMetadata(
                width=width,
                height=height,
                format=saved.format if saved else output_format,
                size_bytes=saved.size_bytes if saved else raw_length,
                created_at=saved.saved_at if saved else _utc_iso(),
            ),
            file_path=saved.local_path if saved else None,
            image_url=upstream.url,
            warnings=warnings,
        )

        if args.include_inline_bytes:
            decision = self.governor.should_inline_bytes(envelope.metadata.size_bytes, True)
            if decision.warning:
                warnings.append(decision.warning)
            if decision.include:
                if upstream.b64_json:
                    envelope.inline_data = upstream.b64_json
                else:
                    warnings.append(
                        "Inline data requested but only a URL is available. Use file_path instead."
                    )

        logger.info(
            "Generate finished in %dms file=%s inline=%s",
            int((time.monotonic() - start) * 1000),
            envelope.file_path or "-",
            envelope.inline_data is not None,
        )
        return envelope

    # ------------------------------------------------------------------ edit

    def edit(self, args: EditImageArgs, strict_save: bool = False) -> EditResult:
        """
        Edit a source image.

        Inline-only upstream results are always persisted, since nothing else
        references them. Save failures become warnings unless strict_save is
        set (batch items use it so a lost file fails the item).

        Raises:
            InputLoadError family, ImageProcessingError, ConfigurationError,
            APIError, NetworkError, RequestTimeoutError
        """
        self._ensure_config()
        start = time.monotonic()
        ref = args.source_image.describe()
        logger.info("Edit started source=%s kind=%s", ref, args.edit_kind.value)

        raw = load_image_input(
            args.source_image,
            max_bytes=self.config.max_input_bytes,
            timeout=self.config.download_timeout,
        )
        png, width, height = prepare_for_upload(raw)
        aspect_ratio = aspect_ratio_for(width, height)
        output_format = args.output_format.value

        upstream = self.provider.edit(
            png,
            args.edit_prompt,
            size_string(aspect_ratio_to_size(aspect_ratio)),
            args.quality.value if args.quality else None,
            output_format,
            self.config.request_timeout,
            self.config,
        )
        edit_time_ms = int((time.monotonic() - start) * 1000)

        request = args.file_request()
        if not upstream.url:
            request = replace(request, save=True)
        metadata = ImageMetadata(
            prompt=args.edit_prompt,
            aspect_ratio=aspect_ratio.value,
            quality=(args.quality or ImageQuality.MEDIUM).value,
            format=output_format,
        )

        warnings: list[str] = []
        if strict_save:
            source = _output_source(upstream, output_format)
            saved = self.file_manager.save(source, request, metadata)
        else:
            try:
                source = _output_source(upstream, output_format)
            except ImageMcpError as e:
                logger.warning("Upstream image data could not be decoded: %s", e)
                warnings.append(f"Image data could not be decoded: {e}")
                saved = None
            else:
                saved = self._save_quietly(source, request, metadata, warnings)

        result = EditResult(
            original_ref=ref,
            original_width=width,
            original_height=height,
            original_prompt=args.edit_prompt,
            revised_prompt=upstream.revised_prompt or args.edit_prompt,
            edit_kind=args.edit_kind,
            strength=args.strength,
            composition_preserved=args.preserve_composition,
            edit_time_ms=edit_time_ms,
            model_used=upstream.model or self.config.image_model,
            image_url=upstream.url,
            saved_image=saved,
            warnings=warnings,
        )
        logger.info(
            "Edit finished in %dms source=%s file=%s",
            edit_time_ms,
            ref,
            saved.local_path if saved else "-",
        )
        return result

    # ------------------------------------------------------------ batch edit

    def batch_edit(self, args: BatchEditArgs) -> BatchResult:
        """
        Apply one edit to every image in args.images.

        Item failures are recorded in the result; only invalid batch settings
        raise (BatchProcessingError).
        """
        self._ensure_config()
        settings = args.batch_settings.to_settings()

        def edit_one(image: ImageInput, index: int) -> ItemOutput:
            prefix = (
                f"{args.filename_prefix}{index + 1}_"
                if args.filename_prefix
                else DEFAULT_BATCH_PREFIX
            )
            item_args = EditImageArgs(
                source_image=image,
                edit_prompt=args.edit_prompt,
                edit_kind=args.edit_kind,
                save=args.save,
                output_directory=args.output_directory,
                naming_strategy=args.naming_strategy,
                organize_by=args.organize_by,
                filename_prefix=prefix,
            )
            result = self.edit(item_args, strict_save=True)
            return ItemOutput(saved_image=result.saved_image, image_url=result.image_url)

        orchestrator: BatchOrchestrator[ImageInput] = BatchOrchestrator(
            edit_one, describe=ImageInput.describe
        )
        return orchestrator.run(args.images, settings, model_used=self.config.image_model)

    # --------------------------------------------------------------- cleanup

    def cleanup(self, directory: str | Path | None = None) -> list[Path]:
        """Remove saved images older than the retention window."""
        return self.file_manager.cleanup_old_files(directory)
