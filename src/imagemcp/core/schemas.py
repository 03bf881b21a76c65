"""
Argument models for the generate, edit and batch-edit operations.

Arguments arrive from the tool surface or the CLI as plain values. These
pydantic models normalize legacy spellings (``prompt`` naming, ``1:1`` aspect
ratios, ``hd`` quality, snake_case edit kinds, ``base64`` image kind), apply
defaults and turn failures into imagemcp ValidationError.
"""

from typing import Annotated, Any, TypeVar

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from imagemcp.core.batch import BatchSettings
from imagemcp.core.types import (
    AspectRatio,
    EditKind,
    ErrorHandling,
    FileOutputRequest,
    ImageInput,
    ImageInputKind,
    ImageQuality,
    NamingStrategy,
    OrganizeBy,
    OutputFormat,
)
from imagemcp.core.validation import validate_english_only
from imagemcp.utils.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

ASPECT_RATIO_ALIASES = {"1:1": "square", "16:9": "landscape", "9:16": "portrait"}
QUALITY_ALIASES = {"standard": "medium", "hd": "high"}
NAMING_ALIASES = {"prompt": "content"}
ORGANIZE_ALIASES = {"aspect_ratio": "dimension-ratio", "dimension_ratio": "dimension-ratio"}
EDIT_KIND_ALIASES = {
    "style_transfer": "styleTransfer",
    "object_removal": "objectRemoval",
    "background_change": "backgroundChange",
    # Batch kinds without a dedicated edit mode
    "color_adjustment": "variation",
    "enhancement": "variation",
}
ERROR_HANDLING_ALIASES = {
    "fail_fast": "failFast",
    "continue_on_error": "continueOnError",
    "retry_failed": "retryFailed",
}
IMAGE_KIND_ALIASES = {"base64": "inline"}


def _aliased(aliases: dict[str, str]):
    def normalize(value: Any) -> Any:
        if isinstance(value, str):
            key = value.strip()
            return aliases.get(key.lower(), aliases.get(key, key))
        return value

    return normalize


def _coerce_image_input(value: Any) -> Any:
    """Accept an ImageInput, a bare string, or a {type|kind, value} mapping."""
    if isinstance(value, ImageInput):
        return value
    if isinstance(value, str):
        if not value.strip():
            raise ValueError("image reference cannot be empty")
        return ImageInput.from_value(value)
    if isinstance(value, dict):
        kind = value.get("kind", value.get("type"))
        raw = value.get("value")
        if not isinstance(kind, str) or not isinstance(raw, str) or not raw:
            raise ValueError(
                "image must have a 'type' (url, inline, local) and a non-empty 'value'"
            )
        kind = IMAGE_KIND_ALIASES.get(kind.lower(), kind.lower())
        try:
            return ImageInput(ImageInputKind(kind), raw)
        except ValueError as e:
            raise ValueError(f"unknown image type {kind!r}; use url, inline or local") from e
    raise ValueError("image must be a string or an object with 'type' and 'value'")


ImageInputArg = Annotated[ImageInput, BeforeValidator(_coerce_image_input)]
AspectRatioArg = Annotated[AspectRatio, BeforeValidator(_aliased(ASPECT_RATIO_ALIASES))]
QualityArg = Annotated[ImageQuality, BeforeValidator(_aliased(QUALITY_ALIASES))]
NamingArg = Annotated[NamingStrategy, BeforeValidator(_aliased(NAMING_ALIASES))]
OrganizeArg = Annotated[OrganizeBy, BeforeValidator(_aliased(ORGANIZE_ALIASES))]
EditKindArg = Annotated[EditKind, BeforeValidator(_aliased(EDIT_KIND_ALIASES))]
ErrorHandlingArg = Annotated[ErrorHandling, BeforeValidator(_aliased(ERROR_HANDLING_ALIASES))]
FormatArg = Annotated[OutputFormat, BeforeValidator(_aliased({"jpg": "jpeg"}))]


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class _FileOutputArgs(BaseModel):
    """Fields shared by every operation that saves images."""

    model_config = ConfigDict(
        populate_by_name=True, extra="forbid", arbitrary_types_allowed=True
    )

    save: bool = Field(True, validation_alias=_alias("save", "save_to_file", "saveToFile"))
    output_directory: str | None = Field(
        None, validation_alias=_alias("output_directory", "outputDirectory")
    )
    naming_strategy: NamingArg = Field(
        NamingStrategy.TIMESTAMP, validation_alias=_alias("naming_strategy", "namingStrategy")
    )
    organize_by: OrganizeArg = Field(
        OrganizeBy.NONE, validation_alias=_alias("organize_by", "organizeBy")
    )


class GenerateImageArgs(_FileOutputArgs):
    prompt: str
    aspect_ratio: AspectRatioArg = Field(
        AspectRatio.SQUARE, validation_alias=_alias("aspect_ratio", "aspectRatio")
    )
    quality: QualityArg | None = None
    output_format: FormatArg = Field(
        OutputFormat.PNG, validation_alias=_alias("output_format", "outputFormat")
    )
    include_inline_bytes: bool = Field(
        False,
        validation_alias=_alias("include_inline_bytes", "includeInlineBytes", "include_base64"),
    )
    filename: str | None = None

    @field_validator("prompt")
    @classmethod
    def _english_prompt(cls, value: str) -> str:
        return validate_english_only(value, "prompt")

    def file_request(self) -> FileOutputRequest:
        return FileOutputRequest(
            save=self.save,
            output_directory=self.output_directory,
            filename=self.filename,
            naming_strategy=self.naming_strategy,
            organize_by=self.organize_by,
        )


class EditImageArgs(_FileOutputArgs):
    source_image: ImageInputArg = Field(
        ..., validation_alias=_alias("source_image", "sourceImage", "image")
    )
    edit_prompt: str = Field(..., validation_alias=_alias("edit_prompt", "editPrompt", "prompt"))
    edit_kind: EditKindArg = Field(
        EditKind.VARIATION, validation_alias=_alias("edit_kind", "editKind", "edit_type")
    )
    strength: float = Field(0.8, ge=0.0, le=1.0)
    preserve_composition: bool = Field(
        True, validation_alias=_alias("preserve_composition", "preserveComposition")
    )
    quality: QualityArg | None = None
    output_format: FormatArg = Field(
        OutputFormat.PNG, validation_alias=_alias("output_format", "outputFormat")
    )
    filename_prefix: str = Field(
        "edited_", validation_alias=_alias("filename_prefix", "filenamePrefix")
    )

    @field_validator("edit_prompt")
    @classmethod
    def _english_prompt(cls, value: str) -> str:
        return validate_english_only(value, "edit_prompt")

    def file_request(self) -> FileOutputRequest:
        return FileOutputRequest(
            save=self.save,
            output_directory=self.output_directory,
            naming_strategy=self.naming_strategy,
            organize_by=self.organize_by,
            filename_prefix=self.filename_prefix,
        )


class BatchSettingsArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    parallel: bool = Field(True, validation_alias=_alias("parallel", "parallel_processing"))
    # Range is enforced by BatchSettings.validate so it fails as a batch error
    max_concurrent: int = Field(3, validation_alias=_alias("max_concurrent", "maxConcurrent"))
    error_handling: ErrorHandlingArg = Field(
        ErrorHandling.CONTINUE_ON_ERROR,
        validation_alias=_alias("error_handling", "errorHandling"),
    )

    def to_settings(self) -> BatchSettings:
        return BatchSettings(
            parallel=self.parallel,
            max_concurrent=self.max_concurrent,
            error_handling=self.error_handling,
        )


class BatchEditArgs(_FileOutputArgs):
    images: list[ImageInputArg] = Field(
        ..., min_length=1, validation_alias=_alias("images", "image_urls")
    )
    edit_prompt: str = Field(..., validation_alias=_alias("edit_prompt", "editPrompt", "prompt"))
    edit_kind: EditKindArg = Field(
        EditKind.VARIATION, validation_alias=_alias("edit_kind", "editKind", "edit_type")
    )
    batch_settings: BatchSettingsArgs = Field(
        default_factory=BatchSettingsArgs,
        validation_alias=_alias("batch_settings", "batchSettings"),
    )
    filename_prefix: str = Field(
        "batch_", validation_alias=_alias("filename_prefix", "filenamePrefix")
    )

    @field_validator("edit_prompt")
    @classmethod
    def _english_prompt(cls, value: str) -> str:
        return validate_english_only(value, "edit_prompt")

    @field_validator("batch_settings", mode="before")
    @classmethod
    def _default_settings(cls, value: Any) -> Any:
        return {} if value is None else value


def parse_args(model: type[ModelT], data: dict[str, Any]) -> ModelT:
    """
    Validate raw arguments against model.

    None values are dropped so defaults apply to omitted optional arguments.

    Raises:
        ValidationError: First failing field, with its message. English-only
            failures propagate from the field validators with their
            EMPTY_TEXT / NON_ENGLISH_TEXT code.
    """
    cleaned = {k: v for k, v in data.items() if v is not None}
    try:
        return model.model_validate(cleaned)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "invalid value")
        raise ValidationError(
            f"Invalid value for {field or 'arguments'}: {message}", field=field
        ) from e
