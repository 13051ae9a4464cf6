"""
Input schema for the create_image tool.

Validation never raises for bad input: callers get a ValidationResult that
either holds the typed request or every (field path, reason) pair pydantic
reported, in order.
"""

import os
from collections.abc import Mapping
from typing import Any, Dict, List, Literal, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

ImageSize = Literal["1024x1024", "1024x1536", "1536x1024"]
ImageQuality = Literal["low", "medium", "high", "auto"]
ImageBackground = Literal["transparent", "opaque"]
ImageModel = Literal["gpt-image-1", "dall-e-3", "dall-e-2"]

DEFAULT_MODEL = "gpt-image-1"
# Only gpt-image-1 accepts multiple input images on the edit endpoint
EDIT_MODEL = "gpt-image-1"


class ImageRequest(BaseModel):
    """Validated create_image arguments with defaults applied"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    prompt: str = Field(
        ..., min_length=3,
        description="Detailed text description of the desired image."
    )
    brand_signature: Optional[str] = Field(
        None, alias="brandSignature",
        description="Optional branding guidelines (e.g., 'palette:#...; font:...')."
    )
    style_definition: Optional[Dict[str, Any]] = Field(
        None, alias="styleDefinitionJSON",
        description="Optional structured style definition, appended to the prompt as formatted JSON."
    )
    size: ImageSize = Field(
        "1024x1024",
        description="Image dimensions (default: 1024x1024)."
    )
    quality: ImageQuality = Field(
        "medium",
        description="Image quality (default: medium). 'auto' lets the model choose."
    )
    background: ImageBackground = Field(
        "opaque",
        description="Background type (default: opaque). 'transparent' requires PNG/WEBP output."
    )
    model: ImageModel = Field(
        DEFAULT_MODEL,
        description="OpenAI model to use (default: gpt-image-1). Edits always use gpt-image-1."
    )
    filename: Optional[str] = Field(
        None,
        description="Suggested filename for the saved image (e.g., 'logo.png'). Include extension."
    )
    output_path: str = Field(
        "", alias="outputPath",
        description="Subdirectory within the target project's public folder to save the image (e.g., 'icons')."
    )
    target_project_dir: Optional[str] = Field(
        None, alias="targetProjectDir",
        description="Absolute path to the target project directory where the image should be saved."
    )
    reference_image_paths: Optional[List[str]] = Field(
        None, alias="referenceImagePaths",
        description="Optional image paths (relative to the target project's public folder) to edit or combine."
    )

    @field_validator("target_project_dir")
    @classmethod
    def _require_absolute(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not os.path.isabs(value):
            raise ValueError("must be an absolute path")
        return value

    @property
    def has_reference_images(self) -> bool:
        return bool(self.reference_image_paths)

    def to_arguments(self) -> Dict[str, Any]:
        """Dump back to wire-format tool arguments"""
        return self.model_dump(by_alias=True, exclude_none=True)


class FieldError(NamedTuple):
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


class ValidationResult(NamedTuple):
    request: Optional[ImageRequest]
    errors: List[FieldError]

    @property
    def ok(self) -> bool:
        return self.request is not None and not self.errors


def validate_image_request(arguments: Any) -> ValidationResult:
    """Validate raw tool arguments into an ImageRequest"""
    if arguments is None:
        arguments = {}
    if isinstance(arguments, ImageRequest):
        return ValidationResult(arguments, [])
    if not isinstance(arguments, Mapping):
        return ValidationResult(None, [FieldError("", "Tool arguments must be an object")])

    try:
        request = ImageRequest.model_validate(dict(arguments))
    except ValidationError as e:
        errors = [
            FieldError(".".join(str(part) for part in err["loc"]), err["msg"])
            for err in e.errors()
        ]
        return ValidationResult(None, errors)
    return ValidationResult(request, [])


def image_request_json_schema() -> Dict[str, Any]:
    """JSON schema advertised as the tool's inputSchema"""
    return ImageRequest.model_json_schema(by_alias=True)
