"""
create_image tool handler.

Steps run strictly in order: validate the arguments, build the final prompt,
call the image API (generate, or edit when reference images are given), save
the decoded image under <project>/public/<outputPath>/ and describe the result.

Invalid arguments raise an McpError with INVALID_PARAMS so they surface as a
protocol error. Every later failure is raised as a ToolError, which the MCP
layer returns as a tool result with isError set.
"""

import base64
import binascii
import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional, Protocol, Sequence, Tuple, Union

from fastmcp import Context
from fastmcp.exceptions import ToolError
from mcp.shared.exceptions import McpError
from mcp.types import INVALID_PARAMS, ErrorData

from .errors import BackendError
from .file_saver import save_image
from .image_backend import ImageResult, ReferenceImage
from .prompt_builder import build_prompt
from .reference_images import load_reference_images
from .schemas import EDIT_MODEL, FieldError, ImageRequest, validate_image_request

logger = logging.getLogger(__name__)


class ImageBackend(Protocol):
    async def generate(
        self, *, model: str, prompt: str, size: str, quality: str, background: str
    ) -> ImageResult: ...

    async def edit(
        self, *, prompt: str, images: Sequence[ReferenceImage], background: str
    ) -> ImageResult: ...


@dataclass(frozen=True)
class GenerateOperation:
    name: ClassVar[str] = "generate"

    model: str
    size: str
    quality: str


@dataclass(frozen=True)
class EditOperation:
    name: ClassVar[str] = "edit"
    model: ClassVar[str] = EDIT_MODEL

    reference_image_paths: Tuple[str, ...]


ImageOperation = Union[GenerateOperation, EditOperation]


def plan_operation(request: ImageRequest) -> ImageOperation:
    """Pick the API operation from the request shape"""
    if request.has_reference_images:
        if request.model != EDIT_MODEL:
            logger.info(f"Overriding model {request.model} with {EDIT_MODEL} for image edit operation")
        return EditOperation(reference_image_paths=tuple(request.reference_image_paths))
    return GenerateOperation(model=request.model, size=request.size, quality=request.quality)


def invalid_params_error(errors: Sequence[FieldError]) -> McpError:
    details = ", ".join(str(error) for error in errors)
    return McpError(ErrorData(
        code=INVALID_PARAMS,
        message=f"Invalid input arguments: {details}",
        data=[error._asdict() for error in errors]
    ))


def parse_arguments(arguments: Any) -> ImageRequest:
    """Validate tool arguments, raising an invalid-params McpError on failure"""
    result = validate_image_request(arguments)
    if not result.ok:
        logger.warning(f"Rejected create_image arguments: {[str(e) for e in result.errors]}")
        raise invalid_params_error(result.errors)
    return result.request


def default_filename() -> str:
    return f"img_{int(time.time() * 1000)}.png"


def format_result(result: Dict[str, Any]) -> str:
    return json.dumps(result, indent=2)


async def create_image(
    arguments: Any,
    backend: ImageBackend,
    ctx: Optional[Context] = None
) -> Dict[str, Any]:
    """Run the create_image tool and return the result descriptor"""
    request = parse_arguments(arguments)

    try:
        return await _execute(request, backend, ctx)
    except Exception as e:
        error_msg = f"Failed to create image: {e}"
        logger.error(error_msg)
        if ctx:
            await ctx.error(error_msg)
        raise ToolError(error_msg) from e


async def _execute(
    request: ImageRequest,
    backend: ImageBackend,
    ctx: Optional[Context]
) -> Dict[str, Any]:
    final_prompt = build_prompt(request.prompt, request.brand_signature, request.style_definition)
    logger.debug(f"Final prompt being sent to OpenAI:\n{final_prompt}")

    base_dir = Path(request.target_project_dir) if request.target_project_dir else Path.cwd()
    public_dir = (base_dir / "public").resolve()
    operation = plan_operation(request)

    if isinstance(operation, EditOperation):
        images = await load_reference_images(operation.reference_image_paths, public_dir)
        if ctx:
            await ctx.info(f"Editing {len(images)} reference image(s) with {operation.model}")
        result = await backend.edit(
            prompt=final_prompt,
            images=images,
            background=request.background
        )
    else:
        if ctx:
            await ctx.info(f"Generating image with {operation.model}: {request.prompt[:100]}")
        result = await backend.generate(
            model=operation.model,
            prompt=final_prompt,
            size=operation.size,
            quality=operation.quality,
            background=request.background
        )

    try:
        image_bytes = base64.b64decode(result.b64_json, validate=True)
    except (binascii.Error, ValueError) as e:
        raise BackendError(f"Image data in OpenAI API response is not valid base64: {e}") from e

    save_dir = (public_dir / request.output_path).resolve()
    saved_path = await save_image(image_bytes, request.filename or default_filename(), save_dir)
    if ctx:
        await ctx.info(f"Image saved to: {saved_path}")

    return {
        "ok": True,
        "path": os.path.relpath(saved_path, public_dir),
        "bytes": len(image_bytes),
        "model": operation.model,
        "prompt": final_prompt,
        "revised_prompt": result.revised_prompt,
        "operation": operation.name,
        "referenceImages": list(request.reference_image_paths or [])
    }
