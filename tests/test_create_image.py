"""
Tests for the create_image tool handler
"""

import os
import re
from unittest.mock import AsyncMock

import pytest
from fastmcp.exceptions import ToolError
from mcp.shared.exceptions import McpError
from mcp.types import INVALID_PARAMS

from image_mcp.create_image import (
    EditOperation,
    GenerateOperation,
    create_image,
    plan_operation,
)
from image_mcp.errors import BackendError
from image_mcp.image_backend import ImageResult, OpenAIImageBackend
from image_mcp.schemas import ImageRequest

REFERENCE_PATHS = ["test-images/image1.png", "test-images/image2.jpg"]


class TestPlanOperation:

    def test_generate_keeps_requested_model(self):
        operation = plan_operation(ImageRequest(prompt="Blue square", model="dall-e-3", quality="high"))
        assert operation == GenerateOperation(model="dall-e-3", size="1024x1024", quality="high")
        assert operation.name == "generate"

    def test_reference_images_force_edit_model(self):
        operation = plan_operation(ImageRequest(
            prompt="Combine", model="dall-e-2", referenceImagePaths=REFERENCE_PATHS
        ))
        assert isinstance(operation, EditOperation)
        assert operation.name == "edit"
        assert operation.model == "gpt-image-1"
        assert operation.reference_image_paths == tuple(REFERENCE_PATHS)

    def test_empty_reference_list_generates(self):
        operation = plan_operation(ImageRequest(prompt="Blue square", referenceImagePaths=[]))
        assert isinstance(operation, GenerateOperation)


class TestGenerate:

    @pytest.mark.asyncio
    async def test_end_to_end(self, tmp_path, fake_backend):
        result = await create_image({
            "prompt": "Blue square",
            "filename": "test-image.png",
            "outputPath": "test-output",
            "targetProjectDir": str(tmp_path)
        }, fake_backend)

        assert result == {
            "ok": True,
            "path": os.path.join("test-output", "test-image.png"),
            "bytes": 13,
            "model": "gpt-image-1",
            "prompt": "Blue square",
            "revised_prompt": "A revised blue square",
            "operation": "generate",
            "referenceImages": []
        }
        saved = tmp_path / "public" / "test-output" / "test-image.png"
        assert saved.read_bytes() == b"test-png-data"

        fake_backend.generate.assert_awaited_once_with(
            model="gpt-image-1",
            prompt="Blue square",
            size="1024x1024",
            quality="medium",
            background="opaque"
        )
        fake_backend.edit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_branding_reaches_backend(self, tmp_path, fake_backend):
        result = await create_image({
            "prompt": "Create a logo",
            "brandSignature": "palette:#0EA5E9",
            "styleDefinitionJSON": {"lighting": "soft"},
            "model": "dall-e-3",
            "targetProjectDir": str(tmp_path)
        }, fake_backend)

        sent_prompt = fake_backend.generate.await_args.kwargs["prompt"]
        assert sent_prompt == result["prompt"]
        assert sent_prompt.index("Create a logo") < sent_prompt.index("--- BRAND SIGNATURE ---")
        assert sent_prompt.index("--- BRAND SIGNATURE ---") < sent_prompt.index("--- STYLE DEFINITION (JSON) ---")
        assert result["model"] == "dall-e-3"

    @pytest.mark.asyncio
    async def test_defaults_to_working_directory(self, tmp_path, monkeypatch, fake_backend):
        monkeypatch.chdir(tmp_path)

        result = await create_image({"prompt": "Blue square"}, fake_backend)

        assert re.fullmatch(r"img_\d+\.png", result["path"])
        assert (tmp_path / "public" / result["path"]).read_bytes() == b"test-png-data"

    @pytest.mark.asyncio
    async def test_filename_sanitized(self, tmp_path, fake_backend):
        result = await create_image({
            "prompt": "Blue square",
            "filename": "../../evil<script>.png",
            "outputPath": "safe",
            "targetProjectDir": str(tmp_path)
        }, fake_backend)

        assert result["path"] == os.path.join("safe", "....evilscript.png")
        assert (tmp_path / "public" / "safe" / "....evilscript.png").exists()

    @pytest.mark.asyncio
    async def test_reports_progress_to_context(self, tmp_path, fake_backend):
        ctx = AsyncMock()

        await create_image({"prompt": "Blue square", "targetProjectDir": str(tmp_path)}, fake_backend, ctx)

        assert ctx.info.await_count == 2
        ctx.error.assert_not_awaited()


class TestEdit:

    @pytest.mark.asyncio
    async def test_reference_images_use_edit(self, project_dir, fake_backend):
        result = await create_image({
            "prompt": "Combine these images into a gift basket",
            "filename": "test-edit-image.png",
            "outputPath": "test-output",
            "model": "dall-e-3",
            "targetProjectDir": str(project_dir),
            "referenceImagePaths": REFERENCE_PATHS
        }, fake_backend)

        assert result["ok"] is True
        assert result["operation"] == "edit"
        assert result["model"] == "gpt-image-1"
        assert result["referenceImages"] == REFERENCE_PATHS
        assert result["path"] == os.path.join("test-output", "test-edit-image.png")
        assert result["bytes"] == len(b"test-edited-png-data")
        assert result["revised_prompt"] == "A revised combined image"

        fake_backend.generate.assert_not_awaited()
        fake_backend.edit.assert_awaited_once()
        kwargs = fake_backend.edit.await_args.kwargs
        assert [image.filename for image in kwargs["images"]] == ["image1.png", "image2.jpg"]
        assert [image.mime_type for image in kwargs["images"]] == ["image/png", "image/jpeg"]
        assert kwargs["background"] == "opaque"
        assert "Combine these images into a gift basket" in kwargs["prompt"]

    @pytest.mark.asyncio
    async def test_reference_load_failure(self, project_dir, fake_backend):
        with pytest.raises(ToolError) as exc_info:
            await create_image({
                "prompt": "Combine these images",
                "outputPath": "test-output",
                "targetProjectDir": str(project_dir),
                "referenceImagePaths": ["test-images/image1.png", "nonexistent-image.png"]
            }, fake_backend)

        assert "Failed to load reference image nonexistent-image.png" in str(exc_info.value)
        fake_backend.edit.assert_not_awaited()
        fake_backend.generate.assert_not_awaited()
        assert not (project_dir / "public" / "test-output").exists()


class TestFailures:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("arguments", [{"filename": "test-image.png"}, {"prompt": "ab"}])
    async def test_invalid_prompt_is_protocol_error(self, tmp_path, fake_backend, arguments):
        arguments = {**arguments, "targetProjectDir": str(tmp_path)}

        with pytest.raises(McpError) as exc_info:
            await create_image(arguments, fake_backend)

        error = exc_info.value.error
        assert error.code == INVALID_PARAMS
        assert error.message.startswith("Invalid input arguments: prompt: ")
        assert error.data[0]["path"] == "prompt"
        fake_backend.generate.assert_not_awaited()
        assert not (tmp_path / "public").exists()

    @pytest.mark.asyncio
    async def test_all_invalid_fields_listed(self, fake_backend):
        with pytest.raises(McpError) as exc_info:
            await create_image({"prompt": "A circle", "size": "invalid-size", "background": "auto"}, fake_backend)

        assert [item["path"] for item in exc_info.value.error.data] == ["size", "background"]

    @pytest.mark.asyncio
    async def test_backend_failure(self, tmp_path, fake_backend):
        fake_backend.generate.side_effect = BackendError("Rate limit exceeded")
        ctx = AsyncMock()

        with pytest.raises(ToolError, match="Failed to create image: Rate limit exceeded"):
            await create_image({"prompt": "Blue square", "targetProjectDir": str(tmp_path)}, fake_backend, ctx)

        ctx.error.assert_awaited_once()
        assert not (tmp_path / "public").exists()

    @pytest.mark.asyncio
    async def test_undecodable_payload(self, tmp_path, fake_backend):
        fake_backend.generate.return_value = ImageResult(b64_json="%%% not base64 %%%")

        with pytest.raises(ToolError, match="not valid base64"):
            await create_image({"prompt": "Blue square", "targetProjectDir": str(tmp_path)}, fake_backend)

        assert not (tmp_path / "public").exists()

    @pytest.mark.asyncio
    async def test_missing_credentials(self, tmp_path, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("AZURE_OPENAI_API_KEY", raising=False)

        with pytest.raises(ToolError, match="OPENAI_API_KEY"):
            await create_image(
                {"prompt": "Blue square", "targetProjectDir": str(tmp_path)},
                OpenAIImageBackend()
            )

    @pytest.mark.asyncio
    async def test_save_failure(self, tmp_path, fake_backend):
        (tmp_path / "public").write_text("not a directory")

        with pytest.raises(ToolError, match="Failed to save image"):
            await create_image({"prompt": "Blue square", "targetProjectDir": str(tmp_path)}, fake_backend)
