#!/usr/bin/env python3
"""
Image MCP Server - OpenAI image generation exposed as the create_image tool
"""

import argparse
import logging
import os
import sys
import time
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP
from fastmcp.server.dependencies import get_context
from fastmcp.tools import Tool
from fastmcp.tools.tool import ToolResult
from mcp import types
from pydantic import Field
from starlette.requests import Request
from starlette.responses import JSONResponse

from . import __version__
from .create_image import create_image, format_result, parse_arguments
from .docs import PROMPT_RECIPES, README, load_doc
from .image_backend import OpenAIImageBackend
from .schemas import image_request_json_schema

logger = logging.getLogger(__name__)

SERVER_NAME = "Image MCP Server"
TOOL_NAME = "create_image"
TOOL_DESCRIPTION = (
    "Generates an image using OpenAI (gpt-image-1 / DALL-E) based on a detailed text prompt. "
    "For best results, provide vivid descriptions incorporating style, composition, lighting, and mood. "
    "Can also edit or combine existing images by providing referenceImagePaths. "
    "Refer to the 'docs://prompt-recipes' resource for examples, templates, and tips for various image "
    "types (hero backgrounds, icons, illustrations, photos). Key parameters include 'prompt', "
    "'brandSignature' (use project palette), 'styleDefinitionJSON', 'size' (e.g., 1024x1024, 1536x1024), "
    "'quality', 'model', 'filename', 'outputPath', 'targetProjectDir', and 'referenceImagePaths' "
    "(for editing/combining images). Images are saved under <targetProjectDir>/public/<outputPath>/."
)


def configure_logging(transport: str, level: str = "INFO") -> None:
    """Configure root logging; in stdio mode log to stderr so stdout only carries JSON-RPC"""
    if transport == "stdio":
        logging.basicConfig(
            level=level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            stream=sys.stderr
        )
    else:
        logging.basicConfig(
            level=level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )


class CreateImageTool(Tool):
    """The create_image tool, advertising the ImageRequest JSON schema"""

    backend: Any = Field(default=None, exclude=True)

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        try:
            ctx = get_context()
        except RuntimeError:
            ctx = None
        result = await create_image(arguments, self.backend, ctx)
        return ToolResult(content=format_result(result))


def install_invalid_params_gate(server: FastMCP) -> None:
    """Reject invalid create_image arguments as a JSON-RPC invalid-params error.

    FastMCP turns every exception raised during a tool call into an isError
    result, so validation has to happen before the call reaches it. Valid
    arguments are forwarded with defaults applied and unknown fields dropped.
    """
    lowlevel = server._mcp_server
    call_tool = lowlevel.request_handlers[types.CallToolRequest]

    async def handler(req: types.CallToolRequest):
        if req.params.name == TOOL_NAME:
            request = parse_arguments(req.params.arguments)
            req.params.arguments = request.to_arguments()
        return await call_tool(req)

    lowlevel.request_handlers[types.CallToolRequest] = handler


def create_server(backend: Optional[OpenAIImageBackend] = None) -> FastMCP:
    """Build the MCP server around an image backend"""
    backend = backend or OpenAIImageBackend()
    server = FastMCP(SERVER_NAME)

    server.add_tool(CreateImageTool(
        name=TOOL_NAME,
        description=TOOL_DESCRIPTION,
        parameters=image_request_json_schema(),
        backend=backend
    ))
    install_invalid_params_gate(server)

    @server.resource(PROMPT_RECIPES.uri, name=PROMPT_RECIPES.name, mime_type=PROMPT_RECIPES.mime_type)
    def prompt_recipes() -> str:
        """Prompt examples and templates for common image types"""
        return load_doc(PROMPT_RECIPES)

    @server.resource(README.uri, name=README.name, mime_type=README.mime_type)
    def readme() -> str:
        """Server usage documentation"""
        return load_doc(README)

    @server.custom_route("/health", methods=["GET"])
    async def health_check(request: Request):
        """Health check endpoint for HTTP deployments"""
        return JSONResponse({
            "status": "healthy",
            "timestamp": time.time(),
            "server": SERVER_NAME,
            "version": __version__,
            "openai_configured": backend.is_configured
        })

    return server


mcp = create_server()


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description=SERVER_NAME)
    parser.add_argument("--transport", default="stdio", choices=["stdio", "http", "streamable-http"],
                        help="Transport method (default: stdio)")
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"),
                        help="Host to bind to (http mode only)")
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", 8080)),
                        help="Port to bind to (http mode only)")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO").upper(),
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level")
    args = parser.parse_args(argv)

    configure_logging(args.transport, args.log_level)
    load_dotenv()

    try:
        if args.transport == "stdio":
            logger.info(f"Starting {SERVER_NAME} on stdio")
            mcp.run(transport="stdio")
        else:
            logger.info(f"Starting {SERVER_NAME}: transport={args.transport} host={args.host} port={args.port}")
            mcp.run(transport=args.transport, host=args.host, port=args.port, path="/mcp")
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        return 0
    except Exception as e:
        logger.error(f"Fatal error running {SERVER_NAME}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
