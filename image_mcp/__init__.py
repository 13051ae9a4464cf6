"""OpenAI image generation as an MCP tool"""

__version__ = "1.0.0"
