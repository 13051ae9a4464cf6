"""Exceptions raised while executing the create_image tool."""

from typing import Optional


class ImageToolError(Exception):
    """Base class for failures reported back to the caller as tool errors"""


class ConfigurationError(ImageToolError):
    """OpenAI credentials are missing"""


class ReferenceImageError(ImageToolError):
    """A reference image could not be read or decoded"""

    def __init__(self, path: str, reason: Optional[str] = None):
        self.path = path
        message = f"Failed to load reference image {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class BackendError(ImageToolError):
    """The image API call failed or returned no image data"""


class FileSaveError(ImageToolError):
    """The generated image could not be written to disk"""
