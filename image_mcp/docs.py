"""
Documentation served as MCP resources.

Each document is looked up through an ordered list of strategies; the first
one that finds a readable file wins and the embedded text is the last resort.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent

EMBEDDED_PROMPT_RECIPES = """# Prompt Recipes for Image Generation

This is embedded documentation for the image MCP server. The prompt-recipes.md
file could not be found, so this shorter version is served instead.

## Basic Prompt Structure

A good prompt should include:
1. Subject description (what/who)
2. Style details (photorealistic, cartoon, etc.)
3. Lighting and mood
4. Technical specifications (if needed)

## Examples

### Icon Design
"A minimalist cloud icon with subtle gradient, clean lines, professional tech style, light blue color scheme"

### Photorealistic Portrait
"Professional headshot of a middle-aged business executive, neutral expression, studio lighting, high-end DSLR quality, shallow depth of field"

### Background/Hero Image
"Abstract technology background with blue and purple gradient, subtle digital patterns, modern and clean design, suitable for header/hero section"

### Product Visualization
"3D render of a sleek smartphone on a minimalist surface, dramatic lighting from top-right, professional product photography style"
"""

EMBEDDED_README = """# Image MCP Server

This MCP server provides image generation capabilities using OpenAI's API.

## Usage

The server provides the `create_image` tool for generating images from text prompts.

Key parameters:
- prompt: Text description of the desired image
- model: OpenAI model to use (gpt-image-1, dall-e-3, dall-e-2)
- size: Image dimensions (1024x1024, 1024x1536, 1536x1024)
- quality: Image quality (low, medium, high, auto)
- background: Type of background (transparent, opaque)
- referenceImagePaths: Images under the project's public folder to edit or combine
"""

Strategy = Callable[[str], Optional[Path]]


def _existing(path: Path) -> Optional[Path]:
    return path if path.is_file() else None


def from_env_dir(relative_path: str) -> Optional[Path]:
    docs_dir = os.getenv("IMAGE_MCP_DOCS_DIR")
    if not docs_dir:
        return None
    return _existing(Path(docs_dir) / relative_path)


def from_working_dir(relative_path: str) -> Optional[Path]:
    return _existing(Path.cwd() / relative_path)


def from_package_dir(relative_path: str) -> Optional[Path]:
    return _existing(PACKAGE_DIR / relative_path)


def from_source_checkout(relative_path: str) -> Optional[Path]:
    return _existing(PACKAGE_DIR.parent / relative_path)


DEFAULT_STRATEGIES: List[Strategy] = [
    from_env_dir,
    from_working_dir,
    from_package_dir,
    from_source_checkout
]


@dataclass(frozen=True)
class DocResource:
    uri: str
    name: str
    relative_path: str
    fallback: str
    mime_type: str = "text/markdown"


PROMPT_RECIPES = DocResource(
    uri="docs://prompt-recipes",
    name="Prompt Recipes for Image Generation",
    relative_path="docs/prompt-recipes.md",
    fallback=EMBEDDED_PROMPT_RECIPES
)
README = DocResource(
    uri="docs://readme",
    name="Image MCP Server Documentation",
    relative_path="README.md",
    fallback=EMBEDDED_README
)
DOC_RESOURCES = [PROMPT_RECIPES, README]


def load_doc(doc: DocResource, strategies: Optional[List[Strategy]] = None) -> str:
    """Return the document text from the first strategy that finds it, else the embedded copy"""
    for strategy in strategies if strategies is not None else DEFAULT_STRATEGIES:
        path = strategy(doc.relative_path)
        if path is None:
            continue
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not read {path}: {e}")
            continue
        logger.debug(f"Serving {doc.uri} from {path}")
        return content

    logger.warning(f"Could not find {doc.relative_path}, serving embedded copy")
    return doc.fallback
