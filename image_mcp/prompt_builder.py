import json
import logging
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

BRAND_SIGNATURE_HEADER = "--- BRAND SIGNATURE ---"
STYLE_DEFINITION_HEADER = "--- STYLE DEFINITION (JSON) ---"


def build_prompt(
    prompt: str,
    brand_signature: Optional[str] = None,
    style_definition: Optional[Mapping[str, Any]] = None
) -> str:
    """
    Build the final prompt sent to the image API.

    The user prompt always comes first, followed by the brand signature block
    and then the style definition rendered as indented JSON. Blank brand
    signatures and empty style mappings are omitted.
    """
    final_prompt = prompt

    if brand_signature and brand_signature.strip():
        final_prompt = f"{final_prompt}\n\n{BRAND_SIGNATURE_HEADER}\n{brand_signature}"
        logger.debug(f"Added brand signature ({len(brand_signature)} chars)")

    if style_definition:
        style_json = json.dumps(style_definition, indent=2, ensure_ascii=False)
        final_prompt = f"{final_prompt}\n\n{STYLE_DEFINITION_HEADER}\n{style_json}"
        logger.debug(f"Added style definition JSON ({len(style_json)} chars)")

    logger.debug(f"Final prompt length: {len(final_prompt)} chars")
    return final_prompt
