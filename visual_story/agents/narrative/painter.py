import base64
from typing import Tuple

import requests

from visual_story.core.config import settings
from visual_story.core.logger import get_logger, log_agent_action

logger = get_logger("agent.painter")

API_URL = "https://modelslab.com/api/v7/images/text-to-image"

# One image at 16:9
IMAGE_WIDTH = 1024
IMAGE_HEIGHT = 576

DEFAULT_MIME_TYPE = "image/png"

PLACEHOLDER_SVG = f"""<svg xmlns="http://www.w3.org/2000/svg" width="{IMAGE_WIDTH}" height="{IMAGE_HEIGHT}" viewBox="0 0 {IMAGE_WIDTH} {IMAGE_HEIGHT}" style="background-color:#e2e8f0;">
  <text x="50%" y="50%" dominant-baseline="middle" text-anchor="middle" font-family="sans-serif" font-size="48px" fill="#64748b">
    Image Generation Failed
  </text>
  <text x="50%" y="55%" dy="1.2em" dominant-baseline="middle" text-anchor="middle" font-family="sans-serif" font-size="24px" fill="#94a3b8">
    Displaying a placeholder
  </text>
</svg>"""


def to_data_uri(payload: bytes, mime_type: str = DEFAULT_MIME_TYPE) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(payload).decode('ascii')}"


def image_mime_type(headers) -> str:
    """Image type announced by the download, ignoring parameters like charset."""
    content_type = (headers or {}).get("Content-Type") or ""
    mime_type = content_type.split(";")[0].strip().lower()
    if mime_type.startswith("image/"):
        return mime_type
    return DEFAULT_MIME_TYPE


def placeholder_image() -> str:
    """Deterministic SVG shown when no image could be generated."""
    return to_data_uri(PLACEHOLDER_SVG.encode("utf-8"), "image/svg+xml")


def request_image(prompt: str) -> Tuple[bytes, str]:
    """
    Asks the image service for exactly one image and returns its bytes and
    MIME type, or (b"", DEFAULT_MIME_TYPE) when the service produced nothing.
    """
    payload = {
        "prompt": prompt,
        "model_id": settings.IMAGE_MODEL,
        "key": settings.STABLE_DIFFUSION_API_KEY,
        "width": IMAGE_WIDTH,
        "height": IMAGE_HEIGHT,
        "samples": 1
    }

    resp = requests.post(API_URL, json=payload, timeout=60)
    resp.raise_for_status()
    data = resp.json()

    image_url = None
    if "output" in data and data["output"]:
        image_url = data["output"][0]

    if not image_url:
        return b"", DEFAULT_MIME_TYPE

    img_resp = requests.get(image_url, timeout=60)
    img_resp.raise_for_status()
    return img_resp.content, image_mime_type(img_resp.headers)


def generate_image(prompt: str) -> str:
    """
    Generates the story illustration and returns it as a data URI.
    A missing image is replaced by the placeholder.

    Raises:
        RuntimeError: If the image service itself fails.
    """
    if not settings.STABLE_DIFFUSION_API_KEY:
        logger.warning("No Stable Diffusion API Key. Using placeholder image.")
        return placeholder_image()

    try:
        image_bytes, mime_type = request_image(prompt)
    except Exception as e:
        log_agent_action("painter", "generate_image", str(e), success=False)
        raise RuntimeError(f"Failed to generate visual story. Image API Error: {str(e)}")

    if not image_bytes:
        log_agent_action("painter", "generate_image", "no image returned, using placeholder", success=False)
        return placeholder_image()

    log_agent_action("painter", "generate_image", f"{len(image_bytes)} bytes, {mime_type}")
    return to_data_uri(image_bytes, mime_type)
