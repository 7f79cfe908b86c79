# services/image_generation_service.py
import base64
import binascii
import logging

import requests

logger = logging.getLogger(__name__)

FREEPIK_API_URL = "https://api.freepik.com/v1/ai/text-to-image"
IMAGE_TIMEOUT_SECONDS = 180

DEFAULT_STYLING = {
    "style": "photo",
    "color": "pastel",
    "lightning": "cinematic",
    "framing": "aerial-view",
}
DEFAULT_IMAGE_SIZE = "social_story_9_16"


class ImageGenerationError(Exception):
    def __init__(self, message: str, timed_out: bool = False):
        super().__init__(message)
        self.timed_out = timed_out


def generate_image(prompt: str, api_key: str, timeout: int = IMAGE_TIMEOUT_SECONDS) -> bytes:
    """
    Generates an image for prompt with the Freepik text-to-image API.
    Returns the decoded image bytes; raises ImageGenerationError on any failure.
    """
    if not api_key:
        raise ImageGenerationError("Image generation API key is not configured")
    if not prompt or not prompt.strip():
        raise ImageGenerationError("Empty image prompt")

    request_body = {
        "prompt": prompt.strip(),
        "styling": DEFAULT_STYLING,
        "image": {"size": DEFAULT_IMAGE_SIZE},
    }
    headers = {"Content-Type": "application/json", "x-freepik-api-key": api_key}

    logger.info(f"Requesting image generation for prompt: '{prompt}'")
    try:
        response = requests.post(FREEPIK_API_URL, json=request_body, headers=headers, timeout=timeout)
    except requests.exceptions.Timeout as e:
        logger.error(f"Image generation timed out after {timeout}s")
        raise ImageGenerationError("Image generation timed out", timed_out=True) from e
    except requests.exceptions.RequestException as e:
        logger.error(f"Request exception calling image API: {e}")
        raise ImageGenerationError(f"Image API request failed: {e}") from e

    logger.info(f"Image API response status: {response.status_code}")
    try:
        data = response.json()
    except ValueError as e:
        logger.error(f"Image API returned non-JSON body: {response.text[:1000]}")
        raise ImageGenerationError("Invalid API response format") from e

    images = data.get("data") if isinstance(data, dict) else None
    if not response.ok or not images:
        message = data.get("message") if isinstance(data, dict) else None
        logger.error(f"Image API error response: status={response.status_code}, body={str(data)[:500]}")
        raise ImageGenerationError(message or "Image generation failed")

    base64_image = images[0].get("base64") if isinstance(images[0], dict) else None
    if not base64_image:
        raise ImageGenerationError("No image data in response")

    try:
        image_bytes = base64.b64decode(base64_image, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageGenerationError("Failed to decode base64 image data") from e

    logger.info(f"Received generated image, {len(image_bytes)} bytes")
    return image_bytes
