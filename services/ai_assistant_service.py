# services/ai_assistant_service.py
import base64
import logging
import json
from typing import Any, Dict, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

CHAT_TIMEOUT_SECONDS = 30
VISION_TIMEOUT_SECONDS = 60
CATEGORY_TIMEOUT_SECONDS = 10
CHAT_MAX_TOKENS = 512

SYSTEM_PROMPT_TEMPLATE = (
    "You are a helpful AI assistant integrated into a productivity bot called Life Desk. "
    "Keep responses concise, friendly, and helpful. "
    "If the user asks about productivity, notes, todos, or expenses, guide them to use the bot's features "
    "(/note, /todo, /expense, /summary, /reminders). "
    "When users give short casual responses, acknowledge them naturally without over-analyzing. "
    "The user's name is {first_name}."
)


def _post_json(endpoint: str, payload: Dict[str, Any], timeout: int) -> Optional[Dict[str, Any]]:
    """
    POSTs JSON to the AI service. Returns the decoded JSON object,
    or None on timeout, HTTP error, transport error or a non-JSON body.
    """
    response = None
    try:
        response = requests.post(endpoint, json=payload, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.Timeout:
        logger.error(f"Timeout calling AI service at {endpoint}")
        return None
    except requests.exceptions.HTTPError as http_err:
        logger.error(f"HTTP error calling AI service at {endpoint}: {http_err}. Response: {response.text if response is not None else 'N/A'}")
        return None
    except requests.exceptions.RequestException as req_err:
        logger.error(f"Request exception calling AI service at {endpoint}: {req_err}")
        return None
    except (json.JSONDecodeError, ValueError) as json_err:
        logger.error(f"Error decoding JSON response from AI service: {json_err}. Response text: {response.text if response is not None else 'N/A'}")
        return None

    if not isinstance(data, dict):
        logger.warning(f"AI service at {endpoint} returned a non-object payload: {data!r}")
        return None
    return data


def get_ai_chat_reply(message_text: str, first_name: str, ai_service_url: str) -> Optional[str]:
    """Free-form assistant reply for a message sent outside any input mode."""
    if not message_text or not message_text.strip():
        return None

    endpoint = f"{ai_service_url.rstrip('/')}/chat"
    payload = {
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT_TEMPLATE.format(first_name=first_name or "there")},
            {"role": "user", "content": message_text},
        ],
        "max_tokens": CHAT_MAX_TOKENS,
    }
    logger.info(f"Calling AI chat at {endpoint} for message of length {len(message_text)}")
    data = _post_json(endpoint, payload, CHAT_TIMEOUT_SECONDS)
    if data is None:
        return None

    reply = data.get("response")
    if not isinstance(reply, str) or not reply.strip():
        logger.warning(f"AI chat response missing 'response'. Response: {data}")
        return None
    return reply.strip()


def describe_image(image_bytes: bytes, caption: Optional[str], ai_service_url: str) -> Optional[str]:
    endpoint = f"{ai_service_url.rstrip('/')}/describe_image"
    if caption:
        prompt = f'Analyze this image and also consider this caption: "{caption}". Provide a detailed description of what you see.'
    else:
        prompt = "Analyze this image and provide a detailed description of what you see."
    payload = {
        "image": base64.b64encode(image_bytes).decode("ascii"),
        "prompt": prompt,
        "max_tokens": CHAT_MAX_TOKENS,
    }
    logger.info(f"Calling AI image description at {endpoint} ({len(image_bytes)} bytes)")
    data = _post_json(endpoint, payload, VISION_TIMEOUT_SECONDS)
    if data is None:
        return None

    description = data.get("description")
    if not isinstance(description, str) or not description.strip():
        logger.warning(f"AI image response missing 'description'. Response: {data}")
        return None
    return description.strip()


def get_ai_category_prediction(text_to_predict: str, ai_service_url: str) -> Tuple[Optional[str], Optional[float]]:
    """
    Predicts an expense category for a description.
    Returns (predicted_category, confidence), or (None, None) if the service fails.
    """
    if not text_to_predict or not text_to_predict.strip():
        return None, 0.0

    endpoint = f"{ai_service_url.rstrip('/')}/predict_category"
    data = _post_json(endpoint, {"text": text_to_predict}, CATEGORY_TIMEOUT_SECONDS)
    if data is None:
        return None, None

    predicted_category = data.get("predicted_category")
    confidence = data.get("confidence")
    if not isinstance(predicted_category, str) or not isinstance(confidence, (float, int)):
        logger.warning(f"AI service returned an unusable category prediction: {data}")
        return None, None

    logger.info(f"AI Service Response: Category='{predicted_category}', Confidence={confidence}")
    return predicted_category, float(confidence)
