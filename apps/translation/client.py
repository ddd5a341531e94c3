"""
Client for a LibreTranslate-compatible translation API.

Request:  {"q", "source", "target", "format": "text", "api_key"?}
Response: {"translatedText": "..."}
"""
import logging
from typing import Optional

import httpx
from django.conf import settings

logger = logging.getLogger(__name__)

AUTO_SOURCE = 'auto'


class TranslationError(Exception):
    """Raised when the translation provider fails or returns no text."""
    pass


def translate_text(text: str, target: str, source: Optional[str] = None) -> str:
    """
    Translate text into the target language.

    Blank text, and text whose given source language is already the
    target, are returned unchanged without calling the provider.

    Raises:
        TranslationError: If the provider call fails
    """
    source = (source or AUTO_SOURCE).lower()
    target = target.lower()

    if not text.strip() or source == target:
        return text

    payload = {
        'q': text,
        'source': source,
        'target': target,
        'format': 'text',
    }
    if settings.TRANSLATION_API_KEY:
        payload['api_key'] = settings.TRANSLATION_API_KEY

    try:
        with httpx.Client(timeout=float(settings.TRANSLATION_TIMEOUT)) as client:
            response = client.post(settings.TRANSLATION_API_URL, json=payload)
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPStatusError as e:
        logger.error(f"Translation API returned {e.response.status_code}: {e.response.text[:200]}")
        raise TranslationError(f"Translation service error: {e.response.status_code}")
    except httpx.RequestError as e:
        logger.error(f"Translation API connection error: {e}")
        raise TranslationError("Could not connect to translation service")
    except ValueError:
        raise TranslationError("Translation service returned invalid JSON")

    translated = data.get('translatedText') if isinstance(data, dict) else None
    if not isinstance(translated, str):
        raise TranslationError("Translation service returned no text")

    logger.debug(f"Translated {len(text)} characters {source} -> {target}")
    return translated
