# Overview: Text-to-image providers for the design studio, tried in configured order.

"""
Image Generation

Providers are plain functions `(prompt, seed, timeout) -> PNG bytes` keyed by
name in PROVIDERS. IMAGE_PROVIDERS sets the order. A provider whose API key
is not configured is skipped; a provider that fails is logged and the next
one is tried.

- stability:    Stability AI SDXL text-to-image (STABILITY_API_KEY)
- openai:       OpenAI Images API (OPENAI_API_KEY)
- pollinations: image.pollinations.ai (no key)
"""

from __future__ import annotations

import base64
import logging
import random
from urllib.parse import quote

import requests
from flask import current_app


logger = logging.getLogger(__name__)

STABILITY_URL = "https://api.stability.ai/v1/generation/stable-diffusion-xl-1024-v1-0/text-to-image"
OPENAI_URL = "https://api.openai.com/v1/images/generations"
POLLINATIONS_URL = "https://image.pollinations.ai/prompt/{prompt}"


class ImageGenerationError(Exception):
    """Raised when every configured provider failed."""
    pass


class NoProviderConfiguredError(ImageGenerationError):
    """Raised when no provider is enabled (missing keys / empty IMAGE_PROVIDERS)."""
    pass


def _stability(prompt: str, seed: int, timeout: int, api_key: str | None = None) -> bytes:
    response = requests.post(
        STABILITY_URL,
        json={
            "text_prompts": [{"text": prompt, "weight": 1}],
            "cfg_scale": 7,
            "height": 1024,
            "width": 1024,
            "samples": 1,
            "steps": 30,
            "seed": seed,
        },
        headers={
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        },
        timeout=timeout,
    )
    response.raise_for_status()
    artifacts = response.json().get("artifacts") or []
    if not artifacts or not artifacts[0].get("base64"):
        raise ImageGenerationError("No image in Stability response")
    return base64.b64decode(artifacts[0]["base64"])


def _openai(prompt: str, seed: int, timeout: int, api_key: str | None = None) -> bytes:
    response = requests.post(
        OPENAI_URL,
        json={
            "model": "dall-e-3",
            "prompt": prompt,
            "n": 1,
            "size": "1024x1024",
            "response_format": "b64_json",
        },
        headers={"Authorization": f"Bearer {api_key}"},
        timeout=timeout,
    )
    response.raise_for_status()
    data = response.json().get("data") or []
    if not data or not data[0].get("b64_json"):
        raise ImageGenerationError("No image in OpenAI response")
    return base64.b64decode(data[0]["b64_json"])


def _pollinations(prompt: str, seed: int, timeout: int, api_key: str | None = None) -> bytes:
    response = requests.get(
        POLLINATIONS_URL.format(prompt=quote(prompt)),
        params={"width": 768, "height": 768, "model": "turbo", "seed": seed, "nologo": "true"},
        timeout=timeout,
    )
    response.raise_for_status()
    if not response.content:
        raise ImageGenerationError("Empty Pollinations response")
    return response.content


# name -> (callable, config key holding its API key or None)
PROVIDERS = {
    "stability": (_stability, "STABILITY_API_KEY"),
    "openai": (_openai, "OPENAI_API_KEY"),
    "pollinations": (_pollinations, None),
}


def enabled_providers() -> list[str]:
    enabled = []
    for name in current_app.config.get("IMAGE_PROVIDERS", []):
        entry = PROVIDERS.get(name)
        if entry is None:
            logger.warning("Unknown image provider %r in IMAGE_PROVIDERS", name)
            continue
        key_name = entry[1]
        if key_name and not current_app.config.get(key_name):
            continue
        enabled.append(name)
    return enabled


def generate_image(prompt: str, seed: int | None = None) -> tuple[bytes, str]:
    """
    Returns (image bytes, provider name).

    Raises:
        NoProviderConfiguredError: nothing to try
        ImageGenerationError: every enabled provider failed
    """
    providers = enabled_providers()
    if not providers:
        raise NoProviderConfiguredError("No image provider is configured")

    seed = seed if seed is not None else random.randint(0, 99999)
    timeout = current_app.config.get("IMAGE_PROVIDER_TIMEOUT", 60)

    for name in providers:
        func, key_name = PROVIDERS[name]
        api_key = current_app.config.get(key_name) if key_name else None
        try:
            content = func(prompt, seed, timeout, api_key=api_key)
        except (requests.RequestException, ImageGenerationError, ValueError, KeyError) as exc:
            logger.warning("Image provider %s failed: %s", name, exc)
            continue
        logger.info("Image generated with %s", name)
        return content, name

    raise ImageGenerationError("All AI image generation services are currently unavailable")
