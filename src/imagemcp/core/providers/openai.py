"""
OpenAI Images API provider.

Handles HTTP communication with the images/generations and images/edits
endpoints. Responses carry either a URL or base64 data per image.
"""

import json
import time
from typing import Any

import requests

from imagemcp.core.config import Config
from imagemcp.core.providers.base import UpstreamImage
from imagemcp.logging_config import get_logger, log_prompts
from imagemcp.utils.exceptions import (
    APIError,
    ConfigurationError,
    NetworkError,
    RequestTimeoutError,
)

logger = get_logger(__name__)

_PROMPT_LOG_MAX = 50_000
_DEBUG_TRUNCATE_THRESHOLD = 200
_DEBUG_NEVER_TRUNCATE_KEYS = frozenset({"prompt", "revised_prompt", "message"})


def _truncate_image_data_for_log(obj: Any, parent_key: str | None = None) -> Any:
    """Recursively replace long base64/data URL strings with placeholders for safe logging."""
    if isinstance(obj, dict):
        return {k: _truncate_image_data_for_log(v, k) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_truncate_image_data_for_log(v, None) for v in obj]
    if isinstance(obj, str) and len(obj) >= _DEBUG_TRUNCATE_THRESHOLD:
        if parent_key in _DEBUG_NEVER_TRUNCATE_KEYS:
            return obj
        if obj.startswith("data:"):
            return f"<data URL, {len(obj)} chars>"
        return f"<string, {len(obj)} chars>"
    return obj


def _error_detail(response: requests.Response) -> str:
    """Pull error.message out of an OpenAI error body, falling back to raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("message") or response.text
    return response.text


class OpenAIImagesProvider:
    """Image provider for the OpenAI Images API (gpt-image-1)."""

    def _headers(self, config: Config) -> dict[str, str]:
        if not config.openai_api_key:
            raise ConfigurationError(
                "OpenAI API key is required. Set OPENAI_API_KEY or provide it explicitly."
            )
        return {"Authorization": f"Bearer {config.openai_api_key}"}

    def _check_status(self, response: requests.Response, model: str) -> None:
        """Map non-200 responses to APIError."""
        status = response.status_code
        if status == 200:
            return
        if status == 401:
            raise APIError(
                "Authentication failed. Please check your OpenAI API key.",
                status_code=401,
                response=response.text,
            )
        if status == 404:
            raise APIError(
                f"Model not found or endpoint unavailable: {model}",
                status_code=404,
                response=response.text,
            )
        if status == 429:
            raise APIError(
                "Rate limit or quota exceeded. Please wait before making more requests "
                "and check your billing.",
                status_code=429,
                response=response.text,
            )
        if status >= 500:
            raise APIError(
                f"OpenAI service error: {status}",
                status_code=status,
                response=response.text,
            )
        raise APIError(
            f"API request failed with status {status}: {_error_detail(response)}",
            status_code=status,
            response=response.text,
        )

    def _parse_response(self, response: requests.Response, model: str) -> UpstreamImage:
        """Extract the first image from the response. Raises APIError on failure."""
        try:
            result = response.json()
        except ValueError as e:
            raise APIError(
                f"Failed to parse API response as JSON: {str(e)}",
                response=response.text,
            ) from e
        data = result.get("data") if isinstance(result, dict) else None
        if not data:
            raise APIError("No image data returned from OpenAI", response=str(result)[:2000])
        first = data[0] or {}
        url = first.get("url") or None
        b64 = first.get("b64_json") or None
        if url is None and b64 is None:
            raise APIError("No image data returned from OpenAI", response=str(result)[:2000])
        return UpstreamImage(
            url=url,
            b64_json=b64,
            revised_prompt=first.get("revised_prompt"),
            model=model,
        )

    def _post(
        self,
        endpoint: str,
        config: Config,
        timeout: float,
        *,
        json_payload: dict[str, Any] | None = None,
        form: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
    ) -> UpstreamImage:
        """POST to endpoint, translate transport errors and parse the result."""
        url = f"{config.openai_base_url.rstrip('/')}/{endpoint}"
        headers = self._headers(config)
        model = config.image_model
        logger.debug("API request url=%s model=%s timeout=%s", url, model, timeout)
        if config.debug_api:
            logger.info(
                "API request payload (image data truncated): %s",
                json.dumps(_truncate_image_data_for_log(json_payload or form), default=str),
            )

        start_time = time.time()
        try:
            if files is not None:
                response = requests.post(
                    url, headers=headers, data=form, files=files, timeout=timeout
                )
            else:
                response = requests.post(url, headers=headers, json=json_payload, timeout=timeout)
        except requests.exceptions.Timeout as e:
            raise RequestTimeoutError(
                f"Request timed out after {timeout} seconds. "
                "The generation may be taking longer than expected."
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise NetworkError(
                "Failed to connect to OpenAI API. Please check your internet connection.",
                original_error=e,
            ) from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(
                f"Network error during API request: {str(e)}", original_error=e
            ) from e
        duration = time.time() - start_time

        logger.debug(
            "API response status=%s content_type=%s time=%.2fs",
            response.status_code,
            response.headers.get("content-type", ""),
            duration,
        )
        if config.debug_api:
            try:
                logger.info(
                    "API response (image data truncated): %s",
                    json.dumps(_truncate_image_data_for_log(response.json()), default=str),
                )
            except ValueError:
                logger.info("API response (raw text): %s", response.text[:2000])

        self._check_status(response, model)
        image = self._parse_response(response, model)
        return UpstreamImage(
            url=image.url,
            b64_json=image.b64_json,
            revised_prompt=image.revised_prompt,
            model=image.model,
            duration=duration,
        )

    def _log_prompt(self, prompt: str) -> None:
        if log_prompts():
            truncated = (
                prompt if len(prompt) <= _PROMPT_LOG_MAX else prompt[:_PROMPT_LOG_MAX] + "..."
            )
            logger.info("Prompt (used): %s", truncated)

    def generate(
        self,
        prompt: str,
        size: str,
        quality: str | None,
        output_format: str,
        timeout: float,
        config: Config,
    ) -> UpstreamImage:
        """Generate one image via images/generations."""
        payload: dict[str, Any] = {
            "model": config.image_model,
            "prompt": prompt,
            "size": size,
            "n": 1,
        }
        if quality:
            payload["quality"] = quality
        if output_format:
            payload["output_format"] = output_format

        logger.info("Generating image model=%s size=%s", config.image_model, size)
        self._log_prompt(prompt)
        result = self._post("images/generations", config, timeout, json_payload=payload)
        logger.info("Generated in %.1fs model=%s", result.duration, result.model)
        return result

    def edit(
        self,
        image_png: bytes,
        prompt: str,
        size: str,
        quality: str | None,
        output_format: str,
        timeout: float,
        config: Config,
    ) -> UpstreamImage:
        """Edit one image via images/edits (multipart upload of a PNG)."""
        form: dict[str, Any] = {
            "model": config.image_model,
            "prompt": prompt,
            "size": size,
            "n": "1",
        }
        if quality:
            form["quality"] = quality
        if output_format:
            form["output_format"] = output_format
        files = {"image": ("source.png", image_png, "image/png")}

        logger.info(
            "Editing image model=%s size=%s source_bytes=%d",
            config.image_model,
            size,
            len(image_png),
        )
        self._log_prompt(prompt)
        result = self._post("images/edits", config, timeout, form=form, files=files)
        logger.info("Edited in %.1fs model=%s", result.duration, result.model)
        return result
