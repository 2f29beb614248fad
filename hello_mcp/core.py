"""Core handler logic for the hello MCP server.

This module provides:
- Greeting lookup across a fixed language table
- Four-operator arithmetic
- Timezone-formatted clock readings
- The canned server status document and the code review prompt text
- Image generation through the Hugging Face inference API
- Server configuration loading

HTTP calls use only the Python standard library.
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
from urllib import error, request
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

# Environment variable name for the Hugging Face API token
API_KEY_ENV = "HF_TOKEN"

# Look for .env in the project root (parent directory of this file's parent)
DOTENV_CANDIDATES = [
    Path(__file__).resolve().parents[1] / ".env",
    Path(__file__).resolve().parents[1] / ".env.local",
]

SERVER_NAME = "My MCP Server"
SERVER_VERSION = "1.0.0"

# Image generation settings
DEFAULT_BASE_URL = "https://router.huggingface.co/hf-inference/models"
DEFAULT_MIME_TYPE = "image/png"
IMAGE_MODEL_ID = "black-forest-labs/FLUX.1-schnell"
IMAGE_INFERENCE_STEPS = 5

DEFAULT_LANGUAGE = "english"

GREETINGS: Dict[str, str] = {
    "korean": "안녕하세요",
    "english": "Hello",
    "japanese": "こんにちは",
    "chinese": "你好",
    "spanish": "Hola",
    "french": "Bonjour",
    "german": "Hallo",
    "italian": "Ciao",
    "portuguese": "Olá",
    "russian": "Привет",
}

OPERATORS = ("+", "-", "*", "/")

DATETIME_FORMAT = "%Y. %m. %d. %H:%M:%S"
DATE_FORMAT = "%Y. %m. %d."
TIME_FORMAT = "%H:%M:%S"

Number = Union[int, float]


@dataclass(frozen=True)
class ServerConfig:
    """Settings shared read-only by every handler."""
    hf_token: str


@dataclass
class ImageResult:
    """Result of an image generation request."""
    buffer: bytes
    mime_type: str
    model_id: str


def _prime_dotenv_env() -> None:
    """Load environment variables from .env files for local development."""
    for env_file in DOTENV_CANDIDATES:
        try:
            if not env_file.exists():
                continue
            for raw_line in env_file.read_text().splitlines():
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                name, val = line.split("=", 1)
                name = name.strip()
                if not name or name in os.environ:
                    continue
                cleaned = val.strip().strip('"').strip("'")
                if cleaned:
                    os.environ[name] = cleaned
        except OSError:
            continue


def load_config(hf_token: Optional[str] = None) -> ServerConfig:
    """Build the server configuration from an explicit token or the environment.

    Raises:
        ValueError: If no token is given and none is set in the environment.
    """
    _prime_dotenv_env()
    token = hf_token or os.getenv(API_KEY_ENV)
    if not token:
        raise ValueError(
            f"Missing Hugging Face token. Set the {API_KEY_ENV} environment variable "
            "or provide it in the MCP configuration."
        )
    return ServerConfig(hf_token=token)


def greet(name: str, language: str) -> str:
    """Return '<greeting>, <name>!' for the language, falling back to English."""
    word = GREETINGS.get(language.lower(), GREETINGS[DEFAULT_LANGUAGE])
    return f"{word}, {name}!"


def _as_number(value: Number) -> Number:
    # Integral floats render as integers: 6 / 3 gives 2, not 2.0
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _apply(num1: Number, num2: Number, operator: str) -> Number:
    if operator == "+":
        return num1 + num2
    if operator == "-":
        return num1 - num2
    if operator == "*":
        return num1 * num2
    if operator == "/":
        if num2 == 0:
            raise ValueError("Division by zero is not allowed.")
        return num1 / num2
    raise ValueError(f"Unsupported operator: {operator}. Supported: {', '.join(OPERATORS)}")


def calculate(num1: Number, num2: Number, operator: str) -> Tuple[Number, str]:
    """Apply the operator and return the result with its 'a op b = result' form.

    Raises:
        ValueError: On division by zero, an unsupported operator, or a result
                    too large to represent as a float.
    """
    try:
        result = _as_number(_apply(num1, num2, operator))
    except OverflowError as exc:
        raise ValueError(f"Result out of range: {exc}") from exc
    return result, f"{_as_number(num1)} {operator} {_as_number(num2)} = {result}"


@lru_cache(maxsize=1)
def _zone_names_by_lowercase() -> Dict[str, str]:
    return {name.lower(): name for name in available_timezones()}


def _resolve_zone(timezone: str) -> ZoneInfo:
    """Look up an IANA zone, matching the identifier case-insensitively."""
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        canonical = _zone_names_by_lowercase().get(timezone.lower())
        if canonical is None:
            raise ValueError(f"Invalid timezone: {timezone}") from exc
        return ZoneInfo(canonical)


def current_time(timezone: str, now: Optional[datetime] = None) -> Dict[str, str]:
    """Format an instant in the named IANA timezone.

    Args:
        timezone: Timezone identifier such as "Asia/Seoul" or "UTC", in any case.
        now: Instant to format; defaults to the current time. Naive values are
             taken as UTC.

    Returns:
        Dictionary with the timezone and its datetime, date and time strings.

    Raises:
        ValueError: If the timezone identifier is not recognized.
    """
    zone = _resolve_zone(timezone)

    if now is None:
        moment = datetime.now(zone)
    else:
        if now.tzinfo is None:
            now = now.replace(tzinfo=ZoneInfo("UTC"))
        moment = now.astimezone(zone)

    return {
        "timezone": timezone,
        "datetime": moment.strftime(DATETIME_FORMAT),
        "date": moment.strftime(DATE_FORMAT),
        "time": moment.strftime(TIME_FORMAT),
    }


def server_info() -> Dict[str, Any]:
    """Return the placeholder status document. None of it is live telemetry."""
    return {
        "name": SERVER_NAME,
        "version": SERVER_VERSION,
        "status": "running",
        "uptime": "72 hours 35 minutes",
        "cpu_usage": "23.5%",
        "memory_usage": "1.2GB / 8GB",
        "disk_usage": "45.2GB / 256GB",
        "active_connections": 142,
        "requests_per_minute": 1250,
        "environment": "production",
        "region": "ap-northeast-2",
        "last_restart": "2025-11-24T10:30:00Z",
        "health_check": "healthy",
    }


def code_review_prompt(code: str, language: Optional[str] = None) -> str:
    """Build the code review instruction text for a snippet."""
    lang_info = f"This code is written in {language}.\n\n" if language else ""
    return (
        "Please review the following code, focusing on these areas:\n"
        "\n"
        "1. Bugs and errors: look for potential bugs or runtime errors\n"
        "2. Security vulnerabilities: check for security problems\n"
        "3. Performance: suggest where performance can be improved\n"
        "4. Readability: assess readability and maintainability\n"
        "5. Design patterns: suggest better patterns or structure\n"
        "6. Best practices: check adherence to the language's conventions\n"
        "\n"
        f"{lang_info}Code to review:\n"
        "```\n"
        f"{code}\n"
        "```\n"
        "\n"
        "Give concrete feedback and improvement suggestions for each area."
    )


def build_url(*, base_url: str = DEFAULT_BASE_URL, model_id: str = IMAGE_MODEL_ID) -> str:
    """Build the inference endpoint URL for a model."""
    return f"{base_url.rstrip('/')}/{model_id}"


def build_request_body(prompt: str, *, steps: int = IMAGE_INFERENCE_STEPS) -> Dict[str, Any]:
    """Build the text-to-image request body."""
    if not prompt or not isinstance(prompt, str):
        raise ValueError("Prompt is required and must be a string.")
    return {
        "inputs": prompt,
        "parameters": {"num_inference_steps": steps},
    }


def _http_post_bytes(url: str, payload: Dict[str, Any], api_key: str) -> Tuple[bytes, str]:
    """Make an HTTP POST request and return the raw body and its content type."""
    data = json.dumps(payload).encode("utf-8")
    req = request.Request(
        url,
        data=data,
        headers={
            "Content-Type": "application/json",
            "Accept": DEFAULT_MIME_TYPE,
            "Authorization": f"Bearer {api_key}",
        },
        method="POST",
    )
    try:
        with request.urlopen(req, timeout=120) as resp:
            content_type = resp.headers.get("content-type", DEFAULT_MIME_TYPE)
            return resp.read(), content_type
    except error.HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
        raise RuntimeError(f"API error {exc.code}: {detail[:400]}") from exc
    except error.URLError as exc:
        raise RuntimeError(f"Network error: {exc}") from exc


def generate_image(
    *,
    prompt: str,
    api_key: str,
    model_id: str = IMAGE_MODEL_ID,
    steps: int = IMAGE_INFERENCE_STEPS,
    base_url: str = DEFAULT_BASE_URL,
) -> ImageResult:
    """Generate an image through the Hugging Face inference API.

    Args:
        prompt: Text description of the image to generate.
        api_key: Hugging Face access token.
        model_id: Model repository to run.
        steps: Number of inference steps.
        base_url: Base URL for the inference router.

    Returns:
        ImageResult containing the image buffer and its MIME type.

    Raises:
        ValueError: If the prompt is empty.
        RuntimeError: If the token is missing or the API request fails.
    """
    if not api_key:
        raise RuntimeError(f"Missing Hugging Face token. Set the {API_KEY_ENV} environment variable.")

    url = build_url(base_url=base_url, model_id=model_id)
    body = build_request_body(prompt, steps=steps)

    buffer, content_type = _http_post_bytes(url, body, api_key)
    mime_type = content_type.split(";", 1)[0].strip().lower()
    if not buffer:
        raise RuntimeError("Empty response from the image generation API.")
    if not mime_type.startswith("image/"):
        detail = buffer.decode("utf-8", errors="ignore")
        raise RuntimeError(f"Unexpected response from the image generation API: {detail[:400]}")

    return ImageResult(buffer=buffer, mime_type=mime_type, model_id=model_id)
