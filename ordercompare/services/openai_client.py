"""OpenAI Chat Completions API client with structured JSON outputs."""

from __future__ import annotations

import json
import time
from typing import Any, Union

import structlog
from openai import BadRequestError, OpenAI, OpenAIError

from ordercompare.config import settings
from ordercompare.errors import ModelCallError

logger = structlog.get_logger(__name__)

# Plain text, or a list of chat content parts (text / image_url)
UserContent = Union[str, list[dict[str, Any]]]


def _get_client() -> OpenAI:
    """Create an OpenAI client."""
    return OpenAI(api_key=settings.openai_api_key)


def _create_completion(
    client: OpenAI,
    model: str,
    system_prompt: str,
    user_content: UserContent,
    schema: dict[str, Any],
    schema_name: str,
):
    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_content},
    ]
    try:
        return client.chat.completions.create(
            model=model,
            messages=messages,
            response_format={
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": schema, "strict": True},
            },
            temperature=settings.openai_temperature,
        )
    except BadRequestError:
        # Older models reject json_schema; ask for a JSON object instead.
        logger.info("json_schema_fallback", model=model)
        schema_instruction = (
            "\n\nYou MUST respond with valid JSON matching this exact schema:\n"
            + json.dumps(schema, indent=2)
        )
        messages[0] = {"role": "system", "content": system_prompt + schema_instruction}
        return client.chat.completions.create(
            model=model,
            messages=messages,
            response_format={"type": "json_object"},
            temperature=settings.openai_temperature,
        )


def call_openai_structured(
    system_prompt: str,
    user_content: UserContent,
    schema: dict[str, Any],
    schema_name: str,
    model: str | None = None,
    max_retries: int | None = None,
) -> dict[str, Any]:
    """Call OpenAI Chat Completions API with structured JSON output.

    Uses response_format={"type": "json_schema", ...} for guaranteed valid JSON.
    Falls back to response_format={"type": "json_object"} if json_schema is not
    supported by the model.

    Args:
        system_prompt: System instructions for the LLM.
        user_content: Document text, or content parts with images.
        schema: JSON schema the answer must follow.
        schema_name: Name reported to the API for the schema.
        model: Model to use (defaults to settings.openai_model).
        max_retries: Attempts before giving up (defaults to settings.openai_max_retries).

    Returns:
        Parsed JSON dict.

    Raises:
        ModelCallError: when every attempt failed.
    """
    model = model or settings.openai_model
    max_retries = max_retries or settings.openai_max_retries
    client = _get_client()

    last_error = ""
    for attempt in range(1, max_retries + 1):
        try:
            logger.info("openai_call_start", model=model, schema=schema_name, attempt=attempt)
            response = _create_completion(
                client, model, system_prompt, user_content, schema, schema_name
            )
            raw_text = response.choices[0].message.content
            if not raw_text:
                raise ValueError("empty response content")
            result = json.loads(raw_text)
            if not isinstance(result, dict):
                raise ValueError(f"expected a JSON object, got {type(result).__name__}")

            logger.info("openai_call_success", model=model, schema=schema_name)
            return result

        except (OpenAIError, ValueError) as exc:
            last_error = str(exc)
            logger.warning(
                "openai_call_failed",
                model=model,
                schema=schema_name,
                attempt=attempt,
                error=last_error,
            )
            if attempt < max_retries:
                time.sleep(2 ** attempt)

    logger.error("openai_call_exhausted", model=model, schema=schema_name, error=last_error)
    raise ModelCallError("The AI model did not return a usable answer.", detail=last_error)
