"""
Generation client: text completion against a Bedrock-style invoke endpoint.

Each model family expects its own request body. The model id is resolved once
to a PromptFormat (instruction-bracket, chat-messages, header-delimited, or
raw passthrough), and the response text is pulled from whichever of the known
envelope shapes the backend returned.
"""

import logging
from enum import Enum
from typing import Any
from urllib.parse import quote

import httpx

from chefsue.core.config import (
    BEDROCK_API_KEY,
    BEDROCK_ENDPOINT_URL,
    BEDROCK_MODEL_ID,
    GENERATION_MAX_TOKENS,
    GENERATION_TEMPERATURE,
    GENERATION_TIMEOUT,
    GENERATION_TOP_P,
    HEALTH_CHECK_TIMEOUT,
)
from chefsue.core.errors import GenerationError, GenerationTimeout

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "bedrock-2023-05-31"


class PromptFormat(str, Enum):
    MISTRAL = "mistral"  # <s>[INST] ... [/INST]
    CLAUDE = "claude"  # anthropic messages body
    LLAMA = "llama"  # header-delimited chat template
    RAW = "raw"


_KNOWN_FORMATS = (PromptFormat.MISTRAL, PromptFormat.CLAUDE, PromptFormat.LLAMA)


def resolve_prompt_format(model_id: str) -> PromptFormat:
    """Pick the wire format for a model id; unknown families get RAW."""
    lowered = (model_id or "").lower()
    for fmt in _KNOWN_FORMATS:
        if fmt.value in lowered:
            return fmt
    return PromptFormat.RAW


def build_request_body(
    prompt: str,
    fmt: PromptFormat,
    max_tokens: int = GENERATION_MAX_TOKENS,
    temperature: float = GENERATION_TEMPERATURE,
    top_p: float = GENERATION_TOP_P,
) -> dict[str, Any]:
    base = {"max_tokens": max_tokens, "temperature": temperature, "top_p": top_p}
    if fmt is PromptFormat.MISTRAL:
        return {**base, "prompt": f"<s>[INST] {prompt} [/INST]", "stop": ["</s>"]}
    if fmt is PromptFormat.CLAUDE:
        return {
            "anthropic_version": ANTHROPIC_VERSION,
            **base,
            "messages": [{"role": "user", "content": prompt}],
        }
    if fmt is PromptFormat.LLAMA:
        return {
            **base,
            "prompt": (
                "<|begin_of_text|><|start_header_id|>user<|end_header_id|>\n"
                f"{prompt}<|eot_id|><|start_header_id|>assistant<|end_header_id|>"
            ),
        }
    return {**base, "prompt": prompt}


def extract_response_text(payload: Any) -> str:
    """
    Pull generated text out of a response envelope.

    Known shapes, checked in order: {"outputs": [{"text"}]}, {"completion"},
    {"content": [{"text"}]}, {"text"}. Raises GenerationError otherwise.
    """
    if isinstance(payload, dict):
        outputs = payload.get("outputs")
        if isinstance(outputs, list) and outputs and isinstance(outputs[0], dict) and outputs[0].get("text"):
            return str(outputs[0]["text"]).strip()
        if payload.get("completion"):
            return str(payload["completion"]).strip()
        content = payload.get("content")
        if isinstance(content, list) and content and isinstance(content[0], dict) and content[0].get("text"):
            return str(content[0]["text"]).strip()
        if payload.get("text"):
            return str(payload["text"]).strip()
    raise GenerationError("Invalid response format from AI model")


class GenerationClient:
    """Async text-completion client. complete() returns text or raises GenerationError."""

    def __init__(
        self,
        model_id: str = BEDROCK_MODEL_ID,
        endpoint_url: str = BEDROCK_ENDPOINT_URL,
        api_key: str = BEDROCK_API_KEY,
        timeout: float = GENERATION_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.model_id = model_id
        self.endpoint_url = endpoint_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _invoke_url(self, model_id: str) -> str:
        return f"{self.endpoint_url}/model/{quote(model_id, safe='')}/invoke"

    async def complete(self, prompt: str, model_hint: str | None = None, timeout: float | None = None) -> str:
        model_id = model_hint or self.model_id
        fmt = resolve_prompt_format(model_id)
        body = build_request_body(prompt, fmt)
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        logger.info("[llm:complete] IN  model=%s format=%s prompt_len=%d", model_id, fmt.value, len(prompt))
        logger.debug("[llm:complete] prompt_sample=%r", prompt[:500])
        try:
            response = await self._client.post(
                self._invoke_url(model_id),
                json=body,
                headers=headers,
                timeout=timeout or self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning("[llm:complete] timed out model=%s", model_id)
            raise GenerationTimeout("Request timeout") from e
        except httpx.HTTPError as e:
            logger.warning("[llm:complete] request failed: %s", e)
            raise GenerationError(f"Generation request failed: {e}") from e
        if response.status_code != 200:
            logger.warning("[llm:complete] error %s: %s", response.status_code, response.text[:200])
            raise GenerationError(f"Generation backend returned {response.status_code}")
        try:
            payload = response.json()
        except ValueError as e:
            raise GenerationError("Generation backend returned a non-JSON body") from e
        out = extract_response_text(payload)
        logger.info("[llm:complete] OUT response_len=%d", len(out))
        logger.debug("[llm:complete] OUT response_full=%r", out)
        return out

    async def health_check(self) -> bool:
        try:
            reply = await self.complete("Say 'OK' if you can respond.", timeout=HEALTH_CHECK_TIMEOUT)
        except GenerationError as e:
            logger.error("[llm:health_check] failed: %s", e)
            return False
        return "ok" in reply.lower()
