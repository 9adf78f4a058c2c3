"""Gemini generateContent gateway over the REST API."""

from __future__ import annotations

import http.client
import json
import logging
import time
from typing import Any, Protocol, Sequence
from urllib import error, request

from meal_orchestrator.config.settings import Settings
from meal_orchestrator.errors import EmptyResponseError, GatewayError
from meal_orchestrator.llm.models import ModelTurn, Part, ToolCall, Turn, user_text

logger = logging.getLogger(__name__)

JSON_MIME_TYPE = "application/json"


class ModelGateway(Protocol):
    """Interface for one model completion over a conversation."""

    def complete(
        self,
        system_instruction: str,
        conversation: Sequence[Turn],
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelTurn: ...


class GeminiGateway:
    """Stateless Gemini client with a single transient retry."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gemini-3-flash-preview",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_s: float = 120.0,
        retry_backoff_s: float = 1.0,
        temperature: float = 0.7,
        max_output_tokens: int = 16000,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.retry_backoff_s = max(0.0, retry_backoff_s)
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> GeminiGateway:
        return cls(
            api_key=settings.resolved_gemini_api_key(),
            model=settings.llm_model,
            base_url=settings.llm_base_url,
            timeout_s=settings.llm_timeout_s,
            retry_backoff_s=settings.llm_retry_backoff_s,
            temperature=settings.llm_temperature,
            max_output_tokens=settings.llm_max_output_tokens,
        )

    def complete(
        self,
        system_instruction: str,
        conversation: Sequence[Turn],
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelTurn:
        if not self.api_key:
            raise GatewayError("GEMINI_API_KEY is not configured")

        body = self._request_body(system_instruction, conversation, tools)
        response_json = self._request_with_retry(body)
        return _parse_model_turn(response_json)

    def _request_body(
        self,
        system_instruction: str,
        conversation: Sequence[Turn],
        tools: list[dict[str, Any]] | None,
    ) -> dict[str, Any]:
        generation_config: dict[str, Any] = {
            "temperature": self.temperature,
            "maxOutputTokens": self.max_output_tokens,
        }
        body: dict[str, Any] = {
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "contents": [turn.to_wire() for turn in conversation],
            "generationConfig": generation_config,
        }
        if tools:
            body["tools"] = [{"functionDeclarations": tools}]
        else:
            generation_config["responseMimeType"] = JSON_MIME_TYPE
        return body

    def _request_with_retry(self, body: dict[str, Any]) -> dict[str, Any]:
        try:
            return self._request_once(body)
        except GatewayError as exc:
            if not exc.transient:
                raise
            logger.warning(
                "Gemini request failed attempt=1/2 model=%s reason=%s",
                self.model,
                exc,
            )
        if self.retry_backoff_s > 0:
            time.sleep(self.retry_backoff_s)
        return self._request_once(body)

    def _request_once(self, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        req = request.Request(
            url=url,
            data=json.dumps(body).encode("utf-8"),
            method="POST",
            headers={
                "x-goog-api-key": self.api_key,
                "Content-Type": "application/json",
            },
        )
        try:
            with request.urlopen(req, timeout=self.timeout_s) as response:
                raw = response.read().decode("utf-8")
        except error.HTTPError as exc:
            message = exc.read().decode("utf-8", errors="replace")
            raise GatewayError(
                f"Gemini request failed with status {exc.code}: {message[:400]}",
                transient=exc.code == 429 or exc.code >= 500,
                status=exc.code,
            ) from exc
        except error.URLError as exc:
            raise GatewayError(f"Gemini request failed: {exc.reason}", transient=True) from exc
        except TimeoutError as exc:
            raise GatewayError(
                f"Gemini request timed out after {self.timeout_s:.1f}s", transient=True
            ) from exc
        except (OSError, http.client.HTTPException) as exc:
            raise GatewayError(
                f"Gemini connection failed: {type(exc).__name__}: {exc}", transient=True
            ) from exc

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise GatewayError("Gemini returned non-JSON response") from exc
        if not isinstance(parsed, dict):
            raise GatewayError("Gemini response must be a JSON object")
        return parsed


def complete_text(gateway: ModelGateway, system_instruction: str, prompt: str) -> str:
    """Single user turn, no tools; returns the model's text."""
    turn = gateway.complete(system_instruction, [user_text(prompt)])
    return turn.text


def _parse_model_turn(response_json: dict[str, Any]) -> ModelTurn:
    candidates = response_json.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        raise EmptyResponseError("No response from Gemini")

    candidate = candidates[0] if isinstance(candidates[0], dict) else {}
    content = candidate.get("content")
    raw_parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(raw_parts, list) or not raw_parts:
        raise EmptyResponseError("Gemini response has no content parts")

    finish_reason = candidate.get("finishReason")
    if finish_reason == "MAX_TOKENS":
        logger.warning("Gemini response truncated finish_reason=MAX_TOKENS")

    parts: list[Part] = []
    tool_calls: list[ToolCall] = []
    texts: list[str] = []
    for raw in raw_parts:
        if not isinstance(raw, dict):
            continue
        signature = raw.get("thoughtSignature")
        call = raw.get("functionCall")
        if isinstance(call, dict) and call.get("name"):
            args = call.get("args")
            tool_call = ToolCall(
                name=str(call["name"]),
                args=args if isinstance(args, dict) else {},
            )
            tool_calls.append(tool_call)
            parts.append(Part(function_call=tool_call, thought_signature=signature))
            continue
        text = raw.get("text")
        if isinstance(text, str):
            parts.append(Part(text=text, thought_signature=signature))
            if not raw.get("thought"):
                texts.append(text)

    text = "".join(texts)
    if not tool_calls and not text.strip():
        raise EmptyResponseError("Gemini returned empty text and no function calls")

    return ModelTurn(
        text=text,
        tool_calls=tuple(tool_calls),
        finish_reason=finish_reason if isinstance(finish_reason, str) else None,
        parts=tuple(parts),
    )
