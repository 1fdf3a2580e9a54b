import logging
import os
import random
from typing import Any, Optional, Protocol

import httpx

from sweatfix.core.persona import SYSTEM_INSTRUCTION, simulated_reply

logger = logging.getLogger("uvicorn.error")

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_API_BASE = os.getenv("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta")
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "45"))
LLM_CONNECT_TIMEOUT_SECONDS = float(os.getenv("LLM_CONNECT_TIMEOUT_SECONDS", "10"))
LLM_MAX_OUTPUT_TOKENS = int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "1200"))
CHAT_HISTORY_LIMIT = 100

ROLE_MAP = {
    "user": "user",
    "model": "model",
    "assistant": "model",
}


def _http_timeout() -> httpx.Timeout:
    return httpx.Timeout(LLM_TIMEOUT_SECONDS, connect=LLM_CONNECT_TIMEOUT_SECONDS)


class LLMRequestError(RuntimeError):
    def __init__(self, provider: str, model: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.model = model
        self.status_code = status_code


def build_contents(message: str, history: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Map prior turns plus the new message onto Gemini ``contents``.

    Raises ``ValueError`` for anything that is not a list of
    ``{"role": ..., "parts": [{"text": ...}]}`` turns.
    """
    if not isinstance(message, str):
        raise ValueError("message must be a string")
    if not isinstance(history, list):
        raise ValueError("history must be a list of turns")

    contents: list[dict[str, Any]] = []
    for idx, turn in enumerate(history):
        if not isinstance(turn, dict):
            raise ValueError(f"history[{idx}] must be an object")
        role = ROLE_MAP.get(str(turn.get("role", "")).strip().lower())
        if role is None:
            raise ValueError(f"history[{idx}] has unsupported role")
        parts = turn.get("parts")
        if not isinstance(parts, list):
            raise ValueError(f"history[{idx}].parts must be a list")
        texts = [
            {"text": part["text"]}
            for part in parts
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        ]
        if texts:
            contents.append({"role": role, "parts": texts})
    contents.append({"role": "user", "parts": [{"text": message}]})
    return contents


def _extract_text(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates")
    if not isinstance(candidates, list):
        return ""
    for candidate in candidates:
        content = candidate.get("content") if isinstance(candidate, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            continue
        text = "".join(str(part.get("text", "")) for part in parts if isinstance(part, dict))
        if text.strip():
            return text
    return ""


class CoachClient(Protocol):
    def get_reply(self, message: str, history: list[dict[str, Any]]) -> str:
        ...


class CoachGateway:
    provider = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.api_key = GEMINI_API_KEY if api_key is None else api_key
        self.model = model or GEMINI_MODEL
        self.http_client = http_client
        self.rng = rng or random.Random()

    def _post(self, url: str, payload: dict[str, Any]) -> httpx.Response:
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}
        if self.http_client is not None:
            return self.http_client.post(url, headers=headers, json=payload, timeout=_http_timeout())
        return httpx.post(url, headers=headers, json=payload, timeout=_http_timeout())

    def _gemini_request(self, contents: list[dict[str, Any]]) -> str:
        if not self.api_key:
            raise LLMRequestError(provider=self.provider, model=self.model, message="Gemini API key not configured")

        url = f"{GEMINI_API_BASE}/models/{self.model}:generateContent"
        payload = {
            "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
            "contents": contents,
            "generationConfig": {"temperature": 0.7, "maxOutputTokens": LLM_MAX_OUTPUT_TOKENS},
        }
        try:
            response = self._post(url, payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code if exc.response is not None else None
            detail = ""
            if exc.response is not None:
                detail = (exc.response.text or "").strip()[:220]
            raise LLMRequestError(
                provider=self.provider,
                model=self.model,
                status_code=status,
                message=f"Gemini request failed (status={status}): {detail or 'no response body'}",
            ) from exc
        except httpx.HTTPError as exc:
            raise LLMRequestError(
                provider=self.provider,
                model=self.model,
                message=f"Gemini request failed: {str(exc)[:220]}",
            ) from exc
        except ValueError as exc:
            raise LLMRequestError(
                provider=self.provider,
                model=self.model,
                message="Gemini returned a non-JSON body",
            ) from exc

        text = _extract_text(data)
        if not text:
            raise LLMRequestError(provider=self.provider, model=self.model, message="Gemini returned no text")
        return text

    def get_reply(self, message: str, history: list[dict[str, Any]]) -> str:
        contents = build_contents(message, history)
        try:
            return self._gemini_request(contents)
        except LLMRequestError as exc:
            # The member always gets a usable answer; the provider error stays in the logs.
            logger.warning(
                "chat_provider_fallback provider=%s model=%s status=%s detail=%s",
                exc.provider,
                exc.model,
                exc.status_code,
                str(exc),
            )
            return simulated_reply(message, self.rng)


def get_coach_gateway() -> CoachClient:
    return CoachGateway()
