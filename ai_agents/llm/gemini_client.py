# ai_agents/llm/gemini_client.py
from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

import requests
from requests import Response

logger = logging.getLogger(__name__)


# --------------------------
# REST endpoint (v1beta)
# --------------------------
_GEN_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

_DEFAULT_TEXT_MODEL = "gemini-2.0-flash"


# --------------------------
# Error / retry primitives
# --------------------------
@dataclass
class RetryConfig:
    max_attempts: int = 3
    backoff_factor: float = 1.6
    retry_statuses: Tuple[int, ...] = (408, 429, 500, 502, 503, 504)


class GeminiError(RuntimeError):
    def __init__(self, message: str, *, status_code: Optional[int] = None, payload: Optional[Dict] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


def _default_session_factory() -> requests.Session:
    session = requests.Session()
    adapter = requests.adapters.HTTPAdapter(max_retries=0)  # manual retries
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def _backoff(retry: RetryConfig, attempt: int) -> float:
    return retry.backoff_factor ** (attempt - 1)


def _error_body(resp: Response) -> Dict:
    try:
        return resp.json()
    except ValueError:
        return {"error": {"code": resp.status_code, "message": resp.text}}


def _post(
    url: str,
    api_key: str,
    payload: Dict,
    *,
    timeout: float = 60,
    retry: Optional[RetryConfig] = None,
    session_factory: Callable[[], requests.Session] = _default_session_factory,
) -> Dict:
    """POST one generateContent request; retries transport errors and retryable statuses."""

    retry = retry or RetryConfig()
    session = session_factory()
    body = json.dumps(payload)
    headers = {"Content-Type": "application/json; charset=utf-8", "x-goog-api-key": api_key}
    last_error: Optional[GeminiError] = None

    for attempt in range(1, retry.max_attempts + 1):
        final = attempt >= retry.max_attempts
        try:
            resp: Response = session.post(url, headers=headers, data=body, timeout=timeout)
        except requests.RequestException as exc:
            timed_out = isinstance(exc, requests.Timeout)
            message = "Gemini request timed out" if timed_out else "Gemini HTTP request failed"
            logger.warning("%s on attempt %s/%s: %s", message, attempt, retry.max_attempts, exc)
            last_error = GeminiError(message, payload={"error": str(exc), "timeout": timeout})
            if final:
                raise last_error from exc
            time.sleep(_backoff(retry, attempt))
            continue

        if resp.status_code // 100 == 2:
            try:
                data = resp.json()
            except ValueError as exc:
                raise GeminiError("Gemini returned a non-JSON body", status_code=resp.status_code) from exc
            if not isinstance(data, dict):
                raise GeminiError("Gemini response body is not an object", status_code=resp.status_code)
            return data

        data = _error_body(resp)
        last_error = GeminiError(
            f"Gemini REST error: {json.dumps(data, ensure_ascii=False)}",
            status_code=resp.status_code,
            payload=data,
        )
        if final or resp.status_code not in retry.retry_statuses:
            raise last_error
        delay = _backoff(retry, attempt)
        logger.info("Gemini returned %s; retrying in %.2fs", resp.status_code, delay)
        time.sleep(delay)

    raise last_error or GeminiError("Gemini request was not attempted (max_attempts < 1)")


def _first_candidate_text(data: Dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not isinstance(candidates, list):
        raise GeminiError("Gemini returned a malformed candidate", payload=data)
    if not candidates:
        return ""
    candidate = candidates[0]
    content = candidate.get("content") if isinstance(candidate, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not all(isinstance(part, dict) for part in parts):
        raise GeminiError("Gemini returned a malformed candidate", payload=data)
    texts = [part.get("text", "") for part in parts]
    if not all(isinstance(text, str) for text in texts):
        raise GeminiError("Gemini returned a malformed candidate", payload=data)
    return "".join(texts)


# --------------------------
# Text generation client
# --------------------------
@dataclass
class GeminiText:
    """
    Lightweight text-generation client for the Gemini REST API.

    ``chat`` returns plain text, ``chat_json`` asks the model for a JSON
    response and decodes it. Both raise ``GeminiError`` on transport
    failure, timeout, or an empty candidate.
    """

    api_key: Optional[str] = None
    model: str = _DEFAULT_TEXT_MODEL
    system_prompt: Optional[str] = None
    timeout: float = 60  # seconds
    retry: RetryConfig = field(default_factory=RetryConfig)
    session_factory: Callable[[], requests.Session] = _default_session_factory

    def __post_init__(self) -> None:
        self.api_key = self.api_key or os.getenv("GEMINI_API_KEY")
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY is not set")

    def _prepare_prompt(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        system = system_prompt or self.system_prompt
        if not system:
            return prompt
        return f"{system.strip()}\n\nUser:\n{prompt}"

    def _generate(self, prompt: str, generation_config: Dict[str, Any], system_prompt: Optional[str]) -> str:
        url = _GEN_URL.format(model=self.model)
        payload = {
            "contents": [{"parts": [{"text": self._prepare_prompt(prompt, system_prompt)}]}],
            "generationConfig": generation_config,
        }
        logger.debug("Gemini request model=%s prompt_chars=%s", self.model, len(prompt))
        data = _post(
            url,
            self.api_key,
            payload,
            timeout=self.timeout,
            retry=self.retry,
            session_factory=self.session_factory,
        )
        text = _first_candidate_text(data).strip()
        if not text:
            raise GeminiError("Gemini returned an empty candidate", payload=data)
        return text

    def chat(
        self,
        prompt: str,
        *,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_output_tokens: int = 1024,
    ) -> str:
        return self._generate(
            prompt,
            {
                "temperature": temperature,
                "maxOutputTokens": max_output_tokens,
                "candidateCount": 1,
            },
            system_prompt,
        )

    def chat_json(
        self,
        prompt: str,
        *,
        system_prompt: Optional[str] = None,
        temperature: float = 0.4,
        max_output_tokens: int = 1024,
    ) -> Dict[str, Any]:
        raw = self._generate(
            prompt,
            {
                "temperature": temperature,
                "maxOutputTokens": max_output_tokens,
                "candidateCount": 1,
                "responseMimeType": "application/json",
            },
            system_prompt,
        )
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise GeminiError("Gemini returned malformed JSON", payload={"raw": raw[:500]}) from exc
        if not isinstance(data, dict):
            raise GeminiError("Gemini JSON response is not an object", payload={"raw": raw[:500]})
        return data
