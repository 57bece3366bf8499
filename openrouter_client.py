from __future__ import annotations
import json
import logging
import re
from typing import List, Optional, Dict, Any

import requests

from config import Settings, get_settings

logger = logging.getLogger(__name__)


class OpenRouterClient:
    """
    Minimal OpenRouter chat client.
    Docs: https://openrouter.ai/docs/api-reference/chat-completion

    Blocking (requests); providers run it in a worker thread.
    """
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        api_url: Optional[str] = None,
        referer: Optional[str] = None,
        title: Optional[str] = None,
        timeout: Optional[float] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.api_key = api_key or settings.openrouter_api_key
        if not self.api_key:
            raise RuntimeError("Missing OPENROUTER_API_KEY")

        self.api_url = api_url or settings.openrouter_url
        self.model = model or settings.openrouter_model

        # Optional attribution headers recommended by OpenRouter
        self.referer = referer or settings.app_referer
        self.title = title or settings.app_title
        self.timeout = timeout or settings.timeout_seconds

        masked = (self.api_key[:6] + "..." + self.api_key[-4:]) if len(self.api_key) > 10 else "***"
        logger.info(
            "OpenRouter client ready: key=%s model=%s url=%s referer=%s title=%s",
            masked, self.model, self.api_url, self.referer or "-", self.title or "-",
        )

    def _headers(self) -> Dict[str, str]:
        h = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.referer:
            h["HTTP-Referer"] = self.referer
        if self.title:
            h["X-Title"] = self.title
        return h

    def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.2,
        extra: Optional[Dict[str, Any]] = None,
    ) -> str:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if extra:
            payload.update(extra)

        try:
            resp = requests.post(self.api_url, json=payload, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise RuntimeError(f"OpenRouter request failed: {e}") from e

        if resp.status_code != 200:
            raise RuntimeError(f"OpenRouter error {resp.status_code}: {resp.text[:500]}")

        try:
            data = resp.json()
            return data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise RuntimeError(f"OpenRouter returned an unexpected body: {resp.text[:500]}") from e

    def chat_json(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.2,
    ) -> Dict[str, Any]:
        content = self.chat(messages=messages, temperature=temperature)
        return parse_json_object(content)


_OUTER_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.S)


def parse_json_object(content: str) -> Dict[str, Any]:
    """Extract the single JSON object a model was asked to return.

    Clean JSON is taken as is. Otherwise a fence wrapping the whole output is
    removed, surrounding prose is cut off and trailing commas are dropped.
    Fences inside string values (a ```python block in a solution) are kept.
    """
    text = (content or "").strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("Model output is not clean JSON, attempting repair")
        data = _repair_and_load(text)

    if not isinstance(data, dict):
        raise RuntimeError("Model output is not a JSON object")
    return data


def _repair_and_load(text: str) -> Any:
    fenced = _OUTER_FENCE.match(text)
    if fenced:
        text = fenced.group(1)
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            pass

    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        text = text[start:end + 1]
    text = re.sub(r',(\s*[}\]])', r'\1', text)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Failed to parse JSON from model output: {e}") from e
