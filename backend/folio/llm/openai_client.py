# File: backend/folio/llm/openai_client.py
"""OpenAI Chat Completions client with the same shape as ClaudeClient.

Exposes _send_request (one text response) and _stream_request (SSE deltas).
Messages use the OpenAI format: [{"role": "system"|"user"|"assistant", "content": str}].
"""
import json
import httpx
from typing import Any, AsyncIterator, Dict, List, Optional
import logging

from folio.core.config import settings
from folio.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class OpenAIClient:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = api_key or settings.OPENAI_API_KEY
        if not self.api_key:
            raise ValueError("OPENAI_API_KEY environment variable not set")

        self.base_url = "https://api.openai.com/v1/chat/completions"
        self.headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        self.model = model or settings.OPENAI_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        logger.info(f"Initialized OpenAIClient with model: {self.model}")

    def _build_body(self, messages: List[Dict[str, str]], max_tokens: int, stream: bool = False) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
        }
        if stream:
            body["stream"] = True
        return body

    async def _send_request(self, messages: List[Dict[str, str]], max_tokens: int = 4096) -> str:
        logger.info(f"Sending request to OpenAI API with model: {self.model}")
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                self.base_url,
                headers=self.headers,
                json=self._build_body(messages, max_tokens),
                timeout=self.timeout,
            )

        if resp.status_code != 200:
            logger.error(f"OpenAI API failed {resp.status_code}: {resp.text[:500]}")
            raise UpstreamError(f"OpenAI API failed with status {resp.status_code}")

        data = resp.json()
        choices = data.get("choices", [])
        if not choices:
            raise UpstreamError("OpenAI returned no choices")
        text = choices[0].get("message", {}).get("content") or ""
        logger.info(f"Received OpenAI response (first 100 chars): {text[:100]}...")
        return text

    async def _stream_request(self, messages: List[Dict[str, str]], max_tokens: int = 4096) -> AsyncIterator[str]:
        logger.info(f"Streaming request to OpenAI API with model: {self.model}")
        async with httpx.AsyncClient() as client:
            async with client.stream(
                "POST",
                self.base_url,
                headers=self.headers,
                json=self._build_body(messages, max_tokens, stream=True),
                timeout=self.timeout,
            ) as resp:
                if resp.status_code != 200:
                    err = await resp.aread()
                    logger.error(f"OpenAI stream failed {resp.status_code}: {err.decode()[:500]}")
                    raise UpstreamError(f"OpenAI stream failed with status {resp.status_code}")

                async for line in resp.aiter_lines():
                    if not line or not line.startswith("data: "):
                        continue
                    data_str = line[6:].strip()
                    if data_str == "[DONE]":
                        break
                    try:
                        chunk = json.loads(data_str)
                    except json.JSONDecodeError:
                        continue
                    for choice in chunk.get("choices", []):
                        text = choice.get("delta", {}).get("content")
                        if text:
                            yield text
