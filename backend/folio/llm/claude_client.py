# File: backend/folio/llm/claude_client.py
import httpx
from typing import Any, Dict, List, Optional
import logging

from folio.core.config import settings
from folio.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)

class ClaudeClient:
    """Anthropic Messages API client. Accepts PDF documents alongside the prompt."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = api_key or settings.ANTHROPIC_API_KEY
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self.base_url = "https://api.anthropic.com/v1/messages"
        self.headers = {
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json"
        }
        self.model = model or settings.ANTHROPIC_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        logger.info(f"Initialized ClaudeClient with model: {self.model}")

    @staticmethod
    def _build_content(user_prompt: str, document_base64: Optional[str]) -> Any:
        if not document_base64:
            return user_prompt
        content: List[Dict[str, Any]] = [
            {"type": "text", "text": user_prompt},
            {
                "type": "document",
                "source": {
                    "type": "base64",
                    "media_type": "application/pdf",
                    "data": document_base64,
                },
            },
        ]
        return content

    async def _send_request(
        self,
        system_prompt: str,
        user_prompt: str,
        document_base64: Optional[str] = None,
        max_tokens: int = 4096,
    ) -> str:
        """Send a request to the Claude API and return the concatenated text blocks."""
        logger.info(f"Sending request to Claude API with model: {self.model} (document={'yes' if document_base64 else 'no'})")
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": self._build_content(user_prompt, document_base64),
                }
            ],
            "max_tokens": max_tokens,
        }
        if system_prompt:
            body["system"] = system_prompt

        async with httpx.AsyncClient() as client:
            response = await client.post(
                self.base_url,
                headers=self.headers,
                json=body,
                timeout=self.timeout,
            )

        if response.status_code != 200:
            logger.error(f"API request failed with status code {response.status_code}: {response.text[:500]}")
            raise UpstreamError(f"Claude API request failed with status code {response.status_code}")

        result = response.json()
        content = "".join(
            block.get("text", "") for block in result.get("content", []) if block.get("type") == "text"
        )
        logger.info(f"Received response from Claude API (first 100 chars): {content[:100]}...")
        return content
