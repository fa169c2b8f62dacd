# File: backend/folio/llm/resume_parser.py
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from folio.core.config import settings
from folio.core.exceptions import UpstreamError
from folio.llm.claude_client import ClaudeClient
from folio.llm.openai_client import OpenAIClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """
You are an expert resume analyzer. Your task is to turn a resume into the data for a personal portfolio website.
Return the results as a single valid JSON object with no additional text.
"""

RESUME_PROMPT = """
Extract the following sections from the resume and return them as ONE JSON object with these top-level keys:

{
  "header": { "name": string, "tagline"?: string, "displayPicture"?: string },
  "about": { "markdown": string },
  "experience": [ { "company": string, "role": string, "location"?: string, "start": string, "end"?: string, "highlights"?: string[] } ],
  "education": [ { "institution": string, "degree"?: string, "start": string, "end"?: string } ],
  "skills": string[],
  "socials": [ { "platform": string, "url": string } ],
  "footer": { "text": string }
}

Rules:
- Dates use YYYY or YYYY-MM. Leave "end" out for a current position.
- "about.markdown" is a short first-person summary written in markdown.
- "tagline" is a one-line professional headline.
- Leave a key out entirely if the resume has nothing for it. Do not invent data.

Return ONLY the JSON object.
"""


@dataclass
class ResumeContent:
    """Raw resume payload: plain text, or a base64-encoded binary document."""

    text: Optional[str] = None
    document_base64: Optional[str] = None

    @property
    def is_binary(self) -> bool:
        return bool(self.document_base64)


class ResumeParser:
    """
    Sends a resume to a text-generation provider and returns its raw answer.

    Binary documents go to Claude (which accepts PDF input); plain text goes
    to OpenAI. Each call is bounded by LLM_TIMEOUT_SECONDS.
    """

    def __init__(
        self,
        claude_client: Optional[ClaudeClient] = None,
        openai_client: Optional[OpenAIClient] = None,
        timeout: Optional[float] = None,
    ):
        self._claude = claude_client
        self._openai = openai_client
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS

    def _claude_client(self) -> ClaudeClient:
        if self._claude is None:
            self._claude = ClaudeClient()
        return self._claude

    def _openai_client(self) -> OpenAIClient:
        if self._openai is None:
            self._openai = OpenAIClient()
        return self._openai

    async def _call(self, content: ResumeContent) -> str:
        if content.is_binary:
            return await self._claude_client()._send_request(
                SYSTEM_PROMPT, RESUME_PROMPT, document_base64=content.document_base64
            )
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": f"{RESUME_PROMPT}\nResume:\n{content.text}"},
        ]
        return await self._openai_client()._send_request(messages)

    async def parse(self, content: ResumeContent) -> str:
        provider = "claude" if content.is_binary else "openai"
        logger.info(f"Parsing resume with {provider}")
        try:
            return await asyncio.wait_for(self._call(content), timeout=self.timeout)
        except UpstreamError:
            raise
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error(f"Resume parsing timed out after {self.timeout}s")
            raise UpstreamError("Resume parsing timed out") from e
        except ValueError as e:
            # Missing API key or an unreadable provider response body
            logger.error(f"Resume parsing failed with {provider}: {e}")
            raise UpstreamError("Resume parsing is not available") from e
        except httpx.HTTPError as e:
            logger.error(f"Error calling {provider}: {e}")
            raise UpstreamError("Failed to reach the resume parsing service") from e
