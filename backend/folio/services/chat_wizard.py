"""
Conversational onboarding. Streams the assistant's questions as SSE and,
once the assistant answers with a fenced ```json block, saves it through
the bulk JSON import.

Architecture:
  1. System prompt (with the user's name / avatar defaults) + client history
  2. Stream the assistant reply, yielding text chunks as they arrive
  3. On completion, look for a fenced JSON block in the accumulated reply
  4. If present → save_portfolio_from_json → "saved" (or "error") event
"""

import json
import logging
from typing import AsyncGenerator, Dict, List, Optional

from folio.core.exceptions import MalformedResponse, PortfolioError
from folio.db import models
from folio.llm.openai_client import OpenAIClient
from folio.llm.response_parsing import extract_fenced_json
from folio.services.json_import import save_portfolio_from_json
from folio.services.portfolio_store import PortfolioStore

logger = logging.getLogger(__name__)

MAX_HISTORY_MESSAGES = 40

SAVED_MESSAGE = "All set! Your portfolio has been saved. You can head over to the dashboard to preview it."


def wizard_system_prompt(name: Optional[str] = None, avatar: Optional[str] = None) -> str:
    default_name = name or "Your Name"
    default_avatar = f'"{avatar}"' if avatar else "null"
    return f"""You are an onboarding assistant that gathers information from users to generate their portfolio JSON.
Ask questions one by one in a friendly tone to collect the following sections:
1. Header – name (default: {default_name}), optional tagline, optional displayPicture URL (default: {default_avatar}).
2. About – markdown text describing the user.
3. Experience – up to 3 items, each with company, role, location (optional), start (YYYY or YYYY-MM), end (optional).
4. Education – up to 3 items with institution, degree (optional), start (YYYY), end (optional).
5. Skills – a comma-separated list.
6. Socials – up to 5 items with platform and url.
7. Footer – text shown in footer.

If the user doesn't provide a name, use "{default_name}". If they don't provide a display picture, use {default_avatar}.

After you have gathered all answers, respond **once** with ONLY a JSON object of this shape:
{{
  "header": {{ "name": string, "tagline"?: string, "displayPicture"?: string }},
  "about": {{ "markdown": string }},
  "experience": [ {{ "company": string, "role": string, "location"?: string, "start": string, "end"?: string }} ],
  "education": [ {{ "institution": string, "degree"?: string, "start": string, "end"?: string }} ],
  "skills": string[],
  "socials": [ {{ "platform": string, "url": string }} ],
  "footer": {{ "text": string }}
}}

Wrap the JSON inside a fenced code block labelled as JSON so that it can be extracted easily."""


def _sse(data: dict) -> str:
    """Format a dict as an SSE data line."""
    return f"data: {json.dumps(data)}\n\n"


def build_messages(history: List[Dict[str, str]], name: Optional[str], avatar: Optional[str]) -> List[Dict[str, str]]:
    """System prompt + the client-held conversation (system turns from the client are dropped)."""
    turns = [m for m in history if m.get("role") in ("user", "assistant")]
    return [{"role": "system", "content": wizard_system_prompt(name, avatar)}] + turns[-MAX_HISTORY_MESSAGES:]


def save_from_reply(store: PortfolioStore, user: models.User, reply: str) -> Optional[List[str]]:
    """
    Save the portfolio if the final assistant reply carries a fenced JSON block.

    Returns the saved section kinds, or None when the reply has no JSON block.
    """
    try:
        data = extract_fenced_json(reply)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Failed to parse JSON from response: {e.msg}") from e
    if data is None:
        return None
    parsed = save_portfolio_from_json(store, user, data)
    return parsed.kinds


async def run_wizard_turn(
    client: OpenAIClient,
    store: PortfolioStore,
    user: models.User,
    history: List[Dict[str, str]],
    avatar: Optional[str] = None,
) -> AsyncGenerator[str, None]:
    """Stream one assistant turn as SSE events, then run the completion hook."""
    messages = build_messages(history, user.name, avatar)

    chunks: List[str] = []
    try:
        async for chunk in client._stream_request(messages):
            chunks.append(chunk)
            yield _sse({"type": "text", "content": chunk})
    except Exception as e:
        logger.error(f"Chat wizard stream failed: {e}")
        yield _sse({"type": "error", "error": "I encountered an error. Please try again."})
        yield _sse({"type": "done"})
        return

    reply = "".join(chunks)
    try:
        saved = save_from_reply(store, user, reply)
    except PortfolioError as e:
        logger.warning(f"Chat wizard could not save portfolio: {e.message}")
        yield _sse({"type": "error", "error": e.message})
    except Exception as e:
        logger.error(f"Chat wizard failed to save portfolio for user {user.id}: {e}")
        yield _sse({"type": "error", "error": "I couldn't save your portfolio. Please try again."})
    else:
        if saved is not None:
            logger.info(f"Chat wizard saved sections {saved} for user {user.id}")
            yield _sse({"type": "saved", "sections": saved, "content": SAVED_MESSAGE})

    yield _sse({"type": "done"})
