"""
Chat endpoints: a thin chat proxy (PDF questions go to Claude, everything
else to OpenAI) and the onboarding wizard that ends in a saved portfolio.
"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from folio.api.deps import get_claude_client, get_openai_client, get_store
from folio.core.exceptions import PortfolioError
from folio.core.supabase_auth import get_current_user
from folio.db import models
from folio.llm.openai_client import OpenAIClient
from folio.schemas.chat import ChatRequest, WizardRequest
from folio.services.chat_wizard import run_wizard_turn
from folio.services.portfolio_store import PortfolioStore

router = APIRouter()
logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def _stream_chat(client: OpenAIClient, messages):
    try:
        async for chunk in client._stream_request(messages):
            yield f"data: {json.dumps({'type': 'text', 'content': chunk})}\n\n"
    except Exception as e:
        logger.error(f"Chat stream failed: {e}")
        yield f"data: {json.dumps({'type': 'error', 'error': 'Failed to process chat request'})}\n\n"
    yield f"data: {json.dumps({'type': 'done'})}\n\n"


@router.post("")
async def chat(
    body: ChatRequest,
    current_user: models.User = Depends(get_current_user),
):
    if not body.messages:
        raise HTTPException(status_code=400, detail="No messages provided")

    messages = [m.model_dump() for m in body.messages]

    try:
        if body.pdf_base64:
            claude = get_claude_client()
            system_prompt = next((m["content"] for m in messages if m["role"] == "system"), "")
            last_user = next((m["content"] for m in reversed(messages) if m["role"] == "user"), "")
            content = await claude._send_request(system_prompt, last_user, document_base64=body.pdf_base64)
            return {"content": content}

        client = get_openai_client()
        if body.stream:
            return StreamingResponse(
                _stream_chat(client, messages),
                media_type="text/event-stream",
                headers=SSE_HEADERS,
            )
        content = await client._send_request(messages)
        return {"content": content}
    except HTTPException:
        raise
    except PortfolioError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Chat request failed for user {current_user.id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to process chat request")


@router.post("/wizard")
async def chat_wizard(
    body: WizardRequest,
    current_user: models.User = Depends(get_current_user),
    store: PortfolioStore = Depends(get_store),
    client: OpenAIClient = Depends(get_openai_client),
):
    """Stream one onboarding turn; saves the portfolio when the assistant emits its JSON."""
    history = [m.model_dump() for m in body.messages]
    return StreamingResponse(
        run_wizard_turn(client, store, current_user, history, avatar=body.avatar),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
