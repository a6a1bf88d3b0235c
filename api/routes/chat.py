import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from analysis.onboarding_chat import stream_onboarding_reply
from api.deps import get_engine, get_llm_client, get_workspace

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api/brands/{slug}/onboarding', tags=['chat'])


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    context: Any = None
    step: Literal[
        'intro', 'collecting_evidence', 'waiting_for_analysis', 'analyzing', 'reviewing_brand_brain', 'complete'
    ]


@router.post('/chat')
def chat(body: ChatRequest, request: Request, workspace=Depends(get_workspace), engine=Depends(get_engine)):
    logger.info(f'[CHAT] {workspace.slug} at step {body.step}')
    reply = stream_onboarding_reply(
        workspace, body.message, body.step, body.context,
        engine=engine, client=get_llm_client(request),
    )
    return StreamingResponse(
        reply,
        media_type='text/plain; charset=utf-8',
        headers={'Cache-Control': 'no-cache'},
    )
