"""
Onboarding assistant replies.

Builds the step-aware system prompt from the workspace's evidence and Brand
Brain and streams the model's answer; when the model cannot be reached the
canned guidance for the step is returned instead.
"""

import logging
from typing import Any, Iterator, Optional

from analysis.llm_client import ChatClient, create_chat_completion, stream_text
from config.settings import SETTINGS
from data import store
from data.models import BrainStatus, EvidenceStatus
from prompts.onboarding_chat import (
    build_chat_system_prompt,
    build_evidence_context,
    build_fallback_assistant_message,
    get_onboarding_guide,
)

logger = logging.getLogger(__name__)

ONBOARDING_STEPS = (
    'intro',
    'collecting_evidence',
    'waiting_for_analysis',
    'analyzing',
    'reviewing_brand_brain',
    'complete',
)


def stream_onboarding_reply(
    workspace,
    message: str,
    step: str,
    context: Any = None,
    engine=None,
    client: Optional[ChatClient] = None,
) -> Iterator[str]:
    with store.session_scope(engine) as session:
        store.touch_workspace(session, workspace.id)
        items = store.list_evidence(
            session,
            workspace.slug,
            status=EvidenceStatus.COMPLETE.value,
            limit=SETTINGS.get('chat_evidence_limit', 10),
        )
        brain = store.get_brain_by_slug(session, workspace.slug)
        brain_status = (brain.status if brain else None) or BrainStatus.NOT_STARTED.value
        brain_has_content = bool(brain and brain.has_content())

    system_prompt = build_chat_system_prompt(
        step=step,
        brand_name=workspace.name,
        brand_slug=workspace.slug,
        guide=get_onboarding_guide(step, len(items), brain_status, brain_has_content),
        evidence_context=build_evidence_context(items),
        evidence_count=len(items),
        brain_status=brain_status,
        brain_has_content=brain_has_content,
        message=message,
        context=context,
    )
    messages = [
        {'role': 'system', 'content': system_prompt},
        {'role': 'user', 'content': message},
    ]

    try:
        stream = create_chat_completion(messages, stream=True, client=client)
    except Exception as e:
        logger.error(f'[CHAT] Streaming error for {workspace.slug}: {e}')
        yield build_fallback_assistant_message(step, len(items))
        return

    yield from stream_text(stream)
