"""
In-memory AI conversation threads, one per brand workspace.
"""

import logging
import random
import string
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from analysis.llm_client import ChatClient, LLMServiceError, create_chat_completion, stream_text

logger = logging.getLogger(__name__)

PROGRESS_LINES = [
    "I'm analyzing your brand information...",
    "Looking at the patterns and signals...",
    "Synthesizing the key insights...",
    "Formulating strategic recommendations...",
    "Almost done processing...",
]
FINAL_LINE = 'Analysis complete. Ready to build your Brand Brain.'


@dataclass
class ThreadMessage:
    role: str
    content: str
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass
class AIThread:
    id: str
    workspace_id: str
    messages: List[ThreadMessage] = field(default_factory=list)
    context: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


def _new_thread_id() -> str:
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f'thread_{int(time.time() * 1000)}_{suffix}'


class ThreadManager:
    """Thread store guarded by a lock; nothing is persisted."""

    def __init__(self, progress_delay: float = 0.3):
        self._threads: Dict[str, AIThread] = {}
        self._lock = threading.Lock()
        self.progress_delay = progress_delay

    def init_thread(self, workspace_id) -> str:
        thread_id = _new_thread_id()
        thread = AIThread(id=thread_id, workspace_id=str(workspace_id))
        thread.messages.append(ThreadMessage(
            role='system',
            content=(
                f'You are a brand strategy AI helping with onboarding for workspace {workspace_id}. '
                'Be helpful, insightful, and professional.'
            ),
        ))
        with self._lock:
            self._threads[thread_id] = thread
        logger.debug(f'[THREAD] Created {thread_id} for workspace {workspace_id}')
        return thread_id

    def get(self, thread_id: str) -> Optional[AIThread]:
        with self._lock:
            return self._threads.get(thread_id)

    def append(self, thread_id: str, role: str, content: str):
        with self._lock:
            thread = self._threads.get(thread_id)
            if thread is None:
                raise KeyError('Thread not found')
            thread.messages.append(ThreadMessage(role=role, content=content))
            thread.updated_at = datetime.utcnow()

    def messages(self, thread_id: str) -> List[Dict[str, str]]:
        with self._lock:
            thread = self._threads.get(thread_id)
            if thread is None:
                raise KeyError('Thread not found')
            return [{'role': m.role, 'content': m.content} for m in thread.messages]

    def stream_response(self, thread_id: str, prompt: str, client: Optional[ChatClient] = None) -> Iterator[str]:
        """Append ``prompt`` and stream the assistant reply.

        Without a working model the canned progress lines are streamed instead.
        """
        self.append(thread_id, 'user', prompt)

        try:
            stream = create_chat_completion(self.messages(thread_id), stream=True, client=client)
        except (LLMServiceError, ImportError) as e:
            logger.warning(f'[THREAD] Model unavailable for {thread_id}: {e}')
            for line in PROGRESS_LINES:
                yield line
                if self.progress_delay:
                    time.sleep(self.progress_delay)
            yield FINAL_LINE
            self.append(thread_id, 'assistant', FINAL_LINE)
            return

        parts = []
        for text in stream_text(stream):
            parts.append(text)
            yield text
        self.append(thread_id, 'assistant', ''.join(parts))


thread_manager = ThreadManager()
