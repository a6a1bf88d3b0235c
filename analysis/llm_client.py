"""
Multi-provider LLM ChatClient for onboarding chat and brand analysis.

Supports: OpenAI (default), Anthropic Claude, DeepSeek.
Provider is chosen from the model name; clients are created lazily.
"""

import logging
import threading
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional

from config.settings import SETTINGS, get_secret

try:
    from openai import OpenAI
    OPENAI_AVAILABLE = True
except ImportError:
    OpenAI = None
    OPENAI_AVAILABLE = False

try:
    from anthropic import Anthropic
    ANTHROPIC_AVAILABLE = True
except ImportError:
    Anthropic = None
    ANTHROPIC_AVAILABLE = False

logger = logging.getLogger(__name__)

CHAT_ERROR_MESSAGES = {
    429: 'Rate limit exceeded. Please try again later.',
    401: 'Invalid API key. Please check your OpenAI configuration.',
    503: 'OpenAI service is temporarily unavailable.',
}
CHAT_ERROR_DEFAULT = 'Failed to generate AI response'

ANALYSIS_RATE_LIMIT_MESSAGE = 'Analysis rate limit exceeded. Please try again later.'
ANALYSIS_ERROR_DEFAULT = 'Failed to perform brand analysis'

STREAM_ERROR_TEXT = 'Error generating response.'


class LLMServiceError(Exception):
    """LLM call failed; ``message`` is safe to show to users."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class LLMProvider(Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    DEEPSEEK = "deepseek"


def _status_of(error: Exception) -> Optional[int]:
    return getattr(error, 'status_code', None) or getattr(error, 'status', None)


def map_chat_error(error: Exception) -> LLMServiceError:
    status = _status_of(error)
    return LLMServiceError(CHAT_ERROR_MESSAGES.get(status, CHAT_ERROR_DEFAULT), status)


def map_analysis_error(error: Exception) -> LLMServiceError:
    status = _status_of(error)
    message = ANALYSIS_RATE_LIMIT_MESSAGE if status == 429 else ANALYSIS_ERROR_DEFAULT
    return LLMServiceError(message, status)


def _record_usage(model: str, usage: Dict[str, int], operation: str):
    # Looked up at call time so tests can swap the tracker
    from analysis.cost_tracker import cost_tracker
    if usage:
        cost_tracker.record(model, usage.get('prompt_tokens', 0), usage.get('completion_tokens', 0), operation)


class ChatClient:
    """Multi-provider chat client for LLM text generation."""

    PROVIDER_PATTERNS = {
        LLMProvider.ANTHROPIC: ['claude-'],
        LLMProvider.DEEPSEEK: ['deepseek-'],
        LLMProvider.OPENAI: ['gpt-', 'o1-', 'o3-', 'text-'],
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        default_model: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        deepseek_api_key: Optional[str] = None
    ):
        self.default_model = default_model or SETTINGS.get('openai_model', 'gpt-4o')
        self._openai_client = None
        self._anthropic_client = None
        self._deepseek_client = None

        self.openai_api_key = api_key or get_secret('OPENAI_API_KEY')
        self.anthropic_api_key = anthropic_api_key or get_secret('ANTHROPIC_API_KEY')
        self.deepseek_api_key = deepseek_api_key or get_secret('DEEPSEEK_API_KEY')

    def _detect_provider(self, model: str) -> LLMProvider:
        for provider, patterns in self.PROVIDER_PATTERNS.items():
            if any(model.startswith(p) for p in patterns):
                return provider
        return LLMProvider.OPENAI

    @property
    def openai_client(self):
        if self._openai_client is None:
            if not OPENAI_AVAILABLE:
                raise ImportError("openai package not installed")
            if not self.openai_api_key:
                raise LLMServiceError('OPENAI_API_KEY is not configured')
            self._openai_client = OpenAI(api_key=self.openai_api_key)
        return self._openai_client

    @property
    def anthropic_client(self):
        if self._anthropic_client is None:
            if not ANTHROPIC_AVAILABLE:
                raise ImportError("anthropic package not installed")
            if not self.anthropic_api_key:
                raise LLMServiceError('ANTHROPIC_API_KEY is not configured')
            self._anthropic_client = Anthropic(api_key=self.anthropic_api_key)
        return self._anthropic_client

    @property
    def deepseek_client(self):
        if self._deepseek_client is None:
            if not OPENAI_AVAILABLE:
                raise ImportError("openai package not installed")
            if not self.deepseek_api_key:
                raise LLMServiceError('DEEPSEEK_API_KEY is not configured')
            self._deepseek_client = OpenAI(api_key=self.deepseek_api_key, base_url="https://api.deepseek.com")
        return self._deepseek_client

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def chat(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.3,
        operation: str = 'chat',
        **kwargs
    ) -> Dict[str, Any]:
        """Send a chat completion request to the provider for ``model``.

        Token usage is booked in the cost tracker under ``operation``.

        Returns:
            dict with content, text, model, provider and usage keys
        """
        model = model or self.default_model
        provider = self._detect_provider(model)

        dispatch = {
            LLMProvider.OPENAI: self._chat_openai,
            LLMProvider.ANTHROPIC: self._chat_anthropic,
            LLMProvider.DEEPSEEK: self._chat_deepseek,
        }

        try:
            result = dispatch[provider](messages, model, max_tokens, temperature, **kwargs)
        except Exception as e:
            logger.error(f"[LLM] Chat error ({provider.value}/{model}): {e}")
            raise
        _record_usage(model, result.get('usage'), operation)
        return result

    def stream(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> Iterable:
        """Start a streaming completion.

        The request is sent before this returns so connection and auth errors
        surface here rather than mid-iteration. OpenAI-compatible providers
        return their chunk stream; Anthropic returns text deltas.
        """
        model = model or self.default_model
        provider = self._detect_provider(model)

        if provider == LLMProvider.ANTHROPIC:
            system_msg, conv = self._split_system(messages)
            api_kwargs = {'model': model, 'max_tokens': max_tokens, 'temperature': temperature,
                          'messages': conv, 'stream': True}
            if system_msg:
                api_kwargs['system'] = system_msg
            events = self.anthropic_client.messages.create(**api_kwargs)
            return _anthropic_text_deltas(events)

        client = self.deepseek_client if provider == LLMProvider.DEEPSEEK else self.openai_client
        return client.chat.completions.create(
            model=model, messages=messages, max_tokens=max_tokens, temperature=temperature, stream=True
        )

    # ------------------------------------------------------------------
    # Provider implementations
    # ------------------------------------------------------------------
    @staticmethod
    def _split_system(messages):
        system_parts = []
        conv = []
        for m in messages:
            if m['role'] == 'system':
                system_parts.append(m['content'])
            else:
                conv.append({'role': m['role'], 'content': m['content']})
        system_msg = '\n\n'.join(system_parts) or None
        if not conv and system_msg:
            conv = [{'role': 'user', 'content': system_msg}]
            system_msg = None
        return system_msg, conv

    def _chat_openai(self, messages, model, max_tokens, temperature, **kwargs):
        response = self.openai_client.chat.completions.create(
            model=model, messages=messages, max_tokens=max_tokens, temperature=temperature, **kwargs
        )
        return self._openai_result(response, model, 'openai')

    def _chat_deepseek(self, messages, model, max_tokens, temperature, **kwargs):
        response = self.deepseek_client.chat.completions.create(
            model=model, messages=messages, max_tokens=max_tokens, temperature=temperature, **kwargs
        )
        return self._openai_result(response, model, 'deepseek')

    @staticmethod
    def _openai_result(response, model, provider):
        content = response.choices[0].message.content or ''
        usage = getattr(response, 'usage', None)
        return {
            'content': content, 'text': content, 'model': model, 'provider': provider,
            'usage': {'prompt_tokens': getattr(usage, 'prompt_tokens', 0) or 0,
                      'completion_tokens': getattr(usage, 'completion_tokens', 0) or 0,
                      'total_tokens': getattr(usage, 'total_tokens', 0) or 0} if usage else {}
        }

    def _chat_anthropic(self, messages, model, max_tokens, temperature, **kwargs):
        system_msg, conv = self._split_system(messages)
        api_kwargs = {'model': model, 'max_tokens': max_tokens, 'temperature': temperature, 'messages': conv, **kwargs}
        if system_msg:
            api_kwargs['system'] = [{"type": "text", "text": system_msg}]

        response = self.anthropic_client.messages.create(**api_kwargs)
        content = response.content[0].text if response.content else ''
        usage = getattr(response, 'usage', None)
        input_tokens = getattr(usage, 'input_tokens', 0) or 0
        output_tokens = getattr(usage, 'output_tokens', 0) or 0
        return {
            'content': content, 'text': content, 'model': model, 'provider': 'anthropic',
            'usage': {'prompt_tokens': input_tokens, 'completion_tokens': output_tokens,
                      'total_tokens': input_tokens + output_tokens} if usage else {}
        }


def _anthropic_text_deltas(events) -> Iterator[str]:
    for event in events:
        if getattr(event, 'type', None) == 'content_block_delta':
            text = getattr(event.delta, 'text', None)
            if text:
                yield text


# ---------------------------------------------------------------------------
# Module-level helpers used by the pipeline
# ---------------------------------------------------------------------------

_CLIENT: Optional[ChatClient] = None
_CLIENT_LOCK = threading.Lock()


def get_client() -> ChatClient:
    """Process-wide ChatClient configured from secrets."""
    global _CLIENT
    with _CLIENT_LOCK:
        if _CLIENT is None:
            _CLIENT = ChatClient()
    return _CLIENT


def create_chat_completion(
    messages: List[Dict[str, str]],
    stream: bool = True,
    client: Optional[ChatClient] = None,
    model: Optional[str] = None,
):
    """Chat completion with onboarding defaults.

    Returns the chunk stream when ``stream`` is set, otherwise the ``chat()``
    result dict.

    Raises:
        LLMServiceError: with a user-facing message mapped from the provider status
    """
    client = client or get_client()
    max_tokens = SETTINGS.get('chat_max_tokens', 1000)
    temperature = SETTINGS.get('chat_temperature', 0.7)
    try:
        if stream:
            return client.stream(messages, model=model, max_tokens=max_tokens, temperature=temperature)
        return client.chat(messages, model=model, max_tokens=max_tokens, temperature=temperature)
    except LLMServiceError:
        raise
    except Exception as e:
        logger.error('[LLM] Chat completion error: %s', e)
        raise map_chat_error(e) from e


def create_analysis_completion(
    system_prompt: str,
    user_prompt: str,
    max_tokens: Optional[int] = None,
    temperature: Optional[float] = None,
    client: Optional[ChatClient] = None,
    model: Optional[str] = None,
) -> str:
    """Single-shot analysis call. Returns the message content or ''."""
    client = client or get_client()
    messages = [
        {'role': 'system', 'content': system_prompt},
        {'role': 'user', 'content': user_prompt},
    ]
    try:
        result = client.chat(
            messages,
            model=model,
            max_tokens=max_tokens if max_tokens is not None else SETTINGS.get('analysis_max_tokens', 2000),
            temperature=temperature if temperature is not None else SETTINGS.get('analysis_temperature', 0.3),
            operation='evidence_analysis',
        )
    except LLMServiceError:
        raise
    except Exception as e:
        logger.error('[LLM] Analysis completion error: %s', e)
        raise map_analysis_error(e) from e
    return result.get('content') or ''


def stream_text(stream: Iterable) -> Iterator[str]:
    """Yield non-empty text deltas from a completion stream.

    A failure mid-stream yields a short error line and ends the stream.
    """
    try:
        for chunk in stream:
            if isinstance(chunk, str):
                content = chunk
            else:
                choices = getattr(chunk, 'choices', None) or []
                delta = getattr(choices[0], 'delta', None) if choices else None
                content = getattr(delta, 'content', None) or ''
            if content:
                yield content
    except Exception as e:
        logger.error('[LLM] Stream error: %s', e)
        yield STREAM_ERROR_TEXT
