import pytest
from unittest.mock import MagicMock

from analysis.llm_client import LLMServiceError
from analysis.threads import FINAL_LINE, PROGRESS_LINES, ThreadManager


@pytest.fixture
def manager():
    return ThreadManager(progress_delay=0)


class TestThreadManager:
    def test_init_thread(self, manager):
        thread_id = manager.init_thread(42)

        assert thread_id.startswith("thread_")
        assert len(thread_id.rsplit("_", 1)[1]) == 9
        thread = manager.get(thread_id)
        assert thread.workspace_id == "42"
        assert thread.messages[0].role == "system"
        assert "workspace 42" in thread.messages[0].content

    def test_thread_ids_are_unique(self, manager):
        assert manager.init_thread(1) != manager.init_thread(1)

    def test_unknown_thread(self, manager):
        assert manager.get("thread_missing") is None
        with pytest.raises(KeyError):
            manager.append("thread_missing", "user", "hi")
        with pytest.raises(KeyError):
            manager.messages("thread_missing")

    def test_append_and_messages(self, manager):
        thread_id = manager.init_thread(1)
        manager.append(thread_id, "user", "Hello")

        messages = manager.messages(thread_id)
        assert messages[-1] == {"role": "user", "content": "Hello"}
        assert len(messages) == 2


class TestStreamResponse:
    def test_streams_model_reply(self, manager):
        client = MagicMock()
        client.stream.return_value = iter(["Your brand ", "is bold."])
        thread_id = manager.init_thread(1)

        chunks = list(manager.stream_response(thread_id, "Summarize my brand", client=client))

        assert chunks == ["Your brand ", "is bold."]
        sent = client.stream.call_args.args[0]
        assert sent[-1] == {"role": "user", "content": "Summarize my brand"}
        assert manager.messages(thread_id)[-1] == {"role": "assistant", "content": "Your brand is bold."}

    def test_progress_lines_without_model(self, manager):
        client = MagicMock()
        client.stream.side_effect = LLMServiceError("OpenAI API key not configured")
        thread_id = manager.init_thread(1)

        chunks = list(manager.stream_response(thread_id, "Analyze", client=client))

        assert chunks == PROGRESS_LINES + [FINAL_LINE]
        assert manager.messages(thread_id)[-1]["content"] == FINAL_LINE

    def test_unknown_thread_raises(self, manager):
        with pytest.raises(KeyError):
            list(manager.stream_response("thread_missing", "hi", client=MagicMock()))
