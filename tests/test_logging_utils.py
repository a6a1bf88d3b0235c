import logging
from unittest.mock import MagicMock, patch

from webapp.utils.logging_utils import ActivityPanel, StreamlitLogHandler, format_log_line, render_system_messages


class TestFormatLogLine:
    def test_prefixed_message(self):
        line = "2025-01-02 10:11:12,345 - analysis.evidence_processor - INFO - [EVIDENCE] Processed evidence 3: manual"
        assert format_log_line(line) == "10:11:12 INFO EVIDENCE: Processed evidence 3: manual"

    def test_logger_name_as_source(self):
        line = "2025-01-02 10:11:12,345 - core.auth - WARNING - Something odd"
        assert format_log_line(line) == "10:11:12 WARNING auth: Something odd"

    def test_info_truncated(self):
        line = "2025-01-02 10:11:12,345 - api.app - INFO - " + "x" * 150
        assert format_log_line(line).endswith("x" * 100 + "...")

    def test_unstructured_line(self):
        assert format_log_line("plain") == "plain"
        assert format_log_line("y" * 200) == "y" * 150 + "..."


class TestActivityPanel:
    def test_keeps_recent_logs(self):
        container = MagicMock()
        panel = ActivityPanel(container, max_logs=3)

        for i in range(5):
            panel.add_log(f"line {i}")

        assert panel.logs == ["line 2", "line 3", "line 4"]
        html = container.html.call_args.args[0]
        assert "line 4" in html

    def test_show_escapes_and_truncates(self):
        container = MagicMock()
        panel = ActivityPanel(container)

        panel.show("<b>" + "a" * 200, emoji="🔍")

        assert len(panel.current_message) == 120
        assert "&lt;b&gt;" in container.html.call_args.args[0]

    def test_clear(self):
        container = MagicMock()
        panel = ActivityPanel(container)
        panel.add_log("line")

        panel.clear()

        container.empty.assert_called_once()
        assert panel.container is None
        assert panel.logs == []


class TestStreamlitLogHandler:
    @patch('webapp.utils.logging_utils._has_script_context', return_value=True)
    def test_mirrors_records(self, mock_ctx):
        panel = ActivityPanel(MagicMock())
        handler = StreamlitLogHandler(panel)
        handler.setFormatter(logging.Formatter('%(message)s'))

        handler.emit(logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None))

        assert panel.logs == ["hello"]

    @patch('webapp.utils.logging_utils._has_script_context', return_value=False)
    def test_ignores_background_threads(self, mock_ctx):
        panel = ActivityPanel(MagicMock())
        handler = StreamlitLogHandler(panel)

        handler.emit(logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None))

        assert panel.logs == []


class TestRenderSystemMessages:
    def test_empty(self):
        container = MagicMock()
        render_system_messages([], container)
        container.caption.assert_called_once_with("No AI activity yet.")

    def test_entries(self):
        container = MagicMock()
        render_system_messages([
            {"type": "system", "message": "Brand Brain analysis complete!", "createdAt": "2025-01-02T10:11:12"},
            {"type": "other", "message": "Queued"},
        ], container)

        calls = [c.args[0] for c in container.markdown.call_args_list]
        assert calls[0] == "🤖 `10:11:12` Brand Brain analysis complete!"
        assert calls[1] == "• `` Queued"
