"""
Activity panel and log handler for the Streamlit console
"""
import html as html_module
import logging
import re
from typing import Dict, List, Optional

import streamlit as st
from streamlit.errors import NoSessionContext

LOG_LINE_RE = re.compile(
    r'^(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2}[.,]\d{3})\s*-\s*(\S+)\s*-\s*(\w+)\s*-\s*(.+)$',
    re.DOTALL,
)
PREFIX_RE = re.compile(r'^\[([A-Z][A-Z_-]*)\]')

SYSTEM_EMOJI = {
    'system': '🤖',
    'insight': '💡',
    'action': '➡️',
}


def _has_script_context() -> bool:
    """False when called from a worker thread without a Streamlit run context."""
    try:
        from streamlit.runtime.scriptrunner_utils.script_run_context import get_script_run_ctx
    except ImportError:
        from streamlit.runtime.scriptrunner.script_run_context import get_script_run_ctx
    return get_script_run_ctx(suppress_warning=True) is not None


class StreamlitLogHandler(logging.Handler):
    """
    Logging handler that mirrors records into an ActivityPanel.
    """

    def __init__(self, panel):
        super().__init__()
        self.panel = panel

    def emit(self, record):
        if not self.panel or not self.panel.container:
            return

        try:
            # Background evidence tasks log from threads with no session
            if not _has_script_context():
                return
            self.panel.add_log(self.format(record))
        except NoSessionContext:
            pass
        except Exception as e:
            if "Event loop is closed" in str(e):
                return
            self.handleError(record)


class ActivityPanel:
    """
    Live activity feed: the current step, the latest log lines and the
    persisted AI system messages of a workspace.
    """

    def __init__(self, container=None, max_logs: int = 50):
        self.container = container if container is not None else st.empty()
        self.current_message = None
        self.current_emoji = None
        self.logs: List[str] = []
        self.max_logs = max_logs

    def add_log(self, message: str):
        self.logs.append(message)
        if len(self.logs) > self.max_logs:
            self.logs = self.logs[-self.max_logs:]
        self._render()

    def show(self, message: str, emoji: str = "🧠"):
        """
        Set the headline step shown above the log lines.

        Args:
            message: Step description; long text is cut to 120 chars
            emoji: Icon shown next to the message
        """
        if len(message) > 120:
            message = message[:117] + "..."
        self.current_message = message
        self.current_emoji = emoji
        self._render()

    def _render(self):
        if not self.container:
            return

        entries = ''.join(
            f'<div class="activity-log-entry">{html_module.escape(format_log_line(line))}</div>'
            for line in self.logs[-5:]
        )
        headline = ''
        if self.current_message:
            headline = (
                f'<div class="activity-item"><span class="activity-emoji">'
                f'{html_module.escape(self.current_emoji or "")}</span>'
                f'<span>{html_module.escape(self.current_message)}</span></div>'
            )

        try:
            self.container.html(f'<div class="activity-container">{headline}{entries}</div>')
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise

    def clear(self):
        if self.container:
            self.container.empty()
        self.container = None
        self.current_message = None
        self.current_emoji = None
        self.logs = []


def format_log_line(line: str) -> str:
    """
    Shorten a formatted log line for the panel.

    Warnings and errors keep up to 200 chars of message, everything else 100;
    the timestamp is reduced to the time of day.
    """
    match = LOG_LINE_RE.match(line)
    if not match:
        return line if len(line) <= 150 else line[:150] + "..."

    timestamp, logger_name, level, message = match.groups()
    limit = 200 if level in ('WARNING', 'ERROR', 'CRITICAL') else 100
    if len(message) > limit:
        message = message[:limit] + "..."
    prefix = PREFIX_RE.match(message)
    source = prefix.group(1) if prefix else logger_name.rsplit('.', 1)[-1]
    if prefix:
        message = message[prefix.end():].lstrip()
    return f"{timestamp.split()[-1][:8]} {level} {source}: {message}"


def render_system_messages(messages: List[Dict], container=None, limit: Optional[int] = 20):
    """Show persisted AiLog entries (newest first) as a compact list."""
    target = container or st
    if not messages:
        target.caption("No AI activity yet.")
        return
    for entry in messages[:limit]:
        emoji = SYSTEM_EMOJI.get(entry.get('type'), '•')
        created = (entry.get('createdAt') or '')[11:19]
        target.markdown(f"{emoji} `{created}` {entry.get('message', '')}")
