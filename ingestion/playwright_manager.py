"""Headless browser rendering for JavaScript-heavy brand websites.

The sync Playwright API is not thread-safe, so a single dedicated thread
owns the browser and serves render requests from a queue. Crawlers submit
a URL and block on a per-request result queue.
"""
import atexit
import logging
import queue
import sys
import threading
from typing import Any, Dict, Optional

from config.settings import SETTINGS

logger = logging.getLogger(__name__)

# Optional Playwright import
try:
    from playwright.sync_api import sync_playwright
    _PLAYWRIGHT_AVAILABLE = True
except Exception:
    sync_playwright = None
    _PLAYWRIGHT_AVAILABLE = False

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

LAUNCH_ARGS = [
    '--disable-gpu',
    '--disable-dev-shm-usage',
    '--no-sandbox',
    '--disable-http2',
    '--disable-blink-features=AutomationControlled',
]


def playwright_available() -> bool:
    return _PLAYWRIGHT_AVAILABLE


class PlaywrightBrowserManager:
    """Owns one Chromium instance on a background thread."""

    def __init__(self, headless: Optional[bool] = None):
        self.headless = SETTINGS.get('headless_mode', True) if headless is None else headless
        self._requests: "queue.Queue[Optional[Dict[str, Any]]]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_started(self) -> bool:
        with self._lock:
            return bool(self._thread and self._thread.is_alive())

    def start(self) -> bool:
        """Launch the browser thread. Returns False when Playwright is unavailable."""
        if not _PLAYWRIGHT_AVAILABLE:
            logger.warning('[PLAYWRIGHT] playwright is not installed, rendering disabled')
            return False

        with self._lock:
            if self._thread and self._thread.is_alive():
                return True
            self._thread = threading.Thread(target=self._browser_loop, daemon=True, name="BrainiarkBrowserThread")
            self._thread.start()
        logger.info('[PLAYWRIGHT] Browser thread started (headless=%s)', self.headless)
        return True

    def render(self, url: str, user_agent: str = DEFAULT_USER_AGENT, timeout: float = 20.0) -> Dict[str, Any]:
        """Render ``url`` and return ``{url, title, html, text, error}``."""
        if not self.is_started and not self.start():
            return {"url": url, "title": "", "html": "", "text": "", "error": "Playwright not available"}

        result_queue: "queue.Queue[Dict[str, Any]]" = queue.Queue(maxsize=1)
        self._requests.put({"url": url, "user_agent": user_agent, "timeout": timeout, "result_queue": result_queue})
        try:
            # Navigation timeout plus headroom for page setup
            return result_queue.get(timeout=timeout + 10)
        except queue.Empty:
            logger.warning('[PLAYWRIGHT] Timed out waiting for browser to render %s', url)
            return {"url": url, "title": "", "html": "", "text": "", "error": "Timeout waiting for browser"}

    def close(self) -> None:
        with self._lock:
            thread = self._thread
            if not thread:
                return
            self._requests.put(None)
        thread.join(timeout=2)
        with self._lock:
            self._thread = None

    # ------------------------------------------------------------------
    # Browser thread
    # ------------------------------------------------------------------
    def _browser_loop(self):
        playwright = None
        browser = None
        try:
            playwright = sync_playwright().start()
            browser = playwright.chromium.launch(
                headless=self.headless,
                args=LAUNCH_ARGS,
                handle_sigint=False,
                handle_sigterm=False,
                handle_sighup=False,
            )
            while True:
                task = self._requests.get()
                if task is None:
                    break
                try:
                    if not browser.is_connected():
                        logger.warning('[PLAYWRIGHT] Browser disconnected, relaunching')
                        browser = playwright.chromium.launch(headless=self.headless, args=LAUNCH_ARGS)
                    task["result_queue"].put(self._render_page(browser, task))
                except Exception as e:
                    logger.error('[PLAYWRIGHT] Render failed for %s: %s', task.get("url"), e)
                    task["result_queue"].put({"url": task.get("url"), "title": "", "html": "", "text": "", "error": str(e)})
        except Exception as e:
            if not sys.is_finalizing():
                logger.error('[PLAYWRIGHT] Browser loop crashed: %s', e)
        finally:
            if browser is not None:
                try:
                    browser.close()
                except Exception:
                    pass
            if playwright is not None:
                try:
                    playwright.stop()
                except Exception:
                    pass
            self._drain_pending()

    def _drain_pending(self):
        """Answer queued requests so callers do not wait for the full timeout."""
        while True:
            try:
                task = self._requests.get_nowait()
            except queue.Empty:
                return
            if task is not None:
                task["result_queue"].put({"url": task.get("url"), "title": "", "html": "", "text": "", "error": "Browser stopped"})

    def _render_page(self, browser, task: Dict[str, Any]) -> Dict[str, Any]:
        url = task["url"]
        context = browser.new_context(
            user_agent=task.get("user_agent") or DEFAULT_USER_AGENT,
            extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
        )
        page = context.new_page()
        try:
            page.add_init_script("Object.defineProperty(navigator, 'webdriver', {get: () => undefined});")
            page.goto(url, timeout=int(task.get("timeout", 20.0) * 1000), wait_until='domcontentloaded')
            try:
                page.wait_for_load_state('networkidle', timeout=5000)
            except Exception:
                logger.debug('[PLAYWRIGHT] networkidle not reached for %s', url)
            body = page.query_selector('body')
            return {
                "url": page.url or url,
                "title": (page.title() or '').strip(),
                "html": page.content(),
                "text": body.inner_text() if body else '',
                "error": None,
            }
        finally:
            try:
                context.close()
            except Exception:
                pass


# Global singleton instance
_GLOBAL_MANAGER: Optional[PlaywrightBrowserManager] = None
_GLOBAL_LOCK = threading.Lock()


def get_browser_manager() -> PlaywrightBrowserManager:
    """Get the process-wide browser manager, creating it on first use."""
    global _GLOBAL_MANAGER
    with _GLOBAL_LOCK:
        if _GLOBAL_MANAGER is None:
            _GLOBAL_MANAGER = PlaywrightBrowserManager()
            atexit.register(_GLOBAL_MANAGER.close)
    return _GLOBAL_MANAGER
