from pathlib import Path
from typing import Any

from found.core.config import Settings
from found.core.logging import get_logger

logger = get_logger(__name__)

# Collects each matching anchor with the text of its surrounding card.
_EXTRACT_LINKS_JS = """
(anchors, limit) => {
  const rows = [];
  for (const anchor of anchors) {
    const card = anchor.closest("li") || anchor.parentElement;
    rows.push({
      href: anchor.getAttribute("href") || "",
      text: anchor.textContent || "",
      context: (card && card.textContent) || "",
    });
    if (rows.length >= limit) break;
  }
  return rows;
}
"""


class BrowserSession:
    """Minimal browser surface the LinkedIn automation drives.

    ``PlaywrightBrowserSession`` is the real implementation; tests pass a
    scripted stand-in with the same methods.
    """

    def goto(self, url: str) -> None:
        raise NotImplementedError

    def current_url(self) -> str:
        raise NotImplementedError

    def fill(self, selector: str, value: str) -> None:
        raise NotImplementedError

    def click(self, selector: str) -> None:
        raise NotImplementedError

    def wait(self, milliseconds: int) -> None:
        raise NotImplementedError

    def wait_for_load(self) -> None:
        raise NotImplementedError

    def click_first(self, selector: str) -> bool:
        """Click the first element matching ``selector``; False when none exists."""
        raise NotImplementedError

    def extract_links(self, selector: str, limit: int) -> list[dict[str, str]]:
        """Anchors matching ``selector`` as ``{"href", "text", "context"}`` rows."""
        raise NotImplementedError

    def save_state(self, path: Path) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def __enter__(self) -> "BrowserSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class PlaywrightBrowserSession(BrowserSession):
    def __init__(
        self,
        *,
        headless: bool = True,
        channel: str | None = None,
        executable_path: str | None = None,
        storage_state_path: Path | None = None,
        timeout_ms: int = 60000,
    ) -> None:
        try:
            from playwright.sync_api import sync_playwright
        except Exception as exc:
            raise RuntimeError("Playwright is required for LinkedIn automation. Install playwright and browsers.") from exc

        launch_options: dict[str, Any] = {"headless": headless}
        if executable_path:
            launch_options["executable_path"] = executable_path
        elif channel:
            launch_options["channel"] = channel

        self._playwright = sync_playwright().start()
        self._browser = None
        self._context = None
        try:
            self._browser = self._playwright.chromium.launch(**launch_options)
            context_options: dict[str, Any] = {}
            if storage_state_path and storage_state_path.exists():
                context_options["storage_state"] = str(storage_state_path)
            self._context = self._browser.new_context(**context_options)
            self._context.set_default_timeout(timeout_ms)
            self._page = self._context.new_page()
        except Exception:
            self.close()
            raise

    def goto(self, url: str) -> None:
        self._page.goto(url, wait_until="domcontentloaded")

    def current_url(self) -> str:
        return self._page.url

    def fill(self, selector: str, value: str) -> None:
        self._page.fill(selector, value)

    def click(self, selector: str) -> None:
        self._page.click(selector)

    def wait(self, milliseconds: int) -> None:
        self._page.wait_for_timeout(milliseconds)

    def wait_for_load(self) -> None:
        self._page.wait_for_load_state("domcontentloaded")

    def click_first(self, selector: str) -> bool:
        element = self._page.query_selector(selector)
        if element is None:
            return False
        element.click()
        return True

    def extract_links(self, selector: str, limit: int) -> list[dict[str, str]]:
        return self._page.eval_on_selector_all(selector, _EXTRACT_LINKS_JS, limit)

    def save_state(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        self._context.storage_state(path=str(path))

    def close(self) -> None:
        for resource in (self._context, self._browser):
            if resource is None:
                continue
            try:
                resource.close()
            except Exception:
                logger.warning("browser_close_failed", exc_info=True)
        self._context = None
        self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None


def open_linkedin_session(settings: Settings) -> BrowserSession:
    return PlaywrightBrowserSession(
        headless=settings.linkedin_browser_headless,
        channel=settings.linkedin_browser_channel,
        executable_path=settings.chromium_executable_path,
        storage_state_path=settings.linkedin_storage_state_path,
        timeout_ms=settings.browser_timeout_ms,
    )
