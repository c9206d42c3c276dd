"""Typed operations over the extension's command vocabulary.

Each method resolves ``tab_id == 0`` to the remembered active tab, builds the
params object (omitting absent optional fields), sends it through the
correlator and decodes the reply into the shape the tool layer expects.
"""

from __future__ import annotations

from typing import Any

from .cancel import CancelScope
from .correlator import RequestCorrelator
from .errors import ProtocolError
from .html_text import fragments_to_text
from .models import Cookie, Tab


def _unwrap(data: Any, key: str, action: str) -> Any:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ProtocolError(f"unexpected {action} response: expected an object with {key!r}")
    return data.get(key)


def _storage_value(data: Any, key: str, action: str) -> str:
    storage = _unwrap(data, "storage", action)
    if not isinstance(storage, dict):
        return ""
    value = storage.get(key)
    return value if isinstance(value, str) else ""


class BrowserClient:
    def __init__(self, correlator: RequestCorrelator) -> None:
        self.correlator = correlator

    def _send(self, action: str, params: Any, scope: CancelScope | None) -> Any:
        return self.correlator.send_command(action, params, scope)

    def _tab(self, tab_id: int) -> int:
        return self.correlator.resolve_tab(tab_id)

    @property
    def active_tab_id(self) -> int:
        return self.correlator.active_tab_id

    def wait_for_connection(self, timeout: float, scope: CancelScope | None = None) -> None:
        self.correlator.wait_for_connection(timeout, scope)

    # ── tabs ─────────────────────────────────────────────────────────────────

    def list_tabs(self, scope: CancelScope | None = None) -> list[Tab]:
        data = self._send("listTabs", None, scope)
        if data is None:
            return []
        if not isinstance(data, list):
            raise ProtocolError("unexpected listTabs response: expected an array of tabs")
        return [Tab.from_dict(item) for item in data]

    def create_tab(self, url: str, active: bool, scope: CancelScope | None = None) -> Tab:
        data = self._send("createTab", {"url": url, "active": active}, scope)
        if data is None:
            raise ProtocolError(
                "empty response from browser extension - ensure Chrome extension is properly installed and running"
            )
        tab = Tab.from_dict(data)
        if active:
            self.correlator.active_tab_id = tab.id
        return tab

    def close_tab(self, tab_id: int, scope: CancelScope | None = None) -> None:
        self._send("closeTab", {"tabId": tab_id}, scope)

    def activate_tab(self, tab_id: int, scope: CancelScope | None = None) -> None:
        self._send("activateTab", {"tabId": tab_id}, scope)
        self.correlator.active_tab_id = tab_id

    def send_key(
        self, key: str, modifiers: dict[str, bool] | None, tab_id: int = 0, scope: CancelScope | None = None
    ) -> None:
        params = {"tabId": self._tab(tab_id), "key": key, "modifiers": modifiers or {}}
        self._send("sendKey", params, scope)

    # ── navigation ───────────────────────────────────────────────────────────

    def navigate(self, tab_id: int, url: str, wait_until_load: bool, scope: CancelScope | None = None) -> Any:
        params = {"tabId": self._tab(tab_id), "url": url, "waitUntilLoad": wait_until_load}
        return self._send("navigate", params, scope)

    def reload(self, tab_id: int, hard_reload: bool, scope: CancelScope | None = None) -> None:
        self._send("reload", {"tabId": self._tab(tab_id), "hardReload": hard_reload}, scope)

    # ── interaction ──────────────────────────────────────────────────────────

    def click(self, tab_id: int, selector: str, timeout: int, scope: CancelScope | None = None) -> None:
        params = {"tabId": self._tab(tab_id), "selector": selector, "timeout": timeout}
        self._send("click", params, scope)

    def type_text(
        self,
        tab_id: int,
        selector: str,
        text: str,
        clear_first: bool,
        delay: int,
        scope: CancelScope | None = None,
    ) -> None:
        params = {
            "tabId": self._tab(tab_id),
            "selector": selector,
            "text": text,
            "clearFirst": clear_first,
            "delay": delay,
        }
        self._send("type", params, scope)

    def scroll(
        self,
        tab_id: int,
        x: float | None,
        y: float | None,
        selector: str,
        behavior: str,
        scope: CancelScope | None = None,
    ) -> Any:
        params: dict[str, Any] = {"tabId": self._tab(tab_id), "behavior": behavior}
        if x is not None:
            params["x"] = x
        if y is not None:
            params["y"] = y
        if selector:
            params["selector"] = selector
        return self._send("scroll", params, scope)

    def wait_for_element(
        self, tab_id: int, selector: str, timeout: int, state: str, scope: CancelScope | None = None
    ) -> Any:
        params = {"tabId": self._tab(tab_id), "selector": selector, "timeout": timeout, "state": state}
        return self._send("waitForElement", params, scope)

    # ── content ──────────────────────────────────────────────────────────────

    def execute_script(
        self, tab_id: int, script: str, args: list[Any] | None, scope: CancelScope | None = None
    ) -> Any:
        params = {"tabId": self._tab(tab_id), "script": script, "args": args}
        return self._send("executeScript", params, scope)

    def extract_content(
        self,
        tab_id: int,
        selector: str,
        content_type: str,
        attribute: str = "",
        scope: CancelScope | None = None,
    ) -> list[str]:
        params: dict[str, Any] = {"tabId": self._tab(tab_id), "selector": selector, "contentType": content_type}
        if attribute:
            params["attribute"] = attribute
        data = self._send("extractContent", params, scope)
        text = _unwrap(data, "text", "extractContent")
        if isinstance(text, str):
            return [text]
        if isinstance(text, list):
            return [item if isinstance(item, str) else "" for item in text]
        raise ProtocolError(f"unexpected response type: {type(text).__name__}")

    def extract_text(self, tab_id: int, selector: str, scope: CancelScope | None = None) -> str:
        """Extract ``selector`` as HTML and flatten every fragment to plain text."""
        return fragments_to_text(self.extract_content(tab_id, selector, "html", "", scope))

    def screenshot(
        self,
        tab_id: int,
        full_page: bool,
        selector: str,
        fmt: str,
        quality: int,
        scope: CancelScope | None = None,
    ) -> str:
        params: dict[str, Any] = {
            "tabId": self._tab(tab_id),
            "fullPage": full_page,
            "format": fmt,
            "quality": quality,
        }
        if selector:
            params["selector"] = selector
        data_url = _unwrap(self._send("screenshot", params, scope), "dataUrl", "screenshot")
        return data_url if isinstance(data_url, str) else ""

    def get_actionables(self, tab_id: int, scope: CancelScope | None = None) -> list[Any]:
        data = self._send("tabs.getActionables", {"tabId": self._tab(tab_id)}, scope)
        actionables = _unwrap(data, "actionables", "tabs.getActionables")
        return actionables if isinstance(actionables, list) else []

    def get_accessibility_snapshot(
        self, tab_id: int, interesting_only: bool, root: str = "", scope: CancelScope | None = None
    ) -> Any:
        params: dict[str, Any] = {"tabId": self._tab(tab_id), "interestingOnly": interesting_only}
        if root:
            params["root"] = root
        return self._send("tabs.getAccessibilitySnapshot", params, scope)

    # ── cookies ──────────────────────────────────────────────────────────────

    def get_cookies(self, url: str = "", name: str = "", scope: CancelScope | None = None) -> list[Cookie]:
        params: dict[str, Any] = {}
        if url:
            params["url"] = url
        if name:
            params["name"] = name
        cookies = _unwrap(self._send("getCookies", params, scope), "cookies", "getCookies")
        if cookies is None:
            return []
        if not isinstance(cookies, list):
            raise ProtocolError("unexpected getCookies response: 'cookies' is not an array")
        return [Cookie.from_dict(item) for item in cookies]

    def set_cookie(self, cookie: Cookie, scope: CancelScope | None = None) -> Any:
        params: dict[str, Any] = {
            "name": cookie.name,
            "value": cookie.value,
            "domain": cookie.domain,
            "path": cookie.path,
            "secure": cookie.secure,
            "httpOnly": cookie.http_only,
            "url": cookie.url(),
        }
        if cookie.expiration_date > 0:
            params["expirationDate"] = cookie.expiration_date
        return self._send("setCookie", params, scope)

    def delete_cookies(self, url: str = "", name: str = "", scope: CancelScope | None = None) -> None:
        params: dict[str, Any] = {}
        if url:
            params["url"] = url
        if name:
            params["name"] = name
        self._send("deleteCookies", params, scope)

    # ── web storage ──────────────────────────────────────────────────────────

    def get_local_storage(self, tab_id: int, key: str, scope: CancelScope | None = None) -> str:
        data = self._send("getLocalStorage", {"tabId": self._tab(tab_id), "key": key}, scope)
        return _storage_value(data, key, "getLocalStorage")

    def set_local_storage(self, tab_id: int, key: str, value: str, scope: CancelScope | None = None) -> None:
        self._send("setLocalStorage", {"tabId": self._tab(tab_id), "key": key, "value": value}, scope)

    def clear_local_storage(self, tab_id: int, scope: CancelScope | None = None) -> None:
        self._send("clearLocalStorage", {"tabId": self._tab(tab_id)}, scope)

    def get_session_storage(self, tab_id: int, key: str, scope: CancelScope | None = None) -> str:
        data = self._send("getSessionStorage", {"tabId": self._tab(tab_id), "key": key}, scope)
        return _storage_value(data, key, "getSessionStorage")

    def set_session_storage(self, tab_id: int, key: str, value: str, scope: CancelScope | None = None) -> None:
        self._send("setSessionStorage", {"tabId": self._tab(tab_id), "key": key, "value": value}, scope)

    def clear_session_storage(self, tab_id: int, scope: CancelScope | None = None) -> None:
        self._send("clearSessionStorage", {"tabId": self._tab(tab_id)}, scope)

    # ── keyboard-driven navigation (hints, search, omnibar, visual mode) ────

    def show_hints(self, tab_id: int, selector: str, action: str, scope: CancelScope | None = None) -> Any:
        params: dict[str, Any] = {"tabId": self._tab(tab_id)}
        if selector:
            params["selector"] = selector
        if action:
            params["action"] = action
        return self._send("hints.show", params, scope)

    def click_hint(
        self, tab_id: int, selector: str, index: int, text: str, scope: CancelScope | None = None
    ) -> Any:
        params: dict[str, Any] = {"tabId": self._tab(tab_id)}
        if selector:
            params["selector"] = selector
        if index >= 0:
            params["index"] = index
        if text:
            params["text"] = text
        return self._send("hints.click", params, scope)

    def search(self, query: str, engine: str, new_tab: bool, scope: CancelScope | None = None) -> Any:
        return self._send("search", {"query": query, "engine": engine, "newTab": new_tab}, scope)

    def find(
        self, tab_id: int, text: str, case_sensitive: bool, whole_word: bool, scope: CancelScope | None = None
    ) -> Any:
        params = {
            "tabId": self._tab(tab_id),
            "text": text,
            "caseSensitive": case_sensitive,
            "wholeWord": whole_word,
        }
        return self._send("find", params, scope)

    def read_clipboard(self, scope: CancelScope | None = None) -> str:
        data = self._send("clipboard.read", {}, scope)
        if isinstance(data, str):
            return data
        text = _unwrap(data, "text", "clipboard.read")
        return text if isinstance(text, str) else ""

    def write_clipboard(self, text: str, fmt: str = "text", scope: CancelScope | None = None) -> None:
        self._send("clipboard.write", {"text": text, "format": fmt}, scope)

    def show_omnibar(self, tab_id: int, bar_type: str, query: str, scope: CancelScope | None = None) -> Any:
        params: dict[str, Any] = {"tabId": self._tab(tab_id), "type": bar_type}
        if query:
            params["query"] = query
        return self._send("omnibar.show", params, scope)

    def start_visual_mode(self, tab_id: int, select_element: bool, scope: CancelScope | None = None) -> Any:
        params = {"tabId": self._tab(tab_id), "selectElement": select_element}
        return self._send("visual.start", params, scope)

    def get_page_title(self, tab_id: int, scope: CancelScope | None = None) -> str:
        data = self._send("getPageTitle", {"tabId": self._tab(tab_id)}, scope)
        if isinstance(data, str):
            return data
        title = _unwrap(data, "title", "getPageTitle")
        return title if isinstance(title, str) else ""
