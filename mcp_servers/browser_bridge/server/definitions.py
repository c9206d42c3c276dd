"""Tool schema definitions (the ``tools/list`` catalogue)."""

from __future__ import annotations

from typing import Any

TAB_ID: dict[str, Any] = {"type": "number", "description": "Tab ID (defaults to active tab)"}


def _tool(name: str, description: str, properties: dict[str, Any], required: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return {"name": name, "description": description, "inputSchema": schema}


CONNECTION_TOOLS: list[dict[str, Any]] = [
    _tool(
        "browser_wait_for_connection",
        "Wait for the browser extension to connect",
        {"timeout": {"type": "number", "description": "Timeout in seconds (default: 30)"}},
    ),
]

TAB_TOOLS: list[dict[str, Any]] = [
    _tool("browser_list_tabs", "List all open browser tabs", {}),
    _tool(
        "browser_create_tab",
        "Open a new browser tab",
        {
            "url": {"type": "string", "description": "URL to open (default: about:blank)"},
            "active": {"type": "boolean", "description": "Make the new tab active (default: true)"},
        },
    ),
    _tool(
        "browser_close_tab",
        "Close a browser tab",
        {"tabId": {"type": "number", "description": "ID of the tab to close"}},
        ["tabId"],
    ),
    _tool(
        "browser_activate_tab",
        "Switch to a browser tab",
        {"tabId": {"type": "number", "description": "ID of the tab to activate"}},
        ["tabId"],
    ),
    _tool(
        "browser_send_key",
        "Send a keyboard key event to the page",
        {
            "key": {"type": "string", "description": "Key to press (e.g. 'Enter', 'a', 'ArrowDown')"},
            "modifiers": {
                "type": "object",
                "description": "Modifier keys held during the press",
                "properties": {
                    "ctrl": {"type": "boolean"},
                    "shift": {"type": "boolean"},
                    "alt": {"type": "boolean"},
                    "meta": {"type": "boolean"},
                },
            },
            "tabId": TAB_ID,
        },
        ["key"],
    ),
]

NAVIGATION_TOOLS: list[dict[str, Any]] = [
    _tool(
        "browser_navigate",
        "Navigate a tab to a URL",
        {
            "url": {"type": "string", "description": "URL to navigate to"},
            "waitUntilLoad": {"type": "boolean", "description": "Wait for the page to load (default: true)"},
            "tabId": TAB_ID,
        },
        ["url"],
    ),
    _tool(
        "browser_reload",
        "Reload the current page",
        {
            "hardReload": {"type": "boolean", "description": "Bypass the cache (default: false)"},
            "tabId": TAB_ID,
        },
    ),
]

INTERACTION_TOOLS: list[dict[str, Any]] = [
    _tool(
        "browser_click",
        "Click on an element",
        {
            "selector": {"type": "string", "description": "CSS selector of the element"},
            "timeout": {"type": "number", "description": "Timeout in milliseconds (default: 30000)"},
            "tabId": TAB_ID,
        },
        ["selector"],
    ),
    _tool(
        "browser_type",
        "Type text into an input field",
        {
            "selector": {"type": "string", "description": "CSS selector of the input"},
            "text": {"type": "string", "description": "Text to type"},
            "clearFirst": {"type": "boolean", "description": "Clear the field first (default: false)"},
            "delay": {"type": "number", "description": "Delay between keystrokes in ms (default: 0)"},
            "tabId": TAB_ID,
        },
        ["selector", "text"],
    ),
    _tool(
        "browser_scroll",
        "Scroll the page to a position or element",
        {
            "x": {"type": "number", "description": "Horizontal position"},
            "y": {"type": "number", "description": "Vertical position"},
            "selector": {"type": "string", "description": "CSS selector to scroll into view"},
            "behavior": {
                "type": "string",
                "enum": ["auto", "smooth", "instant"],
                "description": "Scroll behavior (default: auto)",
            },
            "tabId": TAB_ID,
        },
    ),
    _tool(
        "browser_wait_for_element",
        "Wait for an element to reach a state",
        {
            "selector": {"type": "string", "description": "CSS selector of the element"},
            "timeout": {"type": "number", "description": "Timeout in milliseconds (default: 30000)"},
            "state": {
                "type": "string",
                "enum": ["attached", "detached", "visible", "hidden"],
                "description": "State to wait for (default: visible)",
            },
            "tabId": TAB_ID,
        },
        ["selector"],
    ),
]

CONTENT_TOOLS: list[dict[str, Any]] = [
    _tool(
        "browser_execute_script",
        "Execute JavaScript in the page context",
        {
            "script": {"type": "string", "description": "JavaScript source to run"},
            "args": {"type": "array", "description": "Arguments passed to the script", "items": {}},
            "tabId": TAB_ID,
        },
        ["script"],
    ),
    _tool(
        "browser_extract_content",
        "Extract text, HTML or an attribute from matching elements",
        {
            "selector": {"type": "string", "description": "CSS selector (default: body)"},
            "type": {
                "type": "string",
                "enum": ["text", "html", "attribute"],
                "description": "What to extract (default: text)",
            },
            "attribute": {"type": "string", "description": "Attribute name when type is 'attribute'"},
            "tabId": TAB_ID,
        },
    ),
    _tool(
        "browser_extract_text",
        "Extract readable plain text from matching elements",
        {
            "selector": {"type": "string", "description": "CSS selector (default: body)"},
            "tabId": TAB_ID,
        },
    ),
    _tool(
        "browser_screenshot",
        "Take a screenshot of the page or an element",
        {
            "fullPage": {"type": "boolean", "description": "Capture the full scrollable page (default: false)"},
            "selector": {"type": "string", "description": "CSS selector of an element to capture"},
            "format": {"type": "string", "enum": ["png", "jpeg"], "description": "Image format (default: png)"},
            "quality": {"type": "number", "description": "JPEG quality 0-100 (default: 90)"},
            "tabId": TAB_ID,
        },
    ),
    _tool(
        "browser_get_actionables",
        "List clickable and focusable elements on the page",
        {"tabId": TAB_ID},
    ),
    _tool(
        "browser_get_accessibility_snapshot",
        "Get the accessibility tree of the page",
        {
            "interestingOnly": {"type": "boolean", "description": "Only include interesting nodes (default: true)"},
            "root": {"type": "string", "description": "CSS selector of the root element"},
            "tabId": TAB_ID,
        },
    ),
]

STORAGE_TOOLS: list[dict[str, Any]] = [
    _tool(
        "browser_get_cookies",
        "Get browser cookies",
        {
            "url": {"type": "string", "description": "Only cookies visible to this URL"},
            "name": {"type": "string", "description": "Only cookies with this name"},
        },
    ),
    _tool(
        "browser_set_cookie",
        "Set a browser cookie",
        {
            "name": {"type": "string", "description": "Cookie name"},
            "value": {"type": "string", "description": "Cookie value"},
            "domain": {"type": "string", "description": "Cookie domain"},
            "path": {"type": "string", "description": "Cookie path (default: /)"},
            "secure": {"type": "boolean", "description": "HTTPS only (default: false)"},
            "httpOnly": {"type": "boolean", "description": "Hidden from page scripts (default: false)"},
            "expirationDate": {"type": "number", "description": "Expiry as seconds since the epoch"},
        },
        ["name", "value"],
    ),
    _tool(
        "browser_delete_cookies",
        "Delete browser cookies",
        {
            "url": {"type": "string", "description": "Only cookies for this URL"},
            "name": {"type": "string", "description": "Only cookies with this name"},
        },
    ),
]

for _area, _prefix in (("localStorage", "local"), ("sessionStorage", "session")):
    STORAGE_TOOLS.extend(
        [
            _tool(
                f"browser_get_{_prefix}_storage",
                f"Get a {_area} value",
                {"key": {"type": "string", "description": "Storage key"}, "tabId": TAB_ID},
                ["key"],
            ),
            _tool(
                f"browser_set_{_prefix}_storage",
                f"Set a {_area} value",
                {
                    "key": {"type": "string", "description": "Storage key"},
                    "value": {"type": "string", "description": "Value to store"},
                    "tabId": TAB_ID,
                },
                ["key", "value"],
            ),
            _tool(f"browser_clear_{_prefix}_storage", f"Clear all {_area}", {"tabId": TAB_ID}),
        ]
    )

SURFINGKEYS_TOOLS: list[dict[str, Any]] = [
    _tool(
        "browser_hints_show",
        "Show interactive element hints on the page",
        {
            "selector": {"type": "string", "description": "CSS selector to filter hints (optional)"},
            "action": {
                "type": "string",
                "description": "Action to perform when hint is clicked (e.g., 'click', 'hover')",
            },
            "tabId": TAB_ID,
        },
    ),
    _tool(
        "browser_hints_click",
        "Click on a hint element by selector, index, or text",
        {
            "selector": {"type": "string", "description": "CSS selector of the hint to click"},
            "index": {"type": "number", "description": "Index of the hint to click (0-based)"},
            "text": {"type": "string", "description": "Text content of the hint to click"},
            "tabId": TAB_ID,
        },
    ),
    _tool(
        "browser_search",
        "Perform a web search using the specified search engine",
        {
            "query": {"type": "string", "description": "Search query"},
            "engine": {
                "type": "string",
                "description": "Search engine to use (e.g., 'google', 'bing', 'duckduckgo')",
            },
            "newTab": {"type": "boolean", "description": "Open search results in a new tab (default: true)"},
        },
        ["query"],
    ),
    _tool(
        "browser_find",
        "Find text on the current page",
        {
            "text": {"type": "string", "description": "Text to find on the page"},
            "caseSensitive": {"type": "boolean", "description": "Case sensitive search (default: false)"},
            "wholeWord": {"type": "boolean", "description": "Match whole words only (default: false)"},
            "tabId": TAB_ID,
        },
        ["text"],
    ),
    _tool("browser_clipboard_read", "Read text from the system clipboard", {}),
    _tool(
        "browser_clipboard_write",
        "Write text to the system clipboard",
        {
            "text": {"type": "string", "description": "Text to write to clipboard"},
            "format": {"type": "string", "description": "Format of the clipboard content (default: 'text')"},
        },
        ["text"],
    ),
    _tool(
        "browser_omnibar",
        "Show the omnibar with specified type",
        {
            "type": {
                "type": "string",
                "enum": ["bookmarks", "history", "tabs", "commands"],
                "description": "Type of omnibar to show",
            },
            "query": {"type": "string", "description": "Initial query to populate in the omnibar"},
            "tabId": TAB_ID,
        },
        ["type"],
    ),
    _tool(
        "browser_visual_mode",
        "Start visual selection mode",
        {
            "selectElement": {
                "type": "boolean",
                "description": "Select entire element instead of text (default: false)",
            },
            "tabId": TAB_ID,
        },
    ),
    _tool("browser_get_page_title", "Get the title of the current page", {"tabId": TAB_ID}),
]

TOOL_DEFINITIONS: list[dict[str, Any]] = [
    *CONNECTION_TOOLS,
    *TAB_TOOLS,
    *NAVIGATION_TOOLS,
    *INTERACTION_TOOLS,
    *CONTENT_TOOLS,
    *STORAGE_TOOLS,
    *SURFINGKEYS_TOOLS,
]
