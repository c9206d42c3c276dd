"""
Tool handlers organized by domain.

All handlers follow the signature: (client, arguments, scope) -> ToolResult
"""

from .connection import CONNECTION_HANDLERS
from .content import CONTENT_HANDLERS
from .interaction import INTERACTION_HANDLERS
from .navigation import NAVIGATION_HANDLERS
from .storage import STORAGE_HANDLERS
from .surfingkeys import SURFINGKEYS_HANDLERS
from .tabs import TAB_HANDLERS

# Aggregate all handlers
ALL_HANDLERS: dict[str, tuple] = {
    **CONNECTION_HANDLERS,
    **TAB_HANDLERS,
    **NAVIGATION_HANDLERS,
    **INTERACTION_HANDLERS,
    **CONTENT_HANDLERS,
    **STORAGE_HANDLERS,
    **SURFINGKEYS_HANDLERS,
}

__all__ = [
    "ALL_HANDLERS",
    "CONNECTION_HANDLERS",
    "TAB_HANDLERS",
    "NAVIGATION_HANDLERS",
    "INTERACTION_HANDLERS",
    "CONTENT_HANDLERS",
    "STORAGE_HANDLERS",
    "SURFINGKEYS_HANDLERS",
]
