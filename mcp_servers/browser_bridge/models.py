from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import ProtocolError


def _int(raw: dict[str, Any], key: str, default: int = 0) -> int:
    value = raw.get(key, default)
    if isinstance(value, bool):
        raise ProtocolError(f"field {key!r}: expected a number, got {value!r}")
    if isinstance(value, (int, float)):
        return int(value)
    if value is None:
        return default
    raise ProtocolError(f"field {key!r}: expected a number, got {value!r}")


def _str(raw: dict[str, Any], key: str) -> str:
    value = raw.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ProtocolError(f"field {key!r}: expected a string, got {value!r}")
    return value


@dataclass(slots=True)
class Tab:
    id: int
    url: str = ""
    title: str = ""
    active: bool = False
    index: int = 0
    favicon: str = ""

    @classmethod
    def from_dict(cls, raw: Any) -> Tab:
        if not isinstance(raw, dict):
            raise ProtocolError(f"expected a tab object, got {type(raw).__name__}")
        return cls(
            id=_int(raw, "id"),
            url=_str(raw, "url"),
            title=_str(raw, "title"),
            active=bool(raw.get("active", False)),
            index=_int(raw, "index"),
            favicon=_str(raw, "favicon"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "active": self.active,
            "index": self.index,
        }
        if self.favicon:
            out["favicon"] = self.favicon
        return out


@dataclass(slots=True)
class Cookie:
    name: str
    value: str
    domain: str = ""
    path: str = ""
    secure: bool = False
    http_only: bool = False
    same_site: str = ""
    expiration_date: float = 0.0

    @classmethod
    def from_dict(cls, raw: Any) -> Cookie:
        if not isinstance(raw, dict):
            raise ProtocolError(f"expected a cookie object, got {type(raw).__name__}")
        expiration = raw.get("expirationDate") or 0
        return cls(
            name=_str(raw, "name"),
            value=_str(raw, "value"),
            domain=_str(raw, "domain"),
            path=_str(raw, "path"),
            secure=bool(raw.get("secure", False)),
            http_only=bool(raw.get("httpOnly", False)),
            same_site=_str(raw, "sameSite"),
            expiration_date=float(expiration) if isinstance(expiration, (int, float)) else 0.0,
        )

    def url(self) -> str:
        """URL the extension needs to scope ``chrome.cookies.set``."""
        scheme = "https" if self.secure else "http"
        host = self.domain or "localhost"
        if host.startswith("."):
            host = host[1:]
        return f"{scheme}://{host}"

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "value": self.value}
        if self.domain:
            out["domain"] = self.domain
        if self.path:
            out["path"] = self.path
        if self.secure:
            out["secure"] = True
        if self.http_only:
            out["httpOnly"] = True
        if self.same_site:
            out["sameSite"] = self.same_site
        if self.expiration_date:
            out["expirationDate"] = self.expiration_date
        return out
