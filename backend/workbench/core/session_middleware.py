from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from workbench.core.security import sign_session_id, unsign_session_id
from workbench.core.session_store import JsonFileSessionStore


class SessionMiddleware:
    """
    Server-side sessions: the cookie carries only a signed session id, the
    payload lives in a JsonFileSessionStore.

    Empty sessions are never stored. Untouched sessions are re-saved on every
    request so the expiry rolls forward, and a session emptied by a handler is
    destroyed along with its cookie.
    """

    def __init__(
        self,
        app: ASGIApp,
        store: JsonFileSessionStore,
        secret_key: str,
        session_cookie: str = "workbench.sid",
        max_age_ms: int = 24 * 60 * 60 * 1000,
        path: str = "/",
        same_site: str = "lax",
        https_only: bool = False,
    ) -> None:
        self.app = app
        self.store = store
        self.secret_key = secret_key
        self.session_cookie = session_cookie
        self.max_age_ms = max_age_ms
        self.path = path
        self.same_site = same_site
        self.https_only = https_only
        self.security_flags = "httponly; samesite=" + same_site
        if https_only:
            self.security_flags += "; secure"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        sid = None
        initial: Dict[str, Any] = {}

        raw_cookie = connection.cookies.get(self.session_cookie)
        if raw_cookie:
            sid = unsign_session_id(raw_cookie, self.secret_key)
            data = self.store.get(sid) if sid else None
            if data is None:
                sid = None
            else:
                initial = {k: v for k, v in data.items() if k != "cookie"}

        scope["session"] = dict(initial)

        async def send_wrapper(message: Message) -> None:
            nonlocal sid
            if message["type"] == "http.response.start":
                session = scope["session"]
                headers = MutableHeaders(scope=message)
                if session:
                    payload = {**session, "cookie": self._cookie_meta()}
                    if sid is None:
                        sid = secrets.token_urlsafe(24)
                        self.store.set(sid, payload)
                    elif session != initial:
                        self.store.set(sid, payload)
                    else:
                        self.store.touch(sid, payload)
                    headers.append("Set-Cookie", self._cookie_header(sid))
                elif sid is not None:
                    self.store.destroy(sid)
                    headers.append("Set-Cookie", self._expired_cookie_header())
            await send(message)

        await self.app(scope, receive, send_wrapper)

    def _cookie_meta(self) -> Dict[str, Any]:
        expires = datetime.now(timezone.utc) + timedelta(milliseconds=self.max_age_ms)
        return {
            "maxAge": self.max_age_ms,
            "expires": expires.isoformat(),
            "httpOnly": True,
            "sameSite": self.same_site,
            "secure": self.https_only,
            "path": self.path,
        }

    def _cookie_header(self, sid: str) -> str:
        value = sign_session_id(sid, self.secret_key)
        max_age = self.max_age_ms // 1000
        return f"{self.session_cookie}={value}; path={self.path}; Max-Age={max_age}; {self.security_flags}"

    def _expired_cookie_header(self) -> str:
        return (
            f"{self.session_cookie}=null; path={self.path}; "
            f"expires=Thu, 01 Jan 1970 00:00:00 GMT; {self.security_flags}"
        )
