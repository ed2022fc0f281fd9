"""Client-side auth context.

Caches the session token, hydrates the current user from ``/user/checkUser``
and exposes the auth operations as thin calls over an ``httpx.Client``::

    with httpx.Client(base_url="http://localhost:8000") as http:
        auth = AuthContext(http, FileTokenStore(Path("~/.forum_token").expanduser()))
        auth.initialize()
        auth.login("a@x.com", "password1")
        print(auth.user)
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import httpx

logger = logging.getLogger("forum_auth.client")


@dataclass(frozen=True)
class SessionUser:
    userid: int
    username: str


class ApiError(Exception):
    """Non-2xx response from the auth API."""

    def __init__(self, status_code: int, error: str, message: str) -> None:
        self.status_code = status_code
        self.error = error
        self.message = message
        super().__init__(f"{status_code} {error}: {message}")

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        return cls(
            response.status_code,
            str(body.get("error", response.reason_phrase)),
            str(body.get("message", response.text)),
        )


class TokenStore(Protocol):
    def get(self) -> str | None: ...

    def set(self, token: str) -> None: ...

    def clear(self) -> None: ...


class MemoryTokenStore:
    """Keeps the token for the lifetime of the process."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token

    def get(self) -> str | None:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


class FileTokenStore:
    """Persists the token in a file so it survives restarts."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def get(self) -> str | None:
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return token or None

    def set(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(token, encoding="utf-8")
        self.path.chmod(0o600)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class AuthContext:
    """Current-user state plus the auth operations that change it.

    ``loading`` stays True until the first ``refresh_user`` finishes.
    """

    def __init__(self, http: httpx.Client, store: TokenStore | None = None) -> None:
        self.http = http
        self.store: TokenStore = store or MemoryTokenStore()
        self.user: SessionUser | None = None
        self.loading = True

    def initialize(self) -> None:
        self.refresh_user()

    def _headers(self) -> dict[str, str]:
        token = self.store.get()
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> dict[str, Any]:
        response = self.http.request(method, path, json=json, headers=self._headers())
        if response.is_error:
            raise ApiError.from_response(response)
        return response.json()

    def refresh_user(self) -> SessionUser | None:
        """Hydrate ``user`` from the cached token. Any failure logs the user out."""
        try:
            if not self.store.get():
                self.user = None
                return None
            try:
                data = self._request("GET", "/user/checkUser")
                self.user = SessionUser(userid=int(data["userid"]), username=data["username"])
            except (ApiError, httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
                logger.info("Session check failed, clearing cached token: %s", exc)
                self.store.clear()
                self.user = None
            return self.user
        finally:
            self.loading = False

    def login(self, email: str, password: str) -> dict[str, Any]:
        data = self._request("POST", "/user/login", {"email": email, "password": password})
        self.store.set(data["token"])
        self.refresh_user()
        return data

    def register(
        self,
        username: str,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            "/user/register",
            {
                "username": username,
                "first_name": first_name,
                "last_name": last_name,
                "email": email,
                "password": password,
            },
        )

    def forgot_password(self, email: str) -> dict[str, Any]:
        return self._request("POST", "/user/forgot-password", {"email": email})

    def reset_password(self, token: str, new_password: str) -> dict[str, Any]:
        return self._request("POST", "/user/reset-password", {"token": token, "newPassword": new_password})

    def logout(self) -> None:
        """Forget the token locally. Sessions are stateless, so the server is not told."""
        self.store.clear()
        self.user = None
