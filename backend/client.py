"""HTTP client for the hosted table and auth API."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from models.errors import AuthError, BackendError
from models.session import UserSession

logger = logging.getLogger(__name__)

Filters = Sequence[Tuple[str, str]]


def eq(value: Any) -> str:
    return f"eq.{value}"


def gte(value: Any) -> str:
    return f"gte.{value}"


def lte(value: Any) -> str:
    return f"lte.{value}"


NOT_NULL = "not.is.null"


def _error_message(response: requests.Response) -> str:
    """Best human-readable message from an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("message", "error_description", "msg", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


class BackendClient:
    """
    Thin wrapper over the backend's REST endpoints.

    Table calls go to /rest/v1/<table> and take the caller's access token;
    auth calls go to /auth/v1/*. Every failure raises BackendError (or
    AuthError for rejected credentials or tokens). Nothing is retried.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._http = http or requests.Session()

    def _headers(self, token: Optional[str], prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token or self.api_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        params: Any = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s params=%s", method, path, params)
        try:
            response = self._http.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(token, prefer),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise BackendError(f"{method} {path} failed: {e}", endpoint=path) from e

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            message = _error_message(response)
            error_cls = AuthError if response.status_code == 401 else BackendError
            raise error_cls(message, status_code=response.status_code, endpoint=path) from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(
                f"Invalid JSON from {path}", status_code=response.status_code, endpoint=path
            ) from e

    # -------------------------------------------------------------------------
    # Tables
    # -------------------------------------------------------------------------

    def select(
        self,
        table: str,
        token: str,
        columns: str = "*",
        filters: Filters = (),
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Read rows matching all filters, e.g. filters=[("date", eq("2024-03-01"))]."""
        params: List[Tuple[str, str]] = [("select", columns), *filters]
        if order:
            params.append(("order", order))
        if limit is not None:
            params.append(("limit", str(limit)))
        return self._request("GET", f"/rest/v1/{table}", token=token, params=params) or []

    def insert(
        self,
        table: str,
        token: str,
        rows: Any,
        returning: bool = False,
    ) -> List[Dict[str, Any]]:
        """Insert one row (dict) or many (list). Returns rows only if returning."""
        prefer = "return=representation" if returning else "return=minimal"
        return self._request("POST", f"/rest/v1/{table}", token=token, json=rows, prefer=prefer) or []

    def upsert(self, table: str, token: str, rows: Any, on_conflict: str) -> None:
        """Insert or merge on the natural key named by on_conflict."""
        self._request(
            "POST",
            f"/rest/v1/{table}",
            token=token,
            params=[("on_conflict", on_conflict)],
            json=rows,
            prefer="resolution=merge-duplicates,return=minimal",
        )

    def update(self, table: str, token: str, values: Dict[str, Any], filters: Filters) -> None:
        if not filters:
            raise ValueError("update requires at least one filter")
        self._request(
            "PATCH",
            f"/rest/v1/{table}",
            token=token,
            params=list(filters),
            json=values,
            prefer="return=minimal",
        )

    def delete(self, table: str, token: str, filters: Filters) -> None:
        if not filters:
            raise ValueError("delete requires at least one filter")
        self._request(
            "DELETE",
            f"/rest/v1/{table}",
            token=token,
            params=list(filters),
            prefer="return=minimal",
        )

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    def sign_in(self, email: str, password: str) -> UserSession:
        """Exchange e-mail and password for a session."""
        try:
            data = self._request(
                "POST",
                "/auth/v1/token",
                params=[("grant_type", "password")],
                json={"email": email, "password": password},
            )
        except AuthError:
            raise
        except BackendError as e:
            if e.status_code == 400:
                raise AuthError(str(e), status_code=400, endpoint=e.endpoint) from e
            raise
        if not data or "access_token" not in data:
            raise AuthError("Resposta de login sem token", endpoint="/auth/v1/token")
        return UserSession.from_auth_response(data)

    def sign_up(self, email: str, password: str, full_name: str) -> None:
        self._request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": {"full_name": full_name}},
        )

    def sign_out(self, token: str) -> None:
        self._request("POST", "/auth/v1/logout", token=token)
