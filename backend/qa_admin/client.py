"""Typed client for the admin API.

This is what an admin frontend (or a script) uses to manage content.
Every submission is validated locally with the same schemas the server
uses and then issues exactly one HTTP call. Fetched lists go through a
`QueryCache` and are invalidated explicitly after each mutation.

Example::

    client = AdminClient("http://localhost:8000")
    client.login("admin", "secret")
    created = client.categories.create(name="Prayer", image="")
    client.categories.get_all(search="pray")
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, Optional

import httpx
from pydantic import BaseModel, ValidationError

from . import schemas
from .listing import filter_rows
from .utils.query_cache import QueryCache

logger = logging.getLogger("qa_admin.client")


class ApiError(Exception):
    """A rejected or failed call.

    `message` is the server's (or local validator's) message verbatim;
    `field_errors` lists `{"field", "message"}` dicts for validation failures.
    `status_code` is `None` when the request never reached the server.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, field_errors: Optional[list] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.field_errors = field_errors or []

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class SubmissionPending(ApiError):
    """A submission for the same resource has not settled yet."""


def _validation_error(exc: ValidationError) -> ApiError:
    errors = [
        {"field": ".".join(str(p) for p in e["loc"]) or "body", "message": e["msg"]}
        for e in exc.errors()
    ]
    return ApiError(errors[0]["message"] if errors else "invalid input", None, errors)


class ResourceClient:
    """CRUD calls for one resource path, plus its cached list view.

    `search_field` names the attribute `get_all(search=...)` matches on.
    `dependents` lists other resources whose cached lists embed this one
    and must be dropped along with it.
    """

    def __init__(
        self,
        client: "AdminClient",
        path: str,
        create_schema: type[BaseModel],
        update_schema: type[BaseModel],
        search_field: str,
        dependents: tuple[str, ...] = (),
    ):
        self._client = client
        self.path = path
        self.create_schema = create_schema
        self.update_schema = update_schema
        self.search_field = search_field
        self.dependents = dependents
        self._pending = threading.Lock()

    def get_all(self, search: Optional[str] = None) -> list[dict]:
        """Return the full list, optionally filtered client-side.

        The unfiltered list is fetched once per cache lifetime and every
        filtered view is derived from that entry, so both go stale together.
        Callers get their own list; mutating it leaves the cache intact.
        """
        rows = self._client.cache.get_or_load(self.path, None, lambda: self._client.request("GET", f"/{self.path}"))
        return filter_rows(rows, self.search_field, search)

    def get_by_id(self, row_id: int) -> dict:
        return self._client.request("GET", f"/{self.path}/{row_id}")

    def create(self, **fields: Any) -> dict:
        payload = self._validate(self.create_schema, fields)
        return self._submit("create", lambda: self._client.request("POST", f"/{self.path}", payload=payload))

    def update(self, row_id: int, **fields: Any) -> dict:
        """Overwrite the row: every mutable field must be supplied."""
        payload = self._validate(self.update_schema, fields)
        return self._submit("update", lambda: self._client.request("PUT", f"/{self.path}/{row_id}", payload=payload))

    def delete(self, row_id: int) -> dict:
        return self._submit("delete", lambda: self._client.request("DELETE", f"/{self.path}/{row_id}"))

    def invalidate(self) -> None:
        self._client.cache.invalidate(self.path, *self.dependents)

    @staticmethod
    def _validate(schema: type[BaseModel], fields: dict) -> dict:
        try:
            return schema.model_validate(fields).model_dump(mode="json")
        except ValidationError as exc:
            raise _validation_error(exc) from exc

    def _submit(self, action: str, call: Callable[[], dict]) -> dict:
        if not self._pending.acquire(blocking=False):
            raise SubmissionPending(f"a {self.path} submission is already pending")
        try:
            result = call()
        finally:
            self._pending.release()
        self.invalidate()
        logger.info("%s %s", f"{self.path}_{action}", json.dumps({"id": result.get("id")}, ensure_ascii=True))
        return result


class CategoryClient(ResourceClient):
    def get_latest(self) -> Optional[dict]:
        return self._client.request("GET", f"/{self.path}/latest")


class AdminClient:
    """Session against one admin API server.

    Pass `http` to reuse an existing `httpx.Client` (FastAPI's
    `TestClient` works too); otherwise one is created for `base_url`.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: Optional[str] = None,
        http: Optional[httpx.Client] = None,
        cache: Optional[QueryCache] = None,
        timeout: float = 10.0,
    ):
        self.http = http if http is not None else httpx.Client(base_url=base_url, timeout=timeout)
        self.token = token
        self.cache = cache if cache is not None else QueryCache()
        self.categories = CategoryClient(
            self, "categories", schemas.CategoryIn, schemas.CategoryIn, "name", dependents=("qa",)
        )
        self.avatars = ResourceClient(self, "avatars", schemas.AvatarIn, schemas.AvatarIn, "url")
        self.qa = ResourceClient(self, "qa", schemas.QAIn, schemas.QAUpdate, "question")

    def login(self, username: str, password: str) -> str:
        """Exchange credentials for a bearer token used on later calls."""
        body = self.request("POST", "/auth/login", payload={"username": username, "password": password}, auth=False)
        self.token = body["access_token"]
        self.cache.clear()
        return self.token

    def register(self, username: str, password: str) -> dict:
        return self.request("POST", "/auth/register", payload={"username": username, "password": password}, auth=False)

    def users(self) -> list[dict]:
        return list(self.cache.get_or_load("users", None, lambda: self.request("GET", "/users")))

    def request(self, method: str, path: str, payload: Any = None, auth: bool = True) -> Any:
        headers = {}
        if auth and self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = self.http.request(method, path, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("request_error %s %s: %s", method, path, exc)
            raise ApiError(f"request failed: {exc}") from exc
        if response.is_success:
            return response.json()
        raise self._error_from(response)

    @staticmethod
    def _error_from(response: httpx.Response) -> ApiError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        detail = body.get("detail") if isinstance(body, dict) else None
        if not isinstance(detail, str):
            detail = f"request failed with status {response.status_code}"
        errors = body.get("errors", []) if isinstance(body, dict) else []
        return ApiError(detail, response.status_code, errors)

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "AdminClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
