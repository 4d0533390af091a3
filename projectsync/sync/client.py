"""
Asynchronous client for the commercetools HTTP API.

Requests are plain objects describing one HTTP call (``ResourceQuery`` for paged
reads, commands for writes); ``CtpClient.execute`` sends them and returns the parsed
response. Gateway errors are retried inside the client, everything else is raised
as a ``CtpApiError`` subclass.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from .error_tracker import RETRYABLE_ERRORS, error_for_status
from .logging_manager import get_logger
from .resilience import RetryPolicy, with_retry

logger = get_logger(__name__)

# Refresh tokens slightly before the platform expires them
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class Clock:
    """Source of the current time; replaced by a fixed clock in tests."""
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


@dataclass
class PagedQueryResult:
    """One page of a query response."""
    results: List[Dict[str, Any]] = field(default_factory=list)
    offset: int = 0
    limit: int = 0
    count: int = 0
    total: Optional[int] = None

    @classmethod
    def empty(cls) -> 'PagedQueryResult':
        return cls()

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> 'PagedQueryResult':
        results = payload.get('results') or []
        return cls(
            results=results,
            offset=payload.get('offset', 0),
            limit=payload.get('limit', 0),
            count=payload.get('count', len(results)),
            total=payload.get('total'),
        )


class CtpRequest:
    """A single call against a project's API."""
    method = "GET"

    def path(self) -> str:
        raise NotImplementedError

    def params(self) -> List[Tuple[str, str]]:
        return []

    def body(self) -> Optional[Dict[str, Any]]:
        return None

    def parse(self, payload: Any) -> Any:
        return payload


@dataclass
class ResourceQuery(CtpRequest):
    """Paged query of one resource endpoint, e.g. ``products`` or ``inventory``."""
    endpoint: str
    where: List[str] = field(default_factory=list)
    sort: List[str] = field(default_factory=list)
    expand: List[str] = field(default_factory=list)
    limit: Optional[int] = None

    def path(self) -> str:
        return f"/{self.endpoint}"

    def params(self) -> List[Tuple[str, str]]:
        params = [('where', w) for w in self.where]
        params += [('sort', s) for s in self.sort]
        params += [('expand', e) for e in self.expand]
        if self.limit is not None:
            params.append(('limit', str(self.limit)))
        params.append(('withTotal', 'false'))
        return params

    def parse(self, payload: Any) -> PagedQueryResult:
        return PagedQueryResult.from_dict(payload or {})

    def next_page(self, last_id: str, base_where: List[str]) -> 'ResourceQuery':
        """The query for the page following the resource with ``last_id``."""
        return ResourceQuery(
            endpoint=self.endpoint,
            where=base_where + [f'id > "{last_id}"'],
            sort=list(self.sort),
            expand=list(self.expand),
            limit=self.limit,
        )


@dataclass
class CreateCommand(CtpRequest):
    endpoint: str
    draft: Dict[str, Any]
    method = "POST"

    def path(self) -> str:
        return f"/{self.endpoint}"

    def body(self) -> Optional[Dict[str, Any]]:
        return self.draft


@dataclass
class UpdateCommand(CtpRequest):
    endpoint: str
    resource_id: str
    version: int
    actions: List[Dict[str, Any]]
    method = "POST"

    def path(self) -> str:
        return f"/{self.endpoint}/{self.resource_id}"

    def body(self) -> Optional[Dict[str, Any]]:
        return {"version": self.version, "actions": self.actions}


@dataclass
class CustomObjectQuery(CtpRequest):
    """Fetch a custom object by container and key."""
    container: str
    key: str

    def path(self) -> str:
        return f"/custom-objects/{self.container}/{self.key}"


@dataclass
class CustomObjectUpsertCommand(CtpRequest):
    container: str
    key: str
    value: Any
    method = "POST"

    def path(self) -> str:
        return "/custom-objects"

    def body(self) -> Optional[Dict[str, Any]]:
        return {"container": self.container, "key": self.key, "value": self.value}


class CtpClient:
    """
    Client of one commercetools project.

    The HTTP session and the access token are created on first use. ``close`` must be
    called once the client is no longer needed.
    """

    def __init__(self, project_config, retry_policy: Optional[RetryPolicy] = None):
        """
        Args:
            project_config: CtpProjectConfig of the project to talk to
            retry_policy: Policy applied to gateway errors
        """
        self.config = project_config
        self.retry_policy = retry_policy or RetryPolicy(retry_on_exceptions=RETRYABLE_ERRORS)
        self._session: Optional[aiohttp.ClientSession] = None
        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self.closed = False

    @property
    def project_key(self) -> str:
        return self.config.project_key

    def _get_session(self) -> aiohttp.ClientSession:
        if self.closed:
            raise RuntimeError(f"Client of project {self.project_key} is closed")
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout)
            )
        return self._session

    async def _get_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        session = self._get_session()
        url = f"{self.config.auth_url.rstrip('/')}/oauth/token"
        data = {"grant_type": "client_credentials", "scope": self.config.scopes}
        auth = aiohttp.BasicAuth(self.config.client_id, self.config.client_secret)
        async with session.post(url, data=data, auth=auth) as response:
            payload = await response.json(content_type=None)
            if response.status >= 400:
                raise error_for_status(response.status, payload if isinstance(payload, dict) else None)

        self._token = payload["access_token"]
        expires_in = int(payload.get("expires_in", 0))
        self._token_expires_at = time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN_SECONDS, 0)
        logger.debug(f"Fetched access token for project {self.project_key}")
        return self._token

    async def _send(self, request: CtpRequest) -> Any:
        session = self._get_session()
        token = await self._get_token()
        url = f"{self.config.api_url.rstrip('/')}/{self.project_key}{request.path()}"
        headers = {"Authorization": f"Bearer {token}"}
        async with session.request(
            request.method, url, params=request.params(), json=request.body(), headers=headers
        ) as response:
            payload = await response.json(content_type=None)
            if response.status >= 400:
                raise error_for_status(response.status, payload if isinstance(payload, dict) else None)
            return payload

    async def execute(self, request: CtpRequest) -> Any:
        """
        Send the request and return its parsed response.

        Raises:
            CtpApiError: If the platform answers with an error status
        """
        payload = await with_retry(
            lambda: self._send(request),
            policy=self.retry_policy,
            description=f"{request.method} {request.path()} on {self.project_key}",
        )
        return request.parse(payload)

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
        self.closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
