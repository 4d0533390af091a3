"""
Tests for the commercetools HTTP client and its request objects.
"""

import time

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from ...config import CtpProjectConfig
from ..client import (
    CreateCommand, CtpClient, CustomObjectQuery, CustomObjectUpsertCommand, PagedQueryResult,
    ResourceQuery, UpdateCommand,
)
from ..error_tracker import (
    RETRYABLE_ERRORS, BadGatewayError, BadRequestError, ConcurrentModificationError, CtpApiError,
    GatewayTimeoutError, NotFoundError, ServiceUnavailableError, error_for_status,
)
from ..resilience import RetryPolicy


@pytest.fixture
def project_config():
    return CtpProjectConfig(
        project_key="foo",
        client_id="client",
        client_secret="secret",
        auth_url="https://auth.example.com/",
        api_url="https://api.example.com",
    )


@pytest.fixture
def client(project_config):
    policy = RetryPolicy(max_attempts=3, base_delay_seconds=0, jitter=False, retry_on_exceptions=RETRYABLE_ERRORS)
    return CtpClient(project_config, retry_policy=policy)


def mock_response(status, payload):
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=payload)
    return response


def mock_session(response):
    session = MagicMock()
    session.closed = False
    session.close = AsyncMock()
    session.request.return_value.__aenter__.return_value = response
    session.post.return_value.__aenter__.return_value = response
    return session


class TestErrorForStatus:
    """Mapping of HTTP statuses to exceptions."""

    @pytest.mark.parametrize("status,error_class", [
        (400, BadRequestError),
        (404, NotFoundError),
        (409, ConcurrentModificationError),
        (502, BadGatewayError),
        (503, ServiceUnavailableError),
        (504, GatewayTimeoutError),
    ])
    def test_known_statuses(self, status, error_class):
        error = error_for_status(status, {"message": "boom"})
        assert type(error) is error_class
        assert error.status_code == status
        assert error.message == "boom"
        assert error.body == {"message": "boom"}

    def test_unknown_status(self):
        error = error_for_status(500)
        assert type(error) is CtpApiError
        assert error.status_code == 500
        assert "500" in str(error)

    def test_default_message_uses_class_status(self):
        assert "502" in str(BadGatewayError())


class TestRequests:
    """Request objects describe one HTTP call."""

    def test_resource_query_params(self):
        query = ResourceQuery(
            endpoint="categories",
            where=['lastModifiedAt >= "2024-01-01T00:00:00.000Z"'],
            sort=["id asc"],
            expand=["parent"],
            limit=100,
        )
        assert query.path() == "/categories"
        assert query.params() == [
            ("where", 'lastModifiedAt >= "2024-01-01T00:00:00.000Z"'),
            ("sort", "id asc"),
            ("expand", "parent"),
            ("limit", "100"),
            ("withTotal", "false"),
        ]
        assert query.body() is None

    def test_next_page_keeps_shape(self):
        base_where = ['lastModifiedAt >= "x"']
        query = ResourceQuery(endpoint="products", where=list(base_where), sort=["id asc"], limit=2)
        following = query.next_page("abc", base_where).next_page("def", base_where)

        assert following.where == ['lastModifiedAt >= "x"', 'id > "def"']
        assert following.sort == ["id asc"]
        assert following.limit == 2
        assert base_where == ['lastModifiedAt >= "x"']

    def test_query_parses_paged_result(self):
        result = ResourceQuery(endpoint="types").parse(
            {"results": [{"id": "1"}], "offset": 0, "limit": 20, "count": 1}
        )
        assert isinstance(result, PagedQueryResult)
        assert result.results == [{"id": "1"}]
        assert result.total is None

    def test_commands(self):
        create = CreateCommand("types", {"key": "t"})
        assert (create.method, create.path(), create.body()) == ("POST", "/types", {"key": "t"})

        update = UpdateCommand("products", "p-1", 4, [{"action": "publish"}])
        assert update.path() == "/products/p-1"
        assert update.body() == {"version": 4, "actions": [{"action": "publish"}]}

        lookup = CustomObjectQuery("container", "key")
        assert (lookup.method, lookup.path()) == ("GET", "/custom-objects/container/key")

        upsert = CustomObjectUpsertCommand("container", "key", {"a": 1})
        assert upsert.body() == {"container": "container", "key": "key", "value": {"a": 1}}


class TestCtpClient:
    """Tests for CtpClient."""

    def test_default_scope(self, project_config):
        assert project_config.scopes == "manage_project:foo"

    @pytest.mark.asyncio
    async def test_execute_sends_request_and_parses_response(self, client):
        session = mock_session(mock_response(200, {"results": [{"id": "1"}], "count": 1}))
        client._session = session
        client._token = "token"
        client._token_expires_at = time.monotonic() + 3600

        result = await client.execute(ResourceQuery(endpoint="products", limit=10))

        assert result.results == [{"id": "1"}]
        session.request.assert_called_once_with(
            "GET",
            "https://api.example.com/foo/products",
            params=[("limit", "10"), ("withTotal", "false")],
            json=None,
            headers={"Authorization": "Bearer token"},
        )

    @pytest.mark.asyncio
    async def test_error_status_raises_matching_error(self, client):
        client._session = mock_session(mock_response(409, {"message": "version mismatch"}))
        client._token = "token"
        client._token_expires_at = time.monotonic() + 3600

        with pytest.raises(ConcurrentModificationError, match="version mismatch"):
            await client.execute(UpdateCommand("products", "p-1", 1, []))

    @pytest.mark.asyncio
    async def test_token_is_fetched_once(self, client):
        session = mock_session(mock_response(200, {"access_token": "abc", "expires_in": 172800}))
        client._session = session

        assert await client._get_token() == "abc"
        assert await client._get_token() == "abc"

        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == "https://auth.example.com/oauth/token"
        assert kwargs["data"] == {"grant_type": "client_credentials", "scope": "manage_project:foo"}

    @pytest.mark.asyncio
    async def test_gateway_errors_are_retried(self, client):
        with patch.object(client, "_send", AsyncMock(side_effect=[BadGatewayError(), GatewayTimeoutError(), {"id": "1"}])) as send:
            result = await client.execute(CustomObjectQuery("c", "k"))

        assert result == {"id": "1"}
        assert send.await_count == 3

    @pytest.mark.asyncio
    async def test_retries_are_bounded(self, client):
        error = ServiceUnavailableError()
        with patch.object(client, "_send", AsyncMock(side_effect=error)) as send:
            with pytest.raises(ServiceUnavailableError) as exc_info:
                await client.execute(CustomObjectQuery("c", "k"))

        assert exc_info.value is error
        assert send.await_count == 3

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self, client):
        with patch.object(client, "_send", AsyncMock(side_effect=BadRequestError("invalid"))) as send:
            with pytest.raises(BadRequestError):
                await client.execute(CreateCommand("types", {}))

        assert send.await_count == 1

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, client):
        session = mock_session(mock_response(200, {}))
        client._session = session

        await client.close()
        await client.close()

        session.close.assert_awaited_once()
        assert client.closed
        with pytest.raises(RuntimeError, match="closed"):
            client._get_session()

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self, project_config):
        async with CtpClient(project_config) as client:
            assert client.project_key == "foo"
        assert client.closed
