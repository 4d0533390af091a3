"""
Helpers shared by the sync tests: mocked project clients and a fixed clock.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, Mock

from ..client import (
    CreateCommand, CustomObjectQuery, CustomObjectUpsertCommand, PagedQueryResult,
    ResourceQuery, UpdateCommand,
)
from ..error_tracker import NotFoundError

FIXED_NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def get_mocked_clock(now: datetime = FIXED_NOW) -> Mock:
    clock = Mock()
    clock.now.return_value = now
    return clock


def mock_client(project_key: str, query_results: Optional[Dict[str, Any]] = None,
                last_sync: Optional[Dict[str, Any]] = None) -> Mock:
    """
    Mocked project client.

    ``query_results`` maps an endpoint to a PagedQueryResult, a list of them (one per
    call) or an exception to raise. Unlisted endpoints return empty pages. Custom object
    lookups return ``last_sync`` as value, or raise NotFoundError when it is None.
    Creates and updates echo the draft with a generated id and version.
    """
    query_results = query_results or {}
    calls: Dict[str, int] = {}

    async def execute(request):
        if isinstance(request, ResourceQuery):
            result = query_results.get(request.endpoint, PagedQueryResult.empty())
            if isinstance(result, list):
                index = calls.get(request.endpoint, 0)
                calls[request.endpoint] = index + 1
                result = result[index] if index < len(result) else PagedQueryResult.empty()
            if isinstance(result, BaseException):
                raise result
            return result
        if isinstance(request, CustomObjectQuery):
            if last_sync is None:
                raise NotFoundError()
            return {'container': request.container, 'key': request.key, 'value': last_sync}
        if isinstance(request, CustomObjectUpsertCommand):
            return {'container': request.container, 'key': request.key, 'value': request.value, 'version': 1}
        if isinstance(request, CreateCommand):
            key = request.draft.get('key') or request.draft.get('sku')
            return {'id': f'{project_key}-{key}', 'version': 1, **request.draft}
        if isinstance(request, UpdateCommand):
            return {'id': request.resource_id, 'version': request.version + 1}
        raise AssertionError(f"Unexpected request {request!r}")

    client = Mock()
    client.project_key = project_key
    client.execute = AsyncMock(side_effect=execute)
    client.close = AsyncMock()
    return client


def page_of(*resources: Dict[str, Any]) -> PagedQueryResult:
    return PagedQueryResult(results=list(resources), count=len(resources), limit=len(resources))


def executed_queries(client: Mock, endpoint: Optional[str] = None) -> List[ResourceQuery]:
    return [
        call.args[0] for call in client.execute.await_args_list
        if isinstance(call.args[0], ResourceQuery) and (endpoint is None or call.args[0].endpoint == endpoint)
    ]


def executed_commands(client: Mock, command_type) -> List[Any]:
    return [call.args[0] for call in client.execute.await_args_list if isinstance(call.args[0], command_type)]


def verify_interactions_with_client_after_sync(client: Mock, number_of_queries: int, endpoint: Optional[str] = None):
    """The client was queried the given number of times and closed exactly once."""
    assert len(executed_queries(client, endpoint)) == number_of_queries
    client.close.assert_awaited_once()
