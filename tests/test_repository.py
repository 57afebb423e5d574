import asyncio
from unittest.mock import AsyncMock

import pytest

from workflows.repository import WorkflowAccess, WorkflowRepository


def make_repository(fetch_one: AsyncMock, *, healthz_timeout_s: float = 2.0) -> WorkflowRepository:
    database = AsyncMock()
    database.fetch_one = fetch_one
    return WorkflowRepository(database, healthz_timeout_s=healthz_timeout_s)


@pytest.mark.asyncio
async def test_resolve_visibility_returns_flag_and_secret() -> None:
    fetch_one = AsyncMock(return_value={"public": False, "secret_id": "good-secret"})
    repository = make_repository(fetch_one)

    assert await repository.resolve_visibility(7) == WorkflowAccess(public=False, secret="good-secret")
    sql, workflow_id = fetch_one.await_args.args
    assert "FROM workflow" in sql
    assert workflow_id == 7


@pytest.mark.asyncio
async def test_resolve_visibility_missing_workflow() -> None:
    repository = make_repository(AsyncMock(return_value=None))

    assert await repository.resolve_visibility(5) is None


@pytest.mark.asyncio
async def test_resolve_visibility_null_secret_is_empty() -> None:
    repository = make_repository(AsyncMock(return_value={"public": True, "secret_id": None}))

    assert await repository.resolve_visibility(8) == WorkflowAccess(public=True, secret="")


@pytest.mark.asyncio
@pytest.mark.parametrize("workflow_id", [2**63, -(2**63) - 1, 10**30])
async def test_ids_outside_bigint_are_not_found(workflow_id: int) -> None:
    fetch_one = AsyncMock()
    repository = make_repository(fetch_one)

    assert await repository.resolve_visibility(workflow_id) is None
    fetch_one.assert_not_awaited()


@pytest.mark.asyncio
async def test_database_errors_propagate() -> None:
    repository = make_repository(AsyncMock(side_effect=asyncio.TimeoutError()))

    with pytest.raises(asyncio.TimeoutError):
        await repository.resolve_visibility(1)


@pytest.mark.asyncio
async def test_healthz_ok() -> None:
    repository = make_repository(AsyncMock(return_value={"ok": 1}))

    assert await repository.healthz_database_error() is None


@pytest.mark.asyncio
async def test_healthz_reports_error_message() -> None:
    repository = make_repository(AsyncMock(side_effect=RuntimeError("DB pool is not initialized.")))

    assert await repository.healthz_database_error() == "RuntimeError: DB pool is not initialized."


@pytest.mark.asyncio
async def test_healthz_times_out() -> None:
    async def hang(*args: object) -> None:
        await asyncio.sleep(10)

    repository = make_repository(AsyncMock(side_effect=hang), healthz_timeout_s=0.01)

    error = await repository.healthz_database_error()

    assert error is not None
    assert "TimeoutError" in error
