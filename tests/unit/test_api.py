"""Tests for API handlers and exception handling."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import Request
from fastapi.exceptions import RequestValidationError

from voteny.api import (
    _check_cache_health,
    _check_storage_health,
    create_app,
    get_aggregates,
    validation_exception_handler,
    vote_error_handler,
)
from voteny.exceptions import ConfigurationError, StorageError, ValidationError


@pytest.mark.asyncio
async def test_validation_exception_handler_missing_field():
    mock_request = MagicMock(spec=Request)
    exc = RequestValidationError(
        errors=[{"loc": ["body", "value"], "type": "missing", "msg": "Field required"}]
    )

    response = await validation_exception_handler(mock_request, exc)

    assert response.status_code == 400
    assert "Required field 'value' is missing" in response.body.decode()


@pytest.mark.asyncio
async def test_validation_exception_handler_json_invalid():
    mock_request = MagicMock(spec=Request)
    exc = RequestValidationError(errors=[{"loc": [], "type": "json_invalid", "msg": "Invalid JSON"}])

    response = await validation_exception_handler(mock_request, exc)

    assert response.status_code == 400
    assert "Invalid JSON format" in response.body.decode()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("exc", "status_code"),
    [
        (ValidationError("Vote value must be between 1 and 5"), 400),
        (StorageError("Redis connection failed"), 503),
        (ConfigurationError("VoteNY does not support mssql."), 500),
    ],
)
async def test_vote_error_handler(exc, status_code):
    response = await vote_error_handler(MagicMock(spec=Request), exc)

    assert response.status_code == status_code
    body = response.body.decode()
    assert str(exc) in body
    assert exc.__class__.__name__ in body


def test_dependency_requires_initialized_state():
    request = MagicMock(spec=Request)
    request.app.state = MagicMock(spec=[])

    with pytest.raises(RuntimeError, match="Service not initialized"):
        get_aggregates(request)


@pytest.mark.asyncio
async def test_storage_health_failure_is_reported():
    request = MagicMock(spec=Request)
    request.app.state.repository = AsyncMock()
    request.app.state.repository.health_check.side_effect = ConnectionError("gone")

    assert await _check_storage_health(request) is False


@pytest.mark.asyncio
async def test_cache_health():
    request = MagicMock(spec=Request)
    request.app.state.cache = AsyncMock()

    assert await _check_cache_health(request) is True
    request.app.state.cache.set.assert_awaited_once_with("voteny:health-check", True, 1)

    request.app.state.cache.set.side_effect = StorageError("down")
    assert await _check_cache_health(request) is False


def test_create_app():
    app = create_app()

    assert app.title == "VoteNY"
    paths = {route.path for route in app.routes}
    assert {
        "/",
        "/health",
        "/votes/count",
        "/pages/{page_id}/votes",
        "/pages/{page_id}/widget",
        "/magic-words/{magic_word_id}",
        "/login",
    } <= paths
