"""Tests for cargo_hold.api.deps -- request-scoped dependencies."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException

from cargo_hold.api.deps import get_app_settings, get_db, get_file_paginator, get_tenant_name
from cargo_hold.api.pagination import KeysetPaginator
from cargo_hold.common.config import Settings


def fake_request(**state):
    return SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(**state)))


def session_factory(session):
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=session)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=ctx)


class TestGetDb:
    async def test_yields_session(self):
        session = AsyncMock()
        gen = get_db(fake_request(session_factory=session_factory(session)))
        assert await gen.__anext__() is session
        with pytest.raises(StopAsyncIteration):
            await gen.__anext__()

    async def test_rolls_back_on_error(self):
        session = AsyncMock()
        gen = get_db(fake_request(session_factory=session_factory(session)))
        await gen.__anext__()
        with pytest.raises(RuntimeError):
            await gen.athrow(RuntimeError("boom"))
        session.rollback.assert_awaited_once()


class TestGetTenantName:
    def test_returns_header_value(self):
        assert get_tenant_name("acme") == "acme"

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_header(self, value):
        with pytest.raises(HTTPException) as exc_info:
            get_tenant_name(value)
        assert exc_info.value.status_code == 400


class TestSettingsAndPaginator:
    def test_app_state_settings_preferred(self):
        settings = Settings(_env_file=None, max_page_limit=7, default_page_limit=3)
        assert get_app_settings(fake_request(settings=settings)) is settings

    def test_paginator_uses_configured_limits(self):
        settings = Settings(_env_file=None, max_page_limit=7, default_page_limit=3)
        paginator = get_file_paginator(store=AsyncMock(), settings=settings)

        assert isinstance(paginator, KeysetPaginator)
        assert paginator.default_limit == 3
        assert paginator.max_limit == 7
