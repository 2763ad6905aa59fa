#!/usr/bin/env python3
"""Unit tests for fetch source selection."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import make_record

from attestation_explorer.errors import NoFetchSourceError, TransportError
from attestation_explorer.models import FetchResult
from attestation_explorer.orchestrator import FetchOrchestrator


def make_source(result=None, error=None):
    source = MagicMock()
    source.fetch_until_enough = AsyncMock(return_value=result, side_effect=error)
    return source


@pytest.fixture
def index_result():
    return FetchResult(events=[make_record(epoch=2)], last_checked_block=100)


@pytest.fixture
def node_result():
    return FetchResult(events=[make_record(epoch=1)], last_checked_block=50)


class TestFetchOrchestrator:
    """Test suite for FetchOrchestrator."""

    @pytest.mark.asyncio
    async def test_primary_success_skips_fallback(self, fetch_config, index_result, node_result):
        primary = make_source(index_result)
        fallback = make_source(node_result)
        orchestrator = FetchOrchestrator(primary, fallback)

        result = await orchestrator.fetch_until_enough(fetch_config, 25, 1000)

        assert result is index_result
        primary.fetch_until_enough.assert_awaited_once_with(fetch_config, 25, 1000)
        fallback.fetch_until_enough.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_falls_back_once_with_same_arguments(self, fetch_config, node_result):
        primary = make_source(error=TransportError("index down"))
        fallback = make_source(node_result)
        orchestrator = FetchOrchestrator(primary, fallback)

        result = await orchestrator.fetch_until_enough(fetch_config, 25, None)

        assert result is node_result
        fallback.fetch_until_enough.assert_awaited_once_with(fetch_config, 25, None)

    @pytest.mark.asyncio
    async def test_primary_error_without_fallback(self, fetch_config):
        orchestrator = FetchOrchestrator(primary=make_source(error=TransportError("index down")))

        with pytest.raises(TransportError, match="index down"):
            await orchestrator.fetch_until_enough(fetch_config, 25)

    @pytest.mark.asyncio
    async def test_graphql_disabled_uses_fallback(self, fetch_config, index_result, node_result):
        primary = make_source(index_result)
        fallback = make_source(node_result)
        config = type(fetch_config)(
            endpoint=fetch_config.endpoint,
            contract_address=fetch_config.contract_address,
            use_graphql=False,
        )

        result = await FetchOrchestrator(primary, fallback).fetch_until_enough(config, 10)

        assert result is node_result
        primary.fetch_until_enough.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_source(self, fetch_config):
        with pytest.raises(NoFetchSourceError, match="no fetch source available"):
            await FetchOrchestrator().fetch_until_enough(fetch_config, 10)

    @pytest.mark.asyncio
    async def test_fallback_error_propagates(self, fetch_config):
        orchestrator = FetchOrchestrator(
            make_source(error=TransportError("index down")),
            make_source(error=TransportError("node down")),
        )

        with pytest.raises(TransportError, match="node down"):
            await orchestrator.fetch_until_enough(fetch_config, 10)

    @pytest.mark.asyncio
    async def test_every_call_tries_primary_again(self, fetch_config, node_result):
        primary = make_source(error=TransportError("index down"))
        orchestrator = FetchOrchestrator(primary, make_source(node_result))

        await orchestrator.fetch_until_enough(fetch_config, 10)
        await orchestrator.fetch_until_enough(fetch_config, 10)

        assert primary.fetch_until_enough.await_count == 2
