#!/usr/bin/env python3
"""Tests for the command-line entry point."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import make_record

from attestation_explorer.errors import TransportError
from attestation_explorer.models import PageView
from main import print_page


@pytest.fixture
def explorer():
    explorer = MagicMock()
    explorer.close = AsyncMock()
    return explorer


class TestPrintPage:
    @pytest.mark.asyncio
    async def test_prints_page_and_closes(self, explorer, capsys):
        explorer.get_page = AsyncMock(return_value=PageView(
            proofs=[make_record(epoch=3)],
            page=0,
            loading=False,
            has_more=False,
            total_items=1,
            total_pages=1,
        ))

        await print_page(explorer, 0)

        output = json.loads(capsys.readouterr().out)
        assert output["total_items"] == 1
        assert output["proofs"][0]["epoch"] == 3
        explorer.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_closes_when_fetch_fails(self, explorer):
        explorer.get_page = AsyncMock(side_effect=TransportError("node down"))

        with pytest.raises(TransportError):
            await print_page(explorer, 2)
        explorer.close.assert_awaited_once()
