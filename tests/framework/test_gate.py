"""Tests for assetspine.framework.gate: the completion gate."""

from __future__ import annotations

import pytest

from assetspine.core.errors import StorageError
from assetspine.core.records import FileRecord
from assetspine.framework.gate import CompletionGate
from assetspine.framework.streams import collect, iterate


class TestCompletionGate:
    @pytest.mark.asyncio
    async def test_resolve(self):
        gate: CompletionGate[str] = CompletionGate("default")
        assert not gate.done
        assert gate.resolve("ok") is True
        assert gate.done
        assert await gate == "ok"

    @pytest.mark.asyncio
    async def test_reject(self):
        gate: CompletionGate[str] = CompletionGate("default")
        gate.reject(StorageError("disk full"))
        with pytest.raises(StorageError):
            await gate

    @pytest.mark.asyncio
    async def test_first_outcome_wins(self):
        gate: CompletionGate[str] = CompletionGate("default")
        assert gate.reject(StorageError("first")) is True
        assert gate.resolve("late") is False
        assert gate.reject(StorageError("second")) is False
        with pytest.raises(StorageError, match="first"):
            await gate

    @pytest.mark.asyncio
    async def test_watch_marks_building_on_first_record(self):
        gate: CompletionGate[None] = CompletionGate("default")
        stream = gate.watch(iterate([FileRecord(path="a.js"), FileRecord(path="b.js")]))
        assert not gate.building
        first = await stream.__anext__()
        assert first.path == "a.js"
        assert gate.building
        rest = await collect(stream)
        assert [r.path for r in rest] == ["b.js"]

    @pytest.mark.asyncio
    async def test_empty_stream_never_marks_building(self):
        gate: CompletionGate[None] = CompletionGate("default")
        assert await collect(gate.watch(iterate([]))) == []
        assert not gate.building

