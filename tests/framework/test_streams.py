"""Tests for assetspine.framework.streams: fork isolation and merging.

Covers:
- each fork sees every upstream record, as its own copy
- an upstream failure surfaces in every fork at the same position
- closed forks detach without stalling their siblings
- merge yields the union of its inputs and propagates the first failure
- bounded buffers pause the producer
"""

from __future__ import annotations

import asyncio

import pytest

from assetspine.core.errors import SourceError
from assetspine.core.records import FileRecord
from assetspine.framework.streams import collect, fork_stream, isolate, iterate, merge_streams


def _records(*paths: str) -> list[FileRecord]:
    return [FileRecord(path=path, contents=path) for path in paths]


async def _failing_after(count: int):
    for i in range(count):
        yield FileRecord(path=f"f{i}.js", contents="x")
    raise SourceError("read failed").with_context(path=f"f{count}.js")


class TestFork:
    @pytest.mark.asyncio
    async def test_each_fork_sees_every_record(self):
        left, right = fork_stream(iterate(_records("a.js", "b.css", "index.html")), 2)
        got_left, got_right = await asyncio.gather(collect(left), collect(right))
        assert [r.path for r in got_left] == ["a.js", "b.css", "index.html"]
        assert [r.path for r in got_right] == ["a.js", "b.css", "index.html"]

    @pytest.mark.asyncio
    async def test_forks_receive_independent_copies(self):
        upstream = _records("a.js")
        left, right = fork_stream(iterate(upstream), 2)
        got_left, got_right = await asyncio.gather(collect(left), collect(right))
        assert got_left[0] is not got_right[0]
        assert got_left[0] is not upstream[0]
        got_left[0].attributes["touched"] = True
        assert "touched" not in got_right[0].attributes
        assert "touched" not in upstream[0].attributes

    @pytest.mark.asyncio
    async def test_transform_in_one_fork_is_invisible_to_the_other(self):
        left, right = fork_stream(iterate(_records("a.js", "b.js")), 2)

        async def rewrite(stream):
            async for record in stream:
                yield record.replace(text="rewritten")

        got_left, got_right = await asyncio.gather(collect(rewrite(left)), collect(right))
        assert {r.text for r in got_left} == {"rewritten"}
        assert [r.text for r in got_right] == ["a.js", "b.js"]

    @pytest.mark.asyncio
    async def test_failure_reaches_every_fork_at_same_position(self):
        forks = fork_stream(_failing_after(2), 3)

        async def consume(fork):
            seen = []
            with pytest.raises(SourceError) as exc_info:
                async for record in fork:
                    seen.append(record.path)
            return seen, exc_info.value

        outcomes = await asyncio.gather(*(consume(fork) for fork in forks))
        for seen, error in outcomes:
            assert seen == ["f0.js", "f1.js"]
            assert error.context.path == "f2.js"

    @pytest.mark.asyncio
    async def test_closed_fork_does_not_stall_sibling(self):
        left, right = fork_stream(iterate(_records(*(f"f{i}.js" for i in range(20)))), 2, maxsize=1)
        await left.aclose()
        got = await asyncio.wait_for(collect(right), timeout=2)
        assert len(got) == 20
        assert left.detached

    @pytest.mark.asyncio
    async def test_closing_every_fork_closes_upstream(self):
        closed = asyncio.Event()

        async def upstream():
            try:
                yield FileRecord(path="a.js")
            finally:
                closed.set()

        stream = upstream()
        await anext(stream)
        (fork,) = fork_stream(stream, 1)
        await fork.aclose()
        assert closed.is_set()

    @pytest.mark.asyncio
    async def test_exhausted_fork_keeps_stopping(self):
        fork = isolate(iterate(_records("a.js")))
        assert len(await collect(fork)) == 1
        with pytest.raises(StopAsyncIteration):
            await fork.__anext__()

    def test_count_must_be_positive(self):
        with pytest.raises(ValueError):
            fork_stream(iterate([]), 0)

    @pytest.mark.asyncio
    async def test_bounded_buffer_pauses_producer(self):
        produced = 0

        async def upstream():
            nonlocal produced
            for i in range(100):
                produced += 1
                yield FileRecord(path=f"f{i}.js")

        fork = isolate(upstream(), maxsize=2)
        await fork.__anext__()
        for _ in range(20):
            await asyncio.sleep(0)
        # one consumed, two buffered, one waiting for a free slot
        assert produced <= 4
        await fork.aclose()


class TestIsolate:
    @pytest.mark.asyncio
    async def test_isolate_copies_records(self):
        upstream = _records("a.js", "b.js")
        got = await collect(isolate(iterate(upstream)))
        assert [r.path for r in got] == ["a.js", "b.js"]
        assert all(g is not u for g, u in zip(got, upstream))


class TestMerge:
    @pytest.mark.asyncio
    async def test_union_of_inputs(self):
        merged = merge_streams(iterate(_records("a.js", "b.js")), iterate(_records("c.css")))
        got = await collect(merged)
        assert sorted(r.path for r in got) == ["a.js", "b.js", "c.css"]

    @pytest.mark.asyncio
    async def test_preserves_order_within_each_input(self):
        merged = merge_streams(
            iterate(_records(*(f"s{i}.js" for i in range(10)))),
            iterate(_records(*(f"d{i}.js" for i in range(10)))),
            maxsize=1,
        )
        got = [r.path for r in await collect(merged)]
        assert [p for p in got if p.startswith("s")] == [f"s{i}.js" for i in range(10)]
        assert [p for p in got if p.startswith("d")] == [f"d{i}.js" for i in range(10)]

    @pytest.mark.asyncio
    async def test_duplicates_are_not_filtered(self):
        merged = merge_streams(iterate(_records("a.js")), iterate(_records("a.js")))
        assert len(await collect(merged)) == 2

    @pytest.mark.asyncio
    async def test_empty_inputs(self):
        assert await collect(merge_streams(iterate([]), iterate([]))) == []

    @pytest.mark.asyncio
    async def test_failure_propagates(self):
        merged = merge_streams(_failing_after(1), iterate(_records("ok.js")))
        with pytest.raises(SourceError):
            await collect(merged)

    @pytest.mark.asyncio
    async def test_failure_closes_other_inputs(self):
        closed = asyncio.Event()

        async def slow():
            try:
                yield FileRecord(path="slow.js")
                await asyncio.sleep(10)
                yield FileRecord(path="never.js")
            finally:
                closed.set()

        with pytest.raises(SourceError):
            await asyncio.wait_for(collect(merge_streams(_failing_after(0), slow())), timeout=2)
        assert closed.is_set()
