"""Tests for the event emitter."""
from unittest.mock import AsyncMock, Mock

import pytest

from fileupload.utils.events import EventEmitter


class TestEventEmitter:
    @pytest.mark.asyncio
    async def test_sync_and_async_listeners_in_order(self):
        calls = []
        emitter = EventEmitter()
        emitter.on("change", lambda raw: calls.append(("sync", raw)))

        async def async_listener(raw):
            calls.append(("async", raw))

        emitter.on("change", async_listener)
        await emitter.emit("change", "a.txt")

        assert calls == [("sync", "a.txt"), ("async", "a.txt")]

    @pytest.mark.asyncio
    async def test_duplicate_subscription_ignored(self):
        listener = Mock()
        emitter = EventEmitter()
        emitter.on("progress", listener)
        emitter.on("progress", listener)

        await emitter.emit("progress", 10, "a.txt")

        listener.assert_called_once_with(10, "a.txt")

    @pytest.mark.asyncio
    async def test_off(self):
        listener = AsyncMock()
        emitter = EventEmitter()
        emitter.on("success", listener)
        emitter.off("success", listener)

        await emitter.emit("success", {}, "a.txt")

        listener.assert_not_awaited()
        assert emitter.has_listeners("success") is False

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_stop_others(self):
        after = Mock()
        emitter = EventEmitter()
        emitter.on("error", Mock(side_effect=RuntimeError("bug")))
        emitter.on("error", after)

        await emitter.emit("error", ValueError("x"), "a.txt")

        after.assert_called_once()

    @pytest.mark.asyncio
    async def test_listener_may_emit(self):
        emitter = EventEmitter()
        nested = Mock()
        emitter.on("remove", nested)

        async def on_change(raw):
            await emitter.emit("remove", raw)

        emitter.on("change", on_change)
        await emitter.emit("change", "a.txt")

        nested.assert_called_once_with("a.txt")

    @pytest.mark.asyncio
    async def test_emit_without_listeners(self):
        await EventEmitter().emit("nothing")
