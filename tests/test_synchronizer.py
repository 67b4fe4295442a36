"""Tests for push subscription, fallback polling, cancellation and debounce."""

import asyncio

import pytest
from conftest import END, IDLE, QueueFeed, import_queue, settle, snapshot

from wiki_console.exceptions import CancellationError, RpcError
from wiki_console.job_status.schemas import SyncState
from wiki_console.job_status.synchronizer import JobStatusSynchronizer


def make_sync(feed, **kwargs) -> JobStatusSynchronizer:
    kwargs.setdefault("poll_interval_seconds", 0.01)
    kwargs.setdefault("debounce_seconds", 0.05)
    kwargs.setdefault("fallback_polling", True)
    return JobStatusSynchronizer(feed, name="test", **kwargs)


class TestStreaming:
    @pytest.mark.asyncio
    async def test_each_snapshot_replaces_the_view(self, feed):
        sync = make_sync(feed, update_interval_ms=250)
        seen = []
        sync.add_listener(lambda s: seen.append(s.snapshot))

        sync.start()
        assert sync.state == SyncState.SUBSCRIBING
        first = snapshot(import_queue(5, 6))
        second = snapshot(import_queue(4, 6))
        feed.push(first)
        feed.push(second)
        await settle()

        assert sync.state == SyncState.STREAMING
        assert sync.snapshot == second
        delivered = [item for item in seen if item is not None]
        assert delivered[:2] == [first, second]
        assert feed.intervals == [250]
        sync.stop()

    @pytest.mark.asyncio
    async def test_natural_end_is_completion_not_failure(self, feed):
        sync = make_sync(feed)
        sync.start()
        feed.push(snapshot(import_queue(1, 2)))
        feed.push(END)

        await asyncio.wait_for(sync.wait(), timeout=1)

        assert sync.state == SyncState.IDLE
        assert sync.completed
        assert not sync.disconnected
        assert sync.last_error is None

    @pytest.mark.asyncio
    async def test_snapshot_is_a_copy(self, feed):
        sync = make_sync(feed)
        sync.start()
        feed.push(snapshot(import_queue(1, 2)))
        await settle()

        assert sync.snapshot == sync.snapshot
        assert sync.snapshot is not sync.snapshot
        sync.stop()

    @pytest.mark.asyncio
    async def test_start_replaces_live_subscription(self, feed):
        sync = make_sync(feed)
        sync.start()
        await settle()
        sync.start()
        await settle()

        assert feed.stream_calls == 2
        assert feed.closed == 1
        assert sync.running
        sync.stop()


class TestCancellation:
    @pytest.mark.asyncio
    async def test_stop_is_silent_and_idempotent(self, feed):
        sync = make_sync(feed)
        sync.start()
        feed.push(snapshot(import_queue(3, 3)))
        await settle()

        sync.stop()
        sync.stop()
        await settle()

        assert sync.state == SyncState.IDLE
        assert not sync.running
        assert not sync.disconnected
        assert sync.last_error is None
        assert feed.closed == 1

    @pytest.mark.asyncio
    async def test_stop_before_start_is_harmless(self, feed):
        sync = make_sync(feed)
        sync.stop()
        assert sync.state == SyncState.IDLE

    @pytest.mark.asyncio
    async def test_transport_cancellation_after_stop_is_swallowed(self):
        feed = QueueFeed(cancel_error=CancellationError("aborted"))
        sync = make_sync(feed)
        sync.start()
        await settle()

        sync.stop()
        await settle()

        assert not sync.disconnected
        assert sync.last_error is None
        assert feed.fetch_calls == 0

    @pytest.mark.asyncio
    async def test_cancellation_error_while_subscribed_falls_back_to_polling(self):
        feed = QueueFeed(polls=[snapshot(import_queue(2, 4)), IDLE])
        sync = make_sync(feed)
        sync.start()
        feed.push(snapshot(import_queue(3, 4)))
        feed.push(CancellationError())

        await asyncio.wait_for(sync.wait(), timeout=1)

        assert sync.disconnected
        assert sync.last_error is not None
        assert feed.fetch_calls == 2
        assert sync.state == SyncState.IDLE
        assert sync.completed

    @pytest.mark.asyncio
    async def test_cancellation_error_while_subscribed_without_fallback(self, feed):
        sync = make_sync(feed, fallback_polling=False)
        sync.start()
        feed.push(snapshot(import_queue(3, 4)))
        feed.push(CancellationError())

        await asyncio.wait_for(sync.wait(), timeout=1)

        assert sync.state == SyncState.DISCONNECTED
        assert sync.disconnected
        assert not sync.completed
        assert not sync.running

    @pytest.mark.asyncio
    async def test_listeners_hear_when_the_run_ends(self, feed):
        sync = make_sync(feed, fallback_polling=False)
        running_seen = []
        sync.add_listener(lambda s: running_seen.append(s.running))
        sync.start()
        feed.push(RuntimeError("stream broke"))

        await asyncio.wait_for(sync.wait(), timeout=1)
        await settle()

        assert running_seen[-1] is False

    @pytest.mark.asyncio
    async def test_wait_returns_when_stopped(self, feed):
        sync = make_sync(feed)
        sync.start()
        waiter = asyncio.create_task(sync.wait())
        await settle()

        sync.stop()

        await asyncio.wait_for(waiter, timeout=1)
        assert waiter.done() and not waiter.cancelled()


class TestFallbackPolling:
    @pytest.mark.asyncio
    async def test_stream_failure_sets_disconnected_and_polls(self):
        busy = snapshot(import_queue(2, 3))
        feed = QueueFeed(polls=[busy, busy, IDLE])
        sync = make_sync(feed)
        sync.start()
        feed.push(RpcError("unavailable", "backend restarting"))

        await asyncio.wait_for(sync.wait(), timeout=1)

        assert sync.disconnected
        assert sync.last_error.message == "Service unavailable"
        assert feed.fetch_calls == 3
        assert sync.snapshot == IDLE
        assert sync.completed

    @pytest.mark.asyncio
    async def test_poll_failures_are_retried(self):
        feed = QueueFeed(polls=[RuntimeError("blip"), IDLE])
        sync = make_sync(feed)
        sync.start()
        feed.push(RuntimeError("stream broke"))

        await asyncio.wait_for(sync.wait(), timeout=1)

        assert feed.fetch_calls == 2
        assert sync.completed

    @pytest.mark.asyncio
    async def test_cancellation_error_from_a_poll_is_retried(self):
        feed = QueueFeed(polls=[CancellationError(), IDLE])
        sync = make_sync(feed)
        sync.start()
        feed.push(RuntimeError("stream broke"))

        await asyncio.wait_for(sync.wait(), timeout=1)

        assert feed.fetch_calls == 2
        assert sync.completed

    @pytest.mark.asyncio
    async def test_without_fallback_the_run_ends_disconnected(self, feed):
        sync = make_sync(feed, fallback_polling=False)
        sync.start()
        feed.push(RuntimeError("stream broke"))

        await asyncio.wait_for(sync.wait(), timeout=1)

        assert sync.state == SyncState.DISCONNECTED
        assert sync.disconnected
        assert feed.fetch_calls == 0

    @pytest.mark.asyncio
    async def test_fresh_subscription_stops_polling(self):
        busy = snapshot(import_queue(2, 3))
        feed = QueueFeed(polls=[busy])
        sync = make_sync(feed)
        sync.start()
        feed.push(RuntimeError("stream broke"))
        await asyncio.sleep(0.05)
        assert sync.state == SyncState.POLLING

        sync.start()
        await settle()
        polls_at_restart = feed.fetch_calls
        await asyncio.sleep(0.05)

        assert feed.fetch_calls == polls_at_restart
        assert not sync.disconnected
        assert sync.state == SyncState.SUBSCRIBING
        feed.push(busy)
        await settle()
        assert sync.state == SyncState.STREAMING
        sync.stop()

    @pytest.mark.asyncio
    async def test_stop_cancels_polling(self):
        feed = QueueFeed(polls=[snapshot(import_queue(2, 3))])
        sync = make_sync(feed)
        sync.start()
        feed.push(RuntimeError("stream broke"))
        await asyncio.sleep(0.03)

        sync.stop()
        calls = feed.fetch_calls
        await asyncio.sleep(0.05)

        assert feed.fetch_calls == calls
        assert sync.state == SyncState.IDLE


class TestDebounce:
    @pytest.mark.asyncio
    async def test_burst_of_reloads_restarts_once(self, feed):
        sync = make_sync(feed)

        sync.request_reload()
        await asyncio.sleep(0.02)
        sync.request_reload()
        await asyncio.sleep(0.02)
        sync.request_reload()
        assert feed.stream_calls == 0

        await asyncio.sleep(0.1)
        await settle()

        assert feed.stream_calls == 1
        assert not sync.reload_pending
        sync.stop()

    @pytest.mark.asyncio
    async def test_stop_discards_pending_reload(self, feed):
        sync = make_sync(feed)
        sync.request_reload()

        sync.stop()
        await asyncio.sleep(0.1)

        assert feed.stream_calls == 0

    @pytest.mark.asyncio
    async def test_wait_follows_a_debounced_restart(self, feed):
        sync = make_sync(feed)
        sync.start()
        waiter = asyncio.create_task(sync.wait())
        await settle()

        sync.request_reload(0)
        await asyncio.sleep(0.01)
        await settle()
        assert not waiter.done()

        feed.push(END)
        await asyncio.wait_for(waiter, timeout=1)
        assert sync.completed


class TestListeners:
    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_the_stream(self, feed):
        sync = make_sync(feed)

        def broken(_sync):
            raise ValueError("listener bug")

        sync.add_listener(broken)
        sync.start()
        feed.push(snapshot(import_queue(1, 1)))
        await settle()

        assert sync.state == SyncState.STREAMING
        assert not sync.disconnected
        sync.stop()

    @pytest.mark.asyncio
    async def test_removed_listener_is_not_called(self, feed):
        sync = make_sync(feed)
        calls = []
        remove = sync.add_listener(lambda s: calls.append(s.state))
        remove()

        sync.start()
        await settle()

        assert calls == []
        sync.stop()
