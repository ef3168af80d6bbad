"""Tests for the single-slot coalescing signal channel."""

import asyncio

import pytest

from reconnector.infrastructure.concurrency import SignalChannel


class TestSignalChannel:
    """Test notify/drain/receive semantics."""

    def test_starts_empty(self):
        """Test a new channel has nothing pending."""
        channel = SignalChannel("test")
        assert not channel.pending

    def test_notify_coalesces(self):
        """Test a second notify while pending is dropped."""
        channel = SignalChannel("test")

        assert channel.notify()
        assert not channel.notify()
        assert not channel.notify()
        assert channel.pending

    def test_drain_reports_pending(self):
        """Test drain discards the pending signal and reports it."""
        channel = SignalChannel("test")
        channel.notify()

        assert channel.drain()
        assert not channel.pending
        # Draining an empty channel is a no-op
        assert not channel.drain()

    @pytest.mark.asyncio
    async def test_receive_consumes_one_signal(self):
        """Test receive takes the pending signal."""
        channel = SignalChannel("test")
        channel.notify()
        channel.notify()

        await asyncio.wait_for(channel.receive(), timeout=1.0)

        assert not channel.pending

    @pytest.mark.asyncio
    async def test_receive_blocks_until_notify(self):
        """Test receive waits for a producer."""
        channel = SignalChannel("test")
        receiver = asyncio.ensure_future(channel.receive())

        await asyncio.sleep(0.01)
        assert not receiver.done()

        channel.notify()
        await asyncio.wait_for(receiver, timeout=1.0)
        assert not channel.pending

    @pytest.mark.asyncio
    async def test_only_one_receiver_takes_a_signal(self):
        """Test concurrent receivers each need their own signal."""
        channel = SignalChannel("test")
        first = asyncio.ensure_future(channel.receive())
        second = asyncio.ensure_future(channel.receive())
        await asyncio.sleep(0)

        channel.notify()
        done, pending = await asyncio.wait(
            {first, second}, timeout=0.05, return_when=asyncio.ALL_COMPLETED
        )
        assert len(done) == 1
        assert len(pending) == 1

        channel.notify()
        await asyncio.wait_for(pending.pop(), timeout=1.0)

    @pytest.mark.asyncio
    async def test_wait_does_not_consume(self):
        """Test wait leaves the signal pending."""
        channel = SignalChannel("test")
        channel.notify()

        await asyncio.wait_for(channel.wait(), timeout=1.0)

        assert channel.pending

    @pytest.mark.asyncio
    async def test_drained_signal_not_received(self):
        """Test a drained signal cannot satisfy a later receive."""
        channel = SignalChannel("test")
        channel.notify()
        channel.drain()

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(channel.receive(), timeout=0.02)

    def test_repr(self):
        """Test developer representation."""
        channel = SignalChannel("connect_ok")
        channel.notify()
        assert repr(channel) == "SignalChannel(name='connect_ok', pending=True)"
