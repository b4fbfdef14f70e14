"""Tests for the idle-shutdown supervisor."""

from __future__ import annotations

import asyncio

import pytest

from resume_preview.idle import IdleShutdownSupervisor
from resume_preview.live_reload import SubscriberRegistry


@pytest.mark.asyncio
async def test_fires_once_after_last_subscriber_leaves() -> None:
    calls = []
    registry = SubscriberRegistry()
    supervisor = IdleShutdownSupervisor(lambda: calls.append("idle"), grace_seconds=0.2)
    supervisor.attach(registry)

    subscriber = registry.subscribe("alpha")
    registry.unsubscribe(subscriber)
    assert supervisor.armed

    await asyncio.sleep(0.1)
    assert calls == []
    assert not supervisor.fired

    await asyncio.sleep(0.25)
    assert calls == ["idle"]
    assert supervisor.fired
    assert not supervisor.armed

    registry.unsubscribe(registry.subscribe("alpha"))
    await asyncio.sleep(0.3)
    assert calls == ["idle"]


@pytest.mark.asyncio
async def test_attach_alone_does_not_arm() -> None:
    calls = []
    supervisor = IdleShutdownSupervisor(lambda: calls.append("idle"), grace_seconds=0.05)
    supervisor.attach(SubscriberRegistry())

    await asyncio.sleep(0.15)

    assert not supervisor.armed
    assert calls == []


@pytest.mark.asyncio
async def test_new_subscriber_disarms_timer() -> None:
    calls = []
    registry = SubscriberRegistry()
    supervisor = IdleShutdownSupervisor(lambda: calls.append("idle"), grace_seconds=0.1)
    supervisor.attach(registry)
    supervisor.arm()

    subscriber = registry.subscribe("alpha")
    assert not supervisor.armed
    await asyncio.sleep(0.2)
    assert calls == []

    registry.unsubscribe(subscriber)
    assert supervisor.armed
    await asyncio.sleep(0.2)
    assert calls == ["idle"]


@pytest.mark.asyncio
async def test_reconnect_within_grace_keeps_server_alive() -> None:
    calls = []
    registry = SubscriberRegistry()
    supervisor = IdleShutdownSupervisor(lambda: calls.append("idle"), grace_seconds=0.1)
    supervisor.attach(registry)

    first = registry.subscribe("alpha")
    registry.unsubscribe(first)
    await asyncio.sleep(0.05)
    second = registry.subscribe("alpha")
    await asyncio.sleep(0.15)

    assert calls == []
    registry.unsubscribe(second)
    supervisor.disarm()


@pytest.mark.asyncio
async def test_disarm_without_timer_is_a_no_op() -> None:
    supervisor = IdleShutdownSupervisor(lambda: None, grace_seconds=0.05)
    supervisor.disarm()
    assert not supervisor.armed
