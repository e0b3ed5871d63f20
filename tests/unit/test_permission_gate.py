"""Tests for PermissionGate suspension, conflict policies and cancellation."""

import asyncio

import pytest

from selekAgent.hitl import (
    OperationType,
    PermissionDecision,
    PermissionGate,
    PermissionRequest,
    PermissionResponse,
)
from selekAgent.utils.error_handler import PermissionConflictError


def make_request(context_id="conv-1", description="Write notes.md"):
    return PermissionRequest(OperationType.FILE_WRITE, description, context_id=context_id)


async def until_pending(gate, context_id="conv-1", request_id=None):
    """Yield to the loop until ``context_id`` has a pending request (optionally a specific one)."""
    for _ in range(100):
        pending = gate.pending(context_id)
        if pending and (request_id is None or pending[0].id == request_id):
            return pending[0]
        await asyncio.sleep(0)
    raise AssertionError("request never became pending")


class TestSingleRequest:

    @pytest.mark.asyncio
    async def test_request_suspends_until_decided(self):
        gate = PermissionGate()
        req = make_request()
        task = asyncio.create_task(gate.request(req))

        await until_pending(gate)
        assert not task.done()

        assert gate.decide(PermissionDecision(req.id, PermissionResponse.ALLOW_ONCE))
        decision = await task

        assert decision.allowed
        assert gate.pending() == []

    @pytest.mark.asyncio
    async def test_deny_is_delivered(self):
        gate = PermissionGate()
        req = make_request()
        task = asyncio.create_task(gate.request(req))
        await until_pending(gate)

        gate.decide(PermissionDecision(req.id, PermissionResponse.DENY, "no"))

        decision = await task
        assert not decision.allowed
        assert decision.reason == "no"

    @pytest.mark.asyncio
    async def test_decision_for_unknown_request_is_ignored(self):
        gate = PermissionGate()
        req = make_request()
        task = asyncio.create_task(gate.request(req))
        await until_pending(gate)

        assert not gate.decide(PermissionDecision("perm-unknown", PermissionResponse.ALLOW_ONCE))
        assert not task.done()

        gate.decide(PermissionDecision(req.id, PermissionResponse.ALLOW_ONCE))
        await task

    @pytest.mark.asyncio
    async def test_contexts_are_independent(self):
        gate = PermissionGate(policy="reject")
        a, b = make_request("conv-a"), make_request("conv-b")
        task_a = asyncio.create_task(gate.request(a))
        task_b = asyncio.create_task(gate.request(b))
        await until_pending(gate, "conv-a")
        await until_pending(gate, "conv-b")

        assert len(gate.pending()) == 2
        gate.decide(PermissionDecision(b.id, PermissionResponse.DENY))
        gate.decide(PermissionDecision(a.id, PermissionResponse.ALLOW_ONCE))

        assert (await task_a).allowed
        assert not (await task_b).allowed

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            PermissionGate(policy="drop")


class TestConflictPolicies:

    @pytest.mark.asyncio
    async def test_queue_policy_serves_fifo(self):
        gate = PermissionGate(policy="queue")
        requests = [make_request(description=f"op {i}") for i in range(3)]
        tasks = [asyncio.create_task(gate.request(r)) for r in requests]

        await until_pending(gate, request_id=requests[0].id)
        assert gate.queued_count("conv-1") == 2

        for i, req in enumerate(requests):
            current = await until_pending(gate, request_id=req.id)
            assert current.description == f"op {i}"
            gate.decide(PermissionDecision(req.id, PermissionResponse.ALLOW_ONCE))

        decisions = await asyncio.gather(*tasks)
        assert [d.request_id for d in decisions] == [r.id for r in requests]
        assert gate.queued_count("conv-1") == 0

    @pytest.mark.asyncio
    async def test_reject_policy_raises_conflict(self):
        gate = PermissionGate(policy="reject")
        first = make_request()
        task = asyncio.create_task(gate.request(first))
        await until_pending(gate)

        with pytest.raises(PermissionConflictError) as exc_info:
            await gate.request(make_request())

        assert exc_info.value.pending_id == first.id
        assert gate.pending("conv-1")[0].id == first.id

        gate.decide(PermissionDecision(first.id, PermissionResponse.ALLOW_ONCE))
        await task


class TestCancellation:

    @pytest.mark.asyncio
    async def test_cancelled_pending_request_promotes_next(self):
        gate = PermissionGate()
        first, second = make_request(description="first"), make_request(description="second")
        task_1 = asyncio.create_task(gate.request(first))
        await until_pending(gate, request_id=first.id)
        task_2 = asyncio.create_task(gate.request(second))
        await asyncio.sleep(0)

        task_1.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task_1

        await until_pending(gate, request_id=second.id)
        gate.decide(PermissionDecision(second.id, PermissionResponse.ALLOW_ONCE))
        assert (await task_2).allowed

    @pytest.mark.asyncio
    async def test_cancelled_queued_request_is_skipped(self):
        gate = PermissionGate()
        reqs = [make_request(description=str(i)) for i in range(3)]
        tasks = [asyncio.create_task(gate.request(r)) for r in reqs]
        await until_pending(gate, request_id=reqs[0].id)

        tasks[1].cancel()
        with pytest.raises(asyncio.CancelledError):
            await tasks[1]
        assert gate.queued_count("conv-1") == 1

        gate.decide(PermissionDecision(reqs[0].id, PermissionResponse.ALLOW_ONCE))
        await until_pending(gate, request_id=reqs[2].id)
        gate.decide(PermissionDecision(reqs[2].id, PermissionResponse.ALLOW_ONCE))

        assert (await tasks[0]).allowed
        assert (await tasks[2]).allowed


class TestSubscribers:

    @pytest.mark.asyncio
    async def test_pending_and_resolved_events(self):
        gate = PermissionGate()
        events = []
        unsubscribe = gate.subscribe(lambda e: events.append((e.kind, e.request.id)))
        req = make_request()

        task = asyncio.create_task(gate.request(req))
        await until_pending(gate)
        gate.decide(PermissionDecision(req.id, PermissionResponse.ALLOW_ONCE))
        await task
        unsubscribe()

        assert events == [("pending", req.id), ("resolved", req.id)]

    @pytest.mark.asyncio
    async def test_listener_can_decide_synchronously(self):
        gate = PermissionGate()

        def auto_approve(event):
            if event.kind == "pending":
                gate.decide(PermissionDecision(event.request.id, PermissionResponse.ALLOW_ONCE))

        gate.subscribe(auto_approve)
        decision = await gate.request(make_request())

        assert decision.allowed
