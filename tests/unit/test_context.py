"""Unit tests for Context cancellation."""

from __future__ import annotations

import pytest

from row_tx.core.context import Context
from row_tx.core.exceptions import ContextCancelledError, DeadlineExceededError


class TestContext:
    def test_background_is_live(self) -> None:
        ctx = Context.background()
        assert not ctx.cancelled
        assert ctx.error() is None
        ctx.raise_if_cancelled()

    def test_cancel_cascades_to_children(self) -> None:
        root = Context.background()
        child = root.with_cancel()
        grandchild = child.with_cancel()

        root.cancel()

        assert child.cancelled
        assert grandchild.cancelled
        with pytest.raises(ContextCancelledError, match="context canceled"):
            grandchild.raise_if_cancelled()

    def test_child_cancel_leaves_parent(self) -> None:
        root = Context.background()
        child = root.with_cancel()
        child.cancel()
        assert not root.cancelled

    def test_child_of_cancelled_parent(self) -> None:
        root = Context.background()
        root.cancel()
        assert root.with_cancel().cancelled

    def test_timeout(self) -> None:
        ctx = Context.background().with_timeout(0.01)
        assert ctx.wait(5.0)
        assert isinstance(ctx.error(), DeadlineExceededError)
        with pytest.raises(DeadlineExceededError, match="deadline exceeded"):
            ctx.raise_if_cancelled()

    def test_callbacks_run_once(self) -> None:
        ctx = Context.background()
        calls = []
        ctx.on_cancel(lambda: calls.append("a"))
        ctx.cancel()
        ctx.cancel()
        assert calls == ["a"]

    def test_unregistered_callback_does_not_run(self) -> None:
        ctx = Context.background()
        calls = []
        unregister = ctx.on_cancel(lambda: calls.append("a"))
        unregister()
        ctx.cancel()
        assert calls == []

    def test_callback_on_cancelled_context_runs_immediately(self) -> None:
        ctx = Context.background()
        ctx.cancel()
        calls = []
        ctx.on_cancel(lambda: calls.append("a"))
        assert calls == ["a"]

    def test_failing_callback_does_not_stop_others(self) -> None:
        ctx = Context.background()
        calls = []

        def broken() -> None:
            raise RuntimeError("boom")

        ctx.on_cancel(broken)
        ctx.on_cancel(lambda: calls.append("b"))
        ctx.cancel()
        assert calls == ["b"]

    def test_context_manager_cancels(self) -> None:
        with Context.background().with_cancel() as ctx:
            assert not ctx.cancelled
        assert ctx.cancelled
