"""Tests for audit context management.

Verifies that the ContextVar-based audit context provides proper
isolation between concurrent async tasks and feeds author resolution.
"""

import asyncio

import pytest

from audittrail.config import settings
from audittrail.core.audit import Audit
from audittrail.core.audit.context import (
    clear_audit_context,
    get_audit_context,
    resolve_author,
    set_audit_context,
)


pytestmark = pytest.mark.unit


class TestAuditContextBasic:
    """Basic tests for audit context functions."""

    def test_get_context_returns_empty_dict_when_not_set(self):
        """Test that get_audit_context returns empty dict when not set."""
        assert get_audit_context() == {}

    def test_set_and_get_context(self):
        """Test setting and getting audit context."""
        set_audit_context(
            author="alice",
            request_id="req-123",
            ip_address="192.168.1.1",
            user_agent="Test Agent",
        )

        context = get_audit_context()

        assert context["author"] == "alice"
        assert context["request_id"] == "req-123"
        assert context["ip_address"] == "192.168.1.1"
        assert context["user_agent"] == "Test Agent"

    def test_clear_context(self):
        """Test clearing audit context."""
        set_audit_context(author="alice")

        clear_audit_context()

        assert get_audit_context() == {}

    def test_get_context_returns_copy(self):
        """Test that get_audit_context returns a copy, not the original."""
        set_audit_context(author="alice")

        context1 = get_audit_context()
        context1["modified"] = True

        assert "modified" not in get_audit_context()

    def test_set_context_overwrites_previous(self):
        """Test that set_audit_context completely replaces previous context."""
        set_audit_context(author="alice", request_id="first-request")
        set_audit_context(request_id="second-request")

        context = get_audit_context()
        assert context["request_id"] == "second-request"
        assert context["author"] is None


class TestResolveAuthor:
    """Tests for author resolution order."""

    def test_explicit_author_wins(self):
        """Test that an explicit author beats the context."""
        set_audit_context(author="context-user")
        assert resolve_author("explicit-user") == "explicit-user"

    def test_context_author_used(self):
        """Test that the context author is used when none is given."""
        set_audit_context(author="context-user")
        assert resolve_author() == "context-user"

    def test_falls_back_to_default_author(self):
        """Test the settings default when nothing else is known."""
        assert resolve_author() == settings.default_author

    def test_audit_picks_up_context_author(self):
        """Test that a new Audit records the context author."""
        set_audit_context(author="bob")
        assert Audit().author == "bob"


class TestAuditContextAsyncIsolation:
    """Tests verifying async context isolation."""

    @pytest.mark.asyncio
    async def test_context_isolated_between_tasks(self):
        """Test that context is isolated between concurrent async tasks."""
        results: dict[str, dict] = {}

        async def request(name: str):
            set_audit_context(author=name, request_id=f"req-{name}")
            await asyncio.sleep(0.01)  # Yield control
            results[name] = get_audit_context()
            clear_audit_context()

        await asyncio.gather(request("alice"), request("bob"))

        assert results["alice"]["author"] == "alice"
        assert results["bob"]["author"] == "bob"
        assert results["bob"]["request_id"] == "req-bob"

    @pytest.mark.asyncio
    async def test_child_task_changes_dont_propagate_back(self):
        """Test that child tasks inherit context but changes don't affect parent."""

        async def child_task():
            assert get_audit_context()["author"] == "parent"
            set_audit_context(author="child")
            return Audit().author

        set_audit_context(author="parent")

        child_author = await asyncio.create_task(child_task())

        assert child_author == "child"
        assert get_audit_context()["author"] == "parent"
        assert Audit().author == "parent"

    @pytest.mark.asyncio
    async def test_many_concurrent_requests_isolation(self):
        """Stress test: verify isolation with many concurrent requests."""
        num_tasks = 50
        results: dict[int, str] = {}

        async def simulated_request(task_id: int):
            set_audit_context(author=f"user-{task_id}")
            await asyncio.sleep(0.001 * (task_id % 5))
            results[task_id] = Audit().author
            clear_audit_context()

        await asyncio.gather(*[simulated_request(i) for i in range(num_tasks)])

        for task_id, author in results.items():
            assert author == f"user-{task_id}", f"Task {task_id} saw wrong author"
