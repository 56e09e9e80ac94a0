"""Tests for RequestContext."""

from dataclasses import FrozenInstanceError
from uuid import UUID

import pytest

from utils.request_context import RequestContext, SYSTEM_USER_ID


class TestRequestContext:

    def test_generates_request_id(self):
        """Each context gets its own request id."""
        user_id = UUID("00000000-0000-0000-0000-000000000001")

        first = RequestContext(user_id=user_id)
        second = RequestContext(user_id=user_id)

        assert first.request_id != second.request_id

    def test_explicit_request_id(self):
        ctx = RequestContext(user_id=SYSTEM_USER_ID, request_id="abc")
        assert ctx.request_id == "abc"

    def test_system_context(self):
        """System context uses the nil UUID."""
        ctx = RequestContext.system()

        assert ctx.user_id == SYSTEM_USER_ID
        assert ctx.is_system

    def test_user_context_is_not_system(self, ctx):
        assert not ctx.is_system

    def test_is_frozen(self, ctx):
        with pytest.raises(FrozenInstanceError):
            ctx.user_id = SYSTEM_USER_ID
