"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc
from utils.request_context import RequestContext, SYSTEM_USER_ID
