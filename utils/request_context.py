"""
Explicit request context passed into every catalog write.

The caller (HTTP layer, background job, test) builds one RequestContext per
request and hands it to the service call. Nothing reads identity from module
state, so two requests on the same thread can never see each other's user.
"""

from dataclasses import dataclass, field
from uuid import UUID, uuid4

SYSTEM_USER_ID = UUID("00000000-0000-0000-0000-000000000000")


@dataclass(frozen=True)
class RequestContext:
    """Who is acting, and which request the action belongs to."""

    user_id: UUID
    request_id: str = field(default_factory=lambda: str(uuid4()))

    @classmethod
    def system(cls) -> "RequestContext":
        """
        Context for jobs and maintenance scripts with no human actor.

        Audit entries written under it carry the nil UUID.
        """
        return cls(user_id=SYSTEM_USER_ID)

    @property
    def is_system(self) -> bool:
        return self.user_id == SYSTEM_USER_ID
