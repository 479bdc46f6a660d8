from typing import Optional

from fastapi import Header

from ..utils.errors import NotAuthenticatedError


def get_current_actor_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> str:
    """Return the caller's identity as asserted by the authenticating gateway."""
    actor = (x_user_id or "").strip()
    if not actor:
        raise NotAuthenticatedError("Authentication required")
    return actor
