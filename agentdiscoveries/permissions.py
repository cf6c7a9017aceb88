from __future__ import annotations

import logging
from typing import Any

from agentdiscoveries.errors import ErrorCode, FailedRequestException
from agentdiscoveries.models import User

log = logging.getLogger("uvicorn.error")


class PermissionsVerifier:
    """Role and ownership checks for the calling user.

    ``users_dao`` is anything with a ``get_user(user_id)`` returning a
    :class:`User` or ``None``; the ``user_store`` module in production.
    """

    def __init__(self, users_dao: Any) -> None:
        self.users_dao = users_dao

    def get_user(self, user_id: int) -> User:
        user = self.users_dao.get_user(user_id)
        if user is None:
            raise FailedRequestException(ErrorCode.NOT_AUTHENTICATED, "Authentication required")
        return user

    def is_admin(self, user_id: int) -> bool:
        return self.get_user(user_id).is_admin

    def verify_admin_permission(self, user_id: int) -> None:
        if not self.is_admin(user_id):
            log.warning("User %s denied admin-only operation", user_id)
            raise FailedRequestException(ErrorCode.NOT_AUTHORISED, "Administrator access required")

    def verify_is_admin_or_relevant_agent(self, user_id: int, agent_id: int) -> None:
        user = self.get_user(user_id)
        if user.is_admin:
            return
        if user.agent_id is not None and user.agent_id == agent_id:
            return
        log.warning("User %s denied access to agent %s", user_id, agent_id)
        raise FailedRequestException(ErrorCode.NOT_AUTHORISED, "You can only act on behalf of your own agent")

    def verify_is_admin_or_relevant_user(self, user_id: int, target_user_id: int) -> None:
        user = self.get_user(user_id)
        if user.is_admin or user.user_id == target_user_id:
            return
        log.warning("User %s denied access to user %s", user_id, target_user_id)
        raise FailedRequestException(ErrorCode.NOT_AUTHORISED, "You can only access your own account")


__all__ = ["PermissionsVerifier"]
