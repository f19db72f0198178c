# src/taskdesk/core/session.py

"""
Session Context: who is acting right now.

Login is by profile id only. Passwords and tokens belong to whatever
authenticates users in front of this process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..tasks.task_models import Profile, Role
from .errors import NotFound

if TYPE_CHECKING:
    from .ports import ProfileRepo

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Identity:
    """
    The authenticated actor.

    role is kept as given (str or Role) so that malformed identities coming from
    outside can still be represented and rejected by the visibility layer.
    """

    user_id: str
    role: Role | str
    company_id: str | None = None
    name: str = ""

    @classmethod
    def from_profile(cls, profile: Profile) -> Identity:
        return cls(
            user_id=profile.user_id,
            role=profile.role,
            company_id=profile.company_id if profile.role == Role.COMPANY_USER else None,
            name=profile.name,
        )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class SessionContext:
    """Holds the current Identity for one console/view session."""

    def __init__(self, profiles: ProfileRepo) -> None:
        self._profiles = profiles
        self._identity: Identity | None = None

    def current_identity(self) -> Identity | None:
        return self._identity

    def login(self, user_id: str) -> Identity:
        profile = self._profiles.get_profile(user_id)
        if profile is None:
            raise NotFound(f"unknown user {user_id!r}")
        self._identity = Identity.from_profile(profile)
        logger.info("Logged in user=%s role=%s company=%s", user_id, profile.role, profile.company_id)
        return self._identity

    def logout(self) -> None:
        if self._identity is not None:
            logger.info("Logged out user=%s", self._identity.user_id)
        self._identity = None
