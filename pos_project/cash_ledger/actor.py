from dataclasses import dataclass
from typing import Optional

from .conf import ledger_settings


@dataclass(frozen=True)
class Actor:
    """
    Who is performing a ledger command.
    Passed explicitly into every service call; the services never look at
    request or session state.
    """

    id: Optional[int]
    name: str
    role: str = ""

    @classmethod
    def from_user(cls, user):
        # anonymous users have no pk and no role
        if user is None or not getattr(user, "is_authenticated", False):
            return None
        name = user.get_full_name() or user.get_username()
        return cls(id=user.pk, name=name, role=getattr(user, "role", ""))

    @classmethod
    def system(cls):
        # used by scheduled jobs and management commands
        return cls(id=None, name="system", role="system")

    @property
    def is_privileged(self):
        return self.role in ledger_settings().PRIVILEGED_ROLES


def is_privileged(actor):
    """Default authorization predicate for owner-only commands."""
    return actor is not None and actor.is_privileged
