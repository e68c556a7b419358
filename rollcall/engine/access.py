"""
rollcall.engine.access — Authorization Predicates
==================================================

Pure functions, no Discord or DB I/O.  Cogs extract role and channel ids
from gateway objects and ask these predicates for a decision.
"""

from __future__ import annotations

from collections.abc import Iterable


def is_authorized(role_ids: Iterable[int], required_role_id: int | None) -> bool:
    """Allow when no staff role is configured or the member holds it."""
    if required_role_id is None:
        return True
    return required_role_id in set(role_ids)


def is_monitored_channel(channel_id: int, monitored_ids: Iterable[int]) -> bool:
    """True when *channel_id* is in the monitored list.

    An empty list monitors nothing: counting starts only after an admin
    runs ``/setup monitored``.
    """
    return channel_id in set(monitored_ids)


def role_ids_of(member: object) -> list[int]:
    """Role ids of a member-like object; users outside a guild have none."""
    return [role.id for role in getattr(member, "roles", None) or []]
