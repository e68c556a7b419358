"""
rollcall.engine.stage — Stage Tracking Decisions
=================================================

Turns a voice-state change into "end a session" / "start a session"
decisions.  Only transitions into or out of a Stage channel matter:

- leave a Stage channel             → end
- enter a Stage channel             → start
- Stage A → Stage B                 → end, then start
- mute / deafen in the same channel → nothing
"""

from __future__ import annotations

from dataclasses import dataclass

import discord

from rollcall.database.models import StageMode
from rollcall.engine.access import is_authorized


@dataclass(frozen=True, slots=True)
class StageTransition:
    end: bool = False
    start: bool = False

    @property
    def is_noop(self) -> bool:
        return not (self.end or self.start)


def is_stage_channel(channel: object | None) -> bool:
    return channel is not None and getattr(channel, "type", None) == discord.ChannelType.stage_voice


def stage_transition(before_channel: object | None, after_channel: object | None) -> StageTransition:
    """Decide what a voice move means for Stage timing."""
    before_id = getattr(before_channel, "id", None)
    after_id = getattr(after_channel, "id", None)
    if before_id == after_id:
        return StageTransition()
    return StageTransition(
        end=is_stage_channel(before_channel),
        start=is_stage_channel(after_channel),
    )


def is_tracked_member(
    mode: StageMode,
    member_id: int,
    role_ids: list[int],
    *,
    stage_mod_id: int | None,
    staff_role_id: int | None,
) -> bool:
    """Whether *member_id* should be timed under the configured mode.

    ``single`` tracks only the stage moderator; ``role`` tracks anyone with
    the staff role.  Either mode tracks nobody until its id is configured.
    """
    if mode is StageMode.SINGLE:
        return stage_mod_id is not None and member_id == stage_mod_id
    if staff_role_id is None:
        return False
    return is_authorized(role_ids, staff_role_id)
