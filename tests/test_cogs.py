"""
tests/test_cogs.py — Cog Handlers
==================================

Drives the inner handlers of the Attendance, Counter, Stage and Setup cogs
with lightweight fakes and a real in-memory database.  The persistent view
is never built here; button presses go straight to ``handle_action``.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from rollcall.bot.cogs.attendance import ACTION_REPLIES, FAILURE, STAFF_ONLY, Attendance
from rollcall.bot.cogs.counter import Counter
from rollcall.bot.cogs.setup import Setup, build_settings_embed
from rollcall.bot.cogs.stage import Stage
from rollcall.bot.views import PanelAction
from rollcall.constants import (
    MONITORED_CHANNELS_KEY,
    STAFF_ROLE_KEY,
    STAGE_MOD_KEY,
    STAGE_MODE_KEY,
)
from rollcall.database.models import StaffMember, StaffStatus, StageSession
from rollcall.services.settings_service import get_setting, load_guild_settings, set_setting
from rollcall.services.stage_service import start_stage_session
from rollcall.services.staff_service import ensure_staff, get_status, set_status

STAFF_ROLE = 500
MONITORED = 600


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.get_event_loop_policy().new_event_loop().run_until_complete(coro)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _make_bot(db_engine, cfg) -> MagicMock:
    bot = MagicMock()
    bot.engine = db_engine
    bot.cfg = cfg
    bot.refresher = MagicMock()
    return bot


def _member(member_id: int, *, name: str = "Alice", roles: tuple[int, ...] = (), bot: bool = False):
    return SimpleNamespace(
        id=member_id,
        name=name,
        display_name=name,
        bot=bot,
        roles=[SimpleNamespace(id=r) for r in roles],
    )


def _interaction(user) -> MagicMock:
    interaction = MagicMock()
    interaction.user = user
    interaction.response.send_message = AsyncMock()
    interaction.response.is_done = MagicMock(return_value=False)
    return interaction


def _message(author, *, channel_id: int = MONITORED, guild: object | None = True):
    return SimpleNamespace(
        id=1,
        author=author,
        guild=SimpleNamespace(id=1) if guild is True else guild,
        channel=SimpleNamespace(id=channel_id),
    )


def _staff_row(db_engine, discord_id: int) -> StaffMember | None:
    with Session(db_engine) as session:
        return session.get(StaffMember, discord_id)


def _open_sessions(db_engine, discord_id: int) -> list[StageSession]:
    with Session(db_engine) as session:
        return list(
            session.scalars(
                select(StageSession).where(
                    StageSession.discord_id == discord_id, StageSession.end_at.is_(None)
                )
            )
        )


# ===========================================================================
# Attendance buttons
# ===========================================================================
class TestAttendanceButtons:
    def test_non_staff_rejected_without_writes(self, db_engine, cfg):
        set_setting(db_engine, STAFF_ROLE_KEY, str(STAFF_ROLE))
        bot = _make_bot(db_engine, cfg)
        interaction = _interaction(_member(1, roles=(1,)))

        run_async(Attendance(bot).handle_action(interaction, PanelAction.CHECKIN))

        interaction.response.send_message.assert_awaited_once_with(STAFF_ONLY, ephemeral=True)
        assert _staff_row(db_engine, 1) is None
        bot.refresher.request.assert_not_called()

    def test_checkin_sets_active_and_requests_refresh(self, db_engine, cfg):
        set_setting(db_engine, STAFF_ROLE_KEY, str(STAFF_ROLE))
        bot = _make_bot(db_engine, cfg)
        interaction = _interaction(_member(1, name="Alice", roles=(STAFF_ROLE,)))

        run_async(Attendance(bot).handle_action(interaction, PanelAction.CHECKIN))

        assert get_status(db_engine, 1) is StaffStatus.ACTIVE
        assert _staff_row(db_engine, 1).display_name == "Alice"
        interaction.response.send_message.assert_awaited_once_with(
            ACTION_REPLIES[PanelAction.CHECKIN].format(name="Alice"), ephemeral=True,
        )
        bot.refresher.request.assert_called_once()

    @pytest.mark.parametrize(
        ("action", "expected"),
        [
            (PanelAction.PAUSE, StaffStatus.PAUSED),
            (PanelAction.RESUME, StaffStatus.ACTIVE),
            (PanelAction.END, StaffStatus.OFF),
        ],
    )
    def test_status_buttons(self, db_engine, cfg, action, expected):
        bot = _make_bot(db_engine, cfg)
        ensure_staff(db_engine, 1, "Alice")
        set_status(db_engine, 1, StaffStatus.ACTIVE if action is not PanelAction.RESUME else StaffStatus.PAUSED)

        run_async(Attendance(bot).handle_action(_interaction(_member(1)), action))

        assert get_status(db_engine, 1) is expected

    def test_checkin_refreshes_renamed_member(self, db_engine, cfg):
        bot = _make_bot(db_engine, cfg)
        ensure_staff(db_engine, 1, "Alice")

        run_async(Attendance(bot).handle_action(_interaction(_member(1, name="Alicia")), PanelAction.CHECKIN))

        assert _staff_row(db_engine, 1).display_name == "Alicia"

    def test_other_buttons_keep_stored_name(self, db_engine, cfg):
        bot = _make_bot(db_engine, cfg)
        ensure_staff(db_engine, 1, "Alice")

        run_async(Attendance(bot).handle_action(_interaction(_member(1, name="Alicia")), PanelAction.PAUSE))

        assert _staff_row(db_engine, 1).display_name == "Alice"

    def test_checkin_ignores_placeholder_name(self, db_engine, cfg):
        bot = _make_bot(db_engine, cfg)
        ensure_staff(db_engine, 1, "Alice")

        run_async(Attendance(bot).handle_action(_interaction(_member(1, name="staff7")), PanelAction.CHECKIN))

        assert _staff_row(db_engine, 1).display_name == "Alice"

    def test_any_member_allowed_without_staff_role(self, db_engine, cfg):
        bot = _make_bot(db_engine, cfg)

        run_async(Attendance(bot).handle_action(_interaction(_member(2)), PanelAction.CHECKIN))

        assert get_status(db_engine, 2) is StaffStatus.ACTIVE

    def test_counters_untouched(self, db_engine, cfg):
        bot = _make_bot(db_engine, cfg)
        cog = Attendance(bot)
        for action in (PanelAction.CHECKIN, PanelAction.PAUSE, PanelAction.END):
            run_async(cog.handle_action(_interaction(_member(1)), action))

        row = _staff_row(db_engine, 1)
        assert row.messages_count == 0
        assert row.minutes_on_stage == 0

    def test_failure_notifies_user_once(self, db_engine, cfg):
        bot = _make_bot(db_engine, cfg)
        interaction = _interaction(_member(1))

        with patch(
            "rollcall.bot.cogs.attendance.set_status", side_effect=RuntimeError("db down"),
        ):
            run_async(Attendance(bot).handle_action(interaction, PanelAction.CHECKIN))

        interaction.response.send_message.assert_awaited_once_with(FAILURE, ephemeral=True)

    def test_failure_after_reply_stays_quiet(self, db_engine, cfg):
        bot = _make_bot(db_engine, cfg)
        bot.refresher.request.side_effect = RuntimeError("loop gone")
        interaction = _interaction(_member(1))
        interaction.response.is_done.return_value = True

        run_async(Attendance(bot).handle_action(interaction, PanelAction.CHECKIN))

        # Only the success reply; no second response attempted.
        assert interaction.response.send_message.await_count == 1


# ===========================================================================
# Message counter
# ===========================================================================
class TestCounter:
    @pytest.fixture
    def configured(self, db_engine):
        set_setting(db_engine, STAFF_ROLE_KEY, str(STAFF_ROLE))
        set_setting(db_engine, MONITORED_CHANNELS_KEY, str(MONITORED))
        ensure_staff(db_engine, 1, "Alice")
        set_status(db_engine, 1, StaffStatus.ACTIVE)
        return db_engine

    def test_counts_active_staff_in_monitored_channel(self, configured, cfg):
        cog = Counter(_make_bot(configured, cfg))
        author = _member(1, roles=(STAFF_ROLE,))

        assert run_async(cog._handle_message(_message(author))) is True
        assert run_async(cog._handle_message(_message(author))) is True

        row = _staff_row(configured, 1)
        assert row.messages_count == 2
        assert row.points == 0.02

    def test_ignores_bots(self, configured, cfg):
        cog = Counter(_make_bot(configured, cfg))
        assert run_async(cog._handle_message(_message(_member(1, roles=(STAFF_ROLE,), bot=True)))) is False

    def test_ignores_dms(self, configured, cfg):
        cog = Counter(_make_bot(configured, cfg))
        msg = _message(_member(1, roles=(STAFF_ROLE,)), guild=None)
        assert run_async(cog._handle_message(msg)) is False

    def test_ignores_unmonitored_channel(self, configured, cfg):
        cog = Counter(_make_bot(configured, cfg))
        msg = _message(_member(1, roles=(STAFF_ROLE,)), channel_id=601)
        assert run_async(cog._handle_message(msg)) is False
        assert _staff_row(configured, 1).messages_count == 0

    def test_empty_monitored_list_counts_nothing(self, configured, cfg):
        set_setting(configured, MONITORED_CHANNELS_KEY, "")
        cog = Counter(_make_bot(configured, cfg))
        assert run_async(cog._handle_message(_message(_member(1, roles=(STAFF_ROLE,))))) is False

    def test_ignores_non_staff(self, configured, cfg):
        cog = Counter(_make_bot(configured, cfg))
        assert run_async(cog._handle_message(_message(_member(2, roles=(1,))))) is False
        assert _staff_row(configured, 2) is None

    @pytest.mark.parametrize("status", [StaffStatus.PAUSED, StaffStatus.OFF])
    def test_ignores_inactive_status(self, configured, cfg, status):
        set_status(configured, 1, status)
        cog = Counter(_make_bot(configured, cfg))
        assert run_async(cog._handle_message(_message(_member(1, roles=(STAFF_ROLE,))))) is False
        assert _staff_row(configured, 1).messages_count == 0

    def test_env_channels_used_without_setting(self, db_engine, cfg, monkeypatch):
        monkeypatch.setenv("MONITORED_CHANNEL_IDS", str(MONITORED))
        ensure_staff(db_engine, 1, "Alice")
        set_status(db_engine, 1, StaffStatus.ACTIVE)
        cog = Counter(_make_bot(db_engine, cfg))

        assert run_async(cog._handle_message(_message(_member(1)))) is True
        assert _staff_row(db_engine, 1).messages_count == 1

    def test_on_message_swallows_errors(self, configured, cfg):
        cog = Counter(_make_bot(configured, cfg))
        with patch(
            "rollcall.bot.cogs.counter.increment_message_count", side_effect=RuntimeError("boom"),
        ):
            run_async(cog.on_message(_message(_member(1, roles=(STAFF_ROLE,)))))


# ===========================================================================
# Stage tracking
# ===========================================================================
def _stage_channel(channel_id: int = 900):
    return SimpleNamespace(id=channel_id, name="Town Hall", type=discord.ChannelType.stage_voice)


def _voice_state(channel=None):
    return SimpleNamespace(channel=channel)


def _guild_member(member_id: int, *, roles: tuple[int, ...] = ()):
    member = _member(member_id, roles=roles)
    member.guild = SimpleNamespace(
        get_member=MagicMock(return_value=member),
        fetch_member=AsyncMock(return_value=member),
    )
    return member


class TestStageCog:
    def test_single_mode_tracks_stage_mod(self, db_engine, cfg):
        set_setting(db_engine, STAGE_MOD_KEY, "7")
        cog = Stage(_make_bot(db_engine, cfg))
        member = _guild_member(7)

        run_async(cog._handle_voice_update(member, _voice_state(), _voice_state(_stage_channel())))
        assert len(_open_sessions(db_engine, 7)) == 1

        run_async(cog._handle_voice_update(member, _voice_state(_stage_channel()), _voice_state()))
        assert _open_sessions(db_engine, 7) == []

    def test_single_mode_ignores_others(self, db_engine, cfg):
        set_setting(db_engine, STAGE_MOD_KEY, "7")
        cog = Stage(_make_bot(db_engine, cfg))

        run_async(cog._handle_voice_update(_guild_member(8), _voice_state(), _voice_state(_stage_channel())))

        assert _open_sessions(db_engine, 8) == []
        assert _staff_row(db_engine, 8) is None

    def test_role_mode_tracks_staff(self, db_engine, cfg):
        set_setting(db_engine, STAGE_MODE_KEY, "role")
        set_setting(db_engine, STAFF_ROLE_KEY, str(STAFF_ROLE))
        cog = Stage(_make_bot(db_engine, cfg))

        run_async(cog._handle_voice_update(
            _guild_member(8, roles=(STAFF_ROLE,)), _voice_state(), _voice_state(_stage_channel()),
        ))
        run_async(cog._handle_voice_update(
            _guild_member(9, roles=(1,)), _voice_state(), _voice_state(_stage_channel()),
        ))

        assert len(_open_sessions(db_engine, 8)) == 1
        assert _open_sessions(db_engine, 9) == []

    def test_role_mode_without_role_tracks_nobody(self, db_engine, cfg):
        set_setting(db_engine, STAGE_MODE_KEY, "role")
        cog = Stage(_make_bot(db_engine, cfg))
        member = _guild_member(8, roles=(STAFF_ROLE,))

        run_async(cog._handle_voice_update(member, _voice_state(), _voice_state(_stage_channel())))

        assert _open_sessions(db_engine, 8) == []
        member.guild.get_member.assert_not_called()

    def test_mute_toggle_is_ignored(self, db_engine, cfg):
        set_setting(db_engine, STAGE_MOD_KEY, "7")
        stage = _stage_channel()
        cog = Stage(_make_bot(db_engine, cfg))

        run_async(cog._handle_voice_update(_guild_member(7), _voice_state(stage), _voice_state(stage)))

        assert _staff_row(db_engine, 7) is None

    def test_stage_to_stage_closes_then_opens(self, db_engine, cfg):
        set_setting(db_engine, STAGE_MOD_KEY, "7")
        earlier = datetime.now(UTC) - timedelta(minutes=12)
        first = start_stage_session(db_engine, 7, now=earlier)
        cog = Stage(_make_bot(db_engine, cfg))

        run_async(cog._handle_voice_update(
            _guild_member(7), _voice_state(_stage_channel(900)), _voice_state(_stage_channel(901)),
        ))

        (current,) = _open_sessions(db_engine, 7)
        assert current.id != first.id
        assert _staff_row(db_engine, 7).minutes_on_stage == 12

    def test_bots_ignored(self, db_engine, cfg):
        set_setting(db_engine, STAGE_MOD_KEY, "7")
        cog = Stage(_make_bot(db_engine, cfg))
        member = _guild_member(7)
        member.bot = True

        run_async(cog._handle_voice_update(member, _voice_state(), _voice_state(_stage_channel())))

        assert _open_sessions(db_engine, 7) == []


# ===========================================================================
# /setup
# ===========================================================================
class TestSetupMonitored:
    def test_stores_ids(self, db_engine, cfg):
        cog = Setup(_make_bot(db_engine, cfg))

        reply = run_async(cog.set_monitored("111, <#222>"))

        assert reply.startswith("✅")
        assert get_setting(db_engine, MONITORED_CHANNELS_KEY) == "111,222"
        assert load_guild_settings(db_engine).monitored_channel_ids == (111, 222)

    def test_rejects_bad_tokens(self, db_engine, cfg):
        cog = Setup(_make_bot(db_engine, cfg))

        reply = run_async(cog.set_monitored("111, general"))

        assert "`general`" in reply
        assert get_setting(db_engine, MONITORED_CHANNELS_KEY) is None

    def test_rejects_empty(self, db_engine, cfg):
        cog = Setup(_make_bot(db_engine, cfg))
        assert run_async(cog.set_monitored(" , ")).startswith("❌")
        assert get_setting(db_engine, MONITORED_CHANNELS_KEY) is None

    def test_rejects_too_many(self, db_engine, cfg):
        cog = Setup(_make_bot(db_engine, cfg))
        raw = ",".join(str(1000 + i) for i in range(26))

        reply = run_async(cog.set_monitored(raw))

        assert "25" in reply
        assert get_setting(db_engine, MONITORED_CHANNELS_KEY) is None

    def test_settings_embed(self, db_engine, cfg):
        set_setting(db_engine, STAFF_ROLE_KEY, str(STAFF_ROLE))
        set_setting(db_engine, MONITORED_CHANNELS_KEY, "111,222")

        embed = build_settings_embed(load_guild_settings(db_engine))

        values = {f.name: f.value for f in embed.fields}
        assert values["Staff role"] == f"<@&{STAFF_ROLE}>"
        assert values["Monitored channels"] == "<#111>, <#222>"
        assert values["Stage mode"] == "`single`"
        assert values["Stage moderator"] == "_not set_"
