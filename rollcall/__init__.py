"""
Rollcall — Staff Attendance & Leaderboard Bot for Discord
==========================================================
Staff check in and out from a button panel.  While a staff member is
active, their messages in monitored channels are counted and their time on
a Stage channel is timed; both feed a points score shown on a live panel.

Package layout::

    rollcall/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Setting keys, points formula, placeholder names
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # ORM models (settings, staff, logs, sessions)
    ├── engine/
    │   ├── access.py      # Authorization + monitored-channel predicates
    │   └── stage.py       # Stage tracking mode + transition decisions
    ├── services/
    │   ├── settings_service.py  # Settings accessor + GuildSettings
    │   ├── staff_service.py     # Staff ledger, counters, points
    │   ├── stage_service.py     # Stage session start/end bookkeeping
    │   ├── embeds.py            # Panel embed builder
    │   ├── panel_service.py     # Find-or-create panel message
    │   └── refresh.py           # Coalescing panel refresh worker
    └── bot/
        ├── core.py        # Bot subclass, cog loader
        ├── views.py       # Persistent panel buttons
        └── cogs/
            ├── attendance.py  # Button presses + periodic panel refresh
            ├── counter.py     # on_message counting
            ├── stage.py       # Stage voice timing
            └── setup.py       # /setup admin commands
"""

__version__ = "0.1.0"
