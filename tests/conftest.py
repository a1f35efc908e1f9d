from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from stats import StatsStore

GUILD_ID = 42


class FixedRandom:
    """Deterministic stand-in for the `random` module."""

    def __init__(self, value: float = 0.9, picks=None, ints=None):
        self.value = value
        self.picks = list(picks or [])
        self.ints = list(ints or [])

    def random(self):
        return self.value

    def choice(self, seq):
        if self.picks:
            pick = self.picks.pop(0)
            if pick in seq:
                return pick
        return seq[0]

    def randint(self, a, b):
        return self.ints.pop(0) if self.ints else a


def make_message():
    message = MagicMock()
    message.edit = AsyncMock()
    message.delete = AsyncMock()
    return message


def make_user(uid: int, name: str = "player", bot: bool = False):
    return SimpleNamespace(
        id=uid,
        bot=bot,
        mention=f"<@{uid}>",
        display_name=name,
        send=AsyncMock(side_effect=lambda *args, **kwargs: make_message()),
    )


def make_channel(guild_id: int | None = GUILD_ID):
    guild = SimpleNamespace(id=guild_id) if guild_id is not None else None
    message = make_message()
    return SimpleNamespace(guild=guild, send=AsyncMock(return_value=message), last_message=message)


def make_interaction(user):
    return SimpleNamespace(
        user=user,
        response=SimpleNamespace(
            defer=AsyncMock(),
            edit_message=AsyncMock(),
            send_message=AsyncMock(),
        ),
    )


@pytest.fixture
def alice():
    return make_user(1, "Alice")


@pytest.fixture
def bob():
    return make_user(2, "Bob")


@pytest.fixture
def bot_user():
    return make_user(99, "FunBot", bot=True)


@pytest.fixture
def bot(bot_user):
    return SimpleNamespace(user=bot_user)


@pytest.fixture
def channel():
    return make_channel()


@pytest.fixture
def stats():
    return StatsStore()
