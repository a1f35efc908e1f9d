#!/usr/bin/env python3

# Copyright (c) 2025 Robert McKenzie (@M1XZG)
# Repository: discord-bot-for-fun
# https://github.com/M1XZG/discord-bot-for-fun
#
# This software is released under the MIT License.
# See LICENSE.md for details.

"""
One-shot tools: roll, flip and hug.

Each use sends one message and bumps the user's counters in the stats store.

Usage from games:
    tool = Flip(ctx.channel, stats, ctx.author)
    await tool.use()
"""

import random
import re
from abc import ABC, abstractmethod

import discord

from stats import StatsStore, server_key

TOOL_COLOR = discord.Color.from_str("#faa61a")

DND_DICE_TYPES = [4, 6, 8, 10, 12, 20, 100]
MAX_DICE = 20


def parse_dice(args: str | None) -> tuple[int, int]:
    """Parse `NdX` or `N X` into (count, sides). Defaults to one d100."""
    count, sides = 1, 100
    if args:
        s = args.strip().lower()
        m = re.match(r"^(\d*)d(\d+)$", s)
        if m:
            count = int(m.group(1)) if m.group(1) else 1
            sides = int(m.group(2))
        else:
            parts = s.split()
            if len(parts) == 2 and parts[0].isdigit() and parts[1].isdigit():
                count = int(parts[0])
                sides = int(parts[1])
    if sides not in DND_DICE_TYPES:
        sides = 100
    count = max(1, min(count, MAX_DICE))
    return count, sides


def roll_dice(num_dice=1, dice_type=100, rng=random):
    """Roll `num_dice` dice with `dice_type` sides. Returns a list of ints."""
    return [rng.randint(1, dice_type) for _ in range(num_dice)]


def flip_coin(rng=random) -> str:
    return "heads" if round(rng.random()) else "tails"


class Tool(ABC):
    title = ""
    code = ""
    prefix = ""
    default_stat = {"uses": 0}

    def __init__(self, channel, stats: StatsStore, user, rng=None):
        self.channel = channel
        self.stats = stats
        self.user = user
        self.rng = rng or random

    def __str__(self):
        return f"{self.prefix} {self.title}"

    @property
    def server(self) -> str:
        return server_key(getattr(self.channel, "guild", None))

    def embed(self, description: str, footer: str | None = None) -> discord.Embed:
        embed = discord.Embed(title=str(self), description=description, color=TOOL_COLOR)
        if footer:
            embed.set_footer(text=footer)
        return embed

    @abstractmethod
    async def use(self):
        ...


class Roll(Tool):
    title = "Roll"
    code = "roll"
    prefix = "🎲"

    def __init__(self, channel, stats, user, count=1, sides=100, rng=None):
        super().__init__(channel, stats, user, rng)
        self.count = count
        self.sides = sides

    async def use(self):
        rolls = roll_dice(self.count, self.sides, self.rng)
        if len(rolls) == 1:
            description = f"{self.user.mention} rolled {rolls[0]}!"
        else:
            description = f"{self.user.mention} rolled {len(rolls)}d{self.sides}: [{', '.join(map(str, rolls))}] → Total: {sum(rolls)}"
        message = await self.channel.send(embed=self.embed(description))
        self.stats.increment(self.server, self.code, self.default_stat, str(self.user.id), "uses")
        return message


class Flip(Tool):
    title = "Flip"
    code = "flip"
    prefix = "🪙"
    default_stat = {"heads": 0, "tails": 0}

    async def use(self):
        coin = flip_coin(self.rng)
        message = await self.channel.send(embed=self.embed(f"{self.user.mention} flipped {coin}!"))
        self.stats.increment(self.server, self.code, self.default_stat, str(self.user.id), coin)
        return message


class Hug(Tool):
    title = "Hug"
    code = "hug"
    prefix = "💗"
    default_stat = {"hugged": 0, "huggedBy": 0}

    def __init__(self, channel, stats, user, hugged_user, rng=None):
        super().__init__(channel, stats, user, rng)
        self.hugged_user = hugged_user

    async def use(self):
        if self.hugged_user is None:
            return None
        target = "themself" if self.hugged_user.id == self.user.id else self.hugged_user.mention
        message = await self.channel.send(embed=self.embed(f"⊂(´･◡･⊂ )∘˚˳° {self.user.mention} hugged {target}!"))
        self.stats.increment(
            self.server, self.code, self.default_stat,
            str(self.user.id), "hugged",
            other=str(self.hugged_user.id), other_key="huggedBy",
        )
        return message
