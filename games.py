#!/usr/bin/env python3

# Copyright (c) 2025 Robert McKenzie (@M1XZG)
# Repository: discord-bot-for-fun
# https://github.com/M1XZG/discord-bot-for-fun
#
# This software is released under the MIT License.
# See LICENSE.md for details.

"""
Games module: command registration for duels, tools and leaderboards.

Usage from main:
    from games import setup_games
    setup_games(bot, stats, is_feature_enabled)
"""

import logging

import discord

from duels import (
    DEFAULT_CHALLENGE_TIMEOUT, DEFAULT_MOVE_TIMEOUT,
    ConnectFourDuel, RockPaperScissorsDuel, TicTacToeDuel,
)
from stats import StatsStore, server_key
from tools import Flip, Hug, Roll, parse_dice

logger = logging.getLogger(__name__)

STATS_KEYWORDS = {"l", "list", "leaderboard", "score", "scores", "stat", "stats"}

DUEL_COMMANDS = {"rps", "ttt", "c4"}
TOOL_COMMANDS = {"roll", "flip", "hug"}


async def handle_duel_command(ctx, bot, stats: StatsStore, duel_cls, args,
                              challenge_timeout=DEFAULT_CHALLENGE_TIMEOUT,
                              move_timeout=DEFAULT_MOVE_TIMEOUT):
    """Leaderboard/stats lookup or a challenge against the first mentioned user."""
    mentions = ctx.message.mentions
    target = mentions[0] if mentions else None

    if args and args[0].lower() in STATS_KEYWORDS:
        return await duel_cls.send_leaderboard(ctx.channel, stats, server_key(ctx.guild), target)

    if target is None:
        usage = f"{ctx.prefix}{ctx.invoked_with}"
        await ctx.send(f"Usage: `{usage} @user` to challenge someone, or `{usage} stats [@user]`.")
        return None

    duel = duel_cls(bot, ctx.channel, stats, ctx.author, target, move_timeout=move_timeout)
    message = await duel.challenge(timeout=challenge_timeout)
    try:
        await ctx.message.delete()
    except discord.HTTPException as e:
        logger.debug(f"Could not delete command message: {e}")
    return message


def setup_games(bot, stats: StatsStore, is_feature_enabled,
                get_challenge_timeout=lambda: DEFAULT_CHALLENGE_TIMEOUT,
                get_move_timeout=lambda: DEFAULT_MOVE_TIMEOUT):
    """Register game commands on the provided bot.

    Duels honor the "duels" feature toggle, tools the "tools" toggle.
    """

    async def duel_command(ctx, duel_cls, args):
        if not is_feature_enabled("duels"):
            await ctx.send("Duels are not enabled on this server.")
            return
        await handle_duel_command(
            ctx, bot, stats, duel_cls, args,
            challenge_timeout=get_challenge_timeout(),
            move_timeout=get_move_timeout(),
        )

    async def tools_enabled(ctx) -> bool:
        if not is_feature_enabled("tools"):
            await ctx.send("Tools are not enabled on this server.")
            return False
        return True

    @bot.command(help="Rock, Paper, Scissors. Usage: !rps @user, or !rps stats [@user]")
    async def rps(ctx, *args):
        await duel_command(ctx, RockPaperScissorsDuel, args)

    @bot.command(aliases=["tictactoe", "tic-tac-toe"], help="Tic-Tac-Toe. Usage: !ttt @user, or !ttt stats [@user]")
    async def ttt(ctx, *args):
        await duel_command(ctx, TicTacToeDuel, args)

    @bot.command(aliases=["connect4", "connectfour", "connect-four", "connect-4"],
                 help="Connect Four. Usage: !c4 @user, or !c4 stats [@user]")
    async def c4(ctx, *args):
        await duel_command(ctx, ConnectFourDuel, args)

    @bot.command(help="Roll dice. Usage: !roll, !roll 2d20 or !roll 3 6 (default 1d100)")
    async def roll(ctx, *, args: str | None = None):
        if not await tools_enabled(ctx):
            return
        count, sides = parse_dice(args)
        await Roll(ctx.channel, stats, ctx.author, count, sides).use()

    @bot.command(help="Flip a coin and see if it's heads or tails.")
    async def flip(ctx):
        if not await tools_enabled(ctx):
            return
        await Flip(ctx.channel, stats, ctx.author).use()

    @bot.command(help="Give someone a hug. Usage: !hug @user")
    async def hug(ctx):
        if not await tools_enabled(ctx):
            return
        mentions = ctx.message.mentions
        await Hug(ctx.channel, stats, ctx.author, mentions[0] if mentions else None).use()
