#!/usr/bin/env python3

# Copyright (c) 2025 Robert McKenzie (@M1XZG)
# Repository: discord-bot-for-fun
# https://github.com/M1XZG/discord-bot-for-fun
#
# This software is released under the MIT License.
# See LICENSE.md for details.

"""
Two-player duels: the challenge handshake, the three games and their leaderboards.

Usage from games:
    duel = TicTacToeDuel(bot, ctx.channel, stats, ctx.author, opponent)
    await duel.challenge(timeout=90)

    await TicTacToeDuel.send_leaderboard(ctx.channel, stats, server_key(ctx.guild))
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod

import discord

from game_logic import (
    DRAW, EMPTY, FIRST, IN_PROGRESS, RPS_EMOJI, RPS_OPTIONS, SECOND,
    ConnectFour, RockPaperScissorsRound, TicTacToe,
)
from stats import StatsStore, duel_default, rank_label, rank_numbers, rank_players, server_key, totals_of, win_rate

logger = logging.getLogger(__name__)

DEFAULT_CHALLENGE_TIMEOUT = 90.0
DEFAULT_MOVE_TIMEOUT = 300.0
NOTICE_DELETE_AFTER = 5.0
LEADERBOARD_SIZE = 10
DUEL_COLOR = discord.Color.from_str("#faa61a")

# --- Challenge handshake ---

INVITE = "invite"
START_VS_BOT = "start_vs_bot"
REJECT_SELF = "reject_self"
REJECT_AUTOMATED_CHALLENGER = "reject_automated_challenger"
REJECT_BOTS = "reject_bots"
REJECT_OTHER_BOTS = "reject_other_bots"

REJECTION_NOTICES = {
    REJECT_SELF: "{challenger}, you can't challenge yourself.",
    REJECT_AUTOMATED_CHALLENGER: "Bots can't start a challenge.",
    REJECT_BOTS: "{challenger}, you can't challenge bots to {game}.",
    REJECT_OTHER_BOTS: "{challenger}, you can't challenge other bots. Challenge me instead!",
}


def check_challenge(challenger, opponent, bot_user, allow_bot_opponent: bool) -> str:
    """Decide what a challenge turns into. Checks run in a fixed order."""
    if challenger.id == opponent.id:
        return REJECT_SELF
    if challenger.bot:
        return REJECT_AUTOMATED_CHALLENGER
    if opponent.bot:
        if not allow_bot_opponent:
            return REJECT_BOTS
        if bot_user is not None and opponent.id == bot_user.id:
            return START_VS_BOT
        return REJECT_OTHER_BOTS
    return INVITE


class ChallengeView(discord.ui.View):
    """Accept/decline buttons on an invitation. The first qualifying click wins."""

    def __init__(self, duel: "Duel", timeout: float = DEFAULT_CHALLENGE_TIMEOUT):
        super().__init__(timeout=timeout)
        self.duel = duel
        self.message: discord.Message | None = None
        self.resolved = False

    def _resolve(self) -> bool:
        if self.resolved:
            return False
        self.resolved = True
        # stop() also cancels the pending timeout
        self.stop()
        return True

    @discord.ui.button(label="Accept", style=discord.ButtonStyle.success, emoji="✅")
    async def accept(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.handle_accept(interaction)

    @discord.ui.button(label="Decline", style=discord.ButtonStyle.danger, emoji="❌")
    async def decline(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.handle_decline(interaction)

    async def handle_accept(self, interaction: discord.Interaction):
        await interaction.response.defer()
        if interaction.user.id != self.duel.opponent.id or not self._resolve():
            return
        await self.duel.start(self.message)

    async def handle_decline(self, interaction: discord.Interaction):
        await interaction.response.defer()
        user_id = interaction.user.id
        if user_id not in (self.duel.challenger.id, self.duel.opponent.id) or not self._resolve():
            return
        if user_id == self.duel.opponent.id:
            await self.message.edit(
                content=f"{self.duel}\n{self.duel.opponent.mention} declined the challenge from {self.duel.challenger.mention}.",
                view=None,
            )
        else:
            # Challenger withdrew
            await self.message.delete()

    async def on_timeout(self) -> None:
        if not self._resolve():
            return
        await self.message.edit(
            content=f"{self.duel}\n⏳ {self.duel.opponent.mention} didn't answer {self.duel.challenger.mention}'s challenge in time.",
            view=None,
        )


# --- Duel base ---

class Duel(ABC):
    title = ""
    code = ""
    prefix = ""
    options: list[str] = []
    allow_bot_opponent = False

    def __init__(self, bot, channel, stats: StatsStore, challenger, opponent,
                 rng=None, move_timeout: float = DEFAULT_MOVE_TIMEOUT):
        self.bot = bot
        self.channel = channel
        self.stats = stats
        self.challenger = challenger
        self.opponent = opponent
        self.rng = rng or random
        self.move_timeout = move_timeout
        self.message: discord.Message | None = None
        self.finished = False

    def __str__(self):
        return f"{self.prefix} **{self.title}**"

    @property
    def server(self) -> str:
        return server_key(getattr(self.channel, "guild", None))

    @property
    def vs_bot(self) -> bool:
        return bool(getattr(self.opponent, "bot", False))

    async def challenge(self, timeout: float = DEFAULT_CHALLENGE_TIMEOUT):
        """Run the handshake. Returns the invitation (or game) message, or None when rejected."""
        verdict = check_challenge(self.challenger, self.opponent, getattr(self.bot, "user", None), self.allow_bot_opponent)
        if verdict == START_VS_BOT:
            return await self.start()
        if verdict != INVITE:
            notice = REJECTION_NOTICES[verdict].format(challenger=self.challenger.mention, game=self.title)
            await self.channel.send(notice, delete_after=NOTICE_DELETE_AFTER)
            return None
        view = ChallengeView(self, timeout=timeout)
        view.message = await self.channel.send(
            f"{self}\n{self.challenger.mention} has challenged {self.opponent.mention}! "
            f"Accept within {int(timeout)} seconds.",
            view=view,
        )
        return view.message

    async def show(self, message, content: str, view=None):
        """Post a fresh message, or take over an existing one (the accepted invitation)."""
        if message is None:
            return await self.channel.send(content, view=view)
        await message.edit(content=content, view=view)
        return message

    @abstractmethod
    async def start(self, message=None):
        ...

    def record(self, outcome: int, first, first_option: str, second, second_option: str):
        """Credit a finished game. Each player is credited under their own option."""
        options = self.options
        if outcome == DRAW:
            if first.bot:
                first, first_option, second, second_option = second, second_option, first, first_option
            self.stats.record_draw(
                self.server, self.code, options,
                str(first.id), first_option, str(second.id), second_option,
                credit_second=not second.bot,
            )
            logger.info(f"{self.code}: {first} drew with {second} in {self.server}")
            return
        if outcome == FIRST:
            winner, winner_option, loser, loser_option = first, first_option, second, second_option
        else:
            winner, winner_option, loser, loser_option = second, second_option, first, first_option
        if winner.bot:
            self.stats.record_loss(self.server, self.code, options, str(loser.id), loser_option, str(winner.id))
        else:
            self.stats.record_result(
                self.server, self.code, options,
                str(winner.id), winner_option, str(loser.id), loser_option,
                credit_loser=not loser.bot,
            )
        logger.info(f"{self.code}: {winner} beat {loser} in {self.server}")

    # --- Leaderboards ---

    @classmethod
    def leaderboard_embed(cls, stats: StatsStore, server: str) -> discord.Embed:
        ranked = rank_players(stats.players(server, cls.code))
        embed = discord.Embed(title=f"{cls.prefix} {cls.title} Leaderboard", color=DUEL_COLOR)
        if not ranked:
            embed.description = "No games played yet."
            return embed
        lines = []
        for rank, (pid, record) in zip(rank_numbers(ranked), ranked[:LEADERBOARD_SIZE]):
            wins, draws, losses = totals_of(record["totals"])
            rate = win_rate(record["totals"])
            lines.append(f"{rank_label(rank)} <@{pid}> — {rate:.0%} ({wins}W / {draws}D / {losses}L)")
        embed.description = "\n".join(lines)
        return embed

    @classmethod
    def personal_embed(cls, stats: StatsStore, server: str, player) -> discord.Embed:
        record = stats.get_record(server, cls.code, str(player.id), duel_default(cls.options))
        wins, draws, losses = totals_of(record["totals"])
        rate = win_rate(record["totals"])
        name = getattr(player, "display_name", str(player))
        embed = discord.Embed(title=f"{cls.prefix} {cls.title} Stats — {name}", color=DUEL_COLOR)
        embed.add_field(name="Wins", value=str(wins))
        embed.add_field(name="Draws", value=str(draws))
        embed.add_field(name="Losses", value=str(losses))
        embed.add_field(name="Win rate", value=f"{rate:.1%}" if rate is not None else "—")
        for option in cls.options:
            totals = record["totals"]
            embed.add_field(
                name=option.capitalize(),
                value=f"{totals['win'][option]}W / {totals['draw'][option]}D / {totals['loss'][option]}L",
            )
        versus = []
        for opponent_id, counts in record["opponents"].items():
            w, d, l = totals_of(counts)
            versus.append(f"<@{opponent_id}>: {w}W / {d}D / {l}L")
        if versus:
            embed.add_field(name="Head-to-head", value="\n".join(versus)[:1024], inline=False)
        return embed

    @classmethod
    async def send_leaderboard(cls, channel, stats: StatsStore, server: str, player=None):
        if player is not None:
            embed = cls.personal_embed(stats, server, player)
        else:
            embed = cls.leaderboard_embed(stats, server)
        return await channel.send(embed=embed)


# --- Rock, Paper, Scissors ---

class RPSChoiceView(discord.ui.View):
    """Three buttons for one player. In a human duel this lives in the player's DMs."""

    def __init__(self, duel: "RockPaperScissorsDuel", player, role: int, timeout: float = DEFAULT_MOVE_TIMEOUT):
        super().__init__(timeout=timeout)
        self.duel = duel
        self.player = player
        self.role = role
        self.message: discord.Message | None = None
        self.picked = False

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        # rejected clicks do not extend the timeout
        if interaction.user.id == self.player.id and not self.picked and not self.duel.finished:
            return True
        await interaction.response.defer()
        return False

    async def pick(self, interaction: discord.Interaction, option: str):
        await interaction.response.defer()
        if interaction.user.id != self.player.id or self.picked or self.duel.finished:
            return
        self.picked = True
        self.stop()
        if not self.duel.vs_bot:
            await self.message.edit(content=f"You picked {RPS_EMOJI[option]} {option}. The result will be posted in the channel.", view=None)
        await self.duel.choose(self.role, RPS_OPTIONS.index(option))

    @discord.ui.button(label="Rock", style=discord.ButtonStyle.secondary, emoji="🪨")
    async def rock(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.pick(interaction, "rock")

    @discord.ui.button(label="Paper", style=discord.ButtonStyle.secondary, emoji="📄")
    async def paper(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.pick(interaction, "paper")

    @discord.ui.button(label="Scissors", style=discord.ButtonStyle.secondary, emoji="✂️")
    async def scissors(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.pick(interaction, "scissors")

    async def on_timeout(self) -> None:
        if not self.picked:
            await self.duel.abandon()


class RockPaperScissorsDuel(Duel):
    title = "Rock Paper Scissors"
    code = "rps"
    prefix = "🪨📄✂️"
    options = RPS_OPTIONS
    allow_bot_opponent = True

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.round = RockPaperScissorsRound()
        self.views: list[RPSChoiceView] = []

    async def start(self, message=None):
        logger.info(f"rps: {self.challenger} vs {self.opponent} in {self.server}")
        if self.vs_bot:
            view = RPSChoiceView(self, self.challenger, FIRST, timeout=self.move_timeout)
            self.views.append(view)
            self.message = await self.show(message, f"{self}\n{self.challenger.mention}, choose your move:", view)
            view.message = self.message
            return self.message
        self.message = await self.show(
            message,
            f"{self}\n{self.challenger.mention} vs {self.opponent.mention}: check your DMs and pick your move!",
        )
        delivered = await asyncio.gather(
            self._solicit(self.challenger, FIRST, self.opponent),
            self._solicit(self.opponent, SECOND, self.challenger),
        )
        unreachable = [player for player, ok in zip((self.challenger, self.opponent), delivered) if not ok]
        if unreachable:
            names = " and ".join(player.mention for player in unreachable)
            await self.abandon(f"❌ Couldn't DM {names}, so the game was cancelled.")
        return self.message

    async def _solicit(self, player, role: int, other) -> bool:
        """DM `player` their choice buttons. False when the DM can't be delivered."""
        view = RPSChoiceView(self, player, role, timeout=self.move_timeout)
        name = getattr(other, "display_name", str(other))
        try:
            view.message = await player.send(f"{self} against {name}: choose your move.", view=view)
        except discord.HTTPException as e:
            view.stop()
            logger.warning(f"rps: could not DM {player}: {e}")
            return False
        self.views.append(view)
        return True

    async def choose(self, role: int, option: int) -> bool:
        if self.finished or not self.round.choose(role, option):
            return False
        if self.vs_bot:
            self.round.choose(SECOND, RPS_OPTIONS.index(self.rng.choice(RPS_OPTIONS)))
        if self.round.is_over:
            await self.finish()
        return True

    async def finish(self):
        self.finished = True
        for view in self.views:
            view.stop()
        outcome = self.round.determine_outcome()
        challenger_option = RPS_OPTIONS[self.round.challenger_choice]
        opponent_option = RPS_OPTIONS[self.round.opponent_choice]
        self.record(outcome, self.challenger, challenger_option, self.opponent, opponent_option)
        if outcome == DRAW:
            result = "It's a draw!"
        else:
            winner = self.challenger if outcome == FIRST else self.opponent
            result = f"{winner.mention} wins!"
        await self.message.edit(
            content=(
                f"{self}\n{self.challenger.mention}: {RPS_EMOJI[challenger_option]} {challenger_option} | "
                f"{self.opponent.mention}: {RPS_EMOJI[opponent_option]} {opponent_option} → {result}"
            ),
            view=None,
        )

    async def abandon(self, reason: str | None = None):
        if self.finished:
            return
        self.finished = True
        for view in self.views:
            view.stop()
            if not self.vs_bot and not view.picked and view.message is not None:
                await view.message.edit(content=reason or "⏳ Time's up! This game expired.", view=None)
        logger.info(f"rps: {self.challenger} vs {self.opponent} {'cancelled' if reason else 'expired'}")
        content = reason or "⏳ Time's up! The game expired before both moves were in."
        await self.message.edit(content=f"{self}\n{content}", view=None)


# --- Board games ---

class BoardButton(discord.ui.Button):
    def __init__(self, move: int, label: str, row: int):
        super().__init__(label=label, style=discord.ButtonStyle.secondary, row=row)
        self.move = move

    async def callback(self, interaction: discord.Interaction):
        await self.view.duel.handle_move(interaction, self.move)


class BoardView(discord.ui.View):
    def __init__(self, duel: "BoardDuel", timeout: float = DEFAULT_MOVE_TIMEOUT):
        super().__init__(timeout=timeout)
        self.duel = duel
        self.message: discord.Message | None = None
        for move, label, row in duel.button_layout():
            self.add_item(BoardButton(move, label, row))
        self.refresh()

    def refresh(self):
        for child in self.children:
            if isinstance(child, BoardButton):
                self.duel.style_button(child)

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        # only the player to move resets the timeout
        if self.duel.awaits(interaction.user):
            return True
        await interaction.response.defer()
        return False

    async def on_timeout(self) -> None:
        await self.duel.abandon()


class BoardDuel(Duel):
    """Turn-based duel on a board engine. Roles are assigned at random, FIRST moves first."""

    allow_bot_opponent = True
    pieces: dict[int, str] = {}
    role_options: dict[int, str] = {}

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.game = self.new_game()
        first, second = self.challenger, self.opponent
        if self.rng.random() < 0.5:
            first, second = second, first
        self.roles = {FIRST: first, SECOND: second}
        self.view: BoardView | None = None

    @abstractmethod
    def new_game(self):
        ...

    @abstractmethod
    def button_layout(self) -> list[tuple[int, str, int]]:
        ...

    @abstractmethod
    def style_button(self, button: BoardButton):
        ...

    def render_board(self) -> str:
        return ""

    def role_of(self, user) -> int | None:
        for role, player in self.roles.items():
            if player.id == user.id:
                return role
        return None

    def awaits(self, user) -> bool:
        """True while the game is live and it is `user`'s turn."""
        return not self.finished and not self.game.is_over and self.role_of(user) == self.game.turn

    def is_bot_turn(self) -> bool:
        return bool(getattr(self.roles[self.game.turn], "bot", False))

    def bot_move(self):
        move = self.rng.choice(self.game.legal_moves())
        self.game.play(self.game.turn, move)

    def status(self) -> str:
        outcome = self.game.determine_outcome()
        if outcome == IN_PROGRESS:
            if self.finished:
                return "⏳ Time's up! The game expired."
            return f"Your move: {self.roles[self.game.turn].mention} {self.pieces[self.game.turn]}"
        if outcome == DRAW:
            return "It's a draw!"
        return f"{self.pieces[outcome]} wins! ({self.roles[outcome].mention})"

    def render(self) -> str:
        header = (
            f"{self} — {self.roles[FIRST].mention} is {self.pieces[FIRST]}, "
            f"{self.roles[SECOND].mention} is {self.pieces[SECOND]}."
        )
        parts = [header]
        board = self.render_board()
        if board:
            parts.append(board)
        parts.append(self.status())
        return "\n".join(parts)

    async def start(self, message=None):
        logger.info(f"{self.code}: {self.challenger} vs {self.opponent} in {self.server}")
        if self.is_bot_turn():
            self.bot_move()
        self.view = BoardView(self, timeout=self.move_timeout)
        self.message = await self.show(message, self.render(), self.view)
        self.view.message = self.message
        return self.message

    async def handle_move(self, interaction: discord.Interaction, move: int):
        """Apply a click. Anything illegal is acknowledged silently and changes nothing."""
        role = self.role_of(interaction.user)
        if self.finished or role is None or not self.game.play(role, move):
            await interaction.response.defer()
            return
        if not self.game.is_over and self.is_bot_turn():
            self.bot_move()
        if self.game.is_over:
            self.finish()
        self.view.refresh()
        await interaction.response.edit_message(content=self.render(), view=self.view)

    def finish(self):
        self.finished = True
        self.view.stop()
        self.record(
            self.game.determine_outcome(),
            self.roles[FIRST], self.role_options[FIRST],
            self.roles[SECOND], self.role_options[SECOND],
        )

    async def abandon(self):
        if self.finished:
            return
        self.finished = True
        self.view.stop()
        self.view.refresh()
        logger.info(f"{self.code}: {self.challenger} vs {self.opponent} expired")
        await self.message.edit(content=self.render(), view=self.view)


class TicTacToeDuel(BoardDuel):
    title = "Tic-Tac-Toe"
    code = "ttt"
    prefix = "❌⭕"
    options = ["x", "o"]
    pieces = {FIRST: "❌", SECOND: "⭕"}
    role_options = {FIRST: "x", SECOND: "o"}

    def new_game(self):
        return TicTacToe()

    def button_layout(self):
        return [(i, "⬜", i // 3) for i in range(9)]

    def style_button(self, button):
        cell = self.game.board[button.move]
        if cell == EMPTY:
            button.label = "⬜"
            button.style = discord.ButtonStyle.secondary
            button.disabled = self.finished
        else:
            button.label = self.pieces[cell]
            # X red, O green
            button.style = discord.ButtonStyle.danger if cell == FIRST else discord.ButtonStyle.success
            button.disabled = True


class ConnectFourDuel(BoardDuel):
    title = "Connect Four"
    code = "c4"
    prefix = "🔴🟡"
    options = ["red", "yellow"]
    pieces = {FIRST: "🔴", SECOND: "🟡"}
    role_options = {FIRST: "red", SECOND: "yellow"}

    def new_game(self):
        return ConnectFour()

    def button_layout(self):
        return [(c, str(c + 1), c // 4) for c in range(ConnectFour.COLUMNS)]

    def style_button(self, button):
        button.disabled = self.finished or self.game.drop_row(button.move) is None

    def render_board(self) -> str:
        emoji = {EMPTY: "⚫", FIRST: self.pieces[FIRST], SECOND: self.pieces[SECOND]}
        rows = ["".join(emoji[cell] for cell in row) for row in self.game.grid]
        rows.append("1️⃣2️⃣3️⃣4️⃣5️⃣6️⃣7️⃣")
        return "\n".join(rows)
