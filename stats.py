#!/usr/bin/env python3

# Copyright (c) 2025 Robert McKenzie (@M1XZG)
# Repository: discord-bot-for-fun
# https://github.com/M1XZG/discord-bot-for-fun
#
# This software is released under the MIT License.
# See LICENSE.md for details.

"""
Game and tool statistics.

Layout of the persisted document (one JSON file, rewritten on every change):

    {server_id: {game_code: {player_id: {"totals": {...}, "opponents": {opponent_id: {...}}}}}}

Duel counts look like {"win": {option: n}, "draw": {...}, "loss": {...}}.
Tool counts are flat, e.g. {"heads": n, "tails": n}.
"""

import copy
import json
import logging
import os

logger = logging.getLogger(__name__)

STATS_FILE = "stat.json"

CATEGORIES = ("win", "draw", "loss")
MEDALS = {1: "🥇", 2: "🥈", 3: "🥉"}


def duel_default(options: list[str]) -> dict:
    """Zeroed duel counts for the given option keys."""
    return {category: {option: 0 for option in options} for category in CATEGORIES}


def server_key(guild) -> str:
    return str(guild.id) if guild is not None else "dm"


# --- Persistence ---

class JsonStatsFile:
    """Whole-file JSON persistence for the stats root."""

    def __init__(self, path: str = STATS_FILE):
        self.path = path

    def load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def save(self, data: dict):
        # a failed dump leaves the previous file intact
        tmp_path = f"{self.path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=4)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


# --- Store ---

class StatsStore:
    """Shared stats root. Every mutation is followed by a synchronous save."""

    def __init__(self, persistence: JsonStatsFile | None = None, data: dict | None = None):
        self.persistence = persistence
        self.data = data if data is not None else {}

    @classmethod
    def from_file(cls, path: str = STATS_FILE) -> "StatsStore":
        persistence = JsonStatsFile(path)
        data = persistence.load()
        logger.info(f"Loaded stats for {len(data)} server(s) from {path}")
        return cls(persistence, data)

    def save(self):
        if self.persistence is not None:
            self.persistence.save(self.data)

    def check_undefined(self, server: str, code: str, default: dict,
                        player: str | None = None, other: str | None = None) -> dict:
        """Create any missing level down to the player records and return the game map.

        With both players given, each also gets a head-to-head record of the other.
        New leaves are deep copies of `default`; existing records are never replaced.
        """
        game = self.data.setdefault(server, {}).setdefault(code, {})
        for pid in (player, other):
            if pid is not None and pid not in game:
                game[pid] = {"totals": copy.deepcopy(default), "opponents": {}}
        if player is not None and other is not None:
            game[player]["opponents"].setdefault(other, copy.deepcopy(default))
            game[other]["opponents"].setdefault(player, copy.deepcopy(default))
        return game

    def players(self, server: str, code: str) -> dict:
        return self.data.get(server, {}).get(code, {})

    def get_record(self, server: str, code: str, player: str, default: dict) -> dict:
        return self.check_undefined(server, code, default, player)[player]

    # Duels

    def record_result(self, server: str, code: str, options: list[str],
                      winner: str, winner_option: str, loser: str, loser_option: str,
                      credit_loser: bool = True):
        """Credit a win/loss pair. `credit_loser=False` skips the loser's own record (bot games)."""
        default = duel_default(options)
        if credit_loser:
            game = self.check_undefined(server, code, default, winner, loser)
            game[loser]["totals"]["loss"][loser_option] += 1
            game[loser]["opponents"][winner]["loss"][loser_option] += 1
        else:
            game = self.check_undefined(server, code, default, winner)
            game[winner]["opponents"].setdefault(loser, copy.deepcopy(default))
        game[winner]["totals"]["win"][winner_option] += 1
        game[winner]["opponents"][loser]["win"][winner_option] += 1
        self.save()

    def record_loss(self, server: str, code: str, options: list[str],
                    loser: str, loser_option: str, winner: str):
        """Credit only the loser (the winner is the bot)."""
        default = duel_default(options)
        game = self.check_undefined(server, code, default, loser)
        game[loser]["opponents"].setdefault(winner, copy.deepcopy(default))
        game[loser]["totals"]["loss"][loser_option] += 1
        game[loser]["opponents"][winner]["loss"][loser_option] += 1
        self.save()

    def record_draw(self, server: str, code: str, options: list[str],
                    first: str, first_option: str, second: str, second_option: str,
                    credit_second: bool = True):
        default = duel_default(options)
        if credit_second:
            game = self.check_undefined(server, code, default, first, second)
            game[second]["totals"]["draw"][second_option] += 1
            game[second]["opponents"][first]["draw"][second_option] += 1
        else:
            game = self.check_undefined(server, code, default, first)
            game[first]["opponents"].setdefault(second, copy.deepcopy(default))
        game[first]["totals"]["draw"][first_option] += 1
        game[first]["opponents"][second]["draw"][first_option] += 1
        self.save()

    # Tools

    def increment(self, server: str, code: str, default: dict, player: str, key: str,
                  other: str | None = None, other_key: str | None = None):
        """Bump a flat tool counter, plus the head-to-head pair when `other` is given."""
        game = self.check_undefined(server, code, default, player, other)
        game[player]["totals"][key] += 1
        if other is not None:
            game[player]["opponents"][other][key] += 1
            if other_key is not None:
                game[other]["totals"][other_key] += 1
                game[other]["opponents"][player][other_key] += 1
        self.save()


# --- Leaderboard ---

def totals_of(counts: dict) -> tuple[int, int, int]:
    """(wins, draws, losses) summed over every option."""
    return tuple(sum(counts.get(category, {}).values()) for category in CATEGORIES)


def win_rate(counts: dict) -> float | None:
    """(wins + draws/2) / games, or None for a player with no games."""
    wins, draws, losses = totals_of(counts)
    games = wins + draws + losses
    if games == 0:
        return None
    return (wins + 0.5 * draws) / games


def _sort_key(entry):
    counts = entry[1]["totals"]
    return (-win_rate(counts), -totals_of(counts)[0])


def rank_players(players: dict) -> list[tuple[str, dict]]:
    """Players sorted by win rate, then wins. Zero-game players are left out.

    `sorted` is stable, so full ties keep their original order.
    """
    played = [(pid, record) for pid, record in players.items() if win_rate(record["totals"]) is not None]
    return sorted(played, key=_sort_key)


def rank_numbers(ranked: list[tuple[str, dict]]) -> list[int]:
    """Competition ranking: equal (win rate, wins) share a rank, the next entry takes its position."""
    numbers = []
    previous = None
    for position, entry in enumerate(ranked, start=1):
        key = _sort_key(entry)
        if key != previous:
            rank = position
            previous = key
        numbers.append(rank)
    return numbers


def rank_label(rank: int) -> str:
    return MEDALS.get(rank, f"#{rank}")
