#!/usr/bin/env python3

# Copyright (c) 2025 Robert McKenzie (@M1XZG)
# Repository: discord-bot-for-fun
# https://github.com/M1XZG/discord-bot-for-fun
#
# This software is released under the MIT License.
# See LICENSE.md for details.

"""
Pure game engines for the duel games.

Nothing in here talks to Discord. The views in [duels.py](duels.py) feed
moves in and read `determine_outcome()` back out.

Outcome values shared by every engine:
- `IN_PROGRESS` (0): the game is still going.
- `DRAW` (-1): nobody won.
- `1` / `2`: the first / second role won (X/O, red/yellow, challenger/opponent).
"""

from abc import ABC, abstractmethod

IN_PROGRESS = 0
DRAW = -1

EMPTY = 0
FIRST = 1
SECOND = 2


def other_role(role: int) -> int:
    return SECOND if role == FIRST else FIRST


class Game(ABC):
    """A game that can report its own outcome."""

    @abstractmethod
    def determine_outcome(self) -> int:
        ...

    @property
    def is_over(self) -> bool:
        return self.determine_outcome() != IN_PROGRESS


# --- Rock, Paper, Scissors ---

ROCK, PAPER, SCISSORS = 0, 1, 2
RPS_OPTIONS = ["rock", "paper", "scissors"]
RPS_EMOJI = {"rock": "🪨", "paper": "📄", "scissors": "✂️"}


def rps_winner(challenger_choice: int, opponent_choice: int) -> int:
    """Return FIRST if the challenger wins, SECOND if the opponent wins, else DRAW."""
    if challenger_choice == opponent_choice:
        return DRAW
    # rock(0) beats scissors(2), paper(1) beats rock(0), scissors(2) beats paper(1)
    if challenger_choice == (opponent_choice + 1) % 3:
        return FIRST
    return SECOND


class RockPaperScissorsRound(Game):
    """One simultaneous round. Terminal once both choices are in."""

    def __init__(self):
        self.choices: dict[int, int | None] = {FIRST: None, SECOND: None}

    def choose(self, role: int, option: int) -> bool:
        """Lock in a choice. A second choice from the same role is ignored."""
        if role not in self.choices or option not in (ROCK, PAPER, SCISSORS):
            return False
        if self.choices[role] is not None:
            return False
        self.choices[role] = option
        return True

    @property
    def challenger_choice(self) -> int | None:
        return self.choices[FIRST]

    @property
    def opponent_choice(self) -> int | None:
        return self.choices[SECOND]

    def determine_outcome(self) -> int:
        if self.challenger_choice is None or self.opponent_choice is None:
            return IN_PROGRESS
        return rps_winner(self.challenger_choice, self.opponent_choice)


# --- Turn-based boards ---

class TurnBasedGame(Game):
    """Two roles alternating moves. FIRST always opens."""

    def __init__(self):
        self.turn = FIRST

    @abstractmethod
    def _place(self, role: int, move: int) -> bool:
        ...

    @abstractmethod
    def legal_moves(self) -> list[int]:
        ...

    def play(self, role: int, move: int) -> bool:
        """Apply `move` for `role`. Wrong turn, illegal move or finished game is a no-op."""
        if role != self.turn or self.is_over:
            return False
        if not self._place(role, move):
            return False
        self.turn = other_role(role)
        return True


TTT_LINES = [
    (0, 1, 2), (3, 4, 5), (6, 7, 8),  # rows
    (0, 3, 6), (1, 4, 7), (2, 5, 8),  # cols
    (0, 4, 8), (2, 4, 6),             # diagonals
]


class TicTacToe(TurnBasedGame):
    """3x3 board stored as 9 cells: 0 empty, 1 X, 2 O."""

    X = FIRST
    O = SECOND

    def __init__(self, board: list[int] | None = None):
        super().__init__()
        self.board = list(board) if board is not None else [EMPTY] * 9

    def _place(self, role, move):
        if not 0 <= move < 9 or self.board[move] != EMPTY:
            return False
        self.board[move] = role
        return True

    def legal_moves(self):
        if self.is_over:
            return []
        return [i for i, cell in enumerate(self.board) if cell == EMPTY]

    def determine_outcome(self) -> int:
        for a, b, c in TTT_LINES:
            if self.board[a] != EMPTY and self.board[a] == self.board[b] == self.board[c]:
                return self.board[a]
        if EMPTY not in self.board:
            return DRAW
        return IN_PROGRESS


class ConnectFour(TurnBasedGame):
    """6 rows x 7 columns, row 0 is the top. 0 empty, 1 red, 2 yellow."""

    ROWS = 6
    COLUMNS = 7
    RED = FIRST
    YELLOW = SECOND
    DIRECTIONS = [(1, 0), (0, 1), (1, 1), (1, -1)]

    def __init__(self):
        super().__init__()
        self.grid = [[EMPTY] * self.COLUMNS for _ in range(self.ROWS)]
        self.winner = IN_PROGRESS

    def drop_row(self, column: int) -> int | None:
        """Lowest empty row in `column`, or None when the column is full or out of range."""
        if not 0 <= column < self.COLUMNS:
            return None
        for row in range(self.ROWS - 1, -1, -1):
            if self.grid[row][column] == EMPTY:
                return row
        return None

    def _place(self, role, move):
        row = self.drop_row(move)
        if row is None:
            return False
        self.grid[row][move] = role
        if self.connects_four(row, move):
            self.winner = role
        return True

    def _run_length(self, row: int, column: int, d_row: int, d_col: int) -> int:
        piece = self.grid[row][column]
        length = 0
        r, c = row + d_row, column + d_col
        while 0 <= r < self.ROWS and 0 <= c < self.COLUMNS and self.grid[r][c] == piece:
            length += 1
            r += d_row
            c += d_col
        return length

    def connects_four(self, row: int, column: int) -> bool:
        """True if the piece at (row, column) is part of four in a row along any axis."""
        if self.grid[row][column] == EMPTY:
            return False
        for d_row, d_col in self.DIRECTIONS:
            forward = self._run_length(row, column, d_row, d_col)
            backward = self._run_length(row, column, -d_row, -d_col)
            if forward + backward + 1 >= 4:
                return True
        return False

    def legal_moves(self):
        if self.is_over:
            return []
        return [c for c in range(self.COLUMNS) if self.grid[0][c] == EMPTY]

    def determine_outcome(self) -> int:
        if self.winner != IN_PROGRESS:
            return self.winner
        if all(cell != EMPTY for cell in self.grid[0]):
            return DRAW
        return IN_PROGRESS
