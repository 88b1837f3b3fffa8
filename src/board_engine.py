# board_engine.py
# Rules engine for a 2048 game: board state, moves, tile spawning and end-of-game detection.

import logging
import random
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from game_settings import (
    DEFAULT_FOUR_PROBABILITY,
    DEFAULT_WIN_TILE,
    MIN_BOARD_SIZE,
    GameSettings,
)

logger = logging.getLogger(__name__)

Board = List[List[int]]


class GameStatus(Enum):
    """Represents whether a session still accepts play."""
    RUNNING = 1
    OVER = 2


class DIRECTION(Enum):
    """Represents the possible move directions."""
    UP = 1
    DOWN = 2
    LEFT = 3
    RIGHT = 4


# --- Errors ---

class BoardError(ValueError):
    """Base class for rejected board operations."""


class InvalidDimensions(BoardError):
    """A standard board was requested with fewer than 4 rows or columns."""


class InvalidShape(BoardError):
    """A supplied grid is empty or its rows differ in length."""


class NoEmptyCell(BoardError):
    """A tile was requested on a board with no empty cell."""


# --- Board Helper Functions ---

def get_board_dimensions(board: Board) -> Tuple[int, int]:
    """
    Gets the (rows, cols) dimensions of a rectangular board.
    Args:
        board (Board): The game board.
    Returns:
        Tuple[int, int]: Number of rows and number of columns.
    Raises:
        InvalidShape: If the board is empty or its rows differ in length.
    """
    if not board or not board[0]:
        raise InvalidShape("Board must have at least one row and one column.")
    cols = len(board[0])
    for row_idx, row in enumerate(board):
        if len(row) != cols:
            raise InvalidShape(
                f"Row {row_idx} has {len(row)} cells, expected {cols}."
            )
    return len(board), cols


def get_empty_cells(board: Board) -> List[Tuple[int, int]]:
    """
    Get coordinates of empty (0-value) cells in the given board.
    Args:
        board (Board): The board to check.
    Returns:
        List[Tuple[int, int]]: List of (row, col) tuples for empty cells, in row-major order.
    """
    empty_cells = []
    for row_idx, row in enumerate(board):
        for col_idx, value in enumerate(row):
            if value == 0:
                empty_cells.append((row_idx, col_idx))
    return empty_cells


# --- Line Manipulation (Core Move Logic Helpers) ---

def _compress_line(line: List[int]) -> List[int]:
    """Moves all non-zero tiles to the start of the line, keeping their order."""
    compressed = [value for value in line if value != 0]
    return compressed + [0] * (len(line) - len(compressed))


def _merge_line(line: List[int]) -> Tuple[List[int], int]:
    """
    Merges adjacent identical tiles of a compressed line towards index 0.
    Each resulting tile takes part in at most one merge, so [2, 2, 2, 2]
    becomes [4, 4, 0, 0] rather than [8, 0, 0, 0].
    Args:
        line (List[int]): A line with all tiles already packed at the start.
    Returns:
        Tuple[List[int], int]: Merged line (still packed) and the score gained.
    """
    n = len(line)
    score_increase = 0
    merged = [0] * n
    write_idx = 0
    read_idx = 0

    while read_idx < n and line[read_idx] != 0:
        current_val = line[read_idx]
        if read_idx + 1 < n and current_val == line[read_idx + 1]:
            merged[write_idx] = current_val * 2
            score_increase += current_val * 2
            read_idx += 2  # the partner tile is consumed
        else:
            merged[write_idx] = current_val
            read_idx += 1
        write_idx += 1

    return merged, score_increase


def slide_line(line: List[int]) -> Tuple[List[int], int]:
    """
    Slides and merges a single line towards index 0.
    Args:
        line (List[int]): The line to process.
    Returns:
        Tuple[List[int], int]: The processed line and the score gained.
    """
    return _merge_line(_compress_line(line))


# --- Board Transformations ---

def transpose_board(board: Board) -> Board:
    """
    Transposes a given board (swaps rows and columns).
    Args:
        board (Board): A rows x cols board.
    Returns:
        Board: A new cols x rows board.
    """
    return [list(column) for column in zip(*board)]


def reverse_rows(board: Board) -> Board:
    """Returns a new board with every row reversed."""
    return [row[::-1] for row in board]


# --- Core Game Move Processing ---

def _slide_all_lines_left(board: Board) -> Tuple[Board, int]:
    processed = []
    total_score_increase = 0
    for row in board:
        new_row, gained = slide_line(row)
        processed.append(new_row)
        total_score_increase += gained
    return processed, total_score_increase


def process_move(board: Board, direction: DIRECTION) -> Tuple[Board, int, bool]:
    """
    Processes a move in the specified direction on a copy of the board.
    Args:
        board (Board): The current game board.
        direction (DIRECTION): The direction to move.
    Returns:
        Tuple[Board, int, bool]:
            - The new board state after the move.
            - The score gained from this move.
            - A boolean indicating if the board changed as a result of the move.
    Raises:
        ValueError: If an invalid direction is specified.
    """
    if direction == DIRECTION.LEFT:
        new_board, gained = _slide_all_lines_left(board)
    elif direction == DIRECTION.RIGHT:
        moved, gained = _slide_all_lines_left(reverse_rows(board))
        new_board = reverse_rows(moved)
    elif direction == DIRECTION.UP:
        moved, gained = _slide_all_lines_left(transpose_board(board))
        new_board = transpose_board(moved)
    elif direction == DIRECTION.DOWN:
        moved, gained = _slide_all_lines_left(reverse_rows(transpose_board(board)))
        new_board = transpose_board(reverse_rows(moved))
    else:
        raise ValueError(f"Invalid direction specified for process_move: {direction!r}")

    return new_board, gained, new_board != board


# --- Game State Checks ---

def check_for_win(board: Board, win_tile: int = DEFAULT_WIN_TILE) -> bool:
    """True if any cell holds exactly win_tile."""
    return any(value == win_tile for row in board for value in row)


def has_adjacent_pair(board: Board) -> bool:
    """
    Checks whether any two orthogonally adjacent cells hold the same tile.
    Args:
        board (Board): The game board.
    Returns:
        bool: True if a merge is possible somewhere on the board.
    """
    rows, cols = len(board), len(board[0])
    for r in range(rows):
        for c in range(cols):
            value = board[r][c]
            if value == 0:
                continue
            if c + 1 < cols and board[r][c + 1] == value:
                return True
            if r + 1 < rows and board[r + 1][c] == value:
                return True
    return False


def is_any_move_possible(board: Board) -> bool:
    """A move exists while there is an empty cell or a mergeable pair."""
    return bool(get_empty_cells(board)) or has_adjacent_pair(board)


# --- High Score ---

class HighScore:
    """
    Best score reached by any session sharing this object.
    Only ever raised by record(); lowered only by reset().
    """

    def __init__(self) -> None:
        self._value = 0

    @property
    def value(self) -> int:
        return self._value

    def record(self, score: int) -> bool:
        """Raises the high score to score if it is higher. Returns True if it changed."""
        if score > self._value:
            self._value = score
            return True
        return False

    def reset(self) -> None:
        self._value = 0


_process_high_score = HighScore()


def process_high_score() -> HighScore:
    """The high score shared by sessions created without an explicit one."""
    return _process_high_score


def reset_high_score() -> None:
    """Resets the process-wide high score to 0. Intended for tests."""
    _process_high_score.reset()


# --- Session ---

class SessionSnapshot(BaseModel):
    """Read-only view of a session, for rendering."""
    model_config = {"frozen": True}

    board: List[List[int]] = Field(..., description="The rows x cols game board.")
    score: int = Field(..., ge=0, description="Current score of the session.")
    high_score: int = Field(..., ge=0, description="Best score across sessions.")
    status: GameStatus = Field(..., description="RUNNING or OVER.")
    reached_target: bool = Field(..., description="True once the win tile appeared.")
    rows: int = Field(..., gt=0)
    cols: int = Field(..., gt=0)


class GameSession:
    """
    A single game: owns its board, score and status.

    Use init_standard() or init_custom() to create one. The board is never
    exposed directly; the grid property returns a copy.
    """

    def __init__(
        self,
        board: Board,
        high_score: Optional[HighScore] = None,
        rng: Optional[random.Random] = None,
        win_tile: int = DEFAULT_WIN_TILE,
        four_probability: float = DEFAULT_FOUR_PROBABILITY,
    ) -> None:
        self._rows, self._cols = get_board_dimensions(board)
        self._board = [list(row) for row in board]
        self._high_score = high_score if high_score is not None else _process_high_score
        self._rng = rng if rng is not None else random.Random()
        self._win_tile = win_tile
        self._four_probability = four_probability
        self._score = 0
        self._status = GameStatus.RUNNING
        self._reached_target = False

    # --- Queries ---

    @property
    def grid(self) -> Board:
        return [list(row) for row in self._board]

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def score(self) -> int:
        return self._score

    @property
    def high_score(self) -> int:
        return self._high_score.value

    @property
    def reached_target(self) -> bool:
        return self._reached_target

    @property
    def status(self) -> GameStatus:
        return self._status

    @status.setter
    def status(self, value: GameStatus) -> None:
        """Lets the session driver end a game early. A finished game cannot be resumed."""
        value = GameStatus(value)
        if self._status == GameStatus.OVER and value == GameStatus.RUNNING:
            raise ValueError("A finished game cannot be set back to RUNNING.")
        if value != self._status:
            logger.info("Session status forced to %s", value.name)
        self._status = value

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            board=self.grid,
            score=self._score,
            high_score=self.high_score,
            status=self._status,
            reached_target=self._reached_target,
            rows=self._rows,
            cols=self._cols,
        )

    # --- Mutations ---

    def add_random_tile(self) -> Tuple[int, int]:
        """
        Places a 2 (or, with four_probability, a 4) on a uniformly chosen empty cell.
        Returns:
            Tuple[int, int]: The (row, col) that received the tile.
        Raises:
            NoEmptyCell: If the board is full.
        """
        empty_cells = get_empty_cells(self._board)
        if not empty_cells:
            raise NoEmptyCell("Cannot add a tile: the board has no empty cell.")
        row, col = self._rng.choice(empty_cells)
        value = 4 if self._rng.random() < self._four_probability else 2
        self._board[row][col] = value
        logger.debug("Spawned %d at (%d, %d)", value, row, col)
        return row, col

    def shift(self, direction: DIRECTION) -> int:
        """
        Slides every line towards the given edge, merging equal tiles once per move.
        Args:
            direction (DIRECTION): The edge tiles move towards.
        Returns:
            int: Score gained by the move (0 for a move that merged nothing).
        """
        new_board, gained, changed = process_move(self._board, direction)
        if changed:
            self._board = new_board
        if gained:
            self._update_score(gained)
        logger.debug("Shift %s: changed=%s gained=%d", direction.name, changed, gained)
        return gained

    def shift_up(self) -> int:
        return self.shift(DIRECTION.UP)

    def shift_down(self) -> int:
        return self.shift(DIRECTION.DOWN)

    def shift_left(self) -> int:
        return self.shift(DIRECTION.LEFT)

    def shift_right(self) -> int:
        return self.shift(DIRECTION.RIGHT)

    def swap_cells(self, row: int, col: int, row_diff: int, col_diff: int) -> None:
        """
        Swaps cell (row, col) with cell (row + row_diff, col + col_diff).
        Raises:
            IndexError: If either cell lies outside the board.
        """
        target_row, target_col = row + row_diff, col + col_diff
        for r, c in ((row, col), (target_row, target_col)):
            if not (0 <= r < self._rows and 0 <= c < self._cols):
                raise IndexError(f"Cell ({r}, {c}) is outside the {self._rows}x{self._cols} board.")
        board = self._board
        board[row][col], board[target_row][target_col] = board[target_row][target_col], board[row][col]

    def _update_score(self, gained: int) -> None:
        self._score += gained
        if self._high_score.record(self._score):
            logger.debug("New high score: %d", self._score)

    def check_game_over(self) -> GameStatus:
        """
        Re-evaluates the board and latches the session to OVER when it has ended.
        The win tile ends the game immediately; otherwise a full board with
        no adjacent equal tiles does. Never moves the status back to RUNNING.
        Returns:
            GameStatus: The status after evaluation.
        """
        if check_for_win(self._board, self._win_tile):
            self._reached_target = True
            self._latch_over(f"reached {self._win_tile}")
        elif not is_any_move_possible(self._board):
            self._latch_over("no moves left")
        return self._status

    def _latch_over(self, reason: str) -> None:
        if self._status != GameStatus.OVER:
            logger.info("Game over (%s) with score %d", reason, self._score)
        self._status = GameStatus.OVER


# --- Initialization ---

def init_standard(
    rows: int = MIN_BOARD_SIZE,
    cols: int = MIN_BOARD_SIZE,
    high_score: Optional[HighScore] = None,
    rng: Optional[random.Random] = None,
    win_tile: int = DEFAULT_WIN_TILE,
    four_probability: float = DEFAULT_FOUR_PROBABILITY,
) -> GameSession:
    """
    Starts a new game on an empty rows x cols board with two random tiles.
    Raises:
        InvalidDimensions: If rows or cols is below 4.
    """
    if rows < MIN_BOARD_SIZE or cols < MIN_BOARD_SIZE:
        raise InvalidDimensions(
            f"The board must have at least {MIN_BOARD_SIZE} rows and columns, got {rows}x{cols}."
        )
    session = GameSession(
        [[0] * cols for _ in range(rows)],
        high_score=high_score,
        rng=rng,
        win_tile=win_tile,
        four_probability=four_probability,
    )
    session.add_random_tile()
    session.add_random_tile()
    logger.debug("Started %dx%d game", rows, cols)
    return session


def init_custom(
    grid: Board,
    high_score: Optional[HighScore] = None,
    rng: Optional[random.Random] = None,
    win_tile: int = DEFAULT_WIN_TILE,
    four_probability: float = DEFAULT_FOUR_PROBABILITY,
) -> GameSession:
    """
    Starts a game on a copy of the supplied grid. No tiles are added.
    Raises:
        InvalidShape: If the grid is empty or not rectangular.
    """
    return GameSession(
        grid,
        high_score=high_score,
        rng=rng,
        win_tile=win_tile,
        four_probability=four_probability,
    )


def new_session(settings: GameSettings, high_score: Optional[HighScore] = None) -> GameSession:
    """Starts a standard game configured by settings."""
    return init_standard(
        settings.rows,
        settings.cols,
        high_score=high_score,
        rng=random.Random(settings.seed),
        win_tile=settings.win_tile,
        four_probability=settings.four_probability,
    )
