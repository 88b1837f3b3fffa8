# cli_driver.py
# This file is intended to be run to play the 2048 game on the CLI

import argparse
import logging
import random
from typing import Callable, List, Optional, Tuple

from pydantic import ValidationError

from board_engine import (
    DIRECTION,
    BoardError,
    GameSession,
    GameStatus,
    HighScore,
    init_standard,
    process_high_score,
)
from game_settings import MIN_BOARD_SIZE, GameSettings

logger = logging.getLogger(__name__)

MOVE_KEYS = {'W': DIRECTION.UP, 'A': DIRECTION.LEFT, 'S': DIRECTION.DOWN, 'D': DIRECTION.RIGHT}
QUIT_KEY = 'Q'


class SessionDriver:
    """
    Runs games in a terminal: reads moves, applies them, spawns tiles and
    reports the result. The high score carries over between games.
    """

    def __init__(
        self,
        settings: GameSettings,
        high_score: Optional[HighScore] = None,
        read: Optional[Callable[[str], str]] = None,
        write: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.settings = settings
        self.high_score = high_score if high_score is not None else process_high_score()
        self.rng = random.Random(settings.seed)
        self.read = read if read is not None else input
        self.write = write if write is not None else print

    def start_session(self, rows: int, cols: int) -> GameSession:
        return init_standard(
            rows,
            cols,
            high_score=self.high_score,
            rng=self.rng,
            win_tile=self.settings.win_tile,
            four_probability=self.settings.four_probability,
        )

    def choose_board_size(self) -> Optional[Tuple[int, int]]:
        """Prompts for standard or custom size. Returns None if the player exits."""
        self.write("Type 1 to play standard 2048 "
                   f"({self.settings.rows}x{self.settings.cols} board).")
        self.write("Type 2 to play on a custom board.")
        self.write("Type 'exit' to quit.")
        while True:
            choice = self.read("Choice: ").strip().lower()
            if choice == '1':
                return self.settings.rows, self.settings.cols
            if choice == '2':
                try:
                    rows = int(self.read("Enter number of rows in custom board: "))
                    cols = int(self.read("Enter number of columns in custom board: "))
                except ValueError:
                    self.write("Rows and columns must be whole numbers.")
                    continue
                if rows < MIN_BOARD_SIZE or cols < MIN_BOARD_SIZE:
                    self.write(f"The board must have at least {MIN_BOARD_SIZE} rows and columns.")
                    continue
                return rows, cols
            if choice == 'exit':
                return None
            self.write("Invalid choice, try again.")

    def play_game(self, session: GameSession) -> GameSession:
        """Plays one game until it ends or the player quits."""
        while session.status == GameStatus.RUNNING:
            display_board_state(session, self.write)

            move_input = self.read("Enter move (W/A/S/D for Up/Left/Down/Right, Q to quit): ").strip().upper()
            if move_input == QUIT_KEY:
                session.status = GameStatus.OVER
                break

            chosen_direction = MOVE_KEYS.get(move_input)
            if not chosen_direction:
                self.write("Invalid input. Use W, A, S, D.")
                continue

            board_before = session.grid
            session.shift(chosen_direction)
            move_was_made = session.grid != board_before

            # A winning merge ends the game before a new tile lands
            session.check_game_over()
            if not move_was_made:
                self.write("Move did not change the board. Try a different direction.")
            elif session.status == GameStatus.RUNNING:
                session.add_random_tile()
                session.check_game_over()

        return session

    def run(self) -> None:
        self.write("\nWelcome to 2048, the game.\n")
        while True:
            size = self.choose_board_size()
            if size is None:
                return
            try:
                session = self.start_session(*size)
            except BoardError as e:
                self.write(str(e))
                continue

            self.play_game(session)

            self.write("\n--- Final Board State ---")
            display_board_state(session, self.write)
            display_ending_message(session, self.write)
            if not self.ask_play_again():
                return

    def ask_play_again(self) -> bool:
        while True:
            choice = self.read("Would you like to play again (y/n): ").strip().lower()
            if choice == 'y':
                return True
            if choice == 'n':
                return False
            self.write("Invalid choice, try again.")


# --- Display Functions ---

def format_board(board: List[List[int]], cell_width: int = 6) -> str:
    """Renders the board as fixed-width columns, one line per row."""
    return "\n".join("".join(str(value).ljust(cell_width) for value in row).rstrip()
                     for row in board)


def display_board_state(session: GameSession, write: Callable[[str], None] = print) -> None:
    """Prints the scores and board of a session."""
    snapshot = session.snapshot()
    write(f"\nHigh Score: {snapshot.high_score}")
    write(f"Score: {snapshot.score}")
    write("=" * (snapshot.cols * 6))
    write(format_board(snapshot.board))
    write("-" * (snapshot.cols * 6))


def display_ending_message(session: GameSession, write: Callable[[str], None] = print) -> None:
    if session.reached_target:
        write("Congratulations! You reached the winning tile!")
    else:
        write("Game over!")
    write(f"You finished with a score of {session.score}.")
    write(f"Your high score is {session.high_score}.\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Play 2048 in the terminal')
    parser.add_argument('--rows', type=int, help='Rows on a standard board (default 4)')
    parser.add_argument('--cols', type=int, help='Columns on a standard board (default 4)')
    parser.add_argument('--win-tile', type=int, help='Tile value that wins the game (default 2048)')
    parser.add_argument('--seed', type=int, help='Seed for tile spawning')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging verbosity')
    return parser


def load_settings(args: argparse.Namespace) -> GameSettings:
    """Environment settings, overridden by any command-line options given."""
    settings = GameSettings.from_env()
    overrides = {
        'rows': args.rows,
        'cols': args.cols,
        'win_tile': args.win_tile,
        'seed': args.seed,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    return GameSettings(**{**settings.model_dump(), **overrides})


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(asctime)s %(name)s %(levelname)s %(message)s')
    try:
        settings = load_settings(args)
    except ValidationError as e:
        logger.error("Invalid settings: %s", e)
        return 2

    SessionDriver(settings).run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
