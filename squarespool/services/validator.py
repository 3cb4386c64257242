"""
Assignment validation.

Re-checks a board's squares after (or before) assignment: every paid square
holds a distinct grid position in 0-99, every digit is in 0-9, each digit
pair occurs once, and the digits agree with the board's label sequences.
Read-only; never mutates the store.
"""

import logging
from collections import Counter
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field

from ..constants import DIGITS, GRID_SIZE, TOTAL_SQUARES
from ..exceptions import DataIntegrityError
from ..models import Board, Square
from ..storage import DatabaseInterface

logger = logging.getLogger(__name__)

NOT_ASSIGNED_WARNING = "Board has not been assigned yet"


class ValidationStats(BaseModel):
    """Counters behind a validation report."""

    total_squares: int = Field(default=0, alias="totalSquares")
    assigned_squares: int = Field(default=0, alias="assignedSquares")
    duplicate_positions: int = Field(default=0, alias="duplicatePositions")
    invalid_positions: int = Field(default=0, alias="invalidPositions")
    invalid_numbers: int = Field(default=0, alias="invalidNumbers")
    duplicate_pairs: int = Field(default=0, alias="duplicatePairs")

    class Config:
        """Pydantic configuration."""

        populate_by_name = True


class ValidationReport(BaseModel):
    """Outcome of validating one board's assignments."""

    board_id: Optional[str] = Field(default=None, alias="boardId")
    valid: bool
    assigned: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    stats: ValidationStats = Field(default_factory=ValidationStats)

    class Config:
        """Pydantic configuration."""

        populate_by_name = True

    def raise_for_errors(self) -> None:
        """Raise DataIntegrityError if the report is not valid."""
        if not self.valid:
            raise DataIntegrityError(
                f"Invalid assignment for board {self.board_id}: " + "; ".join(self.errors)
            )


def _is_permutation_of_digits(labels: Optional[List[int]]) -> bool:
    return labels is not None and sorted(labels) == list(DIGITS)


def _in_range(value: int, upper: int) -> bool:
    return 0 <= value < upper


def validate_squares(
    squares: Iterable[Square],
    board: Optional[Board] = None
) -> ValidationReport:
    """
    Validate the assignment fields of a board's paid squares.

    Args:
        squares: The board's paid squares
        board: The board, when available; enables the square count and
               label sequence checks

    Returns:
        ValidationReport; a board that has not been assigned yet is valid
        with a warning
    """
    squares = list(squares)
    board_id = board.id if board else (squares[0].board_id if squares else None)
    stats = ValidationStats(total_squares=len(squares))
    errors: List[str] = []

    carrying = [
        s for s in squares
        if s.grid_position is not None or s.winning_team_number is not None
        or s.losing_team_number is not None
    ]
    any_assigned = bool(carrying)
    board_assigned = board.is_assigned() if board else any_assigned

    if not board_assigned and not any_assigned:
        return ValidationReport(
            board_id=board_id,
            valid=True,
            assigned=False,
            warnings=[NOT_ASSIGNED_WARNING],
            stats=stats
        )

    if not board_assigned:
        errors.append(
            f"Board is {board.status.value} but "
            f"{len(carrying)} squares carry assignments"
        )

    if board is not None and len(squares) != TOTAL_SQUARES:
        errors.append(f"Expected {TOTAL_SQUARES} paid squares, found {len(squares)}")

    # Grid positions
    positions = Counter()
    missing_positions = 0
    for square in squares:
        if square.grid_position is None:
            missing_positions += 1
            continue
        if not _in_range(square.grid_position, TOTAL_SQUARES):
            stats.invalid_positions += 1
            errors.append(
                f"Square {square.id} has grid position {square.grid_position} "
                f"outside valid range (0-{TOTAL_SQUARES - 1})"
            )
        positions[square.grid_position] += 1

    stats.assigned_squares = len(squares) - missing_positions
    if missing_positions:
        errors.append(f"Found {missing_positions} squares without a grid position")

    duplicates = sorted(p for p, count in positions.items() if count > 1)
    stats.duplicate_positions = len(duplicates)
    for position in duplicates:
        errors.append(f"Grid position {position} is shared by {positions[position]} squares")

    # Digit labels
    pairs = Counter()
    missing_numbers = 0
    for square in squares:
        digits = (square.winning_team_number, square.losing_team_number)
        if None in digits:
            missing_numbers += 1
            continue
        bad = [d for d in digits if not _in_range(d, GRID_SIZE)]
        if bad:
            stats.invalid_numbers += len(bad)
            errors.append(
                f"Square {square.id} has team numbers {digits} outside valid range (0-9)"
            )
            continue
        pairs[digits] += 1

    if missing_numbers:
        errors.append(f"Found {missing_numbers} squares without team numbers")

    duplicate_pairs = sorted(p for p, count in pairs.items() if count > 1)
    stats.duplicate_pairs = len(duplicate_pairs)
    for pair in duplicate_pairs:
        errors.append(f"Number pair {pair} is shared by {pairs[pair]} squares")

    # Label sequences on the board
    if board is not None and board_assigned:
        winning = board.winning_team_numbers
        losing = board.losing_team_numbers
        labels_ok = True
        if not _is_permutation_of_digits(winning):
            errors.append(f"Board winning numbers {winning} are not a permutation of 0-9")
            labels_ok = False
        if not _is_permutation_of_digits(losing):
            errors.append(f"Board losing numbers {losing} are not a permutation of 0-9")
            labels_ok = False

        if labels_ok:
            mismatched = [
                s.id for s in squares
                if s.grid_position is not None
                and _in_range(s.grid_position, TOTAL_SQUARES)
                and (s.winning_team_number != winning[s.column]
                     or s.losing_team_number != losing[s.row])
            ]
            if mismatched:
                errors.append(
                    f"Found {len(mismatched)} squares whose numbers disagree "
                    f"with the board labels"
                )

    return ValidationReport(
        board_id=board_id,
        valid=not errors,
        assigned=True,
        errors=errors,
        stats=stats
    )


class AssignmentValidator:
    """
    Validates stored assignments for a board.

    Safe to call at any time; on a board that has not been assigned yet the
    report is valid and carries a warning.
    """

    def __init__(self, db: DatabaseInterface):
        self.db = db

    def validate(self, board_id: str) -> ValidationReport:
        """
        Validate the stored assignments of a board.

        Args:
            board_id: The board to check

        Returns:
            ValidationReport for the board's paid squares

        Raises:
            NotFoundError: If the board does not exist
        """
        board = self.db.get_board(board_id)
        squares = self.db.list_squares(board_id)
        paid = [s for s in squares if s.is_paid]

        report = validate_squares(paid, board=board)

        stray = [s.id for s in squares if not s.is_paid and s.is_assigned]
        if stray:
            report.errors.append(f"Found {len(stray)} unpaid squares with assignments")
            report.valid = False

        if report.valid:
            logger.debug(f"Board {board_id} assignments valid: {report.stats}")
        else:
            logger.error(f"Board {board_id} assignments invalid: {report.errors}")
        return report
