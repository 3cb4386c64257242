"""
Board fill detection and automatic assignment.

Called after each payment is recorded: when a board reaches 100 paid
squares it moves OPEN -> FILLED, and a FILLED board is handed to the
AssignmentEngine exactly once.
"""

import logging
from typing import Dict, Optional

from pydantic import BaseModel

from .assignment import AssignmentEngine, AssignmentResult
from .notifications import Notifier, BOARD_ASSIGNED, BOARD_FILLED
from .. import config
from ..constants import TOTAL_SQUARES
from ..models import BoardStatus
from ..storage import DatabaseInterface
from ..types import (
    BoardAssignedPayloadDict,
    BoardFilledPayloadDict,
    BoardPaymentStatusDict,
    UserPaymentDict,
)

logger = logging.getLogger(__name__)


class FillCheckResult(BaseModel):
    """Outcome of checking a board after a payment."""

    triggered: bool
    message: str
    board_status: Optional[BoardStatus] = None
    paid_squares: int = 0
    assignment: Optional[AssignmentResult] = None


class BoardFillWatcher:
    """
    Watches paid square counts and triggers the one-shot assignment.

    The OPEN -> FILLED and FILLED -> ASSIGNED moves are both conditional
    writes, so concurrent payments finishing a board trigger one assignment.
    """

    def __init__(
        self,
        db: DatabaseInterface,
        engine: Optional[AssignmentEngine] = None,
        notifier: Optional[Notifier] = None,
        auto_assign: Optional[bool] = None
    ):
        self.db = db
        self.engine = engine or AssignmentEngine(db)
        self.notifier = notifier
        self.auto_assign = config.AUTO_ASSIGN if auto_assign is None else auto_assign

    def _publish(self, event: str, payload: dict) -> None:
        if self.notifier is not None:
            self.notifier.publish(event, payload)

    def record_payment(self, square_id: str) -> FillCheckResult:
        """
        Mark a square as paid, then check its board.

        Args:
            square_id: The square whose payment was received

        Returns:
            FillCheckResult for the square's board

        Raises:
            PreconditionError: The square's board is no longer taking payments
        """
        square = self.db.mark_square_paid(square_id)
        logger.info(f"Square {square_id} on board {square.board_id} marked PAID")
        return self.check_board(square.board_id)

    def payment_status(self, board_id: str) -> BoardPaymentStatusDict:
        """
        Summarise a board's payments.

        Returns:
            Board status, paid/pending counts and each user's squares in
            claim order; squares without a user are counted but not grouped
        """
        board = self.db.get_board(board_id)
        squares = self.db.list_squares(board_id)

        by_user: Dict[str, UserPaymentDict] = {}
        for square in squares:
            if not square.user_id:
                continue
            entry = by_user.setdefault(square.user_id, {
                'userId': square.user_id,
                'squares': [],
                'paidCount': 0,
                'pendingCount': 0,
            })
            entry['squares'].append({
                'id': square.id,
                'paymentStatus': square.payment_status.value,
                'gridPosition': square.grid_position,
            })
            if square.is_paid:
                entry['paidCount'] += 1
            else:
                entry['pendingCount'] += 1

        paid = sum(1 for s in squares if s.is_paid)
        return {
            'boardId': board.id,
            'name': board.name,
            'status': board.status.value,
            'pricePerSquare': board.price_per_square,
            'paymentStats': {
                'totalSquares': len(squares),
                'paidSquares': paid,
                'pendingSquares': len(squares) - paid,
            },
            'squaresByUser': list(by_user.values()),
        }

    def check_board(self, board_id: str) -> FillCheckResult:
        """
        Check a board's paid count and trigger assignment when it is full.

        Returns:
            FillCheckResult; triggered is True only when this call ran the
            assignment

        Raises:
            AlreadyAssignedError: Another caller assigned the board between
                                  the status check and the write
        """
        board = self.db.get_board(board_id)
        paid = board.paid_squares

        if board.status == BoardStatus.OPEN and paid == TOTAL_SQUARES:
            if self.db.compare_and_swap_status(board_id, [BoardStatus.OPEN], BoardStatus.FILLED):
                logger.info(f"Board {board_id} marked as FILLED with {paid} paid squares")
                filled: BoardFilledPayloadDict = {'boardId': board_id, 'paidSquares': paid}
                self._publish(BOARD_FILLED, filled)
            board = self.db.get_board(board_id)

        if board.status != BoardStatus.FILLED:
            return FillCheckResult(
                triggered=False,
                message=(
                    f"Board not ready for assignment. Status: {board.status.value}, "
                    f"Paid squares: {paid}"
                ),
                board_status=board.status,
                paid_squares=paid
            )

        if not self.auto_assign:
            return FillCheckResult(
                triggered=False,
                message="Board is filled; automatic assignment is disabled",
                board_status=board.status,
                paid_squares=paid
            )

        result = self.engine.assign(board_id)
        assigned: BoardAssignedPayloadDict = {
            'boardId': board_id,
            'assignedSquares': result.assigned_squares,
            'winningNumbers': result.winning_numbers,
            'losingNumbers': result.losing_numbers,
            'automatic': True,
        }
        self._publish(BOARD_ASSIGNED, assigned)
        return FillCheckResult(
            triggered=True,
            message="Assignment triggered automatically",
            board_status=BoardStatus.ASSIGNED,
            paid_squares=paid,
            assignment=result
        )
