"""Tests for board fill detection and automatic assignment."""

import pytest
import random
from unittest.mock import MagicMock

from squarespool.exceptions import AlreadyAssignedError, PreconditionError
from squarespool.models import BoardStatus, PaymentStatus
from squarespool.services import AssignmentEngine, AssignmentValidator, BoardFillWatcher, Notifier
from squarespool.services.notifications import BOARD_ASSIGNED, BOARD_FILLED


@pytest.fixture
def events():
    return []


@pytest.fixture
def watcher(db, events):
    notifier = Notifier()
    notifier.subscribe(lambda event, payload: events.append((event, payload)))
    return BoardFillWatcher(
        db, engine=AssignmentEngine(db, rng=random.Random(7)),
        notifier=notifier, auto_assign=True
    )


class TestBoardFillWatcher:
    """Tests for BoardFillWatcher."""

    def test_partial_board_not_triggered(self, db, watcher, make_board):
        """99 paid squares leaves the board OPEN."""
        board = make_board(paid=99)

        result = watcher.check_board(board.id)

        assert result.triggered is False
        assert result.board_status == BoardStatus.OPEN
        assert result.paid_squares == 99
        assert 'not ready' in result.message
        assert db.get_board(board.id).status == BoardStatus.OPEN

    def test_last_payment_triggers_assignment(self, db, watcher, make_board, events):
        """The 100th payment fills and assigns the board."""
        board = make_board(paid=99, pending=1)
        last = [s for s in db.list_squares(board.id) if not s.is_paid][0]

        result = watcher.record_payment(last.id)

        assert result.triggered is True
        assert result.message == "Assignment triggered automatically"
        assert result.paid_squares == 100
        assert result.assignment.assigned_squares == 100
        assert db.get_board(board.id).status == BoardStatus.ASSIGNED
        assert [e for e, _ in events] == [BOARD_FILLED, BOARD_ASSIGNED]
        assert events[1][1]['automatic'] is True
        assert events[1][1]['winningNumbers'] == result.assignment.winning_numbers

    def test_assigned_board_not_triggered_again(self, db, watcher, assigned_board, events):
        """A board past FILLED is left alone."""
        result = watcher.check_board(assigned_board.id)

        assert result.triggered is False
        assert result.board_status == BoardStatus.ASSIGNED
        assert events == []

    def test_auto_assign_disabled(self, db, make_board, events):
        """With auto-assign off the board stops at FILLED."""
        notifier = Notifier()
        notifier.subscribe(lambda event, payload: events.append((event, payload)))
        watcher = BoardFillWatcher(db, notifier=notifier, auto_assign=False)
        board = make_board()

        result = watcher.check_board(board.id)

        assert result.triggered is False
        assert result.board_status == BoardStatus.FILLED
        assert db.get_board(board.id).status == BoardStatus.FILLED
        assert [e for e, _ in events] == [BOARD_FILLED]

    def test_filled_board_assigned_on_next_check(self, db, make_board):
        """A board left FILLED is assigned once auto-assign is on."""
        board = make_board()
        BoardFillWatcher(db, auto_assign=False).check_board(board.id)

        result = BoardFillWatcher(db, auto_assign=True).check_board(board.id)

        assert result.triggered is True
        assert db.get_board(board.id).status == BoardStatus.ASSIGNED

    def test_lost_race_propagates(self, db, make_board):
        """AlreadyAssignedError from the engine reaches the caller."""
        engine = MagicMock()
        engine.assign.side_effect = AlreadyAssignedError("assigned elsewhere")
        watcher = BoardFillWatcher(db, engine=engine, auto_assign=True)
        board = make_board()

        with pytest.raises(AlreadyAssignedError):
            watcher.check_board(board.id)
        engine.assign.assert_called_once_with(board.id)

    def test_extra_claim_does_not_strand_full_board(self, db, watcher, make_board):
        """A 101st claim is refused, so the full board still assigns."""
        board = make_board()

        with pytest.raises(PreconditionError):
            db.create_square(board.id, user_id='late', payment_status=PaymentStatus.PAID)

        result = watcher.check_board(board.id)

        assert result.triggered is True
        assert result.paid_squares == 100
        assert db.get_board(board.id).status == BoardStatus.ASSIGNED

    def test_no_claims_after_assignment(self, db, watcher, assigned_board):
        """An assigned board keeps exactly its 100 assigned squares."""
        with pytest.raises(PreconditionError):
            db.create_square(assigned_board.id, user_id='late')

        report = AssignmentValidator(db).validate(assigned_board.id)
        assert report.valid is True
        assert report.stats.total_squares == 100

    def test_payment_refused_on_filled_board(self, db, make_board):
        """record_payment fails once the board has left OPEN."""
        board = make_board(paid=99, pending=1)
        pending = [s for s in db.list_squares(board.id) if not s.is_paid][0]
        db.compare_and_swap_status(board.id, [BoardStatus.OPEN], BoardStatus.FILLED)

        with pytest.raises(PreconditionError):
            BoardFillWatcher(db, auto_assign=True).record_payment(pending.id)
        assert db.get_board(board.id).status == BoardStatus.FILLED

    def test_payment_status(self, db, make_board):
        """Payment overview groups squares per user."""
        board = make_board(paid=12, pending=2)

        summary = BoardFillWatcher(db).payment_status(board.id)

        assert summary['status'] == 'OPEN'
        assert summary['paymentStats'] == {
            'totalSquares': 14, 'paidSquares': 12, 'pendingSquares': 2,
        }
        users = {u['userId']: u for u in summary['squaresByUser']}
        assert users['user_0']['paidCount'] == 2
        assert users['user_5']['paidCount'] == 1
        assert users['pending_1']['pendingCount'] == 1
        assert len(users['user_1']['squares']) == 2

    def test_without_notifier(self, db, make_board):
        """Notifier is optional."""
        board = make_board()

        result = BoardFillWatcher(db, auto_assign=True).check_board(board.id)

        assert result.triggered is True


class TestNotifier:
    """Tests for the Notifier hub."""

    def test_failing_subscriber_is_skipped(self):
        """One broken subscriber does not stop delivery."""
        received = []
        notifier = Notifier()
        notifier.subscribe(MagicMock(side_effect=RuntimeError("display offline")))
        notifier.subscribe(lambda event, payload: received.append(event))

        delivered = notifier.publish('game_scored', {'gameId': 'g1'})

        assert delivered == 1
        assert received == ['game_scored']

    def test_unsubscribe(self):
        """Removed subscribers no longer receive events."""
        callback = MagicMock()
        notifier = Notifier()
        notifier.subscribe(callback)

        assert notifier.unsubscribe(callback) is True
        assert notifier.unsubscribe(callback) is False
        assert notifier.publish('board_filled', {}) == 0
        callback.assert_not_called()
