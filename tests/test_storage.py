"""Tests for storage module."""

import pytest
import os
from unittest.mock import patch

from squarespool.exceptions import (
    AlreadyAssignedError,
    DataIntegrityError,
    PreconditionError,
    TransientError,
)
from squarespool.models import BoardStatus, GameStatus, PaymentStatus, Round, SquareAssignment
from squarespool.storage import get_database, reset_database, DatabaseInterface
from squarespool.storage.exceptions import (
    ConfigurationError,
    ConnectionError,
    NotFoundError,
    QueryError,
)


class TestFactory:
    """Tests for factory function."""

    def setup_method(self):
        """Reset singleton before each test."""
        reset_database()

    def teardown_method(self):
        """Clean up after each test."""
        reset_database()

    def test_default_is_sqlite(self, test_data_dir):
        """Default DB_TYPE should be sqlite."""
        with patch.dict(os.environ, {'DATA_DIR': test_data_dir}, clear=False):
            os.environ.pop('DB_TYPE', None)
            db = get_database()
            assert db.__class__.__name__ == 'SQLiteDatabase'
            assert os.path.exists(os.path.join(test_data_dir, 'squares.db'))
            reset_database()  # Close before cleanup

    def test_db_filename(self, test_data_dir):
        """DB_FILENAME names the SQLite file."""
        env = {'DB_TYPE': 'sqlite', 'DATA_DIR': test_data_dir, 'DB_FILENAME': 'pool.db'}
        with patch.dict(os.environ, env, clear=False):
            get_database()
            assert os.path.exists(os.path.join(test_data_dir, 'pool.db'))
            reset_database()

    def test_memory(self):
        """DB_TYPE=memory selects the in-memory backend."""
        with patch.dict(os.environ, {'DB_TYPE': 'memory'}, clear=False):
            db = get_database()
            assert db.__class__.__name__ == 'MemoryDatabase'
            assert db.health_check() is True

    def test_invalid_db_type_raises(self):
        """Invalid DB_TYPE raises ConfigurationError."""
        with patch.dict(os.environ, {'DB_TYPE': 'invalid'}, clear=False):
            with pytest.raises(ConfigurationError):
                get_database()

    def test_singleton_returns_same_instance(self):
        """Factory returns same instance on subsequent calls."""
        with patch.dict(os.environ, {'DB_TYPE': 'memory'}, clear=False):
            db1 = get_database()
            db2 = get_database()
            assert db1 is db2


class TestExceptions:
    """Tests for the storage error hierarchy."""

    def test_transient_errors(self):
        """Connection and query failures are retryable."""
        assert issubclass(ConnectionError, TransientError)
        assert issubclass(QueryError, TransientError)

    def test_not_found_is_not_transient(self):
        """Missing rows are not worth retrying."""
        assert not issubclass(NotFoundError, TransientError)


class TestBoards:
    """Board operations, run against every backend."""

    def test_implements_interface(self, db):
        """Backends implement DatabaseInterface."""
        assert isinstance(db, DatabaseInterface)
        assert db.health_check() is True

    def test_create_and_get(self, db):
        """New boards start OPEN with no labels."""
        board = db.create_board('March Madness', 10.0, created_by='admin')

        fetched = db.get_board(board.id)
        assert fetched.name == 'March Madness'
        assert fetched.price_per_square == 10.0
        assert fetched.status == BoardStatus.OPEN
        assert fetched.paid_squares == 0
        assert fetched.winning_team_numbers is None
        assert fetched.created_by == 'admin'

    def test_payout_structure_round_trip(self, db):
        """Payout overrides survive storage."""
        board = db.create_board('B', 5.0, payout_structure={Round.FINAL4: 150.0})

        assert db.get_board(board.id).payout_structure == {Round.FINAL4: 150.0}

    def test_missing_board(self, db):
        """Unknown board ids raise NotFoundError."""
        with pytest.raises(NotFoundError):
            db.get_board('missing')

    def test_list_boards_by_status(self, db, make_board):
        """Boards can be filtered by status."""
        full = make_board()
        open_board = make_board(paid=3)
        db.compare_and_swap_status(full.id, [BoardStatus.OPEN], BoardStatus.FILLED)

        assert [b.id for b in db.list_boards(BoardStatus.FILLED)] == [full.id]
        assert [b.id for b in db.list_boards(BoardStatus.OPEN)] == [open_board.id]
        assert len(db.list_boards()) == 2

    def test_compare_and_swap(self, db, make_board):
        """Status only changes from an expected value."""
        board = make_board()

        assert db.compare_and_swap_status(board.id, [BoardStatus.OPEN], BoardStatus.FILLED) is True
        assert db.compare_and_swap_status(board.id, [BoardStatus.OPEN], BoardStatus.FILLED) is False
        assert db.get_board(board.id).status == BoardStatus.FILLED

    def test_compare_and_swap_missing_board(self, db):
        """CAS on an unknown board raises NotFoundError."""
        with pytest.raises(NotFoundError):
            db.compare_and_swap_status('missing', [BoardStatus.OPEN], BoardStatus.FILLED)


class TestSquares:
    """Square operations, run against every backend."""

    def test_claim_order_increments(self, db):
        """Squares are numbered in claim order per board."""
        board = db.create_board('B', 10.0)
        first = db.create_square(board.id, user_id='a')
        second = db.create_square(board.id, user_id='b')

        assert (first.claim_order, second.claim_order) == (1, 2)
        assert first.payment_status == PaymentStatus.PENDING

    def test_paid_squares(self, db, make_board):
        """Paid listing skips pending squares and keeps claim order."""
        board = make_board(paid=5, pending=3)

        paid = db.list_paid_squares(board.id)
        assert len(paid) == 5
        assert [s.claim_order for s in paid] == sorted(s.claim_order for s in paid)
        assert db.count_paid_squares(board.id) == 5
        assert db.get_board(board.id).paid_squares == 5
        assert len(db.list_squares(board.id)) == 8

    def test_mark_paid(self, db):
        """Marking paid is idempotent."""
        board = db.create_board('B', 10.0)
        square = db.create_square(board.id, user_id='a')

        assert db.mark_square_paid(square.id).is_paid
        assert db.mark_square_paid(square.id).is_paid
        assert db.count_paid_squares(board.id) == 1

    def test_full_board_rejects_claims(self, db, make_board):
        """A board holds at most 100 squares."""
        board = make_board()

        with pytest.raises(PreconditionError):
            db.create_square(board.id, user_id='late', payment_status=PaymentStatus.PAID)
        assert len(db.list_squares(board.id)) == 100
        assert db.count_paid_squares(board.id) == 100

    def test_pending_squares_count_towards_capacity(self, db, make_board):
        """Unpaid claims take up board capacity too."""
        board = make_board(paid=60, pending=40)

        with pytest.raises(PreconditionError):
            db.create_square(board.id, user_id='late')

    def test_closed_board_rejects_claims(self, db, make_board):
        """Only OPEN boards accept claims."""
        board = make_board(paid=3)
        db.compare_and_swap_status(board.id, [BoardStatus.OPEN], BoardStatus.FILLED)

        with pytest.raises(PreconditionError):
            db.create_square(board.id, user_id='late')
        assert len(db.list_squares(board.id)) == 3

    def test_closed_board_rejects_payments(self, db, make_board):
        """A pending square cannot be paid once the board has left OPEN."""
        board = make_board(paid=99, pending=1)
        pending = [s for s in db.list_squares(board.id) if not s.is_paid][0]
        db.compare_and_swap_status(board.id, [BoardStatus.OPEN], BoardStatus.FILLED)

        with pytest.raises(PreconditionError):
            db.mark_square_paid(pending.id)
        assert db.get_square(pending.id).is_paid is False
        assert db.count_paid_squares(board.id) == 99

    def test_paid_square_on_assigned_board(self, db, assigned_board):
        """Re-marking an already paid square stays a no-op after assignment."""
        square = db.list_paid_squares(assigned_board.id)[0]

        assert db.mark_square_paid(square.id).is_paid
        assert db.get_board(assigned_board.id).status == BoardStatus.ASSIGNED

    def test_mark_paid_missing(self, db):
        with pytest.raises(NotFoundError):
            db.mark_square_paid('missing')

    def test_square_on_missing_board(self, db):
        with pytest.raises(NotFoundError):
            db.create_square('missing', user_id='a')

    def test_update_assignment(self, db, make_board):
        """Grid position and digits are written once."""
        board = make_board(paid=2)
        square = db.list_paid_squares(board.id)[0]

        updated = db.update_square_assignment(square.id, 42, 2, 4)
        assert (updated.grid_position, updated.row, updated.column) == (42, 4, 2)

        with pytest.raises(DataIntegrityError):
            db.update_square_assignment(square.id, 43, 3, 4)
        assert db.get_square(square.id).grid_position == 42

    def test_update_assignment_position_taken(self, db, make_board):
        """Two squares of a board cannot share a position."""
        board = make_board(paid=2)
        first, second = db.list_paid_squares(board.id)
        db.update_square_assignment(first.id, 42, 2, 4)

        with pytest.raises(DataIntegrityError):
            db.update_square_assignment(second.id, 42, 2, 4)
        assert db.get_square(second.id).grid_position is None

    def test_update_assignment_missing(self, db):
        with pytest.raises(NotFoundError):
            db.update_square_assignment('missing', 1, 1, 0)


class TestSetAssigned:
    """Atomic assignment write, run against every backend."""

    def _plan(self, squares):
        return [
            SquareAssignment(
                square_id=s.id, grid_position=i,
                winning_team_number=i % 10, losing_team_number=i // 10
            )
            for i, s in enumerate(squares)
        ]

    def test_writes_everything(self, db, make_board):
        """Labels, status and every square are written together."""
        board = make_board()
        digits = list(range(10))

        result = db.set_assigned(board.id, digits, digits[::-1],
                                 self._plan(db.list_paid_squares(board.id)))

        assert result.status == BoardStatus.ASSIGNED
        assert result.winning_team_numbers == digits
        assert result.losing_team_numbers == digits[::-1]
        assert all(s.is_assigned for s in db.list_paid_squares(board.id))

    def test_second_write_rejected(self, db, make_board):
        """An assigned board cannot be assigned again."""
        board = make_board()
        plan = self._plan(db.list_paid_squares(board.id))
        db.set_assigned(board.id, list(range(10)), list(range(10)), plan)

        with pytest.raises(AlreadyAssignedError):
            db.set_assigned(board.id, list(range(10)), list(range(10)), plan)

    def test_foreign_square_rolls_back(self, db, make_board):
        """A bad square leaves the board and its squares untouched."""
        board = make_board()
        other = make_board(paid=1)
        squares = db.list_paid_squares(board.id)[:99] + db.list_paid_squares(other.id)

        with pytest.raises(DataIntegrityError):
            db.set_assigned(board.id, list(range(10)), list(range(10)), self._plan(squares))

        stored = db.get_board(board.id)
        assert stored.status == BoardStatus.OPEN
        assert stored.winning_team_numbers is None
        assert not any(s.is_assigned for s in db.list_squares(board.id))
        assert not any(s.is_assigned for s in db.list_squares(other.id))


class TestGames:
    """Game operations, run against every backend."""

    def test_create_and_list(self, db):
        """Games list in game number order."""
        board = db.create_board('B', 10.0)
        db.create_game(board.id, 63, Round.CHAMPIONSHIP, 'A', 'B')
        db.create_game(board.id, 1, Round.ROUND1, 'C', 'D')

        games = db.list_games(board.id)
        assert [g.game_number for g in games] == [1, 63]
        assert games[0].status == GameStatus.SCHEDULED
        assert games[1].round == Round.CHAMPIONSHIP

    def test_duplicate_game_number(self, db):
        """Game numbers are unique per board."""
        board = db.create_board('B', 10.0)
        db.create_game(board.id, 5, Round.ROUND1, 'A', 'B')

        with pytest.raises(PreconditionError):
            db.create_game(board.id, 5, Round.ROUND1, 'C', 'D')

    def test_completed_game_is_final(self, db):
        """A completed game cannot be updated."""
        board = db.create_board('B', 10.0)
        game = db.create_game(board.id, 5, Round.ROUND1, 'A', 'B')
        db.update_game_score(game.id, 10, 8, GameStatus.IN_PROGRESS)
        completed = db.update_game_score(game.id, 70, 68, GameStatus.COMPLETED, 'sq_1')

        assert completed.winner_square_id == 'sq_1'
        assert completed.completed_at is not None
        with pytest.raises(PreconditionError):
            db.update_game_score(game.id, 71, 68, GameStatus.COMPLETED, 'sq_2')
        assert db.get_game(game.id).team1_score == 70

    def test_missing_game(self, db):
        with pytest.raises(NotFoundError):
            db.get_game('missing')
        with pytest.raises(NotFoundError):
            db.update_game_score('missing', 1, 2, GameStatus.IN_PROGRESS)
