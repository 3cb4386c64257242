"""
SQLite Database Storage for the squares pool.

Provides storage for boards, squares and games with:
- Explicit BEGIN IMMEDIATE transactions for atomic multi-row writes
- Conditional status updates (compare-and-swap) for one-shot transitions
- A partial unique index so no two squares of a board share a grid position
- Concurrent read access via WAL mode

This is the SQLite implementation of the DatabaseInterface.
"""

import sqlite3
import json
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Iterator, List, Dict, Iterable, Any
import threading

from .base import DatabaseInterface
from .exceptions import ConnectionError, NotFoundError, QueryError, SchemaError
from ..exceptions import AlreadyAssignedError, DataIntegrityError, PreconditionError
from ..models import (
    ASSIGNABLE_STATUSES,
    Board,
    BoardStatus,
    Game,
    GameStatus,
    PaymentStatus,
    Round,
    Square,
    SquareAssignment,
)

logger = logging.getLogger(__name__)


SCHEMA = '''
    -- Metadata table
    CREATE TABLE IF NOT EXISTS metadata (
        key TEXT PRIMARY KEY,
        value TEXT,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );

    -- Boards
    CREATE TABLE IF NOT EXISTS boards (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        price_per_square REAL NOT NULL,
        status TEXT NOT NULL DEFAULT 'OPEN',
        total_squares INTEGER NOT NULL DEFAULT 100,
        created_by TEXT,
        payout_structure JSON,
        winning_team_numbers JSON,
        losing_team_numbers JSON,
        created_at TEXT NOT NULL
    );

    -- Squares
    CREATE TABLE IF NOT EXISTS squares (
        id TEXT PRIMARY KEY,
        board_id TEXT NOT NULL,
        user_id TEXT,
        payment_status TEXT NOT NULL DEFAULT 'PENDING',
        grid_position INTEGER,
        winning_team_number INTEGER,
        losing_team_number INTEGER,
        claim_order INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (board_id) REFERENCES boards(id),
        UNIQUE (board_id, claim_order)
    );

    -- Games
    CREATE TABLE IF NOT EXISTS games (
        id TEXT PRIMARY KEY,
        board_id TEXT NOT NULL,
        game_number INTEGER NOT NULL,
        round TEXT NOT NULL,
        team1 TEXT,
        team2 TEXT,
        team1_score INTEGER,
        team2_score INTEGER,
        status TEXT NOT NULL DEFAULT 'SCHEDULED',
        winner_square_id TEXT,
        completed_at TEXT,
        FOREIGN KEY (board_id) REFERENCES boards(id),
        FOREIGN KEY (winner_square_id) REFERENCES squares(id),
        UNIQUE (board_id, game_number)
    );

    -- Indexes
    CREATE UNIQUE INDEX IF NOT EXISTS idx_squares_grid_position
        ON squares(board_id, grid_position) WHERE grid_position IS NOT NULL;
    CREATE INDEX IF NOT EXISTS idx_squares_board ON squares(board_id, payment_status);
    CREATE INDEX IF NOT EXISTS idx_games_board ON games(board_id);
    CREATE INDEX IF NOT EXISTS idx_boards_status ON boards(status);
'''


class SQLiteDatabase(DatabaseInterface):
    """
    SQLite database for squares pool storage.
    Thread-safe with connection per thread.

    Implements the DatabaseInterface abstract base class.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str = "cache/squares.db"):
        """
        Create SQLite database instance.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path)
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()
        self._initialized = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def initialize(self) -> None:
        """Initialize the database connection and schema."""
        if self._initialized:
            return

        # Ensure parent directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()
        self._initialized = True

    def close(self) -> None:
        """Close every connection opened by this instance."""
        with self._connections_lock:
            for conn in self._connections:
                conn.close()
            self._connections = []
        self._local = threading.local()

    def health_check(self) -> bool:
        """Check if the database connection is healthy."""
        try:
            conn = self._get_connection()
            conn.execute("SELECT 1")
            return True
        except (sqlite3.Error, ConnectionError):
            return False

    # =========================================================================
    # CONNECTION MANAGEMENT
    # =========================================================================

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, 'conn', None) is None:
            try:
                conn = sqlite3.connect(
                    str(self.db_path),
                    check_same_thread=False,
                    timeout=30.0,
                    isolation_level=None
                )
            except sqlite3.Error as e:
                raise ConnectionError(f"Cannot open {self.db_path}: {e}") from e
            conn.row_factory = sqlite3.Row
            # Enable WAL mode for better concurrent access
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.execute("PRAGMA foreign_keys=ON")
            self._local.conn = conn
            with self._connections_lock:
                self._connections.append(conn)
        return self._local.conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Context manager for write transactions.

        Takes the write lock up front (BEGIN IMMEDIATE) so a conditional
        update never races another writer between its read and its write.
        """
        conn = self._get_connection()
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.OperationalError as e:
            raise QueryError(f"Cannot start transaction: {e}") from e
        try:
            yield conn
            conn.execute("COMMIT")
        except sqlite3.IntegrityError as e:
            conn.execute("ROLLBACK")
            raise DataIntegrityError(str(e)) from e
        except sqlite3.OperationalError as e:
            conn.execute("ROLLBACK")
            raise QueryError(str(e)) from e
        except Exception:
            conn.execute("ROLLBACK")
            raise

    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        """Run a read query outside a transaction."""
        try:
            return self._get_connection().execute(sql, params).fetchall()
        except sqlite3.OperationalError as e:
            raise QueryError(str(e)) from e

    def _init_schema(self) -> None:
        """Initialize database schema."""
        conn = self._get_connection()
        try:
            conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise SchemaError(f"Failed to create schema: {e}") from e

        with self.transaction() as tx:
            tx.execute(
                "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                ('schema_version', str(self.SCHEMA_VERSION))
            )

    # =========================================================================
    # ROW CONVERSION
    # =========================================================================

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _json_or_none(value: Optional[str]) -> Any:
        return json.loads(value) if value else None

    def _row_to_board(self, row: sqlite3.Row, paid_squares: int) -> Board:
        return Board(
            id=row['id'],
            name=row['name'],
            price_per_square=row['price_per_square'],
            status=row['status'],
            total_squares=row['total_squares'],
            paid_squares=paid_squares,
            created_by=row['created_by'],
            payout_structure=self._json_or_none(row['payout_structure']),
            winning_team_numbers=self._json_or_none(row['winning_team_numbers']),
            losing_team_numbers=self._json_or_none(row['losing_team_numbers']),
            created_at=row['created_at']
        )

    @staticmethod
    def _row_to_square(row: sqlite3.Row) -> Square:
        return Square(
            id=row['id'],
            board_id=row['board_id'],
            user_id=row['user_id'],
            payment_status=row['payment_status'],
            grid_position=row['grid_position'],
            winning_team_number=row['winning_team_number'],
            losing_team_number=row['losing_team_number'],
            claim_order=row['claim_order'],
            created_at=row['created_at']
        )

    @staticmethod
    def _row_to_game(row: sqlite3.Row) -> Game:
        return Game(
            id=row['id'],
            board_id=row['board_id'],
            game_number=row['game_number'],
            round=row['round'],
            team1=row['team1'] or '',
            team2=row['team2'] or '',
            team1_score=row['team1_score'],
            team2_score=row['team2_score'],
            status=row['status'],
            winner_square_id=row['winner_square_id'],
            completed_at=row['completed_at']
        )

    # =========================================================================
    # BOARDS
    # =========================================================================

    def create_board(
        self,
        name: str,
        price_per_square: float,
        created_by: Optional[str] = None,
        payout_structure: Optional[Dict[Round, float]] = None
    ) -> Board:
        board_id = uuid.uuid4().hex
        payouts = None
        if payout_structure:
            payouts = json.dumps({Round(k).value: v for k, v in payout_structure.items()})

        with self.transaction() as conn:
            conn.execute('''
                INSERT INTO boards (id, name, price_per_square, status, created_by,
                                    payout_structure, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            ''', (
                board_id, name, price_per_square, BoardStatus.OPEN.value,
                created_by, payouts, self._now()
            ))
        return self.get_board(board_id)

    def get_board(self, board_id: str) -> Board:
        rows = self._query("SELECT * FROM boards WHERE id = ?", (board_id,))
        if not rows:
            raise NotFoundError(f"Board not found: {board_id}")
        return self._row_to_board(rows[0], self.count_paid_squares(board_id))

    def list_boards(self, status: Optional[BoardStatus] = None) -> List[Board]:
        if status is None:
            rows = self._query("SELECT * FROM boards ORDER BY created_at")
        else:
            rows = self._query(
                "SELECT * FROM boards WHERE status = ? ORDER BY created_at",
                (BoardStatus(status).value,)
            )
        return [self._row_to_board(r, self.count_paid_squares(r['id'])) for r in rows]

    def compare_and_swap_status(
        self,
        board_id: str,
        expected: Iterable[BoardStatus],
        new_status: BoardStatus
    ) -> bool:
        expected_values = [BoardStatus(s).value for s in expected]
        if not expected_values:
            return False
        placeholders = ', '.join('?' for _ in expected_values)

        with self.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE boards SET status = ? WHERE id = ? AND status IN ({placeholders})",
                (BoardStatus(new_status).value, board_id, *expected_values)
            )
            if cursor.rowcount == 0:
                exists = conn.execute(
                    "SELECT 1 FROM boards WHERE id = ?", (board_id,)
                ).fetchone()
                if exists is None:
                    raise NotFoundError(f"Board not found: {board_id}")
                return False
        logger.debug(f"Board {board_id} moved to {BoardStatus(new_status).value}")
        return True

    def set_assigned(
        self,
        board_id: str,
        winning_labels: List[int],
        losing_labels: List[int],
        assignments: List[SquareAssignment]
    ) -> Board:
        assignable = [s.value for s in ASSIGNABLE_STATUSES]

        with self.transaction() as conn:
            cursor = conn.execute('''
                UPDATE boards
                SET status = ?, winning_team_numbers = ?, losing_team_numbers = ?
                WHERE id = ? AND status IN (?, ?)
            ''', (
                BoardStatus.ASSIGNED.value,
                json.dumps(list(winning_labels)),
                json.dumps(list(losing_labels)),
                board_id,
                *assignable
            ))
            if cursor.rowcount == 0:
                row = conn.execute(
                    "SELECT status FROM boards WHERE id = ?", (board_id,)
                ).fetchone()
                if row is None:
                    raise NotFoundError(f"Board not found: {board_id}")
                raise AlreadyAssignedError(
                    f"Board {board_id} is {row['status']}, cannot assign"
                )

            for assignment in assignments:
                cursor = conn.execute('''
                    UPDATE squares
                    SET grid_position = ?, winning_team_number = ?, losing_team_number = ?
                    WHERE id = ? AND board_id = ? AND payment_status = ?
                      AND grid_position IS NULL
                ''', (
                    assignment.grid_position,
                    assignment.winning_team_number,
                    assignment.losing_team_number,
                    assignment.square_id,
                    board_id,
                    PaymentStatus.PAID.value
                ))
                if cursor.rowcount != 1:
                    raise DataIntegrityError(
                        f"Square {assignment.square_id} is not an unassigned paid "
                        f"square of board {board_id}"
                    )
        return self.get_board(board_id)

    # =========================================================================
    # SQUARES
    # =========================================================================

    def create_square(
        self,
        board_id: str,
        user_id: Optional[str] = None,
        payment_status: PaymentStatus = PaymentStatus.PENDING
    ) -> Square:
        square_id = uuid.uuid4().hex
        with self.transaction() as conn:
            board = conn.execute(
                "SELECT status, total_squares FROM boards WHERE id = ?", (board_id,)
            ).fetchone()
            if board is None:
                raise NotFoundError(f"Board not found: {board_id}")
            if board['status'] != BoardStatus.OPEN.value:
                raise PreconditionError(
                    f"Board {board_id} is {board['status']}, not accepting squares"
                )
            claimed, last_order = conn.execute(
                "SELECT COUNT(*), COALESCE(MAX(claim_order), 0) FROM squares WHERE board_id = ?",
                (board_id,)
            ).fetchone()
            if claimed >= board['total_squares']:
                raise PreconditionError(f"Board {board_id} has no squares available")
            next_order = last_order + 1
            conn.execute('''
                INSERT INTO squares (id, board_id, user_id, payment_status, claim_order, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
            ''', (
                square_id, board_id, user_id, PaymentStatus(payment_status).value,
                next_order, self._now()
            ))
        return self.get_square(square_id)

    def get_square(self, square_id: str) -> Square:
        rows = self._query("SELECT * FROM squares WHERE id = ?", (square_id,))
        if not rows:
            raise NotFoundError(f"Square not found: {square_id}")
        return self._row_to_square(rows[0])

    def list_squares(self, board_id: str) -> List[Square]:
        rows = self._query(
            "SELECT * FROM squares WHERE board_id = ? ORDER BY claim_order",
            (board_id,)
        )
        return [self._row_to_square(r) for r in rows]

    def list_paid_squares(self, board_id: str) -> List[Square]:
        rows = self._query(
            "SELECT * FROM squares WHERE board_id = ? AND payment_status = ? "
            "ORDER BY claim_order",
            (board_id, PaymentStatus.PAID.value)
        )
        return [self._row_to_square(r) for r in rows]

    def count_paid_squares(self, board_id: str) -> int:
        rows = self._query(
            "SELECT COUNT(*) FROM squares WHERE board_id = ? AND payment_status = ?",
            (board_id, PaymentStatus.PAID.value)
        )
        return rows[0][0]

    def mark_square_paid(self, square_id: str) -> Square:
        with self.transaction() as conn:
            row = conn.execute('''
                SELECT s.payment_status, b.id AS board_id, b.status AS board_status
                FROM squares s JOIN boards b ON b.id = s.board_id
                WHERE s.id = ?
            ''', (square_id,)).fetchone()
            if row is None:
                raise NotFoundError(f"Square not found: {square_id}")
            if row['payment_status'] != PaymentStatus.PAID.value:
                if row['board_status'] != BoardStatus.OPEN.value:
                    raise PreconditionError(
                        f"Board {row['board_id']} is {row['board_status']}, "
                        f"not accepting payments"
                    )
                conn.execute(
                    "UPDATE squares SET payment_status = ? WHERE id = ?",
                    (PaymentStatus.PAID.value, square_id)
                )
        return self.get_square(square_id)

    def update_square_assignment(
        self,
        square_id: str,
        grid_position: int,
        winning_team_number: int,
        losing_team_number: int
    ) -> Square:
        with self.transaction() as conn:
            cursor = conn.execute('''
                UPDATE squares
                SET grid_position = ?, winning_team_number = ?, losing_team_number = ?
                WHERE id = ? AND grid_position IS NULL
            ''', (grid_position, winning_team_number, losing_team_number, square_id))
            if cursor.rowcount == 0:
                if conn.execute("SELECT 1 FROM squares WHERE id = ?", (square_id,)).fetchone() is None:
                    raise NotFoundError(f"Square not found: {square_id}")
                raise DataIntegrityError(f"Square {square_id} is already assigned")
        return self.get_square(square_id)

    # =========================================================================
    # GAMES
    # =========================================================================

    def create_game(
        self,
        board_id: str,
        game_number: int,
        round: Round,
        team1: str,
        team2: str
    ) -> Game:
        game_id = uuid.uuid4().hex
        # Validate through the model before writing
        Game(id=game_id, board_id=board_id, game_number=game_number, round=round)

        with self.transaction() as conn:
            if conn.execute("SELECT 1 FROM boards WHERE id = ?", (board_id,)).fetchone() is None:
                raise NotFoundError(f"Board not found: {board_id}")
            if conn.execute(
                "SELECT 1 FROM games WHERE board_id = ? AND game_number = ?",
                (board_id, game_number)
            ).fetchone() is not None:
                raise PreconditionError(
                    f"Game {game_number} already exists on board {board_id}"
                )
            conn.execute('''
                INSERT INTO games (id, board_id, game_number, round, team1, team2, status)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            ''', (
                game_id, board_id, game_number, Round(round).value, team1, team2,
                GameStatus.SCHEDULED.value
            ))
        return self.get_game(game_id)

    def get_game(self, game_id: str) -> Game:
        rows = self._query("SELECT * FROM games WHERE id = ?", (game_id,))
        if not rows:
            raise NotFoundError(f"Game not found: {game_id}")
        return self._row_to_game(rows[0])

    def list_games(self, board_id: str) -> List[Game]:
        rows = self._query(
            "SELECT * FROM games WHERE board_id = ? ORDER BY game_number",
            (board_id,)
        )
        return [self._row_to_game(r) for r in rows]

    def update_game_score(
        self,
        game_id: str,
        team1_score: Optional[int],
        team2_score: Optional[int],
        status: GameStatus,
        winner_square_id: Optional[str] = None
    ) -> Game:
        status = GameStatus(status)
        completed = status == GameStatus.COMPLETED

        with self.transaction() as conn:
            cursor = conn.execute('''
                UPDATE games
                SET team1_score = ?, team2_score = ?, status = ?,
                    winner_square_id = ?, completed_at = ?
                WHERE id = ? AND status != ?
            ''', (
                team1_score,
                team2_score,
                status.value,
                winner_square_id if completed else None,
                self._now() if completed else None,
                game_id,
                GameStatus.COMPLETED.value
            ))
            if cursor.rowcount == 0:
                if conn.execute("SELECT 1 FROM games WHERE id = ?", (game_id,)).fetchone() is None:
                    raise NotFoundError(f"Game not found: {game_id}")
                raise PreconditionError(f"Game {game_id} is already completed")
        return self.get_game(game_id)
