"""
Shared test fixtures and configuration.

Provides reusable fixtures for all test files including database instances
for both backends, fully paid boards and seeded random sources.
"""

import pytest
import os
import random
import shutil
import tempfile
from typing import Dict, Optional

from squarespool.models import PaymentStatus, Round
from squarespool.services import AssignmentEngine
from squarespool.storage import reset_database
from squarespool.storage.memory_db import MemoryDatabase
from squarespool.storage.sqlite_db import SQLiteDatabase


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture
def test_data_dir():
    """Provide a temporary directory for test data."""
    temp_dir = tempfile.mkdtemp(prefix="squarespool_test_")
    yield temp_dir

    # Cleanup
    if os.path.exists(temp_dir):
        try:
            shutil.rmtree(temp_dir)
        except PermissionError:
            pass  # Windows file locking, ignore


@pytest.fixture(params=['sqlite', 'memory'])
def db(request, test_data_dir):
    """Provide a clean database, once per backend."""
    if request.param == 'sqlite':
        database = SQLiteDatabase(db_path=os.path.join(test_data_dir, 'squares.db'))
    else:
        database = MemoryDatabase()
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def memory_db():
    """Provide a clean in-memory database."""
    database = MemoryDatabase()
    database.initialize()
    yield database
    database.close()


@pytest.fixture(autouse=True)
def _reset_database_singleton():
    """Never leak the factory singleton between tests."""
    reset_database()
    yield
    reset_database()


# =============================================================================
# BOARD FIXTURES
# =============================================================================

@pytest.fixture
def rng() -> random.Random:
    """Seeded random source for deterministic shuffles."""
    return random.Random(1234)


@pytest.fixture
def make_board(db):
    """Factory creating a board with the requested number of paid squares."""
    def _make(
        paid: int = 100,
        pending: int = 0,
        price: float = 10.0,
        payout_structure: Optional[Dict[Round, float]] = None
    ):
        board = db.create_board(
            'Test Board', price, created_by='admin', payout_structure=payout_structure
        )
        for i in range(paid):
            db.create_square(board.id, user_id=f'user_{i % 10}',
                             payment_status=PaymentStatus.PAID)
        for i in range(pending):
            db.create_square(board.id, user_id=f'pending_{i}')
        return db.get_board(board.id)

    return _make


@pytest.fixture
def assigned_board(db, make_board):
    """A fully paid board that has been through assignment."""
    board = make_board()
    AssignmentEngine(db, rng=random.Random(42)).assign(board.id)
    return db.get_board(board.id)
