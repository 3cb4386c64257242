"""Services for the squares pool."""

from squarespool.services.permutation import shuffle, get_rng
from squarespool.services.validator import (
    AssignmentValidator,
    ValidationReport,
    ValidationStats,
    validate_squares,
)
from squarespool.services.assignment import (
    AssignmentEngine,
    AssignmentResult,
    generate_assignments,
)
from squarespool.services.scoring import (
    ErrorKind,
    ScoringEngine,
    ScoringResult,
    calculate_payout,
    find_winning_square,
    check_scores,
    last_digits,
)
from squarespool.services.notifications import Notifier
from squarespool.services.fill_watcher import BoardFillWatcher, FillCheckResult
from squarespool.services.results import GameResultsService

__all__ = [
    "shuffle",
    "get_rng",
    "AssignmentValidator",
    "ValidationReport",
    "ValidationStats",
    "validate_squares",
    "AssignmentEngine",
    "AssignmentResult",
    "generate_assignments",
    "ErrorKind",
    "ScoringEngine",
    "ScoringResult",
    "calculate_payout",
    "find_winning_square",
    "check_scores",
    "last_digits",
    "Notifier",
    "BoardFillWatcher",
    "FillCheckResult",
    "GameResultsService",
]
