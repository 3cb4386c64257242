"""Status and round enumerations."""

from enum import Enum


class BoardStatus(str, Enum):
    """Board lifecycle: OPEN -> FILLED -> ASSIGNED -> ACTIVE -> COMPLETED."""

    OPEN = "OPEN"
    FILLED = "FILLED"
    ASSIGNED = "ASSIGNED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class PaymentStatus(str, Enum):
    """Payment state of a claimed square."""

    PENDING = "PENDING"
    PAID = "PAID"


class Round(str, Enum):
    """Tournament round."""

    ROUND1 = "ROUND1"
    ROUND2 = "ROUND2"
    SWEET16 = "SWEET16"
    ELITE8 = "ELITE8"
    FINAL4 = "FINAL4"
    CHAMPIONSHIP = "CHAMPIONSHIP"


class GameStatus(str, Enum):
    """Game lifecycle: SCHEDULED -> IN_PROGRESS -> COMPLETED."""

    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


# Statuses from which a board may still be assigned
ASSIGNABLE_STATUSES = (BoardStatus.OPEN, BoardStatus.FILLED)

# Statuses in which every paid square carries a grid position
ASSIGNED_STATUSES = (BoardStatus.ASSIGNED, BoardStatus.ACTIVE, BoardStatus.COMPLETED)

GAME_STATUS_ORDER = [GameStatus.SCHEDULED, GameStatus.IN_PROGRESS, GameStatus.COMPLETED]
