"""
Domain exceptions for the squares pool.

These exceptions separate failures by how callers should react:
- PreconditionError: operation not allowed in the board/game's current state
- AlreadyAssignedError: assignment attempted on a board that is past it
- ValidationError: malformed input, never retried
- DataIntegrityError: an assignment invariant is broken, fatal to the operation
- TransientError: storage failure, safe to retry
"""


class SquaresError(Exception):
    """Base exception for all squares pool errors."""
    pass


class PreconditionError(SquaresError):
    """Operation rejected because its preconditions do not hold."""
    pass


class AlreadyAssignedError(PreconditionError):
    """Board has already been assigned; assignment is one-shot."""
    pass


class ValidationError(SquaresError):
    """Malformed input."""
    pass


class DataIntegrityError(SquaresError):
    """Stored or computed assignments violate the grid invariants."""
    pass


class TransientError(SquaresError):
    """Underlying store read/write failure."""
    pass
