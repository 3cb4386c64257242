"""Board data model."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from squarespool.constants import TOTAL_SQUARES
from squarespool.models.enums import BoardStatus, Round, ASSIGNED_STATUSES


class Board(BaseModel):
    """Represents a 10x10 squares board for one tournament."""

    id: str
    name: str = ""
    price_per_square: float = Field(..., alias="pricePerSquare", ge=0)
    status: BoardStatus = BoardStatus.OPEN
    total_squares: int = Field(default=TOTAL_SQUARES, alias="totalSquares")
    paid_squares: int = Field(default=0, alias="paidSquares")
    created_by: Optional[str] = Field(default=None, alias="createdBy")

    # Column labels (team 1 digits) and row labels (team 2 digits)
    winning_team_numbers: Optional[list[int]] = Field(default=None, alias="winningTeamNumbers")
    losing_team_numbers: Optional[list[int]] = Field(default=None, alias="losingTeamNumbers")

    # Literal per-round amounts; overrides the default multipliers
    payout_structure: Optional[dict[Round, float]] = Field(default=None, alias="payoutStructure")

    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    class Config:
        """Pydantic configuration."""

        populate_by_name = True

    def is_assigned(self) -> bool:
        """Check whether the board has been through assignment."""
        return self.status in ASSIGNED_STATUSES

    def is_full(self) -> bool:
        """Check whether every square on the board is paid."""
        return self.paid_squares >= self.total_squares
