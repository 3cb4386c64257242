"""Square data model."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from squarespool.constants import GRID_SIZE
from squarespool.models.enums import PaymentStatus


class Square(BaseModel):
    """Represents one claimed cell of a board."""

    id: str
    board_id: str = Field(..., alias="boardId")
    user_id: Optional[str] = Field(default=None, alias="userId")
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING, alias="paymentStatus")
    grid_position: Optional[int] = Field(default=None, alias="gridPosition")
    winning_team_number: Optional[int] = Field(default=None, alias="winningTeamNumber")
    losing_team_number: Optional[int] = Field(default=None, alias="losingTeamNumber")
    claim_order: int = Field(default=0, alias="claimOrder")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    class Config:
        """Pydantic configuration."""

        populate_by_name = True

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    @property
    def is_assigned(self) -> bool:
        return self.grid_position is not None

    @property
    def row(self) -> Optional[int]:
        """Grid row (losing team digit index), None until assigned."""
        if self.grid_position is None:
            return None
        return self.grid_position // GRID_SIZE

    @property
    def column(self) -> Optional[int]:
        """Grid column (winning team digit index), None until assigned."""
        if self.grid_position is None:
            return None
        return self.grid_position % GRID_SIZE


class SquareAssignment(BaseModel):
    """Grid position and digit labels computed for one square."""

    square_id: str = Field(..., alias="squareId")
    grid_position: int = Field(..., alias="gridPosition")
    winning_team_number: int = Field(..., alias="winningTeamNumber")
    losing_team_number: int = Field(..., alias="losingTeamNumber")

    class Config:
        """Pydantic configuration."""

        populate_by_name = True
