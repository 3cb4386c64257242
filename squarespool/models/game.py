"""Game data model."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from squarespool.constants import MAX_GAME_NUMBER
from squarespool.models.enums import GameStatus, Round


class Game(BaseModel):
    """Represents a tournament game tracked on a board."""

    id: str
    board_id: str = Field(..., alias="boardId")
    game_number: int = Field(..., alias="gameNumber", ge=1, le=MAX_GAME_NUMBER)
    round: Round
    team1: str = ""
    team2: str = ""
    team1_score: Optional[int] = Field(default=None, alias="team1Score")
    team2_score: Optional[int] = Field(default=None, alias="team2Score")
    status: GameStatus = GameStatus.SCHEDULED
    winner_square_id: Optional[str] = Field(default=None, alias="winnerSquareId")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")

    class Config:
        """Pydantic configuration."""

        populate_by_name = True

    def get_title(self) -> str:
        """Get display title, including the score once reported."""
        if self.team1_score is not None and self.team2_score is not None:
            return f"{self.team1} {self.team1_score} - {self.team2_score} {self.team2}"
        return f"{self.team1} vs {self.team2}"


class WinningNumbers(BaseModel):
    """Last digits of the two final scores."""

    team1_last_digit: int = Field(..., alias="team1LastDigit")
    team2_last_digit: int = Field(..., alias="team2LastDigit")

    class Config:
        """Pydantic configuration."""

        populate_by_name = True

    def as_tuple(self) -> tuple[int, int]:
        return (self.team1_last_digit, self.team2_last_digit)
