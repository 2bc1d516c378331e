from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Option(BaseModel):
    """
    One entry of the fixed palette. color_value is only meaningful to clients.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    color_value: str


class VoteRecord(BaseModel):
    """
    Immutable fact that one vote was cast for one option.
    Stored on the wire as {"color": ..., "timestamp": ...}.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    option_name: str = Field(
        ...,
        validation_alias=AliasChoices("option_name", "color"),
        serialization_alias="color",
        examples=["Red"],
    )
    submitted_at: datetime = Field(
        ...,
        validation_alias=AliasChoices("submitted_at", "timestamp"),
        serialization_alias="timestamp",
    )


class StoreResult(BaseModel):
    """
    What a store collaborator hands back: success flag plus payload.
    """
    success: bool
    data: Any = None


class TallySnapshot(BaseModel):
    """
    Point-in-time aggregation of vote records.
    counts_by_option and percentages are keyed by option name, in palette order.
    """
    model_config = ConfigDict(frozen=True)

    counts_by_option: Dict[str, int]
    percentages: Dict[str, int]
    total_votes: int
    leader: Optional[str] = None

    @property
    def leader_count(self) -> int:
        if self.leader is None:
            return 0
        return self.counts_by_option[self.leader]


# ----------- HTTP payloads -----------

class VoteIn(BaseModel):
    option: str = Field(..., examples=["Red"])


class OptionResult(BaseModel):
    name: str
    color_value: str
    count: int
    percentage: int


class LeaderOut(BaseModel):
    name: str
    count: int


class ResultsOut(BaseModel):
    session_id: str
    has_voted: bool
    total_votes: int
    leader: Optional[LeaderOut]
    options: List[OptionResult]
