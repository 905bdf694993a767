"""Pydantic schemas shared across the API."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, computed_field, model_validator


class EntryType(str, Enum):
    INPUT = "input"
    OUTPUT = "output"


class InputFluid(str, Enum):
    WATER = "water"
    JUICE = "juice"
    VITAMIN_WATER = "vitamin_water"
    MILK = "milk"
    PEDIASURE = "pediasure"
    YOGURT_DRINK = "yogurt_drink"


class OutputFluid(str, Enum):
    URINE = "urine"
    POOP = "poop"
    VOMIT = "vomit"


class CheckTime(str, Enum):
    AFTERNOON = "5pm"
    EVENING = "10pm"


class LogSource(str, Enum):
    TELEGRAM = "telegram"
    CHAT = "chat"
    API = "api"
    ALEXA = "alexa"
    SEED = "seed"


# Upper bounds for a single entry; anything larger is a misread, not a measurement.
MAX_AMOUNT_ML = 5000
MAX_WEIGHT_KG = 300
MAX_GAG_COUNT = 50

FLUID_TYPE_LABELS = {
    InputFluid.WATER: "Water",
    InputFluid.JUICE: "Juice",
    InputFluid.VITAMIN_WATER: "Vitamin Water",
    InputFluid.MILK: "Milk",
    InputFluid.PEDIASURE: "PediaSure",
    InputFluid.YOGURT_DRINK: "Yogurt Drink",
    OutputFluid.URINE: "Urine",
    OutputFluid.POOP: "Poop",
    OutputFluid.VOMIT: "Vomit",
}


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------


class FluidLogEntry(BaseModel):
    id: Optional[int] = None
    timestamp: datetime
    day_key: str
    entry_type: EntryType
    fluid_type: str
    amount_ml: Optional[float] = None
    notes: Optional[str] = None
    source: LogSource = LogSource.TELEGRAM

    @model_validator(mode="after")
    def _check_amount(self) -> "FluidLogEntry":
        allowed = InputFluid if self.entry_type == EntryType.INPUT else OutputFluid
        if self.fluid_type not in {member.value for member in allowed}:
            raise ValueError(f"{self.fluid_type!r} is not a valid {self.entry_type.value} type")
        if self.amount_ml is None:
            if self.fluid_type != OutputFluid.POOP.value:
                raise ValueError(f"amount_ml is required for {self.fluid_type}")
        elif self.amount_ml <= 0:
            raise ValueError("amount_ml must be positive")
        return self


class WellnessCheck(BaseModel):
    id: Optional[int] = None
    timestamp: datetime
    day_key: str
    check_time: CheckTime = CheckTime.AFTERNOON
    appetite: Optional[int] = Field(default=None, ge=1, le=10)
    energy: Optional[int] = Field(default=None, ge=1, le=10)
    mood: Optional[int] = Field(default=None, ge=1, le=10)
    cyanosis: Optional[int] = Field(default=None, ge=1, le=10)


class GagEvent(BaseModel):
    id: Optional[int] = None
    timestamp: datetime
    day_key: str


class WeightEntry(BaseModel):
    id: Optional[int] = None
    date: str
    weight_kg: float = Field(gt=0)
    logged_at: datetime
    notes: Optional[str] = None


# ---------------------------------------------------------------------------
# Parsed actions
# ---------------------------------------------------------------------------


class InputAction(BaseModel):
    type: Literal["input"] = "input"
    fluid_type: InputFluid
    amount_ml: float = Field(gt=0, le=MAX_AMOUNT_ML)


class OutputAction(BaseModel):
    type: Literal["output"] = "output"
    fluid_type: OutputFluid
    amount_ml: Optional[float] = Field(default=None, gt=0, le=MAX_AMOUNT_ML)

    @model_validator(mode="after")
    def _poop_only_without_amount(self) -> "OutputAction":
        if self.amount_ml is None and self.fluid_type != OutputFluid.POOP:
            raise ValueError(f"amount_ml is required for {self.fluid_type.value}")
        return self


class WellnessAction(BaseModel):
    type: Literal["wellness"] = "wellness"
    check_time: CheckTime = CheckTime.AFTERNOON
    appetite: Optional[int] = Field(default=None, ge=1, le=10)
    energy: Optional[int] = Field(default=None, ge=1, le=10)
    mood: Optional[int] = Field(default=None, ge=1, le=10)
    cyanosis: Optional[int] = Field(default=None, ge=1, le=10)


class GagAction(BaseModel):
    type: Literal["gag"] = "gag"
    count: int = Field(default=1, ge=1, le=MAX_GAG_COUNT)


class WeightAction(BaseModel):
    type: Literal["weight"] = "weight"
    weight_kg: float = Field(gt=0, le=MAX_WEIGHT_KG)
    notes: Optional[str] = None


ParsedAction = Annotated[
    Union[InputAction, OutputAction, WellnessAction, GagAction, WeightAction],
    Field(discriminator="type"),
]


class RejectedAction(BaseModel):
    index: int
    kind: Optional[str] = None
    reason: str


class ParseResult(BaseModel):
    actions: List[ParsedAction] = Field(default_factory=list)
    date_offset: Literal[-1, 0] = 0
    unparseable: bool = True
    raw_message: str = ""
    rejected: List[RejectedAction] = Field(default_factory=list)
    reported_unparseable: Optional[bool] = Field(
        default=None,
        description="What the completion service claimed; informational only.",
    )


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


class DaySummary(BaseModel):
    day_key: str
    total_intake: float = 0.0
    intake_by_type: Dict[str, float] = Field(default_factory=dict)
    inputs: List[FluidLogEntry] = Field(default_factory=list)
    outputs: List[FluidLogEntry] = Field(default_factory=list)
    wellness: List[WellnessCheck] = Field(default_factory=list)
    gags: List[GagEvent] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def gag_count(self) -> int:
        return len(self.gags)

    @computed_field  # type: ignore[misc]
    @property
    def total_output_ml(self) -> float:
        return sum(entry.amount_ml or 0 for entry in self.outputs)


class IntakeBand(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    OVER = "over"


class IntakeStatus(BaseModel):
    total_ml: float
    limit_ml: int
    percent: int
    band: IntakeBand
    over_limit: bool
    over_by_ml: float = 0.0


class WellnessSnapshot(BaseModel):
    check_time: CheckTime
    appetite: Optional[int] = None
    energy: Optional[int] = None
    mood: Optional[int] = None
    cyanosis: Optional[int] = None


class HistoryDay(BaseModel):
    day_key: str
    label: str
    is_today: bool
    intake: IntakeStatus
    intake_by_type: Dict[str, float] = Field(default_factory=dict)
    inputs: List[FluidLogEntry] = Field(default_factory=list)
    outputs: List[FluidLogEntry] = Field(default_factory=list)
    gag_count: int = 0
    afternoon: Optional[WellnessSnapshot] = None
    evening: Optional[WellnessSnapshot] = None


class PersistFailure(BaseModel):
    index: int
    kind: str
    reason: str


class ApplyResult(BaseModel):
    day_key: str
    summary: DaySummary
    status: IntakeStatus
    persisted: List[List[int]] = Field(
        default_factory=list,
        description="Store ids written for each action, in input order.",
    )
    failures: List[PersistFailure] = Field(default_factory=list)


class UndoResult(BaseModel):
    removed: FluidLogEntry
    summary: DaySummary
    status: IntakeStatus


# ---------------------------------------------------------------------------
# HTTP payloads
# ---------------------------------------------------------------------------


class ChatRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Freeform caregiver input")
    date: Optional[str] = Field(
        default=None, description="Explicit day key (today or yesterday only)."
    )
    source: LogSource = Field(default=LogSource.CHAT)


class ChatResponse(BaseModel):
    ok: bool
    status: Literal["logged", "unparseable"]
    message: str
    warning: Optional[str] = None
    actions: List[ParsedAction] = Field(default_factory=list)
    rejected: List[RejectedAction] = Field(default_factory=list)
    day_key: Optional[str] = None
    summary: Optional[DaySummary] = None
    intake: Optional[IntakeStatus] = None
    failures: List[PersistFailure] = Field(default_factory=list)


class LogRequest(BaseModel):
    action: ParsedAction
    date: Optional[str] = None
    notes: Optional[str] = None


class TodayResponse(BaseModel):
    day_key: str
    intake: IntakeStatus
    summary: DaySummary
