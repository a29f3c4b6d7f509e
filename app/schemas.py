from typing import Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")

RiskLevel = Literal["low", "medium", "high"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AppointmentRecord(BaseModel):
    """Read-only view of one booked appointment, as the predictor sees it."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    patient_id: Optional[str] = None
    doctor_id: str
    slot_date: str
    slot_time: str
    cancelled: bool = False
    is_completed: bool = False
    payment: bool = False
    amount: Optional[float] = None

    # nullable boolean columns come back as None
    @field_validator("cancelled", "is_completed", "payment", mode="before")
    @classmethod
    def _none_is_false(cls, v):
        return bool(v) if v is not None else False


# -- requests --

class RecommendDoctorsRequest(CamelModel):
    symptoms: str = Field(..., min_length=1)
    limit: int = Field(5, ge=1, le=20)


class PredictNoShowRequest(CamelModel):
    patient_id: str = Field(..., min_length=1)
    doctor_id: str = Field(..., min_length=1)
    slot_date: Optional[str] = None
    slot_time: Optional[str] = None


class HealthInsightsRequest(CamelModel):
    symptoms: str = Field(..., min_length=1)


# -- responses --

class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: Optional[T] = None


class NoShowPrediction(CamelModel):
    probability: float
    risk_level: RiskLevel
    factors: list[str]
    recommendations: list[str]
    feature_importance: dict[str, float]
    model_confidence: float
    source: Literal["model", "fallback"]


class TimeSlotOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    time: str
    score: int
    label: str


class DoctorOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    name: str
    speciality: str
    degree: Optional[str] = None
    experience: Optional[str] = None
    about: Optional[str] = None
    rating: float = 0.0
    fees: Optional[float] = None
    available: bool = True
    keywords: list[str] = Field(default_factory=list)
    match_score: float = 0.0


class HealthInsights(CamelModel):
    extracted_keywords: list[str]
    suggested_specialities: list[str]
    severity: RiskLevel
    recommendation: str


class ModelStats(CamelModel):
    is_trained: bool
    feature_count: int
    feature_names: list[str]


class RetrainData(CamelModel):
    appointments_used: int
