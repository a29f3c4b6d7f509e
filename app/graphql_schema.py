from typing import Optional

import strawberry
from fastapi import Depends, Request
from sqlalchemy.orm import Session
from strawberry.fastapi import GraphQLRouter
from strawberry.types import Info

from app.database import get_db
from app.exceptions import InvalidInputError
from app.features import parse_slot_date
from app.insights import health_insights
from app.queries import booked_slot_times, patient_history
from app.slots import score_available_slots


def get_context(request: Request, db: Session = Depends(get_db)):
    return {"request": request, "db": db}


def _service(info: Info):
    return info.context["request"].app.state.noshow


@strawberry.type
class FeatureWeight:
    name: str
    value: float


@strawberry.type
class PredictionResult:
    probability: float
    risk_level: str
    factors: list[str]
    recommendations: list[str]
    feature_importance: list[FeatureWeight]
    model_confidence: float
    source: str


@strawberry.type
class TimeSlotType:
    time: str
    score: int
    label: str


@strawberry.type
class HealthInsightType:
    extracted_keywords: list[str]
    suggested_specialities: list[str]
    severity: str
    recommendation: str


@strawberry.type
class ModelStatsType:
    is_trained: bool
    feature_count: int
    feature_names: list[str]


@strawberry.type
class HealthResult:
    status: str
    model_trained: bool


@strawberry.input
class PredictInput:
    patient_id: str
    doctor_id: str
    slot_date: Optional[str] = None
    slot_time: Optional[str] = None


@strawberry.type
class Query:
    @strawberry.field
    def health(self, info: Info) -> HealthResult:
        return HealthResult(status="ok", model_trained=_service(info).model.is_trained)

    @strawberry.field
    def model_stats(self, info: Info) -> ModelStatsType:
        return ModelStatsType(**_service(info).model_stats())

    @strawberry.field
    def health_insights(self, symptoms: str) -> HealthInsightType:
        return HealthInsightType(**health_insights(symptoms))

    @strawberry.field
    def optimal_slots(self, info: Info, doctor_id: str, date: str) -> list[TimeSlotType]:
        if parse_slot_date(date) is None:
            raise ValueError(f"Unrecognised date: {date!r}")
        db: Session = info.context["db"]
        slots = score_available_slots(booked_slot_times(db, doctor_id, date), date)
        return [TimeSlotType(time=s.time, score=s.score, label=s.label) for s in slots]


@strawberry.type
class Mutation:
    @strawberry.mutation
    def predict_no_show(self, info: Info, input: PredictInput) -> PredictionResult:
        history = patient_history(info.context["db"], input.patient_id)

        try:
            prediction = _service(info).predict(
                history, input.doctor_id, input.slot_date, input.slot_time
            )
        except InvalidInputError as e:
            raise ValueError(str(e)) from e

        importance = prediction.pop("feature_importance")
        return PredictionResult(
            **prediction,
            feature_importance=[FeatureWeight(name=k, value=v) for k, v in importance.items()],
        )


schema = strawberry.Schema(query=Query, mutation=Mutation)
graphql_app = GraphQLRouter(schema, context_getter=get_context)
