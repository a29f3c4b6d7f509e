import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app import config
from app.database import get_db
from app.exceptions import InsufficientDataError, InvalidInputError
from app.features import parse_slot_date
from app.graphql_schema import graphql_app
from app.insights import health_insights
from app.models import Appointment, Doctor
from app.noshow import NoShowService, analyze_patterns_by_time_slot
from app.queries import booked_slot_times, patient_history
from app.schemas import (
    ApiResponse,
    AppointmentRecord,
    DoctorOut,
    HealthInsights,
    HealthInsightsRequest,
    ModelStats,
    NoShowPrediction,
    PredictNoShowRequest,
    RecommendDoctorsRequest,
    RetrainData,
    TimeSlotOut,
)
from app.slots import score_available_slots
from app.symptoms import extract_keywords, rank_doctors

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    service = NoShowService()
    service.bootstrap()
    app.state.noshow = service
    logger.info("No-show service ready (model trained: %s)", service.model.is_trained)
    yield


app = FastAPI(
    title="Medibook",
    description="Appointment intelligence: doctor matching, slot ranking and no-show risk",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(graphql_app, prefix="/graphql")


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    return JSONResponse(status_code=422, content={"success": False, "message": str(exc)})


def get_noshow_service(request: Request) -> NoShowService:
    return request.app.state.noshow


def _doctor_dict(doctor: Doctor) -> dict:
    return {
        "id": doctor.id,
        "name": doctor.name,
        "speciality": doctor.speciality,
        "degree": doctor.degree,
        "experience": doctor.experience,
        "about": doctor.about,
        "rating": doctor.rating or 0.0,
        "fees": doctor.fees,
        "available": bool(doctor.available),
        "keywords": doctor.keywords or [],
    }


@app.post("/ai/recommend-doctors", response_model=ApiResponse[list[DoctorOut]])
def recommend_doctors(req: RecommendDoctorsRequest, db: Session = Depends(get_db)):
    keywords = extract_keywords(req.symptoms)
    doctors = (
        db.query(Doctor)
        .filter(Doctor.available.is_(True))
        .order_by(Doctor.rating.desc())
        .all()
    )
    ranked = rank_doctors([_doctor_dict(d) for d in doctors], keywords, limit=req.limit)
    return ApiResponse(
        message="Doctors recommended successfully",
        data=[DoctorOut(**d) for d in ranked],
    )


@app.get("/ai/optimal-slots", response_model=ApiResponse[list[TimeSlotOut]])
def optimal_slots(
    doctor_id: str = Query(..., alias="doctorId", min_length=1),
    date: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    if parse_slot_date(date) is None:
        raise InvalidInputError(f"Unrecognised date: {date!r}")
    slots = score_available_slots(booked_slot_times(db, doctor_id, date), date)
    return ApiResponse(
        message="Optimal slots retrieved successfully",
        data=[TimeSlotOut.model_validate(s) for s in slots],
    )


@app.post("/ai/predict-no-show", response_model=ApiResponse[NoShowPrediction])
def predict_no_show(
    req: PredictNoShowRequest,
    db: Session = Depends(get_db),
    service: NoShowService = Depends(get_noshow_service),
):
    history = patient_history(db, req.patient_id)
    prediction = service.predict(history, req.doctor_id, req.slot_date, req.slot_time)
    return ApiResponse(
        message="No-show prediction generated using ML model",
        data=NoShowPrediction(**prediction),
    )


@app.get("/ai/model-stats", response_model=ApiResponse[ModelStats])
def model_stats(service: NoShowService = Depends(get_noshow_service)):
    return ApiResponse(message="Model statistics retrieved", data=ModelStats(**service.model_stats()))


@app.post("/ai/retrain-model", response_model=ApiResponse[RetrainData])
def retrain_model(
    db: Session = Depends(get_db),
    service: NoShowService = Depends(get_noshow_service),
):
    records = [AppointmentRecord.model_validate(a) for a in db.query(Appointment).all()]
    try:
        result = service.retrain(records)
    except InsufficientDataError as e:
        return ApiResponse(
            success=False,
            message=str(e),
            data=RetrainData(appointments_used=e.count),
        )
    return ApiResponse(
        success=result.success,
        message=result.message,
        data=RetrainData(appointments_used=result.appointments_used),
    )


@app.post("/ai/health-insights", response_model=ApiResponse[HealthInsights])
def get_health_insights(req: HealthInsightsRequest):
    return ApiResponse(
        message="Health insights generated",
        data=HealthInsights(**health_insights(req.symptoms)),
    )


@app.get("/ai/slot-patterns", response_model=ApiResponse[dict[str, float]])
def slot_patterns(
    doctor_id: Optional[str] = Query(None, alias="doctorId"),
    db: Session = Depends(get_db),
):
    query = db.query(Appointment)
    if doctor_id:
        query = query.filter(Appointment.doctor_id == doctor_id)
    records = [AppointmentRecord.model_validate(a) for a in query.all()]
    return ApiResponse(
        message="No-show rates by slot time",
        data=analyze_patterns_by_time_slot(records),
    )


@app.get("/health")
def health(service: NoShowService = Depends(get_noshow_service)):
    return {"status": "ok", "model_trained": service.model.is_trained}
