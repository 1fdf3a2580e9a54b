from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, StrictBool

from sweatfix.api.auth import get_current_user
from sweatfix.db.models import DailyPlan, User
from sweatfix.services.stores import PLAN_RETENTION_LIMIT, PlanStore, get_plan_store

router = APIRouter(prefix="/api/plans", tags=["plans"])


class PlanUpsertRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    day: Optional[date] = Field(default=None, alias="date")
    workout_plan: Optional[str] = Field(default=None, max_length=8000)
    diet_plan: Optional[str] = Field(default=None, max_length=8000)


class PlanCompletionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    completed: StrictBool


class PlanItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    day: date = Field(alias="date")
    workout_plan: str
    diet_plan: str
    completed: bool


class SuccessResponse(BaseModel):
    success: bool = True


def _to_item(row: DailyPlan) -> PlanItem:
    return PlanItem(
        id=row.id,
        day=row.day,
        workout_plan=row.workout_plan,
        diet_plan=row.diet_plan,
        completed=bool(row.completed),
    )


@router.get("", response_model=list[PlanItem])
def list_plans(
    user: User = Depends(get_current_user),
    store: PlanStore = Depends(get_plan_store),
) -> list[PlanItem]:
    return [_to_item(row) for row in store.list_recent(user.id, limit=PLAN_RETENTION_LIMIT)]


@router.post("", response_model=PlanItem)
def upsert_plan(
    payload: PlanUpsertRequest,
    user: User = Depends(get_current_user),
    store: PlanStore = Depends(get_plan_store),
) -> PlanItem:
    row = store.upsert_plan(
        user.id,
        payload.day or date.today(),
        payload.workout_plan,
        payload.diet_plan,
    )
    return _to_item(row)


@router.put("/{plan_id}/complete", response_model=SuccessResponse)
def set_plan_completion(
    plan_id: int,
    payload: PlanCompletionRequest,
    user: User = Depends(get_current_user),
    store: PlanStore = Depends(get_plan_store),
) -> SuccessResponse:
    store.set_completion(user.id, plan_id, payload.completed)
    return SuccessResponse()
