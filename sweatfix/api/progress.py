from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from sweatfix.api.auth import get_current_user
from sweatfix.db.models import ProgressEntry, User
from sweatfix.services.stores import PROGRESS_SUMMARY_LIMIT, ProgressStore, get_progress_store

router = APIRouter(prefix="/api/progress", tags=["progress"])


class ProgressCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    day: Optional[date] = Field(default=None, alias="date")
    workout_name: Optional[str] = Field(default=None, max_length=255)
    calories: Optional[int] = Field(default=None, ge=0)
    protein: Optional[int] = Field(default=None, ge=0)
    water: Optional[int] = Field(default=None, ge=0)
    carbs: Optional[int] = Field(default=None, ge=0)
    fats: Optional[int] = Field(default=None, ge=0)


class ProgressItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    day: date = Field(alias="date")
    workout_name: Optional[str] = None
    calories: int
    protein: int
    water: int
    carbs: int
    fats: int


class SuccessResponse(BaseModel):
    success: bool = True


def _to_item(row: ProgressEntry) -> ProgressItem:
    return ProgressItem(
        id=row.id,
        day=row.day,
        workout_name=row.workout_name,
        calories=row.calories,
        protein=row.protein,
        water=row.water,
        carbs=row.carbs,
        fats=row.fats,
    )


@router.get("", response_model=list[ProgressItem])
def list_progress(
    user: User = Depends(get_current_user),
    store: ProgressStore = Depends(get_progress_store),
) -> list[ProgressItem]:
    return [_to_item(row) for row in store.list_recent(user.id, limit=PROGRESS_SUMMARY_LIMIT)]


@router.post("", response_model=SuccessResponse)
def create_progress(
    payload: ProgressCreateRequest,
    user: User = Depends(get_current_user),
    store: ProgressStore = Depends(get_progress_store),
) -> SuccessResponse:
    workout_name = (payload.workout_name or "").strip() or None
    store.append(
        user.id,
        payload.day or date.today(),
        workout_name=workout_name,
        calories=payload.calories,
        protein=payload.protein,
        water=payload.water,
        carbs=payload.carbs,
        fats=payload.fats,
    )
    return SuccessResponse()
