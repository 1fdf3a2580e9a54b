import logging
from datetime import date
from typing import Optional

from fastapi import Depends
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sweatfix.db.models import DailyPlan, ProgressEntry
from sweatfix.db.session import get_db

logger = logging.getLogger("uvicorn.error")

PROGRESS_SUMMARY_LIMIT = 7
PLAN_RETENTION_LIMIT = 14
PROGRESS_NUMERIC_FIELDS = ("calories", "protein", "water", "carbs", "fats")


class StoreError(RuntimeError):
    """A persistence fault; the request may be retried."""

    def __init__(self, operation: str, user_id: Optional[int], message: str):
        super().__init__(message)
        self.operation = operation
        self.user_id = user_id
        self.retryable = True


class PlanStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _find(self, user_id: int, day: date) -> Optional[DailyPlan]:
        return self.db.query(DailyPlan).filter(DailyPlan.user_id == user_id, DailyPlan.day == day).first()

    def _apply_text(self, row: DailyPlan, workout_plan: Optional[str], diet_plan: Optional[str]) -> None:
        if workout_plan is not None:
            row.workout_plan = workout_plan
        if diet_plan is not None:
            row.diet_plan = diet_plan

    def upsert_plan(
        self,
        user_id: int,
        day: date,
        workout_plan: Optional[str],
        diet_plan: Optional[str],
    ) -> DailyPlan:
        """Insert or update the plan for ``(user_id, day)``.

        ``None`` leaves the stored text untouched (or ``""`` on insert). The
        completion flag is never changed here.
        """
        try:
            row = self._find(user_id, day)
            if not row:
                row = DailyPlan(
                    user_id=user_id,
                    day=day,
                    workout_plan=workout_plan or "",
                    diet_plan=diet_plan or "",
                    completed=False,
                )
                self.db.add(row)
            else:
                self._apply_text(row, workout_plan, diet_plan)
            try:
                self.db.commit()
            except IntegrityError:
                # Another request inserted the same day first; update that row instead.
                self.db.rollback()
                row = self._find(user_id, day)
                if row is None:
                    raise
                self._apply_text(row, workout_plan, diet_plan)
                self.db.commit()
            self.db.refresh(row)
            return row
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("plan_upsert_failed user_id=%s day=%s", user_id, day)
            raise StoreError("upsert_plan", user_id, "Could not save plan") from exc

    def set_completion(self, user_id: int, plan_id: int, completed: bool) -> None:
        try:
            row = (
                self.db.query(DailyPlan)
                .filter(DailyPlan.id == plan_id, DailyPlan.user_id == user_id)
                .first()
            )
            # Plans owned by someone else look exactly like a successful toggle.
            if not row:
                return
            row.completed = completed
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("plan_completion_failed user_id=%s plan_id=%s", user_id, plan_id)
            raise StoreError("set_completion", user_id, "Could not update plan") from exc

    def list_recent(self, user_id: int, limit: int = PLAN_RETENTION_LIMIT) -> list[DailyPlan]:
        try:
            return (
                self.db.query(DailyPlan)
                .filter(DailyPlan.user_id == user_id)
                .order_by(DailyPlan.day.desc(), DailyPlan.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as exc:
            logger.exception("plan_list_failed user_id=%s", user_id)
            raise StoreError("list_plans", user_id, "Could not load plans") from exc


class ProgressStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def append(
        self,
        user_id: int,
        day: date,
        workout_name: Optional[str] = None,
        **metrics: Optional[int],
    ) -> ProgressEntry:
        unknown = set(metrics) - set(PROGRESS_NUMERIC_FIELDS)
        if unknown:
            raise ValueError(f"Unknown progress fields: {', '.join(sorted(unknown))}")
        values = {field: int(metrics.get(field) or 0) for field in PROGRESS_NUMERIC_FIELDS}
        row = ProgressEntry(user_id=user_id, day=day, workout_name=workout_name, **values)
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("progress_append_failed user_id=%s day=%s", user_id, day)
            raise StoreError("append_progress", user_id, "Could not save progress") from exc

    def list_recent(self, user_id: int, limit: int = PROGRESS_SUMMARY_LIMIT) -> list[ProgressEntry]:
        try:
            return (
                self.db.query(ProgressEntry)
                .filter(ProgressEntry.user_id == user_id)
                .order_by(ProgressEntry.day.desc(), ProgressEntry.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as exc:
            logger.exception("progress_list_failed user_id=%s", user_id)
            raise StoreError("list_progress", user_id, "Could not load progress") from exc


def get_plan_store(db: Session = Depends(get_db)) -> PlanStore:
    return PlanStore(db)


def get_progress_store(db: Session = Depends(get_db)) -> ProgressStore:
    return ProgressStore(db)
