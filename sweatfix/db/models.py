from datetime import date
from typing import Optional

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

Base = declarative_base()


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True, autoincrement=True)
    google_id: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    avatar: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    progress_entries: Mapped[list["ProgressEntry"]] = relationship(
        "ProgressEntry", back_populates="user", cascade="all, delete-orphan"
    )
    daily_plans: Mapped[list["DailyPlan"]] = relationship(
        "DailyPlan", back_populates="user", cascade="all, delete-orphan"
    )


class ProgressEntry(Base):
    __tablename__ = "progress"
    __table_args__ = (Index("ix_progress_user_date", "user_id", "date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    day: Mapped[date] = mapped_column("date", Date, nullable=False)
    workout_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    calories: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    protein: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    water: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    carbs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    fats: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    user: Mapped[User] = relationship("User", back_populates="progress_entries")


class DailyPlan(Base):
    __tablename__ = "daily_plans"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_daily_plans_user_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    day: Mapped[date] = mapped_column("date", Date, nullable=False)
    workout_plan: Mapped[str] = mapped_column(Text, nullable=False, default="")
    diet_plan: Mapped[str] = mapped_column(Text, nullable=False, default="")
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    user: Mapped[User] = relationship("User", back_populates="daily_plans")
