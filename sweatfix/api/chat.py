import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from sweatfix.api.auth import get_optional_user
from sweatfix.core.plan_blocks import reconcile_reply
from sweatfix.db.models import User
from sweatfix.services.llm import CHAT_HISTORY_LIMIT, CoachClient, get_coach_gateway
from sweatfix.services.stores import PlanStore, get_plan_store

router = APIRouter(prefix="/api/chat", tags=["chat"])
logger = logging.getLogger("uvicorn.error")


class ChatPart(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str = Field(max_length=20000)


class ChatTurn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    role: Literal["user", "model", "assistant"]
    parts: list[ChatPart]


class ChatRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    message: str = Field(min_length=1, max_length=4000)
    history: list[ChatTurn] = Field(default_factory=list, max_length=CHAT_HISTORY_LIMIT)
    day: Optional[date] = Field(default=None, alias="date")


class ChatResponse(BaseModel):
    text: str
    plan_saved: bool = False


@router.post("", response_model=ChatResponse)
def chat(
    payload: ChatRequest,
    user: Optional[User] = Depends(get_optional_user),
    gateway: CoachClient = Depends(get_coach_gateway),
    plan_store: PlanStore = Depends(get_plan_store),
) -> ChatResponse:
    user_id = user.id if user else None
    history = [turn.model_dump() for turn in payload.history]
    try:
        text = gateway.get_reply(payload.message, history)
    except Exception as exc:
        logger.exception("chat_unhandled_error user_id=%s detail=%s", user_id, str(exc))
        raise HTTPException(status_code=500, detail="Could not generate a coach reply")

    # Plans are only saved for a signed-in member.
    if user is None:
        return ChatResponse(text=text)

    result = reconcile_reply(
        text,
        user_id=user.id,
        day=payload.day or date.today(),
        plan_store=plan_store,
    )
    return ChatResponse(text=result.text, plan_saved=result.plan_saved)
