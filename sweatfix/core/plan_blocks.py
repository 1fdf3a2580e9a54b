"""Extraction of coach-generated plan blocks from chat replies.

Coach replies may end with a fenced ``json`` block carrying ``workout_plan``
and ``diet_plan``. The scanner below walks the reply line by line:

* an opening fence is a line indented at most three spaces that starts with a
  run of at least three backticks, followed by an optional info string;
* a closing fence is a line holding only a backtick run at least as long as
  the one that opened the block;
* only fences whose info string starts with ``json`` are candidates, other
  fences are skipped whole, so a ``json`` fence nested inside them is content;
* the first closed ``json`` block wins, later ones are left in the text;
* an unclosed ``json`` fence counts as no block at all.
"""

import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional, Protocol

logger = logging.getLogger("uvicorn.error")

FENCE_CHAR = "`"
MIN_FENCE_LENGTH = 3
MAX_FENCE_INDENT = 3
PLAN_KEYS = ("workout_plan", "diet_plan")
PLAN_SUMMARY_HEADING = "### Today's Plan"
PLAN_SAVED_CONFIRMATION = "I've saved this to your Daily Plan for today."


@dataclass(frozen=True)
class FencedBlock:
    start: int
    end: int
    info: str
    content: str


@dataclass(frozen=True)
class ExtractedPlan:
    workout_plan: str
    diet_plan: str


@dataclass(frozen=True)
class ReconcileResult:
    text: str
    plan: Optional[ExtractedPlan] = None

    @property
    def plan_saved(self) -> bool:
        return self.plan is not None


class PlanWriter(Protocol):
    def upsert_plan(
        self,
        user_id: int,
        day: date,
        workout_plan: Optional[str],
        diet_plan: Optional[str],
    ) -> Any:
        ...


def _parse_fence(line: str) -> Optional[tuple[int, str]]:
    body = line.rstrip("\r\n")
    indent = len(body) - len(body.lstrip(" "))
    if indent > MAX_FENCE_INDENT:
        return None
    body = body[indent:]
    run = len(body) - len(body.lstrip(FENCE_CHAR))
    if run < MIN_FENCE_LENGTH:
        return None
    info = body[run:].strip()
    if FENCE_CHAR in info:
        return None
    return run, info


def _is_json_info(info: str) -> bool:
    words = info.split()
    return bool(words) and words[0].lower() == "json"


def find_json_block(text: str) -> Optional[FencedBlock]:
    offset = 0
    opened: Optional[tuple[int, str, int, int]] = None
    for line in text.splitlines(keepends=True):
        line_start = offset
        offset += len(line)
        fence = _parse_fence(line)
        if opened is None:
            if fence is not None:
                run, info = fence
                opened = (run, info, line_start, offset)
            continue

        open_run, open_info, block_start, content_start = opened
        if fence is None or fence[1] or fence[0] < open_run:
            continue
        if _is_json_info(open_info):
            return FencedBlock(
                start=block_start,
                end=offset,
                info=open_info,
                content=text[content_start:line_start],
            )
        opened = None
    return None


def _plan_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        items = [str(item).strip() for item in value if item is not None and str(item).strip()]
        return "\n".join(f"- {item}" for item in items)
    if isinstance(value, dict):
        return "\n".join(f"- {key}: {_plan_text(item)}" for key, item in value.items())
    return str(value).strip()


def parse_plan_block(content: str) -> Optional[ExtractedPlan]:
    try:
        payload = json.loads(content)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    workout = _plan_text(payload.get("workout_plan"))
    diet = _plan_text(payload.get("diet_plan"))
    if not workout and not diet:
        return None
    return ExtractedPlan(workout_plan=workout, diet_plan=diet)


def render_plan_summary(plan: ExtractedPlan) -> str:
    lines = [PLAN_SUMMARY_HEADING]
    if plan.workout_plan:
        lines.append(f"**Workout:**\n{plan.workout_plan}")
    if plan.diet_plan:
        lines.append(f"**Diet:**\n{plan.diet_plan}")
    return "\n\n".join(lines)


def strip_block(text: str, block: FencedBlock) -> str:
    before = text[: block.start].rstrip()
    after = text[block.end :].strip()
    return "\n\n".join(part for part in (before, after) if part)


def reconcile_reply(text: str, *, user_id: int, day: date, plan_store: PlanWriter) -> ReconcileResult:
    block = find_json_block(text)
    if block is None:
        return ReconcileResult(text=text)

    plan = parse_plan_block(block.content)
    if plan is None:
        logger.info("plan_block_ignored user_id=%s reason=unparsable_or_empty", user_id)
        return ReconcileResult(text=text)

    # Empty fields are passed as None so the store keeps what was saved before.
    plan_store.upsert_plan(
        user_id,
        day,
        plan.workout_plan or None,
        plan.diet_plan or None,
    )
    logger.info("plan_block_saved user_id=%s day=%s", user_id, day.isoformat())

    parts = [strip_block(text, block), render_plan_summary(plan), PLAN_SAVED_CONFIRMATION]
    return ReconcileResult(text="\n\n".join(part for part in parts if part), plan=plan)
