"""HTTP client that drives the member dashboard.

It mirrors what the browser dashboard does: resolve the signed-in member, load
their recent progress and plans, then post actions and refresh whatever the
server changed. Any ``httpx.Client`` pointed at the API works, including
FastAPI's ``TestClient``.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Optional

import httpx

from sweatfix.services.llm import CHAT_HISTORY_LIMIT

WELCOME_MESSAGE = "Welcome to Sweat Fix. How can I assist with your fitness goals or macros today?"
DEFAULT_WORKOUT_LABEL = "Workout"
FALLBACK_REPLY = "I am here to help!"


@dataclass
class ChatMessage:
    role: str
    content: str


def _welcome() -> list[ChatMessage]:
    return [ChatMessage(role="model", content=WELCOME_MESSAGE)]


@dataclass
class DashboardState:
    user: Optional[dict[str, Any]] = None
    progress: list[dict[str, Any]] = field(default_factory=list)
    plans: list[dict[str, Any]] = field(default_factory=list)
    messages: list[ChatMessage] = field(default_factory=_welcome)


class DashboardClientError(RuntimeError):
    def __init__(self, status_code: int, detail: Any):
        super().__init__(f"Dashboard request failed (status={status_code}): {detail}")
        self.status_code = status_code
        self.detail = detail


class DashboardClient:
    def __init__(self, http: httpx.Client, today: Callable[[], date] = date.today) -> None:
        self.http = http
        self.today = today
        self.state = DashboardState()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self.http.request(method, path, **kwargs)
        if response.is_error:
            try:
                detail = response.json().get("detail")
            except ValueError:
                detail = response.text
            raise DashboardClientError(response.status_code, detail)
        return response.json()

    def _today_label(self) -> str:
        return self.today().isoformat()

    # Loading

    def load(self) -> DashboardState:
        user = self.fetch_user()
        if user:
            self.fetch_progress()
            self.fetch_plans()
        else:
            self.state.progress = []
            self.state.plans = []
        return self.state

    def fetch_user(self) -> Optional[dict[str, Any]]:
        self.state.user = self._request("GET", "/api/me")
        return self.state.user

    def fetch_progress(self) -> list[dict[str, Any]]:
        self.state.progress = self._request("GET", "/api/progress")
        return self.state.progress

    def fetch_plans(self) -> list[dict[str, Any]]:
        self.state.plans = self._request("GET", "/api/plans")
        return self.state.plans

    def progress_chart(self) -> list[dict[str, Any]]:
        """Progress points oldest first, with the display label filled in."""
        points = []
        for entry in reversed(self.state.progress):
            point = dict(entry)
            point["workout_name"] = entry.get("workout_name") or DEFAULT_WORKOUT_LABEL
            points.append(point)
        return points

    def today_plan(self) -> Optional[dict[str, Any]]:
        today = self._today_label()
        return next((plan for plan in self.state.plans if plan.get("date") == today), None)

    # Session

    def login_demo(self) -> DashboardState:
        self._request("POST", "/api/auth/demo")
        return self.load()

    def logout(self) -> None:
        self._request("GET", "/api/logout")
        self.http.cookies.clear()
        self.state = DashboardState()

    def edit_profile(self, name: str) -> Optional[dict[str, Any]]:
        if not name.strip():
            return self.state.user
        self.state.user = self._request("PUT", "/api/user", json={"name": name})
        return self.state.user

    # Actions

    def log_progress(
        self,
        workout_name: Optional[str] = None,
        calories: Optional[int] = None,
        protein: Optional[int] = None,
        carbs: Optional[int] = None,
        fats: Optional[int] = None,
        water: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        payload = {
            "date": self._today_label(),
            "workout_name": workout_name,
            "calories": calories or 0,
            "protein": protein or 0,
            "carbs": carbs or 0,
            "fats": fats or 0,
            "water": water or 0,
        }
        self._request("POST", "/api/progress", json=payload)
        return self.fetch_progress()

    def save_plan(self, workout_plan: Optional[str] = None, diet_plan: Optional[str] = None) -> dict[str, Any]:
        payload = {"date": self._today_label(), "workout_plan": workout_plan, "diet_plan": diet_plan}
        plan = self._request("POST", "/api/plans", json=payload)
        self.fetch_plans()
        return plan

    def toggle_plan(self, plan_id: int) -> list[dict[str, Any]]:
        current = next((plan for plan in self.state.plans if plan.get("id") == plan_id), None)
        completed = not bool(current and current.get("completed"))
        self._request("PUT", f"/api/plans/{plan_id}/complete", json={"completed": completed})
        return self.fetch_plans()

    def send_chat(self, message: str) -> Optional[str]:
        if not message.strip():
            return None
        history = [
            {"role": "user" if m.role == "user" else "model", "parts": [{"text": m.content}]}
            for m in self.state.messages[-CHAT_HISTORY_LIMIT:]
        ]
        body = self._request(
            "POST",
            "/api/chat",
            json={"message": message, "history": history, "date": self._today_label()},
        )
        reply = body.get("text") or FALLBACK_REPLY
        # Only recorded after the server answered.
        self.state.messages.append(ChatMessage(role="user", content=message))
        self.state.messages.append(ChatMessage(role="model", content=reply))
        if body.get("plan_saved"):
            self.fetch_plans()
        return reply
