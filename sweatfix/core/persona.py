import random
import re
from typing import Optional

SYSTEM_INSTRUCTION = (
    "You are a premium AI fitness coach for 'Sweat Fix Gym'. Your tone is motivating, professional, and expert. "
    "ALWAYS format your responses as concise, scannable bullet points. Avoid long paragraphs.\n"
    "Before you create any workout or diet plan you MUST know the member's current weight and height, "
    "their goal (for example cut, bulk, or maintain), any dietary restrictions, and the equipment they "
    "have access to (gym, home, or none). If any of these are missing, ask for them and do not produce a plan.\n"
    "When you have those details and you are giving a plan, end your reply with a fenced code block tagged "
    "json containing exactly two keys, \"workout_plan\" and \"diet_plan\", each a short plain-text summary. "
    "Example:\n"
    "```json\n"
    "{\"workout_plan\": \"Push day: bench press 4x8, overhead press 3x10\", "
    "\"diet_plan\": \"2,200 kcal, 180g protein, oats and eggs for breakfast\"}\n"
    "```\n"
    "Never include that block when you are only asking questions."
)

SIMULATED_NOTICE = "_(Simulated coach reply: the AI coach is offline right now, so this is a preset response.)_"

ONBOARDING_SIGNAL_PATTERNS = [
    "lbs",
    "lb",
    "kg",
    "pounds",
    "cm",
    "ft",
    "feet",
    "inches",
    "weight",
    "height",
    "goal",
    "gym",
    "home",
    "equipment",
    "dumbbell",
    "cut",
    "bulk",
    "lose",
    "gain",
    "muscle",
    "vegan",
    "vegetarian",
    "keto",
]

ONBOARDING_REQUEST_REPLY = (
    f"{SIMULATED_NOTICE}\n\n"
    "Let's build your plan! First I need a few details:\n"
    "- **Weight & height** (e.g. 170 lbs, 5'10\")\n"
    "- **Goal** (cut, bulk, or maintain)\n"
    "- **Dietary restrictions** (vegetarian, allergies, none)\n"
    "- **Equipment** (full gym, home dumbbells, or bodyweight only)"
)

CANNED_PLAN_REPLIES = [
    f"{SIMULATED_NOTICE}\n\n"
    "Here's a lean-out day built around your details:\n"
    "- Full-body strength circuit, 45 minutes\n"
    "- 10-minute incline walk finisher\n"
    "- High-protein meals, moderate carbs around training\n"
    "```json\n"
    '{"workout_plan": "Full-body circuit: goblet squats 4x12, push-ups 4x15, dumbbell rows 4x12, '
    'plank 3x45s, then 10 min incline walk", '
    '"diet_plan": "1,900 kcal: Greek yogurt and berries, chicken rice bowl, salmon with greens, '
    'protein shake post-workout"}\n'
    "```",
    f"{SIMULATED_NOTICE}\n\n"
    "Strength focus for today:\n"
    "- Heavy compound lifts, long rest between sets\n"
    "- Eat in a small surplus to fuel recovery\n"
    "- Hit at least 3 litres of water\n"
    "```json\n"
    '{"workout_plan": "Lower body: back squat 5x5, Romanian deadlift 4x8, walking lunges 3x12, '
    'calf raises 4x15", '
    '"diet_plan": "2,800 kcal: oats with peanut butter, turkey wraps, beef and potatoes, '
    'cottage cheese before bed"}\n'
    "```",
    f"{SIMULATED_NOTICE}\n\n"
    "Conditioning day to keep momentum:\n"
    "- Intervals to push your engine\n"
    "- Core work to finish\n"
    "- Balanced plate at every meal\n"
    "```json\n"
    '{"workout_plan": "Intervals: 8 rounds of 40s bike sprint / 80s easy, then hanging knee raises 3x12 '
    'and side planks 3x30s", '
    '"diet_plan": "2,200 kcal: egg scramble with spinach, lentil and quinoa salad, tofu stir-fry, '
    'fruit and almonds as snacks"}\n'
    "```",
]

_SIGNAL_RE = re.compile(
    r"\b(" + "|".join(re.escape(pattern) for pattern in ONBOARDING_SIGNAL_PATTERNS) + r")\b",
    re.IGNORECASE,
)
_UNIT_SUFFIX_RE = re.compile(r"\d\s*(lbs?|kg|cm|ft)\b", re.IGNORECASE)


def has_onboarding_signals(message: str) -> bool:
    if not message:
        return False
    return bool(_SIGNAL_RE.search(message) or _UNIT_SUFFIX_RE.search(message))


def simulated_reply(message: str, rng: Optional[random.Random] = None) -> str:
    if not has_onboarding_signals(message):
        return ONBOARDING_REQUEST_REPLY
    chooser = rng or random
    return chooser.choice(CANNED_PLAN_REPLIES)
