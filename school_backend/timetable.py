"""Calendar helpers shared by the student, parent, teacher and staff views.

The school runs a fixed bell schedule; lesson start times are matched to a
slot by their minute of the day, with a few minutes of tolerance either side.
"""

import math
from datetime import datetime, timedelta

# (first minute, last minute, slot start, slot end)
BELL_SCHEDULE = [
    (440, 520, "08:00", "08:45"),
    (521, 580, "08:55", "09:40"),
    (581, 640, "09:50", "10:35"),
    (641, 700, "10:50", "11:35"),
    (701, 755, "11:45", "12:30"),
    (756, 810, "12:40", "13:25"),
    (811, 865, "13:35", "14:20"),
    (866, 920, "14:30", "15:15"),
    (921, 980, "15:25", "16:10"),
]

POLISH_DAYS = [
    "Poniedziałek",
    "Wtorek",
    "Środa",
    "Czwartek",
    "Piątek",
    "Sobota",
    "Niedziela",
]

ENGLISH_DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def school_year_start(now: datetime | None = None) -> datetime:
    """Return 1 September 00:00 of the school year ``now`` falls into."""
    now = now or datetime.now()
    start_year = now.year if now.month >= 9 else now.year - 1
    return datetime(start_year, 9, 1)


def format_hhmm(value: datetime) -> str:
    return value.strftime("%H:%M")


def find_slot(time_str: str) -> tuple[str, str] | None:
    if not time_str:
        return None
    hours, minutes = (int(part) for part in time_str.split(":")[:2])
    total = hours * 60 + minutes
    for first, last, start, end in BELL_SCHEDULE:
        if first <= total <= last:
            return start, end
    return None


def _unpadded(hhmm: str) -> str:
    return hhmm[1:] if hhmm.startswith("0") else hhmm


def slot_label(time_str: str) -> str:
    """Student-facing label such as ``"8:00 - 8:45"``."""
    if not time_str:
        return "Brak czasu"
    slot = find_slot(time_str)
    if slot is None:
        return f"Lekcja poza planem ({time_str})"
    return f"{_unpadded(slot[0])} - {_unpadded(slot[1])}"


def slot_bounds(time_str: str) -> dict[str, str]:
    """Staff-facing ``{"start", "end"}`` pair; lessons off the plan keep their own start."""
    if not time_str:
        return {"start": "", "end": ""}
    slot = find_slot(time_str)
    if slot is None:
        return {"start": time_str, "end": ""}
    return {"start": slot[0], "end": slot[1]}


def polish_day(value: datetime) -> str:
    return POLISH_DAYS[value.weekday()]


def english_day(value: datetime) -> str:
    return ENGLISH_DAYS[value.weekday()]


def relative_day(value: datetime, today: datetime | None = None) -> str:
    today = (today or datetime.now()).date()
    if value.date() == today:
        return "Dzisiaj"
    if value.date() == today + timedelta(days=1):
        return "Jutro"
    return polish_day(value).lower()


def span_label(start: datetime, duration_min: int) -> str:
    return f"{format_hhmm(start)} - {format_hhmm(start + timedelta(minutes=duration_min))}"


def attendance_percentage(total_lessons: int, absences: int) -> int:
    if total_lessons <= 0:
        return 100
    ratio = (total_lessons - absences) / total_lessons * 100
    return max(0, math.floor(ratio + 0.5))


def start_of_day(now: datetime | None = None) -> datetime:
    now = now or datetime.now()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)
