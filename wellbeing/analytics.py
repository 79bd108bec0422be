"""
Derived views over materialized collections.

Nothing here touches storage: callers load the collection from its repository
and pass it in, so results are always computed from the latest write.
"""
import math
from datetime import date, datetime, timedelta
from typing import List

from wellbeing.models import ActivityProgress, ActivitySession, MoodEntry, MoodStatistics

# Streak scan never looks further back than this
STREAK_LOOKBACK_DAYS = 7


def local_day(moment: datetime) -> date:
    """Calendar day of ``moment`` in the host's local timezone."""
    return moment.astimezone().date()


def compute_streak(end_times: List[datetime], now: datetime) -> int:
    """
    Count consecutive days with a completion, walking back from today.

    A missing session today does not end the scan ("not done yet today");
    the first gap on any earlier day does.
    """
    completed_days = {local_day(t) for t in end_times}
    today = local_day(now)

    streak = 0
    for offset in range(STREAK_LOOKBACK_DAYS):
        if today - timedelta(days=offset) in completed_days:
            streak += 1
        elif offset > 0:
            break
    return streak


def compute_activity_progress(sessions: List[ActivitySession], activity_id: str, now: datetime) -> ActivityProgress:
    done = [s for s in sessions if s.activity_id == activity_id and s.completed]

    ratings = [s.rating for s in done if s.rating is not None]
    end_times = [s.end_time for s in done if s.end_time is not None]

    return ActivityProgress(
        activity_id=activity_id,
        total_sessions=len(done),
        total_duration=sum(s.duration or 0 for s in done),
        last_completed=max(end_times) if end_times else None,
        average_rating=sum(ratings) / len(ratings) if ratings else None,
        streak=compute_streak(end_times, now),
    )


def round_one_decimal(value: float) -> float:
    # Half-up, so 6.25 -> 6.3
    return math.floor(value * 10 + 0.5) / 10


def compute_mood_statistics(entries: List[MoodEntry]) -> MoodStatistics:
    """``entries`` must already be sorted newest first."""
    if not entries:
        return MoodStatistics(total_entries=0)

    latest = entries[0]
    average = sum(e.intensity for e in entries) / len(entries)
    return MoodStatistics(
        total_entries=len(entries),
        last_mood=latest.mood,
        last_mood_date=latest.date,
        average_intensity=round_one_decimal(average),
    )
