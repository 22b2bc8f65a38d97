"""
Statistics and insights for the prayer journal and the faith diary.

All windows are computed relative to ``now`` (UTC), which tests pin.
"""
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from mindchat.models.diary_entry import DiaryEntry
from mindchat.models.prayer import Prayer
from mindchat.schemas.diary import (
    ClimateCount,
    DiaryStatsResponse,
    DiarySummaryStats,
    EmotionCount,
)
from mindchat.schemas.prayer import CategoryCount, PrayerStatsResponse, PrayerSummaryStats

logger = logging.getLogger(__name__)

RECENT_DAYS = 7
WEEKLY_DAYS = 28
MONTHLY_DAYS = 180
TOP_EMOTIONS = 5


def as_utc(value: datetime) -> datetime:
    """Naive values (SQLite hands timestamps back naive) are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def percentage(part: int, total: int) -> int:
    if not total:
        return 0
    return int(part * 100 / total + 0.5)


def week_key(value: datetime) -> str:
    year, week, _ = value.isocalendar()
    return f"{year}-W{week:02d}"


def month_key(value: datetime) -> str:
    return f"{value.year}-{value.month:02d}"


def _count_by(keys: Iterable[str]) -> dict:
    return dict(sorted(Counter(keys).items()))


# =============================================================================
# Prayer journal
# =============================================================================

def prayer_stats(db: Session, user_id: UUID, now: Optional[datetime] = None) -> PrayerStatsResponse:
    now = now or datetime.now(timezone.utc)
    owned = db.query(Prayer).filter(Prayer.user_id == user_id)

    total = owned.count()
    favorite_count = owned.filter(Prayer.is_favorite.is_(True)).count()
    recent_activity = owned.filter(Prayer.created_at >= now - timedelta(days=RECENT_DAYS)).count()

    minutes = [
        m for (m,) in db.query(Prayer.minutes_spent).filter(
            Prayer.user_id == user_id,
            Prayer.minutes_spent.isnot(None),
        )
    ]
    total_minutes = sum(minutes)
    average_minutes = int(total_minutes / len(minutes) + 0.5) if minutes else 0

    category_rows = (
        db.query(Prayer.category, func.count(Prayer.id))
        .filter(Prayer.user_id == user_id)
        .group_by(Prayer.category)
        .all()
    )
    category_rows.sort(key=lambda row: (-row[1], row[0]))
    distribution = [
        CategoryCount(category=category, count=count, percentage=percentage(count, total))
        for category, count in category_rows
    ]

    insights = []
    if recent_activity > 0:
        insights.append(f"Você orou {recent_activity} vezes na última semana.")
    if total_minutes > 0:
        insights.append(f"Você dedicou {total_minutes} minutos em oração.")
    if distribution:
        insights.append(f"Sua categoria de oração mais frequente é: {distribution[0].category}.")

    logger.debug(f"Prayer stats for user {user_id}: {total} prayers")
    return PrayerStatsResponse(
        summary=PrayerSummaryStats(
            total_prayers=total,
            favorite_count=favorite_count,
            favorite_percentage=percentage(favorite_count, total),
            recent_activity=recent_activity,
            total_minutes=total_minutes,
            average_minutes=average_minutes,
        ),
        category_distribution=distribution,
        insights=insights,
    )


# =============================================================================
# Faith diary
# =============================================================================

def diary_stats(db: Session, user_id: UUID, now: Optional[datetime] = None) -> DiaryStatsResponse:
    """
    Aggregate a user's diary.

    List fields are JSON, so emotions and item totals are counted in Python
    over the user's entries.
    """
    now = now or datetime.now(timezone.utc)
    entries = db.query(DiaryEntry).filter(DiaryEntry.user_id == user_id).all()
    created = [as_utc(entry.created_at) for entry in entries]

    total = len(entries)
    favorite_count = sum(1 for entry in entries if entry.is_favorite)
    recent_activity = sum(1 for c in created if c >= now - timedelta(days=RECENT_DAYS))
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    entries_this_month = sum(1 for c in created if c >= month_start)

    climates = Counter(entry.climate for entry in entries if entry.climate)
    climate_distribution = [
        ClimateCount(climate=climate, count=count, percentage=percentage(count, total))
        for climate, count in sorted(climates.items(), key=lambda item: (-item[1], item[0]))
    ]

    emotions = Counter(emotion for entry in entries for emotion in entry.emotions or [])
    top_emotions = [
        EmotionCount(emotion=emotion, count=count)
        for emotion, count in sorted(emotions.items(), key=lambda item: (-item[1], item[0]))[:TOP_EMOTIONS]
    ]

    weekly = _count_by(week_key(c) for c in created if c >= now - timedelta(days=WEEKLY_DAYS))
    monthly = _count_by(month_key(c) for c in created if c >= now - timedelta(days=MONTHLY_DAYS))

    insights = []
    if recent_activity > 0:
        insights.append(
            f"Você tem mantido uma prática consistente com {recent_activity} entradas na última semana."
        )
    if favorite_count > 0:
        insights.append(f"{favorite_count} de suas entradas são especiais para você (favoritas).")
    if top_emotions:
        insights.append(f"A emoção mais presente em suas reflexões é: {top_emotions[0].emotion}.")

    logger.debug(f"Diary stats for user {user_id}: {total} entries")
    return DiaryStatsResponse(
        summary=DiarySummaryStats(
            total_entries=total,
            favorite_count=favorite_count,
            favorite_percentage=percentage(favorite_count, total),
            recent_activity=recent_activity,
            entries_this_month=entries_this_month,
            total_gratitude_items=sum(len(entry.gratitude or []) for entry in entries),
            total_prayer_items=sum(len(entry.prayers or []) for entry in entries),
        ),
        climate_distribution=climate_distribution,
        top_emotions=top_emotions,
        weekly_activity=weekly,
        monthly_activity=monthly,
        insights=insights,
    )
