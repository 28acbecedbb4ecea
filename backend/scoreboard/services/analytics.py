from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Sequence
import logging

from sqlalchemy.orm import Session, joinedload

from scoreboard.models.scoring import ScoreRecord


class AnalyticsService:
    """Aggregations over score records already loaded by a single query."""

    PERIODS = ("week", "month", "year")
    DEFAULT_PERIOD = "month"
    UNKNOWN_RULE_NAME = "Unknown rule"
    UNKNOWN_GROUP_NAME = "Unknown group"

    logger = logging.getLogger(__name__)

    @staticmethod
    def period_range(period: str, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
        """Calendar range containing ``now``; weeks start on Monday."""
        now = now or datetime.utcnow()
        today = now.date()
        if period == "week":
            start_day = today - timedelta(days=today.weekday())
            end_day = start_day + timedelta(days=6)
        elif period == "year":
            start_day = date(today.year, 1, 1)
            end_day = date(today.year, 12, 31)
        else:
            start_day = today.replace(day=1)
            next_month = (start_day + timedelta(days=32)).replace(day=1)
            end_day = next_month - timedelta(days=1)
        return datetime.combine(start_day, time.min), datetime.combine(end_day, time.max)

    @staticmethod
    def resolve_range(
        period: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> tuple[datetime, datetime]:
        start, end = AnalyticsService.period_range(period, now)
        if start_date:
            start = datetime.combine(start_date, time.min)
        if end_date:
            end = datetime.combine(end_date, time.max)
        return start, end

    @staticmethod
    def previous_range(start: datetime, end: datetime) -> tuple[datetime, datetime]:
        duration = end - start
        previous_end = start - timedelta(microseconds=1)
        return start - duration, previous_end

    @staticmethod
    def fetch_records(
        db: Session,
        start: datetime,
        end: datetime,
        group_ids: Optional[Sequence[str]] = None,
        user_id: Optional[str] = None,
        with_relations: bool = True,
    ) -> List[ScoreRecord]:
        query = db.query(ScoreRecord).filter(
            ScoreRecord.recorded_at >= start,
            ScoreRecord.recorded_at <= end,
        )
        if group_ids is not None:
            query = query.filter(ScoreRecord.group_id.in_(list(group_ids)))
        if user_id:
            query = query.filter(ScoreRecord.user_id == user_id)
        if with_relations:
            query = query.options(joinedload(ScoreRecord.rule), joinedload(ScoreRecord.group))
        return query.order_by(ScoreRecord.recorded_at.desc()).all()

    @staticmethod
    def summarize(records: Sequence[ScoreRecord], previous_records: Sequence[ScoreRecord]) -> dict:
        total_points = sum(record.points for record in records)
        average = total_points / len(records) if records else 0
        previous_total = sum(record.points for record in previous_records)
        change = total_points - previous_total
        change_percent = (change / previous_total) * 100 if previous_total > 0 else 0
        return {
            "total_points": total_points,
            "record_count": len(records),
            "average_points": round(average, 2),
            "previous_period": {
                "total_points": previous_total,
                "record_count": len(previous_records),
                "points_change": change,
                "points_change_percent": change_percent,
            },
        }

    @staticmethod
    def trend(records: Iterable[ScoreRecord]) -> List[dict]:
        daily: dict[str, int] = {}
        for record in records:
            key = record.recorded_at.strftime("%Y-%m-%d")
            daily[key] = daily.get(key, 0) + record.points
        return [{"date": day, "points": points} for day, points in sorted(daily.items())]

    @staticmethod
    def rule_breakdown(records: Iterable[ScoreRecord]) -> List[dict]:
        breakdown: dict[str, dict] = {}
        for record in records:
            if record.rule is None:
                continue
            entry = breakdown.setdefault(
                record.rule_id,
                {"name": record.rule.name or AnalyticsService.UNKNOWN_RULE_NAME, "points": 0, "count": 0},
            )
            entry["points"] += record.points
            entry["count"] += 1

        rows = [
            {
                "rule_id": rule_id,
                "name": data["name"],
                "total_points": data["points"],
                "count": data["count"],
                "average_points": data["points"] / data["count"],
            }
            for rule_id, data in breakdown.items()
        ]
        return sorted(rows, key=lambda row: row["total_points"], reverse=True)

    @staticmethod
    def group_breakdown(groups: Iterable, records: Iterable[ScoreRecord], include_empty: bool = True) -> List[dict]:
        stats: dict[str, dict] = {
            group.id: {"name": group.name or AnalyticsService.UNKNOWN_GROUP_NAME, "points": 0, "count": 0}
            for group in groups
        }
        for record in records:
            entry = stats.get(record.group_id)
            if entry is None:
                continue
            entry["points"] += record.points
            entry["count"] += 1

        rows = [
            {
                "group_id": group_id,
                "name": data["name"],
                "total_points": data["points"],
                "record_count": data["count"],
                "average_points": round(data["points"] / data["count"], 2) if data["count"] else 0,
            }
            for group_id, data in stats.items()
            if include_empty or data["count"] > 0
        ]
        return sorted(rows, key=lambda row: row["total_points"], reverse=True)

    @staticmethod
    def empty_report(period: str, now: Optional[datetime] = None) -> dict:
        now = now or datetime.utcnow()
        return {
            "period": period,
            "date_range": {"start": now, "end": now},
            "summary": AnalyticsService.summarize([], []),
            "trend_data": [],
            "rule_breakdown": [],
            "group_breakdown": [],
        }

    @staticmethod
    def build_report(
        db: Session,
        period: str,
        start: datetime,
        end: datetime,
        group_ids: Optional[Sequence[str]] = None,
        user_id: Optional[str] = None,
        breakdown_groups: Optional[Iterable] = None,
        include_empty_groups: bool = True,
    ) -> dict:
        records = AnalyticsService.fetch_records(db, start, end, group_ids=group_ids, user_id=user_id)
        previous_start, previous_end = AnalyticsService.previous_range(start, end)
        previous_records = AnalyticsService.fetch_records(
            db,
            previous_start,
            previous_end,
            group_ids=group_ids,
            user_id=user_id,
            with_relations=False,
        )
        group_rows: List[dict] = []
        if breakdown_groups is not None:
            group_rows = AnalyticsService.group_breakdown(breakdown_groups, records, include_empty_groups)

        AnalyticsService.logger.debug(
            "Analytics %s..%s groups=%s user=%s records=%d",
            start,
            end,
            "all" if group_ids is None else len(group_ids),
            user_id,
            len(records),
        )
        return {
            "period": period,
            "date_range": {"start": start, "end": end},
            "summary": AnalyticsService.summarize(records, previous_records),
            "trend_data": AnalyticsService.trend(records),
            "rule_breakdown": AnalyticsService.rule_breakdown(records),
            "group_breakdown": group_rows,
        }

    @staticmethod
    def member_performance(members: Iterable, records: Iterable[ScoreRecord]) -> List[dict]:
        performance: dict[str, dict] = {}
        for member in members:
            user = member.user
            performance[member.user_id] = {
                "user_id": member.user_id,
                "user_name": (user.name if user else None) or "Unknown user",
                "user_email": user.email if user else "",
                "total_records": 0,
                "total_points": 0,
                "average_points": 0,
            }
        for record in records:
            entry = performance.get(record.user_id)
            if entry is None:
                continue
            entry["total_records"] += 1
            entry["total_points"] += record.points
            entry["average_points"] = entry["total_points"] / entry["total_records"]
        return list(performance.values())

    @staticmethod
    def top_and_bottom(performances: Iterable[dict], size: int = 3) -> tuple[List[dict], List[dict]]:
        scored = [row for row in performances if row["total_records"] > 0]
        top = sorted(scored, key=lambda row: row["total_points"], reverse=True)[:size]
        bottom = sorted(scored, key=lambda row: row["total_points"])[:size]
        return top, bottom
