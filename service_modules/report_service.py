"""
Report Service - admin accounting reports and coach statistics.
"""
import csv
import io
import math
from collections import Counter, defaultdict

from sqlalchemy import or_

from .base import (
    HTTPException, logging, date, timedelta,
    get_db_session, UserORM, ActivityORM, CoachORM, TimeSlotORM, GroupTimeSlotORM, TransactionORM,
    load_json, display_name, TOKEN_CURRENCIES
)

logger = logging.getLogger("studio_app")

CSV_COLUMNS = ["Date", "Description", "Type", "Amount", "Currency", "User ID", "User Name"]


def _parse_date(value: str, field: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"Invalid {field}: {value}")


class ReportService:
    """Service for accounting and coach reports."""

    # --- TRANSACTIONS ---

    def _filtered_transactions(self, db, filters: dict):
        query = db.query(TransactionORM)
        if filters.get("type"):
            query = query.filter(TransactionORM.type == filters["type"])
        if filters.get("currency"):
            query = query.filter(TransactionORM.currency == filters["currency"])
        if filters.get("user_id"):
            query = query.filter(TransactionORM.user_id == filters["user_id"])
        if filters.get("search"):
            pattern = f"%{filters['search']}%"
            query = query.filter(or_(TransactionORM.description.ilike(pattern), TransactionORM.type.ilike(pattern)))
        if filters.get("start_date"):
            start = _parse_date(filters["start_date"], "start_date")
            query = query.filter(TransactionORM.created_at >= start.isoformat())
        if filters.get("end_date"):
            # Inclusive through the end of the day
            end = _parse_date(filters["end_date"], "end_date") + timedelta(days=1)
            query = query.filter(TransactionORM.created_at < end.isoformat())
        if filters.get("min_amount") is not None:
            query = query.filter(TransactionORM.amount >= filters["min_amount"])
        if filters.get("max_amount") is not None:
            query = query.filter(TransactionORM.amount <= filters["max_amount"])
        return query

    def _summarize(self, rows: list) -> dict:
        amounts = [t.amount or 0 for t in rows]
        by_currency = defaultdict(list)
        daily = defaultdict(lambda: defaultdict(float))
        for t in rows:
            by_currency[t.currency].append(t.amount or 0)
            daily[(t.created_at or "")[:10]][t.currency] += t.amount or 0

        return {
            "summary": {
                "total_credits": sum(by_currency.get("credits", [])),
                "total_tokens": sum(sum(by_currency.get(c, [])) for c in TOKEN_CURRENCIES),
                "count": len(rows),
                "average": round(sum(amounts) / len(amounts), 2) if amounts else 0,
                "highest": max(amounts) if amounts else 0,
                "lowest": min(amounts) if amounts else 0,
            },
            "chart": [{"date": day, **dict(values)} for day, values in sorted(daily.items())],
            "average_per_currency": {
                currency: round(sum(values) / len(values), 2) for currency, values in by_currency.items()
            },
            "count_by_type": dict(Counter(t.type for t in rows)),
        }

    def get_transactions_report(self, filters: dict, sort_by: str = "created_at", sort_order: str = "desc",
                                page: int = 1, limit: int = 20) -> dict:
        if sort_by not in ("created_at", "amount"):
            raise HTTPException(status_code=400, detail="sort_by must be created_at or amount")
        if page < 1 or limit < 1:
            raise HTTPException(status_code=400, detail="page and limit must be positive")

        db = get_db_session()
        try:
            rows = self._filtered_transactions(db, filters).all()
            report = self._summarize(rows)

            column = getattr(TransactionORM, sort_by)
            ordered = self._filtered_transactions(db, filters).order_by(
                column.desc() if sort_order == "desc" else column.asc()
            ).offset((page - 1) * limit).limit(limit).all()

            users = self._users_for(db, ordered)
            report.update({
                "transactions": [self._tx_to_dict(t, users.get(t.user_id)) for t in ordered],
                "total_count": len(rows),
                "current_page": page,
                "total_pages": math.ceil(len(rows) / limit),
            })
            return report
        finally:
            db.close()

    def export_transactions_csv(self, filters: dict) -> str:
        db = get_db_session()
        try:
            rows = self._filtered_transactions(db, filters).order_by(TransactionORM.created_at.desc()).all()
            users = self._users_for(db, rows)

            buffer = io.StringIO()
            writer = csv.writer(buffer)
            writer.writerow(CSV_COLUMNS)
            for t in rows:
                user = users.get(t.user_id)
                writer.writerow([
                    (t.created_at or "")[:19], t.description, t.type, t.amount, t.currency,
                    t.user_id, display_name(user)
                ])
            logger.info(f"Exported {len(rows)} transaction(s) to CSV")
            return buffer.getvalue()
        finally:
            db.close()

    def _users_for(self, db, rows) -> dict:
        ids = {t.user_id for t in rows if t.user_id}
        if not ids:
            return {}
        return {u.id: u for u in db.query(UserORM).filter(UserORM.id.in_(ids)).all()}

    def _tx_to_dict(self, t: TransactionORM, user=None) -> dict:
        return {
            "id": t.id,
            "user_id": t.user_id,
            "user_name": display_name(user),
            "description": t.description,
            "type": t.type,
            "amount": t.amount,
            "currency": t.currency,
            "created_at": t.created_at,
        }

    # --- COACHES ---

    def get_coach_history(self, start_date: str = None, end_date: str = None) -> dict:
        """Per-coach session statistics over a date range (default: the last 30 days)."""
        end = _parse_date(end_date, "end_date") if end_date else date.today()
        start = _parse_date(start_date, "start_date") if start_date else end - timedelta(days=30)
        if start > end:
            raise HTTPException(status_code=400, detail="start_date must be before end_date")

        db = get_db_session()
        try:
            individual = db.query(TimeSlotORM).filter(
                TimeSlotORM.booked == True,  # noqa: E712
                TimeSlotORM.date >= start.isoformat(), TimeSlotORM.date <= end.isoformat()
            ).all()
            group = db.query(GroupTimeSlotORM).filter(
                GroupTimeSlotORM.count > 0,
                GroupTimeSlotORM.date >= start.isoformat(), GroupTimeSlotORM.date <= end.isoformat()
            ).all()

            coaches = {c.id: c.name for c in db.query(CoachORM).all()}
            activities = {a.id: a.name for a in db.query(ActivityORM).all()}

            stats = {}

            def entry_for(coach_id):
                if coach_id not in stats:
                    stats[coach_id] = {
                        "coach_id": coach_id,
                        "coach_name": coaches.get(coach_id, "N/A"),
                        "total_sessions": 0,
                        "individual_sessions": 0,
                        "group_sessions": 0,
                        "activity_breakdown": Counter(),
                        "popular_time_slots": Counter(),
                        "token_usage": {"with_token": 0, "without_token": 0},
                    }
                return stats[coach_id]

            for slot in individual:
                entry = entry_for(slot.coach_id)
                entry["individual_sessions"] += 1
                entry["activity_breakdown"][activities.get(slot.activity_id, "N/A")] += 1
                entry["popular_time_slots"][(slot.start_time or "")[:5]] += 1
                entry["token_usage"]["with_token" if slot.booked_with_token else "without_token"] += 1
            for slot in group:
                entry = entry_for(slot.coach_id)
                entry["group_sessions"] += 1
                entry["activity_breakdown"][activities.get(slot.activity_id, "N/A")] += 1
                entry["popular_time_slots"][(slot.start_time or "")[:5]] += 1
                with_token = len(load_json(slot.booked_with_token_json))
                entry["token_usage"]["with_token"] += with_token
                entry["token_usage"]["without_token"] += max(0, len(load_json(slot.user_ids_json)) - with_token)

            activity_totals = Counter()
            for entry in stats.values():
                entry["total_sessions"] = entry["individual_sessions"] + entry["group_sessions"]
                activity_totals.update(entry["activity_breakdown"])
                entry["activity_breakdown"] = dict(entry["activity_breakdown"])
                entry["popular_time_slots"] = dict(entry["popular_time_slots"].most_common())

            coach_list = sorted(stats.values(), key=lambda e: e["total_sessions"], reverse=True)
            total_sessions = len(individual) + len(group)
            days = (end - start).days + 1
            top_activity = activity_totals.most_common(1)
            return {
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "coaches": coach_list,
                "summary": {
                    "total_sessions": total_sessions,
                    "top_coach": {"name": coach_list[0]["coach_name"], "sessions": coach_list[0]["total_sessions"]} if coach_list else None,
                    "top_activity": {"name": top_activity[0][0], "sessions": top_activity[0][1]} if top_activity else None,
                    "average_sessions_per_day": round(total_sessions / days, 2),
                },
            }
        finally:
            db.close()


# Singleton instance
report_service = ReportService()


def get_report_service() -> ReportService:
    """Dependency injection helper."""
    return report_service
