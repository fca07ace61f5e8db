import logging
from fastapi import HTTPException, status
from typing import Dict, Any, List
from collections import defaultdict, Counter
from datetime import datetime, date, timedelta, timezone
from app.core.database import SupabaseService
from app.schemas.dashboard import OrganizerDashboard
from app.schemas.user import CurrentUser, UserRole
from app.services.event_service import event_is_past
from app.utils.payments import from_minor_units

logger = logging.getLogger(__name__)

def parse_timestamp(value: str) -> datetime:
    # Supabase Returns ISO Strings, Sometimes With a Trailing Z
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo = timezone.utc)

def month_keys(count: int, today: date) -> List[str]:
    # Oldest First -> ["2026-05", ..., "2026-10"]
    keys = []
    year, month = today.year, today.month
    for _ in range(count):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))

def growth_percentage(current: int, previous: int) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 1)

class DashboardService(SupabaseService):

    def _empty_dashboard(self) -> Dict[str, Any]:
        return OrganizerDashboard().model_dump()

    def _hosted_events(self, host_id: str) -> List[Dict[str, Any]]:
        response = self.supabase_admin.table("event").select("*").eq("host_id", host_id).execute()
        return response.data or []

    def _paid_bookings(self, event_ids: List[str]) -> List[Dict[str, Any]]:
        if not event_ids:
            return []
        response = (
            self.supabase_admin.table("bookings")
            .select("*")
            .in_("event_id", event_ids)
            .eq("payment_status", "paid")
            .order("created_at", desc = True)
            .execute()
        )
        return response.data or []

    def _participants(self, event_ids: List[str]) -> List[Dict[str, Any]]:
        if not event_ids:
            return []
        response = self.supabase_admin.table("event_participants").select("*").in_("event_id", event_ids).execute()
        return response.data or []

    # Role Aware Summary Cards
    def get_stats(self, user: CurrentUser) -> Dict[str, Any]:
        if user.role in (UserRole.HOST, UserRole.ADMIN):
            return self.get_host_stats(user.id)
        return self.get_user_stats(user.id)

    def get_host_stats(self, host_id: str) -> Dict[str, Any]:
        events = self._hosted_events(host_id)
        event_ids = [e["id"] for e in events]
        participants = self._participants(event_ids)
        bookings = self._paid_bookings(event_ids)

        today = datetime.now(timezone.utc).date()
        upcoming = [e for e in events if not event_is_past(e) and e.get("event_status") not in ("cancelled", "draft", "past", "completed")]
        past = [e for e in events if event_is_past(e) or e.get("event_status") in ("past", "completed")]
        non_draft = [e for e in events if e.get("event_status") != "draft"]
        finished = [e for e in non_draft if e.get("event_status") in ("past", "completed") or (event_is_past(e) and e.get("event_status") != "cancelled")]

        # Month over Month Participant Growth
        this_month, last_month = month_keys(2, today)[::-1]
        per_month = Counter(parse_timestamp(p["joined_at"]).strftime("%Y-%m") for p in participants if p.get("joined_at"))

        profile = self.supabase_admin.table("profile").select("average_rating").eq("id", host_id).execute()
        average_rating = (profile.data[0].get("average_rating") if profile.data else 0) or 0

        return {
            "totalEvents": len(events),
            "upcomingEvents": len(upcoming),
            "pastEvents": len(past),
            "totalParticipants": len(participants),
            "totalRevenue": sum(from_minor_units(b.get("amount_total")) for b in bookings),
            "averageRating": round(float(average_rating), 1),
            "monthlyGrowth": growth_percentage(per_month[this_month], per_month[last_month]),
            "completionRate": round(len(finished) / len(non_draft) * 100, 1) if non_draft else 0.0,
        }

    def get_user_stats(self, user_id: str) -> Dict[str, Any]:
        joined = self.supabase_admin.table("event_participants").select("event_id").eq("user_id", user_id).execute().data or []
        joined_ids = [j["event_id"] for j in joined]
        events = []
        if joined_ids:
            events = self.supabase_admin.table("event").select("id, event_date, event_status").in_("id", joined_ids).execute().data or []
        saved = self.supabase_admin.table("saved_events").select("id", count = "exact", head = True).eq("user_id", user_id).execute()
        bookings = self.supabase_admin.table("bookings").select("*").eq("user_id", user_id).execute().data or []
        reviews = self.supabase_admin.table("reviews").select("id", count = "exact", head = True).eq("user_id", user_id).execute()

        return {
            "joinedEvents": len(joined_ids),
            "upcomingEvents": len([e for e in events if not event_is_past(e) and e.get("event_status") != "cancelled"]),
            "pastEvents": len([e for e in events if event_is_past(e)]),
            "savedEvents": saved.count or 0,
            "totalBookings": len(bookings),
            "totalSpent": sum(from_minor_units(b.get("amount_total")) for b in bookings if b.get("payment_status") == "paid"),
            "reviewsWritten": reviews.count or 0,
        }

    # Perform the Organizer Dashboard Data Calculation
    def get_organizer_dashboard(self, user_id: str) -> Dict[str, Any]:
        try:
            # 1. Retrieve the Event Information
            my_events = self._hosted_events(user_id)
            if not my_events:
                return self._empty_dashboard()
            my_event_ids = [e["id"] for e in my_events]
            event_map = {e["id"]: e for e in my_events} # -> Quick Look Up by ID

            # 2. Retrieve All Paid Bookings and Seats
            bookings = self._paid_bookings(my_event_ids)
            seats = Counter(p["event_id"] for p in self._participants(my_event_ids))

            # 3. Calculate the Stats & Leaderboard Data
            total_revenue = 0.0
            total_tickets = len(bookings)
            event_revenue = defaultdict(float)
            event_tickets = Counter()
            daily_stats = defaultdict(lambda: {"revenue": 0.0, "tickets": 0})

            for b in bookings:
                amount = from_minor_units(b.get("amount_total"))
                created_date = parse_timestamp(b["created_at"]).date()
                eid = b["event_id"]

                total_revenue += amount
                event_revenue[eid] += amount
                event_tickets[eid] += 1
                daily_stats[created_date]["revenue"] += amount
                daily_stats[created_date]["tickets"] += 1

            # 4. Top Events
            top_events = []
            for eid, event_data in event_map.items():
                tickets = event_tickets[eid]
                max_slots = event_data.get("max_participants") or 0
                occupancy = (tickets / max_slots * 100) if max_slots > 0 else 0.0
                top_events.append({
                    "event_id": str(eid),
                    "event_title": event_data["title"],
                    "event_date": event_data.get("event_date"),
                    "event_status": event_data.get("event_status"),
                    "revenue": event_revenue[eid],
                    "tickets_sold": tickets,
                    "participants": seats[eid],
                    "occupancy_rate": round(occupancy, 1)
                })
            top_events.sort(key = lambda x: x["revenue"], reverse = True)

            # 5. Build Sales Chart -> Last 30 Days, Zero Filled
            sales_chart = []
            today = datetime.now(timezone.utc).date()
            for i in range(29, -1, -1):
                d = today - timedelta(days = i)
                stat = daily_stats.get(d, {"revenue": 0.0, "tickets": 0})
                sales_chart.append({
                    "date": d,
                    "daily_revenue": stat["revenue"],
                    "tickets_sold": stat["tickets"]
                })

            # 6. Build Recent Sales List
            buyer_ids = list({b["user_id"] for b in bookings[:10]})
            profiles = {}
            if buyer_ids:
                profile_res = self.supabase_admin.table("profile").select("id, full_name, email").in_("id", buyer_ids).execute()
                profiles = {p["id"]: p for p in profile_res.data or []}
            recent_sales = []
            for b in bookings[:10]:
                profile = profiles.get(b["user_id"]) or {}
                recent_sales.append({
                    "booking_id": str(b["id"]),
                    "event_id": str(b["event_id"]),
                    "event_title": event_map[b["event_id"]]["title"],
                    "buyer_name": profile.get("full_name") or b.get("participant_name") or "Unknown",
                    "buyer_email": profile.get("email") or b.get("participant_email") or "Hidden",
                    "amount": from_minor_units(b.get("amount_total")),
                    "currency": b.get("currency") or "usd",
                    "created_at": b["created_at"]
                })

            active = [e for e in my_events if e.get("event_status") in ("open", "upcoming", "published")]
            return {
                "stats": {
                    "total_revenue": total_revenue,
                    "total_tickets_sold": total_tickets,
                    "total_participants": sum(seats.values()),
                    "total_events_active": len(active)
                },
                "sales_chart": sales_chart,
                "top_events": top_events[:5], # Return top 5 best sellers
                "recent_sales": recent_sales
            }
        except HTTPException:
            raise
        except Exception as e:
            logger.exception("Organizer dashboard failed for %s", user_id)
            raise HTTPException(
                status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail = f"Analytics Fail: {str(e)}"
            )

    # Six Month Trend of Participants and Revenue for the Host
    def get_growth(self, host_id: str, months: int = 6) -> List[Dict[str, Any]]:
        events = self._hosted_events(host_id)
        event_ids = [e["id"] for e in events]
        participants = Counter(
            parse_timestamp(p["joined_at"]).strftime("%Y-%m")
            for p in self._participants(event_ids) if p.get("joined_at")
        )
        revenue = defaultdict(float)
        for b in self._paid_bookings(event_ids):
            revenue[parse_timestamp(b["created_at"]).strftime("%Y-%m")] += from_minor_units(b.get("amount_total"))
        events_created = Counter(parse_timestamp(e["created_at"]).strftime("%Y-%m") for e in events if e.get("created_at"))

        return [
            {
                "month": key,
                "participants": participants[key],
                "revenue": revenue[key],
                "events": events_created[key],
            }
            for key in month_keys(months, datetime.now(timezone.utc).date())
        ]

    # Latest Joins, Bookings and Reviews on the Host's Events
    def get_activities(self, host_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        events = self._hosted_events(host_id)
        event_map = {e["id"]: e for e in events}
        event_ids = list(event_map)
        if not event_ids:
            return []

        activities = []
        for p in self._participants(event_ids):
            activities.append({"type": "join", "event_id": p["event_id"], "user_id": p["user_id"], "timestamp": p.get("joined_at")})
        for b in self._paid_bookings(event_ids):
            activities.append({"type": "booking", "event_id": b["event_id"], "user_id": b["user_id"], "timestamp": b.get("created_at"), "amount": from_minor_units(b.get("amount_total"))})
        reviews = self.supabase_admin.table("reviews").select("*").eq("host_id", host_id).in_("event_id", event_ids).execute().data or []
        for r in reviews:
            activities.append({"type": "review", "event_id": r["event_id"], "user_id": r["user_id"], "timestamp": r.get("created_at"), "rating": r["rating"]})

        activities = [a for a in activities if a["timestamp"]]
        activities.sort(key = lambda a: parse_timestamp(a["timestamp"]), reverse = True)
        activities = activities[:limit]

        user_ids = list({a["user_id"] for a in activities})
        names = {}
        if user_ids:
            names = {p["id"]: p.get("full_name") for p in self.supabase_admin.table("profile").select("id, full_name").in_("id", user_ids).execute().data or []}
        for a in activities:
            a["event_title"] = event_map[a["event_id"]]["title"]
            a["user_name"] = names.get(a["user_id"]) or "Unknown"
        return activities
