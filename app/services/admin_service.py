import logging
import re
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from fastapi import HTTPException, status
from app.core.database import SupabaseService
from app.schemas.booking import BookingStatus
from app.schemas.user import CurrentUser, HostStatus, UserRole
from app.services.booking_service import BookingService
from app.services.dashboard_service import parse_timestamp
from app.services.event_service import EventService, event_is_past
from app.services.review_service import ReviewService
from app.utils.payments import from_minor_units

logger = logging.getLogger(__name__)

ANALYTICS_PERIODS = {"7days": 7, "30days": 30, "90days": 90}
USER_STATUS_FILTERS = ("active", "banned", "verified", "unverified")
ACTIVE_EVENT_STATUSES = ("open", "upcoming", "published")

def period_days(period: str) -> int:
    if period not in ANALYTICS_PERIODS:
        raise HTTPException(
            status_code = status.HTTP_400_BAD_REQUEST,
            detail = f"Invalid Period '{period}', Expected One of {', '.join(ANALYTICS_PERIODS)}"
        )
    return ANALYTICS_PERIODS[period]

def search_term(search: Optional[str]) -> str:
    # Commas and Parentheses Would Break Out of the or_ Filter Expression
    return re.sub(r"[,()]", " ", search or "").strip()

def daily_buckets(days: int) -> List[str]:
    today = datetime.now(timezone.utc).date()
    return [(today - timedelta(days = i)).isoformat() for i in range(days - 1, -1, -1)]

class AdminService(SupabaseService):
    """
    Data Source of the Admin Command Center -> Platform Stats, Moderation of Users, Hosts,
    Events, Bookings and Reviews, and the Analytics Charts.
    """

    def __init__(self):
        self.event_service = EventService()
        self.booking_service = BookingService()
        self.review_service = ReviewService()

    def _count(self, table: str, **filters) -> int:
        query = self.supabase_admin.table(table).select("*", count = "exact", head = True)
        for column, value in filters.items():
            query = query.eq(column, value)
        return query.execute().count or 0

    def _ensure_not_self(self, admin: CurrentUser, user_id: str, action: str) -> None:
        if admin.id == user_id:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = f"You Cannot {action} Your Own Account"
            )

    def _profile(self, user_id: str) -> Dict[str, Any]:
        response = self.supabase_admin.table("profile").select("*").eq("id", user_id).execute()
        if not response.data:
            raise HTTPException(
                status_code = status.HTTP_404_NOT_FOUND,
                detail = "User Not Found"
            )
        return response.data[0]

    def _update_profile(self, user_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
        self._profile(user_id)
        values["updated_at"] = datetime.now(timezone.utc).isoformat()
        response = self.supabase_admin.table("profile").update(values).eq("id", user_id).execute()
        return response.data[0]

    # Platform Wide Summary Cards
    def get_stats(self) -> Dict[str, Any]:
        bookings = self.supabase_admin.table("bookings").select("status, payment_status, amount_total").execute().data or []
        ratings = [r["rating"] for r in self.supabase_admin.table("reviews").select("rating").execute().data or []]
        events = self.supabase_admin.table("event").select("event_status").execute().data or []
        event_statuses = Counter(e["event_status"] for e in events)
        booking_statuses = Counter(b["status"] for b in bookings)

        return {
            "totalUsers": self._count("profile"),
            "verifiedUsers": self._count("profile", is_verified = True),
            "bannedUsers": self._count("profile", is_active = False),
            "totalHosts": self._count("profile", role = UserRole.HOST.value),
            "pendingHostApprovals": self._count("profile", host_status = HostStatus.PENDING.value),
            "totalEvents": len(events),
            "activeEvents": sum(event_statuses[s] for s in ACTIVE_EVENT_STATUSES),
            "completedEvents": event_statuses["completed"] + event_statuses["past"],
            "cancelledEvents": event_statuses["cancelled"],
            "pendingEvents": event_statuses["pending"],
            "totalBookings": len(bookings),
            "confirmedBookings": booking_statuses["confirmed"] + booking_statuses["completed"],
            "cancelledBookings": booking_statuses["cancelled"],
            "totalRevenue": sum(from_minor_units(b.get("amount_total")) for b in bookings if b.get("payment_status") == "paid"),
            "refundedAmount": sum(from_minor_units(b.get("amount_total")) for b in bookings if b.get("payment_status") == "refunded"),
            "averageRating": round(sum(ratings) / len(ratings), 1) if ratings else 0.0,
            "openReports": self._count("event_reports", status = "open"),
        }

    # User Moderation
    def list_users(
        self,
        search: Optional[str] = None,
        role: Optional[str] = None,
        user_status: Optional[str] = None,
        page: int = 1,
        limit: int = 10
    ) -> Dict[str, Any]:
        if user_status and user_status not in USER_STATUS_FILTERS:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = f"Invalid Status Filter '{user_status}'"
            )
        query = self.supabase_admin.table("profile").select("*", count = "exact")
        term = search_term(search)
        if term:
            query = query.or_(f"full_name.ilike.%{term}%,email.ilike.%{term}%")
        if role:
            query = query.eq("role", role)
        if user_status == "active":
            query = query.eq("is_active", True)
        elif user_status == "banned":
            query = query.eq("is_active", False)
        elif user_status == "verified":
            query = query.eq("is_verified", True)
        elif user_status == "unverified":
            query = query.eq("is_verified", False)
        start = (page - 1) * limit
        response = query.order("created_at", desc = True).range(start, start + limit - 1).execute()
        return {"items": response.data or [], "total": response.count or 0, "page": page, "limit": limit}

    def get_user(self, user_id: str) -> Dict[str, Any]:
        profile = self._profile(user_id)
        profile["stats"] = {
            "hostedEvents": self._count("event", host_id = user_id),
            "joinedEvents": self._count("event_participants", user_id = user_id),
            "bookings": self._count("bookings", user_id = user_id),
            "reviewsWritten": self._count("reviews", user_id = user_id),
        }
        return profile

    def get_user_activity(self, user_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        self._profile(user_id)
        activity = []
        for p in self.supabase_admin.table("event_participants").select("*").eq("user_id", user_id).execute().data or []:
            activity.append({"type": "joined_event", "event_id": p["event_id"], "timestamp": p.get("joined_at")})
        for b in self.supabase_admin.table("bookings").select("*").eq("user_id", user_id).execute().data or []:
            activity.append({"type": f"booking_{b['status']}", "event_id": b["event_id"], "booking_id": b["id"], "timestamp": b.get("updated_at") or b.get("created_at")})
        for r in self.supabase_admin.table("reviews").select("*").eq("user_id", user_id).execute().data or []:
            activity.append({"type": "review", "event_id": r["event_id"], "rating": r["rating"], "timestamp": r.get("created_at")})
        for e in self.supabase_admin.table("event").select("*").eq("host_id", user_id).execute().data or []:
            activity.append({"type": "hosted_event", "event_id": e["id"], "timestamp": e.get("created_at")})
        activity = [a for a in activity if a["timestamp"]]
        activity.sort(key = lambda a: parse_timestamp(a["timestamp"]), reverse = True)
        return activity[:limit]

    def change_role(self, admin: CurrentUser, user_id: str, role: UserRole) -> Dict[str, Any]:
        if role != UserRole.ADMIN:
            self._ensure_not_self(admin, user_id, "Demote")
        values = {"role": role.value}
        if role == UserRole.HOST:
            values["host_status"] = HostStatus.APPROVED.value
        logger.info("Admin %s set role of %s to %s", admin.id, user_id, role.value)
        return self._update_profile(user_id, values)

    def verify_user(self, user_id: str) -> Dict[str, Any]:
        return self._update_profile(user_id, {"is_verified": True})

    def ban_user(self, admin: CurrentUser, user_id: str) -> Dict[str, Any]:
        self._ensure_not_self(admin, user_id, "Ban")
        logger.info("Admin %s banned %s", admin.id, user_id)
        return self._update_profile(user_id, {"is_active": False})

    def unban_user(self, user_id: str) -> Dict[str, Any]:
        return self._update_profile(user_id, {"is_active": True})

    def delete_user(self, admin: CurrentUser, user_id: str) -> Dict[str, str]:
        self._ensure_not_self(admin, user_id, "Delete")
        self._profile(user_id)
        if self._count("event", host_id = user_id) > 0:
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "User Still Hosts Events, Delete or Reassign Them First"
            )
        # Queue Spots and Bookmarks Go First So the Leaving User Is Never Promoted
        for table in ("event_waiting_list", "saved_events"):
            self.supabase_admin.table(table).delete().eq("user_id", user_id).execute()

        # Live Bookings are Cancelled Through the Booking Flow -> Refunds Go Out, Freed Seats Pass On
        live = (
            self.supabase_admin.table("bookings")
            .select("id")
            .eq("user_id", user_id)
            .in_("status", [BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value])
            .execute()
        )
        for booking in live.data or []:
            self.booking_service.admin_cancel(booking["id"])
        seats = self.supabase_admin.table("event_participants").select("event_id").eq("user_id", user_id).execute()
        for seat in seats.data or []:
            self.booking_service.event_participant_service.remove_participant(seat["event_id"], user_id)

        reviews = self.supabase_admin.table("reviews").select("host_id").eq("user_id", user_id).execute()
        self.supabase_admin.table("reviews").delete().eq("user_id", user_id).execute()
        for host_id in {r["host_id"] for r in reviews.data or [] if r.get("host_id")}:
            self.review_service.refresh_host_rating(host_id)

        self.supabase_admin.table("profile").delete().eq("id", user_id).execute()
        try:
            self.supabase_admin.auth.admin.delete_user(user_id)
        except Exception as e:
            logger.warning("Auth account of %s could not be deleted: %s", user_id, e)
        logger.info("Admin %s deleted user %s", admin.id, user_id)
        return {"message": "User Deleted Successfully"}

    # Host Applications and Suspensions
    def list_hosts(self, host_status: Optional[str] = None, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        query = self.supabase_admin.table("profile").select("*", count = "exact")
        if host_status:
            query = query.eq("host_status", host_status)
        else:
            query = query.neq("host_status", HostStatus.NONE.value)
        start = (page - 1) * limit
        response = query.order("updated_at", desc = True).range(start, start + limit - 1).execute()
        items = response.data or []
        for host in items:
            host["hosted_events_count"] = self._count("event", host_id = host["id"])
        return {"items": items, "total": response.count or 0, "page": page, "limit": limit}

    def approve_host(self, user_id: str) -> Dict[str, Any]:
        return self._update_profile(user_id, {"role": UserRole.HOST.value, "host_status": HostStatus.APPROVED.value})

    def reject_host(self, user_id: str, reason: Optional[str]) -> Dict[str, Any]:
        profile = self._profile(user_id)
        if profile.get("host_status") != HostStatus.PENDING.value:
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "Only Pending Host Applications Can Be Rejected"
            )
        return self._update_profile(user_id, {"host_status": HostStatus.REJECTED.value, "host_status_reason": reason})

    def suspend_host(self, user_id: str, reason: Optional[str]) -> Dict[str, Any]:
        profile = self._profile(user_id)
        if profile.get("role") != UserRole.HOST.value:
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "User is Not a Host"
            )
        # Upcoming Events of a Suspended Host are Cancelled
        events = self.supabase_admin.table("event").select("*").eq("host_id", user_id).execute().data or []
        cancelled = 0
        for event in events:
            if event["event_status"] in ("draft", "pending", "published", "open", "upcoming") and not event_is_past(event):
                self.event_service.set_status(event["id"], "cancelled")
                cancelled += 1
        updated = self._update_profile(user_id, {
            "role": UserRole.USER.value,
            "host_status": HostStatus.SUSPENDED.value,
            "host_status_reason": reason
        })
        updated["cancelled_events"] = cancelled
        logger.info("Host %s suspended, %d events cancelled", user_id, cancelled)
        return updated

    def reinstate_host(self, user_id: str) -> Dict[str, Any]:
        profile = self._profile(user_id)
        if profile.get("host_status") != HostStatus.SUSPENDED.value:
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "Only Suspended Hosts Can Be Reinstated"
            )
        return self._update_profile(user_id, {"role": UserRole.HOST.value, "host_status": HostStatus.APPROVED.value, "host_status_reason": None})

    # Event Moderation
    def list_events(
        self,
        event_status: Optional[str] = None,
        search: Optional[str] = None,
        event_type: Optional[str] = None,
        page: int = 1,
        limit: int = 10
    ) -> Dict[str, Any]:
        query = self.supabase_admin.table("event").select("*", count = "exact")
        if event_status:
            query = query.eq("event_status", event_status)
        if event_type:
            query = query.eq("event_type", event_type)
        if search:
            query = query.ilike("title", f"%{search}%")
        start = (page - 1) * limit
        response = query.order("created_at", desc = True).range(start, start + limit - 1).execute()
        return {
            "items": self.event_service.enrich_events(response.data or []),
            "total": response.count or 0,
            "page": page,
            "limit": limit
        }

    def get_event(self, event_id: str) -> Dict[str, Any]:
        event = self.event_service.enrich_events([self.event_service.get_event_row(event_id)])[0]
        event["bookings"] = self._count("bookings", event_id = event_id)
        event["open_reports"] = self._count("event_reports", event_id = event_id, status = "open")
        return event

    def delete_event(self, event_id: str) -> Dict[str, Any]:
        event = self.event_service.get_event_row(event_id)
        refunded = self.booking_service.refund_all_for_event(event_id)
        self.event_service.purge_event(event)
        return {"message": "Event Successfully Deleted", "cancelled_bookings": refunded}

    # Event Reports
    def list_reports(self, report_status: Optional[str] = None, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        query = self.supabase_admin.table("event_reports").select("*", count = "exact")
        if report_status:
            query = query.eq("status", report_status)
        start = (page - 1) * limit
        response = query.order("created_at", desc = True).range(start, start + limit - 1).execute()
        items = response.data or []
        event_ids = list({r["event_id"] for r in items})
        titles = {}
        if event_ids:
            titles = {e["id"]: e["title"] for e in self.supabase_admin.table("event").select("id, title").in_("id", event_ids).execute().data or []}
        for report in items:
            report["event_title"] = titles.get(report["event_id"])
        return {"items": items, "total": response.count or 0, "page": page, "limit": limit}

    def close_report(self, report_id: str, resolution: str, admin: CurrentUser) -> Dict[str, Any]:
        response = self.supabase_admin.table("event_reports").select("*").eq("id", report_id).execute()
        if not response.data:
            raise HTTPException(
                status_code = status.HTTP_404_NOT_FOUND,
                detail = "Report Not Found"
            )
        if response.data[0]["status"] != "open":
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "Report is Already Closed"
            )
        updated = self.supabase_admin.table("event_reports").update({
            "status": resolution,
            "resolved_by": admin.id,
            "resolved_at": datetime.now(timezone.utc).isoformat()
        }).eq("id", report_id).execute()
        return updated.data[0]

    # Booking Oversight
    def list_bookings(
        self,
        booking_status: Optional[str] = None,
        payment_status: Optional[str] = None,
        event_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10
    ) -> Dict[str, Any]:
        query = self.supabase_admin.table("bookings").select("*", count = "exact")
        if booking_status:
            query = query.eq("status", booking_status)
        if payment_status:
            query = query.eq("payment_status", payment_status)
        if event_id:
            query = query.eq("event_id", event_id)
        start = (page - 1) * limit
        response = query.order("created_at", desc = True).range(start, start + limit - 1).execute()
        return {
            "items": self.booking_service._attach_events(response.data or []),
            "total": response.count or 0,
            "page": page,
            "limit": limit
        }

    # Analytics Charts -> Daily Series, Zero Filled
    def user_analytics(self, period: str) -> Dict[str, Any]:
        days = period_days(period)
        buckets = daily_buckets(days)
        profiles = self.supabase_admin.table("profile").select("role, created_at").gte("created_at", buckets[0]).execute().data or []
        signups = Counter(parse_timestamp(p["created_at"]).date().isoformat() for p in profiles if p.get("created_at"))
        hosts = Counter(parse_timestamp(p["created_at"]).date().isoformat() for p in profiles if p.get("created_at") and p.get("role") == "host")
        return {
            "period": period,
            "series": [{"date": d, "newUsers": signups[d], "newHosts": hosts[d]} for d in buckets],
            "totalNewUsers": sum(signups.values()),
            "totalUsers": self._count("profile"),
        }

    def revenue_analytics(self, period: str) -> Dict[str, Any]:
        days = period_days(period)
        buckets = daily_buckets(days)
        bookings = self.supabase_admin.table("bookings").select("*").gte("created_at", buckets[0]).execute().data or []

        revenue = defaultdict(float)
        refunds = defaultdict(float)
        transactions = Counter()
        per_event = defaultdict(lambda: {"revenue": 0.0, "bookings": 0})
        for b in bookings:
            day = parse_timestamp(b["created_at"]).date().isoformat()
            amount = from_minor_units(b.get("amount_total"))
            if b.get("payment_status") == "paid":
                revenue[day] += amount
                transactions[day] += 1
                per_event[b["event_id"]]["revenue"] += amount
                per_event[b["event_id"]]["bookings"] += 1
            elif b.get("payment_status") == "refunded":
                refunds[day] += amount

        top_ids = sorted(per_event, key = lambda eid: per_event[eid]["revenue"], reverse = True)[:5]
        titles = {}
        if top_ids:
            titles = {e["id"]: e["title"] for e in self.supabase_admin.table("event").select("id, title").in_("id", top_ids).execute().data or []}

        series = []
        for d in buckets:
            series.append({
                "date": d,
                "totalRevenue": revenue[d],
                "transactions": transactions[d],
                "averageTransactionValue": round(revenue[d] / transactions[d], 2) if transactions[d] else 0.0,
                "refunds": refunds[d],
                "netRevenue": revenue[d] - refunds[d],
            })
        return {
            "period": period,
            "series": series,
            "totalRevenue": sum(revenue.values()),
            "totalRefunds": sum(refunds.values()),
            "topEvents": [
                {"id": eid, "title": titles.get(eid), **per_event[eid]}
                for eid in top_ids
            ],
        }

    def event_analytics(self, period: str) -> Dict[str, Any]:
        days = period_days(period)
        buckets = daily_buckets(days)
        events = self.supabase_admin.table("event").select("*").gte("created_at", buckets[0]).execute().data or []
        created = Counter(parse_timestamp(e["created_at"]).date().isoformat() for e in events if e.get("created_at"))
        by_type = Counter(e.get("event_type") or "other" for e in events)
        by_status = Counter(e.get("event_status") for e in events)
        return {
            "period": period,
            "series": [{"date": d, "newEvents": created[d]} for d in buckets],
            "byType": dict(by_type),
            "byStatus": dict(by_status),
            "totalNewEvents": len(events),
        }
