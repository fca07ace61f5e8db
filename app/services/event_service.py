import logging
from collections import Counter
from datetime import datetime, timezone, date
from typing import List, Optional, Dict, Any, Iterable
from fastapi import HTTPException, UploadFile, status
from app.core.config import settings
from app.core.database import SupabaseService
from app.schemas.event import (
    EventCreateSchema,
    EventStatus,
    EventUpdateSchema,
    HOST_SETTABLE_STATUSES,
    JOINABLE_STATUSES,
)
from app.schemas.user import CurrentUser, UserRole
from app.utils.storage import StorageService

logger = logging.getLogger(__name__)

# Statuses Anyone Can Browse in the Public Listing
PUBLIC_STATUSES = JOINABLE_STATUSES + (EventStatus.PAST.value, EventStatus.COMPLETED.value)

EVENT_STATUS_TRANSITIONS: Dict[str, set] = {
    "draft": {"pending", "published", "cancelled"},
    "pending": {"published", "draft", "cancelled"},
    "published": {"open", "upcoming", "cancelled", "completed"},
    "open": {"upcoming", "past", "completed", "cancelled"},
    "upcoming": {"open", "past", "completed", "cancelled"},
    "past": {"completed"},
    "completed": set(),
    "cancelled": set(),
}

SORT_OPTIONS = {
    "date": ("event_date", False),
    "newest": ("created_at", True),
    "price_asc": ("price", False),
    "price_desc": ("price", True),
}

def validate_status_transition(current: str, new: str) -> None:
    # Setting the Same Status Again is a No-Op
    if current == new:
        return
    if new not in EVENT_STATUS_TRANSITIONS.get(current, set()):
        raise HTTPException(
            status_code = status.HTTP_409_CONFLICT,
            detail = f"Cannot Change Event Status From '{current}' to '{new}'"
        )

def capacity_fields(max_participants: Optional[int], current: int) -> Dict[str, Any]:
    # Display Values Derived From the Capacity -> Never Stored
    max_participants = max_participants or 0
    percentage = round(current / max_participants * 100, 1) if max_participants > 0 else 0.0
    return {
        "current_participants": current,
        "spots_left": max(max_participants - current, 0),
        "is_full": current >= max_participants,
        "participation_percentage": percentage,
    }

def _event_day(event: Dict[str, Any]) -> Optional[date]:
    event_date = event.get("event_date")
    return date.fromisoformat(str(event_date)[:10]) if event_date else None

def event_has_started(event: Dict[str, Any]) -> bool:
    day = _event_day(event)
    return day is not None and day <= datetime.now(timezone.utc).date()

def event_is_past(event: Dict[str, Any]) -> bool:
    day = _event_day(event)
    return day is not None and day < datetime.now(timezone.utc).date()


class EventService(SupabaseService):
    # Initialize the Service Needed in the Event API
    def __init__(self):
        self.storage = StorageService()
        self.table = "event"

    # Fetch the Raw Event Row or Fail With 404
    def get_event_row(self, event_id: str) -> Dict[str, Any]:
        response = self.supabase_admin.table(self.table).select("*").eq("id", event_id).execute()
        if not response.data:
            raise HTTPException(
                status_code = status.HTTP_404_NOT_FOUND,
                detail = "Event Not Found"
            )
        return response.data[0]

    def ensure_can_manage(self, event: Dict[str, Any], user: CurrentUser) -> None:
        if user.is_admin or str(event.get("host_id")) == user.id:
            return
        raise HTTPException(
            status_code = status.HTTP_403_FORBIDDEN,
            detail = "You are Not the Host of This Event"
        )

    # Attach Participant Counts, Capacity Values and Host Summary to a Batch of Events
    def enrich_events(self, events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not events:
            return events
        event_ids = [e["id"] for e in events]

        # One Query per Related Table, Aggregated in Python
        participant_res = self.supabase_admin.table("event_participants").select("event_id").in_("event_id", event_ids).execute()
        participant_counts = Counter(p["event_id"] for p in participant_res.data or [])
        waiting_res = self.supabase_admin.table("event_waiting_list").select("event_id").in_("event_id", event_ids).execute()
        waiting_counts = Counter(w["event_id"] for w in waiting_res.data or [])

        host_ids = list({e["host_id"] for e in events if e.get("host_id")})
        hosts = {}
        if host_ids:
            host_res = (
                self.supabase_admin.table("profile")
                .select("id, full_name, avatar_url, average_rating, total_reviews, bio")
                .in_("id", host_ids)
                .execute()
            )
            hosts = {h["id"]: h for h in host_res.data or []}

        for event in events:
            event.update(capacity_fields(event.get("max_participants"), participant_counts[event["id"]]))
            event["waiting_list_count"] = waiting_counts[event["id"]]
            host = hosts.get(event.get("host_id"))
            event["host"] = {
                "id": event.get("host_id"),
                "full_name": (host or {}).get("full_name") or "Unknown Host",
                "avatar_url": (host or {}).get("avatar_url"),
                "average_rating": (host or {}).get("average_rating") or 0,
                "total_reviews": (host or {}).get("total_reviews") or 0,
            }
        return events

    # Get the Event List
    def list_events(
        self,
        page: int = 1,
        limit: int = 10,
        event_type: Optional[str] = None,
        category: Optional[str] = None,
        event_status: Optional[str] = None,
        location: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        is_free: Optional[bool] = None,
        search: Optional[str] = None,
        sort: str = "date"
    ) -> Dict[str, Any]:
        if event_status and event_status not in PUBLIC_STATUSES:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = f"Invalid Status Filter '{event_status}'"
            )
        if sort not in SORT_OPTIONS:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = f"Invalid Sort Option '{sort}'"
            )
        if start_date and end_date and start_date > end_date:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "startDate Must Not Be After endDate"
            )

        # 1. Start the Query - Only Public Events are Listed
        query = self.supabase.table(self.table).select("*", count = "exact").eq("is_public", True)
        if event_status:
            query = query.eq("event_status", event_status)
        else:
            query = query.in_("event_status", list(JOINABLE_STATUSES))

        # 2. Apply the Filters
        if event_type:
            query = query.eq("event_type", event_type)
        if category:
            query = query.eq("category", category)
        if location:
            query = query.ilike("city", f"%{location}%")
        if start_date:
            query = query.gte("event_date", start_date.isoformat())
        if end_date:
            query = query.lte("event_date", end_date.isoformat())
        if is_free is True:
            query = query.eq("price", 0)
        elif is_free is False:
            query = query.gt("price", 0)
        if search:
            query = query.ilike("title", f"%{search}%")

        # 3. Apply Ordering and Pagination
        column, desc = SORT_OPTIONS[sort]
        start = (page - 1) * limit
        query = query.order(column, desc = desc).range(start, start + limit - 1)

        response = query.execute()
        items = self.enrich_events(response.data or [])
        return {
            "items": items,
            "total": response.count or 0,
            "page": page,
            "limit": limit
        }

    # Get the Event by Event ID
    def get_event(self, event_id: str, viewer: Optional[CurrentUser] = None) -> Dict[str, Any]:
        event = self.get_event_row(event_id)
        is_manager = viewer is not None and (viewer.is_admin or viewer.id == str(event.get("host_id")))
        hidden = not event.get("is_public", True) or event.get("event_status") in ("draft", "pending")
        if hidden and not is_manager:
            raise HTTPException(
                status_code = status.HTTP_404_NOT_FOUND,
                detail = "Event Not Found"
            )
        event = self.enrich_events([event])[0]

        # Personalise for the Caller
        if viewer is not None:
            joined = self.supabase_admin.table("event_participants").select("id").eq("event_id", event_id).eq("user_id", viewer.id).execute()
            waiting = self.supabase_admin.table("event_waiting_list").select("id").eq("event_id", event_id).eq("user_id", viewer.id).execute()
            saved = self.supabase_admin.table("saved_events").select("id").eq("event_id", event_id).eq("user_id", viewer.id).execute()
            event["is_joined"] = bool(joined.data)
            event["is_waitlisted"] = bool(waiting.data)
            event["is_saved"] = bool(saved.data)
        return event

    @staticmethod
    def _flatten_location(payload: Dict[str, Any]) -> Dict[str, Any]:
        location = payload.pop("location", None)
        if location:
            for key in ("venue", "address", "city"):
                if key in location:
                    payload[key] = location[key]
        return payload

    # Event Create Function
    def create_event(self, user: CurrentUser, payload: EventCreateSchema) -> Dict[str, Any]:
        """
        Event Create Flow ->
            1. Resolve the Initial Status -> Draft If Asked, Otherwise Verified Hosts Publish Directly
               and Unverified Hosts Wait for Admin Approval
            2. Insert the Event Row
        """
        data = self._flatten_location(payload.model_dump(mode = "json"))
        requested = data.pop("event_status", None)

        if requested == EventStatus.DRAFT.value:
            initial_status = EventStatus.DRAFT.value
        elif user.is_admin:
            initial_status = requested or EventStatus.PUBLISHED.value
        elif user.is_verified:
            initial_status = EventStatus.PUBLISHED.value
        else:
            initial_status = EventStatus.PENDING.value

        now = datetime.now(timezone.utc).isoformat()
        data.update({
            "currency": (data.get("currency") or settings.DEFAULT_CURRENCY).lower(),
            "event_status": initial_status,
            "host_id": user.id,
            "created_at": now,
            "updated_at": now,
        })

        insert_response = self.supabase.table(self.table).insert(data).execute()
        if not insert_response.data:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "Fail to Create the Event"
            )
        created = insert_response.data[0]
        logger.info("Event %s created by %s with status %s", created["id"], user.id, initial_status)
        return self.enrich_events([created])[0]

    # Update the Event
    def update_event(self, event_id: str, user: CurrentUser, payload: EventUpdateSchema) -> Dict[str, Any]:
        """
        Scenarios Needed to Be Considered:
            1. Only the Host or an Admin May Edit, Finished Events are Read Only for Hosts
            2. Status Changes Follow the Transition Table, Hosts are Limited to Draft / Pending / Cancelled
            3. Capacity Cannot Drop Below the Current Participants
            4. Replacing the Image Deletes the Old File From Storage
        """
        old_event = self.get_event_row(event_id)
        self.ensure_can_manage(old_event, user)

        if not user.is_admin and old_event["event_status"] in ("cancelled", "completed", "past"):
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = f"A {old_event['event_status'].title()} Event Can No Longer Be Edited"
            )

        updates = payload.model_dump(mode = "json", exclude_unset = True)
        location = updates.pop("location", None)
        if location:
            updates.update({k: v for k, v in location.items() if v is not None})

        # 1. Status Change
        new_status = updates.get("event_status")
        if new_status is not None:
            if not user.is_admin and new_status not in HOST_SETTABLE_STATUSES:
                raise HTTPException(
                    status_code = status.HTTP_403_FORBIDDEN,
                    detail = f"Only Admins Can Set the Status to '{new_status}'"
                )
            validate_status_transition(old_event["event_status"], new_status)

        # 2. Capacity Change
        if "max_participants" in updates:
            current = self.get_participant_count(event_id)
            if updates["max_participants"] < current:
                raise HTTPException(
                    status_code = status.HTTP_400_BAD_REQUEST,
                    detail = f"Capacity Cannot Be Lower Than the {current} Current Participants"
                )

        if "currency" in updates and updates["currency"]:
            updates["currency"] = updates["currency"].lower()

        if not updates:
            return self.enrich_events([old_event])[0]

        updates["updated_at"] = datetime.now(timezone.utc).isoformat()
        response = self.supabase_admin.table(self.table).update(updates).eq("id", event_id).execute()
        if not response.data:
            raise HTTPException(
                status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail = "Database Update Failed"
            )
        # 3. Image Change -> The Replaced File Goes Only Once the Row Points Elsewhere
        old_url = old_event.get("image_url")
        if "image_url" in updates and old_url and updates["image_url"] != old_url:
            self.storage.delete_event_image_by_url(old_url)
        if new_status == EventStatus.CANCELLED.value and old_event["event_status"] != new_status:
            self.cancel_pending_bookings(event_id)
        return self.enrich_events([response.data[0]])[0]

    def set_status(self, event_id: str, new_status: str) -> Dict[str, Any]:
        # Admin Moderation Entry Point -> Transition Table Applies, No Ownership Check
        event = self.get_event_row(event_id)
        validate_status_transition(event["event_status"], new_status)
        if event["event_status"] == new_status:
            return self.enrich_events([event])[0]
        response = self.supabase_admin.table(self.table).update({
            "event_status": new_status,
            "updated_at": datetime.now(timezone.utc).isoformat()
        }).eq("id", event_id).execute()
        if new_status == EventStatus.CANCELLED.value:
            self.cancel_pending_bookings(event_id)
        logger.info("Event %s moved from %s to %s", event_id, event["event_status"], new_status)
        return self.enrich_events([response.data[0]])[0]

    def cancel_pending_bookings(self, event_id: str) -> int:
        # Seats Held by Unpaid Bookings are Released When the Event is Cancelled
        response = (
            self.supabase_admin.table("bookings")
            .update({"status": "cancelled", "updated_at": datetime.now(timezone.utc).isoformat()})
            .eq("event_id", event_id)
            .eq("status", "pending")
            .execute()
        )
        return len(response.data or [])

    def get_participant_count(self, event_id: str) -> int:
        response = self.supabase_admin.table("event_participants").select("*", count = "exact", head = True).eq("event_id", event_id).execute()
        return response.count or 0

    # Delete the Event by Event ID
    def delete_event(self, event_id: str, user: CurrentUser) -> Dict[str, str]:
        event = self.get_event_row(event_id)
        self.ensure_can_manage(event, user)

        # If the Event Got Paid Bookings Inside Already, the System Should Reject the Delete Operation
        bookings = self.supabase_admin.table("bookings").select("id", count = "exact").eq("event_id", event_id).eq("payment_status", "paid").execute()
        if (bookings.count or 0) > 0:
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "Cannot Delete Event, There Are Active Bookings Associate With It."
            )
        self.purge_event(event)
        return {"message": "Event Successfully Deleted"}

    def purge_event(self, event: Dict[str, Any]) -> None:
        event_id = event["id"]
        for table in ("event_participants", "event_waiting_list", "saved_events", "event_reports"):
            self.supabase_admin.table(table).delete().eq("event_id", event_id).execute()
        # Charged Bookings Outlive the Event as Money History, Never Charged Ones Go With It
        self.supabase_admin.table("bookings").delete().eq("event_id", event_id).in_("payment_status", ["pending", "failed"]).execute()
        self.supabase_admin.table("bookings").update({"event_title": event.get("title")}).eq("event_id", event_id).execute()
        if event.get("image_url"):
            self.storage.delete_event_image_by_url(event["image_url"])
        self.supabase_admin.table(self.table).delete().eq("id", event_id).execute()
        logger.info("Event %s deleted", event_id)

    def upload_image(self, event_id: str, user: CurrentUser, file: UploadFile) -> Dict[str, Any]:
        event = self.get_event_row(event_id)
        self.ensure_can_manage(event, user)
        result = self.storage.upload_event_image(file, event_id)
        self.supabase_admin.table(self.table).update({"image_url": result["url"]}).eq("id", event_id).execute()
        if event.get("image_url") and event["image_url"] != result["url"]:
            self.storage.delete_event_image_by_url(event["image_url"])
        return result

    def _events_by_ids(self, event_ids: Iterable[str], page: int, limit: int) -> Dict[str, Any]:
        event_ids = list(event_ids)
        if not event_ids:
            return {"items": [], "total": 0, "page": page, "limit": limit}
        start = (page - 1) * limit
        response = (
            self.supabase_admin.table(self.table)
            .select("*", count = "exact")
            .in_("id", event_ids)
            .order("event_date")
            .range(start, start + limit - 1)
            .execute()
        )
        return {
            "items": self.enrich_events(response.data or []),
            "total": response.count or 0,
            "page": page,
            "limit": limit
        }

    # Events the User Joined
    def list_joined_events(self, user_id: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        response = self.supabase_admin.table("event_participants").select("event_id").eq("user_id", user_id).execute()
        return self._events_by_ids((p["event_id"] for p in response.data or []), page, limit)

    # Events the User Bookmarked
    def list_saved_events(self, user_id: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        response = self.supabase_admin.table("saved_events").select("event_id").eq("user_id", user_id).execute()
        return self._events_by_ids((s["event_id"] for s in response.data or []), page, limit)

    # Events the Host Created -> All Statuses Including Drafts
    def list_hosted_events(
        self,
        host_id: str,
        event_type: Optional[str] = None,
        location: Optional[str] = None,
        event_status: Optional[str] = None,
        page: int = 1,
        limit: int = 10
    ) -> Dict[str, Any]:
        query = self.supabase_admin.table(self.table).select("*", count = "exact").eq("host_id", host_id)
        if event_type:
            query = query.eq("event_type", event_type)
        if location:
            query = query.ilike("city", f"%{location}%")
        if event_status:
            query = query.eq("event_status", event_status)
        start = (page - 1) * limit
        response = query.order("event_date", desc = True).range(start, start + limit - 1).execute()
        return {
            "items": self.enrich_events(response.data or []),
            "total": response.count or 0,
            "page": page,
            "limit": limit
        }

    def report_event(self, event_id: str, user: CurrentUser, reason: str) -> Dict[str, Any]:
        event = self.get_event_row(event_id)
        if str(event.get("host_id")) == user.id:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "You Cannot Report Your Own Event"
            )
        existing = (
            self.supabase_admin.table("event_reports")
            .select("id")
            .eq("event_id", event_id)
            .eq("reporter_id", user.id)
            .eq("status", "open")
            .execute()
        )
        if existing.data:
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "You Have Already Reported This Event"
            )
        response = self.supabase_admin.table("event_reports").insert({
            "event_id": event_id,
            "reporter_id": user.id,
            "reason": reason,
            "status": "open",
            "created_at": datetime.now(timezone.utc).isoformat()
        }).execute()
        logger.info("Event %s reported by %s", event_id, user.id)
        return response.data[0]
