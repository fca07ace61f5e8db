import logging
from datetime import datetime, timezone
from fastapi import HTTPException, status
from typing import Dict, Any, List, Optional
from app.core.database import SupabaseService
from app.schemas.event import JOINABLE_STATUSES
from app.schemas.user import CurrentUser
from app.services.event_service import EventService, event_is_past, capacity_fields

logger = logging.getLogger(__name__)

class EventParticipantService(SupabaseService):
    # Initialize the Service Needed to be Used in Event Participation API
    def __init__(self, event_service: Optional[EventService] = None):
        self.event_service = event_service or EventService()
        self.table = "event_participants"
        self.waiting_table = "event_waiting_list"

    def create_participant(self, user_id: str, event_id: str) -> Dict[str, Any]:
        """
        Register the User For An Event
        Use Upsert to Prevent Duplicates If the Stripe Webhook Fires Twice
        """
        response = self.supabase_admin.table(self.table).upsert({
            "user_id": user_id,
            "event_id": event_id,
            "joined_at": datetime.now(timezone.utc).isoformat()
        }, on_conflict = "event_id,user_id").execute()

        if not response.data:
            raise HTTPException(
                status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail = "Fail to Register Participant"
            )
        # A Participant No Longer Needs the Waiting List Entry
        self.supabase_admin.table(self.waiting_table).delete().eq("event_id", event_id).eq("user_id", user_id).execute()
        return response.data[0]

    def get_participant_count(self, event_id: str) -> int:
        # Count How Many People Have a Seat for the Event
        response = self.supabase_admin.table(self.table).select("*", count = "exact", head = True).eq("event_id", event_id).execute()
        return response.count or 0

    def check_participant_exists(self, user_id: str, event_id: str) -> bool:
        response = self.supabase_admin.table(self.table).select("id").eq("user_id", user_id).eq("event_id", event_id).execute()
        return len(response.data or []) > 0

    def check_waitlisted(self, user_id: str, event_id: str) -> bool:
        response = self.supabase_admin.table(self.waiting_table).select("id").eq("user_id", user_id).eq("event_id", event_id).execute()
        return len(response.data or []) > 0

    def ensure_joinable(self, event: Dict[str, Any], user: CurrentUser) -> None:
        if event.get("event_status") not in JOINABLE_STATUSES:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = f"Event is Not Open for Registration (Status: {event.get('event_status')})"
            )
        if event_is_past(event):
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "Event Has Already Taken Place"
            )
        if str(event.get("host_id")) == user.id:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "Hosts Cannot Join Their Own Event"
            )

    def _summary(self, event: Dict[str, Any], message: str, **extra) -> Dict[str, Any]:
        current = self.get_participant_count(event["id"])
        data = {"event_id": event["id"], **capacity_fields(event.get("max_participants"), current)}
        data.update(extra)
        return {"message": message, "data": data}

    # Join Flow -> Seat If Available, Otherwise the Waiting List
    def join_event(self, event_id: str, user: CurrentUser) -> Dict[str, Any]:
        event = self.event_service.get_event_row(event_id)
        self.ensure_joinable(event, user)

        if self.check_participant_exists(user.id, event_id):
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "You Have Already Joined This Event"
            )
        if (event.get("price") or 0) > 0:
            raise HTTPException(
                status_code = status.HTTP_402_PAYMENT_REQUIRED,
                detail = "This Event Requires Payment, Please Use the Booking Flow"
            )

        if self.get_participant_count(event_id) >= (event.get("max_participants") or 0):
            if self.check_waitlisted(user.id, event_id):
                raise HTTPException(
                    status_code = status.HTTP_409_CONFLICT,
                    detail = "You are Already on the Waiting List"
                )
            self.supabase_admin.table(self.waiting_table).insert({
                "event_id": event_id,
                "user_id": user.id,
                "created_at": datetime.now(timezone.utc).isoformat()
            }).execute()
            logger.info("User %s waitlisted for full event %s", user.id, event_id)
            return self._summary(event, "Event is Full, You Have Been Added to the Waiting List", joined = False, waitlisted = True)

        self.create_participant(user.id, event_id)
        logger.info("User %s joined event %s", user.id, event_id)
        return self._summary(event, "Successfully Joined the Event", joined = True, waitlisted = False)

    # Leave Flow -> Free the Seat and Promote the Next Person in Line
    def leave_event(self, event_id: str, user: CurrentUser) -> Dict[str, Any]:
        event = self.event_service.get_event_row(event_id)

        if self.check_waitlisted(user.id, event_id):
            self.supabase_admin.table(self.waiting_table).delete().eq("event_id", event_id).eq("user_id", user.id).execute()
            return self._summary(event, "Removed From the Waiting List", joined = False, waitlisted = False)

        if not self.check_participant_exists(user.id, event_id):
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "You are Not a Participant of This Event"
            )
        paid = (
            self.supabase_admin.table("bookings")
            .select("id")
            .eq("event_id", event_id)
            .eq("user_id", user.id)
            .eq("payment_status", "paid")
            .gt("amount_total", 0)
            .execute()
        )
        if paid.data:
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "This Seat Was Paid For, Please Cancel the Booking Instead"
            )

        # A Free Booking Row for the Same Seat is Closed Together With the Participation
        self.supabase_admin.table("bookings").update({
            "status": "cancelled",
            "updated_at": datetime.now(timezone.utc).isoformat()
        }).eq("event_id", event_id).eq("user_id", user.id).eq("status", "confirmed").execute()
        self.remove_participant(event_id, user.id)
        return self._summary(event, "Successfully Left the Event", joined = False, waitlisted = False)

    def remove_participant(self, event_id: str, user_id: str) -> Optional[str]:
        self.supabase_admin.table(self.table).delete().eq("event_id", event_id).eq("user_id", user_id).execute()
        logger.info("User %s removed from event %s", user_id, event_id)
        return self.promote_from_waiting_list(event_id)

    def promote_from_waiting_list(self, event_id: str) -> Optional[str]:
        # Promote the Oldest Waiting Entry While a Seat is Free, Paid Events Are Left to the Booking Flow
        event = self.event_service.get_event_row(event_id)
        if (event.get("price") or 0) > 0 or event.get("event_status") not in JOINABLE_STATUSES:
            return None
        if self.get_participant_count(event_id) >= (event.get("max_participants") or 0):
            return None
        response = self.supabase_admin.table(self.waiting_table).select("*").eq("event_id", event_id).order("created_at").limit(1).execute()
        if not response.data:
            return None
        promoted = response.data[0]["user_id"]
        self.create_participant(promoted, event_id)
        logger.info("User %s promoted from waiting list of event %s", promoted, event_id)
        return promoted

    def save_event(self, event_id: str, user: CurrentUser) -> Dict[str, Any]:
        self.event_service.get_event_row(event_id)
        existing = self.supabase_admin.table("saved_events").select("id").eq("event_id", event_id).eq("user_id", user.id).execute()
        if not existing.data:
            self.supabase_admin.table("saved_events").insert({
                "event_id": event_id,
                "user_id": user.id,
                "created_at": datetime.now(timezone.utc).isoformat()
            }).execute()
        return {"event_id": event_id, "is_saved": True}

    def unsave_event(self, event_id: str, user: CurrentUser) -> Dict[str, Any]:
        self.supabase_admin.table("saved_events").delete().eq("event_id", event_id).eq("user_id", user.id).execute()
        return {"event_id": event_id, "is_saved": False}

    # Host View of the Participants and the Waiting List
    def list_participants(self, event_id: str, user: CurrentUser) -> Dict[str, List[Dict[str, Any]]]:
        event = self.event_service.get_event_row(event_id)
        self.event_service.ensure_can_manage(event, user)

        participants = self.supabase_admin.table(self.table).select("*").eq("event_id", event_id).order("joined_at").execute().data or []
        waiting = self.supabase_admin.table(self.waiting_table).select("*").eq("event_id", event_id).order("created_at").execute().data or []

        user_ids = list({row["user_id"] for row in participants + waiting})
        profiles = {}
        if user_ids:
            profile_res = self.supabase_admin.table("profile").select("id, full_name, email, avatar_url").in_("id", user_ids).execute()
            profiles = {p["id"]: p for p in profile_res.data or []}

        def with_profile(row):
            profile = profiles.get(row["user_id"], {})
            return {
                **row,
                "full_name": profile.get("full_name") or "Unknown",
                "email": profile.get("email"),
                "avatar_url": profile.get("avatar_url"),
            }

        return {
            "participants": [with_profile(p) for p in participants],
            "waiting_list": [with_profile(w) for w in waiting],
        }
