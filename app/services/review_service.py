import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from fastapi import HTTPException, status
from app.core.database import SupabaseService
from app.schemas.review import ReviewCreateSchema, ReviewUpdateSchema
from app.schemas.user import CurrentUser
from app.services.event_service import EventService, event_has_started

logger = logging.getLogger(__name__)

def rating_summary(ratings: List[int]) -> Dict[str, Any]:
    distribution = Counter(ratings)
    total = len(ratings)
    return {
        "averageRating": round(sum(ratings) / total, 1) if total else 0.0,
        "totalReviews": total,
        "ratingDistribution": {star: distribution.get(star, 0) for star in (5, 4, 3, 2, 1)},
    }

class ReviewService(SupabaseService):
    # Initialize the Service Needed in the Review API
    def __init__(self):
        self.event_service = EventService()
        self.table = "reviews"

    def get_review_row(self, review_id: str) -> Dict[str, Any]:
        response = self.supabase_admin.table(self.table).select("*").eq("id", review_id).execute()
        if not response.data:
            raise HTTPException(
                status_code = status.HTTP_404_NOT_FOUND,
                detail = "Review Not Found"
            )
        return response.data[0]

    def _has_participated(self, user_id: str, event_id: str) -> bool:
        participant = self.supabase_admin.table("event_participants").select("id").eq("event_id", event_id).eq("user_id", user_id).execute()
        if participant.data:
            return True
        paid = (
            self.supabase_admin.table("bookings")
            .select("id")
            .eq("event_id", event_id)
            .eq("user_id", user_id)
            .eq("payment_status", "paid")
            .execute()
        )
        return bool(paid.data)

    # Recalculate the Host Rating Aggregates Stored on the Profile
    def refresh_host_rating(self, host_id: str) -> Dict[str, Any]:
        response = self.supabase_admin.table(self.table).select("rating").eq("host_id", host_id).execute()
        summary = rating_summary([r["rating"] for r in response.data or []])
        try:
            self.supabase_admin.table("profile").update({
                "average_rating": summary["averageRating"],
                "total_reviews": summary["totalReviews"],
            }).eq("id", host_id).execute()
        except Exception as e:
            logger.warning("Failed to refresh rating of host %s: %s", host_id, e)
        return summary

    def create_review(self, user: CurrentUser, payload: ReviewCreateSchema) -> Dict[str, Any]:
        """
        Review Rules ->
            1. Only Participants May Review, and Only Once the Event Has Started
            2. One Review per User per Event
            3. Hosts Cannot Review Their Own Event
        """
        event = self.event_service.get_event_row(payload.event_id)
        if str(event.get("host_id")) == user.id:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "Hosts Cannot Review Their Own Event"
            )
        if not self._has_participated(user.id, payload.event_id):
            raise HTTPException(
                status_code = status.HTTP_403_FORBIDDEN,
                detail = "Only Participants Can Review This Event"
            )
        if event.get("event_status") not in ("past", "completed") and not event_has_started(event):
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "You Can Review an Event Once It Has Taken Place"
            )
        existing = self.supabase_admin.table(self.table).select("id").eq("event_id", payload.event_id).eq("user_id", user.id).execute()
        if existing.data:
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "You Have Already Reviewed This Event"
            )

        now = datetime.now(timezone.utc).isoformat()
        response = self.supabase_admin.table(self.table).insert({
            "user_id": user.id,
            "host_id": event["host_id"],
            "event_id": payload.event_id,
            "rating": payload.rating,
            "comment": payload.comment,
            "created_at": now,
            "updated_at": now,
        }).execute()
        review = response.data[0]
        self.refresh_host_rating(event["host_id"])
        logger.info("Review %s created for event %s", review["id"], payload.event_id)
        return review

    def update_review(self, review_id: str, user: CurrentUser, payload: ReviewUpdateSchema) -> Dict[str, Any]:
        review = self.get_review_row(review_id)
        if str(review["user_id"]) != user.id:
            raise HTTPException(
                status_code = status.HTTP_403_FORBIDDEN,
                detail = "You Can Only Edit Your Own Review"
            )
        updates = payload.model_dump(exclude_unset = True, exclude_none = True)
        if not updates:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "No Review Update Data Provided"
            )
        updates["updated_at"] = datetime.now(timezone.utc).isoformat()
        response = self.supabase_admin.table(self.table).update(updates).eq("id", review_id).execute()
        if "rating" in updates:
            self.refresh_host_rating(review["host_id"])
        return response.data[0]

    def delete_review(self, review_id: str, user: CurrentUser) -> Dict[str, str]:
        review = self.get_review_row(review_id)
        if not (user.is_admin or str(review["user_id"]) == user.id):
            raise HTTPException(
                status_code = status.HTTP_403_FORBIDDEN,
                detail = "You Can Only Delete Your Own Review"
            )
        self.supabase_admin.table(self.table).delete().eq("id", review_id).execute()
        self.refresh_host_rating(review["host_id"])
        logger.info("Review %s deleted by %s", review_id, user.id)
        return {"message": "Review Deleted Successfully"}

    def _attach_people(self, reviews: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not reviews:
            return reviews
        user_ids = list({r["user_id"] for r in reviews})
        event_ids = list({r["event_id"] for r in reviews})
        profiles = {p["id"]: p for p in self.supabase_admin.table("profile").select("id, full_name, avatar_url").in_("id", user_ids).execute().data or []}
        events = {e["id"]: e for e in self.supabase_admin.table("event").select("id, title, event_date").in_("id", event_ids).execute().data or []}
        for review in reviews:
            profile = profiles.get(review["user_id"], {})
            review["user"] = {
                "id": review["user_id"],
                "full_name": profile.get("full_name") or "Anonymous",
                "avatar_url": profile.get("avatar_url"),
            }
            event = events.get(review["event_id"], {})
            review["event"] = {"id": review["event_id"], "title": event.get("title"), "event_date": event.get("event_date")}
        return reviews

    def list_reviews(
        self,
        page: int = 1,
        limit: int = 10,
        event_id: Optional[str] = None,
        host_id: Optional[str] = None,
        user_id: Optional[str] = None,
        rating: Optional[int] = None
    ) -> Dict[str, Any]:
        query = self.supabase_admin.table(self.table).select("*", count = "exact")
        if event_id:
            query = query.eq("event_id", event_id)
        if host_id:
            query = query.eq("host_id", host_id)
        if user_id:
            query = query.eq("user_id", user_id)
        if rating:
            query = query.eq("rating", rating)
        start = (page - 1) * limit
        response = query.order("created_at", desc = True).range(start, start + limit - 1).execute()
        return {
            "items": self._attach_people(response.data or []),
            "total": response.count or 0,
            "page": page,
            "limit": limit
        }

    def get_stats(self, event_id: Optional[str] = None, host_id: Optional[str] = None) -> Dict[str, Any]:
        query = self.supabase_admin.table(self.table).select("rating")
        if event_id:
            query = query.eq("event_id", event_id)
        if host_id:
            query = query.eq("host_id", host_id)
        response = query.execute()
        return rating_summary([r["rating"] for r in response.data or []])
