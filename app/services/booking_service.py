import logging
from fastapi import HTTPException, status
from typing import Optional, Dict, Any, List, Tuple
from datetime import datetime, timedelta, timezone
from app.core.config import settings
from app.core.database import SupabaseService
from app.schemas.booking import BookingConfirmSchema, BookingStatus, PaymentIntentCreateSchema, PaymentStatus
from app.schemas.user import CurrentUser
from app.services.event_service import EventService
from app.services.event_participant_service import EventParticipantService # -> Helper Service
from app.utils.payments import StripeGateway, from_minor_units, to_minor_units

logger = logging.getLogger(__name__)

FAILED_INTENT_STATUSES = ("requires_payment_method", "canceled")

class BookingService(SupabaseService):
    # Initialize the Service Needed for Booking API
    def __init__(self):
        self.event_service = EventService()
        self.event_participant_service = EventParticipantService(self.event_service)
        self.gateway = StripeGateway()
        self.table = "bookings"

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def get_booking_row(self, booking_id: str) -> Dict[str, Any]:
        response = self.supabase_admin.table(self.table).select("*").eq("id", booking_id).execute()
        if not response.data:
            raise HTTPException(
                status_code = status.HTTP_404_NOT_FOUND,
                detail = "Booking Not Found"
            )
        return response.data[0]

    def _ensure_owner(self, booking: Dict[str, Any], user: CurrentUser) -> None:
        if user.is_admin or str(booking["user_id"]) == user.id:
            return
        raise HTTPException(
            status_code = status.HTTP_403_FORBIDDEN,
            detail = "You Do Not Have Access to This Booking"
        )

    def _update(self, booking_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
        values["updated_at"] = self._now()
        response = self.supabase_admin.table(self.table).update(values).eq("id", booking_id).execute()
        return response.data[0] if response.data else values

    def _live_bookings(self, user_id: str, event_id: str) -> List[Dict[str, Any]]:
        response = (
            self.supabase_admin.table(self.table)
            .select("*")
            .eq("user_id", user_id)
            .eq("event_id", event_id)
            .in_("status", [BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value])
            .execute()
        )
        return response.data or []

    def paid_booking(self, user_id: str, event_id: str) -> Optional[Dict[str, Any]]:
        for booking in self._live_bookings(user_id, event_id):
            if booking.get("payment_status") == PaymentStatus.PAID.value:
                return booking
        return None

    @staticmethod
    def _present(booking: Dict[str, Any], **extra) -> Dict[str, Any]:
        # Amounts are Stored in Minor Units, Clients Receive Major Units
        return {**booking, "amount": from_minor_units(booking.get("amount_total")), **extra}

    # Step 1 of the Payment Flow -> Hold a Seat and Create the Stripe Payment Intent
    def create_payment_intent(self, user: CurrentUser, payload: PaymentIntentCreateSchema) -> Dict[str, Any]:
        # 1. Fetch the Event Detail First
        event = self.event_service.get_event_row(payload.event_id)
        self.event_participant_service.ensure_joinable(event, user)

        # 2. Check the Accessibility to Purchase a Ticket
        # 2.1 One Seat per User per Event
        if self.event_participant_service.check_participant_exists(user.id, payload.event_id):
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "You Are Already Registered for This Event"
            )

        if self.paid_booking(user.id, payload.event_id):
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "You Already Hold a Paid Booking for This Event"
            )

        # 2.2 Sold Out? Confirmed Seats Plus Pending Bookings Still Inside the Payment Hold Window
        confirmed_count = self.event_participant_service.get_participant_count(payload.event_id)
        hold_threshold = (datetime.now(timezone.utc) - timedelta(minutes = settings.PAYMENT_HOLD_MINUTES)).isoformat()
        pending_response = (
            self.supabase_admin.table(self.table)
            .select("*", count = "exact", head = True)
            .eq("event_id", payload.event_id)
            .eq("status", BookingStatus.PENDING.value)
            .neq("user_id", user.id)
            .gte("created_at", hold_threshold)
            .execute()
        )
        total_held = confirmed_count + (pending_response.count or 0)
        if total_held + 1 > (event.get("max_participants") or 0):
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "The Event Ticket is Sold Out"
            )

        # 2.3 Drop Any Stale Pending Booking of This User for the Same Event
        stale = (
            self.supabase_admin.table(self.table)
            .select("*")
            .eq("event_id", payload.event_id)
            .eq("user_id", user.id)
            .eq("status", BookingStatus.PENDING.value)
            .execute()
        )
        for booking in stale.data or []:
            if booking.get("stripe_payment_intent_id"):
                self.gateway.cancel_payment_intent(booking["stripe_payment_intent_id"])
            self._update(booking["id"], {"status": BookingStatus.CANCELLED.value, "payment_status": PaymentStatus.FAILED.value})

        info = payload.participant_info
        currency = (payload.currency or event.get("currency") or settings.DEFAULT_CURRENCY).lower()
        amount_total = to_minor_units(event.get("price") or 0)
        base_row = {
            "user_id": user.id,
            "event_id": payload.event_id,
            "quantity": 1,
            "currency": currency,
            "participant_name": info.full_name if info else user.full_name,
            "participant_email": info.email if info else user.email,
            "participant_phone": info.phone if info else None,
            "created_at": self._now(),
            "updated_at": self._now(),
        }

        # 3. Handle the Free Event -> Confirmed Immediately, No Intent Needed
        if amount_total == 0:
            self.event_participant_service.create_participant(user.id, payload.event_id)
            new_booking = self.supabase_admin.table(self.table).insert({
                **base_row,
                "amount_total": 0,
                "status": BookingStatus.CONFIRMED.value,
                "payment_status": PaymentStatus.PAID.value,
            }).execute()
            booking = new_booking.data[0]
            logger.info("Free booking %s confirmed for event %s", booking["id"], payload.event_id)
            return {
                "booking_id": booking["id"],
                "client_secret": None,
                "payment_intent_id": None,
                "amount": 0.0,
                "currency": currency,
                "status": BookingStatus.CONFIRMED.value,
            }

        # 4. Handle the Paid Event -> Create the Pending Booking First
        booking_response = self.supabase_admin.table(self.table).insert({
            **base_row,
            "amount_total": amount_total,
            "status": BookingStatus.PENDING.value,
            "payment_status": PaymentStatus.PENDING.value,
        }).execute()
        booking_id = booking_response.data[0]["id"]

        # 4.1 Call the Stripe API, Roll Back the Booking Row If Stripe Fails
        try:
            intent = self.gateway.create_payment_intent(
                amount = amount_total,
                currency = currency,
                metadata = {
                    "booking_id": str(booking_id),
                    "user_id": user.id,
                    "event_id": str(payload.event_id),
                    "event_title": event.get("title", ""),
                },
                receipt_email = base_row["participant_email"],
            )
        except HTTPException:
            self.supabase_admin.table(self.table).delete().eq("id", booking_id).execute()
            raise

        self._update(booking_id, {"stripe_payment_intent_id": intent["id"]})
        logger.info("Payment intent %s created for booking %s", intent["id"], booking_id)
        return {
            "booking_id": booking_id,
            "client_secret": intent["client_secret"],
            "publishable_key": settings.STRIPE_PUBLISHABLE_KEY or None,
            "payment_intent_id": intent["id"],
            "amount": from_minor_units(amount_total),
            "currency": currency,
            "status": BookingStatus.PENDING.value,
        }

    # Helper Function to Fulfil the Booking -> Safe to Call Twice
    def _fulfill_booking(self, booking_id: str, payment_intent_id: Optional[str], amount_received: Optional[int] = None) -> Dict[str, Any]:
        booking = self.get_booking_row(booking_id)

        # Idempotency Check -> Checking the DB Before Doing Any Work
        if booking.get("payment_status") in (PaymentStatus.PAID.value, PaymentStatus.REFUNDED.value):
            logger.info("Booking %s is already settled, skipping", booking_id)
            return booking

        # Money Arriving for a Booking That Can No Longer Get a Seat Goes Straight Back
        intent_id = payment_intent_id or booking.get("stripe_payment_intent_id")
        if booking.get("status") == BookingStatus.CANCELLED.value:
            return self._refund_unseated(booking, intent_id, amount_received, "booking was cancelled")
        if not self.event_participant_service.check_participant_exists(booking["user_id"], booking["event_id"]):
            event = self.event_service.get_event_row(booking["event_id"])
            if self.event_participant_service.get_participant_count(booking["event_id"]) >= (event.get("max_participants") or 0):
                return self._refund_unseated(booking, intent_id, amount_received, "event is full")

        values = {
            "status": BookingStatus.CONFIRMED.value,
            "payment_status": PaymentStatus.PAID.value,
            "stripe_payment_intent_id": intent_id,
        }
        if amount_received:
            values["amount_total"] = amount_received
        updated = self._update(booking_id, values)

        # Issue the Seat
        self.event_participant_service.create_participant(booking["user_id"], booking["event_id"])
        logger.info("Booking %s fulfilled", booking_id)
        return updated

    def _refund_unseated(self, booking: Dict[str, Any], intent_id: Optional[str], amount: Optional[int], reason: str) -> Dict[str, Any]:
        refund = self.gateway.refund(intent_id, amount or booking.get("amount_total"))
        logger.warning("Payment %s for booking %s refunded, %s", intent_id, booking["id"], reason)
        return self._update(booking["id"], {
            "status": BookingStatus.CANCELLED.value,
            "payment_status": PaymentStatus.REFUNDED.value,
            "stripe_payment_intent_id": intent_id,
            "stripe_refund_id": refund["id"],
        })

    def _mark_failed(self, booking: Dict[str, Any]) -> Dict[str, Any]:
        if booking.get("payment_status") != PaymentStatus.PENDING.value:
            return booking
        return self._update(booking["id"], {"payment_status": PaymentStatus.FAILED.value})

    # Step 2 of the Payment Flow -> Verify the Intent With Stripe and Confirm the Booking
    def confirm_booking(self, user: CurrentUser, payload: BookingConfirmSchema) -> Dict[str, Any]:
        booking = self.get_booking_row(payload.booking_id)
        self._ensure_owner(booking, user)

        if booking.get("payment_status") == PaymentStatus.PAID.value:
            return self._present(booking)
        if booking.get("status") == BookingStatus.CANCELLED.value:
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "Booking Has Been Cancelled"
            )

        stored_intent = booking.get("stripe_payment_intent_id")
        intent_id = payload.payment_intent_id or stored_intent
        if not intent_id:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "No Payment Intent Associated With This Booking"
            )
        if stored_intent and payload.payment_intent_id and payload.payment_intent_id != stored_intent:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "Payment Intent Does Not Match the Booking"
            )

        intent = self.gateway.retrieve_payment_intent(intent_id)
        if str(intent["metadata"].get("booking_id")) != str(booking["id"]):
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "Payment Intent Does Not Match the Booking"
            )

        if intent["status"] == "succeeded":
            fulfilled = self._fulfill_booking(booking["id"], intent["id"], intent.get("amount_received"))
            if fulfilled.get("payment_status") == PaymentStatus.REFUNDED.value:
                raise HTTPException(
                    status_code = status.HTTP_409_CONFLICT,
                    detail = "The Event Sold Out Before Payment Completed, Your Payment Has Been Refunded"
                )
            return self._present(fulfilled)
        if intent["status"] in FAILED_INTENT_STATUSES:
            self._mark_failed(booking)
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "Payment Failed, Please Try Another Payment Method"
            )
        raise HTTPException(
            status_code = status.HTTP_400_BAD_REQUEST,
            detail = f"Payment Not Completed (Status: {intent['status']})"
        )

    # Handle Stripe Webhook
    def handle_stripe_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, str]:
        event = self.gateway.construct_event(payload, signature)
        event_type = event["type"]
        intent = event["data"]["object"]
        booking_id = (intent.get("metadata") or {}).get("booking_id")

        if event_type in ("payment_intent.succeeded", "payment_intent.payment_failed"):
            if not booking_id:
                logger.warning("Webhook %s received without booking id", event_type)
                return {"status": "ignored"}
            if event_type == "payment_intent.succeeded":
                self._fulfill_booking(booking_id, intent.get("id"), intent.get("amount_received"))
            else:
                self._mark_failed(self.get_booking_row(booking_id))
        else:
            logger.debug("Ignoring Stripe event %s", event_type)
        return {"status": "success"}

    def _attach_events(self, bookings: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        event_ids = list({b["event_id"] for b in bookings})
        if not event_ids:
            return bookings
        response = (
            self.supabase_admin.table("event")
            .select("id, title, event_date, start_time, venue, city, image_url, event_status, host_id")
            .in_("id", event_ids)
            .execute()
        )
        events = {e["id"]: e for e in response.data or []}
        return [self._present(b, event = events.get(b["event_id"])) for b in bookings]

    # Get All Booking Details of the User
    def list_my_bookings(self, user_id: str) -> List[Dict[str, Any]]:
        response = self.supabase_admin.table(self.table).select("*").eq("user_id", user_id).order("created_at", desc = True).execute()
        return self._attach_events(response.data or [])

    # Get Specific Booking Detail -> Booker, Event Host or Admin
    def get_booking_detail(self, booking_id: str, user: CurrentUser) -> Dict[str, Any]:
        booking = self.get_booking_row(booking_id)
        # The Event May Have Been Deleted, the Booking Row Keeps Its Title
        found = self.supabase_admin.table("event").select("*").eq("id", booking["event_id"]).execute().data
        event = found[0] if found else None
        host_id = event.get("host_id") if event else None
        if not (user.is_admin or str(booking["user_id"]) == user.id or str(host_id) == user.id):
            raise HTTPException(
                status_code = status.HTTP_403_FORBIDDEN,
                detail = "You Do Not Have Access to This Booking"
            )
        return self._present(booking, event = event)

    # Event Host Gets the Bookings For Their Own Event
    def get_event_bookings_for_host(self, event_id: str, user: CurrentUser) -> List[Dict[str, Any]]:
        event = self.event_service.get_event_row(event_id)
        self.event_service.ensure_can_manage(event, user)
        response = self.supabase_admin.table(self.table).select("*").eq("event_id", event_id).order("created_at", desc = True).execute()
        return [self._present(b) for b in response.data or []]

    # Cancel Flow -> Refund Paid Bookings, Release the Seat
    def cancel_booking(self, booking_id: str, user: CurrentUser) -> Dict[str, Any]:
        booking = self.get_booking_row(booking_id)
        self._ensure_owner(booking, user)
        return self._cancel(booking)

    def _cancel(self, booking: Dict[str, Any]) -> Dict[str, Any]:
        updated, _ = self._close(booking)
        return self._present(updated)

    def _close(self, booking: Dict[str, Any]) -> Tuple[Dict[str, Any], Optional[str]]:
        # Cancel the Row, Settle the Money, Release the Seat -> (Updated Booking, Promoted User ID)
        current = booking.get("status")
        if current == BookingStatus.CANCELLED.value:
            raise HTTPException(
                status_code = status.HTTP_400_BAD_REQUEST,
                detail = "Booking is Already Cancelled"
            )
        if current == BookingStatus.COMPLETED.value:
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "A Completed Booking Cannot Be Cancelled"
            )

        values = {"status": BookingStatus.CANCELLED.value}
        intent_id = booking.get("stripe_payment_intent_id")
        if booking.get("payment_status") == PaymentStatus.PAID.value and (booking.get("amount_total") or 0) > 0:
            refund = self.gateway.refund(intent_id, booking.get("amount_total"))
            values.update({"payment_status": PaymentStatus.REFUNDED.value, "stripe_refund_id": refund["id"]})
        elif booking.get("payment_status") == PaymentStatus.PENDING.value and intent_id:
            self.gateway.cancel_payment_intent(intent_id)

        updated = self._update(booking["id"], values)
        promoted = None
        if current == BookingStatus.CONFIRMED.value:
            promoted = self.event_participant_service.remove_participant(booking["event_id"], booking["user_id"])
        logger.info("Booking %s cancelled", booking["id"])
        return updated, promoted

    # Host Removes an Attendee -> A Paid Seat is Refunded Along With the Seat Release
    def remove_attendee(self, event_id: str, participant_id: str, user: CurrentUser) -> Dict[str, Any]:
        event = self.event_service.get_event_row(event_id)
        self.event_service.ensure_can_manage(event, user)
        if not self.event_participant_service.check_participant_exists(participant_id, event_id):
            raise HTTPException(
                status_code = status.HTTP_404_NOT_FOUND,
                detail = "Participant Not Found"
            )

        seat_booking = next(
            (b for b in self._live_bookings(participant_id, event_id) if b.get("status") == BookingStatus.CONFIRMED.value),
            None
        )
        if seat_booking:
            _, promoted = self._close(seat_booking)
        else:
            promoted = self.event_participant_service.remove_participant(event_id, participant_id)
        return {
            "removed_user_id": participant_id,
            "promoted_user_id": promoted,
            "cancelled_booking_id": seat_booking["id"] if seat_booking else None,
        }

    # Check If the User Holds a Confirmed Seat for the Event
    def get_booking_status(self, user_id: str, event_id: str) -> Dict[str, Any]:
        response = (
            self.supabase_admin.table(self.table)
            .select("id, status, payment_status")
            .eq("user_id", user_id)
            .eq("event_id", event_id)
            .eq("status", BookingStatus.CONFIRMED.value)
            .execute()
        )
        if response.data:
            return {
                "has_booked": True,
                "booking_id": response.data[0]["id"],
                "status": response.data[0]["status"]
            }
        return {
            "has_booked": False,
            "booking_id": None,
            "status": None
        }

    # Admin Moderation
    def admin_confirm(self, booking_id: str) -> Dict[str, Any]:
        booking = self.get_booking_row(booking_id)
        if booking.get("status") != BookingStatus.PENDING.value:
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = f"Only Pending Bookings Can Be Confirmed (Status: {booking.get('status')})"
            )
        updated = self._update(booking_id, {"status": BookingStatus.CONFIRMED.value})
        self.event_participant_service.create_participant(booking["user_id"], booking["event_id"])
        return self._present(updated)

    def admin_cancel(self, booking_id: str) -> Dict[str, Any]:
        return self._cancel(self.get_booking_row(booking_id))

    def admin_refund(self, booking_id: str) -> Dict[str, Any]:
        booking = self.get_booking_row(booking_id)
        if booking.get("payment_status") != PaymentStatus.PAID.value:
            raise HTTPException(
                status_code = status.HTTP_409_CONFLICT,
                detail = "Only Paid Bookings Can Be Refunded"
            )
        return self._cancel(booking)

    def refund_all_for_event(self, event_id: str) -> int:
        # Used Before an Admin Deletes an Event -> Every Paid Seat Gets Its Money Back
        response = self.supabase_admin.table(self.table).select("*").eq("event_id", event_id).neq("status", BookingStatus.CANCELLED.value).execute()
        count = 0
        for booking in response.data or []:
            if booking.get("status") == BookingStatus.COMPLETED.value:
                continue
            self._cancel(booking)
            count += 1
        return count
