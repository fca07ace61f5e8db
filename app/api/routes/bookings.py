from fastapi import APIRouter, Depends, HTTPException, status, Request, Header
from typing import Optional
from app.api.deps import get_current_user
from app.services.booking_service import BookingService
from app.schemas.booking import BookingConfirmSchema, PaymentIntentCreateSchema
from app.schemas.user import CurrentUser
from app.utils.responses import success_response

router = APIRouter()
booking_service = BookingService()

@router.post("/create-intent", status_code = status.HTTP_201_CREATED)
def create_payment_intent(
    payload: PaymentIntentCreateSchema,
    user: CurrentUser = Depends(get_current_user)
):
    try:
        return success_response(booking_service.create_payment_intent(user, payload), "Payment Intent Created")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Create Stripe Payment Intent Fail: {str(e)}"
        )

@router.post("/confirm", status_code = status.HTTP_200_OK)
def confirm_booking(
    payload: BookingConfirmSchema,
    user: CurrentUser = Depends(get_current_user)
):
    try:
        return success_response(booking_service.confirm_booking(user, payload), "Booking Confirmed Successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Booking Confirmation Fail: {str(e)}"
        )

# The Web Client Also Reaches the Two Payment Steps Under /payments
payments_router = APIRouter()
payments_router.add_api_route("/create-intent", create_payment_intent, methods = ["POST"], status_code = status.HTTP_201_CREATED)
payments_router.add_api_route("/confirm", confirm_booking, methods = ["POST"], status_code = status.HTTP_200_OK)

@router.post("/webhook", include_in_schema = False)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias = "stripe-signature")
):
    # The Signature is Computed Over the Raw Body
    payload = await request.body()
    try:
        return booking_service.handle_stripe_webhook(payload, stripe_signature)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Stripe Webhook Error: {str(e)}"
        )

@router.get("/my-bookings", status_code = status.HTTP_200_OK)
def get_my_bookings(user: CurrentUser = Depends(get_current_user)):
    return success_response(booking_service.list_my_bookings(user.id), "Bookings Retrieved Successfully")

@router.get("/event/{event_id}", status_code = status.HTTP_200_OK)
def list_event_bookings(
    event_id: str,
    user: CurrentUser = Depends(get_current_user)
):
    try:
        return success_response(booking_service.get_event_bookings_for_host(event_id, user), "Event Bookings Retrieved Successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Event Bookings List Get Fail: {str(e)}"
        )

@router.get("/status/{event_id}", status_code = status.HTTP_200_OK)
def check_booking_status(
    event_id: str,
    user: CurrentUser = Depends(get_current_user)
):
    """
    Check if the current logged-in user has booked this event.
    """
    return success_response(booking_service.get_booking_status(user.id, event_id))

@router.get("/{booking_id}", status_code = status.HTTP_200_OK)
def get_booking_detail(
    booking_id: str,
    user: CurrentUser = Depends(get_current_user)
):
    try:
        return success_response(booking_service.get_booking_detail(booking_id, user), "Booking Retrieved Successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Booking Detail Found Error: {str(e)}"
        )

@router.delete("/{booking_id}", status_code = status.HTTP_200_OK)
def cancel_booking(
    booking_id: str,
    user: CurrentUser = Depends(get_current_user)
):
    try:
        return success_response(booking_service.cancel_booking(booking_id, user), "Booking Cancelled Successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Booking Cancel Fail: {str(e)}"
        )
