from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import Optional
from app.api.deps import get_admin_user
from app.core.config import settings
from app.services.admin_service import AdminService
from app.services.review_service import ReviewService
from app.schemas.event import EventStatus, EventStatusUpdate, EventUpdateSchema
from app.schemas.user import CurrentUser, RoleUpdate, StatusReason
from app.utils.responses import paged_response, success_response

router = APIRouter()
admin_service = AdminService()
review_service = ReviewService()

PAGE = Query(1, ge = 1)
LIMIT = Query(settings.DEFAULT_PAGE_SIZE, ge = 1, le = settings.MAX_PAGE_SIZE)

@router.get("/stats")
def get_platform_stats(admin: CurrentUser = Depends(get_admin_user)):
    try:
        return success_response(admin_service.get_stats(), "Platform Stats Retrieved")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Platform Stats Fail: {str(e)}"
        )

# User Moderation
@router.get("/users")
def list_users(
    page: int = PAGE,
    limit: int = LIMIT,
    search: Optional[str] = None,
    role: Optional[str] = None,
    user_status: Optional[str] = Query(None, alias = "status"),
    admin: CurrentUser = Depends(get_admin_user)
):
    result = admin_service.list_users(search, role, user_status, page, limit)
    return paged_response(result["items"], page, limit, result["total"], "Users Retrieved Successfully")

@router.get("/users/{user_id}")
def get_user(user_id: str, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.get_user(user_id))

@router.get("/users/{user_id}/activity")
def get_user_activity(
    user_id: str,
    limit: int = Query(20, ge = 1, le = 100),
    admin: CurrentUser = Depends(get_admin_user)
):
    return success_response(admin_service.get_user_activity(user_id, limit))

@router.put("/users/{user_id}/role")
def change_user_role(user_id: str, payload: RoleUpdate, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.change_role(admin, user_id, payload.role), "User Role Updated")

@router.api_route("/users/{user_id}/verify", methods = ["PATCH", "POST"])
def verify_user(user_id: str, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.verify_user(user_id), "User Verified")

@router.api_route("/users/{user_id}/ban", methods = ["PUT", "PATCH", "POST"])
def ban_user(user_id: str, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.ban_user(admin, user_id), "User Banned")

@router.api_route("/users/{user_id}/unban", methods = ["PUT", "PATCH", "POST"])
def unban_user(user_id: str, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.unban_user(user_id), "User Unbanned")

@router.delete("/users/{user_id}")
def delete_user(user_id: str, admin: CurrentUser = Depends(get_admin_user)):
    result = admin_service.delete_user(admin, user_id)
    return success_response(None, result["message"])

# Host Applications and Suspensions
@router.get("/hosts")
def list_hosts(
    page: int = PAGE,
    limit: int = LIMIT,
    host_status: Optional[str] = Query(None, alias = "status"),
    admin: CurrentUser = Depends(get_admin_user)
):
    result = admin_service.list_hosts(host_status, page, limit)
    return paged_response(result["items"], page, limit, result["total"], "Hosts Retrieved Successfully")

@router.patch("/hosts/{user_id}/approve")
def approve_host(user_id: str, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.approve_host(user_id), "Host Approved")

@router.patch("/hosts/{user_id}/reject")
def reject_host(user_id: str, payload: Optional[StatusReason] = None, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.reject_host(user_id, payload.reason if payload else None), "Host Application Rejected")

@router.patch("/hosts/{user_id}/suspend")
def suspend_host(user_id: str, payload: Optional[StatusReason] = None, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.suspend_host(user_id, payload.reason if payload else None), "Host Suspended")

@router.patch("/hosts/{user_id}/reinstate")
def reinstate_host(user_id: str, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.reinstate_host(user_id), "Host Reinstated")

# Event Moderation
@router.get("/events")
def list_events(
    page: int = PAGE,
    limit: int = LIMIT,
    event_status: Optional[str] = Query(None, alias = "status"),
    search: Optional[str] = None,
    event_type: Optional[str] = Query(None, alias = "type"),
    admin: CurrentUser = Depends(get_admin_user)
):
    result = admin_service.list_events(event_status, search, event_type, page, limit)
    return paged_response(result["items"], page, limit, result["total"], "Events Retrieved Successfully")

@router.get("/events/reported")
def list_reported_events(
    page: int = PAGE,
    limit: int = LIMIT,
    report_status: Optional[str] = Query(None, alias = "status"),
    admin: CurrentUser = Depends(get_admin_user)
):
    result = admin_service.list_reports(report_status, page, limit)
    return paged_response(result["items"], page, limit, result["total"], "Reports Retrieved Successfully")

@router.patch("/events/reports/{report_id}/resolve")
def resolve_report(report_id: str, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.close_report(report_id, "resolved", admin), "Report Resolved")

@router.patch("/events/reports/{report_id}/dismiss")
def dismiss_report(report_id: str, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.close_report(report_id, "dismissed", admin), "Report Dismissed")

@router.get("/events/{event_id}")
def get_event(event_id: str, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.get_event(event_id))

@router.put("/events/{event_id}")
def update_event(event_id: str, payload: EventUpdateSchema, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.event_service.update_event(event_id, admin, payload), "Event Updated Successfully")

@router.api_route("/events/{event_id}/status", methods = ["PUT", "PATCH"])
def update_event_status(event_id: str, payload: EventStatusUpdate, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.event_service.set_status(event_id, payload.status.value), "Event Status Updated")

@router.patch("/events/{event_id}/cancel")
def cancel_event(event_id: str, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.event_service.set_status(event_id, EventStatus.CANCELLED.value), "Event Cancelled")

@router.delete("/events/{event_id}")
def delete_event(event_id: str, admin: CurrentUser = Depends(get_admin_user)):
    try:
        result = admin_service.delete_event(event_id)
        return success_response({"cancelled_bookings": result["cancelled_bookings"]}, result["message"])
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Delete Event Fail: {str(e)}"
        )

# Booking Oversight
@router.get("/bookings")
def list_bookings(
    page: int = PAGE,
    limit: int = LIMIT,
    booking_status: Optional[str] = Query(None, alias = "status"),
    payment_status: Optional[str] = Query(None, alias = "paymentStatus"),
    event_id: Optional[str] = Query(None, alias = "eventId"),
    admin: CurrentUser = Depends(get_admin_user)
):
    result = admin_service.list_bookings(booking_status, payment_status, event_id, page, limit)
    return paged_response(result["items"], page, limit, result["total"], "Bookings Retrieved Successfully")

@router.put("/bookings/{booking_id}/confirm")
def confirm_booking(booking_id: str, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.booking_service.admin_confirm(booking_id), "Booking Confirmed")

@router.put("/bookings/{booking_id}/cancel")
def cancel_booking(booking_id: str, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.booking_service.admin_cancel(booking_id), "Booking Cancelled")

@router.post("/bookings/{booking_id}/refund")
def refund_booking(booking_id: str, admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.booking_service.admin_refund(booking_id), "Booking Refunded")

# Review Moderation
@router.get("/reviews")
def list_reviews(
    page: int = PAGE,
    limit: int = LIMIT,
    rating: Optional[int] = Query(None, ge = 1, le = 5),
    host_id: Optional[str] = Query(None, alias = "hostId"),
    event_id: Optional[str] = Query(None, alias = "eventId"),
    admin: CurrentUser = Depends(get_admin_user)
):
    result = review_service.list_reviews(page, limit, event_id = event_id, host_id = host_id, rating = rating)
    return paged_response(result["items"], page, limit, result["total"], "Reviews Retrieved Successfully")

@router.delete("/reviews/{review_id}")
def delete_review(review_id: str, admin: CurrentUser = Depends(get_admin_user)):
    result = review_service.delete_review(review_id, admin)
    return success_response(None, result["message"])

# Analytics Charts -> Daily Series, Zero Filled
@router.get("/analytics/users")
def user_analytics(period: str = "30days", admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.user_analytics(period))

@router.get("/analytics/revenue")
def revenue_analytics(period: str = "30days", admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.revenue_analytics(period))

@router.get("/analytics/events")
def event_analytics(period: str = "30days", admin: CurrentUser = Depends(get_admin_user)):
    return success_response(admin_service.event_analytics(period))
