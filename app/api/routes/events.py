from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, status, Query
from typing import Optional
from datetime import date
from app.api.deps import get_current_user, get_optional_user, get_host_user
from app.core.config import settings
from app.services.event_service import EventService
from app.services.event_participant_service import EventParticipantService
from app.services.booking_service import BookingService
from app.schemas.event import EventCreateSchema, EventReportCreate, EventUpdateSchema
from app.schemas.user import CurrentUser
from app.utils.responses import paged_response, success_response

router = APIRouter()
event_service = EventService()
event_participant_service = EventParticipantService(event_service)
booking_service = BookingService()

@router.get("", status_code = status.HTTP_200_OK)
def list_events(
    page: int = Query(1, ge = 1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge = 1, le = settings.MAX_PAGE_SIZE),
    event_type: Optional[str] = Query(None, alias = "type"),
    category: Optional[str] = None,
    event_status: Optional[str] = Query(None, alias = "status"),
    location: Optional[str] = None,
    start_date: Optional[date] = Query(None, alias = "startDate"),
    end_date: Optional[date] = Query(None, alias = "endDate"),
    is_free: Optional[bool] = Query(None, alias = "isFree"),
    search: Optional[str] = None,
    sort: str = "date"
):
    try:
        result = event_service.list_events(
            page, limit, event_type, category, event_status,
            location, start_date, end_date, is_free, search, sort
        )
        return paged_response(result["items"], page, limit, result["total"], "Events Retrieved Successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Get Event List Fail: {str(e)}"
        )

@router.post("", status_code = status.HTTP_201_CREATED)
def create_event(
    payload: EventCreateSchema,
    user: CurrentUser = Depends(get_host_user)
):
    try:
        return success_response(event_service.create_event(user, payload), "Event Created Successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_400_BAD_REQUEST,
            detail = f"Event Created Fail: {str(e)}"
        )

# Caller Scoped Listings -> Declared Before /{event_id} so the Paths are Not Swallowed
@router.get("/my-events", status_code = status.HTTP_200_OK)
def list_my_joined_events(
    page: int = Query(1, ge = 1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge = 1, le = settings.MAX_PAGE_SIZE),
    user: CurrentUser = Depends(get_current_user)
):
    result = event_service.list_joined_events(user.id, page, limit)
    return paged_response(result["items"], page, limit, result["total"], "Joined Events Retrieved Successfully")

@router.get("/hosted-events", status_code = status.HTTP_200_OK)
@router.get("/my-hosted", status_code = status.HTTP_200_OK, include_in_schema = False)
def list_my_hosted_events(
    page: int = Query(1, ge = 1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge = 1, le = settings.MAX_PAGE_SIZE),
    event_type: Optional[str] = Query(None, alias = "type"),
    location: Optional[str] = None,
    event_status: Optional[str] = Query(None, alias = "status"),
    user: CurrentUser = Depends(get_current_user)
):
    result = event_service.list_hosted_events(user.id, event_type, location, event_status, page, limit)
    return paged_response(result["items"], page, limit, result["total"], "Hosted Events Retrieved Successfully")

@router.get("/saved", status_code = status.HTTP_200_OK)
def list_my_saved_events(
    page: int = Query(1, ge = 1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge = 1, le = settings.MAX_PAGE_SIZE),
    user: CurrentUser = Depends(get_current_user)
):
    result = event_service.list_saved_events(user.id, page, limit)
    return paged_response(result["items"], page, limit, result["total"], "Saved Events Retrieved Successfully")

@router.get("/{event_id}", status_code = status.HTTP_200_OK)
def get_event(
    event_id: str,
    viewer: Optional[CurrentUser] = Depends(get_optional_user)
):
    try:
        return success_response(event_service.get_event(event_id, viewer), "Event Retrieved Successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Get Event Fail: {str(e)}"
        )

@router.put("/{event_id}", status_code = status.HTTP_200_OK)
@router.patch("/{event_id}", status_code = status.HTTP_200_OK)
def update_event(
    event_id: str,
    payload: EventUpdateSchema,
    user: CurrentUser = Depends(get_current_user)
):
    """
    Update Event Details:
    1. If Have a New Image, Call POST /events/{event_id}/image First or Pass the Uploaded URL in the Image Field
    2. Status Changes Follow the Event Status Transition Table
    """
    try:
        return success_response(event_service.update_event(event_id, user, payload), "Event Updated Successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Event Update Fail: {str(e)}"
        )

@router.delete("/{event_id}", status_code = status.HTTP_200_OK)
def delete_event(
    event_id: str,
    user: CurrentUser = Depends(get_current_user)
):
    try:
        result = event_service.delete_event(event_id, user)
        return success_response(None, result["message"])
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Delete Event Fail: {str(e)}"
        )

@router.post("/{event_id}/image", status_code = status.HTTP_201_CREATED)
def upload_event_image(
    event_id: str,
    file: UploadFile = File(...),
    user: CurrentUser = Depends(get_current_user)
):
    try:
        return success_response(event_service.upload_image(event_id, user, file), "Event Image Uploaded Successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Upload Failed: {str(e)}"
        )

@router.post("/{event_id}/report", status_code = status.HTTP_201_CREATED)
def report_event(
    event_id: str,
    payload: EventReportCreate,
    user: CurrentUser = Depends(get_current_user)
):
    return success_response(event_service.report_event(event_id, user, payload.reason), "Event Reported Successfully")

# Participation
@router.post("/{event_id}/join", status_code = status.HTTP_200_OK)
def join_event(
    event_id: str,
    user: CurrentUser = Depends(get_current_user)
):
    try:
        result = event_participant_service.join_event(event_id, user)
        return success_response(result["data"], result["message"])
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Join Event Fail: {str(e)}"
        )

@router.post("/{event_id}/leave", status_code = status.HTTP_200_OK)
def leave_event(
    event_id: str,
    user: CurrentUser = Depends(get_current_user)
):
    try:
        result = event_participant_service.leave_event(event_id, user)
        return success_response(result["data"], result["message"])
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Leave Event Fail: {str(e)}"
        )

@router.post("/{event_id}/save", status_code = status.HTTP_200_OK)
def save_event(
    event_id: str,
    user: CurrentUser = Depends(get_current_user)
):
    return success_response(event_participant_service.save_event(event_id, user), "Event Saved")

@router.delete("/{event_id}/save", status_code = status.HTTP_200_OK)
def unsave_event(
    event_id: str,
    user: CurrentUser = Depends(get_current_user)
):
    return success_response(event_participant_service.unsave_event(event_id, user), "Event Removed From Saved")

@router.get("/{event_id}/participants", status_code = status.HTTP_200_OK)
def list_event_participants(
    event_id: str,
    user: CurrentUser = Depends(get_current_user)
):
    try:
        return success_response(event_participant_service.list_participants(event_id, user), "Participants Retrieved Successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Event Participants List Get Fail: {str(e)}"
        )

@router.delete("/{event_id}/participants/{participant_id}", status_code = status.HTTP_200_OK)
def remove_event_participant(
    event_id: str,
    participant_id: str,
    user: CurrentUser = Depends(get_current_user)
):
    return success_response(
        booking_service.remove_attendee(event_id, participant_id, user),
        "Participant Removed Successfully"
    )
