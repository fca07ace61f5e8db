from fastapi import APIRouter, Depends, HTTPException, status, Query
from app.api.deps import get_current_user
from app.core.config import settings
from app.services.review_service import ReviewService
from app.schemas.review import ReviewCreateSchema, ReviewUpdateSchema
from app.schemas.user import CurrentUser
from app.utils.responses import paged_response, success_response

router = APIRouter()
review_service = ReviewService()

@router.post("", status_code = status.HTTP_201_CREATED)
def create_review(
    payload: ReviewCreateSchema,
    user: CurrentUser = Depends(get_current_user)
):
    try:
        return success_response(review_service.create_review(user, payload), "Review Submitted Successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Review Create Fail: {str(e)}"
        )

@router.get("/event/{event_id}", status_code = status.HTTP_200_OK)
def list_event_reviews(
    event_id: str,
    page: int = Query(1, ge = 1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge = 1, le = settings.MAX_PAGE_SIZE)
):
    result = review_service.list_reviews(page, limit, event_id = event_id)
    return paged_response(result["items"], page, limit, result["total"], "Reviews Retrieved Successfully")

@router.get("/event/{event_id}/stats", status_code = status.HTTP_200_OK)
def get_event_review_stats(event_id: str):
    return success_response(review_service.get_stats(event_id = event_id))

@router.get("/host/{host_id}", status_code = status.HTTP_200_OK)
def list_host_reviews(
    host_id: str,
    page: int = Query(1, ge = 1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge = 1, le = settings.MAX_PAGE_SIZE)
):
    result = review_service.list_reviews(page, limit, host_id = host_id)
    return paged_response(result["items"], page, limit, result["total"], "Reviews Retrieved Successfully")

@router.get("/host/{host_id}/stats", status_code = status.HTTP_200_OK)
def get_host_review_stats(host_id: str):
    return success_response(review_service.get_stats(host_id = host_id))

@router.get("/user/{user_id}", status_code = status.HTTP_200_OK)
def list_user_reviews(
    user_id: str,
    page: int = Query(1, ge = 1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge = 1, le = settings.MAX_PAGE_SIZE)
):
    result = review_service.list_reviews(page, limit, user_id = user_id)
    return paged_response(result["items"], page, limit, result["total"], "Reviews Retrieved Successfully")

@router.put("/{review_id}", status_code = status.HTTP_200_OK)
def update_review(
    review_id: str,
    payload: ReviewUpdateSchema,
    user: CurrentUser = Depends(get_current_user)
):
    try:
        return success_response(review_service.update_review(review_id, user, payload), "Review Updated Successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail = f"Review Update Fail: {str(e)}"
        )

@router.delete("/{review_id}", status_code = status.HTTP_200_OK)
def delete_review(
    review_id: str,
    user: CurrentUser = Depends(get_current_user)
):
    result = review_service.delete_review(review_id, user)
    return success_response(None, result["message"])
