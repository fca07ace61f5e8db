from fastapi import APIRouter, Depends, Query
from app.api.deps import get_current_user, get_host_user
from app.services.dashboard_service import DashboardService
from app.schemas.dashboard import ActivityItem, GrowthPoint, OrganizerDashboard
from app.schemas.user import CurrentUser
from app.utils.responses import success_response

router = APIRouter()
dashboard_service = DashboardService()

@router.get("/stats")
def get_stats(user: CurrentUser = Depends(get_current_user)):
    return success_response(dashboard_service.get_stats(user), "Dashboard Stats Retrieved")

@router.get("/host")
def get_analytics(user: CurrentUser = Depends(get_host_user)):
    dashboard = OrganizerDashboard(**dashboard_service.get_organizer_dashboard(user.id))
    return success_response(dashboard.model_dump(mode = "json"), "Host Dashboard Retrieved")

@router.get("/growth")
def get_growth(
    months: int = Query(6, ge = 1, le = 24),
    user: CurrentUser = Depends(get_current_user)
):
    points = [GrowthPoint(**p).model_dump() for p in dashboard_service.get_growth(user.id, months)]
    return success_response(points)

@router.get("/activities")
def get_activities(
    limit: int = Query(10, ge = 1, le = 50),
    user: CurrentUser = Depends(get_current_user)
):
    items = [ActivityItem(**a).model_dump(mode = "json") for a in dashboard_service.get_activities(user.id, limit)]
    return success_response(items)
