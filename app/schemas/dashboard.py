from pydantic import BaseModel
from typing import List, Optional, Literal
from datetime import datetime, date

# Organizer Analytics -> GET /dashboard/host

class DailySales(BaseModel):
    date: date
    daily_revenue: float
    tickets_sold: int

class TopEvent(BaseModel):
    event_id: str
    event_title: str
    event_date: Optional[date] = None
    event_status: Optional[str] = None
    revenue: float
    tickets_sold: int
    participants: int = 0
    occupancy_rate: float

class RecentSale(BaseModel):
    booking_id: str
    event_id: str
    event_title: str
    buyer_name: str
    buyer_email: str
    amount: float
    currency: str = "usd"
    created_at: Optional[datetime] = None

class OrganizerTotals(BaseModel):
    total_revenue: float = 0
    total_tickets_sold: int = 0
    total_participants: int = 0
    total_events_active: int = 0

class OrganizerDashboard(BaseModel):
    stats: OrganizerTotals = OrganizerTotals()
    sales_chart: List[DailySales] = []
    top_events: List[TopEvent] = []
    recent_sales: List[RecentSale] = []

# Host Trend and Feed -> GET /dashboard/growth, /dashboard/activities

class GrowthPoint(BaseModel):
    month: str
    participants: int
    revenue: float
    events: int

class ActivityItem(BaseModel):
    """One join, paid booking or review on a hosted event, newest first."""
    type: Literal["join", "booking", "review"]
    event_id: str
    event_title: str
    user_id: str
    user_name: str
    timestamp: datetime
    amount: Optional[float] = None
    rating: Optional[int] = None
