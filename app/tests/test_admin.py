"""
Test the admin command center: platform stats, moderation actions and analytics.
"""
import pytest

from app.services.admin_service import daily_buckets, period_days
from app.tests.fakes import now_iso


class TestAccess:

    @pytest.mark.parametrize("path", ["/api/admin/stats", "/api/admin/users", "/api/admin/analytics/users"])
    def test_admin_only(self, client, login, member, path):
        login(member)
        assert client.get(path).status_code == 403


class TestPlatformStats:

    def test_counts(self, client, db, login, make_event, admin_user, member, host):
        event = make_event()
        make_event(event_status="pending")
        db.seed(
            "bookings",
            {"event_id": event["id"], "user_id": member.id, "status": "confirmed", "payment_status": "paid",
             "amount_total": 3000, "created_at": now_iso()},
            {"event_id": event["id"], "user_id": "user-x", "status": "cancelled", "payment_status": "refunded",
             "amount_total": 1000, "created_at": now_iso()},
        )
        db.seed("event_reports", {"event_id": event["id"], "reporter_id": member.id, "reason": "spam",
                                  "status": "open", "created_at": now_iso()})
        login(admin_user)

        stats = client.get("/api/admin/stats").json()["data"]

        assert stats["totalUsers"] == 3
        assert stats["totalHosts"] == 1
        assert stats["totalEvents"] == 2
        assert stats["activeEvents"] == 1
        assert stats["pendingEvents"] == 1
        assert stats["totalRevenue"] == 30.0
        assert stats["refundedAmount"] == 10.0
        assert stats["cancelledBookings"] == 1
        assert stats["openReports"] == 1


class TestUserModeration:

    def test_search_and_filters(self, client, login, admin_user, member, other_member):
        login(admin_user)

        by_name = client.get("/api/admin/users", params={"search": "alice"}).json()
        by_email = client.get("/api/admin/users", params={"search": "bob@"}).json()
        admins = client.get("/api/admin/users", params={"role": "admin"}).json()

        assert [u["id"] for u in by_name["data"]] == [member.id]
        assert [u["id"] for u in by_email["data"]] == [other_member.id]
        assert [u["id"] for u in admins["data"]] == [admin_user.id]
        assert client.get("/api/admin/users", params={"status": "weird"}).status_code == 400

    def test_search_cannot_widen_the_filter(self, client, login, admin_user, member, other_member):
        login(admin_user)

        widened = client.get("/api/admin/users", params={"search": "nobody,role.eq.admin"}).json()
        wrapped = client.get("/api/admin/users", params={"search": "(alice)"}).json()
        blank = client.get("/api/admin/users", params={"search": ",()"}).json()

        assert widened["data"] == []
        assert [u["id"] for u in wrapped["data"]] == [member.id]
        assert blank["pagination"]["totalItems"] == 3

    def test_ban_and_unban(self, client, db, login, admin_user, member):
        login(admin_user)

        assert client.patch(f"/api/admin/users/{member.id}/ban").json()["data"]["is_active"] is False
        banned = client.get("/api/admin/users", params={"status": "banned"}).json()["data"]
        assert [u["id"] for u in banned] == [member.id]
        assert client.post(f"/api/admin/users/{member.id}/unban").json()["data"]["is_active"] is True

    def test_admin_cannot_act_on_self(self, client, login, admin_user):
        login(admin_user)
        assert client.put(f"/api/admin/users/{admin_user.id}/ban").status_code == 400
        assert client.put(f"/api/admin/users/{admin_user.id}/role", json={"role": "user"}).status_code == 400
        assert client.delete(f"/api/admin/users/{admin_user.id}").status_code == 400

    def test_role_and_verify(self, client, login, admin_user, member):
        login(admin_user)

        promoted = client.put(f"/api/admin/users/{member.id}/role", json={"role": "host"}).json()["data"]
        verified = client.patch(f"/api/admin/users/{member.id}/verify").json()["data"]

        assert (promoted["role"], promoted["host_status"]) == ("host", "approved")
        assert verified["is_verified"] is True

    def test_user_detail_and_activity(self, client, db, login, make_event, admin_user, member):
        event = make_event()
        db.seed("event_participants", {"event_id": event["id"], "user_id": member.id, "joined_at": now_iso()})
        login(admin_user)

        detail = client.get(f"/api/admin/users/{member.id}").json()["data"]
        activity = client.get(f"/api/admin/users/{member.id}/activity").json()["data"]

        assert detail["stats"]["joinedEvents"] == 1
        assert activity[0]["type"] == "joined_event"
        assert client.get("/api/admin/users/ghost").status_code == 404

    def test_delete_user(self, client, db, login, admin_user, member, host):
        login(admin_user)

        assert client.delete(f"/api/admin/users/{member.id}").status_code == 200
        assert member.id not in [p["id"] for p in db.rows("profile")]

    def test_delete_user_releases_seats_and_refunds(self, client, db, login, make_event, admin_user, member, other_member, host, gateway):
        free_event = make_event(max_participants=1)
        paid_event = make_event(title="Paid Workshop", price=30)
        db.seed("event_participants",
                {"event_id": free_event["id"], "user_id": member.id, "joined_at": now_iso()},
                {"event_id": paid_event["id"], "user_id": member.id, "joined_at": now_iso()})
        db.seed("event_waiting_list", {"event_id": free_event["id"], "user_id": other_member.id, "created_at": now_iso()})
        db.seed("bookings", {"event_id": paid_event["id"], "user_id": member.id, "status": "confirmed",
                             "payment_status": "paid", "amount_total": 3000,
                             "stripe_payment_intent_id": "pi_9", "created_at": now_iso()})
        db.seed("reviews",
                {"event_id": free_event["id"], "user_id": member.id, "host_id": host.id, "rating": 1, "created_at": now_iso()},
                {"event_id": free_event["id"], "user_id": other_member.id, "host_id": host.id, "rating": 5, "created_at": now_iso()})
        login(admin_user)

        assert client.delete(f"/api/admin/users/{member.id}").status_code == 200

        assert [(p["event_id"], p["user_id"]) for p in db.rows("event_participants")] == [(free_event["id"], other_member.id)]
        assert db.rows("event_waiting_list") == []
        assert db.rows("bookings")[0]["payment_status"] == "refunded"
        assert gateway.refunds[0]["payment_intent"] == "pi_9"
        assert next(p for p in db.rows("profile") if p["id"] == host.id)["average_rating"] == 5.0

    def test_cannot_delete_user_hosting_events(self, client, login, make_event, admin_user, host):
        make_event()
        login(admin_user)
        assert client.delete(f"/api/admin/users/{host.id}").status_code == 409


class TestHostModeration:

    def test_approve_pending_application(self, client, db, login, admin_user, member):
        next(p for p in db.rows("profile") if p["id"] == member.id)["host_status"] = "pending"
        login(admin_user)

        pending = client.get("/api/admin/hosts", params={"status": "pending"}).json()["data"]
        approved = client.patch(f"/api/admin/hosts/{member.id}/approve").json()["data"]

        assert [h["id"] for h in pending] == [member.id]
        assert (approved["role"], approved["host_status"]) == ("host", "approved")

    def test_reject_requires_pending(self, client, login, admin_user, member):
        login(admin_user)
        assert client.patch(f"/api/admin/hosts/{member.id}/reject", json={"reason": "Incomplete"}).status_code == 409

    def test_suspend_cancels_upcoming_events_and_reinstate(self, client, db, login, make_event, admin_user, host):
        upcoming = make_event()
        finished = make_event(event_status="completed")
        login(admin_user)

        suspended = client.patch(f"/api/admin/hosts/{host.id}/suspend", json={"reason": "Fraud"}).json()["data"]

        assert suspended["host_status"] == "suspended"
        assert suspended["cancelled_events"] == 1
        statuses = {e["id"]: e["event_status"] for e in db.rows("event")}
        assert statuses == {upcoming["id"]: "cancelled", finished["id"]: "completed"}

        reinstated = client.patch(f"/api/admin/hosts/{host.id}/reinstate").json()["data"]
        assert (reinstated["role"], reinstated["host_status"]) == ("host", "approved")


class TestEventModeration:

    def test_lists_every_status(self, client, login, make_event, admin_user):
        make_event(event_status="draft")
        make_event(event_status="pending", title="Awaiting Review")
        login(admin_user)

        everything = client.get("/api/admin/events").json()
        pending = client.get("/api/admin/events", params={"status": "pending"}).json()["data"]

        assert everything["pagination"]["totalItems"] == 2
        assert [e["title"] for e in pending] == ["Awaiting Review"]

    def test_status_transitions(self, client, login, make_event, admin_user):
        event = make_event(event_status="pending")
        login(admin_user)

        published = client.patch(f"/api/admin/events/{event['id']}/status", json={"status": "published"})
        illegal = client.put(f"/api/admin/events/{event['id']}/status", json={"status": "pending"})
        cancelled = client.patch(f"/api/admin/events/{event['id']}/cancel")

        assert published.json()["data"]["event_status"] == "published"
        assert illegal.status_code == 409
        assert cancelled.json()["data"]["event_status"] == "cancelled"

    def test_full_edit(self, client, login, make_event, admin_user):
        event = make_event(event_status="completed")
        login(admin_user)

        response = client.put(f"/api/admin/events/{event['id']}", json={"title": "Renamed by Admin"})

        assert response.json()["data"]["title"] == "Renamed by Admin"

    def test_delete_refunds_paid_bookings(self, client, db, login, make_event, admin_user, member, gateway):
        event = make_event(price=30)
        db.seed("event_participants", {"event_id": event["id"], "user_id": member.id, "joined_at": now_iso()})
        db.seed("bookings", {"event_id": event["id"], "user_id": member.id, "status": "confirmed",
                             "payment_status": "paid", "amount_total": 3000,
                             "stripe_payment_intent_id": "pi_77", "created_at": now_iso()})
        login(admin_user)

        response = client.delete(f"/api/admin/events/{event['id']}")

        assert response.status_code == 200
        assert response.json()["data"] == {"cancelled_bookings": 1}
        assert gateway.refunds[0]["payment_intent"] == "pi_77"
        assert db.rows("event") == []
        booking = db.rows("bookings")[0]
        assert (booking["status"], booking["payment_status"], booking["event_title"]) == ("cancelled", "refunded", "Sunday Trail Run")
        assert client.get("/api/admin/stats").json()["data"]["refundedAmount"] == 30.0

    def test_delete_drops_never_charged_bookings(self, client, db, login, make_event, admin_user, member, other_member, gateway):
        event = make_event(price=30)
        db.seed("bookings",
                {"event_id": event["id"], "user_id": member.id, "status": "cancelled", "payment_status": "failed",
                 "amount_total": 3000, "created_at": now_iso()},
                {"event_id": event["id"], "user_id": other_member.id, "status": "cancelled", "payment_status": "refunded",
                 "amount_total": 3000, "stripe_refund_id": "re_old", "created_at": now_iso()})
        login(admin_user)

        client.delete(f"/api/admin/events/{event['id']}")

        assert [b["user_id"] for b in db.rows("bookings")] == [other_member.id]

        login(other_member)
        booking_id = db.rows("bookings")[0]["id"]
        detail = client.get(f"/api/bookings/{booking_id}").json()["data"]
        assert (detail["event"], detail["event_title"]) == (None, "Sunday Trail Run")

    def test_reports_resolve_and_dismiss(self, client, db, login, make_event, admin_user, member):
        event = make_event()
        first, second = db.seed(
            "event_reports",
            {"event_id": event["id"], "reporter_id": member.id, "reason": "spam", "status": "open", "created_at": now_iso()},
            {"event_id": event["id"], "reporter_id": "user-x", "reason": "fake", "status": "open", "created_at": now_iso()},
        )
        login(admin_user)

        reported = client.get("/api/admin/events/reported", params={"status": "open"}).json()["data"]
        resolved = client.patch(f"/api/admin/events/reports/{first['id']}/resolve").json()["data"]
        dismissed = client.patch(f"/api/admin/events/reports/{second['id']}/dismiss").json()["data"]

        assert {r["event_title"] for r in reported} == {"Sunday Trail Run"}
        assert (resolved["status"], resolved["resolved_by"]) == ("resolved", admin_user.id)
        assert dismissed["status"] == "dismissed"
        assert client.patch(f"/api/admin/events/reports/{first['id']}/dismiss").status_code == 409


class TestBookingModeration:

    def seed_booking(self, db, event, member, **extra):
        row = {"event_id": event["id"], "user_id": member.id, "status": "pending", "payment_status": "pending",
               "amount_total": 3000, "created_at": now_iso()}
        row.update(extra)
        return db.seed("bookings", row)[0]

    def test_list_with_filters(self, client, db, login, make_event, admin_user, member):
        event = make_event(price=30)
        self.seed_booking(db, event, member)
        self.seed_booking(db, event, member, status="confirmed", payment_status="paid")
        login(admin_user)

        paid = client.get("/api/admin/bookings", params={"paymentStatus": "paid"}).json()

        assert paid["pagination"]["totalItems"] == 1
        assert paid["data"][0]["amount"] == 30.0
        assert paid["data"][0]["event"]["title"] == "Sunday Trail Run"

    def test_confirm_pending_only(self, client, db, login, make_event, admin_user, member):
        event = make_event(price=30)
        booking = self.seed_booking(db, event, member)
        login(admin_user)

        assert client.put(f"/api/admin/bookings/{booking['id']}/confirm").json()["data"]["status"] == "confirmed"
        assert db.rows("event_participants")[0]["user_id"] == member.id
        assert client.put(f"/api/admin/bookings/{booking['id']}/confirm").status_code == 409

    def test_refund_paid_only(self, client, db, login, make_event, admin_user, member, gateway):
        event = make_event(price=30)
        pending = self.seed_booking(db, event, member)
        paid = self.seed_booking(db, event, member, status="confirmed", payment_status="paid",
                                 stripe_payment_intent_id="pi_9")
        login(admin_user)

        assert client.post(f"/api/admin/bookings/{pending['id']}/refund").status_code == 409
        refunded = client.post(f"/api/admin/bookings/{paid['id']}/refund").json()["data"]
        assert (refunded["status"], refunded["payment_status"]) == ("cancelled", "refunded")
        assert gateway.refunds[0]["amount"] == 3000

    def test_cancel(self, client, db, login, make_event, admin_user, member):
        event = make_event(price=30)
        booking = self.seed_booking(db, event, member)
        login(admin_user)

        assert client.put(f"/api/admin/bookings/{booking['id']}/cancel").json()["data"]["status"] == "cancelled"


class TestAnalytics:

    def test_period_helpers(self):
        assert period_days("7days") == 7
        buckets = daily_buckets(3)
        assert len(buckets) == 3 and buckets == sorted(buckets)

    def test_unknown_period(self, client, login, admin_user):
        login(admin_user)
        assert client.get("/api/admin/analytics/users", params={"period": "1year"}).status_code == 400

    def test_user_series_is_zero_filled(self, client, db, login, admin_user):
        db.seed("profile", {"id": "fresh", "role": "user", "created_at": now_iso()})
        login(admin_user)

        data = client.get("/api/admin/analytics/users", params={"period": "7days"}).json()["data"]

        assert len(data["series"]) == 7
        assert data["series"][-1]["newUsers"] == 1
        assert sum(d["newUsers"] for d in data["series"]) == 1
        assert data["totalUsers"] == 2

    def test_revenue(self, client, db, login, make_event, admin_user, member):
        event = make_event(price=30)
        db.seed(
            "bookings",
            {"event_id": event["id"], "user_id": member.id, "status": "confirmed", "payment_status": "paid",
             "amount_total": 3000, "created_at": now_iso()},
            {"event_id": event["id"], "user_id": member.id, "status": "cancelled", "payment_status": "refunded",
             "amount_total": 1000, "created_at": now_iso()},
        )
        login(admin_user)

        data = client.get("/api/admin/analytics/revenue", params={"period": "30days"}).json()["data"]

        assert len(data["series"]) == 30
        assert data["totalRevenue"] == 30.0
        assert data["totalRefunds"] == 10.0
        assert data["topEvents"][0] == {"id": event["id"], "title": "Sunday Trail Run", "revenue": 30.0, "bookings": 1}

    def test_events(self, client, db, login, make_event, admin_user):
        make_event(created_at=now_iso(), event_type="music")
        make_event(created_at=now_iso(), event_type="music", event_status="draft")
        login(admin_user)

        data = client.get("/api/admin/analytics/events", params={"period": "90days"}).json()["data"]

        assert len(data["series"]) == 90
        assert data["totalNewEvents"] == 2
        assert data["byType"] == {"music": 2}
        assert data["byStatus"] == {"published": 1, "draft": 1}
