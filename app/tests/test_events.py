"""
Test event listing, detail, create, update, delete and reporting endpoints.
"""
from app.tests.fakes import day, now_iso


class TestEventListing:
    """Public listing filters and the paged envelope."""

    def test_lists_only_public_joinable_events(self, client, make_event):
        make_event(title="Open Run")
        make_event(title="Draft Run", event_status="draft")
        make_event(title="Private Run", is_public=False)
        make_event(title="Cancelled Run", event_status="cancelled")

        response = client.get("/api/events")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert [e["title"] for e in body["data"]] == ["Open Run"]
        assert body["pagination"]["totalItems"] == 1
        assert body["pagination"]["hasNextPage"] is False

    def test_pagination_and_ordering(self, client, make_event):
        for offset in (3, 1, 2):
            make_event(title=f"Run {offset}", event_date=day(offset))

        response = client.get("/api/events", params={"page": 1, "limit": 2})

        body = response.json()
        assert [e["title"] for e in body["data"]] == ["Run 1", "Run 2"]
        assert body["pagination"] == {
            "currentPage": 1,
            "totalPages": 2,
            "totalItems": 3,
            "itemsPerPage": 2,
            "hasNextPage": True,
            "hasPrevPage": False,
        }

    def test_filters(self, client, make_event):
        make_event(title="Free Yoga", price=0, city="Munich", event_type="wellness")
        make_event(title="Paid Concert", price=30, city="Berlin", event_type="music")

        free = client.get("/api/events", params={"isFree": "true"}).json()["data"]
        paid = client.get("/api/events", params={"isFree": "false"}).json()["data"]
        by_city = client.get("/api/events", params={"location": "mun"}).json()["data"]
        by_search = client.get("/api/events", params={"search": "CONCERT"}).json()["data"]
        by_type = client.get("/api/events", params={"type": "music"}).json()["data"]

        assert [e["title"] for e in free] == ["Free Yoga"]
        assert [e["title"] for e in paid] == ["Paid Concert"]
        assert [e["title"] for e in by_city] == ["Free Yoga"]
        assert [e["title"] for e in by_search] == ["Paid Concert"]
        assert [e["title"] for e in by_type] == ["Paid Concert"]

    def test_rejects_unknown_sort_and_reversed_dates(self, client):
        assert client.get("/api/events", params={"sort": "random"}).status_code == 400
        reversed_range = {"startDate": day(5), "endDate": day(1)}
        assert client.get("/api/events", params=reversed_range).status_code == 400


class TestEventDetail:

    def test_derived_capacity_fields_and_host(self, client, db, make_event, member):
        event = make_event(max_participants=4)
        db.seed("event_participants", {"event_id": event["id"], "user_id": member.id, "joined_at": now_iso()})

        data = client.get(f"/api/events/{event['id']}").json()["data"]

        assert data["current_participants"] == 1
        assert data["spots_left"] == 3
        assert data["is_full"] is False
        assert data["participation_percentage"] == 25.0
        assert data["host"]["full_name"] == "Hana Host"

    def test_missing_event_is_404(self, client):
        assert client.get("/api/events/does-not-exist").status_code == 404

    def test_draft_visible_only_to_host(self, client, login, make_event, member, host):
        event = make_event(event_status="draft")

        login(member)
        assert client.get(f"/api/events/{event['id']}").status_code == 404

        login(host)
        assert client.get(f"/api/events/{event['id']}").status_code == 200

    def test_personalised_flags(self, client, db, login, make_event, member):
        event = make_event()
        db.seed("saved_events", {"event_id": event["id"], "user_id": member.id, "created_at": now_iso()})
        login(member)

        data = client.get(f"/api/events/{event['id']}").json()["data"]

        assert data["is_saved"] is True
        assert data["is_joined"] is False


class TestEventCreate:

    def payload(self, **extra):
        body = {
            "title": "Rooftop Jazz",
            "type": "music",
            "date": day(20),
            "time": "19:30",
            "maxParticipants": 40,
            "price": 15,
            "location": {"venue": "Skybar", "city": "Hamburg"},
        }
        body.update(extra)
        return body

    def test_verified_host_publishes_directly(self, client, login, host):
        login(host)

        response = client.post("/api/events", json=self.payload())

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["event_status"] == "published"
        assert data["max_participants"] == 40
        assert data["city"] == "Hamburg"
        assert data["host_id"] == host.id
        assert data["currency"] == "usd"

    def test_unverified_host_waits_for_approval(self, client, login, host):
        login(host.model_copy(update={"is_verified": False}))
        data = client.post("/api/events", json=self.payload()).json()["data"]
        assert data["event_status"] == "pending"

    def test_draft_is_honoured(self, client, login, host):
        login(host)
        data = client.post("/api/events", json=self.payload(status="draft")).json()["data"]
        assert data["event_status"] == "draft"

    def test_regular_user_cannot_create(self, client, login, member):
        login(member)
        assert client.post("/api/events", json=self.payload()).status_code == 403

    def test_validation(self, client, login, host):
        login(host)
        assert client.post("/api/events", json=self.payload(title="ab")).status_code == 422
        assert client.post("/api/events", json=self.payload(maxParticipants=0)).status_code == 422
        assert client.post("/api/events", json=self.payload(price=-1)).status_code == 422


class TestEventUpdate:

    def test_host_cannot_publish_without_admin(self, client, login, make_event, host):
        event = make_event(event_status="draft")
        login(host)

        response = client.put(f"/api/events/{event['id']}", json={"status": "published"})

        assert response.status_code == 403

    def test_illegal_transition_is_conflict(self, client, login, make_event, admin_user):
        event = make_event(event_status="completed")
        login(admin_user)

        response = client.patch(f"/api/events/{event['id']}", json={"status": "open"})

        assert response.status_code == 409

    def test_capacity_below_participants(self, client, db, login, make_event, host, member, other_member):
        event = make_event(max_participants=5)
        for user in (member, other_member):
            db.seed("event_participants", {"event_id": event["id"], "user_id": user.id, "joined_at": now_iso()})
        login(host)

        response = client.patch(f"/api/events/{event['id']}", json={"maxParticipants": 1})

        assert response.status_code == 400

    def test_cancel_releases_pending_bookings(self, client, db, login, make_event, host, member):
        event = make_event(price=20)
        db.seed("bookings", {"event_id": event["id"], "user_id": member.id, "status": "pending",
                             "payment_status": "pending", "amount_total": 2000, "created_at": now_iso()})
        login(host)

        response = client.put(f"/api/events/{event['id']}", json={"status": "cancelled"})

        assert response.status_code == 200
        assert response.json()["data"]["event_status"] == "cancelled"
        assert db.rows("bookings")[0]["status"] == "cancelled"

    def test_other_host_forbidden(self, client, login, make_event, member):
        event = make_event()
        login(member)
        assert client.put(f"/api/events/{event['id']}", json={"title": "Hijacked"}).status_code == 403


class TestEventDelete:

    def test_paid_bookings_block_delete(self, client, db, login, make_event, host, member):
        event = make_event(price=10)
        db.seed("bookings", {"event_id": event["id"], "user_id": member.id, "status": "confirmed",
                             "payment_status": "paid", "amount_total": 1000, "created_at": now_iso()})
        login(host)

        assert client.delete(f"/api/events/{event['id']}").status_code == 409
        assert len(db.rows("event")) == 1

    def test_delete_removes_related_rows(self, client, db, login, make_event, host, member):
        event = make_event()
        db.seed("event_participants", {"event_id": event["id"], "user_id": member.id, "joined_at": now_iso()})
        db.seed("saved_events", {"event_id": event["id"], "user_id": member.id, "created_at": now_iso()})
        login(host)

        response = client.delete(f"/api/events/{event['id']}")

        assert response.status_code == 200
        assert db.rows("event") == []
        assert db.rows("event_participants") == []
        assert db.rows("saved_events") == []


class TestCallerListings:

    def test_joined_hosted_and_saved(self, client, db, login, make_event, host, member):
        joined = make_event(title="Joined")
        saved = make_event(title="Saved")
        make_event(title="Hosted Draft", event_status="draft")
        db.seed("event_participants", {"event_id": joined["id"], "user_id": member.id, "joined_at": now_iso()})
        db.seed("saved_events", {"event_id": saved["id"], "user_id": member.id, "created_at": now_iso()})

        login(member)
        assert [e["title"] for e in client.get("/api/events/my-events").json()["data"]] == ["Joined"]
        assert [e["title"] for e in client.get("/api/events/saved").json()["data"]] == ["Saved"]

        login(host)
        hosted = client.get("/api/events/hosted-events", params={"status": "draft"}).json()
        assert [e["title"] for e in hosted["data"]] == ["Hosted Draft"]
        assert client.get("/api/events/my-hosted").json()["pagination"]["totalItems"] == 3


class TestEventReports:

    def test_report_once(self, client, login, make_event, member):
        event = make_event()
        login(member)

        first = client.post(f"/api/events/{event['id']}/report", json={"reason": "Looks like spam"})
        second = client.post(f"/api/events/{event['id']}/report", json={"reason": "Still spam"})

        assert first.status_code == 201
        assert first.json()["data"]["status"] == "open"
        assert second.status_code == 409

    def test_host_cannot_report_own_event(self, client, login, make_event, host):
        event = make_event()
        login(host)
        assert client.post(f"/api/events/{event['id']}/report", json={"reason": "Testing"}).status_code == 400
