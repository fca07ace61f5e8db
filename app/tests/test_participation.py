"""
Test joining, leaving, waiting list promotion, bookmarks and the host participant view.
"""
from app.schemas.user import CurrentUser
from app.tests.fakes import day, now_iso


class TestJoin:

    def test_join_free_event(self, client, db, login, make_event, member):
        event = make_event(max_participants=3)
        login(member)

        response = client.post(f"/api/events/{event['id']}/join")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Successfully Joined the Event"
        assert body["data"]["joined"] is True
        assert body["data"]["current_participants"] == 1
        assert body["data"]["spots_left"] == 2
        assert db.rows("event_participants")[0]["user_id"] == member.id

    def test_join_twice_is_conflict(self, client, login, make_event, member):
        event = make_event()
        login(member)
        client.post(f"/api/events/{event['id']}/join")
        assert client.post(f"/api/events/{event['id']}/join").status_code == 409

    def test_host_cannot_join_own_event(self, client, login, make_event, host):
        event = make_event()
        login(host)
        assert client.post(f"/api/events/{event['id']}/join").status_code == 400

    def test_paid_event_requires_booking_flow(self, client, login, make_event, member):
        event = make_event(price=12.5)
        login(member)
        assert client.post(f"/api/events/{event['id']}/join").status_code == 402

    def test_not_joinable_statuses(self, client, login, make_event, member):
        login(member)
        for event_status in ("draft", "pending", "cancelled", "completed"):
            event = make_event(event_status=event_status)
            assert client.post(f"/api/events/{event['id']}/join").status_code == 400

    def test_past_event(self, client, login, make_event, member):
        event = make_event(event_date=day(-1))
        login(member)
        assert client.post(f"/api/events/{event['id']}/join").status_code == 400

    def test_missing_event(self, client, login, member):
        login(member)
        assert client.post("/api/events/nope/join").status_code == 404

    def test_full_event_goes_to_waiting_list(self, client, db, login, make_event, member, other_member):
        event = make_event(max_participants=1)
        db.seed("event_participants", {"event_id": event["id"], "user_id": other_member.id, "joined_at": now_iso()})
        login(member)

        response = client.post(f"/api/events/{event['id']}/join")

        assert response.status_code == 200
        assert response.json()["data"]["waitlisted"] is True
        assert db.rows("event_waiting_list")[0]["user_id"] == member.id
        assert client.post(f"/api/events/{event['id']}/join").status_code == 409


class TestLeave:

    def test_leave_promotes_oldest_waiting_entry(self, client, db, login, make_event, member):
        event = make_event(max_participants=1)
        db.seed("event_participants", {"event_id": event["id"], "user_id": member.id, "joined_at": now_iso()})
        db.seed(
            "event_waiting_list",
            {"event_id": event["id"], "user_id": "late-comer", "created_at": now_iso(minutes=-5)},
            {"event_id": event["id"], "user_id": "early-bird", "created_at": now_iso(minutes=-30)},
        )
        login(member)

        response = client.post(f"/api/events/{event['id']}/leave")

        assert response.status_code == 200
        participants = [p["user_id"] for p in db.rows("event_participants")]
        assert participants == ["early-bird"]
        assert [w["user_id"] for w in db.rows("event_waiting_list")] == ["late-comer"]

    def test_leave_waiting_list(self, client, db, login, make_event, member):
        event = make_event()
        db.seed("event_waiting_list", {"event_id": event["id"], "user_id": member.id, "created_at": now_iso()})
        login(member)

        response = client.post(f"/api/events/{event['id']}/leave")

        assert response.status_code == 200
        assert db.rows("event_waiting_list") == []

    def test_not_a_participant(self, client, login, make_event, member):
        event = make_event()
        login(member)
        assert client.post(f"/api/events/{event['id']}/leave").status_code == 400

    def test_paid_seat_must_be_cancelled_through_booking(self, client, db, login, make_event, member):
        event = make_event(price=10)
        db.seed("event_participants", {"event_id": event["id"], "user_id": member.id, "joined_at": now_iso()})
        db.seed("bookings", {"event_id": event["id"], "user_id": member.id, "status": "confirmed",
                             "payment_status": "paid", "amount_total": 1000, "created_at": now_iso()})
        login(member)

        assert client.post(f"/api/events/{event['id']}/leave").status_code == 409


class TestSavedEvents:

    def test_save_is_idempotent(self, client, db, login, make_event, member):
        event = make_event()
        login(member)

        client.post(f"/api/events/{event['id']}/save")
        response = client.post(f"/api/events/{event['id']}/save")

        assert response.json()["data"]["is_saved"] is True
        assert len(db.rows("saved_events")) == 1

        response = client.delete(f"/api/events/{event['id']}/save")
        assert response.json()["data"]["is_saved"] is False
        assert db.rows("saved_events") == []


class TestHostParticipantView:

    def test_list_participants_and_waiting_list(self, client, db, login, make_event, host, member, other_member):
        event = make_event(max_participants=1)
        db.seed("event_participants", {"event_id": event["id"], "user_id": member.id, "joined_at": now_iso()})
        db.seed("event_waiting_list", {"event_id": event["id"], "user_id": other_member.id, "created_at": now_iso()})
        login(host)

        data = client.get(f"/api/events/{event['id']}/participants").json()["data"]

        assert [p["full_name"] for p in data["participants"]] == ["Alice Walker"]
        assert [w["email"] for w in data["waiting_list"]] == ["bob@example.com"]

    def test_only_manager_sees_participants(self, client, login, make_event, member):
        event = make_event()
        login(member)
        assert client.get(f"/api/events/{event['id']}/participants").status_code == 403

    def test_remove_participant_promotes(self, client, db, login, make_event, host, member, other_member):
        event = make_event(max_participants=1)
        db.seed("event_participants", {"event_id": event["id"], "user_id": member.id, "joined_at": now_iso()})
        db.seed("event_waiting_list", {"event_id": event["id"], "user_id": other_member.id, "created_at": now_iso()})
        login(host)

        response = client.delete(f"/api/events/{event['id']}/participants/{member.id}")

        assert response.json()["data"] == {"removed_user_id": member.id, "promoted_user_id": other_member.id, "cancelled_booking_id": None}
        assert client.delete(f"/api/events/{event['id']}/participants/{member.id}").status_code == 404

    def test_removing_paid_attendee_refunds_the_booking(self, client, db, login, make_event, host, member, gateway):
        event = make_event(price=25)
        login(member)
        booking_id = client.post("/api/bookings/create-intent", json={"eventId": event["id"]}).json()["data"]["booking_id"]
        gateway.succeed("pi_1")
        client.post("/api/bookings/confirm", json={"bookingId": booking_id})

        login(host)
        data = client.delete(f"/api/events/{event['id']}/participants/{member.id}").json()["data"]

        assert data["cancelled_booking_id"] == booking_id
        booking = db.rows("bookings")[0]
        assert (booking["status"], booking["payment_status"]) == ("cancelled", "refunded")
        assert gateway.refunds[0]["payment_intent"] == "pi_1"
        assert db.rows("event_participants") == []

        login(member)
        assert client.get(f"/api/bookings/status/{event['id']}").json()["data"]["has_booked"] is False
        assert client.post("/api/bookings/create-intent", json={"eventId": event["id"]}).status_code == 201

    def test_paid_booking_without_seat_blocks_a_second_purchase(self, client, db, login, make_event, member):
        event = make_event(price=25)
        db.seed("bookings", {"event_id": event["id"], "user_id": member.id, "status": "confirmed",
                             "payment_status": "paid", "amount_total": 2500, "created_at": now_iso()})
        login(member)

        response = client.post("/api/bookings/create-intent", json={"eventId": event["id"]})

        assert response.status_code == 409
        assert response.json()["detail"] == "You Already Hold a Paid Booking for This Event"

    def test_admin_can_manage_any_event(self, client, login, make_event):
        event = make_event()
        login(CurrentUser(id="admin-9", role="admin"))
        assert client.get(f"/api/events/{event['id']}/participants").status_code == 200
