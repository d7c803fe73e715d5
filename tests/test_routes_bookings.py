import pytest

from models import AuditLog, Booking


def payload(world, start="2030-01-15T09:00:00", **extra):
    body = {
        "doctor_id": world["doctor"].id,
        "facility_id": world["facility"].id,
        "start_time": start,
        "duration": 60,
        "service_type": "therapy",
    }
    body.update(extra)
    return body


class TestCreateBookingEndpoint:

    def test_requires_login(self, client, world):
        resp = client.post("/bookings", json=payload(world))
        assert resp.status_code == 401

    def test_smart_assignment(self, world, login):
        client = login(world["patient"])
        resp = client.post("/bookings", json=payload(
            world, equipment_needed=["oxygen"], patient_mobility="high",
        ))

        assert resp.status_code == 201
        booking = resp.get_json()["booking"]
        assert booking["chamber_id"] == world["c1"].id
        assert booking["patient_id"] == world["patient"].id
        assert booking["status"] == "pending"
        assert booking["end_time"] == "2030-01-15T10:00:00"
        assert AuditLog.query.filter_by(action="BOOKING_CREATE").count() == 1

    def test_conflict_returns_409(self, world, login):
        client = login(world["admin"])
        first = client.post("/bookings", json=payload(world, chamber_id=world["c1"].id, patient_id=world["patient"].id))
        assert first.status_code == 201

        resp = client.post("/bookings", json=payload(
            world, start="2030-01-15T09:30:00", chamber_id=world["c1"].id,
            doctor_id=world["doctor2"].id, patient_id=world["other"].id,
        ))

        assert resp.status_code == 409
        body = resp.get_json()
        assert body["code"] == "CONFLICT_DETECTED"
        assert body["resource"] == "chamber"
        assert body["conflicting_booking_ids"] == [first.get_json()["booking"]["id"]]
        assert Booking.query.count() == 1
        assert AuditLog.query.filter_by(action="BOOKING_FAIL_CONFLICT_DETECTED").count() == 1

    def test_no_chamber_returns_409(self, world, login):
        client = login(world["patient"])
        resp = client.post("/bookings", json=payload(world, service_type="surgery"))
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "NO_AVAILABLE_CHAMBER"

    def test_patient_cannot_book_for_someone_else(self, world, login):
        client = login(world["patient"])
        resp = client.post("/bookings", json=payload(world, patient_id=world["other"].id))
        assert resp.status_code == 403

    def test_doctor_must_be_provider(self, world, login):
        client = login(world["patient"])
        resp = client.post("/bookings", json=payload(world, doctor_id=world["other"].id))
        assert resp.status_code == 404

    @pytest.mark.parametrize("override", [
        {"duration": 5},
        {"duration": "abc"},
        {"start_time": "tomorrow"},
        {"service_type": ""},
        {"patient_mobility": "flying"},
        {"equipment_needed": "oxygen"},
        {"notes": 5},
    ])
    def test_validation(self, world, login, override):
        client = login(world["patient"])
        resp = client.post("/bookings", json=payload(world, **override))
        assert resp.status_code == 400

    def test_unknown_facility(self, world, login):
        client = login(world["patient"])
        resp = client.post("/bookings", json=payload(world, facility_id=999))
        assert resp.status_code == 404


@pytest.fixture
def booked(world, login):
    client = login(world["patient"])
    resp = client.post("/bookings", json=payload(world, chamber_id=world["c1"].id))
    assert resp.status_code == 201
    return resp.get_json()["booking"]["id"]


class TestBookingLifecycleEndpoints:

    def test_patient_cannot_confirm(self, world, login, booked):
        client = login(world["patient"])
        resp = client.post(f"/bookings/{booked}/confirm")
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "INVALID_TRANSITION"

    def test_doctor_confirms_then_completes(self, world, login, booked):
        client = login(world["doctor"])
        assert client.post(f"/bookings/{booked}/confirm").status_code == 200
        resp = client.post(f"/bookings/{booked}/complete")
        assert resp.status_code == 200
        assert resp.get_json()["booking"]["status"] == "completed"

    def test_cancel_with_reason(self, world, login, booked):
        client = login(world["patient"])
        resp = client.post(f"/bookings/{booked}/cancel", json={"reason": "feeling better"})
        assert resp.status_code == 200
        body = resp.get_json()["booking"]
        assert body["status"] == "cancelled"
        assert body["cancel_reason"] == "feeling better"
        assert body["cancelled_at"] is not None

    def test_cancel_reason_must_be_text(self, world, login, booked):
        client = login(world["patient"])
        resp = client.post(f"/bookings/{booked}/cancel", json={"reason": 5})
        assert resp.status_code == 400
        assert Booking.query.filter_by(id=booked).one().status == "pending"

    def test_delete_cancels(self, world, login, booked):
        client = login(world["patient"])
        assert client.delete(f"/bookings/{booked}").status_code == 200
        assert client.delete(f"/bookings/{booked}").status_code == 409

    def test_update_rejects_status(self, world, login, booked):
        client = login(world["patient"])
        resp = client.put(f"/bookings/{booked}", json={"status": "confirmed"})
        assert resp.status_code == 400

    def test_update_time(self, world, login, booked):
        client = login(world["patient"])
        resp = client.put(f"/bookings/{booked}", json={"start_time": "2030-01-15T09:30:00", "duration": 45})
        assert resp.status_code == 200
        body = resp.get_json()["booking"]
        assert (body["start_time"], body["end_time"]) == ("2030-01-15T09:30:00", "2030-01-15T10:15:00")

    def test_update_payment_status_validated(self, world, login, booked):
        client = login(world["patient"])
        assert client.put(f"/bookings/{booked}", json={"payment_status": "stolen"}).status_code == 400
        assert client.put(f"/bookings/{booked}", json={"payment_status": "paid"}).status_code == 200

    def test_unknown_booking(self, world, login):
        client = login(world["admin"])
        assert client.post("/bookings/999/confirm").status_code == 404


class TestBookingQueries:

    def test_owner_and_staff_see_booking(self, world, login, booked):
        client = login(world["patient"])
        assert client.get(f"/bookings/{booked}").status_code == 200
        client = login(world["doctor2"])
        assert client.get(f"/bookings/{booked}").status_code == 200

    def test_other_patient_gets_404(self, world, login, booked):
        client = login(world["other"])
        assert client.get(f"/bookings/{booked}").status_code == 404
        assert client.get("/bookings").get_json()["count"] == 0

    def test_list_filters(self, world, login, booked):
        client = login(world["admin"])
        resp = client.get("/bookings", query_string={"chamber_id": world["c1"].id, "status": "pending"})
        assert [b["id"] for b in resp.get_json()["bookings"]] == [booked]
        resp = client.get("/bookings", query_string={"chamber_id": world["c2"].id})
        assert resp.get_json()["count"] == 0

    def test_conflict_precheck(self, world, login, booked):
        client = login(world["other"])
        resp = client.get("/bookings/check/conflicts", query_string={
            "doctor_id": world["doctor"].id,
            "start_time": "2030-01-15T09:30:00",
            "end_time": "2030-01-15T10:30:00",
        })
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["has_conflicts"] is True
        # patients only see when the provider is busy
        assert "patient_id" not in body["conflicts"][0]

    def test_conflict_precheck_back_to_back(self, world, login, booked):
        client = login(world["admin"])
        resp = client.get("/bookings/check/conflicts", query_string={
            "doctor_id": world["doctor"].id,
            "start_time": "2030-01-15T10:00:00",
            "end_time": "2030-01-15T11:00:00",
        })
        assert resp.get_json() == {"has_conflicts": False, "count": 0, "conflicts": []}
