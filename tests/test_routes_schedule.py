import pytest


@pytest.fixture
def schedule(world, login):
    """B1 owned by patient on the 15th, B2 owned by other on the 16th (cancelled)."""
    client = login(world["admin"])
    ids = {}
    for key, owner, start, doctor in [
        ("b1", world["patient"], "2030-01-15T09:00:00", world["doctor"]),
        ("b2", world["other"], "2030-01-16T11:00:00", world["doctor"]),
    ]:
        resp = client.post("/bookings", json={
            "patient_id": owner.id, "doctor_id": doctor.id, "facility_id": world["facility"].id,
            "start_time": start, "duration": 60, "service_type": "therapy",
        })
        assert resp.status_code == 201
        ids[key] = resp.get_json()["booking"]["id"]
    assert client.post(f"/bookings/{ids['b2']}/cancel").status_code == 200
    return ids


def booking_ids(resp):
    assert resp.status_code == 200
    return [b["id"] for b in resp.get_json()["bookings"]]


class TestScheduleVisibility:

    def test_non_owner_sees_nothing_of_b2(self, world, login, schedule):
        client = login(world["patient"])
        f = world["facility"].id
        views = [
            client.get("/schedule/daily", query_string={"facility_id": f, "date": "2030-01-16"}),
            client.get("/schedule/weekly", query_string={"facility_id": f, "start_date": "2030-01-14"}),
            client.get(f"/schedule/doctor/{world['doctor'].id}",
                       query_string={"start_date": "2030-01-01", "end_date": "2030-01-31"}),
            client.get(f"/schedule/chamber/{world['c1'].id}",
                       query_string={"start_date": "2030-01-01", "end_date": "2030-01-31"}),
        ]
        for resp in views:
            assert schedule["b2"] not in booking_ids(resp)

    def test_provider_sees_all(self, world, login, schedule):
        client = login(world["doctor2"])
        resp = client.get("/schedule/weekly", query_string={
            "facility_id": world["facility"].id, "start_date": "2030-01-14",
        })
        assert booking_ids(resp) == [schedule["b1"], schedule["b2"]]


class TestScheduleRanges:

    def test_daily(self, world, login, schedule):
        client = login(world["admin"])
        resp = client.get("/schedule/daily", query_string={
            "facility_id": world["facility"].id, "date": "2030-01-15",
        })
        assert booking_ids(resp) == [schedule["b1"]]
        assert resp.get_json()["date"] == "2030-01-15"

    def test_doctor_bare_end_date_is_whole_day(self, world, login, schedule):
        client = login(world["admin"])
        resp = client.get(f"/schedule/doctor/{world['doctor'].id}", query_string={
            "start_date": "2030-01-15", "end_date": "2030-01-16",
        })
        assert booking_ids(resp) == [schedule["b1"], schedule["b2"]]

    def test_doctor_datetime_end(self, world, login, schedule):
        client = login(world["admin"])
        resp = client.get(f"/schedule/doctor/{world['doctor'].id}", query_string={
            "start_date": "2030-01-15", "end_date": "2030-01-16T10:59:00",
        })
        assert booking_ids(resp) == [schedule["b1"]]

    def test_missing_range(self, world, login, schedule):
        client = login(world["admin"])
        resp = client.get(f"/schedule/chamber/{world['c1'].id}", query_string={"start_date": "2030-01-15"})
        assert resp.status_code == 400

    def test_missing_facility(self, world, login):
        client = login(world["admin"])
        assert client.get("/schedule/daily").status_code == 400
