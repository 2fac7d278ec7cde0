import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from conftest import auth, utc
from vetclinic import crud, main
from vetclinic.service import AppointmentService
from vetclinic.store import SqlAppointmentStore

BOOKING = {
    "petId": "pet-1",
    "veterinarianId": "vet-1",
    "dateTime": "2025-06-01T10:00:00Z",
    "type": "checkup",
    "reason": "Limping",
}


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    sent = []
    monkeypatch.setattr(
        "vetclinic.notifications.send_email_reminder",
        lambda to, subject, body: sent.append((to, subject, body)),
    )
    return sent


def book(client, token="owner-token", **overrides):
    return client.post("/appointments", json={**BOOKING, **overrides}, headers=auth(token))


def error_code(response):
    return response.json()["error"]["code"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


class TestCreateAppointment:
    def test_created(self, client, outbox):
        response = book(client, notes="Bring the x-rays")
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        appt = body["appointment"]
        assert appt["status"] == "pending"
        assert appt["duration"] == 30
        assert appt["dateTime"].startswith("2025-06-01T10:00:00")
        assert appt["pet"]["name"] == "Biscuit"
        assert appt["veterinarian"]["lastName"] == "Pawson"
        assert outbox[0][0] == "pawson@example.com"
        assert outbox[0][1] == "New Appointment Request - PawPal"

    def test_vet_sees_in_app_notification(self, client, db):
        book(client)
        notes = crud.get_notifications(db, "vet-1")
        assert [n.type for n in notes] == ["new_appointment"]

    def test_missing_fields(self, client):
        response = client.post("/appointments", json={"petId": "pet-1"}, headers=auth("owner-token"))
        assert response.status_code == 400
        assert error_code(response) == "MISSING_FIELDS"

    def test_malformed_date_is_invalid_request(self, client):
        response = book(client, dateTime="next tuesday")
        assert response.status_code == 400
        assert error_code(response) == "INVALID_REQUEST"

    def test_someone_elses_pet(self, client):
        response = book(client, token="other-token")
        assert response.status_code == 403
        assert error_code(response) == "PET_ACCESS_DENIED"

    def test_unapproved_vet(self, client):
        response = book(client, veterinarianId="vet-2")
        assert response.status_code == 403
        assert error_code(response) == "VET_NOT_AVAILABLE"

    def test_past_start(self, client):
        response = book(client, dateTime="2025-05-30T10:00:00Z")
        assert response.status_code == 400
        assert error_code(response) == "INVALID_DATE"

    def test_overlapping_booking(self, client):
        assert book(client).status_code == 201
        response = book(client, dateTime="2025-06-01T10:15:00Z")
        assert response.status_code == 409
        assert error_code(response) == "TIME_CONFLICT"
        assert book(client, dateTime="2025-06-01T10:30:00Z").status_code == 201


class TestAuthentication:
    def test_no_token(self, client):
        response = client.post("/appointments", json=BOOKING)
        assert response.status_code == 401
        assert error_code(response) == "NO_TOKEN"

    def test_unknown_token(self, client):
        response = book(client, token="forged")
        assert response.status_code == 401
        assert error_code(response) == "INVALID_TOKEN"


class TestReadAppointments:
    def test_get_by_participant(self, client):
        appt_id = book(client).json()["appointment"]["id"]
        response = client.get(f"/appointments/{appt_id}", headers=auth("vet-token"))
        assert response.status_code == 200
        assert response.json()["appointment"]["id"] == appt_id

    def test_get_by_stranger(self, client):
        appt_id = book(client).json()["appointment"]["id"]
        response = client.get(f"/appointments/{appt_id}", headers=auth("other-token"))
        assert response.status_code == 403
        assert error_code(response) == "ACCESS_DENIED"

    def test_get_unknown(self, client):
        response = client.get("/appointments/missing", headers=auth("owner-token"))
        assert response.status_code == 404
        assert error_code(response) == "APPOINTMENT_NOT_FOUND"

    def test_list(self, client, add_appointment):
        add_appointment(utc(2025, 6, 1, 9, 0))
        add_appointment(utc(2025, 6, 2, 9, 0))
        response = client.get("/appointments", params={"limit": 1}, headers=auth("owner-token"))
        body = response.json()
        assert response.status_code == 200
        assert len(body["appointments"]) == 1
        assert body["appointments"][0]["dateTime"].startswith("2025-06-02T09:00:00")
        assert body["hasMore"] is True

    def test_list_limit_is_bounded(self, client):
        response = client.get("/appointments", params={"limit": 500}, headers=auth("owner-token"))
        assert response.status_code == 400


class TestStatusAndReschedule:
    def test_vet_confirms(self, client, outbox):
        appt_id = book(client).json()["appointment"]["id"]
        response = client.patch(
            f"/appointments/{appt_id}/status", json={"status": "confirmed"}, headers=auth("vet-token")
        )
        assert response.status_code == 200
        appt = response.json()["appointment"]
        assert appt["status"] == "confirmed"
        assert appt["confirmedAt"] is not None
        assert outbox[-1][0] == "olivia@example.com"

    def test_owner_cannot_confirm(self, client):
        appt_id = book(client).json()["appointment"]["id"]
        response = client.patch(
            f"/appointments/{appt_id}/status", json={"status": "confirmed"}, headers=auth("owner-token")
        )
        assert response.status_code == 403
        assert error_code(response) == "VET_ONLY_ACTION"

    def test_invalid_status(self, client):
        appt_id = book(client).json()["appointment"]["id"]
        response = client.patch(
            f"/appointments/{appt_id}/status", json={"status": "archived"}, headers=auth("vet-token")
        )
        assert response.status_code == 400
        assert error_code(response) == "INVALID_STATUS"

    def test_terminal_status_is_final(self, client):
        appt_id = book(client).json()["appointment"]["id"]
        client.patch(f"/appointments/{appt_id}/status", json={"status": "cancelled"}, headers=auth("owner-token"))
        response = client.patch(
            f"/appointments/{appt_id}/status", json={"status": "confirmed"}, headers=auth("vet-token")
        )
        assert response.status_code == 400
        assert error_code(response) == "INVALID_TRANSITION"

    def test_status_of_unknown_appointment(self, client):
        response = client.patch("/appointments/missing/status", json={"status": "confirmed"}, headers=auth("vet-token"))
        assert response.status_code == 404

    def test_reschedule(self, client):
        appt_id = book(client).json()["appointment"]["id"]
        response = client.patch(
            f"/appointments/{appt_id}/reschedule",
            json={"newDateTime": "2025-06-03T14:00:00Z", "reason": "Vet at a conference"},
            headers=auth("vet-token"),
        )
        assert response.status_code == 200
        appt = response.json()["appointment"]
        assert appt["status"] == "pending"
        assert appt["dateTime"].startswith("2025-06-03T14:00:00")
        assert appt["rescheduleReason"] == "Vet at a conference"

    def test_reschedule_without_time(self, client):
        appt_id = book(client).json()["appointment"]["id"]
        response = client.patch(f"/appointments/{appt_id}/reschedule", json={}, headers=auth("owner-token"))
        assert response.status_code == 400
        assert error_code(response) == "MISSING_DATETIME"


class TestAvailability:
    def test_slots(self, client, add_appointment):
        add_appointment(utc(2025, 6, 1, 9, 30))
        response = client.get(
            "/appointments/availability/vet-1", params={"date": "2025-06-01"}, headers=auth("owner-token")
        )
        assert response.status_code == 200
        body = response.json()
        assert body["veterinarianId"] == "vet-1"
        assert body["date"] == "2025-06-01"
        assert len(body["availableSlots"]) == 15
        assert not any(slot.startswith("2025-06-01T09:30") for slot in body["availableSlots"])

    @pytest.mark.parametrize("params, code", [({}, "MISSING_DATE"), ({"date": "tomorrow"}, "INVALID_DATE")])
    def test_bad_date(self, client, params, code):
        response = client.get("/appointments/availability/vet-1", params=params, headers=auth("owner-token"))
        assert response.status_code == 400
        assert error_code(response) == code

    def test_unapproved_vet(self, client):
        response = client.get(
            "/appointments/availability/vet-2", params={"date": "2025-06-01"}, headers=auth("owner-token")
        )
        assert response.status_code == 404
        assert error_code(response) == "VET_NOT_FOUND"


class TestServerErrors:
    def test_huge_duration_is_a_validation_error(self, client):
        response = book(client, duration=10**10)
        assert response.status_code == 400
        assert error_code(response) == "INVALID_DURATION"

    def test_overlap_found_at_commit_is_a_conflict(self, client, monkeypatch):
        assert book(client).status_code == 201
        monkeypatch.setattr(SqlAppointmentStore, "blocking_intervals", lambda self, *args: [])

        response = book(client, dateTime="2025-06-01T10:15:00Z")
        assert response.status_code == 409
        assert error_code(response) == "TIME_CONFLICT"

    def test_database_failure_is_retryable(self, client, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("SELECT appointments", {}, Exception("database is locked"))

        monkeypatch.setattr("vetclinic.crud.get_appointment", broken)
        response = client.get("/appointments/appt-1", headers=auth("owner-token"))

        assert response.status_code == 500
        assert response.json() == {
            "error": {
                "code": "INFRASTRUCTURE_ERROR",
                "message": "A backend service is temporarily unavailable",
                "retryable": True,
            }
        }

    def test_unexpected_exception_is_an_infrastructure_error(self, client, monkeypatch):
        def explode(self, actor, appointment_id):
            raise RuntimeError("boom")

        monkeypatch.setattr(AppointmentService, "get", explode)
        quiet = TestClient(main.app, raise_server_exceptions=False)
        response = quiet.get("/appointments/appt-1", headers=auth("owner-token"))

        assert response.status_code == 500
        assert error_code(response) == "INFRASTRUCTURE_ERROR"
        assert "boom" not in response.text
