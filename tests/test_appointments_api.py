from clinic.modules.notifications.templates import NotificationEvent


def kim_booking(**overrides):
    body = {
        "patientName": "Kim",
        "patientEmail": "kim@csu.local",
        "patientPhone": "09171234567",
        "providerRole": "DENTIST",
        "providerName": "Dr. Santos",
        "date": "2025-12-03",
        "time": "09:00",
    }
    body.update(overrides)
    return body


def all_appointments(client):
    return client.get("/appointments").json()["appointments"]


def test_book_when_provider_is_free(client, services):
    res = client.post("/appointments", json=kim_booking())
    assert res.status_code == 201

    appt = res.json()["appointment"]
    assert appt["status"] == "Scheduled"
    assert appt["id"].startswith("A-")
    assert appt["providerName"] == "Dr. Santos"
    assert appt["date"] == "2025-12-03"
    assert appt["time"] == "09:00"

    dentist = client.get("/appointments", params={"providerRole": "DENTIST"}).json()["appointments"]
    assert [a["id"] for a in dentist].count(appt["id"]) == 1

    # follow-ups ran after the response
    assert services.calendar.events == [appt["id"]]
    (appt_id, event, recipient, _), = services.notifier.sent
    assert appt_id == appt["id"]
    assert event is NotificationEvent.CREATED
    assert recipient.name == "Dr. Santos"


def test_busy_slot_is_rejected_without_writing(client, services):
    before = len(all_appointments(client))
    services.availability.busy = True

    res = client.post("/appointments", json=kim_booking())

    assert res.status_code == 409
    assert "not available" in res.json()["message"]
    assert len(all_appointments(client)) == before
    assert services.calendar.events == []
    assert services.notifier.sent == []


def test_availability_is_asked_for_a_thirty_minute_slot(client, services):
    client.post("/appointments", json=kim_booking(time="14:30"))

    (provider, start, end), = services.availability.calls
    assert provider == "Dr. Santos"
    assert (end - start).total_seconds() == 30 * 60
    assert start.hour == 14 and start.minute == 30
    assert start.utcoffset().total_seconds() == 8 * 3600  # Asia/Manila


def test_missing_required_fields_leave_store_unchanged(client, services):
    before = len(all_appointments(client))

    for field in ("patientName", "providerRole", "date", "time"):
        body = kim_booking()
        body.pop(field)
        assert client.post("/appointments", json=body).status_code == 422

    assert client.post("/appointments", json=kim_booking(patientName="   ")).status_code == 422
    assert len(all_appointments(client)) == before
    assert services.availability.calls == []


def test_unknown_provider_is_404(client):
    res = client.post("/appointments", json=kim_booking(providerName="Dr. Nobody"))
    assert res.status_code == 404


def test_default_provider_for_role(client):
    body = kim_booking(providerRole="physician")
    body.pop("providerName")

    res = client.post("/appointments", json=body)

    assert res.status_code == 201
    appt = res.json()["appointment"]
    assert appt["providerName"] == "Dr. Reyes"
    assert appt["providerRole"] == "PHYSICIAN"
    assert appt["patientEmail"] == "kim@csu.local"


def test_optional_contact_fields_default_to_empty(client):
    body = kim_booking()
    body.pop("patientEmail")
    body.pop("patientPhone")

    appt = client.post("/appointments", json=body).json()["appointment"]

    assert appt["patientEmail"] == ""
    assert appt["patientPhone"] == ""
    assert appt["notes"] == ""


def test_reject_with_reason(client, services):
    res = client.put("/appointments/A-1001", json={"status": "Rejected", "notes": "time conflict"})

    assert res.status_code == 200
    appt = res.json()["appointment"]
    assert appt["status"] == "Rejected"
    assert appt["notes"] == "time conflict"

    stored = client.get("/appointments/A-1001").json()["appointment"]
    assert stored["status"] == "Rejected"
    assert stored["notes"] == "time conflict"

    (appt_id, event, recipient, reason), = services.notifier.sent
    assert appt_id == "A-1001"
    assert event is NotificationEvent.REJECTED
    assert recipient.name == "Kylle Cruz"
    assert recipient.phone == "+639669474682"
    assert reason == "time conflict"


def test_status_is_case_insensitive_and_approval_notifies(client, services):
    res = client.put("/appointments/A-1002", json={"status": "approved"})

    assert res.status_code == 200
    assert res.json()["appointment"]["status"] == "Approved"
    (_, event, recipient, _), = services.notifier.sent
    assert event is NotificationEvent.APPROVED
    assert recipient.email == "kim.mongado@csu.local"


def test_confirmed_uses_approval_notification(client, services):
    client.put("/appointments/A-1002", json={"status": "Confirmed"})
    (_, event, _, _), = services.notifier.sent
    assert event is NotificationEvent.APPROVED


def test_other_statuses_do_not_notify(client, services):
    assert client.put("/appointments/A-1002", json={"status": "Cancelled"}).status_code == 200
    assert client.put("/appointments/A-1001", json={"notes": "bring x-ray"}).status_code == 200
    assert services.notifier.sent == []


def test_empty_update_is_a_no_op(client, services):
    before = client.get("/appointments/A-1001").json()

    res = client.put("/appointments/A-1001", json={})

    assert res.status_code == 200
    assert res.json() == before
    assert client.get("/appointments/A-1001").json() == before
    assert services.notifier.sent == []


def test_partial_update_keeps_other_fields(client):
    res = client.put("/appointments/A-1002", json={"notes": "fasting required"})

    appt = res.json()["appointment"]
    assert appt["notes"] == "fasting required"
    assert appt["status"] == "Scheduled"
    assert appt["patientName"] == "Kim Mongado"
    assert appt["time"] == "10:30"


def test_terminal_status_cannot_be_left(client):
    assert client.put("/appointments/A-1001", json={"status": "Completed"}).status_code == 200

    res = client.put("/appointments/A-1001", json={"status": "Approved"})

    assert res.status_code == 409
    assert client.get("/appointments/A-1001").json()["appointment"]["status"] == "Completed"


def test_unknown_status_is_rejected(client):
    assert client.put("/appointments/A-1001", json={"status": "Postponed"}).status_code == 422


def test_update_unknown_id_is_404(client, services):
    res = client.put("/appointments/A-9999", json={"status": "Approved"})
    assert res.status_code == 404
    assert services.notifier.sent == []


def test_delete_twice(client):
    assert client.delete("/appointments/A-1002").status_code == 200
    assert client.delete("/appointments/A-1002").status_code == 404
    assert client.get("/appointments/A-1002").status_code == 404


def test_list_filters(client):
    kylle = client.get("/appointments", params={"role": "CLIENT", "name": "Kylle Cruz"}).json()
    assert [a["id"] for a in kylle["appointments"]] == ["A-1001"]

    physician = client.get("/appointments", params={"role": "PHYSICIAN"}).json()
    assert [a["id"] for a in physician["appointments"]] == ["A-1002"]

    none = client.get(
        "/appointments", params={"providerRole": "DENTIST", "providerName": "Dr. Reyes"}
    ).json()
    assert none["appointments"] == []

    everything = client.get("/appointments").json()
    assert [a["id"] for a in everything["appointments"]] == ["A-1001", "A-1002"]
