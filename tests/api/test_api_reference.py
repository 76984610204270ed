from __future__ import annotations


def test_settings_defaults_and_update(client):
    r = client.get("/api/settings")
    assert r.status_code == 200
    assert [t["value"] for t in r.json()["tariffs"]] == ["45,50", "120,00", "85,75"]

    body = r.json()
    body["contractId"] = "CT-7"
    body["notificationFrequency"] = "weekly"
    r = client.put("/api/settings", json=body)
    assert r.status_code == 200
    assert client.get("/api/settings").json()["contractId"] == "CT-7"


def test_settings_validation(client):
    r = client.put("/api/settings", json={"emailRecipients": ["nope"]})
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "VALIDATION_FAILED"


def test_unit_crud(client):
    r = client.post("/api/units", json={"name": "Sede Central", "squareMeters": "1.200,5"})
    assert r.status_code == 201
    unit = r.json()
    assert unit["squareMeters"] == "1.200,50"

    r = client.put(f"/api/units/{unit['id']}", json={"name": "Sede Central", "squareMeters": "900"})
    assert r.json()["squareMeters"] == "900,00"

    assert [u["name"] for u in client.get("/api/units").json()] == ["Sede Central"]
    assert client.delete(f"/api/units/{unit['id']}").status_code == 204
    assert client.delete(f"/api/units/{unit['id']}").status_code == 404


def test_unit_requires_name(client):
    assert client.post("/api/units", json={"name": "", "squareMeters": "10"}).status_code == 422


def test_monthly_status(client, api_profiles):
    client.post("/api/units", json={"name": "Sede Central", "squareMeters": "500"})
    client.post("/api/units", json={"name": "Anexo Norte", "squareMeters": "100"})
    client.post(
        "/api/evaluations",
        json={"servicesSelected": {"disinsectization": True}, "status": "Completed"},
        headers={"X-User-Id": "user-1"},
    )

    out = client.get("/api/dashboard/monthly-status").json()
    assert (out["month"], out["year"]) == (3, 2025)
    assert {u["unit"]: u["completed"] for u in out["units"]} == {"Anexo Norte": False, "Sede Central": True}
    assert out["complianceRate"] == 50.0


def test_unit_rejects_non_numeric_area(client):
    r = client.post("/api/units", json={"name": "Sede Central", "squareMeters": "abc"})
    assert r.status_code == 422
    assert "squareMeters" in r.json()["error"]["meta"]["fields"]
    assert client.get("/api/units").json() == []
