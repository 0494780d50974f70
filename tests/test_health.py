"""Tests for the health and root endpoints."""

import main


def test_health_ok(client, monkeypatch):
    monkeypatch.setattr(main, "ping_database", lambda: True)

    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_health_reports_database_outage(client, monkeypatch):
    monkeypatch.setattr(main, "ping_database", lambda: False)

    response = client.get("/health")
    assert response.status_code == 503
    assert response.json()["status"] == "error"


def test_root(client):
    assert client.get("/").json() == {"message": "Welcome to Orbita Capital Backend!"}
