"""The assembled application: health endpoint and router wiring."""
from fastapi.testclient import TestClient


def test_health_reports_json_persistence():
    from shield.main import app
    data = TestClient(app).get("/health").json()
    assert data["status"] == "online"
    assert data["persistence"] == "json"
    assert data["policies"]["ip_throttle"] == "ThrottlePolicy(5, 15min)"
    assert "database" not in data


def test_routers_are_mounted():
    from shield.main import app
    paths = app.openapi()["paths"]
    assert "/api/auth/gate" in paths
    assert "/api/auth/attempts" in paths
    assert "/api/admin/throttle/ip" in paths
    assert "/api/admin/throttle/ip/{ip_address}" in paths
    assert "/api/admin/throttle/spam/{identifier_type}/{identifier}" in paths
