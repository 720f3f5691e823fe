"""Basic app wiring tests."""


def test_health_check(client):
    """Test that the health endpoint returns ok."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_connection_routes_mounted(client):
    """The connections router is mounted under /api/connections."""
    paths = client.get("/openapi.json").json()["paths"]
    assert "/api/connections" in paths
    assert "/api/connections/{connection_id}/sync" in paths
    assert "/api/connections/{connection_id}/status" in paths
