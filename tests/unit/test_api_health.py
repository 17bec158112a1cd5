from idgateway.flask_app import create_app


def test_health_endpoint(gateway):
    client = create_app(gateway=gateway).test_client()

    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.data == b"ok"


def test_ready_when_admin_session_established(gateway):
    client = create_app(gateway=gateway).test_client()

    resp = client.get("/ready")

    assert resp.status_code == 200
    assert resp.data == b"ready"


def test_not_ready_without_admin_session(gateway, fake_keycloak):
    fake_keycloak.is_authenticated = False
    client = create_app(gateway=gateway).test_client()

    resp = client.get("/ready")

    assert resp.status_code == 503
