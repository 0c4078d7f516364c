"""Unit tests for request ids and unhandled-error responses."""

import pytest


@pytest.fixture
def failing_app(app):
    """The app with an extra route that raises an unexpected error."""

    async def boom():
        raise RuntimeError("ledger exploded")

    app.add_api_route("/boom", boom, methods=["GET"])
    return app


async def test_request_id_echoed(client):
    """An incoming request id is reused on the response."""
    response = await client.get("/health", headers={"X-Request-ID": "req-abc"})

    assert response.headers["X-Request-ID"] == "req-abc"


async def test_request_id_generated_for_oversized_header(client):
    response = await client.get("/health", headers={"X-Request-ID": "x" * 200})

    assert len(response.headers["X-Request-ID"]) == 36


async def test_unhandled_error_is_500_with_request_id(failing_app, client, services):
    """Unexpected errors become an opaque 500 that still carries the request id."""
    services.settings.DEBUG = False

    response = await client.get("/boom", headers={"X-Request-ID": "req-500"})

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal Server Error", "code": "internal_error"}
    assert response.headers["X-Request-ID"] == "req-500"


async def test_debug_follows_app_settings(failing_app, client, services):
    """With DEBUG on in the app's settings the error and trace are returned."""
    services.settings.DEBUG = True

    response = await client.get("/boom")

    assert response.status_code == 500
    body = response.json()
    assert body["detail"] == "RuntimeError: ledger exploded"
    assert "Traceback" in body["trace"]
    assert "X-Request-ID" in response.headers
