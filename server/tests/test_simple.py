"""Smoke test that the application assembles."""


def test_import_app():
    """Test that we can import the app module."""
    from rental.main import create_app
    app = create_app()
    assert app is not None
    paths = {route.path for route in app.routes}
    assert "/v1/booking/create" in paths
    assert "/v1/incident/resolve" in paths
