import pytest

from dbcompare.core import auth


def test_sanitize_host_strips_query_and_slash():
    assert auth._sanitize_host("https://adb-1.azuredatabricks.net/?o=123") == "https://adb-1.azuredatabricks.net"
    assert auth._sanitize_host(None) is None


def test_auth_error_suggests_login_for_profile():
    msg = auth._format_auth_error("invalid refresh token; run databricks auth login", "dev")

    assert "databricks auth login --profile dev" in msg


def test_get_client_wraps_config_errors(monkeypatch):
    def _broken(**kwargs):
        raise ValueError("profile not found")

    monkeypatch.setattr(auth, "Config", _broken)

    with pytest.raises(auth.AuthError, match="profile not found"):
        auth.get_client("missing")
