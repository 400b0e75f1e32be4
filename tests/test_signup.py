import pytest

from signupsvc.signup import Signup, Status, poll_update_signup


def test_to_dict_omits_empty_optional_fields():
    signup = Signup(name="bill", username="bill", status=Status(reason="PendingApproval"))
    data = signup.to_dict()
    assert data["name"] == "bill"
    assert data["username"] == "bill"
    assert data["compliantUsername"] == ""
    for key in ("consoleURL", "cheDashboardURL", "proxyURL", "rhodsMemberURL",
                "apiEndpoint", "clusterName", "defaultUserNamespace"):
        assert key not in data
    assert data["status"] == {"ready": False, "reason": "PendingApproval", "verificationRequired": False}


def test_to_dict_includes_set_fields():
    signup = Signup(
        name="ted-id",
        username="ted",
        compliant_username="ted",
        console_url="https://console.apps.member-123.com",
        proxy_url="https://proxy-url.com",
        cluster_name="member-123",
        default_user_namespace="ted-dev",
        status=Status(ready=True, reason="mur_ready_reason", message="mur_ready_message"),
    )
    data = signup.to_dict()
    assert data["consoleURL"] == "https://console.apps.member-123.com"
    assert data["proxyURL"] == "https://proxy-url.com"
    assert data["clusterName"] == "member-123"
    assert data["defaultUserNamespace"] == "ted-dev"
    assert data["status"]["message"] == "mur_ready_message"
    assert data["status"]["ready"] is True


def test_poll_update_succeeds_first_time():
    calls = []
    assert poll_update_signup(lambda: calls.append(1)) is None
    assert len(calls) == 1


def test_poll_update_retries_until_success():
    calls = []

    def updater():
        calls.append(1)
        if len(calls) < 3:
            raise RuntimeError("an error occurred")

    assert poll_update_signup(updater) is None
    assert len(calls) == 3


def test_poll_update_raises_after_five_attempts():
    calls = []

    def updater():
        calls.append(1)
        raise RuntimeError(f"failure {len(calls)}")

    with pytest.raises(RuntimeError, match="failure 5"):
        poll_update_signup(updater)
    assert len(calls) == 5