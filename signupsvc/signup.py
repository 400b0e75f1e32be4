"""The Signup view returned to clients, and a retrying update helper."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

_MAX_ATTEMPTS = 5


@dataclass
class Status:
    """Readiness of a user's signup."""

    ready: bool = False
    reason: str = ""
    message: str = ""
    verification_required: bool = False

    def _to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"ready": self.ready, "reason": self.reason}
        if self.message:
            data["message"] = self.message
        data["verificationRequired"] = self.verification_required
        return data


@dataclass
class Signup:
    """A user's signup, combining the UserSignup and MasterUserRecord state."""

    name: str
    username: str = ""
    compliant_username: str = ""
    given_name: str = ""
    family_name: str = ""
    company: str = ""
    console_url: str = ""
    che_dashboard_url: str = ""
    proxy_url: str = ""
    rhods_member_url: str = ""
    api_endpoint: str = ""
    cluster_name: str = ""
    default_user_namespace: str = ""
    status: Status = field(default_factory=Status)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation, omitting empty optional fields."""
        data: dict[str, Any] = {"name": self.name}
        optional = {
            "consoleURL": self.console_url,
            "cheDashboardURL": self.che_dashboard_url,
            "proxyURL": self.proxy_url,
            "rhodsMemberURL": self.rhods_member_url,
            "apiEndpoint": self.api_endpoint,
            "clusterName": self.cluster_name,
            "defaultUserNamespace": self.default_user_namespace,
        }
        data.update({k: v for k, v in optional.items() if v})
        data.update(
            {
                "compliantUsername": self.compliant_username,
                "username": self.username,
                "givenName": self.given_name,
                "familyName": self.family_name,
                "company": self.company,
                "status": self.status._to_dict(),
            }
        )
        return data


def poll_update_signup(updater: Callable[[], object]) -> None:
    """Call updater until it succeeds, retrying up to five attempts in all.

    Each failure is logged; the last one is re-raised once attempts run out.
    """
    for attempt in range(1, _MAX_ATTEMPTS + 1):
        try:
            updater()
        except Exception as exc:
            logger.error("error while executing updating, attempt #%d: %s", attempt, exc)
            if attempt >= _MAX_ATTEMPTS:
                raise
        else:
            return