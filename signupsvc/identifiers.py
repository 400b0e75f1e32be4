"""Name encoding and URL helpers for signups."""

from __future__ import annotations

import re
import zlib

from .signup import Signup

DNS1123_NAME_MAXIMUM_LENGTH = 63

_NOT_ALLOWED = re.compile(r"[^-a-z0-9]")
_NOT_ALLOWED_START = re.compile(r"^[^a-z0-9]+")
_NOT_ALLOWED_END = re.compile(r"[^a-z0-9]+$")
_NON_ALPHANUMERIC = re.compile(r"[^A-Za-z0-9]")

_RHODS_ROUTE_NAME = "rhods-dashboard-redhat-ods-applications"


def encode_user_identifier(subject: str) -> str:
    """Make a subject DNS-1123 compliant.

    Invalid characters are removed, and when the result differs from the
    subject it is prefixed with the subject's CRC32 checksum. The result is
    trimmed to 63 characters. Existing resources are looked up by this value,
    so its output must stay stable.
    """
    encoded = subject.lower()
    encoded = _NOT_ALLOWED.sub("", encoded)
    encoded = _NOT_ALLOWED_START.sub("", encoded)
    encoded = _NOT_ALLOWED_END.sub("", encoded)
    if encoded != subject:
        checksum = zlib.crc32(subject.encode("utf-8")) & 0xFFFFFFFF
        encoded = f"{checksum:x}-{encoded}"
    return encoded[:DNS1123_NAME_MAXIMUM_LENGTH]


def is_crt_admin(username: str) -> bool:
    """True when the local part of the username ends with 'crtadmin'."""
    local_part = username.split("@")[0]
    return _NON_ALPHANUMERIC.sub("-", local_part).endswith("crtadmin")


def extract_email_host(email: str) -> str:
    """Return everything after the last '@', or the whole string if none."""
    return email[email.rfind("@") + 1 :]


def get_apps_url(app_route_name: str, signup: Signup) -> str:
    """Build an app URL on the cluster's apps domain, taken from the console URL.

    Returns an empty string when the console URL has no '.apps' part.
    """
    index = signup.console_url.find(".apps")
    if index == -1:
        return ""
    return f"https://{app_route_name}{signup.console_url[index:]}"


def get_rhods_member_url(signup: Signup) -> str:
    """Return the RHODS dashboard URL for the signup's cluster."""
    return get_apps_url(_RHODS_ROUTE_NAME, signup)