"""Resource models handled by the signup service."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum

CONDITION_TRUE = "True"
CONDITION_FALSE = "False"

USER_SIGNUP_COMPLETE = "Complete"
USER_SIGNUP_APPROVED = "Approved"
CONDITION_READY = "Ready"

USER_SIGNUP_PENDING_APPROVAL_REASON = "PendingApproval"
USER_SIGNUP_USER_DEACTIVATED_REASON = "Deactivated"
USER_SIGNUP_APPROVED_AUTOMATICALLY_REASON = "ApprovedAutomatically"
USER_SIGNUP_NO_CLUSTER_AVAILABLE_REASON = "NoClusterAvailable"

NAMESPACE_TYPE_DEFAULT = "default"

_DOMAIN = "toolchain.dev.openshift.com"
USER_EMAIL_ANNOTATION_KEY = f"{_DOMAIN}/user-email"
VERIFICATION_COUNTER_ANNOTATION_KEY = f"{_DOMAIN}/verification-counter"
SSO_USER_ID_ANNOTATION_KEY = f"{_DOMAIN}/sso-user-id"
SSO_ACCOUNT_ID_ANNOTATION_KEY = f"{_DOMAIN}/sso-account-id"
CAPTCHA_SCORE_ANNOTATION_KEY = f"{_DOMAIN}/captcha-score"
SKIP_AUTO_CREATE_SPACE_ANNOTATION_KEY = f"{_DOMAIN}/skip-auto-create-space"
ACTIVATION_COUNTER_ANNOTATION_KEY = f"{_DOMAIN}/activation-counter"
LAST_TARGET_CLUSTER_ANNOTATION_KEY = f"{_DOMAIN}/last-target-cluster"
USER_EMAIL_HASH_LABEL_KEY = f"{_DOMAIN}/email-hash"
USER_PHONE_HASH_LABEL_KEY = f"{_DOMAIN}/phone-hash"
BANNED_USER_EMAIL_HASH_LABEL_KEY = f"{_DOMAIN}/email-hash"
BANNED_USER_PHONE_HASH_LABEL_KEY = f"{_DOMAIN}/phone-hash"
SPACE_BINDING_MUR_LABEL_KEY = f"{_DOMAIN}/masteruserrecord"
SPACE_BINDING_SPACE_LABEL_KEY = f"{_DOMAIN}/space"
SPACE_CREATOR_LABEL_KEY = f"{_DOMAIN}/creator"


class UserSignupState(str, Enum):
    """States that may be recorded in a UserSignup spec."""

    VERIFICATION_REQUIRED = "verification-required"
    DEACTIVATED = "deactivated"


@dataclass
class Condition:
    type: str
    status: str
    reason: str = ""
    message: str = ""


@dataclass
class PropagatedClaims:
    sub: str = ""
    user_id: str = ""
    account_id: str = ""
    original_sub: str = ""
    email: str = ""


@dataclass
class IdentityClaims:
    propagated: PropagatedClaims = field(default_factory=PropagatedClaims)
    preferred_username: str = ""
    given_name: str = ""
    family_name: str = ""
    company: str = ""


@dataclass
class UserSignupSpec:
    target_cluster: str = ""
    userid: str = ""
    username: str = ""
    given_name: str = ""
    family_name: str = ""
    company: str = ""
    original_sub: str = ""
    identity_claims: IdentityClaims = field(default_factory=IdentityClaims)
    states: list[UserSignupState] = field(default_factory=list)


@dataclass
class UserSignupStatus:
    conditions: list[Condition] = field(default_factory=list)
    compliant_username: str = ""


@dataclass
class UserSignup:
    name: str
    namespace: str = ""
    annotations: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    spec: UserSignupSpec = field(default_factory=UserSignupSpec)
    status: UserSignupStatus = field(default_factory=UserSignupStatus)
    resource_version: str = ""


@dataclass
class UserAccountStatus:
    cluster_name: str


@dataclass
class MasterUserRecord:
    name: str
    namespace: str = ""
    conditions: list[Condition] = field(default_factory=list)
    user_accounts: list[UserAccountStatus] = field(default_factory=list)


@dataclass
class SpaceNamespace:
    name: str
    type: str = ""


@dataclass
class Space:
    name: str
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    target_cluster: str = ""
    provisioned_namespaces: list[SpaceNamespace] = field(default_factory=list)


@dataclass
class SpaceBinding:
    name: str
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    master_user_record: str = ""
    space: str = ""
    space_role: str = ""


@dataclass
class Member:
    cluster_name: str
    api_endpoint: str = ""
    console_url: str = ""
    che_dashboard_url: str = ""


@dataclass
class ToolchainStatus:
    name: str = "toolchain-status"
    namespace: str = ""
    members: list[Member] = field(default_factory=list)
    proxy_url: str = ""


@dataclass
class BannedUser:
    name: str
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    email: str = ""


def find_condition(conditions: list[Condition], condition_type: str) -> Condition | None:
    """Return the first condition of the given type, or None."""
    return next((c for c in conditions if c.type == condition_type), None)


def is_false_with_reason(conditions: list[Condition], condition_type: str, reason: str) -> bool:
    """True when the condition exists, is False, and has the given reason."""
    cond = find_condition(conditions, condition_type)
    return cond is not None and cond.status == CONDITION_FALSE and cond.reason == reason


def _has_state(user_signup: UserSignup, state: UserSignupState) -> bool:
    return state in user_signup.spec.states


def _set_state(user_signup: UserSignup, state: UserSignupState, value: bool) -> None:
    states = user_signup.spec.states
    if value and state not in states:
        states.append(state)
    elif not value:
        user_signup.spec.states = [s for s in states if s != state]


def verification_required(user_signup: UserSignup) -> bool:
    return _has_state(user_signup, UserSignupState.VERIFICATION_REQUIRED)


def set_verification_required(user_signup: UserSignup, required: bool) -> None:
    _set_state(user_signup, UserSignupState.VERIFICATION_REQUIRED, required)


def deactivated(user_signup: UserSignup) -> bool:
    return _has_state(user_signup, UserSignupState.DEACTIVATED)


def set_deactivated(user_signup: UserSignup, value: bool) -> None:
    _set_state(user_signup, UserSignupState.DEACTIVATED, value)


def hash_string(value: str) -> str:
    """Return the hex MD5 digest of the string, as used for hash labels."""
    return hashlib.md5(value.encode("utf-8")).hexdigest()