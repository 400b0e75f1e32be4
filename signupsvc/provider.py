"""Access to toolchain resources: label selectors, providers and the cluster client."""

from __future__ import annotations

import copy
import itertools
import re
from dataclasses import dataclass, field
from typing import Iterator, Protocol

from .errors import ConflictError, NotFoundError
from .models import (
    BANNED_USER_EMAIL_HASH_LABEL_KEY,
    BANNED_USER_PHONE_HASH_LABEL_KEY,
    USER_PHONE_HASH_LABEL_KEY,
    BannedUser,
    MasterUserRecord,
    Space,
    SpaceBinding,
    ToolchainStatus,
    UserSignup,
    deactivated,
    hash_string,
)

_GROUP = "toolchain.dev.openshift.com"
_USER_SIGNUPS = f"usersignups.{_GROUP}"
_MASTER_USER_RECORDS = f"masteruserrecords.{_GROUP}"
_SPACES = f"spaces.{_GROUP}"
_TOOLCHAIN_STATUSES = f"toolchainstatuses.{_GROUP}"
_TOOLCHAIN_STATUS_NAME = "toolchain-status"

_MD5_HEX = re.compile(r"^[0-9a-fA-F]{32}$")

_EQUALS = {"=", "=="}
_NOT_EQUALS = "!="
_SET_OPERATORS = {"in", "notin"}
_EXISTS = "exists"
_DOES_NOT_EXIST = "!"


@dataclass(frozen=True)
class LabelRequirement:
    """A single label selector requirement, such as ``key = value``."""

    key: str
    operator: str = "="
    values: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))
        if not self.key:
            raise ValueError("label requirement key must not be empty")
        op = self.operator
        if op in _EQUALS or op == _NOT_EQUALS:
            if len(self.values) != 1:
                raise ValueError(f"operator {op!r} requires exactly one value")
        elif op in _SET_OPERATORS:
            if not self.values:
                raise ValueError(f"operator {op!r} requires at least one value")
        elif op in (_EXISTS, _DOES_NOT_EXIST):
            if self.values:
                raise ValueError(f"operator {op!r} takes no values")
        else:
            raise ValueError(f"unsupported operator {op!r}")

    def matches(self, labels: dict[str, str]) -> bool:
        """True when the given labels satisfy this requirement."""
        op = self.operator
        present = self.key in labels
        value = labels.get(self.key)
        if op in _EQUALS:
            return present and value == self.values[0]
        if op == _NOT_EQUALS:
            return not present or value != self.values[0]
        if op == "in":
            return present and value in self.values
        if op == "notin":
            return not present or value not in self.values
        if op == _EXISTS:
            return present
        return not present


class ResourceProvider(Protocol):
    """Read access to the resources needed to describe a signup."""

    def get_master_user_record(self, name: str) -> MasterUserRecord:
        """Return the named MasterUserRecord or raise NotFoundError."""

    def get_toolchain_status(self) -> ToolchainStatus:
        """Return the ToolchainStatus or raise NotFoundError."""

    def get_user_signup(self, name: str) -> UserSignup:
        """Return the named UserSignup or raise NotFoundError."""

    def get_space(self, name: str) -> Space:
        """Return the named Space or raise NotFoundError."""

    def list_space_bindings(self, *args: LabelRequirement) -> list[SpaceBinding]:
        """Return the SpaceBindings matching every requirement."""


def _phone_hash(phone_number_or_hash: str) -> str:
    if _MD5_HEX.match(phone_number_or_hash):
        return phone_number_or_hash
    return hash_string(phone_number_or_hash)


@dataclass
class CRTClient:
    """An in-memory store of toolchain resources, keyed by name.

    Reads return copies, so callers can modify results freely; writes go
    through the create and update methods, which assign resource versions.
    """

    user_signups: dict[str, UserSignup] = field(default_factory=dict)
    master_user_records: dict[str, MasterUserRecord] = field(default_factory=dict)
    spaces: dict[str, Space] = field(default_factory=dict)
    space_bindings: dict[str, SpaceBinding] = field(default_factory=dict)
    banned_users: dict[str, BannedUser] = field(default_factory=dict)
    toolchain_status: ToolchainStatus | None = None
    _versions: Iterator[int] = field(
        default_factory=lambda: itertools.count(1), init=False, repr=False, compare=False
    )

    def _next_version(self) -> str:
        return str(next(self._versions))

    def get_user_signup(self, name: str) -> UserSignup:
        try:
            return copy.deepcopy(self.user_signups[name])
        except KeyError:
            raise NotFoundError(name, _USER_SIGNUPS) from None

    def create_user_signup(self, user_signup: UserSignup) -> UserSignup:
        if user_signup.name in self.user_signups:
            raise ConflictError("object already exists", _USER_SIGNUPS, user_signup.name)
        stored = copy.deepcopy(user_signup)
        stored.resource_version = self._next_version()
        self.user_signups[stored.name] = stored
        return copy.deepcopy(stored)

    def update_user_signup(self, user_signup: UserSignup) -> UserSignup:
        if user_signup.name not in self.user_signups:
            raise NotFoundError(user_signup.name, _USER_SIGNUPS)
        stored = copy.deepcopy(user_signup)
        stored.resource_version = self._next_version()
        self.user_signups[stored.name] = stored
        return copy.deepcopy(stored)

    def list_active_signups_by_phone_number_or_hash(
        self, phone_number_or_hash: str
    ) -> list[UserSignup]:
        wanted = _phone_hash(phone_number_or_hash)
        return [
            copy.deepcopy(us)
            for us in self.user_signups.values()
            if us.labels.get(USER_PHONE_HASH_LABEL_KEY) == wanted and not deactivated(us)
        ]

    def list_banned_users_by_email(self, email: str) -> list[BannedUser]:
        wanted = hash_string(email)
        return [
            copy.deepcopy(bu)
            for bu in self.banned_users.values()
            if bu.labels.get(BANNED_USER_EMAIL_HASH_LABEL_KEY) == wanted
        ]

    def list_banned_users_by_phone_number_or_hash(
        self, phone_number_or_hash: str
    ) -> list[BannedUser]:
        wanted = _phone_hash(phone_number_or_hash)
        return [
            copy.deepcopy(bu)
            for bu in self.banned_users.values()
            if bu.labels.get(BANNED_USER_PHONE_HASH_LABEL_KEY) == wanted
        ]

    def get_master_user_record(self, name: str) -> MasterUserRecord:
        try:
            return copy.deepcopy(self.master_user_records[name])
        except KeyError:
            raise NotFoundError(name, _MASTER_USER_RECORDS) from None

    def get_toolchain_status(self) -> ToolchainStatus:
        if self.toolchain_status is None:
            raise NotFoundError(_TOOLCHAIN_STATUS_NAME, _TOOLCHAIN_STATUSES)
        return copy.deepcopy(self.toolchain_status)

    def get_space(self, name: str) -> Space:
        try:
            return copy.deepcopy(self.spaces[name])
        except KeyError:
            raise NotFoundError(name, _SPACES) from None

    def list_space_bindings(self, *args: LabelRequirement) -> list[SpaceBinding]:
        return [
            copy.deepcopy(sb)
            for sb in self.space_bindings.values()
            if all(req.matches(sb.labels) for req in args)
        ]


@dataclass
class CRTClientProvider:
    """A ResourceProvider that reads straight from a CRTClient."""

    client: CRTClient

    def get_master_user_record(self, name: str) -> MasterUserRecord:
        return self.client.get_master_user_record(name)

    def get_toolchain_status(self) -> ToolchainStatus:
        return self.client.get_toolchain_status()

    def get_user_signup(self, name: str) -> UserSignup:
        return self.client.get_user_signup(name)

    def get_space(self, name: str) -> Space:
        return self.client.get_space(name)

    def list_space_bindings(self, *args: LabelRequirement) -> list[SpaceBinding]:
        return self.client.list_space_bindings(*args)