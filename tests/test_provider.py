import pytest

from signupsvc.errors import ConflictError, NotFoundError, is_not_found
from signupsvc.models import (
    BANNED_USER_EMAIL_HASH_LABEL_KEY,
    BANNED_USER_PHONE_HASH_LABEL_KEY,
    SPACE_BINDING_MUR_LABEL_KEY,
    SPACE_BINDING_SPACE_LABEL_KEY,
    USER_PHONE_HASH_LABEL_KEY,
    BannedUser,
    MasterUserRecord,
    Space,
    SpaceBinding,
    ToolchainStatus,
    UserSignup,
    UserSignupSpec,
    hash_string,
    set_deactivated,
)
from signupsvc.provider import CRTClient, CRTClientProvider, LabelRequirement


def _binding(name, mur, space):
    return SpaceBinding(
        name=name,
        labels={SPACE_BINDING_MUR_LABEL_KEY: mur, SPACE_BINDING_SPACE_LABEL_KEY: space},
        master_user_record=mur,
        space=space,
    )


def test_equals_requirement_matches_only_same_value():
    req = LabelRequirement("tier", "=", ("base",))
    assert req.matches({"tier": "base"}) is True
    assert req.matches({"tier": "other"}) is False
    assert req.matches({}) is False


def test_set_and_existence_requirements():
    assert LabelRequirement("k", "in", ("a", "b")).matches({"k": "b"}) is True
    assert LabelRequirement("k", "notin", ("a",)).matches({"k": "a"}) is False
    assert LabelRequirement("k", "notin", ("a",)).matches({}) is True
    assert LabelRequirement("k", "exists").matches({"k": ""}) is True
    assert LabelRequirement("k", "!").matches({"k": ""}) is False
    assert LabelRequirement("k", "!=", ("a",)).matches({"k": "b"}) is True


@pytest.mark.parametrize(
    "key,operator,values",
    [("", "=", ("a",)), ("k", "=", ()), ("k", "in", ()), ("k", "exists", ("a",)), ("k", "~", ("a",))],
)
def test_invalid_requirements_are_rejected(key, operator, values):
    with pytest.raises(ValueError):
        LabelRequirement(key, operator, values)


def test_get_missing_user_signup_raises_not_found():
    client = CRTClient()
    with pytest.raises(NotFoundError) as info:
        client.get_user_signup("jsmith")
    assert is_not_found(info.value)
    assert info.value.name == "jsmith"


def test_missing_toolchain_status_message():
    with pytest.raises(NotFoundError) as info:
        CRTClient().get_toolchain_status()
    assert str(info.value) == 'toolchainstatuses.toolchain.dev.openshift.com "toolchain-status" not found'


def test_create_then_get_round_trip():
    client = CRTClient()
    created = client.create_user_signup(
        UserSignup(name="jsmith", spec=UserSignupSpec(username="jsmith"))
    )
    fetched = client.get_user_signup("jsmith")
    assert fetched == created
    assert fetched.spec.username == "jsmith"
    assert created.resource_version


def test_create_duplicate_raises_conflict():
    client = CRTClient()
    client.create_user_signup(UserSignup(name="jsmith"))
    with pytest.raises(ConflictError):
        client.create_user_signup(UserSignup(name="jsmith"))


def test_update_persists_and_changes_version():
    client = CRTClient()
    created = client.create_user_signup(UserSignup(name="jsmith"))
    created.spec.family_name = "Johnson"
    updated = client.update_user_signup(created)
    assert client.get_user_signup("jsmith").spec.family_name == "Johnson"
    assert updated.resource_version != created.resource_version
    assert updated.spec.family_name == "Johnson"


def test_update_missing_raises_not_found():
    with pytest.raises(NotFoundError):
        CRTClient().update_user_signup(UserSignup(name="ghost"))


def test_reads_return_copies():
    client = CRTClient(user_signups={"jsmith": UserSignup(name="jsmith")})
    fetched = client.get_user_signup("jsmith")
    fetched.annotations["changed"] = "yes"
    assert client.get_user_signup("jsmith").annotations == {}


def test_banned_users_by_email_uses_hash_label():
    email = "jsmith@example.com"
    client = CRTClient(
        banned_users={
            "b1": BannedUser(name="b1", labels={BANNED_USER_EMAIL_HASH_LABEL_KEY: hash_string(email)}),
            "b2": BannedUser(name="b2", labels={BANNED_USER_EMAIL_HASH_LABEL_KEY: hash_string("other@example.com")}),
        }
    )
    assert [b.name for b in client.list_banned_users_by_email(email)] == ["b1"]


def test_banned_users_by_phone_accepts_value_or_hash():
    phone = "+123"
    client = CRTClient(
        banned_users={
            "b1": BannedUser(name="b1", labels={BANNED_USER_PHONE_HASH_LABEL_KEY: hash_string(phone)}),
        }
    )
    by_value = client.list_banned_users_by_phone_number_or_hash(phone)
    by_hash = client.list_banned_users_by_phone_number_or_hash(hash_string(phone))
    assert [b.name for b in by_value] == ["b1"]
    assert by_value == by_hash


def test_active_signups_by_phone_exclude_deactivated():
    phone = "+123"
    active = UserSignup(name="a", labels={USER_PHONE_HASH_LABEL_KEY: hash_string(phone)})
    inactive = UserSignup(name="b", labels={USER_PHONE_HASH_LABEL_KEY: hash_string(phone)})
    set_deactivated(inactive, True)
    client = CRTClient(user_signups={"a": active, "b": inactive})
    assert [us.name for us in client.list_active_signups_by_phone_number_or_hash(phone)] == ["a"]


def test_list_space_bindings_filters_by_requirements():
    client = CRTClient(
        space_bindings={
            "sb1": _binding("sb1", "dave", "dave"),
            "sb2": _binding("sb2", "ted", "ted"),
        }
    )
    req = LabelRequirement(SPACE_BINDING_MUR_LABEL_KEY, "=", ("dave",))
    assert [sb.name for sb in client.list_space_bindings(req)] == ["sb1"]
    assert len(client.list_space_bindings()) == 2


def test_provider_delegates_to_client():
    status = ToolchainStatus(proxy_url="https://proxy-url.com")
    client = CRTClient(
        user_signups={"jsmith": UserSignup(name="jsmith")},
        master_user_records={"ted": MasterUserRecord(name="ted")},
        spaces={"ted": Space(name="ted")},
        space_bindings={"sb": _binding("sb", "ted", "ted")},
        toolchain_status=status,
    )
    provider = CRTClientProvider(client)
    assert provider.get_user_signup("jsmith").name == "jsmith"
    assert provider.get_master_user_record("ted").name == "ted"
    assert provider.get_space("ted").name == "ted"
    assert provider.get_toolchain_status() == status
    assert [sb.name for sb in provider.list_space_bindings()] == ["sb"]
    with pytest.raises(NotFoundError):
        provider.get_space("missing")