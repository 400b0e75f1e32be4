"""The signup service: creating, reactivating and describing user signups."""

from __future__ import annotations

import logging
from typing import Optional

from .config import VerificationConfig
from .context import (
    ACCOUNT_ID_KEY,
    COMPANY_KEY,
    EMAIL_KEY,
    FAMILY_NAME_KEY,
    GIVEN_NAME_KEY,
    ORIGINAL_SUB_KEY,
    SUB_KEY,
    USER_ID_KEY,
    USERNAME_KEY,
    RequestContext,
)
from .errors import ConflictError, ForbiddenError, InternalError, NotFoundError, SignupError
from .identifiers import encode_user_identifier, get_rhods_member_url, is_crt_admin
from .models import (
    ACTIVATION_COUNTER_ANNOTATION_KEY,
    CAPTCHA_SCORE_ANNOTATION_KEY,
    CONDITION_READY,
    CONDITION_TRUE,
    LAST_TARGET_CLUSTER_ANNOTATION_KEY,
    NAMESPACE_TYPE_DEFAULT,
    SKIP_AUTO_CREATE_SPACE_ANNOTATION_KEY,
    SPACE_BINDING_MUR_LABEL_KEY,
    SPACE_BINDING_SPACE_LABEL_KEY,
    SPACE_CREATOR_LABEL_KEY,
    SSO_ACCOUNT_ID_ANNOTATION_KEY,
    SSO_USER_ID_ANNOTATION_KEY,
    USER_EMAIL_ANNOTATION_KEY,
    USER_EMAIL_HASH_LABEL_KEY,
    USER_SIGNUP_APPROVED,
    USER_SIGNUP_COMPLETE,
    USER_SIGNUP_PENDING_APPROVAL_REASON,
    USER_SIGNUP_USER_DEACTIVATED_REASON,
    VERIFICATION_COUNTER_ANNOTATION_KEY,
    Condition,
    IdentityClaims,
    PropagatedClaims,
    UserSignup,
    UserSignupSpec,
    deactivated,
    find_condition,
    hash_string,
    is_false_with_reason,
    set_verification_required,
    verification_required,
)
from .provider import CRTClient, CRTClientProvider, LabelRequirement, ResourceProvider
from .signup import Signup, Status, poll_update_signup
from .verification import NO_SCORE, CaptchaAssessor, is_phone_verification_required

logger = logging.getLogger(__name__)

NO_SPACE_KEY = "no-space"
DEFAULT_NAMESPACE = "toolchain-host-operator"

_ANNOTATIONS_TO_RETAIN = (
    ACTIVATION_COUNTER_ANNOTATION_KEY,
    LAST_TARGET_CLUSTER_ANNOTATION_KEY,
)

_TRUE_STRINGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_STRINGS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class _WrappedError(SignupError):
    """An error that adds context to the failure that caused it."""

    def __init__(self, message: str, cause: BaseException) -> None:
        self.message = message
        super().__init__(f"{message}: {cause}")
        self.__cause__ = cause


def _parse_bool(value: str) -> bool:
    if value in _TRUE_STRINGS:
        return True
    if value in _FALSE_STRINGS:
        return False
    raise ValueError(f'parsing "{value}": invalid syntax')


class SignupService:
    """Performs user signup related activities against a cluster client."""

    def __init__(
        self,
        client: CRTClient,
        config: Optional[VerificationConfig] = None,
        namespace: str = DEFAULT_NAMESPACE,
        captcha_checker: Optional[CaptchaAssessor] = None,
        informer: Optional[ResourceProvider] = None,
    ) -> None:
        self.client = client
        self.config = config if config is not None else VerificationConfig()
        self.namespace = namespace
        self.captcha_checker = captcha_checker
        self.informer = informer
        self._default_provider = CRTClientProvider(client)

    def _new_user_signup(self, ctx: RequestContext) -> UserSignup:
        username = ctx.get_string(USERNAME_KEY)
        user_id = ctx.get_string(USER_ID_KEY)
        account_id = ctx.get_string(ACCOUNT_ID_KEY)
        sub = ctx.get_string(SUB_KEY)

        if not user_id or not account_id:
            logger.info(
                "Missing essential claims from token - [user_id:%s][account_id:%s] "
                "for user [%s], sub [%s]",
                user_id,
                account_id,
                username,
                sub,
            )

        if is_crt_admin(username):
            logger.info(
                "A crtadmin user '%s' just tried to signup - the UserID is: '%s'", username, sub
            )
            raise ForbiddenError("forbidden", f"failed to create usersignup for {username}")

        email = ctx.get_string(EMAIL_KEY)
        for banned in self.client.list_banned_users_by_email(email):
            if banned.email == email:
                raise ForbiddenError("forbidden", "user has been banned")

        required, score = is_phone_verification_required(self.captcha_checker, ctx, self.config)

        original_sub = ctx.get_string(ORIGINAL_SUB_KEY)
        given_name = ctx.get_string(GIVEN_NAME_KEY)
        family_name = ctx.get_string(FAMILY_NAME_KEY)
        company = ctx.get_string(COMPANY_KEY)

        user_signup = UserSignup(
            name=encode_user_identifier(username),
            namespace=self.namespace,
            annotations={
                USER_EMAIL_ANNOTATION_KEY: email,
                VERIFICATION_COUNTER_ANNOTATION_KEY: "0",
                SSO_USER_ID_ANNOTATION_KEY: user_id,
                SSO_ACCOUNT_ID_ANNOTATION_KEY: account_id,
            },
            labels={USER_EMAIL_HASH_LABEL_KEY: hash_string(email)},
            spec=UserSignupSpec(
                target_cluster="",
                userid=sub,
                username=username,
                given_name=given_name,
                family_name=family_name,
                company=company,
                original_sub=original_sub,
                identity_claims=IdentityClaims(
                    propagated=PropagatedClaims(
                        sub=sub,
                        user_id=user_id,
                        account_id=account_id,
                        original_sub=original_sub,
                        email=email,
                    ),
                    preferred_username=username,
                    given_name=given_name,
                    family_name=family_name,
                    company=company,
                ),
            ),
        )

        if score > NO_SCORE:
            user_signup.annotations[CAPTCHA_SCORE_ANNOTATION_KEY] = f"{score:.1f}"

        set_verification_required(user_signup, required)

        if ctx.get_query(NO_SPACE_KEY) == "true":
            logger.info("setting '%s' annotation to true", SKIP_AUTO_CREATE_SPACE_ANNOTATION_KEY)
            user_signup.annotations[SKIP_AUTO_CREATE_SPACE_ANNOTATION_KEY] = "true"

        return user_signup

    def signup(self, ctx: RequestContext) -> UserSignup:
        """Create a UserSignup for the caller, or reactivate a deactivated one.

        Raises ConflictError when an active UserSignup already exists.
        """
        encoded_user_id = encode_user_identifier(ctx.get_string(SUB_KEY))
        try:
            user_signup = self.client.get_user_signup(encoded_user_id)
        except NotFoundError:
            encoded_username = encode_user_identifier(ctx.get_string(USERNAME_KEY))
            try:
                user_signup = self.client.get_user_signup(encoded_username)
            except NotFoundError:
                logger.info("user not found, creating a new one (encoded_user_id=%s)", encoded_user_id)
                return self._create_user_signup(ctx)

        cond = find_condition(user_signup.status.conditions, USER_SIGNUP_COMPLETE)
        if (
            cond is not None
            and cond.status == CONDITION_TRUE
            and cond.reason == USER_SIGNUP_USER_DEACTIVATED_REASON
        ):
            return self._reactivate_user_signup(ctx, user_signup)

        username = ctx.get_string(USERNAME_KEY)
        raise ConflictError(
            f"UserSignup [id: {encoded_user_id}; username: {username}]. Unable to create "
            "UserSignup because there is already an active UserSignup with such ID"
        )

    def _create_user_signup(self, ctx: RequestContext) -> UserSignup:
        return self.client.create_user_signup(self._new_user_signup(ctx))

    def _reactivate_user_signup(self, ctx: RequestContext, existing: UserSignup) -> UserSignup:
        fresh = self._new_user_signup(ctx)
        logger.info(
            "reactivating user (%s=%s)",
            ACTIVATION_COUNTER_ANNOTATION_KEY,
            existing.annotations.get(ACTIVATION_COUNTER_ANNOTATION_KEY, ""),
        )
        for key in _ANNOTATIONS_TO_RETAIN:
            if key in existing.annotations:
                fresh.annotations[key] = existing.annotations[key]

        existing.annotations = fresh.annotations
        existing.labels = fresh.labels
        existing.spec = fresh.spec
        return self.client.update_user_signup(existing)

    def get_signup(
        self, ctx: Optional[RequestContext], user_id: str, username: str
    ) -> Optional[Signup]:
        """Describe the caller's signup, or None if it is missing or deactivated."""
        return self.do_get_signup(ctx, self._default_provider, user_id, username, True)

    def get_signup_from_informer(
        self,
        ctx: Optional[RequestContext],
        user_id: str,
        username: str,
        check_user_signup_completed: bool,
    ) -> Optional[Signup]:
        """Like get_signup, but reads resources through the informer."""
        if self.informer is None:
            raise RuntimeError("no informer configured for the signup service")
        return self.do_get_signup(
            ctx, self.informer, user_id, username, check_user_signup_completed
        )

    def do_get_signup(
        self,
        ctx: Optional[RequestContext],
        provider: ResourceProvider,
        user_id: str,
        username: str,
        check_user_signup_completed: bool,
    ) -> Optional[Signup]:
        """Build the Signup view from the resources the provider returns."""
        user_signup: Optional[UserSignup] = None

        def attempt() -> None:
            nonlocal user_signup
            user_signup = None
            try:
                found = self.do_get_user_signup_from_identifier(provider, user_id, username)
            except NotFoundError:
                return
            user_signup = found
            if ctx is None:
                return

            changed = False
            annotations = found.annotations
            if not annotations.get(SSO_USER_ID_ANNOTATION_KEY):
                value = ctx.get_string(USER_ID_KEY)
                if value:
                    annotations[SSO_USER_ID_ANNOTATION_KEY] = value
                    changed = True
            if not annotations.get(SSO_ACCOUNT_ID_ANNOTATION_KEY):
                value = ctx.get_string(ACCOUNT_ID_KEY)
                if value:
                    annotations[SSO_ACCOUNT_ID_ANNOTATION_KEY] = value
                    changed = True

            if changed:
                user_signup = None
                user_signup = self.update_user_signup(found)

        poll_update_signup(attempt)

        if user_signup is None:
            return None

        response = Signup(name=user_signup.name, username=user_signup.spec.username)
        if user_signup.status.compliant_username:
            response.compliant_username = user_signup.status.compliant_username

        conditions = user_signup.status.conditions
        approved = find_condition(conditions, USER_SIGNUP_APPROVED)
        complete = find_condition(conditions, USER_SIGNUP_COMPLETE)
        if (
            approved is None
            or complete is None
            or is_false_with_reason(
                conditions, USER_SIGNUP_APPROVED, USER_SIGNUP_PENDING_APPROVAL_REASON
            )
        ):
            logger.info("usersignup: %s is pending approval", user_signup.name)
            response.status = Status(
                reason=USER_SIGNUP_PENDING_APPROVAL_REASON,
                verification_required=verification_required(user_signup),
            )
            return response

        if complete.status != CONDITION_TRUE and check_user_signup_completed:
            logger.info("usersignup: %s is not complete", user_signup.name)
            response.status = Status(
                reason=complete.reason,
                message=complete.message,
                verification_required=verification_required(user_signup),
            )
            return response
        if complete.reason == USER_SIGNUP_USER_DEACTIVATED_REASON:
            logger.info("usersignup: %s is deactivated", user_signup.name)
            return None

        try:
            mur = provider.get_master_user_record(user_signup.status.compliant_username)
        except Exception as exc:
            raise _WrappedError(
                "error when retrieving MasterUserRecord for completed UserSignup "
                f"{user_signup.name}",
                exc,
            ) from exc

        ready_condition = find_condition(mur.conditions, CONDITION_READY) or Condition(
            type="", status=""
        )
        try:
            ready = _parse_bool(ready_condition.status)
        except ValueError as exc:
            raise _WrappedError(
                f"unable to parse readiness status as bool: {ready_condition.status}", exc
            ) from exc
        logger.info("mur ready condition is: %s", ready)

        response.status = Status(
            ready=ready,
            reason=ready_condition.reason,
            message=ready_condition.message,
            verification_required=verification_required(user_signup),
        )

        if mur.user_accounts:
            try:
                toolchain_status = provider.get_toolchain_status()
            except Exception as exc:
                raise _WrappedError(
                    "error when retrieving ToolchainStatus to set Che Dashboard for "
                    f"completed UserSignup {user_signup.name}",
                    exc,
                ) from exc
            response.proxy_url = toolchain_status.proxy_url
            target = mur.user_accounts[0].cluster_name
            member = next(
                (m for m in toolchain_status.members if m.cluster_name == target), None
            )
            if member is not None:
                response.console_url = member.console_url
                response.che_dashboard_url = member.che_dashboard_url
                response.api_endpoint = member.api_endpoint
                response.cluster_name = member.cluster_name

            response.rhods_member_url = get_rhods_member_url(response)
            response.default_user_namespace = get_default_user_namespace(provider, response)

        return response

    def get_user_signup_from_identifier(self, user_id: str, username: str) -> UserSignup:
        """Return the UserSignup resource found by username, then by user ID."""
        return self.do_get_user_signup_from_identifier(self._default_provider, user_id, username)

    def do_get_user_signup_from_identifier(
        self, provider: ResourceProvider, user_id: str, username: str
    ) -> UserSignup:
        """Look a UserSignup up by encoded username, falling back to the user ID.

        When neither is found, the error from the username lookup is raised.
        """
        try:
            return provider.get_user_signup(encode_user_identifier(username))
        except NotFoundError as exc:
            first_error = exc
        try:
            return provider.get_user_signup(encode_user_identifier(user_id))
        except NotFoundError:
            raise first_error from None

    def update_user_signup(self, user_signup: UserSignup) -> UserSignup:
        """Store the given UserSignup and return the updated resource."""
        return self.client.update_user_signup(user_signup)

    def phone_number_already_in_use(
        self, user_id: str, username: str, phone_number_or_hash: str
    ) -> None:
        """Raise ForbiddenError if the phone number is banned or used by another active user."""
        try:
            banned = self.client.list_banned_users_by_phone_number_or_hash(phone_number_or_hash)
        except Exception as exc:
            raise InternalError(exc, "failed listing banned users") from exc
        if banned:
            raise ForbiddenError("cannot re-register with phone number", "phone number already in use")

        try:
            signups = self.client.list_active_signups_by_phone_number_or_hash(phone_number_or_hash)
        except Exception as exc:
            raise InternalError(exc, "failed listing userSignups") from exc
        for other in signups:
            if (
                other.spec.userid != user_id
                and other.spec.username != username
                and not deactivated(other)
            ):
                raise ForbiddenError(
                    "cannot re-register with phone number", "phone number already in use"
                )


def get_default_user_namespace(provider: ResourceProvider, signup: Signup) -> str:
    """Return the user's default namespace, preferring a Space the user created.

    Works on a best-effort basis: failures are logged and yield an empty string
    or skip the affected Space.
    """
    try:
        requirement = LabelRequirement(
            SPACE_BINDING_MUR_LABEL_KEY, "=", (signup.compliant_username,)
        )
    except ValueError as exc:
        logger.error("unable to create spacebindings selector for signup %s: %s", signup.name, exc)
        return ""

    try:
        bindings = provider.list_space_bindings(requirement)
    except Exception as exc:
        logger.error("unable to list spacebindings for signup %s: %s", signup.name, exc)
        return ""

    default_namespace = ""
    for binding in bindings:
        space_name = binding.labels.get(SPACE_BINDING_SPACE_LABEL_KEY, "")
        if not space_name:
            logger.error(
                "unable to get space '%s': spacebinding has no '%s' label",
                space_name,
                SPACE_BINDING_SPACE_LABEL_KEY,
            )
            continue
        try:
            space = provider.get_space(space_name)
        except Exception as exc:
            logger.error("unable to get space '%s': %s", space_name, exc)
            continue

        created_by_user = space.labels.get(SPACE_CREATOR_LABEL_KEY, "") == signup.name
        namespace = next(
            (ns for ns in space.provisioned_namespaces if ns.type == NAMESPACE_TYPE_DEFAULT),
            None,
        )
        if namespace is not None and (not default_namespace or created_by_user):
            default_namespace = namespace.name

        if created_by_user and default_namespace:
            break

    return default_namespace