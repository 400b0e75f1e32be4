# signupsvc

A signup service for a multi-cluster developer toolchain. It turns identity
claims taken from a request into `UserSignup` resources, reactivates
deactivated signups, and reports signup status together with cluster-specific
URLs and the user's default namespace.

## Installation

```
pip install signupsvc
```

For running the tests:

```
pip install "signupsvc[test]"
pytest
```

## Modules

- `signupsvc.service`
  - `SignupService(client, config=None, namespace="toolchain-host-operator",
    captcha_checker=None, informer=None)` is the entry point. `client` is a
    `CRTClient`, `config` a `VerificationConfig`, `captcha_checker` any
    `CaptchaAssessor`, and `informer` any `ResourceProvider`.
    - `signup(ctx)` creates a new `UserSignup`, or reactivates a deactivated
      one while keeping its activation-counter and last-target-cluster
      annotations. It raises `ForbiddenError` for banned users and for
      usernames ending in `crtadmin`, and `ConflictError` when an active
      signup already exists. A `no-space=true` query parameter sets the
      skip-auto-create-space annotation.
    - `get_signup(ctx, user_id, username)` returns a `Signup`, or `None` when
      no signup exists or it is deactivated. Missing SSO user and account ID
      annotations are filled in from the context and stored.
    - `get_signup_from_informer(ctx, user_id, username,
      check_user_signup_completed)` does the same through the informer; it
      raises `RuntimeError` when no informer was given.
    - `do_get_signup(...)` and `do_get_user_signup_from_identifier(...)` take
      the `ResourceProvider` to read from explicitly.
    - `get_user_signup_from_identifier(user_id, username)` looks the resource
      up by encoded username, then by encoded user ID.
    - `update_user_signup(user_signup)` stores a modified resource.
    - `phone_number_already_in_use(user_id, username, phone_number_or_hash)`
      raises `ForbiddenError` when the number (or its MD5 hash) belongs to a
      banned user or to another active signup.
  - `get_default_user_namespace(provider, signup)` finds the user's default
    namespace, preferring a Space the user created; failures are logged and
    give an empty string.
- `signupsvc.identifiers`: `encode_user_identifier(subject)` makes a DNS-1123
  compliant name, adding a CRC32 prefix when the value had to change and
  trimming to 63 characters; also `is_crt_admin`, `extract_email_host`,
  `get_apps_url` and `get_rhods_member_url`.
- `signupsvc.verification`: `is_phone_verification_required(checker, ctx,
  config)` returns whether phone verification applies and the captcha score
  (`-1.0` when no assessment was completed).
- `signupsvc.signup`: the `Signup` and `Status` views (`Signup.to_dict()`
  gives the JSON form, leaving out empty optional fields), and
  `poll_update_signup(updater)`, which tries an update up to five times
  before re-raising the last error.
- `signupsvc.provider`: `LabelRequirement` (label selector with `=`, `==`,
  `!=`, `in`, `notin`, `exists` and `!`), the `ResourceProvider` protocol,
  the in-memory `CRTClient` store, and `CRTClientProvider`.
- `signupsvc.context`: `RequestContext` with claim values, query parameters
  and headers, plus the key constants such as `USERNAME_KEY` and `SUB_KEY`.
- `signupsvc.config`: `VerificationConfig`; excluded email domains may be
  given as a comma-separated string.
- `signupsvc.models`: the resource dataclasses, condition helpers, state
  helpers and `hash_string` (MD5 hex digest).
- `signupsvc.errors`: `SignupError` and its subclasses `NotFoundError`,
  `ForbiddenError`, `ConflictError` and `InternalError`, with `is_not_found`.

## Example

```python
from signupsvc.config import VerificationConfig
from signupsvc.context import EMAIL_KEY, SUB_KEY, USERNAME_KEY, RequestContext
from signupsvc.identifiers import encode_user_identifier
from signupsvc.provider import CRTClient
from signupsvc.service import SignupService

print(encode_user_identifier("abc:xyz"))  # a05a4053-abcxyz

client = CRTClient()
service = SignupService(client, VerificationConfig(enabled=False), "toolchain-host")
ctx = RequestContext(
    values={USERNAME_KEY: "jsmith", SUB_KEY: "1234", EMAIL_KEY: "jsmith@example.com"}
)
user_signup = service.signup(ctx)
print(user_signup.name)  # jsmith

signup = service.get_signup(ctx, "1234", "jsmith")
print(signup.status.reason)  # PendingApproval
```

## What it does not do

The package holds its resources in the in-memory `CRTClient`; it does not
connect to a cluster or persist anything. It has no HTTP server, no command
line, and no built-in captcha assessor: a `CaptchaAssessor` must be supplied
for captcha scoring. Messages go through the standard `logging` module.