import pytest

from signupsvc.config import VerificationConfig
from signupsvc.context import EMAIL_KEY, RequestContext
from signupsvc.verification import is_phone_verification_required


class FakeCaptchaChecker:
    def __init__(self, score=0.0, error=None):
        self.score = score
        self.error = error
        self.tokens = []

    def complete_assessment(self, ctx, config, token):
        self.tokens.append(token)
        if self.error is not None:
            raise self.error
        return self.score


def _ctx_with_token(*tokens):
    return RequestContext(headers={"Recaptcha-Token": list(tokens)})


def test_captcha_disabled_requires_verification():
    config = VerificationConfig(enabled=True, captcha_enabled=False)
    assert is_phone_verification_required(None, RequestContext(), config) == (True, -1)


def test_no_request_requires_verification():
    config = VerificationConfig(enabled=True, captcha_enabled=True)
    assert is_phone_verification_required(None, RequestContext(), config) == (True, -1)


def test_missing_token_header_requires_verification():
    config = VerificationConfig(enabled=True, captcha_enabled=True)
    ctx = RequestContext(headers={})
    assert is_phone_verification_required(None, ctx, config) == (True, -1)


def test_token_header_with_wrong_length_requires_verification():
    config = VerificationConfig(enabled=True, captcha_enabled=True)
    checker = FakeCaptchaChecker(score=1.0)
    assert is_phone_verification_required(checker, _ctx_with_token("123", "456"), config) == (True, -1)
    assert checker.tokens == []


def test_assessment_error_requires_verification():
    config = VerificationConfig(enabled=True, captcha_enabled=True)
    checker = FakeCaptchaChecker(error=RuntimeError("assessment failed"))
    assert is_phone_verification_required(checker, _ctx_with_token("123"), config) == (True, -1)


def test_low_score_requires_verification_and_reports_score():
    config = VerificationConfig(enabled=True, captcha_enabled=True, captcha_score_threshold=0.8)
    checker = FakeCaptchaChecker(score=0.5)
    required, score = is_phone_verification_required(checker, _ctx_with_token("123"), config)
    assert required is True
    assert score == pytest.approx(0.5)
    assert checker.tokens == ["123"]


def test_overall_verification_disabled():
    config = VerificationConfig(enabled=False)
    assert is_phone_verification_required(None, None, config) == (False, -1)


def test_excluded_email_domain_skips_verification():
    config = VerificationConfig(
        enabled=True, captcha_enabled=True, excluded_email_domains="example.com"
    )
    ctx = RequestContext(values={EMAIL_KEY: "jsmith@Example.com"})
    assert is_phone_verification_required(None, ctx, config) == (False, -1)


def test_successful_assessment_skips_verification():
    config = VerificationConfig(enabled=True, captcha_enabled=True, captcha_score_threshold=0.8)
    checker = FakeCaptchaChecker(score=1.0)
    assert is_phone_verification_required(checker, _ctx_with_token("123"), config) == (False, 1.0)


def test_score_equal_to_threshold_skips_verification():
    config = VerificationConfig(enabled=True, captcha_enabled=True, captcha_score_threshold=0.9)
    checker = FakeCaptchaChecker(score=0.9)
    required, score = is_phone_verification_required(checker, _ctx_with_token("abc"), config)
    assert required is False
    assert score == pytest.approx(0.9)