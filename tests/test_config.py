from signupsvc.config import VerificationConfig


def test_domains_from_string():
    cfg = VerificationConfig(enabled=True, excluded_email_domains="redhat.com, example.com,")
    assert cfg.excluded_email_domains == ("redhat.com", "example.com")


def test_empty_string_means_no_domains():
    cfg = VerificationConfig(excluded_email_domains="")
    assert cfg.excluded_email_domains == ()
    assert not cfg.is_excluded_domain("")


def test_is_excluded_domain_ignores_case():
    cfg = VerificationConfig(excluded_email_domains=["redhat.com"])
    assert cfg.is_excluded_domain("REDHAT.com")
    assert cfg.is_excluded_domain("redhat.com")
    assert not cfg.is_excluded_domain("example.com")


def test_threshold_accepts_string():
    cfg = VerificationConfig(captcha_score_threshold="0.8")
    assert cfg.captcha_score_threshold == 0.8


def test_defaults_disable_verification():
    cfg = VerificationConfig()
    assert cfg.enabled is False
    assert cfg.captcha_enabled is False
    assert cfg.code_expires_in_min == 5