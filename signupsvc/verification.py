"""Deciding whether a new user must verify a phone number."""

from __future__ import annotations

import logging
from typing import Protocol

from .config import VerificationConfig
from .context import EMAIL_KEY, RequestContext
from .identifiers import extract_email_host

logger = logging.getLogger(__name__)

RECAPTCHA_TOKEN_HEADER = "Recaptcha-Token"
NO_SCORE = -1.0


class CaptchaAssessor(Protocol):
    """Scores a captcha token; higher scores mean less risk."""

    def complete_assessment(
        self, ctx: RequestContext, config: VerificationConfig, token: str
    ) -> float:
        """Return the assessment score for token, raising on failure."""


def is_phone_verification_required(
    captcha_checker: CaptchaAssessor | None,
    ctx: RequestContext | None,
    config: VerificationConfig,
) -> tuple[bool, float]:
    """Return whether phone verification is required, and the captcha score.

    Verification is skipped when it is disabled or the user's email domain is
    excluded. Otherwise it is required unless captcha is enabled and a single
    valid token scores at or above the threshold. The score is -1 whenever no
    assessment was completed.
    """
    if not config.enabled:
        return False, NO_SCORE

    email = ctx.get_string(EMAIL_KEY) if ctx is not None else ""
    if config.is_excluded_domain(extract_email_host(email)):
        return False, NO_SCORE

    if not config.captcha_enabled:
        return True, NO_SCORE

    if ctx is None or not ctx.has_request:
        logger.error("no request in context")
        return True, NO_SCORE

    tokens = ctx.header_values(RECAPTCHA_TOKEN_HEADER)
    if tokens is None or len(tokens) != 1:
        logger.error("no valid captcha token found in request header")
        return True, NO_SCORE

    if captcha_checker is None:
        logger.error("signup assessment failed: no captcha assessor configured")
        return True, NO_SCORE

    try:
        score = float(captcha_checker.complete_assessment(ctx, config, tokens[0]))
    except Exception as exc:
        logger.error("signup assessment failed: %s", exc)
        return True, NO_SCORE

    threshold = config.captcha_score_threshold
    if score < threshold:
        logger.info(
            "the risk analysis score '%.1f' did not meet the expected threshold '%.1f'",
            score,
            threshold,
        )
        return True, score

    return False, score