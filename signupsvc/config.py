"""Verification settings for the signup service."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable


@dataclass
class VerificationConfig:
    """Phone and captcha verification settings.

    ``excluded_email_domains`` may be given as a comma-separated string.
    """

    enabled: bool = False
    captcha_enabled: bool = False
    captcha_score_threshold: float = 0.9
    excluded_email_domains: tuple[str, ...] = field(default_factory=tuple)
    code_expires_in_min: int = 5

    def __post_init__(self) -> None:
        domains: Iterable[str] = self.excluded_email_domains
        if isinstance(domains, str):
            domains = domains.split(",")
        self.excluded_email_domains = tuple(d.strip() for d in domains if d.strip())
        self.captcha_score_threshold = float(self.captcha_score_threshold)

    def is_excluded_domain(self, host: str) -> bool:
        """True when host matches an excluded domain, ignoring case."""
        folded = host.casefold()
        return any(d.casefold() == folded for d in self.excluded_email_domains)