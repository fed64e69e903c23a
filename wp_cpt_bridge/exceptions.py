"""Errors raised by the integration."""

from typing import Optional


class DataUnavailableError(RuntimeError):
    """WordPress metadata could not be obtained for a store."""


class IntegrationWarning(Exception):
    """
    Administrator-facing misconfiguration report.

    Carries a short title, a remediation message and an optional link to
    further documentation.
    """

    level = "warning"

    def __init__(self, title: str, message: str, link: Optional[str] = None):
        super().__init__(f"{title}: {message}")
        self.title = title
        self.message = message
        self.link = link

    def to_dict(self):
        return {
            "level": self.level,
            "title": self.title,
            "message": self.message,
            "link": self.link,
        }
