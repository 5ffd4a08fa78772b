"""Error taxonomy shared by the adapters and the pipeline stages.

Adapters translate library exceptions (Slack API errors, httpx errors,
subprocess failures) into these types. Stages catch them at their
boundary, log, and move on to the next message. Only InvalidAuthError
is fatal.
"""

from __future__ import annotations


class PlaybotError(Exception):
    """Base class for all playbot errors."""


class UserLookupError(PlaybotError):
    """Resolving a Slack user (bot check, display name) failed."""

    def __init__(self, user_id: str, detail: str):
        super().__init__(f"user lookup failed for {user_id!r}: {detail}")
        self.user_id = user_id
        self.detail = detail


class TransportError(PlaybotError):
    """A remote call (compile service, Slack Web API) failed at the network/protocol layer."""


class FormatError(PlaybotError):
    """The snippet could not be wrapped or formatted into a runnable program."""


class CompileError(PlaybotError):
    """The compile service ran but reported source diagnostics."""

    def __init__(self, diagnostics: str):
        super().__init__(diagnostics)
        self.diagnostics = diagnostics


class InvalidAuthError(PlaybotError):
    """The event source rejected our credentials. Ends the process."""
