"""
govsync/errors.py

Error kinds raised or returned by the governance core.

Identifier decoding returns these as values instead of raising, so callers
check with isinstance():

    decoded = decode_proposal_id(raw)
    if isinstance(decoded, GovsyncError):
        ...
"""


class GovsyncError(Exception):
    """Base class for all govsync errors."""


class MalformedIdError(GovsyncError):
    """Proposal identifier could not be parsed."""

    def __init__(self, raw: str, reason: str = ""):
        self.raw = raw
        self.reason = reason
        message = f"Malformed proposal id {raw!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class MissingPluginAddressError(GovsyncError):
    """Legacy proposal id carries no plugin address and no fallback was given."""

    def __init__(self, raw: str, local_id: int):
        self.raw = raw
        self.local_id = local_id
        super().__init__(
            f"Proposal id {raw!r} has no plugin address; supply one from context"
        )


class DuplicateVoterError(GovsyncError):
    """Voter already has a recorded vote and vote replacement is disabled."""

    def __init__(self, proposal_id: str, voter_address: str):
        self.proposal_id = proposal_id
        self.voter_address = voter_address
        super().__init__(f"{voter_address} already voted on {proposal_id}")


class SettingsNotLoadedError(GovsyncError):
    """Voting settings for the proposal's plugin have not been fetched yet."""


class UnknownVariantError(GovsyncError):
    """Input matches none of the supported proposal or settings shapes."""
