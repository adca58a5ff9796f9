"""Domain errors raised by the campaign draft services.

Routes translate these into HTTP responses; services never return them.
"""

from __future__ import annotations


class CampaignError(Exception):
    """Base class for campaign draft errors."""

    code = "campaign_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CampaignValidationError(CampaignError):
    """Field-scoped validation failure. ``errors`` maps field name -> message."""

    code = "validation_error"

    def __init__(self, errors: dict[str, str]):
        super().__init__("Campaign draft is invalid")
        self.errors = dict(errors)


class TerminalStateViolation(CampaignError):
    """Mutation or submission attempted on an approved campaign."""

    code = "terminal_state"


class SubmissionRejected(CampaignError):
    """Submission refused for a non-field reason (e.g. price still loading)."""

    code = "submission_rejected"


class PriceUnavailable(SubmissionRejected):
    code = "price_unavailable"


class UnknownCurrency(KeyError):
    """Currency code is not present in the loaded catalog."""


class DraftNotFound(LookupError):
    pass


class MarketplaceError(Exception):
    """Remote marketplace call failed (transport or non-2xx status)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
