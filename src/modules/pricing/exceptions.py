"""Pricing domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import InvalidArgument


class InvalidPricingInput(InvalidArgument):
    """The quote request violates a pricing rule.  ``field`` names the culprit."""
