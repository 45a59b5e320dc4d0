"""
Exception hierarchy for market operations.

Every failure of buy / sell is raised synchronously to the caller after the
market has rolled the attempted operation back.
"""

from typing import Any, Dict, Optional


class MarketError(Exception):
    """Base exception for all market errors."""

    code = "MARKET_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def __str__(self) -> str:
        base = self.message
        if self.code:
            base += f" (Code: {self.code})"
        if self.context:
            base += f" Context: {self.context}"
        return base


class InvalidInput(MarketError, ValueError):
    """Raised for zero or negative payments / amounts."""
    code = "INVALID_INPUT"


class MarketExhausted(MarketError):
    """Raised when a buy arrives after outstanding supply reached max supply."""
    code = "MARKET_EXHAUSTED"


class InsufficientBalance(MarketError):
    """Raised when a sell exceeds the seller's token holdings."""
    code = "INSUFFICIENT_BALANCE"


class CooldownActive(MarketError):
    """Raised when an account sells again before its cooldown elapsed."""
    code = "COOLDOWN_ACTIVE"


class ExceedsSellLimit(MarketError):
    """Raised when a sell is above the per-transaction share of current supply."""
    code = "EXCEEDS_SELL_LIMIT"


class TransferFailed(MarketError):
    """Raised when a payment transfer could not complete."""
    code = "TRANSFER_FAILED"


class ReentrantCall(MarketError):
    """Raised when buy / sell is entered again while a call on the same market is in flight."""
    code = "REENTRANT_CALL"
