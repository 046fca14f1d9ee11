"""Human-verification adapters (bot protection for form submissions)."""

from edge_api.adapters.verification.base import AbstractVerifier, VerificationResult
from edge_api.adapters.verification.factory import create_verifier
from edge_api.adapters.verification.turnstile import TurnstileVerifier

__all__ = [
    "AbstractVerifier",
    "TurnstileVerifier",
    "VerificationResult",
    "create_verifier",
]
