from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of one human-verification call. Never cached."""

    accepted: bool
    reason_codes: list[str] = field(default_factory=list)

    @classmethod
    def accept(cls) -> "VerificationResult":
        return cls(accepted=True)

    @classmethod
    def reject(cls, *reason_codes: str) -> "VerificationResult":
        return cls(accepted=False, reason_codes=list(reason_codes))


class AbstractVerifier(ABC):
    """Interface for bot/human verification providers."""

    @abstractmethod
    async def verify(
        self,
        token: str | None,
        expected_action: str | None,
        client_ip: str,
    ) -> VerificationResult:
        """Verify a client-supplied token.

        Implementations fail closed: anything other than a positive answer
        from the provider is a rejection.
        """
        ...
