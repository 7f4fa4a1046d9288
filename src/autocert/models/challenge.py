"""Challenge entity and ProblemDetail value object."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from autocert.core.types import ChallengeStatus

if TYPE_CHECKING:
    from autocert.core.types import ChallengeType


@dataclass(frozen=True)
class ProblemDetail:
    """Error document attached by the authority (RFC 7807)."""

    type: str
    detail: str = ""
    status: int | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> ProblemDetail:
        return cls(
            type=data.get("type", "about:blank"),
            detail=data.get("detail", ""),
            status=data.get("status"),
        )

    def describe(self) -> str:
        return f"{self.type}: {self.detail}, Code = {self.status}"


@dataclass(frozen=True)
class Challenge:
    type: ChallengeType
    uri: str
    token: str
    key_authorization: str
    status: ChallengeStatus = ChallengeStatus.PENDING
    error: ProblemDetail | None = None
