"""Authorization entity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from autocert.core.types import AuthorizationStatus, ChallengeType
    from autocert.models.challenge import Challenge, ProblemDetail
    from autocert.models.order import Identifier


@dataclass(frozen=True)
class Authorization:
    uri: str
    identifier: Identifier
    status: AuthorizationStatus
    challenges: tuple[Challenge, ...] = ()
    wildcard: bool = False

    @property
    def domain(self) -> str:
        return self.identifier.value

    def find_challenge(self, challenge_type: ChallengeType) -> Challenge | None:
        """Return the first challenge of *challenge_type*, if offered."""
        for challenge in self.challenges:
            if challenge.type == challenge_type:
                return challenge
        return None

    def errors(self) -> list[ProblemDetail]:
        """Errors the authority attached to any of the challenges."""
        return [c.error for c in self.challenges if c.error is not None]
