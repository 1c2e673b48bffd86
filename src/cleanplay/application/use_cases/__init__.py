"""Application use cases - Business logic orchestration."""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

# Type variables for generic use case pattern
TRequest = TypeVar("TRequest")
TResponse = TypeVar("TResponse")


class UseCase(ABC, Generic[TRequest, TResponse]):
    """Base class for all use cases following command pattern."""

    @abstractmethod
    async def execute(self, request: TRequest) -> TResponse:
        """Execute the use case with the given request."""
        pass


# Import concrete use cases (after UseCase definition to avoid circular imports)
from cleanplay.application.use_cases.handle_disliked_track import (  # noqa: E402
    HandleDislikedTrackRequest,
    HandleDislikedTrackResponse,
    HandleDislikedTrackUseCase,
)
from cleanplay.application.use_cases.check_user_playback import (  # noqa: E402
    CheckUserPlaybackUseCase,
    CheckUserResult,
)

__all__ = [
    "UseCase",
    "CheckUserPlaybackUseCase",
    "CheckUserResult",
    "HandleDislikedTrackRequest",
    "HandleDislikedTrackResponse",
    "HandleDislikedTrackUseCase",
]
