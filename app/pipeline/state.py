from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

from app.pipeline.exceptions import ErrorKind, InvalidTransitionError


class RunState(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    RESOLVING = "resolving"
    GATING = "gating"
    UPLOADING = "uploading"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.FAILED)


@dataclass(frozen=True)
class FailureReason:
    kind: ErrorKind | None
    message: str = ""


@dataclass
class RunStateMachine:
    """Explicit lifecycle of one pipeline run.

    The forward path is strictly linear; FAILED is reachable from every
    non-terminal state and both COMPLETED and FAILED are final.
    """

    _FORWARD: ClassVar[dict[RunState, RunState]] = {
        RunState.IDLE: RunState.EXTRACTING,
        RunState.EXTRACTING: RunState.RESOLVING,
        RunState.RESOLVING: RunState.GATING,
        RunState.GATING: RunState.UPLOADING,
        RunState.UPLOADING: RunState.PERSISTING,
        RunState.PERSISTING: RunState.COMPLETED,
    }

    state: RunState = RunState.IDLE
    failure: FailureReason | None = None
    history: list[RunState] = field(default_factory=lambda: [RunState.IDLE])

    def advance(self, to: RunState) -> None:
        if self._FORWARD.get(self.state) != to:
            raise InvalidTransitionError(
                f"Cannot move from {self.state.value} to {to.value}"
            )
        self._enter(to)

    def fail(self, kind: ErrorKind | None, message: str = "") -> None:
        if self.state.is_terminal:
            raise InvalidTransitionError(
                f"Cannot fail a run that is already {self.state.value}"
            )
        self.failure = FailureReason(kind=kind, message=message)
        self._enter(RunState.FAILED)

    def _enter(self, state: RunState) -> None:
        self.state = state
        self.history.append(state)
