"""Data models shared by the build loop and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True, slots=True)
class Message:
    """A single role-tagged chat message."""

    role: Role
    content: str

    def to_payload(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


Conversation = list[Message]


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Normalized command output fed back to the model."""

    exit_code: int
    stdout: str
    stderr: str
    duration: float = 0.0


@dataclass(slots=True)
class LoopOutcome:
    """Terminal state of one build loop run."""

    completed: bool
    conversation: Conversation = field(default_factory=list)
    steps: int = 0
