"""Exception hierarchy for fatal build failures."""

from __future__ import annotations


class BuildPilotError(Exception):
    """Base class for errors that abort a build run."""


class ConfigurationError(BuildPilotError):
    """Required settings are missing or invalid."""


class ArchiveError(BuildPilotError):
    """The task archive could not be found or extracted."""


class ProtocolError(BuildPilotError):
    """The model replied with something the loop cannot act on."""


class OracleError(ProtocolError):
    """The model endpoint failed or returned an unexpected payload."""


class StepBudgetExhausted(BuildPilotError):
    """The loop ran out of steps before the model reported completion."""

    def __init__(self, max_steps: int) -> None:
        super().__init__(f"Reached max_steps={max_steps} without completion.")
        self.max_steps = max_steps


class ArtifactNotFoundError(BuildPilotError):
    """No static output directory could be located after the build."""


class PublishError(BuildPilotError):
    """Moving the build output into the release directory failed."""
