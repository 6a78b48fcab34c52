"""Bounded propose/execute/observe loop that drives a build to completion."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from buildpilot.agent.models import Conversation, ExecutionResult, LoopOutcome, Message
from buildpilot.agent.sanitizer import DEFAULT_COMPLETION_TOKEN, is_completion, sanitize_command
from buildpilot.agent.summarizer import summarize_output
from buildpilot.errors import ProtocolError
from buildpilot.shell import ShellAdapter

LOGGER = logging.getLogger(__name__)

LOG_OUTPUT_EXCERPT_CHARS = 2000
StepCallback = Callable[[int, str], None]


class Planner(Protocol):
    def complete(self, messages: Sequence[Message]) -> str: ...


class BuildLoop:
    """Asks the planner for one command at a time until it reports completion."""

    def __init__(
        self,
        *,
        client: Planner,
        shell: ShellAdapter,
        working_directory: str | Path,
        log_dir: str | Path,
        max_steps: int = 30,
        completion_token: str = DEFAULT_COMPLETION_TOKEN,
        command_timeout: float | None = None,
        on_step: StepCallback | None = None,
    ) -> None:
        self.client = client
        self.shell = shell
        self.working_directory = str(working_directory)
        self.log_dir = Path(log_dir)
        self.max_steps = max_steps
        self.completion_token = completion_token
        self.command_timeout = command_timeout
        self.on_step = on_step

    def run(
        self, conversation: Sequence[Message], max_steps: int | None = None
    ) -> LoopOutcome:
        """Drive the conversation until completion or until the step budget is spent.

        Non-zero exit codes are not errors here: they are reported back to the
        planner as observations. An empty reply raises :class:`ProtocolError`.
        """
        budget = self.max_steps if max_steps is None else max_steps
        messages = self._initial_messages(conversation)

        for step in range(1, budget + 1):
            reply = self.client.complete(list(messages))
            command = sanitize_command(reply)
            if not command:
                LOGGER.error("empty_planner_reply", extra={"step": step})
                raise ProtocolError(f"Received empty command from the model at step {step}.")

            if self.on_step:
                self.on_step(step, command)

            if is_completion(command, self.completion_token):
                LOGGER.info("build_loop_completed", extra={"step": step})
                self._append_log(
                    step_index=step, max_steps=budget, command=command, completed=True
                )
                return LoopOutcome(completed=True, conversation=messages, steps=step)

            messages.append(Message(role="assistant", content=command))
            result = self._execute(command)
            observation = summarize_output(result)
            messages.append(Message(role="user", content=observation))
            self._append_log(
                step_index=step,
                max_steps=budget,
                command=command,
                result=result,
                observation=observation,
            )

        LOGGER.warning("step_budget_exhausted", extra={"max_steps": budget})
        return LoopOutcome(completed=False, conversation=messages, steps=budget)

    def _execute(self, command: str) -> ExecutionResult:
        command_result = self.shell.execute(
            command,
            cwd=self.working_directory,
            timeout=self.command_timeout,
        )
        return command_result.to_execution_result()

    @staticmethod
    def _initial_messages(conversation: Sequence[Message]) -> Conversation:
        if not conversation:
            raise ValueError("conversation must contain at least a system message")
        if conversation[0].role != "system":
            raise ValueError("conversation must start with a system message")
        if conversation[-1].role != "user":
            raise ValueError("conversation must end with a user message")
        return list(conversation)

    def _append_log(
        self,
        *,
        step_index: int,
        max_steps: int,
        command: str,
        result: ExecutionResult | None = None,
        observation: str | None = None,
        completed: bool = False,
    ) -> None:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        day_file = self.log_dir / f"build-{datetime.now(timezone.utc).date().isoformat()}.log"
        entry = {
            "log_version": 1,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "model": getattr(self.client, "model", None),
            "shell": getattr(self.shell, "name", self.shell.__class__.__name__),
            "working_directory": self.working_directory,
            "step_index": step_index,
            "max_steps": max_steps,
            "command": command,
            "exit_code": result.exit_code if result else None,
            "duration": result.duration if result else None,
            "output": observation[:LOG_OUTPUT_EXCERPT_CHARS] if observation else None,
            "completed": completed,
        }
        with day_file.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(entry, ensure_ascii=False) + "\n")
