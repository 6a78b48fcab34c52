"""Prompt text sent to the build planner."""

from __future__ import annotations

import os
import platform

from buildpilot.agent.models import Conversation, Message


def build_system_message(completion_token: str) -> Message:
    return Message(
        role="system",
        content=(
            "You are a terminal build agent. Reply with a single bash command only, "
            f"or the exact phrase {completion_token}."
        ),
    )


def build_runtime_context(shell_name: str, working_directory: str) -> str:
    """Describe the machine the commands will run on."""
    return "\n".join(
        [
            f"- operating_system: {platform.system()} {platform.release()}",
            f"- platform: {platform.platform()}",
            f"- architecture: {platform.machine()}",
            f"- os_name: {os.name}",
            f"- shell: {shell_name}",
            f"- working_directory: {working_directory}",
        ]
    )


def build_initial_prompt(
    *,
    working_directory: str,
    shell_name: str,
    directory_overview: str,
    package_manifests: str,
    completion_token: str,
) -> str:
    return "\n".join(
        [
            (
                "Compile this project into a front-end that can be deployed as static files."
                " Tell me the next command to run and I will reply with its result."
                f" When you are sure the build has finished, reply with: {completion_token}"
            ),
            "",
            "Environment:",
            build_runtime_context(shell_name, working_directory),
            "",
            "Directory overview:",
            directory_overview,
            "",
            "package.json:",
            package_manifests,
            "",
            "Constraints:",
            "- Reply only with the next bash command, without explanations or code fences",
            "- If you need another directory, include the cd in the command",
            f"- Once the build has finished, reply only with: {completion_token}",
        ]
    )


def build_initial_conversation(system_message: Message, initial_prompt: str) -> Conversation:
    return [system_message, Message(role="user", content=initial_prompt)]


REWRITE_RULE_PROMPT = "\n".join(
    [
        "Which of these nginx rewrite rules suits this project?",
        "",
        "location / {",
        "    try_files $uri /index.html;",
        "}",
        "",
        "or",
        "",
        "location / {",
        "    if (!-e $request_filename){",
        "        rewrite ^(.*)$ /$1.html last;",
        "        break;",
        "    }",
        "}",
        "",
        "If neither fits, write the rule you think is appropriate. Reply with the rule only.",
    ]
)
