"""Questions the builders ask while creating an app or shared package.

The interactive prompt layer is an external collaborator: the builders only
depend on the :class:`Prompter` protocol.  :class:`ConsolePrompter` asks on
the terminal through Rich; :class:`StaticPrompter` replays scripted answers
and is used for ``--yes`` runs and in tests.
"""

from __future__ import annotations

import asyncio
from collections import deque
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence

from rich.prompt import Confirm, Prompt

from monogen.catalog.models import ExtraOptionPrompt, Package
from monogen.errors import GeneratorError
from monogen.utils import console, print_error, validate_name


class OverwriteChoice(str, Enum):
    """Answers to the destination-exists prompt."""
    EXIT = "exit"
    NEW_NAME = "new-name"
    OVERWRITE = "overwrite"


class Prompter(Protocol):
    async def choose_overwrite(self, kind: str, destination: Path) -> OverwriteChoice: ...

    async def ask_app_name(self, current: str) -> str: ...

    async def ask_shared_package_name(self, current: str) -> str: ...

    async def ask_extra_options(
        self, package: Package, answered: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Answers to the package's extra prompts whose keys are not in *answered*."""
        ...


class ConsolePrompter:
    """Asks on the terminal; blocking reads run in a worker thread."""

    async def choose_overwrite(self, kind: str, destination: Path) -> OverwriteChoice:
        answer = await asyncio.to_thread(
            Prompt.ask,
            f"[yellow]A {kind} named '{destination.name}' already exists.[/yellow] "
            "What do you want to do?",
            choices=[choice.value for choice in OverwriteChoice],
            default=OverwriteChoice.EXIT.value,
            console=console,
        )
        return OverwriteChoice(answer)

    async def ask_app_name(self, current: str) -> str:
        return await self._ask_name("New app name", current, is_package=False)

    async def ask_shared_package_name(self, current: str) -> str:
        return await self._ask_name("New shared package name", current, is_package=True)

    async def _ask_name(self, question: str, current: str, *, is_package: bool) -> str:
        while True:
            name = await asyncio.to_thread(Prompt.ask, question, console=console)
            name = name.strip()
            problem = validate_name(name, is_package=is_package)
            if problem is None and name != current:
                return name
            print_error(problem or f"'{name}' is the name that is already taken")

    async def ask_extra_options(
        self, package: Package, answered: Mapping[str, Any]
    ) -> dict[str, Any]:
        answers: dict[str, Any] = {}
        for prompt in package.extra_options_prompts:
            if prompt.name not in answered:
                answers[prompt.name] = await self._ask_option(package, prompt)
        return answers

    async def _ask_option(self, package: Package, prompt: ExtraOptionPrompt) -> Any:
        question = f"[cyan]{package.label}[/cyan] {prompt.message}"
        default = prompt.default_answer()
        if prompt.type == "confirm":
            return await asyncio.to_thread(
                Confirm.ask, question, default=bool(default), console=console
            )
        if prompt.type == "list":
            return await asyncio.to_thread(
                Prompt.ask,
                question,
                choices=prompt.choice_values or None,
                default=str(default),
                console=console,
            )
        if prompt.type == "checkbox":
            question = f"{question} (comma-separated: {', '.join(prompt.choice_values)})"
            while True:
                raw = await asyncio.to_thread(
                    Prompt.ask, question, default=",".join(default), console=console
                )
                try:
                    return prompt.coerce(raw)
                except ValueError as exc:
                    print_error(str(exc))
        return await asyncio.to_thread(Prompt.ask, question, default=str(default), console=console)


class StaticPrompter:
    """Replays scripted answers.

    *overwrite* is either a single choice used for every collision or a
    sequence consumed one per collision (the last one repeats).  *names*
    are handed out in order to both app and shared-package name questions.
    *extra_options* maps package names to answers for their extra prompts;
    unscripted prompts get their default answer.
    """

    def __init__(
        self,
        overwrite: OverwriteChoice | Sequence[OverwriteChoice] = OverwriteChoice.EXIT,
        names: Iterable[str] = (),
        extra_options: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> None:
        if isinstance(overwrite, OverwriteChoice):
            overwrite = [overwrite]
        self._choices = list(overwrite) or [OverwriteChoice.EXIT]
        self._names = deque(names)
        self._extra_options = dict(extra_options or {})
        self.asked: list[str] = []

    async def choose_overwrite(self, kind: str, destination: Path) -> OverwriteChoice:
        self.asked.append(f"overwrite:{destination.name}")
        if len(self._choices) > 1:
            return self._choices.pop(0)
        return self._choices[0]

    async def ask_app_name(self, current: str) -> str:
        self.asked.append(f"app-name:{current}")
        return self._next_name()

    async def ask_shared_package_name(self, current: str) -> str:
        self.asked.append(f"shared-name:{current}")
        return self._next_name()

    async def ask_extra_options(
        self, package: Package, answered: Mapping[str, Any]
    ) -> dict[str, Any]:
        self.asked.append(f"extra-options:{package.name}")
        scripted = self._extra_options.get(package.name, {})
        return {
            prompt.name: scripted.get(prompt.name, prompt.default_answer())
            for prompt in package.extra_options_prompts
            if prompt.name not in answered
        }

    def _next_name(self) -> str:
        if not self._names:
            raise GeneratorError("No replacement name available for a non-interactive run")
        return self._names.popleft()
