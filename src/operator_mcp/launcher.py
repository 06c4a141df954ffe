"""Launch orchestration: remote delegation first, local synthesis as fallback."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol, Union

from .agent import build_command, build_session_name, default_launch_options
from .api import (
    LaunchTicketRequest,
    LaunchTicketResponse,
    OperatorApiClient,
    OperatorApiError,
    resolve_base_url,
)
from .config import DEFAULT_API_URL
from .terminals import HostUnavailableError, TerminalManager
from .tickets import LaunchOptions, TicketInfo, TicketMetadata, current_session_token, parse_from_path

logger = logging.getLogger(__name__)

WRAPPER_ID = "mcp"


class MetadataUnavailableError(RuntimeError):
    """Raised when a ticket's frontmatter cannot be read at fallback time."""

    def __init__(self, ticket_id: str, path: Path) -> None:
        super().__init__(f"Could not parse ticket metadata for {ticket_id}: {path}")
        self.ticket_id = ticket_id
        self.path = path


class ConflictChoice(str, Enum):
    FOCUS = "focus"
    RELAUNCH = "relaunch"
    ABORT = "abort"


class RelaunchChoice(str, Enum):
    FRESH = "fresh"
    RESUME = "resume"
    CANCEL = "cancel"


class LaunchPrompter(Protocol):
    """Asks the operator how to proceed at the two interactive decision points."""

    async def choose_conflict(self, session_name: str) -> ConflictChoice:
        ...

    async def choose_relaunch(self, ticket: TicketInfo, can_resume: bool) -> RelaunchChoice:
        ...


@dataclass(slots=True)
class StaticPrompter:
    """Prompter that always gives the same answers."""

    conflict: ConflictChoice = ConflictChoice.ABORT
    relaunch: RelaunchChoice = RelaunchChoice.CANCEL

    async def choose_conflict(self, session_name: str) -> ConflictChoice:
        return self.conflict

    async def choose_relaunch(self, ticket: TicketInfo, can_resume: bool) -> RelaunchChoice:
        if self.relaunch is RelaunchChoice.RESUME and not can_resume:
            return RelaunchChoice.FRESH
        return self.relaunch


@dataclass(frozen=True, slots=True)
class Materialized:
    session_name: str
    via_remote: bool
    working_directory: str | None = None
    command: str | None = None
    resumed: bool = False
    worktree_created: bool = False


@dataclass(frozen=True, slots=True)
class Aborted:
    session_name: str


@dataclass(frozen=True, slots=True)
class Failed:
    session_name: str
    reason: str
    error: Exception | None = None


LaunchOutcome = Union[Materialized, Aborted, Failed]


class LaunchOrchestrator:
    """Decide for each launch whether Operator or the local fallback starts the agent."""

    def __init__(
        self,
        terminals: TerminalManager,
        *,
        prompter: LaunchPrompter | None = None,
        tickets_dir: Path | None = None,
        api_url: str = DEFAULT_API_URL,
        client_factory: Callable[[str], OperatorApiClient] | None = None,
        agent_binary: str = "claude",
    ) -> None:
        self._terminals = terminals
        self._prompter = prompter or StaticPrompter()
        self._tickets_dir = tickets_dir
        self._api_url = api_url
        self._client_factory = client_factory or OperatorApiClient
        self._agent_binary = agent_binary

    @property
    def tickets_dir(self) -> Path | None:
        return self._tickets_dir

    def set_tickets_dir(self, tickets_dir: Path | None) -> None:
        self._tickets_dir = tickets_dir

    async def launch(
        self,
        ticket: TicketInfo,
        options: LaunchOptions,
        *,
        prompter: LaunchPrompter | None = None,
    ) -> LaunchOutcome:
        session_name = build_session_name(ticket.id)
        prompter = prompter or self._prompter

        if self._terminals.exists(session_name):
            choice = await prompter.choose_conflict(session_name)
            if choice is ConflictChoice.FOCUS:
                await self._terminals.focus(session_name)
                return Materialized(session_name=session_name, via_remote=False)
            if choice is ConflictChoice.ABORT:
                logger.info("Launch aborted at conflict check", extra={"session": session_name})
                return Aborted(session_name=session_name)
            await self._terminals.kill(session_name)

        resume_token = None
        if options.resume_session:
            hint_metadata = parse_from_path(ticket.file_path)
            if hint_metadata is not None:
                resume_token = current_session_token(hint_metadata)

        remote_error: OperatorApiError | None = None
        try:
            response = await self._launch_remote(ticket, options, resume_token)
        except OperatorApiError as exc:
            logger.info(
                "Operator launch unavailable, using local fallback",
                extra={"ticket_id": ticket.id, "error": exc.message},
            )
            remote_error = exc
        else:
            return await self._materialize_remote(response, resumed=resume_token is not None)

        return await self._launch_local(ticket, session_name, options, remote_error)

    async def offer_relaunch(
        self,
        ticket: TicketInfo,
        *,
        prompter: LaunchPrompter | None = None,
        model: str | None = None,
    ) -> LaunchOutcome | None:
        """Offer to start a session again for a ticket whose terminal is gone."""

        prompter = prompter or self._prompter
        metadata = parse_from_path(ticket.file_path)
        token = current_session_token(metadata) if metadata is not None else None

        choice = await prompter.choose_relaunch(ticket, token is not None)
        if choice is RelaunchChoice.CANCEL:
            return None

        options = default_launch_options(model)
        if choice is RelaunchChoice.RESUME and token is not None:
            options = options.model_copy(update={"resume_session": True})
        return await self.launch(ticket, options, prompter=prompter)

    async def _launch_remote(
        self,
        ticket: TicketInfo,
        options: LaunchOptions,
        resume_token: str | None,
    ) -> LaunchTicketResponse:
        base_url = resolve_base_url(self._tickets_dir, default_url=self._api_url)
        client = self._client_factory(base_url)

        # A failed probe means the launch call would fail too.
        await client.health()

        request = LaunchTicketRequest(
            provider=options.provider,
            model=options.model,
            yolo_mode=options.yolo_mode,
            wrapper=WRAPPER_ID,
            retry_reason=None,
            resume_session_id=resume_token,
        )
        return await client.launch_ticket(ticket.id, request)

    async def _materialize_remote(
        self,
        response: LaunchTicketResponse,
        *,
        resumed: bool,
    ) -> LaunchOutcome:
        name = response.terminal_name
        try:
            await self._terminals.create(name, response.working_directory)
            await self._terminals.send(name, response.command)
            await self._terminals.focus(name)
        except HostUnavailableError as exc:
            logger.warning("Terminal host unavailable", extra={"session": name, "error": str(exc)})
            return Failed(session_name=name, reason=f"Terminal host unavailable: {exc}", error=exc)

        logger.info(
            "Launched agent via Operator",
            extra={
                "ticket_id": response.ticket_id,
                "session": name,
                "worktree_created": response.worktree_created,
            },
        )
        return Materialized(
            session_name=name,
            via_remote=True,
            working_directory=response.working_directory,
            command=response.command,
            resumed=resumed,
            worktree_created=response.worktree_created,
        )

    async def _launch_local(
        self,
        ticket: TicketInfo,
        session_name: str,
        options: LaunchOptions,
        remote_error: OperatorApiError | None,
    ) -> LaunchOutcome:
        metadata = parse_from_path(ticket.file_path)
        if metadata is None:
            error = MetadataUnavailableError(ticket.id, ticket.file_path)
            logger.warning("Ticket metadata unavailable", extra={"ticket_id": ticket.id})
            return Failed(session_name=session_name, reason=_with_remote(str(error), remote_error), error=error)

        resume_token = current_session_token(metadata) if options.resume_session else None
        working_dir = self._working_directory(ticket, metadata)
        relative_path = os.path.relpath(ticket.file_path, working_dir)
        command = build_command(relative_path, metadata, options, resume_token, binary=self._agent_binary)

        try:
            await self._terminals.create(session_name, working_dir)
            await self._terminals.send(session_name, command)
            await self._terminals.focus(session_name)
        except HostUnavailableError as exc:
            logger.warning("Terminal host unavailable", extra={"session": session_name, "error": str(exc)})
            reason = _with_remote(f"Terminal host unavailable: {exc}", remote_error)
            return Failed(session_name=session_name, reason=reason, error=exc)

        logger.info(
            "Launched agent locally",
            extra={"ticket_id": ticket.id, "session": session_name, "resumed": resume_token is not None},
        )
        return Materialized(
            session_name=session_name,
            via_remote=False,
            working_directory=working_dir,
            command=command,
            resumed=resume_token is not None,
        )

    def _working_directory(self, ticket: TicketInfo, metadata: TicketMetadata) -> str:
        return project_working_directory(metadata, ticket.file_path, self._tickets_dir)


def project_working_directory(
    metadata: TicketMetadata,
    ticket_path: str | Path,
    tickets_dir: str | Path | None = None,
) -> str:
    """Directory a local agent session starts in.

    The ticket's worktree wins, then its declared working directory, then the
    project root above the tickets directory. Without a known tickets
    directory the ticket file's grandparent stands in for the project root.
    """

    if metadata.worktree_path:
        return metadata.worktree_path
    if metadata.working_directory:
        return metadata.working_directory
    if tickets_dir is not None:
        return str(Path(tickets_dir).parent)
    return str(Path(ticket_path).parent.parent)


def _with_remote(reason: str, remote_error: OperatorApiError | None) -> str:
    if remote_error is None:
        return reason
    return f"{reason} (Operator: {remote_error.message})"


__all__ = [
    "Aborted",
    "ConflictChoice",
    "Failed",
    "LaunchOrchestrator",
    "LaunchOutcome",
    "LaunchPrompter",
    "Materialized",
    "MetadataUnavailableError",
    "RelaunchChoice",
    "StaticPrompter",
    "WRAPPER_ID",
    "project_working_directory",
]
