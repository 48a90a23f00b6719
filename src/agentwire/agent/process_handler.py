"""Process handler — runs agent subprocesses and streams their parsed output."""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import errno
import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from agentwire.agent.env import build_process_env, build_provider_env_overrides
from agentwire.config.models import ProviderSettings
from agentwire.constants import SESSION_ID_PREFIX
from agentwire.protocol.models import SessionCreatedEvent, StreamEvent
from agentwire.protocol.parser import MarkerParser
from agentwire.session.registry import SessionRegistry
from agentwire.timestamps import epoch_ms

logger = logging.getLogger(__name__)

#: Bytes requested per read from the agent's stdout/stderr pipes.
_READ_CHUNK_BYTES = 4096

#: Seconds ``shutdown`` waits for killed processes to be reaped.
_KILL_WAIT = 3.0

#: Seconds to keep reading output after the agent exits.  Background
#: children of the agent can hold its pipes open indefinitely.
_EXIT_DRAIN_TIMEOUT = 1.0

#: Seconds between exit status checks while the pipes are still open.
_EXIT_POLL_INTERVAL = 0.1

#: Receives every event of a session, in stream order.
EventSink = Callable[[str, StreamEvent], Awaitable[None]]


@dataclass
class ProcessHandlerCallbacks:
    """Lifecycle notifications from the process handler.  All optional."""

    on_log: Callable[[str], None] | None = None
    on_debug_log: Callable[[str], None] | None = None
    on_state_changed: Callable[[], None] | None = None
    on_start_session_failed: Callable[[Exception], None] | None = None
    on_session_created: Callable[[bool], None] | None = None


@dataclass
class SpawnOptions:
    """Per-spawn options.  A ``session_id`` means the session is being resumed."""

    session_id: str | None = None
    label: str | None = None
    provider: ProviderSettings | None = None
    extra_env: dict[str, str] = field(default_factory=dict)


@dataclass
class _ActiveSession:
    session_id: str
    process: asyncio.subprocess.Process
    parser: MarkerParser
    task: asyncio.Task[int] | None = None


class ProcessHandler:
    """Owns one agent subprocess and one ``MarkerParser`` per session.

    ``spawn`` returns as soon as the subprocess is running.  A background
    task per session then feeds stdout through the session's parser into
    the caller's event sink, sends stderr to the debug log, and records the
    exit status in the registry once both pipes are drained.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        callbacks: ProcessHandlerCallbacks | None = None,
        *,
        emit_tool_output: bool = False,
    ) -> None:
        self._registry = registry
        self._callbacks = callbacks or ProcessHandlerCallbacks()
        self._emit_tool_output = emit_tool_output
        self._active: dict[str, _ActiveSession] = {}
        # Pumps of stopped sessions, kept until their cancellation lands.
        self._stopping: set[asyncio.Task[int]] = set()

    # ------------------------------------------------------------------ #
    # Inspection
    # ------------------------------------------------------------------ #

    @property
    def active_session_ids(self) -> list[str]:
        return list(self._active)

    def is_active(self, session_id: str) -> bool:
        return session_id in self._active

    def get_pid(self, session_id: str) -> int | None:
        """PID of the session's subprocess, or ``None`` if not active."""
        session = self._active.get(session_id)
        return session.process.pid if session is not None else None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    @staticmethod
    def build_args(workspace: str, prompt: str) -> list[str]:
        """Agent arguments: machine output, workspace, autonomous, prompt."""
        args = ["--machine", "--workspace", workspace, "--autonomous"]
        if prompt:
            args.append(prompt)
        return args

    async def spawn(
        self,
        binary_path: str,
        workspace: str,
        prompt: str,
        options: SpawnOptions | None,
        on_event: EventSink,
    ) -> str:
        """Start an agent subprocess and return its session id.

        Does not wait for the agent to finish.  Spawn failures are reported
        through ``on_start_session_failed`` and never raised.
        """
        options = options or SpawnOptions()
        session_id = options.session_id or self._new_session_id()

        if options.session_id:
            self._registry.update_session_status(session_id, "creating")
        else:
            self._registry.create_session(
                session_id, prompt, epoch_ms(), label_override=options.label
            )

        if session_id in self._active:
            logger.warning("%s: already running, stopping previous process", session_id)
            self.stop(session_id)

        if not os.path.isdir(workspace):
            exc = FileNotFoundError(
                errno.ENOENT, "Workspace directory does not exist", workspace
            )
            logger.error("%s: %s", session_id, exc)
            self._spawn_failed(session_id, exc)
            return session_id

        args = self.build_args(workspace, prompt)
        overrides = build_provider_env_overrides(
            options.provider,
            os.environ,
            self._callbacks.on_log,
            self._debug_log,
        )
        env = build_process_env(os.environ, overrides, options.extra_env)

        try:
            proc = await asyncio.create_subprocess_exec(
                binary_path,
                *args,
                cwd=workspace,
                env=env,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.error("%s: failed to spawn %s: %s", session_id, binary_path, exc)
            self._spawn_failed(session_id, exc)
            return session_id

        session = _ActiveSession(
            session_id=session_id,
            process=proc,
            parser=MarkerParser(emit_tool_output=self._emit_tool_output),
        )
        self._active[session_id] = session

        self._registry.set_session_pid(session_id, proc.pid)
        self._registry.update_session_status(session_id, "running")
        logger.info("%s: started agent (PID %d)", session_id, proc.pid)

        # The agent starts working immediately, so announce the session now
        # rather than waiting for its first line of output.
        await self._deliver(
            on_event,
            session_id,
            SessionCreatedEvent(session_id=session_id, timestamp=epoch_ms()),
        )
        if self._callbacks.on_session_created:
            self._callbacks.on_session_created(False)

        if self._active.get(session_id) is not session:
            # Stopped from inside the sink: nothing will pump this process.
            await self._reap(proc)
            return session_id

        session.task = asyncio.create_task(
            self._pump(session, on_event), name=f"agentwire-{session_id}"
        )
        return session_id

    def stop(self, session_id: str) -> None:
        """Kill the session's subprocess and forget it.  Unknown ids are ignored.

        Does not wait for the process to exit; its exit is not recorded.
        """
        session = self._active.pop(session_id, None)
        if session is None:
            return

        with contextlib.suppress(ProcessLookupError):
            session.process.kill()

        task = session.task
        if task is not None and not task.done():
            task.cancel()
            self._stopping.add(task)
            task.add_done_callback(self._stopping.discard)
        logger.info("%s: stopped", session_id)

    async def wait(self, session_id: str) -> int | None:
        """Wait for an active session to exit and return its exit code.

        Returns ``None`` for unknown sessions and for sessions stopped
        while waiting.
        """
        session = self._active.get(session_id)
        if session is None or session.task is None:
            return None
        task = session.task
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                return None
            raise

    async def shutdown(self) -> None:
        """Stop every active session and wait for the processes to go away."""
        procs = [s.process for s in self._active.values()]
        for session_id in list(self._active):
            self.stop(session_id)

        if self._stopping:
            await asyncio.gather(*list(self._stopping), return_exceptions=True)

        if procs:
            try:
                await asyncio.wait_for(
                    asyncio.gather(
                        *(self._wait_exit(p) for p in procs), return_exceptions=True
                    ),
                    timeout=_KILL_WAIT,
                )
            except TimeoutError:
                logger.warning("%d agent process(es) did not exit after kill", len(procs))

    # ------------------------------------------------------------------ #
    # Output pumping
    # ------------------------------------------------------------------ #

    async def _pump(self, session: _ActiveSession, on_event: EventSink) -> int:
        """Stream stdout and stderr until the agent exits, then record the exit.

        The exit is what ends the session.  Output still in the pipes is
        drained for at most ``_EXIT_DRAIN_TIMEOUT`` seconds afterwards.
        """
        readers = [
            asyncio.create_task(self._read_stdout(session, on_event)),
            asyncio.create_task(self._read_stderr(session)),
        ]
        try:
            returncode = await self._wait_exit(session.process)
            _, pending = await asyncio.wait(readers, timeout=_EXIT_DRAIN_TIMEOUT)
            if pending:
                logger.debug(
                    "%s: pipes still open after exit, dropping remaining output",
                    session.session_id,
                )
        finally:
            for reader in readers:
                reader.cancel()
            await asyncio.gather(*readers, return_exceptions=True)

        session.parser.flush()
        self._handle_exit(session, returncode)
        return returncode

    async def _read_stdout(self, session: _ActiveSession, on_event: EventSink) -> None:
        stdout = session.process.stdout
        if stdout is None:
            return

        # Incremental decoding keeps multi-byte characters split across
        # reads intact.
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                data = await stdout.read(_READ_CHUNK_BYTES)
                if not data:
                    break
                text = decoder.decode(data)
                if text:
                    await self._forward(session, on_event, text)

            tail = decoder.decode(b"", final=True)
            if tail:
                await self._forward(session, on_event, tail)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("%s: error reading agent stdout: %s", session.session_id, exc)

    async def _read_stderr(self, session: _ActiveSession) -> None:
        stderr = session.process.stderr
        if stderr is None:
            return

        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            while True:
                data = await stderr.read(_READ_CHUNK_BYTES)
                if not data:
                    break
                text = decoder.decode(data)
                if text:
                    self._debug_log(f"stderr: {text}")
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("%s: error reading agent stderr: %s", session.session_id, exc)

    async def _forward(
        self, session: _ActiveSession, on_event: EventSink, text: str
    ) -> None:
        """Parse *text* and hand the events to the sink while still active."""
        for event in session.parser.parse(text).events:
            if self._active.get(session.session_id) is not session:
                return
            await self._deliver(on_event, session.session_id, event)

    async def _deliver(
        self, on_event: EventSink, session_id: str, event: StreamEvent
    ) -> None:
        try:
            await on_event(session_id, event)
        except Exception:
            logger.exception("%s: event sink failed on %s event", session_id, event.type)

    def _handle_exit(self, session: _ActiveSession, returncode: int | None) -> None:
        session_id = session.session_id
        if self._active.get(session_id) is not session:
            # Stopped (or replaced) already.
            logger.debug("%s: exit after stop ignored", session_id)
            return

        code = returncode or 0
        status = "done" if code == 0 else "error"
        self._registry.update_session_status(session_id, status, code)
        del self._active[session_id]

        if code == 0:
            logger.info("%s: agent exited", session_id)
        else:
            logger.warning("%s: agent exited with code %d", session_id, code)

        if self._callbacks.on_state_changed:
            self._callbacks.on_state_changed()

    # ------------------------------------------------------------------ #
    # Internal
    # ------------------------------------------------------------------ #

    def _new_session_id(self) -> str:
        stamp = epoch_ms()
        while f"{SESSION_ID_PREFIX}-{stamp}" in self._active:
            stamp += 1
        return f"{SESSION_ID_PREFIX}-{stamp}"

    @staticmethod
    async def _wait_exit(process: asyncio.subprocess.Process) -> int:
        """Return the exit code as soon as *process* has exited.

        ``Process.wait()`` may also wait for the pipes to close, and background
        children of the agent can keep them open, so ``returncode`` is polled
        alongside it.
        """
        waiter = asyncio.ensure_future(process.wait())
        try:
            while not waiter.done():
                if process.returncode is not None:
                    return process.returncode
                await asyncio.wait({waiter}, timeout=_EXIT_POLL_INTERVAL)
            return waiter.result()
        finally:
            waiter.cancel()

    async def _reap(self, proc: asyncio.subprocess.Process) -> None:
        try:
            await asyncio.wait_for(self._wait_exit(proc), timeout=_KILL_WAIT)
        except TimeoutError:
            logger.warning("Agent process %d did not exit after kill", proc.pid)

    def _spawn_failed(self, session_id: str, exc: Exception) -> None:
        self._registry.update_session_status(session_id, "error")
        if self._callbacks.on_start_session_failed:
            self._callbacks.on_start_session_failed(exc)

    def _debug_log(self, message: str) -> None:
        logger.debug(message)
        if self._callbacks.on_debug_log:
            self._callbacks.on_debug_log(message)
