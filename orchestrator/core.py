"""
Orchestrator - Core.

============================================================
RESPONSIBILITY
============================================================
Drives one CLI run and owns every way the process can end.

- Installs exit listeners before anything else runs:
  one uncaught-exception listener, one listener per
  terminating signal
- Runs initialization -> execution -> finalization
- Stores telemetry locally on every exit path, then makes
  one transmission attempt whose result is ignored
- Decides the exit status

============================================================
EXIT PATHS
============================================================
1. Normal completion        -> finalize, exit 0 (or 1 on any failed command)
2. Caught error             -> report, finalize, exit 1
3. Terminating signal       -> store telemetry, re-raise the signal
                               (unless another listener claims it)
4. Uncaught exception       -> store telemetry, report, send, exit 1

The lifecycle manager lets exactly one of them own
finalization. A listener that fires before the main flow has
built a run context uses a best-effort context instead.

============================================================
"""

import asyncio
import copy
import logging
import os
import signal
import sys
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from core.constants import (
    DEFAULT_STAGE,
    LOG_FILE_NAME,
    LOGGER_NAME,
    POSITIONAL_KEY,
    STATE_DIR_NAME,
)
from core.context import Context
from core.state_manager import LifecycleManager, LifecycleState
from configuration.loader import (
    ensure_compose_document,
    get_configuration,
    load_compose_document,
)
from configuration.resolver import resolve_configuration_variables
from components.service import ComponentsService
from telemetry.payload import generate_payload
from telemetry.sender import send_telemetry
from telemetry.store import store_locally
from .arguments import parse_cli_arguments
from .errors import handle_error
from .help import render_help
from .models import ComposeSettings, HelpRequested, Invocation, RunState
from .router import reject_reserved_options, route


logger = logging.getLogger(f"{LOGGER_NAME}.{__name__}")


# ============================================================
# TERMINATING SIGNALS
# ============================================================

_COMMON_SIGNALS = ("SIGABRT", "SIGALRM", "SIGHUP", "SIGINT", "SIGTERM")
_POSIX_SIGNALS = (
    "SIGVTALRM", "SIGXCPU", "SIGXFSZ", "SIGUSR2",
    "SIGTRAP", "SIGSYS", "SIGQUIT", "SIGIOT",
)
_LINUX_SIGNALS = ("SIGIO", "SIGPOLL", "SIGPWR", "SIGSTKFLT", "SIGUNUSED")
_WINDOWS_SIGNALS = ("SIGBREAK",)


def terminating_signals(platform: str = sys.platform) -> List[signal.Signals]:
    """Signals whose default action ends the process, for ``platform``."""
    names = list(_COMMON_SIGNALS)
    if platform == "win32":
        names.extend(_WINDOWS_SIGNALS)
    else:
        names.extend(_POSIX_SIGNALS)
    if platform.startswith("linux"):
        names.extend(_LINUX_SIGNALS)

    result: List[signal.Signals] = []
    for name in names:
        value = getattr(signal, name, None)
        if value is None:
            continue
        sig = signal.Signals(value)
        # SIGIOT / SIGPOLL alias SIGABRT / SIGIO
        if sig not in result:
            result.append(sig)
    return result


class SignalClaims:
    """
    Components that want first refusal on a terminating signal.

    A component reading interactive input, for example, claims
    SIGINT: the supervisor then records telemetry but leaves the
    decision to exit to that component.
    """

    def __init__(self):
        self._claims: Dict[signal.Signals, int] = {}

    def claim(self, sig: signal.Signals) -> None:
        self._claims[sig] = self._claims.get(sig, 0) + 1

    def release(self, sig: signal.Signals) -> None:
        remaining = self._claims.get(sig, 0) - 1
        if remaining > 0:
            self._claims[sig] = remaining
        else:
            self._claims.pop(sig, None)

    def is_claimed(self, sig: signal.Signals) -> bool:
        return self._claims.get(sig, 0) > 0


signal_claims = SignalClaims()


def _die_by_signal(sig: signal.Signals) -> None:
    """Restore the default action and re-raise ``sig`` against this process."""
    signal.signal(sig, signal.SIG_DFL)
    os.kill(os.getpid(), sig)


# ============================================================
# LIFECYCLE SUPERVISOR
# ============================================================

class LifecycleSupervisor:
    """
    Process-wide exit supervisor.

    Owns the exit listeners and the one finalize routine shared by
    normal completion, caught errors, signals and uncaught exceptions.
    """

    def __init__(
        self,
        run_state: RunState,
        settings: Optional[ComposeSettings] = None,
        lifecycle: Optional[LifecycleManager] = None,
        signals: Optional[Sequence[signal.Signals]] = None,
        other_listener_check: Optional[Callable[[signal.Signals], bool]] = None,
        terminate_with_signal: Optional[Callable[[signal.Signals], None]] = None,
        platform: str = sys.platform,
        cwd: Optional[Path] = None,
    ):
        """
        Initialize supervisor.

        Args:
            run_state: Shared run state, mutated in place by the main flow
            settings: CLI settings
            lifecycle: Lifecycle manager (a new one by default)
            signals: Signals to listen to (all terminating signals by default)
            other_listener_check: Whether something else wants first refusal
                on a signal (``signal_claims`` by default)
            terminate_with_signal: Re-raises a signal against the process
            platform: ``sys.platform`` value used for signal handling
            cwd: Root of the best-effort context
        """
        self._run_state = run_state
        self._settings = settings or ComposeSettings()
        self._lifecycle = lifecycle or LifecycleManager()
        self._platform = platform
        self._signals = list(signals) if signals is not None else terminating_signals(platform)
        self._other_listener_check = other_listener_check or signal_claims.is_claimed
        self._terminate_with_signal = terminate_with_signal or _die_by_signal
        self._cwd = cwd

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._installed_signals: List[signal.Signals] = []
        self._previous_excepthook: Optional[Callable[..., Any]] = None
        self._fallback_context: Optional[Context] = None

    # --------------------------------------------------------
    # Properties
    # --------------------------------------------------------

    @property
    def run_state(self) -> RunState:
        return self._run_state

    @property
    def settings(self) -> ComposeSettings:
        return self._settings

    @property
    def lifecycle(self) -> LifecycleManager:
        return self._lifecycle

    @property
    def installed_signals(self) -> List[signal.Signals]:
        return list(self._installed_signals)

    def usable_context(self) -> Context:
        """The run context, or a best-effort one built from the working directory."""
        if self._run_state.context is not None:
            return self._run_state.context
        if self._fallback_context is None:
            self._fallback_context = Context(
                root=self._cwd or Path.cwd(),
                log_level=self._settings.log_level,
                log_format=self._settings.log_format,
            )
        return self._fallback_context

    # --------------------------------------------------------
    # Listener installation
    # --------------------------------------------------------

    def install(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Install the exit listeners, once."""
        if self._loop is not None:
            return

        self._loop = loop or asyncio.get_running_loop()

        self._previous_excepthook = sys.excepthook
        sys.excepthook = self.handle_uncaught_exception
        self._loop.set_exception_handler(self._on_loop_exception)

        for sig in self._signals:
            try:
                self._add_signal_listener(sig)
            except (ValueError, OSError, RuntimeError) as e:
                logger.debug(f"Cannot listen to {sig.name}: {e}")
                continue
            self._installed_signals.append(sig)

        logger.debug(
            f"Exit listeners installed | signals={','.join(s.name for s in self._installed_signals)}"
        )

    def detach_loop(self) -> None:
        """Remove the loop-bound listeners (signals, loop exception handler)."""
        if self._loop is None:
            return
        for sig in list(self._installed_signals):
            self._remove_signal_listener(sig)
        if not self._loop.is_closed():
            self._loop.set_exception_handler(None)
        self._loop = None

    def uninstall(self) -> None:
        """Remove every listener, restoring the previous excepthook."""
        self.detach_loop()
        if self._previous_excepthook is not None:
            sys.excepthook = self._previous_excepthook
            self._previous_excepthook = None

    def _add_signal_listener(self, sig: signal.Signals) -> None:
        if self._platform == "win32":
            signal.signal(sig, self._on_signal_frame)
        else:
            self._loop.add_signal_handler(sig, self.handle_signal, sig)

    def _remove_signal_listener(self, sig: signal.Signals) -> None:
        if sig not in self._installed_signals:
            return
        self._installed_signals.remove(sig)
        try:
            if self._platform == "win32":
                signal.signal(sig, signal.SIG_DFL)
            elif self._loop is not None:
                self._loop.remove_signal_handler(sig)
        except (ValueError, OSError, RuntimeError) as e:
            logger.debug(f"Cannot remove listener for {sig.name}: {e}")

    def _on_signal_frame(self, signum: int, frame: Any) -> None:
        """Synchronous signal handler (Windows)."""
        self.handle_signal(signal.Signals(signum))

    # --------------------------------------------------------
    # Signal path
    # --------------------------------------------------------

    def handle_signal(self, sig: signal.Signals) -> None:
        """
        Record the interruption and end the process with ``sig``.

        Yields without terminating when another listener claims ``sig``.
        """
        # Listeners fire once
        self._remove_signal_listener(sig)

        other_listener = bool(self._other_listener_check(sig))
        context = self.usable_context()
        self._record_telemetry(context, interrupt_signal=sig.name)

        if other_listener:
            context.logger.debug(f"{sig.name} is handled by another listener")
            return

        if self._lifecycle.try_begin_finalizing(
            reason=f"received {sig.name}",
            triggered_by=f"signal:{sig.name}",
        ):
            self._lifecycle.mark_terminated(
                reason=f"terminated by {sig.name}",
                triggered_by=f"signal:{sig.name}",
            )

        if self._platform == "win32" and sig.name == "SIGHUP":
            sig = signal.SIGINT
        self._terminate_with_signal(sig)

    # --------------------------------------------------------
    # Uncaught exception path
    # --------------------------------------------------------

    def _on_loop_exception(self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        error = context.get("exception")
        if error is None:
            # Warnings such as unclosed resources, not failures
            loop.default_exception_handler(context)
            return
        if loop.is_closed():
            self.handle_uncaught_exception(type(error), error, error.__traceback__)
            return
        loop.create_task(self.finalize_uncaught(error))

    def handle_uncaught_exception(self, exc_type, error, tb) -> None:
        """``sys.excepthook`` replacement, runs outside any event loop."""
        if self._lifecycle.state.is_finalizing_or_done:
            # Raised by finalization itself, report it the default way
            hook = self._previous_excepthook or sys.__excepthook__
            hook(exc_type, error, tb)
            return
        try:
            asyncio.run(self.finalize_uncaught(error))
        except SystemExit:
            pass

    async def finalize_uncaught(self, error: BaseException) -> None:
        """
        Abbreviated finalization for an error nothing caught.

        Raises:
            SystemExit: Always with status 1, once finalization is owned
        """
        if not self._lifecycle.try_begin_finalizing(
            reason=f"uncaught {type(error).__name__}",
            triggered_by="uncaught_exception",
        ):
            return

        context = self.usable_context()
        self._record_telemetry(context, error=error)
        handle_error(error, context.logger)
        await self._send_telemetry(context)
        self._lifecycle.mark_terminated(
            reason="uncaught exception",
            triggered_by="uncaught_exception",
        )
        raise SystemExit(1)

    # --------------------------------------------------------
    # Main path
    # --------------------------------------------------------

    async def finalize(self, error: Optional[BaseException] = None) -> int:
        """
        Finalize the main flow.

        Returns:
            Exit status: 0 only without error and without failed commands
        """
        if not self._lifecycle.try_begin_finalizing(
            reason="run failed" if error is not None else "run completed",
            triggered_by="main",
        ):
            return 1

        context = self.usable_context()
        self._record_telemetry(context, error=error)
        await self._send_telemetry(context)

        failed = context.has_failures
        if failed and error is None:
            context.logger.info("")
            context.logger.info(
                f'Verbose logs are available in "{STATE_DIR_NAME}/{LOG_FILE_NAME}"'
            )

        context.shutdown()
        exit_code = 1 if error is not None or failed else 0
        self._lifecycle.mark_terminated(reason=f"exit status {exit_code}")
        return exit_code

    # --------------------------------------------------------
    # Telemetry
    # --------------------------------------------------------

    def _record_telemetry(
        self,
        context: Context,
        error: Optional[BaseException] = None,
        interrupt_signal: Optional[str] = None,
    ) -> None:
        if self._settings.telemetry_disabled:
            return
        try:
            payload = generate_payload(
                configuration=self._run_state.configuration_for_telemetry,
                options=self._run_state.options,
                command=self._run_state.command,
                component_name=self._run_state.component_name,
                context=context,
                error=error,
                interrupt_signal=interrupt_signal,
            )
        except Exception as e:
            context.logger.debug(f"Could not generate telemetry: {e}")
            return
        store_locally(payload, Path(self._settings.telemetry_dir), context)

    async def _send_telemetry(self, context: Context) -> None:
        if self._settings.telemetry_disabled:
            return
        await send_telemetry(
            Path(self._settings.telemetry_dir),
            self._settings.telemetry_url,
            timeout_seconds=self._settings.telemetry_timeout_seconds,
            context=context,
        )


# ============================================================
# ORCHESTRATOR
# ============================================================

ComponentsServiceFactory = Callable[[Context, Dict[str, Any]], Any]


class Orchestrator:
    """
    Main flow of one CLI run.

    Initialization failures and execution errors share one error
    path: reported, folded into telemetry, exit status 1.
    """

    def __init__(
        self,
        argv: Optional[Sequence[str]],
        supervisor: LifecycleSupervisor,
        components_service_factory: Optional[ComponentsServiceFactory] = None,
        cwd: Optional[Path] = None,
        environ: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            argv: CLI arguments (default: sys.argv[1:])
            supervisor: Installed lifecycle supervisor
            components_service_factory: Builds the components service
                from (context, configuration)
            cwd: Directory holding the composition document
            environ: Environment for ``${env:...}`` (default: os.environ)
        """
        self._argv = argv
        self._supervisor = supervisor
        self._run_state = supervisor.run_state
        self._lifecycle = supervisor.lifecycle
        self._settings = supervisor.settings
        self._components_service_factory = (
            components_service_factory or self._default_components_service
        )
        self._cwd = Path(cwd) if cwd else Path.cwd()
        self._environ = environ
        self._run_id = uuid.uuid4().hex[:12]

    def _default_components_service(
        self,
        context: Context,
        configuration: Dict[str, Any],
    ) -> ComponentsService:
        return ComponentsService(
            context,
            configuration,
            framework_executable=self._settings.framework_executable,
        )

    async def run(self) -> int:
        """
        Run to completion.

        Returns:
            Exit status
        """
        try:
            prepared = await self._initialize()
            if prepared is None:
                return 0
            invocation, context, configuration = prepared
            await self._execute(invocation, context, configuration)
        except Exception as e:
            handle_error(e, self._supervisor.usable_context().logger)
            return await self._supervisor.finalize(error=e)

        return await self._supervisor.finalize()

    async def _initialize(self) -> Optional[Tuple[Invocation, Context, Dict[str, Any]]]:
        """
        Route, load and resolve.

        Returns:
            None when help was rendered
        """
        self._lifecycle.transition_to(LifecycleState.INITIALIZING, reason="run started")

        options = parse_cli_arguments(self._argv)
        routed = route(options.get(POSITIONAL_KEY), options)
        if isinstance(routed, HelpRequested):
            render_help()
            self._lifecycle.mark_terminated(reason="help rendered")
            return None

        self._run_state.apply_invocation(routed)
        reject_reserved_options(routed.options)

        path, document = await load_compose_document(self._cwd)
        document = ensure_compose_document(document)

        context = Context(
            root=self._cwd,
            verbose=bool(routed.options.get("verbose")),
            stage=str(routed.options.get("stage") or DEFAULT_STAGE),
            app_name=document.get("name"),
            log_level=self._settings.log_level,
            log_format=self._settings.log_format,
            run_id=self._run_id,
        )
        self._run_state.context = context
        await context.init()
        context.logger.debug(
            f"Using {path.name} | command={routed.command} | "
            f"component={routed.component_name or '-'} | stage={context.stage}"
        )

        configuration = await get_configuration(document, base_dir=self._cwd)
        configuration = resolve_configuration_variables(
            configuration,
            context.stage,
            environ=self._environ,
            max_passes=self._settings.max_resolution_passes,
        )

        # References to other components' outputs are still unresolved here
        self._run_state.configuration_for_telemetry = copy.deepcopy(configuration)

        self._lifecycle.transition_to(LifecycleState.RUNNING, reason="configuration resolved")
        return routed, context, configuration

    async def _execute(
        self,
        invocation: Invocation,
        context: Context,
        configuration: Dict[str, Any],
    ) -> None:
        service = self._components_service_factory(context, configuration)
        await service.init()

        if invocation.component_name:
            await service.invoke_component_command(
                invocation.component_name,
                invocation.command,
                invocation.options,
            )
        else:
            await service.invoke_global_command(invocation.command, invocation.options)


__all__ = [
    "LifecycleSupervisor",
    "Orchestrator",
    "SignalClaims",
    "signal_claims",
    "terminating_signals",
]
