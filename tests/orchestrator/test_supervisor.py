"""
Tests for the exit supervisor.

============================================================
PURPOSE
============================================================
Verify the signal and uncaught-exception exit paths.

TEST PRINCIPLES:
- Telemetry is stored before anything else happens
- A claimed signal is left to its other listener
- Exactly one exit path owns finalization
- Process termination is injected, never performed

============================================================
"""

import asyncio
import json
import signal
import sys
from unittest.mock import MagicMock, patch

import pytest

from core.context import Context
from core.exceptions import InvalidCliOptionError
from core.state_manager import LifecycleState
from orchestrator.core import (
    LifecycleSupervisor,
    SignalClaims,
    terminating_signals,
)
from orchestrator.models import ComposeSettings, RunState
from telemetry.store import list_stored_events


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def settings(tmp_path):
    return ComposeSettings(telemetry_dir=str(tmp_path / "telemetry"), telemetry_url=None)


@pytest.fixture
def run_state():
    return RunState()


@pytest.fixture
def terminate():
    """Stand-in for re-raising a signal against the process."""
    return MagicMock()


@pytest.fixture
def supervisor(run_state, settings, terminate, tmp_path):
    return LifecycleSupervisor(
        run_state,
        settings=settings,
        other_listener_check=lambda sig: False,
        terminate_with_signal=terminate,
        platform="linux",
        cwd=tmp_path,
    )


def stored_events(settings):
    return [
        json.loads(path.read_text(encoding="utf-8"))
        for path in list_stored_events(settings.telemetry_dir)
    ]


# ============================================================
# SIGNAL LIST TESTS
# ============================================================

class TestTerminatingSignals:
    """Tests for the per-platform signal list."""

    def test_common_signals(self):
        signals = terminating_signals(sys.platform)

        assert signal.SIGINT in signals
        assert signal.SIGTERM in signals

    def test_no_duplicates(self):
        signals = terminating_signals(sys.platform)

        assert len(signals) == len(set(signals))

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
    def test_uncatchable_signals_excluded(self):
        signals = terminating_signals(sys.platform)

        assert signal.SIGKILL not in signals
        assert signal.SIGSTOP not in signals


class TestSignalClaims:
    """Tests for the other-listener registry."""

    def test_claim_release(self):
        claims = SignalClaims()

        claims.claim(signal.SIGINT)
        claims.claim(signal.SIGINT)
        claims.release(signal.SIGINT)
        assert claims.is_claimed(signal.SIGINT)

        claims.release(signal.SIGINT)
        assert not claims.is_claimed(signal.SIGINT)
        assert not claims.is_claimed(signal.SIGTERM)


# ============================================================
# SIGNAL PATH TESTS
# ============================================================

class TestSignalPath:
    """Tests for terminating signals."""

    def test_stores_telemetry_and_reraises(self, supervisor, settings, terminate):
        supervisor.handle_signal(signal.SIGTERM)

        terminate.assert_called_once_with(signal.SIGTERM)
        events = stored_events(settings)
        assert len(events) == 1
        assert events[0]["interrupt_signal"] == "SIGTERM"
        assert supervisor.lifecycle.state == LifecycleState.TERMINATED
        assert supervisor.lifecycle.owner == "signal:SIGTERM"

    def test_uses_partial_run_state(self, supervisor, run_state, settings, tmp_path):
        run_state.command = "deploy"
        run_state.component_name = "api"
        run_state.context = Context(root=tmp_path, stage="prod")

        supervisor.handle_signal(signal.SIGINT)

        event = stored_events(settings)[0]
        assert event["command"] == "deploy"
        assert event["command_scope"] == "component"
        assert event["stage"] == "prod"

    def test_best_effort_context(self, supervisor, tmp_path):
        """Without a run context, one is built from the working directory."""
        context = supervisor.usable_context()

        assert context.root == tmp_path
        assert context.stage == "dev"
        assert supervisor.usable_context() is context

    def test_claimed_signal_yields(self, run_state, settings, terminate, tmp_path):
        supervisor = LifecycleSupervisor(
            run_state,
            settings=settings,
            other_listener_check=lambda sig: sig == signal.SIGINT,
            terminate_with_signal=terminate,
            platform="linux",
            cwd=tmp_path,
        )

        supervisor.handle_signal(signal.SIGINT)

        terminate.assert_not_called()
        assert supervisor.lifecycle.state == LifecycleState.NOT_STARTED
        assert stored_events(settings)[0]["interrupt_signal"] == "SIGINT"

    @pytest.mark.skipif(not hasattr(signal, "SIGHUP"), reason="no SIGHUP on this platform")
    def test_sighup_normalized_on_windows(self, run_state, settings, terminate, tmp_path):
        supervisor = LifecycleSupervisor(
            run_state,
            settings=settings,
            signals=[],
            other_listener_check=lambda sig: False,
            terminate_with_signal=terminate,
            platform="win32",
            cwd=tmp_path,
        )

        supervisor.handle_signal(signal.SIGHUP)

        terminate.assert_called_once_with(signal.SIGINT)
        assert stored_events(settings)[0]["interrupt_signal"] == "SIGHUP"

    @pytest.mark.skipif(not hasattr(signal, "SIGHUP"), reason="no SIGHUP on this platform")
    def test_sighup_kept_elsewhere(self, supervisor, terminate):
        supervisor.handle_signal(signal.SIGHUP)

        terminate.assert_called_once_with(signal.SIGHUP)

    def test_signal_after_main_finalization(self, supervisor, terminate):
        """Termination still happens, ownership does not change."""
        supervisor.lifecycle.try_begin_finalizing(reason="done", triggered_by="main")

        supervisor.handle_signal(signal.SIGTERM)

        terminate.assert_called_once_with(signal.SIGTERM)
        assert supervisor.lifecycle.owner == "main"

    def test_telemetry_disabled(self, supervisor, settings, terminate):
        settings.telemetry_disabled = True

        supervisor.handle_signal(signal.SIGTERM)

        assert stored_events(settings) == []
        terminate.assert_called_once()


# ============================================================
# UNCAUGHT EXCEPTION PATH TESTS
# ============================================================

class TestUncaughtExceptionPath:
    """Tests for errors nothing caught."""

    @pytest.mark.asyncio
    async def test_finalize_uncaught_exits_one(self, supervisor, settings):
        with pytest.raises(SystemExit) as exc_info:
            await supervisor.finalize_uncaught(RuntimeError("boom"))

        assert exc_info.value.code == 1
        assert stored_events(settings)[0]["error"]["type"] == "RuntimeError"
        assert supervisor.lifecycle.state == LifecycleState.TERMINATED
        assert supervisor.lifecycle.owner == "uncaught_exception"

    @pytest.mark.asyncio
    async def test_domain_error_code_recorded(self, supervisor, settings):
        with pytest.raises(SystemExit):
            await supervisor.finalize_uncaught(InvalidCliOptionError("debug"))

        assert stored_events(settings)[0]["error"]["code"] == "INVALID_CLI_OPTION"

    @pytest.mark.asyncio
    async def test_only_one_exit_path(self, supervisor, settings):
        supervisor.lifecycle.try_begin_finalizing(reason="signal", triggered_by="signal:SIGINT")

        await supervisor.finalize_uncaught(RuntimeError("late"))

        assert stored_events(settings) == []

    def test_excepthook(self, supervisor, settings):
        """Errors escaping the event loop are finalized outside of it."""
        supervisor.handle_uncaught_exception(ValueError, ValueError("escaped"), None)

        assert stored_events(settings)[0]["error"]["type"] == "ValueError"
        assert supervisor.lifecycle.state == LifecycleState.TERMINATED

    def test_excepthook_after_finalization(self, supervisor):
        """Errors raised once finalization is owned are reported the default way."""
        supervisor.lifecycle.try_begin_finalizing(reason="done", triggered_by="main")
        error = ValueError("from finalization")

        with patch.object(sys, "__excepthook__") as default_hook:
            supervisor.handle_uncaught_exception(ValueError, error, None)

        default_hook.assert_called_once_with(ValueError, error, None)

    def test_loop_warning_delegated(self, supervisor):
        """Loop contexts without an exception are not failures."""
        loop = MagicMock()

        supervisor._on_loop_exception(loop, {"message": "Unclosed client session"})

        loop.default_exception_handler.assert_called_once()
        loop.create_task.assert_not_called()


# ============================================================
# FINALIZE TESTS
# ============================================================

class TestFinalize:
    """Tests for the main-path finalization."""

    @pytest.mark.asyncio
    async def test_success(self, supervisor, settings):
        assert await supervisor.finalize() == 0
        assert len(stored_events(settings)) == 1

    @pytest.mark.asyncio
    async def test_error(self, supervisor):
        assert await supervisor.finalize(error=RuntimeError("boom")) == 1

    @pytest.mark.asyncio
    async def test_not_owned(self, supervisor, settings):
        supervisor.lifecycle.try_begin_finalizing(reason="signal", triggered_by="signal:SIGINT")

        assert await supervisor.finalize() == 1
        assert stored_events(settings) == []


# ============================================================
# INSTALLATION TESTS
# ============================================================

@pytest.mark.skipif(sys.platform == "win32", reason="loop signal handlers are POSIX only")
class TestInstallation:
    """Tests for listener installation."""

    @pytest.mark.asyncio
    async def test_install_and_uninstall(self, run_state, settings, terminate, tmp_path):
        previous_hook = sys.excepthook
        supervisor = LifecycleSupervisor(
            run_state,
            settings=settings,
            signals=[signal.SIGUSR2],
            terminate_with_signal=terminate,
            platform=sys.platform,
            cwd=tmp_path,
        )

        supervisor.install()
        try:
            assert supervisor.installed_signals == [signal.SIGUSR2]
            assert sys.excepthook == supervisor.handle_uncaught_exception
            assert asyncio.get_running_loop().get_exception_handler() is not None
        finally:
            supervisor.uninstall()

        assert supervisor.installed_signals == []
        assert sys.excepthook is previous_hook

    @pytest.mark.asyncio
    async def test_installed_before_initializing(self, run_state, settings, tmp_path):
        supervisor = LifecycleSupervisor(run_state, settings=settings, signals=[], cwd=tmp_path)

        supervisor.install()
        try:
            assert supervisor.lifecycle.state == LifecycleState.NOT_STARTED
        finally:
            supervisor.uninstall()

    @pytest.mark.asyncio
    async def test_signal_delivered(self, run_state, settings, terminate, tmp_path):
        supervisor = LifecycleSupervisor(
            run_state,
            settings=settings,
            signals=[signal.SIGUSR2],
            other_listener_check=lambda sig: False,
            terminate_with_signal=terminate,
            platform=sys.platform,
            cwd=tmp_path,
        )
        supervisor.install()
        try:
            signal.raise_signal(signal.SIGUSR2)
            for _ in range(50):
                if terminate.called:
                    break
                await asyncio.sleep(0.01)
        finally:
            supervisor.uninstall()

        terminate.assert_called_once_with(signal.SIGUSR2)
        assert stored_events(settings)[0]["interrupt_signal"] == "SIGUSR2"
