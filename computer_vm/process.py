import logging
import signal
import socket
import subprocess
import threading
import time
from enum import Enum, auto

from . import boot, config as app_config
from .errors import PreparationError, SpawnError, VMError
from .qemu_args import build_qemu_args, format_command

logger = logging.getLogger(__name__)


class SupervisorState(Enum):
    """Lifecycle of the supervised machine."""
    IDLE = auto()
    EMULATOR_STARTING = auto()
    EMULATOR_RUNNING = auto()
    BRIDGE_STARTING = auto()
    BRIDGE_RUNNING = auto()
    TERMINATING = auto()
    STOPPED = auto()


class Supervisor:
    """
    Boots the machine and owns its child processes.

    At most one QEMU process (`emulator`) and one websockify process
    (`bridge`) are recorded. Every exit path, including a signal arriving in
    the middle of startup, goes through `terminate_all()`.

    Signal handlers only set the shutdown flag; teardown runs on the main
    flow of control once the current step notices the flag.
    """

    def __init__(self, config):
        self.config = config
        self.emulator = None
        self.bridge = None
        self.state = SupervisorState.IDLE
        self.received_signal = None
        self._shutdown = threading.Event()

    # --- Shutdown signalling ---

    def install_signal_handlers(self):
        signal.signal(signal.SIGINT, self._handle_signal)
        signal.signal(signal.SIGTERM, self._handle_signal)

    def _handle_signal(self, signum, frame):
        # Runs between bytecodes of the main flow: only record and flag.
        self.received_signal = signum
        self._shutdown.set()

    def request_shutdown(self):
        self._shutdown.set()

    @property
    def shutdown_requested(self):
        return self._shutdown.is_set()

    def _settle(self, delay):
        """Fixed wait that returns early (False) if a shutdown was requested."""
        return not self._shutdown.wait(delay)

    def _wait_for_display(self, timeout):
        """Polls the VNC endpoint until it accepts connections or timeout elapses."""
        port = app_config.vnc_port(self.config["vnc_display"])
        deadline = time.monotonic() + timeout
        while not self._shutdown.is_set():
            try:
                with socket.create_connection((app_config.VNC_HOST, port), timeout=app_config.DISPLAY_PROBE_INTERVAL):
                    logger.debug(f"VNC endpoint {app_config.VNC_HOST}:{port} is reachable")
                    return True
            except OSError:
                pass
            if self.emulator is not None and self.emulator.poll() is not None:
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(f"VNC endpoint {app_config.VNC_HOST}:{port} not reachable after {timeout:.1f}s, continuing")
                return True
            self._shutdown.wait(min(app_config.DISPLAY_PROBE_INTERVAL, remaining))
        return False

    # --- Child processes ---

    def start_emulator(self, args):
        """Spawns QEMU with an explicit argument list."""
        self.state = SupervisorState.EMULATOR_STARTING
        logger.info("Starting QEMU virtual machine...")
        logger.debug("QEMU command:\n" + format_command(args))
        try:
            self.emulator = subprocess.Popen(args)
        except OSError as e:
            raise SpawnError(f"Failed to start QEMU '{args[0]}': {e}") from e
        logger.debug(f"QEMU started with pid {self.emulator.pid}")
        return self.emulator

    def start_bridge(self):
        """Spawns websockify serving noVNC and proxying to the QEMU VNC endpoint."""
        self.state = SupervisorState.BRIDGE_STARTING
        logger.info("Starting websockify for noVNC...")
        target = f"{app_config.VNC_HOST}:{app_config.vnc_port(self.config['vnc_display'])}"
        cmd = [
            self.config["websockify_executable"],
            f"--web={self.config['novnc_dir']}",
            str(self.config["web_port"]),
            target,
        ]
        logger.debug("websockify command: " + subprocess.list2cmdline(cmd))
        try:
            self.bridge = subprocess.Popen(cmd)
        except OSError as e:
            raise SpawnError(f"Failed to start websockify: {e}") from e
        logger.debug(f"websockify started with pid {self.bridge.pid}")
        return self.bridge

    def _terminate(self, name, proc):
        if proc.poll() is None:
            logger.debug(f"Sending SIGTERM to {name} (pid {proc.pid})")
            proc.terminate()
            try:
                proc.wait(timeout=self.config["terminate_timeout"])
            except subprocess.TimeoutExpired:
                logger.warning(f"{name} did not exit after SIGTERM, killing it")
                proc.kill()
        proc.wait()
        logger.debug(f"{name} exited with status {proc.returncode}")

    def terminate_all(self):
        """
        Stops every recorded child process.

        Each handle is handled independently, so a failure on one does not
        keep the other running. Handles are cleared once reaped, which makes
        repeated calls a no-op.
        """
        self.state = SupervisorState.TERMINATING
        for attr, name in (("emulator", "QEMU"), ("bridge", "websockify")):
            proc = getattr(self, attr)
            if proc is None:
                continue
            try:
                self._terminate(name, proc)
            except OSError as e:
                logger.error(f"Failed to stop {name} (pid {proc.pid}): {e}")
            else:
                setattr(self, attr, None)
        self.state = SupervisorState.STOPPED

    # --- Lifecycle ---

    def boot(self):
        """
        Runs the boot sequence.

        Returns True once everything is running, or False when a shutdown was
        requested during startup. Raises PreconditionError or SpawnError on
        fatal failures; the caller is responsible for teardown.
        """
        config = self.config
        logger.info("Booting Computer..")

        try:
            boot.prepare_environment(config)
        except PreparationError as e:
            logger.error(str(e))

        boot.discover_assets(config)
        boot.check_boot_policy(config)
        boot.check_display_preconditions(config)

        logger.debug("Starting Machine..")
        args = build_qemu_args(config)
        if self.shutdown_requested:
            return False

        self.start_emulator(args)
        # Fixed delay, not a readiness check, unless --wait-for-display is set.
        if config.get("wait_for_display") and config["vnc"]:
            ready = self._wait_for_display(config["qemu_settle_delay"])
        else:
            ready = self._settle(config["qemu_settle_delay"])
        if not ready:
            return False
        self._check_emulator_alive()
        self.state = SupervisorState.EMULATOR_RUNNING

        if config["vnc"]:
            self.start_bridge()
            if not self._settle(config["bridge_settle_delay"]):
                return False
            self._check_emulator_alive()
            self.state = SupervisorState.BRIDGE_RUNNING
            logger.info(
                f"Port {config['web_port']} For Machine Opened! Go to "
                f"http://localhost:{config['web_port']}/{app_config.NOVNC_PAGE}?{app_config.NOVNC_QUERY}"
            )
        else:
            logger.info("Machine started in full-screen mode!")
        return True

    def _check_emulator_alive(self):
        """Raises SpawnError if QEMU already exited while the boot was still settling."""
        returncode = self.emulator.poll()
        if returncode is not None:
            raise SpawnError(f"QEMU exited during startup with status {returncode}")

    def run_until_shutdown(self):
        """
        Blocks until a shutdown is requested or QEMU exits on its own.

        Returns QEMU's exit status when it exited by itself, otherwise None.
        """
        while not self._shutdown.wait(self.config["poll_interval"]):
            if self.emulator is not None and self.emulator.poll() is not None:
                logger.info(f"QEMU exited with status {self.emulator.returncode}")
                return self.emulator.returncode
        return None

    def run(self):
        """Boots, supervises and tears down. Returns the process exit status."""
        status = 0
        try:
            if self.boot():
                returncode = self.run_until_shutdown()
                if returncode and self.received_signal is None:
                    logger.error("Virtual machine stopped unexpectedly!")
                    status = 1
        except VMError as e:
            logger.error(str(e))
            logger.error("Failed to boot virtual machine!")
            return 1
        finally:
            if self.received_signal is not None:
                logger.info(f"Received {signal.Signals(self.received_signal).name}, shutting down gracefully...")
            self.terminate_all()
        return status
