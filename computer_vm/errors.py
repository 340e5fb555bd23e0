"""
Error kinds raised while booting and supervising the machine.

Non-fatal errors are logged by the boot sequence and execution continues.
Fatal errors abort the boot, trigger teardown of any started process and
turn into exit status 1.
"""


class VMError(RuntimeError):
    """Base class for every error raised by computer_vm."""
    fatal = True


class PreparationError(VMError):
    """A directory or the UEFI variables file could not be created."""
    fatal = False


class DiscoveryError(VMError):
    """Probing for boot assets failed (ROM scan, default disk creation)."""
    fatal = False


class PreconditionError(VMError):
    """A requirement for booting is missing; raised before any process is spawned."""


class SpawnError(VMError):
    """A child process (QEMU or websockify) could not be created."""
