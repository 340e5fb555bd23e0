import logging
import os
import shutil
import subprocess
from pathlib import Path

from . import config as app_config
from .errors import DiscoveryError, PreconditionError, PreparationError

logger = logging.getLogger(__name__)


# --- Environment Preparation ---

def required_directories(config):
    """Returns the directories the machine layout expects, in creation order."""
    return [
        Path(config["disk_image"]).parent,
        Path(config["rom_dir"]),
        Path(config["uefi_code_path"]).parent,
        Path(config["novnc_dir"]).parent,
    ]


def prepare_environment(config):
    """
    Creates every missing directory of the machine layout.

    All directories are attempted even when one of them fails; the failures
    are reported together as a single PreparationError afterwards.
    """
    failures = []
    for directory in required_directories(config):
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            failures.append(f"{directory}: {e}")
    if failures:
        raise PreparationError("Failed to create directories: " + "; ".join(failures))


# --- Asset Discovery ---

def check_file(path, name):
    """Existence test that reports the result at DEBUG level."""
    if os.path.exists(path):
        logger.debug(f"{name} available.. Yes!")
        return True
    logger.debug(f"{name} available.. No")
    return False


def find_boot_media(rom_dir, suffix=app_config.BOOT_MEDIA_SUFFIX):
    """Returns the first file in rom_dir with the boot media suffix, or None."""
    logger.debug("Checking for ISO files...")
    try:
        with os.scandir(rom_dir) as entries:
            for entry in entries:
                if entry.is_file() and Path(entry.name).suffix == suffix:
                    return str(Path(rom_dir) / entry.name)
    except OSError as e:
        raise DiscoveryError(f"Error checking ROM directory: {e}") from e
    return None


def create_default_disk(disk_path, size, qemu_img_executable):
    """Synthesizes an empty qcow2 disk with qemu-img."""
    logger.info(f"Creating default {size} disk...")
    cmd = [qemu_img_executable, "create", "-f", "qcow2", str(disk_path), size]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        raise DiscoveryError(f"Failed to create default disk: {e}") from e
    if result.returncode != 0:
        details = (result.stderr or result.stdout or "").strip()
        raise DiscoveryError(f"Failed to create default disk (exit {result.returncode}): {details}")
    logger.info("Default disk created successfully!")


def prepare_uefi_vars_file(vars_path, size=app_config.UEFI_VARS_SIZE):
    """
    Ensures the writable UEFI variables store exists.

    A missing store is created zero-filled at exactly `size` bytes. An existing
    file is never touched, so variables persisted by the guest survive restarts.
    """
    vars_path = Path(vars_path)
    if vars_path.exists():
        return False
    logger.info("Creating OVMF VARS file...")
    try:
        with open(vars_path, "xb") as f:
            f.write(bytes(size))
    except FileExistsError:
        return False
    except OSError as e:
        raise PreparationError(f"Failed to create UEFI variables file {vars_path}: {e}") from e
    return True


def discover_assets(config):
    """
    Probes firmware, disk and boot media and records the results in config.

    Sets `uefi_code`/`uefi_vars` (None when firmware is unusable),
    `disk_present` and `cdrom`. Non-fatal errors are logged and treated as
    the asset being absent.
    """
    logger.debug("Checking components..")

    config["uefi_code"] = config["uefi_vars"] = None
    if check_file(config["uefi_code_path"], "Firmware"):
        try:
            prepare_uefi_vars_file(config["uefi_vars_path"])
            config["uefi_code"] = config["uefi_code_path"]
            config["uefi_vars"] = config["uefi_vars_path"]
        except PreparationError as e:
            logger.error(f"{e}. Booting without UEFI firmware.")

    disk_present = check_file(config["disk_image"], "Disk")
    if not disk_present:
        try:
            create_default_disk(config["disk_image"], config["disk_size"], config["qemu_img_executable"])
            disk_present = os.path.exists(config["disk_image"])
        except DiscoveryError as e:
            logger.error(str(e))
    config["disk_present"] = disk_present

    try:
        config["cdrom"] = find_boot_media(config["rom_dir"])
    except DiscoveryError as e:
        logger.warning(str(e))
        config["cdrom"] = None
    logger.debug(f"ISO available.. {'Yes' if config['cdrom'] else 'No'}")
    return config


# --- Boot Policy ---

def check_boot_policy(config):
    """Requires a disk or boot media and announces which one will be booted."""
    if not config["disk_present"] and not config["cdrom"]:
        raise PreconditionError("No disk or ISO available!")

    if config["cdrom"] and config["disk_present"]:
        logger.info("Booting from ISO with disk available!")
    elif config["cdrom"]:
        logger.info("Booting from ISO only!")
    else:
        logger.info("There's no ISO on rom/, Booting from disk!")
    if config["cdrom"]:
        logger.info(f"ISO found: {Path(config['cdrom']).name}")


def check_display_preconditions(config):
    """In VNC mode, requires the noVNC assets and the websockify executable."""
    if not config["vnc"]:
        return
    logger.debug("Checking Libraries..")
    novnc_ok = check_file(config["novnc_dir"], "noVNC") and os.path.isdir(config["novnc_dir"])
    websockify_ok = shutil.which(config["websockify_executable"]) is not None
    logger.debug(f"Websockify.. {'Yes!' if websockify_ok else 'No'}")

    if not novnc_ok:
        raise PreconditionError(f"noVNC directory not found at {config['novnc_dir']}; required for VNC mode!")
    if not websockify_ok:
        raise PreconditionError(f"'{config['websockify_executable']}' not found on PATH; required for VNC mode!")
