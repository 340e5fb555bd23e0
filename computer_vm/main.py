import argparse
import sys

from . import config as app_config
from .logging_utils import setup_logging
from .process import Supervisor


def build_parser():
    """Creates the command-line parser; hidden options override built-in defaults."""
    parser = argparse.ArgumentParser(
        description="Boot a QEMU virtual machine from ./devices and expose its display through noVNC.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--no-vnc", dest="vnc", action="store_false", help="Disable the noVNC web display and run QEMU full-screen locally.")
    parser.add_argument("--smp-cores", type=int, default=app_config.SMP_CORES, help="Number of CPU cores.")
    parser.add_argument("--memory", default=app_config.MEMORY, help="RAM for the VM.")
    parser.add_argument("--disk-size", default=app_config.DISK_SIZE, help="Size of the default disk created when none exists.")
    parser.add_argument("--wait-for-display", action="store_true", help="Poll the VNC endpoint instead of waiting a fixed delay before starting websockify.")
    parser.add_argument("--debug-file", default=app_config.DEBUG_FILE, metavar="PATH", help="Write timestamped debug messages to PATH.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug messages on the console.")

    # Suppressed from help as they describe the fixed machine layout
    suppressed_args = {
        "qemu_executable": app_config.QEMU_EXECUTABLE, "qemu_img_executable": app_config.QEMU_IMG_EXECUTABLE,
        "websockify_executable": app_config.WEBSOCKIFY_EXECUTABLE,
        "disk_image": app_config.DISK_IMAGE, "rom_dir": app_config.ROM_DIR, "novnc_dir": app_config.NOVNC_DIR,
        "uefi_code_path": app_config.UEFI_CODE_PATH, "uefi_vars_path": app_config.UEFI_VARS_PATH,
        "cpu_model": app_config.CPU_MODEL, "vga_type": app_config.VGA_TYPE, "fullscreen_display": app_config.FULLSCREEN_DISPLAY,
        "audio_backend": app_config.AUDIO_BACKEND, "audio_controller": app_config.AUDIO_CONTROLLER, "audio_device": app_config.AUDIO_DEVICE,
        "network_backend": app_config.NETWORK_BACKEND, "network_device": app_config.NETWORK_DEVICE,
        "usb_controller": app_config.USB_CONTROLLER, "mouse_device": app_config.MOUSE_DEVICE, "rtc": app_config.RTC,
    }
    for arg, default_val in suppressed_args.items():
        cli_arg = f"--{arg.replace('_', '-')}"
        parser.add_argument(cli_arg, default=default_val, help=argparse.SUPPRESS)

    suppressed_numbers = {
        "vnc_display": (int, app_config.VNC_DISPLAY), "web_port": (int, app_config.WEB_PORT),
        "qemu_settle_delay": (float, app_config.QEMU_SETTLE_DELAY), "bridge_settle_delay": (float, app_config.BRIDGE_SETTLE_DELAY),
        "terminate_timeout": (float, app_config.TERMINATE_TIMEOUT), "poll_interval": (float, app_config.POLL_INTERVAL),
    }
    for arg, (arg_type, default_val) in suppressed_numbers.items():
        cli_arg = f"--{arg.replace('_', '-')}"
        parser.add_argument(cli_arg, type=arg_type, default=default_val, help=argparse.SUPPRESS)
    return parser


def main(argv=None):
    """Parses command-line arguments, boots the VM and supervises it until shutdown."""
    parser = build_parser()
    args = parser.parse_args(argv)
    config = vars(args)

    if config["smp_cores"] < 1:
        parser.error("--smp-cores must be at least 1.")

    setup_logging(config.pop("debug_file"), verbose=config.pop("verbose"))

    supervisor = Supervisor(config)
    supervisor.install_signal_handlers()
    sys.exit(supervisor.run())
