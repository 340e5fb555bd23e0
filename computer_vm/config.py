# --- Global Configuration & Executable Paths ---

# The QEMU system emulator binary used to run the machine.
QEMU_EXECUTABLE = "qemu-system-x86_64"
# The QEMU disk image tool, used to synthesize the default disk.
QEMU_IMG_EXECUTABLE = "qemu-img"
# The websockify bridge that exposes the VNC endpoint over WebSockets for noVNC.
WEBSOCKIFY_EXECUTABLE = "websockify"

# --- Filesystem Layout (relative to the working directory) ---

# The primary virtual hard disk image.
DISK_IMAGE = "./devices/disk/disk.qcow2"
# Directory scanned (non-recursively) for a bootable ISO.
ROM_DIR = "./devices/rom"
# Suffix of removable-media images picked up from ROM_DIR.
BOOT_MEDIA_SUFFIX = ".iso"
# The read-only UEFI firmware code image.
UEFI_CODE_PATH = "./boot/firmware/OVMF_CODE.fd"
# The writable UEFI variables store, created next to the code image if missing.
UEFI_VARS_PATH = "./boot/firmware/OVMF_VARS.fd"
# Size of a freshly created UEFI variables store (zero-filled).
UEFI_VARS_SIZE = 64 * 1024
# The noVNC web client assets served by websockify.
NOVNC_DIR = "./libraries/noVNC"

# --- Machine Sizing ---

# The CPU model to emulate; 'host' passes through the host CPU features.
CPU_MODEL = "host"
# The default number of virtual CPU cores for the guest system.
SMP_CORES = 4
# The default amount of RAM to allocate to the virtual machine.
MEMORY = "4G"
# Size of the default disk created when none exists.
DISK_SIZE = "20G"

# --- Devices ---

# The display adapter; virtio gives the best performance with guest drivers.
VGA_TYPE = "virtio"
# The QEMU display configuration string for local full-screen mode.
FULLSCREEN_DISPLAY = "gtk,full-screen=on"
# The host audio backend and the emulated HDA controller + codec.
AUDIO_BACKEND = "alsa,id=audio0"
AUDIO_CONTROLLER = "intel-hda"
AUDIO_DEVICE = "hda-duplex,audiodev=audio0"
# The virtual USB controller model.
USB_CONTROLLER = "usb-ehci"
# The virtual mouse/tablet device for accurate cursor tracking.
MOUSE_DEVICE = "usb-tablet"
# Real-time clock synchronised with the host, in local time.
RTC = "base=localtime,clock=host"

# --- Network Configuration ---

# The network backend mode for QEMU user-mode networking (SLIRP/NAT).
NETWORK_MODE = "user"
NETWORK_ID = "net0"
NETWORK_BACKEND = f"{NETWORK_MODE},id={NETWORK_ID}"
NETWORK_DEVICE = f"virtio-net-pci,netdev={NETWORK_ID}"

# --- Remote Display (VNC + noVNC) ---

# VNC display number; QEMU listens on VNC_BASE_PORT + display.
VNC_DISPLAY = 1
VNC_BASE_PORT = 5900
# Host the bridge proxies to.
VNC_HOST = "localhost"
# Port websockify serves the noVNC client on.
WEB_PORT = 8080
# Page and query string opened in the browser.
NOVNC_PAGE = "vnc.html"
NOVNC_QUERY = "resize=remote&autoconnect=true"

# --- Supervision ---

# Fixed wait after spawning QEMU so its VNC server can come up (seconds).
QEMU_SETTLE_DELAY = 3.0
# Fixed wait after spawning websockify (seconds).
BRIDGE_SETTLE_DELAY = 2.0
# How long a child gets to exit after SIGTERM before it is killed (seconds).
TERMINATE_TIMEOUT = 10.0
# Interval of the idle loop that waits for a shutdown signal (seconds).
POLL_INTERVAL = 1.0
# Interval between VNC endpoint probes when --wait-for-display is used (seconds).
DISPLAY_PROBE_INTERVAL = 0.25

# Path to the debug log file, if enabled via command line.
DEBUG_FILE = None


def vnc_port(display):
    """Returns the TCP port QEMU uses for a given VNC display number."""
    return VNC_BASE_PORT + int(display)
