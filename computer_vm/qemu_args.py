import subprocess


def build_qemu_args(config):
    """
    Constructs the list of arguments for the QEMU command.

    Expects the discovery keys (`uefi_code`, `uefi_vars`, `disk_present`,
    `cdrom`) to be filled in already. Building has no side effects.
    """
    args = [
        config["qemu_executable"], "-enable-kvm", "-cpu", config["cpu_model"],
        "-smp", str(config["smp_cores"]), "-m", config["memory"],
        "-vga", config["vga_type"],
    ]

    if config["vnc"]:
        args.extend(["-display", "none", "-vnc", f":{config['vnc_display']}"])
    else:
        args.extend(["-display", config["fullscreen_display"]])

    # Both pflash drives or neither: the code image alone does not boot.
    if config.get("uefi_code") and config.get("uefi_vars"):
        args.extend([
            "-drive", f"if=pflash,format=raw,readonly=on,file={config['uefi_code']}",
            "-drive", f"if=pflash,format=raw,file={config['uefi_vars']}",
        ])

    if config.get("disk_present"):
        args.extend(["-drive", f"file={config['disk_image']},format=qcow2,if=virtio"])

    if config.get("cdrom"):
        args.extend(["-cdrom", config["cdrom"]])

    args.extend([
        "-audiodev", config["audio_backend"],
        "-device", config["audio_controller"],
        "-device", config["audio_device"],
        "-netdev", config["network_backend"],
        "-device", config["network_device"],
        "-device", config["usb_controller"],
        "-device", config["mouse_device"],
        "-rtc", config["rtc"],
    ])
    return args


def format_command(args):
    """Renders a command one argument per line, shell-quoted, for logging."""
    formatted_command = f"{args[0]} \\\n"
    formatted_command += " \\\n".join(f"    {subprocess.list2cmdline([arg])}" for arg in args[1:])
    return formatted_command
