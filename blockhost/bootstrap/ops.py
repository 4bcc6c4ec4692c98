"""Boot script operations: packages, files, volumes and services.

Each operation is a function returning an Op (string or callable).
"""

from __future__ import annotations

from .compose import Op, resolve


def apt(*packages: str, update: bool = True) -> Op:
    """Install APT packages, waiting for the dpkg lock first.

    Example:
        >>> apt("curl", "jq")()
        'while fuser /var/lib/dpkg/lock-frontend >/dev/null 2>&1; do sleep 5; done\\napt-get update -qq\\napt-get install -y -qq curl jq'
    """
    if not packages:
        return lambda: "# No APT packages to install"

    def generate() -> str:
        lines = ["while fuser /var/lib/dpkg/lock-frontend >/dev/null 2>&1; do sleep 5; done"]
        if update:
            lines.append("apt-get update -qq")
        lines.append(f"apt-get install -y -qq {' '.join(packages)}")
        return "\n".join(lines)

    return generate


def mkdir(path: str) -> Op:
    return lambda: f"mkdir -p {path}"


def file(path: str, content: str, mode: str | None = None) -> Op:
    """Write content to a file using a quoted heredoc.

    Example:
        >>> file("/minecraft/eula.txt", "eula=true")()
        "cat > /minecraft/eula.txt << 'EOF'\\neula=true\\nEOF"
    """

    def generate() -> str:
        lines = [f"cat > {path} << 'EOF'", content, "EOF"]
        if mode:
            lines.append(f"chmod {mode} {path}")
        return "\n".join(lines)

    return generate


def shell(cmd: str) -> Op:
    return lambda: cmd


def mount_volume(device: str, target: str) -> Op:
    """Wait for a block device, format it if blank and mount it persistently.

    Args:
        device: Device label as reported by the provider (e.g. "sdb").
        target: Mount point on the instance.
    """
    dev = f"/dev/{device}"

    def generate() -> str:
        return "\n".join([
            f"while [ ! -b {dev} ]; do sleep 1; done",
            f"blkid {dev} >/dev/null 2>&1 || mkfs.ext4 -F {dev}",
            f"mkdir -p {target}",
            f"mount {dev} {target}",
            f'grep -q "^{dev} " /etc/fstab || echo "{dev} {target} ext4 defaults,nofail,discard 0 0" >> /etc/fstab',
        ])

    return generate


def ssh_port(port: int) -> Op:
    """Move sshd to a non-default port. No-op for port 22."""
    if port == 22:
        return lambda: "# sshd stays on port 22"
    return lambda: "\n".join([
        f"sed -i 's/^#\\?Port .*/Port {port}/' /etc/ssh/sshd_config",
        "systemctl restart ssh || systemctl restart sshd",
    ])


def systemd_unit(name: str, description: str, workdir: str, exec_start: str) -> Op:
    """Install a systemd service unit."""
    unit = "\n".join([
        "[Unit]",
        f"Description={description}",
        "After=network-online.target",
        "Wants=network-online.target",
        "",
        "[Service]",
        f"WorkingDirectory={workdir}",
        f"ExecStart={exec_start}",
        "Restart=on-failure",
        "RestartSec=5",
        "",
        "[Install]",
        "WantedBy=multi-user.target",
    ])
    return file(f"/etc/systemd/system/{name}", unit, mode="0644")


def enable_service(name: str) -> Op:
    return lambda: f"systemctl daemon-reload\nsystemctl enable --now {name}"


def stop_service(name: str) -> Op:
    return lambda: f"systemctl stop {name} || true"


def start_service(name: str) -> Op:
    return lambda: f"systemctl start {name}"
