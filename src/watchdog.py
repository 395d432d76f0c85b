"""systemd readiness and watchdog notifications.

Messages go over the NOTIFY_SOCKET datagram socket systemd hands the
service. Outside systemd (local dev, tests) the variable is unset and every
call is a silent no-op.
"""

from __future__ import annotations

import asyncio
import logging
import os
import socket

logger = logging.getLogger(__name__)

_WATCHDOG_INTERVAL_SECONDS = 15


def _notify_address() -> str | None:
    addr = os.environ.get("NOTIFY_SOCKET")
    if not addr:
        return None
    # Abstract namespace sockets are advertised with a leading @
    if addr.startswith("@"):
        return "\0" + addr[1:]
    return addr


def watchdog_interval() -> float:
    """Seconds between pings: half of WATCHDOG_USEC when systemd sets it."""
    usec = os.environ.get("WATCHDOG_USEC", "")
    if usec.isdigit() and int(usec) > 0:
        return int(usec) / 2_000_000
    return _WATCHDOG_INTERVAL_SECONDS


def sd_notify(message: str) -> bool:
    """Send *message* to systemd. Returns False when not sent."""
    addr = _notify_address()
    if addr is None:
        return False
    with socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM) as sock:
        try:
            sock.connect(addr)
            sock.sendall(message.encode())
        except OSError as exc:
            logger.warning("Failed to send sd_notify %r: %s", message, exc)
            return False
    return True


def notify_ready() -> None:
    """Tell systemd startup finished and the scheduler is running."""
    if sd_notify("READY=1\nSTATUS=Online, refreshing"):
        logger.info("Notified systemd: READY")


def notify_status(status: str) -> None:
    """Update the free-form status line shown by ``systemctl status``."""
    sd_notify(f"STATUS={status}")


def notify_stopping() -> None:
    sd_notify("STOPPING=1")


async def watchdog_loop(interval: float | None = None) -> None:
    """Ping the systemd watchdog every *interval* seconds until cancelled."""
    interval = interval or watchdog_interval()
    while True:
        sd_notify("WATCHDOG=1")
        await asyncio.sleep(interval)


def start_watchdog() -> asyncio.Task | None:
    """Spawn :func:`watchdog_loop`, or return None outside systemd."""
    if _notify_address() is None:
        logger.debug("NOTIFY_SOCKET not set, watchdog disabled")
        return None
    interval = watchdog_interval()
    task = asyncio.get_running_loop().create_task(watchdog_loop(interval), name="systemd-watchdog")
    logger.info("Watchdog loop started (interval=%.1fs)", interval)
    return task
