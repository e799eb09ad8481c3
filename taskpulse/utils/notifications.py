# taskpulse/utils/notifications.py
'''
Alert dispatchers: how a reminder reaches the user.

Every dispatcher shows an in-app toast. The desktop dispatcher additionally
sends a system notification and plays a sound when the platform allows it.
Nothing in here raises; failures are logged and the reminder degrades to the toast.
'''
import logging
import platform
import shutil
import subprocess
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel

logger = logging.getLogger(__name__)

DEFAULT_SOUND = "alarm-clock-elapsed"
FREEDESKTOP_SOUNDS = "/usr/share/sounds/freedesktop/stereo"


class ConsoleDispatcher:
    """In-app only: prints a toast panel and rings the terminal bell."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def request_permission(self) -> bool:
        # No system notification channel to ask for.
        return False

    def toast(self, title: str, body: str) -> None:
        try:
            self.console.print(Panel(body, title=title, border_style="yellow", expand=False))
        except Exception as e:
            logger.error(f"Failed to render reminder toast: {e}", exc_info=True)

    def notify(self, title: str, body: str) -> None:
        self.toast(title, body)

    def play_sound(self, clip: str = DEFAULT_SOUND) -> None:
        try:
            self.console.bell()
        except Exception as e:
            logger.warning(f"Terminal bell failed: {e}")


def build_linux_notifier(title: str, body: str) -> List[str]:
    """
    notify-send command for a persistent critical notification.
    timeout 0 = until dismissed; urgency critical = high visibility
    """
    return ["notify-send", "-u", "critical", "-t", "0", "-a", "taskpulse", title, body]


def build_linux_sound(clip: str = DEFAULT_SOUND) -> Optional[List[str]]:
    """canberra-gtk-play if installed, otherwise paplay, otherwise None (bell)."""
    if shutil.which("canberra-gtk-play"):
        return ["canberra-gtk-play", f"--id={clip}"]
    if shutil.which("paplay"):
        return ["paplay", f"{FREEDESKTOP_SOUNDS}/{clip}.oga"]
    return None


def build_windows_notifier(title: str, body: str) -> List[str]:
    """
    Returns a PowerShell command array that:
     - plays the system Exclamation sound,
     - shows a MessageBox until the user clicks OK.
    """
    def ps_quote(text: str) -> str:
        return "'" + text.replace("'", "''") + "'"

    return [
        "powershell.exe", "-NoProfile", "-Command",
        (
            "[Reflection.Assembly]::LoadWithPartialName('System.Windows.Forms') | Out-Null;"
            "[System.Media.SystemSounds]::Exclamation.Play();"
            f"[void][System.Windows.Forms.MessageBox]::Show({ps_quote(body)},"
            f"{ps_quote(title)},"
            "[System.Windows.Forms.MessageBoxButtons]::OK,"
            "[System.Windows.Forms.MessageBoxIcon]::Warning,"
            "[System.Windows.Forms.MessageBoxDefaultButton]::Button1,"
            "[System.Windows.Forms.MessageBoxOptions]::DefaultDesktopOnly)"
        ),
    ]


class DesktopDispatcher(ConsoleDispatcher):
    """
    System notifications on Linux (notify-send) and Windows (PowerShell MessageBox),
    with the console toast as fallback.
    """

    def __init__(self, console: Optional[Console] = None, system: Optional[str] = None):
        super().__init__(console)
        self.system = system or platform.system()

    def request_permission(self) -> bool:
        if self.system == "Linux":
            granted = shutil.which("notify-send") is not None
        elif self.system == "Windows":
            granted = shutil.which("powershell.exe") is not None
        else:
            granted = False
        if not granted:
            logger.info(f"System notifications unavailable on {self.system}; using in-app reminders")
        return granted

    def notify(self, title: str, body: str) -> None:
        if self.system == "Linux":
            cmd = build_linux_notifier(title, body)
        elif self.system == "Windows":
            cmd = build_windows_notifier(title, body)
        else:
            self.toast(title, body)
            return
        if not _run_detached(cmd):
            self.toast(title, body)

    def play_sound(self, clip: str = DEFAULT_SOUND) -> None:
        cmd = build_linux_sound(clip) if self.system == "Linux" else None
        if cmd is None or not _run_detached(cmd):
            super().play_sound(clip)


def _run_detached(cmd: List[str]) -> bool:
    """Start a helper process without waiting on it. Returns False if it could not start."""
    try:
        subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        return True
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning(f"Failed to run {cmd[0]}: {e}")
        return False


def build_dispatcher(desktop: bool = True, console: Optional[Console] = None) -> ConsoleDispatcher:
    return DesktopDispatcher(console) if desktop else ConsoleDispatcher(console)
