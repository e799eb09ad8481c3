# tests/test_notifications.py

from rich.console import Console

from taskpulse.utils import notifications
from taskpulse.utils.notifications import (
    ConsoleDispatcher, DesktopDispatcher, build_dispatcher, build_linux_notifier,
    build_windows_notifier,
)


def recording_console():
    return Console(record=True, width=80, force_terminal=False)


def test_console_dispatcher_shows_toast():
    console = recording_console()
    dispatcher = ConsoleDispatcher(console)

    assert dispatcher.request_permission() is False
    dispatcher.toast("⏰ Task Reminder", "It's time for: Stretch")

    assert "It's time for: Stretch" in console.export_text()


def test_linux_notifier_command():
    cmd = build_linux_notifier("Title", "Body")
    assert cmd[0] == "notify-send"
    assert cmd[-2:] == ["Title", "Body"]


def test_windows_notifier_escapes_quotes():
    cmd = build_windows_notifier("Reminder", "Bob's task")
    assert cmd[0] == "powershell.exe"
    assert "'Bob''s task'" in cmd[-1]


def test_desktop_permission_depends_on_helper(monkeypatch):
    monkeypatch.setattr(notifications.shutil, "which", lambda name: None)
    assert DesktopDispatcher(recording_console(), system="Linux").request_permission() is False

    monkeypatch.setattr(notifications.shutil, "which", lambda name: f"/usr/bin/{name}")
    assert DesktopDispatcher(recording_console(), system="Linux").request_permission() is True
    assert DesktopDispatcher(recording_console(), system="Darwin").request_permission() is False


def test_desktop_notify_launches_helper(monkeypatch):
    launched = []
    monkeypatch.setattr(notifications.subprocess, "Popen",
                        lambda cmd, **kwargs: launched.append(cmd))

    DesktopDispatcher(recording_console(), system="Linux").notify("T", "B")

    assert launched == [build_linux_notifier("T", "B")]


def test_desktop_notify_falls_back_to_toast(monkeypatch):
    def cannot_start(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(notifications.subprocess, "Popen", cannot_start)
    console = recording_console()

    DesktopDispatcher(console, system="Linux").notify("⏰ Task Reminder", "It's time for: Run")

    assert "It's time for: Run" in console.export_text()


def test_sound_falls_back_to_bell(monkeypatch):
    monkeypatch.setattr(notifications.shutil, "which", lambda name: None)
    rung = []
    console = recording_console()
    monkeypatch.setattr(console, "bell", lambda: rung.append(True))

    DesktopDispatcher(console, system="Linux").play_sound()

    assert rung == [True]


def test_build_dispatcher():
    assert type(build_dispatcher(desktop=False)) is ConsoleDispatcher
    assert isinstance(build_dispatcher(desktop=True), DesktopDispatcher)
