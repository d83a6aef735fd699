#!/usr/bin/env python3
"""tmux session manager for the TestificateInfo bot.

Runs the bot detached in tmux, optionally restarting it whenever it exits,
and tees its output into a log file.
"""

import argparse
import os
import shlex
import shutil
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path

DEFAULT_SESSION = "testificate"
DEFAULT_LOG_FILE = "logs/testificate.log"
RESPAWN_PAUSE_SECONDS = 2
REPO_ROOT = Path(__file__).resolve().parent


def default_command() -> str:
    """The installed console script if present, else the module under ``src``."""
    if shutil.which("testificate-info"):
        return "testificate-info"
    return f"{shlex.quote(sys.executable)} src/testificate_info/main.py"


def _tmux(*args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(["tmux", *args], capture_output=True, text=True, check=False)


def _fail(message: str, hint: str | None = None) -> None:
    print(f"[err] {message}")
    if hint:
        print(f"      {hint}")
    sys.exit(1)


@dataclass
class BotSession:
    name: str
    command: str
    log_file: Path
    respawn: bool = False

    @property
    def running(self) -> bool:
        return _tmux("has-session", "-t", self.name).returncode == 0

    def shell_command(self) -> str:
        """Command line executed by ``bash -lc`` inside the tmux pane."""
        load_env = "set -a; [ -f .env ] && . ./.env; set +a;"
        run = f"{load_env} {self.command} 2>&1 | tee -a {shlex.quote(str(self.log_file))}"
        if not self.respawn:
            return run
        return (
            f"while true; do {run}; "
            f'echo "[respawn] bot exited with code $?"; '
            f"sleep {RESPAWN_PAUSE_SECONDS}; done"
        )

    def start(self) -> None:
        if self.running:
            print(f"[ok] '{self.name}' is already running (tmux attach -t {self.name})")
            return

        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        res = _tmux(
            "new-session", "-d", "-s", self.name, "-c", str(REPO_ROOT),
            "bash", "-lc", self.shell_command(),
        )
        if res.returncode != 0:
            _fail(res.stderr.strip() or f"could not create tmux session '{self.name}'")

        time.sleep(RESPAWN_PAUSE_SECONDS)
        if not self.running:
            _fail(f"'{self.name}' exited right after starting", f"see {self.log_file}")

        print(f"[ok] started '{self.name}'")
        print(f"    attach: tmux attach -t {self.name}")
        print(f"    logs:   tail -f {self.log_file}")

    def stop(self) -> None:
        if not self.running:
            print(f"[ok] '{self.name}' is not running")
            return
        res = _tmux("kill-session", "-t", self.name)
        if res.returncode != 0:
            _fail(res.stderr.strip() or f"could not stop '{self.name}'")
        print(f"[ok] stopped '{self.name}'")

    def attach(self) -> None:
        if not self.running:
            _fail(f"'{self.name}' is not running", "start it with: python bot_session.py start")
        os.execvp("tmux", ["tmux", "attach-session", "-t", self.name])

    def status(self) -> None:
        if not self.running:
            print(f"[status] '{self.name}': not running")
            sys.exit(1)
        print(f"[status] '{self.name}': running")
        windows = _tmux("list-windows", "-t", self.name, "-F", "#{window_index}:#{window_name}")
        for line in windows.stdout.strip().splitlines():
            print(f"  window {line}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the TestificateInfo bot inside tmux.")
    parser.add_argument("--session", "-s", default=DEFAULT_SESSION, help="tmux session name")
    parser.add_argument("--cmd", "-c", default=None, help="command that starts the bot")
    parser.add_argument("--log-file", "-l", default=DEFAULT_LOG_FILE, help="file to tee output into")
    parser.add_argument("--respawn", action="store_true", help="restart the bot whenever it exits")
    parser.add_argument("action", choices=["start", "stop", "restart", "attach", "status"])
    return parser


def main() -> None:
    args = build_parser().parse_args()
    if shutil.which("tmux") is None:
        _fail("tmux is not installed", "apt install tmux  (or: brew install tmux)")

    session = BotSession(
        name=args.session.strip().replace(" ", "_"),
        command=(args.cmd or default_command()).strip(),
        log_file=Path(args.log_file),
        respawn=args.respawn,
    )

    if args.action == "restart":
        session.stop()
        session.start()
    else:
        getattr(session, args.action)()


if __name__ == "__main__":
    main()
