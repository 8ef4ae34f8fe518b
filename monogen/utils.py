"""Shared utility functions for monogen.

Provides async command execution, JSON I/O, file-system helpers, name
validation, and Rich-based console reporting.  Every component prints through
the module-level ``console`` so that output can be captured or silenced in one
place.
"""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.rule import Rule
from rich.table import Table

console = Console()

_verbose = False


# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: str, cwd: str | Path | None = None, timeout: int = 600
) -> tuple[int, str, str]:
    """Run a shell command and capture its output.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  A command that outlives
        *timeout* seconds is killed and reported with return code ``-1``.
    """
    process = await asyncio.create_subprocess_shell(
        cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd else None,
    )
    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return -1, "", f"Command timed out after {timeout}s: {cmd}"

    stdout_str = stdout_bytes.decode("utf-8", errors="replace").strip()
    stderr_str = stderr_bytes.decode("utf-8", errors="replace").strip()
    return process.returncode or 0, stdout_str, stderr_str


# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------

_NAME_RE = re.compile(r"^[a-z0-9-]+$")


def sanitize_name(name: str) -> str:
    """Convert an arbitrary display name to a safe directory/package name.

    * Lowercases the input.
    * Replaces spaces and non-alphanumeric characters (except hyphens) with
      hyphens.
    * Collapses consecutive hyphens and strips leading/trailing hyphens.

    Examples::

        sanitize_name("My Web App") -> "my-web-app"
        sanitize_name("  UI (Shared)  ") -> "ui-shared"
    """
    result = re.sub(r"[^a-z0-9-]", "-", name.strip().lower())
    result = re.sub(r"-+", "-", result)
    return result.strip("-")


def validate_name(name: str, *, is_package: bool = False) -> str | None:
    """Check an application or shared-package name.

    Returns ``None`` when the name is acceptable, otherwise the message to
    show to the user.  Folder existence is *not* checked here; collisions are
    handled by the builders' overwrite prompt.
    """
    label = "Shared package" if is_package else "App"
    if not name:
        return f"{label} name is required"
    if not _NAME_RE.match(name):
        return f"{label} name must contain only lowercase letters, numbers, and hyphens"
    if len(name) < 2:
        return f"{label} name must be at least 2 characters long"
    if len(name) > 214:
        return f"{label} name must be less than 214 characters"
    return None


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> Any:
    """Load and parse a JSON file.

    Args:
        path: Path to the JSON file.

    Returns:
        The parsed JSON value.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    file_path = Path(path)
    raw = file_path.read_text(encoding="utf-8")
    return json.loads(raw)


async def save_json(
    data: dict[str, Any] | list[Any], path: str | Path, *, indent: int = 2
) -> None:
    """Save data as pretty-printed JSON.

    Parent directories are created automatically and the write itself runs in
    a worker thread so the event loop is not blocked.
    """
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(data, indent=indent, ensure_ascii=False, default=str) + "\n"
    await asyncio.to_thread(file_path.write_text, content, "utf-8")


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def ensure_dir(path: str | Path) -> Path:
    """Create a directory (and parents) if it does not exist.

    Returns:
        The resolved ``Path`` object.
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path.resolve()


def relative_to_cwd(path: Path) -> str:
    """Return *path* relative to the working directory when possible."""
    try:
        return str(path.resolve().relative_to(Path.cwd().resolve()))
    except ValueError:
        return str(path)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
    """
    if seconds < 0:
        return "0.0s"

    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def set_verbose(enabled: bool) -> None:
    """Toggle debug output for :func:`print_debug` and error tracebacks."""
    global _verbose
    _verbose = enabled


def is_verbose() -> bool:
    return _verbose


def print_step_header(step: int, total: int, name: str) -> None:
    """Print a full-width rule announcing a generation step."""
    console.print()
    console.print(Rule(f"[bold cyan] Step {step}/{total}: {name} [/bold cyan]", style="cyan"))


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_info(message: str) -> None:
    """Print a plain informational message."""
    console.print(f"[cyan]>[/cyan] {message}")


def print_debug(message: str) -> None:
    """Print a dim message, only in verbose mode."""
    if _verbose:
        console.print(f"[dim]{message}[/dim]")


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str, subtitle: str | None = None) -> None:
    """Print a red error message, with an optional detail line."""
    console.print(f"[bold red]{message}[/bold red]")
    if subtitle:
        console.print(f"  [red]{subtitle}[/red]")


def print_warning(message: str, subtitle: str | None = None) -> None:
    """Print a yellow warning message, with an optional detail line."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
    if subtitle:
        console.print(f"  [yellow]{subtitle}[/yellow]")
