from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List, Sequence

from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.prompt import Confirm, Prompt
from rich.table import Table

from .context import BACKENDS_FOR_METHOD, Backend, HostProfile, InstallContext, SetupMethod
from .logging_utils import console

logger = logging.getLogger(__name__)

_BACKEND_BLURB = {
    Backend.LIBVIRT: "libvirt/KVM (virt-manager, best performance)",
    Backend.DOCKER: "Docker (container, easiest setup)",
    Backend.PODMAN: "Podman (rootless container)",
}


def header(title: str) -> None:
    console.print()
    console.print(f"[bold blue]{title}[/bold blue]")
    console.print()


def show_welcome(profile: HostProfile) -> None:
    console.print(
        Panel.fit(
            "Run Windows applications seamlessly on Linux.\n\n"
            f"System: {profile.os_name} {profile.os_version} ({profile.architecture})\n"
            f"Desktop: {profile.desktop_environment}\n"
            f"Root filesystem: {profile.root_filesystem_type}",
            title="AutoWinApps Installer",
            border_style="blue",
        )
    )


def choose_setup_method() -> SetupMethod:
    header("Windows Setup Method")
    console.print("1) Automated (dockur/windows) - downloads and installs Windows for you [recommended]")
    console.print("2) Manual VM setup - bring your own Windows VM")
    answer = Prompt.ask("Choose setup method", choices=["1", "2"], default="1", console=console)
    method = SetupMethod.DOCKUR if answer == "1" else SetupMethod.MANUAL
    logger.info("Selected: %s", method.label)
    return method


def choose_backend(method: SetupMethod) -> Backend:
    header("Virtualization Backend")
    options: Sequence[Backend] = BACKENDS_FOR_METHOD[method]
    for i, backend in enumerate(options, start=1):
        console.print(f"{i}) {_BACKEND_BLURB[backend]}")
    choices = [str(i) for i in range(1, len(options) + 1)]
    answer = Prompt.ask("Choose backend", choices=choices, default="1", console=console)
    backend = options[int(answer) - 1]
    logger.info("Selected backend: %s", backend.value)
    return backend


def show_summary(ctx: InstallContext, packages: List[str], steps: Sequence[str]) -> None:
    header("Installation Summary")
    table = Table(show_header=False, box=None)
    table.add_column("Property", style="bold")
    table.add_column("Value")
    p = ctx.profile
    table.add_row("Operating system", f"{p.os_name} {p.os_version}")
    table.add_row("Setup method", ctx.setup_method.label)
    table.add_row("Backend", ctx.backend.value)
    table.add_row("Root filesystem", p.root_filesystem_type)
    table.add_row("Desktop", p.desktop_environment)
    table.add_row("Dry run", "yes" if ctx.dry_run else "no")
    table.add_row("Skip updates", "yes" if ctx.skip_updates else "no")
    console.print(table)
    console.print()
    console.print("[bold]Packages to install:[/bold]")
    for pkg in packages:
        console.print(f"   • {pkg}")
    console.print()
    console.print(f"[bold]Steps:[/bold] {', '.join(steps)}")
    console.print()


def confirm(question: str, default: bool = False) -> bool:
    return Confirm.ask(question, default=default, console=console)


@contextmanager
def step_progress(total: int) -> Iterator:
    """Yield an ``on_step`` callback backed by a rich progress bar."""

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=False,
    ) as progress:
        task = progress.add_task("Starting installation", total=total)

        def on_step(index: int, count: int, step) -> None:
            progress.update(task, completed=index - 1, description=f"[{index}/{count}] {step.title}")

        yield on_step
        progress.update(task, completed=total, description="Installation completed")


def show_completion(ctx: InstallContext, log_path: str) -> None:
    header("Installation Complete!")
    if ctx.dry_run:
        console.print("[green]Dry run completed successfully![/green]")
        console.print("Run without --dry-run to perform the actual installation")
        return

    console.print("[green]AutoWinApps successfully installed![/green]")
    console.print()
    console.print("Next steps:")
    if ctx.setup_method is SetupMethod.DOCKUR:
        console.print("1. [bold]Reboot or log out/in[/bold] (for group permissions)")
        console.print("2. [bold]~/manage-windows.sh setup[/bold] (download & install Windows)")
        console.print("3. [bold]http://localhost:8006[/bold] (monitor installation)")
        console.print("4. Install Windows applications")
        console.print("5. [bold]winapps-setup --user[/bold] (integrate apps)")
        console.print()
        console.print("Management commands:")
        console.print("   • [bold]~/manage-windows.sh start[/bold] - Start Windows")
        console.print("   • [bold]~/manage-windows.sh stop[/bold] - Stop Windows")
        console.print("   • [bold]~/manage-windows.sh status[/bold] - Check status")
    else:
        console.print("1. [bold]Reboot or log out/in[/bold] (for group permissions)")
        console.print("2. [bold]~/create-windows-vm.sh[/bold] (create Windows VM)")
        console.print("3. Install Windows and enable Remote Desktop")
        console.print("4. [bold]winapps-setup --user[/bold] (integrate apps)")
    console.print()
    console.print(f"Log file: {log_path}")
    console.print("For help and documentation: https://github.com/winapps-org/winapps")
