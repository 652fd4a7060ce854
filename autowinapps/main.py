from __future__ import annotations

import argparse
import logging
import os
from typing import MutableMapping, Optional

from . import ui
from .context import InstallChoice, InstallContext, build_context, detect_host_profile
from .errors import InstallerError, StepFailedError, UnsupportedOSError, ValidationBlockedError
from .lib.env import Paths, force_install_requested
from .lib.hwdetect import gather_host_facts
from .logging_utils import configure_logging, log_success
from .osmodules import load_os_module
from .pipeline import Phase, PhaseTracker, run_pipeline
from .state_store import InstallCheckpoint, load_checkpoint, now_iso, save_checkpoint
from .steps import INSTALL_SEQUENCE, resolve_steps
from .validation import Verdict, log_verdict, run_validation, write_system_report

logger = logging.getLogger(__name__)

EPILOG = """\
examples:
  autowinapps                 interactive installation
  autowinapps --dry-run       preview what would be installed
  autowinapps --test          test system detection only
  autowinapps --uninstall     remove AutoWinApps

supported distributions: CachyOS, Ubuntu, Debian, Linux Mint
"""


def run_system_tests(paths: Paths, environ: MutableMapping[str, str]) -> int:
    """Detection and validation only; nothing is installed."""

    ui.header("AutoWinApps System Detection Tests")

    ui.header("Operating System Detection")
    try:
        profile = detect_host_profile(paths, environ)
    except UnsupportedOSError as e:
        logger.error("%s", e)
        return 1
    log_success(logger, "OS: %s %s", profile.os_id.value, profile.os_version)
    logger.info("Root filesystem: %s", profile.root_filesystem_type)
    logger.info("Desktop environment: %s", profile.desktop_environment)

    ui.header("Hardware Validation")
    facts = gather_host_facts(paths.home)
    report = run_validation(facts)
    log_verdict(report, report.verdict(force_install_requested(environ)))

    ui.header("OS Module Testing")
    ctx = build_context(paths, profile, environ=environ, dry_run=True)
    os_module = load_os_module(profile.os_id, ctx)
    if os_module.check_requirements():
        log_success(logger, "OS requirements check passed")
    else:
        logger.error("OS requirements check failed")

    write_system_report(facts, paths.system_report, profile)

    ui.header("Test Summary")
    log_success(logger, "System detection tests completed!")
    logger.info("Run 'autowinapps --dry-run' to preview the full installation")
    return 0


def _choose(ctx: InstallContext) -> InstallChoice:
    ui.show_welcome(ctx.profile)
    method = ui.choose_setup_method()
    backend = ui.choose_backend(method)
    return InstallChoice(setup_method=method, backend=backend)


def run(
    *,
    verbose: bool = False,
    dry_run: bool = False,
    skip_updates: bool = False,
    resume: bool = False,
    test: bool = False,
    force: bool = False,
    log_path: Optional[str] = None,
    checkpoint_path: Optional[str] = None,
    paths: Optional[Paths] = None,
    environ: Optional[MutableMapping[str, str]] = None,
) -> int:
    """Run the installer. Returns the process exit code."""

    env = os.environ if environ is None else environ
    paths = paths or Paths.from_env(env)
    actual_log = configure_logging(log_path or str(paths.log_file), verbose=verbose)
    cp_path = checkpoint_path or str(paths.checkpoint_file)

    if os.geteuid() == 0:
        logger.error("This installer should not be run as root")
        return 1

    if force:
        env["FORCE_INSTALL"] = "true"

    checkpoint: Optional[InstallCheckpoint] = None
    if resume:
        try:
            checkpoint = load_checkpoint(cp_path)
        except InstallerError as e:
            logger.error("%s", e)
            return 1
        if checkpoint is None:
            logger.error("No previous installation found to resume")
            return 1
        log_success(logger, "Resuming previous installation")

    if test:
        return run_system_tests(paths, env)

    tracker = PhaseTracker()
    try:
        tracker.advance(Phase.DETECTING)
        ui.header("Detecting Operating System")
        profile = detect_host_profile(paths, env)
        log_success(logger, "Supported operating system detected")
        ctx = build_context(
            paths,
            profile,
            environ=env,
            dry_run=dry_run,
            skip_updates=skip_updates,
            force=force_install_requested(env),
        )
        os_module = load_os_module(profile.os_id, ctx)
        if not os_module.check_requirements():
            raise InstallerError(f"{os_module.display_name} requirements check failed")

        tracker.advance(Phase.VALIDATING)
        ui.header("Validating System Requirements")
        report = run_validation(gather_host_facts(paths.home))
        verdict = report.verdict(ctx.force)
        log_verdict(report, verdict)
        if verdict is Verdict.BLOCKED:
            raise ValidationBlockedError(f"System validation failed with {report.errors} critical errors")

        if checkpoint is not None:
            if checkpoint.os_id != profile.os_id.value:
                logger.warning("Checkpoint was written on %s, now running on %s", checkpoint.os_id, profile.os_id.value)
            ctx = ctx.with_choice(checkpoint.choice)
            logger.info(
                "Using saved choice: %s with %s", ctx.setup_method.label, ctx.backend.value
            )
        else:
            tracker.advance(Phase.AWAITING_CHOICE)
            ctx = ctx.with_choice(_choose(ctx))
            ui.show_summary(ctx, os_module.required_packages(ctx.backend), INSTALL_SEQUENCE)
            if not dry_run and not ui.confirm("Proceed with installation?", default=False):
                logger.info("Installation cancelled")
                return 0
        tracker.advance(Phase.CONFIRMED)

        steps = resolve_steps(INSTALL_SEQUENCE)
        tracker.advance(Phase.INSTALLING)
        ui.header("Starting Installation")
        with ui.step_progress(len(steps)) as on_step:
            run_pipeline(ctx=ctx, os_module=os_module, steps=steps, on_step=on_step)
        tracker.advance(Phase.COMPLETE)
    except InstallerError as e:
        tracker.advance(Phase.FAILED)
        logger.error("%s", e)
        if isinstance(e, StepFailedError):
            logger.info("Check log: %s", actual_log)
        return 1

    save_checkpoint(
        cp_path,
        InstallCheckpoint(
            os_id=profile.os_id.value,
            os_version=profile.os_version,
            choice=ctx.choice,
            timestamp=now_iso(),
        ),
    )
    ui.show_completion(ctx, actual_log)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="autowinapps",
        description="Universal AutoWinApps installer for multiple Linux distributions.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    p.add_argument("-d", "--dry-run", action="store_true", help="Preview changes without applying them")
    p.add_argument("-s", "--skip-updates", action="store_true", help="Skip system package updates")
    p.add_argument("-r", "--resume", action="store_true", help="Resume previous installation")
    p.add_argument("-u", "--uninstall", action="store_true", help="Uninstall AutoWinApps")
    p.add_argument("-t", "--test", action="store_true", help="Run system detection tests only")
    p.add_argument("--force", action="store_true", help="Force installation even with validation errors")
    p.add_argument("--log", default=None, help="Path to installer log (default ~/.cache/winapps-install.log)")
    p.add_argument(
        "--checkpoint", default=None, help="Path to resume checkpoint (default ~/.cache/winapps-install.conf)"
    )

    args = p.parse_args(argv)

    if args.uninstall:
        from .uninstall import main as uninstall_main

        return uninstall_main([])

    return run(
        verbose=args.verbose,
        dry_run=args.dry_run,
        skip_updates=args.skip_updates,
        resume=args.resume,
        test=args.test,
        force=args.force,
        log_path=args.log,
        checkpoint_path=args.checkpoint,
    )


if __name__ == "__main__":
    raise SystemExit(main())
