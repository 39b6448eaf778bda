"""
Revenant CLI.

Usage:
    revenant init [--config PATH] [--force]      # Create an example config file
    revenant install [--verbose] [--auto-clean]  # Converge every declared plugin
    revenant update [PLUGIN ...] [--fetch]       # Converge some plugins (and their deps)
    revenant list [--verbose]                    # Show status of declared plugins
    revenant verify [--fix]                      # Check installations against the lock file
    revenant clean [--dry-run] [--force]         # Remove plugins no longer declared
    revenant config show                         # Show tool settings
    revenant config set KEY VALUE                # Set a tool setting
    revenant config get KEY                      # Get a tool setting
    revenant doctor                              # Run diagnostics

Every command that reads the plugin set accepts --config PATH; otherwise
./.revenant.json is used, then ~/.config/revenant/plugins.json.

Exit codes: 0 success, 1 config or validation error, 2 one or more plugins
failed, 3 unexpected error, 130 interrupted.
"""

import argparse
import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional

from revenant import __version__
from revenant.config import (
    CONFIG_KEYS,
    ENV_PREFIX,
    get_config_path,
    get_settings,
    load_yaml_config,
    reload_settings,
    save_yaml_config,
)
from revenant.core.cleaner import find_orphans, prune
from revenant.core.dependencies import select_with_dependencies
from revenant.core.fs import Filesystem, LocalFilesystem
from revenant.core.git import GitClient, VcsClient
from revenant.core.lockfile import read_lock_file, write_lock_file
from revenant.core.manifest import (
    LOCAL_CONFIG_NAME,
    DeclaredConfig,
    lock_path_for,
    parse_config_file,
    resolve_config_path,
    write_example_config,
)
from revenant.core.orchestrator import RunResult, reconcile_all, record_outcome
from revenant.core.reconciler import Reconciler, inspect_state
from revenant.lib.errors import RevenantError, describe, exit_code_for
from revenant.lib.logger import setup_logging
from revenant.lib.paths import compress_tilde, resolve_install_dir, resolve_plugin_path
from revenant.models.ledger import Ledger, utc_now
from revenant.models.outcome import (
    INTERRUPTED_EXIT_CODE,
    PluginState,
    ReconciliationOutcome,
    RunStatus,
)
from revenant.models.plugin import PluginSpec

logger = logging.getLogger(__name__)

_STATE_LABELS = {
    PluginState.PRESENT_CORRECT: "up-to-date",
    PluginState.PRESENT_WRONG_REVISION: "outdated",
    PluginState.ABSENT: "not installed",
    PluginState.PRESENT_CORRUPT: "corrupted",
}


# --- Helpers ---


def _make_vcs() -> VcsClient:
    settings = get_settings()
    return GitClient(executable=settings.git_executable, timeout=settings.git_timeout)


def _make_fs() -> Filesystem:
    return LocalFilesystem()


def _load_declared(config_arg: Optional[str]) -> tuple[Path, DeclaredConfig]:
    config_path = resolve_config_path(config_arg)
    return config_path, parse_config_file(config_path)


def _install_dir_for(declared: DeclaredConfig, config_path: Path) -> str:
    """Config file installDir, then the install_dir setting, then the platform default.

    A relative installDir is relative to the config file's directory.
    """
    if declared.install_dir:
        return resolve_install_dir(declared.install_dir, base=str(config_path.absolute().parent))
    return resolve_install_dir(get_settings().install_dir)


def _print_outcome(outcome: ReconciliationOutcome) -> None:
    if outcome.failed:
        print(f"  ✗ {outcome.detail}", file=sys.stderr)
    else:
        print(f"  ✓ {outcome.detail}")


def _print_summary(result: RunResult) -> None:
    lines = result.summary_lines()
    stream = sys.stderr if result.failures else sys.stdout
    print(file=stream)
    for line in lines:
        print(line, file=stream)


def _run(
    args: argparse.Namespace,
    specs: list[PluginSpec],
    declared: DeclaredConfig,
    config_path: Path,
    fetch: bool = False,
) -> RunResult:
    """Reconcile ``specs``, persist the lock file and print results."""
    lock_path = lock_path_for(config_path)
    previous = read_lock_file(lock_path)
    install_dir = _install_dir_for(declared, config_path)

    print(f"Reconciling {len(specs)} plugin(s) into {compress_tilde(install_dir)}")
    result = reconcile_all(
        specs,
        previous,
        install_dir=install_dir,
        vcs=_make_vcs(),
        fs=_make_fs(),
        verbose=args.verbose,
        on_outcome=_print_outcome,
        fetch=fetch,
    )
    write_lock_file(lock_path, result.ledger)
    _print_summary(result)
    return result


# --- Commands ---


def cmd_init(args: argparse.Namespace) -> None:
    """Create an example config file."""
    path = Path(args.config).expanduser() if args.config else Path.cwd() / LOCAL_CONFIG_NAME
    write_example_config(path, force=args.force)
    print(f"Created configuration file at {path}")
    print("Edit it to declare your plugins, then run: revenant install")


def cmd_install(args: argparse.Namespace) -> None:
    """Converge every declared plugin on its pinned commit."""
    config_path, declared = _load_declared(args.config)
    result = _run(args, declared.plugins, declared, config_path)

    if args.auto_clean:
        _clean_orphans(result.ledger, declared, config_path, dry_run=False, force=True)

    if result.status is not RunStatus.SUCCESS:
        sys.exit(result.status.exit_code)


def cmd_update(args: argparse.Namespace) -> None:
    """Converge the named plugins (default: all) plus their dependencies."""
    config_path, declared = _load_declared(args.config)
    specs = declared.plugins
    if args.plugins:
        specs = select_with_dependencies(declared.plugins, args.plugins)

    result = _run(args, specs, declared, config_path, fetch=args.fetch)
    if result.status is not RunStatus.SUCCESS:
        sys.exit(result.status.exit_code)


def cmd_list(args: argparse.Namespace) -> None:
    """Read-only status of each declared plugin."""
    config_path, declared = _load_declared(args.config)
    ledger = read_lock_file(lock_path_for(config_path))
    install_dir = _install_dir_for(declared, config_path)
    vcs = _make_vcs()
    fs = _make_fs()

    print(f"\nPlugins ({config_path})")
    print("-" * 40)

    tally = {label: 0 for label in _STATE_LABELS.values()}
    for spec in declared.plugins:
        path = resolve_plugin_path(spec.name, install_dir)
        state, current = inspect_state(spec, path, vcs, fs, ledger.get(spec.name))
        label = _STATE_LABELS[state]
        tally[label] += 1

        line = f"  {spec.name}: {label}"
        if state is PluginState.PRESENT_WRONG_REVISION:
            line += f" (at {current[:8]}, want {spec.short_commit})"
        print(line)
        if args.verbose:
            print(f"      repo:   {spec.repo}")
            print(f"      commit: {spec.commit}")
            print(f"      path:   {compress_tilde(path)}")
            if spec.dependencies:
                print(f"      deps:   {', '.join(spec.dependencies)}")

    orphans = find_orphans(ledger, declared.plugins)
    for orphan in orphans:
        print(f"  {orphan.name}: orphaned (not in config, run: revenant clean)")

    counts = ", ".join(f"{n} {label}" for label, n in tally.items() if n)
    print(f"\n  {len(declared.plugins)} plugin(s): {counts}")


def cmd_verify(args: argparse.Namespace) -> None:
    """Check that every plugin in the lock file is intact at its recorded commit."""
    config_path, _ = _load_declared(args.config)
    lock_path = lock_path_for(config_path)
    ledger = read_lock_file(lock_path)

    if not ledger.plugins:
        print("No plugins recorded in the lock file")
        return

    vcs = _make_vcs()
    fs = _make_fs()
    reconciler = Reconciler(vcs=vcs, fs=fs)
    fixed = ledger.snapshot()
    issues = 0
    unfixed = 0

    for record in ledger.plugins:
        spec = record.to_spec()
        state, current = inspect_state(spec, record.path, vcs, fs, record)
        if state is PluginState.PRESENT_CORRECT:
            print(f"  ✓ {record.name} at {record.commit[:8]}")
            continue

        issues += 1
        if state is PluginState.PRESENT_WRONG_REVISION:
            problem = f"checked out at {current[:8]}, lock file says {record.commit[:8]}"
        else:
            problem = "corrupted installation"
        print(f"  ✗ {record.name}: {problem}", file=sys.stderr)

        if not args.fix:
            continue

        outcome = reconciler.reconcile(spec, record, path=record.path)
        _print_outcome(outcome)
        if outcome.failed:
            unfixed += 1
        else:
            record_outcome(fixed, outcome, utc_now())

    if not issues:
        print(f"\nAll {len(ledger.plugins)} plugin(s) verified")
        return

    if not args.fix:
        print(f"\n{issues} issue(s) found (run: revenant verify --fix)", file=sys.stderr)
        sys.exit(RunStatus.PARTIAL_FAILURE.exit_code)

    fixed.stamp()
    write_lock_file(lock_path, fixed)
    print(f"\nFixed {issues - unfixed} of {issues} issue(s)")
    if unfixed:
        sys.exit(RunStatus.PARTIAL_FAILURE.exit_code)


def _clean_orphans(
    ledger: Ledger,
    declared: DeclaredConfig,
    config_path: Path,
    dry_run: bool,
    force: bool,
) -> bool:
    """Remove orphaned plugins. Returns False if any removal failed."""
    orphans = find_orphans(ledger, declared.plugins)
    if not orphans:
        print("No orphaned plugins found")
        return True

    print(f"Orphaned plugins ({len(orphans)}):")
    for orphan in orphans:
        print(f"  - {orphan.name} ({compress_tilde(orphan.path)})")

    if dry_run:
        print("Dry run: nothing removed")
        return True

    if not force:
        answer = input(f"Remove {len(orphans)} plugin(s)? [y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            print("Aborted")
            return True

    result = prune(orphans, ledger, _make_fs())
    write_lock_file(lock_path_for(config_path), result.ledger)

    for record in result.removed:
        print(f"  ✓ Removed {record.name}")
    for record, reason in result.failed:
        print(f"  ✗ Failed to remove {record.name}: {reason}", file=sys.stderr)
    return not result.failed


def cmd_clean(args: argparse.Namespace) -> None:
    """Remove plugins recorded in the lock file but no longer declared."""
    config_path, declared = _load_declared(args.config)
    ledger = read_lock_file(lock_path_for(config_path))
    if not _clean_orphans(ledger, declared, config_path, args.dry_run, args.force):
        sys.exit(RunStatus.PARTIAL_FAILURE.exit_code)


def cmd_doctor(args: argparse.Namespace) -> None:
    """Run diagnostics and report pass/warn/fail for each check."""
    settings = get_settings()
    results = []
    state: dict = {}

    def check(name: str, fn):
        try:
            ok, detail = fn()
            status = "PASS" if ok else "WARN"
            results.append((status, name, detail))
        except Exception as e:
            results.append(("FAIL", name, str(e)))

    # 1. Python version
    def check_python():
        v = sys.version_info
        version_str = f"{v.major}.{v.minor}.{v.micro}"
        if v >= (3, 10):
            return True, version_str
        return False, f"{version_str} (requires >= 3.10)"

    check("Python version", check_python)

    # 2. git binary
    def check_git():
        git_path = shutil.which(settings.git_executable)
        if not git_path:
            raise RuntimeError(f"{settings.git_executable} not found on PATH")
        result = subprocess.run(
            [git_path, "--version"],
            capture_output=True,
            text=True,
            timeout=10,
        )
        if result.returncode != 0:
            return False, f"{git_path} did not run"
        return True, result.stdout.strip()

    check("git", check_git)

    # 3. Plugin config
    def check_config():
        config_path, declared = _load_declared(args.config)
        state["config_path"] = config_path
        state["declared"] = declared
        return True, f"{config_path} ({len(declared.plugins)} plugin(s))"

    check("Config file", check_config)

    # 4. Lock file
    def check_lock():
        if "config_path" not in state:
            return False, "skipped (no valid config file)"
        lock_path = lock_path_for(state["config_path"])
        if not lock_path.exists():
            return False, f"{lock_path} not found (run: revenant install)"
        ledger = read_lock_file(lock_path)
        return True, f"{lock_path} ({len(ledger.plugins)} plugin(s))"

    check("Lock file", check_lock)

    # 5. Install directory
    def check_install_dir():
        declared = state.get("declared")
        if declared is not None:
            install_dir = _install_dir_for(declared, state["config_path"])
        else:
            install_dir = resolve_install_dir(settings.install_dir)
        path = Path(install_dir)
        if not path.exists():
            return False, f"{install_dir} does not exist yet (created on install)"
        if not os.access(path, os.W_OK):
            raise RuntimeError(f"{install_dir} not writable")
        return True, install_dir

    check("Install directory", check_install_dir)

    # Print results
    print("\nRevenant Doctor")
    print("=" * 40)

    for status, name, detail in results:
        icon = {"PASS": "+", "WARN": "!", "FAIL": "x"}[status]
        print(f"  [{icon}] {name}: {detail}")

    passes = sum(1 for s, _, _ in results if s == "PASS")
    warns = sum(1 for s, _, _ in results if s == "WARN")
    fails = sum(1 for s, _, _ in results if s == "FAIL")
    print(f"\n  {passes} passed, {warns} warnings, {fails} failures")

    if fails:
        sys.exit(1)


# --- Config commands ---


def cmd_config(args: argparse.Namespace) -> None:
    """Config management: show, set, get."""
    action = getattr(args, "action", None)

    if action == "show":
        _config_show()
    elif action == "set":
        _config_set(args.key, args.value)
    elif action == "get":
        _config_get(args.key)
    else:
        print("Usage: revenant config {show|set|get}")


def _config_show() -> None:
    """Show effective settings and where each one comes from."""
    settings = get_settings()
    config = load_yaml_config()

    print(f"\nConfig: {get_config_path()}")
    print("-" * 40)

    for key in sorted(CONFIG_KEYS):
        value = getattr(settings, key)
        env_name = f"{ENV_PREFIX}{key.upper()}"
        if os.environ.get(env_name) is not None:
            source = f" (overridden by env: {env_name})"
        elif key in config:
            source = ""
        else:
            source = " (default)"
        display = "(platform default)" if value is None else value
        print(f"  {key}: {display}{source}")


def _config_set(key: str, value: str) -> None:
    """Set a config value in config.yaml."""
    if key not in CONFIG_KEYS:
        print(f"Unknown key: {key}")
        print(f"Valid keys: {', '.join(sorted(CONFIG_KEYS))}")
        sys.exit(1)

    config = load_yaml_config()

    # Type conversion
    if key == "git_timeout":
        try:
            value = int(value)
        except ValueError:
            print(f"Error: git_timeout must be an integer, got '{value}'")
            sys.exit(1)
        if value <= 0:
            print("Error: git_timeout must be a positive number of seconds")
            sys.exit(1)
    elif key == "log_level":
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            print(f"Error: invalid log_level '{value}'")
            sys.exit(1)

    config[key] = value
    save_yaml_config(config)
    reload_settings()
    print(f"Set {key} = {value}")


def _config_get(key: str) -> None:
    """Get a single effective config value."""
    if key not in CONFIG_KEYS:
        print(f"Unknown key: {key}")
        print(f"Valid keys: {', '.join(sorted(CONFIG_KEYS))}")
        sys.exit(1)

    value = getattr(get_settings(), key)
    if value is None:
        print(f"Key '{key}' not set")
        sys.exit(1)
    print(value)


# --- Entry point ---


def _add_config_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c", metavar="PATH",
        help=f"Plugin config file (default: ./{LOCAL_CONFIG_NAME}, then the global config)",
    )


def _add_verbose_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Show each step and debug logging",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="revenant",
        description="Revenant: reproducible Neovim plugins pinned to exact commits",
    )
    parser.add_argument("--version", action="version", version=f"revenant {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    # init
    init_parser = subparsers.add_parser("init", help="Create an example config file")
    _add_config_arg(init_parser)
    init_parser.add_argument(
        "--force", "-f", action="store_true",
        help="Overwrite an existing config file",
    )

    # install
    install_parser = subparsers.add_parser("install", help="Install or repair all declared plugins")
    _add_config_arg(install_parser)
    _add_verbose_arg(install_parser)
    install_parser.add_argument(
        "--auto-clean", action="store_true",
        help="Remove orphaned plugins afterwards",
    )

    # update
    update_parser = subparsers.add_parser("update", help="Move plugins to their declared commits")
    update_parser.add_argument("plugins", nargs="*", metavar="PLUGIN", help="Plugins to update (default: all)")
    _add_config_arg(update_parser)
    _add_verbose_arg(update_parser)
    update_parser.add_argument(
        "--fetch", action="store_true",
        help="Fetch from the remote before checking out a new commit",
    )

    # list
    list_parser = subparsers.add_parser("list", help="Show status of declared plugins")
    _add_config_arg(list_parser)
    _add_verbose_arg(list_parser)

    # verify
    verify_parser = subparsers.add_parser("verify", help="Check installations against the lock file")
    _add_config_arg(verify_parser)
    verify_parser.add_argument(
        "--fix", action="store_true",
        help="Repair corrupted or drifted installations",
    )

    # clean
    clean_parser = subparsers.add_parser("clean", help="Remove plugins no longer in the config")
    _add_config_arg(clean_parser)
    clean_parser.add_argument(
        "--dry-run", action="store_true",
        help="Only list what would be removed",
    )
    clean_parser.add_argument(
        "--force", "-f", action="store_true",
        help="Do not ask for confirmation",
    )

    # doctor
    doctor_parser = subparsers.add_parser("doctor", help="Run diagnostics")
    _add_config_arg(doctor_parser)

    # config subcommand
    config_parser = subparsers.add_parser("config", help="Tool settings management")
    config_sub = config_parser.add_subparsers(dest="action")
    config_sub.add_parser("show", help="Show current settings")
    config_set_parser = config_sub.add_parser("set", help="Set a config value")
    config_set_parser.add_argument("key", help="Config key")
    config_set_parser.add_argument("value", help="Config value")
    config_get_parser = config_sub.add_parser("get", help="Get a config value")
    config_get_parser.add_argument("key", help="Config key")

    # help (alias for --help)
    subparsers.add_parser("help", help="Show this help message")

    return parser


def _dispatch(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if args.command == "init":
        cmd_init(args)
    elif args.command == "install":
        cmd_install(args)
    elif args.command == "update":
        cmd_update(args)
    elif args.command == "list":
        cmd_list(args)
    elif args.command == "verify":
        cmd_verify(args)
    elif args.command == "clean":
        cmd_clean(args)
    elif args.command == "doctor":
        cmd_doctor(args)
    elif args.command == "config":
        cmd_config(args)
    else:
        parser.print_help()


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        setup_logging(verbose=getattr(args, "verbose", False))
        _dispatch(parser, args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(INTERRUPTED_EXIT_CODE)
    except RevenantError as e:
        print(f"Error: {describe(e)}", file=sys.stderr)
        sys.exit(exit_code_for(e))
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        print(f"Fatal error: {describe(e)}", file=sys.stderr)
        sys.exit(RunStatus.FATAL.exit_code)


if __name__ == "__main__":
    main()
