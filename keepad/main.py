#!/usr/bin/env python3
"""
keepAD - Active Directory Maintenance Toolkit
=============================================

Command-line interface for the keepAD procedures.

Usage:
    # Seize roles held by unreachable controllers onto DC02
    python -m keepad seize-roles -s dc02.corp.local -d corp.local -u admin --target DC02

    # Remove a dead controller's metadata without prompting
    python -m keepad cleanup-metadata -s dc02.corp.local -d corp.local -u admin DC01 --force

    # Create users from a spreadsheet
    python -m keepad create-users -s dc02.corp.local -d corp.local -u admin -i new_users.xlsx

    # Disable accounts idle for 120 days
    python -m keepad disable-inactive -s dc02.corp.local -d corp.local -u admin --days 120

    # Export disabled accounts
    python -m keepad report-disabled -s dc02.corp.local -d corp.local -u admin

Environment Variables:
    KEEPAD_USERNAME     Bind user when -u is not given
    KEEPAD_PASSWORD     Bind password when -p is not given
"""

import argparse
import getpass
import sys
from typing import Optional

from . import __version__
from .config import KeepadConfig, set_config
from .directory.client import DirectoryClient
from .exceptions import KeepadError, DirectoryError
from .model.schemas import FSMORole
from .operations import (
    RoleSeizure, MetadataCleanup, BulkUserCreator,
    InactiveAccountSweep, DisabledAccountReport
)
from .reporting.report_builder import ReportBuilder, summarize_results
from .system.ntdsutil import NtdsutilRunner


ROLE_CHOICES = ["schema", "naming", "pdc", "rid", "infrastructure"]


def _add_connection_options(parser: argparse.ArgumentParser) -> None:
    ldap_group = parser.add_argument_group("Directory Connection")
    ldap_group.add_argument(
        "-s", "--server",
        required=True,
        help="Reachable domain controller to bind to"
    )
    ldap_group.add_argument(
        "-d", "--domain",
        required=True,
        help="Domain name (e.g., corp.local)"
    )
    ldap_group.add_argument(
        "-u", "--username",
        help="Bind user (default: KEEPAD_USERNAME)"
    )
    ldap_group.add_argument(
        "-p", "--password",
        help="Bind password (default: KEEPAD_PASSWORD, prompted if missing)"
    )
    ldap_group.add_argument(
        "--ssl",
        action="store_true",
        default=None,
        help="Use LDAPS (port 636)"
    )
    parser.add_argument(
        "--config",
        help="JSON configuration file"
    )
    parser.add_argument(
        "-o", "--output",
        help="Output directory for reports (default: ./output)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show tracebacks on errors"
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per procedure."""
    parser = argparse.ArgumentParser(
        prog="keepad",
        description="keepAD - Active Directory maintenance procedures",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"keepAD {__version__}"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    seize = commands.add_parser("seize-roles", help="Seize FSMO roles from offline controllers")
    _add_connection_options(seize)
    seize.add_argument(
        "-t", "--target",
        help="Controller that takes the seized roles (default: --server)"
    )
    seize.add_argument(
        "-r", "--roles",
        nargs="+",
        choices=ROLE_CHOICES,
        help="Roles to consider (default: all five)"
    )
    seize.add_argument(
        "-f", "--force",
        action="store_true",
        help="Do not ask for confirmation"
    )
    seize.add_argument(
        "--ntdsutil",
        help="Path to ntdsutil (default: ntdsutil.exe)"
    )
    seize.set_defaults(handler=run_seize_roles)

    cleanup = commands.add_parser("cleanup-metadata", help="Remove a dead controller's metadata")
    _add_connection_options(cleanup)
    cleanup.add_argument(
        "dc_name",
        help="Name of the decommissioned controller"
    )
    cleanup.add_argument(
        "-f", "--force",
        action="store_true",
        help="Delete without asking for each object"
    )
    cleanup.set_defaults(handler=run_cleanup_metadata)

    create = commands.add_parser(
        "create-users",
        help="Create users from a CSV or Excel file",
        description="Create users from a CSV or Excel file. Active Directory only accepts "
                    "initial passwords over an encrypted channel: use --ssl, or a credentialed "
                    "bind so the NTLM session is sealed."
    )
    _add_connection_options(create)
    create.add_argument(
        "-i", "--input",
        required=True,
        help="CSV or Excel file with one user per row"
    )
    create.add_argument(
        "--container",
        help="Default container DN for rows without one"
    )
    create.add_argument(
        "--report",
        help="Write per-row results to this file"
    )
    create.set_defaults(handler=run_create_users)

    inactive = commands.add_parser("disable-inactive", help="Disable accounts with no recent logon")
    _add_connection_options(inactive)
    inactive.add_argument(
        "--days",
        type=int,
        help="Inactivity threshold in days (default: 90)"
    )
    inactive.add_argument(
        "--search-base",
        help="DN to search under (default: domain root)"
    )
    inactive.add_argument(
        "--include-never-logged-on",
        action="store_true",
        default=None,
        help="Also disable accounts that never logged on"
    )
    inactive.add_argument(
        "--dry-run",
        action="store_true",
        help="List candidates without disabling anything"
    )
    inactive.add_argument(
        "--report",
        help="Report file path (default: timestamped file in the output directory)"
    )
    inactive.set_defaults(handler=run_disable_inactive)

    disabled = commands.add_parser("report-disabled", help="Export disabled accounts")
    _add_connection_options(disabled)
    disabled.add_argument(
        "--search-base",
        help="DN to search under (default: domain root)"
    )
    disabled.add_argument(
        "--report",
        help="Report file path (default: timestamped file in the output directory)"
    )
    disabled.set_defaults(handler=run_report_disabled)

    return parser


def load_config(args: argparse.Namespace) -> KeepadConfig:
    """Load the config file (if any) and apply command-line overrides."""
    config = KeepadConfig.from_file(args.config) if args.config else KeepadConfig()

    if args.username:
        config.ldap.username = args.username
    if args.password:
        config.ldap.password = args.password
    if args.ssl:
        config.ldap.use_ssl = True
        if config.ldap.port == 389:
            config.ldap.port = 636
    if args.output:
        config.output.output_dir = args.output
    if getattr(args, "ntdsutil", None):
        config.ntdsutil.executable = args.ntdsutil
    if getattr(args, "days", None) is not None:
        config.accounts.inactive_days = args.days
    if getattr(args, "search_base", None):
        config.accounts.search_base = args.search_base
    if getattr(args, "include_never_logged_on", None):
        config.accounts.include_never_logged_on = True
    if getattr(args, "container", None):
        config.accounts.default_container = args.container
    set_config(config)
    return config


def connect(args: argparse.Namespace, config: KeepadConfig) -> DirectoryClient:
    """Bind to the directory or raise ConnectionError."""
    if config.ldap.username and not config.ldap.password:
        config.ldap.password = getpass.getpass(f"Password for {config.ldap.username}: ")

    client = DirectoryClient(
        server=args.server,
        domain=args.domain,
        config=config.ldap,
        verbose=config.verbose
    )
    if not client.connect():
        raise ConnectionError(f"Failed to connect to LDAP server {args.server}")
    return client


def _reporter(config: KeepadConfig) -> ReportBuilder:
    return ReportBuilder(config.output.output_dir, config.output.delimiter)


def run_seize_roles(args, config: KeepadConfig, client: DirectoryClient) -> int:
    roles = [FSMORole.from_string(r) for r in args.roles] if args.roles else None
    seizure = RoleSeizure(
        client,
        target_server=args.target or args.server,
        roles=roles,
        force=args.force,
        runner=NtdsutilRunner(config.ntdsutil, verbose=config.verbose),
        probe_config=config.probe,
        verbose=config.verbose
    )
    results = seizure.run()
    print(f"\n[*] Seizure: {summarize_results(results)}")
    return 0


def run_cleanup_metadata(args, config: KeepadConfig, client: DirectoryClient) -> int:
    cleanup = MetadataCleanup(client, args.dc_name, force=args.force, verbose=config.verbose)
    results = cleanup.run()
    print(f"\n[*] Cleanup: {summarize_results(results)}")
    return 0


def run_create_users(args, config: KeepadConfig, client: DirectoryClient) -> int:
    if not client.encrypted:
        raise DirectoryError(
            "Initial passwords can only be set over LDAPS (--ssl) or a sealed NTLM bind"
        )
    creator = BulkUserCreator(
        client,
        default_container=config.accounts.default_container,
        change_password_at_logon=config.accounts.change_password_at_logon,
        delimiter=config.output.delimiter,
        verbose=config.verbose
    )
    results = creator.run(args.input)
    print(f"\n[*] User creation: {summarize_results(results)}")
    if args.report:
        path = _reporter(config).write_results(results, path=args.report)
        print(f"[+] Results saved to: {path}")
    return 0


def run_disable_inactive(args, config: KeepadConfig, client: DirectoryClient) -> int:
    sweep = InactiveAccountSweep(
        client,
        days=config.accounts.inactive_days,
        search_base=config.accounts.search_base,
        include_never_logged_on=config.accounts.include_never_logged_on,
        dry_run=args.dry_run,
        reporter=_reporter(config),
        report_path=args.report,
        verbose=config.verbose
    )
    sweep.run()
    return 0


def run_report_disabled(args, config: KeepadConfig, client: DirectoryClient) -> int:
    report = DisabledAccountReport(
        client,
        search_base=config.accounts.search_base,
        reporter=_reporter(config),
        report_path=args.report,
        verbose=config.verbose
    )
    report.run()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = None
    client = None
    try:
        config = load_config(args)
        client = connect(args, config)
        return args.handler(args, config, client)

    except (KeepadError, ConnectionError, FileNotFoundError, ValueError) as e:
        print(f"\n[!] Error: {e}")
        if args.verbose or (config is not None and config.debug):
            import traceback
            traceback.print_exc()
        return 1

    except KeyboardInterrupt:
        print("\n[!] Interrupted")
        return 130

    finally:
        if client is not None:
            client.disconnect()


def _command_entry(command: str):
    def entry() -> int:
        return main([command, *sys.argv[1:]])
    entry.__name__ = command.replace("-", "_") + "_main"
    return entry


seize_roles_main = _command_entry("seize-roles")
cleanup_metadata_main = _command_entry("cleanup-metadata")
create_users_main = _command_entry("create-users")
disable_inactive_main = _command_entry("disable-inactive")
report_disabled_main = _command_entry("report-disabled")


if __name__ == "__main__":
    sys.exit(main())
