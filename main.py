# =============================================================================
# main.py - CLI entry point
# =============================================================================

import argparse
import getpass
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from core.assembler import (
    DEVICE_TYPES, EMPLOYEE_TYPES, FILEMAKER_OPTIONS, TABLEAU_OPTIONS, VPN_OPTIONS,
    MachineValidationError, build_manual_machine
)
from core.auth_gate import AllowAllGate, ConsoleConfirmGate
from core.dispatcher import UploadDispatcher
from core.machine_list import SORT_KEYS, MachineList
from core.payload import PayloadError
from core.reconciler import DUPLICATES_REPORT, MISSING_REPORT, EnrollmentReconciler
from core.samba_client import create_transport
from utils.config import Config, SecretStore
from utils.csv_utils import ParseError

DEFAULT_STORE = Path("machines.json")


def setup_logging(level: str = "INFO", log_dir: Path = Path("logs")) -> str:
    """Setup logging configuration with both console and file output"""
    log_dir.mkdir(parents=True, exist_ok=True)

    # Generate date-stamped filename
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = log_dir / f"machine_enroll_{timestamp}.log"

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Always log DEBUG to file
    file_handler = logging.FileHandler(log_filename, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized - Console: {level.upper()}, File: DEBUG")
    logger.info(f"Log file: {log_filename}")

    return str(log_filename)


def handle_import(args, config: Config) -> int:
    """Reconcile the three exports and queue the resulting machines"""
    logger = logging.getLogger(__name__)

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    reconciler = EnrollmentReconciler(config.snapshot())
    try:
        result = reconciler.process_files(
            args.name_csv, args.ocs_csv, args.inventory_csv,
            missing_csv=out_dir / MISSING_REPORT,
            doublons_csv=out_dir / DUPLICATES_REPORT
        )
    except ParseError as e:
        logger.error(f"Import aborted: {e}")
        return 1

    machines = MachineList.load(args.store)
    machines.extend(result.machines)
    machines.save(args.store)

    for report in (result.missing_report, result.duplicates_report):
        if report:
            logger.info(f"Report written: {report}")
    print(f"{len(result.machines)} machine(s) imported successfully!")
    return 0


def handle_add(args, config: Config) -> int:
    """Queue one manually described machine"""
    logger = logging.getLogger(__name__)

    try:
        machine = build_manual_machine(
            config.snapshot(),
            end_user_name=args.end_user_name,
            asset_number=args.asset_number,
            serial_number=args.serial_number,
            friendly_name=args.friendly_name,
            employee_type=args.employee_type,
            device_type=args.device_type,
            sciper=args.sciper,
            vpn=args.vpn,
            filemaker=args.filemaker,
            tableau=args.tableau or [],
            mindmanager=args.mindmanager,
            lina_exception=args.no_lina,
            acrobat_reader_exception=args.acrobat_exception
        )
    except MachineValidationError as e:
        logger.error(str(e))
        return 1

    machines = MachineList.load(args.store)
    machines.add(machine)
    machines.save(args.store)
    print(f"Machine added successfully! ({machine.id})")
    return 0


def handle_list(args, config: Config) -> int:
    machines = MachineList.load(args.store)
    if args.sort:
        machines.sort_by(args.sort)
        if args.descending:
            machines.sort_by(args.sort)

    columns = ('friendly_name', 'end_user_name', 'asset_number', 'location_group_id', 'serial_number')
    print(" | ".join(["#", "Friendly Name", "End User Name", "Asset Number",
                      "Location Group ID", "Serial Number"]))
    for index, machine in enumerate(machines):
        print(" | ".join([str(index)] + [str(getattr(machine, column)) for column in columns]))
    return 0


def handle_show(args, config: Config) -> int:
    machines = MachineList.load(args.store)
    try:
        index = int(args.index)
        machine_list = list(machines)
        machine = machine_list[index] if 0 <= index < len(machine_list) else None
    except ValueError:
        machine = machines.get(args.index)

    if machine is None:
        logging.getLogger(__name__).error(f"No machine {args.index}")
        return 1

    for section, fields in machines.details(machine.id).items():
        print(section)
        for label, value in fields.items():
            print(f"  {label}: {value}")
    return 0


def handle_remove(args, config: Config) -> int:
    machines = MachineList.load(args.store)
    if args.all:
        removed = machines.clear()
        message = "All machines have been removed."
    else:
        removed = machines.remove_at(args.indexes)
        message = "Selected machines removed."
    machines.save(args.store)
    print(f"{message} ({removed})")
    return 0


def handle_send(args, config: Config) -> int:
    """Deliver every queued machine; failed ones stay queued"""
    logger = logging.getLogger(__name__)

    machines = MachineList.load(args.store)
    if not machines:
        print("No machine to send.")
        return 0

    gate = AllowAllGate() if args.yes else ConsoleConfirmGate()
    allowed, message = gate.challenge()
    if not allowed:
        logger.error(message)
        return 1

    secrets = SecretStore(config.env_file)
    dispatcher = UploadDispatcher(lambda: create_transport(config, secrets), max_workers=args.workers)

    def report_progress(done: int, total: int) -> None:
        logger.info(f"Progress: {int(done / total * 100)}%")

    summary = dispatcher.send(list(machines), progress_callback=report_progress)
    machines.replace(summary.remaining)
    machines.save(args.store)

    print(summary.message)
    return 0 if summary.sent == summary.total else 2


def handle_config(args, config: Config) -> int:
    secrets = SecretStore(config.env_file)

    if args.action == 'show':
        settings = config.snapshot()
        print(f"Location Group ID: {settings.location_group_id}")
        print(f"Platform ID: {settings.platform_id}")
        print(f"Ownership: {settings.ownership}")
        print(f"Message Type: {settings.message_type}")
        print(f"Samba path: {settings.samba_path or ''}")
        print(f"Samba username: {secrets.get_username() or ''}")
        print(f"Test mode: {settings.test_mode}")
        return 0

    if args.action == 'clear':
        config.clear()
        secrets.clear()
        print("Configuration cleared.")
        return 0

    test_mode = None
    if args.test_mode is not None:
        test_mode = args.test_mode == 'on'
    config.save(
        location_group_id=args.location_group_id,
        platform_id=args.platform_id,
        ownership=args.ownership,
        message_type=args.message_type,
        samba_path=args.samba_path,
        test_mode=test_mode
    )
    if args.samba_username:
        password = args.samba_password
        if password is None:
            password = getpass.getpass("Samba password: ")
        secrets.set(args.samba_username, password)
    print("Configuration saved.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Machine enrollment reconciler")
    parser.add_argument('--log-level', default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    parser.add_argument('--env-file', help='Configuration file (default: .env)')
    subparsers = parser.add_subparsers(dest='command', help='Command')

    def add_store_argument(command_parser):
        command_parser.add_argument('--store', type=Path, default=DEFAULT_STORE,
                                    help='Pending machine list file')

    import_parser = subparsers.add_parser('import', help='Reconcile name, ocs and inventory CSV files')
    import_parser.add_argument('name_csv', help='Roster CSV (name column)')
    import_parser.add_argument('ocs_csv', help='Asset export CSV (computername, serialnumber, username)')
    import_parser.add_argument('inventory_csv', help='Inventory CSV (serialnumber, inventorynumber)')
    import_parser.add_argument('--out-dir', default='.', help='Directory for missing.csv and doublons.csv')
    add_store_argument(import_parser)

    add_parser = subparsers.add_parser('add', help='Add one machine by hand')
    add_parser.add_argument('--end-user-name', required=True)
    add_parser.add_argument('--sciper', default='')
    add_parser.add_argument('--asset-number', required=True)
    add_parser.add_argument('--serial-number', required=True)
    add_parser.add_argument('--friendly-name', required=True)
    add_parser.add_argument('--employee-type', required=True, choices=EMPLOYEE_TYPES)
    add_parser.add_argument('--device-type', required=True, choices=DEVICE_TYPES)
    add_parser.add_argument('--vpn', choices=VPN_OPTIONS)
    add_parser.add_argument('--filemaker', choices=FILEMAKER_OPTIONS)
    add_parser.add_argument('--tableau', nargs='*', choices=TABLEAU_OPTIONS)
    add_parser.add_argument('--mindmanager', action='store_true')
    add_parser.add_argument('--no-lina', action='store_true', help='Lina exception')
    add_parser.add_argument('--acrobat-exception', action='store_true')
    add_store_argument(add_parser)

    list_parser = subparsers.add_parser('list', help='List queued machines')
    list_parser.add_argument('--sort', choices=sorted(SORT_KEYS))
    list_parser.add_argument('--descending', action='store_true')
    add_store_argument(list_parser)

    show_parser = subparsers.add_parser('show', help='Show one queued machine')
    show_parser.add_argument('index', help='List position or machine id')
    add_store_argument(show_parser)

    remove_parser = subparsers.add_parser('remove', help='Remove queued machines')
    remove_parser.add_argument('indexes', nargs='*', type=int, help='List positions')
    remove_parser.add_argument('--all', action='store_true')
    add_store_argument(remove_parser)

    send_parser = subparsers.add_parser('send', help='Upload queued machines')
    send_parser.add_argument('--yes', action='store_true', help='Skip the confirmation prompt')
    send_parser.add_argument('--workers', type=int, default=4)
    add_store_argument(send_parser)

    config_parser = subparsers.add_parser('config', help='Show, edit or clear configuration')
    config_parser.add_argument('action', choices=['show', 'set', 'clear'])
    config_parser.add_argument('--location-group-id')
    config_parser.add_argument('--platform-id')
    config_parser.add_argument('--ownership')
    config_parser.add_argument('--message-type')
    config_parser.add_argument('--samba-path')
    config_parser.add_argument('--samba-username')
    config_parser.add_argument('--samba-password')
    config_parser.add_argument('--test-mode', choices=['on', 'off'])

    return parser


HANDLERS = {
    'import': handle_import,
    'add': handle_add,
    'list': handle_list,
    'show': handle_show,
    'remove': handle_remove,
    'send': handle_send,
    'config': handle_config,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    config = Config(args.env_file)
    if config.test_mode:
        logger.info("TEST mode: payloads are written to local storage")

    try:
        return HANDLERS[args.command](args, config)
    except PayloadError as e:
        logger.error(f"Machine list is unreadable: {e}")
        return 1
    except Exception as e:
        logger.error(f"Command failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
