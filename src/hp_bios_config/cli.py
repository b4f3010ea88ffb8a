#!/usr/bin/env python3
"""CLI interface for HP BIOS configuration"""
import argparse
import json
import logging
import sys
import time
from typing import Dict, List, Optional

from .bios import BIOSManager, RunTally, establish_password_state
from .client import BiosInterface, HPBiosClient
from .errors import BiosConfigError, ConfigurationError
from .logsink import attach_log_sink, detach_log_sink
from .report import report_settings, report_tally
from .settings import BASELINE_SETTINGS, load_settings, validate_csv_path
from .utils import is_url

log = logging.getLogger("hp_bios_config")

READ_MODE = "read"
WRITE_MODE = "write"
CONFIG_KEYS = {"settings", "csv_path", "password", "log_dir"}


def select_mode(get_settings: bool, set_settings: bool) -> str:
    """Exactly one of read or write mode must be requested"""
    if get_settings and set_settings:
        raise ConfigurationError("--get-settings and --set-settings cannot be used together")
    if not get_settings and not set_settings:
        raise ConfigurationError("Specify either --get-settings or --set-settings")
    return READ_MODE if get_settings else WRITE_MODE


def load_config(path: Optional[str]) -> Dict:
    """Read the optional JSON configuration file"""
    if not path:
        return {}
    try:
        with open(path, 'r') as f:
            cfg = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {path}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in configuration file: {e}")

    if not isinstance(cfg, dict):
        raise ConfigurationError("Configuration file must contain a JSON object")
    unknown = set(cfg) - CONFIG_KEYS
    if unknown:
        log.warning(f"Ignoring unknown configuration key(s): {', '.join(sorted(unknown))}")
    if "settings" in cfg and not isinstance(cfg["settings"], list):
        raise ConfigurationError("'settings' must be a list of \"Name,Value\" strings")
    return cfg


def run(mode: str,
        csv_path: Optional[str] = None,
        password: Optional[str] = None,
        settings: Optional[List[str]] = None,
        dry_run: bool = False,
        verify: bool = False,
        client: Optional[BiosInterface] = None) -> Optional[RunTally]:
    """
    Execute one read or write run.

    Inputs are validated before the WMI interface is touched. Returns the
    tally for write runs, None for read runs.
    """
    if csv_path:
        validate_csv_path(csv_path)
        if mode == READ_MODE and is_url(csv_path):
            raise ConfigurationError("--get-settings exports to a local CSV file, not a URL")

    desired = None
    if mode == WRITE_MODE:
        desired = load_settings(literal=settings, csv_path=csv_path)

    if client is None:
        client = HPBiosClient().connect()

    if mode == READ_MODE:
        rows = BIOSManager(client).read_settings()
        report_settings(rows, csv_path)
        return None

    password_state = establish_password_state(client, password)
    manager = BIOSManager(client, password_state)

    log.info(f"Processing {len(desired)} setting(s){' (dry run)' if dry_run else ''}")
    tally = manager.apply_settings(desired, dry_run=dry_run)
    report_tally(tally)

    if verify:
        manager.verify_applied(tally)
    return tally


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="HP BIOS configuration - read or enforce BIOS settings through HP WMI",
        epilog="Examples:\n"
               "  hp-bios-config --get-settings\n"
               "  hp-bios-config --get-settings --csv-path C:\\Temp\\bios.csv\n"
               "  hp-bios-config --set-settings\n"
               "  hp-bios-config --set-settings --csv-path baseline.csv --password Secret\n"
               "  hp-bios-config --set-settings -i config.json --dry-run\n",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        '--get-settings',
        action='store_true',
        help='Read mode: list current BIOS settings (to stdout or --csv-path)'
    )
    parser.add_argument(
        '--set-settings',
        action='store_true',
        help='Write mode: apply desired settings from the embedded table, config or --csv-path'
    )
    parser.add_argument(
        '--csv-path',
        help='CSV file (or http(s) URL when reading desired settings) with Name and Value columns'
    )
    parser.add_argument(
        '--password',
        help='BIOS setup password, required when one is set'
    )
    parser.add_argument(
        '-i', '--input',
        help='Path to JSON configuration file (settings, csv_path, password, log_dir)'
    )
    parser.add_argument(
        '--log-dir',
        help='Directory for HPBIOSConfig.log (default: task sequence log path or %%ProgramData%%\\HP\\Logs)'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Compare settings without writing anything'
    )
    parser.add_argument(
        '--verify',
        action='store_true',
        help='Re-read settings after applying and warn about any that did not stick'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )
    return parser


def main(argv: Optional[List[str]] = None, client: Optional[BiosInterface] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    sink = None
    cfg = {}
    started = time.time()
    try:
        try:
            cfg = load_config(args.input)
        finally:
            # a bad config file is reported through the sink too
            sink = attach_log_sink(args.log_dir or cfg.get("log_dir"))

        log.info("=" * 60)
        log.info("HP BIOS CONFIGURATION")
        log.info("=" * 60)

        mode = select_mode(args.get_settings, args.set_settings)
        log.info(f"Mode: {mode}")

        # Command line overrides the configuration file
        run(
            mode,
            csv_path=args.csv_path or cfg.get("csv_path"),
            password=args.password or cfg.get("password"),
            settings=cfg.get("settings", BASELINE_SETTINGS),
            dry_run=args.dry_run,
            verify=args.verify,
            client=client,
        )

        log.info(f"✓ HP BIOS configuration completed in {time.time() - started:.1f}s")
        return 0

    except KeyboardInterrupt:
        log.warning("Interrupted by user")
        return 130
    except BiosConfigError as e:
        log.error(f"{type(e).__name__}: {e}")
        return 1
    except Exception as e:
        log.error(f"Run failed: {e}", exc_info=args.verbose)
        return 1
    finally:
        if sink is not None:
            detach_log_sink(sink)


if __name__ == '__main__':
    sys.exit(main())
