"""Desired-settings source: embedded baseline table or a Name/Value CSV"""
import csv
import io
import logging
from typing import Iterable, List, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import ConfigurationError
from .utils import is_url

log = logging.getLogger("hp_bios_config.settings")

# Baseline applied by --set-settings when no CSV is given.
# Each entry is "Setting Name,Desired Value"; edit to match the fleet standard.
BASELINE_SETTINGS = [
    "Wake On LAN,Boot to Hard Drive",
    "Virtualization Technology (VTx),Enable",
    "TPM State,Enable",
    "Fast Boot,Enable",
    "Num Lock State at Power-On,Off",
]

CSV_EXTENSION = ".csv"
NAME_COLUMN = "Name"
VALUE_COLUMN = "Value"
DOWNLOAD_TIMEOUT = 30


def parse_setting_line(line: str) -> Tuple[str, str]:
    """Split "name,value" on the first comma and trim both halves"""
    name, sep, value = line.partition(",")
    if not sep:
        raise ConfigurationError(f"Setting entry must be 'Name,Value': {line!r}")
    name = name.strip()
    if not name:
        raise ConfigurationError(f"Setting entry has an empty name: {line!r}")
    return name, value.strip()


def from_literal(lines: Iterable[str]) -> List[Tuple[str, str]]:
    return [parse_setting_line(line) for line in lines]


def validate_csv_path(path: str) -> str:
    """Reject anything that does not look like a CSV file"""
    # Ignore a query string on remote baselines
    target = path.split("?", 1)[0] if is_url(path) else path
    if not target.lower().endswith(CSV_EXTENSION):
        raise ConfigurationError(f"CSV path must end in {CSV_EXTENSION}: {path}")
    return path


def _download(url: str) -> str:
    session = requests.Session()
    retry_strategy = Retry(
        total=3,
        backoff_factor=1,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    log.debug(f"GET {url}")
    try:
        resp = session.get(url, timeout=DOWNLOAD_TIMEOUT)
        resp.raise_for_status()
        return resp.text
    except requests.exceptions.RequestException as e:
        log.error(f"Failed to download settings CSV: {e}")
        raise ConfigurationError(f"Unable to download settings CSV {url}: {e}") from e
    finally:
        session.close()


def parse_csv_text(text: str) -> List[Tuple[str, str]]:
    """Read Name/Value rows; values are taken as-is"""
    reader = csv.DictReader(io.StringIO(text))
    fields = reader.fieldnames or []
    if NAME_COLUMN not in fields or VALUE_COLUMN not in fields:
        raise ConfigurationError(
            f"Settings CSV needs '{NAME_COLUMN}' and '{VALUE_COLUMN}' columns, found: {', '.join(fields)}"
        )
    return [(row[NAME_COLUMN], row[VALUE_COLUMN] or "") for row in reader if row[NAME_COLUMN]]


def from_csv(path: str) -> List[Tuple[str, str]]:
    """Load desired settings from a local CSV file or an http(s) URL"""
    validate_csv_path(path)
    if is_url(path):
        text = _download(path)
    else:
        try:
            with open(path, "r", newline="", encoding="utf-8-sig") as f:
                text = f.read()
        except OSError as e:
            raise ConfigurationError(f"Unable to read settings CSV {path}: {e}") from e
    rows = parse_csv_text(text)
    log.info(f"Loaded {len(rows)} setting(s) from {path}")
    return rows


def load_settings(literal: Optional[Iterable[str]] = None,
                  csv_path: Optional[str] = None) -> List[Tuple[str, str]]:
    """
    Produce the ordered (name, desired value) list for a write run.

    A CSV path takes precedence over the literal table. Raises
    ConfigurationError when neither is available.
    """
    if csv_path:
        return from_csv(csv_path)
    if literal:
        settings = from_literal(literal)
        log.info(f"Loaded {len(settings)} setting(s) from the embedded table")
        return settings
    raise ConfigurationError("No settings to apply: provide a settings table or a CSV path")
