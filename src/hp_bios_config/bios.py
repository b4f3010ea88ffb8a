"""BIOS setting reconciliation"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from .client import BiosInterface, WriteStatus
from .errors import AuthenticationError

log = logging.getLogger("hp_bios_config.bios")

ACTIVE_MARKER = "*"


class Outcome(str, Enum):
    ALREADY_SET = "AlreadySet"
    APPLIED = "Applied"
    WOULD_APPLY = "WouldApply"
    FAILED = "Failed"
    NOT_FOUND = "NotFound"


@dataclass(frozen=True)
class SettingResult:
    """Outcome of one setting in one run"""
    name: str
    desired: str
    current: Optional[str] = None
    outcome: Outcome = Outcome.NOT_FOUND
    status: Optional[WriteStatus] = None


@dataclass
class RunTally:
    """Outcome counters for a single run"""
    already_set: int = 0
    applied: int = 0
    would_apply: int = 0
    failed: int = 0
    not_found: int = 0
    dry_run: bool = False
    results: List[SettingResult] = field(default_factory=list)

    def record(self, result: SettingResult):
        if result.outcome is Outcome.ALREADY_SET:
            self.already_set += 1
        elif result.outcome is Outcome.APPLIED:
            self.applied += 1
        elif result.outcome is Outcome.WOULD_APPLY:
            self.would_apply += 1
        elif result.outcome is Outcome.FAILED:
            self.failed += 1
        else:
            self.not_found += 1
        self.results.append(result)

    def counts(self) -> Dict[str, int]:
        counts = {
            Outcome.ALREADY_SET.value: self.already_set,
            Outcome.APPLIED.value: self.applied,
            Outcome.FAILED.value: self.failed,
            Outcome.NOT_FOUND.value: self.not_found,
        }
        if self.dry_run:
            counts[Outcome.WOULD_APPLY.value] = self.would_apply
        return counts

    def by_outcome(self, outcome: Outcome) -> List[SettingResult]:
        return [r for r in self.results if r.outcome is outcome]


@dataclass(frozen=True)
class PasswordState:
    is_configured: bool = False
    supplied_value: Optional[str] = None

    @property
    def write_password(self) -> Optional[str]:
        """Password to send with writes, only when the BIOS asks for one"""
        return self.supplied_value if self.is_configured else None


def parse_current_value(encoded: Optional[str]) -> Optional[str]:
    """
    Active option of an encoded enumeration value.

    "Enable,*Disable" -> "Disable". Returns None when no option is marked.
    """
    if not encoded:
        return None
    for option in encoded.split(","):
        if option.startswith(ACTIVE_MARKER):
            return option[len(ACTIVE_MARKER):]
    return None


def establish_password_state(client: BiosInterface, supplied: Optional[str]) -> PasswordState:
    """
    Decide once per run how writes authenticate.

    Raises AuthenticationError when a setup password is set but missing or wrong.
    """
    configured = client.is_password_configured()
    if not configured:
        if supplied:
            log.warning("A setup password was supplied but none is set on this machine; ignoring it")
        else:
            log.info("No setup password is set")
        return PasswordState(is_configured=False, supplied_value=None)

    if not supplied:
        log.error("A setup password is set but none was supplied")
        raise AuthenticationError("Setup password is set on this machine; supply it with --password")

    if not client.verify_password(supplied):
        log.error("The supplied setup password does not match")
        raise AuthenticationError("Supplied setup password does not match the BIOS setup password")

    log.info("✓ Setup password verified")
    return PasswordState(is_configured=True, supplied_value=supplied)


class BIOSManager:
    """Reconciles BIOS settings against a desired list"""

    def __init__(self, client: BiosInterface, password: Optional[PasswordState] = None):
        self.client = client
        self.password = password or PasswordState()

    def snapshot(self) -> Dict[str, str]:
        """Encoded values keyed by setting name, captured once per run"""
        return dict(self.client.enumerate())

    def read_settings(self) -> List[Tuple[str, Optional[str]]]:
        """Current value of every setting, sorted by name"""
        return sorted(
            ((name, parse_current_value(encoded)) for name, encoded in self.client.enumerate()),
            key=lambda item: item[0],
        )

    def reconcile(self, name: str, desired: str, snapshot: Dict[str, str],
                  dry_run: bool = False) -> SettingResult:
        """Compare one setting and write it if it differs"""
        if name not in snapshot:
            log.warning(f"✗ {name}: not found")
            return SettingResult(name=name, desired=desired, outcome=Outcome.NOT_FOUND)

        current = parse_current_value(snapshot[name])
        if current is not None and current == desired:
            log.info(f"{name}: already set to '{desired}'")
            return SettingResult(name=name, desired=desired, current=current,
                                 outcome=Outcome.ALREADY_SET)

        if dry_run:
            log.info(f"{name}: would change '{current}' -> '{desired}'")
            return SettingResult(name=name, desired=desired, current=current,
                                 outcome=Outcome.WOULD_APPLY)

        status = self.client.write(name, desired, self.password.write_password)
        if status == WriteStatus.SUCCESS:
            log.info(f"✓ {name}: '{current}' -> '{desired}'")
            return SettingResult(name=name, desired=desired, current=current,
                                 outcome=Outcome.APPLIED, status=status)

        log.error(f"✗ {name}: failed to set '{desired}' ({status.name})")
        return SettingResult(name=name, desired=desired, current=current,
                             outcome=Outcome.FAILED, status=status)

    def apply_settings(self, settings: Iterable[Tuple[str, str]],
                       snapshot: Optional[Dict[str, str]] = None,
                       dry_run: bool = False,
                       tally: Optional[RunTally] = None) -> RunTally:
        """
        Apply settings in order, one attempt each.

        Nothing is retried or rolled back; a failed write is recorded and the
        next setting is processed.
        """
        if snapshot is None:
            snapshot = self.snapshot()
        if tally is None:
            tally = RunTally(dry_run=dry_run)

        for name, desired in settings:
            tally.record(self.reconcile(name, desired, snapshot, dry_run=dry_run))
        return tally

    def verify_applied(self, tally: RunTally) -> List[SettingResult]:
        """Re-enumerate and return applied settings that did not stick"""
        applied = tally.by_outcome(Outcome.APPLIED)
        if not applied or tally.dry_run:
            return []

        current = self.snapshot()
        mismatched = []
        for result in applied:
            now = parse_current_value(current.get(result.name))
            if now != result.desired:
                log.warning(f"{result.name}: reads back '{now}', expected '{result.desired}'")
                mismatched.append(result)
        if not mismatched:
            log.info(f"✓ Verified {len(applied)} applied setting(s)")
        return mismatched
