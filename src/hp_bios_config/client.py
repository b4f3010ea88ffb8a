"""HP BIOS WMI client (root\\HP\\InstrumentedBIOS)"""
import logging
from enum import IntEnum
from typing import List, Optional, Protocol, Tuple

from .errors import InterfaceConnectionError

log = logging.getLogger("hp_bios_config.client")

NAMESPACE = r"root\HP\InstrumentedBIOS"
SETUP_PASSWORD = "Setup Password"
PASSWORD_PREFIX = "<utf-16/>"


class WriteStatus(IntEnum):
    """Return codes of HP_BIOSSettingInterface.SetBIOSSetting"""
    SUCCESS = 0
    NOT_SUPPORTED = 1
    UNSPECIFIED_ERROR = 2
    TIMEOUT = 3
    INVALID_VALUE = 4
    INVALID_PARAMETER = 5
    ACCESS_DENIED = 6

    @classmethod
    def from_code(cls, code) -> "WriteStatus":
        try:
            return cls(int(code))
        except (TypeError, ValueError):
            log.warning(f"Unknown SetBIOSSetting return code: {code!r}")
            return cls.UNSPECIFIED_ERROR


def encode_password(password: Optional[str]) -> str:
    """Encode a setup password the way SetBIOSSetting expects it"""
    if not password:
        return ""
    return PASSWORD_PREFIX + password


class BiosInterface(Protocol):
    """
    Contract the reconciliation engine relies on.

    verify_password is not a separate vendor primitive: it writes the setup
    password field with the candidate as both the new value and the
    authorisation value. SUCCESS means the candidate matches.
    """

    def enumerate(self) -> List[Tuple[str, str]]:
        """Every configurable setting with its encoded value."""

    def is_password_configured(self) -> bool:
        """Whether a setup password currently gates writes."""

    def write(self, name: str, value: str, password: Optional[str] = None) -> WriteStatus:
        """Set one setting and return the vendor status."""

    def verify_password(self, password: str) -> bool:
        """Check a candidate setup password."""


class HPBiosClient:
    """WMI client for HP business-class BIOS settings"""

    def __init__(self, namespace: str = NAMESPACE):
        self.namespace = namespace
        self.connection = None
        self.interface = None

    def connect(self):
        """Bind to the HP namespace and fetch the setting interface instance"""
        log.debug(f"Connecting to WMI namespace {self.namespace}")
        try:
            import wmi

            self.connection = wmi.WMI(namespace=self.namespace)
            interfaces = self.connection.HP_BIOSSettingInterface()
        except Exception as e:
            log.error(f"Failed to connect to {self.namespace}: {e}")
            raise InterfaceConnectionError(
                f"Unable to connect to HP BIOS WMI interface ({self.namespace}): {e}"
            ) from e

        if not interfaces:
            raise InterfaceConnectionError(f"No HP_BIOSSettingInterface instance in {self.namespace}")

        self.interface = interfaces[0]
        log.info(f"✓ Connected to {self.namespace}")
        return self

    def _require(self):
        if self.connection is None or self.interface is None:
            raise InterfaceConnectionError("HP BIOS WMI interface is not connected")

    def enumerate(self) -> List[Tuple[str, str]]:
        """List every HP_BIOSEnumeration setting with its encoded value"""
        self._require()
        items = [(item.Name, item.Value) for item in self.connection.HP_BIOSEnumeration()]
        log.debug(f"Enumerated {len(items)} BIOS settings")
        return items

    def is_password_configured(self) -> bool:
        self._require()
        matches = self.connection.HP_BIOSPassword(Name=SETUP_PASSWORD)
        return bool(matches) and int(matches[0].IsSet) == 1

    def write(self, name: str, value: str, password: Optional[str] = None) -> WriteStatus:
        """Call SetBIOSSetting and map its return code"""
        self._require()
        log.debug(f"SetBIOSSetting {name!r} -> {value!r}")
        try:
            result = self.interface.SetBIOSSetting(
                Name=name,
                Value=value,
                Password=encode_password(password),
            )
        except Exception as e:
            log.error(f"SetBIOSSetting {name!r} raised: {e}")
            return WriteStatus.UNSPECIFIED_ERROR
        # wmi returns the out parameters as a tuple
        code = result[0] if isinstance(result, tuple) else result
        return WriteStatus.from_code(code)

    def verify_password(self, password: str) -> bool:
        """
        Verify the setup password by re-setting it to itself.

        The candidate goes in as the new value and as the authorisation value,
        so a correct password leaves the BIOS unchanged and returns SUCCESS.
        """
        status = self.write(SETUP_PASSWORD, encode_password(password), password)
        log.debug(f"Setup password verification returned {status.name}")
        return status == WriteStatus.SUCCESS
