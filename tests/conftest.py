import sys
import types
from types import SimpleNamespace

import pytest

from hp_bios_config.client import PASSWORD_PREFIX, SETUP_PASSWORD, HPBiosClient


class FakeBios:
    """
    In-memory stand-in for the HP InstrumentedBIOS WMI classes.

    settings maps names to encoded values ("*Active,Other"). statuses forces a
    return code for a setting name.
    """

    def __init__(self, settings=None, password=None, statuses=None):
        self.settings = dict(settings or {})
        self.password = password
        self.statuses = dict(statuses or {})
        self.calls = []

    @property
    def setting_writes(self):
        return [c for c in self.calls if c[0] != SETUP_PASSWORD]

    def set(self, name, value, password):
        self.calls.append((name, value, password))
        if self.password and password != PASSWORD_PREFIX + self.password:
            return 6
        if name == SETUP_PASSWORD:
            self.password = value[len(PASSWORD_PREFIX):] or None
            return 0
        if name in self.statuses:
            return self.statuses[name]
        if name not in self.settings:
            return 5
        options = [o.lstrip("*") for o in self.settings[name].split(",")]
        if value not in options:
            return 4
        self.settings[name] = ",".join("*" + o if o == value else o for o in options)
        return 0


class FakeInterface:
    def __init__(self, bios):
        self.bios = bios

    def SetBIOSSetting(self, Name, Value, Password):
        return (self.bios.set(Name, Value, Password),)


class FakeConnection:
    def __init__(self, bios):
        self.bios = bios
        self.interface = FakeInterface(bios)

    def HP_BIOSEnumeration(self):
        return [SimpleNamespace(Name=n, Value=v) for n, v in self.bios.settings.items()]

    def HP_BIOSPassword(self, Name=None):
        return [SimpleNamespace(Name=SETUP_PASSWORD, IsSet=1 if self.bios.password else 0)]

    def HP_BIOSSettingInterface(self):
        return [self.interface]


def install_fake_wmi(monkeypatch, factory):
    module = types.ModuleType("wmi")
    module.WMI = factory
    monkeypatch.setitem(sys.modules, "wmi", module)
    return module


@pytest.fixture
def bios():
    return FakeBios(settings={
        "Wake On LAN": "*Network,Boot to Hard Drive,Disable",
        "Fast Boot": "Disable,*Enable",
        "Num Lock State at Power-On": "*Off,On",
        "TPM State": "Disable,*Enable",
    })


@pytest.fixture
def client(bios, monkeypatch):
    install_fake_wmi(monkeypatch, lambda namespace=None: FakeConnection(bios))
    return HPBiosClient().connect()
