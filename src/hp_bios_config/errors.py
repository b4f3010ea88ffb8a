"""
Error taxonomy.

Fatal errors abort the whole run after being logged:
ConfigurationError for a bad flag combination or unusable settings source,
InterfaceConnectionError when the HP WMI namespace cannot be reached,
AuthenticationError when the setup password is missing or wrong.

Per-setting failures are not exceptions. They are recorded in the run tally.
"""


class BiosConfigError(Exception):
    """Base class for all fatal tool errors."""


class ConfigurationError(BiosConfigError):
    """Raised for invalid parameters, before any vendor interface call."""


class InterfaceConnectionError(BiosConfigError):
    """Raised when the HP BIOS WMI interface is unavailable."""


class AuthenticationError(BiosConfigError):
    """Raised when the setup password is required but missing or mismatched."""
