"""Small helpers shared by the CLI, settings source and log sink"""
import getpass
import os


def is_url(path: str) -> bool:
    """True for http(s) locations"""
    return path.lower().startswith(("http://", "https://"))


def current_user() -> str:
    """
    Identity of the invoking user as DOMAIN\\user.

    Falls back to the bare login name when no domain is known.
    """
    user = os.environ.get("USERNAME") or getpass.getuser()
    domain = os.environ.get("USERDOMAIN")
    if domain:
        return f"{domain}\\{user}"
    return user

