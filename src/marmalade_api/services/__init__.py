"""Registry services."""

from .archive_service import ArchiveStore
from .notifications import LoggingNotifier, Notifier, SmtpNotifier, build_notifier
from .users_service import UserStore

__all__ = [
    "ArchiveStore",
    "LoggingNotifier",
    "Notifier",
    "SmtpNotifier",
    "UserStore",
    "build_notifier",
]
