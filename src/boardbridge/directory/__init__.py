"""Primary user directory: authorization records keyed by host identity."""

from .models import DirectoryUser, Role, normalize_email
from .resolver import DirectoryResolver
from .store import DirectoryStore, DuplicateUserError, LinkageConflictError, SqlDirectoryStore

__all__ = [
    "DirectoryResolver",
    "DirectoryStore",
    "DirectoryUser",
    "DuplicateUserError",
    "LinkageConflictError",
    "Role",
    "SqlDirectoryStore",
    "normalize_email",
]
