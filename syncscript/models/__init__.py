from syncscript.models.user import User
from syncscript.models.vault import Vault
from syncscript.models.membership import Membership, Role
from syncscript.models.source import Source
from syncscript.models.annotation import Annotation
from syncscript.models.audit import AuditLog

__all__ = [
    "User",
    "Vault",
    "Membership",
    "Role",
    "Source",
    "Annotation",
    "AuditLog",
]
