"""SQLAlchemy models for the MVC architecture."""

from .base import Base
from .device import DeviceCredential  # noqa: F401
from .group import Group  # noqa: F401
from .group_membership import GroupMembership  # noqa: F401
from .invitation import Admission, AdmissionStatus, InvitationToken  # noqa: F401
from .log import RequestLog  # noqa: F401
from .school import ADMIN_ROLES, School, SchoolMembership, SchoolRole  # noqa: F401
from .subject import Document, Subject, SubjectMembership, Topic  # noqa: F401
from .tokens import ActivationToken, PasswordResetToken  # noqa: F401
from .user import AuthProvider, User  # noqa: F401

__all__ = [
    "Base",
    "User",
    "AuthProvider",
    "ActivationToken",
    "PasswordResetToken",
    "School",
    "SchoolMembership",
    "SchoolRole",
    "ADMIN_ROLES",
    "Subject",
    "SubjectMembership",
    "Topic",
    "Document",
    "Group",
    "GroupMembership",
    "InvitationToken",
    "Admission",
    "AdmissionStatus",
    "DeviceCredential",
    "RequestLog",
]
