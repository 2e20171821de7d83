"""Pydantic schemas used as views in the MVC architecture."""

from .auth import (
    LoginRequest,
    OAuthRequest,
    PasswordResetConfirmRequest,
    PasswordResetRequest,
    RegisterRequest,
    TokenResponse,
)
from .common import ErrorResponse, SuccessResponse, UserIdsRequest
from .devices import (
    DeviceCreatedResponse,
    DeviceCreateRequest,
    DeviceCredentialResponse,
    DeviceGroupResponse,
    DeviceLoginRequest,
    DeviceLoginResponse,
    DeviceSubjectResponse,
)
from .groups import (
    GroupCreateRequest,
    GroupDetailResponse,
    GroupMemberResponse,
    GroupMembershipResponse,
    GroupResponse,
    GroupUpdateRequest,
    GroupUpdateResponse,
)
from .invitations import (
    AdmissionResponse,
    AdmissionReviewRequest,
    InvitationCreateRequest,
    InvitationResponse,
)
from .schools import (
    MemberRoleUpdateRequest,
    SchoolCreateRequest,
    SchoolResponse,
    SchoolUpdateRequest,
    UserSchoolResponse,
)
from .subjects import (
    DocumentResponse,
    DocumentUpdateRequest,
    SubjectCreateRequest,
    SubjectDetailResponse,
    SubjectMembershipResponse,
    SubjectResponse,
    SubjectUpdateRequest,
    TopicCreateRequest,
    TopicDetailResponse,
    TopicResponse,
    TopicUpdateRequest,
)
from .users import MemberResponse, UserResponse

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "OAuthRequest",
    "PasswordResetRequest",
    "PasswordResetConfirmRequest",
    "TokenResponse",
    "UserResponse",
    "MemberResponse",
    "SchoolCreateRequest",
    "SchoolUpdateRequest",
    "SchoolResponse",
    "UserSchoolResponse",
    "MemberRoleUpdateRequest",
    "InvitationCreateRequest",
    "InvitationResponse",
    "AdmissionReviewRequest",
    "AdmissionResponse",
    "SubjectCreateRequest",
    "SubjectUpdateRequest",
    "SubjectResponse",
    "SubjectDetailResponse",
    "SubjectMembershipResponse",
    "TopicCreateRequest",
    "TopicUpdateRequest",
    "TopicResponse",
    "TopicDetailResponse",
    "DocumentUpdateRequest",
    "DocumentResponse",
    "GroupCreateRequest",
    "GroupUpdateRequest",
    "GroupResponse",
    "GroupDetailResponse",
    "GroupUpdateResponse",
    "GroupMembershipResponse",
    "GroupMemberResponse",
    "DeviceCreateRequest",
    "DeviceCredentialResponse",
    "DeviceCreatedResponse",
    "DeviceLoginRequest",
    "DeviceLoginResponse",
    "DeviceGroupResponse",
    "DeviceSubjectResponse",
    "ErrorResponse",
    "SuccessResponse",
    "UserIdsRequest",
]
