from app.models.audit_log import AuditLog
from app.models.invite_token import InviteToken, MasterInviteToken
from app.models.user import AppUser

__all__ = ["AppUser", "AuditLog", "InviteToken", "MasterInviteToken"]
