from dealhub.models.tenant import Tenant, TenantStatus
from dealhub.models.user import User, UserRole
from dealhub.models.deal import Deal, DealStatus
from dealhub.models.vote import Vote
from dealhub.models.point_history import PointHistory
from dealhub.models.share import Share
from dealhub.models.deal_analytics import DealAnalytics
from dealhub.models.audit_log import AuditLog
