from rankitpro.models.company import Company
from rankitpro.models.user import User
from rankitpro.models.technician import Technician
from rankitpro.models.check_in import CheckIn
from rankitpro.models.blog_post import BlogPost
from rankitpro.models.review_request import ReviewRequest, ReviewResponse
from rankitpro.models.sales import CompanyAssignment, SalesCommission, SalesPerson
from rankitpro.models.subscription_plan import SubscriptionPlan
from rankitpro.models.user_session import UserSession
from rankitpro.models.login_attempt import LoginAttempt
from rankitpro.models.audit_log import AuditLog
