"""Services layer - ビジネスロジック"""

from restops.services.dashboard import DashboardContext, DashboardService, ExecutiveSummary
from restops.services.submission_service import MediaUpload, SubmissionService

__all__ = [
    "DashboardService",
    "DashboardContext",
    "ExecutiveSummary",
    "SubmissionService",
    "MediaUpload",
]
