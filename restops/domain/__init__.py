"""Domain layer - 外部依存なしのドメインモデルとインターフェース定義"""

from restops.domain.errors import (
    ConfigurationError,
    NotFoundError,
    RepositoryError,
    RestaurantOpsError,
    SubmissionError,
)
from restops.domain.models import (
    BusinessCycle,
    CompletionSnapshot,
    FifoResult,
    MissingTask,
    Period,
    PeriodTransition,
    PriceBatch,
    RecordStatus,
    ReviewStatus,
    Role,
    SubmissionKind,
    TaskDefinition,
    TaskSubmissionRecord,
    TransitionAction,
)
from restops.domain.ports import (
    InventoryRepository,
    MediaStorage,
    PeriodTransitionRepository,
    SubmissionRepository,
    Subscription,
    WorkflowConfigSource,
)

__all__ = [
    # Models
    "Role",
    "SubmissionKind",
    "ReviewStatus",
    "RecordStatus",
    "TransitionAction",
    "Period",
    "TaskDefinition",
    "TaskSubmissionRecord",
    "MissingTask",
    "CompletionSnapshot",
    "PeriodTransition",
    "BusinessCycle",
    "PriceBatch",
    "FifoResult",
    # Errors
    "RestaurantOpsError",
    "ConfigurationError",
    "RepositoryError",
    "NotFoundError",
    "SubmissionError",
    # Ports
    "WorkflowConfigSource",
    "SubmissionRepository",
    "PeriodTransitionRepository",
    "InventoryRepository",
    "MediaStorage",
    "Subscription",
]
