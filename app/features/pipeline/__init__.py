"""
Pipeline board feature package.

This vertical slice keeps every layer of the recruiting pipeline engine
co-located (domain models, stage model, local state, bulk actions, drag
handling, the collaborator client, services and API routers) so
contributors can navigate the feature without hunting through global
folders.

Only the domain types are re-exported here; import services and routers
from their modules.
"""

from .domain import (  # noqa: F401
    Application,
    BulkCommand,
    BulkOperationResult,
    ItemOutcome,
    PipelineStage,
    StageTransition,
)
