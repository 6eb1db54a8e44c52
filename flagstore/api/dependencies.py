"""
FastAPI dependencies for feature checks.
"""
from enum import Enum
from typing import Any

from fastapi import Depends, HTTPException, status

from flagstore.errors import FeatureInactiveError
from flagstore.features.manager import FeatureManager, get_feature_manager


def require_feature(feature: Any):
    """
    FastAPI dependency factory that requires a feature to be active.

    The feature is checked through the manager's default interaction, so a
    configured default scope (e.g. the current user) applies.

    Usage:
        @app.post("/plans/{plan_id}/duplicate")
        def duplicate_plan(
            plan_id: UUID,
            _: None = Depends(require_feature("plan-duplication")),
        ):
            # This endpoint only works if plan-duplication is active
            pass

    Args:
        feature: Feature name or ClassFeature subclass that must be active

    Returns:
        A dependency function that raises HTTPException if the feature is inactive
    """

    def check_feature(
        manager: FeatureManager = Depends(get_feature_manager),
    ) -> None:
        if manager.inactive(feature):
            name = _feature_name(feature)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=FeatureInactiveError(name).to_response().model_dump(),
            )

    return check_feature


def _feature_name(feature: Any) -> str:
    if isinstance(feature, type):
        return feature.feature_name()
    if isinstance(feature, Enum):
        return str(feature.value)
    return str(feature)
