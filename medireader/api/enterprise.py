"""
API Router: Enterprise Lookups.

Patients and dialysis machines registered to an enterprise, fetched
from the backend gateway and masked for display.
"""

from __future__ import annotations

import time
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from medireader.api.dependencies import get_enterprise_service
from medireader.logging_config import get_logger
from medireader.schemas.enterprise import DataModel
from medireader.services.enterprise_service import EnterpriseService

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["Enterprise"])

VALID_DATA_MODELS = {m.value for m in DataModel}


@router.get("/enterprise")
async def get_enterprise(
    enterprise_id: Optional[str] = Query(default=None, alias="enterpriseId"),
    business_unit_id: Optional[int] = Query(default=None, alias="businessUnitId"),
    data_model: Optional[str] = Query(default=None, alias="dataModel"),
    service: EnterpriseService = Depends(get_enterprise_service),
) -> dict[str, Any]:
    """Patients, devices, or both for one enterprise."""
    if not enterprise_id:
        raise HTTPException(status_code=400, detail="enterpriseId is required")
    if not data_model or data_model.lower() not in VALID_DATA_MODELS:
        raise HTTPException(
            status_code=400,
            detail="dataModel is required and must be one of: patients, devices, both (case insensitive)",
        )

    start = time.monotonic()
    result = await service.get_enterprise_data(enterprise_id, business_unit_id, data_model)
    response_time_ms = round((time.monotonic() - start) * 1000)

    logger.info(
        "enterprise_lookup_complete",
        enterprise_id=enterprise_id,
        business_unit_id=business_unit_id,
        data_model=data_model,
        patients=len(result.patients or []),
        devices=len(result.devices or []),
        response_time_ms=response_time_ms,
    )

    return {
        "success": True,
        "data": result.model_dump(by_alias=True, exclude_none=True),
        "enterpriseId": enterprise_id,
        "businessUnitId": business_unit_id,
        "dataModel": data_model,
        "responseTime": response_time_ms,
    }
