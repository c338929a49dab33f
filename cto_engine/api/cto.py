from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.asset_client import AssetServiceClient
from ..services.configuration_service import ConfigurationService
from .dependencies import get_asset_client
from .schemas import ValidateRequest

router = APIRouter(prefix="/cto", tags=["cto"])


@router.post("/validate")
def validate_configuration(
    payload: ValidateRequest,
    request: Request,
    db: Session = Depends(get_db),
    asset_client: AssetServiceClient = Depends(get_asset_client),
):
    service = ConfigurationService(db, asset_client)
    result = service.validate_and_freeze(
        payload.asset_id,
        payload.product_model,
        payload.components,
        actor=payload.actor,
        request=request,
    )
    return result.to_dict()


@router.get("/configurations/{configuration_id}")
def get_configuration(
    configuration_id: str,
    db: Session = Depends(get_db),
    asset_client: AssetServiceClient = Depends(get_asset_client),
):
    return ConfigurationService(db, asset_client).get_configuration(configuration_id)


@router.get("/configurations/{configuration_id}/price")
def get_frozen_price(
    configuration_id: str,
    db: Session = Depends(get_db),
    asset_client: AssetServiceClient = Depends(get_asset_client),
):
    return ConfigurationService(db, asset_client).get_frozen_price(configuration_id)
