from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.asset_client import AssetServiceClient
from ..services.configuration_service import ConfigurationService
from ..services.decision_audit import DecisionAuditStore
from .dependencies import get_asset_client
from .schemas import EvaluateRequest

router = APIRouter(prefix="/cto/decisions", tags=["decisions"])


@router.get("/{configuration_id}")
def get_audit(configuration_id: str, db: Session = Depends(get_db)):
    return DecisionAuditStore(db).get_audit(configuration_id).to_dict()


@router.post("/{configuration_id}/evaluate", status_code=201)
def evaluate_configuration(
    configuration_id: str,
    request: Request,
    payload: EvaluateRequest | None = None,
    db: Session = Depends(get_db),
    asset_client: AssetServiceClient = Depends(get_asset_client),
):
    actor = payload.actor if payload is not None else "SYSTEM"
    recorded = ConfigurationService(db, asset_client).evaluate_and_record(
        configuration_id, actor=actor, request=request
    )
    return DecisionAuditStore(db).get_audit(recorded.configuration_id).to_dict()
