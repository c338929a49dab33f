from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.configuration_service import ConfigurationReader
from ..services.rule_engine import ConditionRuleEngine
from ..services.rule_version_store import RuleVersionReader
from ..services.simulation import SimulationEngine
from .schemas import SimulationChangeRequest, SimulationRequest

router = APIRouter(prefix="/cto/simulate", tags=["simulation"])

SIMULATION_NOTICE = "SIMULATION ONLY - Not persisted"


def _engine(db: Session) -> SimulationEngine:
    return SimulationEngine(ConfigurationReader(db), ConditionRuleEngine(RuleVersionReader(db)))


@router.post("")
def simulate(payload: SimulationRequest, db: Session = Depends(get_db)):
    result = _engine(db).simulate(payload.components, base_configuration_id=payload.base_configuration_id)
    return {**result.to_dict(), "_notice": SIMULATION_NOTICE}


@router.post("/change")
def simulate_change(payload: SimulationChangeRequest, db: Session = Depends(get_db)):
    result = _engine(db).simulate_change(
        payload.configuration_id,
        payload.component_type,
        payload.new_reference,
        payload.quantity,
    )
    return {**result.to_dict(), "_notice": SIMULATION_NOTICE}
