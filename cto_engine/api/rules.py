from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.rule_set_store import RuleSetStore, serialize_rule_set
from ..services.rule_version_store import RuleVersionReader, RuleVersionStore, serialize_rule_version
from .schemas import ActivateRuleSetRequest, CreateRuleSetRequest, CreateRuleVersionRequest

router = APIRouter(prefix="/cto", tags=["rules"])


@router.get("/rules")
def list_rules(db: Session = Depends(get_db)):
    rules = RuleVersionReader(db).all_latest_per_rule()
    return {"count": len(rules), "rules": [serialize_rule_version(r) for r in rules]}


@router.post("/rules", status_code=201)
def create_rule_version(payload: CreateRuleVersionRequest, db: Session = Depends(get_db)):
    row = RuleVersionStore(db).create_version(
        payload.rule_id,
        payload.name,
        payload.description,
        payload.logic.model_dump(mode="json"),
        actor=payload.actor,
    )
    return serialize_rule_version(row)


@router.get("/rules/{rule_id}/versions")
def rule_history(rule_id: str, db: Session = Depends(get_db)):
    reader = RuleVersionReader(db)
    versions = reader.history(rule_id)
    if not versions:
        reader.require_latest(rule_id)
    return {"rule_id": rule_id, "versions": [serialize_rule_version(v) for v in versions]}


@router.get("/rules/{rule_id}/latest")
def latest_rule_version(rule_id: str, db: Session = Depends(get_db)):
    return serialize_rule_version(RuleVersionReader(db).require_latest(rule_id))


@router.get("/rules/{rule_id}/versions/{version}")
def rule_version(rule_id: str, version: int, db: Session = Depends(get_db)):
    return serialize_rule_version(RuleVersionReader(db).get_version(rule_id, version))


@router.post("/rulesets", status_code=201)
def create_rule_set(payload: CreateRuleSetRequest, db: Session = Depends(get_db)):
    store = RuleSetStore(db)
    rule_set = store.create_rule_set(
        payload.name,
        [rule.model_dump(mode="json") for rule in payload.rules],
        actor=payload.actor,
        activate=payload.activate,
    )
    return serialize_rule_set(store.get_snapshot(rule_set.id), active=payload.activate)


@router.get("/rulesets/active")
def active_rule_set(db: Session = Depends(get_db)):
    return serialize_rule_set(RuleSetStore(db).get_active(), active=True)


@router.post("/rulesets/{rule_set_id}/activate")
def activate_rule_set(
    rule_set_id: str,
    payload: ActivateRuleSetRequest | None = None,
    db: Session = Depends(get_db),
):
    store = RuleSetStore(db)
    actor = payload.actor if payload is not None else "SYSTEM"
    rule_set = store.activate(rule_set_id, actor=actor)
    return serialize_rule_set(store.get_snapshot(rule_set.id), active=True)
