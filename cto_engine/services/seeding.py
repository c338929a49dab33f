import logging

from sqlalchemy.orm import Session

from ..models.ruleset import RuleSet
from ..rules.rule_loader import load_default_ruleset
from .rule_set_store import RuleSetStore

logger = logging.getLogger(__name__)


def seed_default_ruleset(db: Session, actor: str = "SYSTEM", path: str | None = None) -> RuleSet | None:
    """Create and activate the bundled rule set when none exists yet."""
    store = RuleSetStore(db)
    if store.has_any():
        logger.info("Rule sets already present; skipping seed")
        return None
    data = load_default_ruleset(path)
    rule_set = store.create_rule_set(data["name"], data["rules"], actor=actor, activate=True)
    logger.info("Seeded default rule set %s", data["name"])
    return rule_set
