import pytest
from sqlalchemy import event

from cto_engine.errors import ConfigurationNotFoundError, InvalidSimulationError
from cto_engine.models.audit import AuditEvent
from cto_engine.models.configuration import CtoConfiguration
from cto_engine.models.decision import Decision
from cto_engine.models.rule_version import RuleVersion
from cto_engine.rules.types import Component
from cto_engine.services.configuration_service import ConfigurationReader, ConfigurationService
from cto_engine.services.rule_engine import ConditionRuleEngine
from cto_engine.services.rule_version_store import RuleVersionReader, RuleVersionStore
from cto_engine.services.simulation import SimulationEngine, merge_components


def engine_for(db):
    return SimulationEngine(ConfigurationReader(db), ConditionRuleEngine(RuleVersionReader(db)))


def base_configuration(db, asset_client):
    result = ConfigurationService(db, asset_client).validate_and_freeze(
        "ASSET-1",
        "R740",
        [
            {"type": "CPU", "reference": "XEON-GOLD-6230", "quantity": 2},
            {"type": "RAM", "reference": "DDR4-16GB-2933", "quantity": 8},
        ],
    )
    return result.configuration_id


def add_rules(db):
    store = RuleVersionStore(db)
    store.create_version(
        "ram-speed",
        "RAM must be 32GB modules",
        "",
        {
            "type": "COMPATIBILITY",
            "conditions": [{"field": "component.reference", "operator": "EQUALS", "value": "DDR4-32GB-2933"}],
            "action": "BLOCK",
            "message": "Expected {value} among {components}",
        },
    )
    store.create_version(
        "no-hba",
        "No HBA330",
        "",
        {
            "type": "EXCLUSION",
            "conditions": [{"field": "component.reference", "operator": "NOT_EQUALS", "value": "HBA330"}],
            "action": "WARN",
            "message": "{value} is not supported",
        },
    )


def table_counts(db):
    return tuple(db.query(model).count() for model in (RuleVersion, Decision, CtoConfiguration, AuditEvent))


def test_change_replaces_every_component_of_that_type(db_session, default_rule_set, asset_client):
    add_rules(db_session)
    configuration_id = base_configuration(db_session, asset_client)

    result = engine_for(db_session).simulate(
        [{"type": "RAM", "reference": "DDR4-32GB-2933", "quantity": 4}],
        base_configuration_id=configuration_id,
    )

    ram = [c for c in result.components if c.type == "RAM"]
    assert ram == [Component("RAM", "DDR4-32GB-2933", 4)]
    assert Component("CPU", "XEON-GOLD-6230", 2) in result.components
    assert result.valid
    assert result.ephemeral
    assert result.rules_failed == ()


def test_failed_rules_list_impacted_components(db_session, default_rule_set, asset_client):
    add_rules(db_session)
    configuration_id = base_configuration(db_session, asset_client)

    result = engine_for(db_session).simulate_change(configuration_id, "RAID", "HBA330")

    assert not result.valid
    assert result.rules_evaluated == 2
    assert set(result.rules_failed) == {"RAM must be 32GB modules", "No HBA330"}
    by_code = {e.code: e for e in result.explanations}
    assert by_code["RULE_NO-HBA_FAILED"].severity == "WARNING"
    assert by_code["RULE_NO-HBA_FAILED"].impacted_components == ("HBA330",)
    assert "DDR4-16GB-2933" in by_code["RULE_RAM-SPEED_FAILED"].impacted_components


def test_simulation_writes_nothing(db_session, default_rule_set, asset_client):
    add_rules(db_session)
    configuration_id = base_configuration(db_session, asset_client)
    before = table_counts(db_session)
    flushed = []

    def record_flush(session, flush_context, instances):
        flushed.extend(list(session.new) + list(session.dirty) + list(session.deleted))

    event.listen(db_session, "before_flush", record_flush)
    try:
        engine = engine_for(db_session)
        first = engine.simulate([{"type": "RAID", "reference": "HBA330"}], base_configuration_id=configuration_id)
        second = engine.simulate([{"type": "RAID", "reference": "HBA330"}], base_configuration_id=configuration_id)
    finally:
        event.remove(db_session, "before_flush", record_flush)

    assert flushed == []
    assert not db_session.new and not db_session.dirty
    assert table_counts(db_session) == before
    assert (first.valid, first.rules_failed) == (second.valid, second.rules_failed)


def test_simulation_without_base(db_session):
    add_rules(db_session)
    result = engine_for(db_session).simulate([{"type": "RAM", "reference": "DDR4-32GB-2933", "quantity": 2}])
    assert result.valid
    assert result.base_configuration_id is None
    assert result.to_dict()["ephemeral"] is True


def test_invalid_simulations(db_session):
    engine = engine_for(db_session)
    with pytest.raises(InvalidSimulationError):
        engine.simulate([])
    with pytest.raises(InvalidSimulationError):
        engine.simulate([{"type": "RAM"}])
    with pytest.raises(InvalidSimulationError):
        engine.simulate([{"type": "RAM", "reference": "X"}], base_configuration_id="missing")
    with pytest.raises(InvalidSimulationError):
        engine.simulate_change("00000000-0000-0000-0000-000000000000", "RAM", "X")


def test_merge_keeps_last_override_for_same_reference():
    base = [Component("CPU", "A", 1), Component("RAM", "B", 8), Component("RAM", "C", 8)]
    merged = merge_components(base, [Component("RAM", "D", 2), Component("RAM", "D", 4)])
    assert merged == [Component("CPU", "A", 1), Component("RAM", "D", 4)]


def test_configuration_reader_surface_is_read_only(db_session, asset_client, default_rule_set):
    public = {name for name in vars(ConfigurationReader) if not name.startswith("_")}
    assert public == {"get", "components_of"}

    reader = ConfigurationReader(db_session)
    configuration_id = base_configuration(db_session, asset_client)
    assert [c.reference for c in reader.components_of(configuration_id)] == ["XEON-GOLD-6230", "DDR4-16GB-2933"]

    with pytest.raises(ConfigurationNotFoundError):
        reader.get("not-a-uuid")
    with pytest.raises(ConfigurationNotFoundError):
        reader.components_of("00000000-0000-0000-0000-000000000000")
