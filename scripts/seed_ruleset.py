import argparse

from cto_engine.config import get_settings
from cto_engine.database import init_db, session_scope
from cto_engine.logging_config import configure_logging
from cto_engine.services.seeding import seed_default_ruleset


def main() -> None:
    parser = argparse.ArgumentParser(description="Create and activate the default CTO rule set")
    parser.add_argument("--path", default=None, help="rule set JSON file (defaults to the bundled R740 set)")
    parser.add_argument("--actor", default="SYSTEM")
    args = parser.parse_args()

    configure_logging(get_settings())
    init_db()
    with session_scope() as db:
        rule_set = seed_default_ruleset(db, actor=args.actor, path=args.path)
    if rule_set is None:
        print("Rule sets already exist; nothing seeded")
    else:
        print("Seeded rule set", rule_set.name, "version", rule_set.version)


if __name__ == "__main__":
    main()
