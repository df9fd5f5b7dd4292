import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from salespulse.database import Base
from salespulse.models import Setting
from salespulse.services.goal_store import (
    MemoryGoalStore,
    SettingsGoalStore,
    goal_key,
    load_goals,
    save_goal,
)
from salespulse.services.goals import PeriodKind


@pytest.fixture
def db():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


class TestGoalKey:
    def test_key_format(self):
        assert goal_key(PeriodKind.MONTHLY, "Meta") == "monthlyMeta"
        assert goal_key("yearly", "UltraMeta") == "yearlyUltraMeta"

    def test_unknown_tier(self):
        with pytest.raises(ValueError):
            goal_key(PeriodKind.MONTHLY, "MegaMeta")

    def test_unknown_period(self):
        with pytest.raises(ValueError):
            goal_key("weekly", "Meta")


class TestSettingsGoalStore:
    def test_defaults_when_unset(self, db):
        goals = load_goals(SettingsGoalStore(db), PeriodKind.MONTHLY)
        assert goals == {"Meta": "R$ 0,00", "SuperMeta": "R$ 0,00", "UltraMeta": "R$ 0,00"}

    def test_save_then_load(self, db):
        store = SettingsGoalStore(db)
        assert save_goal(store, PeriodKind.MONTHLY, "SuperMeta", "R$ 1.234,567") == "R$ 12.345,67"
        assert load_goals(store, PeriodKind.MONTHLY)["SuperMeta"] == "R$ 12.345,67"
        assert db.query(Setting).filter(Setting.key == "monthlySuperMeta").one().value == "R$ 12.345,67"

    def test_overwrite_keeps_single_row(self, db):
        store = SettingsGoalStore(db)
        save_goal(store, PeriodKind.YEARLY, "Meta", "100")
        save_goal(store, PeriodKind.YEARLY, "Meta", "250000")
        assert db.query(Setting).count() == 1
        assert store.get("yearlyMeta") == "R$ 2.500,00"

    def test_periods_are_independent(self, db):
        store = SettingsGoalStore(db)
        save_goal(store, PeriodKind.DAILY, "Meta", "5000")
        assert load_goals(store, PeriodKind.MONTHLY)["Meta"] == "R$ 0,00"
        assert load_goals(store, PeriodKind.DAILY)["Meta"] == "R$ 50,00"

    def test_persists_across_sessions(self):
        engine = create_engine("sqlite:///:memory:")
        Base.metadata.create_all(engine)
        Session = sessionmaker(bind=engine)
        with Session() as first:
            save_goal(SettingsGoalStore(first), PeriodKind.MONTHLY, "Meta", "1000000")
        with Session() as second:
            assert load_goals(SettingsGoalStore(second), PeriodKind.MONTHLY)["Meta"] == "R$ 10.000,00"
        engine.dispose()


class TestMemoryGoalStore:
    def test_initial_values(self):
        store = MemoryGoalStore({"monthlyMeta": "R$ 5,00"})
        assert load_goals(store, "monthly")["Meta"] == "R$ 5,00"

    def test_garbage_input_saved_as_zero(self):
        store = MemoryGoalStore()
        assert save_goal(store, PeriodKind.MONTHLY, "Meta", "abc") == "R$ 0,00"
        assert store.get("monthlyMeta") == "R$ 0,00"
