"""Tests for the module progression state machine and the unlock service."""

import pytest

from conftest import run
from modengine.core.errors import ProgressionError
from modengine.core.models import ModuleConfig, ModuleDefinition, ModuleManifest
from modengine.core.registry import ModuleRegistry
from modengine.progression.fsm import ProgressionState, can_transition
from modengine.progression.runtime import UnlockService, password_matches
from modengine.unlock.model import all_of, password

LOCKED, UNLOCKED, COMPLETED = ProgressionState.LOCKED, ProgressionState.UNLOCKED, ProgressionState.COMPLETED


class TestTracker:
    def test_unknown_module_is_locked(self, tracker):
        assert tracker.get_module_progression("nowhere") == LOCKED
        assert tracker.get_module_progression("nowhere") == "locked"
        assert tracker.get_record("nowhere") is None

    def test_forward_transitions_and_timestamps(self, tracker):
        unlocked = tracker.unlock_module("intro")
        assert unlocked.state == UNLOCKED
        assert unlocked.unlocked_at == 1001.0
        assert unlocked.completed_at is None

        tracker.unlock_module("intro")
        assert tracker.get_record("intro").unlocked_at == 1001.0

        completed = tracker.complete_module("intro")
        assert completed.state == COMPLETED
        assert completed.unlocked_at == 1001.0
        assert completed.completed_at is not None
        assert tracker.is_module_completed("intro")

    def test_backwards_transition_rejected(self, tracker):
        tracker.complete_module("intro")
        with pytest.raises(ProgressionError):
            tracker.set_module_progression("intro", LOCKED)
        with pytest.raises(ProgressionError):
            tracker.set_module_progression("intro", "unlocked")
        assert tracker.get_module_progression("intro") == COMPLETED

    def test_unlock_keeps_completed(self, tracker):
        tracker.complete_module("intro")
        tracker.unlock_module("intro")
        assert tracker.get_module_progression("intro") == COMPLETED

    def test_observed_states_never_regress(self, tracker):
        order = [LOCKED, UNLOCKED, COMPLETED]
        observed = [tracker.get_module_progression("m")]
        for target in [UNLOCKED, UNLOCKED, COMPLETED]:
            tracker.set_module_progression("m", target)
            observed.append(tracker.get_module_progression("m"))
        indexes = [order.index(state) for state in observed]
        assert indexes == sorted(indexes)

    @pytest.mark.parametrize("current,target,allowed", [
        (LOCKED, UNLOCKED, True),
        (LOCKED, COMPLETED, True),
        (UNLOCKED, COMPLETED, True),
        (UNLOCKED, UNLOCKED, True),
        (UNLOCKED, LOCKED, False),
        (COMPLETED, UNLOCKED, False),
    ])
    def test_can_transition(self, current, target, allowed):
        assert can_transition(current, target) is allowed


@pytest.fixture
def service(registry, store, tracker):
    return UnlockService(registry, store, tracker)


@pytest.fixture
def twin_service(store, tracker):
    twin = ModuleDefinition(
        id="twin",
        config=ModuleConfig(
            manifest=ModuleManifest(id="twin", name="Twin locks"),
            unlock_requirement=all_of(password("alpha"), password("beta")),
        ),
    )
    return UnlockService(ModuleRegistry([twin]), store, tracker)


class TestUnlockService:
    def test_initialize_unlocks_modules_without_requirement(self, service, tracker):
        unlocked = run(service.initialize_module_progression())
        assert unlocked == ["intro"]
        assert tracker.get_module_progression("intro") == UNLOCKED
        assert tracker.get_module_progression("advanced") == LOCKED
        assert tracker.get_module_progression("vault") == LOCKED
        assert tracker.get_record("vault") is not None

    def test_initialize_does_not_regress(self, service, tracker):
        tracker.complete_module("intro")
        tracker.unlock_module("advanced")
        run(service.initialize_module_progression())
        assert tracker.get_module_progression("intro") == COMPLETED
        assert tracker.get_module_progression("advanced") == UNLOCKED

    def test_can_unlock_unknown_module(self, service):
        check = run(service.can_unlock_module("nowhere"))
        assert not check.can_unlock
        assert not check.requires_interaction

    def test_password_module_requires_interaction(self, service):
        check = run(service.can_unlock_module("vault"))
        assert not check.can_unlock
        assert check.requires_interaction
        result = run(service.unlock_module("vault"))
        assert not result.success
        assert result.requires_password

    def test_can_unlock_with_password_does_not_record_it(self, service, store):
        assert run(service.can_unlock_module("vault", password="opensesame")).can_unlock
        assert not run(service.can_unlock_module("vault", password="wrong")).can_unlock
        assert not store.is_password_verified("vault", "opensesame")

    def test_unlock_module_with_password(self, service, tracker, store):
        result = run(service.unlock_module("vault", password="opensesame"))
        assert result.success
        assert tracker.get_module_progression("vault") == UNLOCKED
        assert store.is_password_verified("vault", "opensesame")

    def test_scenario_three_wrong_passwords_then_correct(self, service, tracker, registry, store):
        from modengine.core.context import ModuleContext
        from modengine.unlock.dsl import evaluate_unlock_requirement

        vault = ModuleContext("vault", store, registry)
        requirement = registry.get_module("vault").unlock_requirement
        for attempt in ["guess", "letmein", "OPENSESAME"]:
            assert run(service.attempt_password_unlock("vault", attempt)) is False
            assert run(evaluate_unlock_requirement(requirement, vault)) is False
            assert tracker.get_module_progression("vault") == LOCKED

        assert run(service.attempt_password_unlock("vault", "opensesame")) is True
        assert run(evaluate_unlock_requirement(requirement, vault)) is True
        assert tracker.get_module_progression("vault") == UNLOCKED

    def test_each_secret_verified_separately(self, twin_service, store, tracker):
        service = twin_service
        assert run(service.attempt_password_unlock("twin", "alpha")) is True
        assert tracker.get_module_progression("twin") == LOCKED
        assert store.is_password_verified("twin", "alpha")
        assert not store.is_password_verified("twin", "beta")
        assert not run(service.can_unlock_module("twin")).can_unlock

        assert run(service.attempt_password_unlock("twin", "beta")) is True
        assert tracker.get_module_progression("twin") == UNLOCKED

    def test_dry_run_grants_only_the_supplied_secret(self, twin_service, tracker):
        assert not run(twin_service.can_unlock_module("twin", password="alpha")).can_unlock
        assert not run(twin_service.unlock_module("twin", password="alpha")).success
        assert tracker.get_module_progression("twin") == LOCKED

    def test_password_for_module_without_password(self, service):
        assert run(service.attempt_password_unlock("intro", "anything")) is False
        assert run(service.attempt_password_unlock("nowhere", "anything")) is False

    def test_completion_cascades_to_dependents(self, service, tracker, store):
        run(service.initialize_module_progression())
        store.complete_task("intro", "t1")
        assert run(service.evaluate_module_completion("intro")) == []
        assert tracker.get_module_progression("intro") == UNLOCKED

        store.complete_task("intro", "t2")
        assert run(service.evaluate_module_completion("intro")) == ["advanced"]
        assert tracker.get_module_progression("intro") == COMPLETED
        assert tracker.get_module_progression("advanced") == UNLOCKED
        assert tracker.get_module_progression("vault") == LOCKED

    def test_module_without_tasks_never_completes(self, service):
        assert service.is_module_fully_completed("vault") is False
        assert run(service.evaluate_module_completion("vault")) == []


def test_password_matches():
    assert password_matches("secret", "secret")
    assert not password_matches("secret", "Secret")
    assert not password_matches("secret", "")
