"""Tests for assignment functionality.

Main stuff: stickiness, determinism, guards and race safety.
"""
import threading
import pytest
from experiment_admin.exceptions import ExperimentNotFound, InvalidInput, NoVariantsConfigured
from experiment_admin.models import Assignment, User, Variant
from experiment_admin.services import assignment_service
from experiment_admin.services.assignment_service import (
    assign_user,
    get_or_create_assignment,
    list_by_experiment,
    list_by_user,
    resolve_assignment,
)
from experiment_admin.services.variant_service import replace_variants
from experiment_admin.schemas import VariantIn
from experiment_admin.utils.assignment import hash_string


def expected_key(user_id, experiment_name, sorted_keys):
    return sorted_keys[hash_string(f"{user_id}:{experiment_name}") % len(sorted_keys)]


def test_checkout_flow_scenario(db, sample_experiment):
    """user_42 lands on the hash-selected key and keeps it"""
    key, is_new = resolve_assignment(db, "user_42", sample_experiment.id)

    assert key == expected_key("user_42", "checkout_flow", ["A", "B"])
    assert is_new is True

    key_again, is_new_again = resolve_assignment(db, "user_42", sample_experiment.id)
    assert key_again == key
    assert is_new_again is False


def test_assignment_idempotency(db, sample_experiment):
    """Test that assignment is idempotent - same user gets same variant"""
    user_id = "test_user_123"
    experiment_id = sample_experiment.id

    assignment1, new1 = get_or_create_assignment(db, experiment_id, user_id)
    assignment2, new2 = get_or_create_assignment(db, experiment_id, user_id)

    assert (new1, new2) == (True, False)
    assert assignment1.variant_key == assignment2.variant_key
    assert assignment1.id == assignment2.id, "Should return same assignment row"

    count = db.query(Assignment).filter(
        Assignment.experiment_id == experiment_id,
        Assignment.user_id == user_id
    ).count()
    assert count == 1, "Should only have one assignment per user per experiment"


def test_resolve_and_assign_share_logic(db, sample_experiment):
    """assign returns whatever resolve stored, and vice versa"""
    key, _ = assign_user(db, "mutating_user", sample_experiment.id)
    assert key == expected_key("mutating_user", "checkout_flow", ["A", "B"])
    assert resolve_assignment(db, "mutating_user", sample_experiment.id) == (key, False)

    key2, is_new = resolve_assignment(db, "querying_user", sample_experiment.id)
    assert is_new is True
    assert assign_user(db, "querying_user", sample_experiment.id) == (key2, False)


def test_user_created_lazily(db, sample_experiment):
    assert db.get(User, "brand_new_user") is None

    resolve_assignment(db, "brand_new_user", sample_experiment.id)

    user = db.get(User, "brand_new_user")
    assert user is not None
    assert user.name is None


def test_existing_user_is_reused(db, sample_experiment, experiment_factory):
    other = experiment_factory("pricing_page", ["x", "y"])
    resolve_assignment(db, "repeat_user", sample_experiment.id)
    resolve_assignment(db, "repeat_user", other.id)

    assert db.query(User).filter(User.id == "repeat_user").count() == 1
    assert db.query(Assignment).filter(Assignment.user_id == "repeat_user").count() == 2


def test_assignments_only_use_existing_variants(db, experiment_factory):
    experiment = experiment_factory("three_way", ["red", "green", "blue"])

    seen = set()
    for i in range(60):
        key, _ = resolve_assignment(db, f"user_{i}", experiment.id)
        assert key == expected_key(f"user_{i}", "three_way", ["blue", "green", "red"])
        seen.add(key)

    assert seen <= {"red", "green", "blue"}
    assert len(seen) > 1


def test_adding_variant_does_not_move_assigned_users(db, experiment_factory):
    """Stored assignment beats recomputation after the variant set changes"""
    experiment = experiment_factory("sticky_exp", ["m", "n"])
    before = {}
    for i in range(20):
        before[f"user_{i}"], _ = resolve_assignment(db, f"user_{i}", experiment.id)

    # "a" sorts before everything, shifting every index
    replace_variants(db, experiment.id, [
        VariantIn(key="a", weight=34),
        VariantIn(key="m", weight=33),
        VariantIn(key="n", weight=33),
    ])

    for user_id, key in before.items():
        assert resolve_assignment(db, user_id, experiment.id) == (key, False)

    # new users are bucketed against the new set
    key, is_new = resolve_assignment(db, "late_user", experiment.id)
    assert is_new is True
    assert key == expected_key("late_user", "sticky_exp", ["a", "m", "n"])


def test_removed_variant_key_is_kept(db, experiment_factory):
    experiment = experiment_factory("shrinking_exp", ["p", "q"])
    key, _ = resolve_assignment(db, "loyal_user", experiment.id)

    replace_variants(db, experiment.id, [
        VariantIn(key="r", weight=50),
        VariantIn(key="s", weight=50),
    ])

    assert resolve_assignment(db, "loyal_user", experiment.id) == (key, False)


def test_experiment_not_found(db):
    with pytest.raises(ExperimentNotFound) as exc_info:
        resolve_assignment(db, "user_1", "does-not-exist")

    assert exc_info.value.status_code == 404
    assert db.query(User).count() == 0


def test_no_variants_guard(db, empty_experiment):
    """Zero variants fails loudly and leaves nothing behind"""
    with pytest.raises(NoVariantsConfigured) as exc_info:
        resolve_assignment(db, "user_1", empty_experiment.id)

    assert "no_variants_yet" in exc_info.value.detail
    assert exc_info.value.experiment_name == "no_variants_yet"
    assert db.query(User).count() == 0
    assert db.query(Assignment).count() == 0


def test_guard_errors_are_distinct(db, empty_experiment):
    with pytest.raises(NoVariantsConfigured) as no_variants:
        assign_user(db, "user_1", empty_experiment.id)
    with pytest.raises(ExperimentNotFound) as not_found:
        assign_user(db, "user_1", "missing")

    assert no_variants.value.detail != not_found.value.detail
    assert not isinstance(no_variants.value, ExperimentNotFound)


@pytest.mark.parametrize("user_id,experiment_id", [("", "some-id"), ("user_1", "")])
def test_empty_ids_rejected(db, user_id, experiment_id):
    with pytest.raises(InvalidInput):
        resolve_assignment(db, user_id, experiment_id)


def test_draft_experiment_still_assigns(db, experiment_factory):
    experiment = experiment_factory("draft_exp", ["on", "off"], status="draft")
    key, is_new = resolve_assignment(db, "early_user", experiment.id)
    assert is_new is True
    assert key in {"on", "off"}


def test_renaming_experiment_only_affects_new_users(db, sample_experiment):
    key, _ = resolve_assignment(db, "before_rename", sample_experiment.id)

    sample_experiment.name = "checkout_flow_v2"
    db.commit()

    assert resolve_assignment(db, "before_rename", sample_experiment.id) == (key, False)
    new_key, _ = resolve_assignment(db, "after_rename", sample_experiment.id)
    assert new_key == expected_key("after_rename", "checkout_flow_v2", ["A", "B"])


def test_lost_race_returns_stored_assignment(db, sample_experiment, session_factory, monkeypatch):
    """
    Another request inserts the row between our lookup and our insert.
    We must hand back *their* variant, not the one we computed.
    """
    experiment_id = sample_experiment.id
    computed = expected_key("racer", "checkout_flow", ["A", "B"])
    theirs = "B" if computed == "A" else "A"

    other = session_factory()
    other.add(User(id="racer"))
    other.add(Assignment(experiment_id=experiment_id, user_id="racer", variant_key=theirs))
    other.commit()
    other.close()

    real_find = assignment_service.find_assignment
    calls = []

    def stale_find(session, exp_id, user_id):
        calls.append(user_id)
        if len(calls) == 1:
            return None  # what the lookup saw before the other request committed
        return real_find(session, exp_id, user_id)

    monkeypatch.setattr(assignment_service, "find_assignment", stale_find)

    key, is_new = resolve_assignment(db, "racer", experiment_id)

    assert key == theirs
    assert is_new is False
    assert len(calls) == 2
    assert db.query(Assignment).filter(Assignment.user_id == "racer").count() == 1


def test_concurrent_first_resolves(db, sample_experiment, session_factory):
    """K simultaneous first-time calls end up with one row and one answer"""
    experiment_id = sample_experiment.id
    workers = 8
    barrier = threading.Barrier(workers)
    results = []
    errors = []
    lock = threading.Lock()

    def worker():
        session = session_factory()
        try:
            barrier.wait()
            outcome = resolve_assignment(session, "contended_user", experiment_id)
            with lock:
                results.append(outcome)
        except Exception as exc:  # collected and asserted on below
            with lock:
                errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(results) == workers
    assert len({key for key, _ in results}) == 1
    assert sum(1 for _, is_new in results if is_new) <= 1
    assert db.query(Assignment).filter(Assignment.user_id == "contended_user").count() == 1
    assert db.query(User).filter(User.id == "contended_user").count() == 1


def test_list_by_experiment(db, sample_experiment, experiment_factory):
    other = experiment_factory("other_exp", ["x", "y"])
    resolve_assignment(db, "first_user", sample_experiment.id)
    resolve_assignment(db, "second_user", sample_experiment.id)
    resolve_assignment(db, "first_user", other.id)

    assignments = list_by_experiment(db, sample_experiment.id)

    # newest first
    assert [a.user_id for a in assignments] == ["second_user", "first_user"]
    assert assignments[0].user.id == "second_user"
    assert all(a.experiment_id == sample_experiment.id for a in assignments)


def test_list_by_user(db, sample_experiment, experiment_factory):
    other = experiment_factory("other_exp", ["x", "y"])
    resolve_assignment(db, "multi_user", sample_experiment.id)
    resolve_assignment(db, "multi_user", other.id)
    resolve_assignment(db, "someone_else", other.id)

    assignments = list_by_user(db, "multi_user")

    assert [a.experiment.name for a in assignments] == ["other_exp", "checkout_flow"]
    assert assignments[0].experiment.status == "active"


def test_listing_unknown_ids_is_empty(db):
    assert list_by_experiment(db, "nope") == []
    assert list_by_user(db, "nobody") == []


def test_resolver_reads_variants_fresh(db, experiment_factory):
    """A variant added after creation is visible to the very next new user"""
    experiment = experiment_factory("fresh_reads", ["only"])
    db.add(Variant(experiment_id=experiment.id, key="another", weight=50))
    db.commit()

    key, _ = resolve_assignment(db, "fresh_user", experiment.id)
    assert key == expected_key("fresh_user", "fresh_reads", ["another", "only"])
