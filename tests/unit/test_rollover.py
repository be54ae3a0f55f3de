"""Unit tests for weekly rollover reconciliation."""
from bugboard.models import WeeklySets
from bugboard.rollover import dedupe_within_batch, extend_option_lists, reconcile
from bugboard.standards.fields import DEFAULT_OPTIONS

from conftest import make_record


def ids(records):
    return [r.incident_id for r in records]


def test_rollover_demotes_current_and_last():
    sets = WeeklySets(current=[make_record("A"), make_record("B")], last=[make_record("C")])
    result = reconcile([make_record("D"), make_record("E")], sets)

    assert ids(result.sets.current) == ["D", "E"]
    assert ids(result.sets.last) == ["A", "B", "C"]
    assert result.added_count == 2
    assert result.rolled_over


def test_reconcile_does_not_mutate_inputs():
    sets = WeeklySets(current=[make_record("A")], last=[])
    batch = [make_record("B")]
    reconcile(batch, sets)

    assert ids(sets.current) == ["A"]
    assert sets.last == []
    assert ids(batch) == ["B"]


def test_all_known_ids_leave_sets_unchanged():
    sets = WeeklySets(current=[make_record("A")], last=[make_record("B")])
    result = reconcile([make_record("A", status="Closed"), make_record("B")], sets)

    assert result.added_count == 0
    assert not result.rolled_over
    assert result.sets == sets
    assert result.skipped_duplicate_count == 2
    assert result.existing_duplicate_count == 2


def test_dedup_within_file_keeps_first_row():
    first = make_record("B-1", description="first")
    second = make_record("B-1", description="second")
    assert dedupe_within_batch([first, second]) == [first]

    result = reconcile([first, second], WeeklySets())
    assert len(result.sets.current) == 1
    assert result.sets.current[0].description == "first"
    assert result.file_internal_duplicate_count == 1
    assert result.skipped_duplicate_count == 1


def test_stored_record_wins_over_upload():
    stored = make_record("A", description="stored")
    result = reconcile([make_record("A", description="uploaded"), make_record("N")], WeeklySets(current=[stored]))

    assert ids(result.sets.current) == ["N"]
    assert result.sets.last[0].description == "stored"
    assert result.skipped_duplicate_count == 1
    assert result.file_internal_duplicate_count == 0


def test_ids_unique_across_sets_after_rollover():
    sets = WeeklySets(current=[make_record("A"), make_record("B")], last=[make_record("C")])
    result = reconcile([make_record("B"), make_record("D"), make_record("D"), make_record("E")], sets)

    all_ids = ids(result.sets.all_records())
    assert len(all_ids) == len(set(all_ids))
    assert result.skipped_duplicate_count == 2
    assert result.file_internal_duplicate_count == 1


def test_empty_batch_reports_nothing():
    result = reconcile([], WeeklySets(current=[make_record("A")]))
    assert result.added_count == 0
    assert result.skipped_duplicate_count == 0
    assert ids(result.sets.current) == ["A"]


def test_new_option_values_are_appended():
    batch = [
        make_record("X", owner="Dana", application="NewApp"),
        make_record("Y", owner="Dana", application="GIC"),
    ]
    updated, appended = extend_option_lists(DEFAULT_OPTIONS, batch)

    assert updated["corrective_owner"] == ["Unassigned", "Dana"]
    assert updated["application"][-1] == "NewApp"
    assert appended == {"application": ["NewApp"], "corrective_owner": ["Dana"]}


def test_reconcile_only_extends_options_on_rollover():
    sets = WeeklySets(current=[make_record("A")])
    result = reconcile([make_record("A", owner="Zed")], sets, DEFAULT_OPTIONS)
    assert "Zed" not in result.options["corrective_owner"]
    assert result.new_option_values == {}
