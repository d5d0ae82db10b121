"""
Tests for the deliverable lifecycle inside a variation.

Business rules:
- Hours edits on an original create at most one copy per variation
- Cancelling an original never modifies the original row
- Added rows are removed on cancel
- Submitted or approved variations are read-only
"""
from datetime import date
from unittest.mock import MagicMock

import pytest

from deliverable_tracker.domain.entities import (
    Deliverable,
    UiStatus,
    Variation,
    VariationStatus,
)
from deliverable_tracker.domain.exceptions import (
    ApprovedDeliverableError,
    InvalidStateTransitionError,
    VariationLockedError,
)
from deliverable_tracker.domain.services import ReconcileAction, VariationDeliverableReconciler
from deliverable_tracker.infrastructure.data_service import EntityDataService


class InMemoryDeliverables(EntityDataService):
    """Data service double that computes total hours like the server does."""

    def __init__(self, rows=()):
        self.rows = {r['guid']: dict(r) for r in rows}
        self.creates = 0

    def _stored(self, row):
        row['total_hours'] = (row.get('budget_hours') or 0.0) + (row.get('variation_hours') or 0.0)
        row['booking_code'] = 'SERVER-' + row['guid'][:4]
        return dict(row)

    def create(self, entity):
        self.creates += 1
        row = dict(entity)
        self.rows[row['guid']] = row
        return self._stored(row)

    def update(self, guid, fields):
        row = self.rows[guid]
        row.update(fields)
        return self._stored(row)

    def delete(self, guid):
        del self.rows[guid]

    def query(self, filters=None, sort=None, limit=None):
        found = [
            dict(r) for r in self.rows.values()
            if all(r.get(k) == v for k, v in (filters or {}).items())
        ]
        return found[:limit] if limit else found


VARIATION_GUID = 'var-1'
PROJECT_GUID = 'proj-1'


def original_row(guid='orig-a', **overrides):
    data = {
        'guid': guid,
        'project_guid': PROJECT_GUID,
        'area_number': '01',
        'discipline': 'EL',
        'document_type': 'DRG',
        'deliverable_type_id': 'Deliverable',
        'document_title': 'Cable schedule',
        'budget_hours': 100.0,
        'variation_hours': 0.0,
        'internal_document_number': 'C01-01-01-EL-DRG-001',
    }
    data.update(overrides)
    return data


@pytest.fixture
def variation():
    return Variation(guid=VARIATION_GUID, project_guid=PROJECT_GUID, name='001')


@pytest.fixture
def store():
    return InMemoryDeliverables([original_row()])


@pytest.fixture
def reconciler(store, variation):
    return VariationDeliverableReconciler(store, variation)


@pytest.fixture
def original(store):
    return Deliverable.from_dict(store.rows['orig-a'])


class TestDeriveUiStatus:
    """Tests for state derivation from persisted fields."""

    def test_standard_row_is_original(self, reconciler, original):
        assert reconciler.derive_ui_status(original) == UiStatus.ORIGINAL

    def test_copy_is_edit(self, reconciler):
        row = Deliverable(
            guid='copy', variation_guid=VARIATION_GUID, original_deliverable_guid='orig-a',
            variation_status=VariationStatus.UNAPPROVED_VARIATION,
        )
        assert reconciler.derive_ui_status(row) == UiStatus.EDIT

    def test_row_without_original_is_add(self, reconciler):
        row = Deliverable(guid='new', variation_guid=VARIATION_GUID.upper(),
                          variation_status=VariationStatus.UNAPPROVED_VARIATION)
        assert reconciler.derive_ui_status(row) == UiStatus.ADD

    def test_cancellation_status_is_cancelled(self, reconciler):
        row = Deliverable(guid='c', variation_guid=VARIATION_GUID, original_deliverable_guid='orig-a',
                          variation_status=VariationStatus.UNAPPROVED_CANCELLATION)
        assert reconciler.derive_ui_status(row) == UiStatus.CANCELLED

    def test_row_of_other_variation_is_original(self, reconciler):
        row = Deliverable(guid='x', variation_guid='var-0', original_deliverable_guid='orig-a',
                          variation_status=VariationStatus.APPROVED_VARIATION)
        assert reconciler.derive_ui_status(row) == UiStatus.ORIGINAL


class TestFieldEditability:
    """Tests for the per-state editability table."""

    def test_original_is_read_only(self, reconciler):
        assert not reconciler.is_field_editable(UiStatus.ORIGINAL, 'variation_hours')
        assert not reconciler.is_field_editable(UiStatus.ORIGINAL, 'document_title')

    def test_edit_exposes_only_variation_hours(self, reconciler):
        assert reconciler.is_field_editable(UiStatus.EDIT, 'variation_hours')
        assert not reconciler.is_field_editable(UiStatus.EDIT, 'budget_hours')

    def test_add_exposes_all_but_calculated_fields(self, reconciler):
        assert reconciler.is_field_editable(UiStatus.ADD, 'document_title')
        assert reconciler.is_field_editable(UiStatus.ADD, 'budget_hours')
        assert not reconciler.is_field_editable(UiStatus.ADD, 'booking_code')
        assert not reconciler.is_field_editable(UiStatus.ADD, 'total_hours')

    def test_cancelled_is_read_only(self, reconciler):
        assert not reconciler.is_field_editable(UiStatus.CANCELLED, 'variation_hours')

    def test_locked_variation_is_read_only(self, store, variation):
        submitted = Variation(guid=VARIATION_GUID, project_guid=PROJECT_GUID, name="001", submitted=date(2024, 3, 1))
        locked = VariationDeliverableReconciler(store, submitted)
        assert not locked.is_field_editable(UiStatus.ADD, 'document_title')

    def test_hours_edit_accepted_on_original(self, reconciler):
        assert reconciler.accepts_hours_edit(UiStatus.ORIGINAL)
        assert not reconciler.accepts_hours_edit(UiStatus.CANCELLED)


class TestHoursEdit:
    """Tests for Original -> Edit and Edit -> Edit."""

    def test_original_edit_creates_linked_copy(self, reconciler, store, original):
        result = reconciler.update_variation_hours(original, 40)

        assert result.is_valid
        assert result.plan.action == ReconcileAction.CREATE
        copy = result.deliverable
        assert copy.guid != 'orig-a'
        assert copy.original_deliverable_guid == 'orig-a'
        assert copy.variation_guid == VARIATION_GUID
        assert copy.variation_hours == 40
        assert copy.variation_status == VariationStatus.UNAPPROVED_VARIATION
        assert copy.ui_status == UiStatus.EDIT

    def test_original_row_untouched(self, reconciler, store, original):
        reconciler.update_variation_hours(original, 40)
        assert store.rows['orig-a']['variation_hours'] == 0.0
        assert 'variation_guid' not in store.rows['orig-a']

    def test_server_values_replace_local_ones(self, reconciler, original):
        result = reconciler.update_variation_hours(original, 40)
        assert result.deliverable.total_hours == 140.0
        assert result.deliverable.booking_code.startswith('SERVER-')

    def test_repeated_edit_updates_same_copy(self, reconciler, store, original):
        first = reconciler.update_variation_hours(original, 40)
        second = reconciler.update_variation_hours(original, 55)

        assert store.creates == 1
        assert second.plan.action == ReconcileAction.UPDATE
        assert second.deliverable.guid == first.deliverable.guid
        assert second.deliverable.variation_hours == 55

    def test_repeated_edit_uses_local_rows_when_given(self, reconciler, store, original):
        first = reconciler.update_variation_hours(original, 40, rows=[])
        second = reconciler.update_variation_hours(original, 12, rows=[first.deliverable])
        assert second.deliverable.guid == first.deliverable.guid
        assert store.creates == 1

    def test_edit_row_updates_itself(self, reconciler, original):
        copy = reconciler.update_variation_hours(original, 40).deliverable
        result = reconciler.update_variation_hours(copy, 8)

        assert result.plan.target_guid == copy.guid
        assert result.deliverable.original_deliverable_guid == 'orig-a'
        assert result.deliverable.variation_hours == 8

    def test_negative_hours_rejected_without_write(self, reconciler, store, original):
        result = reconciler.update_variation_hours(original, -3)
        assert not result.is_valid
        assert result.validation.field == 'variation_hours'
        assert result.plan is None
        assert store.creates == 0

    def test_partial_validation_ignores_unrelated_fields(self, store, variation):
        store.rows['orig-a']['document_title'] = None
        reconciler = VariationDeliverableReconciler(store, variation)
        result = reconciler.update_variation_hours(Deliverable.from_dict(store.rows['orig-a']), 10)
        assert result.is_valid

    def test_cancelled_row_rejects_hours_edit(self, reconciler, original):
        cancelled = reconciler.cancel_deliverable(original).deliverable
        with pytest.raises(InvalidStateTransitionError):
            reconciler.update_variation_hours(cancelled, 10)

    def test_original_with_cancelled_copy_rejects_hours_edit(self, reconciler, original):
        reconciler.cancel_deliverable(original)
        with pytest.raises(InvalidStateTransitionError):
            reconciler.update_variation_hours(original, 10)

    def test_approved_row_rejected(self, reconciler):
        approved = Deliverable(guid='appr', variation_guid=VARIATION_GUID, original_deliverable_guid='orig-a',
                               variation_status=VariationStatus.APPROVED_VARIATION)
        with pytest.raises(ApprovedDeliverableError):
            reconciler.update_variation_hours(approved, 10)

    def test_locked_variation_rejected(self, store, original):
        approved = Variation(guid=VARIATION_GUID, project_guid=PROJECT_GUID, name='001',
                             submitted=date(2024, 3, 1), client_approved=date(2024, 3, 9))
        reconciler = VariationDeliverableReconciler(store, approved)
        with pytest.raises(VariationLockedError) as exc_info:
            reconciler.update_variation_hours(original, 10)
        assert 'approved' in exc_info.value.message
        assert store.creates == 0

    def test_copy_held_by_other_variation_rejected(self, reconciler, store):
        other_copy = Deliverable.from_dict(original_row(
            'other-copy', variation_guid='var-OTHER', original_deliverable_guid='orig-a',
            variation_status='UnapprovedVariation',
        ))
        with pytest.raises(InvalidStateTransitionError):
            reconciler.update_variation_hours(other_copy, 10)
        assert store.creates == 0

    def test_row_of_other_project_rejected(self, reconciler, store):
        foreign = Deliverable.from_dict(original_row('orig-z', project_guid='proj-2'))
        with pytest.raises(InvalidStateTransitionError):
            reconciler.update_variation_hours(foreign, 10)
        assert store.creates == 0

    def test_copies_always_link_to_project_originals(self, reconciler, original):
        copy = reconciler.update_variation_hours(original, 5).deliverable
        assert reconciler.is_project_original(original)
        assert not reconciler.is_project_original(copy)


class TestAddDeliverable:
    """Tests for rows created inside the variation."""

    def test_add_applies_defaults(self, reconciler, store):
        result = reconciler.add_new_deliverable({
            'area_number': '02',
            'discipline': 'ME',
            'document_type': 'SPC',
            'document_title': 'Pump specification',
            'variation_hours': 16,
        })

        assert result.is_valid
        row = result.deliverable
        assert row.ui_status == UiStatus.ADD
        assert row.variation_guid == VARIATION_GUID
        assert row.project_guid == PROJECT_GUID
        assert row.original_deliverable_guid is None
        assert row.variation_status == VariationStatus.UNAPPROVED_VARIATION
        assert row.department_id.value == 'Administration'
        assert row.deliverable_type_id.value == 'Task'
        assert 'ui_status' not in store.rows[row.guid]

    def test_add_drops_calculated_fields(self, reconciler, store):
        result = reconciler.add_new_deliverable({
            'area_number': '02', 'discipline': 'ME', 'document_type': 'SPC',
            'document_title': 'Pump specification', 'total_hours': 999, 'booking_code': 'MINE',
        })
        stored = store.rows[result.deliverable.guid]
        assert result.deliverable.total_hours == 0.0
        assert stored['booking_code'].startswith('SERVER-')

    def test_add_runs_full_validation(self, reconciler, store):
        result = reconciler.add_new_deliverable({'area_number': '02'})
        assert not result.is_valid
        assert 'document_title' in result.validation.errors
        assert store.creates == 0


class TestCancellation:
    """Tests for Original/Edit -> Cancelled and Add -> removed."""

    def test_can_be_cancelled_messages(self, reconciler, original):
        can_cancel, message = reconciler.can_be_cancelled(original)
        assert can_cancel
        assert 'mark it for cancellation' in message

    def test_cancelled_row_cannot_be_cancelled_again(self, reconciler, original):
        cancelled = reconciler.cancel_deliverable(original).deliverable
        assert reconciler.can_be_cancelled(cancelled) == (False, "This deliverable is already cancelled.")
        with pytest.raises(InvalidStateTransitionError):
            reconciler.cancel_deliverable(cancelled)

    def test_locked_variation_cannot_cancel(self, store, original):
        submitted = Variation(guid=VARIATION_GUID, project_guid=PROJECT_GUID, name='001',
                              submitted=date(2024, 3, 1))
        can_cancel, message = VariationDeliverableReconciler(store, submitted).can_be_cancelled(original)
        assert not can_cancel
        assert 'submitted' in message

    def test_cancel_original_creates_marker_copy(self, reconciler, store, original):
        result = reconciler.cancel_deliverable(original)

        marker = result.deliverable
        assert result.plan.action == ReconcileAction.CREATE
        assert marker.guid != 'orig-a'
        assert marker.original_deliverable_guid == 'orig-a'
        assert marker.variation_status == VariationStatus.UNAPPROVED_CANCELLATION
        assert marker.variation_hours == 0.0
        assert marker.ui_status == UiStatus.CANCELLED
        assert store.rows['orig-a'].get('variation_status') is None

    def test_edit_to_cancelled_round_trip(self, reconciler, original):
        copy = reconciler.update_variation_hours(original, 40).deliverable
        result = reconciler.cancel_deliverable(copy)

        cancelled = result.deliverable
        assert result.plan.action == ReconcileAction.UPDATE
        assert cancelled.guid == copy.guid
        assert cancelled.variation_hours == 0.0
        assert cancelled.variation_status == VariationStatus.UNAPPROVED_CANCELLATION
        assert cancelled.original_deliverable_guid == copy.original_deliverable_guid

    def test_cancel_original_with_existing_copy_updates_it(self, reconciler, store, original):
        copy = reconciler.update_variation_hours(original, 40).deliverable
        result = reconciler.cancel_deliverable(original)

        assert store.creates == 1
        assert result.deliverable.guid == copy.guid
        assert result.deliverable.is_cancelled

    def test_cancel_added_row_deletes_it(self, reconciler, store):
        added = reconciler.add_new_deliverable({
            'area_number': '02', 'discipline': 'ME', 'document_type': 'SPC',
            'document_title': 'Pump specification',
        }).deliverable

        result = reconciler.cancel_deliverable(added)

        assert result.plan.action == ReconcileAction.DELETE
        assert result.deliverable is None
        assert added.guid not in store.rows

    def test_copy_held_by_other_variation_cannot_be_cancelled(self, reconciler, store):
        other_copy = Deliverable.from_dict(original_row(
            'other-copy', variation_guid='var-OTHER', original_deliverable_guid='orig-a',
            variation_status='UnapprovedVariation',
        ))
        can_cancel, message = reconciler.can_be_cancelled(other_copy)
        assert not can_cancel
        assert 'another variation' in message
        with pytest.raises(InvalidStateTransitionError):
            reconciler.cancel_deliverable(other_copy)
        assert store.creates == 0


class TestDataServiceFailures:
    """Data service errors propagate unchanged."""

    def test_create_failure_propagates(self, variation, original):
        service = MagicMock(spec=EntityDataService)
        service.query.return_value = []
        service.create.side_effect = ConnectionError("timeout")

        reconciler = VariationDeliverableReconciler(service, variation)
        with pytest.raises(ConnectionError):
            reconciler.update_variation_hours(original, 40)


class TestVariationView:
    """Tests for building the variation list and merging results."""

    def test_copy_replaces_original_in_view(self, reconciler, store, original):
        copy = reconciler.update_variation_hours(original, 40).deliverable
        other = Deliverable.from_dict(original_row(guid='orig-b'))
        added = Deliverable(guid='add-1', variation_guid=VARIATION_GUID,
                            variation_status=VariationStatus.UNAPPROVED_VARIATION)

        view = reconciler.build_variation_view([original, other], [copy, added])

        assert [r.guid for r in view] == [copy.guid, 'orig-b', 'add-1']
        assert [r.ui_status for r in view] == [UiStatus.EDIT, UiStatus.ORIGINAL, UiStatus.ADD]

    def test_view_skips_rows_of_other_unapproved_variations(self, reconciler, original):
        foreign = Deliverable(guid='f', variation_guid='var-2', original_deliverable_guid='orig-a',
                              variation_status=VariationStatus.UNAPPROVED_VARIATION)
        view = reconciler.build_variation_view([original, foreign], [])
        assert [r.guid for r in view] == ['orig-a']

    def test_merge_replaces_source_row(self, reconciler, original):
        other = Deliverable.from_dict(original_row(guid='orig-b'))
        rows = [original, other]
        result = reconciler.update_variation_hours(original, 40)

        merged = reconciler.merge_into_rows(rows, result)

        assert [r.guid for r in merged] == [result.deliverable.guid, 'orig-b']
        assert rows[0] is original

    def test_merge_drops_deleted_row(self, reconciler):
        added = reconciler.add_new_deliverable({
            'area_number': '02', 'discipline': 'ME', 'document_type': 'SPC',
            'document_title': 'Pump specification',
        }).deliverable
        result = reconciler.cancel_deliverable(added)

        assert reconciler.merge_into_rows([added], result) == []
