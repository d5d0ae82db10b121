"""
Variation Deliverable Reconciler - Lifecycle of deliverables inside a variation.

Each deliverable shown in a variation is in one of four states:
- Original: a Standard deliverable with no row inside the variation yet
- Add: a row created inside the variation with no original counterpart
- Edit: a variation copy of an original with its own variation hours
- Cancelled: terminal; the original is marked for cancellation

Transitions:
- Original -> Edit: hours edit creates a copy, or updates the existing copy
- Edit -> Edit: hours edit updates the copy in place
- (none) -> Add: new deliverable created inside the variation
- Original -> Cancelled: copy flagged UnapprovedCancellation, original untouched
- Edit -> Cancelled: copy hours reset to 0 and flagged UnapprovedCancellation
- Add -> removed: the row is deleted outright

A variation holds at most one live copy per original deliverable; the copy
is found by (variation_guid, original_deliverable_guid) before any insert.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from uuid import uuid4

from deliverable_tracker.domain.entities import (
    SERVER_CALCULATED_FIELDS,
    Deliverable,
    DeliverableType,
    Department,
    UiStatus,
    ValidationResult,
    Variation,
    VariationStatus,
    normalize_guid,
    same_guid,
)
from deliverable_tracker.domain.exceptions import (
    ApprovedDeliverableError,
    InvalidStateTransitionError,
    VariationLockedError,
)
from deliverable_tracker.domain.services.entity_validation_service import EntityValidator
from deliverable_tracker.domain.services.validation_rules import (
    VARIATION_DELIVERABLE_VALIDATION_RULES,
)
from deliverable_tracker.infrastructure.data_service import EntityDataService

logger = logging.getLogger(__name__)

HOURS_FIELD = 'variation_hours'

# Client-side only; never sent to the data service
CLIENT_ONLY_FIELDS = frozenset({'ui_status'})


class ReconcileAction(Enum):
    """Write the data service has to perform."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class ReconciliationPlan:
    """
    Decision of what to send for a variation mutation.

    Attributes:
        action: Create, update or delete
        target_guid: Row the write applies to
        source_guid: Row the user acted on (differs from target for
            Original rows, whose writes land on the variation copy)
        payload: Full row for create, changed fields for update
        from_status: State before the mutation
        to_status: State after the mutation (None when removed)
    """
    action: ReconcileAction
    target_guid: str
    source_guid: str
    payload: Dict[str, Any] = field(default_factory=dict)
    from_status: Optional[UiStatus] = None
    to_status: Optional[UiStatus] = None


@dataclass
class ReconciliationResult:
    """Outcome of a variation mutation."""
    validation: ValidationResult
    plan: Optional[ReconciliationPlan] = None
    deliverable: Optional[Deliverable] = None

    @property
    def is_valid(self) -> bool:
        return self.validation.is_valid


class VariationDeliverableReconciler:
    """
    Decides and applies deliverable state transitions within one variation.

    Writes go through the injected data service; the row returned by the
    service replaces any local copy, so server-calculated fields (booking
    code, totals) are never computed here.
    """

    def __init__(
        self,
        data_service: EntityDataService,
        variation: Variation,
        validator: Optional[EntityValidator] = None,
        always_read_only: Optional[Iterable[str]] = None,
    ):
        self.data_service = data_service
        self.variation = variation
        self.validator = validator or EntityValidator(VARIATION_DELIVERABLE_VALIDATION_RULES)
        self.always_read_only = frozenset(
            always_read_only if always_read_only is not None else SERVER_CALCULATED_FIELDS
        )

    # =========================================================================
    # State Derivation
    # =========================================================================

    def derive_ui_status(self, row: Deliverable) -> UiStatus:
        """Derive the row's state inside this variation from persisted fields."""
        if row.variation_status.is_cancellation:
            return UiStatus.CANCELLED

        if same_guid(row.variation_guid, self.variation.guid):
            if row.original_deliverable_guid and not same_guid(row.original_deliverable_guid, row.guid):
                return UiStatus.EDIT
            return UiStatus.ADD

        return UiStatus.ORIGINAL

    def with_ui_status(self, row: Deliverable) -> Deliverable:
        return row.copy_with(ui_status=self.derive_ui_status(row))

    def build_variation_view(
        self,
        project_rows: Iterable[Deliverable],
        variation_rows: Iterable[Deliverable],
    ) -> List[Deliverable]:
        """
        List what the variation shows: every standard deliverable of the
        project, replaced by its variation copy where one exists, followed
        by rows added in the variation.
        """
        own_rows = [r for r in variation_rows if same_guid(r.variation_guid, self.variation.guid)]
        copies = {
            normalize_guid(r.original_deliverable_guid): r
            for r in own_rows if r.original_deliverable_guid
        }

        view = []
        consumed = set()
        for row in project_rows:
            if row.variation_guid is not None and not row.variation_status.is_approved:
                continue
            copy = copies.get(normalize_guid(row.guid))
            if copy is not None:
                consumed.add(copy.guid)
            view.append(self.with_ui_status(copy or row))

        for row in own_rows:
            if row.guid not in consumed:
                view.append(self.with_ui_status(row))

        return view

    # =========================================================================
    # Field Editability
    # =========================================================================

    def is_field_editable(self, ui_status: UiStatus, field_name: str) -> bool:
        """
        Editability table per state.

        Original and Cancelled rows are read-only. Edit rows only expose
        variation_hours. Add rows expose everything except server-calculated
        fields.
        """
        if self.variation.is_read_only or field_name in self.always_read_only:
            return False
        if ui_status == UiStatus.EDIT:
            return field_name == HOURS_FIELD
        if ui_status == UiStatus.ADD:
            return True
        return False

    @staticmethod
    def accepts_hours_edit(ui_status: UiStatus) -> bool:
        """
        Whether an hours edit may be submitted for a row.

        For Original rows the edit is redirected to a new variation copy;
        the original row itself stays read-only.
        """
        return ui_status in (UiStatus.ORIGINAL, UiStatus.EDIT, UiStatus.ADD)

    # =========================================================================
    # Guid Reconciliation
    # =========================================================================

    def find_variation_copy(
        self,
        original_guid: str,
        rows: Optional[Iterable[Deliverable]] = None,
    ) -> Optional[Deliverable]:
        """
        Find the variation row derived from an original deliverable.

        Searches the given rows, or queries the data service when none are
        given.
        """
        if rows is None:
            found = self.data_service.query(
                filters={
                    'variation_guid': self.variation.guid,
                    'original_deliverable_guid': original_guid,
                },
                limit=1,
            )
            rows = [Deliverable.from_dict(r) for r in found]

        for row in rows:
            if (
                same_guid(row.variation_guid, self.variation.guid)
                and same_guid(row.original_deliverable_guid, original_guid)
                and not same_guid(row.guid, original_guid)
            ):
                return row
        return None

    def _copy_payload(self, original: Deliverable, **changes) -> Dict[str, Any]:
        """Full row for a new variation copy of an original deliverable."""
        copy = original.copy_with(
            guid=str(uuid4()),
            variation_guid=self.variation.guid,
            original_deliverable_guid=original.guid,
            ui_status=None,
            **changes,
        )
        return self._outbound(copy.to_dict())

    @staticmethod
    def _outbound(data: Mapping[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in data.items() if k not in CLIENT_ONLY_FIELDS}

    # =========================================================================
    # Guards
    # =========================================================================

    def _ensure_variation_open(self) -> None:
        if self.variation.is_read_only:
            raise VariationLockedError(self.variation.name, self.variation.lock_state)

    def _ensure_row_editable(self, row: Deliverable) -> None:
        self._ensure_variation_open()
        if row.variation_status == VariationStatus.APPROVED_VARIATION:
            raise ApprovedDeliverableError(row.guid)

    def is_project_original(self, row: Deliverable) -> bool:
        """
        Whether a row may be the source of a variation copy.

        Only standard deliverables and approved variation rows of this
        variation's project qualify; copies held by other open variations
        and rows of other projects do not.
        """
        if not same_guid(row.project_guid, self.variation.project_guid):
            return False
        return row.variation_guid is None or row.variation_status.is_approved

    def _ensure_project_original(self, row: Deliverable, action: str) -> None:
        if not self.is_project_original(row):
            raise InvalidStateTransitionError(row.guid, "foreign", action)

    # =========================================================================
    # Hours Edit: Original -> Edit, Edit -> Edit
    # =========================================================================

    def plan_hours_edit(
        self,
        row: Deliverable,
        variation_hours: float,
        rows: Optional[Iterable[Deliverable]] = None,
    ) -> ReconciliationPlan:
        """
        Decide the write for an hours edit.

        Raises:
            InvalidStateTransitionError: If the row is cancelled
        """
        status = self.derive_ui_status(row)

        if status == UiStatus.CANCELLED:
            raise InvalidStateTransitionError(row.guid, status.value, "edit hours of")

        if status == UiStatus.ORIGINAL:
            self._ensure_project_original(row, "edit hours of")
            existing = self.find_variation_copy(row.guid, rows)
            if existing is not None:
                if existing.is_cancelled:
                    raise InvalidStateTransitionError(existing.guid, UiStatus.CANCELLED.value, "edit hours of")
                logger.info(
                    "Variation %s already holds copy %s of deliverable %s; updating it",
                    self.variation.guid, existing.guid, row.guid
                )
                return ReconciliationPlan(
                    action=ReconcileAction.UPDATE,
                    target_guid=existing.guid,
                    source_guid=row.guid,
                    payload={
                        HOURS_FIELD: variation_hours,
                        'variation_status': VariationStatus.UNAPPROVED_VARIATION.value,
                    },
                    from_status=status,
                    to_status=UiStatus.EDIT,
                )

            payload = self._copy_payload(
                row,
                variation_hours=variation_hours,
                variation_status=VariationStatus.UNAPPROVED_VARIATION,
            )
            return ReconciliationPlan(
                action=ReconcileAction.CREATE,
                target_guid=payload['guid'],
                source_guid=row.guid,
                payload=payload,
                from_status=status,
                to_status=UiStatus.EDIT,
            )

        payload: Dict[str, Any] = {HOURS_FIELD: variation_hours}
        if status == UiStatus.EDIT:
            payload['variation_status'] = VariationStatus.UNAPPROVED_VARIATION.value

        return ReconciliationPlan(
            action=ReconcileAction.UPDATE,
            target_guid=row.guid,
            source_guid=row.guid,
            payload=payload,
            from_status=status,
            to_status=status,
        )

    def update_variation_hours(
        self,
        row: Deliverable,
        variation_hours: float,
        rows: Optional[Iterable[Deliverable]] = None,
    ) -> ReconciliationResult:
        """
        Validate and apply an hours edit.

        Args:
            row: Row the user edited
            variation_hours: New variation hours
            rows: Rows already in the variation; queried when omitted

        Returns:
            ReconciliationResult with the server's row on success

        Raises:
            VariationLockedError: If the variation is submitted or approved
            ApprovedDeliverableError: If the row belongs to an approved variation
            InvalidStateTransitionError: If the row is cancelled
        """
        self._ensure_row_editable(row)

        validation = self.validator.validate_row_update(
            row, {HOURS_FIELD: variation_hours}, changed_fields={HOURS_FIELD}
        )
        if not validation.is_valid:
            return ReconciliationResult(validation=validation)

        plan = self.plan_hours_edit(row, variation_hours, rows)
        return ReconciliationResult(
            validation=validation,
            plan=plan,
            deliverable=self._execute(plan),
        )

    # =========================================================================
    # Add: (none) -> Add
    # =========================================================================

    def default_values(self) -> Dict[str, Any]:
        """Initial values for a row added in this variation."""
        return {
            'guid': str(uuid4()),
            'variation_guid': self.variation.guid,
            'project_guid': self.variation.project_guid,
            'department_id': Department.ADMINISTRATION.value,
            'deliverable_type_id': DeliverableType.TASK.value,
            HOURS_FIELD: 0.0,
            'ui_status': UiStatus.ADD.value,
        }

    def add_new_deliverable(self, data: Mapping[str, Any]) -> ReconciliationResult:
        """
        Create a deliverable that exists only inside this variation.

        Server-calculated fields supplied by the caller are dropped.

        Raises:
            VariationLockedError: If the variation is submitted or approved
        """
        self._ensure_variation_open()

        entity = {**self.default_values(), **data}
        entity.update({
            'variation_guid': self.variation.guid,
            'variation_status': VariationStatus.UNAPPROVED_VARIATION.value,
            'original_deliverable_guid': None,
        })
        if not entity.get('project_guid'):
            entity['project_guid'] = self.variation.project_guid
        if not entity.get('guid'):
            entity['guid'] = str(uuid4())

        validation = self.validator.validate_entity(entity)
        if not validation.is_valid:
            return ReconciliationResult(validation=validation)

        payload = {
            k: v for k, v in self._outbound(entity).items()
            if k not in self.always_read_only
        }
        plan = ReconciliationPlan(
            action=ReconcileAction.CREATE,
            target_guid=payload['guid'],
            source_guid=payload['guid'],
            payload=payload,
            from_status=None,
            to_status=UiStatus.ADD,
        )
        return ReconciliationResult(
            validation=validation,
            plan=plan,
            deliverable=self._execute(plan),
        )

    # =========================================================================
    # Cancellation
    # =========================================================================

    def can_be_cancelled(self, row: Deliverable) -> Tuple[bool, str]:
        """
        Whether a row can be cancelled, with the message to show.

        Returns:
            Tuple of (can_cancel, reason or confirmation message)
        """
        if self.variation.is_read_only:
            return False, f"This variation has been {self.variation.lock_state} and cannot be modified."

        if row.variation_status == VariationStatus.APPROVED_VARIATION:
            return False, "This deliverable belongs to an approved variation and cannot be cancelled."

        title = row.document_title or row.guid
        status = self.derive_ui_status(row)
        if status == UiStatus.ORIGINAL:
            if not self.is_project_original(row):
                return False, "This deliverable is held by another variation or project and cannot be cancelled here."
            return True, (
                f'Are you sure you want to cancel the deliverable "{title}"? '
                f'This will mark it for cancellation in the variation.'
            )
        if status == UiStatus.ADD:
            return True, f'Are you sure you want to remove the deliverable "{title}" from the variation?'
        if status == UiStatus.EDIT:
            return True, (
                f'Are you sure you want to cancel the deliverable "{title}"? '
                f'This will reset variation hours to 0 and mark it for cancellation.'
            )
        return False, "This deliverable is already cancelled."

    def plan_cancellation(
        self,
        row: Deliverable,
        rows: Optional[Iterable[Deliverable]] = None,
    ) -> ReconciliationPlan:
        """
        Decide the write for a cancellation.

        Raises:
            InvalidStateTransitionError: If the row is already cancelled
        """
        status = self.derive_ui_status(row)
        cancelled = {
            HOURS_FIELD: 0.0,
            'variation_status': VariationStatus.UNAPPROVED_CANCELLATION.value,
        }

        if status == UiStatus.CANCELLED:
            raise InvalidStateTransitionError(row.guid, status.value, "cancel")

        if status == UiStatus.ADD:
            return ReconciliationPlan(
                action=ReconcileAction.DELETE,
                target_guid=row.guid,
                source_guid=row.guid,
                from_status=status,
                to_status=None,
            )

        if status == UiStatus.EDIT:
            return ReconciliationPlan(
                action=ReconcileAction.UPDATE,
                target_guid=row.guid,
                source_guid=row.guid,
                payload=cancelled,
                from_status=status,
                to_status=UiStatus.CANCELLED,
            )

        # Original: the original stays intact so a rejection can roll back
        self._ensure_project_original(row, "cancel")
        existing = self.find_variation_copy(row.guid, rows)
        if existing is not None:
            return ReconciliationPlan(
                action=ReconcileAction.UPDATE,
                target_guid=existing.guid,
                source_guid=row.guid,
                payload=cancelled,
                from_status=status,
                to_status=UiStatus.CANCELLED,
            )

        payload = self._copy_payload(
            row,
            variation_hours=0.0,
            variation_status=VariationStatus.UNAPPROVED_CANCELLATION,
        )
        return ReconciliationPlan(
            action=ReconcileAction.CREATE,
            target_guid=payload['guid'],
            source_guid=row.guid,
            payload=payload,
            from_status=status,
            to_status=UiStatus.CANCELLED,
        )

    def cancel_deliverable(
        self,
        row: Deliverable,
        rows: Optional[Iterable[Deliverable]] = None,
    ) -> ReconciliationResult:
        """
        Cancel a row in this variation.

        Returns:
            ReconciliationResult; deliverable is None when the row was removed

        Raises:
            VariationLockedError: If the variation is submitted or approved
            ApprovedDeliverableError: If the row belongs to an approved variation
            InvalidStateTransitionError: If the row is already cancelled
        """
        self._ensure_row_editable(row)
        plan = self.plan_cancellation(row, rows)
        return ReconciliationResult(
            validation=ValidationResult.ok(),
            plan=plan,
            deliverable=self._execute(plan),
        )

    # =========================================================================
    # Execution and Local State
    # =========================================================================

    def _execute(self, plan: ReconciliationPlan) -> Optional[Deliverable]:
        """Send the planned write; data service errors propagate unchanged."""
        logger.info(
            "Variation %s: %s %s (%s -> %s)",
            self.variation.guid,
            plan.action.value,
            plan.target_guid,
            plan.from_status.value if plan.from_status else None,
            plan.to_status.value if plan.to_status else None,
        )

        if plan.action == ReconcileAction.DELETE:
            self.data_service.delete(plan.target_guid)
            return None

        if plan.action == ReconcileAction.CREATE:
            stored = self.data_service.create(plan.payload)
        else:
            stored = self.data_service.update(plan.target_guid, plan.payload)

        return self.with_ui_status(Deliverable.from_dict(stored))

    @staticmethod
    def merge_into_rows(
        rows: Iterable[Deliverable],
        result: ReconciliationResult,
    ) -> List[Deliverable]:
        """
        Fold a successful write into a local row list.

        The row the user acted on is replaced by the server's row; a removed
        row is dropped. Returns a new list and leaves the input untouched.
        """
        rows = list(rows)
        plan = result.plan
        if plan is None:
            return rows

        if plan.action == ReconcileAction.DELETE:
            return [r for r in rows if not same_guid(r.guid, plan.target_guid)]

        merged = []
        placed = False
        for row in rows:
            if same_guid(row.guid, plan.source_guid) or same_guid(row.guid, plan.target_guid):
                if not placed and result.deliverable is not None:
                    merged.append(result.deliverable)
                    placed = True
                continue
            merged.append(row)

        if not placed and result.deliverable is not None:
            merged.append(result.deliverable)
        return merged
