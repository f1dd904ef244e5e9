"""
Work lifecycle management

Statuses move along STATUS_ORDER. Moving forward applies the side effects of
the target status (start dates, maintenance schedule). Moving backward undoes
whatever the skipped-over statuses created; because that destroys data it is
refused unless the caller passes force=True.
"""
import logging

from django.db import transaction
from django.utils import timezone

from septicworks.core.utils import create_audit_log
from .models import Work, WorkStateHistory, WorkNote, ChangeOrder

logger = logging.getLogger(__name__)

STATUS_ORDER = [
    'pending',
    'assigned',
    'inProgress',
    'installed',
    'firstInspectionPending',
    'approvedInspection',
    'rejectedInspection',
    'coverPending',
    'covered',
    'finalInspectionPending',
    'finalApproved',
    'finalRejected',
    'invoiceFinal',
    'paymentReceived',
    'maintenance',
]

# Outside the ordered workflow; entering or leaving it has no side effects
CANCELLED = 'cancelled'

STATUS_LABELS = dict(Work.STATUS_CHOICES)


class StatusChangeError(Exception):
    """Invalid status change request"""


class StatusChangeConflict(StatusChangeError):
    """Moving backward would delete data and force was not given"""

    def __init__(self, message, conflicts):
        super().__init__(message)
        self.conflicts = conflicts


def status_index(status):
    try:
        return STATUS_ORDER.index(status)
    except ValueError:
        return -1


def is_backward(current_status, target_status):
    if CANCELLED in (current_status, target_status):
        return False
    return status_index(target_status) < status_index(current_status)


def is_forward(current_status, target_status):
    if target_status == CANCELLED:
        return False
    if current_status == CANCELLED:
        return True
    return status_index(target_status) > status_index(current_status)


def statuses_to_roll_back(current_status, target_status):
    """Statuses undone when going from current back to target, newest first"""
    current_idx = status_index(current_status)
    target_idx = status_index(target_status)
    return [STATUS_ORDER[i] for i in range(current_idx, target_idx, -1)]


def _final_invoice(work):
    from septicworks.budgets.models import FinalInvoice
    return FinalInvoice.objects.filter(work=work).first()


def _work_expenses(work):
    from septicworks.finance.models import Expense
    # Expenses settled through a supplier invoice belong to that invoice
    return Expense.objects.filter(work=work).exclude(payment_status='paid_via_invoice').exclude(
        supplier_invoice_items__isnull=False
    )


def check_status_conflicts(work, status):
    """Artifacts that rolling back `status` would remove, as a list of dicts"""
    conflicts = []

    if status == 'assigned':
        if work.staff_id:
            conflicts.append({
                'type': 'StaffAssignment',
                'count': 1,
                'message': 'The assigned staff member will be removed',
            })

    elif status == 'inProgress':
        expense_count = _work_expenses(work).count()
        if expense_count:
            conflicts.append({
                'type': 'Expense',
                'count': expense_count,
                'message': 'All expenses recorded for this work will be deleted',
            })
        if work.start_date:
            conflicts.append({
                'type': 'StartDate',
                'count': 1,
                'message': 'The work start date will be cleared',
            })

    elif status in ('firstInspectionPending', 'finalInspectionPending'):
        inspection_type = 'first' if status == 'firstInspectionPending' else 'final'
        count = work.inspections.filter(type=inspection_type).count()
        if count:
            conflicts.append({
                'type': 'Inspection',
                'count': count,
                'message': f'{count} {inspection_type} inspection(s) will be deleted',
            })

    elif status in ('approvedInspection', 'finalApproved'):
        inspection_type = 'first' if status == 'approvedInspection' else 'final'
        count = work.inspections.filter(type=inspection_type, final_status='approved').count()
        if count:
            conflicts.append({
                'type': 'InspectionResult',
                'count': count,
                'message': f'Approval of the {inspection_type} inspection will be reverted to pending',
            })

    elif status == 'invoiceFinal':
        if _final_invoice(work):
            conflicts.append({
                'type': 'FinalInvoice',
                'count': 1,
                'message': 'The final invoice and all of its extra items will be deleted',
            })

    elif status == 'maintenance':
        count = work.maintenance_visits.count()
        if count:
            conflicts.append({
                'type': 'MaintenanceVisit',
                'count': count,
                'message': 'All scheduled maintenance visits will be deleted',
            })

    return conflicts


def validate_status_change(work, target_status, force=False):
    """
    Returns the conflicts a backward move would cause.

    Raises StatusChangeError for unknown/identical statuses and
    StatusChangeConflict when data would be lost without force.
    """
    if target_status not in STATUS_LABELS:
        raise StatusChangeError(f"Invalid status: {target_status}")
    if target_status == work.status:
        raise StatusChangeError(f"Work is already in status {target_status}")

    if not is_backward(work.status, target_status):
        return []

    conflicts = []
    for status in statuses_to_roll_back(work.status, target_status):
        conflicts.extend(check_status_conflicts(work, status))

    if conflicts and not force:
        raise StatusChangeConflict('The status change will result in data loss', conflicts)
    return conflicts


def rollback_status(work, status):
    """Undo what `status` created. Returns a description or None."""
    if status == 'assigned':
        if work.staff_id:
            work.staff = None
            return 'staff assignment removed'

    elif status == 'inProgress':
        from septicworks.banking.services import reverse_transactions_for_expense

        removed = 0
        for expense in _work_expenses(work):
            reverse_transactions_for_expense(expense)
            expense.delete()
            removed += 1
        work.start_date = None
        return f'start date cleared, {removed} expense(s) deleted'

    elif status in ('firstInspectionPending', 'finalInspectionPending'):
        inspection_type = 'first' if status == 'firstInspectionPending' else 'final'
        deleted = work.inspections.filter(type=inspection_type).delete()[0]
        if deleted:
            return f'{deleted} {inspection_type} inspection(s) deleted'

    elif status in ('approvedInspection', 'finalApproved'):
        inspection_type = 'first' if status == 'approvedInspection' else 'final'
        reverted = work.inspections.filter(type=inspection_type, final_status='approved').update(
            final_status='pending', date_result=None
        )
        if reverted:
            return f'{inspection_type} inspection approval reverted'

    elif status == 'invoiceFinal':
        invoice = _final_invoice(work)
        if invoice:
            # Change orders billed on the invoice go back to approved
            ChangeOrder.objects.filter(
                pk__in=invoice.extra_items.filter(change_order__isnull=False).values('change_order_id')
            ).update(status='approved')
            invoice.delete()
            return 'final invoice deleted'

    elif status == 'maintenance':
        deleted = work.maintenance_visits.all().delete()[0]
        work.maintenance_start_date = None
        return f'{deleted} maintenance visit(s) deleted'

    return None


def rollback_to_status(work, target_status):
    rolled_back = []
    for status in statuses_to_roll_back(work.status, target_status):
        result = rollback_status(work, status)
        if result:
            rolled_back.append({'status': status, 'result': result})
            logger.info(f"Work {work.pk}: rolled back {status} ({result})")
    return rolled_back


def advance_to_status(work, target_status):
    """Apply the side effects of entering target_status"""
    today = timezone.localdate()
    if target_status == 'inProgress':
        if not work.start_date:
            work.start_date = today
        if not work.installation_start_date:
            work.installation_start_date = today
    elif target_status == 'maintenance':
        if not work.maintenance_start_date:
            work.maintenance_start_date = today


def change_work_status(work, target_status, user=None, reason='', force=False, staff=None, request=None):
    """
    Move a work to target_status with history, auto-note and audit log.

    Returns dict with from_status, to_status, conflicts and rolled_back.
    """
    with transaction.atomic():
        work = Work.objects.select_for_update().get(pk=work.pk)
        from_status = work.status
        conflicts = validate_status_change(work, target_status, force=force)

        rolled_back = []
        if is_backward(from_status, target_status):
            rolled_back = rollback_to_status(work, target_status)
        elif is_forward(from_status, target_status):
            advance_to_status(work, target_status)

        if staff is not None:
            work.staff = staff
        work.status = target_status
        work.save()

        if target_status == 'maintenance':
            from septicworks.maintenance.services import schedule_initial_visits
            schedule_initial_visits(work)

        WorkStateHistory.objects.create(
            work=work,
            from_status=from_status,
            to_status=target_status,
            changed_by=user if user and user.is_authenticated else None,
            reason=reason or '',
            forced=bool(force and rolled_back),
            rolled_back=rolled_back,
        )

        message = f"Status changed from {STATUS_LABELS.get(from_status, from_status)} to {STATUS_LABELS.get(target_status, target_status)}"
        if reason:
            message += f". Reason: {reason}"
        if rolled_back:
            message += ". Rolled back: " + "; ".join(r['result'] for r in rolled_back)
        WorkNote.objects.create(
            work=work,
            staff=user if user and user.is_authenticated else None,
            message=message,
            note_type='status_change',
            priority='high' if rolled_back else 'low',
        )

        create_audit_log(
            request=request,
            user=user,
            action='status_rollback' if rolled_back else 'status_change',
            model_name='Work',
            object_id=work.pk,
            object_name=work.property_address,
            changes={'from': from_status, 'to': target_status, 'forced': bool(force), 'rolled_back': rolled_back},
        )

    logger.info(f"Work {work.pk} status {from_status} -> {target_status}")
    return {
        'work': work,
        'from_status': from_status,
        'to_status': target_status,
        'conflicts': conflicts,
        'rolled_back': rolled_back,
    }
