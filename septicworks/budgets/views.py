import json
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Q
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from septicworks.banking.services import BankingError, create_deposit_for_income
from septicworks.core.notifications import send_document_email
from septicworks.core.permissions import IsOfficeStaff, is_admin_user
from septicworks.core.utils import create_audit_log, paginate_queryset, resolve_mentions
from septicworks.finance.models import Income
from septicworks.works.models import Work, WorkNote, ChangeOrder
from septicworks.works.status_manager import change_work_status, StatusChangeError
from .filters import BudgetFilter, BudgetItemFilter
from .invoice_numbers import get_next_invoice_number
from .models import Budget, BudgetItem, BudgetNote, FinalInvoice, WorkExtraItem
from .pdf import render_budget_pdf, render_final_invoice_pdf
from .serializers import (
    BudgetSerializer, BudgetListSerializer, PaymentProofSerializer, BudgetItemSerializer, BudgetNoteSerializer,
    FinalInvoiceSerializer, FinalInvoiceCreateSerializer, FinalInvoiceUpdateSerializer, WorkExtraItemSerializer
)

logger = logging.getLogger(__name__)

SENDABLE_STATUSES = ('draft', 'created', 'send', 'notResponded')


def _pdf_response(content, filename, inline=False):
    response = HttpResponse(content, content_type='application/pdf')
    disposition = 'inline' if inline else 'attachment'
    response['Content-Disposition'] = f'{disposition}; filename="{filename}"'
    return response


def _split_line_items(request, default):
    """Copy request data without line_items and return (data, items); multipart sends items as JSON"""
    data = request.data.copy() if hasattr(request.data, 'copy') else dict(request.data)
    if 'line_items' not in data:
        return data, default
    items = data.pop('line_items')
    if hasattr(request.data, 'getlist'):
        items = items[0] if isinstance(items, list) and len(items) == 1 else items
    if isinstance(items, str):
        try:
            items = json.loads(items)
        except ValueError:
            items = None
    return data, items


def _budget_queryset():
    return Budget.objects.select_related('permit', 'work').prefetch_related('line_items')


# Budget views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def budget_list_create(request):
    """List budgets or create one with its line items"""
    if request.method == 'GET':
        queryset = Budget.objects.select_related('permit')
        filterset = BudgetFilter(request.query_params, queryset=queryset)
        queryset = filterset.qs.order_by('-created_at')
        return Response(paginate_queryset(request, queryset, BudgetListSerializer))

    data, items_data = _split_line_items(request, [])
    serializer = BudgetSerializer(data=data, context={'items_data': items_data, 'request': request})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    budget = serializer.save(created_by=request.user)

    create_audit_log(request=request, action='create', model_name='Budget', object_id=budget.id,
                     object_name=budget.property_address, changes={'total_price': str(budget.total_price)})
    return Response(BudgetSerializer(budget).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def budget_detail(request, pk):
    budget = get_object_or_404(_budget_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(BudgetSerializer(budget).data)
    elif request.method in ('PUT', 'PATCH'):
        data, items_data = _split_line_items(request, None)
        serializer = BudgetSerializer(budget, data=data, partial=(request.method == 'PATCH'),
                                      context={'items_data': items_data, 'request': request})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        budget = serializer.save()
        create_audit_log(request=request, action='update', model_name='Budget', object_id=budget.id,
                         object_name=budget.property_address, changes={'total_price': str(budget.total_price)})
        return Response(BudgetSerializer(budget).data)
    else:  # DELETE
        if Work.objects.filter(budget=budget).exists():
            return Response({'error': 'Budget has a work and cannot be deleted.'},
                            status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='delete', model_name='Budget', object_id=budget.id,
                         object_name=budget.property_address)
        budget.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def budget_send(request, pk):
    """Email the budget PDF to the applicant"""
    budget = get_object_or_404(_budget_queryset(), pk=pk)
    if budget.status not in SENDABLE_STATUSES:
        return Response({'error': f"Budget in status {budget.status} cannot be sent"},
                        status=status.HTTP_400_BAD_REQUEST)
    if not budget.applicant_email:
        return Response({'error': 'The applicant has no email address on file'},
                        status=status.HTTP_400_BAD_REQUEST)

    pdf = render_budget_pdf(budget)
    body = (
        f"Dear {budget.applicant_name},\n\n"
        f"Please find attached the budget for {budget.property_address}.\n"
        f"Total: ${budget.total_price:,.2f}. Initial payment: ${budget.initial_payment:,.2f}.\n"
        f"This budget is valid until {budget.expiration_date}.\n"
    )
    try:
        send_document_email(f"Budget for {budget.property_address}", body, [budget.applicant_email],
                            attachments=[(f"budget_{budget.pk}.pdf", pdf, 'application/pdf')])
    except Exception as e:
        logger.error(f"Failed to email budget {budget.id}: {str(e)}")
        return Response({'error': f'Email could not be sent: {str(e)}'}, status=status.HTTP_502_BAD_GATEWAY)

    budget.status = 'send'
    budget.sent_at = timezone.now()
    budget.save(update_fields=['status', 'sent_at', 'updated_at'])
    create_audit_log(request=request, action='budget_send', model_name='Budget', object_id=budget.id,
                     object_name=budget.property_address, changes={'recipient': budget.applicant_email})
    return Response(BudgetSerializer(budget).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def budget_approve(request, pk):
    """Accept a budget: assign its invoice number and open the work"""
    signed = str(request.data.get('signed', '')).lower() in ('true', '1')
    with transaction.atomic():
        budget = get_object_or_404(Budget.objects.select_for_update(), pk=pk)
        if budget.status == 'rejected':
            return Response({'error': 'A rejected budget cannot be approved'}, status=status.HTTP_400_BAD_REQUEST)

        if budget.invoice_number is None:
            budget.invoice_number = get_next_invoice_number()
        budget.status = 'signed' if signed else 'approved'
        budget.approved_at = budget.approved_at or timezone.now()
        budget.save()

        work = Work.objects.filter(budget=budget).first()
        work_created = False
        if work is None:
            work = Work.objects.create(
                property_address=budget.property_address,
                permit=budget.permit,
                budget=budget,
                is_legacy=budget.is_legacy,
            )
            work_created = True
            WorkNote.objects.create(work=work, staff=request.user, note_type='general', priority='low',
                                    message=f"Work created from approved budget #{budget.invoice_number}")

    logger.info(f"Budget {budget.id} approved with invoice number {budget.invoice_number}")
    create_audit_log(request=request, action='budget_approve', model_name='Budget', object_id=budget.id,
                     object_name=budget.property_address, object_reference=str(budget.invoice_number),
                     changes={'work_id': work.id, 'work_created': work_created})
    budget = _budget_queryset().get(pk=budget.pk)
    return Response({
        'budget': BudgetSerializer(budget).data,
        'work_id': work.id,
        'work_created': work_created,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def budget_reject(request, pk):
    budget = get_object_or_404(_budget_queryset(), pk=pk)
    if budget.is_accepted:
        return Response({'error': 'An accepted budget cannot be rejected'}, status=status.HTTP_400_BAD_REQUEST)
    budget.status = 'rejected'
    if request.data.get('reason'):
        budget.general_notes = f"{budget.general_notes}\nRejected: {request.data['reason']}".strip()
    budget.save(update_fields=['status', 'general_notes', 'updated_at'])
    create_audit_log(request=request, action='update', model_name='Budget', object_id=budget.id,
                     object_name=budget.property_address, changes={'status': 'rejected'})
    return Response(BudgetSerializer(budget).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def budget_payment_proof(request, pk):
    """Record the initial payment: Income + bank deposit"""
    serializer = PaymentProofSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        with transaction.atomic():
            budget = get_object_or_404(Budget.objects.select_for_update(), pk=pk)
            if budget.initial_payment_received:
                return Response({'error': 'Initial payment already recorded for this budget'},
                                status=status.HTTP_409_CONFLICT)
            payment_date = data.get('date') or timezone.localdate()
            income = Income.objects.create(
                work=Work.objects.filter(budget=budget).first(),
                amount=data['amount'],
                date=payment_date,
                type_income='Factura Pago Inicial Budget',
                payment_method=data['payment_method'],
                payment_details=data.get('payment_details', ''),
                notes=f"Initial payment for budget #{budget.invoice_number or budget.pk}",
                staff=request.user,
            )
            create_deposit_for_income(income, user=request.user)

            budget.payment_proof_amount = data['amount']
            budget.payment_proof_method = data['payment_method']
            budget.payment_proof_date = payment_date
            budget.save(update_fields=['payment_proof_amount', 'payment_proof_method', 'payment_proof_date',
                                       'updated_at'])
    except BankingError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action='payment_add', model_name='Budget', object_id=budget.id,
                     object_name=budget.property_address,
                     changes={'amount': str(data['amount']), 'payment_method': data['payment_method'],
                              'income_id': income.id})
    return Response({
        'budget': BudgetSerializer(_budget_queryset().get(pk=budget.pk)).data,
        'income_id': income.id,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def budget_pdf(request, pk):
    budget = get_object_or_404(_budget_queryset(), pk=pk)
    inline = request.query_params.get('inline', 'false').lower() == 'true'
    return _pdf_response(render_budget_pdf(budget), f"budget_{budget.invoice_number or budget.pk}.pdf", inline)


# Final invoice views
def _create_final_invoice(work, user, data):
    budget = work.budget
    with transaction.atomic():
        Work.objects.select_for_update().get(pk=work.pk)
        if FinalInvoice.objects.filter(work=work).exists():
            return None

        initial_payment_made = budget.payment_proof_amount if budget.initial_payment_received else budget.initial_payment
        invoice = FinalInvoice.objects.create(
            work=work,
            budget=budget,
            invoice_number=get_next_invoice_number(),
            invoice_date=data.get('invoice_date') or timezone.localdate(),
            original_budget_total=budget.total_price,
            initial_payment_made=initial_payment_made or Decimal('0.00'),
            discount=data['discount'],
            discount_reason=data.get('discount_reason') or '',
            notes=data.get('notes') or '',
        )

        change_orders = list(work.change_orders.filter(status='approved'))
        for change_order in change_orders:
            WorkExtraItem.objects.create(
                final_invoice=invoice,
                description=f"{change_order.change_order_number}: {change_order.item_description or change_order.description}",
                quantity=Decimal('1.00'),
                unit_price=change_order.total_cost,
                change_order=change_order,
            )
        ChangeOrder.objects.filter(pk__in=[c.pk for c in change_orders]).update(status='invoiced')

        invoice.recalculate()
        WorkNote.objects.create(
            work=work,
            staff=user,
            note_type='payment',
            priority='medium',
            message=f"Final invoice #{invoice.invoice_number} created. Amount due: ${invoice.final_amount_due:,.2f}",
        )
    return invoice


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def work_final_invoice(request, pk):
    """Get or create the final invoice of a work"""
    work = get_object_or_404(Work.objects.select_related('budget', 'permit'), pk=pk)

    if request.method == 'GET':
        invoice = FinalInvoice.objects.filter(work=work).prefetch_related('extra_items').first()
        if invoice is None:
            return Response({'error': 'This work has no final invoice'}, status=status.HTTP_404_NOT_FOUND)
        return Response(FinalInvoiceSerializer(invoice).data)

    if FinalInvoice.objects.filter(work=work).exists():
        return Response({'error': 'A final invoice already exists for this work'}, status=status.HTTP_409_CONFLICT)
    if work.budget is None or not work.budget.is_accepted:
        return Response({'error': 'The work budget must be approved or signed before invoicing'},
                        status=status.HTTP_400_BAD_REQUEST)
    serializer = FinalInvoiceCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    invoice = _create_final_invoice(work, request.user, serializer.validated_data)
    if invoice is None:
        return Response({'error': 'A final invoice already exists for this work'}, status=status.HTTP_409_CONFLICT)

    create_audit_log(request=request, action='invoice_create', model_name='FinalInvoice', object_id=invoice.id,
                     object_name=work.property_address, object_reference=str(invoice.invoice_number),
                     changes={'final_amount_due': str(invoice.final_amount_due)})
    return Response(FinalInvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)


def _mark_invoice_paid(invoice, user, payment_method, request=None):
    """Book the final payment and advance the work when it waits on it"""
    income = None
    if payment_method and invoice.final_amount_due > 0:
        income = Income.objects.create(
            work=invoice.work,
            amount=invoice.final_amount_due,
            date=invoice.payment_date,
            type_income='Factura Pago Final Budget',
            payment_method=payment_method,
            notes=f"Final invoice #{invoice.invoice_number}",
            staff=user,
        )
        create_deposit_for_income(income, user=user)

    if invoice.work.status == 'invoiceFinal':
        change_work_status(invoice.work, 'paymentReceived', user=user,
                           reason=f"Final invoice #{invoice.invoice_number} paid", request=request)
    return income


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def final_invoice_detail(request, pk):
    """Retrieve or update discount/notes/status of a final invoice"""
    invoice = get_object_or_404(FinalInvoice.objects.select_related('work', 'budget'), pk=pk)

    if request.method == 'GET':
        return Response(FinalInvoiceSerializer(invoice).data)

    serializer = FinalInvoiceUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    if invoice.status == 'paid' and ('discount' in data or data.get('status') not in (None, 'paid')):
        return Response({'error': 'A paid invoice cannot be modified'}, status=status.HTTP_400_BAD_REQUEST)

    becoming_paid = data.get('status') == 'paid' and invoice.status != 'paid'
    income = None
    try:
        with transaction.atomic():
            for field in ('discount', 'discount_reason', 'notes', 'payment_notes'):
                if field in data:
                    setattr(invoice, field, data[field])
            if 'status' in data:
                invoice.status = data['status']
            if becoming_paid:
                invoice.payment_date = data.get('payment_date') or timezone.localdate()
            invoice.save()
            invoice.recalculate()
            if becoming_paid:
                income = _mark_invoice_paid(invoice, request.user, data.get('payment_method'), request=request)
    except BankingError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except StatusChangeError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action='payment_add' if becoming_paid else 'invoice_update',
                     model_name='FinalInvoice', object_id=invoice.id, object_name=invoice.work.property_address,
                     object_reference=str(invoice.invoice_number),
                     changes={k: str(v) for k, v in data.items()})
    invoice.refresh_from_db()
    response = FinalInvoiceSerializer(invoice).data
    if income is not None:
        response['income_id'] = income.id
    return Response(response)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def final_invoice_extra_items(request, pk):
    """Add an extra item and recalculate the amount due"""
    invoice = get_object_or_404(FinalInvoice, pk=pk)
    if invoice.status in ('paid', 'cancelled'):
        return Response({'error': f"Cannot add items to a {invoice.status} invoice"},
                        status=status.HTTP_400_BAD_REQUEST)
    serializer = WorkExtraItemSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    with transaction.atomic():
        item = serializer.save(final_invoice=invoice)
        invoice.recalculate()
    return Response({
        'item': WorkExtraItemSerializer(item).data,
        'invoice': FinalInvoiceSerializer(invoice).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def final_invoice_extra_item_detail(request, pk):
    item = get_object_or_404(WorkExtraItem.objects.select_related('final_invoice'), pk=pk)
    invoice = item.final_invoice
    if invoice.status in ('paid', 'cancelled'):
        return Response({'error': f"Cannot change items of a {invoice.status} invoice"},
                        status=status.HTTP_400_BAD_REQUEST)

    if request.method == 'PATCH':
        serializer = WorkExtraItemSerializer(item, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        with transaction.atomic():
            item = serializer.save()
            invoice.recalculate()
        return Response({
            'item': WorkExtraItemSerializer(item).data,
            'invoice': FinalInvoiceSerializer(invoice).data,
        })

    with transaction.atomic():
        if item.change_order_id:
            ChangeOrder.objects.filter(pk=item.change_order_id, status='invoiced').update(status='approved')
        item.delete()
        invoice.recalculate()
    return Response({'invoice': FinalInvoiceSerializer(invoice).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def final_invoice_pdf(request, pk):
    invoice = get_object_or_404(FinalInvoice.objects.select_related('work', 'work__budget', 'work__permit'), pk=pk)
    return _pdf_response(render_final_invoice_pdf(invoice), f"final_invoice_{invoice.invoice_number}.pdf")


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def final_invoice_preview(request, pk):
    invoice = get_object_or_404(FinalInvoice.objects.select_related('work', 'work__budget', 'work__permit'), pk=pk)
    return _pdf_response(render_final_invoice_pdf(invoice), f"final_invoice_{invoice.invoice_number}.pdf",
                         inline=True)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def final_invoice_email(request, pk):
    """Email the invoice PDF to the applicant and any extra recipients"""
    invoice = get_object_or_404(FinalInvoice.objects.select_related('work', 'work__budget', 'work__permit'), pk=pk)
    work = invoice.work

    extra = request.data.get('recipients') or []
    if isinstance(extra, str):
        extra = [r for r in extra.split(',')]
    recipients = ([work.applicant_email] if work.applicant_email else []) + list(extra)
    if not any(r and r.strip() for r in recipients):
        return Response({'error': 'No recipients: the applicant has no email and none were given'},
                        status=status.HTTP_400_BAD_REQUEST)

    pdf = render_final_invoice_pdf(invoice)
    body = request.data.get('message') or (
        f"Dear {work.applicant_name},\n\n"
        f"Please find attached final invoice #{invoice.invoice_number} for {work.property_address}.\n"
        f"Amount due: ${invoice.final_amount_due:,.2f}\n"
    )
    try:
        sent_to = send_document_email(
            f"Final invoice #{invoice.invoice_number} - {work.property_address}", body, recipients,
            attachments=[(f"final_invoice_{invoice.invoice_number}.pdf", pdf, 'application/pdf')],
        )
    except Exception as e:
        logger.error(f"Failed to email final invoice {invoice.id}: {str(e)}")
        return Response({'error': f'Email could not be sent: {str(e)}'}, status=status.HTTP_502_BAD_GATEWAY)

    invoice.email_sent_at = timezone.now()
    invoice.save(update_fields=['email_sent_at', 'updated_at'])
    create_audit_log(request=request, action='invoice_email', model_name='FinalInvoice', object_id=invoice.id,
                     object_name=work.property_address, object_reference=str(invoice.invoice_number),
                     changes={'recipients': sent_to})
    return Response({'message': 'Invoice sent', 'recipients': sent_to})


# Budget item catalog views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def budget_item_list_create(request):
    """Catalog items (?active=true&category=&search=) or add one, optionally with an image"""
    if request.method == 'GET':
        filterset = BudgetItemFilter(request.query_params, queryset=BudgetItem.objects.all())
        items = filterset.qs.order_by('category', 'name')
        return Response(BudgetItemSerializer(items, many=True, context={'request': request}).data)

    serializer = BudgetItemSerializer(data=request.data, context={'request': request})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    item = serializer.save()
    logger.info(f"Budget item {item.category}/{item.name} added at ${item.unit_price}")
    create_audit_log(request=request, action='create', model_name='BudgetItem', object_id=item.id,
                     object_name=item.name, changes={'unit_price': str(item.unit_price)})
    return Response(BudgetItemSerializer(item, context={'request': request}).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def budget_item_detail(request, pk):
    item = get_object_or_404(BudgetItem, pk=pk)

    if request.method == 'GET':
        return Response(BudgetItemSerializer(item, context={'request': request}).data)
    elif request.method in ('PUT', 'PATCH'):
        old_price = item.unit_price
        serializer = BudgetItemSerializer(item, data=request.data, partial=(request.method == 'PATCH'),
                                          context={'request': request})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        if 'image' in serializer.validated_data and item.image:
            item.image.delete(save=False)
        item = serializer.save()
        create_audit_log(request=request, action='update', model_name='BudgetItem', object_id=item.id,
                         object_name=item.name,
                         changes={'unit_price': [str(old_price), str(item.unit_price)]})
        return Response(BudgetItemSerializer(item, context={'request': request}).data)
    else:  # DELETE
        if item.line_items.exists():
            return Response({'error': 'Budget item is used by existing budgets; deactivate it instead'},
                            status=status.HTTP_409_CONFLICT)
        item_id = item.id
        if item.image:
            item.image.delete(save=False)
        item.delete()
        create_audit_log(request=request, action='delete', model_name='BudgetItem', object_id=item_id,
                         object_name=item.name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def budget_item_toggle(request, pk):
    """Activate or deactivate a catalog item; inactive items cannot be added to budgets"""
    item = get_object_or_404(BudgetItem, pk=pk)
    item.is_active = not item.is_active
    item.save(update_fields=['is_active', 'updated_at'])
    return Response(BudgetItemSerializer(item, context={'request': request}).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def budget_item_categories(request):
    rows = (
        BudgetItem.objects.values('category')
        .annotate(count=Count('id'), active_count=Count('id', filter=Q(is_active=True)))
        .order_by('category')
    )
    return Response(list(rows))


# Budget note views
def _can_edit_note(user, note):
    return note.staff_id == user.id or is_admin_user(user)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def budget_note_list_create(request, pk):
    """Follow-up notes of a budget; @name in the message mentions staff members"""
    budget = get_object_or_404(Budget, pk=pk)

    if request.method == 'GET':
        notes = budget.notes.select_related('staff').prefetch_related('mentioned_staff')
        note_type = request.query_params.get('note_type')
        if note_type and note_type != 'all':
            notes = notes.filter(note_type=note_type)
        priority = request.query_params.get('priority')
        if priority and priority != 'all':
            notes = notes.filter(priority=priority)
        if request.query_params.get('unresolved') == 'true':
            notes = notes.filter(is_resolved=False)
        return Response(BudgetNoteSerializer(notes, many=True).data)

    serializer = BudgetNoteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    note = serializer.save(budget=budget, staff=request.user, related_status=budget.status)
    mentioned = resolve_mentions(note.message, exclude=request.user)
    note.mentioned_staff.set(mentioned)
    if note.mentioned_staff.exists():
        logger.info(f"Budget note {note.id} on budget {budget.id} mentions "
                    f"{', '.join(u.username for u in note.mentioned_staff.all())}")
    return Response(BudgetNoteSerializer(note).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def budget_note_detail(request, pk):
    note = get_object_or_404(BudgetNote.objects.select_related('budget', 'staff'), pk=pk)

    if request.method == 'GET':
        return Response(BudgetNoteSerializer(note).data)
    if not _can_edit_note(request.user, note):
        return Response({'error': 'Only the author or an admin can change this note'},
                        status=status.HTTP_403_FORBIDDEN)
    if request.method == 'PATCH':
        serializer = BudgetNoteSerializer(note, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        note = serializer.save()
        if 'message' in serializer.validated_data:
            note.mentioned_staff.set(resolve_mentions(note.message, exclude=note.staff))
        return Response(BudgetNoteSerializer(note).data)
    else:  # DELETE
        note.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def budget_note_stats(request, pk):
    budget = get_object_or_404(Budget, pk=pk)
    notes = budget.notes.all()
    by_type = {row['note_type']: row['count'] for row in notes.values('note_type').annotate(count=Count('id'))}
    last_note = notes.select_related('staff').order_by('-created_at', '-id').first()
    return Response({
        'budget_id': budget.id,
        'total_notes': notes.count(),
        'by_type': by_type,
        'unresolved_problems': notes.filter(note_type='problem', is_resolved=False).count(),
        'last_note': BudgetNoteSerializer(last_note).data if last_note else None,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def budget_note_alerts(request):
    """Unresolved high/urgent budget notes and notes mentioning the current user"""
    notes = BudgetNote.objects.filter(is_resolved=False).filter(
        Q(priority__in=['high', 'urgent']) | Q(mentioned_staff=request.user)
    ).select_related('budget', 'staff').distinct().order_by('-created_at')
    return Response(BudgetNoteSerializer(notes, many=True).data)
