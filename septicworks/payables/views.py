import json
import logging
from decimal import Decimal

from django.db.models import Sum, Count
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from septicworks.banking.services import BankingError
from septicworks.core.permissions import IsFinanceStaff
from septicworks.core.utils import create_audit_log, paginate_queryset
from . import services
from .filters import SupplierInvoiceFilter
from .models import SupplierInvoice
from .serializers import SupplierInvoiceSerializer, SupplierInvoiceItemInputSerializer, PaymentSerializer

logger = logging.getLogger(__name__)


def _invoice_queryset():
    return SupplierInvoice.objects.select_related('created_by').prefetch_related('items', 'items__work',
                                                                                 'items__related_expense')


def _split_items(request, default):
    data = request.data.copy() if hasattr(request.data, 'copy') else dict(request.data)
    if 'items' not in data:
        return data, default
    items = data.pop('items')
    if hasattr(request.data, 'getlist'):
        items = items[0] if isinstance(items, list) and len(items) == 1 else items
    if isinstance(items, str):
        try:
            items = json.loads(items)
        except ValueError:
            items = None
    return data, items


def _validate_items(items_data):
    if not isinstance(items_data, list) or not items_data:
        return None, {'items': 'At least one item is required.'}
    item_serializer = SupplierInvoiceItemInputSerializer(data=items_data, many=True)
    if not item_serializer.is_valid():
        return None, {'items': item_serializer.errors}
    expense_ids = [item['expense'].pk for item in item_serializer.validated_data if item.get('expense')]
    if len(expense_ids) != len(set(expense_ids)):
        return None, {'items': 'The same expense cannot be linked twice.'}
    return item_serializer.validated_data, None


def _duplicate_exists(vendor, invoice_number, exclude_pk=None):
    queryset = SupplierInvoice.objects.filter(vendor__iexact=vendor, invoice_number__iexact=invoice_number)
    if exclude_pk:
        queryset = queryset.exclude(pk=exclude_pk)
    return queryset.exists()


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def supplier_invoice_list_create(request):
    """List supplier invoices or register a new one with its items"""
    if request.method == 'GET':
        filterset = SupplierInvoiceFilter(request.query_params, queryset=_invoice_queryset())
        queryset = filterset.qs.order_by('-issue_date', '-id')
        return Response(paginate_queryset(request, queryset, SupplierInvoiceSerializer))

    data, items_data = _split_items(request, None)
    serializer = SupplierInvoiceSerializer(data=data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    items, errors = _validate_items(items_data)
    if errors:
        return Response(errors, status=status.HTTP_400_BAD_REQUEST)

    validated = serializer.validated_data
    if _duplicate_exists(validated['vendor'], validated['invoice_number']):
        return Response({'error': f"Invoice {validated['invoice_number']} from {validated['vendor']} already exists"},
                        status=status.HTTP_409_CONFLICT)

    try:
        invoice = services.create_invoice(validated, items, user=request.user)
    except services.PayablesError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action='create', model_name='SupplierInvoice', object_id=invoice.id,
                     object_name=invoice.vendor, object_reference=invoice.invoice_number,
                     changes={'total_amount': str(invoice.total_amount), 'items': len(items)})
    return Response(SupplierInvoiceSerializer(_invoice_queryset().get(pk=invoice.pk)).data,
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def supplier_invoice_detail(request, pk):
    invoice = get_object_or_404(_invoice_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(SupplierInvoiceSerializer(invoice).data)
    elif request.method in ('PUT', 'PATCH'):
        if invoice.payment_status == 'paid':
            return Response({'error': 'A paid invoice cannot be modified'}, status=status.HTTP_400_BAD_REQUEST)
        data, items_data = _split_items(request, None)
        serializer = SupplierInvoiceSerializer(invoice, data=data, partial=(request.method == 'PATCH'))
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        items = None
        if items_data is not None:
            items, errors = _validate_items(items_data)
            if errors:
                return Response(errors, status=status.HTTP_400_BAD_REQUEST)

        validated = serializer.validated_data
        if _duplicate_exists(validated.get('vendor', invoice.vendor),
                             validated.get('invoice_number', invoice.invoice_number), exclude_pk=invoice.pk):
            return Response({'error': 'Another invoice with this vendor and number already exists'},
                            status=status.HTTP_409_CONFLICT)
        try:
            invoice = services.update_invoice(invoice, validated, items=items, user=request.user)
        except services.PayablesError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='update', model_name='SupplierInvoice', object_id=invoice.id,
                         object_name=invoice.vendor, object_reference=invoice.invoice_number,
                         changes={'items_replaced': items is not None})
        return Response(SupplierInvoiceSerializer(_invoice_queryset().get(pk=invoice.pk)).data)
    else:  # DELETE
        invoice_id = invoice.id
        try:
            services.delete_invoice(invoice)
        except services.PayablesError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='delete', model_name='SupplierInvoice', object_id=invoice_id,
                         object_name=invoice.vendor, object_reference=invoice.invoice_number)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def supplier_invoice_pay(request, pk):
    """Register a (partial) payment"""
    invoice = get_object_or_404(SupplierInvoice, pk=pk)
    serializer = PaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        invoice, bank_transaction = services.register_payment(
            invoice, data['amount'], data['payment_method'], payment_date=data.get('payment_date'),
            payment_details=data.get('payment_details', ''), notes=data.get('notes', ''), user=request.user,
        )
    except (services.PayablesError, BankingError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'message': 'Payment registered',
        'invoice': SupplierInvoiceSerializer(_invoice_queryset().get(pk=invoice.pk)).data,
        'bank_transaction_id': bank_transaction.id if bank_transaction else None,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
@parser_classes([MultiPartParser, FormParser])
def supplier_invoice_upload(request, pk):
    """Attach the vendor's invoice document"""
    invoice = get_object_or_404(SupplierInvoice, pk=pk)
    upload = request.FILES.get('file') or request.FILES.get('invoice_file')
    if upload is None:
        return Response({'error': 'No file uploaded'}, status=status.HTTP_400_BAD_REQUEST)
    if invoice.invoice_file:
        invoice.invoice_file.delete(save=False)
    invoice.invoice_file = upload
    invoice.save(update_fields=['invoice_file', 'updated_at'])
    return Response(SupplierInvoiceSerializer(invoice).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def accounts_payable(request):
    """Open invoices with totals grouped by vendor"""
    invoices = list(_invoice_queryset().filter(payment_status__in=SupplierInvoice.OPEN_STATUSES)
                    .order_by('due_date', 'id'))

    by_vendor = {}
    for invoice in invoices:
        group = by_vendor.setdefault(invoice.vendor, {
            'vendor': invoice.vendor, 'total_amount': Decimal('0.00'), 'invoice_count': 0, 'invoices': [],
        })
        group['total_amount'] += invoice.outstanding_amount
        group['invoice_count'] += 1
        group['invoices'].append(invoice.id)

    overdue = [invoice for invoice in invoices if invoice.is_overdue]
    return Response({
        'total_payable': sum((i.outstanding_amount for i in invoices), Decimal('0.00')),
        'total_invoices': len(invoices),
        'overdue_count': len(overdue),
        'overdue_amount': sum((i.outstanding_amount for i in overdue), Decimal('0.00')),
        'by_vendor': sorted(by_vendor.values(), key=lambda g: g['total_amount'], reverse=True),
        'invoices': SupplierInvoiceSerializer(invoices, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def payment_history(request):
    """Paid invoices, optionally within a payment date range and for one vendor"""
    queryset = _invoice_queryset().filter(payment_status='paid')
    date_from = request.query_params.get('date_from')
    date_to = request.query_params.get('date_to')
    vendor = request.query_params.get('vendor')
    if date_from:
        queryset = queryset.filter(payment_date__gte=date_from)
    if date_to:
        queryset = queryset.filter(payment_date__lte=date_to)
    if vendor:
        queryset = queryset.filter(vendor__icontains=vendor)
    queryset = queryset.order_by('-payment_date', '-id')

    return Response({
        'total_paid': queryset.aggregate(total=Sum('paid_amount'))['total'] or Decimal('0.00'),
        'invoice_count': queryset.count(),
        'invoices': SupplierInvoiceSerializer(queryset, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def vendor_list(request):
    """Distinct vendors with invoiced and paid totals"""
    vendors = (
        SupplierInvoice.objects.values('vendor')
        .annotate(invoice_count=Count('id'), total_invoiced=Sum('total_amount'), total_paid=Sum('paid_amount'))
        .order_by('vendor')
    )
    search = request.query_params.get('search')
    if search:
        vendors = vendors.filter(vendor__icontains=search)
    results = [
        dict(row, outstanding=(row['total_invoiced'] or Decimal('0.00')) - (row['total_paid'] or Decimal('0.00')))
        for row in vendors
    ]
    return Response({'vendors': results, 'count': len(results), 'generated_at': timezone.now()})
