"""Payment methods shared by incomes, expenses and supplier payments"""

CAP_TRABAJOS = 'Cap Trabajos Septic'
CAP_PROYECTOS = 'Capital Proyectos Septic'
CHASE_BANK = 'Chase Bank'
AMEX = 'AMEX'
CHASE_CREDIT = 'Chase Credit Card'
CHEQUE = 'Cheque'
TRANSFERENCIA = 'Transferencia Bancaria'
EFECTIVO = 'Efectivo'
ZELLE = 'Zelle'
TARJETA_DEBITO = 'Tarjeta Débito'
PAYPAL = 'PayPal'
OTRO = 'Otro'

PAYMENT_METHODS = [
    {'value': CAP_TRABAJOS, 'label': 'Cap de Trabajos Septic', 'type': 'bank'},
    {'value': CAP_PROYECTOS, 'label': 'Capital de Proyectos Septic', 'type': 'bank'},
    {'value': CHASE_BANK, 'label': 'Chase Bank', 'type': 'bank'},
    {'value': AMEX, 'label': 'AMEX', 'type': 'credit_card'},
    {'value': CHASE_CREDIT, 'label': 'Chase Credit Card', 'type': 'credit_card'},
    {'value': CHEQUE, 'label': 'Cheque', 'type': 'other'},
    {'value': TRANSFERENCIA, 'label': 'Transferencia Bancaria', 'type': 'transfer'},
    {'value': EFECTIVO, 'label': 'Efectivo', 'type': 'cash'},
    {'value': ZELLE, 'label': 'Zelle', 'type': 'digital'},
    {'value': TARJETA_DEBITO, 'label': 'Tarjeta Débito', 'type': 'debit_card'},
    {'value': PAYPAL, 'label': 'PayPal', 'type': 'digital'},
    {'value': OTRO, 'label': 'Otro', 'type': 'other'},
]

PAYMENT_METHOD_CHOICES = [(m['value'], m['label']) for m in PAYMENT_METHODS]
PAYMENT_METHOD_VALUES = [m['value'] for m in PAYMENT_METHODS]

INCOME_TYPES = [
    ('Factura Pago Inicial Budget', 'Initial Budget Payment'),
    ('Factura Pago Final Budget', 'Final Invoice Payment'),
    ('Comprobante Ingreso', 'Income Receipt'),
]

EXPENSE_TYPES = [
    ('Materiales', 'Materials'),
    ('Materiales Iniciales', 'Initial Materials'),
    ('Diseño', 'Design'),
    ('Workers', 'Workers'),
    ('Imprevistos', 'Unforeseen'),
    ('Fee de Inspección', 'Inspection Fee'),
    ('Inspección Inicial', 'First Inspection'),
    ('Inspección Final', 'Final Inspection'),
    ('Comprobante Gasto', 'Expense Receipt'),
    ('Gastos Generales', 'General Expenses'),
    ('Comisión Vendedor', 'Sales Commission'),
    ('Gasto Fijo', 'Fixed Expense'),
]

FIXED_EXPENSE_FREQUENCIES = [
    ('weekly', 'Weekly'),
    ('biweekly', 'Biweekly'),
    ('monthly', 'Monthly'),
    ('quarterly', 'Quarterly'),
    ('semiannual', 'Semiannual'),
    ('annual', 'Annual'),
    ('one_time', 'One time'),
]

FIXED_EXPENSE_CATEGORIES = [
    ('Renta', 'Rent'),
    ('Servicios', 'Utilities'),
    ('Seguros', 'Insurance'),
    ('Salarios', 'Salaries'),
    ('Equipamiento', 'Equipment'),
    ('Software/Subscripciones', 'Software / Subscriptions'),
    ('Mantenimiento Vehicular', 'Vehicle Maintenance'),
    ('Combustible', 'Fuel'),
    ('Impuestos', 'Taxes'),
    ('Contabilidad/Legal', 'Accounting / Legal'),
    ('Marketing', 'Marketing'),
    ('Telefonía', 'Phone'),
    ('Otros', 'Other'),
]
