"""Dashboard blueprint: sales summary, chart series and pending sale resolution."""
from flask import Blueprint, current_app, jsonify, request

from docegestao.domain import DateRange, PaymentFilter, PaymentMethod
from docegestao.exceptions import BusinessLogicError, NotFoundError
from docegestao.middleware import require_login
from docegestao.services.dashboard_service import (
    aggregate_sales, is_low_stock_alert, low_stock_products
)
from docegestao.services.store_service import get_store

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/dashboard')


def _enum_arg(enum_cls, name, default):
    value = request.args.get(name) or default.value
    try:
        return enum_cls(value)
    except ValueError:
        raise BusinessLogicError(f'Filtro inválido para {name}: {value}')


@dashboard_bp.route('/')
@require_login
def index():
    """
    Dashboard data for ?range=today|week|month|all and
    ?payment=all|cash|card|pix|ifood|pending (defaults: week, all).
    """
    date_range = _enum_arg(DateRange, 'range', DateRange.WEEK)
    payment_filter = _enum_arg(PaymentFilter, 'payment', PaymentFilter.ALL)
    threshold = current_app.config.get('LOW_STOCK_THRESHOLD', 5)
    alert_count = current_app.config.get('LOW_STOCK_ALERT_COUNT', 5)

    store = get_store()
    products = store.products
    summary = aggregate_sales(store.sales, date_range, payment_filter)
    low_stock = low_stock_products(products, threshold)

    data = summary.to_dict()
    data.update({
        'range': date_range.value,
        'payment': payment_filter.value,
        'low_stock_products': [p.to_dict() for p in low_stock],
        'low_stock_count': len(low_stock),
        'low_stock_alert': is_low_stock_alert(products, threshold, alert_count),
    })
    return jsonify(data)


@dashboard_bp.route('/sales/<sale_id>/resolve', methods=['POST'])
@require_login
def resolve_sale(sale_id):
    """Settle a pending (fiado) sale. Already settled sales are left untouched."""
    payload = request.get_json(silent=True) if request.is_json else request.form.to_dict()
    method_value = (payload or {}).get('payment_method', '')
    try:
        method = PaymentMethod(method_value)
    except ValueError:
        raise BusinessLogicError(f'Forma de pagamento inválida: {method_value}')

    store = get_store()
    if store.get_sale(sale_id) is None:
        raise NotFoundError('Venda não encontrada.')
    if not store.resolve_pending_sale(sale_id, method):
        raise BusinessLogicError('Esta venda não está pendente ou a forma de pagamento é inválida.')
    return jsonify({'status': 'ok', 'sale': store.get_sale(sale_id).to_dict()})
