"""Point-of-sale blueprint: cart operations and checkout."""
from flask import Blueprint, current_app, jsonify, request, session

from docegestao.domain import PaymentMethod
from docegestao.exceptions import BusinessLogicError, NotFoundError
from docegestao.middleware import require_login
from docegestao.services.cart_service import load_cart, save_cart
from docegestao.services.store_service import get_store, search_products

pos_bp = Blueprint('pos', __name__, url_prefix='/pos')


def _payload() -> dict:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def _product_id(payload: dict) -> str:
    product_id = payload.get('product_id')
    if product_id in (None, ''):
        raise BusinessLogicError('Falta o ID do produto')
    return str(product_id)


def _payment_method(value):
    if value in (None, ''):
        return None
    try:
        return PaymentMethod(value)
    except ValueError:
        raise BusinessLogicError(f'Forma de pagamento inválida: {value}')


def _cart_response(cart, **extra):
    data = {'status': 'ok', 'cart': cart.summary()}
    data.update(extra)
    return jsonify(data)


@pos_bp.route('/products', methods=['GET'])
@require_login
def products():
    """Products available to sell, filtered by ?q= on name or category."""
    found = search_products(get_store().products, request.args.get('q'))
    return jsonify({'products': [p.to_dict() for p in found]})


@pos_bp.route('/cart', methods=['GET'])
@require_login
def cart_view():
    return _cart_response(load_cart(session))


@pos_bp.route('/cart/add', methods=['POST'])
@require_login
def cart_add():
    """Add one unit; a product out of stock or at its ceiling is left as is."""
    product_id = _product_id(_payload())
    product = get_store().get_product(product_id)
    if product is None:
        raise NotFoundError('Produto não encontrado.')

    cart = load_cart(session)
    changed = cart.add_item(product)
    save_cart(session, cart)
    current_app.logger.info(f"[cart_add] product_id={product_id}, changed={changed}, items={len(cart)}")
    return _cart_response(cart, changed=changed)


@pos_bp.route('/cart/update', methods=['POST'])
@require_login
def cart_update():
    payload = _payload()
    product_id = _product_id(payload)
    try:
        delta = int(payload.get('delta', 0))
    except (TypeError, ValueError):
        raise BusinessLogicError('Quantidade inválida')

    cart = load_cart(session)
    changed = cart.change_quantity(product_id, delta, get_store().products)
    save_cart(session, cart)
    return _cart_response(cart, changed=changed)


@pos_bp.route('/cart/remove', methods=['POST'])
@require_login
def cart_remove():
    product_id = _product_id(_payload())
    cart = load_cart(session)
    changed = cart.remove_item(product_id)
    save_cart(session, cart)
    return _cart_response(cart, changed=changed)


@pos_bp.route('/cart/form', methods=['POST'])
@require_login
def cart_form():
    """Update the checkout form fields kept with the cart."""
    payload = _payload()
    cart = load_cart(session)
    method = _payment_method(payload.get('payment_method'))
    if method is not None:
        cart.payment_method = method
    if 'observation' in payload:
        cart.observation = str(payload.get('observation') or '')
    if 'delivery_cost' in payload:
        cart.delivery_cost = str(payload.get('delivery_cost') or '')
    save_cart(session, cart)
    return _cart_response(cart)


@pos_bp.route('/checkout', methods=['POST'])
@require_login
def checkout():
    """
    Finalize the cart into a sale.

    Body fields override the stored form fields. An empty cart, or one
    holding more units than are left in stock, changes nothing and answers
    400; the session cart is only saved once the sale is recorded.
    """
    payload = _payload()
    cart = load_cart(session)
    delivery_cost = payload.get('delivery_cost')
    sale = cart.checkout(
        payment_method=_payment_method(payload.get('payment_method')),
        observation=payload.get('observation'),
        delivery_cost=str(delivery_cost) if delivery_cost is not None else None,
    )
    if sale is None:
        raise BusinessLogicError('O carrinho está vazio.')

    get_store().complete_sale(sale)
    save_cart(session, cart)
    current_app.logger.info(f"[checkout] sale={sale.id} total={sale.total} method={sale.payment_method.value}")
    return jsonify({'status': 'ok', 'sale': sale.to_dict(), 'cart': cart.summary()}), 201
