"""Inventory blueprint: product editor and image upload."""
import uuid
from dataclasses import replace
from typing import Optional

from flask import Blueprint, current_app, jsonify, request

from docegestao.domain import Product
from docegestao.exceptions import BusinessLogicError, NotFoundError
from docegestao.middleware import require_login
from docegestao.services.data_service import get_data_service
from docegestao.services.store_service import get_store, search_products
from docegestao.utils.number_format import parse_money

inventory_bp = Blueprint('inventory', __name__, url_prefix='/inventory')

DEFAULT_CATEGORY = 'Doces'


def _parse_stock(value) -> int:
    try:
        stock = int(str(value).strip() or 0)
    except (TypeError, ValueError):
        raise BusinessLogicError('Estoque inválido')
    if stock < 0:
        raise BusinessLogicError('O estoque não pode ser negativo')
    return stock


def _text(payload: dict, key: str) -> str:
    return str(payload.get(key) or '').strip()


def _product_from_payload(payload: dict, base: Optional[Product] = None) -> Product:
    """
    Build a product from the editor fields.

    With a base product only the fields present in the payload change.
    """
    changes = {}
    if base is None or 'name' in payload:
        name = _text(payload, 'name')
        if not name:
            raise BusinessLogicError('O nome do produto é obrigatório')
        changes['name'] = name
    if base is None or 'category' in payload:
        changes['category'] = _text(payload, 'category') or DEFAULT_CATEGORY
    try:
        for money_field, label in (('price', 'preço'), ('cost', 'custo')):
            if money_field in payload:
                changes[money_field] = parse_money(payload.get(money_field), label)
            elif base is None and money_field == 'price':
                raise BusinessLogicError('O campo preço é obrigatório')
    except ValueError as e:
        raise BusinessLogicError(str(e))
    if 'stock' in payload:
        changes['stock'] = _parse_stock(payload.get('stock'))
    if 'image_url' in payload:
        changes['image_url'] = _text(payload, 'image_url') or None

    if base is None:
        return Product(id=str(uuid.uuid4()), **changes)
    return replace(base, **changes)


def _payload() -> dict:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


@inventory_bp.route('/products', methods=['GET'])
@require_login
def list_products():
    found = search_products(get_store().products, request.args.get('q'))
    return jsonify({'products': [p.to_dict() for p in found]})


@inventory_bp.route('/products', methods=['POST'])
@require_login
def create_product():
    product = _product_from_payload(_payload())
    get_store().add_product(product)
    current_app.logger.info(f"[inventory] created product {product.id} '{product.name}'")
    return jsonify({'status': 'ok', 'product': product.to_dict()}), 201


@inventory_bp.route('/products/<product_id>', methods=['PUT', 'PATCH'])
@require_login
def update_product(product_id):
    store = get_store()
    current = store.get_product(product_id)
    if current is None:
        raise NotFoundError('Produto não encontrado.')
    product = _product_from_payload(_payload(), base=current)
    store.update_product(product)
    return jsonify({'status': 'ok', 'product': product.to_dict()})


@inventory_bp.route('/products/<product_id>', methods=['DELETE'])
@require_login
def delete_product(product_id):
    get_store().delete_product(product_id)
    current_app.logger.info(f"[inventory] deleted product {product_id}")
    return jsonify({'status': 'ok'})


@inventory_bp.route('/images', methods=['POST'])
@require_login
def upload_image():
    """
    Upload a product image (remote mode only).

    Returns the public URL for the editor's image_url field. Local mode and
    bucket permission problems answer with an UploadError message.
    """
    file = request.files.get('image') or request.files.get('file')
    if file is None or not file.filename:
        raise BusinessLogicError('Nenhum arquivo enviado')
    url = get_data_service().upload_image(file)
    return jsonify({'status': 'ok', 'url': url}), 201
