"""Assistant blueprint: store insights questions."""
from flask import Blueprint, current_app, jsonify, request

from docegestao.exceptions import BusinessLogicError
from docegestao.middleware import require_login
from docegestao.services.insights_service import InsightsClient
from docegestao.services.store_service import get_store

assistant_bp = Blueprint('assistant', __name__, url_prefix='/assistant')


def get_insights_client() -> InsightsClient:
    client = current_app.extensions.get('insights_client')
    if client is None:
        client = InsightsClient.from_config(current_app.config)
        current_app.extensions['insights_client'] = client
    return client


@assistant_bp.route('/ask', methods=['POST'])
@require_login
def ask():
    payload = request.get_json(silent=True) if request.is_json else request.form.to_dict()
    question = str((payload or {}).get('question') or '').strip()
    if not question:
        raise BusinessLogicError('Digite uma pergunta.')

    store = get_store()
    answer = get_insights_client().ask(store.products, store.sales, question)
    return jsonify({'status': 'ok', 'answer': answer})
