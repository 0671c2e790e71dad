"""Store insights client backed by the Google Gemini REST API."""
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

import requests

from docegestao.domain import Product, Sale
from docegestao.services.dashboard_service import low_stock_products

logger = logging.getLogger(__name__)

EMPTY_ANSWER_MESSAGE = 'Desculpe, não consegui analisar os dados no momento.'
CONNECTION_ERROR_MESSAGE = (
    'Não foi possível conectar com a IA. Verifique se a chave de API está '
    'configurada corretamente.'
)

PROMPT_TEMPLATE = """You are an AI assistant for a candy store owner named "DoceGestão".

Current Store Status:
- Total Revenue (Received): R$ {received:.2f}
- Pending Payments (To Receive/Fiado): R$ {pending:.2f}
- Products with Low Stock: {low_stock}
- Total Products registered: {product_count}
- Total Sales count: {sale_count}

User Question: "{question}"

Please provide a helpful, concise, and friendly answer in Portuguese (Brazil).
If asking about sales trends, analyze the data provided.
If asking for marketing ideas, suggest candy-themed promotions.
When mentioning revenue, distinguish between money received and money pending (fiado)."""


def build_prompt(products: Iterable[Product], sales: Iterable[Sale], question: str) -> str:
    """Render the store snapshot plus the user's question."""
    products = list(products)
    sales = list(sales)
    received = sum((s.total for s in sales if not s.is_pending), Decimal('0'))
    pending = sum((s.total for s in sales if s.is_pending), Decimal('0'))
    low_stock = ', '.join(p.name for p in low_stock_products(products)) or 'None'
    return PROMPT_TEMPLATE.format(
        received=received,
        pending=pending,
        low_stock=low_stock,
        product_count=len(products),
        sale_count=len(sales),
        question=question,
    )


class InsightsClient:
    """
    One-shot question/answer client. No history, no streaming.

    ask() never raises: failures turn into a fixed user-facing message.
    """

    def __init__(self, api_key: Optional[str], model: str = 'gemini-2.5-flash',
                 base_url: str = 'https://generativelanguage.googleapis.com/v1beta',
                 timeout: float = 60, http=None):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.http = http or requests

    @classmethod
    def from_config(cls, config) -> 'InsightsClient':
        return cls(
            api_key=config.get('GEMINI_API_KEY'),
            model=config.get('GEMINI_MODEL', 'gemini-2.5-flash'),
            base_url=config.get('GEMINI_BASE_URL', 'https://generativelanguage.googleapis.com/v1beta'),
            timeout=config.get('GEMINI_HTTP_TIMEOUT', 60),
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def ask(self, products: Iterable[Product], sales: Iterable[Sale], question: str) -> str:
        if not self.api_key:
            logger.warning("[AI] No API key configured")
            return CONNECTION_ERROR_MESSAGE

        payload = {
            'contents': [
                {'role': 'user', 'parts': [{'text': build_prompt(products, sales, question)}]}
            ]
        }
        headers = {
            'x-goog-api-key': self.api_key,
            'Content-Type': 'application/json'
        }

        logger.info(f"[AI] Asking {self.model} ({len(question)} chars)")
        try:
            response = self.http.post(self.endpoint, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.HTTPError as e:
            body = e.response.text if e.response is not None else ''
            logger.error(f"[AI] ✗ HTTP error: {e} {body[:500]}")
            return CONNECTION_ERROR_MESSAGE
        except (requests.RequestException, ValueError) as e:
            logger.error(f"[AI] ✗ Request failed: {e}")
            return CONNECTION_ERROR_MESSAGE

        text = extract_text(data)
        if not text:
            logger.warning("[AI] Empty answer")
            return EMPTY_ANSWER_MESSAGE
        return text


def extract_text(data: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    try:
        parts = data['candidates'][0]['content'].get('parts') or []
    except (KeyError, IndexError, TypeError, AttributeError):
        return ''
    return ''.join(part.get('text', '') for part in parts if isinstance(part, dict))
