"""Models package - exports all SQLAlchemy models."""
from docegestao.models.product import ProductRecord
from docegestao.models.sale import SaleRecord
from docegestao.models.app_user import AppUser

__all__ = ['ProductRecord', 'SaleRecord', 'AppUser']
