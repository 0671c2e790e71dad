"""
Flask CLI commands.

Commands:
- flask init-db: Create the remote tables
- flask seed-products: Load the sample products into the active backend
- flask create-user: Create an operator in app_users
"""

import click
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from docegestao import database
from docegestao.services.auth_service import create_app_user
from docegestao.services.backends import SEED_PRODUCTS
from docegestao.services.data_service import get_data_service
from docegestao.services.store_service import get_store


def _require_remote() -> bool:
    if not get_data_service().is_remote:
        click.echo(click.style('❌ DATABASE_URL não configurada: o app está em modo local.', fg='red'))
        return False
    return True


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create the products, sales and app_users tables."""
        if not _require_remote():
            return
        try:
            database.create_tables()
        except SQLAlchemyError as e:
            click.echo(click.style(f'❌ Erro ao criar tabelas: {e}', fg='red'))
            raise SystemExit(1)
        click.echo(click.style('✅ Tabelas criadas.', fg='green', bold=True))

    @app.cli.command('seed-products')
    def seed_products_command():
        """Add the sample products that are not registered yet."""
        store = get_store()
        store.load()
        existing = {p.id for p in store.products}
        added = 0
        for product in SEED_PRODUCTS:
            if product.id in existing:
                continue
            store.add_product(product)
            added += 1
        store.flush(timeout=30)
        click.echo(click.style(f'✅ {added} produtos adicionados ({get_data_service().mode}).', fg='green'))

    @app.cli.command('create-user')
    @click.option('--username', prompt=True, help='Operator login name')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Operator password')
    def create_user_command(username, password):
        """Create an operator allowed to log in."""
        if not _require_remote():
            return
        username = username.strip()
        if not username:
            click.echo(click.style('❌ Usuário inválido.', fg='red'))
            return
        if len(password) < 4:
            click.echo(click.style('❌ A senha deve ter pelo menos 4 caracteres.', fg='red'))
            return
        try:
            create_app_user(database.get_session(), username, password)
        except SQLAlchemyError as e:
            current_app.logger.error(f"create-user failed: {e}")
            click.echo(click.style(f'❌ Erro ao criar usuário: {e}', fg='red'))
            raise SystemExit(1)
        click.echo(click.style(f'✅ Usuário {username} criado.', fg='green', bold=True))
