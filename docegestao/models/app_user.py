"""AppUser model - shop operators allowed to log in."""
from sqlalchemy import Column, BigInteger, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from docegestao.database import Base

# Prefixes produced by werkzeug.security.generate_password_hash
_HASH_PREFIXES = ('scrypt:', 'pbkdf2:')


class AppUser(Base):
    """Operator credentials. Passwords may be stored hashed or in plain text."""

    __tablename__ = 'app_users'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    username = Column(String(150), nullable=False, unique=True)
    password = Column(String(255), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def set_password(self, password):
        """Store a hashed password."""
        self.password = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check a password against the stored hash or plain value."""
        if not self.password or password is None:
            return False
        if self.password.startswith(_HASH_PREFIXES):
            return check_password_hash(self.password, password)
        return self.password == password

    def __repr__(self):
        return f"<AppUser(id={self.id}, username='{self.username}')>"
