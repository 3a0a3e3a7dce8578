"""User model definition using SQLAlchemy Core."""

from sqlalchemy import (
    Column,
    DateTime,
    MetaData,
    Table,
    Text,
    func,
)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    # Opaque local id, never the provider's subject id
    Column("id", Text, primary_key=True),
    # Identity provider subject (immutable)
    Column("provider_id", Text, nullable=False, unique=True, index=True),
    # Profile info
    Column("name", Text, nullable=False),
    Column("email", Text, nullable=False, unique=True),
    Column("image", Text),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
