"""
Connection Target Model - Stores registered PostgreSQL databases
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text
from sqlalchemy.sql import func
import enum

from pgconsole.database import Base


class ConnectionOrigin(str, enum.Enum):
    """How a target entered the registry."""
    REGISTERED = "registered"
    CREATED_ON_SERVER = "created_on_server"


class ConnectionTarget(Base):
    """A registered set of credentials/location for one PostgreSQL database."""
    __tablename__ = "connection_targets"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)

    # Connection details
    host = Column(String(255), nullable=False)
    port = Column(Integer, nullable=False, default=5432)
    database = Column(String(255), nullable=False)
    username = Column(String(255), nullable=False)
    encrypted_password = Column(Text, nullable=False)  # Encrypted at rest
    ssl_enabled = Column(Boolean, default=False, nullable=False)
    origin = Column(String(50), nullable=False, default=ConnectionOrigin.REGISTERED.value)

    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def created_on_server(self) -> bool:
        return self.origin == ConnectionOrigin.CREATED_ON_SERVER.value
