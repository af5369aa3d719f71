"""
App Model - apps layered over a connection target
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from pgconsole.database import Base


class App(Base):
    """An app definition: components over the tables of one database."""
    __tablename__ = "apps"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    description = Column(Text, default="")

    # Deleting the target orphans the app instead of deleting it
    database_id = Column(
        Integer,
        ForeignKey("connection_targets.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    auth_enabled = Column(Boolean, default=False, nullable=False)
    public_access = Column(Boolean, default=False, nullable=False)
    icon = Column(String(100), default="dashboard")
    theme = Column(String(100), default="default")
    components = Column(JSON, default=list)  # Opaque to the gateway

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    target = relationship("ConnectionTarget", backref="apps")
