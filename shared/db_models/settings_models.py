from datetime import datetime, UTC
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Text, Boolean, Index
from sqlalchemy.orm import declarative_base
from pydantic import BaseModel, Field, ConfigDict

Base = declarative_base()


def utc_now() -> datetime:
    return datetime.now(UTC)


class SiteSetting(Base):
    """SQLAlchemy model for core settings edited at runtime."""

    __tablename__ = "site_settings"

    key = Column(String(200), primary_key=True)
    value = Column(Text)
    last_modified = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    modified_by = Column(String(100))


class Module(Base):
    """SQLAlchemy model for discovered extension modules."""

    __tablename__ = "modules"

    module_id = Column(String(200), primary_key=True)
    name = Column(String(200), nullable=False)
    version = Column(String(50), nullable=False, default="1.0.0")
    enabled = Column(Boolean, nullable=False, default=False)
    configured = Column(Boolean, nullable=False, default=False)
    is_core = Column(Boolean, nullable=False, default=False)
    load_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)


class ModuleSetting(Base):
    """SQLAlchemy model for one configuration key of an extension module."""

    __tablename__ = "module_settings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    module_id = Column(
        String(200), ForeignKey("modules.module_id", ondelete="CASCADE"), nullable=False
    )
    key = Column(String(200), nullable=False)
    value = Column(Text)
    is_from_environment = Column(Boolean, nullable=False, default=False)
    environment_variable_name = Column(String(300))
    is_secret = Column(Boolean, nullable=False, default=False)
    previous_value = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (Index("idx_module_settings_module_key", "module_id", "key"),)


class ModuleAuditLog(Base):
    """SQLAlchemy model for one audited operation on an extension module."""

    __tablename__ = "module_audit_log"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    # No foreign key: entries outlive deleted modules
    module_id = Column(String(200), nullable=False)
    module_name = Column(String(200), nullable=False)
    operation = Column(String(50), nullable=False)
    username = Column(String(100), nullable=False)
    success = Column(Boolean, nullable=False, default=True)
    changes = Column(Text)
    error_message = Column(Text)
    notes = Column(Text)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (Index("idx_module_audit_log_module_timestamp", "module_id", "timestamp"),)


# Pydantic records crossing the store boundary
class SettingRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    value: Optional[str] = None
    last_modified: datetime = Field(default_factory=utc_now)
    modified_by: Optional[str] = None


class ModuleRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    module_id: str
    name: str
    version: str = "1.0.0"
    enabled: bool = False
    configured: bool = False
    is_core: bool = False
    load_order: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ModuleSettingRecord(BaseModel):
    """Persisted value of one module configuration key.

    When ``is_from_environment`` is set the value lives only in the
    environment: ``value`` is None and ``environment_variable_name`` names the
    controlling variable. ``previous_value`` keeps whatever was stored before
    the override took over, so it can be restored when the override goes away.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    module_id: str
    key: str
    value: Optional[str] = None
    is_from_environment: bool = False
    environment_variable_name: Optional[str] = None
    is_secret: bool = False
    previous_value: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ModuleOperation(str, Enum):
    REGISTER = "register"
    ENABLE = "enable"
    DISABLE = "disable"
    CONFIGURE = "configure"
    DELETE = "delete"
    RELOAD = "reload"


class AuditEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    module_id: str
    module_name: str
    operation: ModuleOperation
    username: str = "System"
    success: bool = True
    changes: Optional[str] = None
    error_message: Optional[str] = None
    notes: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)
