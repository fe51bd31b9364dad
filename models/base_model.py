#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixins for the library auth service.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps
- AuditMixin adds created_by / updated_by (the acting account's email, or "system")
- SoftDeleteMixin marks rows deleted instead of removing them

Notes:
- Server-side defaults (func.now()) set timestamps consistently by the DB.
- Put SoftDeleteMixin FIRST in the model's inheritance list.
"""

from __future__ import annotations

import uuid

# Importing 'models' gives access to the global 'storage' instance (DBStorage)
import models

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

from utils.timezone_utils import utcnow

SYSTEM_ACTOR = "system"

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


class BaseModel:
    """
    Base mixin for all persistent models: id, created_at, updated_at and a
    save() wired to DBStorage.
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        DB defaults handle created_at/updated_at on insert.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def __str__(self) -> str:
        return f"[{self.__class__.__name__}] ({self.id}) {self.__dict__}"

    def save(self):
        """Update updated_at and persist the instance using DBStorage."""
        self.updated_at = utcnow()
        models.storage.new(self)
        models.storage.save()


class AuditMixin:
    """Who created / last touched a row (account email or SYSTEM_ACTOR)."""

    created_by = Column(String(255), nullable=False, default=SYSTEM_ACTOR)
    updated_by = Column(String(255), nullable=False, default=SYSTEM_ACTOR)


class SoftDeleteMixin:
    """
    Adds a deleted_at timestamp; soft_delete() sets it instead of removing the row.
    IMPORTANT: Place this mixin BEFORE BaseModel in the class base list.
    """

    deleted_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self):
        """Set deleted_at and commit."""
        self.deleted_at = utcnow()
        self.save()
