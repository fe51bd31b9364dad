"""Persistence layer: SQLAlchemy models and the shared DBStorage instance.

The engine is bound by ``storage.reload()``, which ``api.create_app`` calls with
the configured ``DATABASE_URL``.
"""
from models.db_storage import DBStorage

storage = DBStorage()
