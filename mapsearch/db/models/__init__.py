from mapsearch.db.models.core import KeyValueEntry

__all__ = ["KeyValueEntry"]
