"""HTTP clients for hosted backends."""
from .database import DatabaseHealthClient, DatabaseHealthError  # noqa: F401
