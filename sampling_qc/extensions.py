"""Extension instances shared across the application."""
from __future__ import annotations

from flask_cors import CORS
from flask_sqlalchemy import SQLAlchemy

from .services.mssql import MssqlConnectionManager

db = SQLAlchemy()
mssql = MssqlConnectionManager()
cors = CORS()
