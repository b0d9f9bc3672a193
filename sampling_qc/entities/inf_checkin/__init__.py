"""Operator check-ins mirrored from MSSQL ``dbo.CheckIn``."""
