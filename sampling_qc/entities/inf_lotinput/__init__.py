"""Lot input records mirrored from the MSSQL ERP database."""
