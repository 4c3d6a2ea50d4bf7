"""SQLAlchemy adapters: change log tables, database session lifecycle and
the SQL-backed entity loader and change log provider."""
