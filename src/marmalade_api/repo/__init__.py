"""Record repositories backed by SQLAlchemy sessions."""
