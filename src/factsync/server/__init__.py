"""Reference transaction log service (FastAPI + SQLAlchemy)."""
