"""Core infrastructure: exceptions, logging, database engine, ORM models, schemas."""
