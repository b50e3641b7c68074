"""Database engine, declarative base and record store."""
