"""Configuration, database, errors and auth."""
