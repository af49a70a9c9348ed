"""Session store access (PostgreSQL via psycopg2)."""
