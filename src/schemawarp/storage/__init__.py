"""SQL rendering and PostgreSQL access"""
from .connection import get_connection, get_connection_string, execute_sql, test_connection
from .sql import (
    pg_type,
    quote_literal,
    escape_sql_value,
    render_tables_sql,
    render_relations_sql,
    render_descriptions_sql,
    write_migration_files,
)
