"""Tests for PostgreSQL script rendering."""
from datetime import date
from decimal import Decimal

import pytest

from schemawarp.artifacts import Artifact
from schemawarp.metadata import ColumnType
from schemawarp.pipeline import MigrationConfig
from schemawarp.pipeline.runner import run_migration
from schemawarp.schema import RawTable
from schemawarp.storage import (
    escape_sql_value,
    pg_type,
    quote_literal,
    render_descriptions_sql,
    render_relations_sql,
    render_tables_sql,
    write_migration_files,
)


TOLKIEN = 'd47ec620-2190-11ef-910c-f1df4955273f'
LEWIS = '0b9a6a3e-5c1f-4e0a-9b7e-2f3c4d5e6f70'
ANTHOLOGY = '6f1c2d3e-4a5b-4c6d-8e7f-901234567890'


def table(name, headers, *rows):
    return RawTable(name=name, headers=list(headers), rows=[dict(zip(headers, r)) for r in rows])


@pytest.fixture
def result():
    tables = [
        table('Authors', ['Id', 'Name'], [TOLKIEN, 'J.R.R. Tolkien'], [LEWIS, 'C.S. Lewis']),
        table('Books', ['Id', 'Name', 'Rating', 'Authors'],
              [ANTHOLOGY, "Tolkien's Anthology", '7', 'J.R.R. Tolkien,C.S. Lewis']),
        table('Empty', ['Id'],),
    ]
    artifacts = {'Authors': [
        Artifact.from_file(f'{TOLKIEN}.md', 'First part'),
        Artifact.from_file(f'Tolkien_{TOLKIEN}.md', 'Second part'),
        Artifact.from_file('c.s. lewis.md', "Lewis's notes\nline two"),
    ]}
    return run_migration(tables, MigrationConfig(schema='library', batch_size=1), artifacts)


class TestLiterals:
    """Value escaping."""

    def test_quote_literal(self):
        assert quote_literal("O'Brien") == "'O''Brien'"
        assert quote_literal('a\nb') == "E'a\\nb'"
        assert quote_literal('C:\\temp') == "E'C:\\\\temp'"
        assert quote_literal("tab\tand 'quote'") == "E'tab\\tand ''quote'''"
        assert quote_literal('nul\x00byte') == "'nulbyte'"

    def test_escape_values(self):
        assert escape_sql_value(None) == 'NULL'
        assert escape_sql_value(True) == 'TRUE'
        assert escape_sql_value(False) == 'FALSE'
        assert escape_sql_value(12) == '12'
        assert escape_sql_value(Decimal('3.50')) == '3.50'
        assert escape_sql_value(date(2024, 6, 3)) == "'2024-06-03'"
        assert escape_sql_value('', ColumnType.INTEGER) == 'NULL'
        assert escape_sql_value('', ColumnType.TEXT) == "''"

    @pytest.mark.parametrize('column_type,expected', [
        (ColumnType.TEXT, 'TEXT'),
        (ColumnType.INTEGER, 'INTEGER'),
        (ColumnType.DECIMAL, 'NUMERIC(12,2)'),
        (ColumnType.TIMESTAMP, 'TIMESTAMPTZ'),
        (ColumnType.UUID, 'UUID'),
    ])
    def test_pg_type(self, column_type, expected):
        assert pg_type(column_type) == expected


class TestTablesScript:
    """migration-complete.sql"""

    def test_schema_and_tables(self, result):
        sql = render_tables_sql(result)

        assert 'CREATE SCHEMA IF NOT EXISTS library;' in sql
        assert 'CREATE TABLE IF NOT EXISTS library.authors (' in sql
        assert '  id UUID PRIMARY KEY' in sql
        assert '  rating INTEGER' in sql
        assert '-- Skipped Empty: no data rows' in sql
        assert sql.rstrip().endswith('RESET search_path;')

    def test_batched_inserts(self, result):
        sql = render_tables_sql(result)
        assert '-- Batch 1/2' in sql and '-- Batch 2/2' in sql
        assert sql.count('ON CONFLICT (id) DO NOTHING;') == 3
        assert "'Tolkien''s Anthology'" in sql

    def test_column_comments(self, result):
        sql = render_tables_sql(result)
        assert "COMMENT ON COLUMN library.books.rating IS 'Rating';" in sql
        assert "COMMENT ON TABLE library.authors IS 'Migrated from Authors | 2 rows';" in sql

    def test_synthetic_defaults_left_to_database(self):
        result = run_migration([table('Tags', ['Name'], ['red'])])
        sql = render_tables_sql(result)

        assert '  id UUID PRIMARY KEY DEFAULT gen_random_uuid()' in sql
        assert '  created_at TIMESTAMPTZ DEFAULT NOW()' in sql
        assert 'INSERT INTO psm_root.tags (id, name) VALUES' in sql

    def test_label_index_optional(self, result):
        assert 'CREATE INDEX' not in render_tables_sql(result)
        config = MigrationConfig(schema='library', create_indexes=True)
        assert 'CREATE INDEX IF NOT EXISTS idx_authors_name ON library.authors(name);' in render_tables_sql(result, config)


class TestRelationsScript:
    """relations-complete.sql"""

    def test_junction_table(self, result):
        sql = render_relations_sql(result)

        assert 'CREATE TABLE IF NOT EXISTS library.authors_books (' in sql
        assert 'PRIMARY KEY (authors_id, books_id)' in sql
        assert 'FOREIGN KEY (authors_id) REFERENCES library.authors(id) ON DELETE CASCADE' in sql
        assert 'CREATE INDEX IF NOT EXISTS idx_authors_books_authors_id' in sql

    def test_guarded_link_inserts(self, result):
        sql = render_relations_sql(result)

        assert f"('{TOLKIEN}'::UUID, '{ANTHOLOGY}'::UUID)" in sql
        assert 'WHERE EXISTS (SELECT 1 FROM library.authors WHERE id = candidate_links.authors_id)' in sql
        assert sql.count('ON CONFLICT (authors_id, books_id) DO NOTHING;') == 2
        assert '-- Links: 2' in sql

    def test_unresolved_summary(self):
        result = run_migration([
            table('Authors', ['Id', 'Name'], [TOLKIEN, 'J.R.R. Tolkien']),
            table('Books', ['Id', 'Name', 'Authors'], [ANTHOLOGY, 'Anthology', 'J.R.R. Tolkien,Nobody']),
        ])
        sql = render_relations_sql(result)
        assert '-- Unresolved: display-name-not-found 1' in sql


class TestDescriptionsScript:
    """descriptions-migration.sql"""

    def test_updates(self, result):
        sql = render_descriptions_sql(result)

        assert 'ALTER TABLE library.authors ADD COLUMN IF NOT EXISTS description_content TEXT;' in sql
        assert f"SET description_content = E'First part\\n\\nSecond part'\nWHERE id = '{TOLKIEN}';" in sql
        assert f"SET description_content = E'Lewis''s notes\\nline two'\nWHERE id = '{LEWIS}';" in sql
        assert 'library.books' not in sql

    def test_write_files(self, result, tmp_path):
        written = write_migration_files(result, str(tmp_path / 'out'))

        assert {path.name for path in written.values()} == {
            'migration-complete.sql', 'relations-complete.sql', 'descriptions-migration.sql',
        }
        for path in written.values():
            assert path.read_text(encoding='utf-8').startswith('-- ')
