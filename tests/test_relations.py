"""Tests for relation detection and resolution.

Covers:
1. Comma-separated display names linked to another table
2. Unknown display names reported, not linked
3. Ignored free-text columns
4. Target table guessing, self relations and shared junctions
5. Ambiguous labels, deduplication and determinism
"""
import pytest

from schemawarp.pipeline import DetectionConfig
from schemawarp.relations import (
    UnresolvedReason,
    detect_relations,
    guess_target_table,
    is_ignored_column,
    is_relation_column,
    junction_columns,
    parse_relation_list,
    resolve_relations,
)
from schemawarp.schema import ColumnSchema, RawTable, build_schema
from schemawarp.utils import NameRegistry


TOLKIEN = 'd47ec620-2190-11ef-910c-f1df4955273f'
LEWIS = '0b9a6a3e-5c1f-4e0a-9b7e-2f3c4d5e6f70'
ANTHOLOGY = '6f1c2d3e-4a5b-4c6d-8e7f-901234567890'
MYSTERY = '7a2b3c4d-5e6f-4a7b-8c9d-0e1f2a3b4c5d'


# ============================================================================
# Helpers
# ============================================================================

def table(name, headers, *rows):
    return RawTable(name=name, headers=list(headers), rows=[dict(zip(headers, r)) for r in rows])


def build_all(*tables):
    registry = NameRegistry()
    return [build_schema(t, table_names=registry) for t in tables]


def authors(*extra_rows):
    return table('Authors', ['Id', 'Name'], [TOLKIEN, 'J.R.R. Tolkien'], [LEWIS, 'C.S. Lewis'], *extra_rows)


def books(*rows, headers=('Id', 'Name', 'Authors')):
    return table('Books', headers, *rows)


def resolve(builds):
    relations = detect_relations(builds)
    return relations, resolve_relations(relations, builds)


def link_keys(resolution):
    return sorted((link.source_row_key, link.target_row_key) for link in resolution.links)


# ============================================================================
# Detection
# ============================================================================

class TestDetection:
    """Which columns are relation columns, and where they point."""

    def test_comma_values_flag_relation(self):
        builds = build_all(authors(), books([ANTHOLOGY, 'Anthology', 'J.R.R. Tolkien,C.S. Lewis']))
        relations = detect_relations(builds)

        assert len(relations) == 1
        relation = relations[0]
        assert (relation.source_table, relation.source_column, relation.target_table) == ('books', 'authors', 'authors')
        assert relation.multi_valued is True
        assert relation.source_header == 'Authors'

    def test_ignored_column_never_flagged(self):
        builds = build_all(
            authors(),
            books([ANTHOLOGY, 'Anthology', 'A tale, of adventure, and more'],
                  headers=('Id', 'Name', 'Description')),
        )
        assert detect_relations(builds) == []

    def test_single_values_without_hint_not_flagged(self):
        builds = build_all(authors(), books([ANTHOLOGY, 'Anthology', 'J.R.R. Tolkien']))
        assert detect_relations(builds) == []

    def test_header_pattern_flags_relation(self):
        builds = build_all(table(
            'Task', ['Id', 'Name', 'Parent-Task'],
            [TOLKIEN, 'Design', ''], [LEWIS, 'Build', 'Design'],
        ))
        relations = detect_relations(builds)
        assert [(r.source_column, r.target_table, r.multi_valued) for r in relations] == [
            ('parent_task', 'task', False),
        ]

    def test_only_sampled_rows_checked_for_commas(self):
        rows = [[f'Book {n}', 'J.R.R. Tolkien'] for n in range(5)] + [['Late', 'J.R.R. Tolkien,C.S. Lewis']]
        builds = build_all(authors(), table('Books', ['Name', 'Authors'], *rows))

        assert detect_relations(builds, DetectionConfig(relation_sample_size=5)) == []
        assert len(detect_relations(builds, DetectionConfig(relation_sample_size=6))) == 1

    @pytest.mark.parametrize('header,ignored', [
        ('Description', True),
        ('Due Date', True),
        ('Provider', True),
        ('Authors', False),
        ('Tags', False),
    ])
    def test_ignore_list_substring_match(self, header, ignored):
        assert is_ignored_column(header, DetectionConfig().ignore_columns) is ignored

    def test_key_suffix_needs_custom_ignore_list(self):
        """The default ignore-list contains 'id', so _id/_ids headers only count as relations once it is replaced."""
        column = ColumnSchema(original_name='Author_Id', normalized_name='author_id')
        values = ['J.R.R. Tolkien']

        assert is_relation_column(column, values) is False
        assert is_relation_column(column, values, DetectionConfig(ignore_columns=['description'])) is True


class TestGuessTargetTable:
    """Column name to table name heuristics."""

    def test_exact_match(self):
        assert guess_target_table('authors', ['books', 'authors']) == 'authors'

    def test_containment(self):
        assert guess_target_table('main_authors', ['books', 'authors']) == 'authors'
        assert guess_target_table('book_id', ['book']) == 'book'

    def test_first_table_in_order_wins(self):
        assert guess_target_table('project_owner', ['owner', 'project']) == 'owner'
        assert guess_target_table('project_owner', ['project', 'owner']) == 'project'

    def test_no_match(self):
        assert guess_target_table('tags', ['books', 'authors']) is None


# ============================================================================
# Resolution
# ============================================================================

class TestResolution:
    """Display names to links between row keys."""

    def test_two_names_two_links(self):
        builds = build_all(authors(), books([ANTHOLOGY, 'Anthology', 'J.R.R. Tolkien,C.S. Lewis']))
        _, resolution = resolve(builds)

        assert link_keys(resolution) == sorted([(ANTHOLOGY, TOLKIEN), (ANTHOLOGY, LEWIS)])
        assert resolution.unresolved == []

    def test_unknown_name_reported(self):
        builds = build_all(authors(), books(
            [ANTHOLOGY, 'Anthology', 'J.R.R. Tolkien,C.S. Lewis'],
            [MYSTERY, 'Mystery', 'Unknown Writer'],
        ))
        _, resolution = resolve(builds)

        assert all(link.source_row_key != MYSTERY for link in resolution.links)
        unresolved = resolution.unresolved
        assert len(unresolved) == 1
        assert unresolved[0].reason == UnresolvedReason.DISPLAY_NAME_NOT_FOUND
        assert unresolved[0].token == 'Unknown Writer'
        assert unresolved[0].source_row_key == MYSTERY
        assert unresolved[0].row_number == 2

    def test_case_insensitive_and_trimmed(self):
        builds = build_all(authors(), books([ANTHOLOGY, 'Anthology', '  j.r.r. TOLKIEN , c.s. lewis ']))
        _, resolution = resolve(builds)
        assert len(resolution.links) == 2

    def test_duplicate_tokens_deduplicated(self):
        builds = build_all(authors(), books([ANTHOLOGY, 'Anthology', 'J.R.R. Tolkien,j.r.r. tolkien']))
        _, resolution = resolve(builds)
        assert link_keys(resolution) == [(ANTHOLOGY, TOLKIEN)]

    def test_ambiguous_label_first_row_wins(self):
        duplicate = '11111111-2222-4333-8444-555555555555'
        builds = build_all(
            authors([duplicate, 'J.R.R. Tolkien']),
            books([ANTHOLOGY, 'Anthology', 'J.R.R. Tolkien,C.S. Lewis']),
        )
        _, resolution = resolve(builds)

        assert (ANTHOLOGY, TOLKIEN) in link_keys(resolution)
        assert (ANTHOLOGY, duplicate) not in link_keys(resolution)
        assert resolution.outcomes[0].ambiguous_tokens == 1

    def test_deterministic(self):
        builds = build_all(authors(), books(
            [ANTHOLOGY, 'Anthology', 'J.R.R. Tolkien,C.S. Lewis'],
            ['bad-id', 'The Hobbit', 'J.R.R. Tolkien'],
        ))
        relations = detect_relations(builds)
        first = resolve_relations(relations, builds)
        second = resolve_relations(relations, builds)
        assert link_keys(first) == link_keys(second)

    def test_links_use_substituted_keys(self):
        builds = build_all(authors(), books(
            ['bad-id', 'The Hobbit', 'J.R.R. Tolkien'],
            [ANTHOLOGY, 'Anthology', 'J.R.R. Tolkien,C.S. Lewis'],
        ))
        _, resolution = resolve(builds)
        hobbit_key = builds[1].rows[0].key

        assert (hobbit_key, TOLKIEN) in link_keys(resolution)
        for link in resolution.links:
            assert link.source_row_key in builds[1].key_set()
            assert link.target_row_key in builds[0].key_set()

    def test_source_key_invalid(self):
        builds = build_all(authors(), books([ANTHOLOGY, 'Anthology', 'J.R.R. Tolkien,C.S. Lewis']))
        builds[1].rows[0].values['id'] = 'corrupted'
        _, resolution = resolve(builds)

        assert resolution.links == []
        assert resolution.unresolved_counts() == {UnresolvedReason.SOURCE_ID_INVALID: 2}

    def test_target_key_invalid(self):
        builds = build_all(authors(), books([ANTHOLOGY, 'Anthology', 'J.R.R. Tolkien,C.S. Lewis']))
        builds[0].rows[1].values['id'] = 'corrupted'
        _, resolution = resolve(builds)

        assert link_keys(resolution) == [(ANTHOLOGY, TOLKIEN)]
        assert resolution.unresolved_counts() == {UnresolvedReason.TARGET_ID_INVALID: 1}


class TestOutcomes:
    """Per-relation outcomes, skips and junction tables."""

    def test_unknown_target_table_recorded(self):
        builds = build_all(authors(), books(
            [ANTHOLOGY, 'Anthology', 'fantasy,short'], headers=('Id', 'Name', 'Tags'),
        ))
        relations, resolution = resolve(builds)

        assert relations[0].target_table is None
        outcome = resolution.outcomes[0]
        assert outcome.skipped_reason == UnresolvedReason.TARGET_TABLE_UNKNOWN
        assert outcome.junction_table is None
        assert [ref.reason for ref in outcome.unresolved] == [UnresolvedReason.TARGET_TABLE_UNKNOWN]
        assert resolution.junctions() == []

    def test_no_values_skipped(self):
        builds = build_all(table('Task', ['Id', 'Name', 'Parent-Task'], [TOLKIEN, 'Design', '']))
        _, resolution = resolve(builds)

        outcome = resolution.outcomes[0]
        assert outcome.skipped_reason == 'no-values'
        assert outcome.junction_table is None

    def test_junction_named_after_sorted_tables(self):
        builds = build_all(authors(), books([ANTHOLOGY, 'Anthology', 'J.R.R. Tolkien,C.S. Lewis']))
        _, resolution = resolve(builds)

        junction, = resolution.junctions()
        assert junction.name == 'authors_books'
        assert junction.tables == ('authors', 'books')
        assert junction.columns == ('authors_id', 'books_id')
        assert sorted(junction.pairs) == sorted([(TOLKIEN, ANTHOLOGY), (LEWIS, ANTHOLOGY)])

    def test_junction_shared_between_relations(self):
        builds = build_all(authors(), books(
            [ANTHOLOGY, 'Anthology', 'J.R.R. Tolkien,C.S. Lewis', 'J.R.R. Tolkien,C.S. Lewis'],
            headers=('Id', 'Name', 'Authors', 'Main Authors'),
        ))
        relations, resolution = resolve(builds)

        assert len(relations) == 2
        assert {o.junction_table for o in resolution.outcomes} == {'authors_books'}
        junction, = resolution.junctions()
        assert len(junction.relations) == 2
        assert len(junction.pairs) == 2

    def test_self_relation(self):
        design = '11111111-2222-4333-8444-555555555555'
        build_ = '22222222-3333-4444-8555-666666666666'
        builds = build_all(table(
            'Task', ['Id', 'Name', 'Parent-Task'],
            [design, 'Design', ''], [build_, 'Build', 'Design'],
        ))
        _, resolution = resolve(builds)

        junction, = resolution.junctions()
        assert junction.name == 'task_task'
        assert junction.columns == ('task_id', 'related_task_id')
        assert junction.pairs == [(build_, design)]

    def test_junction_name_avoids_table_names(self):
        builds = build_all(
            authors(),
            books([ANTHOLOGY, 'Anthology', 'J.R.R. Tolkien,C.S. Lewis']),
            table('Authors Books', ['Name'], ['placeholder']),
        )
        _, resolution = resolve(builds)
        assert resolution.outcomes[0].junction_table == 'authors_books_2'


class TestHelpers:
    """Small parsing helpers."""

    def test_parse_relation_list(self):
        assert parse_relation_list(' a, b ,,c ') == ['a', 'b', 'c']
        assert parse_relation_list('') == []
        assert parse_relation_list(None) == []

    def test_junction_columns(self):
        assert junction_columns('authors', 'books') == ('authors_id', 'books_id')
        assert junction_columns('task', 'task') == ('task_id', 'related_task_id')
