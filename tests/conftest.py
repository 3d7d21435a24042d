"""Pytest configuration for the SchemaWarp test suite."""
from pathlib import Path

import pytest


AUTHOR_TOLKIEN = 'd47ec620-2190-11ef-910c-f1df4955273f'
AUTHOR_LEWIS = '0b9a6a3e-5c1f-4e0a-9b7e-2f3c4d5e6f70'
BOOK_ANTHOLOGY = '6f1c2d3e-4a5b-4c6d-8e7f-901234567890'
BOOK_MYSTERY = '7a2b3c4d-5e6f-4a7b-8c9d-0e1f2a3b4c5d'


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (may require a database)"
    )


def write_export(root: Path, layout: dict) -> Path:
    """Create an export tree from {relative path: text content}."""
    for relative, content in layout.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding='utf-8')
    return root


@pytest.fixture
def export_dir(tmp_path):
    """
    A small export:
    - Authors: two rows, one description matched by UUID, one orphan file
    - Books: one malformed Id, a multi-valued Authors column, an unknown author
    - Empty: header only (skipped)
    - Notes: no CSV (ignored folder)
    """
    return write_export(tmp_path / 'export', {
        'Authors/Authors.csv': (
            'Id,Name\n'
            f'{AUTHOR_TOLKIEN},J.R.R. Tolkien\n'
            f'{AUTHOR_LEWIS},C.S. Lewis\n'
        ),
        f'Authors/descriptions/J.R.R. Tolkien_{AUTHOR_TOLKIEN}.md': '---\nkind: author\n---\nWrote The Hobbit.\n',
        'Authors/descriptions/RandomNotes.md': 'Unrelated notes\n',
        'Books/Books.csv': (
            'Id,Name,Rating,Authors,Description\n'
            'bad-id,The Hobbit,9,J.R.R. Tolkien,"A tale, of adventure"\n'
            f'{BOOK_ANTHOLOGY},Anthology,7,"J.R.R. Tolkien,C.S. Lewis",Stories\n'
            f'{BOOK_MYSTERY},Mystery,5,Unknown Writer,\n'
        ),
        'Empty/Empty.csv': 'Id,Name\n',
        'Notes/readme.md': 'Nothing here\n',
    })
