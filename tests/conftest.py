"""Shared pytest fixtures and test helpers."""

from datetime import datetime

import pytest

import englib
from englib import create_app, db_session


@pytest.fixture
def app(tmp_path):
    """Application bound to a throwaway SQLite database."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.db'}",
        'SYNC_SCHEDULE_ENABLED': False,
        'ADMIN_TOKEN': '',
        'STORAGE_BACKEND': 'dropbox',
        'STORAGE_ROOT_PATH': '/05boxAPP',
        'SYNC_ALLOWED_EXTENSIONS': ['.pdf'],
        'TREE_FETCH_BATCH_SIZE': 1000,
        'REQUEST_DAILY_LIMIT': 5,
    })
    yield app
    db_session.remove()
    englib.db_engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def library(app):
    """Factory helpers that insert library rows and return their ids.

    Usage:
        def test_example(library):
            book = library.textbook('BookA', '/BookA/')
            library.file(book, '/BookA/U1/a.pdf')
    """
    from englib.modules.library.models import Category, File, FileClick, Textbook

    class LibraryFactory:
        def category(self, name, display_order=0, icon='📘'):
            category = Category(name=name, display_order=display_order, icon=icon)
            db_session.add(category)
            db_session.commit()
            return category.id

        def textbook(self, name, dropbox_path, category_id=None, display_order=999):
            textbook = Textbook(
                name=name,
                dropbox_path=dropbox_path,
                category_id=category_id,
                display_order=display_order,
            )
            db_session.add(textbook)
            db_session.commit()
            return textbook.id

        def file(self, textbook_id, dropbox_path, is_active=True, click_count=0, file_size=100):
            file = File(
                textbook_id=textbook_id,
                name=dropbox_path.rsplit('/', 1)[-1],
                dropbox_path=dropbox_path,
                path_lower=dropbox_path.lower(),
                file_size=file_size,
                last_modified=datetime(2024, 3, 1, 12, 0, 0),
                click_count=click_count,
                is_active=is_active,
            )
            db_session.add(file)
            db_session.commit()
            return file.id

        def click(self, file_id, clicked_at):
            db_session.add(FileClick(file_id=file_id, clicked_at=clicked_at, user_ip='10.0.0.xxx'))
            db_session.commit()

    return LibraryFactory()
