"""
Library view assembly: fetch active files, group them by textbook and
materialize each textbook's folder tree.
"""
import logging
from sqlalchemy.orm import joinedload
from englib import db_session
from englib.core.tree_utils import materialize_tree, has_any_files
from englib.modules.library.models import File, FileClick, Textbook, DEFAULT_DISPLAY_ORDER

logger = logging.getLogger(__name__)

SORT_MODES = ('name', 'clicks')


def fetch_active_files(batch_size=1000):
    """
    Load every active file with its textbook and category.

    Pages are requested one after another and accumulated, so the tree is
    only built from the complete set. Database errors propagate.
    """
    files = []
    offset = 0
    while True:
        batch = (
            db_session.query(File)
            .options(joinedload(File.textbook).joinedload(Textbook.category))
            .filter(File.is_active.is_(True))
            .order_by(File.id)
            .offset(offset)
            .limit(batch_size)
            .all()
        )
        files.extend(batch)
        if len(batch) < batch_size:
            break
        offset += batch_size
    return files


def group_files(files):
    """Group file rows by textbook, collecting click and file totals"""
    groups = {}
    for file in files:
        textbook = file.textbook
        if textbook is None:
            logger.warning("File %s has no textbook, skipping", file.id)
            continue

        group = groups.get(textbook.id)
        if group is None:
            category = textbook.category if textbook.category_id else None
            group = {
                'id': textbook.id,
                'name': textbook.name,
                'dropbox_path': textbook.dropbox_path,
                'category_id': textbook.category_id,
                'display_order': textbook.display_order,
                'category': category.summary() if category else None,
                'files': [],
                'totalClicks': 0,
                'fileCount': 0,
            }
            groups[textbook.id] = group

        group['files'].append(file.to_dict())
        group['totalClicks'] += file.click_count or 0
        group['fileCount'] += 1
    return list(groups.values())


def _order_or_default(value):
    return DEFAULT_DISPLAY_ORDER if value is None else value


def _placement_key(group):
    category = group['category']
    return (
        group['category_id'] is None,
        _order_or_default(category['display_order'] if category else None),
        _order_or_default(group['display_order']),
        group['name'],
    )


def sort_groups(groups, sort_by='name'):
    """
    Order textbooks for display.

    'name' keeps the admin arrangement: uncategorized last, then category
    order, textbook order and name. 'clicks' puts the most clicked first.
    """
    if sort_by == 'clicks':
        return sorted(groups, key=lambda g: (-g['totalClicks'],) + _placement_key(g))
    return sorted(groups, key=_placement_key)


def build_library_tree(groups):
    """Materialize trees and drop textbooks that end up without files"""
    result = []
    for group in groups:
        tree = materialize_tree(group['files'], group['dropbox_path'])
        if not has_any_files(tree):
            logger.info("Skipping empty textbook: %s", group['name'])
            continue
        result.append({
            'id': group['id'],
            'name': group['name'],
            'dropbox_path': group['dropbox_path'],
            'category': group['category'],
            'totalClicks': group['totalClicks'],
            'fileCount': group['fileCount'],
            'children': tree.to_dict(),
        })
    return result


def materialize_library(sort_by='name', batch_size=1000):
    """Full library pipeline; returns (textbooks, total active files)"""
    files = fetch_active_files(batch_size)
    logger.info("Fetched %d active files", len(files))

    groups = sort_groups(group_files(files), sort_by)
    textbooks = build_library_tree(groups)
    logger.info("Built library tree: %d textbooks (sort=%s)", len(textbooks), sort_by)
    return textbooks, len(files)


def record_click(file_id, user_ip=None):
    """Increment a file's click counter and log the click; None if unknown"""
    file = File.query.filter_by(id=file_id, is_active=True).first()
    if not file:
        return None

    file.click_count = File.click_count + 1
    db_session.add(FileClick(file_id=file.id, user_ip=user_ip))
    db_session.commit()
    return file
