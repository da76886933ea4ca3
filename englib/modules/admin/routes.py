from datetime import datetime, timedelta
from flask import current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError
from englib import db_session
from englib.core.auth import require_admin
from englib.core.request_utils import get_json_object
from englib.core.tree_utils import top_level_folder
from englib.modules.admin import bp
from englib.modules.analytics import stats
from englib.modules.library.models import Category, File, FileClick, Textbook

def _parse_id(value):
    """Row id from JSON; numbers and numeric strings are accepted"""
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise TypeError(f'Invalid id: {value!r}')
    return int(value)

def _parse_category_id(value):
    """Normalize a category id from JSON; empty means uncategorized"""
    if value in (None, '', 'null'):
        return None
    return _parse_id(value)

def _parse_orders(updates):
    """{id: display_order} from [{'id': ..., 'display_order': ...}]"""
    return {_parse_id(item['id']): int(item['display_order']) for item in updates}

@bp.route('/categories', methods=['GET'])
@require_admin
def categories():
    """List categories in display order"""
    try:
        rows = Category.query.order_by(Category.display_order, Category.id).all()
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Error loading categories: {str(e)}")
        return jsonify({'success': False, 'error': 'Failed to load categories'}), 500

    return jsonify({'success': True, 'categories': [c.summary() for c in rows]})

@bp.route('/textbooks/<int:textbook_id>', methods=['GET'])
@require_admin
def textbook_detail(textbook_id):
    """Textbook details with per-folder click stats and a 30 day click trend"""
    offset = current_app.config['ANALYTICS_UTC_OFFSET_HOURS']
    try:
        textbook = Textbook.query.get(textbook_id)
        if not textbook:
            return jsonify({'success': False, 'error': 'Textbook not found'}), 404

        files = textbook.files.order_by(File.click_count.desc(), File.id).all()
        file_ids = [f.id for f in files]
        since = datetime.utcnow() - timedelta(days=30)
        click_times = []
        if file_ids:
            click_times = [
                row.clicked_at for row in
                db_session.query(FileClick.clicked_at)
                .filter(FileClick.file_id.in_(file_ids), FileClick.clicked_at >= since)
                .all()
            ]
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Error loading textbook {textbook_id}: {str(e)}")
        return jsonify({'success': False, 'error': 'Failed to fetch textbook details'}), 500

    file_dicts = [f.to_dict() for f in files]
    folder_stats = stats.folder_stats(file_dicts, textbook.dropbox_path, top_level_folder)
    daily_clicks = [
        {'date': entry['date'], 'clicks': entry['count']}
        for entry in stats.daily_counts(click_times, offset)
    ]

    return jsonify({
        'success': True,
        'textbook': textbook.to_dict(),
        'files': file_dicts,
        'folderStats': folder_stats,
        'dailyClicks': daily_clicks,
        'statistics': {
            'totalFiles': len(files),
            'totalClicks': sum(f.click_count or 0 for f in files),
            'activeFiles': sum(1 for f in files if f.is_active),
            'totalFolders': len(folder_stats),
        },
    })

@bp.route('/textbooks/move', methods=['PUT'])
@require_admin
def move_textbook():
    """Move a textbook into a category, or out of all categories"""
    data = get_json_object()
    if not data.get('textbook_id'):
        return jsonify({'success': False, 'error': 'Textbook ID is required'}), 400

    try:
        textbook_id = _parse_id(data['textbook_id'])
    except (ValueError, TypeError):
        return jsonify({'success': False, 'error': 'Invalid textbook ID'}), 400

    try:
        category_id = _parse_category_id(data.get('category_id'))
    except (ValueError, TypeError):
        return jsonify({'success': False, 'error': 'Invalid category ID'}), 400

    try:
        textbook = Textbook.query.get(textbook_id)
        if not textbook:
            return jsonify({'success': False, 'error': 'Textbook not found'}), 404

        if category_id is not None and not Category.query.get(category_id):
            return jsonify({'success': False, 'error': 'Category not found'}), 404

        textbook.category_id = category_id
        db_session.commit()
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Error moving textbook {textbook_id}: {str(e)}")
        return jsonify({'success': False, 'error': 'Failed to move textbook'}), 500

    current_app.logger.info(f"Moved textbook {textbook_id} to category {category_id}")
    return jsonify({'success': True, 'textbook': textbook.to_dict()})

@bp.route('/textbooks/move', methods=['POST'])
@require_admin
def move_textbooks():
    """Move several textbooks into one category"""
    data = get_json_object()
    textbook_ids = data.get('textbook_ids')

    if not isinstance(textbook_ids, list):
        return jsonify({'success': False, 'error': 'textbook_ids must be a list'}), 400

    try:
        textbook_ids = [_parse_id(value) for value in textbook_ids]
    except (ValueError, TypeError):
        return jsonify({'success': False, 'error': 'Invalid textbook ID'}), 400

    try:
        category_id = _parse_category_id(data.get('category_id'))
    except (ValueError, TypeError):
        return jsonify({'success': False, 'error': 'Invalid category ID'}), 400

    try:
        if category_id is not None and not Category.query.get(category_id):
            return jsonify({'success': False, 'error': 'Category not found'}), 404

        count = 0
        if textbook_ids:
            count = (
                Textbook.query
                .filter(Textbook.id.in_(textbook_ids))
                .update({Textbook.category_id: category_id}, synchronize_session=False)
            )
        db_session.commit()
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Error moving textbooks: {str(e)}")
        return jsonify({'success': False, 'error': 'Failed to move textbooks'}), 500

    current_app.logger.info(f"Moved {count} textbooks to category {category_id}")
    return jsonify({'success': True, 'count': count})

@bp.route('/textbooks/reorder', methods=['PUT'])
@require_admin
def reorder_textbooks():
    """Persist the display order after a drag-and-drop rearrangement"""
    data = get_json_object()
    updates = data.get('textbooks')

    if not isinstance(updates, list) or not updates:
        return jsonify({'success': False, 'error': 'textbooks must be a non-empty list'}), 400

    try:
        orders = _parse_orders(updates)
    except (KeyError, ValueError, TypeError):
        return jsonify({'success': False, 'error': 'Each textbook needs an id and display_order'}), 400

    try:
        textbooks = Textbook.query.filter(Textbook.id.in_(list(orders))).all()
        for textbook in textbooks:
            textbook.display_order = orders[textbook.id]
        db_session.commit()
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Error reordering textbooks: {str(e)}")
        return jsonify({'success': False, 'error': 'Failed to reorder textbooks'}), 500

    current_app.logger.info(f"Reordered {len(textbooks)} textbooks")
    return jsonify({'success': True, 'count': len(textbooks)})

@bp.route('/categories/reorder', methods=['PUT'])
@require_admin
def reorder_categories():
    """Persist the category order from the admin sidebar"""
    data = get_json_object()
    updates = data.get('categories')

    if not isinstance(updates, list) or not updates:
        return jsonify({'success': False, 'error': 'categories must be a non-empty list'}), 400

    try:
        orders = _parse_orders(updates)
    except (KeyError, ValueError, TypeError):
        return jsonify({'success': False, 'error': 'Each category needs an id and display_order'}), 400

    try:
        rows = Category.query.filter(Category.id.in_(list(orders))).all()
        for category in rows:
            category.display_order = orders[category.id]
        db_session.commit()
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Error reordering categories: {str(e)}")
        return jsonify({'success': False, 'error': 'Failed to reorder categories'}), 500

    current_app.logger.info(f"Reordered {len(rows)} categories")
    return jsonify({'success': True, 'count': len(rows)})
