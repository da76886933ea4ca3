from flask import current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from englib import db_session
from englib.core.client_ip import get_anonymized_client_ip
from englib.core.storage import StorageError, get_storage
from englib.modules.library import bp
from englib.modules.library.service import SORT_MODES, materialize_library, record_click

@bp.route('/tree', methods=['GET'])
def tree():
    """Library tree of every textbook that has active files"""
    sort_by = request.args.get('sort', 'name')
    if sort_by not in SORT_MODES:
        sort_by = 'name'

    try:
        textbooks, total_files = materialize_library(
            sort_by=sort_by,
            batch_size=current_app.config['TREE_FETCH_BATCH_SIZE']
        )
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Error building library tree: {str(e)}")
        return jsonify({'success': False, 'error': 'Failed to load library tree'}), 500

    return jsonify({
        'success': True,
        'data': textbooks,
        'sortBy': sort_by,
        'stats': {
            'totalTextbooks': len(textbooks),
            'totalFiles': total_files,
        },
    })

@bp.route('/<int:file_id>/click', methods=['POST'])
def click(file_id):
    """Count a click on a file"""
    try:
        file = record_click(file_id, get_anonymized_client_ip())
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Error recording click for file {file_id}: {str(e)}")
        return jsonify({'success': False, 'error': 'Failed to record click'}), 500

    if not file:
        return jsonify({'success': False, 'error': 'File not found'}), 404

    return jsonify({'success': True, 'file_id': file.id, 'click_count': file.click_count})

@bp.route('/<int:file_id>/link', methods=['GET'])
def link(file_id):
    """Count a click and hand out a temporary download link"""
    try:
        file = record_click(file_id, get_anonymized_client_ip())
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Error recording click for file {file_id}: {str(e)}")
        return jsonify({'success': False, 'error': 'Failed to record click'}), 500

    if not file:
        return jsonify({'success': False, 'error': 'File not found'}), 404

    try:
        url = get_storage().temporary_link(
            file.dropbox_path,
            current_app.config['SYNC_LINK_EXPIRY_SECONDS']
        )
    except StorageError as e:
        current_app.logger.error(f"Error creating link for file {file_id}: {str(e)}")
        return jsonify({'success': False, 'error': 'Could not create download link'}), 502

    return jsonify({'success': True, 'url': url, 'name': file.name, 'click_count': file.click_count})
