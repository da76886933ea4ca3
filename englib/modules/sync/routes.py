from flask import current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from englib import db_session
from englib.core.auth import require_admin
from englib.core.models import SyncLog
from englib.core.storage import StorageError, get_storage
from englib.modules.library.models import File, Textbook
from englib.modules.sync import bp
from englib.modules.sync.service import SyncInProgressError, is_sync_running, run_sync

SYNC_TYPES = ('full', 'incremental')

@bp.route('/status', methods=['GET'])
@require_admin
def status():
    """Current sync state and library totals"""
    try:
        last_sync = SyncLog.query.order_by(SyncLog.started_at.desc(), SyncLog.id.desc()).first()
        total_files = File.query.count()
        total_textbooks = Textbook.query.count()
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Error loading sync status: {str(e)}")
        return jsonify({'success': False, 'error': 'Failed to load sync status'}), 500

    return jsonify({
        'success': True,
        'status': {
            'is_syncing': is_sync_running(),
            'last_sync_at': last_sync.started_at.isoformat() if last_sync else None,
            'last_sync_type': last_sync.type if last_sync else None,
            'last_sync_status': last_sync.status if last_sync else None,
            'last_sync_error': last_sync.error_message if last_sync else None,
            'total_files': total_files,
            'total_textbooks': total_textbooks,
        },
    })

@bp.route('/logs', methods=['GET'])
@require_admin
def logs():
    """Latest 20 sync runs"""
    try:
        rows = SyncLog.query.order_by(SyncLog.started_at.desc(), SyncLog.id.desc()).limit(20).all()
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Error loading sync logs: {str(e)}")
        return jsonify({'success': False, 'error': 'Failed to load sync logs'}), 500

    return jsonify({'success': True, 'logs': [row.to_dict() for row in rows]})

@bp.route('/manual', methods=['GET', 'POST'])
@require_admin
def manual():
    """Run a full or incremental sync right now"""
    sync_type = request.args.get('type', 'full')
    if sync_type not in SYNC_TYPES:
        return jsonify({'success': False, 'error': f'Unknown sync type: {sync_type}'}), 400

    try:
        log = run_sync(
            get_storage(),
            sync_type,
            current_app.config['STORAGE_ROOT_PATH'],
            current_app.config['SYNC_ALLOWED_EXTENSIONS']
        )
    except SyncInProgressError:
        return jsonify({'success': False, 'error': 'A sync is already running'}), 409
    except StorageError as e:
        current_app.logger.error(f"Manual sync failed: {str(e)}")
        return jsonify({'success': False, 'error': 'Storage sync failed', 'details': str(e)}), 502
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Manual sync failed: {str(e)}")
        return jsonify({'success': False, 'error': 'Storage sync failed'}), 500

    return jsonify({
        'success': True,
        'data': {
            'logId': log.id,
            'type': log.type,
            'filesAdded': log.files_added,
            'filesUpdated': log.files_updated,
            'filesDeleted': log.files_deleted,
        },
    })
