from datetime import datetime
from flask import current_app, jsonify, request
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from englib import db_session
from englib.core.auth import require_admin
from englib.core.tree_utils import top_level_folder
from englib.modules.analytics import bp
from englib.modules.analytics import stats
from englib.modules.library.models import File, FileClick, Textbook

UNKNOWN_NAME = '알 수 없음'

def _offset():
    return current_app.config['ANALYTICS_UTC_OFFSET_HOURS']

def _database_error(action, e):
    db_session.rollback()
    current_app.logger.error(f"Error loading {action}: {str(e)}")
    return jsonify({'success': False, 'error': f'Failed to load {action}'}), 500

def _click_times(start, end=None):
    query = db_session.query(FileClick.clicked_at).filter(FileClick.clicked_at >= start)
    if end is not None:
        query = query.filter(FileClick.clicked_at < end)
    return [row.clicked_at for row in query.order_by(FileClick.clicked_at).all()]

@bp.route('/analytics', methods=['GET'])
@require_admin
def analytics():
    """Click histograms for a period plus the most clicked files"""
    period = request.args.get('period', 'month')
    if period not in stats.PERIODS:
        period = 'month'
    offset = _offset()
    now = datetime.utcnow()

    try:
        click_times = _click_times(stats.period_start(period, now, offset))
        top_files = (
            db_session.query(File, Textbook.name)
            .join(Textbook, File.textbook_id == Textbook.id)
            .filter(File.is_active.is_(True))
            .order_by(File.click_count.desc(), File.id)
            .limit(20)
            .all()
        )
    except SQLAlchemyError as e:
        return _database_error('analytics', e)

    hourly = stats.hourly_counts(click_times, offset)
    daily = stats.daily_counts(click_times, offset)
    total_clicks = len(click_times)

    return jsonify({
        'success': True,
        'period': period,
        'stats': {
            'totalClicks': total_clicks,
            'avgDailyClicks': round(total_clicks / len(daily)) if daily else 0,
            'daysTracked': len(daily),
        },
        'hourlyStats': [{'hour': f'{hour}:00', 'count': count} for hour, count in enumerate(hourly)],
        'dailyStats': daily,
        'weekdayStats': stats.weekday_counts(click_times, offset),
        'topFiles': [{
            'id': file.id,
            'name': file.name,
            'clickCount': file.click_count,
            'textbookName': textbook_name or UNKNOWN_NAME,
        } for file, textbook_name in top_files],
        'timestamp': now.isoformat(),
    })

@bp.route('/hourly-stats', methods=['GET'])
@require_admin
def hourly_stats():
    """Clicks per hour for one local day"""
    offset = _offset()
    now = datetime.utcnow()
    try:
        local_date = stats.parse_local_date(request.args.get('date'), now, offset)
    except ValueError:
        return jsonify({'success': False, 'error': 'date must be YYYY-MM-DD'}), 400

    start, end = stats.day_bounds(local_date, offset)
    try:
        click_times = _click_times(start, end)
    except SQLAlchemyError as e:
        return _database_error('hourly stats', e)

    counts = stats.hourly_counts(click_times, offset)
    peaks, peak_count = stats.peak_hours(counts)

    return jsonify({
        'success': True,
        'date': local_date.isoformat(),
        'hourlyData': [{'hour': hour, 'count': count} for hour, count in enumerate(counts)],
        'summary': {
            'totalClicks': len(click_times),
            'peakHours': peaks,
            'peakCount': peak_count,
        },
        'timestamp': now.isoformat(),
    })

@bp.route('/top-files', methods=['GET'])
@require_admin
def top_files():
    """Most clicked active files across all textbooks"""
    limit = request.args.get('limit', 10, type=int)
    try:
        rows = (
            db_session.query(File, Textbook)
            .join(Textbook, File.textbook_id == Textbook.id)
            .filter(File.is_active.is_(True))
            .order_by(File.click_count.desc(), File.id)
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as e:
        return _database_error('top files', e)

    files = []
    for file, textbook in rows:
        folder = top_level_folder(file.dropbox_path, textbook.dropbox_path)
        files.append({
            'id': file.id,
            'fileName': file.name,
            'textbookId': textbook.id,
            'textbookName': textbook.name,
            'folderName': folder or stats.ROOT_FOLDER_LABEL,
            'dropboxPath': file.dropbox_path,
            'clickCount': file.click_count or 0,
        })

    return jsonify({
        'success': True,
        'files': files,
        'count': len(files),
        'timestamp': datetime.utcnow().isoformat(),
    })

@bp.route('/top-folders', methods=['GET'])
@require_admin
def top_folders():
    """Most clicked top-level folders across all textbooks"""
    limit = request.args.get('limit', 5, type=int)
    try:
        rows = (
            db_session.query(File, Textbook)
            .join(Textbook, File.textbook_id == Textbook.id)
            .filter(File.is_active.is_(True))
            .order_by(Textbook.id, File.id)
            .all()
        )
    except SQLAlchemyError as e:
        return _database_error('top folders', e)

    textbooks = {}
    files_by_textbook = {}
    for file, textbook in rows:
        textbooks[textbook.id] = textbook
        files_by_textbook.setdefault(textbook.id, []).append(file.to_dict())

    folders = []
    for textbook_id, files in files_by_textbook.items():
        textbook = textbooks[textbook_id]
        for entry in stats.folder_stats(files, textbook.dropbox_path, top_level_folder):
            folders.append({
                'textbookId': textbook.id,
                'textbookName': textbook.name,
                'folderName': entry['folderName'],
                'folderPath': entry['folderPath'],
                'totalClicks': entry['totalClicks'],
                'fileCount': entry['fileCount'],
            })

    folders.sort(key=lambda f: f['totalClicks'], reverse=True)
    folders = folders[:limit]

    return jsonify({
        'success': True,
        'folders': folders,
        'count': len(folders),
        'timestamp': datetime.utcnow().isoformat(),
    })

@bp.route('/top-textbooks', methods=['GET'])
@require_admin
def top_textbooks():
    """Most clicked textbooks, all time or within the last week/month"""
    limit = request.args.get('limit', 10, type=int)
    period = request.args.get('period', 'all')
    if period not in ('week', 'month', 'all'):
        period = 'all'

    try:
        file_counts = dict(
            db_session.query(File.textbook_id, func.count(File.id))
            .filter(File.is_active.is_(True))
            .group_by(File.textbook_id)
            .all()
        )
        if period == 'all':
            click_totals = dict(
                db_session.query(File.textbook_id, func.coalesce(func.sum(File.click_count), 0))
                .filter(File.is_active.is_(True))
                .group_by(File.textbook_id)
                .all()
            )
        else:
            start = stats.period_start(period, datetime.utcnow(), _offset())
            click_totals = dict(
                db_session.query(File.textbook_id, func.count(FileClick.id))
                .join(FileClick, FileClick.file_id == File.id)
                .filter(File.is_active.is_(True), FileClick.clicked_at >= start)
                .group_by(File.textbook_id)
                .all()
            )
        textbooks = Textbook.query.all()
    except SQLAlchemyError as e:
        return _database_error('top textbooks', e)

    ranked = [{
        'id': textbook.id,
        'name': textbook.name,
        'dropbox_path': textbook.dropbox_path,
        'totalClicks': int(click_totals.get(textbook.id, 0)),
        'fileCount': file_counts.get(textbook.id, 0),
        'created_at': textbook.created_at.isoformat() if textbook.created_at else None,
    } for textbook in textbooks]
    ranked.sort(key=lambda t: t['totalClicks'], reverse=True)
    ranked = ranked[:limit]

    return jsonify({
        'success': True,
        'textbooks': ranked,
        'count': len(ranked),
        'period': period,
        'timestamp': datetime.utcnow().isoformat(),
    })
