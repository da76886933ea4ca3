from datetime import datetime, timedelta
from flask import current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from englib import db_session
from englib.core.auth import require_admin
from englib.core.client_ip import get_anonymized_client_ip
from englib.core.request_utils import get_json_object, get_string
from englib.modules.requests import bp
from englib.modules.requests.models import REQUEST_STATUSES, TextbookRequest, TextbookRequestLog

MIN_NAME_LENGTH = 2
RATE_WINDOW = timedelta(hours=24)

@bp.route('/requests', methods=['POST'])
def create_request():
    """Request a missing textbook, or add a vote to an existing request"""
    data = get_json_object()
    textbook_name = get_string(data, 'textbookName')

    if len(textbook_name) < MIN_NAME_LENGTH:
        return jsonify({'success': False, 'error': '교재명은 최소 2자 이상 입력해주세요.'}), 400

    daily_limit = current_app.config['REQUEST_DAILY_LIMIT']
    user_ip = get_anonymized_client_ip()

    try:
        since = datetime.utcnow() - RATE_WINDOW
        recent_count = TextbookRequestLog.query.filter(
            TextbookRequestLog.textbook_name == textbook_name,
            TextbookRequestLog.user_ip == user_ip,
            TextbookRequestLog.created_at >= since
        ).count()

        if recent_count >= daily_limit:
            return jsonify({
                'success': False,
                'error': f'24시간 내 최대 {daily_limit}회까지만 추천할 수 있습니다. 나중에 다시 시도해주세요.',
                'duplicate': True,
                'remainingCount': 0,
            }), 429

        db_session.add(TextbookRequestLog(textbook_name=textbook_name, user_ip=user_ip))

        existing = TextbookRequest.query.filter_by(textbook_name=textbook_name).first()
        if existing:
            existing.request_count = existing.request_count + 1
            existing.user_ip = user_ip
            textbook_request = existing
        else:
            textbook_request = TextbookRequest(
                textbook_name=textbook_name,
                request_count=1,
                user_ip=user_ip
            )
            db_session.add(textbook_request)

        db_session.commit()
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Error saving textbook request: {str(e)}")
        return jsonify({'success': False, 'error': '요청 처리 중 오류가 발생했습니다.'}), 500

    return jsonify({
        'success': True,
        'message': '교재 요청이 접수되었습니다.',
        'remainingCount': daily_limit - recent_count - 1,
        'request': {
            'id': textbook_request.id,
            'textbook_name': textbook_request.textbook_name,
            'request_count': textbook_request.request_count,
            'isNew': existing is None,
        },
    })

@bp.route('/requests', methods=['GET'])
def list_requests():
    """Most requested textbooks"""
    limit = request.args.get('limit', 10, type=int)
    try:
        rows = (
            TextbookRequest.query
            .order_by(TextbookRequest.request_count.desc(), TextbookRequest.id)
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Error loading textbook requests: {str(e)}")
        return jsonify({'success': False, 'error': '요청 목록 조회에 실패했습니다.'}), 500

    return jsonify({
        'success': True,
        'requests': [r.to_dict() for r in rows],
        'count': len(rows),
    })

@bp.route('/admin/requests', methods=['GET'])
@require_admin
def admin_list_requests():
    """All requests, filtered by status and sorted for the admin sidebar"""
    status = request.args.get('status')
    sort = request.args.get('sort', 'request_count')
    order = request.args.get('order', 'desc')

    sort_columns = {
        'request_count': TextbookRequest.request_count,
        'created_at': TextbookRequest.created_at,
        'updated_at': TextbookRequest.updated_at,
    }
    column = sort_columns.get(sort, TextbookRequest.request_count)
    column = column.asc() if order == 'asc' else column.desc()

    try:
        query = TextbookRequest.query
        if status:
            if status not in REQUEST_STATUSES:
                return jsonify({'success': False, 'error': f'Unknown status: {status}'}), 400
            query = query.filter_by(status=status)
        rows = query.order_by(column, TextbookRequest.id).all()
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Error loading textbook requests: {str(e)}")
        return jsonify({'success': False, 'error': 'Failed to load requests'}), 500

    return jsonify({
        'success': True,
        'requests': [r.to_dict() for r in rows],
        'count': len(rows),
    })

@bp.route('/admin/requests/<int:request_id>', methods=['PUT'])
@require_admin
def admin_update_request(request_id):
    """Mark a request as completed or rejected"""
    data = get_json_object()
    status = data.get('status')

    if status not in REQUEST_STATUSES:
        return jsonify({'success': False, 'error': f"status must be one of {', '.join(REQUEST_STATUSES)}"}), 400

    try:
        textbook_request = TextbookRequest.query.get(request_id)
        if not textbook_request:
            return jsonify({'success': False, 'error': 'Request not found'}), 404
        textbook_request.status = status
        db_session.commit()
    except SQLAlchemyError as e:
        db_session.rollback()
        current_app.logger.error(f"Error updating request {request_id}: {str(e)}")
        return jsonify({'success': False, 'error': 'Failed to update request'}), 500

    current_app.logger.info(f"Request {request_id} marked {status}")
    return jsonify({'success': True, 'request': textbook_request.to_dict()})
