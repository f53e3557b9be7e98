"""
Health check endpoints for monitoring and load balancers
"""
import os

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from imd_reports.extensions import db
from imd_reports.utils.date_filters import utc_now

health_bp = Blueprint('health', __name__, url_prefix='/health')


def _database_status():
    try:
        db.session.execute(db.text('SELECT 1'))
        return 'connected'
    except SQLAlchemyError as e:
        db.session.rollback()
        return f'error: {e}'


def _reports_dir_status():
    path = current_app.config.get('PDF_REPORTS_PATH', 'reports')
    if not os.path.exists(path):
        return 'missing (created on first export)'
    return 'writable' if os.access(path, os.W_OK) else 'read-only'


@health_bp.route('', methods=['GET'])
@health_bp.route('/ping', methods=['GET'])
def health_check():
    """Process is up; touches nothing else"""
    return jsonify({
        'status': 'healthy',
        'service': 'imd-reports',
        'timestamp': utc_now().isoformat()
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """Database reachable and reports directory usable"""
    database = _database_status()
    ready = database == 'connected'
    return jsonify({
        'status': 'ready' if ready else 'not_ready',
        'database': database,
        'reports_dir': _reports_dir_status(),
        'timestamp': utc_now().isoformat()
    }), 200 if ready else 503


@health_bp.route('/live', methods=['GET'])
def liveness_check():
    return jsonify({
        'status': 'alive',
        'timestamp': utc_now().isoformat()
    }), 200


@health_bp.route('/snapshots', methods=['GET'])
def snapshots_check():
    """Age of the cached snapshot batch and whether a refresh is running"""
    refresher = current_app.extensions.get('snapshot_refresher')
    batch = refresher.batch if refresher else None
    now = utc_now()
    return jsonify({
        'status': 'stale' if refresher is None or refresher.is_stale() else 'fresh',
        'fetched_at': batch.fetched_at.isoformat() if batch else None,
        'age_seconds': round(batch.age_seconds(now), 1) if batch else None,
        'refreshing': refresher.is_refreshing if refresher else False,
        'refresh_count': refresher.refresh_count if refresher else 0,
        'interval_seconds': refresher.interval_seconds if refresher else None,
        'timestamp': now.isoformat()
    }), 200
