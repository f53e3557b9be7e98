"""
Department Statistics API
Serves the precomputed per-department statistics
"""
import logging

from flask import Blueprint, jsonify, request

from imd_reports.models import DepartmentStatistic

logger = logging.getLogger(__name__)

department_stats_bp = Blueprint('department_stats', __name__, url_prefix='/api/department-stats')


@department_stats_bp.route('', methods=['GET'])
def list_department_stats():
    """
    List department statistics

    Query params:
        include: 'all' returns every record; anything else only new records
    """
    try:
        query = DepartmentStatistic.query
        if request.args.get('include') != 'all':
            query = query.filter_by(is_new=True)
        stats = query.order_by(DepartmentStatistic.id).all()
        return jsonify([stat.to_dict() for stat in stats])
    except Exception as e:
        logger.error(f"Error fetching department stats: {e}", exc_info=True)
        return jsonify({'error': 'Internal Server Error'}), 500
