"""
Statistics API Routes
Live aggregator output for the reporting dashboard

Every endpoint takes the same query params:
    start_date: YYYY-MM-DD (default: today)
    end_date: YYYY-MM-DD (default: start_date)
    period: today, week, month or custom (default: custom)
"""
import logging
from functools import wraps

from flask import Blueprint, current_app, jsonify, request

from imd_reports.errors import DataFetchError
from imd_reports.services.department_stats import (
    OccupancyPolicy,
    department_statistics,
    specialty_distribution,
    specialty_statistics,
)
from imd_reports.services.discharge_stats import admission_trends, discharge_statistics
from imd_reports.services.doctor_stats import doctor_statistics
from imd_reports.services.fetchers import fetch_admissions, fetch_consultations, fetch_department_names
from imd_reports.services.long_stay import detect_long_stay
from imd_reports.services.refresh import get_refresher
from imd_reports.services.summary import report_summary, safety_statistics
from imd_reports.utils.date_filters import DateFilter, parse_date, utc_now

logger = logging.getLogger(__name__)

statistics_bp = Blueprint('statistics', __name__, url_prefix='/api/statistics')


def date_filter_from_args(args) -> DateFilter:
    """Build the requested range; raises ValueError on a malformed date or period."""
    start = parse_date(args.get('start_date')) or utc_now().date()
    end = parse_date(args.get('end_date')) or start
    return DateFilter.from_dates(start, end, args.get('period') or 'custom')


def statistics_view(func):
    """Wrap a view's result in the success envelope and map failures to status codes."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return jsonify({
                'success': True,
                'data': func(*args, **kwargs)
            })
        except ValueError as e:
            return jsonify({
                'success': False,
                'error': str(e)
            }), 400
        except DataFetchError as e:
            logger.error(f"Statistics unavailable: {e.message}")
            return jsonify({
                'success': False,
                'error': e.message
            }), 503
        except Exception as e:
            logger.error(f"Error computing statistics: {e}", exc_info=True)
            error_msg = 'Failed to compute statistics' if not current_app.debug else str(e)
            return jsonify({
                'success': False,
                'error': error_msg
            }), 500
    return wrapper


@statistics_bp.route('/summary', methods=['GET'])
@statistics_view
def summary():
    """Active patients, active consultations, average stay and occupancy"""
    date_filter = date_filter_from_args(request.args)
    batch = get_refresher().get()
    result = report_summary(
        batch.patients,
        batch.consultations,
        date_filter,
        total_beds=current_app.config['TOTAL_BEDS'],
        appointments=[a for a in batch.appointments if date_filter.contains(a.created_at)],
    )
    return {**result.to_dict(), 'date_filter': date_filter.to_dict()}


@statistics_bp.route('/departments', methods=['GET'])
@statistics_view
def departments():
    """Per-department active admissions, active consultations and occupancy"""
    result = department_statistics(
        fetch_admissions(status='active'),
        fetch_consultations(status='active'),
        departments=fetch_department_names() or None,
        policy=OccupancyPolicy.from_config(current_app.config),
    )
    return result.to_dict()


@statistics_bp.route('/specialties', methods=['GET'])
@statistics_view
def specialties():
    """Per-specialty statistics and the consultation distribution of the range"""
    date_filter = date_filter_from_args(request.args)
    config = current_app.config
    batch = get_refresher().get()
    active_consultations = [c for c in batch.consultations if c.status == 'active']
    stats = specialty_statistics(
        batch.patients,
        active_consultations,
        config['SPECIALTIES'],
        policy=OccupancyPolicy.from_config(config, mode_key='SPECIALTY_OCCUPANCY_POLICY'),
    )
    distribution = specialty_distribution(
        c for c in batch.consultations if date_filter.contains(c.created_at)
    )
    return {**stats.to_dict(), 'distribution': distribution}


@statistics_bp.route('/doctors', methods=['GET'])
@statistics_view
def doctors():
    date_filter = date_filter_from_args(request.args)
    batch = get_refresher().get()
    return doctor_statistics(batch.consultations, date_filter).to_dict()


@statistics_bp.route('/discharges', methods=['GET'])
@statistics_view
def discharges():
    """Discharges, length of stay and the daily admission/discharge timelines"""
    date_filter = date_filter_from_args(request.args)
    batch = get_refresher().get()
    result = discharge_statistics(batch.patients, date_filter).to_dict()
    trends = admission_trends(batch.patients, date_filter)
    result['admission_trends'] = [{'date': day, 'count': count} for day, count in trends.items()]
    return result


@statistics_bp.route('/long-stay', methods=['GET'])
@statistics_view
def long_stay():
    date_filter = date_filter_from_args(request.args)
    batch = get_refresher().get()
    return detect_long_stay(
        batch.patients,
        date_filter,
        threshold_days=current_app.config['LONG_STAY_THRESHOLD_DAYS'],
    ).to_dict()


@statistics_bp.route('/safety', methods=['GET'])
@statistics_view
def safety():
    date_filter = date_filter_from_args(request.args)
    batch = get_refresher().get()
    return safety_statistics(batch.patients, date_filter).to_dict()
