"""
Reporting API Routes
Handles PDF report export, listing, status and download
"""
import logging
import os
import uuid

from flask import Blueprint, current_app, jsonify, request, send_file

from imd_reports.errors import DataFetchError, PDFGenerationError
from imd_reports.extensions import db
from imd_reports.services.report_service import (
    REPORT_KINDS,
    create_report,
    generate_report_pdf,
    get_report_by_id,
    list_reports,
)
from imd_reports.utils.audit import audit_trail, log_audit
from imd_reports.utils.date_filters import ReportFilters

logger = logging.getLogger(__name__)

reporting_bp = Blueprint('reporting', __name__, url_prefix='/api/reports')

REPORT_STATUSES = ('completed', 'generating', 'failed')


def _invalid(field, allowed):
    return jsonify({
        'success': False,
        'error': f"Invalid {field}. Must be one of: {', '.join(allowed)}"
    }), 400


def _not_found():
    return jsonify({
        'success': False,
        'error': 'Report not found'
    }), 404


@reporting_bp.route('', methods=['GET'])
def list_reports_endpoint():
    """
    List reports with pagination and filters

    Query params:
        kind: Filter by kind (daily, admin, long-stay)
        status: Filter by status (completed, generating, failed)
        page: Page number (default: 1)
        limit: Items per page (default: 20, max: 100)
    """
    page = max(request.args.get('page', 1, type=int), 1)
    limit = min(max(request.args.get('limit', 20, type=int), 1), 100)
    kind = request.args.get('kind')
    status = request.args.get('status')

    if kind and kind not in REPORT_KINDS:
        return _invalid('kind', REPORT_KINDS)
    if status and status not in REPORT_STATUSES:
        return _invalid('status', REPORT_STATUSES)

    return jsonify({
        'success': True,
        'data': list_reports(kind=kind, status=status, page=page, limit=limit)
    })


@reporting_bp.route('/export', methods=['POST'])
def export_report():
    """
    Export a PDF report

    Body:
        kind: daily, admin or long-stay (default: daily)
        dateFrom, dateTo: YYYY-MM-DD (default: today)
        reportType: daily, weekly, monthly or custom (default: custom)
        specialty: Specialty name or 'all'
        searchQuery: Matches patient name, MRN, doctor or medical number
        generatedBy: Who asked for the report (optional)
        async: Generate asynchronously via Celery (default: false)
    """
    data = request.get_json(silent=True) or {}

    kind = data.get('kind', 'daily')
    if kind not in REPORT_KINDS:
        return _invalid('kind', REPORT_KINDS)

    try:
        filters = ReportFilters.from_payload(data)
        date_filter = filters.resolve(daily_window=current_app.config['DAILY_REPORT_WINDOW'])
    except ValueError as e:
        return jsonify({
            'success': False,
            'error': str(e)
        }), 400

    try:
        report = create_report(kind, filters, date_filter, generated_by=data.get('generatedBy'))
        db.session.commit()
    except Exception as e:
        logger.error(f"Error creating report: {e}", exc_info=True)
        db.session.rollback()
        error_msg = 'Failed to create report' if not current_app.debug else str(e)
        return jsonify({
            'success': False,
            'error': error_msg
        }), 500

    report_id = report.id
    report_number = report.report_number

    if data.get('async', False):
        from tasks.report_tasks import generate_report_pdf_task

        task_id = str(uuid.uuid4())
        report.generation_task_id = task_id
        db.session.commit()
        generate_report_pdf_task.apply_async(args=[report_id], task_id=task_id)

        logger.info(f"Report generation queued: Report ID {report_id}, Task ID {task_id}")
        return jsonify({
            'success': True,
            'message': 'Report generation started',
            'data': {
                'report_id': report_id,
                'report_number': report_number,
                'status': 'generating',
                'task_id': task_id
            }
        }), 202  # Accepted

    # Synchronous generation
    try:
        pdf_path = generate_report_pdf(report)
    except PDFGenerationError as e:
        body = e.to_dict()
        body['data'] = {'report_id': report_id, 'status': 'failed'}
        return jsonify(body), 500
    except DataFetchError as e:
        return jsonify({
            'success': False,
            'error': e.message,
            'data': {'report_id': report_id, 'status': 'failed'}
        }), 503

    return send_file(
        pdf_path,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=report.file_name
    )


@reporting_bp.route('/<int:report_id>', methods=['GET'])
def get_report(report_id):
    """Get report details by ID"""
    report = get_report_by_id(report_id)
    if not report:
        return _not_found()

    return jsonify({
        'success': True,
        'data': report.to_dict()
    })


@reporting_bp.route('/<int:report_id>/status', methods=['GET'])
def get_report_status(report_id):
    """Get report generation status"""
    report = get_report_by_id(report_id)
    if not report:
        return _not_found()

    status_data = {
        'report_id': report.id,
        'report_number': report.report_number,
        'status': report.status,
        'error_code': report.error_code,
        'created_at': report.created_at.isoformat() if report.created_at else None
    }

    # Still generating asynchronously: ask Celery how far it got
    if report.generation_task_id and report.status == 'generating':
        from celery.result import AsyncResult
        from imd_reports.extensions import celery
        task_result = AsyncResult(report.generation_task_id, app=celery)
        status_data['task_status'] = task_result.state
        if task_result.state == 'PROCESSING':
            status_data['task_progress'] = task_result.info

    return jsonify({
        'success': True,
        'data': status_data
    })


@reporting_bp.route('/<int:report_id>/download', methods=['GET'])
def download_report(report_id):
    """Download PDF report file"""
    report = get_report_by_id(report_id)
    if not report:
        return _not_found()

    if report.status != 'completed':
        return jsonify({
            'success': False,
            'error': f'Report is not ready. Status: {report.status}'
        }), 400

    if not report.file_path or not os.path.exists(report.file_path):
        return jsonify({
            'success': False,
            'error': 'Report file not found'
        }), 404

    # Validate file path (security)
    file_path = os.path.abspath(report.file_path)
    reports_dir = os.path.abspath(current_app.config.get('PDF_REPORTS_PATH', 'reports'))
    if not file_path.startswith(reports_dir + os.sep):
        logger.warning(f"Invalid file path attempt: {report.file_path}")
        return jsonify({
            'success': False,
            'error': 'Invalid file path'
        }), 400

    log_audit('report', 'download', actor=request.args.get('actor'), entity_id=report_id,
              details={'report_number': report.report_number})

    return send_file(
        file_path,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=report.file_name or f"{report.report_number}.pdf"
    )


@reporting_bp.route('/<int:report_id>/audit', methods=['GET'])
def get_report_audit(report_id):
    """Exports, downloads and failures recorded for a report"""
    report = get_report_by_id(report_id)
    if not report:
        return _not_found()

    return jsonify({
        'success': True,
        'data': {
            'report_id': report.id,
            'report_number': report.report_number,
            'entries': audit_trail('report', report.id)
        }
    })
