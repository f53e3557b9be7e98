"""
Celery tasks for report generation
"""
import logging

from imd_reports.errors import DataFetchError, PDFGenerationError
from imd_reports.extensions import celery
from imd_reports.services.report_service import generate_report_pdf, get_report_by_id

logger = logging.getLogger(__name__)


@celery.task(bind=True, name='tasks.generate_report_pdf')
def generate_report_pdf_task(self, report_id):
    """
    Generate the PDF for a report record (async via Celery)

    Args:
        report_id: Report ID created by the export endpoint

    Returns:
        dict: Report generation result
    """
    report = get_report_by_id(report_id)
    if not report:
        logger.warning(f"Report {report_id} not found, nothing to generate")
        return {'success': False, 'error': 'Report not found'}

    self.update_state(state='PROCESSING', meta={'step': f'Generating {report.report_kind} report'})

    try:
        pdf_path = generate_report_pdf(report)
    except PDFGenerationError as e:
        # The report row already carries the failure
        return {'success': False, 'report_id': report_id, 'error': e.message, 'code': e.code}
    except DataFetchError as e:
        return {'success': False, 'report_id': report_id, 'error': e.message}

    return {
        'success': True,
        'report_id': report_id,
        'report_number': report.report_number,
        'pdf_path': pdf_path,
    }


@celery.task(name='tasks.batch_generate_reports')
def batch_generate_reports(report_ids):
    """
    Queue PDF generation for several report records

    Args:
        report_ids: List of Report IDs

    Returns:
        dict: Task results
    """
    results = []
    for report_id in report_ids:
        result = generate_report_pdf_task.delay(report_id)
        results.append({'report_id': report_id, 'task_id': result.id})

    return {
        'success': True,
        'total': len(report_ids),
        'tasks': results
    }
