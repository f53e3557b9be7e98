"""
Report Service
Business logic for report export and management
"""
import logging
import os
import secrets
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from flask import current_app

from imd_reports.errors import DataFetchError, PDFGenerationError
from imd_reports.extensions import db
from imd_reports.models import Report
from imd_reports.services.department_stats import OccupancyPolicy, department_statistics, specialty_distribution
from imd_reports.services.discharge_stats import admission_trends, discharge_statistics
from imd_reports.services.doctor_stats import doctor_statistics
from imd_reports.services.fetchers import fetch_department_names
from imd_reports.services.long_stay import detect_long_stay
from imd_reports.services.refresh import get_refresher
from imd_reports.services.summary import report_summary, safety_statistics
from imd_reports.snapshots import ExportData, SnapshotBatch
from imd_reports.utils.audit import log_audit
from imd_reports.utils.date_filters import DateFilter, ReportFilters, as_utc, utc_now
from imd_reports.utils.pdf_utils import (
    build_admin_report,
    build_daily_report,
    build_long_stay_report,
    load_logo,
    write_report,
)

logger = logging.getLogger(__name__)

REPORT_KINDS = ('daily', 'admin', 'long-stay')


def generate_report_number() -> str:
    """Generate unique report number"""
    timestamp = utc_now().strftime('%Y%m%d')
    random_part = secrets.token_hex(4).upper()
    return f"RPT-{timestamp}-{random_part}"


def report_filename(kind: str, now: Optional[datetime] = None) -> str:
    """``<kind>-report-DD-MM-YYYY-HHmm.pdf``"""
    now = now or utc_now()
    return f"{kind}-report-{now.strftime('%d-%m-%Y-%H%M')}.pdf"


def apply_report_filters(batch: SnapshotBatch, filters: ReportFilters, date_filter: DateFilter,
                         generated_by: str = 'system', now: Optional[datetime] = None) -> ExportData:
    """
    Narrow a snapshot batch to what the reporting screen shows.

    Consultations match on created_at, specialty and patient name/MRN.
    Patients match on their latest admission date, department and
    name/MRN/doctor. Appointments match on created_at, specialty and
    patient name/medical number.
    """
    consultations = tuple(
        c for c in batch.consultations
        if date_filter.contains(c.created_at)
        and filters.matches_specialty(c.specialty)
        and filters.matches_search(c.patient_name, c.mrn)
    )
    patients = tuple(
        p for p in batch.patients
        if date_filter.contains(p.admission_date)
        and filters.matches_specialty(p.department_name)
        and filters.matches_search(p.name, p.mrn, p.doctor_name)
    )
    appointments = tuple(
        a for a in batch.appointments
        if date_filter.contains(a.created_at)
        and filters.matches_specialty(a.specialty)
        and filters.matches_search(a.patient_name, a.medical_number)
    )
    return ExportData(
        date_filter=date_filter,
        patients=patients,
        consultations=consultations,
        appointments=appointments,
        generated_at=as_utc(now) if now else utc_now(),
        generated_by=generated_by,
    )


def collect_report_metrics(batch: SnapshotBatch, date_filter: DateFilter, config,
                           now: Optional[datetime] = None, departments=None) -> Dict[str, Any]:
    """
    Run every aggregator over the batch for one date range.

    Keys match the chart regions of the administrative report.
    """
    now = as_utc(now) if now else utc_now()
    admissions = [a for p in batch.patients for a in p.admissions]
    active_consultations = [c for c in batch.consultations if c.status == 'active']
    in_range = [c for c in batch.consultations if date_filter.contains(c.created_at)]

    return {
        'summary': report_summary(
            batch.patients,
            batch.consultations,
            date_filter,
            total_beds=config.get('TOTAL_BEDS', 100),
            now=now,
            appointments=[a for a in batch.appointments if date_filter.contains(a.created_at)],
        ),
        'departments': department_statistics(
            admissions,
            active_consultations,
            departments=departments,
            policy=OccupancyPolicy.from_config(config),
        ),
        'doctors': doctor_statistics(batch.consultations, date_filter),
        'long_stay': detect_long_stay(
            batch.patients,
            date_filter,
            now=now,
            threshold_days=config.get('LONG_STAY_THRESHOLD_DAYS', 7),
        ),
        'admission_trends': admission_trends(batch.patients, date_filter),
        'specialty_distribution': specialty_distribution(in_range),
        'safety': safety_statistics(batch.patients, date_filter),
        'discharges': discharge_statistics(batch.patients, date_filter),
    }


def render_report(kind: str, filters: ReportFilters, date_filter: DateFilter, batch: SnapshotBatch,
                  config, now: Optional[datetime] = None, generated_by: str = 'system',
                  departments=None) -> bytes:
    """
    Build the PDF bytes for one report kind.

    Raises:
        ValueError: Unknown report kind
        PDFGenerationError: The document could not be built
    """
    if kind not in REPORT_KINDS:
        raise ValueError(f"Invalid report kind '{kind}'. Must be one of: {', '.join(REPORT_KINDS)}")

    now = as_utc(now) if now else utc_now()
    export_data = apply_report_filters(batch, filters, date_filter, generated_by=generated_by, now=now)
    logo = load_logo(config.get('REPORT_LOGO'), timeout=config.get('LOGO_FETCH_TIMEOUT', 5))
    prefix = config.get('REPORT_TITLE_PREFIX', 'IMD-Care')

    if kind == 'daily':
        return build_daily_report(export_data, title_prefix=prefix, logo=logo)

    if kind == 'long-stay':
        long_stay = detect_long_stay(
            export_data.patients,
            date_filter,
            now=now,
            threshold_days=config.get('LONG_STAY_THRESHOLD_DAYS', 7),
        )
        return build_long_stay_report(long_stay, date_filter, generated_at=now, logo=logo)

    metrics = collect_report_metrics(batch, date_filter, config, now=now, departments=departments)
    return build_admin_report(export_data, metrics, title_prefix=prefix, logo=logo)


def create_report(
    kind: str,
    filters: ReportFilters,
    date_filter: DateFilter,
    generated_by: Optional[str] = None,
    report_number: Optional[str] = None,
) -> Report:
    """
    Create a new report record

    Args:
        kind: daily, admin or long-stay
        filters: Filter set the report was requested with
        date_filter: Resolved range the report covers
        generated_by: Who asked for the report (optional)
        report_number: Report number (optional, auto-generated if not provided)

    Returns:
        Report: Created report object
    """
    if kind not in REPORT_KINDS:
        raise ValueError(f"Invalid report kind '{kind}'. Must be one of: {', '.join(REPORT_KINDS)}")

    if not report_number:
        report_number = generate_report_number()

    report = Report(
        report_number=report_number,
        report_kind=kind,
        period=date_filter.period,
        period_start=date_filter.start.replace(tzinfo=None),
        period_end=date_filter.end.replace(tzinfo=None),
        status='generating',
        file_path='',  # Will be set after PDF generation
        file_size=0,
        filters={
            'dateFrom': filters.date_from.isoformat(),
            'dateTo': filters.date_to.isoformat(),
            'reportType': filters.report_type,
            'specialty': filters.specialty,
            'searchQuery': filters.search_query,
        },
        generated_by=generated_by or 'system',
    )

    db.session.add(report)
    db.session.flush()  # Get the ID

    return report


def _report_scope(report: Report) -> Tuple[ReportFilters, DateFilter]:
    filters = ReportFilters.from_payload(report.filters or {})
    date_filter = DateFilter(report.period_start, report.period_end, report.period or 'custom')
    return filters, date_filter


def generate_report_pdf(report: Report, batch: Optional[SnapshotBatch] = None,
                        now: Optional[datetime] = None) -> str:
    """
    Generate the PDF file for a report

    Args:
        report: Report object
        batch: Snapshots to report on (defaults to the app's refresher)

    Returns:
        str: Path to generated PDF file

    Raises:
        PDFGenerationError: The report row is marked failed with the error code
    """
    config = current_app.config
    now = as_utc(now) if now else utc_now()
    filters, date_filter = _report_scope(report)
    reports_dir = config.get('PDF_REPORTS_PATH', 'reports')
    output_path = os.path.join(reports_dir, f"{report.report_number}-{report_filename(report.report_kind, now)}")

    try:
        if batch is None:
            batch = get_refresher().get()
        departments = fetch_department_names() or None
    except DataFetchError as e:
        _mark_failed(report, None, e.message)
        raise

    try:
        content = render_report(
            report.report_kind, filters, date_filter, batch, config,
            now=now, generated_by=report.generated_by, departments=departments,
        )
        pdf_path = write_report(content, output_path)
    except PDFGenerationError as e:
        _mark_failed(report, e.code, e.message)
        raise
    except Exception as e:
        logger.error(f"Error rendering report {report.report_number}: {e}", exc_info=True)
        error = PDFGenerationError('Failed to generate report', {'original_error': e})
        _mark_failed(report, error.code, error.message)
        raise error from e

    report.file_name = os.path.basename(pdf_path)
    report.file_path = pdf_path
    report.file_size = os.path.getsize(pdf_path)
    report.status = 'completed'
    db.session.commit()

    log_audit('report', 'export', actor=report.generated_by, entity_id=report.id,
              details={'report_number': report.report_number, 'kind': report.report_kind})
    logger.info(f"Report PDF generated: {pdf_path} (Report ID: {report.id})")
    return pdf_path


def _mark_failed(report: Report, code: Optional[str], message: str) -> None:
    report.status = 'failed'
    report.error_code = code
    report.error_message = message
    db.session.commit()
    log_audit('report', 'fail', actor=report.generated_by, entity_id=report.id,
              details={'report_number': report.report_number, 'code': code, 'error': message})
    logger.error(f"Report {report.report_number} failed: {message}")


def get_report_by_id(report_id: int) -> Optional[Report]:
    """Get report by ID"""
    return db.session.get(Report, report_id)


def list_reports(
    kind: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Dict[str, Any]:
    """
    List reports with pagination and filters

    Returns:
        dict: Reports and pagination info
    """
    query = Report.query

    if kind:
        query = query.filter_by(report_kind=kind)
    if status:
        query = query.filter_by(status=status)

    # Order by date (newest first)
    query = query.order_by(Report.created_at.desc(), Report.id.desc())

    pagination = query.paginate(page=page, per_page=limit, error_out=False)

    return {
        'reports': [report.to_dict() for report in pagination.items],
        'pagination': {
            'page': pagination.page,
            'limit': limit,
            'total': pagination.total,
            'pages': pagination.pages
        }
    }
