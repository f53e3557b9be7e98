"""
PDF Generation Utilities using ReportLab
"""
import logging
import os
from collections import namedtuple
from functools import wraps
from io import BytesIO
from xml.sax.saxutils import escape

import requests
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import Image, KeepTogether, LongTable, Paragraph, SimpleDocTemplate, Spacer, TableStyle

from imd_reports.errors import PDF_EXPORT_ERROR, PDFGenerationError
from imd_reports.utils import charts
from imd_reports.utils.date_filters import utc_now

logger = logging.getLogger(__name__)

HEADER_COLOR = colors.HexColor('#3f51b5')
ALTERNATE_ROW_COLOR = colors.HexColor('#f5f7fa')
FOOTER_COLOR = colors.HexColor('#6b7280')
MARGIN = 14 * mm
LOGO_SIZE = 30 * mm

DATE_FORMAT = '%d/%m/%Y'
DATETIME_FORMAT = '%d/%m/%Y %H:%M'

ChartSection = namedtuple('ChartSection', 'key title render')

# Chart regions of the administrative report, in page order
CHART_SECTIONS = (
    ChartSection('admission_trends', 'Admission Trends', charts.admission_trends_chart),
    ChartSection('specialty_distribution', 'Specialty Distribution', charts.specialty_distribution_chart),
    ChartSection('doctors', 'Doctor Statistics', charts.doctor_statistics_chart),
    ChartSection('safety', 'Safety Statistics', charts.safety_statistics_chart),
    ChartSection('discharges', 'Discharge Statistics', charts.discharge_statistics_chart),
)


class NumberedCanvas(canvas.Canvas):
    """Canvas that holds every page until save() so it can print 'Page N of M'."""

    def __init__(self, *args, **kwargs):
        canvas.Canvas.__init__(self, *args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self.draw_page_number(page_count)
            canvas.Canvas.showPage(self)
        canvas.Canvas.save(self)

    def draw_page_number(self, page_count):
        self.saveState()
        self.setFont('Helvetica', 10)
        self.setFillColor(FOOTER_COLOR)
        self.drawCentredString(self._pagesize[0] / 2, 10 * mm, f"Page {self._pageNumber} of {page_count}")
        self.restoreState()


def _build_styles():
    styles = getSampleStyleSheet()
    return {
        'title': ParagraphStyle(
            name='ReportTitle',
            parent=styles['Heading1'],
            fontSize=20,
            leading=24,
            alignment=TA_CENTER,
        ),
        'meta': ParagraphStyle(
            name='ReportMeta',
            parent=styles['Normal'],
            fontSize=12,
            leading=16,
            alignment=TA_CENTER,
        ),
        'section': ParagraphStyle(
            name='SectionHeading',
            parent=styles['Heading2'],
            fontSize=14,
            textColor=HEADER_COLOR,
            spaceBefore=6,
            spaceAfter=6,
        ),
        'cell': ParagraphStyle(
            name='TableCell',
            parent=styles['Normal'],
            fontSize=9,
            leading=11,
        ),
        'head': ParagraphStyle(
            name='TableHead',
            parent=styles['Normal'],
            fontName='Helvetica-Bold',
            fontSize=10,
            leading=12,
            textColor=colors.white,
        ),
        'normal': styles['Normal'],
    }


def _text(value):
    return escape('' if value is None else str(value))


def format_date(value, include_time=False):
    if value is None:
        return ''
    return value.strftime(DATETIME_FORMAT if include_time else DATE_FORMAT)


class ReportDocument:
    """
    A report built as a platypus story.

    Sections are appended in order and laid out by ReportLab on build();
    tables break across pages with their header row repeated.
    """

    def __init__(self, title, pagesize=A4, compress=True):
        self.title = title
        self.buffer = BytesIO()
        self.doc = SimpleDocTemplate(
            self.buffer,
            pagesize=pagesize,
            leftMargin=MARGIN,
            rightMargin=MARGIN,
            topMargin=MARGIN,
            bottomMargin=20 * mm,
            title=title,
            author='IMD-Care',
            pageCompression=1 if compress else 0,
        )
        self.styles = _build_styles()
        self.story = []

    @property
    def frame_width(self):
        return self.doc.width

    def add_header(self, title, generated_at, date_filter=None, logo=None):
        if logo is not None:
            image = Image(BytesIO(logo), width=LOGO_SIZE, height=LOGO_SIZE)
            image.hAlign = 'LEFT'
            self.story.append(image)
        self.story.append(Paragraph(_text(title), self.styles['title']))
        self.story.append(Paragraph(f"Generated on: {format_date(generated_at, True)}", self.styles['meta']))
        if date_filter is not None:
            self.story.append(Paragraph(
                f"Period: {format_date(date_filter.start)} to {format_date(date_filter.end)}",
                self.styles['meta'],
            ))
        self.story.append(Spacer(1, 12))

    def add_section_title(self, text):
        self.story.append(Paragraph(_text(text), self.styles['section']))

    def add_paragraph(self, text):
        self.story.append(Paragraph(_text(text), self.styles['normal']))
        self.story.append(Spacer(1, 12))

    def add_table(self, head, body, table_width=None):
        """Grid table with a repeated header row and striped body rows."""
        width = table_width or self.frame_width
        col_width = width / len(head)
        data = [[Paragraph(_text(h), self.styles['head']) for h in head]]
        data += [[Paragraph(_text(cell), self.styles['cell']) for cell in row] for row in body]

        table = LongTable(data, colWidths=[col_width] * len(head), repeatRows=1, hAlign='LEFT')
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), HEADER_COLOR),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, ALTERNATE_ROW_COLOR]),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('TOPPADDING', (0, 0), (-1, -1), 4),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ]))
        self.story.append(table)
        self.story.append(Spacer(1, 15))

    def add_chart_section(self, title, drawing):
        """Title and drawing move to the next page together when they do not fit."""
        self.story.append(KeepTogether([
            Paragraph(_text(title), self.styles['section']),
            drawing,
            Spacer(1, 15),
        ]))

    def build(self):
        self.doc.build(self.story, canvasmaker=NumberedCanvas)
        return self.buffer.getvalue()


def load_logo(source, timeout=5):
    """
    Load the report logo from an http(s) URL or a local path.

    Returns the image bytes, or None when there is no logo or it cannot be
    read. A missing logo never stops a report.
    """
    if not source:
        return None
    try:
        if source.startswith(('http://', 'https://')):
            response = requests.get(source, timeout=timeout)
            response.raise_for_status()
            content = response.content
        else:
            with open(source, 'rb') as fh:
                content = fh.read()
        ImageReader(BytesIO(content)).getSize()
        return content
    except (requests.RequestException, OSError, ValueError) as e:
        logger.warning(f"Error adding logo to PDF: {e}")
        return None


def _report_step(message):
    """Raise any failure inside the wrapped builder as PDFGenerationError."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except PDFGenerationError:
                raise
            except Exception as e:
                logger.error(f"{message}: {e}", exc_info=True)
                raise PDFGenerationError(message, {'original_error': e}) from e
        return wrapper
    return decorator


@_report_step('Failed to generate daily report')
def build_daily_report(export_data, title_prefix='IMD-Care', logo=None, compress=True):
    """
    Daily report: consultations, appointments and patients of the range,
    followed by a summary table.

    Returns:
        bytes: PDF content
    """
    report = ReportDocument(f"{title_prefix} Daily Report", compress=compress)
    report.add_header(report.title, export_data.generated_at, export_data.date_filter, logo)

    consultations = export_data.consultations
    if consultations:
        report.add_section_title('Medical Consultations')
        report.add_table(
            ['Patient', 'MRN', 'Specialty', 'Doctor', 'Created', 'Urgency'],
            [
                [
                    c.patient_name,
                    c.mrn,
                    c.specialty_name,
                    c.doctor_name or 'Pending',
                    format_date(c.created_at, True),
                    c.urgency,
                ]
                for c in consultations
            ],
        )

    if export_data.appointments:
        report.add_section_title('Clinic Appointments')
        report.add_table(
            ['Patient', 'Medical Number', 'Specialty', 'Type', 'Status'],
            [
                [a.patient_name, a.medical_number, a.specialty, a.appointment_type, a.status]
                for a in export_data.appointments
            ],
        )

    if export_data.patients:
        report.add_section_title('Patients Report')
        report.add_table(
            ['MRN', 'Patient Name', 'Department', 'Assigned Doctor'],
            [
                [p.mrn, p.name, p.department_name, p.assigned_doctor]
                for p in export_data.patients
            ],
        )

    report.add_section_title('Summary')
    report.add_table(
        ['Metric', 'Count'],
        [
            ['Total Medical Consultations', len(consultations)],
            ['Total Clinic Appointments', len(export_data.appointments)],
            ['Total Patients', len(export_data.patients)],
            ['Emergency Consultations', sum(1 for c in consultations if c.urgency_level == 'emergency')],
            ['Urgent Consultations', sum(1 for c in consultations if c.urgency_level == 'urgent')],
        ],
        table_width=100 * mm,
    )
    return report.build()


@_report_step('Failed to generate administrative report')
def build_admin_report(export_data, metrics, title_prefix='IMD-Care', logo=None, compress=True):
    """
    Administrative report: summary, department, doctor and long-stay tables,
    then one chart per CHART_SECTIONS region present in ``metrics``.

    Args:
        export_data: ExportData the metrics were computed from
        metrics: dict of aggregator results keyed like collect_report_metrics()

    Returns:
        bytes: PDF content
    """
    report = ReportDocument(f"{title_prefix} Administrative Report", compress=compress)
    report.add_header(report.title, export_data.generated_at, export_data.date_filter, logo)

    summary = metrics.get('summary')
    if summary is not None:
        report.add_section_title('Summary Statistics')
        report.add_table(
            ['Metric', 'Count'],
            [
                ['Total Active Patients', summary.active_patients],
                ['Total Active Consultations', summary.active_consultations],
                ['Total Appointments', summary.total_appointments],
                ['Average Stay (days)', summary.average_stay],
                ['Occupancy Rate', f"{summary.occupancy_rate}%"],
            ],
            table_width=100 * mm,
        )

    departments = metrics.get('departments')
    if departments is not None and departments.groups:
        report.add_section_title('Department Statistics')
        report.add_table(
            ['Department', 'Active Patients', 'Consultations', 'Occupancy Rate'],
            [
                [g.name, g.patients, g.consultations, f"{g.occupancy_rate}%"]
                for g in departments.groups
            ],
        )

    doctors = metrics.get('doctors')
    if doctors is not None and doctors.doctors:
        report.add_section_title('Doctor Performance')
        report.add_table(
            ['Doctor', 'Total', 'Completed', 'Emergency', 'Urgent', 'Routine', 'Avg Response (min)'],
            [
                [
                    d.doctor_name,
                    d.total_consultations,
                    d.completed_consultations,
                    d.emergency_count,
                    d.urgent_count,
                    d.routine_count,
                    d.average_response_time,
                ]
                for d in doctors.doctors
            ],
        )

    long_stay = metrics.get('long_stay')
    if long_stay is not None and long_stay.patients:
        report.add_section_title('Long Stay Patients')
        _long_stay_table(report, long_stay)

    for section in CHART_SECTIONS:
        value = metrics.get(section.key)
        if value is None:
            continue
        try:
            drawing = section.render(value, report.frame_width)
        except Exception as e:
            logger.warning(f"Error adding chart {section.title} to PDF: {e}", exc_info=True)
            continue
        report.add_chart_section(section.title, drawing)

    return report.build()


def _long_stay_table(report, long_stay):
    report.add_table(
        ['Patient Name', 'MRN', 'Department', 'Doctor', 'Admission Date', 'Stay Duration'],
        [
            [
                p.name,
                p.mrn,
                p.department,
                p.doctor,
                format_date(p.admission_date),
                f"{p.days_of_stay} days",
            ]
            for p in long_stay.patients
        ],
    )


@_report_step('Failed to generate long stay report')
def build_long_stay_report(long_stay, date_filter=None, generated_at=None, logo=None, compress=True):
    """Long-stay patient list, or a one-line notice when there are none."""
    report = ReportDocument('Long Stay Patient Report', compress=compress)
    report.add_header(report.title, generated_at or utc_now(), date_filter, logo)
    if long_stay.patients:
        _long_stay_table(report, long_stay)
    else:
        report.add_paragraph('No long stay patients found.')
    return report.build()


def write_report(content, output_path):
    """
    Write PDF bytes to ``output_path``.

    Returns:
        str: Absolute path of the written file
    """
    output_path = os.path.abspath(output_path)
    try:
        os.makedirs(os.path.dirname(output_path), exist_ok=True, mode=0o755)
        with open(output_path, 'wb') as fh:
            fh.write(content)
    except OSError as e:
        logger.error(f"Error writing PDF report to {output_path}: {e}", exc_info=True)
        raise PDFGenerationError(
            'Failed to export report',
            {'original_error': e, 'path': output_path},
            code=PDF_EXPORT_ERROR,
        ) from e
    logger.info(f"PDF report written: {output_path}")
    return output_path
