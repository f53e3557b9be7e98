from .fetchers import (
    fetch_patients,
    fetch_admissions,
    fetch_consultations,
    fetch_appointments,
    fetch_department_names,
    fetch_snapshot_batch,
)

from .refresh import SnapshotRefresher, get_refresher

from .report_service import (
    create_report,
    generate_report_pdf,
    get_report_by_id,
    list_reports,
    render_report,
)
