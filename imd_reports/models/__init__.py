from .department import Department
from .doctor import Doctor
from .patient import Patient
from .admission import Admission
from .consultation import Consultation
from .appointment import Appointment
from .department_statistic import DepartmentStatistic
from .report import Report
from .audit_log import AuditLog

__all__ = ["Department", "Doctor", "Patient", "Admission", "Consultation", "Appointment", "DepartmentStatistic", "Report", "AuditLog"]
