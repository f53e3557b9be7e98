from .health import health_bp
from .department_stats import department_stats_bp
from .statistics import statistics_bp
from .reporting import reporting_bp

__all__ = ['health_bp', 'department_stats_bp', 'statistics_bp', 'reporting_bp']
