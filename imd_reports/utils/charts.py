"""
Chart drawings for the administrative report, built with reportlab.graphics.

Each ``*_chart`` function takes one aggregator result and a width in points
and returns a Drawing that platypus can place like any other flowable.
"""
import math
from datetime import date

from reportlab.graphics.charts.barcharts import VerticalBarChart
from reportlab.graphics.charts.legends import Legend
from reportlab.graphics.charts.linecharts import HorizontalLineChart
from reportlab.graphics.shapes import Drawing, String
from reportlab.graphics.widgets.markers import makeMarker
from reportlab.lib import colors

CHART_HEIGHT = 200
PRIMARY = colors.HexColor('#3f51b5')
SERIES_COLORS = [
    PRIMARY,
    colors.HexColor('#10b981'),
    colors.HexColor('#ef4444'),
    colors.HexColor('#f59e0b'),
    colors.HexColor('#6366f1'),
]
MAX_AXIS_LABELS = 12


def _value_axis(peak):
    """Axis max and step giving about five integer ticks."""
    step = max(1, math.ceil(peak / 5))
    return step * 5, step


def _thin_labels(labels):
    """Blank out labels so no more than MAX_AXIS_LABELS are printed."""
    every = max(1, math.ceil(len(labels) / MAX_AXIS_LABELS))
    return [label if i % every == 0 else '' for i, label in enumerate(labels)]


def empty_chart(width, height=CHART_HEIGHT, message='No data available'):
    drawing = Drawing(width, height)
    drawing.add(String(width / 2, height / 2, message, textAnchor='middle',
                       fontName='Helvetica', fontSize=10, fillColor=colors.grey))
    return drawing


def bar_chart(categories, series, width, height=CHART_HEIGHT):
    """
    Grouped vertical bar chart.

    Args:
        categories: Category labels along the x axis
        series: List of (name, values) pairs, one bar per category each
        width: Drawing width in points
    """
    categories = list(categories)
    if not categories or not any(any(values) for _, values in series):
        return empty_chart(width, height)

    drawing = Drawing(width, height)
    chart = VerticalBarChart()
    chart.x = 40
    chart.y = 50
    chart.width = width - 60
    chart.height = height - 80
    chart.data = [tuple(values) for _, values in series]
    chart.categoryAxis.categoryNames = [str(c) for c in categories]
    chart.categoryAxis.labels.angle = 30
    chart.categoryAxis.labels.boxAnchor = 'ne'
    chart.categoryAxis.labels.fontSize = 7
    chart.valueAxis.valueMin = 0
    chart.valueAxis.valueMax, chart.valueAxis.valueStep = _value_axis(
        max(max(values) for _, values in series)
    )
    chart.valueAxis.labels.fontSize = 7
    chart.barSpacing = 1
    chart.groupSpacing = 6
    for i in range(len(series)):
        chart.bars[i].fillColor = SERIES_COLORS[i % len(SERIES_COLORS)]
        chart.bars[i].strokeColor = None
    drawing.add(chart)

    if len(series) > 1:
        drawing.add(_legend(series, width, height))
    return drawing


def line_chart(labels, values, width, height=CHART_HEIGHT, name=None):
    """Single-series line chart, one point per label."""
    labels = list(labels)
    values = list(values)
    if not labels:
        return empty_chart(width, height)

    drawing = Drawing(width, height)
    chart = HorizontalLineChart()
    chart.x = 40
    chart.y = 40
    chart.width = width - 60
    chart.height = height - 70
    chart.data = [tuple(values)]
    chart.categoryAxis.categoryNames = _thin_labels(labels)
    chart.categoryAxis.labels.fontSize = 7
    chart.categoryAxis.labels.angle = 30
    chart.categoryAxis.labels.boxAnchor = 'ne'
    chart.valueAxis.valueMin = 0
    chart.valueAxis.valueMax, chart.valueAxis.valueStep = _value_axis(max(values) if values else 0)
    chart.valueAxis.labels.fontSize = 7
    chart.lines[0].strokeColor = PRIMARY
    chart.lines[0].strokeWidth = 1.5
    chart.lines[0].symbol = makeMarker('FilledCircle', size=3)
    drawing.add(chart)

    if name:
        drawing.add(_legend([(name, values)], width, height))
    return drawing


def _legend(series, width, height):
    legend = Legend()
    legend.x = width - 10
    legend.y = height - 5
    legend.alignment = 'right'
    legend.fontName = 'Helvetica'
    legend.fontSize = 7
    legend.dx = 6
    legend.dy = 6
    legend.columnMaximum = 1
    legend.boxAnchor = 'ne'
    legend.colorNamePairs = [
        (SERIES_COLORS[i % len(SERIES_COLORS)], name) for i, (name, _) in enumerate(series)
    ]
    return legend


def _short_date(iso_day):
    return date.fromisoformat(iso_day).strftime('%d/%m')


def admission_trends_chart(timeline, width):
    """``timeline`` maps ISO dates to admission counts."""
    return line_chart([_short_date(d) for d in timeline], list(timeline.values()), width, name='Admissions')


def specialty_distribution_chart(rows, width):
    return bar_chart(
        [row['specialty'] for row in rows],
        [('Consultations', [row['count'] for row in rows])],
        width,
    )


def doctor_statistics_chart(stats, width):
    doctors = stats.doctors
    return bar_chart(
        [d.doctor_name for d in doctors],
        [
            ('Total', [d.total_consultations for d in doctors]),
            ('Completed', [d.completed_consultations for d in doctors]),
            ('Emergency', [d.emergency_count for d in doctors]),
        ],
        width,
    )


def safety_statistics_chart(stats, width):
    labels = list(stats.counts)
    return bar_chart(
        [label.replace('-', ' ').title() for label in labels],
        [('Admissions', [stats.counts[label] for label in labels])],
        width,
    )


def discharge_statistics_chart(stats, width):
    timeline = stats.timeline
    return line_chart([_short_date(d) for d in timeline], list(timeline.values()), width, name='Discharges')
