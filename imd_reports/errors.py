"""
Error kinds raised by the reporting layer and their JSON error handlers.
"""
import logging

logger = logging.getLogger(__name__)

PDF_GENERATION_ERROR = 'PDF_GENERATION_ERROR'
PDF_EXPORT_ERROR = 'PDF_EXPORT_ERROR'


class ReportingError(Exception):
    """Base class for reporting failures"""


class DataFetchError(ReportingError):
    """The data source query failed (connection, SQL or mapping error)."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class PDFGenerationError(ReportingError):
    """
    A PDF report could not be produced.

    ``code`` separates failures while building the document
    (PDF_GENERATION_ERROR) from failures while writing it out
    (PDF_EXPORT_ERROR). The underlying exception is kept in
    ``context['original_error']``.
    """

    def __init__(self, message, context=None, code=PDF_GENERATION_ERROR):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.code = code

    @property
    def original_error(self):
        return self.context.get('original_error')

    def to_dict(self):
        original = self.original_error
        return {
            'success': False,
            'error': self.message,
            'code': self.code,
            'details': str(original) if original is not None else None,
        }


def register_error_handlers(app):
    """JSON bodies for HTTP errors, reporting failures and anything unhandled."""
    from flask import jsonify
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({
            'success': False,
            'error': e.description if e.code != 404 else 'Endpoint not found'
        }), e.code

    @app.errorhandler(DataFetchError)
    def handle_fetch_error(e):
        logger.error(f"Data fetch failed: {e.message}")
        return jsonify({
            'success': False,
            'error': e.message
        }), 503

    @app.errorhandler(PDFGenerationError)
    def handle_pdf_error(e):
        logger.error(f"PDF generation failed: {e.message}", exc_info=e.original_error)
        return jsonify(e.to_dict()), 500

    @app.errorhandler(Exception)
    def handle_exception(e):
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        error_msg = 'Internal server error. Check server logs for details.' if not app.debug else str(e)
        return jsonify({
            'success': False,
            'error': error_msg
        }), 500
