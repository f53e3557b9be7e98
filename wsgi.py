"""
WSGI entry point for production deployment
Used by Gunicorn, uWSGI, and other WSGI servers
"""
from imd_reports import create_app

application = app = create_app()

if __name__ == '__main__':
    application.run(debug=True)
