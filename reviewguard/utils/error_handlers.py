from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from marshmallow import ValidationError

from reviewguard.exceptions import ReviewGuardError


def register_error_handlers(app):
    """Register global error handlers"""

    @app.errorhandler(ReviewGuardError)
    def handle_domain_error(e):
        """Handle ReviewGuard domain errors"""
        if e.status_code >= 500:
            current_app.logger.error(f"{e.code}: {e.message}")
        else:
            current_app.logger.info(f"{e.code}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        """Handle Marshmallow validation errors"""
        current_app.logger.warning(f"Validation error: {e.messages}")
        return jsonify({
            'success': False,
            'error': 'Validation failed',
            'code': 'VALIDATION_ERROR',
            'errors': e.messages
        }), 400

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        """Handle database errors"""
        current_app.logger.error(f"Database error: {str(e)}")
        from reviewguard.extensions import db
        db.session.rollback()
        return jsonify({
            'success': False,
            'error': 'Database operation failed',
            'code': 'DATABASE_ERROR'
        }), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        """Handle HTTP errors"""
        return jsonify({
            'success': False,
            'error': e.description,
            'code': e.name.upper().replace(' ', '_')
        }), e.code

    @app.errorhandler(Exception)
    def handle_generic_error(e):
        """Handle unexpected errors"""
        current_app.logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return jsonify({
            'success': False,
            'error': 'An unexpected error occurred',
            'code': 'INTERNAL_ERROR'
        }), 500
