"""
Flask web application exposing the database over HTTP.

One endpoint:
- POST /query with {"sql": "..."} runs the statement and returns the
  result fields as JSON
- OPTIONS on any path answers 204 with CORS headers
- Anything else is a JSON 404
"""

import logging

from flask import Flask, jsonify, request

from simplerdbms.config import Settings, configure_logging
from simplerdbms.executor.executor import QueryExecutor
from simplerdbms.storage.table_manager import TableManager

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'POST, OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type',
}


def create_app(executor: QueryExecutor = None) -> Flask:
    """
    Build the Flask app.

    Args:
        executor: Executor to serve; defaults to one over the data
            directory from SIMPLERDBMS_DATA_DIR

    Returns:
        Configured Flask application
    """
    if executor is None:
        settings = Settings.from_env()
        configure_logging(settings)
        executor = QueryExecutor(TableManager(settings.data_dir))

    app = Flask(__name__)
    app.config['EXECUTOR'] = executor

    @app.after_request
    def add_cors_headers(response):
        response.headers.update(CORS_HEADERS)
        return response

    @app.before_request
    def preflight():
        if request.method == 'OPTIONS':
            return '', 204

    @app.route('/query', methods=['POST'])
    def query():
        """Execute one SQL statement."""
        data = request.get_json(silent=True)
        sql = data.get('sql') if isinstance(data, dict) else None
        if not isinstance(sql, str) or not sql.strip():
            return jsonify({
                'success': False,
                'affectedRows': 0,
                'columns': [],
                'rows': [],
                'errorMessage': "Request body must be JSON with a non-empty 'sql' field",
            }), 400

        logger.debug("HTTP query: %s", sql)
        result = executor.execute_sql(sql)
        return jsonify(result.to_dict())

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'success': False, 'errorMessage': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'success': False, 'errorMessage': 'Method not allowed'}), 405

    return app


if __name__ == '__main__':
    create_app().run(port=5000)
