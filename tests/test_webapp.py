"""
Tests for the HTTP interface.
"""

from simplerdbms.executor.executor import QueryExecutor
from webapp.app import create_app


class TestWebApp:
    """Test POST /query, CORS and error responses."""

    def setup_method(self):
        """Create an app over an in-memory executor."""
        self.app = create_app(QueryExecutor())
        self.client = self.app.test_client()

    def query(self, sql):
        return self.client.post('/query', json={'sql': sql})

    def test_query_round_trip(self):
        """Test creating, inserting and selecting over HTTP."""
        response = self.query("CREATE TABLE t (id INT PRIMARY KEY, name TEXT)")
        assert response.status_code == 200
        assert response.get_json()['message'] == "Table 't' created"

        response = self.query("INSERT INTO t VALUES (1, 'a')")
        assert response.get_json()['affectedRows'] == 1

        data = self.query("SELECT * FROM t").get_json()
        assert data['success'] is True
        assert data['columns'] == ['id', 'name']
        assert data['rows'] == [['1', 'a']]
        assert data['errorMessage'] == ''

    def test_query_failure(self):
        """Test that failed statements still answer 200 with the error."""
        response = self.query("SELECT * FROM missing")
        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is False
        assert data['errorMessage'] == "Table 'missing' does not exist"

    def test_bad_request(self):
        """Test missing or malformed request bodies."""
        for kwargs in ({'json': {}}, {'json': {'sql': '  '}}, {'json': {'sql': 5}},
                       {'data': 'not json', 'content_type': 'application/json'}):
            response = self.client.post('/query', **kwargs)
            assert response.status_code == 400
            data = response.get_json()
            assert data['success'] is False
            assert data['rows'] == []
            assert 'sql' in data['errorMessage']

    def test_cors_headers(self):
        """Test CORS headers on normal responses."""
        response = self.query("BEGIN")
        assert response.headers['Access-Control-Allow-Origin'] == '*'
        assert 'POST' in response.headers['Access-Control-Allow-Methods']

    def test_preflight(self):
        """Test that OPTIONS answers 204 on any path."""
        for path in ('/query', '/anything'):
            response = self.client.options(path)
            assert response.status_code == 204
            assert response.headers['Access-Control-Allow-Headers'] == 'Content-Type'

    def test_not_found_and_method(self):
        """Test JSON 404 and 405 responses."""
        response = self.client.get('/nope')
        assert response.status_code == 404
        assert response.get_json() == {'success': False, 'errorMessage': 'Not found'}
        response = self.client.get('/query')
        assert response.status_code == 405
        assert response.get_json()['success'] is False
