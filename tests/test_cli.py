"""
Tests for the result formatter and the interactive shell.
"""

import io
import logging

from simplerdbms.executor.executor import QueryExecutor
from simplerdbms.executor.result import QueryResult
from simplerdbms.formatter import (
    format_modify_result, format_result, format_schema, format_select_result
)
from simplerdbms.repl import handle_special_command, main, repl, run_statement


class TestFormatter:
    """Test terminal rendering of results."""

    def test_select_result(self):
        """Test table output and row counts."""
        assert format_select_result(["id"], []) == "(0 rows)"
        text = format_select_result(["id", "name"], [["1", "alice"]])
        assert "alice" in text
        assert "| id" in text
        assert text.endswith("(1 row)")
        assert format_select_result(["id"], [["1"], ["2"]]).endswith("(2 rows)")

    def test_values_are_not_reformatted(self):
        """Test that numeric-looking text is printed as stored."""
        text = format_select_result(["code"], [["007"]])
        assert "007" in text

    def test_modify_result(self):
        """Test INSERT/UPDATE/DELETE summaries."""
        assert format_modify_result(1, "INSERT") == "INSERT OK, 1 row affected"
        assert format_modify_result(3, "DELETE") == "DELETE OK, 3 rows affected"

    def test_format_result(self):
        """Test dispatch on outcome and statement kind."""
        assert format_result(QueryResult.failure("boom"), "SELECT") == "Error: boom"
        assert format_result(QueryResult(success=True, affected_rows=2), "UPDATE") == (
            "UPDATE OK, 2 rows affected"
        )
        assert format_result(QueryResult(success=True, message="Table 't' created"), "CREATE") == (
            "Table 't' created"
        )
        assert format_result(QueryResult(success=True), "BEGIN") == "OK"

    def test_format_schema(self):
        """Test the .schema rendering."""
        executor = QueryExecutor()
        executor.execute_sql(
            "CREATE TABLE t (id INT PRIMARY KEY, name VARCHAR(5) NOT NULL DEFAULT 'x', "
            "CHECK (id > 0))"
        )
        executor.execute_sql("CREATE INDEX idx_name ON t (name)")
        text = format_schema(executor.table_manager.get_table("t"))
        assert "Table 't':" in text
        assert "VARCHAR(5)" in text
        assert "NOT NULL, DEFAULT x" in text
        assert "pk_t: PRIMARY KEY (id)" in text
        assert "chk_t_1: CHECK (id > 0)" in text
        assert "INDEX idx_name (name)" in text


class TestRepl:
    """Test the shell commands and loop."""

    def setup_method(self):
        """Create an executor with one table."""
        self.executor = QueryExecutor()
        self.executor.execute_sql("CREATE TABLE t (id INT)")
        self.executor.execute_sql("INSERT INTO t VALUES (1)")

    def teardown_method(self):
        """Detach handlers installed by main()."""
        logger = logging.getLogger("simplerdbms")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    def test_special_commands(self, capsys):
        """Test .tables, .schema, .stats, .help and unknown commands."""
        tm = self.executor.table_manager
        assert handle_special_command(".tables", tm)
        assert "t (1 rows)" in capsys.readouterr().out
        assert handle_special_command(".schema t", tm)
        assert "Table 't':" in capsys.readouterr().out
        assert handle_special_command(".schema ghost", tm)
        assert "Table 'ghost' does not exist" in capsys.readouterr().out
        assert handle_special_command(".stats", tm)
        assert "t: 1 rows" in capsys.readouterr().out
        assert handle_special_command(".help", tm)
        assert "Special Commands" in capsys.readouterr().out
        assert handle_special_command(".bogus", tm)
        assert "Unknown command: .bogus" in capsys.readouterr().out
        assert not handle_special_command(".exit", tm)
        assert not handle_special_command(".QUIT;", tm)

    def test_run_statement(self, capsys):
        """Test printing a statement's outcome."""
        assert run_statement(self.executor, "select * from t")
        assert "(1 row)" in capsys.readouterr().out
        assert not run_statement(self.executor, "INSERT INTO t VALUES ('x')")
        assert capsys.readouterr().out.startswith("Error: ")

    def test_repl_multi_line(self, monkeypatch, capsys):
        """Test that statements may span lines until a semicolon."""
        script = "INSERT INTO t\nVALUES (2);\n\nSELECT * FROM t\nWHERE id = 2;\n.exit\n"
        monkeypatch.setattr("sys.stdin", io.StringIO(script))
        repl(self.executor)
        out = capsys.readouterr().out
        assert "INSERT OK, 1 row affected" in out
        assert "(1 row)" in out
        assert "Goodbye!" in out

    def test_repl_stops_at_eof(self, monkeypatch, capsys):
        """Test that end of input leaves the loop."""
        monkeypatch.setattr("sys.stdin", io.StringIO("SELECT * FROM t;\n"))
        repl(self.executor)
        assert capsys.readouterr().out.rstrip().endswith("Goodbye!")

    def test_main_command(self, tmp_path, capsys):
        """Test one-shot execution with -c against a data directory."""
        args = ["--data-dir", str(tmp_path), "--log-file", "", "--log-level", "error"]
        assert main(args + ["-c", "CREATE TABLE k (id INT)"]) == 0
        assert "Table 'k' created" in capsys.readouterr().out
        assert main(args + ["-c", "INSERT INTO k VALUES (5)"]) == 0
        assert main([str(tmp_path), "--log-file", "", "-c", "SELECT * FROM k"]) == 0
        assert "5" in capsys.readouterr().out
        assert main(args + ["-c", "SELECT * FROM missing"]) == 1
        assert (tmp_path / "k_schema.json").exists()
