"""Tests for handler.py"""
from __future__ import annotations

import io
import re
from pathlib import Path
from unittest import mock

import pytest

from guardeddb.config import load_config
from guardeddb.exceptions import ConnectionError, ErrorKind, ExecutionError
from guardeddb.handler import GENERIC_ERROR, QueryHandler

from .conftest import ALLOWED, FakeExecutor

USER = {
    "name": "arun",
    "email": "arun@example.com",
    "phone": "8070800096",
    "password": "12345",
}

FAILURE = {"status": 0, "error": GENERIC_ERROR}


class TestInsert:
    """Insert builds escaped column lists and binds every value in order."""

    def test_insert_scenario(self, fake_handler, fake_executor, log_file):
        result = fake_handler.insert("users", USER)

        assert result == {"status": 1, "insert_id": 42, "affected_rows": 1}
        statement = fake_executor.statements[0]
        assert statement.sql == (
            "INSERT INTO `users` (`name`, `email`, `phone`, `password`) VALUES (?, ?, ?, ?)"
        )
        assert statement.values == ["arun", "arun@example.com", "8070800096", "12345"]
        assert statement.type_tags == "ssss"
        assert statement.closed

        log = Path(log_file).read_text()
        assert "DEBUG INSERT" in log
        assert "12345" not in log
        assert "'******'" in log
        assert "'8070800096'" in log

    def test_placeholders_match_data(self, fake_handler, fake_executor):
        data = {"name": "n", "status": 3, "phone": None, "created_at": 1.5}
        fake_handler.insert("users", data)

        statement = fake_executor.statements[0]
        assert statement.sql.count("?") == len(data)
        assert statement.values == list(data.values())
        assert statement.type_tags == "sisd"

    def test_column_names_are_escaped(self, fake_handler, fake_executor):
        fake_handler.insert("users", {"na`me; DROP": "x"})
        assert fake_executor.statements[0].sql == "INSERT INTO `users` (`nameDROP`) VALUES (?)"

    def test_column_with_no_safe_characters(self, fake_handler, fake_executor):
        assert fake_handler.insert("users", {"`;--": "x"}) == FAILURE
        assert fake_handler.last_error_kind() is ErrorKind.INVALID_IDENTIFIER
        assert fake_executor.statements == []

    def test_empty_data(self, fake_handler, fake_executor):
        assert fake_handler.insert("users", {}) == FAILURE
        assert fake_handler.last_error_kind() is ErrorKind.MISSING_ARGUMENT
        assert fake_executor.statements == []

    def test_strict_columns(self, config, fake_executor):
        config["strict_columns"] = True
        with QueryHandler(config=config, executor=fake_executor) as handler:
            assert handler.insert("users", {"is_admin": 1}) == FAILURE
            assert handler.last_error_kind() is ErrorKind.INVALID_IDENTIFIER
            assert handler.insert("users", {"name": "ok"})["status"] == 1
        assert len(fake_executor.statements) == 1

    def test_insert_into_sqlite(self, handler):
        result = handler.insert("users", USER)
        assert result == {"status": 1, "insert_id": 1, "affected_rows": 1}

        row = handler.select_one("users", "name, phone", "email = ?", ["arun@example.com"])
        assert row == {"status": 1, "data": {"name": "arun", "phone": "8070800096"}}

    def test_constraint_violation_is_generic(self, handler, log_file):
        handler.insert("users", USER)
        result = handler.insert("users", USER)

        assert result == FAILURE
        assert handler.last_error_kind() is ErrorKind.EXECUTION_FAILURE
        log = Path(log_file).read_text()
        assert "Insert failed:" in log
        assert "UNIQUE constraint failed" in log
        assert "SQL => INSERT INTO `users`" in log


class TestUnknownTable:
    """Operations on tables outside the whitelist never reach the executor."""

    @pytest.mark.parametrize("table", ["secrets", "Users", "users; DROP TABLE users", "", None])
    def test_every_operation_refuses(self, fake_handler, fake_executor, table):
        results = [
            fake_handler.insert(table, {"name": "x"}),
            fake_handler.update(table, {"name": "x"}, "id = ?", [1]),
            fake_handler.select_one(table),
            fake_handler.select_all(table),
            fake_handler.delete(table, "id = ?", [1]),
        ]

        assert all(result == FAILURE for result in results)
        assert fake_handler.last_error_kind() is ErrorKind.INVALID_IDENTIFIER
        assert fake_executor.statements == []

    def test_real_table_outside_whitelist(self, handler):
        with mock.patch.object(handler.executor, "prepare") as prepare:
            assert handler.select_all("secrets") == FAILURE
        prepare.assert_not_called()


class TestUpdate:
    """Update binds data values first, then WHERE values."""

    def test_update_sql_and_params(self, fake_handler, fake_executor):
        result = fake_handler.update("users", {"name": "new", "status": 2}, "id = ?", [7])

        assert result == {"status": 1, "affected_rows": 1}
        statement = fake_executor.statements[0]
        assert statement.sql == "UPDATE `users` SET `name` = ?, `status` = ? WHERE id = ?"
        assert statement.values == ["new", 2, 7]
        assert statement.type_tags == "sii"

    def test_password_masked_where_value_shown(self, fake_handler, log_file):
        fake_handler.update("users", {"password": "hunter2", "api_token": "abc"}, "id = ?", [7])

        log = Path(log_file).read_text()
        assert "hunter2" not in log
        assert "abc" not in log
        assert "WHERE id = '7'" in log

    @pytest.mark.parametrize("where", ["", None])
    def test_where_required(self, fake_handler, fake_executor, where):
        assert fake_handler.update("users", {"name": "x"}, where) == FAILURE
        assert fake_handler.last_error_kind() is ErrorKind.MISSING_ARGUMENT
        assert fake_executor.statements == []

    def test_data_required(self, fake_handler, fake_executor):
        assert fake_handler.update("users", {}, "id = 1") == FAILURE
        assert fake_executor.statements == []

    def test_update_sqlite(self, handler):
        handler.insert("users", USER)
        assert handler.update("users", {"phone": "1"}, "email = ?", ["arun@example.com"]) == {
            "status": 1, "affected_rows": 1,
        }
        assert handler.update("users", {"phone": "1"}, "email = ?", ["nobody"]) == {
            "status": 1, "affected_rows": 0,
        }


class TestSelect:

    def test_select_one_sql(self, fake_handler, fake_executor):
        fake_executor.rows = [{"id": 1}]
        result = fake_handler.select_one("users", "id", "email = ?", ["a@b.c"])

        assert result == {"status": 1, "data": {"id": 1}}
        assert fake_executor.statements[0].sql == "SELECT id FROM `users` WHERE email = ? LIMIT 1"

    def test_select_one_no_row(self, handler):
        assert handler.select_one("users", "*", "id = ?", [99]) == {"status": 1, "data": None}

    def test_select_all_scenario(self, fake_handler, fake_executor):
        result = fake_handler.select_all("users", "*", "", [], "LOWER(email) DESC", "10")

        assert result == {"status": 1, "data": []}
        assert fake_executor.statements[0].sql == (
            "SELECT * FROM `users` ORDER BY LOWER(`email`) DESC LIMIT 10"
        )
        assert fake_executor.statements[0].bind_calls == 0

    def test_select_all_column_list(self, fake_handler, fake_executor):
        fake_handler.select_all("users", ["id", "name"], "status = ?", [1], "id", "5, 10")
        assert fake_executor.statements[0].sql == (
            "SELECT id, name FROM `users` WHERE status = ? ORDER BY `id` LIMIT 5, 10"
        )

    @pytest.mark.parametrize("order_by", [
        "password_hash",
        "id, name; DROP TABLE users",
        "SLEEP(id)",
        "LOWER(UPPER(email))",
        "id DESC, bogus ASC",
    ])
    def test_bad_order_by_aborts(self, fake_handler, fake_executor, order_by):
        assert fake_handler.select_all("users", order_by=order_by) == FAILURE
        assert fake_handler.last_error_kind() is ErrorKind.INVALID_CLAUSE
        assert fake_executor.statements == []

    @pytest.mark.parametrize("limit", ["10; DROP TABLE users", "-1", "1,2,3", "ALL"])
    def test_bad_limit_aborts(self, fake_handler, fake_executor, limit):
        assert fake_handler.select_all("users", limit=limit) == FAILURE
        assert fake_handler.last_error_kind() is ErrorKind.INVALID_CLAUSE
        assert fake_executor.statements == []

    def test_select_all_sqlite_ordering(self, handler):
        for name, email in [("b", "B@x.io"), ("a", "c@x.io"), ("c", "a@x.io")]:
            handler.insert("users", {"name": name, "email": email})

        result = handler.select_all("users", "name", "", [], "LOWER(email) DESC", "2")
        assert result == {"status": 1, "data": [{"name": "a"}, {"name": "b"}]}

        result = handler.select_all("users", "name", "status = ?", [1], "name ASC", "1, 2")
        assert result["data"] == [{"name": "b"}, {"name": "c"}]


class TestDelete:

    def test_delete_scenario_empty_where(self, fake_handler, fake_executor):
        assert fake_handler.delete("users", "") == FAILURE
        assert fake_handler.last_error_kind() is ErrorKind.MISSING_ARGUMENT
        assert fake_executor.statements == []

    def test_delete_sql(self, fake_handler, fake_executor):
        assert fake_handler.delete("users", "id = ?", [3]) == {"status": 1, "affected_rows": 1}
        statement = fake_executor.statements[0]
        assert statement.sql == "DELETE FROM `users` WHERE id = ?"
        assert statement.values == [3]

    def test_delete_sqlite(self, handler):
        handler.insert("users", USER)
        assert handler.delete("users", "email = ?", ["arun@example.com"]) == {
            "status": 1, "affected_rows": 1,
        }
        assert handler.select_all("users")["data"] == []


class TestCustomQuery:

    def test_select_returns_rows(self, handler):
        handler.insert("users", USER)
        result = handler.custom_query("  select name from users where phone = ?", ["8070800096"])
        assert result == {"status": 1, "data": [{"name": "arun"}]}

    def test_other_statements_return_affected_rows(self, handler):
        handler.insert("users", USER)
        result = handler.custom_query("UPDATE users SET status = ? WHERE id = ?", [0, 1])
        assert result == {"status": 1, "data": {"affected_rows": 1}}

    def test_static_query_is_not_bound(self, fake_handler, fake_executor):
        fake_handler.custom_query("SHOW TABLES")
        assert fake_executor.statements[0].bind_calls == 0

    def test_missing_parameter_is_binding_failure(self, handler):
        assert handler.custom_query("SELECT * FROM users WHERE id = ?") == FAILURE
        assert handler.last_error_kind() is ErrorKind.BINDING_FAILURE

    def test_syntax_error(self, handler, log_file):
        assert handler.custom_query("SELEC * FROM users") == FAILURE
        assert handler.last_error_kind() is ErrorKind.EXECUTION_FAILURE
        assert "CustomQuery failed:" in Path(log_file).read_text()

    def test_failure_log_masks_password_literal(self, fake_handler, fake_executor, log_file):
        fake_executor.fail_with = RuntimeError("boom")
        fake_handler.custom_query("UPDATE users SET password = 'topsecret' WHERE id = 1")

        log = Path(log_file).read_text()
        assert "topsecret" not in log
        assert "password=******" in log
        assert "Error => [execution_failure] boom" in log


class TestSecretMasking:
    """Values bound to password/token columns never reach the log in plaintext."""

    def test_driver_error_echoing_value_is_masked(self, fake_handler, fake_executor, log_file):
        fake_executor.fail_with = ExecutionError("Duplicate entry 'hunter2' for key 'password'")
        assert fake_handler.insert("users", {"name": "arun", "password": "hunter2"}) == FAILURE

        log = Path(log_file).read_text()
        assert "hunter2" not in log
        assert "Duplicate entry '******' for key 'password'" in log

    def test_update_error_masks_token_value(self, fake_handler, fake_executor, log_file):
        fake_executor.fail_with = ExecutionError("Duplicate entry 'tok-99' for key 'api_token'")
        fake_handler.update("users", {"api_token": "tok-99", "name": "arun"}, "id = ?", [7])

        log = Path(log_file).read_text()
        assert "tok-99" not in log
        assert "for key 'api_token'" in log

    def test_where_value_mentioning_password_is_masked(self, fake_handler, fake_executor, log_file):
        fake_executor.fail_with = ExecutionError("bad value 'my password'")
        fake_handler.delete("users", "note = ?", ["my password"])

        assert "my password" not in Path(log_file).read_text()

    def test_masking_follows_escaped_column(self, fake_handler, fake_executor, log_file):
        fake_handler.insert("users", {"name": "arun", "pass-word": "hunter2"})

        assert fake_executor.statements[0].sql == (
            "INSERT INTO `users` (`name`, `password`) VALUES (?, ?)"
        )
        log = Path(log_file).read_text()
        assert "hunter2" not in log
        assert "VALUES ('arun', '******')" in log

    def test_update_masking_follows_escaped_column(self, fake_handler, log_file):
        fake_handler.update("users", {"api.token": "abc123"}, "id = ?", [1])

        log = Path(log_file).read_text()
        assert "abc123" not in log
        assert "SET `apitoken` = '******' WHERE id = '1'" in log


class TestLoggingModes:

    def test_echo_only_when_requested(self, fake_handler, echo):
        fake_handler.select_all("users")
        assert echo.getvalue() == ""

        fake_handler.select_all("users", where="id = ?", params=[5], echo=True)
        assert re.match(
            r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] DEBUG SELECT ALL\n"
            r"SELECT \* FROM `users` WHERE id = '5'\n\n$",
            echo.getvalue(),
        )

    def test_failures_echo(self, fake_handler, echo):
        fake_handler.delete("users", "", echo=True)
        assert "Delete failed:" in echo.getvalue()
        assert "Error => [missing_argument]" in echo.getvalue()

    def test_no_log_file_without_debug(self, config, log_file):
        config["debug"] = False
        with QueryHandler(config=config, executor=FakeExecutor()) as handler:
            handler.insert("users", USER)
            handler.delete("users", "")
        assert not Path(log_file).exists()


class TestLifecycle:

    def test_close_is_idempotent(self, fake_handler, fake_executor):
        fake_handler.close()
        fake_handler.close()
        assert fake_handler.closed
        assert fake_executor.disconnect_calls == 1

    def test_context_manager_closes(self, config, fake_executor):
        with QueryHandler(config=config, executor=fake_executor) as handler:
            handler.select_one("users")
        assert fake_executor.disconnect_calls == 1

    def test_last_query(self, fake_handler):
        fake_handler.delete("users", "id = ?", [1])
        assert fake_handler.last_query() == "DELETE FROM `users` WHERE id = ?"
        assert fake_handler.last_error_kind() is None

    def test_connection_failure_is_logged_and_raised(self, log_file):
        with mock.patch("guardeddb.handler.create_executor",
                        side_effect=ConnectionError("host unreachable")):
            with pytest.raises(ConnectionError, match="Database connection failed"):
                QueryHandler(log_file=log_file, debug=False, **ALLOWED)

        assert "DB connection failed: host unreachable" in Path(log_file).read_text()

    def test_builds_sqlite_executor_from_config(self, tmp_path, log_file):
        conf = load_config(
            log_file=log_file,
            db={"driver": "sqlite", "database": str(tmp_path / "app.db")},
            **ALLOWED,
        )
        with QueryHandler(config=conf, echo_stream=io.StringIO()) as handler:
            result = handler.custom_query(
                "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)")
            assert result["status"] == 1
            assert handler.insert("users", {"name": "x"})["insert_id"] == 1

    def test_password_helpers(self):
        hashed = QueryHandler.hash_password("s3cret")
        assert hashed != "s3cret"
        assert QueryHandler.verify_password("s3cret", hashed)
        assert not QueryHandler.verify_password("wrong", hashed)
