"""
Unit tests for columns, constraints, schemas, indexes and the storage engine.
"""

import json

import pytest

from simplerdbms.storage.column import Column
from simplerdbms.storage.constraints import (
    CascadeAction, CheckConstraint, ConstraintManager, ConstraintType,
    ForeignKeyConstraint, NotNullConstraint, PrimaryKeyConstraint, UniqueConstraint
)
from simplerdbms.storage.index import HashIndex
from simplerdbms.storage.results import ErrorKind
from simplerdbms.storage.schema import TableSchema
from simplerdbms.storage.storage_engine import StorageEngine
from simplerdbms.storage.types import DataType
from simplerdbms.utils.exceptions import (
    ConditionSyntaxError, InvalidIdentifierError, SchemaError, StorageError
)


def make_users_schema():
    schema = TableSchema("users")
    schema.add_column(Column("id", DataType.INT, primary_key=True))
    schema.add_column(Column("name", DataType.VARCHAR, not_null=True, max_length=20))
    schema.add_column(Column("email", DataType.VARCHAR, unique=True))
    schema.add_column(Column("age", DataType.INT, check_condition="age >= 0"))
    return schema


class TestColumn:
    """Test per-value column validation."""

    def test_primary_key_implies_not_nullable(self):
        """Test that PRIMARY KEY and NOT NULL clear nullable."""
        assert Column("id", DataType.INT, primary_key=True).nullable is False
        assert Column("n", DataType.INT, not_null=True).nullable is False
        assert Column("n", DataType.INT).nullable is True

    def test_primary_key_rejects_empty(self):
        """Test that an empty primary key value is rejected."""
        column = Column("id", DataType.INT, primary_key=True)
        result = column.validate_value("")
        assert not result
        assert result.error_kind == ErrorKind.PRIMARY_KEY
        assert result.error_message == "PRIMARY KEY column 'id' cannot be NULL"

    def test_not_null(self):
        """Test NOT NULL rejection and NULL acceptance."""
        assert Column("n", DataType.INT).validate_value("NULL")
        result = Column("n", DataType.INT, not_null=True).validate_value("null")
        assert result.error_kind == ErrorKind.NOT_NULL

    def test_type_mismatch(self):
        """Test that values must parse as the column type."""
        result = Column("n", DataType.INT).validate_value("abc")
        assert result.error_kind == ErrorKind.TYPE_MISMATCH
        assert result.error_message == "Invalid value 'abc' for type INT"

    def test_max_length(self):
        """Test the string length limit."""
        column = Column("code", DataType.VARCHAR, max_length=3)
        assert column.validate_value("abc")
        result = column.validate_value("abcd")
        assert result.error_kind == ErrorKind.LENGTH
        assert result.error_message == "Value exceeds maximum length of 3"

    def test_decimal_precision_and_scale(self):
        """Test DECIMAL(10,2) precision and scale checks."""
        column = Column("price", DataType.DECIMAL, precision=10, scale=2)
        assert column.validate_value("1234.56")
        assert column.validate_value("-0.5")
        assert column.validate_value("12345678901.56").error_kind == ErrorKind.PRECISION
        assert column.validate_value("123.456").error_kind == ErrorKind.SCALE
        assert column.type_name == "DECIMAL(10,2)"

    def test_check_uses_real_value(self):
        """Test that CHECK conditions see the actual value."""
        column = Column("age", DataType.INT, check_condition="age >= 18")
        assert column.validate_value("30")
        result = column.validate_value("12")
        assert result.error_kind == ErrorKind.CHECK

    def test_check_with_value_keyword(self):
        """Test CHECK conditions written against ``value``."""
        column = Column("qty", DataType.INT, check_condition="value > 0")
        assert column.validate_value("1")
        assert not column.validate_value("0")

    def test_check_unknown_passes(self):
        """Test that a NULL value does not fail a CHECK."""
        column = Column("age", DataType.INT, check_condition="age >= 18")
        assert column.validate_value("NULL")

    def test_enum(self):
        """Test ENUM membership."""
        column = Column("size", DataType.ENUM, enum_values=["S", "M"])
        assert column.validate_value("S")
        assert not column.validate_value("XL")
        assert column.type_name == "ENUM('S', 'M')"

    def test_invalid_name(self):
        """Test identifier validation on column names."""
        with pytest.raises(InvalidIdentifierError):
            Column("select", DataType.INT)
        with pytest.raises(InvalidIdentifierError):
            Column("1abc", DataType.INT)

    def test_dict_round_trip(self):
        """Test column serialization."""
        column = Column("price", DataType.DECIMAL, precision=8, scale=2,
                        default_value="0", check_condition="price >= 0")
        restored = Column.from_dict(column.to_dict())
        assert restored.to_dict() == column.to_dict()


class TestConstraints:
    """Test constraint classes and their descriptions."""

    def test_primary_key_and_not_null(self):
        """Test NULL rejection by PRIMARY KEY and NOT NULL."""
        assert not PrimaryKeyConstraint("pk", ["id"]).validate("")
        assert PrimaryKeyConstraint("pk", ["id"]).validate("1")
        assert not NotNullConstraint("nn", ["a"]).validate(None)

    def test_unique_and_foreign_key_defer(self):
        """Test that cross-row constraints pass single-value validation."""
        assert UniqueConstraint("uq", ["a"]).validate("x")
        fk = ForeignKeyConstraint("fk", ["user_id"], "users", ["id"])
        assert fk.validate("1")
        assert fk.full_reference == "users.id"
        assert fk.constraint_type == ConstraintType.FOREIGN_KEY

    def test_check_constraint(self):
        """Test CHECK evaluation against a bare value."""
        check = CheckConstraint("chk", "age >= 18", ["age"])
        assert check.validate("20")
        assert not check.validate("10")
        assert CheckConstraint("chk", "value IN ('a', 'b')").validate("a")
        assert not CheckConstraint("chk", "value LIKE 'x%'").validate("abc")

    def test_check_with_bad_condition_fails(self):
        """Test that an unparseable CHECK reports a failure."""
        result = CheckConstraint("chk", "age >>", ["age"]).validate("1")
        assert result.error_kind == ErrorKind.CHECK

    def test_cascade_action_from_string(self):
        """Test parsing referential actions."""
        assert CascadeAction.from_string("set  null") == CascadeAction.SET_NULL
        assert CascadeAction.from_string("no action") == CascadeAction.NO_ACTION

    def test_describe(self):
        """Test constraint descriptions."""
        pk = PrimaryKeyConstraint("pk_users", ["id"])
        fk = ForeignKeyConstraint("fk_o", ["user_id"], "users", ["id"])
        assert ConstraintManager.describe(pk) == "pk_users: PRIMARY KEY (id)"
        assert ConstraintManager.describe(fk) == (
            "fk_o: FOREIGN KEY (user_id) REFERENCES users.id ON DELETE RESTRICT ON UPDATE RESTRICT"
        )
        assert CheckConstraint("chk", "a > 1").description == "CHECK (a > 1)"

    def test_foreign_key_dict_round_trip(self):
        """Test foreign key serialization keeps actions."""
        fk = ForeignKeyConstraint("fk", ["a"], "p", ["id"], CascadeAction.CASCADE, CascadeAction.SET_NULL)
        restored = ForeignKeyConstraint.from_dict("fk", fk.to_dict())
        assert restored.on_delete == CascadeAction.CASCADE
        assert restored.on_update == CascadeAction.SET_NULL
        assert restored.ref_columns == ["id"]


class TestTableSchema:
    """Test schema construction, row validation and serialization."""

    def setup_method(self):
        """Build a schema for each test."""
        self.schema = make_users_schema()

    def test_column_lookup(self):
        """Test case-insensitive column lookups."""
        assert self.schema.column_names == ["id", "name", "email", "age"]
        assert self.schema.get_column_index("EMAIL") == 2
        assert self.schema.get_column("Name").name == "name"
        assert self.schema.get_column("missing") is None
        assert self.schema.primary_key == ["id"]

    def test_duplicate_column(self):
        """Test that duplicate column names are rejected."""
        with pytest.raises(SchemaError):
            self.schema.add_column(Column("ID", DataType.INT))

    def test_validate_row(self):
        """Test full-row validation."""
        assert self.schema.validate_row(["1", "alice", "a@x", "30"])
        result = self.schema.validate_row(["1", "alice"])
        assert result.error_kind == ErrorKind.COLUMN_COUNT
        assert result.error_message == "Column count mismatch: expected 4, got 2"
        result = self.schema.validate_row(["", "alice", "NULL", "NULL"])
        assert result.error_message == "Column 'id': PRIMARY KEY column 'id' cannot be NULL"
        result = self.schema.validate_row(["1", "alice", "NULL", "-1"])
        assert result.error_kind == ErrorKind.CHECK

    def test_table_check_sees_whole_row(self):
        """Test that table-level CHECKs reference several columns."""
        self.schema.add_check("chk_adult_named", "age < 18 OR name IS NOT NULL")
        self.schema.add_check("chk_id_age", "id < age")
        assert self.schema.validate_row(["1", "alice", "NULL", "30"])
        assert not self.schema.validate_row(["40", "alice", "NULL", "30"])

    def test_table_check_reads_empty_text_as_null(self):
        """Test that an empty string is NULL for table-level CHECKs."""
        self.schema.add_check("chk_email_set", "email IS NOT NULL")
        assert self.schema.validate_row(["1", "alice", "a@x", "30"])
        result = self.schema.validate_row(["1", "alice", "", "30"])
        assert result.error_kind == ErrorKind.CHECK
        assert not self.schema.validate_row(["1", "alice", "NULL", "30"])

    def test_add_check_rejects_bad_syntax(self):
        """Test that an invalid CHECK is refused at declaration."""
        with pytest.raises(ConditionSyntaxError):
            self.schema.add_check("chk_bad", "age >")

    def test_constraint_declarations(self):
        """Test unique keys, foreign keys and duplicate constraint names."""
        self.schema.add_unique("uq_name_age", ["name", "age"])
        keys = dict(self.schema.unique_keys())
        assert keys["uq_name_age"] == ["name", "age"]
        assert keys["email_unique"] == ["email"]
        with pytest.raises(SchemaError):
            self.schema.add_unique("uq_name_age", ["name"])
        with pytest.raises(SchemaError):
            self.schema.add_unique("uq_missing", ["missing"])
        with pytest.raises(SchemaError):
            self.schema.add_foreign_key("fk_x", ["id", "age"], "other", ["id"])

    def test_indexes(self):
        """Test adding and removing index definitions."""
        self.schema.add_index("idx_name", ["NAME"])
        assert self.schema.indexes["idx_name"].columns == ["name"]
        with pytest.raises(SchemaError):
            self.schema.add_index("IDX_NAME", ["age"])
        assert self.schema.remove_index("IDX_NAME")
        assert not self.schema.remove_index("idx_name")

    def test_canonicalize_row(self):
        """Test conversion to canonical storage text."""
        assert self.schema.canonicalize_row([" 007", "bob", "", "NULL"]) == ["7", "bob", "NULL", "NULL"]

    def test_row_values(self):
        """Test the typed, name-keyed row view."""
        values = self.schema.row_values(["1", "alice", "NULL", "30"])
        assert values["id"].data == 1
        assert values["users.age"].data == 30
        assert values["email"].is_null

    def test_json_round_trip(self):
        """Test that every declaration survives to_json/from_json."""
        self.schema.add_unique("uq_name_age", ["name", "age"])
        self.schema.add_foreign_key(
            "fk_users_self", ["age"], "users", ["id"],
            CascadeAction.CASCADE, CascadeAction.NO_ACTION
        )
        self.schema.add_check("chk_users_0", "age < 150")
        self.schema.add_index("idx_name", ["name"], unique=False)

        text = self.schema.to_json()
        restored = TableSchema.from_json(text)

        assert restored.to_json() == text
        assert restored.foreign_keys["fk_users_self"].on_delete == CascadeAction.CASCADE
        assert restored.checks["chk_users_0"].condition == "age < 150"
        assert restored.get_column("name").max_length == 20
        assert restored.get_column("age").check_condition == "age >= 0"
        assert json.loads(text)["constraints"]["primaryKey"] == ["id"]


class TestHashIndex:
    """Test the hash index."""

    def setup_method(self):
        """Create an empty index for each test."""
        self.index = HashIndex("idx", ["a"])

    def test_insert_search_delete(self):
        """Test basic key operations."""
        self.index.insert(("x",), 0)
        self.index.insert(("x",), 2)
        assert self.index.search(("x",)) == [0, 2]
        assert self.index.search(("y",)) == []
        self.index.delete(("x",), 0)
        assert self.index.search(("x",)) == [2]
        self.index.delete(("x",), 2)
        assert len(self.index) == 0

    def test_null_keys_not_indexed(self):
        """Test that keys with a NULL part are never stored or found."""
        self.index.insert(("NULL",), 0)
        assert len(self.index) == 0
        assert self.index.search(("NULL",)) == []

    def test_rebuild(self):
        """Test rebuilding from rows and key positions."""
        rows = [["1", "a"], ["2", "b"], ["3", "a"]]
        self.index.rebuild(rows, [1])
        assert self.index.search(("a",)) == [0, 2]
        assert sorted(self.index.get_all_keys()) == [("a",), ("b",)]

    def test_search_returns_copy(self):
        """Test that callers cannot modify the index through results."""
        self.index.insert(("x",), 0)
        self.index.search(("x",)).append(99)
        assert self.index.search(("x",)) == [0]


class TestStorageEngine:
    """Test JSON file persistence."""

    def setup_method(self):
        """Build a schema for each test."""
        self.schema = make_users_schema()

    def test_schema_round_trip(self, tmp_path):
        """Test saving and loading a schema."""
        engine = StorageEngine(tmp_path)
        engine.save_table_schema(self.schema)
        loaded = engine.load_table_schema("users")
        assert loaded.to_dict() == self.schema.to_dict()
        assert engine.load_table_schema("missing") is None

    def test_data_round_trip(self, tmp_path):
        """Test that rows reload string for string."""
        engine = StorageEngine(tmp_path)
        rows = [["1", "alice", "NULL", "30"], ["2", "bob, \"jr\"", "b@x", "NULL"]]
        engine.save_table_data(self.schema, rows)
        assert engine.load_table_data(self.schema) == rows

        document = json.loads((tmp_path / "users.json").read_text())
        assert document["rowCount"] == 2
        assert document["rows"][0] == {"id": "1", "name": "alice", "email": "NULL", "age": "30"}

    def test_missing_data_file_is_empty(self, tmp_path):
        """Test that a table without a data file has no rows."""
        assert StorageEngine(tmp_path).load_table_data(self.schema) == []

    def test_list_exists_delete(self, tmp_path):
        """Test table discovery and deletion."""
        engine = StorageEngine(tmp_path)
        engine.save_table_schema(self.schema)
        engine.save_table_data(self.schema, [])
        assert engine.list_all_tables() == ["users"]
        assert engine.table_exists("users")
        engine.delete_table_files("users")
        assert not engine.table_exists("users")
        assert engine.list_all_tables() == []
        assert list(tmp_path.iterdir()) == []

    def test_corrupt_file_raises(self, tmp_path):
        """Test that unreadable JSON raises StorageError."""
        engine = StorageEngine(tmp_path)
        (tmp_path / "users_schema.json").write_text("{not json")
        with pytest.raises(StorageError):
            engine.load_table_schema("users")

    def test_creates_data_directory(self, tmp_path):
        """Test that a missing data directory is created."""
        target = tmp_path / "nested" / "data"
        StorageEngine(target)
        assert target.is_dir()

    def test_corrupt_schema_raises_storage_error(self, tmp_path):
        """Test that unusable schema files surface as StorageError."""
        engine = StorageEngine(tmp_path)
        (tmp_path / "users_schema.json").write_text(json.dumps({"name": "1bad"}))
        with pytest.raises(StorageError):
            engine.load_table_schema("users")
        (tmp_path / "users_schema.json").write_text("{not json")
        with pytest.raises(StorageError):
            engine.load_table_schema("users")
