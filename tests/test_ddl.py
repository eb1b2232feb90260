"""
Unit tests for ddl.py
"""

import pytest

from mssql_dumper.ddl import (
    build_create_table,
    build_drop_table,
    build_identity_insert,
    build_primary_key,
    render_column_definition,
    render_column_type,
    use_modern_drop,
)
from mssql_dumper.exceptions import DataAbsenceError
from mssql_dumper.models import ColumnMeta, PrimaryKeyMeta, TableRef


CUSTOMERS = TableRef("dbo", "Customers")


class TestRenderColumnType:
    """Tests for render_column_type."""

    @pytest.mark.parametrize("type_name,max_length,expected", [
        ("varchar", 50, "varchar(50)"),
        ("char", 10, "char(10)"),
        ("nvarchar", 100, "nvarchar(50)"),
        ("nchar", 20, "nchar(10)"),
        ("varchar", -1, "varchar(MAX)"),
        ("nvarchar", -1, "nvarchar(MAX)"),
    ])
    def test_character_types(self, type_name, max_length, expected):
        col = ColumnMeta(1, "c", type_name, max_length=max_length)
        assert render_column_type(col) == expected

    def test_exact_numeric(self):
        assert render_column_type(ColumnMeta(1, "c", "decimal", precision=10, scale=2)) == "decimal(10,2)"
        assert render_column_type(ColumnMeta(1, "c", "numeric", precision=18, scale=0)) == "numeric(18,0)"

    @pytest.mark.parametrize("type_name", ["int", "datetime2", "varbinary", "uniqueidentifier", "xml"])
    def test_other_types_bare(self, type_name):
        assert render_column_type(ColumnMeta(1, "c", type_name, max_length=16, precision=7)) == type_name


class TestRenderColumnDefinition:
    """Tests for render_column_definition."""

    def test_not_null_identity(self):
        col = ColumnMeta(1, "Id", "int", nullable=False, is_identity=True,
                         identity_seed=1, identity_increment=1)
        assert render_column_definition(col) == "[Id] int NOT NULL IDENTITY(1,1)"

    def test_nullable(self):
        col = ColumnMeta(2, "Note", "nvarchar", max_length=-1)
        assert render_column_definition(col) == "[Note] nvarchar(MAX) NULL"

    def test_identity_missing_seed_defaults_to_zero(self):
        col = ColumnMeta(1, "Id", "bigint", nullable=False, is_identity=True)
        assert render_column_definition(col) == "[Id] bigint NOT NULL IDENTITY(0,0)"

    def test_default_verbatim(self):
        col = ColumnMeta(3, "CreatedAt", "datetime2", nullable=False,
                         default_definition="(sysutcdatetime())")
        assert render_column_definition(col) == "[CreatedAt] datetime2 NOT NULL DEFAULT ((sysutcdatetime()))"


class TestBuildCreateTable:
    """Tests for build_create_table."""

    def test_customers(self):
        columns = [
            ColumnMeta(1, "Id", "int", nullable=False, is_identity=True,
                       identity_seed=1, identity_increment=1),
            ColumnMeta(2, "Name", "nvarchar", max_length=100, nullable=False),
        ]
        assert build_create_table(CUSTOMERS, columns) == (
            "CREATE TABLE [dbo].[Customers] (\n"
            "    [Id] int NOT NULL IDENTITY(1,1),\n"
            "    [Name] nvarchar(50) NOT NULL\n"
            ");"
        )

    def test_no_trailing_separator(self):
        statement = build_create_table(CUSTOMERS, [ColumnMeta(1, "Id", "int")])
        assert ",\n)" not in statement
        assert statement.endswith("    [Id] int NULL\n);")

    def test_column_order_preserved(self):
        columns = [ColumnMeta(2, "B", "int"), ColumnMeta(1, "A", "int")]
        statement = build_create_table(CUSTOMERS, columns)
        assert statement.index("[B]") < statement.index("[A]")

    def test_no_columns(self):
        with pytest.raises(DataAbsenceError):
            build_create_table(CUSTOMERS, [])


class TestBuildPrimaryKey:
    """Tests for build_primary_key."""

    def test_single_column(self):
        pk = PrimaryKeyMeta("PK_Customers", ("Id",))
        assert build_primary_key(CUSTOMERS, pk) == (
            "ALTER TABLE [dbo].[Customers] ADD CONSTRAINT [PK_Customers] PRIMARY KEY ([Id]);"
        )

    def test_key_order(self):
        pk = PrimaryKeyMeta("PK_Lines", ("OrderId", "LineNo"))
        statement = build_primary_key(TableRef("sales", "Lines"), pk)
        assert statement.endswith("PRIMARY KEY ([OrderId], [LineNo]);")

    def test_no_primary_key(self):
        assert build_primary_key(CUSTOMERS, None) is None


class TestDropTable:
    """Tests for drop syntax selection and rendering."""

    @pytest.mark.parametrize("drop,version,expected", [
        (True, 13, True),
        (True, 16, True),
        (True, 12, False),
        (True, None, False),
        (False, 16, False),
        (False, None, False),
    ])
    def test_use_modern_drop(self, drop, version, expected):
        assert use_modern_drop(drop, version) is expected

    def test_modern(self):
        statement = build_drop_table(CUSTOMERS, use_modern_syntax=True)
        assert "DROP TABLE IF EXISTS [dbo].[Customers];" in statement
        assert "OBJECT_ID" not in statement

    def test_legacy(self):
        statement = build_drop_table(CUSTOMERS, use_modern_syntax=False)
        assert "IF OBJECT_ID(N'[dbo].[Customers]', 'U') IS NOT NULL" in statement
        assert "    DROP TABLE [dbo].[Customers];" in statement
        assert "IF EXISTS" not in statement

    def test_legacy_quote_in_name(self):
        statement = build_drop_table(TableRef("dbo", "O'Hara"), use_modern_syntax=False)
        assert "OBJECT_ID(N'[dbo].[O''Hara]', 'U')" in statement


class TestIdentityInsert:
    """Tests for build_identity_insert."""

    def test_on_off(self):
        assert build_identity_insert(CUSTOMERS, True) == "SET IDENTITY_INSERT [dbo].[Customers] ON;"
        assert build_identity_insert(CUSTOMERS, False) == "SET IDENTITY_INSERT [dbo].[Customers] OFF;"
