"""Tests for engine setup and schema creation."""

from sqlalchemy import inspect

from hris_payroll import database
from hris_payroll.__main__ import _build_parser


class TestSchemaBootstrap:
    async def test_create_schema_on_fresh_engine(self, tmp_path):
        url = f"sqlite+aiosqlite:///{tmp_path / 'payroll.db'}"
        try:
            engine, _ = database.init_db(url)
            await database.create_schema()

            async with engine.connect() as conn:
                tables = await conn.run_sync(lambda sync: inspect(sync).get_table_names())
        finally:
            await database.dispose_db()

        assert {"employee", "attendance", "payslip", "rate_configuration"} <= set(tables)

    async def test_init_db_reuses_engine(self, tmp_path):
        url = f"sqlite+aiosqlite:///{tmp_path / 'payroll.db'}"
        try:
            first, _ = database.init_db(url)
            second, _ = database.init_db()
            assert first is second
        finally:
            await database.dispose_db()


class TestCommandLine:
    def test_default_command_serves(self):
        assert _build_parser().parse_args([]).command is None

    def test_create_schema_command(self):
        assert _build_parser().parse_args(["create-schema"]).command == "create-schema"
