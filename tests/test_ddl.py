# tests/test_ddl.py
import pytest

from docbend import ddl
from docbend.defaults import settings
from docbend.errors import ConfigurationError
from docbend.schema import TargetSchema


class TestFragments:
    """Test column name, placeholder and table body fragments."""

    def test_column_names(self, nomad_schema):
        assert ddl.column_names(nomad_schema) == ['"id"', '"age"']

    def test_column_names_with_catch_all(self, census_schema):
        names = ddl.column_names(census_schema)
        assert names[0] == '"citizen_id"'
        assert names[-1] == '_extra_props'
        assert len(names) == census_schema.width

    def test_catch_all_name_from_settings(self, census_schema):
        settings['extra_props_column'] = 'leftovers'
        assert ddl.column_names(census_schema)[-1] == 'leftovers'

    def test_placeholders(self, nomad_schema):
        assert ddl.placeholders(nomad_schema) == ['$1', '$2']

    def test_placeholders_with_catch_all(self, census_schema):
        params = ddl.placeholders(census_schema)
        assert params == [f'${i}' for i in range(1, 9)]
        assert len(params) == len(ddl.column_names(census_schema))

    def test_table_body(self, nomad_schema):
        assert ddl.table_body(nomad_schema) == '"id" text,"age" integer,PRIMARY KEY ("id")'

    def test_table_body_composite_key_and_catch_all(self, census_schema):
        body = ddl.table_body(census_schema)
        assert body.startswith('"citizen_id" text,"city" text,"boulder_size" double precision,')
        assert body.endswith(',_extra_props jsonb,PRIMARY KEY ("citizen_id","city")')

    def test_types_emitted_verbatim(self):
        schema = TargetSchema.from_config({
            'columns': [{'name': 'code', 'source': 'code', 'type': 'varchar(12) NOT NULL'}],
            'primary_key': ['code'],
        })
        assert ddl.table_body(schema) == '"code" varchar(12) NOT NULL,PRIMARY KEY ("code")'


class TestStatements:
    """Test complete statement generation."""

    def test_create_table(self, nomad_schema):
        assert ddl.create_table_sql(nomad_schema) == (
            'CREATE TABLE IF NOT EXISTS air_nomads ("id" text,"age" integer,PRIMARY KEY ("id"))'
        )

    def test_create_table_without_if_not_exists(self, nomad_schema):
        assert ddl.create_table_sql(nomad_schema, if_not_exists=False).startswith('CREATE TABLE air_nomads (')

    def test_qualified_table_name(self, census_schema):
        assert 'INTO earth_kingdom.census (' in ddl.insert_sql(census_schema)

    def test_table_name_quoted_when_needed(self, nomad_schema):
        assert ddl.copy_sql(nomad_schema, table='Air Nomads').startswith('COPY "Air Nomads" (')

    def test_insert(self, nomad_schema):
        assert ddl.insert_sql(nomad_schema) == 'INSERT INTO air_nomads ("id","age") VALUES ($1,$2)'

    def test_upsert(self, nomad_schema):
        assert ddl.upsert_sql(nomad_schema) == (
            'INSERT INTO air_nomads ("id","age") VALUES ($1,$2) '
            'ON CONFLICT ("id") DO UPDATE SET "age" = EXCLUDED."age"'
        )

    def test_upsert_updates_catch_all(self, census_schema):
        sql = ddl.upsert_sql(census_schema)
        assert 'ON CONFLICT ("citizen_id","city")' in sql
        assert '_extra_props = EXCLUDED._extra_props' in sql
        assert '"citizen_id" = EXCLUDED' not in sql

    def test_upsert_all_key_columns(self):
        schema = TargetSchema.from_config({
            'columns': [{'name': 'id', 'source': '_id', 'type': 'text'}],
            'primary_key': ['id'],
            'table': 'temples',
        })
        assert ddl.upsert_sql(schema).endswith('ON CONFLICT ("id") DO NOTHING')

    def test_delete(self, census_schema):
        assert ddl.delete_sql(census_schema) == (
            'DELETE FROM earth_kingdom.census WHERE "citizen_id" = $1 AND "city" = $2'
        )

    def test_copy(self, nomad_schema):
        assert ddl.copy_sql(nomad_schema) == 'COPY air_nomads ("id","age") FROM STDIN'

    def test_missing_table_name(self):
        schema = TargetSchema.from_config({
            'columns': [{'name': 'id', 'source': '_id', 'type': 'text'}],
            'primary_key': ['id'],
        })
        with pytest.raises(ConfigurationError, match="No table name"):
            ddl.insert_sql(schema)
        # fragments do not need a table
        assert ddl.column_names(schema) == ['"id"']

    def test_get_sql(self, nomad_schema):
        assert ddl.get_sql(nomad_schema, 'copy') == ddl.copy_sql(nomad_schema)
        assert ddl.get_sql(nomad_schema, 'create', 'monks').startswith('CREATE TABLE IF NOT EXISTS monks')

    def test_get_sql_invalid_kind(self, nomad_schema):
        with pytest.raises(ValueError, match="Invalid statement kind 'merge'"):
            ddl.get_sql(nomad_schema, 'merge')
