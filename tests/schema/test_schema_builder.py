import logging

from queryguide.core import (
    BooleanField,
    DateTimeField,
    ForeignKey,
    Index,
    IntegerField,
    Model,
    SlugField,
    StringField,
)
from queryguide.dialects import SQLiteDialect
from queryguide.schema import SchemaBuilder

dialect = SQLiteDialect()
builder = SchemaBuilder(dialect)


class Person(Model):
    name = StringField(max_length=40)
    age = IntegerField(default=0)
    nickname = StringField(max_length=20, default="it's me")


class Badge(Model):
    code = StringField(max_length=8, unique=True)
    active = BooleanField(default=True)
    owner = ForeignKey(Person, nullable=True, on_delete="SET_NULL")


class Article(Model):
    slug = SlugField()
    published = DateTimeField()

    class Meta:
        app_label = "news"
        indexes = [Index(fields=["-published", "slug"]), Index(fields=["slug"], name="slug_lookup")]


def test_create_table_sql():
    sql = builder.create_table_sql(Person)
    expected = (
        'CREATE TABLE IF NOT EXISTS "person" ('
        '"id" INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT, '
        '"name" VARCHAR(40) NOT NULL, '
        '"age" INTEGER DEFAULT 0, '
        "\"nickname\" VARCHAR(20) NOT NULL DEFAULT 'it''s me')"
    )
    assert sql == expected


def test_create_table_sql_with_unique_boolean_and_foreign_key():
    sql = builder.create_table_sql(Badge)
    assert '"code" VARCHAR(8) NOT NULL UNIQUE' in sql
    assert '"active" BOOLEAN NOT NULL DEFAULT 1' in sql
    assert '"owner_id" INTEGER REFERENCES "person" ("id")' in sql


def test_index_sql_for_indexed_fields_and_meta_indexes():
    statements = builder.create_index_sql(Article)
    assert statements == [
        'CREATE INDEX IF NOT EXISTS "news_article_slug_idx" ON "news_article" ("slug")',
        'CREATE INDEX IF NOT EXISTS "news_article_published_slug_idx" ON "news_article" ("published" DESC, "slug")',
        'CREATE INDEX IF NOT EXISTS "slug_lookup" ON "news_article" ("slug")',
    ]


def test_unique_fields_get_no_extra_index():
    statements = builder.create_index_sql(Badge)
    assert statements == ['CREATE INDEX IF NOT EXISTS "badge_owner_id_idx" ON "badge" ("owner_id")']


def test_drop_table_sql():
    sql = builder.drop_table_sql(Person)
    assert sql == 'DROP TABLE IF EXISTS "person"'


def test_drop_table_logs_warning(caplog):
    caplog.set_level(logging.WARNING, logger="queryguide.schema.builder")
    local_builder = SchemaBuilder(SQLiteDialect())
    local_builder.drop_table_sql(Person)
    assert any("DROP TABLE generated" in record.message for record in caplog.records)
