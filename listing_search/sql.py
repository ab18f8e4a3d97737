from sqlalchemy import (
    JSON, MetaData, Table, Column, Integer, String, Numeric, Boolean, DateTime, Text,
    Float, bindparam, func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql import select
from sqlalchemy.sql.expression import ColumnElement

metadata = MetaData()

# JSONB on Postgres (needed for @>), plain JSON elsewhere
JsonDoc = JSON().with_variant(JSONB(), "postgresql")


# ---------- Columns shared by every source feed ----------

def _common_columns():
    return [
        Column("property_id", String, primary_key=True),
        Column("type", String),
        Column("subtype", String),
        Column("status", String),
        Column("province", String),
        Column("town", String),
        Column("area", String),
        Column("price", Numeric),
        Column("currency", String),
        Column("beds", Integer),
        Column("baths", Integer),
        Column("surface_area", JsonDoc),      # number or {"built", "plot", "terrace"}
        Column("has_pool", Boolean),
        Column("has_garden", Boolean),
        Column("has_garage", Boolean),
        Column("features", JsonDoc),
        Column("images", JsonDoc),
        Column("description", Text),
        Column("latitude", Numeric),
        Column("longitude", Numeric),
        Column("listed_date", DateTime(timezone=True)),
        Column("status_date", DateTime(timezone=True)),
    ]


# ---------- Tables (read-only feeds) ----------

resales_feed = Table(
    "resales_feed", metadata,
    *_common_columns(),
    Column("description_translated", Text),
    Column("urbanisation_name", String),
)

resales_new_devs = Table(
    "resales_new_devs", metadata,
    *_common_columns(),
    Column("description_translated", Text),
    Column("development_name", String),
    Column("urbanisation_name", String),
)

resales_rentals = Table(
    "resales_rentals", metadata,
    *_common_columns(),
    Column("longterm", Numeric),              # monthly long-term price
    Column("shortterm_low", Numeric),
)

TABLES = {t.name: t for t in (resales_feed, resales_new_devs, resales_rentals)}


# ---------- JSON tag membership ----------

class json_has_tag(ColumnElement):
    """
    True when a JSON column holds ``tag``: as an element of an array, or
    (``flags=True``) as a key of an object whose value is ``true``.
    """
    type = Boolean()
    inherit_cache = False  # the tag is rendered as a fresh bind on every compile

    def __init__(self, column, tag: str, flags: bool = False):
        self.column = column
        self.tag = tag
        self.flags = flags


@compiles(json_has_tag)
def _json_has_tag_pg(element, compiler, **kw):
    payload = {element.tag: True} if element.flags else [element.tag]
    value = bindparam(None, payload, type_=JSONB())
    return "%s @> CAST(%s AS JSONB)" % (
        compiler.process(element.column, **kw),
        compiler.process(value, **kw),
    )


@compiles(json_has_tag, "sqlite")
def _json_has_tag_sqlite(element, compiler, **kw):
    col = compiler.process(element.column, **kw)
    tag = compiler.process(bindparam(None, element.tag, type_=String()), **kw)
    if element.flags:
        return (
            "EXISTS (SELECT 1 FROM json_each(%s) AS je "
            "WHERE je.key = %s AND je.type = 'true')" % (col, tag)
        )
    return "EXISTS (SELECT 1 FROM json_each(%s) AS je WHERE je.value = %s)" % (col, tag)


# ---------- JSON size ----------

class json_size(ColumnElement):
    """
    Numeric size from a JSON column holding either a bare number or an
    object with the size under ``key``. NULL for anything else.
    """
    type = Float()
    inherit_cache = False

    def __init__(self, column, key: str):
        self.column = column
        self.key = key


@compiles(json_size)
def _json_size_pg(element, compiler, **kw):
    col = compiler.process(element.column, **kw)
    key = bindparam(None, element.key, type_=String())
    key_again = bindparam(None, element.key, type_=String())
    return (
        "CASE WHEN jsonb_typeof(%(col)s) = 'number' THEN CAST(%(col)s #>> '{}' AS FLOAT) "
        "WHEN jsonb_typeof(%(col)s -> %(key)s) = 'number' THEN CAST(%(col)s ->> %(key_again)s AS FLOAT) "
        "END"
    ) % {
        "col": col,
        "key": compiler.process(key, **kw),
        "key_again": compiler.process(key_again, **kw),
    }


@compiles(json_size, "sqlite")
def _json_size_sqlite(element, compiler, **kw):
    col = compiler.process(element.column, **kw)
    path = '$."%s"' % element.key
    paths = [compiler.process(bindparam(None, path, type_=String()), **kw) for _ in range(2)]
    return (
        "CASE WHEN json_type(%(col)s) IN ('integer', 'real') THEN CAST(json_extract(%(col)s, '$') AS REAL) "
        "WHEN json_type(%(col)s, %(p1)s) IN ('integer', 'real') THEN CAST(json_extract(%(col)s, %(p2)s) AS REAL) "
        "END"
    ) % {"col": col, "p1": paths[0], "p2": paths[1]}


# ---------- Shared selectors ----------

def rows_select(table: Table, columns=None):
    """
    SELECT over one feed. ``columns`` narrows the projection (identity-only
    queries); by default every column is returned.
    """
    cols = [table.c[name] for name in columns] if columns else list(table.c)
    return select(*cols).select_from(table)


def count_select(table: Table):
    return select(func.count()).select_from(table)
