"""
Schema Renderer
===============

Renders a Drizzle ``pg-core`` table definition from create_schema details.
"""

import re

from db_agent.steps import ColumnSpec, SchemaDetails
from db_agent.templates.naming import to_snake_case

DRIZZLE_IMPORTS = (
    "pgTable",
    "serial",
    "varchar",
    "text",
    "integer",
    "numeric",
    "timestamp",
    "boolean",
)

DEFAULT_VARCHAR_LENGTH = 255

# Column type -> builder call; {sql} is the column name, {length} the varchar length
TYPE_BUILDERS = {
    "string": 'varchar("{sql}", {{ length: {length} }})',
    "varchar": 'varchar("{sql}", {{ length: {length} }})',
    "text": 'text("{sql}")',
    "number": 'integer("{sql}")',
    "integer": 'integer("{sql}")',
    "int": 'integer("{sql}")',
    "decimal": 'numeric("{sql}")',
    "numeric": 'numeric("{sql}")',
    "float": 'numeric("{sql}")',
    "boolean": 'boolean("{sql}").default(false)',
    "bool": 'boolean("{sql}").default(false)',
    "date": 'timestamp("{sql}")',
    "datetime": 'timestamp("{sql}")',
    "timestamp": 'timestamp("{sql}")',
    "serial": 'serial("{sql}")',
}

CONSTRAINT_CALLS = {
    "notnull": ".notNull()",
    "not null": ".notNull()",
    "required": ".notNull()",
    "unique": ".unique()",
    "primarykey": ".primaryKey()",
    "primary key": ".primaryKey()",
    "primary": ".primaryKey()",
    "defaultnow": ".defaultNow()",
}

IDENTITY_COLUMN = '  id: serial("id").primaryKey(),'
CREATED_AT_COLUMN = '  createdAt: timestamp("created_at").defaultNow().notNull(),'
UPDATED_AT_COLUMN = '  updatedAt: timestamp("updated_at").defaultNow().notNull(),'

_CHAIN_CALL = re.compile(r"^\.\w+\(.*\)$")
_IDENTIFIER = re.compile(r"^[A-Za-z_]\w*$")


def _constraint_call(constraint: str) -> str:
    raw = constraint.strip()
    if _CHAIN_CALL.match(raw):
        return raw
    known = CONSTRAINT_CALLS.get(raw.lower())
    if known:
        return known
    if _IDENTIFIER.match(raw):
        return f".{raw}()"
    raise ValueError(f"Unsupported column constraint: {constraint!r}")


def column_expression(column: ColumnSpec) -> str:
    """Render the builder chain for one column."""
    template = TYPE_BUILDERS.get(column.type.strip().lower(), TYPE_BUILDERS["string"])
    expression = template.format(
        sql=to_snake_case(column.name),
        length=column.length or DEFAULT_VARCHAR_LENGTH,
    )

    calls: list[str] = []
    if column.primary:
        calls.append(".primaryKey()")
    if column.required and not column.primary:
        calls.append(".notNull()")
    if column.unique:
        calls.append(".unique()")
    for constraint in column.constraints:
        call = _constraint_call(constraint)
        if call not in calls:
            calls.append(call)

    return expression + "".join(calls)


def render_schema(details: SchemaDetails) -> str:
    """
    Render the schema module for a table.

    An ``id`` identity column is injected unless a column is named ``id`` or
    flagged primary; ``createdAt``/``updatedAt`` are appended unless present.

    Raises:
        ValueError: If a column constraint cannot be rendered
    """
    table = details.table_name
    names = {column.name for column in details.columns}
    has_identity = "id" in names or any(column.primary for column in details.columns)

    lines = [
        f'import {{ {", ".join(DRIZZLE_IMPORTS)} }} from "drizzle-orm/pg-core";',
        "",
        f'export const {table} = pgTable("{to_snake_case(table)}", {{',
    ]
    if not has_identity:
        lines.append(IDENTITY_COLUMN)
    for column in details.columns:
        lines.append(f"  {column.name}: {column_expression(column)},")
    if not names & {"createdAt", "created_at"}:
        lines.append(CREATED_AT_COLUMN)
    if not names & {"updatedAt", "updated_at"}:
        lines.append(UPDATED_AT_COLUMN)
    lines.append("});")

    if details.relationships:
        lines.append("")
        lines.append("// Relationships")
        for relationship in details.relationships:
            lines.append(f"// {relationship.type}: {relationship.table}.{relationship.column}")

    return "\n".join(lines) + "\n"
