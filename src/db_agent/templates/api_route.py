"""
API Route Renderer
==================

Renders a Next.js app-router handler module for the requested HTTP methods.

Every handler returns either the payload or ``{ error }`` with status 400
(validation), 404 (missing record) or 500 (anything else).
"""

from string import Template

from db_agent.steps import ApiDetails

METHOD_ORDER = ("GET", "POST", "PUT", "DELETE")

_HEADER = Template('''\
import { NextRequest, NextResponse } from "next/server";
${eq_import}\
import { db } from "@/database";
import { $table } from "@/database/schema";

class ValidationError extends Error {}

function errorResponse(error: unknown) {
  if (error instanceof ValidationError) {
    return NextResponse.json({ error: error.message }, { status: 400 });
  }
  console.error("/api/$endpoint failed:", error);
  return NextResponse.json({ error: "Internal server error" }, { status: 500 });
}
''')

_PARSE_ID = '''
function parseId(value: unknown): number {
  const id = Number(value);
  if (value === null || value === undefined || !Number.isInteger(id) || id <= 0) {
    throw new ValidationError("A positive integer id is required");
  }
  return id;
}
'''

_READ_BODY = '''
async function readBody(request: NextRequest): Promise<Record<string, unknown>> {
  let body: unknown;
  try {
    body = await request.json();
  } catch {
    throw new ValidationError("Request body must be valid JSON");
  }
  if (body === null || typeof body !== "object" || Array.isArray(body)) {
    throw new ValidationError("Request body must be a JSON object");
  }
  return body as Record<string, unknown>;
}
'''

_HANDLERS = {
    "GET": Template('''
export async function GET(request: NextRequest) {
  try {
    const id = request.nextUrl.searchParams.get("id");

    if (id !== null) {
      const records = await db.select().from($table).where(eq($table.id, parseId(id)));
      if (records.length === 0) {
        return NextResponse.json({ error: "Record not found" }, { status: 404 });
      }
      return NextResponse.json(records[0]);
    }

    const records = await db.select().from($table);
    return NextResponse.json(records);
  } catch (error) {
    return errorResponse(error);
  }
}
'''),
    "POST": Template('''
export async function POST(request: NextRequest) {
  try {
    const body = await readBody(request);
    const created = await db
      .insert($table)
      .values(body as typeof $table.$$inferInsert)
      .returning();
    return NextResponse.json(created[0], { status: 201 });
  } catch (error) {
    return errorResponse(error);
  }
}
'''),
    "PUT": Template('''
export async function PUT(request: NextRequest) {
  try {
    const { id, ...changes } = await readBody(request);
    const updated = await db
      .update($table)
      .set({ ...changes, updatedAt: new Date() })
      .where(eq($table.id, parseId(id)))
      .returning();
    if (updated.length === 0) {
      return NextResponse.json({ error: "Record not found" }, { status: 404 });
    }
    return NextResponse.json(updated[0]);
  } catch (error) {
    return errorResponse(error);
  }
}
'''),
    "DELETE": Template('''
export async function DELETE(request: NextRequest) {
  try {
    const id = parseId(request.nextUrl.searchParams.get("id"));
    const deleted = await db.delete($table).where(eq($table.id, id)).returning();
    if (deleted.length === 0) {
      return NextResponse.json({ error: "Record not found" }, { status: 404 });
    }
    return NextResponse.json({ success: true });
  } catch (error) {
    return errorResponse(error);
  }
}
'''),
}


def render_api_route(details: ApiDetails, endpoint: str) -> str:
    """
    Render the handler module.

    Args:
        details: Validated create_api details
        endpoint: Normalised endpoint (without the ``api/`` prefix)

    Returns:
        Module source; handlers appear in GET, POST, PUT, DELETE order
    """
    methods = [method for method in METHOD_ORDER if method in details.methods]
    needs_id = any(method in methods for method in ("GET", "PUT", "DELETE"))
    needs_body = any(method in methods for method in ("POST", "PUT"))

    substitutions = {"table": details.table_name, "endpoint": endpoint}
    parts = [
        _HEADER.substitute(
            substitutions,
            eq_import='import { eq } from "drizzle-orm";\n' if needs_id else "",
        )
    ]
    if needs_id:
        parts.append(_PARSE_ID)
    if needs_body:
        parts.append(_READ_BODY)
    for method in methods:
        parts.append(_HANDLERS[method].substitute(substitutions))

    return "".join(parts)
