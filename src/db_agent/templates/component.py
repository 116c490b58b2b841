"""
Component Renderers
===================

New React view modules, and in-place data-fetch integration for existing
ones.
"""

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from string import Template

from db_agent.templates.naming import to_camel_case, to_pascal_case

WORD_SEPARATOR = "-"

_NEW_COMPONENT = Template('''\
"use client";

import { useState, useEffect } from "react";
import { Button } from "@/components/ui/button";
import { Card, CardContent, CardHeader, CardTitle } from "@/components/ui/card";

interface ${Entity}Item {
  id: number;
  createdAt: string;
  updatedAt: string;
}

export default function ${component}() {
  const [${data}, set${Entity}Data] = useState<${Entity}Item[]>([]);
  const [loading, setLoading] = useState(false);
  const [error, setError] = useState<string | null>(null);

  const fetch${Entity} = async () => {
    setLoading(true);
    setError(null);
    try {
      const response = await fetch("/api/${endpoint}");
      if (!response.ok) {
        throw new Error("Failed to fetch data");
      }
      set${Entity}Data(await response.json());
    } catch (err) {
      setError(err instanceof Error ? err.message : "An error occurred");
    } finally {
      setLoading(false);
    }
  };

  const create${Entity} = async (item: Partial<${Entity}Item>) => {
    try {
      const response = await fetch("/api/${endpoint}", {
        method: "POST",
        headers: { "Content-Type": "application/json" },
        body: JSON.stringify(item),
      });
      if (!response.ok) {
        throw new Error("Failed to create item");
      }
      await fetch${Entity}();
    } catch (err) {
      setError(err instanceof Error ? err.message : "Failed to create item");
    }
  };

  const delete${Entity} = async (id: number) => {
    try {
      const response = await fetch(`/api/${endpoint}?id=$${id}`, { method: "DELETE" });
      if (!response.ok) {
        throw new Error("Failed to delete item");
      }
      await fetch${Entity}();
    } catch (err) {
      setError(err instanceof Error ? err.message : "Failed to delete item");
    }
  };

  useEffect(() => {
    fetch${Entity}();
  }, []);

  if (loading) {
    return (
      <Card>
        <CardContent className="p-6">
          <div className="text-center">Loading...</div>
        </CardContent>
      </Card>
    );
  }

  if (error) {
    return (
      <Card>
        <CardContent className="p-6">
          <div className="text-center text-red-500">Error: {error}</div>
          <Button onClick={fetch${Entity}} className="mt-4">
            Retry
          </Button>
        </CardContent>
      </Card>
    );
  }

  return (
    <Card>
      <CardHeader>
        <CardTitle>${component}</CardTitle>
      </CardHeader>
      <CardContent>
        <Button onClick={() => create${Entity}({})}>Add New Item</Button>
        <div className="mt-4 space-y-2">
          {${data}.length === 0 ? (
            <p className="text-gray-500">No items found</p>
          ) : (
            ${data}.map((item) => (
              <div key={item.id} className="flex items-center justify-between p-2 border rounded">
                <span>Item #{item.id}</span>
                <Button variant="destructive" size="sm" onClick={() => delete${Entity}(item.id)}>
                  Delete
                </Button>
              </div>
            ))
          )}
        </div>
      </CardContent>
    </Card>
  );
}
''')

_FETCH_BLOCK = Template('''
  const [${data}, set${Entity}Data] = useState([]);
  const [${camel}Loading, set${Entity}Loading] = useState(false);

  const fetch${Entity} = async () => {
    set${Entity}Loading(true);
    try {
      const response = await fetch("/api/${endpoint}");
      set${Entity}Data(await response.json());
    } catch (error) {
      console.error("Failed to fetch ${table}:", error);
    } finally {
      set${Entity}Loading(false);
    }
  };

  useEffect(() => {
    fetch${Entity}();
  }, []);
''')

REQUIRED_HOOKS = ("useState", "useEffect")

# `import X, { a, b } from "react";` capturing the named bindings
_REACT_NAMED_IMPORT = re.compile(
    r"^import\s+(?:[\w$]+\s*,\s*)?\{(?P<names>[^}]*)\}\s*from\s*['\"]react['\"][ \t]*;?",
    re.MULTILINE,
)
_IMPORT_STATEMENT = re.compile(
    r"^import\s+(?:[^;'\"]*?\s*from\s*)?['\"][^'\"\n]+['\"][ \t]*;?",
    re.MULTILINE,
)
# `const Name = (...) => {` or `function Name(...) {`
_COMPONENT_ENTRY = re.compile(
    r"(?:const\s+[A-Z][\w$]*\s*(?::[^=]+)?=\s*(?:async\s*)?\([^)]*\)\s*(?::[^=>{]+)?=>\s*\{"
    r"|function\s+[A-Z][\w$]*\s*\([^)]*\)\s*(?::[^{]+)?\{)"
)


@dataclass(frozen=True)
class ComponentUpdate:
    """Outcome of integrating a data fetch into an existing component."""

    content: str
    changed: bool
    reason: str | None = None


def component_name_from_path(path: str) -> str:
    """
    Derive a display name from a component file name.

    ``recently-played.tsx`` becomes ``RecentlyPlayed``.

    Raises:
        ValueError: If the name is not a usable identifier
    """
    stem = PurePosixPath(path.replace("\\", "/")).name.split(".")[0]
    name = "".join(
        word[:1].upper() + word[1:] for word in stem.split(WORD_SEPARATOR) if word
    )
    if not name.isidentifier() or not name[:1].isalpha():
        raise ValueError(f"Cannot derive a component name from {path!r}")
    return name


def _names(table_name: str, endpoint: str) -> dict[str, str]:
    return {
        "table": table_name,
        "endpoint": endpoint,
        "Entity": to_pascal_case(table_name),
        "camel": to_camel_case(table_name),
        "data": f"{to_camel_case(table_name)}Data",
    }


def render_new_component(component_name: str, endpoint: str, table_name: str) -> str:
    """Render a self-contained list/create/delete view for ``endpoint``."""
    return _NEW_COMPONENT.substitute(_names(table_name, endpoint), component=component_name)


def _merge_react_import(content: str) -> str:
    match = _REACT_NAMED_IMPORT.search(content)
    if match:
        names = [name.strip() for name in match.group("names").split(",") if name.strip()]
        missing = [hook for hook in REQUIRED_HOOKS if hook not in names]
        if not missing:
            return content
        start, end = match.span("names")
        return f"{content[:start]} {', '.join(names + missing)} {content[end:]}"

    insert_at = list(_IMPORT_STATEMENT.finditer(content))[-1].end()
    hooks = ", ".join(REQUIRED_HOOKS)
    return f'{content[:insert_at]}\nimport {{ {hooks} }} from "react";{content[insert_at:]}'


def apply_component_update(existing: str, endpoint: str, table_name: str) -> ComponentUpdate:
    """
    Integrate a data-fetch block into an existing component.

    The fetch block goes right after the first component entry; the
    ``react`` import gains ``useState``/``useEffect`` (or a new import is
    added after the last import statement). Files without an import
    statement or a component entry, and files already integrated, are
    returned unchanged with a reason.
    """
    names = _names(table_name, endpoint)
    if names["data"] in existing:
        return ComponentUpdate(existing, False, f"already fetches {table_name}")

    entry = _COMPONENT_ENTRY.search(existing)
    if entry is None:
        return ComponentUpdate(existing, False, "no component entry found")
    if _IMPORT_STATEMENT.search(existing) is None:
        return ComponentUpdate(existing, False, "no import statement found")

    # Insert below the entry first so earlier offsets stay valid for the import edit
    updated = existing[: entry.end()] + _FETCH_BLOCK.substitute(names) + existing[entry.end():]
    updated = _merge_react_import(updated)
    return ComponentUpdate(updated, True)
