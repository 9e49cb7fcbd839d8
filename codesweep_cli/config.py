"""Default analyzer settings and user-level configuration paths."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("CODESWEEP_HOME", str(Path.home() / ".codesweep"))).expanduser()
USER_CONFIG_FILE = BASE_DIR / "config.toml"
PROJECT_CONFIG_NAME = "codesweep.toml"

SUPPORTED_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx")

SKIP_DIRS = {
    "node_modules", "dist", "build", ".next", "coverage", ".git",
    ".expo", ".turbo", ".cache", "__pycache__", ".venv", "venv",
}

# Package partitions analysed under the project root, in resolution order.
DEFAULT_CONTEXTS = ("client", "server")

# Specifier prefix -> path prefix inside each context directory.
DEFAULT_ALIASES = {
    "src/": "src/",
    "@/": "",
    "~/": "",
}

# Identifiers whose member chains are treated as ORM client calls.
ORM_CLIENTS = ("prisma", "db")

SYSTEM_FIELDS = ("id", "createdAt", "updatedAt", "created_at", "updated_at")

SCHEMA_FILE_NAME = "schema.prisma"

# Interpreters whose first path argument in a package.json script is an entry point.
SCRIPT_RUNNERS = ("node", "ts-node", "tsx", "nodemon", "babel-node")
