"""Tests for module specifier resolution."""

import os

import pytest

from codesweep_cli.resolver import ImportResolver

ROOT = os.path.join(os.sep, "repo")


def p(*parts: str) -> str:
    return os.path.join(ROOT, *parts)


def context_of(path: str) -> str:
    return "server" if path.startswith(p("server") + os.sep) else "client"


@pytest.fixture
def resolver() -> ImportResolver:
    files = {
        p("client", "src", "App.tsx"),
        p("client", "src", "utils", "format.ts"),
        p("client", "src", "components", "index.ts"),
        p("client", "src", "hooks", "useAuth.tsx"),
        p("client", "lib", "store.js"),
        p("client", "src", "data.json.ts"),
        p("server", "src", "db.ts"),
        p("server", "src", "routes", "users.js"),
        p("server", "shared", "types.ts"),
    }
    return ImportResolver(
        files,
        {"client": p("client"), "server": p("server")},
        context_of,
    )


class TestRelative:
    """Tests for ./ and ../ specifiers."""

    def test_extension_is_appended(self, resolver: ImportResolver):
        assert resolver.resolve("./utils/format", p("client", "src", "App.tsx")) == p("client", "src", "utils", "format.ts")

    def test_directory_index(self, resolver: ImportResolver):
        assert resolver.resolve("./components", p("client", "src", "App.tsx")) == p("client", "src", "components", "index.ts")

    def test_parent_directory(self, resolver: ImportResolver):
        assert resolver.resolve("../App", p("client", "src", "utils", "format.ts")) == p("client", "src", "App.tsx")

    def test_exact_path(self, resolver: ImportResolver):
        assert resolver.resolve("./db.ts", p("server", "src", "main.ts")) == p("server", "src", "db.ts")

    def test_js_specifier_finds_ts_source(self, resolver: ImportResolver):
        assert resolver.resolve("../db.js", p("server", "src", "routes", "users.js")) == p("server", "src", "db.ts")

    def test_missing_target(self, resolver: ImportResolver):
        assert resolver.resolve("./nope", p("client", "src", "App.tsx")) is None


class TestAliases:
    """Tests for project-rooted specifiers."""

    def test_src_alias(self, resolver: ImportResolver):
        assert resolver.resolve("src/hooks/useAuth", p("client", "src", "App.tsx")) == p("client", "src", "hooks", "useAuth.tsx")

    def test_at_alias_is_context_rooted(self, resolver: ImportResolver):
        assert resolver.resolve("@/lib/store", p("client", "src", "App.tsx")) == p("client", "lib", "store.js")

    def test_alias_searches_every_context(self, resolver: ImportResolver):
        assert resolver.resolve("~/shared/types", p("client", "src", "App.tsx")) == p("server", "shared", "types.ts")

    def test_bare_specifier_under_context_src(self, resolver: ImportResolver):
        assert resolver.resolve("routes/users", p("server", "src", "db.ts")) == p("server", "src", "routes", "users.js")

    def test_bare_specifier_uses_own_context(self, resolver: ImportResolver):
        assert resolver.resolve("db", p("client", "src", "App.tsx")) is None

    def test_dotted_bare_name(self, resolver: ImportResolver):
        assert resolver.resolve("data.json", p("client", "src", "App.tsx")) == p("client", "src", "data.json.ts")


class TestExternal:
    """Tests for specifiers that point outside the project."""

    @pytest.mark.parametrize("specifier", ["react", "@prisma/client", "lodash/merge", ""])
    def test_packages_do_not_resolve(self, resolver: ImportResolver, specifier: str):
        assert resolver.resolve(specifier, p("client", "src", "App.tsx")) is None


def test_resolve_result_is_in_inventory(resolver: ImportResolver):
    """Test that every resolved path is an inventory member."""
    for spec in ("./utils/format", "./components", "src/hooks/useAuth", "@/lib/store", "./missing"):
        hit = resolver.resolve(spec, p("client", "src", "App.tsx"))
        assert hit is None or hit in resolver.files


def test_probe_order():
    """Test that an exact file wins over the directory index."""
    files = {p("client", "src", "api.ts"), p("client", "src", "api", "index.ts")}
    resolver = ImportResolver(files, {"client": p("client")}, lambda path: "client")

    assert resolver.probe(p("client", "src", "api")) == p("client", "src", "api.ts")


def test_round_trip_file_then_index():
    """Test ./c resolving to c.ts, or to c/index.ts when only that exists."""
    importer = p("a", "b.ts")
    with_file = ImportResolver({importer, p("a", "c.ts")}, {"client": ROOT}, lambda path: "client")
    with_index = ImportResolver({importer, p("a", "c", "index.ts")}, {"client": ROOT}, lambda path: "client")

    assert with_file.resolve("./c", importer) == p("a", "c.ts")
    assert with_index.resolve("./c", importer) == p("a", "c", "index.ts")
