"""Tests for Prisma schema parsing and usage cross-referencing."""

from pathlib import Path

from codesweep_cli.models import SchemaField, SchemaModel, SchemaUsage
from codesweep_cli.schema import SchemaCrossReferencer, find_schema_files, load_schema, parse_schema

SCHEMA = """
generator client {
  provider = "prisma-client-js"
}

model User {
  id        Int      @id @default(autoincrement())
  email     String   @unique
  // legacy display name
  nickname  String?
  posts     Post[]
  createdAt DateTime @default(now())

  @@map("users")
}

model Post {
  id     Int  @id
  model  String
  author User @relation(fields: [authorId], references: [id])
  authorId Int
}
"""


class TestParseSchema:
    """Tests for the line-based model parser."""

    def test_models_and_fields(self):
        models = parse_schema(SCHEMA, "schema.prisma")

        assert [m.name for m in models] == ["User", "Post"]
        user = models[0]
        assert [f.name for f in user.fields] == ["id", "email", "nickname", "posts", "createdAt"]
        assert user.fields[3] == SchemaField("posts", "Post")
        assert user.schema_file == "schema.prisma"

    def test_field_named_model_does_not_open_a_block(self):
        post = parse_schema(SCHEMA)[1]

        assert [f.name for f in post.fields] == ["id", "model", "author", "authorId"]

    def test_unterminated_model_is_dropped(self):
        models = parse_schema("model A {\n  id Int\n}\nmodel B {\n  id Int\n")

        assert [m.name for m in models] == ["A"]

    def test_trailing_text_after_open_brace(self):
        models = parse_schema("model User { // legacy\n  id Int\n}\nmodel Empty {}\nmodel Tag {\n  name String\n}\n")

        assert [m.name for m in models] == ["User", "Empty", "Tag"]
        assert [f.name for f in models[0].fields] == ["id"]
        assert models[1].fields == []

    def test_no_models(self):
        assert parse_schema("") == []


def test_find_and_load_schema_files(temp_dir: Path):
    """Test discovery skips dependency directories."""
    (temp_dir / "server" / "prisma").mkdir(parents=True)
    (temp_dir / "node_modules" / ".prisma").mkdir(parents=True)
    (temp_dir / "server" / "prisma" / "schema.prisma").write_text(SCHEMA)
    (temp_dir / "node_modules" / ".prisma" / "schema.prisma").write_text(SCHEMA)

    found = find_schema_files([temp_dir])

    assert found == [(temp_dir / "server" / "prisma" / "schema.prisma").resolve()]
    assert [m.name for m in load_schema(found[0])] == ["User", "Post"]


def test_load_missing_schema(temp_dir: Path):
    """Test that an unreadable schema yields no models."""
    assert load_schema(temp_dir / "missing.prisma") == []


class TestCrossReferencer:
    """Tests for deciding model and field usage."""

    def _user(self) -> SchemaModel:
        return SchemaModel("User", [
            SchemaField("id", "Int"),
            SchemaField("email", "String"),
            SchemaField("nickname", "String"),
            SchemaField("createdAt", "DateTime"),
        ], "server/prisma/schema.prisma")

    def test_unused_field_on_used_model(self):
        referencer = SchemaCrossReferencer([
            "await prisma.user.findMany({ where: { email } });",
        ])
        usage = {"User": SchemaUsage(queries={"server/src/users.ts"})}

        issues = referencer.analyze([self._user()], usage)

        assert len(issues) == 1
        assert issues[0].issue_type == "unused_fields"
        assert [f.name for f in issues[0].fields] == ["nickname"]

    def test_unused_model(self):
        referencer = SchemaCrossReferencer(["const x = 1;"])

        issues = referencer.analyze([self._user()], {}, relative=lambda p: "rel/" + p)

        assert [(i.issue_type, i.model) for i in issues] == [("unused_model", "User")]
        assert issues[0].file == "rel/server/prisma/schema.prisma"
        assert len(issues[0].fields) == 4

    def test_text_search_fallback(self):
        referencer = SchemaCrossReferencer(["type Row = { user: string; nickname: string; email: string }"])

        assert referencer.is_model_used(self._user(), None) is True
        assert referencer.analyze([self._user()], {}) == []

    def test_search_forms(self):
        referencer = SchemaCrossReferencer(["row.displayName", "pick('legacy_code')"])

        assert referencer.search("displayName")
        assert referencer.search("legacy_code")
        assert referencer.search("DISPLAYNAME")
        assert not referencer.search("display")

    def test_system_fields_never_reported(self):
        referencer = SchemaCrossReferencer([""], system_fields=("id", "createdAt"))

        assert referencer.unused_fields(self._user()) == [
            SchemaField("email", "String"), SchemaField("nickname", "String"),
        ]
