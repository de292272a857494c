"""Unit tests for the unified AST data model.

Tests cover:
- Language alias parsing
- Identity full-form rendering and parsing
- Package insertion and declaration ordering
- Graph construction (dependencies and reverse references)
- JSON round trip keeping null packages and declaration specifics
"""

import json

from astloom.core.uniast import (
    Dependency,
    FileLine,
    Function,
    Identity,
    Language,
    Module,
    NodeKind,
    Package,
    RelationKind,
    Repository,
    Type,
    Var,
    validate_repository_with_result,
)


# ── Fixtures ──────────────────────────────────────────────────────────────


def _ident(name: str, pkg: str = "shop/model", mod: str = "shop") -> Identity:
    return Identity(mod_path=mod, pkg_path=pkg, name=name)


def _make_repo() -> Repository:
    """Repository with one internal module, one external module.

    ``NewUser`` depends on the ``User`` type; ``DefaultName`` is typed by it.
    """
    user = Type(
        identity=_ident("User"),
        file_line=FileLine(file="user.go", line=3),
        content="type User struct {\n\tName string\n}",
        exported=True,
    )
    new_user = Function(
        identity=_ident("NewUser"),
        file_line=FileLine(file="user.go", line=8),
        content="func NewUser(name string) *User {\n\treturn &User{Name: name}\n}",
        exported=True,
        dependencies=[Dependency(identity=_ident("User"))],
    )
    default_name = Var(
        identity=_ident("DefaultName"),
        file_line=FileLine(file="user.go", line=1),
        content='var DefaultName = "anon"',
        var_type=Dependency(identity=_ident("User")),
    )
    pkg = Package(pkg_path="shop/model")
    for decl in (user, new_user, default_name):
        pkg.add(decl)

    internal = Module(name="shop", dir=".", language=Language.GO, packages={"shop/model": pkg})
    external = Module(name="github.com/lib/pq", language=Language.GO)
    return Repository(name="shop", modules={"shop": internal, "github.com/lib/pq": external})


# ── Tests: Language ───────────────────────────────────────────────────────


class TestLanguage:
    """Language.parse accepts canonical names and aliases."""

    def test_aliases(self):
        assert Language.parse("golang") == Language.GO
        assert Language.parse("py") == Language.PYTHON
        assert Language.parse("C++") == Language.CXX
        assert Language.parse("ts") == Language.TYPESCRIPT

    def test_unknown_and_empty(self):
        assert Language.parse("cobol") == Language.UNKNOWN
        assert Language.parse(None) == Language.UNKNOWN

    def test_passthrough(self):
        assert Language.parse(Language.JAVA) is Language.JAVA


# ── Tests: Identity ───────────────────────────────────────────────────────


class TestIdentity:
    def test_full_form(self):
        assert _ident("User").full() == "shop?shop/model#User"
        assert str(_ident("User")) == "shop?shop/model#User"

    def test_parse_inverse_of_full(self):
        ident = Identity(mod_path="a.b/c", pkg_path="a.b/c/d", name="Recv.method")
        assert Identity.parse(ident.full()) == ident

    def test_hashable(self):
        assert {_ident("A"): 1}[_ident("A")] == 1


# ── Tests: Package ────────────────────────────────────────────────────────


class TestPackage:
    def test_add_returns_previous(self):
        pkg = Package(pkg_path="p")
        first = Function(identity=_ident("f", pkg="p"), content="func f() {}")
        second = Function(identity=_ident("f", pkg="p"), content="func f() { x() }")
        assert pkg.add(first) is None
        assert pkg.add(second) is first
        assert pkg.functions["f"] is second

    def test_declarations_order_skips_null(self):
        pkg = Package(pkg_path="p")
        pkg.add(Var(identity=_ident("v", pkg="p"), content="var v = 1"))
        pkg.add(Function(identity=_ident("f", pkg="p"), content="func f() {}"))
        pkg.add(Type(identity=_ident("T", pkg="p"), content="type T int"))
        pkg.types["Broken"] = None

        kinds = [d.kind for d in pkg.declarations()]
        assert kinds == [NodeKind.TYPE, NodeKind.FUNC, NodeKind.VAR]


# ── Tests: Repository ─────────────────────────────────────────────────────


class TestRepository:
    def test_internal_modules_excludes_external(self):
        repo = _make_repo()
        assert [m.name for m in repo.internal_modules()] == ["shop"]

    def test_get_declaration(self):
        repo = _make_repo()
        decl = repo.get_declaration(_ident("NewUser"))
        assert isinstance(decl, Function)
        assert repo.get_declaration(_ident("Missing")) is None
        assert repo.count_declarations() == 3

    def test_build_graph_links_references(self):
        repo = _make_repo()
        repo.build_graph()

        node = repo.get_node(_ident("NewUser"))
        assert [r.identity for r in node.dependencies] == [_ident("User")]

        user_node = repo.get_node(_ident("User"))
        referrers = {r.identity.name for r in user_node.references}
        assert referrers == {"NewUser", "DefaultName"}
        assert all(r.kind == RelationKind.REFERENCE for r in user_node.references)

    def test_function_signature_prefers_explicit(self):
        fn = Function(identity=_ident("f"), content="\n\nfunc f() {\n}", signature_text="func f()")
        assert fn.signature() == "func f()"
        fn.signature_text = ""
        assert fn.signature() == "func f() {"


class TestSerialization:
    def test_json_round_trip(self):
        repo = _make_repo()
        repo.build_graph()
        loaded = Repository.from_json(repo.to_json())

        assert loaded.to_dict() == repo.to_dict()
        var = loaded.get_declaration(_ident("DefaultName"))
        assert var.var_type.identity == _ident("User")
        assert loaded.get_module("github.com/lib/pq").is_external

    def test_null_package_survives_loading(self):
        repo = _make_repo()
        data = repo.to_dict()
        data["modules"]["shop"]["packages"]["shop/broken"] = None

        loaded = Repository.from_dict(json.loads(json.dumps(data)))
        assert "shop/broken" in loaded.get_module("shop").packages
        assert loaded.get_module("shop").packages["shop/broken"] is None

    def test_null_strings_load_as_empty(self):
        data = _make_repo().to_dict()
        func = data["modules"]["shop"]["packages"]["shop/model"]["functions"]["NewUser"]
        func["content"] = None
        func["file_line"]["file"] = None
        data["modules"]["shop"]["version"] = None

        loaded = Repository.from_dict(json.loads(json.dumps(data)))
        new_user = loaded.get_declaration(_ident("NewUser"))
        assert new_user.content == ""
        assert new_user.file_line.file == ""
        assert loaded.get_module("shop").version == ""

        result = validate_repository_with_result(loaded)
        assert result.is_fatal
        assert any("has empty Content" in e.message for e in result.errors)

    def test_to_json_is_canonical(self):
        repo = _make_repo()
        assert repo.to_json() == Repository.from_json(repo.to_json()).to_json()
