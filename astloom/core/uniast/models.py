"""Unified AST data models.

Language-independent tree of a repository:
Repository -> Module -> Package -> {Type, Function, Var}, plus a flat
dependency graph keyed by Identity. These are pure data containers with
(de)serialization helpers; parsing and printing live elsewhere.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Tuple


class Language(str, Enum):
    """Source/target languages known to the translator."""

    GO = "go"
    JAVA = "java"
    PYTHON = "python"
    RUST = "rust"
    CXX = "cxx"
    TYPESCRIPT = "typescript"
    UNKNOWN = ""

    @classmethod
    def parse(cls, value: Any) -> "Language":
        """Parse a user-supplied language name, accepting common aliases."""
        if isinstance(value, Language):
            return value
        text = str(value or "").strip().lower()
        aliases = {
            "golang": "go",
            "py": "python",
            "rs": "rust",
            "ts": "typescript",
            "c++": "cxx",
            "cpp": "cxx",
            "c": "cxx",
        }
        text = aliases.get(text, text)
        for lang in cls:
            if lang.value == text:
                return lang
        return cls.UNKNOWN

    @property
    def display_name(self) -> str:
        return {
            Language.GO: "Go",
            Language.JAVA: "Java",
            Language.PYTHON: "Python",
            Language.RUST: "Rust",
            Language.CXX: "C++",
            Language.TYPESCRIPT: "TypeScript",
        }.get(self, "unknown")


class NodeKind(str, Enum):
    TYPE = "TYPE"
    FUNC = "FUNC"
    VAR = "VAR"


class RelationKind(str, Enum):
    DEPENDENCY = "Dependency"
    REFERENCE = "Reference"
    IMPLEMENT = "Implement"
    INHERIT = "Inherit"
    GROUP = "Group"


# ── Identity & positions ─────────────────────────────────────────────────


@dataclass(frozen=True)
class Identity:
    """Unique key of a declaration: module path, package path and name."""

    mod_path: str
    pkg_path: str
    name: str

    def full(self) -> str:
        return f"{self.mod_path}?{self.pkg_path}#{self.name}"

    def __str__(self) -> str:
        return self.full()

    @classmethod
    def parse(cls, full: str) -> "Identity":
        """Inverse of :meth:`full` (``mod?pkg#name``)."""
        head, _, name = full.rpartition("#")
        mod_path, _, pkg_path = head.partition("?")
        return cls(mod_path=mod_path, pkg_path=pkg_path, name=name)

    def to_dict(self) -> Dict[str, str]:
        return {"mod_path": self.mod_path, "pkg_path": self.pkg_path, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Identity":
        return cls(
            mod_path=data.get("mod_path") or "",
            pkg_path=data.get("pkg_path") or "",
            name=data.get("name") or "",
        )


@dataclass
class FileLine:
    """Advisory source position of a declaration."""

    file: str = ""
    line: int = 0
    start_offset: int = 0
    end_offset: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "start_offset": self.start_offset,
            "end_offset": self.end_offset,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FileLine":
        data = data or {}
        return cls(
            file=data.get("file") or "",
            line=int(data.get("line") or 0),
            start_offset=int(data.get("start_offset") or 0),
            end_offset=int(data.get("end_offset") or 0),
        )


@dataclass
class Dependency:
    """Edge from a declaration to another node of the graph."""

    identity: Identity
    file_line: Optional[FileLine] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"identity": self.identity.to_dict()}
        if self.file_line is not None:
            data["file_line"] = self.file_line.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Dependency":
        file_line = data.get("file_line")
        return cls(
            identity=Identity.from_dict(data["identity"]),
            file_line=FileLine.from_dict(file_line) if file_line is not None else None,
        )


def _deps_to_list(deps: List[Dependency]) -> List[Dict[str, Any]]:
    return [d.to_dict() for d in deps]


def _deps_from_list(items: Optional[List[Dict[str, Any]]]) -> List[Dependency]:
    return [Dependency.from_dict(d) for d in (items or [])]


# ── Declarations ─────────────────────────────────────────────────────────


@dataclass
class Declaration:
    """Common shape of Type, Function and Var nodes."""

    kind: ClassVar[NodeKind]

    identity: Identity
    file_line: FileLine = field(default_factory=FileLine)
    content: str = ""
    exported: bool = False
    dependencies: List[Dependency] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.identity.name

    def signature(self) -> str:
        """Short one-line summary used in dependency hints."""
        for line in self.content.splitlines():
            line = line.strip()
            if line:
                return line
        return ""

    def edges(self) -> List[Tuple[RelationKind, Dependency]]:
        """All outgoing graph edges of this declaration."""
        return [(RelationKind.DEPENDENCY, d) for d in self.dependencies]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity.to_dict(),
            "file_line": self.file_line.to_dict(),
            "content": self.content,
            "exported": self.exported,
            "dependencies": _deps_to_list(self.dependencies),
        }

    @classmethod
    def _base_kwargs(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "identity": Identity.from_dict(data.get("identity") or {}),
            "file_line": FileLine.from_dict(data.get("file_line")),
            "content": data.get("content") or "",
            "exported": bool(data.get("exported", False)),
            "dependencies": _deps_from_list(data.get("dependencies")),
        }


@dataclass
class Type(Declaration):
    """A struct, class, interface, enum or type alias."""

    kind: ClassVar[NodeKind] = NodeKind.TYPE

    type_kind: str = "struct"  # "struct" | "interface" | "enum" | "typedef"
    implements: List[Dependency] = field(default_factory=list)
    inherits: List[Dependency] = field(default_factory=list)
    methods: Dict[str, Identity] = field(default_factory=dict)

    def edges(self) -> List[Tuple[RelationKind, Dependency]]:
        edges = super().edges()
        edges.extend((RelationKind.IMPLEMENT, d) for d in self.implements)
        edges.extend((RelationKind.INHERIT, d) for d in self.inherits)
        return edges

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            type_kind=self.type_kind,
            implements=_deps_to_list(self.implements),
            inherits=_deps_to_list(self.inherits),
            methods={k: v.to_dict() for k, v in self.methods.items()},
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Type":
        return cls(
            **cls._base_kwargs(data),
            type_kind=data.get("type_kind") or "struct",
            implements=_deps_from_list(data.get("implements")),
            inherits=_deps_from_list(data.get("inherits")),
            methods={
                k: Identity.from_dict(v) for k, v in (data.get("methods") or {}).items()
            },
        )


@dataclass
class Function(Declaration):
    """A free function or method."""

    kind: ClassVar[NodeKind] = NodeKind.FUNC

    signature_text: str = ""
    is_method: bool = False
    is_interface_method: bool = False
    receiver: Optional[Dependency] = None

    def signature(self) -> str:
        return self.signature_text or super().signature()

    def edges(self) -> List[Tuple[RelationKind, Dependency]]:
        edges = super().edges()
        if self.receiver is not None:
            edges.append((RelationKind.DEPENDENCY, self.receiver))
        return edges

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            signature=self.signature_text,
            is_method=self.is_method,
            is_interface_method=self.is_interface_method,
            receiver=self.receiver.to_dict() if self.receiver else None,
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Function":
        receiver = data.get("receiver")
        return cls(
            **cls._base_kwargs(data),
            signature_text=data.get("signature") or "",
            is_method=bool(data.get("is_method", False)),
            is_interface_method=bool(data.get("is_interface_method", False)),
            receiver=Dependency.from_dict(receiver) if receiver else None,
        )


@dataclass
class Var(Declaration):
    """A global variable or constant."""

    kind: ClassVar[NodeKind] = NodeKind.VAR

    is_const: bool = False
    is_pointer: bool = False
    var_type: Optional[Dependency] = None
    groups: List[Identity] = field(default_factory=list)

    def edges(self) -> List[Tuple[RelationKind, Dependency]]:
        edges = super().edges()
        if self.var_type is not None:
            edges.append((RelationKind.DEPENDENCY, self.var_type))
        edges.extend((RelationKind.GROUP, Dependency(identity=g)) for g in self.groups)
        return edges

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            is_const=self.is_const,
            is_pointer=self.is_pointer,
            type=self.var_type.to_dict() if self.var_type else None,
            groups=[g.to_dict() for g in self.groups],
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Var":
        var_type = data.get("type")
        return cls(
            **cls._base_kwargs(data),
            is_const=bool(data.get("is_const", False)),
            is_pointer=bool(data.get("is_pointer", False)),
            var_type=Dependency.from_dict(var_type) if var_type else None,
            groups=[Identity.from_dict(g) for g in (data.get("groups") or [])],
        )


DECLARATION_CLASSES = {NodeKind.TYPE: Type, NodeKind.FUNC: Function, NodeKind.VAR: Var}


def _decl_map_to_dict(items: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if items is None:
        return None
    return {k: (v.to_dict() if v is not None else None) for k, v in items.items()}


def _decl_map_from_dict(cls, items: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    # Null entries survive loading so the validator can report them.
    return {k: (cls.from_dict(v) if v is not None else None) for k, v in (items or {}).items()}


# ── Containers ───────────────────────────────────────────────────────────


@dataclass
class Import:
    path: str
    alias: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "alias": self.alias}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Import":
        return cls(path=data.get("path") or "", alias=data.get("alias"))


@dataclass
class File:
    """A source file of a module, carrying its import block."""

    path: str
    package: str = ""
    imports: List[Import] = field(default_factory=list)

    def add_import(self, path: str, alias: Optional[str] = None) -> None:
        if any(imp.path == path and imp.alias == alias for imp in self.imports):
            return
        self.imports.append(Import(path=path, alias=alias))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "package": self.package,
            "imports": [i.to_dict() for i in self.imports],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "File":
        return cls(
            path=data.get("path") or "",
            package=data.get("package") or "",
            imports=[Import.from_dict(i) for i in (data.get("imports") or [])],
        )


@dataclass
class Package:
    """Declarations of one package, keyed by local name."""

    pkg_path: str
    is_main: bool = False
    is_test: bool = False
    types: Dict[str, Optional[Type]] = field(default_factory=dict)
    functions: Dict[str, Optional[Function]] = field(default_factory=dict)
    vars: Dict[str, Optional[Var]] = field(default_factory=dict)

    def add(self, decl: Declaration) -> Optional[Declaration]:
        """Insert a declaration into the map for its kind.

        Returns the declaration previously stored under the same name, if any.
        """
        target = self.map_for(decl.kind)
        previous = target.get(decl.name)
        target[decl.name] = decl
        return previous

    def map_for(self, kind: NodeKind) -> Dict[str, Any]:
        if kind == NodeKind.TYPE:
            return self.types
        if kind == NodeKind.FUNC:
            return self.functions
        return self.vars

    def declarations(self) -> Iterator[Declaration]:
        """Types, then functions, then vars, skipping null entries."""
        for items in (self.types, self.functions, self.vars):
            for decl in items.values():
                if decl is not None:
                    yield decl

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pkg_path": self.pkg_path,
            "is_main": self.is_main,
            "is_test": self.is_test,
            "types": _decl_map_to_dict(self.types),
            "functions": _decl_map_to_dict(self.functions),
            "vars": _decl_map_to_dict(self.vars),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Package":
        return cls(
            pkg_path=data.get("pkg_path") or "",
            is_main=bool(data.get("is_main", False)),
            is_test=bool(data.get("is_test", False)),
            types=_decl_map_from_dict(Type, data.get("types")),
            functions=_decl_map_from_dict(Function, data.get("functions")),
            vars=_decl_map_from_dict(Var, data.get("vars")),
        )


@dataclass
class Module:
    """A compilation unit (Go module, Maven artifact, Cargo crate, ...).

    A module with an empty ``dir`` is external: it is referenced by the
    repository but never translated or written.
    """

    name: str
    dir: str = ""
    language: Language = Language.UNKNOWN
    version: str = ""
    packages: Optional[Dict[str, Optional[Package]]] = field(default_factory=dict)
    files: Dict[str, File] = field(default_factory=dict)
    dependencies: Dict[str, str] = field(default_factory=dict)

    @property
    def is_external(self) -> bool:
        return not self.dir

    def get_or_create_package(self, pkg_path: str) -> Package:
        if self.packages is None:
            self.packages = {}
        pkg = self.packages.get(pkg_path)
        if pkg is None:
            pkg = Package(pkg_path=pkg_path)
            self.packages[pkg_path] = pkg
        return pkg

    @staticmethod
    def file_key(package: str, path: str) -> str:
        return f"{package}/{path}" if package else path

    def get_file(self, package: str, path: str) -> Optional[File]:
        return self.files.get(self.file_key(package, path))

    def get_or_create_file(self, package: str, path: str) -> File:
        key = self.file_key(package, path)
        f = self.files.get(key)
        if f is None:
            f = File(path=path, package=package)
            self.files[key] = f
        return f

    def to_dict(self) -> Dict[str, Any]:
        packages = None
        if self.packages is not None:
            packages = {
                k: (v.to_dict() if v is not None else None) for k, v in self.packages.items()
            }
        return {
            "name": self.name,
            "dir": self.dir,
            "language": self.language.value,
            "version": self.version,
            "packages": packages,
            "files": {k: v.to_dict() for k, v in self.files.items()},
            "dependencies": dict(self.dependencies),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Module":
        raw_packages = data.get("packages", {})
        packages = None
        if raw_packages is not None:
            packages = {
                k: (Package.from_dict(v) if v is not None else None)
                for k, v in raw_packages.items()
            }
        return cls(
            name=data.get("name") or "",
            dir=data.get("dir") or "",
            language=Language.parse(data.get("language")),
            version=data.get("version") or "",
            packages=packages,
            files={k: File.from_dict(v) for k, v in (data.get("files") or {}).items()},
            dependencies=dict(data.get("dependencies") or {}),
        )


@dataclass
class Relation:
    kind: RelationKind
    identity: Identity

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "identity": self.identity.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Relation":
        return cls(kind=RelationKind(data["kind"]), identity=Identity.from_dict(data["identity"]))


@dataclass
class Node:
    """Graph entry for one declaration."""

    identity: Identity
    kind: NodeKind
    dependencies: List[Relation] = field(default_factory=list)
    references: List[Relation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity.to_dict(),
            "kind": self.kind.value,
            "dependencies": [r.to_dict() for r in self.dependencies],
            "references": [r.to_dict() for r in self.references],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        return cls(
            identity=Identity.from_dict(data["identity"]),
            kind=NodeKind(data["kind"]),
            dependencies=[Relation.from_dict(r) for r in (data.get("dependencies") or [])],
            references=[Relation.from_dict(r) for r in (data.get("references") or [])],
        )


@dataclass
class Repository:
    """Root of the unified AST."""

    name: str
    path: str = ""
    modules: Optional[Dict[str, Optional[Module]]] = field(default_factory=dict)
    graph: Dict[Identity, Node] = field(default_factory=dict)
    generated_files: Dict[str, str] = field(default_factory=dict)

    # ── Lookup ───────────────────────────────────────────────────────────

    def internal_modules(self) -> List[Module]:
        return [m for m in (self.modules or {}).values() if m is not None and not m.is_external]

    def iter_declarations(self) -> Iterator[Tuple[Module, Package, Declaration]]:
        for mod in self.internal_modules():
            for pkg in (mod.packages or {}).values():
                if pkg is None:
                    continue
                for decl in pkg.declarations():
                    yield mod, pkg, decl

    def get_module(self, name: str) -> Optional[Module]:
        return (self.modules or {}).get(name)

    def get_package(self, mod_path: str, pkg_path: str) -> Optional[Package]:
        mod = self.get_module(mod_path)
        if mod is None or mod.packages is None:
            return None
        return mod.packages.get(pkg_path)

    def get_declaration(self, identity: Identity) -> Optional[Declaration]:
        pkg = self.get_package(identity.mod_path, identity.pkg_path)
        if pkg is None:
            return None
        for items in (pkg.types, pkg.functions, pkg.vars):
            decl = items.get(identity.name)
            if decl is not None:
                return decl
        return None

    def get_node(self, identity: Identity) -> Optional[Node]:
        return self.graph.get(identity)

    def count_declarations(self) -> int:
        return sum(1 for _ in self.iter_declarations())

    # ── Graph ────────────────────────────────────────────────────────────

    def build_graph(self) -> None:
        """Rebuild the flat dependency graph from the module tree."""
        graph: Dict[Identity, Node] = {}
        for _, _, decl in self.iter_declarations():
            graph[decl.identity] = Node(identity=decl.identity, kind=decl.kind)

        for _, _, decl in self.iter_declarations():
            node = graph[decl.identity]
            for rel_kind, dep in decl.edges():
                node.dependencies.append(Relation(kind=rel_kind, identity=dep.identity))
                target = graph.get(dep.identity)
                if target is not None:
                    target.references.append(
                        Relation(kind=RelationKind.REFERENCE, identity=decl.identity)
                    )
        self.graph = graph

    # ── Serialization ────────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        modules = None
        if self.modules is not None:
            modules = {
                k: (v.to_dict() if v is not None else None) for k, v in self.modules.items()
            }
        return {
            "name": self.name,
            "path": self.path,
            "modules": modules,
            "graph": {ident.full(): node.to_dict() for ident, node in self.graph.items()},
            "generated_files": dict(self.generated_files),
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Repository":
        raw_modules = data.get("modules", {})
        modules = None
        if raw_modules is not None:
            modules = {
                k: (Module.from_dict(v) if v is not None else None)
                for k, v in raw_modules.items()
            }
        graph = {}
        for key, raw in (data.get("graph") or {}).items():
            node = Node.from_dict(raw)
            graph[node.identity] = node
        return cls(
            name=data.get("name") or "",
            path=data.get("path") or "",
            modules=modules,
            graph=graph,
            generated_files=dict(data.get("generated_files") or {}),
        )

    @classmethod
    def from_json(cls, text: str) -> "Repository":
        return cls.from_dict(json.loads(text))
