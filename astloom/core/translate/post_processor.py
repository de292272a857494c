"""Post-translation processing: Go import paths, entry points and project manifests.

Runs on the merged target repository after all declarations have been
translated. Generated project files are stored in
``Repository.generated_files`` (relative path -> content) and emitted by
the writer alongside the source files.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from ..uniast.models import (
    FileLine,
    Function,
    Identity,
    Language,
    Module,
    Repository,
)

logger = logging.getLogger(__name__)


# ── Entry points ─────────────────────────────────────────────────────────


class EntryPointType(str, Enum):
    MAIN = "main"
    SPRING_BOOT = "spring_boot"
    REST_CONTROLLER = "rest_controller"
    SCHEDULED_TASK = "scheduled_task"


@dataclass
class EntryPointInfo:
    type: EntryPointType
    name: str
    identity: Identity


_TYPE_MARKERS = (
    ("@SpringBootApplication", EntryPointType.SPRING_BOOT),
    ("@RestController", EntryPointType.REST_CONTROLLER),
    ("@Controller", EntryPointType.REST_CONTROLLER),
    ("@Scheduled", EntryPointType.SCHEDULED_TASK),
)

_DEFAULT_ENTRY = {
    Language.GO: 'import "fmt"\n\nfunc main() {\n\tfmt.Println("Application started")\n}',
    Language.RUST: 'fn main() {\n    println!("Application started");\n}',
    Language.PYTHON: (
        'def main():\n    """Application entry point"""\n    print("Application started")\n\n\n'
        'if __name__ == "__main__":\n    main()'
    ),
    Language.CXX: (
        '#include <iostream>\n\n'
        'int main(int argc, char* argv[]) {\n'
        '    std::cout << "Application started" << std::endl;\n    return 0;\n}'
    ),
    Language.JAVA: (
        'public static void main(String[] args) {\n'
        '    System.out.println("Application started");\n}'
    ),
}

_MAIN_PACKAGE = {
    Language.GO: "main",
    Language.RUST: "src",
    Language.PYTHON: "__main__",
    Language.CXX: "src",
    Language.JAVA: "com.example.app",
}

_MAIN_FILE = {
    Language.GO: "main.go",
    Language.RUST: "main.rs",
    Language.PYTHON: "__main__.py",
    Language.CXX: "main.cpp",
    Language.JAVA: "Application.java",
}


class EntryPointHandler:
    """Detects program entry points and synthesizes a default one."""

    def __init__(self, target: Language):
        self.target = target

    def detect(self, repo: Repository) -> List[EntryPointInfo]:
        found: List[EntryPointInfo] = []
        for _, _, decl in repo.iter_declarations():
            if isinstance(decl, Function):
                name = decl.name
                if name == "main" or name.endswith("::main") or "main(String[])" in name:
                    found.append(EntryPointInfo(EntryPointType.MAIN, name, decl.identity))
                continue
            for marker, ep_type in _TYPE_MARKERS:
                if marker in decl.content and not any(
                    f.identity == decl.identity and f.type == ep_type for f in found
                ):
                    found.append(EntryPointInfo(ep_type, decl.name, decl.identity))
        return found

    @staticmethod
    def has_main_entry(entry_points: List[EntryPointInfo]) -> bool:
        return any(
            ep.type in (EntryPointType.MAIN, EntryPointType.SPRING_BOOT) for ep in entry_points
        )

    def generate_default_entry(self, repo: Repository) -> Optional[Function]:
        """Add a minimal ``main`` to the first internal module."""
        content = _DEFAULT_ENTRY.get(self.target)
        modules = repo.internal_modules()
        if not content or not modules:
            return None
        module = modules[0]
        pkg_path = _MAIN_PACKAGE.get(self.target, "main")
        pkg = module.get_or_create_package(pkg_path)
        pkg.is_main = True
        main = Function(
            identity=Identity(mod_path=module.name, pkg_path=pkg_path, name="main"),
            file_line=FileLine(file=_MAIN_FILE.get(self.target, "main"), line=1),
            content=content,
            exported=True,
        )
        pkg.add(main)
        logger.info(f"Generated default entry point {main.identity.full()}")
        return main


# ── Project manifests ────────────────────────────────────────────────────


class ConfigGenerator:
    """Builds the target language's project manifest(s)."""

    def __init__(self, target: Language, module_name: str = ""):
        self.target = target
        self.module_name = module_name

    def generate(self, repo: Repository) -> Dict[str, str]:
        name = self.module_name or repo.name or "translated"
        deps = self._dependencies(repo)
        builder = {
            Language.GO: self._go,
            Language.RUST: self._rust,
            Language.PYTHON: self._python,
            Language.JAVA: self._java,
            Language.CXX: self._cxx,
        }.get(self.target)
        if builder is None:
            return {}
        return builder(name, deps)

    @staticmethod
    def _dependencies(repo: Repository) -> Dict[str, str]:
        deps: Dict[str, str] = {}
        for module in repo.internal_modules():
            deps.update(module.dependencies)
        return dict(sorted(deps.items()))

    def _go(self, name: str, deps: Dict[str, str]) -> Dict[str, str]:
        lines = [f"module {name}", "", "go 1.21", ""]
        if deps:
            lines.append("require (")
            lines.extend(f"\t{dep} {version or 'latest'}" for dep, version in deps.items())
            lines.append(")")
            lines.append("")
        return {"go.mod": "\n".join(lines)}

    def _rust(self, name: str, deps: Dict[str, str]) -> Dict[str, str]:
        crate = name.replace("-", "_").replace("/", "_").replace(".", "_")
        lines = [
            "[package]",
            f'name = "{crate}"',
            'version = "0.1.0"',
            'edition = "2021"',
            "",
            "[dependencies]",
        ]
        lines.extend(f'{dep} = "{version or "*"}"' for dep, version in deps.items())
        return {"Cargo.toml": "\n".join(lines) + "\n"}

    def _python(self, name: str, deps: Dict[str, str]) -> Dict[str, str]:
        project = name.lower().replace("-", "_").replace("/", "_")
        reqs = [f"{dep}{version}" if version and version[0] in "<>=~!" else dep
                for dep, version in deps.items()]
        dep_lines = "".join(f'    "{r}",\n' for r in reqs)
        pyproject = (
            "[build-system]\n"
            'requires = ["setuptools>=61.0"]\n'
            'build-backend = "setuptools.build_meta"\n\n'
            "[project]\n"
            f'name = "{project}"\n'
            'version = "0.1.0"\n'
            'requires-python = ">=3.9"\n'
            f"dependencies = [\n{dep_lines}]\n"
        )
        requirements = "".join(f"{r}\n" for r in reqs)
        return {"pyproject.toml": pyproject, "requirements.txt": requirements}

    def _java(self, name: str, deps: Dict[str, str]) -> Dict[str, str]:
        artifact = name.replace("/", "-").lower()
        dep_xml = "".join(f"        <!-- {dep} {version} -->\n" for dep, version in deps.items())
        pom = (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            '<project xmlns="http://maven.apache.org/POM/4.0.0">\n'
            "    <modelVersion>4.0.0</modelVersion>\n"
            "    <groupId>com.example</groupId>\n"
            f"    <artifactId>{artifact}</artifactId>\n"
            "    <version>0.1.0-SNAPSHOT</version>\n"
            "    <properties>\n"
            "        <maven.compiler.source>17</maven.compiler.source>\n"
            "        <maven.compiler.target>17</maven.compiler.target>\n"
            "    </properties>\n"
            f"    <dependencies>\n{dep_xml}    </dependencies>\n"
            "</project>\n"
        )
        return {"pom.xml": pom}

    def _cxx(self, name: str, deps: Dict[str, str]) -> Dict[str, str]:
        project = name.replace("/", "_").replace("-", "_")
        cmake = (
            "cmake_minimum_required(VERSION 3.16)\n"
            f"project({project} VERSION 0.1.0 LANGUAGES CXX)\n\n"
            "set(CMAKE_CXX_STANDARD 17)\n"
            'file(GLOB_RECURSE SOURCES "src/*.cpp")\n'
            "add_executable(${PROJECT_NAME} ${SOURCES})\n"
        )
        return {"CMakeLists.txt": cmake}


# ── Go import paths ──────────────────────────────────────────────────────


# Java layer names that Go translations usually fold into one package.
_FOLDED_PACKAGES = {
    "core": "model", "domain": "model", "entity": "model", "entities": "model",
    "dto": "model", "vo": "model", "pojo": "model", "bean": "model", "beans": "model",
    "dao": "repository", "mapper": "repository", "repo": "repository",
    "persistence": "repository",
    "api": "controller", "rest": "controller", "endpoint": "controller",
    "handler": "controller",
    "impl": "service", "business": "service", "logic": "service",
    "common": "utils", "util": "utils", "helper": "utils", "helpers": "utils",
}

# Placeholder module paths models like to invent.
_PLACEHOLDER_PREFIXES = ("com.example/", "com.example.", "your-module/path/to/", "your-module/")

_GO_IMPORT_DECL_RE = re.compile(r"^import\s*(?:\([^)]*\)|[^\n]*)", re.MULTILINE)
_QUOTED_RE = re.compile(r'"([^"\n]+)"')


class GoImportFixer:
    """Rewrites Java-style import paths in Go output to ``<module>/<pkg>``.

    ``com.acme.shop.model`` becomes ``github.com/example/app/model`` when
    the module has a ``model`` package. Standard library and
    domain-qualified paths (``net/http``, ``github.com/x/y``) are kept.

    Args:
        module_path: Go module path of the target module
        packages: Go package name -> directory relative to the module root
    """

    def __init__(self, module_path: str, packages: Dict[str, str]):
        self.module_path = module_path
        self.packages = packages

    @classmethod
    def for_module(cls, module: Module) -> "GoImportFixer":
        packages: Dict[str, str] = {}
        for pkg_path in sorted(module.packages or {}):
            pkg = module.packages[pkg_path]
            if pkg is None or pkg.is_main:
                continue
            prefix = module.name + "/"
            rel = pkg_path[len(prefix):] if pkg_path.startswith(prefix) else pkg_path.strip("/")
            if rel:
                packages.setdefault(rel.rsplit("/", 1)[-1], rel)
        return cls(module.name, packages)

    def is_foreign(self, path: str) -> bool:
        if path.startswith(_PLACEHOLDER_PREFIXES):
            return True
        if path == self.module_path or path.startswith(self.module_path + "/"):
            return False
        return "." in path and "/" not in path

    def convert(self, path: str) -> str:
        if not self.is_foreign(path):
            return path
        rest = path
        for prefix in _PLACEHOLDER_PREFIXES:
            if rest.startswith(prefix):
                rest = rest[len(prefix):]
                break
        segments = [s for s in re.split(r"[./]", rest) if s]
        # com.acme.model.User imports a class; its package is what Go needs.
        if len(segments) > 1 and segments[-1][:1].isupper():
            segments.pop()
        segments = [s.lower() for s in segments]
        if not segments:
            return path
        match = self._match(segments[-1])
        if match:
            return f"{self.module_path}/{match}"
        return f"{self.module_path}/" + "/".join(segments)

    def _match(self, name: str) -> Optional[str]:
        if name in self.packages:
            return self.packages[name]
        folded = _FOLDED_PACKAGES.get(name)
        if folded in self.packages:
            return self.packages[folded]
        for pkg_name in sorted(self.packages):
            if name in pkg_name or pkg_name in name:
                return self.packages[pkg_name]
        return None

    def fix_content(self, content: str) -> str:
        """Convert the quoted paths of every import declaration in ``content``."""

        def fix_decl(m: "re.Match") -> str:
            return _QUOTED_RE.sub(lambda q: f'"{self.convert(q.group(1))}"', m.group(0))

        return _GO_IMPORT_DECL_RE.sub(fix_decl, content)

    def apply(self, module: Module) -> int:
        """Fix declaration bodies and File imports in place; returns the change count."""
        changed = 0
        for pkg in (module.packages or {}).values():
            if pkg is None:
                continue
            for decl in pkg.declarations():
                fixed = self.fix_content(decl.content)
                if fixed != decl.content:
                    decl.content = fixed
                    changed += 1
        for file in module.files.values():
            for imp in file.imports:
                fixed = self.convert(imp.path.strip('"'))
                if fixed != imp.path.strip('"'):
                    imp.path = fixed
                    changed += 1
        return changed


# ── Orchestration ────────────────────────────────────────────────────────


class PostProcessor:
    """Runs Go import fixing, entry-point handling, then manifest generation."""

    def __init__(
        self,
        target: Language,
        module_name: str = "",
        generate_entry_point: bool = True,
        generate_config: bool = True,
    ):
        self.target = target
        self.generate_entry_point = generate_entry_point
        self.generate_config = generate_config
        self.entry_points = EntryPointHandler(target)
        self.config = ConfigGenerator(target, module_name)

    def process(self, repo: Repository) -> Repository:
        if self.target == Language.GO:
            for module in repo.internal_modules():
                changed = GoImportFixer.for_module(module).apply(module)
                if changed:
                    logger.info(f"Fixed Go import paths in {changed} places of {module.name}")

        if self.generate_entry_point:
            found = self.entry_points.detect(repo)
            if found:
                logger.debug(f"Detected entry points: {[ep.name for ep in found]}")
            if not self.entry_points.has_main_entry(found):
                self.entry_points.generate_default_entry(repo)

        if self.generate_config:
            files = self.config.generate(repo)
            repo.generated_files.update(files)
            if files:
                logger.info(f"Generated project files: {', '.join(sorted(files))}")
        return repo
