"""Type mapping tables offered to the LLM as a translation reference."""

from typing import Dict, Optional, Tuple

from ..uniast.models import Language

_JAVA_TO_GO = {
    "int": "int", "Integer": "int", "long": "int64", "Long": "int64",
    "short": "int16", "Short": "int16", "byte": "byte", "Byte": "byte",
    "float": "float32", "Float": "float32", "double": "float64", "Double": "float64",
    "boolean": "bool", "Boolean": "bool", "char": "rune", "Character": "rune",
    "String": "string", "void": "", "Object": "interface{}",
    "List<T>": "[]T", "ArrayList<T>": "[]T", "LinkedList<T>": "[]T",
    "Set<T>": "map[T]struct{}", "HashSet<T>": "map[T]struct{}",
    "Map<K,V>": "map[K]V", "HashMap<K,V>": "map[K]V", "Optional<T>": "*T",
    "BigInteger": "*big.Int", "BigDecimal": "*big.Float",
    "Date": "time.Time", "LocalDate": "time.Time", "LocalDateTime": "time.Time",
    "Instant": "time.Time",
}

_TYPESCRIPT_TO_GO = {
    "string": "string", "number": "int64", "boolean": "bool", "void": "",
    "null": "nil", "undefined": "zero value or omit",
    "any": "any", "unknown": "interface{}", "object": "map[string]interface{}",
    "never": "// no Go equivalent",
    "Array<T>": "[]T", "T[]": "[]T", "ReadonlyArray<T>": "[]T",
    "Record<K,V>": "map[K]V", "Map<K,V>": "map[K]V", "Set<T>": "map[T]struct{}",
    "Promise<T>": "T (or use goroutine/channel)",
    "Date": "time.Time", "Error": "error",
}

_GO_TO_JAVA = {
    "int": "int", "int8": "byte", "int16": "short", "int32": "int", "int64": "long",
    "uint": "int", "uint8": "byte", "uint16": "int", "uint32": "long", "uint64": "long",
    "float32": "float", "float64": "double", "bool": "boolean", "string": "String",
    "byte": "byte", "rune": "char",
    "[]T": "List<T>", "map[K]V": "Map<K,V>", "*T": "T", "error": "Exception",
    "interface{}": "Object", "any": "Object",
    "time.Time": "LocalDateTime", "time.Duration": "Duration",
}

_JAVA_TO_RUST = {
    "int": "i32", "Integer": "i32", "long": "i64", "Long": "i64",
    "short": "i16", "Short": "i16", "byte": "i8", "Byte": "i8",
    "float": "f32", "Float": "f32", "double": "f64", "Double": "f64",
    "boolean": "bool", "Boolean": "bool", "char": "char", "Character": "char",
    "String": "String", "void": "()", "Object": "Box<dyn Any>",
    "List<T>": "Vec<T>", "ArrayList<T>": "Vec<T>",
    "Set<T>": "HashSet<T>", "HashSet<T>": "HashSet<T>",
    "Map<K,V>": "HashMap<K,V>", "HashMap<K,V>": "HashMap<K,V>",
    "Optional<T>": "Option<T>",
}

_RUST_TO_JAVA = {
    "i8": "byte", "i16": "short", "i32": "int", "i64": "long",
    "u8": "byte", "u16": "int", "u32": "long", "u64": "long",
    "f32": "float", "f64": "double", "bool": "boolean", "char": "char",
    "String": "String", "&str": "String", "()": "void",
    "Vec<T>": "List<T>", "HashSet<T>": "Set<T>", "HashMap<K,V>": "Map<K,V>",
    "Option<T>": "Optional<T>", "Result<T,E>": "T throws Exception", "Box<T>": "T",
}

_GO_TO_RUST = {
    "int": "i64", "int8": "i8", "int16": "i16", "int32": "i32", "int64": "i64",
    "uint": "u64", "uint8": "u8", "uint16": "u16", "uint32": "u32", "uint64": "u64",
    "float32": "f32", "float64": "f64", "bool": "bool", "string": "String",
    "byte": "u8", "rune": "char",
    "[]T": "Vec<T>", "map[K]V": "HashMap<K,V>", "*T": "Option<Box<T>>",
    "error": "Result<T, Error>", "interface{}": "Box<dyn Any>", "any": "Box<dyn Any>",
}

_RUST_TO_GO = {
    "i8": "int8", "i16": "int16", "i32": "int32", "i64": "int64",
    "u8": "uint8", "u16": "uint16", "u32": "uint32", "u64": "uint64",
    "f32": "float32", "f64": "float64", "bool": "bool", "char": "rune",
    "String": "string", "&str": "string", "()": "",
    "Vec<T>": "[]T", "HashSet<T>": "map[T]struct{}", "HashMap<K,V>": "map[K]V",
    "Option<T>": "*T", "Result<T,E>": "(T, error)", "Box<T>": "*T",
}

_PYTHON_TO_GO = {
    "int": "int", "float": "float64", "str": "string", "bool": "bool",
    "None": "nil", "bytes": "[]byte",
    "list": "[]", "List": "[]", "dict": "map", "Dict": "map",
    "set": "map[T]struct{}", "Set": "map[T]struct{}",
    "tuple": "struct", "Tuple": "struct", "Optional": "*", "Any": "interface{}",
}

_GO_TO_PYTHON = {
    "int": "int", "int8": "int", "int16": "int", "int32": "int", "int64": "int",
    "uint": "int", "uint8": "int", "uint16": "int", "uint32": "int", "uint64": "int",
    "float32": "float", "float64": "float", "bool": "bool", "string": "str",
    "byte": "bytes", "[]byte": "bytes",
    "[]T": "List[T]", "map[K]V": "Dict[K, V]", "*T": "Optional[T]",
    "error": "Exception", "interface{}": "Any", "any": "Any",
}

_JAVA_TO_PYTHON = {
    "int": "int", "Integer": "int", "long": "int", "Long": "int",
    "short": "int", "Short": "int", "byte": "int", "Byte": "int",
    "float": "float", "Float": "float", "double": "float", "Double": "float",
    "boolean": "bool", "Boolean": "bool", "char": "str", "Character": "str",
    "String": "str", "void": "None", "Object": "Any",
    "List<T>": "List[T]", "ArrayList<T>": "List[T]",
    "Set<T>": "Set[T]", "HashSet<T>": "Set[T]",
    "Map<K,V>": "Dict[K, V]", "HashMap<K,V>": "Dict[K, V]",
    "Optional<T>": "Optional[T]",
}

_PYTHON_TO_JAVA = {
    "int": "int", "float": "double", "str": "String", "bool": "boolean",
    "None": "void", "bytes": "byte[]",
    "list": "List", "List": "List", "dict": "Map", "Dict": "Map",
    "set": "Set", "Set": "Set", "tuple": "List", "Tuple": "List",
    "Optional": "Optional", "Any": "Object",
}

_PYTHON_TO_RUST = {
    "int": "i64", "float": "f64", "str": "String", "bool": "bool",
    "None": "()", "bytes": "Vec<u8>",
    "list": "Vec", "List": "Vec", "dict": "HashMap", "Dict": "HashMap",
    "set": "HashSet", "Set": "HashSet", "Optional": "Option", "Any": "Box<dyn Any>",
}

_RUST_TO_PYTHON = {
    "i8": "int", "i16": "int", "i32": "int", "i64": "int",
    "u8": "int", "u16": "int", "u32": "int", "u64": "int",
    "f32": "float", "f64": "float", "bool": "bool", "char": "str",
    "String": "str", "&str": "str", "()": "None",
    "Vec<T>": "List[T]", "HashSet<T>": "Set[T]", "HashMap<K,V>": "Dict[K, V]",
    "Option<T>": "Optional[T]", "Result<T,E>": "T (raise on error)", "Box<T>": "T",
}

_TABLES: Dict[Tuple[Language, Language], Dict[str, str]] = {
    (Language.JAVA, Language.GO): _JAVA_TO_GO,
    (Language.GO, Language.JAVA): _GO_TO_JAVA,
    (Language.JAVA, Language.RUST): _JAVA_TO_RUST,
    (Language.RUST, Language.JAVA): _RUST_TO_JAVA,
    (Language.GO, Language.RUST): _GO_TO_RUST,
    (Language.RUST, Language.GO): _RUST_TO_GO,
    (Language.PYTHON, Language.GO): _PYTHON_TO_GO,
    (Language.GO, Language.PYTHON): _GO_TO_PYTHON,
    (Language.JAVA, Language.PYTHON): _JAVA_TO_PYTHON,
    (Language.PYTHON, Language.JAVA): _PYTHON_TO_JAVA,
    (Language.PYTHON, Language.RUST): _PYTHON_TO_RUST,
    (Language.RUST, Language.PYTHON): _RUST_TO_PYTHON,
    (Language.TYPESCRIPT, Language.GO): _TYPESCRIPT_TO_GO,
}


class TypeHints:
    """Source -> target type mappings for one language pair.

    Unknown pairs start empty; callers may still add custom mappings.
    """

    def __init__(self, source: Language, target: Language, custom: Optional[Dict[str, str]] = None):
        self.source = Language.parse(source)
        self.target = Language.parse(target)
        self.mappings: Dict[str, str] = dict(_TABLES.get((self.source, self.target), {}))
        if custom:
            self.mappings.update(custom)

    def get_mapping(self, source_type: str) -> Optional[str]:
        return self.mappings.get(source_type)

    def add_mapping(self, source_type: str, target_type: str) -> None:
        self.mappings[source_type] = target_type

    def format_for_prompt(self) -> str:
        """Markdown table of the mappings, sorted by source type."""
        lines = [f"| {self.source.value} | {self.target.value} |", "|---|---|"]
        for src in sorted(self.mappings):
            lines.append(f"| `{src}` | `{self.mappings[src]}` |")
        return "\n".join(lines) + "\n"

    def __len__(self) -> int:
        return len(self.mappings)
