"""Single-declaration translation.

For one source Type/Function/Var: gather hints for dependencies that are
already translated, build the prompt, call the translation callback and
assemble the target declaration with target naming rules. The callback's
output replaces the content verbatim.
"""

import logging
from typing import List, Optional, Set

from ..uniast.models import (
    Declaration,
    FileLine,
    Function,
    Identity,
    NodeKind,
    Type,
    Var,
)
from ..utils.token_counter import TokenCounter
from .naming import (
    convert_file_name,
    convert_function_name,
    convert_type_name,
    convert_var_name,
)
from .options import (
    DependencyHint,
    LLMTranslateRequest,
    LLMTranslateResponse,
    TranslateContext,
    TranslateOptions,
    TranslationError,
)
from .prompts import PromptBuilder
from .type_hints import TypeHints

logger = logging.getLogger(__name__)


class NodeTranslator:
    """Translates declarations one at a time through the LLM callback.

    Safe to share between worker threads: it holds no per-call state.
    """

    def __init__(
        self,
        options: TranslateOptions,
        type_hints: Optional[TypeHints] = None,
        token_counter=None,
    ):
        self.options = options
        self.type_hints = type_hints or TypeHints(
            options.source_language, options.target_language, options.type_mappings
        )
        self.prompt_builder = PromptBuilder(
            options.source_language, options.target_language, self.type_hints
        )
        self._token_counter = token_counter

    # ── Public API ───────────────────────────────────────────────────────

    def translate(self, src: Declaration, tctx: TranslateContext) -> Declaration:
        if src.kind == NodeKind.TYPE:
            return self.translate_type(src, tctx)
        if src.kind == NodeKind.FUNC:
            return self.translate_function(src, tctx)
        return self.translate_var(src, tctx)

    def translate_type(self, src: Type, tctx: TranslateContext) -> Type:
        resp = self._call(src, tctx)
        target = self.options.target_language
        return Type(
            identity=self._target_identity(
                tctx, convert_type_name(src.name, src.exported, target)
            ),
            file_line=self._target_file_line(src),
            content=resp.target_content,
            exported=src.exported,
            type_kind=src.type_kind,
        )

    def translate_function(self, src: Function, tctx: TranslateContext) -> Function:
        resp = self._call(src, tctx)
        target = self.options.target_language
        return Function(
            identity=self._target_identity(
                tctx, convert_function_name(src.name, src.exported, target)
            ),
            file_line=self._target_file_line(src),
            content=resp.target_content,
            exported=src.exported,
            signature_text=resp.target_signature,
            is_method=src.is_method,
            is_interface_method=src.is_interface_method,
        )

    def translate_var(self, src: Var, tctx: TranslateContext) -> Var:
        resp = self._call(src, tctx)
        target = self.options.target_language
        return Var(
            identity=self._target_identity(
                tctx, convert_var_name(src.name, src.exported, target)
            ),
            file_line=self._target_file_line(src),
            content=resp.target_content,
            exported=src.exported,
            is_const=src.is_const,
            is_pointer=src.is_pointer,
        )

    def collect_dependency_hints(
        self, src: Declaration, tctx: TranslateContext
    ) -> List[DependencyHint]:
        """Hints for dependencies of ``src`` that already have a translation.

        Untranslated dependencies are silently skipped.
        """
        node = tctx.source_repo.get_node(src.identity)
        if node is not None:
            dep_ids = [rel.identity for rel in node.dependencies]
        else:
            dep_ids = [dep.identity for _, dep in src.edges()]

        hints: List[DependencyHint] = []
        seen: Set[Identity] = set()
        with tctx.lock:
            for dep_id in dep_ids:
                if dep_id in seen or dep_id == src.identity:
                    continue
                seen.add(dep_id)
                target_id = tctx.translated_nodes.get(dep_id)
                if target_id is None:
                    continue
                target_decl = tctx.target_repo.get_declaration(target_id)
                hints.append(
                    DependencyHint(
                        source_identity=dep_id,
                        target_identity=target_id,
                        target_signature=target_decl.signature() if target_decl else "",
                    )
                )
        return hints

    # ── Internals ────────────────────────────────────────────────────────

    def build_request(self, src: Declaration, tctx: TranslateContext) -> LLMTranslateRequest:
        content, truncated = self._fit_source(src.content)
        req = LLMTranslateRequest(
            source_language=self.options.source_language,
            target_language=self.options.target_language,
            node_type=src.kind,
            source_content=content,
            identity=src.identity,
            type_hints=dict(self.type_hints.mappings),
            dependency_hints=self.collect_dependency_hints(src, tctx),
            source_truncated=truncated,
        )
        req.prompt = self.prompt_builder.build(req)
        return req

    def _call(self, src: Declaration, tctx: TranslateContext) -> LLMTranslateResponse:
        req = self.build_request(src, tctx)
        logger.debug(
            "Translating %s %s (%d hints)",
            src.kind.value,
            src.identity.full(),
            len(req.dependency_hints),
        )
        try:
            resp = self.options.llm_translator(req)
        except Exception as e:
            raise TranslationError(f"LLM call failed: {e}") from e
        if resp is None:
            raise TranslationError("LLM call failed: empty response")
        if resp.error:
            raise TranslationError(f"LLM error: {resp.error}")

        if resp.additional_imports:
            self._record_imports(src, tctx, resp.additional_imports)
        return resp

    def _fit_source(self, content: str):
        limit = self.options.max_source_tokens
        if limit <= 0:
            return content, False
        if self._token_counter is None:
            self._token_counter = TokenCounter()
        text, truncated = self._token_counter.truncate(content, limit)
        if truncated:
            logger.warning(f"Source truncated to {limit} tokens for translation")
        return text, truncated

    def _record_imports(self, src: Declaration, tctx: TranslateContext, imports: List[str]) -> None:
        file_name = convert_file_name(src.file_line.file, self.options.target_language)
        with tctx.lock:
            module = tctx.target_module
            package = tctx.target_package
            if module is None or package is None:
                return
            f = module.get_or_create_file(package.pkg_path, file_name)
            for path in imports:
                f.add_import(path)

    @staticmethod
    def _target_identity(tctx: TranslateContext, name: str) -> Identity:
        return Identity(
            mod_path=tctx.target_module.name,
            pkg_path=tctx.target_package.pkg_path,
            name=name,
        )

    def _target_file_line(self, src: Declaration) -> FileLine:
        return FileLine(
            file=convert_file_name(src.file_line.file, self.options.target_language),
            line=src.file_line.line,
        )
